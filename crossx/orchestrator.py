"""
Deployment orchestration

A DeploymentSession owns the whole state of one user's deploy flow:

    IDLE -> ADDRESS_PENDING -> ADDRESS_READY -> SUBMITTING -> PENDING -> SUCCEEDED
                         \\                           \\              \\
                          +-> FAILED                  +-> FAILED      +-> FAILED

Every transition is caused by a caller action (set_salt, request_address,
request_deploy, refresh_status, reset, close). Network results are tagged with
the generation they were requested under; a result that comes back after the
salt changed or the session was closed is dropped.
"""

import dataclasses
import logging
import sqlite3
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from crossx.errors import (
    CrossXError,
    DeploymentInProgress,
    InvalidStateTransition,
    NetworkError,
    StaleSessionDiscarded,
    SubmissionRejected,
)
from crossx.models import (
    DeploymentIntent,
    DeploymentState,
    DeploymentTransaction,
    SessionSnapshot,
)
from crossx.services.address_predictor import (
    AddressPredictor,
    BytecodeLike,
    SaltLike,
    encode_salt,
    normalize_bytecode,
    parse_salt,
)
from crossx.services.factory_interface import FactoryInterface
from crossx.services.fee_aggregator import FeeAggregator

logger = logging.getLogger('crossx')


class DeploymentSession:
    """State machine for one deploy flow. Not shared between sessions."""

    def __init__(self, bytecode: BytecodeLike, predictor: AddressPredictor, aggregator: FeeAggregator,
                 factory, factory_address: Optional[str] = None, db=None,
                 session_id: Optional[str] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self.bytecode = bytecode
        self.predictor = predictor
        self.aggregator = aggregator
        self.factory = factory
        self.factory_address = factory_address or getattr(factory, 'factory_address', None)
        self.db = db

        self._state = DeploymentState.IDLE
        self._generation = 0
        self._closed = False
        self._salt: Optional[SaltLike] = None
        self._predicted_for: Optional[int] = None
        self._predicted_address: Optional[str] = None
        self._intent: Optional[DeploymentIntent] = None
        self._transaction: Optional[DeploymentTransaction] = None
        self._error: Optional[CrossXError] = None

        # Every origin transaction this session submitted, in final form
        self.history: List[DeploymentTransaction] = []

    @classmethod
    def from_config(cls, config, bytecode: BytecodeLike, db=None, offline: bool = False) -> "DeploymentSession":
        factory = FactoryInterface.from_config(config)
        return cls(
            bytecode=bytecode,
            predictor=AddressPredictor(factory, config.factory_address, offline=offline),
            aggregator=FeeAggregator(config.chains),
            factory=factory,
            factory_address=config.factory_address,
            db=db,
        )

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> DeploymentState:
        return self._state

    @property
    def predicted_address(self) -> Optional[str]:
        return self._predicted_address

    @property
    def transaction(self) -> Optional[DeploymentTransaction]:
        return self._transaction

    @property
    def closed(self) -> bool:
        return self._closed

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            state=self._state,
            salt=self._predicted_for,
            predicted_address=self._predicted_address,
            transaction=self._transaction,
            error_kind=self._error.kind if self._error else None,
            error_message=self._error.message if self._error else None,
        )

    def _ensure_open(self):
        if self._closed:
            raise InvalidStateTransition(f"Session {self.session_id} is closed")

    def _ensure_not_in_flight(self):
        if self._state.is_in_flight:
            raise DeploymentInProgress(
                f"Session {self.session_id} already has a deployment {self._state.value}"
            )

    def _invalidate(self):
        """Make every outstanding network result stale"""
        self._generation += 1

    def _check_current(self, token: int, what: str):
        if self._closed or token != self._generation:
            raise StaleSessionDiscarded(f"Discarding late {what} for session {self.session_id}")

    def _fail(self, error: CrossXError) -> SessionSnapshot:
        previous = self._state
        self._state = DeploymentState.FAILED
        self._error = error
        logger.warning(f"Session {self.session_id}: {previous.value} -> failed ({error})")
        return self.snapshot()

    # ---------------------------------------------------------------- actions

    def set_salt(self, salt: SaltLike) -> SessionSnapshot:
        """Choose a salt. Any address predicted for a different salt is discarded."""
        self._ensure_open()
        self._ensure_not_in_flight()
        if self._state.is_terminal:
            raise InvalidStateTransition("Session finished; call reset() before choosing a new salt")

        self._invalidate()
        self._salt = salt
        self._predicted_for = None
        self._predicted_address = None
        self._intent = None
        self._error = None
        self._state = DeploymentState.IDLE
        return self.snapshot()

    async def request_address(self, salt: Optional[SaltLike] = None) -> SessionSnapshot:
        """Predict the deployment address for the current (salt, bytecode)"""
        if salt is not None:
            self.set_salt(salt)
        else:
            self._ensure_open()
            self._ensure_not_in_flight()
            if self._state.is_terminal:
                raise InvalidStateTransition("Session finished; call reset() before requesting an address")
            self._invalidate()

        token = self._generation
        requested_salt = self._salt
        self._predicted_for = None
        self._predicted_address = None
        self._state = DeploymentState.ADDRESS_PENDING

        error = None
        address = None
        try:
            address = await self.predictor.predict(requested_salt, self.bytecode, self.factory_address)
        except CrossXError as e:
            error = e

        try:
            self._check_current(token, "address prediction")
        except StaleSessionDiscarded as stale:
            logger.debug(str(stale))
            return self.snapshot()

        if error is not None:
            return self._fail(error)

        self._predicted_for = parse_salt(requested_salt)
        self._predicted_address = address
        self._state = DeploymentState.ADDRESS_READY
        return self.snapshot()

    def _build_intent(self, destinations: Iterable[str], fee_table: Optional[Dict[int, int]]) -> DeploymentIntent:
        aggregate = self.aggregator.aggregate(destinations, fee_table)
        return DeploymentIntent(
            intent_id=uuid.uuid4().hex,
            salt=self._predicted_for,
            salt_bytes=encode_salt(self._predicted_for),
            bytecode=normalize_bytecode(self.bytecode),
            predicted_address=self._predicted_address,
            destinations=tuple(q.chain for q in aggregate.quotes),
            fee_quotes=aggregate.quotes,
            total_fee=aggregate.total,
        )

    async def request_deploy(self, destinations: Iterable[str],
                             fee_table: Optional[Dict[int, int]] = None) -> SessionSnapshot:
        """Aggregate relay fees and submit one origin transaction"""
        self._ensure_open()
        self._ensure_not_in_flight()
        if self._state != DeploymentState.ADDRESS_READY:
            raise InvalidStateTransition(
                f"Cannot deploy from state {self._state.value}; request an address first"
            )

        token = self._generation
        self._state = DeploymentState.SUBMITTING

        try:
            intent = self._build_intent(destinations, fee_table)
        except CrossXError as e:
            return self._fail(e)
        self._intent = intent

        args = [
            self.factory_address,
            list(intent.domains),
            intent.salt_bytes,
            intent.bytecode,
            list(intent.fees),
            False,
            b"",
            intent.total_fee,
        ]

        error = None
        tx_hash = None
        try:
            tx_hash = await self.factory.send("xDeployer", args, value=intent.total_fee)
        except CrossXError as e:
            error = e

        try:
            self._check_current(token, "submission result")
        except StaleSessionDiscarded as stale:
            if tx_hash:
                logger.info(f"{stale} (origin tx {tx_hash} was still sent)")
            else:
                logger.debug(str(stale))
            return self.snapshot()

        if error is not None:
            if not isinstance(error, SubmissionRejected):
                error = SubmissionRejected(str(error))
            return self._fail(error)

        self._transaction = DeploymentTransaction(origin_tx_hash=tx_hash, intent=intent)
        self._state = DeploymentState.PENDING
        logger.info(
            f"Session {self.session_id}: origin tx {tx_hash} pending for "
            f"{', '.join(intent.destinations)} at {intent.predicted_address}"
        )

        if self.db is not None:
            try:
                self.db.record_submission(self.session_id, self._transaction)
            except sqlite3.Error as e:
                logger.error(f"Could not record origin tx {tx_hash}: {e}")
        return self.snapshot()

    async def deploy(self, salt: SaltLike, destinations: Iterable[str],
                     fee_table: Optional[Dict[int, int]] = None) -> SessionSnapshot:
        """request_address followed by request_deploy"""
        snapshot = await self.request_address(salt)
        if snapshot.state != DeploymentState.ADDRESS_READY:
            return snapshot
        return await self.request_deploy(destinations, fee_table)

    async def refresh_status(self, timeout: Optional[float] = None) -> SessionSnapshot:
        """Check the origin transaction once (or wait up to ``timeout`` seconds)

        Delivery to the destination chains is tracked by the relay network,
        not here; only the origin leg decides success.
        """
        self._ensure_open()
        if self._state != DeploymentState.PENDING:
            raise InvalidStateTransition(f"No pending transaction (state {self._state.value})")

        token = self._generation
        transaction = self._transaction
        try:
            mined = await self.factory.get_receipt_status(transaction.origin_tx_hash, timeout)
        except NetworkError as e:
            logger.warning(f"Could not check {transaction.origin_tx_hash}: {e}")
            return self.snapshot()

        try:
            self._check_current(token, "receipt")
        except StaleSessionDiscarded as stale:
            logger.debug(str(stale))
            return self.snapshot()

        if mined is None:
            return self.snapshot()

        if mined:
            transaction = dataclasses.replace(
                transaction, status=DeploymentState.SUCCEEDED, confirmed_at=datetime.now()
            )
            self._transaction = transaction
            self._state = DeploymentState.SUCCEEDED
            logger.info(f"Origin transaction {transaction.origin_tx_hash} confirmed")
            snapshot = self.snapshot()
        else:
            transaction = dataclasses.replace(transaction, status=DeploymentState.FAILED)
            self._transaction = transaction
            snapshot = self._fail(SubmissionRejected(f"Origin transaction {transaction.origin_tx_hash} reverted"))

        self.history.append(transaction)
        if self.db is not None:
            try:
                self.db.update_status(
                    transaction.origin_tx_hash,
                    transaction.status,
                    error_kind=self._error.kind.value if self._error else None,
                    confirmed_at=transaction.confirmed_at,
                )
            except sqlite3.Error as e:
                logger.error(f"Could not update status of {transaction.origin_tx_hash}: {e}")
        return snapshot

    def reset(self) -> SessionSnapshot:
        """Return to IDLE so a fresh intent can be built"""
        self._ensure_open()
        self._ensure_not_in_flight()
        self._invalidate()
        self._state = DeploymentState.IDLE
        self._salt = None
        self._predicted_for = None
        self._predicted_address = None
        self._intent = None
        self._transaction = None
        self._error = None
        return self.snapshot()

    def close(self):
        """Abandon the session. Late results of pending calls are discarded."""
        if self._closed:
            return
        self._invalidate()
        self._closed = True
        logger.debug(f"Session {self.session_id} closed in state {self._state.value}")
