"""
Deployment models for cross-chain deployments
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from crossx.errors import ErrorKind


class DeploymentState(str, Enum):
    """States of a deployment session"""
    IDLE = "idle"
    ADDRESS_PENDING = "address_pending"
    ADDRESS_READY = "address_ready"
    SUBMITTING = "submitting"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentState.SUCCEEDED, DeploymentState.FAILED)

    @property
    def is_in_flight(self) -> bool:
        return self in (DeploymentState.SUBMITTING, DeploymentState.PENDING)


@dataclass(frozen=True)
class FeeQuote:
    """Relay fee for one destination chain (wei)"""
    chain: str
    domain_id: int
    fee: int


@dataclass(frozen=True)
class FeeAggregate:
    """Index-aligned domain and fee lists plus their total"""
    domains: Tuple[int, ...]
    fees: Tuple[int, ...]
    total: int
    quotes: Tuple[FeeQuote, ...] = ()


@dataclass(frozen=True)
class DeploymentIntent:
    """Everything needed to submit one origin transaction. Never reused."""
    intent_id: str
    salt: int
    salt_bytes: bytes
    bytecode: bytes
    predicted_address: str
    destinations: Tuple[str, ...]
    fee_quotes: Tuple[FeeQuote, ...]
    total_fee: int

    @property
    def domains(self) -> Tuple[int, ...]:
        return tuple(quote.domain_id for quote in self.fee_quotes)

    @property
    def fees(self) -> Tuple[int, ...]:
        return tuple(quote.fee for quote in self.fee_quotes)


@dataclass(frozen=True)
class DeploymentTransaction:
    """Origin transaction of a submitted intent"""
    origin_tx_hash: str
    intent: DeploymentIntent
    status: DeploymentState = DeploymentState.PENDING
    submitted_at: datetime = field(default_factory=datetime.now)
    confirmed_at: Optional[datetime] = None  # Set once the origin tx is mined


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session handed out to callers"""
    session_id: str
    state: DeploymentState
    salt: Optional[int] = None
    predicted_address: Optional[str] = None
    transaction: Optional[DeploymentTransaction] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
