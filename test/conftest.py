"""Shared fakes for the factory, chain table and sessions"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from crossx.chains import ChainTable
from crossx.errors import SubmissionRejected
from crossx.orchestrator import DeploymentSession
from crossx.services import AddressPredictor, FeeAggregator
from crossx.services.address_predictor import calculate_create2_address

FACTORY = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32


class FakeFactory:
    """Stands in for FactoryInterface; gates let a test hold a call open"""

    factory_address = FACTORY

    def __init__(self, tx_hash=TX_HASH, reject=False, receipt=True):
        self.tx_hash = tx_hash
        self.reject = reject
        self.receipt = receipt
        self.compute_calls = []
        self.sent = []
        self.compute_gate = None
        self.send_gate = None

    async def compute_address(self, salt_bytes, bytecode):
        self.compute_calls.append((salt_bytes, bytecode))
        if self.compute_gate is not None:
            await self.compute_gate.wait()
        return calculate_create2_address(FACTORY, salt_bytes, bytecode)

    async def send(self, function_name, args, value=0):
        self.sent.append((function_name, args, value))
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.reject:
            raise SubmissionRejected("User rejected the request")
        return self.tx_hash

    async def get_receipt_status(self, tx_hash, timeout=None):
        return self.receipt


@pytest.fixture
def chain_table():
    return ChainTable.from_dict({
        "chainX": {"domain_id": 1},
        "chainY": {"domain_id": 2},
        "chainZ": {"domain_id": 3, "relay_fee_eth": "0.05"},
    })


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def make_session(chain_table):
    def _make(factory, bytecode="0xAABB", db=None):
        return DeploymentSession(
            bytecode=bytecode,
            predictor=AddressPredictor(factory),
            aggregator=FeeAggregator(chain_table),
            factory=factory,
            db=db,
        )
    return _make


async def let_tasks_run():
    """Give scheduled tasks a chance to reach their first suspension point"""
    for _ in range(3):
        await asyncio.sleep(0)
