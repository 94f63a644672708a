"""Factory interface submission handling and the destination observer"""

from types import SimpleNamespace

import pytest
from web3.exceptions import TransactionNotFound

from crossx.chains import ChainTable
from crossx.errors import NetworkError, SubmissionRejected, UnknownDestination
from crossx.services import DestinationObserver, FactoryInterface

FACTORY = "0x1111111111111111111111111111111111111111"
PRIVATE_KEY = "0x" + "11" * 32
TX_HASH = "0x" + "cd" * 32


def make_factory(private_key=PRIVATE_KEY):
    # The provider is never contacted; _sign_and_send is replaced in each test
    return FactoryInterface("http://127.0.0.1:8545", FACTORY, private_key=private_key)


@pytest.mark.asyncio
async def test_send_without_key_is_rejected():
    with pytest.raises(SubmissionRejected):
        await make_factory(private_key=None).send("xDeployer", [], value=0)


@pytest.mark.asyncio
async def test_send_errors_become_submission_rejected(monkeypatch):
    factory = make_factory()

    def insufficient_funds(function_call, value):
        raise ValueError("insufficient funds for gas * price + value")

    monkeypatch.setattr(factory, "_sign_and_send", insufficient_funds)
    with pytest.raises(SubmissionRejected) as exc:
        await factory.send("xDeployer", [FACTORY, [1], b"\x00" * 32, b"\xaa", [1], False, b"", 1], value=1)
    assert "insufficient funds" in str(exc.value)


@pytest.mark.asyncio
async def test_send_returns_tx_hash(monkeypatch):
    factory = make_factory()
    sent = []

    def sign_and_send(function_call, value):
        sent.append((function_call.fn_name, value))
        return TX_HASH

    monkeypatch.setattr(factory, "_sign_and_send", sign_and_send)
    tx_hash = await factory.send("xDeployer", [FACTORY, [1, 2], b"\x00" * 32, b"\xaa", [5, 5], False, b"", 10], value=10)

    assert tx_hash == TX_HASH
    assert sent == [("xDeployer", 10)]
    assert factory.sender_address is not None


class FailingCall:
    def __init__(self, error):
        self.error = error

    def call(self):
        raise self.error


class FailingFunctions:
    def __init__(self, error):
        self.error = error

    def __getattr__(self, name):
        return lambda *args: FailingCall(self.error)


@pytest.mark.asyncio
async def test_call_errors_become_network_error():
    factory = make_factory()
    factory.factory = SimpleNamespace(functions=FailingFunctions(ConnectionError("connection refused")))

    with pytest.raises(NetworkError) as exc:
        await factory.compute_address(b"\x00" * 32, b"\xaa")
    assert "connection refused" in str(exc.value)


class ReceiptEth:
    def __init__(self, result):
        self.result = result

    def get_transaction_receipt(self, tx_hash):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def with_receipt(result):
    factory = make_factory()
    factory.w3 = SimpleNamespace(eth=ReceiptEth(result))
    return factory


@pytest.mark.asyncio
async def test_receipt_status_values():
    assert await with_receipt({"status": 1}).get_receipt_status(TX_HASH) is True
    assert await with_receipt({"status": 0}).get_receipt_status(TX_HASH) is False
    assert await with_receipt(TransactionNotFound("unknown")).get_receipt_status(TX_HASH) is None


@pytest.mark.asyncio
async def test_receipt_provider_error_becomes_network_error():
    with pytest.raises(NetworkError):
        await with_receipt(ConnectionError("rpc down")).get_receipt_status(TX_HASH)


class FakeEth:
    def __init__(self, code):
        self.code = code

    def get_code(self, address):
        if isinstance(self.code, Exception):
            raise self.code
        return self.code


class FakeWeb3:
    def __init__(self, code):
        self.eth = FakeEth(code)


@pytest.mark.asyncio
async def test_observer_reports_each_destination():
    chains = ChainTable.from_dict({
        "deployed": {"domain_id": 1, "rpc_url": "http://a"},
        "waiting": {"domain_id": 2, "rpc_url": "http://b"},
        "broken": {"domain_id": 3, "rpc_url": "http://c"},
        "no-rpc": {"domain_id": 4},
    })
    codes = {"http://a": b"\x60\x80", "http://b": b"", "http://c": ConnectionError("down")}
    observer = DestinationObserver(chains, web3_factory=lambda url: FakeWeb3(codes[url]))

    results = await observer.check("0x" + "12" * 20, ["deployed", "waiting", "broken", "no-rpc"])

    assert results == {"deployed": True, "waiting": False, "broken": None, "no-rpc": None}


@pytest.mark.asyncio
async def test_observer_rejects_unknown_chain():
    observer = DestinationObserver(ChainTable.from_dict({"a": {"domain_id": 1}}))
    with pytest.raises(UnknownDestination):
        await observer.check("0x" + "12" * 20, ["b"])
