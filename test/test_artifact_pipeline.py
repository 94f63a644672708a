"""Locate -> publish -> link pipeline, including the publish CLI"""

import json
import os
import sys

import aiohttp
import pytest
import requests

import crossx_publish
from crossx.errors import ArtifactNotFound, CompileError, InvalidInput, NetworkError, PublishError
from crossx.models import CompiledArtifact
from crossx.services import IPFSService
from crossx.services.artifact_locator import compile_contracts, locate
from crossx.services.link_generator import build_explorer_link, build_link, parse_link, resolve_link

CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
ABI = [{"inputs": [], "name": "count", "outputs": [{"type": "uint256"}], "type": "function"}]


def write_artifact(build_dir, name, bytecode="0x6080", mtime=None, source_name=None):
    folder = build_dir / f"{name}.sol"
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / f"{name}.json"
    path.write_text(json.dumps({
        "contractName": name,
        "sourceName": source_name or f"contracts/{name}.sol",
        "abi": ABI,
        "bytecode": bytecode,
    }), encoding="utf-8")
    (folder / f"{name}.dbg.json").write_text(json.dumps({"buildInfo": "x"}), encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        return self._payload


# --- locator ---------------------------------------------------------------

def test_locate_picks_newest_artifact(tmp_path):
    build = tmp_path / "artifacts" / "contracts"
    write_artifact(build, "Old", mtime=1_000_000)
    write_artifact(build, "New", bytecode="0xaabb", mtime=2_000_000)

    artifact = locate(str(build))

    assert artifact.name == "New"
    assert artifact.bytecode == b"\xaa\xbb"
    assert list(artifact.abi) == ABI


def test_locate_skips_interfaces_and_reads_source(tmp_path):
    build = tmp_path / "artifacts" / "contracts"
    write_artifact(build, "Counter", mtime=1_000_000)
    write_artifact(build, "ICounter", bytecode="0x", mtime=2_000_000)
    (tmp_path / "contracts").mkdir()
    (tmp_path / "contracts" / "Counter.sol").write_text("contract Counter {}", encoding="utf-8")

    artifact = locate(str(build), project_root=str(tmp_path))

    assert artifact.name == "Counter"
    assert artifact.source == "contract Counter {}"


def test_locate_without_artifacts(tmp_path):
    with pytest.raises(ArtifactNotFound):
        locate(str(tmp_path / "missing"))
    (tmp_path / "empty").mkdir()
    with pytest.raises(ArtifactNotFound):
        locate(str(tmp_path / "empty"))


def test_compile_failures(tmp_path):
    with pytest.raises(CompileError):
        compile_contracts(str(tmp_path), f'"{sys.executable}" -c "import sys; sys.exit(3)"')
    with pytest.raises(CompileError):
        compile_contracts(str(tmp_path), "definitely-not-a-compiler-binary")


# --- publisher -------------------------------------------------------------

def test_publish_with_pinata(monkeypatch):
    calls = []

    def fake_post(url, files=None, headers=None, timeout=None, **kwargs):
        calls.append((url, files, headers))
        return FakeResponse(200, {"IpfsHash": CID})

    monkeypatch.setattr(requests, "post", fake_post)
    artifact = CompiledArtifact(name="Counter", bytecode=b"\x60\x80", abi=tuple(ABI))

    content_id = IPFSService(pinata_api_key="k", pinata_secret_key="s").publish(artifact)

    assert content_id == CID
    url, files, headers = calls[0]
    assert url.endswith("/pinning/pinFileToIPFS")
    assert headers["pinata_api_key"] == "k"
    filename, body, _ = files["file"]
    assert filename == "Counter.json"
    assert json.loads(body.read())["bytecode"] == "0x6080"


def test_publish_with_web3_storage(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda url, **kwargs: FakeResponse(200, {"cid": "bafy" + "a" * 20}))
    service = IPFSService(web3_storage_token="t")
    service.pinata_api_key = None
    assert service.publish_bytes(b"{}") == "bafy" + "a" * 20


def test_publish_failures(monkeypatch):
    service = IPFSService(pinata_api_key="k", pinata_secret_key="s")

    monkeypatch.setattr(requests, "post", lambda url, **kwargs: FakeResponse(500, text="boom"))
    with pytest.raises(PublishError):
        service.publish_bytes(b"{}")

    def unreachable(url, **kwargs):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(requests, "post", unreachable)
    with pytest.raises(PublishError):
        service.publish_bytes(b"{}")


def test_publish_without_service(monkeypatch):
    for var in ('PINATA_API_KEY', 'PINATA_SECRET_KEY', 'WEB3_STORAGE_TOKEN'):
        monkeypatch.delenv(var, raising=False)
    with pytest.raises(PublishError):
        IPFSService().publish_bytes(b"{}")


# --- links -----------------------------------------------------------------

def test_build_and_parse_link():
    link = build_link(CID)
    assert link == f"https://crossx.vercel.app/deploy/{CID}"
    assert build_link(CID, host="https://deploy.example.org/") == f"https://deploy.example.org/deploy/{CID}"
    assert parse_link(link) == CID
    assert parse_link(CID) == CID


@pytest.mark.parametrize("bad", ["", "short", "has space in it", "Qm/../../etc", None])
def test_malformed_content_ids(bad):
    with pytest.raises(InvalidInput):
        build_link(bad)


def test_parse_link_rejects_other_paths():
    with pytest.raises(InvalidInput):
        parse_link(f"https://crossx.vercel.app/explore/{CID}")


def test_explorer_link():
    tx = "0x" + "12" * 32
    assert build_explorer_link(tx) == f"https://testnet.axelarscan.io/gmp/{tx}"
    with pytest.raises(InvalidInput):
        build_explorer_link("0x1234")


@pytest.mark.asyncio
async def test_resolve_link_rebuilds_artifact():
    published = CompiledArtifact(name="Counter", bytecode=b"\x60\x80", abi=tuple(ABI), source="contract Counter {}")
    service = IPFSService(pinata_api_key="k", pinata_secret_key="s")
    requested = []

    async def fake_fetch(content_id):
        requested.append(content_id)
        return published.to_bytes()

    service.fetch_bytes = fake_fetch

    artifact = await resolve_link(build_link(CID), service)

    assert requested == [CID]
    assert artifact == published


class FakeGatewayResponse:
    def __init__(self, status, body=b""):
        self.status = status
        self.body = body

    async def read(self):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def fake_gateway(result):
    class FakeClientSession:
        def __init__(self, timeout=None):
            self.timeout = timeout

        async def __aenter__(self):
            return self

        async def __aexit__(self, *exc):
            return False

        def get(self, url):
            if isinstance(result, Exception):
                raise result
            return result

    return FakeClientSession


@pytest.mark.asyncio
async def test_fetch_reads_through_gateway(monkeypatch):
    monkeypatch.setattr(aiohttp, "ClientSession", fake_gateway(FakeGatewayResponse(200, b"payload")))
    assert await IPFSService().fetch_bytes(CID) == b"payload"


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [
    FakeGatewayResponse(404),
    aiohttp.ClientConnectionError("gateway down"),
])
async def test_fetch_failures_are_network_errors(monkeypatch, result):
    monkeypatch.setattr(aiohttp, "ClientSession", fake_gateway(result))
    with pytest.raises(NetworkError):
        await IPFSService().fetch_bytes(CID)


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [b"not json at all", b"[1, 2]", b"\xff\xfe"])
async def test_fetch_artifact_rejects_foreign_content(payload):
    service = IPFSService()

    async def fake_fetch(content_id):
        return payload

    service.fetch_bytes = fake_fetch
    with pytest.raises(InvalidInput):
        await service.fetch_artifact(CID)


# --- CLI -------------------------------------------------------------------

@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ('PINATA_API_KEY', 'PINATA_SECRET_KEY', 'WEB3_STORAGE_TOKEN', 'ORIGIN_CHAIN',
                'CHAIN_TABLE_PATH', 'RELAY_FEE_ETH', 'CROSSX_FACTORY_ADDRESS', 'GAS_LIMIT'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv('CROSSX_DB_PATH', str(tmp_path / "deployments.db"))
    return tmp_path


def run_cli(project, *extra):
    return crossx_publish.run(crossx_publish.parse_args(["--project", str(project), "--skip-compile", *extra]))


def test_cli_prints_link(project, monkeypatch, capsys):
    write_artifact(project / "artifacts" / "contracts", "Counter")
    monkeypatch.setattr(IPFSService, "publish", lambda self, artifact: CID)

    assert run_cli(project) == crossx_publish.EXIT_OK
    assert f"https://crossx.vercel.app/deploy/{CID}" in capsys.readouterr().out


def test_cli_artifact_not_found(project):
    assert run_cli(project, "--no-db") == crossx_publish.EXIT_NOT_FOUND


def test_cli_publish_failure(project):
    write_artifact(project / "artifacts" / "contracts", "Counter")
    assert run_cli(project, "--no-db") == crossx_publish.EXIT_PUBLISH


def test_cli_compile_failure(project):
    args = crossx_publish.parse_args([
        "--project", str(project), "--no-db",
        "--compile-command", f'"{sys.executable}" -c "import sys; sys.exit(1)"',
    ])
    assert crossx_publish.run(args) == crossx_publish.EXIT_COMPILE
