"""
Shareable deployment links and explorer links
"""

import re
from urllib.parse import urlparse

from crossx.errors import InvalidInput
from crossx.models import CompiledArtifact

DEFAULT_HOST = "crossx.vercel.app"
EXPLORER_URL = "https://testnet.axelarscan.io/gmp"

# CIDv0 (base58btc) and CIDv1 (base32/base36) are plain alphanumerics
CONTENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9]{10,128}$')
TX_HASH_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')


def validate_content_id(content_id: str) -> str:
    if not isinstance(content_id, str) or not CONTENT_ID_PATTERN.match(content_id.strip()):
        raise InvalidInput(f"Malformed content ID: {content_id!r}")
    return content_id.strip()


def build_link(content_id: str, host: str = DEFAULT_HOST) -> str:
    """https://<host>/deploy/<ContentID>"""
    content_id = validate_content_id(content_id)
    host = host.strip().rstrip('/')
    if host.startswith('http://') or host.startswith('https://'):
        host = urlparse(host).netloc
    if not host:
        raise InvalidInput("Link host must not be empty")
    return f"https://{host}/deploy/{content_id}"


def parse_link(link: str) -> str:
    """Extract the content ID from a deployment link (or accept a bare ID)"""
    if not isinstance(link, str):
        raise InvalidInput(f"Malformed deployment link: {link!r}")
    link = link.strip()
    if '/' not in link:
        return validate_content_id(link)

    parts = [p for p in urlparse(link).path.split('/') if p]
    if len(parts) != 2 or parts[0] != 'deploy':
        raise InvalidInput(f"Not a deployment link: {link}")
    return validate_content_id(parts[1])


async def resolve_link(link: str, publisher) -> CompiledArtifact:
    """Rebuild the artifact behind a deployment link so a deploy can start from Idle"""
    return await publisher.fetch_artifact(parse_link(link))


def build_explorer_link(tx_hash: str) -> str:
    """Relay explorer page tracking the cross-chain legs of an origin tx"""
    if not isinstance(tx_hash, str) or not TX_HASH_PATTERN.match(tx_hash):
        raise InvalidInput(f"Malformed transaction hash: {tx_hash!r}")
    return f"{EXPLORER_URL}/{tx_hash}"
