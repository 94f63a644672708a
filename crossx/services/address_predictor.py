"""
Address prediction for deterministic (salt-based) deployments
"""

import logging
import re
from typing import Optional, Union

from eth_hash.auto import keccak
from eth_utils import is_address, to_bytes, to_checksum_address

from crossx.errors import InvalidInput

logger = logging.getLogger('crossx')

UINT256_MAX = 2 ** 256 - 1

SALT_PATTERN = re.compile(r'^(0[xX][0-9a-fA-F]+|[0-9]+)$')

SaltLike = Union[int, str]
BytecodeLike = Union[bytes, str]


def parse_salt(salt: Optional[SaltLike]) -> int:
    """Convert a caller supplied salt (int, decimal or 0x hex string) to uint256"""
    if salt is None or isinstance(salt, bool):
        raise InvalidInput("Please enter salt")

    if isinstance(salt, int):
        value = salt
    elif isinstance(salt, str):
        text = salt.strip()
        if not text:
            raise InvalidInput("Please enter salt")
        if not SALT_PATTERN.match(text):
            raise InvalidInput(f"Salt must be an unsigned integer, got {salt!r}")
        value = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
    else:
        raise InvalidInput(f"Unsupported salt type: {type(salt).__name__}")

    if value < 0 or value > UINT256_MAX:
        raise InvalidInput("Salt must fit in a uint256")
    return value


def encode_salt(salt: SaltLike) -> bytes:
    """ABI uint256 encoding: 32 big-endian bytes"""
    return parse_salt(salt).to_bytes(32, 'big')


def normalize_bytecode(bytecode: Optional[BytecodeLike]) -> bytes:
    if isinstance(bytecode, (bytes, bytearray)):
        code = bytes(bytecode)
    elif isinstance(bytecode, str):
        try:
            code = to_bytes(hexstr=bytecode.strip())
        except ValueError as e:
            raise InvalidInput(f"Bytecode is not valid hex: {e}")
    else:
        code = b""

    if not code:
        raise InvalidInput("Bytecode must not be empty")
    return code


def calculate_create2_address(factory_address: str, salt_bytes: bytes, bytecode: bytes) -> str:
    """CREATE2 formula: keccak256(0xff + factory + salt + keccak256(bytecode))[12:]"""
    if not is_address(factory_address):
        raise InvalidInput(f"Invalid factory address: {factory_address}")
    if len(salt_bytes) != 32:
        raise InvalidInput("Salt must be 32 bytes")

    factory = to_bytes(hexstr=factory_address)
    data = b"\xff" + factory + salt_bytes + keccak(bytecode)
    return to_checksum_address(keccak(data)[-20:])


class AddressPredictor:
    """Predicts the deployment address a factory will use for (salt, bytecode)

    The factory is assumed to sit at the same address on every target chain,
    so one read-only call on the origin chain answers for all destinations.
    With ``offline=True`` the CREATE2 formula is evaluated locally instead.
    """

    def __init__(self, factory, factory_address: Optional[str] = None, offline: bool = False):
        self.factory = factory
        self.factory_address = factory_address or getattr(factory, 'factory_address', None)
        self.offline = offline

    async def predict(self, salt: SaltLike, bytecode: BytecodeLike, factory_address: Optional[str] = None) -> str:
        salt_bytes = encode_salt(salt)
        code = normalize_bytecode(bytecode)
        factory_address = factory_address or self.factory_address

        if self.offline:
            if not factory_address:
                raise InvalidInput("Factory address is required for offline prediction")
            address = calculate_create2_address(factory_address, salt_bytes, code)
        else:
            address = await self.factory.compute_address(salt_bytes, code)

        logger.info(f"Predicted address for salt {parse_salt(salt)}: {address}")
        return address
