"""
Compiled contract artifact model
"""

import json
from dataclasses import dataclass
from typing import Dict, List, Optional

from eth_utils import to_bytes

from crossx.errors import InvalidInput


@dataclass(frozen=True)
class CompiledArtifact:
    """Bytecode + ABI produced by the compiler"""
    name: str
    bytecode: bytes
    abi: tuple  # Tuple of ABI entries (dicts)
    source: Optional[str] = None  # Contract source text, if found
    source_name: Optional[str] = None  # e.g. contracts/Counter.sol

    @property
    def bytecode_hex(self) -> str:
        return "0x" + self.bytecode.hex()

    def to_json(self) -> Dict:
        """Payload published to IPFS"""
        return {
            "contractName": self.name,
            "sourceName": self.source_name,
            "abi": list(self.abi),
            "bytecode": self.bytecode_hex,
            "source": self.source,
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_json(), sort_keys=True).encode("utf-8")

    @classmethod
    def from_json(cls, data: Dict, source: Optional[str] = None) -> "CompiledArtifact":
        """Build an artifact from a compiler output or a published payload"""
        bytecode = data.get("bytecode")
        abi: Optional[List] = data.get("abi")
        if isinstance(bytecode, dict):
            # solc standard-json style {"object": "..."}
            bytecode = bytecode.get("object")
        if not bytecode or abi is None:
            raise InvalidInput("Artifact is missing bytecode or abi")

        try:
            if not bytecode.startswith("0x"):
                bytecode = "0x" + bytecode
            code = to_bytes(hexstr=bytecode)
        except (ValueError, AttributeError) as e:
            raise InvalidInput(f"Artifact bytecode is not valid hex: {e}")

        return cls(
            name=data.get("contractName") or data.get("name") or "Contract",
            bytecode=code,
            abi=tuple(abi),
            source=source if source is not None else data.get("source"),
            source_name=data.get("sourceName"),
        )
