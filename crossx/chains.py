"""
Destination chain table

Maps human-readable chain names to relay-network domain IDs, chain IDs,
public RPC endpoints and relay fees. Loaded and validated once at startup.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional

from web3 import Web3

from crossx.errors import ConfigError, UnknownDestination

logger = logging.getLogger('crossx')

# Testnets supported by the deploy UI
DEFAULT_CHAINS = {
    "bsc-testnet": {
        "domain_id": 97,
        "chain_id": 97,
        "rpc_url": "https://data-seed-prebsc-1-s1.binance.org:8545",
    },
    "polygon-mumbai": {
        "domain_id": 80001,
        "chain_id": 80001,
        "rpc_url": "https://rpc-mumbai.maticvigil.com",
    },
    "base-goerli": {
        "domain_id": 84531,
        "chain_id": 84531,
        "rpc_url": "https://goerli.base.org",
    },
    "arbitrum-goerli": {
        "domain_id": 421613,
        "chain_id": 421613,
        "rpc_url": "https://goerli-rollup.arbitrum.io/rpc",
    },
    "avalanche-fuji": {
        "domain_id": 43113,
        "chain_id": 43113,
        "rpc_url": "https://api.avax-test.network/ext/bc/C/rpc",
    },
    "optimism-goerli": {
        "domain_id": 420,
        "chain_id": 420,
        "rpc_url": "https://goerli.optimism.io",
    },
}

DEFAULT_RELAY_FEE_ETH = "0.01"


@dataclass(frozen=True)
class ChainInfo:
    """One destination chain"""
    name: str
    domain_id: int
    chain_id: int
    rpc_url: Optional[str]
    relay_fee: int  # wei


def _parse_fee(name: str, value) -> int:
    try:
        fee = Web3.to_wei(Decimal(str(value)), 'ether')
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ConfigError(f"Invalid relay fee for {name}: {value!r} ({e})")
    if fee < 0:
        raise ConfigError(f"Relay fee for {name} must not be negative")
    return int(fee)


class ChainTable:
    """Validated, read-only chain name -> ChainInfo mapping"""

    def __init__(self, chains: Dict[str, ChainInfo]):
        self._chains = dict(chains)

    @classmethod
    def from_dict(cls, raw: Dict[str, Dict], default_fee_eth: str = DEFAULT_RELAY_FEE_ETH) -> "ChainTable":
        """Validate raw entries, failing fast on the first malformed one"""
        if not isinstance(raw, dict) or not raw:
            raise ConfigError("Chain table must be a non-empty mapping")

        chains = {}
        seen_domains = {}
        for name, entry in raw.items():
            if not isinstance(name, str) or not name.strip():
                raise ConfigError(f"Invalid chain name: {name!r}")
            if not isinstance(entry, dict):
                raise ConfigError(f"Chain entry for {name} must be a mapping")

            domain_id = entry.get("domain_id")
            if isinstance(domain_id, bool) or not isinstance(domain_id, int) or domain_id <= 0:
                raise ConfigError(f"Chain {name} needs a positive integer domain_id, got {domain_id!r}")
            if domain_id >= 2 ** 32:
                raise ConfigError(f"Domain ID for {name} does not fit in uint32")
            if domain_id in seen_domains:
                raise ConfigError(f"Domain ID {domain_id} used by both {seen_domains[domain_id]} and {name}")
            seen_domains[domain_id] = name

            chain_id = entry.get("chain_id", domain_id)
            if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
                raise ConfigError(f"Chain {name} has invalid chain_id {chain_id!r}")

            fee = _parse_fee(name, entry.get("relay_fee_eth", default_fee_eth))

            chains[name] = ChainInfo(
                name=name,
                domain_id=domain_id,
                chain_id=chain_id,
                rpc_url=entry.get("rpc_url"),
                relay_fee=fee,
            )

        return cls(chains)

    @classmethod
    def load(cls, path: Optional[str] = None, default_fee_eth: str = DEFAULT_RELAY_FEE_ETH) -> "ChainTable":
        """Load the built-in table, merged with a JSON override file if given"""
        raw = {name: dict(entry) for name, entry in DEFAULT_CHAINS.items()}
        if path:
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    overrides = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ConfigError(f"Could not read chain table {path}: {e}")
            if not isinstance(overrides, dict):
                raise ConfigError(f"Chain table {path} must contain a JSON object")
            for name, entry in overrides.items():
                if entry is None:
                    raw.pop(name, None)  # null removes a built-in chain
                elif isinstance(entry, dict):
                    raw[name] = {**raw.get(name, {}), **entry}
                else:
                    raise ConfigError(f"Chain entry for {name} must be a mapping")
            logger.info(f"Loaded chain table overrides from {path}")

        return cls.from_dict(raw, default_fee_eth)

    def get(self, name: str) -> ChainInfo:
        try:
            return self._chains[name]
        except KeyError:
            raise UnknownDestination(f"No domain mapping for chain '{name}'")

    def fee_table(self) -> Dict[int, int]:
        """domain ID -> relay fee (wei)"""
        return {chain.domain_id: chain.relay_fee for chain in self._chains.values()}

    def __contains__(self, name) -> bool:
        return name in self._chains

    def __iter__(self) -> Iterator[ChainInfo]:
        return iter(self._chains.values())

    def __len__(self) -> int:
        return len(self._chains)
