"""
Best-effort, read-only view of destination chains

Relay delivery is asynchronous and outside the session's control. This only
reports whether code has appeared at the predicted address on each chain; it
never feeds back into a DeploymentSession.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, Optional

from eth_utils import to_checksum_address
from web3 import Web3

from crossx.chains import ChainTable

logger = logging.getLogger('crossx')


class DestinationObserver:
    """Checks for deployed code on destination chains"""

    def __init__(self, chains: ChainTable, web3_factory: Optional[Callable[[str], Web3]] = None):
        self.chains = chains
        self.web3_factory = web3_factory or (lambda url: Web3(Web3.HTTPProvider(url)))
        self._clients: Dict[str, Web3] = {}

    def _client(self, chain_name: str) -> Optional[Web3]:
        chain = self.chains.get(chain_name)
        if not chain.rpc_url:
            return None
        if chain_name not in self._clients:
            self._clients[chain_name] = self.web3_factory(chain.rpc_url)
        return self._clients[chain_name]

    def _has_code(self, chain_name: str, address: str) -> Optional[bool]:
        w3 = self._client(chain_name)
        if w3 is None:
            logger.warning(f"No RPC URL for {chain_name}, skipping")
            return None
        try:
            code = w3.eth.get_code(address)
        except Exception as e:
            logger.warning(f"Could not query {chain_name}: {e}")
            return None
        return len(code) > 0

    async def check(self, address: str, destinations: Iterable[str]) -> Dict[str, Optional[bool]]:
        """chain name -> True (deployed), False (not yet), None (unknown)"""
        address = to_checksum_address(address)
        names = list(destinations)
        for name in names:
            self.chains.get(name)
        results = await asyncio.gather(
            *(asyncio.to_thread(self._has_code, name, address) for name in names)
        )
        return dict(zip(names, results))
