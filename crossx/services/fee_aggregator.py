"""
Relay fee aggregation across destination chains
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from web3 import Web3

from crossx.chains import ChainTable
from crossx.errors import FeeOverflowError, InvalidInput, NoDestinationsSelected, UnknownDestination
from crossx.models import FeeAggregate, FeeQuote
from crossx.services.address_predictor import UINT256_MAX

logger = logging.getLogger('crossx')


def normalize_destinations(destinations: Optional[Iterable[str]]) -> Tuple[str, ...]:
    """Unique chain names, first occurrence wins"""
    if destinations is None:
        return ()
    if isinstance(destinations, str):
        destinations = [destinations]

    seen = []
    for name in destinations:
        if name not in seen:
            seen.append(name)
    return tuple(seen)


class FeeAggregator:
    """Turns a destination selection into index-aligned domain/fee lists"""

    def __init__(self, chains: ChainTable):
        self.chains = chains

    def quote(self, destinations: Iterable[str], fee_table: Optional[Dict[int, int]] = None) -> List[FeeQuote]:
        """Per-destination quotes. Fails as a whole if any destination is unmapped."""
        selection = normalize_destinations(destinations)
        if not selection:
            raise NoDestinationsSelected("A deployment must target at least one chain")

        if fee_table is None:
            fee_table = self.chains.fee_table()

        quotes = []
        for name in selection:
            chain = self.chains.get(name)
            if chain.domain_id not in fee_table:
                raise UnknownDestination(f"No relay fee known for domain {chain.domain_id} ({name})")
            fee = fee_table[chain.domain_id]
            if isinstance(fee, bool) or not isinstance(fee, int):
                raise InvalidInput(f"Relay fee for {name} must be an integer amount of wei")
            if fee < 0:
                raise InvalidInput(f"Relay fee for {name} must not be negative")
            quotes.append(FeeQuote(chain=name, domain_id=chain.domain_id, fee=fee))
        return quotes

    def aggregate(self, destinations: Iterable[str], fee_table: Optional[Dict[int, int]] = None) -> FeeAggregate:
        quotes = self.quote(destinations, fee_table)

        total = 0
        for quote in quotes:
            total += quote.fee
            if total > UINT256_MAX:
                raise FeeOverflowError("Total relay fee exceeds uint256")

        aggregate = FeeAggregate(
            domains=tuple(q.domain_id for q in quotes),
            fees=tuple(q.fee for q in quotes),
            total=total,
            quotes=tuple(quotes),
        )
        logger.info(
            f"Relay fees for {len(quotes)} destination(s): "
            f"{Web3.from_wei(total, 'ether')} ETH total"
        )
        return aggregate
