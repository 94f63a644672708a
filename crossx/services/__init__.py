from crossx.services.address_predictor import AddressPredictor
from crossx.services.destination_observer import DestinationObserver
from crossx.services.factory_interface import FactoryInterface
from crossx.services.fee_aggregator import FeeAggregator
from crossx.services.ipfs_service import IPFSService

__all__ = [
    "AddressPredictor",
    "DestinationObserver",
    "FactoryInterface",
    "FeeAggregator",
    "IPFSService",
]
