"""
Configuration and logging setup
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_utils import is_address, to_checksum_address

from crossx.chains import DEFAULT_RELAY_FEE_ETH, ChainTable
from crossx.errors import ConfigError

DEFAULT_LINK_HOST = "crossx.vercel.app"
DEFAULT_IPFS_GATEWAY = "https://gateway.pinata.cloud/ipfs"
DEFAULT_ORIGIN_CHAIN = "polygon-mumbai"


@dataclass
class CrossXConfig:
    """Settings read once from the environment"""
    chains: ChainTable
    origin_chain: str
    rpc_url: Optional[str]
    private_key: Optional[str] = None
    factory_address: Optional[str] = None
    gas_limit: int = 6500000
    pinata_api_key: Optional[str] = None
    pinata_secret_key: Optional[str] = None
    web3_storage_token: Optional[str] = None
    ipfs_gateway: str = DEFAULT_IPFS_GATEWAY
    link_host: str = DEFAULT_LINK_HOST
    db_path: str = 'deployments.db'


def load_config(require_wallet: bool = True) -> CrossXConfig:
    """Load configuration from environment

    The publish pipeline only needs IPFS credentials, so wallet settings are
    only enforced when ``require_wallet`` is set.
    """
    load_dotenv()

    if require_wallet:
        required_vars = ['PRIVATE_KEY', 'CROSSX_FACTORY_ADDRESS']
        missing = [var for var in required_vars if not os.getenv(var)]
        if missing:
            raise ConfigError(f"Missing required environment variables: {missing}")

    private_key = os.getenv('PRIVATE_KEY')
    if private_key:
        try:
            Account.from_key(private_key)
        except Exception as e:
            raise ConfigError(f"PRIVATE_KEY is not a valid private key: {type(e).__name__}")

    factory_address = os.getenv('CROSSX_FACTORY_ADDRESS')
    if factory_address:
        if not is_address(factory_address):
            raise ConfigError(f"CROSSX_FACTORY_ADDRESS is not a valid address: {factory_address}")
        factory_address = to_checksum_address(factory_address)

    try:
        gas_limit = int(os.getenv('GAS_LIMIT', '6500000'))
    except ValueError:
        raise ConfigError(f"GAS_LIMIT must be an integer, got {os.getenv('GAS_LIMIT')!r}")

    chains = ChainTable.load(
        os.getenv('CHAIN_TABLE_PATH'),
        default_fee_eth=os.getenv('RELAY_FEE_ETH', DEFAULT_RELAY_FEE_ETH),
    )

    origin_chain = os.getenv('ORIGIN_CHAIN', DEFAULT_ORIGIN_CHAIN)
    if origin_chain not in chains:
        raise ConfigError(f"ORIGIN_CHAIN '{origin_chain}' is not in the chain table")

    rpc_url = os.getenv('RPC_URL') or chains.get(origin_chain).rpc_url
    if require_wallet and not rpc_url:
        raise ConfigError(f"No RPC URL configured for origin chain '{origin_chain}'")

    return CrossXConfig(
        chains=chains,
        origin_chain=origin_chain,
        rpc_url=rpc_url,
        private_key=private_key,
        factory_address=factory_address,
        gas_limit=gas_limit,
        pinata_api_key=os.getenv('PINATA_API_KEY'),
        pinata_secret_key=os.getenv('PINATA_SECRET_KEY'),
        web3_storage_token=os.getenv('WEB3_STORAGE_TOKEN'),
        ipfs_gateway=os.getenv('IPFS_GATEWAY', DEFAULT_IPFS_GATEWAY).rstrip('/'),
        link_host=os.getenv('DEPLOY_LINK_HOST', DEFAULT_LINK_HOST),
        db_path=os.getenv('CROSSX_DB_PATH', 'deployments.db'),
    )


def setup_logging(log_dir: str = 'logs') -> logging.Logger:
    """Setup logging"""
    logger = logging.getLogger('crossx')
    if logger.handlers:
        return logger

    os.makedirs(log_dir, exist_ok=True)
    logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(os.path.join(log_dir, 'crossx.log'), encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    if os.getenv('DEBUG', 'false').lower() == 'true':
        console_handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s'
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger
