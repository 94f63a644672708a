"""
Factory contract interface
Handles the read-only address computation and the payable xDeployer call
"""

import asyncio
import logging
from typing import Optional, Sequence

from eth_account import Account
from eth_utils import to_checksum_address
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound

from crossx.errors import NetworkError, SubmissionRejected

logger = logging.getLogger('crossx')

# Minimal ABI for the deterministic deployer
FACTORY_ABI = [
    {
        "inputs": [
            {"name": "salt", "type": "bytes32"},
            {"name": "bytecode", "type": "bytes"}
        ],
        "name": "computeAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "implementation", "type": "address"},
            {"name": "destinationDomains", "type": "uint32[]"},
            {"name": "salt", "type": "bytes32"},
            {"name": "bytecode", "type": "bytes"},
            {"name": "fees", "type": "uint256[]"},
            {"name": "isInitializable", "type": "bool"},
            {"name": "initializableData", "type": "bytes"},
            {"name": "totalFee", "type": "uint256"}
        ],
        "name": "xDeployer",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]


class FactoryInterface:
    """Interface for factory contract interactions on the origin chain"""

    def __init__(self, rpc_url: Optional[str], factory_address: str,
                 private_key: Optional[str] = None, gas_limit: int = 6500000,
                 w3: Optional[Web3] = None):
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.account = Account.from_key(private_key) if private_key else None
        self.factory_address = to_checksum_address(factory_address)
        self.gas_limit = gas_limit
        self.factory = self.w3.eth.contract(address=self.factory_address, abi=FACTORY_ABI)

        # Only one nonce may be allocated at a time
        self.nonce_lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> "FactoryInterface":
        return cls(
            rpc_url=config.rpc_url,
            factory_address=config.factory_address,
            private_key=config.private_key,
            gas_limit=config.gas_limit,
        )

    @property
    def sender_address(self) -> Optional[str]:
        return self.account.address if self.account else None

    async def call(self, function_name: str, *args):
        """Read-only call against the factory"""
        try:
            function_call = getattr(self.factory.functions, function_name)(*args)
            return await asyncio.to_thread(function_call.call)
        except Exception as e:
            logger.error(f"Factory call {function_name} failed: {e}")
            raise NetworkError(f"{function_name} call failed: {e}")

    async def compute_address(self, salt_bytes: bytes, bytecode: bytes) -> str:
        address = await self.call("computeAddress", salt_bytes, bytecode)
        return to_checksum_address(address)

    async def send(self, function_name: str, args: Sequence, value: int = 0) -> str:
        """Sign and send a state-changing factory call, returning the tx hash

        Any failure (user key missing, insufficient funds, revert during
        estimation, RPC error) is reported as SubmissionRejected.
        """
        if self.account is None:
            raise SubmissionRejected("No signing key configured")

        try:
            function_call = getattr(self.factory.functions, function_name)(*args)
            async with self.nonce_lock:
                tx_hash = await asyncio.to_thread(self._sign_and_send, function_call, value)
        except Exception as e:
            logger.error(f"Factory {function_name} submission rejected: {e}")
            raise SubmissionRejected(str(e))

        logger.info(f"Transaction sent: {tx_hash}")
        return tx_hash

    def _sign_and_send(self, function_call, value: int) -> str:
        balance = self.w3.eth.get_balance(self.account.address)
        if balance < value:
            raise ValueError(
                f"Insufficient balance: {Web3.from_wei(balance, 'ether')} ETH "
                f"(need {Web3.from_wei(value, 'ether')} ETH for relay fees)"
            )

        nonce = self.w3.eth.get_transaction_count(self.account.address, 'pending')
        params = {
            'from': self.account.address,
            'value': value,
            'gas': self.gas_limit,
            'nonce': nonce,
            'chainId': self.w3.eth.chain_id,
        }

        # EIP-1559 where the chain supports it, legacy gas price otherwise
        latest_block = self.w3.eth.get_block('latest')
        base_fee = latest_block.get('baseFeePerGas')
        if base_fee is not None:
            max_priority_fee = self.w3.to_wei(1, 'gwei')
            params.update({
                'maxFeePerGas': int(base_fee * 1.2) + max_priority_fee,
                'maxPriorityFeePerGas': max_priority_fee,
                'type': 2,
            })
            logger.debug(f"EIP-1559 Gas: Base fee: {base_fee / 1e9:.2f} gwei, nonce {nonce}")
        else:
            params['gasPrice'] = self.w3.eth.gas_price

        tx = function_call.build_transaction(params)
        signed_tx = self.account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        return Web3.to_hex(tx_hash)

    async def get_receipt_status(self, tx_hash: str, timeout: Optional[float] = None) -> Optional[bool]:
        """True if mined successfully, False if reverted, None if not yet mined"""
        try:
            if timeout:
                receipt = await asyncio.to_thread(
                    self.w3.eth.wait_for_transaction_receipt, tx_hash, timeout=timeout
                )
            else:
                receipt = await asyncio.to_thread(self.w3.eth.get_transaction_receipt, tx_hash)
        except (TransactionNotFound, TimeExhausted):
            return None
        except Exception as e:
            logger.error(f"Receipt lookup failed for {tx_hash}: {e}")
            raise NetworkError(f"Receipt lookup failed: {e}")

        return receipt['status'] == 1
