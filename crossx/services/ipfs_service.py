"""
IPFS service for publishing and fetching compiled artifacts
"""

import asyncio
import json
import logging
import os
from io import BytesIO
from typing import Optional

import aiohttp
import requests

from crossx.errors import InvalidInput, NetworkError, PublishError
from crossx.models import CompiledArtifact

DEFAULT_GATEWAY = "https://gateway.pinata.cloud/ipfs"


class IPFSService:
    """Service for handling IPFS uploads"""

    def __init__(self, pinata_api_key: Optional[str] = None, pinata_secret_key: Optional[str] = None,
                 web3_storage_token: Optional[str] = None, gateway: Optional[str] = None,
                 timeout: int = 60):
        """Initialize IPFS service with API keys (falls back to the environment)"""
        self.pinata_api_key = pinata_api_key or os.getenv('PINATA_API_KEY')
        self.pinata_secret_key = pinata_secret_key or os.getenv('PINATA_SECRET_KEY')
        self.web3_storage_token = web3_storage_token or os.getenv('WEB3_STORAGE_TOKEN')
        self.gateway = (gateway or os.getenv('IPFS_GATEWAY') or DEFAULT_GATEWAY).rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger('crossx')

    @classmethod
    def from_config(cls, config) -> "IPFSService":
        return cls(
            pinata_api_key=config.pinata_api_key,
            pinata_secret_key=config.pinata_secret_key,
            web3_storage_token=config.web3_storage_token,
            gateway=config.ipfs_gateway,
        )

    def publish(self, artifact: CompiledArtifact) -> str:
        """Upload an artifact (bytecode, ABI, source) and return its content ID"""
        return self.publish_bytes(artifact.to_bytes(), name=f"{artifact.name}.json")

    def publish_bytes(self, data: bytes, name: str = "artifact.json") -> str:
        """Upload raw bytes to IPFS. Single attempt, no retry."""
        if not data:
            raise InvalidInput("Nothing to publish")

        try:
            if self.pinata_api_key and self.pinata_secret_key:
                # Use Pinata
                url = "https://api.pinata.cloud/pinning/pinFileToIPFS"
                headers = {
                    "pinata_api_key": self.pinata_api_key,
                    "pinata_secret_api_key": self.pinata_secret_key
                }
                files = {
                    'file': (name, BytesIO(data), 'application/json')
                }

                response = requests.post(url, files=files, headers=headers, timeout=self.timeout)
                if response.status_code == 200:
                    content_id = response.json()['IpfsHash']
                    self.logger.info(f"Artifact uploaded to IPFS: {content_id}")
                    return content_id
                raise PublishError(f"Pinata upload failed: {response.status_code} {response.text}")

            elif self.web3_storage_token:
                # Use web3.storage
                url = "https://api.web3.storage/upload"
                headers = {
                    "Authorization": f"Bearer {self.web3_storage_token}",
                    "X-NAME": name
                }

                response = requests.post(url, data=data, headers=headers, timeout=self.timeout)
                if response.status_code == 200:
                    content_id = response.json()['cid']
                    self.logger.info(f"Artifact uploaded to IPFS: {content_id}")
                    return content_id
                raise PublishError(f"Web3.storage upload failed: {response.status_code} {response.text}")

        except requests.RequestException as e:
            self.logger.error(f"Error uploading artifact to IPFS: {e}")
            raise PublishError(f"Storage network unreachable: {e}")
        except (KeyError, ValueError) as e:
            self.logger.error(f"Unexpected IPFS response: {e}")
            raise PublishError(f"Unexpected response from storage network: {e}")

        raise PublishError("No IPFS service configured (set PINATA_API_KEY/PINATA_SECRET_KEY or WEB3_STORAGE_TOKEN)")

    async def fetch_bytes(self, content_id: str) -> bytes:
        """Download published content through the gateway"""
        url = f"{self.gateway}/{content_id}"
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise NetworkError(f"Gateway returned {response.status} for {content_id}")
                    return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Error fetching {content_id} from IPFS: {e}")
            raise NetworkError(f"Could not fetch {content_id}: {e}")

    async def fetch_artifact(self, content_id: str) -> CompiledArtifact:
        data = await self.fetch_bytes(content_id)
        try:
            payload = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidInput(f"Content {content_id} is not a published artifact: {e}")
        if not isinstance(payload, dict):
            raise InvalidInput(f"Content {content_id} is not a published artifact")
        return CompiledArtifact.from_json(payload)
