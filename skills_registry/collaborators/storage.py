# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Content-Addressed Storage

Single responsibility: Upload bundles and download them by content id
"""

import logging
from typing import Optional

import httpx

from skills_registry.core.config import Config, get_config
from skills_registry.core.errors import HTTPError, NetworkError, ParseError, RequestTimeoutError

logger = logging.getLogger(__name__)


class StorageUploader:
    """Opaque content-addressed storage"""

    async def upload(self, data: bytes) -> str:
        raise NotImplementedError

    async def download(self, content_id: str) -> bytes:
        raise NotImplementedError


class GatewayStorage(StorageUploader):
    """Storage reached over an HTTP gateway and an upload endpoint"""

    name = "gateway"

    def __init__(
        self,
        client: httpx.AsyncClient,
        gateway_url: str,
        upload_url: Optional[str] = None,
        timeout: float = 60.0
    ):
        self.client = client
        self.gateway_url = gateway_url.rstrip("/")
        self.upload_url = upload_url
        self.timeout = timeout

    @classmethod
    def from_config(cls, client: httpx.AsyncClient, config: Optional[Config] = None) -> "GatewayStorage":
        config = config or get_config()
        return cls(client, config.gateway_url, config.upload_url)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"Storage request timed out after {self.timeout}s",
                timeout=self.timeout,
                transport=self.name,
                url=url
            ) from e
        except httpx.DecodingError as e:
            raise ParseError(
                f"Storage sent an undecodable body: {e}",
                details={"transport": self.name, "url": url}
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Storage unreachable: {e}", transport=self.name, url=url) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Storage request failed: {e}", transport=self.name, url=url) from e
        if not response.is_success:
            raise HTTPError(
                f"Storage returned HTTP {response.status_code} for {url}",
                http_status=response.status_code,
                transport=self.name,
                url=url
            )
        return response

    async def download(self, content_id: str) -> bytes:
        """Fetch an artifact by content id."""
        response = await self._request("GET", f"{self.gateway_url}/{content_id}")
        logger.debug(f"Downloaded {content_id}: {len(response.content)} bytes")
        return response.content

    async def upload(self, data: bytes) -> str:
        """
        Upload a (signed) bundle.

        Returns:
            Content id assigned by the storage network

        Raises:
            ParseError: If the upload response carries no id
        """
        if not self.upload_url:
            raise NetworkError("No upload URL configured", transport=self.name)
        response = await self._request(
            "POST",
            self.upload_url,
            content=data,
            headers={"Content-Type": "application/octet-stream"}
        )
        try:
            content_id = response.json().get("id")
        except (ValueError, AttributeError):
            content_id = None
        if not content_id:
            raise ParseError("Upload response did not include an id", content=response.text)
        logger.info(f"Uploaded {len(data)} bytes as {content_id}")
        return content_id
