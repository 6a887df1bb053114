# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Transports

Single responsibility: Carry one logical registry operation over HTTP and
classify failures

Both transports return the handler payload as a dict, so callers cannot tell
which one served a call.
"""

import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from skills_registry.core.errors import (
    AuthorizationError,
    HTTPError,
    NetworkError,
    ParseError,
    RequestTimeoutError,
    SkillsError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Logical operation -> (fast-path function, message action)
OPERATIONS = {
    "info": ("info", "Info"),
    "search": ("searchSkills", "Search-Skills"),
    "list": ("listSkills", "List-Skills"),
    "get": ("getSkill", "Get-Skill"),
    "versions": ("getSkillVersions", "Get-Skill-Versions"),
    "stats": ("getDownloadStats", "Get-Download-Stats"),
    "register": (None, "Register-Skill"),
    "record_download": (None, "Record-Download"),
}

_APPLICATION_ERRORS = {
    "ValidationError": ValidationError,
    "AuthorizationError": AuthorizationError,
}


def _query_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def decode_json_object(response: httpx.Response, transport: str) -> Dict[str, Any]:
    """
    Parse a response body that must be a JSON object.

    Raises:
        ParseError: If the body is not a JSON object
    """
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(
            f"{transport} returned malformed JSON: {e}",
            content=response.text,
            details={"transport": transport, "url": str(response.request.url)}
        )
    if not isinstance(payload, dict):
        raise ParseError(
            f"{transport} returned {type(payload).__name__}, expected an object",
            content=response.text,
            details={"transport": transport}
        )
    return payload


class RegistryTransport:
    """Base transport: one logical operation per call"""

    name = "transport"

    def __init__(self, client: httpx.AsyncClient, process_id: str, timeout: float = 30.0):
        """
        Initialize transport.

        Args:
            client: Shared async HTTP client
            process_id: Registry process identifier
            timeout: Per-request timeout in seconds
        """
        self.client = client
        self.process_id = process_id
        self.timeout = timeout

    async def query(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        raise NotImplementedError

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Issue a request and map httpx failures onto the error taxonomy."""
        start = time.monotonic()
        try:
            response = await self.client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                f"{self.name} request timed out after {self.timeout}s",
                timeout=self.timeout,
                transport=self.name,
                url=url
            ) from e
        except httpx.DecodingError as e:
            raise ParseError(
                f"{self.name} sent an undecodable body: {e}",
                details={"transport": self.name, "url": url}
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"{self.name} connection failed: {e}",
                transport=self.name,
                url=url
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(
                f"{self.name} request failed: {e}",
                transport=self.name,
                url=url
            ) from e

        logger.debug(
            f"{self.name} {method} {url} -> {response.status_code} "
            f"in {time.monotonic() - start:.3f}s"
        )
        if not response.is_success:
            raise HTTPError(
                f"{self.name} returned HTTP {response.status_code}",
                http_status=response.status_code,
                transport=self.name,
                url=url
            )
        return response


class HyperbeamTransport(RegistryTransport):
    """
    Fast stateless reads against a HyperBEAM-style node.

    URL: {node}/{process}~process@1.0/now/~lua@5.3a&module={script}/{fn}/serialize~json@1.0?params
    """

    name = "hyperbeam"

    def __init__(
        self,
        client: httpx.AsyncClient,
        node_url: str,
        process_id: str,
        script_id: str,
        timeout: float = 5.0
    ):
        super().__init__(client, process_id, timeout)
        self.node_url = node_url.rstrip("/")
        self.script_id = script_id

    def build_url(self, function: str, params: Optional[Dict[str, Any]] = None) -> str:
        url = (
            f"{self.node_url}/{self.process_id}~process@1.0/now/"
            f"~lua@5.3a&module={self.script_id}/{function}/serialize~json@1.0"
        )
        query = {k: _query_value(v) for k, v in (params or {}).items() if v is not None}
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    async def query(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        function, _ = OPERATIONS[operation]
        if function is None:
            raise ValidationError(f"{operation} is not available on the read-only fast path", field="operation")
        response = await self._send("GET", self.build_url(function, params))
        return decode_json_object(response, self.name)


class MessageTransport(RegistryTransport):
    """
    Request/response messages against a compute unit.

    Slower but serves both reads and writes.
    """

    name = "message"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cu_url: str,
        process_id: str,
        sender: str = "anonymous",
        timeout: float = 30.0
    ):
        super().__init__(client, process_id, timeout)
        self.cu_url = cu_url.rstrip("/")
        self.sender = sender

    async def send(self, action: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Deliver one message and return its data.

        Raises:
            SkillsError: Rejection reported by the registry (Error action)
        """
        body = {
            "process": self.process_id,
            "action": action,
            "params": {k: v for k, v in (params or {}).items() if v is not None},
            "from": self.sender,
        }
        response = await self._send("POST", f"{self.cu_url}/message", json=body)
        payload = decode_json_object(response, self.name)

        if payload.get("action") == "Error":
            error_cls = _APPLICATION_ERRORS.get(payload.get("errorType"), SkillsError)
            message = payload.get("error") or f"{action} rejected"
            details = payload.get("details") or {}
            if error_cls is ValidationError:
                raise ValidationError(message, field=details.get("field"), details=details)
            if error_cls is AuthorizationError:
                raise AuthorizationError(message, address=self.sender, details=details)
            raise SkillsError(message, status_code=400, details=details)

        data = payload.get("data")
        if not isinstance(data, dict):
            raise ParseError(f"{action} response carried no data object", content=response.text)
        return data

    async def query(self, operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        _, action = OPERATIONS[operation]
        return await self.send(action, params)
