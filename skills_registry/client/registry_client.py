# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Client

Single responsibility: Transport-agnostic registry API with a short-lived
read cache

Reads go through the dual-path executor. Writes go straight to the message
transport and are never retried.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

from skills_registry.core.config import Config, get_config
from skills_registry.models.registry_models import (
    Acknowledgment,
    DownloadStats,
    GetSkillResponse,
    GetVersionsResponse,
    InfoResponse,
    ListResponse,
    RegisterSkillRequest,
    SearchResponse,
    StatsError,
    parse_stats_payload,
)

from .failover import DualPathExecutor, FailoverConfig
from .transports import HyperbeamTransport, MessageTransport

logger = logging.getLogger(__name__)


class TTLCache:
    """In-memory cache whose entries expire after a fixed age"""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Tuple, Tuple[float, Any]] = {}

    def get(self, key: Tuple) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            return None
        return value

    def set(self, key: Tuple, value: Any):
        self._entries[key] = (self._clock(), value)

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RegistryClient:
    """Registry API over the fast transport with message fallback"""

    def __init__(
        self,
        executor: DualPathExecutor,
        messages: MessageTransport,
        cache_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize registry client.

        Args:
            executor: Dual-path executor for reads
            messages: Message transport for writes
            cache_ttl: Seconds search/get results stay cached
            clock: Monotonic clock (replaceable in tests)
            http_client: HTTP client owned by this instance, closed by aclose()
        """
        self.executor = executor
        self.messages = messages
        self.cache = TTLCache(cache_ttl, clock)
        self._http_client = http_client

    async def aclose(self):
        if self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    def clear_cache(self):
        """Drop all cached search and get results."""
        self.cache.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(self, query: str = "") -> SearchResponse:
        key = ("search", query)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Search results for '{query}' served from cache")
            return cached
        payload = await self.executor.execute("search", {"query": query})
        result = SearchResponse.model_validate(payload)
        self.cache.set(key, result)
        return result

    async def list_skills(
        self,
        limit: int = 10,
        offset: int = 0,
        author: Optional[str] = None,
        filter_tags: Optional[List[str]] = None,
        filter_name: Optional[str] = None
    ) -> ListResponse:
        payload = await self.executor.execute("list", {
            "limit": limit,
            "offset": offset,
            "author": author,
            "filterTags": filter_tags or None,
            "filterName": filter_name,
        })
        return ListResponse.model_validate(payload)

    async def get_skill(self, name: str, version: Optional[str] = None) -> GetSkillResponse:
        """
        Get the latest (or an exact) version of a skill.

        Not-found comes back as a response with status 404, never as an exception.
        """
        key = ("get", name, version)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        payload = await self.executor.execute("get", {"name": name, "version": version})
        result = GetSkillResponse.model_validate(payload)
        if result.found:
            self.cache.set(key, result)
        return result

    async def get_skill_versions(self, name: str) -> GetVersionsResponse:
        payload = await self.executor.execute("versions", {"name": name})
        return GetVersionsResponse.model_validate(payload)

    async def get_download_stats(
        self,
        name: Optional[str] = None,
        scope: Optional[str] = None,
        time_range: str = "all",
        version: Optional[str] = None
    ) -> Union[DownloadStats, StatsError]:
        payload = await self.executor.execute("stats", {
            "name": name,
            "scope": scope,
            "version": version,
            "timeRange": time_range,
        })
        return parse_stats_payload(payload)

    async def info(self) -> InfoResponse:
        payload = await self.executor.execute("info", {})
        return InfoResponse.model_validate(payload)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def register_skill(self, request: RegisterSkillRequest) -> Acknowledgment:
        """
        Register a skill version (single attempt).

        Raises:
            ValidationError: Registry rejected the metadata
            AuthorizationError: Sender does not own the skill name
            NetworkError: Message could not be delivered
        """
        data = await self.messages.send("Register-Skill", request.to_wire())
        self.cache.clear()
        logger.info(f"Registered {request.name}@{request.version}")
        return Acknowledgment.model_validate(data)

    async def record_download(
        self,
        name: str,
        version: Optional[str] = None,
        timestamp: Optional[int] = None
    ) -> Acknowledgment:
        """Record one download (single attempt)."""
        data = await self.messages.send("Record-Download", {
            "name": name,
            "version": version,
            "requester": self.messages.sender,
            "timestamp": timestamp,
        })
        return Acknowledgment.model_validate(data)


def create_registry_client(
    config: Optional[Config] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> RegistryClient:
    """
    Wire a registry client from configuration.

    Args:
        config: Configuration (global config if omitted)
        http_client: Shared HTTP client (a new one is created and owned if omitted)

    Returns:
        RegistryClient

    Raises:
        ConfigurationError: If the registry process id is not configured
    """
    config = config or get_config()
    process_id = config.require_process_id()
    owned = http_client is None
    client = http_client or httpx.AsyncClient(follow_redirects=True)

    fast = HyperbeamTransport(
        client,
        node_url=config.hyperbeam_node,
        process_id=process_id,
        script_id=config.hyperbeam_script_id,
        timeout=config.attempt_timeout,
    )
    messages = MessageTransport(
        client,
        cu_url=config.cu_url,
        process_id=process_id,
        sender=config.requester_id,
        timeout=config.fallback_timeout,
    )
    executor = DualPathExecutor(
        fast,
        messages,
        FailoverConfig(
            max_attempts=config.fast_path_attempts,
            backoff_delays=config.backoff_delays,
            attempt_timeout=config.attempt_timeout,
            fallback_timeout=config.fallback_timeout,
        ),
    )
    return RegistryClient(
        executor,
        messages,
        cache_ttl=config.cache_ttl,
        http_client=client if owned else None,
    )
