# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Store

Single responsibility: Hold skill versions and download events and serve
the registry's read and write handlers

Every message passes through one mailbox lock, so handler bodies run one at
a time and never need their own locking. State only grows: there is no
update-in-place or delete path.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from skills_registry.core.errors import AuthorizationError, ValidationError
from skills_registry.models.registry_models import (
    CONTENT_ID_PATTERN,
    MAX_DESCRIPTION_LENGTH,
    SEMVER_PATTERN,
    Acknowledgment,
    DownloadEvent,
    DownloadStats,
    GetSkillResponse,
    GetVersionsResponse,
    InfoResponse,
    ListResponse,
    Pagination,
    RecordDownloadRequest,
    RegisterSkillRequest,
    SearchResponse,
    SkillVersion,
    StatsError,
    semver_key,
)

from .info import build_info
from .stats import build_stats, count_downloads, parse_time_range

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 100

# Fast-path function name -> handler action (reads only)
READ_FUNCTIONS = {
    "info": "Info",
    "searchSkills": "Search-Skills",
    "listSkills": "List-Skills",
    "getSkill": "Get-Skill",
    "getSkillVersions": "Get-Skill-Versions",
    "getDownloadStats": "Get-Download-Stats",
}


def _to_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_list(value: Any) -> List[Any]:
    """Accept a list, a JSON array string or a comma-separated string."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                raise ValidationError("Malformed JSON array", value=value, expected="JSON array")
            if isinstance(parsed, list):
                return parsed
        return [part.strip() for part in text.split(",") if part.strip()]
    raise ValidationError("Expected a list", value=value, expected="list")


def _string_param(params: Dict[str, Any], key: str) -> Optional[str]:
    """Optional string parameter; any other JSON type is rejected."""
    value = params.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValidationError(
        f"{key} must be a string, got {type(value).__name__}",
        field=key,
        value=value,
        expected="string"
    )


def _validate_message(model, action: str, params: Dict[str, Any]):
    try:
        return model.model_validate(params)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ValidationError(f"Invalid {action} message: {first.get('msg')}", field=field)


def _matches(text: Optional[str], term: str) -> bool:
    return bool(text) and term in text.lower()


class RegistryStore:
    """Authoritative single-writer skill registry state"""

    def __init__(self, on_write: Optional[Callable[["RegistryStore"], None]] = None):
        """
        Initialize registry store.

        Args:
            on_write: Called inside the mailbox after every successful write
        """
        self._versions: Dict[str, Dict[str, SkillVersion]] = {}
        self._latest: Dict[str, str] = {}
        self._events: List[DownloadEvent] = []
        self._mailbox = asyncio.Lock()
        self._on_write = on_write

        self._handlers = {
            "Info": self._handle_info,
            "Register-Skill": self._handle_register,
            "Record-Download": self._handle_record_download,
            "Search-Skills": self._handle_search,
            "List-Skills": self._handle_list,
            "Get-Skill": self._handle_get,
            "Get-Skill-Versions": self._handle_get_versions,
            "Get-Download-Stats": self._handle_download_stats,
        }
        self._writes = {"Register-Skill", "Record-Download"}

    # ------------------------------------------------------------------
    # Mailbox
    # ------------------------------------------------------------------

    @property
    def actions(self) -> List[str]:
        return list(self._handlers)

    async def handle(
        self,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        sender: str = "anonymous",
        timestamp: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Process one message to completion.

        Args:
            action: Handler action name (e.g. "Search-Skills")
            params: Message parameters
            sender: Address of the message sender
            timestamp: Message timestamp in seconds (defaults to now)

        Returns:
            Wire payload of the handler

        Raises:
            ValidationError: Unknown action or invalid parameters
            AuthorizationError: Sender may not add versions to the skill
        """
        handler = self._handlers.get(action)
        if handler is None:
            raise ValidationError(
                f"Unknown action: {action}",
                field="Action",
                value=action,
                expected=", ".join(self._handlers)
            )
        if timestamp is None:
            timestamp = int(time.time())

        async with self._mailbox:
            result = handler(params or {}, sender, timestamp)
            if action in self._writes and self._on_write is not None:
                self._on_write(self)
            return result

    async def query(self, function: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Serve a stateless read by fast-path function name.

        Raises:
            ValidationError: If the function is not a read handler
        """
        action = READ_FUNCTIONS.get(function)
        if action is None:
            raise ValidationError(
                f"Unknown read function: {function}",
                field="function",
                value=function,
                expected=", ".join(READ_FUNCTIONS)
            )
        return await self.handle(action, params)

    # ------------------------------------------------------------------
    # Message adapters
    # ------------------------------------------------------------------

    def _handle_info(self, params, sender, timestamp):
        return self.info().to_wire()

    def _handle_register(self, params, sender, timestamp):
        params = dict(params)
        if "tags" in params:
            params["tags"] = _to_list(params["tags"])
        if "dependencies" in params:
            params["dependencies"] = _to_list(params["dependencies"])
        self._validate_registration(params)
        request = _validate_message(RegisterSkillRequest, "Register-Skill", params)
        return self.register_skill(request, sender, timestamp).to_wire()

    def _handle_record_download(self, params, sender, timestamp):
        if not params.get("name"):
            raise ValidationError("Name is required", field="name")
        request = _validate_message(RecordDownloadRequest, "Record-Download", params)
        return self.record_download(
            name=request.name,
            version=request.version,
            requester=request.requester or sender,
            timestamp=request.timestamp if request.timestamp is not None else timestamp,
        ).to_wire()

    def _handle_search(self, params, sender, timestamp):
        return self.search(_string_param(params, "query") or "").to_wire()

    def _handle_list(self, params, sender, timestamp):
        return self.list_skills(
            limit=params.get("limit"),
            offset=params.get("offset"),
            author=_string_param(params, "author"),
            filter_tags=_to_list(params.get("filterTags")),
            filter_name=_string_param(params, "filterName"),
        ).to_wire()

    def _handle_get(self, params, sender, timestamp):
        return self.get_skill(_string_param(params, "name"), _string_param(params, "version")).to_wire()

    def _handle_get_versions(self, params, sender, timestamp):
        return self.get_skill_versions(_string_param(params, "name")).to_wire()

    def _handle_download_stats(self, params, sender, timestamp):
        now = params.get("now")
        return self.get_download_stats(
            scope=_string_param(params, "scope"),
            name=_string_param(params, "name"),
            version=_string_param(params, "version"),
            time_range=_string_param(params, "timeRange"),
            now=_to_int(now, timestamp) if now is not None else timestamp,
        ).to_wire()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _validate_registration(self, params: Dict[str, Any]):
        for field in ("name", "version", "description", "author", "contentId"):
            value = params.get(field) or params.get(_snake(field))
            if not value:
                raise ValidationError(f"{field[0].upper()}{field[1:]} is required", field=field)

        version = params.get("version")
        if not SEMVER_PATTERN.match(str(version)):
            raise ValidationError(
                "Invalid version format. Expected semantic version (e.g., 1.0.0)",
                field="version",
                value=version,
                expected="MAJOR.MINOR.PATCH"
            )

        content_id = params.get("contentId") or params.get("content_id")
        if not CONTENT_ID_PATTERN.match(str(content_id)):
            raise ValidationError(
                "Invalid contentId format. Expected 43-character content identifier",
                field="contentId",
                value=content_id,
                expected="43 characters of [A-Za-z0-9_-]"
            )

        if len(str(params.get("description"))) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description exceeds maximum length of {MAX_DESCRIPTION_LENGTH} characters",
                field="description"
            )

    def register_skill(
        self,
        request: RegisterSkillRequest,
        sender: str = "anonymous",
        timestamp: int = 0
    ) -> Acknowledgment:
        """
        Append a new version of a skill.

        Args:
            request: Validated registration parameters
            sender: Owner address for new names
            timestamp: Message timestamp in seconds

        Returns:
            Acknowledgment

        Raises:
            ValidationError: If name+version is already registered
            AuthorizationError: If the name belongs to another owner
        """
        history = self._versions.get(request.name)

        if history:
            if request.version in history:
                raise ValidationError(
                    f"Skill '{request.name}' version {request.version} already exists",
                    field="version",
                    value=request.version
                )
            first = min(history.values(), key=lambda v: v.published_at)
            if first.owner_address and sender != first.owner_address:
                raise AuthorizationError(
                    "Unauthorized: Only the skill owner can publish new versions",
                    address=sender
                )
            owner = first.owner_address
            published_at = first.published_at
        else:
            owner = sender
            published_at = timestamp

        skill = SkillVersion(
            name=request.name,
            version=request.version,
            description=request.description,
            author=request.author,
            owner_address=owner,
            tags=request.tags,
            dependencies=request.dependencies,
            content_id=request.content_id,
            license=request.license,
            published_at=published_at,
            updated_at=timestamp,
        )
        self._versions.setdefault(request.name, {})[request.version] = skill

        current = self._latest.get(request.name)
        if current is None or semver_key(request.version) > semver_key(current):
            self._latest[request.name] = request.version

        logger.info(f"Registered skill {request.name}@{request.version} (owner={owner})")
        return Acknowledgment(action="Skill-Registered", name=request.name, version=request.version)

    def record_download(
        self,
        name: Optional[str],
        version: Optional[str] = None,
        requester: str = "anonymous",
        timestamp: int = 0
    ) -> Acknowledgment:
        """
        Append a download event.

        No existence check is made; an unregistered name is recorded as-is.

        Raises:
            ValidationError: If name is missing
        """
        if not name:
            raise ValidationError("Name is required", field="name")
        resolved_version = version or self._latest.get(name) or "unknown"
        self._events.append(DownloadEvent(
            skill_name=name,
            version=resolved_version,
            requester_id=requester,
            timestamp=timestamp,
        ))
        logger.debug(f"Recorded download of {name}@{resolved_version} by {requester}")
        return Acknowledgment(action="Download-Recorded", name=name, version=resolved_version)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _latest_versions(self) -> List[SkillVersion]:
        return [self._versions[name][version] for name, version in self._latest.items()]

    def search(self, query: str = "") -> SearchResponse:
        """
        Case-insensitive search over the latest version of every skill.

        Exact name matches rank first, the rest sort by name.
        """
        latest = sorted(self._latest_versions(), key=lambda s: s.name.lower())
        if not query:
            return SearchResponse(results=latest, total=len(latest), query="")

        term = query.lower()
        results = [
            skill for skill in latest
            if _matches(skill.name, term)
            or _matches(skill.description, term)
            or _matches(skill.author, term)
            or any(_matches(tag, term) for tag in skill.tags)
        ]
        results.sort(key=lambda s: (s.name.lower() != term, s.name.lower()))
        return SearchResponse(results=results, total=len(results), query=query)

    def list_skills(
        self,
        limit: Any = None,
        offset: Any = None,
        author: Optional[str] = None,
        filter_tags: Optional[List[str]] = None,
        filter_name: Optional[str] = None
    ) -> ListResponse:
        """
        Paginated listing of latest versions.

        Args:
            limit: Page size, clamped to 1..100 (default 10)
            offset: Start index, clamped to >= 0
            author: Case-insensitive exact author match
            filter_tags: Every tag must be present (case-insensitive)
            filter_name: Case-insensitive name substring

        Returns:
            Skills for the page plus pagination metadata
        """
        limit = min(max(_to_int(limit, DEFAULT_LIST_LIMIT), 1), MAX_LIST_LIMIT)
        offset = max(_to_int(offset, 0), 0)

        skills = sorted(self._latest_versions(), key=lambda s: s.name.lower())
        if author:
            skills = [s for s in skills if s.author.lower() == author.lower()]
        if filter_name:
            skills = [s for s in skills if filter_name.lower() in s.name.lower()]
        if filter_tags:
            wanted = {str(tag).lower() for tag in filter_tags}
            skills = [s for s in skills if wanted <= {t.lower() for t in s.tags}]

        total = len(skills)
        page = skills[offset:offset + limit]
        return ListResponse(
            skills=page,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                returned=len(page),
                has_next_page=offset + len(page) < total,
                has_prev_page=offset > 0,
            ),
        )

    def get_skill(self, name: Optional[str], version: Optional[str] = None) -> GetSkillResponse:
        """Latest (or exact) version of a skill as a status-bearing result."""
        if not name:
            return GetSkillResponse(status=400, error="Name parameter required")
        history = self._versions.get(name)
        if not history:
            return GetSkillResponse(status=404, error=f"Skill not found: {name}")
        if version:
            skill = history.get(version)
            if skill is None:
                return GetSkillResponse(status=404, error=f"Version not found: {name}@{version}")
            return GetSkillResponse(skill=skill)
        return GetSkillResponse(skill=history[self._latest[name]])

    def get_skill_versions(self, name: Optional[str]) -> GetVersionsResponse:
        """Full version history, newest first."""
        if not name:
            return GetVersionsResponse(status=400, error="Name parameter required")
        history = self._versions.get(name)
        if not history:
            return GetVersionsResponse(status=404, error=f"Skill not found: {name}")
        versions = sorted(history.values(), key=lambda v: semver_key(v.version), reverse=True)
        return GetVersionsResponse(
            versions=versions,
            latest=self._latest[name],
            total=len(versions),
        )

    def get_download_stats(
        self,
        scope: Optional[str] = None,
        name: Optional[str] = None,
        version: Optional[str] = None,
        time_range: Optional[str] = None,
        now: Optional[int] = None
    ) -> Union[DownloadStats, StatsError]:
        """
        Windowed download statistics.

        Args:
            scope: "all" for aggregate statistics
            name: Skill name for per-skill statistics
            version: Restrict per-skill counts to one version
            time_range: "7", "30" or "all"
            now: Reference time in seconds

        Returns:
            Stats variant for the range, or a StatsError result
        """
        try:
            window = parse_time_range(time_range)
        except ValidationError as e:
            return StatsError(error=e.message, status=400)
        if now is None:
            now = int(time.time())

        if scope == "all":
            counts = count_downloads(self._events, now)
            return build_stats(counts, window, total_skills=len(self._versions))

        if not name:
            return StatsError(error="Name parameter required", status=400)
        if name not in self._versions:
            return StatsError(error="Skill not found", status=404)

        events = [e for e in self._events if e.skill_name == name]
        if version:
            events = [e for e in events if e.version == version]
        counts = count_downloads(events, now)
        return build_stats(counts, window, skill_name=name, version=version or self._latest[name])

    def info(self) -> InfoResponse:
        return build_info()

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Serializable copy of the whole state."""
        return {
            "skills": {
                name: [v.to_wire() for v in history.values()]
                for name, history in self._versions.items()
            },
            "events": [e.to_wire() for e in self._events],
        }

    @classmethod
    def from_snapshot(
        cls,
        data: Dict[str, Any],
        on_write: Optional[Callable[["RegistryStore"], None]] = None
    ) -> "RegistryStore":
        """Rebuild a store from snapshot() output."""
        store = cls(on_write=on_write)
        for name, versions in data.get("skills", {}).items():
            for raw in versions:
                skill = SkillVersion.model_validate(raw)
                store._versions.setdefault(name, {})[skill.version] = skill
                current = store._latest.get(name)
                if current is None or semver_key(skill.version) > semver_key(current):
                    store._latest[name] = skill.version
        store._events = [DownloadEvent.model_validate(e) for e in data.get("events", [])]
        logger.info(
            f"Restored registry snapshot: {len(store._versions)} skills, "
            f"{len(store._events)} download events"
        )
        return store


def _snake(field: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in field)
