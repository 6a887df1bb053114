# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Data Models

Defines data structures for the skills registry including skill versions,
download events, query responses and the windowed download statistics.
Wire format uses camelCase field names.
"""

import re
from enum import Enum
from typing import List, Dict, Optional, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
CONTENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{43}$")
MAX_DESCRIPTION_LENGTH = 1024
LATEST = "latest"


def semver_key(version: str) -> tuple:
    """
    Sort key for MAJOR.MINOR.PATCH strings.

    Non-numeric parts sort below every numeric version.
    """
    parts = []
    for piece in version.split("."):
        parts.append(int(piece) if piece.isdigit() else -1)
    return tuple(parts)


class WireModel(BaseModel):
    """Base model with camelCase aliases on the wire"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TimeRange(str, Enum):
    """Download statistics window"""
    SEVEN_DAYS = "7"
    THIRTY_DAYS = "30"
    ALL = "all"


class SkillDependency(WireModel):
    """
    Dependency on another skill.

    Constraint is an exact version or "latest".
    """
    name: str
    version_constraint: str = LATEST

    @field_validator("version_constraint", mode="before")
    @classmethod
    def _normalize_constraint(cls, value):
        if value in (None, "", "*"):
            return LATEST
        return value

    @property
    def is_latest(self) -> bool:
        return self.version_constraint == LATEST


class SkillVersion(WireModel):
    """One published version of a skill (immutable once registered)"""
    name: str
    version: str
    description: str = ""
    author: str = ""
    owner_address: str = ""
    tags: List[str] = Field(default_factory=list)
    dependencies: List[SkillDependency] = Field(default_factory=list)
    content_id: str
    license: Optional[str] = None
    published_at: int = 0
    updated_at: int = 0

    model_config = ConfigDict(frozen=True)

    @field_validator("tags", mode="before")
    @classmethod
    def _dedupe_tags(cls, value):
        if value is None:
            return []
        seen = set()
        tags = []
        for tag in value:
            key = str(tag).lower()
            if key not in seen:
                seen.add(key)
                tags.append(str(tag))
        return tags

    @field_validator("dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, value):
        # Bare names mean "latest"
        if value is None:
            return []
        return [{"name": dep} if isinstance(dep, str) else dep for dep in value]


class DownloadEvent(WireModel):
    """Append-only download record"""
    skill_name: str
    version: str
    requester_id: str = "anonymous"
    timestamp: int


class Acknowledgment(WireModel):
    """Write handler acknowledgment"""
    action: str
    name: str
    version: str
    success: bool = True


# =============================================================================
# Query responses
# =============================================================================

class SearchResponse(WireModel):
    results: List[SkillVersion] = Field(default_factory=list)
    total: int = 0
    query: str = ""


class Pagination(WireModel):
    total: int
    limit: int
    offset: int
    returned: int
    has_next_page: bool
    has_prev_page: bool


class ListResponse(WireModel):
    skills: List[SkillVersion] = Field(default_factory=list)
    pagination: Pagination


class GetSkillResponse(WireModel):
    """Get result; not-found is a result, not an exception"""
    skill: Optional[SkillVersion] = None
    status: int = 200
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status == 200 and self.skill is not None


class GetVersionsResponse(WireModel):
    versions: List[SkillVersion] = Field(default_factory=list)
    latest: Optional[str] = None
    total: int = 0
    status: int = 200
    error: Optional[str] = None


# =============================================================================
# Download statistics variants
# =============================================================================

class StatsScope(WireModel):
    """Aggregate scope carries totalSkills, per-skill scope carries skillName/version"""
    total_skills: Optional[int] = None
    skill_name: Optional[str] = None
    version: Optional[str] = None
    status: int = 200


class Stats7Day(StatsScope):
    time_range: Literal["7"] = "7"
    downloads_7_days: int = Field(0, alias="downloads7Days")


class Stats30Day(StatsScope):
    time_range: Literal["30"] = "30"
    downloads_30_days: int = Field(0, alias="downloads30Days")


class StatsAll(StatsScope):
    time_range: Literal["all"] = "all"
    downloads_total: int = 0
    downloads_7_days: int = Field(0, alias="downloads7Days")
    downloads_30_days: int = Field(0, alias="downloads30Days")


DownloadStats = Union[Stats7Day, Stats30Day, StatsAll]


class StatsError(WireModel):
    error: str
    status: int


STATS_VARIANTS = {
    TimeRange.SEVEN_DAYS: Stats7Day,
    TimeRange.THIRTY_DAYS: Stats30Day,
    TimeRange.ALL: StatsAll,
}


def parse_stats_payload(payload: Dict[str, Any]) -> Union[DownloadStats, StatsError]:
    """Rebuild the tagged stats variant from a wire payload."""
    if payload.get("error"):
        return StatsError(error=payload["error"], status=payload.get("status", 400))
    variant = STATS_VARIANTS[TimeRange(str(payload.get("timeRange", "all")))]
    return variant.model_validate(payload)


# =============================================================================
# Info
# =============================================================================

class MessageSchema(WireModel):
    required: List[str] = Field(default_factory=list)
    optional: List[str] = Field(default_factory=list)


class ProcessInfo(WireModel):
    name: str
    version: str
    protocol_version: str
    capabilities: List[str] = Field(default_factory=list)
    message_schemas: Dict[str, MessageSchema] = Field(default_factory=dict)


class InfoResponse(WireModel):
    process: ProcessInfo
    handlers: List[str] = Field(default_factory=list)
    documentation: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Write requests
# =============================================================================

class RegisterSkillRequest(WireModel):
    """Register-Skill message parameters"""
    name: str
    version: str
    description: str
    author: str
    content_id: str
    tags: List[str] = Field(default_factory=list)
    dependencies: List[SkillDependency] = Field(default_factory=list)
    license: Optional[str] = None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, value):
        if value is None:
            return []
        return [{"name": dep} if isinstance(dep, str) else dep for dep in value]


class RecordDownloadRequest(WireModel):
    """Record-Download message parameters"""
    name: str
    version: Optional[str] = None
    requester: Optional[str] = None
    timestamp: Optional[int] = None
