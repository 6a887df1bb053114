# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Install Data Models

Lockfile schema, install options and install results.
"""

from datetime import datetime, UTC
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from skills_registry.models.registry_models import WireModel, SEMVER_PATTERN


LOCKFILE_VERSION = 1


class LockFileEntry(WireModel):
    """Pinned artifact for one resolved skill"""
    name: str = Field(min_length=1)
    version: str
    content_id: str = Field(min_length=1)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if not SEMVER_PATTERN.match(value):
            raise ValueError(f"version must be MAJOR.MINOR.PATCH, got '{value}'")
        return value


class LockFile(WireModel):
    """
    Durable record of installed artifacts.

    Exactly one entry per skill name.
    """
    lockfile_version: int = LOCKFILE_VERSION
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    install_location: str = ""
    skills: List[LockFileEntry] = Field(default_factory=list)

    @field_validator("lockfile_version")
    @classmethod
    def _check_lockfile_version(cls, value: int) -> int:
        if value != LOCKFILE_VERSION:
            raise ValueError(f"unsupported lockfileVersion {value}")
        return value

    @model_validator(mode="after")
    def _unique_names(self):
        seen = set()
        for entry in self.skills:
            if entry.name in seen:
                raise ValueError(f"duplicate lockfile entry for '{entry.name}'")
            seen.add(entry.name)
        return self

    def get(self, name: str) -> Optional[LockFileEntry]:
        for entry in self.skills:
            if entry.name == name:
                return entry
        return None


class InstallOptions(WireModel):
    """Options for a skill installation"""
    force: bool = False
    global_install: bool = False
    install_dir: Optional[str] = None
    verbose: bool = False
    record_downloads: bool = True


class InstallResult(WireModel):
    """Outcome of an install call"""
    requested: str
    installed: List[LockFileEntry] = Field(default_factory=list)
    skipped: List[LockFileEntry] = Field(default_factory=list)
    plan: List[LockFileEntry] = Field(default_factory=list)
    install_location: str
    lockfile_path: Optional[str] = None
    tree: Optional[str] = None
    elapsed: float = 0.0
