# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Lockfile Manager

Single responsibility: Read, validate, merge and atomically write
skills-lock.json
"""

import json
import logging
import os
from datetime import datetime, UTC
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from skills_registry.core.errors import FileSystemError, ParseError, ValidationError
from skills_registry.models.install_models import LockFile, LockFileEntry

logger = logging.getLogger(__name__)

DEFAULT_LOCKFILE_NAME = "skills-lock.json"


def resolve_lockfile_path(install_location: Path, lockfile_name: str = DEFAULT_LOCKFILE_NAME) -> Path:
    """Lockfile sits next to the install directory (e.g. .claude/skills-lock.json)."""
    return Path(install_location).expanduser().resolve().parent / lockfile_name


class LockfileManager:
    """Owns one lockfile on disk"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> LockFile:
        """
        Load and validate the lockfile.

        A missing file yields an empty lockfile.

        Raises:
            ParseError: If the file is not JSON
            ValidationError: If the content does not match the schema
            FileSystemError: If the file cannot be read
        """
        if not self.path.exists():
            return LockFile()

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise FileSystemError(f"Cannot read lockfile: {e}", path=str(self.path))

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Lockfile is not valid JSON: {e}", content=text)

        return self._validate(data)

    def _validate(self, data) -> LockFile:
        try:
            return LockFile.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            raise ValidationError(
                f"Invalid lockfile {self.path}: {first.get('msg')}",
                field=field or "lockfile",
                expected="lockfileVersion 1 with unique {name, version, contentId} entries"
            )

    def write(self, lockfile: LockFile) -> Path:
        """
        Validate and atomically replace the lockfile.

        Raises:
            ValidationError: If the lockfile does not match the schema
            FileSystemError: If the file cannot be written
        """
        payload = lockfile.model_dump(mode="json", by_alias=True, exclude_none=True)
        # Round-trip through the schema so a hand-built model cannot bypass validation
        self._validate(payload)

        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise FileSystemError(f"Cannot write lockfile: {e}", path=str(self.path))

        logger.info(f"Wrote lockfile {self.path} ({len(lockfile.skills)} skills)")
        return self.path

    def merge(
        self,
        entries: Iterable[LockFileEntry],
        install_location: Optional[str] = None
    ) -> LockFile:
        """
        Merge entries into the current lockfile by name (new entries win).

        Returns:
            Merged lockfile (not yet written)
        """
        current = self.read()
        by_name = {entry.name: entry for entry in current.skills}
        for entry in entries:
            by_name[entry.name] = entry
        return LockFile(
            generated_at=datetime.now(UTC),
            install_location=install_location or current.install_location,
            skills=sorted(by_name.values(), key=lambda e: e.name),
        )
