# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skill Bundler

Single responsibility: Pack a skill directory into a tar.gz bundle, unpack
bundles safely and read the SKILL.md manifest
"""

import io
import logging
import tarfile
from pathlib import Path, PurePosixPath
from typing import Any, Dict

import yaml

from skills_registry.core.errors import FileSystemError, ParseError, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "SKILL.md"
EXCLUDED_NAMES = {".git", "node_modules", "__pycache__", ".DS_Store", ".env"}


def read_skill_manifest(directory: Path) -> Dict[str, Any]:
    """
    Read the YAML frontmatter of SKILL.md.

    Args:
        directory: Skill directory

    Returns:
        Frontmatter mapping (must contain name)

    Raises:
        ValidationError: If SKILL.md or its frontmatter is missing
        ParseError: If the frontmatter is not valid YAML
    """
    manifest_path = Path(directory) / MANIFEST_FILE
    if not manifest_path.is_file():
        raise ValidationError(
            f"{MANIFEST_FILE} not found in {directory}",
            field=MANIFEST_FILE,
            expected="SKILL.md with YAML frontmatter"
        )

    text = manifest_path.read_text(encoding="utf-8")
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        raise ValidationError(f"{MANIFEST_FILE} has no frontmatter", field="frontmatter")
    try:
        end = next(i for i, line in enumerate(lines[1:], start=1) if line.strip() == "---")
    except StopIteration:
        raise ValidationError(f"{MANIFEST_FILE} frontmatter is not closed", field="frontmatter")

    block = "\n".join(lines[1:end])
    try:
        frontmatter = yaml.safe_load(block) or {}
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML frontmatter in {manifest_path}: {e}", content=block)

    if not isinstance(frontmatter, dict) or not frontmatter.get("name"):
        raise ValidationError(f"{MANIFEST_FILE} frontmatter must define name", field="name")
    return frontmatter


class Bundler:
    """Packs and unpacks skill bundles"""

    def pack(self, directory: Path) -> bytes:
        raise NotImplementedError

    def unpack(self, data: bytes, destination: Path) -> Path:
        raise NotImplementedError


class TarBundler(Bundler):
    """tar.gz bundles with files stored relative to the skill directory"""

    def pack(self, directory: Path) -> bytes:
        """
        Bundle a skill directory.

        Raises:
            ValidationError: If the directory has no valid SKILL.md
        """
        directory = Path(directory)
        read_skill_manifest(directory)

        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            for path in sorted(directory.rglob("*")):
                relative = path.relative_to(directory)
                if any(part in EXCLUDED_NAMES for part in relative.parts):
                    continue
                if path.is_file():
                    tar.add(path, arcname=relative.as_posix())
        data = buffer.getvalue()
        logger.info(f"Bundled {directory.name}: {len(data)} bytes")
        return data

    def unpack(self, data: bytes, destination: Path) -> Path:
        """
        Extract a bundle into destination.

        Raises:
            ValidationError: If the bundle is corrupt or holds unsafe paths
            FileSystemError: If destination is not writable
        """
        destination = Path(destination)
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create {destination}: {e}", path=str(destination))

        try:
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
                for member in tar.getmembers():
                    member_path = PurePosixPath(member.name)
                    if member_path.is_absolute() or ".." in member_path.parts:
                        raise ValidationError(
                            f"Bundle contains unsafe path: {member.name}",
                            field="bundle",
                            value=member.name
                        )
                    if member.issym() or member.islnk():
                        raise ValidationError(
                            f"Bundle contains link: {member.name}",
                            field="bundle",
                            value=member.name
                        )
                tar.extractall(destination, filter="data")
        except tarfile.TarError as e:
            raise ValidationError(f"Corrupt skill bundle: {e}", field="bundle")
        except OSError as e:
            raise FileSystemError(f"Failed to extract bundle to {destination}: {e}", path=str(destination))
        return destination
