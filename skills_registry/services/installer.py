# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skill Installer

Single responsibility: Turn a requested skill into installed files and a
lockfile

Resolve -> plan -> fetch/verify/write each entry -> write the lockfile once.
A cancelled run keeps what it already wrote but never writes the lockfile.
"""

import asyncio
import logging
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import List, Optional

from skills_registry.client.registry_client import RegistryClient
from skills_registry.collaborators.bundler import MANIFEST_FILE, Bundler, TarBundler, read_skill_manifest
from skills_registry.collaborators.storage import StorageUploader
from skills_registry.core.config import Config, get_config
from skills_registry.core.errors import FileSystemError, SkillsError, UserCancelledError, ValidationError
from skills_registry.core.logging import log_event
from skills_registry.models.install_models import InstallOptions, InstallResult, LockFile, LockFileEntry

from .lockfile import LockfileManager, resolve_lockfile_path
from .resolver import DependencyNode, DependencyResolver, flatten_plan
from .tree import render_tree

logger = logging.getLogger(__name__)


def _entry(node: DependencyNode) -> LockFileEntry:
    return LockFileEntry(name=node.name, version=node.version, content_id=node.content_id)


class SkillInstaller:
    """Installs skills and their dependencies into a skills directory"""

    def __init__(
        self,
        client: RegistryClient,
        storage: StorageUploader,
        bundler: Optional[Bundler] = None,
        config: Optional[Config] = None
    ):
        """
        Initialize installer.

        Args:
            client: Registry client
            storage: Content-addressed storage to download bundles from
            bundler: Bundle unpacker (tar.gz by default)
            config: Configuration (global config if omitted)
        """
        self.client = client
        self.storage = storage
        self.bundler = bundler or TarBundler()
        self.config = config or get_config()

    def install_location(self, options: InstallOptions) -> Path:
        if options.install_dir:
            return Path(options.install_dir).expanduser()
        return self.config.install_dir(options.global_install)

    @staticmethod
    def is_installed(location: Path, lockfile: LockFile, name: str, version: str, content_id: str) -> bool:
        """True when the lockfile pins exactly this artifact and its files are present."""
        entry = lockfile.get(name)
        if entry is None or entry.version != version or entry.content_id != content_id:
            return False
        return (location / name / MANIFEST_FILE).is_file()

    def _prepare_location(self, location: Path):
        try:
            location.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create install directory {location}: {e}", path=str(location))
        if not os.access(location, os.W_OK):
            raise FileSystemError(f"Install directory is not writable: {location}", path=str(location))

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event], installed: List[LockFileEntry]):
        if cancel_event is not None and cancel_event.is_set():
            names = [e.name for e in installed]
            log_event(logger, "install_cancelled", level="WARNING", installed=names)
            raise UserCancelledError(
                "Installation cancelled; lockfile left unchanged",
                details={"installed": names, "lockfile_written": False}
            )

    def _materialize(self, node: DependencyNode, data: bytes, location: Path) -> Path:
        """
        Unpack a bundle into staging, verify it, then move it into place.

        Raises:
            ValidationError: If the bundle is not the expected skill
            FileSystemError: If the target cannot be written
        """
        try:
            staging = Path(tempfile.mkdtemp(prefix=f".{node.name}-", dir=location))
        except OSError as e:
            raise FileSystemError(f"Cannot stage {node.name}: {e}", path=str(location))

        try:
            self.bundler.unpack(data, staging)

            root = staging
            if not (root / MANIFEST_FILE).is_file():
                # Bundles may wrap the skill in one top-level directory
                entries = [p for p in staging.iterdir()]
                if len(entries) == 1 and entries[0].is_dir():
                    root = entries[0]

            manifest = read_skill_manifest(root)
            if manifest.get("name") != node.name:
                raise ValidationError(
                    f"Bundle {node.content_id} contains skill '{manifest.get('name')}', "
                    f"expected '{node.name}'",
                    field="name",
                    value=manifest.get("name"),
                    expected=node.name
                )

            target = location / node.name
            try:
                if target.exists():
                    shutil.rmtree(target)
                os.replace(root, target)
            except OSError as e:
                raise FileSystemError(f"Cannot write {target}: {e}", path=str(target))
            return target
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

    async def install(
        self,
        spec: str,
        options: Optional[InstallOptions] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> InstallResult:
        """
        Install a skill with its dependencies.

        Args:
            spec: "name[@version]"
            options: Install options
            cancel_event: Set to stop before the next network call

        Returns:
            Install result

        Raises:
            ValidationError: Malformed name@version or unexpected bundle content
            ParseError: Existing lockfile is not valid JSON
            DependencyError: Cycle or unresolvable dependency
            NetworkError: Registry or storage unreachable
            FileSystemError: Target not writable
            UserCancelledError: cancel_event was set
        """
        options = options or InstallOptions()
        start = time.monotonic()
        location = self.install_location(options)
        self._prepare_location(location)

        installed: List[LockFileEntry] = []
        skipped: List[LockFileEntry] = []

        self._check_cancelled(cancel_event, installed)
        manager = LockfileManager(resolve_lockfile_path(location, self.config.lockfile_name))
        current = manager.read()
        resolver = DependencyResolver(
            self.client,
            is_installed=lambda name, version, content_id: self.is_installed(
                location, current, name, version, content_id
            ),
            max_depth=self.config.max_dependency_depth,
        )
        graph = await resolver.resolve(spec)
        plan = flatten_plan(graph)
        logger.info(f"Install plan for {spec}: {[f'{n.name}@{n.version}' for n in plan]}")

        for node in plan:
            entry = _entry(node)
            if node.is_installed and not options.force:
                logger.info(f"Skipping {node.name}@{node.version}: already installed")
                skipped.append(entry)
                continue

            self._check_cancelled(cancel_event, installed)
            data = await self.storage.download(node.content_id)
            self._materialize(node, data, location)
            installed.append(entry)
            log_event(logger, "skill_installed", skill=node.name, version=node.version, location=str(location))

            if options.record_downloads:
                try:
                    await self.client.record_download(node.name, node.version)
                except SkillsError as e:
                    logger.warning(f"Could not record download of {node.name}: {e.message}")

        plan_entries = [_entry(n) for n in plan]
        lockfile_path = manager.write(manager.merge(plan_entries, install_location=str(location)))

        return InstallResult(
            requested=spec,
            installed=installed,
            skipped=skipped,
            plan=plan_entries,
            install_location=str(location),
            lockfile_path=str(lockfile_path),
            tree=render_tree(graph) if options.verbose else None,
            elapsed=time.monotonic() - start,
        )
