# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skill Publisher

Single responsibility: Bundle, sign, upload and register a skill directory
"""

import logging
from pathlib import Path
from typing import Optional

from skills_registry.client.registry_client import RegistryClient
from skills_registry.collaborators.bundler import Bundler, TarBundler, read_skill_manifest
from skills_registry.collaborators.signer import Signer
from skills_registry.collaborators.storage import StorageUploader
from skills_registry.core.errors import ValidationError
from skills_registry.models.registry_models import Acknowledgment, RegisterSkillRequest

logger = logging.getLogger(__name__)


class SkillPublisher:
    """Publishes a local skill directory"""

    def __init__(
        self,
        client: RegistryClient,
        storage: StorageUploader,
        signer: Signer,
        bundler: Optional[Bundler] = None
    ):
        self.client = client
        self.storage = storage
        self.signer = signer
        self.bundler = bundler or TarBundler()

    def build_request(self, directory: Path, content_id: str) -> RegisterSkillRequest:
        """
        Build Register-Skill parameters from SKILL.md frontmatter.

        Raises:
            ValidationError: If version, description or author is missing
        """
        manifest = read_skill_manifest(directory)
        for field in ("version", "description", "author"):
            if not manifest.get(field):
                raise ValidationError(f"SKILL.md frontmatter must define {field}", field=field)
        return RegisterSkillRequest(
            name=manifest["name"],
            version=str(manifest["version"]),
            description=manifest["description"],
            author=manifest["author"],
            content_id=content_id,
            tags=manifest.get("tags") or [],
            dependencies=manifest.get("dependencies") or [],
            license=manifest.get("license"),
        )

    async def publish(self, directory: Path) -> Acknowledgment:
        """
        Publish a skill directory.

        Returns:
            Registry acknowledgment

        Raises:
            ValidationError: Invalid skill directory or rejected metadata
            NetworkError: Upload or registration failed
        """
        directory = Path(directory)
        # Validate metadata before spending an upload
        self.build_request(directory, content_id="pending")

        bundle = self.bundler.pack(directory)
        signed = self.signer.sign(bundle)
        content_id = await self.storage.upload(signed)
        request = self.build_request(directory, content_id)

        ack = await self.client.register_skill(request)
        logger.info(f"Published {request.name}@{request.version} as {content_id}")
        return ack
