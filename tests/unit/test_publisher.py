# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for SkillPublisher
"""

import pytest

from conftest import OWNER, write_skill_dir
from skills_registry.collaborators.bundler import TarBundler
from skills_registry.collaborators.signer import Signer
from skills_registry.core.errors import ValidationError
from skills_registry.services.publisher import SkillPublisher


class PassthroughSigner(Signer):
    """Signer that records payloads and returns them unchanged"""

    def __init__(self):
        self.signed = []

    @property
    def address(self) -> str:
        return OWNER

    def sign(self, payload: bytes) -> bytes:
        self.signed.append(payload)
        return payload


@pytest.fixture
def publisher(registry_client, memory_storage):
    return SkillPublisher(registry_client, memory_storage, PassthroughSigner(), TarBundler())


class TestPublish:
    """Test publish"""

    @pytest.mark.asyncio
    async def test_publish_registers_uploaded_bundle(self, publisher, tmp_path, store, memory_storage):
        """Bundle is signed, uploaded and registered under its content id"""
        skill_dir = write_skill_dir(tmp_path, "pdf", "1.3.0", dependencies=["base"])

        ack = await publisher.publish(skill_dir)

        assert ack.success
        assert ack.version == "1.3.0"
        assert len(publisher.signer.signed) == 1
        skill = store.get_skill("pdf").skill
        assert skill.content_id in memory_storage.blobs
        assert [d.name for d in skill.dependencies] == ["base"]
        assert skill.tags == ["testing"]

    @pytest.mark.asyncio
    async def test_missing_metadata_uploads_nothing(self, publisher, tmp_path, memory_storage):
        """Frontmatter without author is rejected before upload"""
        skill_dir = tmp_path / "pdf"
        skill_dir.mkdir()
        (skill_dir / "SKILL.md").write_text("---\nname: pdf\nversion: 1.0.0\ndescription: PDF\n---\n")

        with pytest.raises(ValidationError) as exc:
            await publisher.publish(skill_dir)
        assert exc.value.field == "author"
        assert memory_storage.blobs == {}

    def test_build_request(self, publisher, tmp_path):
        skill_dir = write_skill_dir(tmp_path, "pdf", "2.0.0", author="Bob")
        request = publisher.build_request(skill_dir, "cid")
        assert (request.name, request.version, request.author, request.content_id) == ("pdf", "2.0.0", "Bob", "cid")
