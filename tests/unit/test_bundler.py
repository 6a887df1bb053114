# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for TarBundler and SKILL.md parsing
"""

import io
import tarfile

import pytest

from conftest import write_skill_dir
from skills_registry.collaborators.bundler import TarBundler, read_skill_manifest
from skills_registry.core.errors import ParseError, ValidationError


def tar_with(name: str, content: bytes = b"x", link_to: str = None) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        info = tarfile.TarInfo(name)
        if link_to:
            info.type = tarfile.SYMTYPE
            info.linkname = link_to
            tar.addfile(info)
        else:
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


class TestManifest:
    """Test read_skill_manifest"""

    def test_reads_frontmatter(self, tmp_path):
        skill_dir = write_skill_dir(tmp_path, "pdf", "1.2.0", dependencies=["base"])
        manifest = read_skill_manifest(skill_dir)
        assert manifest["name"] == "pdf"
        assert manifest["version"] == "1.2.0"
        assert manifest["dependencies"] == ["base"]

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ValidationError):
            read_skill_manifest(tmp_path)

    def test_no_frontmatter(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("# Just a heading\n")
        with pytest.raises(ValidationError):
            read_skill_manifest(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("---\nname: [unclosed\n---\n")
        with pytest.raises(ParseError):
            read_skill_manifest(tmp_path)

    def test_name_required(self, tmp_path):
        (tmp_path / "SKILL.md").write_text("---\nversion: 1.0.0\n---\n")
        with pytest.raises(ValidationError) as exc:
            read_skill_manifest(tmp_path)
        assert exc.value.field == "name"


class TestTarBundler:
    """Test pack and unpack"""

    def test_pack_unpack(self, tmp_path):
        """Files come back relative to the destination"""
        skill_dir = write_skill_dir(
            tmp_path / "src", "pdf",
            extra_files={"scripts/run.sh": "echo hi", ".git/HEAD": "ref"}
        )
        bundler = TarBundler()
        out = bundler.unpack(bundler.pack(skill_dir), tmp_path / "out")

        assert (out / "SKILL.md").is_file()
        assert (out / "scripts" / "run.sh").read_text() == "echo hi"
        assert not (out / ".git").exists()

    def test_pack_requires_manifest(self, tmp_path):
        with pytest.raises(ValidationError):
            TarBundler().pack(tmp_path)

    @pytest.mark.parametrize("name", ["../escape.txt", "/etc/passwd", "a/../../b"])
    def test_rejects_unsafe_paths(self, tmp_path, name):
        with pytest.raises(ValidationError):
            TarBundler().unpack(tar_with(name), tmp_path / "out")

    def test_rejects_links(self, tmp_path):
        with pytest.raises(ValidationError):
            TarBundler().unpack(tar_with("link", link_to="/etc/passwd"), tmp_path / "out")

    def test_corrupt_bundle(self, tmp_path):
        with pytest.raises(ValidationError):
            TarBundler().unpack(b"not a tarball", tmp_path / "out")
