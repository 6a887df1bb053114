# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Fixtures and Utilities

Provides pytest fixtures for a seeded registry store, an in-process registry
client wired to the FastAPI server, in-memory storage and skill bundles.
"""

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

# Add repository root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from skills_registry.client.failover import DualPathExecutor, FailoverConfig
from skills_registry.client.registry_client import RegistryClient
from skills_registry.client.transports import HyperbeamTransport, MessageTransport
from skills_registry.collaborators.bundler import TarBundler
from skills_registry.collaborators.storage import StorageUploader
from skills_registry.core.config import Config
from skills_registry.core.errors import HTTPError
from skills_registry.models.registry_models import RegisterSkillRequest
from skills_registry.store.registry_store import RegistryStore
from skills_registry.store.server import create_app


NOW = 1_700_000_000
DAY = 86400
PROCESS_ID = "test-registry-process"
OWNER = "owner-address"


def content_id_for(name: str, version: str) -> str:
    """Deterministic 43-character content id"""
    raw = f"{name}-{version}".replace(".", "_")
    return (raw + "x" * 43)[:43]


def register(
    store: RegistryStore,
    name: str,
    version: str = "1.0.0",
    dependencies: Optional[List] = None,
    tags: Optional[List[str]] = None,
    author: str = "Alice",
    description: Optional[str] = None,
    sender: str = OWNER,
    timestamp: int = NOW
):
    return store.register_skill(
        RegisterSkillRequest(
            name=name,
            version=version,
            description=description or f"{name} skill",
            author=author,
            content_id=content_id_for(name, version),
            tags=tags or [],
            dependencies=dependencies or [],
        ),
        sender=sender,
        timestamp=timestamp,
    )


async def _no_sleep(delay: float):
    return None


class MemoryStorage(StorageUploader):
    """In-memory content-addressed storage"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.downloads: List[str] = []

    def put(self, content_id: str, data: bytes):
        self.blobs[content_id] = data

    async def upload(self, data: bytes) -> str:
        content_id = f"upload-{len(self.blobs)}".ljust(43, "0")
        self.blobs[content_id] = data
        return content_id

    async def download(self, content_id: str) -> bytes:
        self.downloads.append(content_id)
        if content_id not in self.blobs:
            raise HTTPError(f"Storage returned HTTP 404 for {content_id}", http_status=404, transport="memory")
        return self.blobs[content_id]


def write_skill_dir(
    root: Path,
    name: str,
    version: str = "1.0.0",
    dependencies: Optional[List[str]] = None,
    author: str = "Alice",
    extra_files: Optional[Dict[str, str]] = None
) -> Path:
    """Create a skill directory with SKILL.md frontmatter"""
    skill_dir = root / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    lines = [
        "---",
        f"name: {name}",
        f"version: \"{version}\"",
        f"description: {name} skill",
        f"author: {author}",
        "tags: [testing]",
    ]
    if dependencies:
        lines.append("dependencies:")
        lines.extend(f"  - {dep}" for dep in dependencies)
    lines += ["---", "", f"# {name}", "", "Instructions."]
    (skill_dir / "SKILL.md").write_text("\n".join(lines) + "\n")
    for relative, content in (extra_files or {}).items():
        path = skill_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return skill_dir


@pytest.fixture
def store():
    """Empty registry store"""
    return RegistryStore()


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at test endpoints and a temp install dir"""
    return Config(
        registry_process_id=PROCESS_ID,
        hyperbeam_node="http://hyperbeam.test",
        cu_url="http://cu.test",
        gateway_url="http://gateway.test",
        local_install_dir=str(tmp_path / ".claude" / "skills"),
        global_install_dir=str(tmp_path / "home" / ".claude" / "skills"),
    )


def build_client(app, config: Config) -> RegistryClient:
    """Registry client whose transports both reach the ASGI app"""
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    fast = HyperbeamTransport(http, config.hyperbeam_node, config.registry_process_id, config.hyperbeam_script_id)
    messages = MessageTransport(http, config.cu_url, config.registry_process_id, sender=OWNER)
    executor = DualPathExecutor(fast, messages, FailoverConfig(), sleep=_no_sleep)
    return RegistryClient(executor, messages, http_client=http)


@pytest.fixture
def registry_app(store, test_config):
    """FastAPI registry server over the store fixture"""
    return create_app(store=store, config=test_config)


@pytest.fixture
def registry_client(registry_app, test_config):
    """Registry client talking to the in-process server"""
    return build_client(registry_app, test_config)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def publish_bundle(tmp_path, store, memory_storage):
    """
    Register a skill in the store and put its bundle in storage.

    Usage: publish_bundle("a", deps=["b"])
    """
    bundler = TarBundler()
    sources = tmp_path / "sources"

    def _publish(name: str, version: str = "1.0.0", deps: Optional[List[str]] = None):
        skill_dir = write_skill_dir(sources / version, name, version, dependencies=deps)
        content_id = content_id_for(name, version)
        memory_storage.put(content_id, bundler.pack(skill_dir))
        register(store, name, version, dependencies=deps)
        return content_id

    return _publish
