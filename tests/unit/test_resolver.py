# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for DependencyResolver

Tests cycle detection, shared dependencies, depth limits and plan order.
"""

import pytest

from conftest import content_id_for, register
from skills_registry.core.errors import DependencyError, ValidationError
from skills_registry.services.resolver import DependencyResolver, flatten_plan, parse_skill_spec
from skills_registry.services.tree import render_tree


class StoreBackedClient:
    """Registry client stand-in that reads the store directly"""

    def __init__(self, store):
        self.store = store
        self.lookups = []

    async def get_skill(self, name, version=None):
        self.lookups.append((name, version))
        return self.store.get_skill(name, version)


@pytest.fixture
def client(store):
    return StoreBackedClient(store)


class TestParseSkillSpec:
    """Test parse_skill_spec"""

    def test_name_only(self):
        assert parse_skill_spec("pdf-tools") == ("pdf-tools", None)

    def test_name_and_version(self):
        assert parse_skill_spec(" pdf-tools@1.2.0 ") == ("pdf-tools", "1.2.0")

    @pytest.mark.parametrize("spec", ["", "   ", "@1.0.0", "pdf@1.0", "pdf@latest", "../evil"])
    def test_invalid(self, spec):
        with pytest.raises(ValidationError):
            parse_skill_spec(spec)


class TestResolve:
    """Test graph resolution"""

    @pytest.mark.asyncio
    async def test_single_skill(self, store, client):
        """Skill without dependencies is a one-node graph"""
        register(store, "solo")
        graph = await DependencyResolver(client).resolve("solo")
        assert [(n.name, n.depth) for n in graph.nodes] == [("solo", 0)]
        assert graph.max_depth == 0

    @pytest.mark.asyncio
    async def test_direct_cycle_reports_path(self, store, client):
        """A -> B -> A fails with the cycle path"""
        register(store, "A", dependencies=["B"])
        register(store, "B", dependencies=["A"])
        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client).resolve("A")
        assert exc.value.path == ["A", "B", "A"]
        assert "A -> B -> A" in exc.value.message

    @pytest.mark.asyncio
    async def test_self_dependency(self, store, client):
        """A skill depending on itself is a cycle"""
        register(store, "loop", dependencies=["loop"])
        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client).resolve("loop")
        assert exc.value.path == ["loop", "loop"]

    @pytest.mark.asyncio
    async def test_deep_cycle_path_starts_at_repeat(self, store, client):
        """Path lists only the cycle, not the prefix leading to it"""
        register(store, "root", dependencies=["A"])
        register(store, "A", dependencies=["B"])
        register(store, "B", dependencies=["C"])
        register(store, "C", dependencies=["A"])
        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client).resolve("root")
        assert exc.value.path == ["A", "B", "C", "A"]

    @pytest.mark.asyncio
    async def test_diamond_is_not_a_cycle(self, store, client):
        """A -> {B, C}, B -> D, C -> D resolves D once"""
        register(store, "A", dependencies=["B", "C"])
        register(store, "B", dependencies=["D"])
        register(store, "C", dependencies=["D"])
        register(store, "D")

        graph = await DependencyResolver(client).resolve("A")
        names = [n.name for n in graph.nodes]
        assert sorted(names) == ["A", "B", "C", "D"]
        d_index = names.index("D")
        assert graph.node(names.index("B")).children == [d_index]
        assert graph.node(names.index("C")).children == [d_index]

    @pytest.mark.asyncio
    async def test_depth_limit(self, store, client):
        """Chains deeper than max_depth fail"""
        register(store, "s0", dependencies=["s1"])
        register(store, "s1", dependencies=["s2"])
        register(store, "s2", dependencies=["s3"])
        register(store, "s3")

        graph = await DependencyResolver(client, max_depth=3).resolve("s0")
        assert graph.max_depth == 3

        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client, max_depth=2).resolve("s0")
        assert "depth limit" in exc.value.message
        assert exc.value.path == ["s0", "s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_missing_dependency(self, store, client):
        """Unknown dependency names its path"""
        register(store, "app", dependencies=["ghost"])
        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client).resolve("app")
        assert "not found in registry (path: app -> ghost)" in exc.value.message

    @pytest.mark.asyncio
    async def test_missing_root(self, client):
        """Unknown requested skill is a DependencyError"""
        with pytest.raises(DependencyError):
            await DependencyResolver(client).resolve("ghost")

    @pytest.mark.asyncio
    async def test_pinned_version(self, store, client):
        """Exact constraint selects that version"""
        register(store, "lib", "1.0.0")
        register(store, "lib", "2.0.0")
        register(store, "app", dependencies=[{"name": "lib", "versionConstraint": "1.0.0"}])

        graph = await DependencyResolver(client).resolve("app")
        lib = next(n for n in graph.nodes if n.name == "lib")
        assert lib.version == "1.0.0"
        assert ("lib", "1.0.0") in client.lookups

    @pytest.mark.asyncio
    async def test_version_conflict(self, store, client):
        """Two versions of one name in a graph are rejected"""
        register(store, "lib", "1.0.0")
        register(store, "lib", "2.0.0")
        register(store, "left", dependencies=[{"name": "lib", "versionConstraint": "1.0.0"}])
        register(store, "right", dependencies=["lib"])
        register(store, "app", dependencies=["left", "right"])

        with pytest.raises(DependencyError) as exc:
            await DependencyResolver(client).resolve("app")
        assert "Conflicting versions of 'lib'" in exc.value.message

    @pytest.mark.asyncio
    async def test_installed_flag(self, store, client):
        """is_installed marks nodes without pruning them"""
        register(store, "app", dependencies=["lib"])
        register(store, "lib")
        graph = await DependencyResolver(client, is_installed=lambda name, version, content_id: name == "lib").resolve("app")
        assert graph.installed_count == 1
        assert {n.name: n.is_installed for n in graph.nodes} == {"app": False, "lib": True}

    @pytest.mark.asyncio
    async def test_installed_check_sees_resolved_artifact(self, store, client):
        """The installed check is asked about the exact version and content id"""
        register(store, "lib", "1.0.0")
        register(store, "lib", "2.0.0")
        asked = []

        def is_installed(name, version, content_id):
            asked.append((name, version, content_id))
            return version == "1.0.0"

        graph = await DependencyResolver(client, is_installed=is_installed).resolve("lib@2.0.0")
        assert asked == [("lib", "2.0.0", content_id_for("lib", "2.0.0"))]
        assert not graph.node(graph.root).is_installed


class TestPlanAndTree:
    """Test flatten_plan and render_tree"""

    @staticmethod
    async def resolve_diamond(store, client):
        register(store, "A", dependencies=["B", "C"])
        register(store, "B", dependencies=["D"])
        register(store, "C", dependencies=["D"])
        register(store, "D")
        return await DependencyResolver(client, is_installed=lambda name, version, content_id: name == "D").resolve("A")

    @pytest.mark.asyncio
    async def test_dependencies_before_dependents(self, store, client):
        """Every child precedes its parent; each node appears once"""
        graph = await self.resolve_diamond(store, client)
        plan = [n.name for n in flatten_plan(graph)]
        assert plan == ["D", "B", "C", "A"]

    @pytest.mark.asyncio
    async def test_tree_rendering(self, store, client):
        """Tree shows shared dependency under both parents"""
        graph = await self.resolve_diamond(store, client)
        assert render_tree(graph) == "\n".join([
            "A@1.0.0 (depth: 0)",
            "├── B@1.0.0 (depth: 1)",
            "│   └── D@1.0.0 ✓ (depth: 2)",
            "└── C@1.0.0 (depth: 1)",
            "    └── D@1.0.0 ✓ (depth: 2)",
        ])
