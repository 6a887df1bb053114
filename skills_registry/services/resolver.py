# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency Resolver

Single responsibility: Resolve a skill and its dependencies into a
cycle-free graph and an ordered install plan

Nodes live in an arena (a list) and edges are indices into it. The active
path is passed down the recursion as a tuple, so a name seen again on the
same path is a cycle while a name seen on a sibling branch is a shared
dependency served from the memo.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from skills_registry.client.registry_client import RegistryClient
from skills_registry.core.errors import DependencyError, ValidationError
from skills_registry.models.registry_models import LATEST, SEMVER_PATTERN, SkillDependency

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10
SKILL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def parse_skill_spec(spec: str) -> Tuple[str, Optional[str]]:
    """
    Split "name[@version]".

    Args:
        spec: Requested skill, e.g. "pdf-tools" or "pdf-tools@1.2.0"

    Returns:
        (name, version or None)

    Raises:
        ValidationError: If the name or version is malformed
    """
    if not spec or not spec.strip():
        raise ValidationError("Skill name is required", field="skill", value=spec)

    name, sep, version = spec.strip().partition("@")
    if not SKILL_NAME_PATTERN.match(name):
        raise ValidationError(
            f"Invalid skill name: '{name}'",
            field="name",
            value=name,
            expected="letters, digits, '.', '_' or '-'"
        )
    if sep and not SEMVER_PATTERN.match(version):
        raise ValidationError(
            f"Invalid version: '{version}'",
            field="version",
            value=version,
            expected="MAJOR.MINOR.PATCH"
        )
    return name, (version or None)


@dataclass
class DependencyNode:
    """One resolved skill version inside a DependencyGraph"""
    index: int
    name: str
    version: str
    content_id: str
    depth: int
    is_installed: bool = False
    children: List[int] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.name, self.version)


@dataclass
class DependencyGraph:
    """Arena of resolved nodes; node 0 is the requested skill"""
    nodes: List[DependencyNode] = field(default_factory=list)
    root: int = 0

    def add(self, name: str, version: str, content_id: str, depth: int, is_installed: bool) -> int:
        index = len(self.nodes)
        self.nodes.append(DependencyNode(index, name, version, content_id, depth, is_installed))
        return index

    def node(self, index: int) -> DependencyNode:
        return self.nodes[index]

    def children(self, index: int) -> List[DependencyNode]:
        return [self.nodes[i] for i in self.nodes[index].children]

    @property
    def root_node(self) -> DependencyNode:
        return self.nodes[self.root]

    @property
    def max_depth(self) -> int:
        return max((n.depth for n in self.nodes), default=0)

    @property
    def installed_count(self) -> int:
        return sum(1 for n in self.nodes if n.is_installed)


class DependencyResolver:
    """Resolves skill dependencies through the registry client"""

    def __init__(
        self,
        client: RegistryClient,
        is_installed: Optional[Callable[[str, str, str], bool]] = None,
        max_depth: int = DEFAULT_MAX_DEPTH
    ):
        """
        Initialize dependency resolver.

        Args:
            client: Registry client used to look up skills
            is_installed: Called with (name, version, contentId); True when that
                exact artifact is already materialized
            max_depth: Deepest allowed dependency level (root is 0)
        """
        self.client = client
        self.is_installed = is_installed or (lambda name, version, content_id: False)
        self.max_depth = max_depth

    async def resolve(self, spec: str) -> DependencyGraph:
        """
        Resolve a requested skill into a dependency graph.

        Args:
            spec: "name[@version]"

        Returns:
            DependencyGraph with the requested skill at the root

        Raises:
            ValidationError: Malformed name@version
            DependencyError: Cycle, version conflict, depth limit or missing skill
        """
        name, version = parse_skill_spec(spec)
        graph = DependencyGraph()
        memo: Dict[Tuple[str, str], int] = {}
        pinned: Dict[str, str] = {}

        graph.root = await self._resolve_node(
            SkillDependency(name=name, version_constraint=version or LATEST),
            depth=0,
            path=(),
            graph=graph,
            memo=memo,
            pinned=pinned,
        )
        logger.info(
            f"Resolved {spec}: {len(graph.nodes)} skill(s), max depth {graph.max_depth}, "
            f"{graph.installed_count} already installed"
        )
        return graph

    async def _resolve_node(
        self,
        dependency: SkillDependency,
        depth: int,
        path: Tuple[str, ...],
        graph: DependencyGraph,
        memo: Dict[Tuple[str, str], int],
        pinned: Dict[str, str]
    ) -> int:
        name = dependency.name
        current_path = path + (name,)

        if name in path:
            cycle = list(path[path.index(name):]) + [name]
            raise DependencyError(
                f"Circular dependency detected: {' -> '.join(cycle)}",
                path=cycle
            )

        if depth > self.max_depth:
            raise DependencyError(
                f"Dependency depth limit exceeded (max: {self.max_depth} levels)",
                path=list(current_path)
            )

        wanted = None if dependency.is_latest else dependency.version_constraint
        response = await self.client.get_skill(name, wanted)
        if not response.found:
            target = f"{name}@{wanted}" if wanted else name
            raise DependencyError(
                f"Skill '{target}' not found in registry (path: {' -> '.join(current_path)})",
                path=list(current_path),
                details={"registry_error": response.error}
            )
        skill = response.skill

        existing = pinned.get(name)
        if existing is not None and existing != skill.version:
            raise DependencyError(
                f"Conflicting versions of '{name}': {existing} and {skill.version}",
                path=list(current_path)
            )

        key = (skill.name, skill.version)
        if key in memo:
            logger.debug(f"Reusing resolved {skill.name}@{skill.version}")
            return memo[key]

        index = graph.add(
            skill.name,
            skill.version,
            skill.content_id,
            depth,
            self.is_installed(skill.name, skill.version, skill.content_id),
        )
        memo[key] = index
        pinned[name] = skill.version

        for child in skill.dependencies:
            child_index = await self._resolve_node(child, depth + 1, current_path, graph, memo, pinned)
            graph.node(index).children.append(child_index)

        return index


def flatten_plan(graph: DependencyGraph) -> List[DependencyNode]:
    """
    Order nodes dependency-before-dependent.

    Post-order walk from the root; each node appears once.
    """
    ordered: List[DependencyNode] = []
    seen = set()

    def visit(index: int):
        if index in seen:
            return
        seen.add(index)
        for child in graph.node(index).children:
            visit(child)
        ordered.append(graph.node(index))

    if graph.nodes:
        visit(graph.root)
    return ordered
