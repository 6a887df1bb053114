# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Dependency tree rendering for verbose output.
"""

from typing import List

from .resolver import DependencyGraph

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "
INSTALLED_MARK = " ✓"


def _label(graph: DependencyGraph, index: int) -> str:
    node = graph.node(index)
    mark = INSTALLED_MARK if node.is_installed else ""
    return f"{node.name}@{node.version}{mark} (depth: {node.depth})"


def render_tree(graph: DependencyGraph) -> str:
    """
    Render the graph as an indented tree.

    Shared dependencies are printed under every parent.
    """
    if not graph.nodes:
        return ""

    lines: List[str] = [_label(graph, graph.root)]

    def walk(index: int, prefix: str):
        children = graph.node(index).children
        for position, child in enumerate(children):
            last = position == len(children) - 1
            lines.append(f"{prefix}{LAST_BRANCH if last else BRANCH}{_label(graph, child)}")
            walk(child, prefix + (SPACE if last else PIPE))

    walk(graph.root, "")
    return "\n".join(lines)
