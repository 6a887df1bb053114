# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Install Services

- resolver.py: Dependency resolution and install plans
- tree.py: Diagnostic tree rendering
- lockfile.py: skills-lock.json management
- installer.py: Skill installation
- publisher.py: Bundle, sign, upload and register
"""

from .installer import SkillInstaller
from .lockfile import LockfileManager
from .publisher import SkillPublisher
from .resolver import DependencyGraph, DependencyResolver, flatten_plan, parse_skill_spec
from .tree import render_tree

__all__ = [
    "SkillInstaller",
    "LockfileManager",
    "SkillPublisher",
    "DependencyGraph",
    "DependencyResolver",
    "flatten_plan",
    "parse_skill_spec",
    "render_tree",
]
