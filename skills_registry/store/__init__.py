# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Store Package

- registry_store.py: Single-writer state and handlers
- stats.py: Windowed download statistics
- info.py: Self-describing Info payload
- server.py: FastAPI server for both transports
"""

from .registry_store import RegistryStore

__all__ = ["RegistryStore"]
