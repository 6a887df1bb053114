# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Registry Client Package

- transports.py: Fast (HyperBEAM) and message transports
- failover.py: Retry/backoff/fallback state machine
- registry_client.py: Transport-agnostic registry API
"""

from .registry_client import RegistryClient, create_registry_client

__all__ = ["RegistryClient", "create_registry_client"]
