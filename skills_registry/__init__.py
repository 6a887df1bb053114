# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skills Registry

Decentralized registry, dual-path client and dependency installer for
agent skill packages.
"""

__version__ = "2.1.0"
