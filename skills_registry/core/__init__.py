# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Core utilities shared across the skills registry.

This package contains:
- config: Configuration management
- errors: Custom exceptions and exit codes
- logging: Structured logging
"""

from skills_registry.core.config import get_config, Config
from skills_registry.core.errors import SkillsError, ValidationError, get_exit_code
from skills_registry.core.logging import configure_logging, get_logger, log_event

__all__ = [
    "get_config",
    "Config",
    "SkillsError",
    "ValidationError",
    "get_exit_code",
    "configure_logging",
    "get_logger",
    "log_event",
]
