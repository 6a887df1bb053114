# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Skills Registry Configuration - Single source of truth.
YAML for settings. Env vars only for endpoints and identities.
"""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from skills_registry.core.errors import ConfigurationError


DEFAULT_CONFIG_PATH = "~/.skills-registry/config.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    """

    # -- Registry process --
    registry_process_id: str = ""
    hyperbeam_script_id: str = "skills-registry"
    hyperbeam_node: str = "https://hb.randao.net"
    cu_url: str = "https://ur-cu.randao.net"

    # -- Storage --
    gateway_url: str = "https://arweave.net"
    upload_url: str = "https://upload.ardrive.io/v1/tx"

    # -- Signing --
    signing_key_id: Optional[str] = None
    gpg_home: Optional[str] = None

    # -- Fast path retry --
    fast_path_attempts: int = 3
    backoff_delays: Tuple[float, ...] = (0.1, 0.2, 0.4)
    attempt_timeout: float = 5.0
    fallback_timeout: float = 30.0
    cache_ttl: float = 300.0

    # -- Install --
    max_dependency_depth: int = 10
    local_install_dir: str = ".claude/skills"
    global_install_dir: str = "~/.claude/skills"
    lockfile_name: str = "skills-lock.json"

    # -- Store server --
    store_host: str = "0.0.0.0"
    store_port: int = 9100
    store_snapshot_path: Optional[str] = None

    # -- Runtime --
    requester_id: str = "anonymous"
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: Optional[str] = None
    config_file: Optional[str] = field(default=None, compare=False)

    @property
    def fast_path_base_url(self) -> str:
        return self.hyperbeam_node.rstrip("/")

    def install_dir(self, global_install: bool = False) -> Path:
        """Resolve the skills install directory."""
        raw = self.global_install_dir if global_install else self.local_install_dir
        return Path(raw).expanduser()

    def require_process_id(self) -> str:
        """
        Get the registry process id.

        Raises:
            ConfigurationError: If no process id is configured
        """
        if not self.registry_process_id:
            raise ConfigurationError(
                "Registry process ID not configured. Set AO_REGISTRY_PROCESS_ID "
                "or registry.process_id in the config file",
                setting="registry.process_id",
                config_file=self.config_file
            )
        return self.registry_process_id


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults (plus env overrides) if file doesn't exist.

    Raises:
        ConfigurationError: If the file is not valid YAML
    """
    config_path = Path(path).expanduser()
    y = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                y = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in config file: {e}",
                config_file=str(config_path)
            )
        if not isinstance(y, dict):
            raise ConfigurationError(
                "Config file must contain a mapping",
                config_file=str(config_path)
            )

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    delays = get(y, "client", "backoff_delays") or [0.1, 0.2, 0.4]

    return Config(
        # Registry process
        registry_process_id=os.getenv("AO_REGISTRY_PROCESS_ID") or get(y, "registry", "process_id") or "",
        hyperbeam_script_id=get(y, "registry", "script_id") or "skills-registry",
        hyperbeam_node=os.getenv("HYPERBEAM_NODE") or get(y, "registry", "hyperbeam_node") or "https://hb.randao.net",
        cu_url=os.getenv("AO_CU_URL") or get(y, "registry", "cu_url") or "https://ur-cu.randao.net",

        # Storage
        gateway_url=os.getenv("ARWEAVE_GATEWAY") or get(y, "storage", "gateway") or "https://arweave.net",
        upload_url=os.getenv("SKILLS_UPLOAD_URL") or get(y, "storage", "upload_url") or "https://upload.ardrive.io/v1/tx",

        # Signing
        signing_key_id=os.getenv("SKILLS_SIGNING_KEY") or get(y, "signing", "key_id"),
        gpg_home=os.getenv("GNUPGHOME") or get(y, "signing", "gpg_home"),

        # Fast path retry
        fast_path_attempts=get(y, "client", "attempts") or 3,
        backoff_delays=tuple(float(d) for d in delays),
        attempt_timeout=get(y, "client", "attempt_timeout") or 5.0,
        fallback_timeout=get(y, "client", "fallback_timeout") or 30.0,
        cache_ttl=get(y, "client", "cache_ttl") or 300.0,

        # Install
        max_dependency_depth=get(y, "install", "max_depth") or 10,
        local_install_dir=get(y, "install", "local_dir") or ".claude/skills",
        global_install_dir=get(y, "install", "global_dir") or "~/.claude/skills",
        lockfile_name=get(y, "install", "lockfile") or "skills-lock.json",

        # Store server
        store_host=get(y, "store", "host") or "0.0.0.0",
        store_port=get(y, "store", "port") or 9100,
        store_snapshot_path=get(y, "store", "snapshot_path"),

        # Runtime
        requester_id=get(y, "client", "requester_id") or "anonymous",
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or "INFO",
        log_format=get(y, "logging", "format") or "json",
        log_file=get(y, "logging", "file"),
        config_file=str(config_path),
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("SKILLS_REGISTRY_CONFIG", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
