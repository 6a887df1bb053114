# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Bundle Signing

Single responsibility: Sign a bundle before it is uploaded

Signer is the seam the publisher depends on; GPGSigner signs with a key
from a GPG keyring through python-gnupg.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import gnupg

from skills_registry.core.config import Config, get_config
from skills_registry.core.errors import ConfigurationError, SkillsError

logger = logging.getLogger(__name__)


class Signer:
    """Signs a payload before upload"""

    @property
    def address(self) -> str:
        """Public address that owns published skills"""
        raise NotImplementedError

    def sign(self, payload: bytes) -> bytes:
        raise NotImplementedError


class GPGSigner(Signer):
    """Signs bundles with a key from a GPG keyring"""

    def __init__(
        self,
        key_id: str,
        keyring_dir: Optional[str] = None,
        passphrase: Optional[str] = None,
        gpg: Optional[gnupg.GPG] = None
    ):
        """
        Initialize signer.

        Args:
            key_id: Key id or fingerprint of the signing key
            keyring_dir: GPG home directory (~/.gnupg if omitted)
            passphrase: Key passphrase; GPG_SIGNING_PASSPHRASE if omitted
            gpg: Preconfigured gnupg.GPG instance

        Raises:
            ConfigurationError: If GPG is unavailable or the key is not in the keyring
        """
        if gpg is None:
            try:
                if keyring_dir:
                    Path(keyring_dir).expanduser().mkdir(parents=True, exist_ok=True)
                    gpg = gnupg.GPG(gnupghome=str(Path(keyring_dir).expanduser()))
                else:
                    gpg = gnupg.GPG()
            except (OSError, ValueError) as e:
                raise ConfigurationError(
                    f"GPG not found or not properly configured: {e}",
                    setting="signing.gpg_home"
                )
        self.gpg = gpg

        keys = self.gpg.list_keys(secret=True, keys=key_id)
        if not keys:
            raise ConfigurationError(f"Signing key not found: {key_id}", setting="signing.key_id")
        self.fingerprint = keys[0]["fingerprint"]
        self.key_id = key_id
        self.passphrase = passphrase if passphrase is not None else os.getenv("GPG_SIGNING_PASSPHRASE", "")

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "GPGSigner":
        config = config or get_config()
        if not config.signing_key_id:
            raise ConfigurationError(
                "No signing key configured. Set SKILLS_SIGNING_KEY or signing.key_id in config.yaml",
                setting="signing.key_id",
                config_file=config.config_file
            )
        return cls(config.signing_key_id, keyring_dir=config.gpg_home)

    @property
    def address(self) -> str:
        return self.fingerprint

    def sign(self, payload: bytes) -> bytes:
        """
        Produce a binary OpenPGP signed message wrapping the payload.

        Raises:
            SkillsError: If GPG refuses to sign (bad passphrase, expired key)
        """
        signed = self.gpg.sign(payload, keyid=self.key_id, passphrase=self.passphrase, binary=True)
        if not signed:
            message = f"Failed to sign bundle with {self.key_id}"
            if signed.stderr and "bad passphrase" in signed.stderr.lower():
                message += ". Check GPG_SIGNING_PASSPHRASE environment variable."
            raise SkillsError(message, status_code=500, details={"key_id": self.key_id})
        logger.debug(f"Signed {len(payload)} bytes with {self.fingerprint}")
        return signed.data
