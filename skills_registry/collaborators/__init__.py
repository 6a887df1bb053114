# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""External collaborators: bundling, storage and signing."""

from .bundler import Bundler, TarBundler, read_skill_manifest
from .signer import Signer
from .storage import GatewayStorage, StorageUploader

__all__ = [
    "Bundler",
    "TarBundler",
    "read_skill_manifest",
    "Signer",
    "GatewayStorage",
    "StorageUploader",
]
