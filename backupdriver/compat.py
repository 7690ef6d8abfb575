# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Engine CLI compatibility table.

Optional arguments are only passed to engine binaries whose client CLI
API version is high enough to understand them.
"""

from enum import Enum
from typing import Dict

# Binaries at or below this version predate backing image checksums and
# caller-assigned backup names
LEGACY_CLI_API_VERSION = 4


class Feature(str, Enum):
    """Optional engine CLI arguments gated by version."""

    BACKING_IMAGE_CHECKSUM = "backing_image_checksum"
    BACKUP_NAME = "backup_name"
    REPLICA_INSTANCE_NAME = "replica_instance_name"


MINIMUM_CLI_API_VERSION: Dict[Feature, int] = {
    Feature.BACKING_IMAGE_CHECKSUM: LEGACY_CLI_API_VERSION + 1,
    Feature.BACKUP_NAME: LEGACY_CLI_API_VERSION + 1,
    Feature.REPLICA_INSTANCE_NAME: 9,
}


def supports(cli_api_version: int, feature: Feature) -> bool:
    """Check whether a client CLI API version understands a feature."""
    return cli_api_version >= MINIMUM_CLI_API_VERSION[feature]
