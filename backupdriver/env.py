# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

Settings such as the default engine image and the backup execution
timeout are owned by the caller's cluster configuration; this module
reads the values it has been handed through the process environment.
"""

from __future__ import annotations

import os

from backupdriver.builder import create_config
from backupdriver.config import DriverConfig
from backupdriver.errors import (
    explain_invalid_execution_timeout_env,
    explain_missing_engine_image_env,
)
from backupdriver.exceptions import ConfigurationError


def _parse_timeout_minutes(value: str | None) -> int:
    if not value:
        return 1
    try:
        minutes = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_execution_timeout_env(value)) from exc
    if minutes < 1:
        raise ConfigurationError(explain_invalid_execution_timeout_env(value))
    return minutes


def create_config_from_env() -> DriverConfig:
    """
    Create a DriverConfig from environment variables.

    Required:
        - BACKUP_ENGINE_IMAGE: Default engine image

    Optional environment variables:
        - BACKUP_EXECUTION_TIMEOUT: Positive integer minutes (default: 1)
        - BACKUP_ENGINE_BINARY_ROOT: Host directory of engine binaries
    """

    engine_image = os.getenv("BACKUP_ENGINE_IMAGE")
    if not engine_image:
        raise ConfigurationError(explain_missing_engine_image_env())

    timeout = _parse_timeout_minutes(os.getenv("BACKUP_EXECUTION_TIMEOUT"))

    return create_config(
        engine_image,
        execution_timeout_minutes=timeout,
        engine_binary_root=os.getenv("BACKUP_ENGINE_BINARY_ROOT") or None,
    )
