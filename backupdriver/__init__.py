# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Engine Backup Driver - Backup and restore orchestration over an engine binary.

Drives the out-of-process engine binary to create, inspect, list, delete
and restore volume backups on a remote store (S3, CIFS, Azure Blob, NFS),
injecting store credentials through the child environment and gating
optional arguments on the engine's CLI API version. Package name: backupdriver.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from backupdriver.builder import create_config
from backupdriver.config import BackendType, BackupTarget, DriverConfig
from backupdriver.env import create_config_from_env

# Operations
from backupdriver.credentials import get_backup_credential_env
from backupdriver.engine import VOLUME_HEAD_NAME, EngineBinary
from backupdriver.executor import ProcessExecutor, is_not_found
from backupdriver.state import BackupState, convert_engine_backup_state
from backupdriver.target import BackupTargetClient, new_backup_target_client

__all__ = [
    # Version
    "__version__",
    # Configuration
    "create_config",
    "create_config_from_env",
    "BackendType",
    "BackupTarget",
    "DriverConfig",
    # Clients
    "BackupTargetClient",
    "EngineBinary",
    "ProcessExecutor",
    "new_backup_target_client",
    # Helpers
    "get_backup_credential_env",
    "convert_engine_backup_state",
    "is_not_found",
    "BackupState",
    "VOLUME_HEAD_NAME",
]
