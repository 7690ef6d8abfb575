# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Driver Exceptions - Custom exceptions for the backupdriver package.
"""

from typing import Dict, List


class BackupDriverError(Exception):
    """Base exception for all backup driver errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(BackupDriverError):
    """Raised when configuration is invalid."""

    pass


class ValidationError(BackupDriverError):
    """Raised before any subprocess is spawned when a request is invalid."""

    pass


class CredentialError(ValidationError):
    """Raised when required credential fields are missing."""

    def __init__(self, message: str, missing_keys: List[str], details: dict | None = None):
        self.missing_keys = list(missing_keys)
        super().__init__(message, details={"missing_keys": self.missing_keys, **(details or {})})


class InvalidOperationError(ValidationError):
    """Raised when an operation targets something it never may (e.g. the volume head)."""

    pass


class ExecutionError(BackupDriverError):
    """
    Raised when the engine binary exits non-zero or cannot be run.

    The captured stdout is kept in ``output`` because some commands write
    a structured failure body there.
    """

    def __init__(
        self,
        message: str,
        binary: str = "",
        args: List[str] | None = None,
        returncode: int | None = None,
        output: str = "",
        stderr: str = "",
    ):
        self.binary = binary
        self.args_list = list(args or [])
        self.returncode = returncode
        self.output = output
        self.stderr = stderr
        super().__init__(
            message,
            details={
                "binary": binary,
                "args": self.args_list,
                "returncode": returncode,
                "stderr": stderr,
            },
        )


class ExecutionTimeoutError(ExecutionError):
    """Raised when a bounded execution exceeds its deadline and was killed."""

    pass


class SpawnError(ExecutionError):
    """Raised when the engine binary could not be started at all."""

    pass


class DecodeError(BackupDriverError):
    """Raised when engine output does not match the expected structure."""

    def __init__(self, message: str, raw_output: str):
        self.raw_output = raw_output
        super().__init__(f"{message}: \n{raw_output}")

    def __str__(self) -> str:
        return self.message


class VolumeNotFoundInDataError(BackupDriverError):
    """Raised when a catalog listing does not contain the requested volume."""

    def __init__(self, volume_name: str):
        self.volume_name = volume_name
        super().__init__(f"cannot find the volume name {volume_name} in the data")


class CatalogError(BackupDriverError):
    """Raised when a decoded catalog entry carries an explicit error message."""

    pass


class ReplicaTaskError(BackupDriverError):
    """
    Restore failure attributed to individual replicas.

    ``replica_errors`` maps replica address to the message that replica reported.
    """

    def __init__(self, replica_errors: Dict[str, str]):
        self.replica_errors = dict(replica_errors)
        summary = "; ".join(
            f"{address}: {message}" for address, message in sorted(self.replica_errors.items())
        )
        super().__init__(f"replica restore failures: {summary}")


class SnapshotNotFoundError(BackupDriverError):
    """Raised when the snapshot to back up does not exist."""

    pass


class SnapshotLookupError(BackupDriverError):
    """Raised when resolving the snapshot to back up failed."""

    pass


class BackupOperationError(BackupDriverError):
    """Raised when a backup target operation fails; wraps the execution error."""

    pass
