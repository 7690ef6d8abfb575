# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Driver Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation. A BackupTarget
describes one remote store endpoint for the duration of a call.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List
import re

from backupdriver.errors import explain_unsupported_backup_url
from backupdriver.exceptions import ConfigurationError


DEFAULT_ENGINE_BINARY_ROOT = Path("/var/lib/longhorn/engine-binaries")
DEFAULT_BINARY_NAME = "longhorn"

# Volume and backup names surfaced to callers must match this
_VALID_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]+$")


class BackendType(str, Enum):
    """Kind of remote store a backup target URL addresses."""

    S3 = "s3"
    CIFS = "cifs"
    AZBLOB = "azblob"
    NFS = "nfs"

    @property
    def requires_credential(self) -> bool:
        return self is not BackendType.NFS


def check_backup_type(url: str) -> BackendType:
    """
    Determine the backend type from a backup target URL scheme.

    Args:
        url: Backup target URL (e.g. 's3://bucket@region/path')

    Returns:
        The matching BackendType

    Raises:
        ConfigurationError: If the scheme is not a known backend
    """
    scheme, sep, _ = url.partition("://")
    if not sep:
        raise ConfigurationError(explain_unsupported_backup_url(url))
    try:
        return BackendType(scheme.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_unsupported_backup_url(url)) from exc


def validate_name(name: str) -> bool:
    """Check a volume or backup name against the name-format rule."""
    return bool(_VALID_NAME.fullmatch(name))


def get_image_canonical_name(image: str) -> str:
    """Turn an image reference into a directory-safe name."""
    return image.replace(":", "-").replace("/", "-")


@dataclass(frozen=True)
class BackupTarget:
    """
    One remote store endpoint: URL plus the credential used to reach it.

    The credential is never persisted; it only lives for the call.
    """

    url: str

    # Backend-specific named secrets, None when no secret is configured
    credential: Dict[str, str] | None = None

    @property
    def backend_type(self) -> BackendType:
        return check_backup_type(self.url)

    def __repr__(self) -> str:
        # Keep secrets out of reprs and logs
        keys = sorted(self.credential) if self.credential else None
        return f"BackupTarget(url={self.url!r}, credential_keys={keys})"


@dataclass(frozen=True)
class DriverConfig:
    """
    Immutable configuration for driving the engine binary.
    """

    # Required: default engine image whose binary is executed
    engine_image: str

    # Bounded timeout for cheap reads and listings, in minutes
    execution_timeout_minutes: int = 1

    # Host directory holding one binary directory per engine image
    engine_binary_root: Path = field(default_factory=lambda: DEFAULT_ENGINE_BINARY_ROOT)

    # File name of the binary inside the image directory
    binary_name: str = DEFAULT_BINARY_NAME

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not self.engine_image:
            errors.append("engine_image is required")

        if self.execution_timeout_minutes < 1:
            errors.append(
                f"execution_timeout_minutes must be >= 1, got {self.execution_timeout_minutes}"
            )

        if not self.binary_name or "/" in self.binary_name:
            errors.append(f"Invalid binary_name: {self.binary_name!r}")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def execution_timeout_seconds(self) -> float:
        return float(self.execution_timeout_minutes * 60)

    def engine_binary_path(self, image: str | None = None) -> Path:
        """
        Path of the engine binary for an image on this host.

        Args:
            image: Engine image (defaults to the configured engine_image)

        Returns:
            Absolute path to the binary
        """
        return (
            Path(self.engine_binary_root)
            / get_image_canonical_name(image or self.engine_image)
            / self.binary_name
        )

    def with_updates(self, **kwargs) -> "DriverConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return DriverConfig(**current)
