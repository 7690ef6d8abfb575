# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for the backup driver.

These helpers centralize wording for common configuration and request
errors so that all modules present consistent, actionable messages.
"""

from typing import List


def explain_missing_engine_image_env() -> str:
    """
    Explain that the engine image environment variable is missing.
    """

    return (
        "Engine image is not configured. "
        "Set the BACKUP_ENGINE_IMAGE environment variable or pass engine_image=... to create_config()."
    )


def explain_invalid_execution_timeout_env(value: str | None) -> str:
    """
    Explain that BACKUP_EXECUTION_TIMEOUT is invalid.
    """

    return (
        f"Invalid BACKUP_EXECUTION_TIMEOUT value: {value!r}. "
        "It must be a positive integer number of minutes."
    )


def explain_unsupported_backup_url(url: str) -> str:
    """
    Explain that a backup target URL uses an unknown scheme.
    """

    return (
        f"Unsupported backup target URL: {url!r}. "
        "Expected a URL starting with s3://, cifs://, azblob:// or nfs://."
    )


def explain_missing_credential_secret(backend: str) -> str:
    """
    Explain that a backend needs credentials but none were supplied.
    """

    return f"cannot access {backend} without credential secret"


def explain_missing_credential_keys(backend: str, missing_keys: List[str]) -> str:
    """
    Explain which credential keys are missing for a backend.
    """

    return f"could not backup to {backend}, missing {missing_keys} in the secret"


def explain_head_snapshot(head_name: str) -> str:
    """
    Explain that the live volume head can never be backed up.
    """

    return f"invalid operation: cannot backup {head_name}"
