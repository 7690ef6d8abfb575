# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Credential environment builder.

Translates a backup target URL and its credential secret into the
KEY=VALUE entries the engine binary reads from its environment. Each
backend has a fixed schema of required and pass-through keys; missing
required keys fail the call before any process is spawned.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from backupdriver.config import BackendType, check_backup_type
from backupdriver.errors import explain_missing_credential_keys
from backupdriver.exceptions import CredentialError

AWS_ACCESS_KEY = "AWS_ACCESS_KEY_ID"
AWS_SECRET_KEY = "AWS_SECRET_ACCESS_KEY"
AWS_IAM_ROLE_ARN = "AWS_IAM_ROLE_ARN"
AWS_ENDPOINT = "AWS_ENDPOINTS"
AWS_CERT = "AWS_CERT"
VIRTUAL_HOSTED_STYLE = "VIRTUAL_HOSTED_STYLE"

HTTPS_PROXY = "HTTPS_PROXY"
HTTP_PROXY = "HTTP_PROXY"
NO_PROXY = "NO_PROXY"

CIFS_USERNAME = "CIFS_USERNAME"
CIFS_PASSWORD = "CIFS_PASSWORD"

AZBLOB_ACCOUNT_NAME = "AZBLOB_ACCOUNT_NAME"
AZBLOB_ACCOUNT_KEY = "AZBLOB_ACCOUNT_KEY"
AZBLOB_ENDPOINT = "AZBLOB_ENDPOINT"
AZBLOB_CERT = "AZBLOB_CERT"


@dataclass(frozen=True)
class CredentialSchema:
    """Keys a backend needs from its credential secret."""

    # Must be non-empty unless `waived_by` is set in the secret
    required: Tuple[str, ...]

    # Always emitted, empty string when absent
    passthrough: Tuple[str, ...] = ()

    # Key whose presence makes `required` optional (required keys are then
    # only emitted when all of them are present)
    waived_by: str | None = None


CREDENTIAL_SCHEMAS: Dict[BackendType, CredentialSchema] = {
    BackendType.S3: CredentialSchema(
        required=(AWS_ACCESS_KEY, AWS_SECRET_KEY),
        passthrough=(
            AWS_ENDPOINT,
            AWS_CERT,
            HTTPS_PROXY,
            HTTP_PROXY,
            NO_PROXY,
            VIRTUAL_HOSTED_STYLE,
        ),
        waived_by=AWS_IAM_ROLE_ARN,
    ),
    BackendType.CIFS: CredentialSchema(
        required=(CIFS_USERNAME, CIFS_PASSWORD),
    ),
    BackendType.AZBLOB: CredentialSchema(
        required=(AZBLOB_ACCOUNT_NAME, AZBLOB_ACCOUNT_KEY, AZBLOB_ENDPOINT),
        passthrough=(AZBLOB_CERT, HTTPS_PROXY, HTTP_PROXY, NO_PROXY),
    ),
}


def build_credential_env(
    backend_type: BackendType,
    credential: Mapping[str, str] | None,
) -> List[str]:
    """
    Build environment entries for a known backend type.

    Args:
        backend_type: Backend the credential belongs to
        credential: Secret values keyed by credential key name

    Returns:
        Ordered list of KEY=VALUE strings (empty if none are needed)

    Raises:
        CredentialError: If required keys are missing
    """
    if not backend_type.requires_credential or credential is None:
        return []

    schema = CREDENTIAL_SCHEMAS[backend_type]

    missing = [key for key in schema.required if not credential.get(key)]
    if missing and not (schema.waived_by and credential.get(schema.waived_by)):
        raise CredentialError(
            explain_missing_credential_keys(backend_type.value, missing),
            missing_keys=missing,
            details={"backend": backend_type.value},
        )

    envs: List[str] = []
    if not missing:
        envs.extend(f"{key}={credential[key]}" for key in schema.required)
    envs.extend(f"{key}={credential.get(key, '')}" for key in schema.passthrough)
    return envs


def get_backup_credential_env(
    backup_target: str,
    credential: Mapping[str, str] | None,
) -> List[str]:
    """
    Return the environment variables for a backup target as KEY=VALUE strings.

    Args:
        backup_target: Backup target URL; its scheme selects the backend
        credential: Secret values, or None when no secret is configured

    Returns:
        Ordered list of KEY=VALUE strings

    Raises:
        ConfigurationError: If the URL scheme is not a known backend
        CredentialError: If required keys are missing
    """
    return build_credential_env(check_backup_type(backup_target), credential)
