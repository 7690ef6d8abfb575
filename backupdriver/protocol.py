# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Engine output protocol - typed records decoded from the engine's JSON.

Every read command prints one JSON document on stdout. The models here
validate that document; any mismatch raises DecodeError carrying the raw
output. Backup and restore states are normalized to BackupState while
decoding and are not re-interpreted anywhere else.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional, Tuple, TypeVar, Union
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError as PydanticValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from backupdriver.config import validate_name
from backupdriver.exceptions import (
    CatalogError,
    DecodeError,
    ValidationError,
    VolumeNotFoundInDataError,
)
from backupdriver.state import BackupState, convert_engine_backup_state

MESSAGE_TYPE_ERROR = "error"
MESSAGE_TYPE_WARNING = "warning"

T = TypeVar("T")

# Go timestamps carry nanoseconds; datetime keeps microseconds
_FRACTION = re.compile(r"(\.\d{6})\d+")


class EngineRecord(BaseModel):
    """Base for engine JSON records: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


def _empty_if_null(value: Any) -> Any:
    return {} if value is None else value


def _text(value: Any) -> Any:
    # Sizes arrive as strings from some engines and numbers from others
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _state(value: Any) -> BackupState:
    if isinstance(value, BackupState):
        return value
    return convert_engine_backup_state(value if isinstance(value, str) else None)


State = Annotated[BackupState, BeforeValidator(_state)]
Text = Annotated[str, BeforeValidator(_text)]
StringMap = Annotated[Dict[str, str], BeforeValidator(_empty_if_null)]


class Backup(EngineRecord):
    """Full metadata of one backup, as printed by `backup inspect`."""

    name: str = ""
    state: State = BackupState.UNKNOWN
    url: str = ""
    snapshot_name: str = ""
    snapshot_created: str = ""
    created: str = ""
    size: Text = ""
    labels: StringMap = Field(default_factory=dict)
    is_incremental: bool = False
    volume_name: str = ""
    volume_size: Text = ""
    volume_created: str = ""
    volume_backing_image_name: str = ""
    messages: StringMap = Field(default_factory=dict)
    compression_method: str = ""
    newly_uploaded_data_size: Text = Field(default="", alias="newlyUploadDataSize")
    re_uploaded_data_size: Text = ""
    progress: int = 0
    error: str = ""

    @property
    def id(self) -> str:
        return self.name

    @property
    def size_bytes(self) -> int:
        try:
            return int(self.size)
        except ValueError:
            return 0


class BackupVolume(EngineRecord):
    """One volume's entry in the remote catalog."""

    name: str = ""
    size: Text = ""
    labels: StringMap = Field(default_factory=dict)
    created: str = ""
    last_backup_name: str = ""
    last_backup_at: str = ""
    data_stored: Text = ""
    messages: StringMap = Field(default_factory=dict)
    backups: Annotated[
        Dict[str, Optional[Backup]], BeforeValidator(_empty_if_null)
    ] = Field(default_factory=dict)
    backing_image_name: str = ""
    backing_image_checksum: str = ""
    storage_class_name: str = ""

    @property
    def backup_names(self) -> List[str]:
        return sorted(name for name in self.backups if validate_name(name))

    @property
    def error_message(self) -> str:
        return self.messages.get(MESSAGE_TYPE_ERROR, "")


class ConfigMetadata(EngineRecord):
    """Result of the cheap `backup head` probe."""

    modification_time: Optional[datetime] = None

    @field_validator("modification_time", mode="before")
    @classmethod
    def _trim_nanoseconds(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _FRACTION.sub(r"\1", value)
        return value


class BackupCreateInfo(EngineRecord):
    """Handle returned by `backup create`."""

    backup_id: str = Field(validation_alias=AliasChoices("BackupID", "backupID", "backupId"))
    is_incremental: bool = Field(
        default=False, validation_alias=AliasChoices("IsIncremental", "isIncremental")
    )
    replica_address: str = Field(
        default="", validation_alias=AliasChoices("ReplicaAddress", "replicaAddress")
    )


class BackupStatus(EngineRecord):
    """Progress of one in-flight backup."""

    progress: int = 0
    backup_url: str = Field(default="", alias="backupURL")
    error: str = ""
    snapshot_name: str = ""
    state: State = BackupState.UNKNOWN
    replica_address: str = ""


class RestoreStatus(EngineRecord):
    """Restore progress reported by one replica."""

    is_restoring: bool = False
    last_restored: str = ""
    current_restoring_backup: str = ""
    progress: int = 0
    error: str = ""
    filename: str = ""
    state: State = BackupState.UNKNOWN
    backup_url: str = Field(default="", alias="backupURL")


class VersionOutput(EngineRecord):
    version: str = ""
    git_commit: str = ""
    build_date: str = ""
    cli_api_version: int = Field(default=0, alias="cliAPIVersion")
    cli_api_min_version: int = Field(default=0, alias="cliAPIMinVersion")
    controller_api_version: int = Field(default=0, alias="controllerAPIVersion")
    controller_api_min_version: int = Field(default=0, alias="controllerAPIMinVersion")
    data_format_version: int = 0
    data_format_min_version: int = 0


class BinaryVersion(EngineRecord):
    """Client and (optionally) server versions reported by the engine."""

    client_version: VersionOutput
    server_version: Optional[VersionOutput] = None

    @property
    def client_api_version(self) -> int:
        return self.client_version.cli_api_version

    @property
    def server_api_version(self) -> int | None:
        if self.server_version is None:
            return None
        return self.server_version.cli_api_version


class _ReplicaError(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: str = Field(validation_alias=AliasChoices("Address", "address"))
    message: str = Field(default="", validation_alias=AliasChoices("Message", "message"))


class _TaskError(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    replica_errors: List[_ReplicaError] = Field(
        validation_alias=AliasChoices("ReplicaErrors", "replicaErrors")
    )


_volume_names_adapter = TypeAdapter(Dict[str, Any])
_catalog_adapter = TypeAdapter(Dict[str, Optional[BackupVolume]])
_restore_status_adapter = TypeAdapter(Dict[str, RestoreStatus])


def _decode(adapter: Any, output: str, what: str) -> Any:
    try:
        return adapter.validate_json(output)
    except PydanticValidationError as e:
        raise DecodeError(f"error parsing {what}", output) from e


def _decode_model(model: type[T], output: str, what: str) -> T:
    try:
        return model.model_validate_json(output)  # type: ignore[attr-defined]
    except PydanticValidationError as e:
        raise DecodeError(f"error parsing {what}", output) from e


def parse_backup_volume_names_list(output: str) -> List[str]:
    """
    Parse `backup ls --volume-only` output into sorted, valid volume names.

    Names failing the name-format rule are dropped silently.
    """
    data = _decode(_volume_names_adapter, output, "backup volume names")
    return sorted(name for name in data if validate_name(name))


def parse_backup_names_list(output: str, volume_name: str) -> List[str]:
    """
    Parse `backup ls --volume <name>` output into sorted backup names.

    Raises:
        DecodeError: If the output is not a catalog object
        VolumeNotFoundInDataError: If the catalog has no entry for the volume
        CatalogError: If the entry carries an error message
    """
    data = _decode(_catalog_adapter, output, "backup names")

    if volume_name not in data:
        raise VolumeNotFoundInDataError(volume_name)

    volume = data[volume_name] or BackupVolume()
    if volume.error_message:
        raise CatalogError(
            volume.error_message,
            details={"volume": volume_name},
        )
    return volume.backup_names


def parse_backup_volume_config(output: str) -> BackupVolume:
    return _decode_model(BackupVolume, output, "one backup volume config")


def parse_backup_config(output: str) -> Backup:
    return _decode_model(Backup, output, "one backup config")


def parse_config_metadata(output: str) -> ConfigMetadata:
    return _decode_model(ConfigMetadata, output, "config metadata")


def parse_backup_create_info(output: str) -> BackupCreateInfo:
    return _decode_model(BackupCreateInfo, output, "backup create info")


def parse_backup_status(output: str) -> BackupStatus:
    return _decode_model(BackupStatus, output, "backup status")


def parse_restore_status(output: str) -> Dict[str, RestoreStatus]:
    return _decode(_restore_status_adapter, output, "restore status")


def parse_binary_version(output: str) -> BinaryVersion:
    return _decode_model(BinaryVersion, output, "engine version")


@dataclass(frozen=True)
class StructuredFailure:
    """Restore failure attributed per replica address."""

    replica_errors: Dict[str, str]


@dataclass(frozen=True)
class RawFailure:
    """Restore failure whose output is not a structured task error."""

    output: str
    reason: str


RestoreFailure = Union[StructuredFailure, RawFailure]


def decode_restore_failure(output: str) -> RestoreFailure:
    """
    Classify the stdout of a failed restore.

    A task error (`{"ReplicaErrors": [{"Address", "Message"}]}`) naming at
    least one replica becomes a StructuredFailure. Anything else becomes a
    RawFailure.
    """
    try:
        task_error = _TaskError.model_validate_json(output)
    except PydanticValidationError as e:
        return RawFailure(output=output, reason=str(e))

    replica_errors = {e.address: e.message for e in task_error.replica_errors}
    if not replica_errors:
        return RawFailure(output=output, reason="task error lists no replicas")
    return StructuredFailure(replica_errors=replica_errors)


def encode_backup_url(backup_name: str, volume_name: str, dest_url: str) -> str:
    """
    Combine a backup name, its volume and the target URL into one locator.

    Returns an empty string when any part is empty.
    """
    if not (backup_name and volume_name and dest_url):
        return ""
    query = urlencode(sorted({"backup": backup_name, "volume": volume_name}.items()))
    prefix = "&" if "?" in dest_url else "?"
    return f"{dest_url}{prefix}{query}"


def encode_backup_volume_url(volume_name: str, dest_url: str) -> str:
    """Locator of a backup volume's catalog entry on a target."""
    if not (volume_name and dest_url):
        return ""
    prefix = "&" if "?" in dest_url else "?"
    return f"{dest_url}{prefix}{urlencode({'volume': volume_name})}"


def decode_backup_url(backup_url: str) -> Tuple[str, str, str]:
    """
    Split a backup locator into (backup name, volume name, target URL).

    Raises:
        ValidationError: If either name is missing or malformed
    """
    parts = urlsplit(backup_url)
    query = parse_qs(parts.query)
    volume_name = query.get("volume", [""])[0]
    backup_name = query.get("backup", [""])[0]

    if not validate_name(volume_name):
        raise ValidationError(f"invalid volume name parsed, got {volume_name}")
    if not validate_name(backup_name):
        raise ValidationError(f"invalid backup name parsed, got {backup_name}")

    dest_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "", parts.fragment))
    return backup_name, volume_name, dest_url
