# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Engine Output Protocol Tests.

Covers catalog listings, single-record decoding, state normalization,
restore failure classification and backup locator encoding.
"""

import json
from datetime import timezone

import pytest

from backupdriver.compat import Feature, supports
from backupdriver.exceptions import (
    CatalogError,
    DecodeError,
    ValidationError,
    VolumeNotFoundInDataError,
)
from backupdriver.protocol import (
    RawFailure,
    StructuredFailure,
    decode_backup_url,
    decode_restore_failure,
    encode_backup_url,
    encode_backup_volume_url,
    parse_backup_config,
    parse_backup_create_info,
    parse_backup_names_list,
    parse_backup_status,
    parse_backup_volume_config,
    parse_backup_volume_names_list,
    parse_binary_version,
    parse_config_metadata,
    parse_restore_status,
)
from backupdriver.state import BackupState, convert_engine_backup_state


# ============================================================================
# Catalog listings
# ============================================================================

def test_volume_names_sorted_and_invalid_names_dropped():
    output = json.dumps(
        {
            "vol-b": {},
            "vol-a": {},
            "-leading-dash": {},
            "x": {},
            "has space": {},
            "ok_1.2": None,
        }
    )

    assert parse_backup_volume_names_list(output) == ["ok_1.2", "vol-a", "vol-b"]


def test_volume_names_with_trailing_newline_dropped():
    assert parse_backup_volume_names_list('{"vol-a\\n": {}, "vol-b": {}}') == ["vol-b"]


def test_volume_names_empty_catalog():
    assert parse_backup_volume_names_list("{}") == []


@pytest.mark.parametrize("output", ["not json", "[]", '"vol-a"', ""])
def test_volume_names_malformed_output_is_decode_error(output):
    with pytest.raises(DecodeError) as exc_info:
        parse_backup_volume_names_list(output)

    assert exc_info.value.raw_output == output


def test_backup_names_sorted_from_backups_keys():
    output = json.dumps(
        {
            "vol-1": {
                "name": "vol-1",
                "messages": {},
                "backups": {"backup-b": {}, "backup-a": None},
            }
        }
    )

    assert parse_backup_names_list(output, "vol-1") == ["backup-a", "backup-b"]


def test_backup_names_missing_volume_key_is_not_decode_error():
    output = json.dumps({"vol-2": {"name": "vol-2", "backups": {}}})

    with pytest.raises(VolumeNotFoundInDataError) as exc_info:
        parse_backup_names_list(output, "vol-1")

    assert not isinstance(exc_info.value, DecodeError)
    assert "vol-1" in str(exc_info.value)


def test_backup_names_embedded_error_message_fails_the_listing():
    output = json.dumps(
        {
            "vol-1": {
                "name": "vol-1",
                "messages": {"error": "failed to load backup backup-a: corrupted"},
                "backups": {"backup-a": {}, "backup-b": {}},
            }
        }
    )

    with pytest.raises(CatalogError) as exc_info:
        parse_backup_names_list(output, "vol-1")

    assert exc_info.value.message == "failed to load backup backup-a: corrupted"


def test_backup_names_invalid_names_dropped():
    output = json.dumps(
        {"vol-1": {"backups": {"backup-b": {}, "-bad": {}, "backup-a\n": {}, "backup-a": {}}}}
    )

    assert parse_backup_names_list(output, "vol-1") == ["backup-a", "backup-b"]


def test_backup_names_warning_message_does_not_fail():
    output = json.dumps(
        {"vol-1": {"messages": {"warning": "slow listing"}, "backups": {"backup-a": {}}}}
    )

    assert parse_backup_names_list(output, "vol-1") == ["backup-a"]


def test_backup_names_null_maps_are_empty():
    output = json.dumps({"vol-1": {"messages": None, "backups": None}})

    assert parse_backup_names_list(output, "vol-1") == []


# ============================================================================
# Single records
# ============================================================================

def test_backup_config_decodes_and_normalizes_state():
    output = json.dumps(
        {
            "name": "backup-1a2b3c",
            "state": "complete",
            "url": "s3://bucket@us-east-1/?backup=backup-1a2b3c&volume=vol-1",
            "snapshotName": "snap-1",
            "created": "2024-05-01T10:20:30Z",
            "size": 2097152,
            "labels": None,
            "volumeName": "vol-1",
            "volumeSize": "10737418240",
            "compressionMethod": "lz4",
            "newlyUploadDataSize": "1048576",
            "unknownFutureField": True,
        }
    )

    backup = parse_backup_config(output)

    assert backup.id == "backup-1a2b3c"
    assert backup.state is BackupState.COMPLETED
    assert backup.size == "2097152"
    assert backup.size_bytes == 2097152
    assert backup.labels == {}
    assert backup.compression_method == "lz4"
    assert backup.newly_uploaded_data_size == "1048576"


def test_backup_volume_config_decodes():
    output = json.dumps(
        {
            "name": "vol-1",
            "size": "10737418240",
            "lastBackupName": "backup-2",
            "dataStored": 4096,
            "backingImageName": "bi-1",
            "backups": {"backup-1": {"state": "error"}},
        }
    )

    volume = parse_backup_volume_config(output)

    assert volume.last_backup_name == "backup-2"
    assert volume.data_stored == "4096"
    assert volume.backing_image_name == "bi-1"
    assert volume.backups["backup-1"].state is BackupState.ERROR


def test_config_metadata_keeps_microseconds_of_nanosecond_timestamps():
    metadata = parse_config_metadata('{"modificationTime": "2024-05-01T10:20:30.123456789Z"}')

    assert metadata.modification_time.microsecond == 123456
    assert metadata.modification_time.utcoffset() == timezone.utc.utcoffset(None)


def test_config_metadata_garbage_is_decode_error():
    with pytest.raises(DecodeError):
        parse_config_metadata('{"modificationTime": "yesterday"}')


def test_backup_create_info_accepts_engine_key_casing():
    info = parse_backup_create_info(
        '{"BackupID": "backup-9f8e", "IsIncremental": true, "ReplicaAddress": "tcp://10.42.0.7:10000"}'
    )

    assert info.backup_id == "backup-9f8e"
    assert info.is_incremental is True
    assert info.replica_address == "tcp://10.42.0.7:10000"


def test_backup_create_info_without_id_is_decode_error():
    with pytest.raises(DecodeError):
        parse_backup_create_info('{"ReplicaAddress": "tcp://10.42.0.7:10000"}')


def test_backup_status_decodes():
    status = parse_backup_status(
        json.dumps(
            {
                "progress": 42,
                "backupURL": "s3://bucket@us-east-1/?backup=backup-1&volume=vol-1",
                "error": "",
                "snapshotName": "snap-1",
                "state": "in_progress",
                "replicaAddress": "tcp://10.42.0.7:10000",
            }
        )
    )

    assert status.progress == 42
    assert status.state is BackupState.IN_PROGRESS
    assert status.backup_url.endswith("volume=vol-1")
    assert not status.state.is_terminal


def test_restore_status_map_decodes_per_replica():
    statuses = parse_restore_status(
        json.dumps(
            {
                "tcp://10.42.0.7:10000": {
                    "isRestoring": True,
                    "progress": 10,
                    "state": "in_progress",
                    "lastRestored": "backup-1",
                },
                "tcp://10.42.0.8:10000": {"isRestoring": False, "state": "error", "error": "disk full"},
            }
        )
    )

    assert statuses["tcp://10.42.0.7:10000"].last_restored == "backup-1"
    assert statuses["tcp://10.42.0.8:10000"].state is BackupState.ERROR
    assert statuses["tcp://10.42.0.8:10000"].error == "disk full"


def test_restore_status_bad_entry_fails_whole_decode():
    with pytest.raises(DecodeError):
        parse_restore_status('{"tcp://10.42.0.7:10000": "restoring"}')


def test_binary_version_decodes():
    version = parse_binary_version(
        '{"clientVersion": {"version": "v1.6.0", "cliAPIVersion": 9}, "serverVersion": null}'
    )

    assert version.client_api_version == 9
    assert version.server_api_version is None


# ============================================================================
# State machine and compatibility table
# ============================================================================

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("in_progress", BackupState.IN_PROGRESS),
        ("complete", BackupState.COMPLETED),
        ("error", BackupState.ERROR),
        ("", BackupState.UNKNOWN),
        ("bogus", BackupState.UNKNOWN),
        ("Complete", BackupState.UNKNOWN),
        (None, BackupState.UNKNOWN),
    ],
)
def test_convert_engine_backup_state(raw, expected):
    assert convert_engine_backup_state(raw) is expected


def test_only_completed_and_error_are_terminal():
    assert BackupState.COMPLETED.is_terminal
    assert BackupState.ERROR.is_terminal
    assert not BackupState.UNKNOWN.is_terminal


def test_compatibility_thresholds():
    assert not supports(4, Feature.BACKUP_NAME)
    assert supports(5, Feature.BACKUP_NAME)
    assert not supports(4, Feature.BACKING_IMAGE_CHECKSUM)
    assert supports(5, Feature.BACKING_IMAGE_CHECKSUM)
    assert not supports(8, Feature.REPLICA_INSTANCE_NAME)
    assert supports(9, Feature.REPLICA_INSTANCE_NAME)


# ============================================================================
# Restore failures
# ============================================================================

def test_restore_failure_with_replica_errors_is_structured():
    failure = decode_restore_failure(
        json.dumps(
            {
                "ReplicaErrors": [
                    {"Address": "tcp://10.42.0.7:10000", "Message": "no space left on device"},
                    {"Address": "tcp://10.42.0.8:10000", "Message": "backup not found"},
                ]
            }
        )
    )

    assert isinstance(failure, StructuredFailure)
    assert failure.replica_errors == {
        "tcp://10.42.0.7:10000": "no space left on device",
        "tcp://10.42.0.8:10000": "backup not found",
    }


@pytest.mark.parametrize(
    "output",
    [
        "time=... level=error msg=failed to restore",
        "",
        '{"ReplicaErrors": []}',
        '{"error": "failed"}',
    ],
)
def test_restore_failure_without_replica_attribution_is_raw(output):
    failure = decode_restore_failure(output)

    assert isinstance(failure, RawFailure)
    assert failure.output == output


# ============================================================================
# Backup locators
# ============================================================================

def test_encode_backup_url():
    assert (
        encode_backup_url("backup-1", "vol-1", "s3://bucket@us-east-1/")
        == "s3://bucket@us-east-1/?backup=backup-1&volume=vol-1"
    )


def test_encode_backup_url_appends_to_existing_query():
    assert (
        encode_backup_url("backup-1", "vol-1", "s3://bucket@us-east-1/?region=x")
        == "s3://bucket@us-east-1/?region=x&backup=backup-1&volume=vol-1"
    )


def test_encode_backup_url_with_missing_part_is_empty():
    assert encode_backup_url("", "vol-1", "s3://bucket@us-east-1/") == ""
    assert encode_backup_volume_url("vol-1", "") == ""


def test_encode_backup_volume_url():
    assert (
        encode_backup_volume_url("vol-1", "s3://bucket@us-east-1/")
        == "s3://bucket@us-east-1/?volume=vol-1"
    )


def test_decode_backup_url():
    backup_name, volume_name, dest_url = decode_backup_url(
        "s3://bucket@us-east-1/?backup=backup-1&volume=vol-1"
    )

    assert (backup_name, volume_name, dest_url) == ("backup-1", "vol-1", "s3://bucket@us-east-1/")


def test_decode_backup_url_rejects_invalid_names():
    with pytest.raises(ValidationError):
        decode_backup_url("s3://bucket@us-east-1/?volume=vol-1")
