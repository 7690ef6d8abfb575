# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Engine Backup Operations - Launch and poll backups and restores of a volume.

Backup creation and restore only launch work on the replicas and return;
progress is observed by polling the status commands until a terminal
state is reported. Optional arguments are passed according to the
engine's reported CLI API version (see backupdriver.compat).
"""

from typing import Any, Awaitable, Callable, Dict, List, Mapping

import structlog

from backupdriver.compat import Feature, supports
from backupdriver.config import BackupTarget, DriverConfig
from backupdriver.credentials import get_backup_credential_env
from backupdriver.errors import explain_head_snapshot
from backupdriver.exceptions import (
    ExecutionError,
    InvalidOperationError,
    ReplicaTaskError,
    SnapshotLookupError,
    SnapshotNotFoundError,
)
from backupdriver.executor import NO_TIMEOUT, Executor, ProcessExecutor
from backupdriver.protocol import (
    BackupCreateInfo,
    BackupStatus,
    BinaryVersion,
    RestoreStatus,
    StructuredFailure,
    decode_restore_failure,
    encode_backup_url,
    parse_backup_create_info,
    parse_backup_status,
    parse_binary_version,
    parse_restore_status,
)

logger = structlog.get_logger()

# Reserved name of a volume's live, still-mutable head
VOLUME_HEAD_NAME = "volume-head"

# Placeholder older engines require alongside a backing image name
DEPRECATED_BACKING_IMAGE_URL = "deprecated-field"

SnapshotLookup = Callable[[str], Awaitable[Any]]


class EngineBinary:
    """
    Runs engine-scoped `backup` subcommands for one volume.

    Args:
        config: Driver configuration (binary location, default timeout)
        volume_name: Volume the engine serves
        controller_url: Engine controller address passed as `--url`
        image: Engine image to use instead of config.engine_image
        executor: Process executor (defaults to ProcessExecutor)
    """

    def __init__(
        self,
        config: DriverConfig,
        volume_name: str,
        controller_url: str = "",
        image: str | None = None,
        executor: Executor | None = None,
    ):
        self.config = config
        self.volume_name = volume_name
        self.controller_url = controller_url
        self.image = image or config.engine_image
        self.executor: Executor = executor or ProcessExecutor()

    @property
    def engine_binary(self) -> str:
        return str(self.config.engine_binary_path(self.image))

    def _with_url(self, args: List[str]) -> List[str]:
        if self.controller_url:
            return ["--url", self.controller_url, *args]
        return args

    async def execute_engine_binary(self, *args: str) -> str:
        return await self.executor.execute(
            [],
            self.engine_binary,
            self._with_url(list(args)),
            self.config.execution_timeout_seconds,
        )

    async def execute_engine_binary_without_timeout(self, envs: List[str], *args: str) -> str:
        return await self.executor.execute(
            envs,
            self.engine_binary,
            self._with_url(list(args)),
            NO_TIMEOUT,
        )

    async def version_get(self, client_only: bool = True) -> BinaryVersion:
        """
        Query the engine's client (and optionally server) versions.

        Args:
            client_only: Skip contacting the engine controller
        """
        args = ["version"]
        if client_only:
            args.append("--client-only")
        else:
            args = self._with_url(args)
        output = await self.executor.execute(
            [], self.engine_binary, args, self.config.execution_timeout_seconds
        )
        return parse_binary_version(output)

    async def snapshot_backup(
        self,
        target: BackupTarget,
        snapshot_name: str,
        snapshot_lookup: SnapshotLookup,
        backup_name: str = "",
        backing_image_name: str = "",
        backing_image_checksum: str = "",
        labels: Mapping[str, str] | None = None,
    ) -> BackupCreateInfo:
        """
        Start backing up a snapshot to a target.

        The call returns once the engine has launched the backup; use
        snapshot_backup_status() with the returned id to follow it.

        Args:
            target: Backup target URL and credential
            snapshot_name: Existing snapshot to back up (never the volume head)
            snapshot_lookup: Async callable returning the snapshot, or None
            backup_name: Backup name to assign (ignored by legacy engines)
            backing_image_name: Backing image of the volume, if any
            backing_image_checksum: Checksum of that backing image
            labels: Labels recorded on the backup

        Returns:
            BackupCreateInfo with the backup id and the replica doing the work

        Raises:
            InvalidOperationError: If snapshot_name is the volume head
            CredentialError: If the target credential is incomplete
            SnapshotNotFoundError: If the snapshot does not exist
            ExecutionError: If the engine fails
        """
        if snapshot_name == VOLUME_HEAD_NAME:
            raise InvalidOperationError(explain_head_snapshot(VOLUME_HEAD_NAME))

        envs = get_backup_credential_env(target.url, target.credential)

        try:
            snapshot = await snapshot_lookup(snapshot_name)
        except Exception as e:
            raise SnapshotLookupError(
                f"error getting snapshot '{snapshot_name}', volume '{self.volume_name}': {e}"
            ) from e
        if snapshot is None:
            raise SnapshotNotFoundError(
                f"could not find snapshot '{snapshot_name}' to backup, volume '{self.volume_name}'"
            )

        version = await self.version_get(client_only=True)
        cli_api_version = version.client_api_version

        args = ["backup", "create", "--dest", target.url]
        if backing_image_name:
            args += ["--backing-image-name", backing_image_name]
            if not supports(cli_api_version, Feature.BACKING_IMAGE_CHECKSUM):
                args += ["--backing-image-url", DEPRECATED_BACKING_IMAGE_URL]
            elif backing_image_checksum:
                args += ["--backing-image-checksum", backing_image_checksum]
        if backup_name and supports(cli_api_version, Feature.BACKUP_NAME):
            args += ["--backup-name", backup_name]
        for key, value in sorted((labels or {}).items()):
            args += ["--label", f"{key}={value}"]
        args.append(snapshot_name)

        output = await self.execute_engine_binary_without_timeout(envs, *args)
        info = parse_backup_create_info(output)

        logger.info(
            "backup_created",
            backup_id=info.backup_id,
            volume=self.volume_name,
            snapshot=snapshot_name,
            replica_address=info.replica_address,
        )
        return info

    async def snapshot_backup_status(
        self,
        backup_name: str,
        replica_address: str = "",
        replica_name: str = "",
    ) -> BackupStatus:
        """
        Poll the progress of a backup.

        The replica instance name is only forwarded to engines new enough
        to accept it; older engines get the call without it.
        """
        args = ["backup", "status", backup_name]
        if replica_address:
            args += ["--replica", replica_address]

        # The replica name is often unknown; skip the version query then
        if replica_name:
            version = await self.version_get(client_only=True)
            if supports(version.client_api_version, Feature.REPLICA_INSTANCE_NAME):
                args += ["--replica-instance-name", replica_name]

        output = await self.execute_engine_binary(*args)
        return parse_backup_status(output)

    async def backup_restore(
        self,
        target: BackupTarget,
        backup_name: str,
        backup_volume_name: str,
        last_restored: str = "",
    ) -> None:
        """
        Start restoring a backup into this volume's replicas.

        Args:
            target: Backup target URL and credential
            backup_name: Backup to restore
            backup_volume_name: Volume the backup belongs to
            last_restored: Last backup already restored; makes the restore incremental

        Raises:
            CredentialError: If the target credential is incomplete
            ReplicaTaskError: If replicas reported individual failures
            ExecutionError: If the engine failed for any other reason
        """
        backup_url = encode_backup_url(backup_name, backup_volume_name, target.url)
        envs = get_backup_credential_env(target.url, target.credential)

        args = ["backup", "restore", backup_url]
        if last_restored:
            args += ["--incrementally", "--last-restored", last_restored]

        try:
            await self.execute_engine_binary_without_timeout(envs, *args)
        except ExecutionError as e:
            failure = decode_restore_failure(e.output)
            if isinstance(failure, StructuredFailure):
                raise ReplicaTaskError(failure.replica_errors) from e
            logger.warning(
                "restore_error_not_decodable",
                volume=self.volume_name,
                backup_url=backup_url,
                reason=failure.reason,
            )
            raise

        logger.info("backup_restore_started", backup_url=backup_url, volume=self.volume_name)

    async def backup_restore_status(self) -> Dict[str, RestoreStatus]:
        """
        Poll restore progress of every replica.

        Returns:
            Mapping of replica address to its RestoreStatus
        """
        output = await self.execute_engine_binary("backup", "restore-status")
        return parse_restore_status(output)
