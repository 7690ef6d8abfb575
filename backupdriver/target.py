# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Target Client - Catalog reads and deletions against a remote store.

Each method runs the engine binary once with the target's credential
environment. A remote object that does not exist is not an error for
reads and deletes: reads return an empty result and deletes succeed.
"""

from typing import List, Sequence

import structlog

from backupdriver.config import BackupTarget, DriverConfig
from backupdriver.credentials import get_backup_credential_env
from backupdriver.errors import explain_missing_credential_secret
from backupdriver.exceptions import (
    BackupOperationError,
    ConfigurationError,
    ExecutionError,
)
from backupdriver.executor import NO_TIMEOUT, Executor, ProcessExecutor, is_not_found
from backupdriver.protocol import (
    Backup,
    BackupVolume,
    ConfigMetadata,
    parse_backup_config,
    parse_backup_names_list,
    parse_backup_volume_config,
    parse_backup_volume_names_list,
    parse_config_metadata,
)

logger = structlog.get_logger()


class BackupTargetClient:
    """
    Runs `backup` subcommands of the engine binary against one target.

    Args:
        config: Driver configuration (binary location, default timeout)
        target: Backup target URL and credential
        image: Engine image to use instead of config.engine_image
        executor: Process executor (defaults to ProcessExecutor)
    """

    def __init__(
        self,
        config: DriverConfig,
        target: BackupTarget,
        image: str | None = None,
        executor: Executor | None = None,
    ):
        self.config = config
        self.target = target
        self.image = image or config.engine_image
        self.executor: Executor = executor or ProcessExecutor()

    @property
    def url(self) -> str:
        return self.target.url

    @property
    def engine_binary(self) -> str:
        return str(self.config.engine_binary_path(self.image))

    async def execute_engine_binary(self, *args: str) -> str:
        """Run with the configured (bounded) execution timeout."""
        return await self.execute_engine_binary_with_timeout(
            self.config.execution_timeout_seconds, *args
        )

    async def execute_engine_binary_with_timeout(self, timeout: float | None, *args: str) -> str:
        """Run with an explicit timeout in seconds."""
        envs = get_backup_credential_env(self.target.url, self.target.credential)
        return await self.executor.execute(envs, self.engine_binary, list(args), timeout)

    async def execute_engine_binary_without_timeout(self, *args: str) -> str:
        """Run with no deadline; used for operations of unknown duration."""
        return await self.execute_engine_binary_with_timeout(NO_TIMEOUT, *args)

    async def _read(self, context: str, args: Sequence[str]) -> str | None:
        try:
            return await self.execute_engine_binary(*args)
        except ExecutionError as e:
            if is_not_found(e):
                logger.debug("backup_target_object_absent", url=self.url, args=list(args))
                return None
            raise BackupOperationError(
                f"{context}: {e.message}",
                details={"url": self.url},
            ) from e

    async def _delete(self, context: str, args: Sequence[str]) -> bool:
        try:
            await self.execute_engine_binary_without_timeout(*args)
        except ExecutionError as e:
            if is_not_found(e):
                logger.warning("backup_target_delete_already_absent", url=self.url, args=list(args))
                return False
            raise BackupOperationError(
                f"{context}: {e.message}",
                details={"url": self.url},
            ) from e
        return True

    async def backup_volume_name_list(self) -> List[str]:
        """
        List the names of all backup volumes on the target.

        Returns:
            Sorted names that pass name validation; empty if the target has none
        """
        output = await self._read(
            "error listing backup volume names",
            ["backup", "ls", "--volume-only", self.url],
        )
        if output is None:
            return []
        return parse_backup_volume_names_list(output)

    async def backup_name_list(self, volume_name: str) -> List[str]:
        """
        List the backup names of one volume.

        Args:
            volume_name: Backup volume name

        Returns:
            Sorted backup names; empty if the volume has no catalog on the target

        Raises:
            VolumeNotFoundInDataError: If the listing omits the volume
            CatalogError: If the catalog entry reports an error
        """
        if not volume_name:
            return []
        output = await self._read(
            f"error listing volume {volume_name} backup",
            ["backup", "ls", "--volume", volume_name, self.url],
        )
        if output is None:
            return []
        return parse_backup_names_list(output, volume_name)

    async def backup_volume_delete(self, volume_name: str) -> None:
        """Delete a backup volume and all its backups from the target."""
        deleted = await self._delete(
            "error deleting backup volume",
            ["backup", "rm", "--volume", volume_name, self.url],
        )
        if deleted:
            logger.info("backup_volume_deleted", volume=volume_name, url=self.url)

    async def backup_volume_get(self, backup_volume_url: str) -> BackupVolume | None:
        """Inspect a backup volume config by its locator."""
        output = await self._read(
            f"error getting backup volume config {backup_volume_url}",
            ["backup", "inspect-volume", backup_volume_url],
        )
        if output is None:
            return None
        return parse_backup_volume_config(output)

    async def backup_get(self, backup_config_url: str) -> Backup | None:
        """Inspect a backup config by its locator."""
        output = await self._read(
            f"error getting backup config {backup_config_url}",
            ["backup", "inspect", backup_config_url],
        )
        if output is None:
            return None
        return parse_backup_config(output)

    async def backup_config_meta_get(self, url: str) -> ConfigMetadata | None:
        """
        Probe a config object's metadata without fetching the config.

        Returns:
            ConfigMetadata, or None if the object does not exist
        """
        output = await self._read(
            f"error getting config metadata {url}",
            ["backup", "head", url],
        )
        if output is None:
            return None
        return parse_config_metadata(output)

    async def backup_delete(self, backup_url: str) -> None:
        """Delete one backup by its locator."""
        logger.info("backup_delete_started", backup_url=backup_url)
        deleted = await self._delete(
            f"error deleting backup {backup_url}",
            ["backup", "rm", backup_url],
        )
        if deleted:
            logger.info("backup_deleted", backup_url=backup_url)

    async def backup_cleanup_all_mounts(self) -> None:
        """Release every mount point the engine holds for backup stores on this node."""
        try:
            await self.execute_engine_binary_without_timeout("backup", "cleanup-all-mounts")
        except ExecutionError as e:
            raise BackupOperationError(
                f"error clean up all mount points: {e.message}",
                details={"url": self.url},
            ) from e


def new_backup_target_client(
    config: DriverConfig,
    target: BackupTarget,
    executor: Executor | None = None,
) -> BackupTargetClient:
    """
    Create a client for a target, checking a credential is present when needed.

    Raises:
        ConfigurationError: If the URL is unsupported, or the backend
            requires a credential and none was given
    """
    backend = target.backend_type
    if backend.requires_credential and target.credential is None:
        raise ConfigurationError(explain_missing_credential_secret(backend.value))
    return BackupTargetClient(config, target, executor=executor)
