# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup state normalization.

The engine reports progress states as lowercase strings. They are mapped
onto BackupState once, when a record is decoded.
"""

from enum import Enum

ENGINE_STATE_IN_PROGRESS = "in_progress"
ENGINE_STATE_COMPLETE = "complete"
ENGINE_STATE_ERROR = "error"


class BackupState(str, Enum):
    """Canonical backup (and restore) progress state."""

    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (BackupState.COMPLETED, BackupState.ERROR)


_ENGINE_STATES = {
    ENGINE_STATE_IN_PROGRESS: BackupState.IN_PROGRESS,
    ENGINE_STATE_COMPLETE: BackupState.COMPLETED,
    ENGINE_STATE_ERROR: BackupState.ERROR,
}


def convert_engine_backup_state(state: str | None) -> BackupState:
    """
    Convert an engine backup state string to a BackupState.

    Anything unrecognized, including an empty string, maps to UNKNOWN.
    """
    return _ENGINE_STATES.get(state or "", BackupState.UNKNOWN)
