# SPDX-License-Identifier: MIT
"""Enums for link mirror."""

from enum import Enum


class SyncStatus(str, Enum):
    """States of the sync state machine."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class MessageType(str, Enum):
    """Control surface message types."""

    SYNC_NOW = "SYNC_NOW"
    GET_STATUS = "GET_STATUS"
    START_PERIODIC_SYNC = "START_PERIODIC_SYNC"
    STOP_PERIODIC_SYNC = "STOP_PERIODIC_SYNC"
    SYNC_COMPLETE = "SYNC_COMPLETE"


class SyncTrigger(str, Enum):
    """What started a sync attempt."""

    MANUAL = "manual"
    PERIODIC = "periodic"
    RETRY = "retry"
