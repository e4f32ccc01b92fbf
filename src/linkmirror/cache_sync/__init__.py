# SPDX-License-Identifier: MIT
"""Sync engine: scheduler state machine and its control surface."""

from .control import SyncController
from .scheduler import SyncScheduler, create_sync_scheduler


__all__ = [
    "SyncController",
    "SyncScheduler",
    "create_sync_scheduler",
]
