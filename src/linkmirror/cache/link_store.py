# SPDX-License-Identifier: MIT
"""Typed access to the store keys owned by the sync engine."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from ..constants import SNAPSHOT_RETENTION_DAYS
from ..enums import SyncStatus
from ..logging_config import get_detail_logger
from ..models import Credential, DateInfo, Record, RemoteConfig, Snapshot, SyncState
from .key_value_store import KeyValueStore


detail_logger = get_detail_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LinkStore:
    """Adapter mapping credentials, config, snapshots and sync status onto keys."""

    TOKEN_KEY = "credential.token"
    TOKEN_EXPIRY_KEY = "credential.expires_at"
    REMOTE_CONFIG_KEY = "remote_config"
    SNAPSHOT_DATA_KEY = "snapshot.data"
    SNAPSHOT_CATEGORIES_KEY = "snapshot.categories"
    SNAPSHOT_DATE_INFO_KEY = "snapshot.date_info"
    SNAPSHOT_TIMESTAMP_KEY = "snapshot.timestamp"
    SYNC_STATUS_KEY = "sync.status"
    TEST_MODE_KEY = "test_mode"

    SNAPSHOT_KEYS = (
        SNAPSHOT_DATA_KEY,
        SNAPSHOT_CATEGORIES_KEY,
        SNAPSHOT_DATE_INFO_KEY,
        SNAPSHOT_TIMESTAMP_KEY,
    )

    def __init__(
        self,
        store: KeyValueStore,
        retention_days: int = SNAPSHOT_RETENTION_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.retention = timedelta(days=retention_days)
        self.clock = clock

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------

    async def load_credential(self) -> Credential | None:
        """Load the persisted credential, expired or not."""
        result = await self.store.get([self.TOKEN_KEY, self.TOKEN_EXPIRY_KEY])
        token = result.get(self.TOKEN_KEY)
        expiry = result.get(self.TOKEN_EXPIRY_KEY)
        if not token or not expiry:
            return None

        try:
            return Credential(token=token, expires_at=datetime.fromisoformat(expiry))
        except (ValueError, ValidationError):
            detail_logger.warning("Ignoring malformed persisted credential")
            return None

    async def save_credential(self, credential: Credential) -> None:
        await self.store.set(
            {
                self.TOKEN_KEY: credential.token,
                self.TOKEN_EXPIRY_KEY: credential.expires_at.isoformat(),
            }
        )

    async def clear_credential(self) -> None:
        await self.store.remove([self.TOKEN_KEY, self.TOKEN_EXPIRY_KEY])

    # ------------------------------------------------------------------
    # Remote configuration
    # ------------------------------------------------------------------

    async def load_remote_config(self) -> RemoteConfig | None:
        result = await self.store.get([self.REMOTE_CONFIG_KEY])
        data = result.get(self.REMOTE_CONFIG_KEY)
        if not data:
            return None

        try:
            return RemoteConfig(**data)
        except (TypeError, ValidationError) as e:
            detail_logger.warning(f"Ignoring invalid persisted remote config: {e}")
            return None

    async def save_remote_config(self, config: RemoteConfig) -> None:
        data = config.model_dump()
        data["updated_at"] = self.clock().isoformat()
        await self.store.set({self.REMOTE_CONFIG_KEY: data})

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def load_snapshot(self) -> Snapshot | None:
        """Load the persisted snapshot.

        Returns:
            The snapshot, or None when absent, malformed, or older than the
            retention window
        """
        result = await self.store.get(list(self.SNAPSHOT_KEYS))
        data = result.get(self.SNAPSHOT_DATA_KEY)
        categories = result.get(self.SNAPSHOT_CATEGORIES_KEY)
        timestamp = result.get(self.SNAPSHOT_TIMESTAMP_KEY)

        if data is None or categories is None or not timestamp:
            return None

        try:
            fetched_at = datetime.fromisoformat(timestamp)
        except ValueError:
            detail_logger.warning(f"Ignoring snapshot with bad timestamp {timestamp!r}")
            return None

        if self.clock() - fetched_at > self.retention:
            detail_logger.info(f"Cached snapshot from {timestamp} is stale")
            return None

        try:
            return Snapshot(
                categories=categories,
                records_by_category={
                    category: [Record(**item) for item in items]
                    for category, items in data.items()
                },
                fetched_at=fetched_at,
                date_info=DateInfo(**(result.get(self.SNAPSHOT_DATE_INFO_KEY) or {})),
            )
        except (TypeError, AttributeError, ValidationError) as e:
            detail_logger.warning(f"Ignoring malformed cached snapshot: {e}")
            return None

    async def save_snapshot(self, snapshot: Snapshot) -> None:
        dumped: dict[str, Any] = snapshot.model_dump(mode="json")
        await self.store.set(
            {
                self.SNAPSHOT_DATA_KEY: dumped["records_by_category"],
                self.SNAPSHOT_CATEGORIES_KEY: dumped["categories"],
                self.SNAPSHOT_DATE_INFO_KEY: dumped["date_info"],
                self.SNAPSHOT_TIMESTAMP_KEY: snapshot.fetched_at.isoformat(),
            }
        )
        detail_logger.debug(
            f"Saved snapshot with {len(snapshot.categories)} categories "
            f"and {snapshot.record_count()} records"
        )

    async def clear_snapshot(self) -> None:
        """Drop the cached snapshot and the persisted sync status."""
        await self.store.remove([*self.SNAPSHOT_KEYS, self.SYNC_STATUS_KEY])

    # ------------------------------------------------------------------
    # Sync status
    # ------------------------------------------------------------------

    async def load_sync_state(self) -> SyncState | None:
        result = await self.store.get([self.SYNC_STATUS_KEY])
        data = result.get(self.SYNC_STATUS_KEY)
        if not data:
            return None

        try:
            return SyncState(**data)
        except (TypeError, ValidationError) as e:
            detail_logger.warning(f"Ignoring invalid persisted sync status: {e}")
            return None

    async def save_sync_state(self, state: SyncState) -> None:
        data = state.model_dump(
            mode="json",
            include={"status", "message", "last_sync_at", "retry_count", "updated_at"},
        )
        await self.store.set({self.SYNC_STATUS_KEY: data})

    # ------------------------------------------------------------------
    # Test mode
    # ------------------------------------------------------------------

    async def get_test_mode(self) -> bool:
        result = await self.store.get([self.TEST_MODE_KEY])
        return bool(result.get(self.TEST_MODE_KEY, False))

    async def set_test_mode(self, enabled: bool) -> None:
        await self.store.set({self.TEST_MODE_KEY: enabled})


def restored_state(state: SyncState | None) -> SyncState:
    """Derive the startup state from a persisted one.

    A persisted `syncing` status belongs to a process that died mid-sync and is
    restored as idle.
    """
    if state is None:
        return SyncState()
    if state.status is SyncStatus.SYNCING:
        return state.model_copy(
            update={"status": SyncStatus.IDLE, "message": "Interrupted sync"}
        )
    return state
