# SPDX-License-Identifier: MIT
"""Persisted key-value store backing the sync engine."""

import asyncio
import json
import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from ..exceptions import StoreError
from ..logging_config import get_detail_logger, get_status_logger
from .connection_utils import get_configured_connection
from .schema import init_database


detail_logger = get_detail_logger()
status_logger = get_status_logger()

MAX_KEY_LENGTH = 255


def _validate_key(key: str) -> None:
    if not key or not key.strip():
        raise ValueError("Store key cannot be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise ValueError(
            f"Store key exceeds maximum length ({MAX_KEY_LENGTH} characters)"
        )


class KeyValueStore:
    """SQLite key-value store with JSON-encoded values.

    All public operations are coroutines; the blocking SQLite work runs in a
    worker thread. Any failure of the underlying database surfaces as
    StoreError.
    """

    def __init__(self, db_path: Path | None = None):
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file. If None, gets from config.

        Raises:
            StoreError: If the database directory or schema cannot be created.
        """
        if db_path is None:
            # Local import to avoid circular dependency (config -> models -> cache)
            from ..config import get_config_manager

            db_path = Path(get_config_manager().load_config().cache.db_path)
            detail_logger.debug(f"Using database path from config: {db_path}")

        self.db_path = Path(db_path)

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            init_database(self.db_path)
        except (sqlite3.Error, OSError) as e:
            error_msg = f"Failed to initialize store at {self.db_path}"
            status_logger.error(error_msg)
            detail_logger.exception(f"{error_msg}: {e}")
            raise StoreError(error_msg) from e

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Get values for the given keys.

        Missing keys are absent from the result.

        Raises:
            StoreError: If the database read fails
        """
        key_list = list(keys)
        for key in key_list:
            _validate_key(key)
        return await asyncio.to_thread(self._get_sync, key_list)

    async def set(self, items: Mapping[str, Any]) -> None:
        """Store all items in one transaction.

        Raises:
            StoreError: If the database write fails
        """
        for key in items:
            _validate_key(key)
        await asyncio.to_thread(self._set_sync, dict(items))

    async def remove(self, keys: Iterable[str]) -> None:
        """Remove the given keys; unknown keys are ignored."""
        key_list = list(keys)
        for key in key_list:
            _validate_key(key)
        await asyncio.to_thread(self._remove_sync, key_list)

    async def clear(self) -> None:
        """Remove every key."""
        await asyncio.to_thread(self._clear_sync)

    def _get_sync(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}

        placeholders = ", ".join("?" for _ in keys)
        try:
            with get_configured_connection(self.db_path) as conn:
                rows = conn.execute(
                    f"SELECT key, value FROM key_value_store WHERE key IN ({placeholders})",
                    keys,
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read keys {keys}: {e}") from e

        result: dict[str, Any] = {}
        for key, raw_value in rows:
            try:
                result[key] = json.loads(raw_value)
            except json.JSONDecodeError as e:
                raise StoreError(f"Corrupt value stored for key '{key}'") from e

        detail_logger.debug(f"Store read: requested={keys}, found={list(result)}")
        return result

    def _set_sync(self, items: dict[str, Any]) -> None:
        if not items:
            return

        try:
            rows = [(key, json.dumps(value)) for key, value in items.items()]
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value is not JSON serializable: {e}") from e

        try:
            with get_configured_connection(self.db_path) as conn:
                conn.executemany(
                    """
                    INSERT OR REPLACE INTO key_value_store (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    """,
                    rows,
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write keys {list(items)}: {e}") from e

        detail_logger.debug(f"Store write: keys={list(items)}")

    def _remove_sync(self, keys: list[str]) -> None:
        if not keys:
            return

        try:
            with get_configured_connection(self.db_path) as conn:
                conn.executemany(
                    "DELETE FROM key_value_store WHERE key = ?",
                    [(key,) for key in keys],
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to remove keys {keys}: {e}") from e

        detail_logger.debug(f"Store remove: keys={keys}")

    def _clear_sync(self) -> None:
        try:
            with get_configured_connection(self.db_path) as conn:
                conn.execute("DELETE FROM key_value_store")
                conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to clear store: {e}") from e

        detail_logger.debug("Store cleared")
