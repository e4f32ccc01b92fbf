# SPDX-License-Identifier: MIT
"""SQLite connections for the key-value store."""

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..logging_config import get_detail_logger


detail_logger = get_detail_logger()

DEFAULT_BUSY_TIMEOUT = 30.0


def configure_sqlite_connection(conn: sqlite3.Connection, enable_wal: bool = True) -> None:
    """Apply the store's pragmas to a fresh connection."""
    if enable_wal:
        conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA temp_store = MEMORY")


@contextmanager
def get_configured_connection(
    db_path: str | Path,
    timeout: float = DEFAULT_BUSY_TIMEOUT,
    enable_wal: bool = True,
) -> Iterator[sqlite3.Connection]:
    """Open a configured connection and close it on exit.

    Args:
        db_path: Store database file
        timeout: Seconds to wait on a locked database
        enable_wal: Switch the database to WAL journaling

    Yields:
        The open connection
    """
    detail_logger.debug(f"Opening store connection to {db_path}")
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    try:
        configure_sqlite_connection(conn, enable_wal=enable_wal)
        yield conn
    finally:
        conn.close()
