# SPDX-License-Identifier: MIT
"""Database schema initialization for the key-value store."""

import sqlite3
from pathlib import Path


def init_database(db_path: Path) -> None:
    """Initialize the key-value store schema.

    Args:
        db_path: Path to the SQLite database file
    """
    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            """
            -- One JSON-encoded value per key
            CREATE TABLE IF NOT EXISTS key_value_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        conn.commit()
