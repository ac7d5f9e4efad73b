"""
Database connection management.

Provides SQLite connections for the usage and tracking stores.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "usage_window.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a SQLite connection whose rows are addressable by column name.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection using sqlite3.Row as row factory
    """
    conn = sqlite3.connect(str(Path(db_path)))
    conn.row_factory = sqlite3.Row
    return conn
