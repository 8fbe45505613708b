"""
Database connection management.

Provides the SQLite connection behind the durable record backend.
"""

import sqlite3
from pathlib import Path

DEFAULT_DB_PATH = "sales_tracker.db"


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Create and return a SQLite database connection with foreign keys enabled.

    The parent directory is created on first use so a fresh config can point
    at a path that does not exist yet.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLite connection with foreign key constraints enabled
    """
    path = Path(db_path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.execute("PRAGMA foreign_keys = ON")
    return conn
