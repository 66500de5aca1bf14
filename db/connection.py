from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional


_SAVEPOINT_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def get_connection(db_path: str, timeout: Optional[float] = 30.0) -> sqlite3.Connection:
    """Open a SQLite connection with sane pragmas for concurrent local use.

    - autocommit mode: single statements commit on their own, multi-statement
      units go through transaction()/savepoint()
    - WAL journal for fewer writer blocks
    - NORMAL synchronous for performance
    - foreign_keys ON to enforce integrity
    """
    conn = sqlite3.connect(db_path, timeout=timeout or 30.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    # Pragmas
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


@contextmanager
def savepoint(conn: sqlite3.Connection, name: str) -> Iterator[sqlite3.Connection]:
    """Nested unit of work; rolled back alone when the body raises."""
    if not _SAVEPOINT_NAME.match(name):
        raise ValueError(f"Invalid savepoint name: {name!r}")
    conn.execute(f"SAVEPOINT {name};")
    try:
        yield conn
    except BaseException:
        conn.execute(f"ROLLBACK TO SAVEPOINT {name};")
        conn.execute(f"RELEASE SAVEPOINT {name};")
        raise
    conn.execute(f"RELEASE SAVEPOINT {name};")


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Explicit write transaction; becomes a savepoint when one is already open."""
    if conn.in_transaction:
        with savepoint(conn, "nested_tx"):
            yield conn
        return
    conn.execute("BEGIN IMMEDIATE;")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK;")
        raise
    conn.execute("COMMIT;")
