"""SQLite key-value layer for the persisted tracker state."""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

TIME_KEY = "timeData"
STREAK_KEY = "focusStreak"
LAST_DATE_KEY = "lastDate"
SCHEMA_KEY = "schemaVersion"
REVISION_KEY = "revision"

SCHEMA_VERSION = 1

DATE_FMT = "%Y-%m-%d"


@dataclass(slots=True)
class PersistedState:
    """Typed view of the flat ``timeData``/``focusStreak``/``lastDate`` blob."""

    time_data: dict[str, int] = field(default_factory=dict)
    focus_streak: int = 0
    last_date: Optional[date] = None
    schema_version: int = SCHEMA_VERSION
    revision: int = field(default=0, compare=False)


class StaleStateError(Exception):
    """Raised when another writer changed the store since it was last read."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Stored revision is {actual}, expected {expected}")
        self.expected = expected
        self.actual = actual


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
        timeout=5,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements as one write transaction."""
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS state (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )


def read_raw(conn: sqlite3.Connection) -> dict[str, Any]:
    raw: dict[str, Any] = {}
    for row in conn.execute("SELECT key, value FROM state"):
        try:
            raw[row["key"]] = json.loads(row["value"])
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable value for %s", row["key"])
    return raw


def load_state(conn: sqlite3.Connection) -> PersistedState:
    """Read the stored state, repairing and rewriting it if its shape is stale."""
    raw = read_raw(conn)
    state, migrated = migrate_state(raw)
    if migrated:
        logger.info("Migrating stored state to schema version %d", SCHEMA_VERSION)
        state.revision = save_state(conn, state)
    return state


def read_revision(conn: sqlite3.Connection) -> int:
    """Return the write counter every writer bumps; 0 for a fresh store."""
    row = conn.execute(
        "SELECT value FROM state WHERE key = ?", (REVISION_KEY,)
    ).fetchone()
    if row is None:
        return 0
    try:
        value = json.loads(row["value"])
    except (TypeError, ValueError):
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def save_state(
    conn: sqlite3.Connection,
    state: PersistedState,
    expected_revision: Optional[int] = None,
) -> int:
    """Write the full state and return the new revision.

    With ``expected_revision`` the write only happens if nobody else wrote
    since that revision; otherwise :class:`StaleStateError` is raised and the
    store is left untouched.
    """
    values: dict[str, Any] = {
        TIME_KEY: state.time_data,
        STREAK_KEY: state.focus_streak,
        SCHEMA_KEY: SCHEMA_VERSION,
    }
    with transaction(conn):
        current = read_revision(conn)
        if expected_revision is not None and current != expected_revision:
            raise StaleStateError(expected_revision, current)
        _write_values(conn, values)
        if state.last_date is None:
            conn.execute("DELETE FROM state WHERE key = ?", (LAST_DATE_KEY,))
        else:
            _write_values(conn, {LAST_DATE_KEY: state.last_date.strftime(DATE_FMT)})
        _write_values(conn, {REVISION_KEY: current + 1})
    return current + 1


def clear_time_data(conn: sqlite3.Connection) -> int:
    """Empty ``timeData`` only; streak and date are left alone."""
    with transaction(conn):
        revision = read_revision(conn) + 1
        _write_values(conn, {TIME_KEY: {}, REVISION_KEY: revision})
    return revision


def _write_values(conn: sqlite3.Connection, values: Mapping[str, Any]) -> None:
    conn.executemany(
        """
        INSERT INTO state (key, value) VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value
        """,
        [(key, json.dumps(value, sort_keys=True)) for key, value in values.items()],
    )


def migrate_state(raw: Mapping[str, Any]) -> tuple[PersistedState, bool]:
    """Coerce a raw key-value blob into the current schema.

    Returns the repaired state and whether anything had to change.
    """
    changed = raw.get(SCHEMA_KEY) != SCHEMA_VERSION

    time_data: dict[str, int] = {}
    raw_times = raw.get(TIME_KEY, {})
    if not isinstance(raw_times, dict):
        raw_times = {}
        changed = True
    for domain, seconds in raw_times.items():
        coerced = _coerce_seconds(seconds)
        if not isinstance(domain, str) or not domain or coerced is None:
            changed = True
            continue
        if not isinstance(seconds, int):
            changed = True
        time_data[domain] = coerced

    streak = raw.get(STREAK_KEY, 0)
    if isinstance(streak, bool) or not isinstance(streak, int) or streak < 0:
        streak = 0
        changed = True

    last_date: Optional[date] = None
    raw_date = raw.get(LAST_DATE_KEY)
    if raw_date is not None:
        last_date = parse_date(raw_date)
        if last_date is None:
            changed = True

    revision = raw.get(REVISION_KEY, 0)
    if isinstance(revision, bool) or not isinstance(revision, int) or revision < 0:
        revision = 0

    return (
        PersistedState(
            time_data=time_data,
            focus_streak=streak,
            last_date=last_date,
            revision=revision,
        ),
        changed,
    )


def parse_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _coerce_seconds(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and math.isfinite(value) and value >= 0:
        return math.floor(value)
    return None
