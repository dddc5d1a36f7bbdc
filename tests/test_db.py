import json
from datetime import date

import pytest

from focus_streak.db import (
    SCHEMA_VERSION,
    PersistedState,
    StaleStateError,
    clear_time_data,
    database_connection,
    load_state,
    migrate_state,
    read_raw,
    read_revision,
    save_state,
)


def test_empty_database_loads_first_run_state(db_path):
    with database_connection(db_path) as conn:
        state = load_state(conn)

    assert state == PersistedState()
    assert state.last_date is None


def test_save_and_load_use_flat_keys(db_path):
    state = PersistedState(
        time_data={"github.com": 120}, focus_streak=3, last_date=date(2026, 3, 10)
    )
    with database_connection(db_path) as conn:
        save_state(conn, state)
        raw = read_raw(conn)
        loaded = load_state(conn)

    assert raw == {
        "timeData": {"github.com": 120},
        "focusStreak": 3,
        "lastDate": "2026-03-10",
        "schemaVersion": SCHEMA_VERSION,
        "revision": 1,
    }
    assert loaded == state
    assert loaded.revision == 1


def test_clear_time_data_keeps_streak_and_date(db_path):
    with database_connection(db_path) as conn:
        save_state(
            conn,
            PersistedState(
                time_data={"github.com": 120}, focus_streak=3, last_date=date(2026, 3, 10)
            ),
        )
        clear_time_data(conn)
        loaded = load_state(conn)

    assert loaded.time_data == {}
    assert loaded.focus_streak == 3
    assert loaded.last_date == date(2026, 3, 10)


def test_migrate_repairs_bad_shapes():
    state, changed = migrate_state(
        {
            "timeData": {"github.com": 10.7, "bad.com": -4, "worse.com": "x", "ok.com": 5},
            "focusStreak": -2,
            "lastDate": "yesterday",
        }
    )

    assert changed
    assert state.time_data == {"github.com": 10, "ok.com": 5}
    assert state.focus_streak == 0
    assert state.last_date is None


def test_migrate_replaces_non_mapping_time_data():
    state, changed = migrate_state(
        {"timeData": [1, 2], "focusStreak": 1, "schemaVersion": SCHEMA_VERSION}
    )

    assert changed
    assert state.time_data == {}
    assert state.focus_streak == 1


def test_current_shape_is_left_alone():
    _, changed = migrate_state(
        {
            "timeData": {"github.com": 10},
            "focusStreak": 2,
            "lastDate": "2026-03-10",
            "schemaVersion": SCHEMA_VERSION,
        }
    )

    assert not changed


def test_unversioned_store_is_upgraded_on_load(db_path):
    with database_connection(db_path) as conn:
        conn.execute(
            "INSERT INTO state (key, value) VALUES (?, ?)",
            ("timeData", json.dumps({"github.com": 60})),
        )
        conn.execute(
            "INSERT INTO state (key, value) VALUES (?, ?)", ("lastDate", '"2026-03-09"')
        )
        loaded = load_state(conn)
        raw = read_raw(conn)

    assert loaded.time_data == {"github.com": 60}
    assert loaded.last_date == date(2026, 3, 9)
    assert raw["schemaVersion"] == SCHEMA_VERSION
    assert raw["focusStreak"] == 0


def test_unreadable_json_is_discarded(db_path):
    with database_connection(db_path) as conn:
        conn.execute("INSERT INTO state (key, value) VALUES (?, ?)", ("focusStreak", "{oops"))
        loaded = load_state(conn)

    assert loaded.focus_streak == 0


def test_every_write_bumps_the_revision(db_path):
    with database_connection(db_path) as conn:
        assert read_revision(conn) == 0
        assert save_state(conn, PersistedState(focus_streak=1)) == 1
        assert clear_time_data(conn) == 2
        assert save_state(conn, PersistedState(), expected_revision=2) == 3
        assert read_revision(conn) == 3


def test_write_against_stale_revision_is_rejected(db_path):
    with database_connection(db_path) as conn:
        save_state(conn, PersistedState(time_data={"github.com": 60}))
        clear_time_data(conn)

        with pytest.raises(StaleStateError) as excinfo:
            save_state(
                conn, PersistedState(time_data={"github.com": 90}), expected_revision=1
            )
        loaded = load_state(conn)

    assert excinfo.value.expected == 1
    assert excinfo.value.actual == 2
    assert loaded.time_data == {}
    assert loaded.revision == 2


def test_bad_revision_value_reads_as_zero():
    state, changed = migrate_state(
        {"timeData": {}, "focusStreak": 0, "schemaVersion": SCHEMA_VERSION, "revision": -3}
    )

    assert state.revision == 0
    assert not changed
