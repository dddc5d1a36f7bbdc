from datetime import date, timedelta

from typer.testing import CliRunner

from focus_streak.cli import app
from focus_streak.db import PersistedState, database_connection, load_state, read_raw, save_state
from focus_streak.engine import TrackerEngine

runner = CliRunner()


def seed(db_path, **kwargs):
    with database_connection(db_path) as conn:
        save_state(conn, PersistedState(**kwargs))


def test_summary_lists_sites_by_time(db_path):
    seed(
        db_path,
        time_data={"youtube.com": 600, "github.com": 1260},
        focus_streak=2,
        last_date=date.today(),
    )

    result = runner.invoke(app, ["summary", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "Streak:       2 day(s)" in result.output
    assert "21 min / 30 min goal" in result.output
    assert result.output.index("github.com") < result.output.index("youtube.com")


def test_summary_without_activity(db_path):
    result = runner.invoke(app, ["summary", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "No activity yet" in result.output


def test_reset_clears_time_only(db_path):
    seed(db_path, time_data={"github.com": 60}, focus_streak=3, last_date=date.today())

    result = runner.invoke(app, ["reset", "--db", str(db_path), "--yes"])

    assert result.exit_code == 0, result.output
    with database_connection(db_path) as conn:
        state = load_state(conn)
    assert state.time_data == {}
    assert state.focus_streak == 3


def test_reset_survives_a_running_tracker(db_path, clock, notifier):
    engine = TrackerEngine(db_path, notifier=notifier, clock=clock)
    try:
        engine.on_focus_event("youtube.com")
        clock.advance(600)
        engine.flush()

        result = runner.invoke(app, ["reset", "--db", str(db_path), "--yes"])
        assert result.exit_code == 0, result.output

        clock.advance(5)
        engine.flush()
    finally:
        engine.close()

    with database_connection(db_path) as conn:
        assert read_raw(conn)["timeData"] == {"youtube.com": 5}


def test_reset_can_be_declined(db_path):
    seed(db_path, time_data={"github.com": 60}, last_date=date.today())

    result = runner.invoke(app, ["reset", "--db", str(db_path)], input="n\n")

    assert result.exit_code != 0
    with database_connection(db_path) as conn:
        assert load_state(conn).time_data == {"github.com": 60}


def test_rollover_evaluates_a_past_day(db_path):
    yesterday = date.today() - timedelta(days=1)
    seed(db_path, time_data={"github.com": 1800}, focus_streak=1, last_date=yesterday)

    result = runner.invoke(app, ["rollover", "--db", str(db_path)])

    assert result.exit_code == 0, result.output
    assert "goal met" in result.output
    assert "Streak is now 2" in result.output

    again = runner.invoke(app, ["rollover", "--db", str(db_path)])
    assert "Already up to date" in again.output
