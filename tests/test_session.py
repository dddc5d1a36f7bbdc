from datetime import datetime, timedelta

from focus_streak.session import ActivitySession, flush_elapsed, switch_focus

START = datetime(2026, 3, 10, 9, 0, 0)


def test_flush_credits_whole_seconds_and_advances_start():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True)

    dwell = flush_elapsed(session, START + timedelta(seconds=7.9))

    assert dwell.domain == "github.com"
    assert dwell.seconds == 7
    assert dwell.session.started_at == START + timedelta(seconds=7.9)


def test_repeated_flush_never_double_counts():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True)
    total = 0
    for offset in (3, 3, 10, 25):
        dwell = flush_elapsed(session, START + timedelta(seconds=offset))
        session = dwell.session
        total += dwell.seconds

    assert total == 25


def test_sub_second_flush_leaves_session_untouched():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True)

    dwell = flush_elapsed(session, START + timedelta(milliseconds=400))

    assert dwell.seconds == 0
    assert dwell.session is session


def test_clock_skew_credits_nothing():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True)

    dwell = flush_elapsed(session, START - timedelta(seconds=30))

    assert dwell.seconds == 0
    assert dwell.session.started_at == START


def test_paused_session_credits_nothing():
    session = ActivitySession.paused(START)

    dwell = flush_elapsed(session, START + timedelta(minutes=5))

    assert dwell.domain is None
    assert dwell.seconds == 0


def test_switch_flushes_previous_and_starts_new():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True, tab_id=1)
    now = START + timedelta(seconds=42)

    dwell = switch_focus(session, "youtube.com", now, tab_id=2)

    assert (dwell.domain, dwell.seconds) == ("github.com", 42)
    assert dwell.session == ActivitySession(
        domain="youtube.com", started_at=now, tracking=True, tab_id=2
    )


def test_switch_to_none_pauses_tracking():
    session = ActivitySession(domain="github.com", started_at=START, tracking=True)

    dwell = switch_focus(session, None, START + timedelta(seconds=5))

    assert dwell.seconds == 5
    assert dwell.session.tracking is False
    assert dwell.session.domain is None
