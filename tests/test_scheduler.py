import threading
import time
from datetime import datetime, timedelta

from focus_streak.config import TrackerSettings
from focus_streak.engine import TrackerEngine
from focus_streak.scheduler import MidnightAlarm, TrackerRunner, seconds_until_next_midnight


def test_seconds_until_next_midnight():
    assert seconds_until_next_midnight(datetime(2026, 3, 10, 23, 0, 0)) == 3600
    assert seconds_until_next_midnight(datetime(2026, 3, 10, 0, 0, 0)) == 86400
    assert seconds_until_next_midnight(datetime(2026, 12, 31, 23, 59, 30)) == 30


def test_midnight_alarm_fires_and_rearms():
    readings = iter([datetime(2026, 3, 10, 23, 59, 59, 950000)])
    fired = threading.Event()
    calls = []

    def clock():
        return next(readings, datetime(2026, 3, 11, 0, 0, 0))

    def callback():
        calls.append(1)
        fired.set()

    alarm = MidnightAlarm(callback, clock=clock)
    alarm.start()
    try:
        assert fired.wait(2)
        deadline = time.monotonic() + 2
        while not alarm.armed and time.monotonic() < deadline:
            time.sleep(0.01)
        assert alarm.armed
        assert calls == [1]
    finally:
        alarm.stop()
    assert not alarm.armed


def test_alarm_keeps_running_after_callback_error():
    readings = iter([datetime(2026, 3, 10, 23, 59, 59, 950000)])
    fired = threading.Event()

    def clock():
        return next(readings, datetime(2026, 3, 11, 0, 0, 0))

    def callback():
        fired.set()
        raise RuntimeError("boom")

    alarm = MidnightAlarm(callback, clock=clock)
    alarm.start()
    try:
        assert fired.wait(2)
        deadline = time.monotonic() + 2
        while not alarm.armed and time.monotonic() < deadline:
            time.sleep(0.01)
        assert alarm.armed
    finally:
        alarm.stop()


def test_runner_flushes_periodically(clock):
    settings = TrackerSettings(flush_interval=timedelta(milliseconds=10))
    engine = TrackerEngine(None, settings=settings, clock=clock)
    engine.on_focus_event("github.com")
    clock.advance(5)
    runner = TrackerRunner(engine)

    runner.start()
    try:
        assert runner.is_running()
        deadline = time.monotonic() + 2
        while not engine.snapshot().entries and time.monotonic() < deadline:
            time.sleep(0.01)
        assert dict(engine.snapshot().entries) == {"github.com": 5}
    finally:
        runner.stop()
    assert not runner.is_running()
