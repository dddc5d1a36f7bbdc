"""Background timers that drive the engine between browser events."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from .engine import TrackerEngine

logger = logging.getLogger(__name__)


def seconds_until_next_midnight(now: datetime) -> float:
    """Seconds from ``now`` until the next local midnight."""
    next_midnight = (now + timedelta(days=1)).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return (next_midnight - now).total_seconds()


class MidnightAlarm:
    """Fire ``callback`` at each local midnight, re-arming after every run."""

    def __init__(
        self,
        callback: Callable[[], object],
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._callback = callback
        self._clock = clock
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._stopped = True

    def start(self) -> None:
        with self._lock:
            self._stopped = False
            self._arm_locked()

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            if self._timer:
                self._timer.cancel()
                self._timer = None

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _arm_locked(self) -> None:
        delay = seconds_until_next_midnight(self._clock())
        timer = threading.Timer(delay, self._fire)
        timer.daemon = True
        self._timer = timer
        timer.start()
        logger.info("Midnight alarm scheduled in %ds", round(delay))

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        logger.info("Midnight alarm triggered, running daily rollover...")
        try:
            self._callback()
        except Exception:
            logger.exception("Daily rollover failed; will retry at next wake-up.")
        with self._lock:
            if not self._stopped:
                self._arm_locked()


class TrackerRunner:
    """Manage the periodic flush loop and midnight alarm for an engine."""

    def __init__(self, engine: TrackerEngine) -> None:
        self.engine = engine
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._alarm = MidnightAlarm(engine.daily_tick)

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_loop,
                args=(stop_event,),
                daemon=True,
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
        # Catch up on a day that passed while nothing was running.
        self.engine.daily_tick()
        self._alarm.start()
        logger.info("Tracker background thread started.")

    def stop(self) -> None:
        self._alarm.stop()
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Tracker background thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def _run_loop(self, stop_event: threading.Event) -> None:
        interval = self.engine.settings.flush_interval.total_seconds()
        logger.info("Flushing every %.1fs; writing to %s", interval, self.engine.db_path)
        # Sleep in an interruptible manner.
        while not stop_event.wait(interval):
            try:
                self.engine.flush()
            except Exception:
                logger.exception("Periodic flush failed.")
