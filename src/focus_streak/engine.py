"""Tracker engine: owns the live session, ledger and streak."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Callable, NamedTuple, Optional

from .alerts import AlertEvaluator
from .classifier import DomainClassifier
from .config import TrackerSettings
from .db import (
    PersistedState,
    StaleStateError,
    load_state,
    open_database,
    read_revision,
    save_state,
)
from .ledger import Ledger
from .models import EventKind, Notification, StreakState, TrackerEvent
from .normalization import normalize_domain
from .notifier import LoggingNotifier, NotificationSink
from .rollover import RolloverEngine, RolloverOutcome
from .session import ActivitySession, Dwell, flush_elapsed, switch_focus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True, slots=True)
class TrackerSnapshot:
    """Read-only view of the tracker for display surfaces."""

    date: Optional[date]
    entries: list[tuple[str, int]]
    streak: int
    goal_minutes: int
    productive_seconds: int
    total_seconds: int
    active_domain: Optional[str]
    active_tab_id: Optional[int]
    tracking: bool
    persisted: bool

    @property
    def productive_minutes(self) -> int:
        return self.productive_seconds // 60


class DispatchResult(NamedTuple):
    """Session as it stood right after an event, plus the advisories it raised."""

    session: ActivitySession
    notifications: list[Notification]


class TrackerEngine:
    """Serializes every session, ledger and streak mutation behind one lock.

    The in-memory ledger is authoritative and is written through to SQLite
    after each handler. If storage fails the engine keeps tracking in memory
    and rewrites the whole state on the next handler.

    Other processes (the ``reset`` and ``rollover`` commands) may write the
    same store. Every write bumps a stored revision; when it moves under us
    the engine adopts the stored state and re-applies only the seconds it
    credited since its last successful write.
    """

    def __init__(
        self,
        db_path: Optional[Path],
        settings: Optional[TrackerSettings] = None,
        notifier: Optional[NotificationSink] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self.db_path = Path(db_path) if db_path is not None else None
        self.settings = settings or TrackerSettings()
        self.classifier = DomainClassifier(self.settings.productive_sites)
        self.notifier: NotificationSink = notifier or LoggingNotifier()
        self._clock = clock
        self._rollover = RolloverEngine(self.classifier, self.settings.daily_goal_minutes)
        self._alerts = AlertEvaluator(
            self.classifier,
            threshold=self.settings.alert_threshold,
            goal_minutes=self.settings.daily_goal_minutes,
            repeat=self.settings.repeat_alerts,
        )
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self._dirty = False
        self._loaded = False
        self._revision = 0
        # Seconds credited since the last successful write, per domain.
        self._pending: dict[str, int] = {}
        self._session = ActivitySession.paused(clock())
        self._ledger = Ledger()
        self._streak = StreakState()
        self.last_rollover: Optional[RolloverOutcome] = None
        self._handlers: dict[EventKind, Callable[[TrackerEvent, datetime], list[Notification]]] = {
            EventKind.FOCUS_CHANGED: self._on_focus_changed,
            EventKind.NAVIGATION_COMPLETED: self._on_navigation_completed,
            EventKind.WINDOW_FOCUS_LOST: self._on_window_focus_lost,
            EventKind.WINDOW_FOCUS_GAINED: self._on_window_focus_gained,
            EventKind.DAILY_TICK: self._on_daily_tick,
        }
        self._load()

    # Public API -----------------------------------------------------------

    def dispatch(self, event: TrackerEvent) -> DispatchResult:
        """Route ``event`` to its handler and deliver any advisories."""
        handler = self._handlers[event.kind]
        with self._lock:
            now = self._clock()
            self._refresh()
            effects = handler(event, now)
            session = self._session
        self._deliver(effects)
        return DispatchResult(session, effects)

    def on_focus_event(self, domain: Optional[str], tab_id: Optional[int] = None) -> list[Notification]:
        """Switch focus to an already-normalized domain; ``None`` pauses tracking."""
        with self._lock:
            now = self._clock()
            self._refresh()
            effects = self._begin(now)
            self._switch(domain, tab_id, now)
            effects += self._finish()
        self._deliver(effects)
        return effects

    def flush(self) -> list[Notification]:
        """Credit elapsed time on the active domain; run from the periodic tick."""
        with self._lock:
            now = self._clock()
            self._refresh()
            effects = self._begin(now)
            effects += self._finish()
        self._deliver(effects)
        return effects

    def daily_tick(self) -> list[Notification]:
        return self.dispatch(TrackerEvent(kind=EventKind.DAILY_TICK)).notifications

    def check_rollover(self) -> Optional[RolloverOutcome]:
        """Apply a pending rollover, returning it, or ``None`` if already current."""
        with self._lock:
            now = self._clock()
            self._refresh()
            self._credit(flush_elapsed(self._session, now))
            outcome, effects = self._apply_rollover(now)
            self._persist()
        self._deliver(effects)
        return outcome

    def reset_ledger(self) -> None:
        """Clear today's totals; the streak and date stay as they are."""
        with self._lock:
            self._refresh()
            self._credit(flush_elapsed(self._session, self._clock()))
            self._ledger.clear()
            self._pending.clear()
            self._alerts.reset()
            self._dirty = True
            self._persist()
        logger.info("Ledger reset by user.")

    def snapshot(self) -> TrackerSnapshot:
        with self._lock:
            self._refresh()
            return TrackerSnapshot(
                date=self._ledger.date,
                entries=self._ledger.sorted_entries(),
                streak=self._streak.count,
                goal_minutes=self.settings.daily_goal_minutes,
                productive_seconds=self._ledger.productive_seconds(self.classifier),
                total_seconds=self._ledger.total_seconds(),
                active_domain=self._session.domain,
                active_tab_id=self._session.tab_id,
                tracking=self._session.tracking,
                persisted=self._conn is not None and not self._dirty,
            )

    @property
    def session(self) -> ActivitySession:
        with self._lock:
            return self._session

    def close(self) -> None:
        """Flush the active session and release the database."""
        with self._lock:
            self._refresh()
            self._credit(flush_elapsed(self._session, self._clock()))
            self._persist()
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # Event handlers (called with the lock held) --------------------------

    def _on_focus_changed(self, event: TrackerEvent, now: datetime) -> list[Notification]:
        effects = self._begin(now)
        self._switch(normalize_domain(event.url), event.tab_id, now)
        return effects + self._finish()

    def _on_navigation_completed(self, event: TrackerEvent, now: datetime) -> list[Notification]:
        if not event.active:
            return []
        return self._on_focus_changed(event, now)

    def _on_window_focus_lost(self, event: TrackerEvent, now: datetime) -> list[Notification]:
        effects = self._begin(now)
        self._switch(None, None, now)
        logger.debug("Window lost focus; tracking paused.")
        return effects + self._finish()

    def _on_window_focus_gained(self, event: TrackerEvent, now: datetime) -> list[Notification]:
        effects = self._begin(now)
        if event.url is not None:
            self._switch(normalize_domain(event.url), event.tab_id, now)
        return effects + self._finish()

    def _on_daily_tick(self, event: TrackerEvent, now: datetime) -> list[Notification]:
        logger.info("Daily wake-up; checking rollover.")
        return self._begin(now) + self._finish()

    # Internals -----------------------------------------------------------

    def _begin(self, now: datetime) -> list[Notification]:
        # Time up to this event belongs to the day the ledger represents.
        self._credit(flush_elapsed(self._session, now))
        _, effects = self._apply_rollover(now)
        return effects

    def _finish(self) -> list[Notification]:
        self._persist()
        return self._alerts.evaluate(self._session, self._ledger.snapshot())

    def _switch(self, domain: Optional[str], tab_id: Optional[int], now: datetime) -> None:
        self._credit(switch_focus(self._session, domain, now, tab_id))
        logger.debug("Focus -> %s", domain)

    def _credit(self, dwell: Dwell) -> None:
        self._session = dwell.session
        if self._ledger.increment(dwell.domain, dwell.seconds):
            self._pending[dwell.domain] = self._pending.get(dwell.domain, 0) + int(dwell.seconds)
            self._dirty = True
            logger.debug(
                "Saved +%ds for %s (total %ds)",
                dwell.seconds,
                dwell.domain,
                self._ledger.get(dwell.domain),
            )

    def _apply_rollover(
        self, now: datetime
    ) -> tuple[Optional[RolloverOutcome], list[Notification]]:
        today = now.date()
        outcome = self._rollover.check(self._ledger.snapshot(), self._streak, today)
        if outcome is None:
            return None, []
        self._streak = outcome.streak
        self.last_rollover = outcome
        self._dirty = True
        if outcome.first_run:
            self._ledger.date = today
            logger.info("First run; tracking day %s.", today)
            return outcome, []

        self._ledger.reset(today)
        self._pending.clear()
        self._alerts.reset()
        if outcome.met_goal:
            logger.info(
                "Earned streak. productive_minutes=%d new_streak=%d",
                outcome.productive_minutes,
                outcome.streak.count,
            )
            return outcome, []
        logger.info(
            "Missed goal. productive_minutes=%d; streak reset.",
            outcome.productive_minutes,
        )
        notification = Notification(
            title="Streak reset",
            message=(
                f"{outcome.productive_minutes} of {self._rollover.goal_minutes} "
                f"productive minutes on {outcome.previous_date}. Start again today!"
            ),
        )
        return outcome, [notification] if outcome.streak_lost else []

    def _load(self) -> None:
        """Adopt the stored state, keeping any time tracked while it was unreadable."""
        if self.db_path is None:
            logger.info("No database configured; tracking for this session only.")
            return
        conn = self._connection()
        if conn is None:
            return
        try:
            state = load_state(conn)
        except (sqlite3.Error, OSError):
            logger.exception("Failed to read stored state; tracking in memory.")
            self._mark_failed()
            return
        self._adopt(state)
        self._loaded = True
        logger.info(
            "Loaded state for %s: %d domains, streak=%d",
            state.last_date,
            len(self._ledger),
            state.focus_streak,
        )

    def _refresh(self) -> None:
        """Pick up writes other processes made since our last read or write."""
        if not self._loaded:
            return
        conn = self._connection()
        if conn is None:
            return
        try:
            if read_revision(conn) == self._revision:
                return
            state = load_state(conn)
        except (sqlite3.Error, OSError):
            logger.exception("Failed to re-read stored state; keeping memory copy.")
            self._mark_failed()
            return
        logger.info("Stored state changed since revision %d; merging.", self._revision)
        self._adopt(state)

    def _adopt(self, state: PersistedState) -> None:
        # Stored streak and date win; unsaved seconds are added on top.
        ledger = Ledger(state.last_date, state.time_data)
        for domain, seconds in self._pending.items():
            ledger.increment(domain, seconds)
        self._ledger = ledger
        self._streak = StreakState(
            count=state.focus_streak, last_evaluated_date=state.last_date
        )
        self._revision = state.revision
        self._dirty = bool(self._pending)
        self._alerts.reset()
        self._alerts.prime(self._ledger.snapshot())

    def _connection(self) -> Optional[sqlite3.Connection]:
        if self._conn is None and self.db_path is not None:
            try:
                self._conn = open_database(self.db_path, check_same_thread=False)
            except (sqlite3.Error, OSError):
                logger.exception("Cannot open %s; tracking in memory.", self.db_path)
                self._dirty = True
        return self._conn

    def _persist(self) -> None:
        if self.db_path is None:
            return
        if not self._loaded:
            # Never overwrite a store we have not managed to read yet.
            self._load()
            if not self._loaded:
                return
        if not self._dirty:
            return
        conn = self._connection()
        if conn is None:
            return
        for _ in range(2):
            state = PersistedState(
                time_data=dict(self._ledger.snapshot()),
                focus_streak=self._streak.count,
                last_date=self._streak.last_evaluated_date,
            )
            try:
                self._revision = save_state(conn, state, expected_revision=self._revision)
            except StaleStateError as exc:
                logger.warning("%s; merging with the stored state.", exc)
                try:
                    self._adopt(load_state(conn))
                except (sqlite3.Error, OSError):
                    logger.exception("Failed to re-read stored state; will retry on next event.")
                    self._mark_failed()
                    return
                self._dirty = True
                continue
            except (sqlite3.Error, OSError):
                logger.exception("Failed to persist tracker state; will retry on next event.")
                self._mark_failed()
                return
            self._dirty = False
            self._pending.clear()
            return
        logger.warning("Stored state keeps changing; will retry on next event.")

    def _mark_failed(self) -> None:
        self._dirty = True
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                logger.debug("Ignoring error while closing a failed connection.")
            self._conn = None

    def _deliver(self, effects: list[Notification]) -> None:
        if not self.settings.notifications_enabled:
            return
        for effect in effects:
            try:
                self.notifier.notify(effect.title, effect.message)
            except Exception:
                logger.exception("Notification sink failed for %r", effect.title)
