"""Domain models shared across the tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class Productivity(str, Enum):
    PRODUCTIVE = "productive"
    DISTRACTING = "distracting"


class EventKind(str, Enum):
    """Kinds of browser events the engine reacts to."""

    FOCUS_CHANGED = "focus_changed"
    NAVIGATION_COMPLETED = "navigation_completed"
    WINDOW_FOCUS_LOST = "window_focus_lost"
    WINDOW_FOCUS_GAINED = "window_focus_gained"
    DAILY_TICK = "daily_tick"


@dataclass(frozen=True, slots=True)
class TrackerEvent:
    """A single focus or navigation event delivered by the browser."""

    kind: EventKind
    tab_id: Optional[int] = None
    url: Optional[str] = None
    active: bool = True


@dataclass(frozen=True, slots=True)
class StreakState:
    """Consecutive-day streak plus the date the live ledger represents."""

    count: int = 0
    last_evaluated_date: Optional[date] = None


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    message: str
