"""Configuration models and helpers for the focus streak tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

DEFAULT_PRODUCTIVE_SITES: tuple[str, ...] = (
    "coursera.org",
    "khanacademy.org",
    "edx.org",
    "udemy.com",
    "stackoverflow.com",
    "github.com",
    "docs.google.com",
    "drive.google.com",
    "classroom.google.com",
    "scholar.google",
    "research.google",
)

DEFAULT_GOAL_MINUTES = 30


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the tracker engine."""

    daily_goal_minutes: int = DEFAULT_GOAL_MINUTES
    flush_interval: timedelta = timedelta(seconds=5)
    alert_threshold: timedelta = timedelta(minutes=5)
    productive_sites: tuple[str, ...] = field(default=DEFAULT_PRODUCTIVE_SITES)
    repeat_alerts: bool = False
    notifications_enabled: bool = True

    @classmethod
    def from_values(
        cls,
        goal_minutes: int = DEFAULT_GOAL_MINUTES,
        flush_seconds: float = 5.0,
        alert_minutes: float = 5.0,
        productive_sites: tuple[str, ...] | None = None,
        repeat_alerts: bool = False,
        notifications_enabled: bool = True,
    ) -> "TrackerSettings":
        sites = tuple(productive_sites) if productive_sites else DEFAULT_PRODUCTIVE_SITES
        return cls(
            daily_goal_minutes=int(goal_minutes),
            flush_interval=timedelta(seconds=flush_seconds),
            alert_threshold=timedelta(minutes=alert_minutes),
            productive_sites=sites,
            repeat_alerts=repeat_alerts,
            notifications_enabled=notifications_enabled,
        )
