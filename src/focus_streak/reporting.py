"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from typing import Iterable

from .classifier import DomainClassifier
from .engine import TrackerSnapshot
from .models import Productivity


class SummaryPrinter:
    """Render the day's domain list and streak in the console."""

    def __init__(self, classifier: DomainClassifier) -> None:
        self.classifier = classifier

    def print_summary(self, snapshot: TrackerSnapshot, limit: int = 20) -> None:
        day = snapshot.date.strftime("%Y-%m-%d") if snapshot.date else "(not started)"
        print(f"Focus streak for {day}")
        print("-" * 40)
        print(f"Streak:       {snapshot.streak} day(s)")
        print(
            f"Productive:   {format_minutes(snapshot.productive_seconds)}"
            f" / {snapshot.goal_minutes} min goal"
        )
        print(f"Total:        {format_duration(snapshot.total_seconds)}")
        print()

        if not snapshot.entries:
            print("No activity yet")
            return

        print("Sites:")
        for domain, seconds, productivity in label_entries(
            snapshot.entries[:limit], self.classifier
        ):
            marker = "+" if productivity is Productivity.PRODUCTIVE else " "
            print(f"  {marker} {domain[:40]:<40} {format_minutes(seconds):>8}")


def label_entries(
    entries: Iterable[tuple[str, int]], classifier: DomainClassifier
) -> list[tuple[str, int, Productivity]]:
    return [(domain, seconds, classifier.classify(domain)) for domain, seconds in entries]


def format_minutes(seconds: float) -> str:
    return f"{int(seconds) // 60} min"


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
