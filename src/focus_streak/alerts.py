"""Advisory notifications derived from live ledger totals."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Mapping

from .classifier import DomainClassifier
from .config import DEFAULT_GOAL_MINUTES
from .ledger import productive_seconds
from .models import Notification, Productivity
from .session import ActivitySession

logger = logging.getLogger(__name__)


class AlertEvaluator:
    """Raise distraction and goal advisories.

    A distracting domain alerts once per day when its total first exceeds the
    threshold, unless ``repeat`` is set, in which case every check past the
    threshold alerts. Reaching the productive goal is announced once per day
    and never touches the streak.
    """

    def __init__(
        self,
        classifier: DomainClassifier,
        threshold: timedelta = timedelta(minutes=5),
        goal_minutes: int = DEFAULT_GOAL_MINUTES,
        repeat: bool = False,
    ) -> None:
        self.classifier = classifier
        self.threshold_seconds = int(threshold.total_seconds())
        self.goal_minutes = goal_minutes
        self.repeat = repeat
        self._alerted: set[str] = set()
        self._goal_announced = False

    def evaluate(
        self, session: ActivitySession, snapshot: Mapping[str, int]
    ) -> list[Notification]:
        notifications: list[Notification] = []
        distraction = self._check_distraction(session, snapshot)
        if distraction:
            notifications.append(distraction)
        goal = self._check_goal(snapshot)
        if goal:
            notifications.append(goal)
        return notifications

    def prime(self, snapshot: Mapping[str, int]) -> None:
        """Mark totals restored from storage as already announced."""
        for domain, seconds in snapshot.items():
            if seconds > self.threshold_seconds and not self.classifier.is_productive(domain):
                self._alerted.add(domain)
        if productive_seconds(snapshot, self.classifier) // 60 >= self.goal_minutes:
            self._goal_announced = True

    def reset(self) -> None:
        """Forget which advisories were raised; called when the ledger empties."""
        self._alerted.clear()
        self._goal_announced = False

    def _check_distraction(
        self, session: ActivitySession, snapshot: Mapping[str, int]
    ) -> Notification | None:
        domain = session.domain
        if not session.tracking or not domain:
            return None
        if self.classifier.classify(domain) is not Productivity.DISTRACTING:
            return None
        seconds = snapshot.get(domain, 0)
        if seconds <= self.threshold_seconds:
            return None
        if domain in self._alerted and not self.repeat:
            return None
        self._alerted.add(domain)
        logger.debug("Distraction threshold passed for %s (%ds)", domain, seconds)
        return Notification(
            title="Time check",
            message=f"You've spent {seconds // 60} min on {domain} today.",
        )

    def _check_goal(self, snapshot: Mapping[str, int]) -> Notification | None:
        if self._goal_announced:
            return None
        minutes = productive_seconds(snapshot, self.classifier) // 60
        if minutes < self.goal_minutes:
            return None
        self._goal_announced = True
        return Notification(
            title="Goal reached",
            message=(
                f"{minutes} productive minutes today. "
                "Your streak grows at midnight."
            ),
        )
