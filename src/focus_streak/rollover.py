"""Day-boundary detection and streak evaluation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping, Optional

from .classifier import DomainClassifier
from .config import DEFAULT_GOAL_MINUTES
from .ledger import productive_seconds
from .models import StreakState
from .streak import next_streak


class RolloverPhase(str, Enum):
    IDLE = "idle"
    EVALUATE = "evaluate"
    APPLY = "apply"


@dataclass(frozen=True, slots=True)
class RolloverOutcome:
    """What a rollover decided; the caller applies it to live state."""

    today: date
    previous_date: Optional[date]
    phases: tuple[RolloverPhase, ...]
    prior_streak: int
    streak: StreakState
    productive_minutes: Optional[int] = None
    met_goal: Optional[bool] = None

    @property
    def first_run(self) -> bool:
        return self.previous_date is None

    @property
    def reset_ledger(self) -> bool:
        return not self.first_run

    @property
    def streak_lost(self) -> bool:
        return self.met_goal is False and self.streak.count == 0


class RolloverEngine:
    """Judges the stored day against the goal once its date has passed."""

    def __init__(
        self,
        classifier: DomainClassifier,
        goal_minutes: int = DEFAULT_GOAL_MINUTES,
    ) -> None:
        self.classifier = classifier
        self.goal_minutes = goal_minutes

    def check(
        self,
        entries: Mapping[str, int],
        state: StreakState,
        today: date,
    ) -> Optional[RolloverOutcome]:
        """Return the rollover to apply, or ``None`` when ``today`` is current.

        The first run has no prior day to judge: the date is recorded and the
        streak is left as it is. Any other date mismatch evaluates the stored
        entries as one complete day.
        """
        last_date = state.last_evaluated_date
        if last_date == today:
            return None

        if last_date is None:
            return RolloverOutcome(
                today=today,
                previous_date=None,
                phases=(RolloverPhase.IDLE, RolloverPhase.APPLY),
                prior_streak=state.count,
                streak=StreakState(count=state.count, last_evaluated_date=today),
            )

        minutes = productive_seconds(entries, self.classifier) // 60
        met_goal = minutes >= self.goal_minutes
        return RolloverOutcome(
            today=today,
            previous_date=last_date,
            phases=(RolloverPhase.IDLE, RolloverPhase.EVALUATE, RolloverPhase.APPLY),
            prior_streak=state.count,
            streak=StreakState(
                count=next_streak(state.count, met_goal), last_evaluated_date=today
            ),
            productive_minutes=minutes,
            met_goal=met_goal,
        )
