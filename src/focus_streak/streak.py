"""Day-streak transitions."""

from __future__ import annotations


def next_streak(count: int, met_goal: bool) -> int:
    """Grow the streak by one day when the goal was met, otherwise reset it."""
    if count < 0:
        raise ValueError(f"Streak cannot be negative: {count}")
    return count + 1 if met_goal else 0
