"""The currently focused domain and the transitions that move it."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import NamedTuple, Optional


@dataclass(frozen=True, slots=True)
class ActivitySession:
    """Represents the domain holding focus since ``started_at``."""

    domain: Optional[str]
    started_at: datetime
    tracking: bool = False
    tab_id: Optional[int] = None

    @classmethod
    def paused(cls, now: datetime) -> "ActivitySession":
        return cls(domain=None, started_at=now, tracking=False)

    def elapsed_seconds(self, now: datetime) -> int:
        return math.floor((now - self.started_at).total_seconds())


class Dwell(NamedTuple):
    """Result of closing out time on a session."""

    session: ActivitySession
    domain: Optional[str]
    seconds: int


def flush_elapsed(session: ActivitySession, now: datetime) -> Dwell:
    """Close out whole seconds spent on the session's domain.

    ``started_at`` only advances when at least one second is credited, so
    repeated flushes never count the same interval twice and a clock that
    jumps backwards credits nothing.
    """
    if not session.tracking or not session.domain:
        return Dwell(session, None, 0)
    elapsed = session.elapsed_seconds(now)
    if elapsed <= 0:
        return Dwell(session, session.domain, 0)
    return Dwell(replace(session, started_at=now), session.domain, elapsed)


def switch_focus(
    session: ActivitySession,
    domain: Optional[str],
    now: datetime,
    tab_id: Optional[int] = None,
) -> Dwell:
    """Flush the outgoing session and start a new one for ``domain``.

    A ``None`` domain pauses tracking; time already spent stays credited to
    the previous domain.
    """
    flushed = flush_elapsed(session, now)
    new_session = ActivitySession(
        domain=domain,
        started_at=now,
        tracking=domain is not None,
        tab_id=tab_id,
    )
    return Dwell(new_session, flushed.domain, flushed.seconds)
