"""FastAPI application that receives browser events and serves the daily ledger."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import TrackerSettings
from .engine import TrackerEngine
from .models import EventKind, TrackerEvent
from .notifier import DesktopNotifier, NotificationSink
from .paths import get_db_path
from .reporting import label_entries
from .rollover import RolloverOutcome
from .scheduler import TrackerRunner

logger = logging.getLogger(__name__)


class EventPayload(BaseModel):
    kind: EventKind
    tab_id: Optional[int] = None
    url: Optional[str] = None
    active: bool = True

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    notifier: Optional[NotificationSink] = None,
    engine: Optional[TrackerEngine] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or TrackerSettings()
    if engine is None:
        engine = TrackerEngine(
            db_path=Path(db_path or get_db_path()),
            settings=resolved_settings,
            notifier=notifier or DesktopNotifier(),
        )
    runner = TrackerRunner(engine)

    app = FastAPI(title="Focus Streak", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.engine = engine
    app.state.tracker_runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()
        engine.close()

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        tracker: TrackerEngine = request.app.state.engine
        snapshot = tracker.snapshot()
        return {
            "runner_active": request.app.state.tracker_runner.is_running(),
            "database_path": str(tracker.db_path) if tracker.db_path else None,
            "persisted": snapshot.persisted,
            "active_domain": snapshot.active_domain,
            "tab_id": snapshot.active_tab_id,
            "tracking": snapshot.tracking,
            "flush_seconds": tracker.settings.flush_interval.total_seconds(),
            "goal_minutes": tracker.settings.daily_goal_minutes,
        }

    @app.post("/api/events")
    def receive_event(payload: EventPayload, request: Request) -> Dict[str, Any]:
        tracker: TrackerEngine = request.app.state.engine
        result = tracker.dispatch(
            TrackerEvent(
                kind=payload.kind,
                tab_id=payload.tab_id,
                url=payload.url,
                active=payload.active,
            )
        )
        return {
            "active_domain": result.session.domain,
            "tab_id": result.session.tab_id,
            "tracking": result.session.tracking,
            "notifications": [
                {"title": item.title, "message": item.message}
                for item in result.notifications
            ],
        }

    @app.get("/api/ledger")
    def ledger(request: Request) -> Dict[str, Any]:
        tracker: TrackerEngine = request.app.state.engine
        snapshot = tracker.snapshot()
        return {
            "date": snapshot.date.isoformat() if snapshot.date else None,
            "streak": snapshot.streak,
            "goal_minutes": snapshot.goal_minutes,
            "totals": {
                "total_seconds": snapshot.total_seconds,
                "productive_seconds": snapshot.productive_seconds,
                "productive_minutes": snapshot.productive_minutes,
            },
            "entries": [
                {
                    "domain": domain,
                    "seconds": seconds,
                    "minutes": seconds // 60,
                    "classification": productivity.value,
                }
                for domain, seconds, productivity in label_entries(
                    snapshot.entries, tracker.classifier
                )
            ],
        }

    @app.post("/api/ledger/reset")
    def reset_ledger(request: Request) -> Dict[str, Any]:
        tracker: TrackerEngine = request.app.state.engine
        tracker.reset_ledger()
        snapshot = tracker.snapshot()
        return {"entries": snapshot.entries, "streak": snapshot.streak}

    @app.post("/api/rollover")
    def rollover(request: Request) -> Dict[str, Any]:
        tracker: TrackerEngine = request.app.state.engine
        outcome = tracker.check_rollover()
        return {"rolled_over": outcome is not None, "outcome": _outcome_payload(outcome)}

    return app


def _outcome_payload(outcome: Optional[RolloverOutcome]) -> Optional[Dict[str, Any]]:
    if outcome is None:
        return None
    return {
        "today": outcome.today.isoformat(),
        "previous_date": outcome.previous_date.isoformat() if outcome.previous_date else None,
        "phases": [phase.value for phase in outcome.phases],
        "productive_minutes": outcome.productive_minutes,
        "met_goal": outcome.met_goal,
        "prior_streak": outcome.prior_streak,
        "streak": outcome.streak.count,
    }
