from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import get_tracker, require_principal
from ..schemas.time import SessionOut, SessionStarted, SessionStopped, TotalToday
from ..services.auth import Principal
from ..services.tracker import SessionTracker

router = APIRouter(prefix="/api/time", tags=["time"])


@router.post("/start", response_model=SessionStarted, status_code=status.HTTP_201_CREATED)
def api_start_session(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_tracker),
):
    interval = tracker.start(db, principal.account_id)
    return SessionStarted.model_validate(interval)


@router.post("/stop", response_model=SessionStopped)
def api_stop_session(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_tracker),
):
    interval = tracker.stop(db, principal.account_id)
    return SessionStopped.model_validate(interval)


@router.get("/sessions", response_model=list[SessionOut])
def api_list_sessions_today(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_tracker),
):
    return [SessionOut.model_validate(interval) for interval in tracker.list_today(db, principal.account_id)]


@router.get("/total-today", response_model=TotalToday)
def api_total_today(
    principal: Principal = Depends(require_principal),
    db: Session = Depends(get_db),
    tracker: SessionTracker = Depends(get_tracker),
):
    return TotalToday(total_minutes=tracker.total_today(db, principal.account_id))
