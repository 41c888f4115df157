"""Persistence for work intervals and the one-open-interval rule."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import NoOpenSession, SessionAlreadyOpen
from ..models.interval import WorkInterval
from ..services.timecalc import as_utc, compute_minutes

# A lost race re-reads once per competing stop; this bounds pathological loops.
MAX_STOP_ATTEMPTS = 5


def start_interval(db: Session, account_id: int, *, now: datetime) -> WorkInterval:
    interval = WorkInterval(user_id=account_id, start_time=now)
    db.add(interval)
    try:
        db.commit()
    except IntegrityError as exc:
        # uq_sessions_open_per_user rejected a second open row.
        db.rollback()
        raise SessionAlreadyOpen() from exc
    db.refresh(interval)
    return interval


def get_oldest_open_interval(db: Session, account_id: int) -> WorkInterval | None:
    stmt = (
        select(WorkInterval)
        .where(WorkInterval.user_id == account_id, WorkInterval.end_time.is_(None))
        .order_by(WorkInterval.start_time.asc(), WorkInterval.id.asc())
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def stop_interval(db: Session, account_id: int, *, now: datetime) -> WorkInterval:
    """Close the oldest open interval for ``account_id``.

    The close is a conditional update guarded by ``end_time IS NULL`` so two
    racing stops cannot both close the same row.
    """
    for _ in range(MAX_STOP_ATTEMPTS):
        candidate = get_oldest_open_interval(db, account_id)
        if candidate is None:
            db.rollback()
            raise NoOpenSession()
        duration = compute_minutes(candidate.start_time, now)
        result = db.execute(
            update(WorkInterval)
            .where(WorkInterval.id == candidate.id, WorkInterval.end_time.is_(None))
            .values(end_time=now, duration_minutes=duration)
        )
        db.commit()
        if result.rowcount == 1:
            db.refresh(candidate)
            return candidate
        # Someone else closed it first; look again.
        db.expire_all()
    raise NoOpenSession()


def list_intervals_between(db: Session, account_id: int, start: datetime, end: datetime) -> list[WorkInterval]:
    stmt = (
        select(WorkInterval)
        .where(
            WorkInterval.user_id == account_id,
            WorkInterval.start_time >= as_utc(start),
            WorkInterval.start_time < as_utc(end),
        )
        .order_by(WorkInterval.start_time.asc(), WorkInterval.id.asc())
    )
    return list(db.execute(stmt).scalars().all())


def sum_closed_minutes_between(db: Session, account_id: int, start: datetime, end: datetime) -> int:
    stmt = select(func.coalesce(func.sum(WorkInterval.duration_minutes), 0)).where(
        WorkInterval.user_id == account_id,
        WorkInterval.start_time >= as_utc(start),
        WorkInterval.start_time < as_utc(end),
        WorkInterval.end_time.is_not(None),
    )
    return int(db.execute(stmt).scalar_one() or 0)
