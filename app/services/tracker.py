from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Callable

from sqlalchemy.orm import Session

from ..crud.intervals import list_intervals_between, start_interval, stop_interval, sum_closed_minutes_between
from ..models.interval import WorkInterval
from .timecalc import as_utc, local_day_bounds, utcnow

logger = logging.getLogger(__name__)


class SessionTracker:
    """Start/stop timers and report on the server's current calendar day."""

    def __init__(self, *, tz: tzinfo | None = None, clock: Callable[[], datetime] = utcnow) -> None:
        self._tz = tz
        self._clock = clock

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def start(self, db: Session, account_id: int) -> WorkInterval:
        interval = start_interval(db, account_id, now=self._now())
        logger.info("time.started", extra={"extra_data": {"account_id": account_id, "interval_id": interval.id}})
        return interval

    def stop(self, db: Session, account_id: int) -> WorkInterval:
        interval = stop_interval(db, account_id, now=self._now())
        logger.info(
            "time.stopped",
            extra={
                "extra_data": {
                    "account_id": account_id,
                    "interval_id": interval.id,
                    "duration_minutes": interval.duration_minutes,
                }
            },
        )
        return interval

    def list_today(self, db: Session, account_id: int) -> list[WorkInterval]:
        start, end = local_day_bounds(self._now(), self._tz)
        return list_intervals_between(db, account_id, start, end)

    def total_today(self, db: Session, account_id: int) -> int:
        # Open intervals have no duration yet and contribute nothing.
        start, end = local_day_bounds(self._now(), self._tz)
        return sum_closed_minutes_between(db, account_id, start, end)
