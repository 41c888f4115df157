"""Pydantic schemas for the time tracking endpoints (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field

from ..services.timecalc import as_utc

# SQLite hands back naive values; everything stored is UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class _TimeModel(BaseModel):
    model_config = {"populate_by_name": True, "from_attributes": True}


class SessionStarted(_TimeModel):
    id: int
    start_time: UtcDatetime = Field(alias="startTime")


class SessionStopped(_TimeModel):
    id: int
    end_time: UtcDatetime = Field(alias="endTime")
    duration_minutes: int = Field(alias="durationMinutes")


class SessionOut(_TimeModel):
    id: int
    user_id: int = Field(alias="userId")
    start_time: UtcDatetime = Field(alias="startTime")
    end_time: Optional[UtcDatetime] = Field(default=None, alias="endTime")
    duration_minutes: Optional[int] = Field(default=None, alias="durationMinutes")


class TotalToday(_TimeModel):
    total_minutes: int = Field(alias="totalMinutes")
