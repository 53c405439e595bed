from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ReminderCreateRequest(BaseModel):
    message: str = Field(..., min_length=1)
    schedule_type: str = Field(default="once", min_length=1)
    fire_at: Optional[str] = None
    time_of_day: Optional[str] = None
    recurrence: Optional[str] = None
    anchor_date: Optional[str] = None
    window_start: Optional[str] = None
    window_end: Optional[str] = None
    fuzzy: Optional[bool] = None
    fuzzy_minutes: Optional[int] = Field(default=None, ge=0)
    nag: bool = False
    nag_interval_minutes: Optional[int] = Field(default=None, gt=0)
    short_code: Optional[str] = None


class ReminderResponse(BaseModel):
    id: str
    short_code: str
    message: str
    schedule_type: str
    next_fire_at: str
    recurrence: Optional[str]
    time_of_day: Optional[str]
    anchor_date: Optional[str]
    fuzzy_minutes: int
    window_start: Optional[str]
    window_end: Optional[str]
    nag_enabled: bool
    nag_interval: int
    nag_count: int
    status: str
    created_at: str
    updated_at: str
    last_fired_at: Optional[str]


class TransitionResponse(BaseModel):
    reminder: ReminderResponse
    changed: bool
    warning: Optional[str] = None


class CommandRequest(BaseModel):
    text: str = Field(..., min_length=1)


class CommandResponse(BaseModel):
    reply: str
    ok: bool


class TimezoneRequest(BaseModel):
    timezone: str = Field(..., min_length=1)


class TimezoneResponse(BaseModel):
    timezone: str
    recalculated: Optional[int] = None
