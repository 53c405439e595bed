from __future__ import annotations

from fastapi import APIRouter, HTTPException

from apps.api.routes import reminders as reminders_routes
from apps.api.schemas.reminders import TimezoneRequest, TimezoneResponse
from packages.core.reminders import service
from packages.core.reminders.errors import InvalidScheduleError


router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/timezone", response_model=TimezoneResponse)
def get_timezone() -> TimezoneResponse:
    return TimezoneResponse(timezone=reminders_routes._store().get_timezone())


@router.put("/timezone", response_model=TimezoneResponse)
def update_timezone(payload: TimezoneRequest) -> TimezoneResponse:
    try:
        updated = service.set_timezone(reminders_routes._store(), payload.timezone)
    except InvalidScheduleError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return TimezoneResponse(timezone=payload.timezone.strip(), recalculated=updated)
