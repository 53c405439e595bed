from __future__ import annotations

import os
from typing import List

from fastapi import APIRouter, HTTPException

from apps.api.schemas.reminders import (
    CommandRequest,
    CommandResponse,
    ReminderCreateRequest,
    ReminderResponse,
    TransitionResponse,
)
from packages.core.reminders import service
from packages.core.reminders.commands import Unknown, execute_command, parse_command
from packages.core.reminders.config import SchedulerConfig, load_scheduler_config
from packages.core.reminders.errors import InvalidScheduleError, NotFoundError
from packages.core.reminders.models import ReminderIntent, TransitionResult
from packages.core.storage.base import ReminderState
from packages.core.storage.sqlite import SQLiteReminderStore


router = APIRouter(prefix="/reminders", tags=["reminders"])
commands_router = APIRouter(tags=["commands"])


def _config() -> SchedulerConfig:
    return load_scheduler_config()


def _store() -> SQLiteReminderStore:
    data_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "data"))
    db_path = os.getenv("NAGBOT_DB_PATH", os.path.join(data_dir, "nagbot.db"))
    return SQLiteReminderStore(db_path=db_path, default_timezone=_config().default_timezone)


def _to_response(reminder: ReminderState) -> ReminderResponse:
    return ReminderResponse(**reminder.__dict__)


def _to_transition(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(
        reminder=_to_response(result.reminder),
        changed=result.changed,
        warning=result.warning,
    )


@router.post("", response_model=ReminderResponse)
def create(payload: ReminderCreateRequest) -> ReminderResponse:
    intent = ReminderIntent(**payload.model_dump())
    try:
        reminder = service.create_reminder(_store(), intent, _config())
    except InvalidScheduleError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(reminder)


@router.get("", response_model=List[ReminderResponse])
def list_all() -> List[ReminderResponse]:
    return [_to_response(reminder) for reminder in service.list_active(_store())]


@router.get("/{code}", response_model=ReminderResponse)
def get(code: str) -> ReminderResponse:
    reminder = _store().get_by_short_code(code)
    if reminder is None:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return _to_response(reminder)


@router.post("/{code}/ack", response_model=TransitionResponse)
def acknowledge(code: str) -> TransitionResponse:
    try:
        return _to_transition(service.acknowledge(_store(), code))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/{code}/cancel", response_model=TransitionResponse)
def cancel(code: str) -> TransitionResponse:
    try:
        return _to_transition(service.cancel(_store(), code))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/{code}/pause", response_model=TransitionResponse)
def pause(code: str) -> TransitionResponse:
    try:
        return _to_transition(service.pause(_store(), code))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/{code}/resume", response_model=TransitionResponse)
def resume(code: str) -> TransitionResponse:
    try:
        return _to_transition(service.resume(_store(), code))
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidScheduleError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@commands_router.post("/commands", response_model=CommandResponse)
def run_command(payload: CommandRequest) -> CommandResponse:
    command = parse_command(payload.text)
    if command is None:
        command = Unknown(name=(payload.text.split() or [""])[0])
    reply = execute_command(_store(), command)
    return CommandResponse(reply=reply.text, ok=reply.ok)
