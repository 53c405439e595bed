from __future__ import annotations

import datetime as dt
import random
from dataclasses import dataclass
from typing import List, Optional, Union

from ..storage.base import ReminderState, ReminderStore
from . import service
from .errors import InvalidScheduleError, NotFoundError
from .recurrence import resolve_timezone
from .timeutil import parse_iso


@dataclass(frozen=True)
class Acknowledge:
    code: str


@dataclass(frozen=True)
class Cancel:
    code: str


@dataclass(frozen=True)
class Pause:
    code: str


@dataclass(frozen=True)
class Resume:
    code: str


@dataclass(frozen=True)
class ListActive:
    pass


@dataclass(frozen=True)
class SetTimezone:
    timezone: Optional[str] = None


@dataclass(frozen=True)
class ShowHelp:
    pass


@dataclass(frozen=True)
class Unknown:
    name: str


Command = Union[Acknowledge, Cancel, Pause, Resume, ListActive, SetTimezone, ShowHelp, Unknown]


@dataclass(frozen=True)
class CommandReply:
    text: str
    ok: bool = True


HELP_TEXT = (
    "Commands:\n"
    "/list\n"
    "/done <CODE>\n"
    "/cancel <CODE>\n"
    "/pause <CODE>\n"
    "/resume <CODE>\n"
    "/timezone <tz>"
)

_CODE_COMMANDS = {
    "/done": Acknowledge,
    "/ack": Acknowledge,
    "/cancel": Cancel,
    "/pause": Pause,
    "/resume": Resume,
}


def parse_command(text: str) -> Optional[Command]:
    """Parse a slash command; plain text (not a command) returns None."""
    parts = text.strip().split()
    if not parts or not parts[0].startswith("/"):
        return None
    name = parts[0].lower().split("@", 1)[0]
    arg = parts[1] if len(parts) > 1 else None

    if name in _CODE_COMMANDS:
        if not arg:
            return Unknown(name=name)
        return _CODE_COMMANDS[name](code=arg.upper())
    if name == "/list":
        return ListActive()
    if name == "/timezone":
        return SetTimezone(timezone=arg)
    if name in ("/help", "/start"):
        return ShowHelp()
    return Unknown(name=name)


def format_local(instant_iso: str, timezone: str) -> str:
    instant = parse_iso(instant_iso)
    return instant.astimezone(resolve_timezone(timezone)).strftime("%a %Y-%m-%d %H:%M %Z")


def format_active(reminders: List[ReminderState], timezone: str) -> str:
    if not reminders:
        return "No active reminders."
    lines = ["Active reminders:"]
    for reminder in reminders:
        lines.append(f"- {reminder.short_code}: {reminder.message}")
        lines.append(f"  Next: {format_local(reminder.next_fire_at, timezone)}")
    return "\n".join(lines)


def _usage(name: str) -> str:
    if name in _CODE_COMMANDS:
        return f"Usage: {name} <CODE>"
    return f"Unknown command: {name}\n\n{HELP_TEXT}"


def execute_command(
    store: ReminderStore,
    command: Command,
    now: Optional[dt.datetime] = None,
    rng: Optional[random.Random] = None,
) -> CommandReply:
    try:
        if isinstance(command, Acknowledge):
            result = service.acknowledge(store, command.code)
            if not result.changed:
                return CommandReply(result.warning or f"{command.code} unchanged.", ok=False)
            return CommandReply(f"{result.reminder.short_code} confirmed.")
        if isinstance(command, Cancel):
            result = service.cancel(store, command.code)
            return CommandReply(f"{result.reminder.short_code} cancelled.")
        if isinstance(command, Pause):
            result = service.pause(store, command.code)
            if not result.changed:
                return CommandReply(result.warning or f"{command.code} unchanged.", ok=False)
            return CommandReply(f"{result.reminder.short_code} paused.")
        if isinstance(command, Resume):
            result = service.resume(store, command.code, now=now, rng=rng)
            if not result.changed:
                return CommandReply(result.warning or f"{command.code} unchanged.", ok=False)
            text = f"{result.reminder.short_code} resumed."
            if result.warning:
                text = f"{result.warning}\n{text}"
            return CommandReply(text)
        if isinstance(command, ListActive):
            return CommandReply(format_active(service.list_active(store), store.get_timezone()))
        if isinstance(command, SetTimezone):
            if not command.timezone:
                return CommandReply(
                    f"Current timezone: {store.get_timezone()}\nUsage: /timezone America/New_York"
                )
            updated = service.set_timezone(store, command.timezone, now=now, rng=rng)
            return CommandReply(
                f"Timezone updated to {command.timezone}. "
                f"Recalculated {updated} recurring reminder(s)."
            )
        if isinstance(command, ShowHelp):
            return CommandReply(HELP_TEXT)
        if isinstance(command, Unknown):
            return CommandReply(_usage(command.name), ok=False)
    except NotFoundError as exc:
        return CommandReply(f"No reminder found with code {exc.code}.", ok=False)
    except InvalidScheduleError as exc:
        return CommandReply(str(exc), ok=False)
    raise TypeError(f"Unsupported command: {command!r}")
