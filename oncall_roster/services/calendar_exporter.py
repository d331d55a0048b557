# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Calendar export. A roster's schedule weeks and overrides as an
iCalendar (RFC 5545) document.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from oncall_roster.core.config import settings
from oncall_roster.core.logging import get_logger
from oncall_roster.models.domain import Override, Roster, ScheduleEntry
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.windows import local_instant, week_bounds

logger = get_logger(__name__)

PRODID = "-//OnCallRoster//Roster//EN"
UID_DOMAIN = "oncall-roster"
_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def _ics_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold(line: str) -> list[str]:
    """Split a content line into chunks of at most 75 UTF-8 octets, continuations indented.

    Characters are never split, so a multi-byte sequence stays in one chunk.
    """
    chunks: list[str] = []
    current, size = [], 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > 75:
            chunks.append("".join(current))
            current, size = [" "], 1
        current.append(char)
        size += width
    chunks.append("".join(current))
    return chunks


def calendar_filename(roster: Roster) -> str:
    stem = _FILENAME_UNSAFE.sub("-", roster.name).strip("-") or roster.id
    return f"{stem}-oncall.ics"


def render_calendar(
    roster: Roster,
    entries: list[ScheduleEntry],
    overrides: list[Override],
    stamp: Optional[datetime] = None,
) -> str:
    """Render one VEVENT per schedule week and one per override, CRLF-terminated."""
    stamp_text = _ics_time(stamp or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        f"X-WR-CALNAME:{escape_text(roster.name)} On-Call",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for entry in entries:
        start, end = week_bounds(roster, entry.week_start)
        primary = entry.primary_display_name or entry.primary_user_id or "Unassigned"
        description = f"Roster: {roster.name}\nPrimary: {primary}"
        if entry.secondary_user_id:
            secondary = entry.secondary_display_name or entry.secondary_user_id
            description += f"\nSecondary: {secondary}"
        if entry.notes:
            description += f"\nNotes: {entry.notes}"
        lines += [
            "BEGIN:VEVENT",
            f"UID:{roster.id}-{entry.week_start.strftime('%Y%m%d')}@{UID_DOMAIN}",
            f"DTSTAMP:{stamp_text}",
            f"DTSTART:{_ics_time(start)}",
            f"DTEND:{_ics_time(end)}",
            f"SUMMARY:{escape_text(f'On-Call: {primary}')}",
            f"DESCRIPTION:{escape_text(description)}",
            "END:VEVENT",
        ]

    for override in overrides:
        description = f"Override on {roster.name}\nReason: {override.reason or ''}"
        lines += [
            "BEGIN:VEVENT",
            f"UID:override-{override.id}@{UID_DOMAIN}",
            f"DTSTAMP:{stamp_text}",
            f"DTSTART:{_ics_time(override.start_at)}",
            f"DTEND:{_ics_time(override.end_at)}",
            f"SUMMARY:{escape_text(f'Override: {override.display_name}')}",
            f"DESCRIPTION:{escape_text(description)}",
            "END:VEVENT",
        ]

    lines.append("END:VCALENDAR")
    return "".join(chunk + "\r\n" for line in lines for chunk in fold(line))


class CalendarExporter:
    def __init__(self, repo: RosterRepository) -> None:
        self._repo = repo

    def export(
        self,
        roster_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> tuple[str, str]:
        """Return ``(filename, ics_body)`` for the roster over ``[start, end)``."""
        roster = self._repo.get_roster(roster_id)
        today = today or datetime.now(timezone.utc).date()
        start = start or today - timedelta(days=settings.SCHEDULE_HISTORY_DAYS)
        end = end or today + timedelta(weeks=roster.schedule_weeks_ahead)

        entries = self._repo.list_schedule(roster_id, start, end)
        overrides = self._repo.list_overrides_in_range(
            roster_id,
            local_instant(roster, start, "00:00"),
            local_instant(roster, end, "00:00"),
        )
        logger.info(
            "Calendar exported: weeks=%d, overrides=%d", len(entries), len(overrides),
            extra={"roster_id": roster_id},
        )
        return calendar_filename(roster), render_calendar(roster, entries, overrides)
