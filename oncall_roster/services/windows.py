# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Time-window math shared by resolution, coverage, calendar export
and handoff detection. Pure functions over the roster's own timezone.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from oncall_roster.models.domain import Roster
from oncall_roster.repositories.encoding import (
    DEFAULT_HANDOFF_TIME,
    load_zone,
    time_of_day_minutes,
    to_time,
)

FALLBACK_SHIFT_HOURS = 12


def roster_zone(roster: Roster) -> ZoneInfo:
    return load_zone(roster.timezone)


def local_instant(roster: Roster, day: date, hhmm: str) -> datetime:
    """``day`` at ``hhmm`` in the roster timezone, expressed in UTC."""
    local = datetime.combine(day, to_time(hhmm), tzinfo=roster_zone(roster))
    return local.astimezone(timezone.utc)


def week_bounds(roster: Roster, week_start: date) -> tuple[datetime, datetime]:
    """UTC interval ``[week_start + handoff, week_start + 7d + handoff)`` for one rotation week."""
    handoff = roster.handoff_time or DEFAULT_HANDOFF_TIME
    return (
        local_instant(roster, week_start, handoff),
        local_instant(roster, week_start + timedelta(days=7), handoff),
    )


def local_date(roster: Roster, at: datetime) -> date:
    return at.astimezone(roster_zone(roster)).date()


def active_window(roster: Roster) -> tuple[int, int]:
    """(start, end) minutes-of-day during which a follow-the-sun roster is on duty."""
    if roster.active_hours_start and roster.active_hours_end:
        return (
            time_of_day_minutes(roster.active_hours_start),
            time_of_day_minutes(roster.active_hours_end),
        )
    start = time_of_day_minutes(roster.handoff_time or DEFAULT_HANDOFF_TIME)
    return start, (start + FALLBACK_SHIFT_HOURS * 60) % (24 * 60)


def is_on_duty(roster: Roster, at: datetime) -> bool:
    """Whether the roster covers ``at``; only follow-the-sun rosters have off hours."""
    if not roster.is_follow_the_sun:
        return True
    local = at.astimezone(roster_zone(roster))
    minute = local.hour * 60 + local.minute
    start, end = active_window(roster)
    if start == end:
        return True
    if start < end:
        return start <= minute < end
    # Window wraps past midnight.
    return minute >= start or minute < end
