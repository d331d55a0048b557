# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule views. Listing, generation, manual week edits, on-call
lookup, coverage and calendar export.

Parses raw API values (dates, instants, ids) and delegates to the
generator, resolver, analyzer and exporter.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.config import settings
from oncall_roster.core.errors import NotFoundError, ValidationError
from oncall_roster.core.logging import get_logger
from oncall_roster.models.domain import CoverageReport, OnCallResult, ScheduleEntry
from oncall_roster.repositories.encoding import parse_date, parse_instant, parse_uuid
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.calendar_exporter import CalendarExporter
from oncall_roster.services.coverage_analyzer import CoverageAnalyzer
from oncall_roster.services.oncall_resolver import OnCallResolver
from oncall_roster.services.rotation import align_to_handoff_day
from oncall_roster.services.schedule_generator import ScheduleGenerator

logger = get_logger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


class ScheduleService:
    def __init__(self, repo: RosterRepository) -> None:
        self._repo = repo
        self._generator = ScheduleGenerator(repo)
        self._resolver = OnCallResolver(repo)
        self._coverage = CoverageAnalyzer(repo)
        self._calendar = CalendarExporter(repo)

    # ── Schedule ──

    def list_schedule(
        self, roster_id: str, start: Optional[str] = None, end: Optional[str] = None
    ) -> list[ScheduleEntry]:
        """Weeks starting in ``[start, end]``; defaults to the recent past plus the look-ahead."""
        roster = self._repo.get_roster(parse_uuid(roster_id, "roster id"))
        today = _today()
        first = parse_date(start, "from") if start else today - timedelta(days=settings.SCHEDULE_HISTORY_DAYS)
        last = parse_date(end, "to") if end else today + timedelta(weeks=roster.schedule_weeks_ahead)
        if last < first:
            raise ValidationError("'to' must not be before 'from'")
        return self._repo.list_schedule(roster.id, first, last + timedelta(days=1))

    def generate(
        self,
        roster_id: str,
        start: Optional[str] = None,
        weeks: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[ScheduleEntry]:
        roster_id = parse_uuid(roster_id, "roster id")
        first = parse_date(start, "from") if start else _today()
        return self._generator.generate(roster_id, first, weeks, token)

    def _week_key(self, roster_id: str, week_start: str) -> tuple[str, date]:
        roster = self._repo.get_roster(parse_uuid(roster_id, "roster id"))
        day = parse_date(week_start, "week_start")
        return roster.id, align_to_handoff_day(day, roster.handoff_day)

    def get_week(self, roster_id: str, week_start: str) -> ScheduleEntry:
        roster_id, aligned = self._week_key(roster_id, week_start)
        entry = self._repo.get_schedule_week(roster_id, aligned)
        if entry is None:
            raise NotFoundError(f"no schedule week {aligned.isoformat()} for roster {roster_id}")
        return entry

    def update_week(
        self,
        roster_id: str,
        week_start: str,
        primary_user_id: Optional[str],
        secondary_user_id: Optional[str],
        notes: Optional[str],
    ) -> ScheduleEntry:
        """Manual edit: the week becomes locked and is no longer regenerated."""
        roster_id, aligned = self._week_key(roster_id, week_start)
        primary = parse_uuid(primary_user_id, "primary_user_id") if primary_user_id else None
        secondary = parse_uuid(secondary_user_id, "secondary_user_id") if secondary_user_id else None
        if primary is not None and primary == secondary:
            raise ValidationError("primary and secondary must be different users")
        entry = self._repo.upsert_schedule_week(
            roster_id, aligned, primary, secondary, is_locked=True, generated=False, notes=notes,
        )
        logger.info(
            "Schedule week edited and locked",
            extra={"roster_id": roster_id, "week_start": aligned.isoformat()},
        )
        return entry

    def unlock_week(self, roster_id: str, week_start: str) -> ScheduleEntry:
        roster_id, aligned = self._week_key(roster_id, week_start)
        entry = self._repo.unlock_schedule_week(roster_id, aligned)
        logger.info(
            "Schedule week unlocked",
            extra={"roster_id": roster_id, "week_start": aligned.isoformat()},
        )
        return entry

    # ── On-call / coverage / calendar ──

    def oncall(
        self, roster_id: str, at: Optional[str] = None, token: Optional[CancellationToken] = None
    ) -> OnCallResult:
        instant = parse_instant(at, "at") if at else datetime.now(timezone.utc)
        return self._resolver.resolve(parse_uuid(roster_id, "roster id"), instant, token)

    def coverage(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        resolution: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> CoverageReport:
        first = (
            parse_instant(start, "from") if start
            else datetime.combine(_today(), time(0), tzinfo=timezone.utc)
        )
        last = parse_instant(end, "to") if end else first + timedelta(days=settings.DEFAULT_COVERAGE_DAYS)
        return self._coverage.analyze(
            first, last,
            resolution if resolution is not None else settings.DEFAULT_COVERAGE_RESOLUTION,
            token,
        )

    def export_calendar(
        self, roster_id: str, start: Optional[str] = None, end: Optional[str] = None
    ) -> tuple[str, str]:
        return self._calendar.export(
            parse_uuid(roster_id, "roster id"),
            parse_date(start, "from") if start else None,
            parse_date(end, "to") if end else None,
        )
