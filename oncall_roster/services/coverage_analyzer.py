# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Coverage analysis. A time-sliced view of who covers what across
every active roster, and the gaps where nobody does.

Schedule and override rows are fetched once per roster for the whole range;
each slot is then resolved in memory.
"""

from datetime import datetime, timedelta
from typing import Optional

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.config import settings
from oncall_roster.core.errors import ValidationError
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import COVERAGE_GAP_HOURS
from oncall_roster.models.domain import (
    CoverageReport,
    CoverageRoster,
    CoverageSlot,
    CoverageSlotRoster,
    GapInfo,
    GapSummary,
    Override,
    Roster,
    ScheduleEntry,
)
from oncall_roster.repositories.encoding import ensure_utc
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.oncall_resolver import override_covering, week_covering
from oncall_roster.services.windows import is_on_duty, local_date

logger = get_logger(__name__)


class _RosterData:
    """Request-local cache of one roster's rows for the analysed range."""

    def __init__(self, roster: Roster, schedule: list[ScheduleEntry], overrides: list[Override]):
        self.roster = roster
        self.schedule = schedule
        self.overrides = overrides

    def coverage_at(self, at: datetime) -> Optional[CoverageSlotRoster]:
        if not is_on_duty(self.roster, at):
            return None
        override = override_covering(self.overrides, at)
        entry = week_covering(self.roster, self.schedule, at)
        secondary = None
        if entry is not None and entry.secondary_user_id is not None:
            secondary = entry.secondary_display_name or entry.secondary_user_id
        if override is not None:
            return CoverageSlotRoster(
                roster_id=self.roster.id,
                roster_name=self.roster.name,
                primary=override.display_name,
                secondary=secondary,
                source="override",
            )
        if entry is not None and entry.primary_user_id is not None:
            return CoverageSlotRoster(
                roster_id=self.roster.id,
                roster_name=self.roster.name,
                primary=entry.primary_display_name or entry.primary_user_id,
                secondary=secondary,
                source="schedule",
            )
        return None


def summarize_gaps(
    slots: list[CoverageSlot], end: datetime, resolution_minutes: int
) -> GapSummary:
    """Collapse contiguous gap slots into maximal runs; a run still open at the end closes at ``end``."""
    step = timedelta(minutes=resolution_minutes)
    gaps: list[GapInfo] = []
    run_start: Optional[datetime] = None
    run_end: Optional[datetime] = None

    def close(run_start: datetime, run_end: datetime) -> None:
        gaps.append(GapInfo(
            start=run_start,
            end=run_end,
            duration_hours=(run_end - run_start).total_seconds() / 3600,
        ))

    for slot in slots:
        if slot.gap:
            if run_start is None:
                run_start = slot.time
            run_end = min(slot.time + step, end)
        elif run_start is not None:
            close(run_start, run_end)
            run_start = run_end = None
    if run_start is not None:
        close(run_start, end)

    return GapSummary(
        total_gap_hours=sum(g.duration_hours for g in gaps),
        gaps=gaps,
    )


class CoverageAnalyzer:
    def __init__(self, repo: RosterRepository) -> None:
        self._repo = repo

    def analyze(
        self,
        start: datetime,
        end: datetime,
        resolution_minutes: int = 60,
        token: Optional[CancellationToken] = None,
    ) -> CoverageReport:
        token = token or CancellationToken.never()
        start, end = ensure_utc(start), ensure_utc(end)
        if end <= start:
            raise ValidationError("'to' must be after 'from'")
        if resolution_minutes < 1:
            raise ValidationError("resolution must be a positive number of minutes")
        step = timedelta(minutes=resolution_minutes)
        slot_count = -(-int((end - start).total_seconds()) // int(step.total_seconds()))
        if slot_count > settings.MAX_COVERAGE_SLOTS:
            raise ValidationError(
                f"range needs {slot_count} slots, limit is {settings.MAX_COVERAGE_SLOTS}"
            )

        cached: list[_RosterData] = []
        for roster in self._repo.list_active_rosters():
            token.raise_if_cancelled("analysing coverage")
            # Widen back a week so the week already running at ``start`` is included.
            schedule = self._repo.list_schedule(
                roster.id,
                local_date(roster, start) - timedelta(days=7),
                local_date(roster, end) + timedelta(days=1),
            )
            overrides = self._repo.list_overrides_in_range(roster.id, start, end)
            cached.append(_RosterData(roster, schedule, overrides))

        slots: list[CoverageSlot] = []
        at = start
        while at < end:
            coverage = [c for c in (data.coverage_at(at) for data in cached) if c is not None]
            slots.append(CoverageSlot(time=at, coverage=coverage, gap=not coverage))
            at += step

        summary = summarize_gaps(slots, end, resolution_minutes)
        COVERAGE_GAP_HOURS.set(summary.total_gap_hours)
        logger.info(
            "Coverage analysed: rosters=%d, slots=%d, gaps=%d, gap_hours=%.2f",
            len(cached), len(slots), len(summary.gaps), summary.total_gap_hours,
        )
        return CoverageReport(
            start=start,
            end=end,
            resolution_minutes=resolution_minutes,
            rosters=[
                CoverageRoster(
                    id=d.roster.id,
                    name=d.roster.name,
                    timezone=d.roster.timezone,
                    active_hours_start=d.roster.active_hours_start,
                    active_hours_end=d.roster.active_hours_end,
                    is_follow_the_sun=d.roster.is_follow_the_sun,
                )
                for d in cached
            ],
            slots=slots,
            gap_summary=summary,
        )

