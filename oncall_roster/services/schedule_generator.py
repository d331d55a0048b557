# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule generation. Fair weekly primary/secondary assignment.

Weeks are written one at a time in chronological order. Each upsert commits
on its own, so a pass that fails or is cancelled part-way keeps the weeks it
already wrote; re-running the pass converges because fairness counts are
always re-derived from what is persisted.
"""

from datetime import date, timedelta
from typing import Optional

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.errors import ValidationError
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import LOCKED_WEEKS_KEPT, SCHEDULE_WEEKS_GENERATED
from oncall_roster.models.domain import Roster, ScheduleEntry
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.rotation import (
    FairnessState,
    align_to_handoff_day,
    pick_primary,
    pick_secondary,
)

logger = get_logger(__name__)


class ScheduleGenerator:
    """Produces or refreshes a run of consecutive rotation weeks for one roster."""

    def __init__(self, repo: RosterRepository) -> None:
        self._repo = repo

    def generate(
        self,
        roster_id: str,
        start: date,
        weeks: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[ScheduleEntry]:
        """
        Generate ``weeks`` weeks starting at the handoff day on or before ``start``.
        Returns every week in the window, locked weeks included, in week order.
        """
        token = token or CancellationToken.never()
        operation = f"generating schedule for roster {roster_id}"
        token.raise_if_cancelled(operation)

        roster = self._repo.get_roster(roster_id)
        weeks = roster.schedule_weeks_ahead if weeks is None else weeks
        if weeks < 1:
            raise ValidationError("weeks must be at least 1")

        members = [m.user_id for m in self._repo.list_active_members(roster_id)]
        if not members:
            logger.warning(
                "No active members for schedule generation",
                extra={"roster_id": roster_id},
            )
            return []

        first_week = align_to_handoff_day(start, roster.handoff_day)
        state = self._seed_state(roster, first_week)

        window_end = first_week + timedelta(days=7 * weeks)
        existing = {
            e.week_start: e for e in self._repo.list_schedule(roster_id, first_week, window_end)
        }

        result: list[ScheduleEntry] = []
        written = kept = 0
        for i in range(weeks):
            token.raise_if_cancelled(operation)
            week_start = first_week + timedelta(days=7 * i)

            current = existing.get(week_start)
            if current is not None and current.is_locked:
                state = state.record(current.primary_user_id, current.secondary_user_id)
                result.append(current)
                kept += 1
                LOCKED_WEEKS_KEPT.inc()
                continue

            primary = pick_primary(members, state, roster.max_consecutive_weeks)
            secondary = None
            if len(members) > 1:
                secondary = pick_secondary(members, state, primary)

            entry = self._repo.upsert_schedule_week(
                roster_id, week_start, primary, secondary, is_locked=False, generated=True,
            )
            result.append(entry)
            state = state.record(primary, secondary)
            written += 1
            SCHEDULE_WEEKS_GENERATED.inc()

        logger.info(
            "Schedule generated: weeks=%d, written=%d, locked_kept=%d",
            weeks, written, kept,
            extra={"roster_id": roster_id, "week_start": first_week.isoformat()},
        )
        return result

    def _seed_state(self, roster: Roster, first_week: date) -> FairnessState:
        """Counters from weeks strictly before the window, plus the trailing primary chain."""
        primary_counts = self._repo.count_primary_weeks(roster.id, before=first_week)
        secondary_counts = self._repo.count_secondary_weeks(roster.id, before=first_week)

        last_primary: Optional[str] = None
        consecutive = 0
        for back in range(1, max(roster.max_consecutive_weeks, 1) + 1):
            previous = self._repo.get_schedule_week(
                roster.id, first_week - timedelta(days=7 * back)
            )
            if previous is None or previous.primary_user_id is None:
                break
            if last_primary is None:
                last_primary = previous.primary_user_id
            elif previous.primary_user_id != last_primary:
                break
            consecutive += 1

        return FairnessState(primary_counts, secondary_counts, last_primary, consecutive)


def generate_detached(connect, roster_id: str, start: date, weeks: Optional[int] = None) -> int:
    """Run a generation pass on a connection of its own; used from the background queue."""
    with connect() as conn:
        entries = ScheduleGenerator(RosterRepository(conn)).generate(roster_id, start, weeks)
    return len(entries)
