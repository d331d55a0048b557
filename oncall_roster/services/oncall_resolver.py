# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: On-call resolution. Who holds the pager for a roster at an instant.

Precedence is override > schedule > unassigned, and the result type makes
the winning source explicit. A follow-the-sun roster queried outside its
own shift window answers with its linked roster when that one is on duty.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import ONCALL_LOOKUPS
from oncall_roster.models.domain import (
    OnCallPerson,
    OnCallResult,
    Override,
    OverrideOnCall,
    Roster,
    ScheduleEntry,
    ScheduleOnCall,
    UnassignedOnCall,
)
from oncall_roster.repositories.encoding import ensure_utc
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.windows import is_on_duty, local_date, week_bounds

logger = get_logger(__name__)


# ── In-memory lookups (shared with coverage analysis) ──

def week_covering(
    roster: Roster, entries: Iterable[ScheduleEntry], at: datetime
) -> Optional[ScheduleEntry]:
    """The week whose handoff-aligned interval contains ``at``."""
    for entry in entries:
        start, end = week_bounds(roster, entry.week_start)
        if start <= at < end:
            return entry
    return None


def override_covering(overrides: Iterable[Override], at: datetime) -> Optional[Override]:
    """Earliest-starting override whose ``[start_at, end_at)`` contains ``at``."""
    best: Optional[Override] = None
    for override in overrides:
        if override.covers(at) and (best is None or override.start_at < best.start_at):
            best = override
    return best


def _person(user_id: Optional[str], display_name: str) -> Optional[OnCallPerson]:
    if user_id is None:
        return None
    return OnCallPerson(user_id=user_id, display_name=display_name or user_id)


def build_result(
    roster: Roster,
    at: datetime,
    override: Optional[Override],
    entry: Optional[ScheduleEntry],
) -> OnCallResult:
    """Combine an override and a schedule week into the tagged result."""
    base = {"roster_id": roster.id, "roster_name": roster.name, "queried_at": at}
    if override is not None:
        return OverrideOnCall(
            **base,
            primary=OnCallPerson(user_id=override.user_id, display_name=override.display_name),
            secondary=_person(entry.secondary_user_id, entry.secondary_display_name) if entry else None,
            week_start=entry.week_start if entry else None,
            active_override=override,
        )
    if entry is not None and entry.primary_user_id is not None:
        return ScheduleOnCall(
            **base,
            primary=_person(entry.primary_user_id, entry.primary_display_name),
            secondary=_person(entry.secondary_user_id, entry.secondary_display_name),
            week_start=entry.week_start,
        )
    return UnassignedOnCall(**base)


class OnCallResolver:
    """Resolve the authoritative on-call identity for a roster and instant."""

    def __init__(self, repo: RosterRepository) -> None:
        self._repo = repo

    def resolve(
        self,
        roster_id: str,
        at: datetime,
        token: Optional[CancellationToken] = None,
    ) -> OnCallResult:
        token = token or CancellationToken.never()
        token.raise_if_cancelled(f"resolving on-call for roster {roster_id}")
        roster = self._repo.get_roster(roster_id)
        return self.resolve_for(self._covering_roster(roster, ensure_utc(at)), at, token)

    def resolve_for(
        self,
        roster: Roster,
        at: datetime,
        token: Optional[CancellationToken] = None,
    ) -> OnCallResult:
        """Resolve against an already-loaded roster."""
        token = token or CancellationToken.never()
        operation = f"resolving on-call for roster {roster.id}"
        at = ensure_utc(at)

        override = self._repo.get_active_override(roster.id, at)
        token.raise_if_cancelled(operation)
        entry = self._schedule_week_at(roster, at)
        token.raise_if_cancelled(operation)

        result = build_result(roster, at, override, entry)
        ONCALL_LOOKUPS.labels(source=result.source).inc()
        logger.debug(
            "On-call resolved: source=%s", result.source,
            extra={"roster_id": roster.id},
        )
        return result

    def _schedule_week_at(self, roster: Roster, at: datetime) -> Optional[ScheduleEntry]:
        # Before the handoff time the previous week is still running, so look
        # back one full week from the local date.
        day = local_date(roster, at)
        candidates = self._repo.list_schedule(
            roster.id, day - timedelta(days=7), day + timedelta(days=1)
        )
        return week_covering(roster, candidates, at)

    def _covering_roster(self, roster: Roster, at: datetime) -> Roster:
        """Follow-the-sun hand-over: outside its own shift a linked roster answers."""
        if not roster.is_follow_the_sun or roster.linked_roster_id is None:
            return roster
        if is_on_duty(roster, at):
            return roster
        linked = self._repo.get_roster(roster.linked_roster_id)
        if is_on_duty(linked, at):
            logger.debug(
                "Outside shift window, resolving against linked roster %s", linked.id,
                extra={"roster_id": roster.id},
            )
            return linked
        return roster
