# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation logic. Pure computation, no side effects.

Week alignment and the fair primary/secondary selection used by the
schedule generator. Nothing here touches the database, metrics or logs.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence


def sunday_weekday(day: date) -> int:
    """Weekday with 0=Sunday … 6=Saturday."""
    return (day.weekday() + 1) % 7


def align_to_handoff_day(day: date, handoff_day: int) -> date:
    """Most recent ``handoff_day`` (0=Sunday) on or before ``day``."""
    return day - timedelta(days=(sunday_weekday(day) - handoff_day) % 7)


@dataclass(frozen=True)
class FairnessState:
    """Duty counters and the running consecutive-primary chain.

    Instances are never mutated: :meth:`record` returns the state after one
    more week has been assigned, so each week's selection sees exactly the
    weeks before it.
    """

    primary_counts: dict[str, int] = field(default_factory=dict)
    secondary_counts: dict[str, int] = field(default_factory=dict)
    last_primary: Optional[str] = None
    consecutive: int = 0

    def primary(self, user_id: str) -> int:
        return self.primary_counts.get(user_id, 0)

    def secondary(self, user_id: str) -> int:
        return self.secondary_counts.get(user_id, 0)

    def record(self, primary: Optional[str], secondary: Optional[str]) -> "FairnessState":
        primary_counts = dict(self.primary_counts)
        secondary_counts = dict(self.secondary_counts)
        last_primary, consecutive = self.last_primary, self.consecutive
        if primary is not None:
            primary_counts[primary] = primary_counts.get(primary, 0) + 1
            if primary == last_primary:
                consecutive += 1
            else:
                last_primary, consecutive = primary, 1
        if secondary is not None:
            secondary_counts[secondary] = secondary_counts.get(secondary, 0) + 1
        return FairnessState(primary_counts, secondary_counts, last_primary, consecutive)


def _blocked(user_id: str, state: FairnessState, max_consecutive: int) -> bool:
    return (
        max_consecutive > 0
        and state.last_primary == user_id
        and state.consecutive >= max_consecutive
    )


def pick_primary(
    members: Sequence[str],
    state: FairnessState,
    max_consecutive: int,
) -> Optional[str]:
    """
    Least-served member that would not exceed the consecutive cap.
    Ties go to the first member in list order. When the cap blocks everyone
    (a single-member roster) it is relaxed.
    """
    best: Optional[str] = None
    for user_id in members:
        if _blocked(user_id, state, max_consecutive):
            continue
        if best is None or state.primary(user_id) < state.primary(best):
            best = user_id
    if best is not None:
        return best
    for user_id in members:
        if best is None or state.primary(user_id) < state.primary(best):
            best = user_id
    return best


def pick_secondary(
    members: Sequence[str],
    state: FairnessState,
    primary: Optional[str],
) -> Optional[str]:
    """Member other than ``primary`` with the lowest combined duty count."""
    best: Optional[str] = None
    best_total = 0
    for user_id in members:
        if user_id == primary:
            continue
        total = state.primary(user_id) + state.secondary(user_id)
        if best is None or total < best_total:
            best, best_total = user_id, total
    return best
