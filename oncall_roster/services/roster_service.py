# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Roster management. Business logic for rosters, members and overrides.
Validates raw API input, coordinates repository writes with metrics and
queues the initial schedule generation for new rosters.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from oncall_roster.core.config import settings
from oncall_roster.core.errors import NotFoundError, ValidationError
from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import OVERRIDES_CREATED
from oncall_roster.models.domain import Member, Override, Roster
from oncall_roster.repositories.encoding import (
    load_zone,
    parse_date,
    parse_instant,
    parse_time_of_day,
    parse_uuid,
)
from oncall_roster.repositories.roster_repository import RosterRepository
from oncall_roster.services.background import BackgroundQueue
from oncall_roster.services.schedule_generator import generate_detached

logger = get_logger(__name__)

# An explicit null on these keeps the stored value.
REQUIRED_ROSTER_FIELDS = frozenset({
    "name", "timezone", "handoff_time", "handoff_day", "schedule_weeks_ahead",
    "max_consecutive_weeks", "is_follow_the_sun", "is_active",
})


class RosterService:
    """Business logic for rosters, their members and overrides."""

    def __init__(
        self,
        repo: RosterRepository,
        background: Optional[BackgroundQueue] = None,
        connect: Optional[Callable] = None,
    ) -> None:
        self._repo = repo
        self._background = background
        self._connect = connect

    # ── Validation ──

    def _clean_roster_fields(self, values: dict[str, Any], roster_id: Optional[str] = None) -> dict[str, Any]:
        clean = dict(values)
        if clean.get("timezone") is not None:
            load_zone(clean["timezone"])
        if clean.get("handoff_time") is not None:
            clean["handoff_time"] = parse_time_of_day(clean["handoff_time"], "handoff_time")
        for field in ("active_hours_start", "active_hours_end"):
            if clean.get(field) is not None:
                clean[field] = parse_time_of_day(clean[field], field)
        if "schedule_weeks_ahead" in clean and (clean["schedule_weeks_ahead"] or 0) <= 0:
            clean["schedule_weeks_ahead"] = settings.DEFAULT_WEEKS_AHEAD
        if "max_consecutive_weeks" in clean and (clean["max_consecutive_weeks"] or 0) <= 0:
            clean["max_consecutive_weeks"] = settings.DEFAULT_MAX_CONSECUTIVE_WEEKS
        if clean.get("escalation_policy_id") is not None:
            clean["escalation_policy_id"] = parse_uuid(clean["escalation_policy_id"], "escalation_policy_id")
        if clean.get("end_date") is not None:
            clean["end_date"] = parse_date(clean["end_date"], "end_date")
        if clean.get("linked_roster_id") is not None:
            linked = parse_uuid(clean["linked_roster_id"], "linked_roster_id")
            if linked == roster_id:
                raise ValidationError("a roster cannot be linked to itself")
            try:
                self._repo.get_roster(linked)
            except NotFoundError:
                raise ValidationError(f"linked roster {linked} does not exist")
            clean["linked_roster_id"] = linked
        return clean

    # ── Rosters ──

    def create_roster(self, values: dict[str, Any]) -> Roster:
        values = {
            "schedule_weeks_ahead": settings.DEFAULT_WEEKS_AHEAD,
            "max_consecutive_weeks": settings.DEFAULT_MAX_CONSECUTIVE_WEEKS,
            **values,
        }
        roster = self._repo.create_roster(self._clean_roster_fields(values))
        self._queue_initial_schedule(roster)
        return roster

    def _queue_initial_schedule(self, roster: Roster) -> None:
        if self._background is None or self._connect is None:
            return
        today = datetime.now(timezone.utc).date()
        self._background.submit(
            "initial-schedule",
            generate_detached,
            self._connect,
            roster.id,
            today,
            roster.schedule_weeks_ahead,
        )
        logger.info("Initial schedule generation queued", extra={"roster_id": roster.id})

    def list_rosters(self) -> list[Roster]:
        return self._repo.list_rosters()

    def get_roster(self, roster_id: str) -> Roster:
        return self._repo.get_roster(parse_uuid(roster_id, "roster id"))

    def update_roster(self, roster_id: str, values: dict[str, Any]) -> Roster:
        roster_id = parse_uuid(roster_id, "roster id")
        self._repo.get_roster(roster_id)
        values = {
            k: v for k, v in values.items()
            if v is not None or k not in REQUIRED_ROSTER_FIELDS
        }
        clean = self._clean_roster_fields(values, roster_id)
        roster = self._repo.update_roster(roster_id, clean)
        logger.info("Roster updated: fields=%s", sorted(clean), extra={"roster_id": roster_id})
        return roster

    def delete_roster(self, roster_id: str) -> None:
        self._repo.delete_roster(parse_uuid(roster_id, "roster id"))

    # ── Members ──

    def list_members(self, roster_id: str) -> list[Member]:
        roster = self.get_roster(roster_id)
        return self._repo.list_members(roster.id)

    def add_member(self, roster_id: str, user_id: str) -> Member:
        roster = self.get_roster(roster_id)
        user_id = parse_uuid(user_id, "user_id")
        if self._repo.get_user_display_name(user_id) is None:
            raise NotFoundError(f"user {user_id} not found")
        member = self._repo.add_member(roster.id, user_id)
        logger.info("Member added: user=%s", user_id, extra={"roster_id": roster.id})
        return member

    def set_member_active(self, roster_id: str, user_id: str, active: bool) -> Member:
        roster = self.get_roster(roster_id)
        member = self._repo.set_member_active(roster.id, parse_uuid(user_id, "user_id"), active)
        logger.info(
            "Member %s: user=%s", "activated" if active else "deactivated", member.user_id,
            extra={"roster_id": roster.id},
        )
        return member

    def remove_member(self, roster_id: str, user_id: str) -> Member:
        return self.set_member_active(roster_id, user_id, False)

    # ── Overrides ──

    def list_overrides(self, roster_id: str) -> list[Override]:
        roster = self.get_roster(roster_id)
        return self._repo.list_overrides(roster.id)

    def create_override(
        self,
        roster_id: str,
        user_id: str,
        start_at: str,
        end_at: str,
        reason: Optional[str],
        caller_id: Optional[str],
    ) -> Override:
        roster = self.get_roster(roster_id)
        user_id = parse_uuid(user_id, "user_id")
        start = parse_instant(start_at, "start_at")
        end = parse_instant(end_at, "end_at")
        if end <= start:
            raise ValidationError("end_at must be after start_at")
        created_by = parse_uuid(caller_id, "caller id") if caller_id else None
        override = self._repo.create_override(roster.id, user_id, start, end, reason, created_by)
        OVERRIDES_CREATED.inc()
        return override

    def delete_override(self, roster_id: str, override_id: str) -> None:
        roster = self.get_roster(roster_id)
        self._repo.delete_override(roster.id, parse_uuid(override_id, "override id"))
