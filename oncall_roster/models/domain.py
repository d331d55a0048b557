# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


# ── Rosters & members ──

class Roster(BaseModel):
    """A rotation of people sharing one on-call duty."""
    id: str
    name: str
    description: Optional[str] = None
    timezone: str
    handoff_time: str = Field(..., description="HH:MM in the roster timezone")
    handoff_day: int = Field(..., ge=0, le=6, description="0=Sunday … 6=Saturday")
    schedule_weeks_ahead: int = 12
    max_consecutive_weeks: int = 2
    is_follow_the_sun: bool = False
    linked_roster_id: Optional[str] = None
    active_hours_start: Optional[str] = None
    active_hours_end: Optional[str] = None
    escalation_policy_id: Optional[str] = None
    end_date: Optional[date] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class Member(BaseModel):
    """A user's participation in a roster."""
    id: str
    roster_id: str
    user_id: str
    display_name: str
    is_active: bool
    joined_at: datetime
    left_at: Optional[datetime] = None
    primary_weeks_served: int = 0
    secondary_weeks_served: int = 0


class ScheduleEntry(BaseModel):
    """One rotation week. ``week_end`` is always ``week_start + 7 days``."""
    id: str
    roster_id: str
    week_start: date
    week_end: date
    primary_user_id: Optional[str] = None
    primary_display_name: str = ""
    secondary_user_id: Optional[str] = None
    secondary_display_name: str = ""
    is_locked: bool = False
    generated: bool = True
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class Override(BaseModel):
    """Manual assignment over the half-open interval ``[start_at, end_at)``."""
    id: str
    roster_id: str
    user_id: str
    display_name: str
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    def covers(self, at: datetime) -> bool:
        return self.start_at <= at < self.end_at


# ── On-call resolution (tagged union on ``source``) ──

class OnCallPerson(BaseModel):
    user_id: str
    display_name: str


class _OnCallBase(BaseModel):
    roster_id: str
    roster_name: str
    queried_at: datetime


class OverrideOnCall(_OnCallBase):
    """An override owns primary; secondary comes from the schedule, for display only."""
    source: Literal["override"] = "override"
    primary: OnCallPerson
    secondary: Optional[OnCallPerson] = None
    week_start: Optional[date] = None
    active_override: Override


class ScheduleOnCall(_OnCallBase):
    source: Literal["schedule"] = "schedule"
    primary: OnCallPerson
    secondary: Optional[OnCallPerson] = None
    week_start: date


class UnassignedOnCall(_OnCallBase):
    """No override and no scheduled primary covers the instant."""
    source: Literal["unassigned"] = "unassigned"
    primary: None = None
    secondary: None = None


OnCallResult = Annotated[
    Union[OverrideOnCall, ScheduleOnCall, UnassignedOnCall],
    Field(discriminator="source"),
]


# ── Coverage ──

class CoverageRoster(BaseModel):
    id: str
    name: str
    timezone: str
    active_hours_start: Optional[str] = None
    active_hours_end: Optional[str] = None
    is_follow_the_sun: bool = False


class CoverageSlotRoster(BaseModel):
    roster_id: str
    roster_name: str
    primary: str
    secondary: Optional[str] = None
    source: Literal["override", "schedule"]


class CoverageSlot(BaseModel):
    time: datetime
    coverage: list[CoverageSlotRoster]
    gap: bool


class GapInfo(BaseModel):
    start: datetime
    end: datetime
    duration_hours: float


class GapSummary(BaseModel):
    total_gap_hours: float
    gaps: list[GapInfo]


class CoverageReport(BaseModel):
    start: datetime = Field(..., serialization_alias="from")
    end: datetime = Field(..., serialization_alias="to")
    resolution_minutes: int
    rosters: list[CoverageRoster]
    slots: list[CoverageSlot]
    gap_summary: GapSummary


# ── Handoffs ──

class HandoffReport(BaseModel):
    roster_id: str
    roster_name: str
    tenant: str
    outgoing_user_id: Optional[str] = None
    incoming_user_id: Optional[str] = None
    handoff_at: datetime
