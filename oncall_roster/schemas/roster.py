# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.

Dates, times of day and instants arrive as strings and are parsed by the
service layer, so malformed values surface as 400 with a precise message.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from oncall_roster.models.domain import ScheduleEntry


# ── Roster Schemas ──

class RosterCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    timezone: str = Field(default="UTC", description="IANA timezone name")
    handoff_time: str = Field(default="09:00", description="HH:MM in the roster timezone")
    handoff_day: int = Field(default=1, ge=0, le=6, description="0=Sunday … 6=Saturday")
    schedule_weeks_ahead: int = Field(default=12, description="<= 0 falls back to 12")
    max_consecutive_weeks: int = Field(default=2, description="<= 0 falls back to 2")
    is_follow_the_sun: bool = False
    linked_roster_id: Optional[str] = None
    active_hours_start: Optional[str] = None
    active_hours_end: Optional[str] = None
    escalation_policy_id: Optional[str] = None
    end_date: Optional[str] = Field(default=None, description="YYYY-MM-DD")


class RosterUpdateRequest(BaseModel):
    """Partial update model for PUT /api/v1/rosters/{id}. Omitted fields are kept."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    timezone: Optional[str] = None
    handoff_time: Optional[str] = None
    handoff_day: Optional[int] = Field(default=None, ge=0, le=6)
    schedule_weeks_ahead: Optional[int] = None
    max_consecutive_weeks: Optional[int] = None
    is_follow_the_sun: Optional[bool] = None
    linked_roster_id: Optional[str] = None
    active_hours_start: Optional[str] = None
    active_hours_end: Optional[str] = None
    escalation_policy_id: Optional[str] = None
    end_date: Optional[str] = None
    is_active: Optional[bool] = None


# ── Member Schemas ──

class MemberAddRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class MemberUpdateRequest(BaseModel):
    is_active: bool


# ── Schedule Schemas ──

class ScheduleGenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: Optional[str] = Field(default=None, alias="from", description="YYYY-MM-DD, default today")
    weeks: Optional[int] = Field(default=None, ge=1, le=104)


class ScheduleGenerateResponse(BaseModel):
    roster_id: str
    weeks: int
    entries: list[ScheduleEntry]


class ScheduleWeekUpdateRequest(BaseModel):
    primary_user_id: Optional[str] = None
    secondary_user_id: Optional[str] = None
    notes: Optional[str] = None


# ── Override Schemas ──

class OverrideCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    start_at: str = Field(..., description="RFC3339")
    end_at: str = Field(..., description="RFC3339")
    reason: Optional[str] = None
