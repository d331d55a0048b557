# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Schema package: HTTP request/response contracts."""
from oncall_roster.schemas.roster import (
    MemberAddRequest,
    MemberUpdateRequest,
    OverrideCreateRequest,
    RosterCreateRequest,
    RosterUpdateRequest,
    ScheduleGenerateRequest,
    ScheduleGenerateResponse,
    ScheduleWeekUpdateRequest,
)

__all__ = [
    "MemberAddRequest",
    "MemberUpdateRequest",
    "OverrideCreateRequest",
    "RosterCreateRequest",
    "RosterUpdateRequest",
    "ScheduleGenerateRequest",
    "ScheduleGenerateResponse",
    "ScheduleWeekUpdateRequest",
]
