# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: On-call lookup, coverage and calendar export endpoints.
Thin HTTP layer, delegates ALL logic to ScheduleService.

Registered before the roster router so ``/rosters/coverage`` is not taken
for a roster id.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from starlette.responses import Response

from oncall_roster.controllers import CLIENT_ERRORS
from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.dependencies import get_cancellation_token, get_schedule_service
from oncall_roster.models.domain import CoverageReport, OnCallResult
from oncall_roster.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["On-Call"])


@router.get("/rosters/coverage", response_model=CoverageReport)
def get_coverage(
    start: Optional[str] = Query(default=None, alias="from", description="RFC3339"),
    end: Optional[str] = Query(default=None, alias="to", description="RFC3339"),
    resolution: Optional[int] = Query(default=None, description="Slot size in minutes"),
    service: ScheduleService = Depends(get_schedule_service),
    token: CancellationToken = Depends(get_cancellation_token),
):
    """Per-slot coverage across all active rosters, with the gaps between them."""
    try:
        return service.coverage(start, end, resolution, token)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/rosters/{roster_id}/oncall", response_model=OnCallResult)
def get_oncall(
    roster_id: str,
    at: Optional[str] = Query(default=None, description="RFC3339 instant, default now"),
    service: ScheduleService = Depends(get_schedule_service),
    token: CancellationToken = Depends(get_cancellation_token),
):
    """Who is on call: override, else schedule, else unassigned."""
    try:
        return service.oncall(roster_id, at, token)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/rosters/{roster_id}/export.ics")
def export_calendar(
    roster_id: str,
    start: Optional[str] = Query(default=None, alias="from", description="YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, alias="to", description="YYYY-MM-DD"),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        filename, body = service.export_calendar(roster_id, start, end)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
