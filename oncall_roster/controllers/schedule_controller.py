# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule endpoints for listing, generation and manual week edits.
Thin HTTP layer, delegates ALL logic to ScheduleService.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from oncall_roster.controllers import CLIENT_ERRORS
from oncall_roster.core.cancellation import CancellationToken
from oncall_roster.core.dependencies import get_cancellation_token, get_schedule_service
from oncall_roster.models.domain import ScheduleEntry
from oncall_roster.schemas.roster import (
    ScheduleGenerateRequest,
    ScheduleGenerateResponse,
    ScheduleWeekUpdateRequest,
)
from oncall_roster.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/v1", tags=["Schedule"])


@router.get("/rosters/{roster_id}/schedule", response_model=list[ScheduleEntry])
def list_schedule(
    roster_id: str,
    start: Optional[str] = Query(default=None, alias="from", description="YYYY-MM-DD"),
    end: Optional[str] = Query(default=None, alias="to", description="YYYY-MM-DD"),
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.list_schedule(roster_id, start, end)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/rosters/{roster_id}/schedule/generate", response_model=ScheduleGenerateResponse)
def generate_schedule(
    roster_id: str,
    payload: Optional[ScheduleGenerateRequest] = Body(default=None),
    service: ScheduleService = Depends(get_schedule_service),
    token: CancellationToken = Depends(get_cancellation_token),
):
    """(Re)generate unlocked weeks. Locked weeks are returned untouched."""
    payload = payload or ScheduleGenerateRequest()
    try:
        entries = service.generate(roster_id, payload.start, payload.weeks, token)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return ScheduleGenerateResponse(roster_id=roster_id, weeks=len(entries), entries=entries)


@router.get("/rosters/{roster_id}/schedule/{week_start}", response_model=ScheduleEntry)
def get_schedule_week(
    roster_id: str,
    week_start: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.get_week(roster_id, week_start)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/rosters/{roster_id}/schedule/{week_start}", response_model=ScheduleEntry)
def update_schedule_week(
    roster_id: str,
    week_start: str,
    payload: ScheduleWeekUpdateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Manually assign a week. The week is locked against regeneration."""
    try:
        return service.update_week(
            roster_id,
            week_start,
            primary_user_id=payload.primary_user_id,
            secondary_user_id=payload.secondary_user_id,
            notes=payload.notes,
        )
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/rosters/{roster_id}/schedule/{week_start}/lock", response_model=ScheduleEntry)
def unlock_schedule_week(
    roster_id: str,
    week_start: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    try:
        return service.unlock_week(roster_id, week_start)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
