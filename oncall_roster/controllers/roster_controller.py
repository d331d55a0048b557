# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Roster, member and override endpoints.
Thin HTTP layer, delegates ALL logic to RosterService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from oncall_roster.controllers import CLIENT_ERRORS
from oncall_roster.core.dependencies import get_caller_id, get_roster_service
from oncall_roster.models.domain import Member, Override, Roster
from oncall_roster.schemas.roster import (
    MemberAddRequest,
    MemberUpdateRequest,
    OverrideCreateRequest,
    RosterCreateRequest,
    RosterUpdateRequest,
)
from oncall_roster.services.roster_service import RosterService

router = APIRouter(prefix="/api/v1", tags=["Rosters"])


# ── Rosters ──

@router.post("/rosters", status_code=201, response_model=Roster)
def create_roster(
    payload: RosterCreateRequest,
    service: RosterService = Depends(get_roster_service),
):
    """Create a roster; its first schedule weeks are generated in the background."""
    try:
        return service.create_roster(payload.model_dump())
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/rosters", response_model=list[Roster])
def list_rosters(service: RosterService = Depends(get_roster_service)):
    return service.list_rosters()


@router.get("/rosters/{roster_id}", response_model=Roster)
def get_roster(roster_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        return service.get_roster(roster_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/rosters/{roster_id}", response_model=Roster)
def update_roster(
    roster_id: str,
    payload: RosterUpdateRequest,
    service: RosterService = Depends(get_roster_service),
):
    """Partially update a roster. Only fields present in the body change."""
    try:
        return service.update_roster(roster_id, payload.model_dump(exclude_unset=True))
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/rosters/{roster_id}")
def delete_roster(roster_id: str, service: RosterService = Depends(get_roster_service)):
    """Delete a roster with its members, schedule and overrides."""
    try:
        service.delete_roster(roster_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Roster deleted", "id": roster_id}


# ── Members ──

@router.get("/rosters/{roster_id}/members", response_model=list[Member])
def list_members(roster_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        return service.list_members(roster_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/rosters/{roster_id}/members", status_code=201, response_model=Member)
def add_member(
    roster_id: str,
    payload: MemberAddRequest,
    service: RosterService = Depends(get_roster_service),
):
    """Add a user to the roster, or re-activate them if they left."""
    try:
        return service.add_member(roster_id, payload.user_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.put("/rosters/{roster_id}/members/{user_id}", response_model=Member)
def update_member(
    roster_id: str,
    user_id: str,
    payload: MemberUpdateRequest,
    service: RosterService = Depends(get_roster_service),
):
    try:
        return service.set_member_active(roster_id, user_id, payload.is_active)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/rosters/{roster_id}/members/{user_id}", response_model=Member)
def remove_member(
    roster_id: str,
    user_id: str,
    service: RosterService = Depends(get_roster_service),
):
    """Deactivate a member. History and fairness counts are kept."""
    try:
        return service.remove_member(roster_id, user_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


# ── Overrides ──

@router.get("/rosters/{roster_id}/overrides", response_model=list[Override])
def list_overrides(roster_id: str, service: RosterService = Depends(get_roster_service)):
    try:
        return service.list_overrides(roster_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/rosters/{roster_id}/overrides", status_code=201, response_model=Override)
def create_override(
    roster_id: str,
    payload: OverrideCreateRequest,
    service: RosterService = Depends(get_roster_service),
    caller_id: Optional[str] = Depends(get_caller_id),
):
    """Put a user on call over ``[start_at, end_at)``, ahead of the schedule."""
    try:
        return service.create_override(
            roster_id,
            user_id=payload.user_id,
            start_at=payload.start_at,
            end_at=payload.end_at,
            reason=payload.reason,
            caller_id=caller_id,
        )
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/rosters/{roster_id}/overrides/{override_id}")
def delete_override(
    roster_id: str,
    override_id: str,
    service: RosterService = Depends(get_roster_service),
):
    try:
        service.delete_override(roster_id, override_id)
    except CLIENT_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"message": "Override deleted", "id": override_id}
