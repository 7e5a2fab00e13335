"""On-call lookup routes."""

from fastapi import APIRouter, Depends, HTTPException

from ...dependencies import get_incident_store
from ...engine.incident_store import IncidentStore

router = APIRouter(prefix="/oncall", tags=["oncall"])


@router.get("/")
async def get_default_on_call(store: IncidentStore = Depends(get_incident_store)):
    team = store.oncall.default_team
    return {"team_id": team, **store.get_on_call(team).to_dict()}


@router.get("/{team_id}")
async def get_team_on_call(team_id: str, store: IncidentStore = Depends(get_incident_store)):
    """Current on-call for a team. Unknown teams yield an empty snapshot."""
    return {"team_id": team_id, **store.get_on_call(team_id).to_dict()}


@router.get("/{team_id}/schedule")
async def get_team_schedule(team_id: str, store: IncidentStore = Depends(get_incident_store)):
    schedule = store.oncall.get_schedule(team_id)
    if schedule is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return schedule.to_dict()
