"""Incident routes: read-only listing, lookup and aggregate stats."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...dependencies import get_incident_store
from ...engine.incident_store import IncidentStore, parse_severity, parse_status

router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.get("/")
async def list_incidents(
    status: Optional[str] = None,
    severity: Optional[str] = None,
    assignee: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    store: IncidentStore = Depends(get_incident_store),
):
    """List incidents in creation order, optionally filtered."""
    incidents = store.list_all()

    if status is not None:
        wanted_status = parse_status(status)
        if wanted_status is None:
            raise HTTPException(status_code=422, detail=f"Unknown status {status!r}")
        incidents = [i for i in incidents if i.status is wanted_status]
    if severity is not None:
        wanted_severity = parse_severity(severity)
        incidents = [i for i in incidents if i.severity is wanted_severity]
    if assignee is not None:
        incidents = [i for i in incidents if i.assignee == assignee]

    return [i.to_dict() for i in incidents[:limit]]


@router.get("/open")
async def list_open_incidents(store: IncidentStore = Depends(get_incident_store)):
    """Incidents that are open or under investigation."""
    return [i.to_dict() for i in store.list_open()]


@router.get("/stats")
async def get_incident_stats(store: IncidentStore = Depends(get_incident_store)):
    """Counts by status and severity plus overall mean time to resolve."""
    return store.metrics().to_dict()


@router.get("/{incident_id}")
async def get_incident(incident_id: str, store: IncidentStore = Depends(get_incident_store)):
    incident = store.get_incident(incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail="Incident not found")
    return incident.to_dict()
