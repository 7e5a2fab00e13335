"""Incident bot data records."""

from .incident import (
    EventType,
    Incident,
    IncidentEvent,
    IncidentSource,
    IncidentStatus,
    Severity,
)
from .oncall import OnCallSchedule, OnCallSnapshot, RotationSlot

__all__ = [
    "EventType",
    "Incident",
    "IncidentEvent",
    "IncidentSource",
    "IncidentStatus",
    "OnCallSchedule",
    "OnCallSnapshot",
    "RotationSlot",
    "Severity",
]
