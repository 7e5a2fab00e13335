"""Incident and timeline event records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """Priority tier. P0 is the most severe."""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def is_critical(self) -> bool:
        return self in (Severity.P0, Severity.P1)


class IncidentStatus(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    CLOSED = "closed"

    @property
    def is_active(self) -> bool:
        return self in (IncidentStatus.OPEN, IncidentStatus.INVESTIGATING)


class IncidentSource(str, Enum):
    MANUAL = "manual"
    WEBHOOK = "webhook"
    MONITORING = "monitoring"


class EventType(str, Enum):
    CREATED = "created"
    ASSIGNED = "assigned"
    STATUS_CHANGED = "status_changed"
    COMMENT = "comment"
    RESOLVED = "resolved"
    CLOSED = "closed"


@dataclass
class IncidentEvent:
    """One audit record on an incident's timeline."""

    id: str
    incident_id: str
    type: EventType
    message: str
    timestamp: datetime
    user_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "incident_id": self.incident_id,
            "type": self.type.value,
            "message": self.message,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


@dataclass
class Incident:
    """A tracked operational problem with its audit timeline."""

    id: str
    title: str
    severity: Severity
    created_at: datetime
    updated_at: datetime
    status: IncidentStatus = IncidentStatus.OPEN
    source: IncidentSource = IncidentSource.MANUAL
    description: Optional[str] = None
    assignee: Optional[str] = None
    channel_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    tags: list[str] = field(default_factory=list)
    timeline: list[IncidentEvent] = field(default_factory=list)
    metadata: Any = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def resolution_minutes(self) -> Optional[float]:
        """Minutes from creation to first resolution, if resolved."""
        if self.resolved_at is None:
            return None
        return (self.resolved_at - self.created_at).total_seconds() / 60

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "status": self.status.value,
            "assignee": self.assignee,
            "channel_id": self.channel_id,
            "source": self.source.value,
            "tags": list(self.tags),
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "closed_at": self.closed_at.isoformat() if self.closed_at else None,
            "timeline": [event.to_dict() for event in self.timeline],
        }
