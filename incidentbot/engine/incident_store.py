"""Incident Store: authoritative incident set, state machine and audit timeline."""

import copy
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from ..models.incident import (
    EventType,
    Incident,
    IncidentEvent,
    IncidentSource,
    IncidentStatus,
    Severity,
)
from ..models.oncall import OnCallSnapshot
from ..utils.ids import IdGenerator
from ..utils.logging import get_logger
from .oncall import OnCallDirectory
from .stats import IncidentSummary, summarize_incidents

logger = get_logger("engine.incident_store")

# Nominal lifecycle. Only enforced when the store runs in strict mode.
VALID_TRANSITIONS = {
    IncidentStatus.OPEN: {IncidentStatus.INVESTIGATING, IncidentStatus.RESOLVED},
    IncidentStatus.INVESTIGATING: {IncidentStatus.RESOLVED},
    IncidentStatus.RESOLVED: {IncidentStatus.CLOSED},
    IncidentStatus.CLOSED: set(),
}

IncidentListener = Callable[[str, Incident], None]


class InvalidIncidentError(ValueError):
    """Raised when a creation request is malformed. Nothing is stored."""


def parse_severity(value: Any) -> Severity:
    if isinstance(value, Severity):
        return value
    if isinstance(value, str):
        try:
            return Severity(value.strip().upper())
        except ValueError:
            pass
    raise InvalidIncidentError(f"Invalid severity {value!r}. Use P0, P1, P2, or P3.")


def parse_status(value: Any) -> Optional[IncidentStatus]:
    if isinstance(value, IncidentStatus):
        return value
    if isinstance(value, str):
        try:
            return IncidentStatus(value.strip().lower())
        except ValueError:
            return None
    return None


def _parse_source(value: Any) -> IncidentSource:
    if isinstance(value, IncidentSource):
        return value
    try:
        return IncidentSource(value)
    except ValueError:
        raise InvalidIncidentError(f"Invalid source {value!r}") from None


def _unique_tags(tags: Optional[Iterable[str]]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags or ():
        tag = str(tag).strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class IncidentStore:
    """Owns every incident and its timeline for the lifetime of the process.

    All mutations and reads go through one re-entrant lock, so a reader never
    sees an incident whose status changed before its timeline event landed.
    Reads hand out deep copies. Mutations for unknown ids return False rather
    than raising; malformed creation requests raise InvalidIncidentError.

    The optional listener is called as ``listener(event, incident)`` after the
    lock is released. Events: created, assigned, status_changed, resolved,
    comment, channel_attached. ``resolved`` replaces ``status_changed`` on the
    transition that first sets ``resolved_at``.
    """

    def __init__(
        self,
        oncall: Optional[OnCallDirectory] = None,
        clock: Optional[Callable[[], datetime]] = None,
        enforce_transitions: bool = False,
        listener: Optional[IncidentListener] = None,
    ):
        self._oncall = oncall or OnCallDirectory()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._enforce_transitions = enforce_transitions
        self._listener = listener
        self._incidents: dict[str, Incident] = {}
        self._lock = threading.RLock()
        self._incident_ids = IdGenerator("INC", suffix_length=5)
        self._event_ids = IdGenerator("EVT", suffix_length=3)

    def set_listener(self, listener: Optional[IncidentListener]) -> None:
        self._listener = listener

    def now(self) -> datetime:
        return self._clock()

    # --- internals ---

    def _stamp(self, incident: Incident) -> datetime:
        """Current time, never earlier than the incident's last event."""
        now = self._clock()
        last = incident.timeline[-1].timestamp
        return now if now >= last else last

    def _append_event(
        self,
        incident: Incident,
        event_type: EventType,
        message: str,
        timestamp: datetime,
        user_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> IncidentEvent:
        event = IncidentEvent(
            id=self._event_ids.next_id(),
            incident_id=incident.id,
            type=event_type,
            message=message,
            timestamp=timestamp,
            user_id=user_id,
            metadata=metadata or {},
        )
        incident.timeline.append(event)
        incident.updated_at = timestamp
        return event

    def _notify(self, event: str, incident: Incident) -> None:
        if self._listener is None:
            return
        try:
            self._listener(event, incident)
        except Exception as e:
            logger.error(
                "incident_listener_failed",
                listener_event=event,
                incident_id=incident.id,
                error=str(e),
            )

    # --- mutations ---

    def create_incident(
        self,
        title: str,
        severity: Severity | str,
        description: Optional[str] = None,
        assignee: Optional[str] = None,
        source: IncidentSource | str = IncidentSource.MANUAL,
        tags: Optional[Iterable[str]] = None,
        metadata: Any = None,
    ) -> Incident:
        """Create and store a new open incident with its creation event."""
        if not isinstance(title, str) or not title.strip():
            raise InvalidIncidentError("Incident title is required")
        level = parse_severity(severity)
        origin = _parse_source(source or IncidentSource.MANUAL)

        with self._lock:
            now = self._clock()
            incident = Incident(
                id=self._incident_ids.next_id(),
                title=title.strip(),
                severity=level,
                created_at=now,
                updated_at=now,
                source=origin,
                description=description,
                assignee=assignee,
                tags=_unique_tags(tags),
                metadata=copy.deepcopy(metadata),
            )
            incident.timeline.append(
                IncidentEvent(
                    id=self._event_ids.next_id(),
                    incident_id=incident.id,
                    type=EventType.CREATED,
                    message=f"Incident created: {incident.title}",
                    timestamp=now,
                    metadata={"severity": level.value, "source": origin.value},
                )
            )
            self._incidents[incident.id] = incident
            snapshot = copy.deepcopy(incident)

        logger.info(
            "incident_created",
            incident_id=snapshot.id,
            title=snapshot.title,
            severity=level.value,
            source=origin.value,
        )
        self._notify("created", snapshot)
        return snapshot

    def assign_incident(self, incident_id: str, assignee: str, actor_id: Optional[str] = None) -> bool:
        with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                logger.warning("incident_not_found", operation="assign", incident_id=incident_id)
                return False

            old_assignee = incident.assignee
            incident.assignee = assignee
            message = (
                f"Incident reassigned from {old_assignee} to {assignee}"
                if old_assignee
                else f"Incident assigned to {assignee}"
            )
            self._append_event(
                incident,
                EventType.ASSIGNED,
                message,
                self._stamp(incident),
                user_id=actor_id,
                metadata={"old_assignee": old_assignee, "new_assignee": assignee},
            )
            snapshot = copy.deepcopy(incident)

        logger.info("incident_assigned", incident_id=incident_id, old=old_assignee, new=assignee)
        self._notify("assigned", snapshot)
        return True

    def update_status(
        self,
        incident_id: str,
        new_status: IncidentStatus | str,
        actor_id: Optional[str] = None,
    ) -> bool:
        status = parse_status(new_status)
        if status is None:
            logger.warning("incident_status_invalid", incident_id=incident_id, status=str(new_status))
            return False

        with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                logger.warning("incident_not_found", operation="update_status", incident_id=incident_id)
                return False

            old_status = incident.status
            if self._enforce_transitions and status not in VALID_TRANSITIONS[old_status]:
                logger.warning(
                    "incident_transition_rejected",
                    incident_id=incident_id,
                    old=old_status.value,
                    new=status.value,
                )
                return False

            timestamp = self._stamp(incident)
            incident.status = status
            first_resolution = False
            if status is IncidentStatus.RESOLVED and incident.resolved_at is None:
                incident.resolved_at = timestamp
                first_resolution = True
            elif status is IncidentStatus.CLOSED and incident.closed_at is None:
                incident.closed_at = timestamp

            self._append_event(
                incident,
                EventType.STATUS_CHANGED,
                f"Status changed from {old_status.value} to {status.value}",
                timestamp,
                user_id=actor_id,
                metadata={"old_status": old_status.value, "new_status": status.value},
            )
            snapshot = copy.deepcopy(incident)

        logger.info("incident_status_updated", incident_id=incident_id, old=old_status.value, new=status.value)
        self._notify("resolved" if first_resolution else "status_changed", snapshot)
        return True

    def add_comment(self, incident_id: str, message: str, actor_id: Optional[str] = None) -> bool:
        with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                logger.warning("incident_not_found", operation="comment", incident_id=incident_id)
                return False
            self._append_event(incident, EventType.COMMENT, message, self._stamp(incident), user_id=actor_id)
            snapshot = copy.deepcopy(incident)

        self._notify("comment", snapshot)
        return True

    def attach_channel(self, incident_id: str, channel_id: str) -> bool:
        """Bind the incident to a chat channel. A channel can only be set once."""
        with self._lock:
            incident = self._incidents.get(incident_id)
            if incident is None:
                logger.warning("incident_not_found", operation="attach_channel", incident_id=incident_id)
                return False
            if incident.channel_id is not None:
                logger.warning(
                    "incident_channel_already_set",
                    incident_id=incident_id,
                    channel_id=incident.channel_id,
                )
                return False
            incident.channel_id = channel_id
            self._append_event(
                incident,
                EventType.COMMENT,
                f"Incident channel linked: {channel_id}",
                self._stamp(incident),
                metadata={"channel_id": channel_id},
            )
            snapshot = copy.deepcopy(incident)

        self._notify("channel_attached", snapshot)
        return True

    # --- queries ---

    def get_incident(self, incident_id: str) -> Optional[Incident]:
        with self._lock:
            incident = self._incidents.get(incident_id)
            return copy.deepcopy(incident) if incident else None

    def list_all(self) -> list[Incident]:
        """Every incident, in creation order."""
        with self._lock:
            return copy.deepcopy(list(self._incidents.values()))

    def _select(self, predicate: Callable[[Incident], bool]) -> list[Incident]:
        with self._lock:
            return copy.deepcopy([i for i in self._incidents.values() if predicate(i)])

    def list_open(self) -> list[Incident]:
        return self._select(lambda i: i.is_active)

    def list_by_status(self, status: IncidentStatus | str) -> list[Incident]:
        wanted = parse_status(status)
        return self._select(lambda i: i.status is wanted)

    def list_by_assignee(self, assignee: str) -> list[Incident]:
        return self._select(lambda i: i.assignee == assignee)

    def list_by_severity(self, severity: Severity | str) -> list[Incident]:
        level = parse_severity(severity)
        return self._select(lambda i: i.severity is level)

    def find_open_by_channel(self, channel_id: str) -> Optional[Incident]:
        matches = self._select(lambda i: i.is_active and i.channel_id == channel_id)
        return matches[0] if matches else None

    def metrics(self) -> IncidentSummary:
        return summarize_incidents(self.list_all())

    def get_on_call(self, team_id: Optional[str] = None) -> OnCallSnapshot:
        return self._oncall.get_current(team_id)

    @property
    def oncall(self) -> OnCallDirectory:
        return self._oncall

    def __len__(self) -> int:
        with self._lock:
            return len(self._incidents)
