"""Alert intake: turns an arbitrary external alert payload into an incident."""

from typing import Any

from ..models.incident import Incident, IncidentSource, Severity
from ..utils.logging import get_logger
from .incident_store import IncidentStore

logger = get_logger("engine.alert_intake")

# Checked in order; the first tier containing the token wins.
SEVERITY_TOKENS = (
    (Severity.P0, {"critical", "p0", "sev0", "high"}),
    (Severity.P1, {"high", "p1", "sev1", "medium"}),
    (Severity.P2, {"medium", "p2", "sev2", "low"}),
)


def normalize_alert_severity(value: Any) -> Severity:
    token = str(value or "").strip().lower()
    for severity, tokens in SEVERITY_TOKENS:
        if token in tokens:
            return severity
    return Severity.P3


def _first_text(alert: dict, *keys: str) -> str:
    """First non-blank value among ``keys``, stripped; empty string if none."""
    for key in keys:
        value = alert.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


class AlertIntake:
    def __init__(self, store: IncidentStore):
        self._store = store

    def ingest(self, alert: dict, source: IncidentSource = IncidentSource.WEBHOOK) -> Incident:
        """Create an incident from an alert; the raw alert becomes its metadata."""
        severity = normalize_alert_severity(alert.get("severity") or alert.get("priority"))
        title = _first_text(alert, "summary", "title") or "Unknown Alert"
        description = _first_text(alert, "description", "message")
        tags = alert.get("tags") if isinstance(alert.get("tags"), list) else None

        incident = self._store.create_incident(
            title=title,
            severity=severity,
            description=description,
            source=source,
            tags=tags,
            metadata=alert,
        )
        logger.info("alert_ingested", incident_id=incident.id, title=incident.title, severity=severity.value)
        return incident
