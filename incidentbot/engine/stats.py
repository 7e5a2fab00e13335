"""Pure aggregate computations over an incident population."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..models.incident import Incident, IncidentStatus, Severity


@dataclass
class IncidentSummary:
    """Point-in-time totals across every incident ever created."""

    total: int = 0
    by_status: dict[str, int] = field(default_factory=lambda: {s.value: 0 for s in IncidentStatus})
    by_severity: dict[str, int] = field(default_factory=lambda: {s.value: 0 for s in Severity})
    avg_resolution_minutes: float = 0.0

    @property
    def active(self) -> int:
        return self.by_status[IncidentStatus.OPEN.value] + self.by_status[IncidentStatus.INVESTIGATING.value]

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "active": self.active,
            "by_status": dict(self.by_status),
            "by_severity": dict(self.by_severity),
            "avg_resolution_minutes": self.avg_resolution_minutes,
        }


@dataclass
class DailyReport:
    window_start: datetime
    created_today: int
    resolved_today: int
    critical_today: int
    avg_resolution_minutes_today: float
    active_incidents: int

    def to_dict(self) -> dict:
        return {
            "window_start": self.window_start.isoformat(),
            "created_today": self.created_today,
            "resolved_today": self.resolved_today,
            "critical_today": self.critical_today,
            "avg_resolution_minutes_today": self.avg_resolution_minutes_today,
            "active_incidents": self.active_incidents,
        }


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_incidents(incidents: Iterable[Incident]) -> IncidentSummary:
    summary = IncidentSummary()
    resolution_minutes = []
    for incident in incidents:
        summary.total += 1
        summary.by_status[incident.status.value] += 1
        summary.by_severity[incident.severity.value] += 1
        if incident.resolution_minutes is not None:
            resolution_minutes.append(incident.resolution_minutes)
    summary.avg_resolution_minutes = _mean(resolution_minutes)
    return summary


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def build_daily_report(incidents: Iterable[Incident], now: Optional[datetime] = None) -> DailyReport:
    """Roll up today's activity. The window opens at midnight of ``now``'s day.

    A naive ``now`` is taken to be UTC.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    window_start = start_of_day(now)

    created = resolved = critical = active = 0
    resolution_minutes = []
    for incident in incidents:
        if incident.is_active:
            active += 1
        if incident.created_at >= window_start:
            created += 1
            if incident.severity.is_critical:
                critical += 1
        if incident.resolved_at is not None and incident.resolved_at >= window_start:
            resolved += 1
            resolution_minutes.append(incident.resolution_minutes)

    return DailyReport(
        window_start=window_start,
        created_today=created,
        resolved_today=resolved,
        critical_today=critical,
        avg_resolution_minutes_today=_mean(resolution_minutes),
        active_incidents=active,
    )
