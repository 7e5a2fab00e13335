"""Incident engine: store, aggregator, on-call directory and alert intake."""

from .alert_intake import AlertIntake, normalize_alert_severity
from .incident_store import IncidentStore, InvalidIncidentError, VALID_TRANSITIONS
from .metrics_aggregator import MetricsAggregator
from .oncall import OnCallDirectory
from .stats import DailyReport, IncidentSummary

__all__ = [
    "AlertIntake",
    "DailyReport",
    "IncidentStore",
    "IncidentSummary",
    "InvalidIncidentError",
    "MetricsAggregator",
    "OnCallDirectory",
    "VALID_TRANSITIONS",
    "normalize_alert_severity",
]
