"""Metrics Aggregator: Prometheus instruments and reports derived from the store."""

import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from ..models.incident import Incident, IncidentStatus, Severity
from ..utils.logging import get_logger
from .incident_store import IncidentStore
from .stats import DailyReport, IncidentSummary, build_daily_report

logger = get_logger("engine.metrics_aggregator")

RESOLUTION_BUCKETS_MINUTES = (5, 10, 30, 60, 120, 240, 480, 960, 1440)
RESPONSE_TIME_BUCKETS_SECONDS = (0.1, 0.5, 1, 2, 5, 10)


class MetricsAggregator:
    """Derives statistics from an IncidentStore without ever mutating it.

    Counters and histograms move incrementally as the store reports events.
    The status/severity gauges are point-in-time values recomputed from a
    full scan, so each label set always sums to the incident total.
    """

    def __init__(self, store: IncidentStore, registry: Optional[CollectorRegistry] = None):
        self._store = store
        self.registry = registry or CollectorRegistry()
        # Guards gauge refreshes and scrapes so label sets come from one snapshot
        self._gauge_lock = threading.RLock()

        self.incidents_total = Counter(
            "incidents_total",
            "Total number of incidents created",
            ["severity", "source"],
            registry=self.registry,
        )
        self.incidents_by_status = Gauge(
            "incidents_by_status",
            "Number of incidents by status",
            ["status"],
            registry=self.registry,
        )
        self.incidents_by_severity = Gauge(
            "incidents_by_severity",
            "Number of incidents by severity",
            ["severity"],
            registry=self.registry,
        )
        self.active_incidents = Gauge(
            "active_incidents",
            "Number of currently active incidents",
            registry=self.registry,
        )
        self.resolution_time = Histogram(
            "incident_resolution_time_minutes",
            "Time taken to resolve incidents in minutes",
            ["severity"],
            buckets=RESOLUTION_BUCKETS_MINUTES,
            registry=self.registry,
        )
        self.chat_commands_total = Counter(
            "chat_commands_total",
            "Total number of chat commands processed",
            ["command", "success"],
            registry=self.registry,
        )
        self.chat_events_total = Counter(
            "chat_events_total",
            "Total number of chat events processed",
            ["event_type", "success"],
            registry=self.registry,
        )
        self.webhook_requests_total = Counter(
            "webhook_requests_total",
            "Total number of webhook requests received",
            ["source", "status"],
            registry=self.registry,
        )
        self.response_time = Histogram(
            "response_time_seconds",
            "Response time for various operations",
            ["operation"],
            buckets=RESPONSE_TIME_BUCKETS_SECONDS,
            registry=self.registry,
        )

        self.refresh_gauges()
        logger.info("metrics_initialized")

    # --- store events ---

    def handle_incident_event(self, event: str, incident: Incident) -> None:
        """Listener hooked into the store; runs after each completed mutation."""
        if event == "created":
            self.record_incident_created(incident.severity.value, incident.source.value)
        elif event == "resolved":
            self.record_incident_resolved(incident)
        self.refresh_gauges()

    def record_incident_created(self, severity: str, source: str) -> None:
        self.incidents_total.labels(severity=severity, source=source).inc()

    def record_incident_resolved(self, incident: Incident) -> None:
        minutes = incident.resolution_minutes
        if minutes is None:
            return
        self.resolution_time.labels(severity=incident.severity.value).observe(minutes)
        logger.info(
            "incident_resolution_recorded",
            incident_id=incident.id,
            severity=incident.severity.value,
            minutes=round(minutes, 2),
        )

    def refresh_gauges(self) -> IncidentSummary:
        """Recompute the point-in-time gauges from a full scan of the store."""
        with self._gauge_lock:
            summary = self._store.metrics()
            for status, count in summary.by_status.items():
                self.incidents_by_status.labels(status=status).set(count)
            for severity, count in summary.by_severity.items():
                self.incidents_by_severity.labels(severity=severity).set(count)
            self.active_incidents.set(summary.active)
        return summary

    # --- adapter activity ---

    def record_command(self, command: str, success: bool) -> None:
        self.chat_commands_total.labels(command=command, success=str(success).lower()).inc()

    def record_chat_event(self, event_type: str, success: bool) -> None:
        self.chat_events_total.labels(event_type=event_type, success=str(success).lower()).inc()

    def record_webhook_request(self, source: str, status_code: int) -> None:
        bucket = "success" if 200 <= status_code < 300 else "error"
        self.webhook_requests_total.labels(source=source, status=bucket).inc()

    def record_response_time(self, operation: str, seconds: float) -> None:
        self.response_time.labels(operation=operation).observe(seconds)

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Time the enclosed block, recording latency even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record_response_time(operation, time.perf_counter() - start)

    # --- reports ---

    def summary(self) -> IncidentSummary:
        return self._store.metrics()

    def daily_report(self, now: Optional[datetime] = None) -> DailyReport:
        return build_daily_report(self._store.list_all(), now or self._store.now())

    def exposition(self) -> tuple[bytes, str]:
        """Scrape payload in the Prometheus text format, with its content type."""
        with self._gauge_lock:
            self.refresh_gauges()
            payload = generate_latest(self.registry)
        return payload, CONTENT_TYPE_LATEST

    def summary_text(self) -> str:
        return "\n".join([
            "*Incident Response Bot Metrics*",
            "",
            "*Incident counters:*",
            "- Total incidents tracked",
            f"- Incidents by status ({', '.join(s.value for s in IncidentStatus)})",
            f"- Incidents by severity ({', '.join(s.value for s in Severity)})",
            "- Resolution time distribution",
            "",
            "*Bot performance:*",
            "- Chat commands processed",
            "- Webhook requests handled",
            "- Response time metrics",
            "",
            "Available at the `/metrics` endpoint for Prometheus scraping",
        ])
