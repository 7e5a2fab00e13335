"""Alert webhook ingestion."""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...dependencies import get_alert_intake, get_metrics_aggregator
from ...engine.alert_intake import AlertIntake
from ...engine.metrics_aggregator import MetricsAggregator
from ...utils.logging import get_logger

logger = get_logger("api.webhooks")

router = APIRouter(prefix="/webhook", tags=["webhooks"])


@router.post("/alert")
async def receive_alert(
    request: Request,
    intake: AlertIntake = Depends(get_alert_intake),
    metrics: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Create an incident from an external alert payload."""
    with metrics.measure("webhook_alert"):
        try:
            alert = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            alert = None
        if not isinstance(alert, dict):
            metrics.record_webhook_request("unknown", 400)
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": "Alert body must be a JSON object"},
            )

        source = str(alert.get("source") or "generic")
        logger.info("alert_received", source=source, keys=sorted(alert)[:20])
        try:
            incident = intake.ingest(alert)
        except Exception as e:
            logger.error("alert_processing_failed", source=source, error=str(e), exc_info=True)
            metrics.record_webhook_request(source, 500)
            return JSONResponse(status_code=500, content={"success": False, "error": "Failed to process alert"})

    metrics.record_webhook_request(source, 200)
    return {"success": True, "message": "Alert processed", "incident_id": incident.id}
