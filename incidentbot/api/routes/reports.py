"""Metrics report routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from ...dependencies import get_metrics_aggregator
from ...engine.metrics_aggregator import MetricsAggregator

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/daily")
async def get_daily_metrics(
    now: Optional[datetime] = None,
    metrics: MetricsAggregator = Depends(get_metrics_aggregator),
):
    """Today's rollup. ``now`` pins the reference time; the window opens at its midnight."""
    return metrics.daily_report(now).to_dict()


@router.get("/summary")
async def get_metrics_summary(metrics: MetricsAggregator = Depends(get_metrics_aggregator)):
    return metrics.summary().to_dict()
