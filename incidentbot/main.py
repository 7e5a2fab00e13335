"""Incident Response Bot.

FastAPI entry point: service wiring, lifespan, middleware, health and the
Prometheus scrape endpoint.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from . import __version__
from .api.router import api_router, integrations_router
from .config import IncidentBotConfig, get_config
from .dependencies import Services, build_services
from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .utils.logging import get_logger, setup_logging

logger = get_logger("incidentbot.main")

COMMANDS_HELP = (
    "/incident create [title] [severity]",
    "/incident assign @user",
    "/incident resolve",
    "/incident status [id]",
    "/oncall who [team]",
    "/metrics today",
)


def create_app(config: Optional[IncidentBotConfig] = None, services: Optional[Services] = None) -> FastAPI:
    """Build the application. Every service instance is owned by ``app.state``."""
    config = config or (services.config if services else get_config())
    services = services or build_services(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("incidentbot_starting", host=config.host, port=config.port, slack=services.gateway.enabled)
        if not services.gateway.enabled:
            logger.warning("slack_not_configured", hint="Set SLACK_BOT_TOKEN to enable incident channels")
        logger.info("incidentbot_started", app=config.app_name, commands=list(COMMANDS_HELP))

        yield

        await services.gateway.close()
        logger.info("incidentbot_stopped", incidents=len(services.store))

    app = FastAPI(
        title="Incident Response Bot",
        description="Incident tracking, on-call lookup and incident metrics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in config.cors_origins.split(",") if o.strip()],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    # Added last so it runs first
    app.add_middleware(RequestIDMiddleware)

    app.include_router(api_router)
    app.include_router(integrations_router)

    @app.get("/")
    async def root():
        return {"name": config.app_name, "version": __version__, "status": "operational"}

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "incidents": len(services.store),
            "slack_enabled": services.gateway.enabled,
        }

    @app.get("/metrics")
    async def prometheus_metrics(request: Request):
        payload, content_type = request.app.state.services.metrics.exposition()
        return Response(content=payload, media_type=content_type)

    return app


def main():
    """Run the incident bot server."""
    config = get_config()
    setup_logging(
        debug=config.debug,
        log_dir=config.log_dir,
        log_max_bytes=config.log_max_bytes,
        log_backup_count=config.log_backup_count,
    )
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level="debug" if config.debug else "info",
    )


if __name__ == "__main__":
    main()
