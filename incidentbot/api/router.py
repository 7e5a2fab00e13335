"""Master API routers."""

from fastapi import APIRouter

from .routes.incidents import router as incidents_router
from .routes.oncall import router as oncall_router
from .routes.reports import router as reports_router
from .routes.slack import router as slack_router
from .routes.webhooks import router as webhooks_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(incidents_router)
api_router.include_router(reports_router)
api_router.include_router(oncall_router)

# Inbound integrations are mounted at root level (no prefix)
integrations_router = APIRouter()
integrations_router.include_router(webhooks_router)
integrations_router.include_router(slack_router)
