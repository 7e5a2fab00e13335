"""Service wiring and FastAPI dependency providers.

All long-lived objects are built once by ``build_services`` and owned by the
application (``app.state.services``); routes reach them only through the
providers below.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from fastapi import Request

from .chat.handlers import CommandHandler
from .config import IncidentBotConfig
from .engine.alert_intake import AlertIntake
from .engine.incident_store import IncidentStore
from .engine.metrics_aggregator import MetricsAggregator
from .engine.oncall import OnCallDirectory, load_roster
from .notifications.slack import SlackGateway
from .utils.logging import get_logger

logger = get_logger("dependencies")


@dataclass
class Services:
    config: IncidentBotConfig
    oncall: OnCallDirectory
    store: IncidentStore
    metrics: MetricsAggregator
    intake: AlertIntake
    gateway: SlackGateway
    commands: CommandHandler


def build_services(
    config: IncidentBotConfig,
    clock: Optional[Callable[[], datetime]] = None,
    gateway: Optional[SlackGateway] = None,
) -> Services:
    roster = load_roster(config.oncall_roster_path) if config.oncall_roster_path else None
    oncall = OnCallDirectory(roster, default_team=config.default_team)

    store = IncidentStore(
        oncall=oncall,
        clock=clock,
        enforce_transitions=config.enforce_status_transitions,
    )
    metrics = MetricsAggregator(store)
    store.set_listener(metrics.handle_incident_event)

    gateway = gateway or SlackGateway(token=config.slack_bot_token)
    commands = CommandHandler(
        store,
        metrics,
        gateway=gateway,
        invite_on_call=config.slack_invite_on_call,
        list_limit=config.incident_list_limit,
    )
    logger.info(
        "services_built",
        slack_enabled=gateway.enabled,
        strict_transitions=config.enforce_status_transitions,
        teams=len(oncall.teams()),
    )
    return Services(
        config=config,
        oncall=oncall,
        store=store,
        metrics=metrics,
        intake=AlertIntake(store),
        gateway=gateway,
        commands=commands,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_app_config(request: Request) -> IncidentBotConfig:
    return get_services(request).config


def get_incident_store(request: Request) -> IncidentStore:
    return get_services(request).store


def get_metrics_aggregator(request: Request) -> MetricsAggregator:
    return get_services(request).metrics


def get_alert_intake(request: Request) -> AlertIntake:
    return get_services(request).intake


def get_command_handler(request: Request) -> CommandHandler:
    return get_services(request).commands
