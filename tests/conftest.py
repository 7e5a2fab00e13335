"""Shared test fixtures."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from incidentbot.config import IncidentBotConfig
from incidentbot.dependencies import build_services
from incidentbot.engine.incident_store import IncidentStore
from incidentbot.engine.metrics_aggregator import MetricsAggregator
from incidentbot.engine.oncall import OnCallDirectory
from incidentbot.main import create_app
from incidentbot.notifications.slack import SlackGateway


class FakeClock:
    """Deterministic clock; call it to read, ``advance`` to move forward."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def oncall():
    return OnCallDirectory()


@pytest.fixture
def store(clock, oncall):
    return IncidentStore(oncall=oncall, clock=clock)


@pytest.fixture
def aggregator(store):
    metrics = MetricsAggregator(store)
    store.set_listener(metrics.handle_incident_event)
    return metrics


@pytest.fixture
def mock_slack_client():
    """AsyncWebClient stand-in with canned Slack API responses."""
    client = MagicMock()
    client.conversations_create = AsyncMock(return_value={"ok": True, "channel": {"id": "C0INCIDENT"}})
    client.conversations_invite = AsyncMock(return_value={"ok": True})
    client.chat_postMessage = AsyncMock(return_value={"ok": True})
    return client


@pytest.fixture
def test_config(tmp_path):
    return IncidentBotConfig(
        _env_file=None,
        debug=True,
        log_dir=str(tmp_path / "logs"),
        slack_bot_token=None,
        slack_signing_secret=None,
        oncall_roster_path=None,
        enforce_status_transitions=False,
    )


@pytest.fixture
def services(test_config, clock):
    return build_services(test_config, clock=clock, gateway=SlackGateway())


@pytest.fixture
def test_app(services):
    return create_app(services=services)


@pytest_asyncio.fixture
async def client(test_app):
    """Async HTTP client for testing."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
