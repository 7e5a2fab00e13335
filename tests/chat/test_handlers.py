"""Tests for CommandHandler: slash commands, button actions and mentions."""

from unittest.mock import AsyncMock

import pytest

from incidentbot.chat.handlers import CommandHandler
from incidentbot.chat.parser import SlashCommand
from incidentbot.models.incident import IncidentStatus, Severity
from incidentbot.notifications.slack import SlackGateway


@pytest.fixture
def gateway(mock_slack_client):
    return SlackGateway(client=mock_slack_client)


@pytest.fixture
def handler(store, aggregator, gateway):
    return CommandHandler(store, aggregator, gateway=gateway)


@pytest.fixture
def offline_handler(store, aggregator):
    return CommandHandler(store, aggregator, gateway=SlackGateway())


def incident_cmd(text, user_id="UREPORTER", channel_id="CGENERAL"):
    return SlashCommand(command="/incident", text=text, user_id=user_id, channel_id=channel_id)


def command_count(aggregator, command, success):
    return aggregator.registry.get_sample_value(
        "chat_commands_total", {"command": command, "success": success}
    )


class TestIncidentCreate:

    @pytest.mark.asyncio
    async def test_create_provisions_channel(self, handler, store, mock_slack_client):
        response = await handler.handle_slash_command(incident_cmd('create "Database down" p1'))

        assert response["response_type"] == "in_channel"
        assert "<#C0INCIDENT>" in response["text"]

        [incident] = store.list_all()
        assert incident.title == "Database down"
        assert incident.severity is Severity.P1
        assert incident.assignee == "UREPORTER"
        assert incident.channel_id == "C0INCIDENT"
        assert incident.id in response["text"]

        mock_slack_client.conversations_create.assert_awaited_once_with(
            name=f"incident-{incident.id.lower()}", is_private=False
        )
        invited = [c.kwargs["users"] for c in mock_slack_client.conversations_invite.await_args_list]
        assert invited == ["UREPORTER", "U123456789", "U987654321"]

        post = mock_slack_client.chat_postMessage.await_args
        assert post.kwargs["channel"] == "C0INCIDENT"
        actions = [b for b in post.kwargs["blocks"] if b["type"] == "actions"]
        assert actions[0]["elements"][0]["action_id"] == "resolve_incident"
        assert actions[0]["elements"][0]["value"] == incident.id

    @pytest.mark.asyncio
    async def test_create_without_slack(self, offline_handler, store):
        response = await offline_handler.handle_slash_command(incident_cmd("create Login slow P2"))

        assert "created successfully" in response["text"]
        assert "<#" not in response["text"]
        [incident] = store.list_all()
        assert incident.channel_id is None

    @pytest.mark.asyncio
    async def test_create_survives_channel_failure(self, handler, store, mock_slack_client):
        mock_slack_client.conversations_create = AsyncMock(side_effect=RuntimeError("network down"))

        response = await handler.handle_slash_command(incident_cmd("create Login slow P2"))

        assert "created successfully" in response["text"]
        assert len(store) == 1
        mock_slack_client.chat_postMessage.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_usage(self, handler, store):
        response = await handler.handle_slash_command(incident_cmd("create P1"))
        assert "Usage" in response["text"]
        assert response["response_type"] == "ephemeral"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_create_invalid_severity(self, handler, store, aggregator):
        response = await handler.handle_slash_command(incident_cmd("create Database down P9"))
        assert response["text"].startswith(":x:")
        assert "P0, P1, P2, or P3" in response["text"]
        assert len(store) == 0
        assert command_count(aggregator, "incident", "true") == 1

    @pytest.mark.asyncio
    async def test_on_call_invites_can_be_disabled(self, store, aggregator, gateway, mock_slack_client):
        handler = CommandHandler(store, aggregator, gateway=gateway, invite_on_call=False)
        await handler.handle_slash_command(incident_cmd("create Login slow P2"))
        invited = [c.kwargs["users"] for c in mock_slack_client.conversations_invite.await_args_list]
        assert invited == ["UREPORTER"]


class TestIncidentChannelCommands:

    @pytest.mark.asyncio
    async def test_assign_in_incident_channel(self, handler, store):
        await handler.handle_slash_command(incident_cmd("create Database down P1"))

        response = await handler.handle_slash_command(
            incident_cmd("assign <@UONCALL|bob>", channel_id="C0INCIDENT")
        )

        assert response["response_type"] == "in_channel"
        [incident] = store.list_all()
        assert incident.assignee == "UONCALL"
        assert incident.timeline[-1].user_id == "UREPORTER"

    @pytest.mark.asyncio
    async def test_assign_outside_incident_channel(self, handler, store):
        await handler.handle_slash_command(incident_cmd("create Database down P1"))
        response = await handler.handle_slash_command(incident_cmd("assign <@UONCALL>", channel_id="CRANDOM"))
        assert "No active incident" in response["text"]

    @pytest.mark.asyncio
    async def test_assign_requires_mention(self, handler):
        response = await handler.handle_slash_command(incident_cmd("assign bob", channel_id="C0INCIDENT"))
        assert "valid user" in response["text"]

    @pytest.mark.asyncio
    async def test_resolve(self, handler, store, clock):
        await handler.handle_slash_command(incident_cmd("create Database down P1"))
        clock.advance(minutes=25)

        response = await handler.handle_slash_command(incident_cmd("resolve", channel_id="C0INCIDENT"))

        [incident] = store.list_all()
        assert incident.status is IncidentStatus.RESOLVED
        assert "has been resolved" in response["text"]
        resolved_section = response["blocks"][-1]["text"]["text"]
        assert "25 minutes" in resolved_section

        again = await handler.handle_slash_command(incident_cmd("resolve", channel_id="C0INCIDENT"))
        assert "No active incident" in again["text"]


class TestIncidentQueries:

    @pytest.mark.asyncio
    async def test_status_overview(self, handler, store):
        store.create_incident(title="a", severity="P0")
        store.create_incident(title="b", severity="P3")

        response = await handler.handle_slash_command(incident_cmd("status"))

        assert "Open: 2" in response["text"]
        assert "P0: 1 | P1: 0 | P2: 0 | P3: 1" in response["text"]

    @pytest.mark.asyncio
    async def test_status_single(self, handler, store):
        incident = store.create_incident(title="Database down", severity="P1")
        response = await handler.handle_slash_command(incident_cmd(f"status {incident.id}"))
        assert response["blocks"][0]["text"]["text"].endswith("OPEN")

    @pytest.mark.asyncio
    async def test_status_unknown(self, handler):
        response = await handler.handle_slash_command(incident_cmd("status INC-NOPE"))
        assert "not found" in response["text"]

    @pytest.mark.asyncio
    async def test_list_truncates(self, store, aggregator):
        handler = CommandHandler(store, aggregator, gateway=SlackGateway(), list_limit=2)
        for n in range(3):
            store.create_incident(title=f"incident {n}", severity="P2")

        response = await handler.handle_slash_command(incident_cmd("list"))

        assert response["text"].count("•") == 2
        assert "...and more" in response["text"]

    @pytest.mark.asyncio
    async def test_list_resolved_empty(self, handler, store):
        store.create_incident(title="a", severity="P2")
        response = await handler.handle_slash_command(incident_cmd("list resolved"))
        assert response["text"] == ":clipboard: No resolved incidents found."

    @pytest.mark.asyncio
    async def test_help(self, handler, aggregator):
        response = await handler.handle_slash_command(incident_cmd("help"))
        assert "Incident Bot Commands" in response["text"]
        assert command_count(aggregator, "incident", "true") == 1

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, handler, store, aggregator, monkeypatch):
        def explode():
            raise RuntimeError("boom")

        monkeypatch.setattr(store, "metrics", explode)
        response = await handler.handle_slash_command(incident_cmd("status"))

        assert "An error occurred" in response["text"]
        assert command_count(aggregator, "incident", "false") == 1
        timing = aggregator.registry.get_sample_value(
            "response_time_seconds_count", {"operation": "incident_command"}
        )
        assert timing == 1


class TestOnCallAndMetricsCommands:

    @pytest.mark.asyncio
    async def test_oncall_who(self, handler):
        response = await handler.handle_slash_command(SlashCommand(command="/oncall", text="who"))
        assert "Primary: <@U123456789>" in response["text"]
        assert "Escalation: <@U555666777>, <@U888999000>" in response["text"]

    @pytest.mark.asyncio
    async def test_oncall_unknown_team(self, handler):
        response = await handler.handle_slash_command(SlashCommand(command="/oncall", text="who nobody"))
        assert "Primary: Not assigned" in response["text"]
        assert "Escalation: None" in response["text"]

    @pytest.mark.asyncio
    async def test_oncall_schedule_without_rotations(self, handler, aggregator):
        response = await handler.handle_slash_command(SlashCommand(command="/oncall", text="schedule"))
        assert "No rotations configured" in response["text"]
        assert command_count(aggregator, "oncall", "true") == 1

    @pytest.mark.asyncio
    async def test_metrics_today(self, handler, store, clock):
        incident = store.create_incident(title="Payments down", severity="P0")
        store.create_incident(title="Login slow", severity="P3")
        clock.advance(minutes=30)
        store.update_status(incident.id, "resolved")

        response = await handler.handle_slash_command(SlashCommand(command="/metrics", text=""))

        text = response["text"]
        assert "Metrics (today)" in text
        assert "Incidents Created: 2" in text
        assert "Incidents Resolved: 1" in text
        assert "Avg Resolution Time: 30 minutes" in text
        assert "Critical Incidents: 1" in text
        assert "Currently Active: 1" in text

    @pytest.mark.asyncio
    async def test_unknown_command(self, handler):
        response = await handler.handle_slash_command(SlashCommand(command="/pager"))
        assert "Unknown command" in response["text"]


class TestInteractions:

    @pytest.mark.asyncio
    async def test_resolve_button(self, handler, store, aggregator, mock_slack_client):
        incident = store.create_incident(title="Database down", severity="P1")

        assert await handler.handle_resolve_action(incident.id, "UBUTTON", "C0INCIDENT")

        resolved = store.get_incident(incident.id)
        assert resolved.status is IncidentStatus.RESOLVED
        assert resolved.timeline[-1].user_id == "UBUTTON"
        post = mock_slack_client.chat_postMessage.await_args
        assert "<@UBUTTON>" in post.kwargs["text"]
        events = aggregator.registry.get_sample_value(
            "chat_events_total", {"event_type": "resolve_incident", "success": "true"}
        )
        assert events == 1

    @pytest.mark.asyncio
    async def test_resolve_button_unknown_incident(self, handler, mock_slack_client):
        assert await handler.handle_resolve_action("INC-GONE", "UBUTTON", "C0INCIDENT") is False
        mock_slack_client.chat_postMessage.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_app_mention(self, handler, mock_slack_client):
        assert await handler.handle_app_mention("UFRIEND", "CGENERAL")
        post = mock_slack_client.chat_postMessage.await_args
        assert post.kwargs["channel"] == "CGENERAL"
        assert "<@UFRIEND>" in post.kwargs["text"]
