"""Chat command handler: maps slash commands and button actions onto the incident engine."""

from typing import Optional

from ..engine.incident_store import IncidentStore, InvalidIncidentError
from ..engine.metrics_aggregator import MetricsAggregator
from ..models.incident import Incident, IncidentSource, IncidentStatus
from ..notifications.slack import SlackGateway
from ..utils.logging import get_logger
from . import formatting
from .parser import CommandUsageError, SlashCommand, parse_create_args, parse_mention, split_command

logger = get_logger("chat.handlers")


def reply(text: str, in_channel: bool = False, blocks: Optional[list[dict]] = None) -> dict:
    response = {"response_type": "in_channel" if in_channel else "ephemeral", "text": text}
    if blocks:
        response["blocks"] = blocks
    return response


class CommandHandler:
    """Front-end adapter for Slack.

    Core mutations happen first and are authoritative; channel provisioning,
    invites and posts run afterwards through the gateway and may fail
    without affecting the incident.
    """

    def __init__(
        self,
        store: IncidentStore,
        metrics: MetricsAggregator,
        gateway: Optional[SlackGateway] = None,
        invite_on_call: bool = True,
        list_limit: int = 10,
    ):
        self._store = store
        self._metrics = metrics
        self._gateway = gateway or SlackGateway()
        self._invite_on_call = invite_on_call
        self._list_limit = list_limit

    async def handle_slash_command(self, command: SlashCommand) -> dict:
        name = command.command.lstrip("/").lower()
        if name == "incident":
            return await self.handle_incident_command(command)
        if name == "oncall":
            return await self.handle_oncall_command(command)
        if name == "metrics":
            return await self.handle_metrics_command(command)
        logger.warning("chat_unknown_command", command=command.command)
        return reply(f":x: Unknown command `{command.command}`.")

    # --- /incident ---

    async def handle_incident_command(self, command: SlashCommand) -> dict:
        success = True
        with self._metrics.measure("incident_command"):
            try:
                subcommand, args = split_command(command.text)
                if subcommand == "create":
                    return await self._create(args, command.user_id)
                if subcommand == "status":
                    return self._status(args)
                if subcommand == "assign":
                    return self._assign(args, command.channel_id, command.user_id)
                if subcommand == "resolve":
                    return self._resolve(command.channel_id, command.user_id)
                if subcommand == "list":
                    return self._list(args)
                return reply(formatting.INCIDENT_HELP)
            except Exception as e:
                success = False
                logger.error("incident_command_failed", text=command.text, error=str(e), exc_info=True)
                return reply(":x: An error occurred while processing your command. Please try again.")
            finally:
                self._metrics.record_command("incident", success)

    async def _create(self, args: list[str], user_id: str) -> dict:
        try:
            title, severity = parse_create_args(args)
        except CommandUsageError:
            return reply(formatting.CREATE_USAGE)

        try:
            incident = self._store.create_incident(
                title=title,
                severity=severity,
                assignee=user_id or None,
                source=IncidentSource.MANUAL,
            )
        except InvalidIncidentError as e:
            return reply(f":x: {e}")

        channel_id = await self._provision_channel(incident, user_id)
        if channel_id:
            return reply(
                f":white_check_mark: Incident {incident.id} created successfully! Check <#{channel_id}>",
                in_channel=True,
            )
        return reply(f":white_check_mark: Incident {incident.id} created successfully!", in_channel=True)

    async def _provision_channel(self, incident: Incident, user_id: str) -> Optional[str]:
        if not self._gateway.enabled:
            return None

        channel_id = await self._gateway.create_channel(f"incident-{incident.id.lower()}")
        if channel_id is None:
            return None
        self._store.attach_channel(incident.id, channel_id)

        users = [user_id]
        if self._invite_on_call:
            on_call = self._store.get_on_call()
            users += [on_call.primary, on_call.secondary]
        await self._gateway.invite_users(channel_id, users)

        current = self._store.get_incident(incident.id) or incident
        await self._gateway.post_message(
            channel_id,
            text=f"Incident {current.id}: {current.title}",
            blocks=formatting.build_incident_blocks(current),
        )
        return channel_id

    def _status(self, args: list[str]) -> dict:
        if not args:
            return reply(formatting.format_overview(self._store.metrics()))

        incident = self._store.get_incident(args[0])
        if incident is None:
            return reply(f":x: Incident {args[0]} not found.")
        return reply(
            f"Incident {incident.id} - {incident.status.value}",
            blocks=formatting.build_incident_status_blocks(incident),
        )

    def _assign(self, args: list[str], channel_id: str, actor_id: str) -> dict:
        if not args:
            return reply(":x: Usage: `/incident assign @username`")

        assignee = parse_mention(args[0])
        if assignee is None:
            return reply(":x: Please mention a valid user with @username")

        incident = self._store.find_open_by_channel(channel_id)
        if incident is None:
            return reply(":x: No active incident found in this channel.")

        if not self._store.assign_incident(incident.id, assignee, actor_id=actor_id or None):
            return reply(":x: Failed to assign incident.")
        return reply(f":white_check_mark: Incident {incident.id} assigned to <@{assignee}>", in_channel=True)

    def _resolve(self, channel_id: str, user_id: str) -> dict:
        incident = self._store.find_open_by_channel(channel_id)
        if incident is None:
            return reply(":x: No active incident found in this channel.")

        if not self._store.update_status(incident.id, IncidentStatus.RESOLVED, actor_id=user_id or None):
            return reply(":x: Failed to resolve incident.")

        resolved = self._store.get_incident(incident.id)
        return reply(
            f":white_check_mark: Incident {incident.id} has been resolved!",
            in_channel=True,
            blocks=formatting.build_incident_status_blocks(resolved),
        )

    def _list(self, args: list[str]) -> dict:
        which = args[0].lower() if args else "open"
        if which == "resolved":
            incidents = self._store.list_by_status(IncidentStatus.RESOLVED)
        elif which == "all":
            incidents = self._store.list_all()
        else:
            which = "open"
            incidents = self._store.list_open()

        if not incidents:
            return reply(f":clipboard: No {which} incidents found.")
        return reply(formatting.format_incident_list(which, incidents, self._list_limit))

    # --- /oncall ---

    async def handle_oncall_command(self, command: SlashCommand) -> dict:
        success = True
        try:
            subcommand, args = split_command(command.text)
            team = args[0] if args else self._store.oncall.default_team
            if subcommand == "who":
                return reply(formatting.format_on_call(team, self._store.get_on_call(team)))
            if subcommand == "schedule":
                return self._schedule(team)
            return reply(formatting.ONCALL_HELP)
        except Exception as e:
            success = False
            logger.error("oncall_command_failed", text=command.text, error=str(e), exc_info=True)
            return reply(":x: An error occurred while processing your command.")
        finally:
            self._metrics.record_command("oncall", success)

    def _schedule(self, team: str) -> dict:
        schedule = self._store.oncall.get_schedule(team)
        if schedule is None:
            return reply(f":x: No on-call schedule found for team `{team}`.")
        if not schedule.rotations:
            return reply(
                f":calendar: *On-Call Schedule ({schedule.team_name})*\n\n"
                "No rotations configured. Use `/oncall who` to see current assignments."
            )
        lines = [
            f"• {formatting.format_time(r.start_date)} → {formatting.format_time(r.end_date)}: "
            f"<@{r.user_id}> ({r.type})"
            for r in schedule.rotations
        ]
        return reply(
            f":calendar: *On-Call Schedule ({schedule.team_name}, {schedule.timezone})*\n\n" + "\n".join(lines)
        )

    # --- /metrics ---

    async def handle_metrics_command(self, command: SlashCommand) -> dict:
        success = True
        try:
            subcommand, _ = split_command(command.text)
            period = subcommand or "today"
            if period == "summary":
                return reply(self._metrics.summary_text())
            return reply(formatting.format_daily_metrics(period, self._metrics.daily_report()))
        except Exception as e:
            success = False
            logger.error("metrics_command_failed", text=command.text, error=str(e), exc_info=True)
            return reply(":x: An error occurred while fetching metrics.")
        finally:
            self._metrics.record_command("metrics", success)

    # --- interactions and events ---

    async def handle_resolve_action(self, incident_id: str, user_id: str, channel_id: Optional[str] = None) -> bool:
        """Resolve button pressed on an incident message."""
        resolved = self._store.update_status(incident_id, IncidentStatus.RESOLVED, actor_id=user_id or None)
        self._metrics.record_chat_event("resolve_incident", resolved)
        if not resolved:
            return False

        incident = self._store.get_incident(incident_id)
        if channel_id and incident is not None:
            await self._gateway.post_message(
                channel_id,
                text=f":white_check_mark: Incident {incident_id} has been resolved by <@{user_id}>",
                blocks=formatting.build_incident_status_blocks(incident),
            )
        return True

    async def handle_app_mention(self, user_id: str, channel_id: str) -> bool:
        posted = await self._gateway.post_message(
            channel_id,
            text=(
                f":wave: Hi <@{user_id}>! I'm the Incident Response Bot. "
                "Use `/incident help` to see available commands."
            ),
        )
        self._metrics.record_chat_event("app_mention", posted)
        return posted
