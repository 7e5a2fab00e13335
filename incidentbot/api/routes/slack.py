"""Slack transport: slash commands, interactive actions and the Events API."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from slack_sdk.signature import SignatureVerifier

from ...chat.handlers import CommandHandler
from ...chat.parser import SlashCommand
from ...config import IncidentBotConfig
from ...dependencies import get_app_config, get_command_handler, get_metrics_aggregator
from ...engine.metrics_aggregator import MetricsAggregator
from ...utils.logging import get_logger

logger = get_logger("api.slack")

router = APIRouter(prefix="/slack", tags=["slack"])


async def verify_slack_signature(
    request: Request,
    config: IncidentBotConfig = Depends(get_app_config),
) -> None:
    """Reject requests not signed with the app's signing secret, when one is configured."""
    if not config.slack_signing_secret:
        return
    body = await request.body()
    verifier = SignatureVerifier(config.slack_signing_secret)
    if not verifier.is_valid_request(body, dict(request.headers)):
        logger.warning("slack_signature_invalid", path=str(request.url.path))
        raise HTTPException(status_code=401, detail="Invalid Slack signature")


@router.post("/commands", dependencies=[Depends(verify_slack_signature)])
async def slash_command(request: Request, handler: CommandHandler = Depends(get_command_handler)):
    form = await request.form()
    command = SlashCommand.from_form({k: str(v) for k, v in form.items()})
    logger.info("slack_command_received", command=command.command, user_id=command.user_id)
    return await handler.handle_slash_command(command)


@router.post("/actions", dependencies=[Depends(verify_slack_signature)])
async def interactive_action(request: Request, handler: CommandHandler = Depends(get_command_handler)):
    form = await request.form()
    try:
        payload = json.loads(str(form.get("payload", "")))
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Malformed interaction payload")

    user_id = payload.get("user", {}).get("id", "")
    channel_id = (payload.get("channel") or {}).get("id")
    for action in payload.get("actions", []):
        action_id = action.get("action_id", "")
        if action_id == "resolve_incident" and action.get("value"):
            await handler.handle_resolve_action(action["value"], user_id, channel_id)
        elif action_id.startswith("severity_"):
            logger.info("slack_severity_selected", action_id=action_id, user_id=user_id)
        else:
            logger.debug("slack_action_ignored", action_id=action_id)
    return {}


@router.post("/events", dependencies=[Depends(verify_slack_signature)])
async def events(
    request: Request,
    handler: CommandHandler = Depends(get_command_handler),
    metrics: MetricsAggregator = Depends(get_metrics_aggregator),
):
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise HTTPException(status_code=400, detail="Malformed event payload")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Malformed event payload")

    if body.get("type") == "url_verification":
        return {"challenge": body.get("challenge")}

    event = body.get("event") or {}
    event_type = event.get("type")
    if event_type == "app_mention":
        await handler.handle_app_mention(event.get("user", ""), event.get("channel", ""))
    elif event_type == "message":
        logger.debug("slack_message_seen", channel=event.get("channel"))
        metrics.record_chat_event("message", True)
    return {"ok": True}
