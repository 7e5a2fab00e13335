"""Slack Web API gateway for incident channels and messages."""

from typing import Iterable, Optional

from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from ..utils.logging import get_logger

logger = get_logger("notifications.slack")


class SlackGateway:
    """Thin async wrapper around the Slack Web API.

    Every call is best-effort: API and network failures are logged and
    reported through the return value, never raised. Incident state is
    already committed by the time any of these run.
    """

    def __init__(self, token: Optional[str] = None, client: Optional[AsyncWebClient] = None):
        self._client = client or (AsyncWebClient(token=token) if token else None)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def create_channel(self, name: str, is_private: bool = False) -> Optional[str]:
        """Create a channel and return its id, or None on failure."""
        if not self.enabled:
            logger.debug("slack_disabled", operation="create_channel")
            return None
        try:
            response = await self._client.conversations_create(name=name, is_private=is_private)
            channel_id = response["channel"]["id"]
            logger.info("slack_channel_created", name=name, channel_id=channel_id)
            return channel_id
        except SlackApiError as exc:
            logger.error("slack_channel_create_failed", name=name, error=exc.response.get("error"))
        except Exception as exc:
            logger.error("slack_channel_create_error", name=name, error=str(exc))
        return None

    async def invite_users(self, channel_id: str, user_ids: Iterable[str]) -> list[str]:
        """Invite users one at a time so one bad id does not block the rest."""
        invited = []
        if not self.enabled:
            return invited
        for user_id in dict.fromkeys(u for u in user_ids if u):
            try:
                await self._client.conversations_invite(channel=channel_id, users=user_id)
                invited.append(user_id)
            except SlackApiError as exc:
                logger.warning(
                    "slack_invite_failed",
                    channel_id=channel_id,
                    user_id=user_id,
                    error=exc.response.get("error"),
                )
            except Exception as exc:
                logger.warning("slack_invite_error", channel_id=channel_id, user_id=user_id, error=str(exc))
        return invited

    async def post_message(
        self,
        channel_id: str,
        text: Optional[str] = None,
        blocks: Optional[list[dict]] = None,
    ) -> bool:
        if not self.enabled:
            return False
        try:
            await self._client.chat_postMessage(channel=channel_id, text=text or "", blocks=blocks)
            return True
        except SlackApiError as exc:
            logger.error("slack_post_failed", channel_id=channel_id, error=exc.response.get("error"))
        except Exception as exc:
            logger.error("slack_post_error", channel_id=channel_id, error=str(exc))
        return False

    async def close(self) -> None:
        """Release the client's aiohttp session, if it owns one."""
        session = getattr(self._client, "session", None)
        if session is not None and not session.closed:
            await session.close()
            logger.debug("slack_session_closed")
