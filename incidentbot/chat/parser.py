"""Slash command text parsing."""

import re
from dataclasses import dataclass
from typing import Optional

MENTION_RE = re.compile(r"^<@([A-Z0-9]+)(?:\|[^>]*)?>$")


class CommandUsageError(ValueError):
    """The command text does not match the expected usage."""


@dataclass
class SlashCommand:
    command: str
    text: str = ""
    user_id: str = ""
    channel_id: str = ""

    @classmethod
    def from_form(cls, form: dict) -> "SlashCommand":
        return cls(
            command=form.get("command", ""),
            text=form.get("text", ""),
            user_id=form.get("user_id", ""),
            channel_id=form.get("channel_id", ""),
        )


def split_command(text: str) -> tuple[str, list[str]]:
    """Split ``"create Database down P1"`` into ``("create", ["Database", "down", "P1"])``."""
    parts = (text or "").split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


def parse_mention(token: str) -> Optional[str]:
    match = MENTION_RE.match(token.strip())
    return match.group(1) if match else None


def parse_create_args(args: list[str]) -> tuple[str, str]:
    """Title is every word but the last; the last word is the severity token."""
    if len(args) < 2:
        raise CommandUsageError("create requires a title and a severity")
    title = " ".join(args[:-1]).replace('"', "").strip()
    return title, args[-1].upper()
