"""Slack front-end adapter."""

from .handlers import CommandHandler
from .parser import SlashCommand

__all__ = ["CommandHandler", "SlashCommand"]
