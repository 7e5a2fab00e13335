"""Incident Response Bot: incident lifecycle tracking with Slack and Prometheus integration."""

__version__ = "1.0.0"
