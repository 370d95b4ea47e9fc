"""Relay inbound emails to a Telegram chat."""

__version__ = "2.0.0"
