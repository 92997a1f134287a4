"""Outbound delivery of relayed messages."""

from .webhook import DiscordForwarder

__all__ = ["DiscordForwarder"]
