"""
Chat transport adapters for the vent moderation service.
"""

from .base import ChatTransport
from .telegram import TelegramClient

__all__ = ["ChatTransport", "TelegramClient"]
