"""Chat room backend: participants, messages and the inactivity reaper."""

from .reaper import PresenceReaper
from .service import ChatService

__all__ = ["ChatService", "PresenceReaper"]
