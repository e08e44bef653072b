"""
pywaweb: an asyncio-first WhatsApp Web client that drives the official web
client in a browser page.

Authentication, the session lifecycle and the event stream are handled here;
the browser itself is reached through a small remote execution port (Playwright
by default).
"""

from __future__ import annotations

from .client import WhatsAppWebClient
from .config import BrowserConfig, ClientConfig
from .constants import Events, MessageAck, WAState
from .exceptions import (
    AuthenticationError,
    InitializationError,
    PywawebError,
    RemoteCommandError,
    ResourceClosedError,
    SessionStateError,
    ValidationError,
)

__all__ = [
    "AuthenticationError",
    "BrowserConfig",
    "ClientConfig",
    "Events",
    "InitializationError",
    "MessageAck",
    "PywawebError",
    "RemoteCommandError",
    "ResourceClosedError",
    "SessionStateError",
    "ValidationError",
    "WAState",
    "WhatsAppWebClient",
]

__version__ = "0.1.0"
