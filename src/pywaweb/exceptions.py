from __future__ import annotations


class PywawebError(Exception):
    """Base error for the pywaweb library."""


class InitializationError(PywawebError):
    """The handshake race failed (selector timeout or page error)."""


class AuthenticationError(PywawebError):
    """The requested authentication mode is not supported by the remote account."""


class SessionStateError(PywawebError):
    """An illegal session state transition was requested."""


class RemoteCommandError(PywawebError):
    """
    A round trip to the page context failed or threw.

    Carries the name of the command when known so callers can tell which
    operation failed without parsing the message.
    """

    def __init__(self, message: str, *, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class ResourceClosedError(RemoteCommandError):
    """The browser or page was closed while a command was in flight."""


class ValidationError(PywawebError, ValueError):
    """Malformed input, rejected before any remote round trip."""


class StickerConversionError(PywawebError):
    """Converting media to a WebP sticker failed."""
