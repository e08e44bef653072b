from __future__ import annotations

from .content import (
    ButtonsContent,
    ContactCardContent,
    ContactCardListContent,
    ListContent,
    LocationContent,
    MediaContent,
    OutboundContent,
    ResolvedSend,
    SendOptions,
    TextContent,
    coerce_content,
    resolve_outbound,
)
from .dispatcher import OutboundMessageDispatcher

__all__ = [
    "ButtonsContent",
    "ContactCardContent",
    "ContactCardListContent",
    "ListContent",
    "LocationContent",
    "MediaContent",
    "OutboundContent",
    "OutboundMessageDispatcher",
    "ResolvedSend",
    "SendOptions",
    "TextContent",
    "coerce_content",
    "resolve_outbound",
]
