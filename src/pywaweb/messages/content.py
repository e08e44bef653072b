from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from ..exceptions import ValidationError
from ..sticker import StickerMetadata
from ..structures import Buttons, Contact, ListMessage, Location, MessageMedia


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str
    kind: Literal["text"] = field(default="text", init=False)


@dataclass(frozen=True, slots=True)
class MediaContent:
    media: MessageMedia
    caption: str | None = None
    kind: Literal["media"] = field(default="media", init=False)


@dataclass(frozen=True, slots=True)
class LocationContent:
    location: Location
    kind: Literal["location"] = field(default="location", init=False)


@dataclass(frozen=True, slots=True)
class ContactCardContent:
    contact: Contact | str
    kind: Literal["contact_card"] = field(default="contact_card", init=False)


@dataclass(frozen=True, slots=True)
class ContactCardListContent:
    contacts: tuple[Contact | str, ...]
    kind: Literal["contact_card_list"] = field(default="contact_card_list", init=False)


@dataclass(frozen=True, slots=True)
class ButtonsContent:
    buttons: Buttons
    kind: Literal["buttons"] = field(default="buttons", init=False)


@dataclass(frozen=True, slots=True)
class ListContent:
    list: ListMessage
    kind: Literal["list"] = field(default="list", init=False)


OutboundContent = (
    TextContent
    | MediaContent
    | LocationContent
    | ContactCardContent
    | ContactCardListContent
    | ButtonsContent
    | ListContent
)

_VARIANTS = (
    TextContent,
    MediaContent,
    LocationContent,
    ContactCardContent,
    ContactCardListContent,
    ButtonsContent,
    ListContent,
)


@dataclass(slots=True)
class SendOptions:
    link_preview: bool = False
    send_audio_as_voice: bool = False
    send_video_as_gif: bool = False
    send_media_as_sticker: bool = False
    send_media_as_document: bool = False
    parse_vcards: bool = True
    caption: str | None = None
    quoted_message_id: str | None = None
    mentions: Sequence[Contact | str] = ()
    send_seen: bool = True
    sticker_author: str | None = None
    sticker_name: str | None = None
    sticker_categories: Sequence[str] = ()
    # Media to send with a text body used as its caption.
    media: MessageMedia | None = None
    # Passed through verbatim to the page-side send options.
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def sticker_metadata(self) -> StickerMetadata:
        return StickerMetadata(
            name=self.sticker_name,
            author=self.sticker_author,
            categories=list(self.sticker_categories),
        )


@dataclass(slots=True)
class ResolvedSend:
    """
    One send request after resolution: the message body plus the page-side
    option record. `attachment` is kept typed until dispatch, since sticker
    conversion may replace it.
    """

    body: str
    options: dict[str, Any]
    attachment: MessageMedia | None = None


def _contact_id(c: Contact | str) -> str:
    return c if isinstance(c, str) else c.id


def coerce_content(content: Any) -> OutboundContent:
    """Wrap a loose content value in its `OutboundContent` variant."""

    if isinstance(content, _VARIANTS):
        return content
    if isinstance(content, str):
        return TextContent(content)
    if isinstance(content, MessageMedia):
        return MediaContent(content)
    if isinstance(content, Location):
        return LocationContent(content)
    if isinstance(content, Contact):
        return ContactCardContent(content)
    if isinstance(content, Buttons):
        return ButtonsContent(content)
    if isinstance(content, ListMessage):
        return ListContent(content)
    if isinstance(content, (list, tuple)):
        if content and all(isinstance(c, Contact) for c in content):
            return ContactCardListContent(tuple(content))
        raise ValidationError("a list of content must be a non-empty list of contacts")
    raise ValidationError(f"unsupported message content: {type(content).__name__}")


def _base_options(options: SendOptions) -> dict[str, Any]:
    return {
        "linkPreview": True if options.link_preview else None,
        "sendAudioAsVoice": options.send_audio_as_voice,
        "sendVideoAsGif": options.send_video_as_gif,
        "sendMediaAsSticker": options.send_media_as_sticker,
        "sendMediaAsDocument": options.send_media_as_document,
        "caption": options.caption,
        "quotedMessageId": options.quoted_message_id,
        "parseVCards": options.parse_vcards,
        "mentionedJidList": [_contact_id(m) for m in options.mentions],
        **options.extra,
    }


def resolve_outbound(content: OutboundContent, options: SendOptions) -> ResolvedSend:
    """
    Fold `content` and `options` into a single send record.

    Exactly one variant populates the page-side fields; the first rule that
    matches wins, in this order: media content, media passed via options with a
    text body, location, single contact, contact list, buttons, list, text.
    """

    opts = _base_options(options)

    if isinstance(content, MediaContent):
        if content.caption is not None:
            opts["caption"] = content.caption
        return ResolvedSend(body="", options=opts, attachment=content.media)
    if isinstance(content, TextContent) and options.media is not None:
        opts["caption"] = content.text
        return ResolvedSend(body="", options=opts, attachment=options.media)
    if isinstance(content, LocationContent):
        opts["location"] = content.location.to_dict()
        return ResolvedSend(body="", options=opts)
    if isinstance(content, ContactCardContent):
        opts["contactCard"] = _contact_id(content.contact)
        return ResolvedSend(body="", options=opts)
    if isinstance(content, ContactCardListContent):
        if not content.contacts:
            raise ValidationError("contact card list is empty")
        opts["contactCardList"] = [_contact_id(c) for c in content.contacts]
        return ResolvedSend(body="", options=opts)
    if isinstance(content, ButtonsContent):
        buttons = content.buttons
        attachment = buttons.body if isinstance(buttons.body, MessageMedia) else None
        opts["buttons"] = buttons.to_dict()
        return ResolvedSend(body="", options=opts, attachment=attachment)
    if isinstance(content, ListContent):
        opts["list"] = content.list.to_dict()
        return ResolvedSend(body="", options=opts)
    return ResolvedSend(body=content.text, options=opts)
