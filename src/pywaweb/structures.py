"""
Typed snapshots of records returned from the page context.

Every `from_dict` deep-copies its input: a structure never aliases the raw
payload it was built from, so events handed to listeners stay stable even if
the bridge or the caller keeps mutating the source dict.
"""

from __future__ import annotations

import asyncio
import base64
import copy
import mimetypes
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ValidationError


def serialized_id(value: Any) -> str | None:
    """
    Return the `_serialized` form of a remote id (`{"_serialized": ...}` or a plain string).
    """

    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        s = value.get("_serialized")
        if isinstance(s, str):
            return s
        user, server = value.get("user"), value.get("server")
        if user and server:
            return f"{user}@{server}"
        return None
    s = getattr(value, "serialized", None)
    return s if isinstance(s, str) else None


@dataclass(frozen=True, slots=True)
class MessageId:
    id: str
    remote: str | None
    from_me: bool
    serialized: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MessageId:
        data = data or {}
        remote = serialized_id(data.get("remote"))
        from_me = bool(data.get("fromMe"))
        msg_id = str(data.get("id") or "")
        ser = data.get("_serialized")
        if not isinstance(ser, str):
            ser = f"{str(from_me).lower()}_{remote}_{msg_id}"
        return cls(id=msg_id, remote=remote, from_me=from_me, serialized=ser)


def message_identity(raw: dict[str, Any]) -> str | None:
    """Identity key of a raw message record, stable across type changes."""

    rid = raw.get("id")
    if isinstance(rid, dict):
        if not (rid.get("id") or rid.get("_serialized")):
            return None
        return MessageId.from_dict(rid).serialized
    return serialized_id(rid)


@dataclass(frozen=True, slots=True)
class Message:
    id: MessageId
    body: str
    type: str
    timestamp: int | None
    from_: str | None
    to: str | None
    author: str | None
    from_me: bool
    ack: int | None
    has_media: bool
    has_quoted_msg: bool
    is_forwarded: bool
    is_status: bool
    is_starred: bool
    mentioned_ids: tuple[str, ...]
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        raw = copy.deepcopy(data)
        msg_id = MessageId.from_dict(raw.get("id"))
        return cls(
            id=msg_id,
            body=str(raw.get("body") or ""),
            type=str(raw.get("type") or ""),
            timestamp=raw.get("t"),
            from_=serialized_id(raw.get("from")),
            to=serialized_id(raw.get("to")),
            author=serialized_id(raw.get("author")),
            from_me=msg_id.from_me,
            ack=raw.get("ack"),
            has_media=bool(raw.get("mediaKey") and not raw.get("isMdHistoryMsg")),
            has_quoted_msg=bool(raw.get("quotedMsg")),
            is_forwarded=bool(raw.get("isForwarded")),
            is_status=bool(raw.get("isStatusV3")),
            is_starred=bool(raw.get("star")),
            mentioned_ids=tuple(
                s for s in (serialized_id(m) for m in raw.get("mentionedJidList") or []) if s
            ),
            raw=raw,
        )


@dataclass(frozen=True, slots=True)
class GroupNotification:
    id: MessageId
    body: str
    type: str
    timestamp: int | None
    chat_id: str | None
    author: str | None
    recipient_ids: tuple[str, ...]
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GroupNotification:
        raw = copy.deepcopy(data)
        msg_id = MessageId.from_dict(raw.get("id"))
        chat_id = msg_id.remote if not msg_id.from_me else serialized_id(raw.get("to"))
        return cls(
            id=msg_id,
            body=str(raw.get("body") or ""),
            type=str(raw.get("subtype") or ""),
            timestamp=raw.get("t"),
            chat_id=chat_id,
            author=serialized_id(raw.get("author")),
            recipient_ids=tuple(
                s for s in (serialized_id(r) for r in raw.get("recipients") or []) if s
            ),
            raw=raw,
        )


@dataclass(frozen=True, slots=True)
class Call:
    id: str
    from_: str | None
    timestamp: int | None
    is_video: bool
    is_group: bool
    can_handle_locally: bool
    outgoing: bool
    web_client_should_handle: bool
    participants: tuple[Any, ...]
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Call:
        raw = copy.deepcopy(data)
        return cls(
            id=str(raw.get("id") or ""),
            from_=serialized_id(raw.get("peerJid")),
            timestamp=raw.get("offerTime"),
            is_video=bool(raw.get("isVideo")),
            is_group=bool(raw.get("isGroup")),
            can_handle_locally=bool(raw.get("canHandleLocally")),
            outgoing=bool(raw.get("outgoing")),
            web_client_should_handle=bool(raw.get("webClientShouldHandle")),
            participants=tuple(raw.get("participants") or ()),
            raw=raw,
        )


@dataclass(frozen=True, slots=True)
class Contact:
    id: str
    number: str | None
    name: str | None
    pushname: str | None
    short_name: str | None
    is_business: bool
    is_enterprise: bool
    is_me: bool
    is_user: bool
    is_group: bool
    is_wa_contact: bool
    is_my_contact: bool
    is_blocked: bool
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Contact:
        raw = copy.deepcopy(data)
        rid = raw.get("id")
        return cls(
            id=serialized_id(rid) or "",
            number=raw.get("userid") or (rid.get("user") if isinstance(rid, dict) else None),
            name=raw.get("name"),
            pushname=raw.get("pushname"),
            short_name=raw.get("shortName"),
            is_business=bool(raw.get("isBusiness")),
            is_enterprise=bool(raw.get("isEnterprise")),
            is_me=bool(raw.get("isMe")),
            is_user=bool(raw.get("isUser")),
            is_group=bool(raw.get("isGroup")),
            is_wa_contact=bool(raw.get("isWAContact")),
            is_my_contact=bool(raw.get("isMyContact")),
            is_blocked=bool(raw.get("isBlocked")),
            raw=raw,
        )


class PrivateContact(Contact):
    __slots__ = ()


class BusinessContact(Contact):
    __slots__ = ()


def contact_from_dict(data: dict[str, Any]) -> Contact:
    if data.get("isBusiness"):
        return BusinessContact.from_dict(data)
    return PrivateContact.from_dict(data)


@dataclass(frozen=True, slots=True)
class Chat:
    id: str
    name: str | None
    is_group: bool
    is_read_only: bool
    unread_count: int
    timestamp: int | None
    archived: bool
    pinned: bool
    is_muted: bool
    mute_expiration: int | None
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chat:
        raw = copy.deepcopy(data)
        return cls(
            id=serialized_id(raw.get("id")) or "",
            name=raw.get("formattedTitle") or raw.get("name"),
            is_group=bool(raw.get("isGroup")),
            is_read_only=bool(raw.get("isReadOnly")),
            unread_count=int(raw.get("unreadCount") or 0),
            timestamp=raw.get("t"),
            archived=bool(raw.get("archive")),
            pinned=bool(raw.get("pin")),
            is_muted=bool(raw.get("isMuted")),
            mute_expiration=raw.get("muteExpiration"),
            raw=raw,
        )


class PrivateChat(Chat):
    __slots__ = ()


class GroupChat(Chat):
    __slots__ = ()

    @property
    def owner(self) -> str | None:
        return serialized_id((self.raw.get("groupMetadata") or {}).get("owner"))

    @property
    def description(self) -> str | None:
        return (self.raw.get("groupMetadata") or {}).get("desc")

    @property
    def participants(self) -> list[dict[str, Any]]:
        return list((self.raw.get("groupMetadata") or {}).get("participants") or [])


def chat_from_dict(data: dict[str, Any]) -> Chat:
    if data.get("isGroup"):
        return GroupChat.from_dict(data)
    return PrivateChat.from_dict(data)


@dataclass(frozen=True, slots=True)
class Label:
    id: str
    name: str
    hex_color: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Label:
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            hex_color=data.get("hexColor"),
        )


@dataclass(frozen=True, slots=True)
class ClientInfo:
    pushname: str | None
    wid: str | None
    platform: str | None
    raw: dict[str, Any] = field(repr=False, compare=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientInfo:
        raw = copy.deepcopy(data)
        return cls(
            pushname=raw.get("pushname"),
            wid=serialized_id(raw.get("wid")),
            platform=raw.get("platform"),
            raw=raw,
        )


@dataclass(frozen=True, slots=True)
class CreateGroupResult:
    gid: str | None
    # participant id -> status code for every participant that was not added
    missing_participants: dict[str, int]


# Outbound building blocks.


@dataclass(slots=True)
class MessageMedia:
    mimetype: str
    data: str  # base64
    filename: str | None = None
    filesize: int | None = None

    @property
    def kind(self) -> str:
        return self.mimetype.split("/", 1)[0]

    @classmethod
    def from_bytes(
        cls, data: bytes, *, mimetype: str, filename: str | None = None
    ) -> MessageMedia:
        return cls(
            mimetype=mimetype,
            data=base64.b64encode(data).decode("ascii"),
            filename=filename,
            filesize=len(data),
        )

    @classmethod
    async def from_file(cls, path: str | Path, *, mimetype: str | None = None) -> MessageMedia:
        p = Path(path).expanduser()
        data = await asyncio.to_thread(p.read_bytes)
        mt = mimetype or mimetypes.guess_type(str(p))[0] or "application/octet-stream"
        return cls.from_bytes(data, mimetype=mt, filename=p.name)

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mimetype": self.mimetype,
            "data": self.data,
            "filename": self.filename,
            "filesize": self.filesize,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageMedia:
        return cls(
            mimetype=str(data["mimetype"]),
            data=str(data["data"]),
            filename=data.get("filename"),
            filesize=data.get("filesize"),
        )


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "description": self.description,
        }


@dataclass(slots=True)
class Buttons:
    """
    Interactive buttons message. The body is either text or media; with media
    the buttons ride on the media message as its caption template.
    """

    body: str | MessageMedia
    buttons: list[dict[str, str]]
    title: str | None = None
    footer: str | None = None

    @property
    def type(self) -> str:
        return self.body.kind if isinstance(self.body, MessageMedia) else "chat"

    def formatted_buttons(self) -> list[dict[str, Any]]:
        if not self.buttons:
            raise ValidationError("buttons message needs at least one button")
        return [
            {
                "buttonId": b.get("id") or secrets.token_hex(8),
                "buttonText": {"displayText": b["body"]},
                "type": 1,
            }
            for b in self.buttons
        ]

    def to_dict(self) -> dict[str, Any]:
        body = self.body.to_dict() if isinstance(self.body, MessageMedia) else self.body
        return {
            "body": body,
            "buttons": self.formatted_buttons(),
            "title": self.title,
            "footer": self.footer,
            "type": self.type,
        }


@dataclass(slots=True)
class ListMessage:
    body: str
    button_text: str
    sections: list[dict[str, Any]]
    title: str | None = None
    footer: str | None = None

    def formatted_sections(self) -> list[dict[str, Any]]:
        if not self.sections:
            raise ValidationError("list message needs at least one section")
        out: list[dict[str, Any]] = []
        for section in self.sections:
            rows = section.get("rows") or []
            if not rows:
                raise ValidationError("every list section needs at least one row")
            out.append(
                {
                    "title": section.get("title", ""),
                    "rows": [
                        {
                            "rowId": r.get("id") or secrets.token_hex(8),
                            "title": r["title"],
                            "description": r.get("description", ""),
                        }
                        for r in rows
                    ],
                }
            )
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "body": self.body,
            "buttonText": self.button_text,
            "sections": self.formatted_sections(),
            "title": self.title,
            "footer": self.footer,
        }
