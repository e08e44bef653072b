from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import ClientConfig
from .constants import MAX_PIN_COUNT, WAState
from .exceptions import RemoteCommandError, ValidationError
from .messages import OutboundContent, OutboundMessageDispatcher, SendOptions
from .remote import scripts
from .remote.playwright import PlaywrightPort
from .session import PortFactory, SessionController, SessionState
from .session_store import LocalSessionStore
from .structures import (
    Chat,
    ClientInfo,
    Contact,
    CreateGroupResult,
    Label,
    Message,
    chat_from_dict,
    contact_from_dict,
    serialized_id,
)
from .util.events import AsyncEventEmitter, Listener

logger = logging.getLogger(__name__)


class WhatsAppWebClient:
    """
    High-level async client facade.

    Lifecycle (`initialize`/`destroy`/`logout`) is delegated to the
    `SessionController`; every command is a single round trip through the
    remote execution port, whose result is wrapped in a structure snapshot.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        port_factory: PortFactory = PlaywrightPort.launch,
        cwd: str | Path | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.events = AsyncEventEmitter()
        self.session = SessionController(
            self.config,
            self.events,
            port_factory=port_factory,
            session_store=LocalSessionStore.for_config(self.config, cwd=cwd),
        )
        self._dispatcher: OutboundMessageDispatcher | None = None

    # Lifecycle

    async def initialize(self) -> bool:
        return await self.session.initialize()

    async def destroy(self) -> None:
        await self.session.destroy()

    async def logout(self) -> None:
        await self.session.logout()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def info(self) -> ClientInfo | None:
        return self.session.info

    @property
    def wweb_version(self) -> str | None:
        return self.session.wweb_version

    def on(self, event: str, listener: Listener) -> None:
        self.events.on(event, listener)

    def once(self, event: str, listener: Listener) -> None:
        self.events.once(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)

    async def _call(self, script: str, arg: Any = None) -> Any:
        return await self.session.port.evaluate(script, arg)

    @property
    def dispatcher(self) -> OutboundMessageDispatcher:
        port = self.session.port
        if self._dispatcher is None or self._dispatcher.port is not port:
            self._dispatcher = OutboundMessageDispatcher(
                port,
                transcoder=self.config.sticker_transcoder,
                ffmpeg_path=self.config.ffmpeg_path,
            )
        return self._dispatcher

    # Messages

    async def send_message(
        self,
        chat_id: str,
        content: OutboundContent | Any,
        options: SendOptions | None = None,
    ) -> Message:
        """
        Send a message to `chat_id`.

        `content` may be a text string, `MessageMedia`, `Location`, a `Contact`
        (or a list of them), `Buttons`, `ListMessage`, or one of the tagged
        content variants from `pywaweb.messages`.
        """

        return await self.dispatcher.send(chat_id, content, options)

    async def send_seen(self, chat_id: str) -> bool:
        return bool(await self._call(scripts.SEND_SEEN, chat_id))

    async def search_messages(
        self,
        query: str,
        *,
        page: int | None = None,
        limit: int | None = None,
        chat_id: str | None = None,
    ) -> list[Message]:
        records = await self._call(
            scripts.SEARCH_MESSAGES,
            {"query": query, "page": page, "count": limit, "remote": chat_id},
        )
        return [Message.from_dict(r) for r in records or []]

    # Chats and contacts

    async def get_chats(self) -> list[Chat]:
        return [chat_from_dict(c) for c in await self._call(scripts.GET_CHATS) or []]

    async def get_chat_by_id(self, chat_id: str) -> Chat:
        return chat_from_dict(await self._call(scripts.GET_CHAT, chat_id))

    async def get_contacts(self) -> list[Contact]:
        return [contact_from_dict(c) for c in await self._call(scripts.GET_CONTACTS) or []]

    async def get_contact_by_id(self, contact_id: str) -> Contact:
        return contact_from_dict(await self._call(scripts.GET_CONTACT, contact_id))

    async def get_blocked_contacts(self) -> list[Contact]:
        return [contact_from_dict(c) for c in await self._call(scripts.GET_BLOCKED_CONTACTS) or []]

    async def archive_chat(self, chat_id: str) -> bool:
        return bool(await self._call(scripts.ARCHIVE_CHAT, {"chatId": chat_id, "archive": True}))

    async def unarchive_chat(self, chat_id: str) -> bool:
        return bool(await self._call(scripts.ARCHIVE_CHAT, {"chatId": chat_id, "archive": False}))

    async def pin_chat(self, chat_id: str) -> bool:
        """
        Pin a chat. Returns the new pin state: False when the pin limit is
        already reached, in which case nothing is changed.
        """

        pin_state = await self._call(
            scripts.PIN_STATE, {"chatId": chat_id, "maxPinCount": MAX_PIN_COUNT}
        )
        if pin_state.get("pinned"):
            return True
        pins = pin_state.get("pins") or []
        if pin_state.get("total", 0) > MAX_PIN_COUNT and len(pins) >= MAX_PIN_COUNT:
            if pins[MAX_PIN_COUNT - 1]:
                return False
        await self._call(scripts.SET_PIN, {"chatId": chat_id, "pin": True})
        return True

    async def unpin_chat(self, chat_id: str) -> bool:
        pin_state = await self._call(
            scripts.PIN_STATE, {"chatId": chat_id, "maxPinCount": MAX_PIN_COUNT}
        )
        if pin_state.get("pinned"):
            await self._call(scripts.SET_PIN, {"chatId": chat_id, "pin": False})
        return False

    async def mute_chat(self, chat_id: str, unmute_date: datetime | None = None) -> None:
        """Mute a chat until `unmute_date`, or forever when it is omitted."""

        timestamp = unmute_date.timestamp() if unmute_date is not None else -1
        await self._call(scripts.MUTE_CHAT, {"chatId": chat_id, "timestamp": timestamp})

    async def unmute_chat(self, chat_id: str) -> None:
        await self._call(scripts.UNMUTE_CHAT, chat_id)

    async def mark_chat_unread(self, chat_id: str) -> None:
        await self._call(scripts.MARK_CHAT_UNREAD, chat_id)

    async def get_profile_pic_url(self, contact_id: str) -> str | None:
        return await self._call(scripts.GET_PROFILE_PIC, contact_id)

    # Labels

    async def get_labels(self) -> list[Label]:
        return [Label.from_dict(lb) for lb in await self._call(scripts.GET_LABELS) or []]

    async def get_label_by_id(self, label_id: str) -> Label:
        return Label.from_dict(await self._call(scripts.GET_LABEL, label_id))

    async def get_chat_labels(self, chat_id: str) -> list[Label]:
        return [Label.from_dict(lb) for lb in await self._call(scripts.GET_CHAT_LABELS, chat_id) or []]

    async def get_chats_by_label_id(self, label_id: str) -> list[Chat]:
        chat_ids = await self._call(scripts.GET_CHAT_IDS_BY_LABEL, label_id) or []
        return [await self.get_chat_by_id(serialized_id(cid) or str(cid)) for cid in chat_ids]

    # Groups and invites

    async def get_invite_info(self, invite_code: str) -> dict[str, Any]:
        return await self._call(scripts.GET_INVITE_INFO, invite_code)

    async def accept_invite(self, invite_code: str) -> str:
        """Join a group through its invite code; returns the group id."""

        return await self._call(scripts.ACCEPT_INVITE, invite_code)

    async def accept_group_v4_invite(self, invite_info: dict[str, Any]) -> Any:
        """
        Accept a private (v4) group invite, as carried by the `inviteV4`
        payload of an invite message.
        """

        if not invite_info.get("inviteCode"):
            raise ValidationError("invalid invite code, pass the message's inviteV4 payload")
        if invite_info.get("inviteCodeExp") in (0, "0"):
            raise ValidationError("expired invite code")
        return await self._call(
            scripts.ACCEPT_GROUP_V4_INVITE,
            {
                "groupId": invite_info.get("groupId"),
                "fromId": invite_info.get("fromId"),
                "inviteCode": invite_info["inviteCode"],
                "inviteCodeExp": str(invite_info.get("inviteCodeExp")),
                "toId": invite_info.get("toId"),
            },
        )

    async def create_group(
        self, name: str, participants: Sequence[Contact | str]
    ) -> CreateGroupResult:
        if not participants:
            raise ValidationError("a group needs at least one other participant")
        participant_ids: list[str] = []
        for p in participants:
            if isinstance(p, Contact):
                participant_ids.append(p.id)
            elif isinstance(p, str) and p:
                participant_ids.append(p)
            else:
                raise ValidationError(f"unsupported group participant: {p!r}")

        res = await self._call(
            scripts.CREATE_GROUP, {"name": name, "participantIds": participant_ids}
        )
        missing: dict[str, int] = {}
        # Each entry looks like {"<participant id>": {"code": <status>}}.
        for entry in res.get("participants") or []:
            for pid, status in entry.items():
                code = int((status or {}).get("code", 0))
                if code != 200:
                    missing[pid] = code
        return CreateGroupResult(gid=serialized_id(res.get("gid")), missing_participants=missing)

    # Profile and account

    async def set_status(self, status: str) -> None:
        await self._call(scripts.SET_STATUS, status)

    async def set_display_name(self, display_name: str) -> None:
        await self._call(scripts.SET_DISPLAY_NAME, display_name)

    async def get_state(self) -> WAState | str | None:
        state = await self._call(scripts.GET_STATE)
        if state is None:
            return None
        try:
            return WAState(state)
        except ValueError:
            return state

    async def reset_state(self) -> None:
        """Force the web client to re-check its connection to the phone."""

        await self._call(scripts.RESET_STATE)

    async def send_presence_available(self) -> None:
        await self._call(scripts.PRESENCE_AVAILABLE)

    async def send_presence_unavailable(self) -> None:
        await self._call(scripts.PRESENCE_UNAVAILABLE)

    async def get_wweb_version(self) -> str:
        return await self._call(scripts.WWEB_VERSION)

    # Numbers

    async def is_registered_user(self, user_id: str) -> bool:
        return bool(await self._call(scripts.IS_REGISTERED_USER, _phone_id(user_id)))

    async def get_number_id(self, number: str) -> dict[str, Any] | None:
        """Registered WhatsApp id of a number, or None if it is not on WhatsApp."""

        try:
            return await self._call(scripts.GET_NUMBER_ID, _phone_id(number))
        except RemoteCommandError as e:
            logger.debug("number id lookup failed: %s", e)
            return None

    async def get_formatted_number(self, number: str) -> str:
        if not number.endswith("@s.whatsapp.net"):
            number = number.replace("c.us", "s.whatsapp.net")
        if "@s.whatsapp.net" not in number:
            number = f"{number}@s.whatsapp.net"
        return await self._call(scripts.GET_FORMATTED_NUMBER, number)

    async def get_country_code(self, number: str) -> str:
        number = number.replace(" ", "").replace("+", "").replace("@c.us", "")
        return await self._call(scripts.GET_COUNTRY_CODE, number)

    async def collect_garbage(self) -> dict[str, Any]:
        return await self.session.port.collect_garbage()


def _phone_id(value: str) -> str:
    if not value.endswith("@c.us"):
        value += "@c.us"
    if not value.startswith("+"):
        value = "+" + value
    return value
