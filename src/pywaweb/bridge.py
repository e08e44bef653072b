from __future__ import annotations

import asyncio
import copy
import logging
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .constants import (
    GROUP_JOIN_SUBTYPES,
    GROUP_LEAVE_SUBTYPES,
    GROUP_NOTIFICATION_TYPE,
    REVOKED_TYPE,
    Events,
)
from .remote import scripts
from .structures import Call, GroupNotification, Message, message_identity
from .util.asyncio import cancel_suppress, ensure_task
from .util.events import AsyncEventEmitter

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    MESSAGE_ADDED = "message_added"
    MESSAGE_CHANGED = "message_changed"
    MESSAGE_TYPE_CHANGED = "message_type_changed"
    MESSAGE_ACK_CHANGED = "message_ack_changed"
    MESSAGE_MEDIA_UPLOADED = "message_media_uploaded"
    MESSAGE_REMOVED = "message_removed"
    APP_STATE_CHANGED = "app_state_changed"
    CALL_ADDED = "call_added"


@dataclass(frozen=True, slots=True)
class RawMutation:
    kind: MutationKind
    # Serialized message/call record, or the connection state string.
    payload: Any
    # Ack level for MESSAGE_ACK_CHANGED, "unsent" flag for MESSAGE_MEDIA_UPLOADED.
    extra: Any = None


class LastSeenMessageCache:
    """
    Bounded map of message identity -> last known non-revoked record.

    Filled by generic change notifications and read when a "revoked" type
    change arrives, to recover what the message looked like before it was
    deleted for everyone. The oldest entry is evicted once `capacity` is hit.
    """

    def __init__(self, capacity: int = 32) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, dict[str, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def remember(self, raw: dict[str, Any]) -> None:
        key = message_identity(raw)
        if not key:
            return
        # Last write wins; the stored copy is never shared with the caller.
        self._entries.pop(key, None)
        self._entries[key] = copy.deepcopy(raw)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def get(self, identity: str | None) -> dict[str, Any] | None:
        if not identity:
            return None
        return self._entries.get(identity)

    def clear(self) -> None:
        self._entries.clear()


def _is_new(raw: dict[str, Any]) -> bool:
    return bool(raw.get("isNewMsg"))


def _from_me(raw: dict[str, Any]) -> bool:
    rid = raw.get("id")
    return bool(rid.get("fromMe")) if isinstance(rid, dict) else False


class EventBridge:
    """
    Turn raw store notifications from the page into public client events.

    Page callbacks only enqueue (`feed`); a single consumer task (`start`)
    drains the queue in arrival order, which preserves the page's own
    notification ordering. `dispatch` does the classification and can be
    awaited directly.
    """

    def __init__(
        self,
        events: AsyncEventEmitter,
        *,
        cache_size: int = 32,
        on_app_state: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self._events = events
        self._on_app_state = on_app_state
        self.last_seen = LastSeenMessageCache(cache_size)
        self._queue: asyncio.Queue[RawMutation] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def feed(self, kind: MutationKind, payload: Any, extra: Any = None) -> None:
        self._queue.put_nowait(RawMutation(kind=kind, payload=payload, extra=extra))

    def exposed_callbacks(self) -> dict[str, Callable[..., None]]:
        """Host callbacks keyed by the name the page calls them under."""

        def entry(kind: MutationKind) -> Callable[..., None]:
            def _cb(payload: Any, extra: Any = None) -> None:
                self.feed(kind, payload, extra)

            return _cb

        return {
            scripts.ON_ADD_MESSAGE: entry(MutationKind.MESSAGE_ADDED),
            scripts.ON_CHANGE_MESSAGE: entry(MutationKind.MESSAGE_CHANGED),
            scripts.ON_CHANGE_MESSAGE_TYPE: entry(MutationKind.MESSAGE_TYPE_CHANGED),
            scripts.ON_MESSAGE_ACK: entry(MutationKind.MESSAGE_ACK_CHANGED),
            scripts.ON_MESSAGE_MEDIA_UPLOADED: entry(MutationKind.MESSAGE_MEDIA_UPLOADED),
            scripts.ON_REMOVE_MESSAGE: entry(MutationKind.MESSAGE_REMOVED),
            scripts.ON_APP_STATE_CHANGED: entry(MutationKind.APP_STATE_CHANGED),
            scripts.ON_INCOMING_CALL: entry(MutationKind.CALL_ADDED),
        }

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = ensure_task(self._run(), name="pywaweb.bridge")

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        self.last_seen.clear()
        # When stopped from one of its own listeners the loop exits after the
        # current dispatch instead of being cancelled mid-emit.
        if task is not asyncio.current_task():
            await cancel_suppress(task)

    async def drain(self) -> None:
        """Wait until every mutation fed so far has been dispatched."""

        await self._queue.join()

    async def _run(self) -> None:
        while not self._stopped:
            mutation = await self._queue.get()
            try:
                await self.dispatch(mutation)
            except Exception:
                logger.exception("failed to dispatch %s", mutation.kind.value)
            finally:
                self._queue.task_done()

    async def dispatch(self, mutation: RawMutation) -> None:
        kind = mutation.kind
        raw = mutation.payload
        logger.debug("mutation %s", kind.value)

        if kind is MutationKind.MESSAGE_ADDED:
            await self._message_added(raw)
        elif kind is MutationKind.MESSAGE_CHANGED:
            if raw.get("type") != REVOKED_TYPE:
                self.last_seen.remember(raw)
        elif kind is MutationKind.MESSAGE_TYPE_CHANGED:
            await self._message_type_changed(raw)
        elif kind is MutationKind.MESSAGE_ACK_CHANGED:
            await self._events.emit(Events.MESSAGE_ACK, Message.from_dict(raw), mutation.extra)
        elif kind is MutationKind.MESSAGE_MEDIA_UPLOADED:
            unsent = bool(mutation.extra)
            if _from_me(raw) and not unsent:
                await self._events.emit(Events.MEDIA_UPLOADED, Message.from_dict(raw))
        elif kind is MutationKind.MESSAGE_REMOVED:
            if _is_new(raw):
                await self._events.emit(Events.MESSAGE_REVOKED_ME, Message.from_dict(raw))
        elif kind is MutationKind.APP_STATE_CHANGED:
            if self._on_app_state is not None:
                await self._on_app_state(str(raw))
        elif kind is MutationKind.CALL_ADDED:
            await self._events.emit(Events.INCOMING_CALL, Call.from_dict(raw))

    async def _message_added(self, raw: dict[str, Any]) -> None:
        if not _is_new(raw):
            return

        if raw.get("type") == GROUP_NOTIFICATION_TYPE:
            subtype = raw.get("subtype")
            if subtype in GROUP_JOIN_SUBTYPES:
                event = Events.GROUP_JOIN
            elif subtype in GROUP_LEAVE_SUBTYPES:
                event = Events.GROUP_LEAVE
            else:
                event = Events.GROUP_UPDATE
            await self._events.emit(event, GroupNotification.from_dict(raw))
            return

        await self._events.emit(Events.MESSAGE_CREATE, Message.from_dict(raw))
        if not _from_me(raw):
            await self._events.emit(Events.MESSAGE_RECEIVED, Message.from_dict(raw))

    async def _message_type_changed(self, raw: dict[str, Any]) -> None:
        if raw.get("type") != REVOKED_TYPE:
            return
        prior = self.last_seen.get(message_identity(raw))
        await self._events.emit(
            Events.MESSAGE_REVOKED_EVERYONE,
            Message.from_dict(raw),
            Message.from_dict(prior) if prior is not None else None,
        )
