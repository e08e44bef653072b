from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import RemoteCommandError
from ..remote import scripts
from ..remote.port import RemoteExecutionPort
from ..sticker import StickerMetadata, ffmpeg_webp_sticker
from ..structures import Message, MessageMedia
from .content import OutboundContent, ResolvedSend, SendOptions, coerce_content, resolve_outbound

if TYPE_CHECKING:
    from ..config import StickerTranscoder

logger = logging.getLogger(__name__)


class OutboundMessageDispatcher:
    """
    Resolve one outbound content value into a single page-side send call.

    Sticker conversion happens here: images are converted by the page's own
    encoder, anything else by `transcoder` (ffmpeg by default).
    """

    def __init__(
        self,
        port: RemoteExecutionPort,
        *,
        transcoder: StickerTranscoder | None = None,
        ffmpeg_path: str = "ffmpeg",
    ) -> None:
        self.port = port
        self._transcoder: StickerTranscoder = transcoder or functools.partial(
            ffmpeg_webp_sticker, ffmpeg_path=ffmpeg_path
        )

    async def send(
        self, chat_id: str, content: OutboundContent | Any, options: SendOptions | None = None
    ) -> Message:
        options = options or SendOptions()
        resolved = resolve_outbound(coerce_content(content), options)

        if options.send_media_as_sticker and resolved.attachment is not None:
            resolved.attachment = await self._to_sticker(
                resolved.attachment, options.sticker_metadata
            )

        if options.send_seen:
            await self.send_seen(chat_id)

        record = await self.port.evaluate(
            scripts.SEND_MESSAGE,
            {
                "chatId": chat_id,
                "content": resolved.body,
                "options": self._page_options(resolved),
                "sendSeen": options.send_seen,
            },
        )
        return Message.from_dict(record)

    async def send_seen(self, chat_id: str) -> bool:
        """Mark `chat_id` as read; failures are logged, never raised."""

        try:
            return bool(await self.port.evaluate(scripts.SEND_SEEN, chat_id))
        except RemoteCommandError as e:
            logger.warning("could not mark %s as seen before sending: %s", chat_id, e)
            return False

    async def _to_sticker(self, media: MessageMedia, metadata: StickerMetadata) -> MessageMedia:
        if media.kind == "image":
            data = await self.port.evaluate(
                scripts.TO_STICKER_DATA,
                {"attachment": media.to_dict(), "metadata": metadata.to_dict()},
            )
            return MessageMedia.from_dict(data)
        return await self._transcoder(media, metadata)

    @staticmethod
    def _page_options(resolved: ResolvedSend) -> dict[str, Any]:
        opts = dict(resolved.options)
        if resolved.attachment is not None:
            opts["attachment"] = resolved.attachment.to_dict()
        return opts
