"""
Sticker helpers: WebP EXIF tagging (pure Python) and an ffmpeg-based transcoder.

WhatsApp reads sticker pack metadata from a JSON document stored in the EXIF
chunk of the WebP container. Images are converted on the page itself; every
other media kind goes through `ffmpeg_webp_sticker` (or a user-supplied
transcoder with the same signature).
"""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from .exceptions import StickerConversionError
from .structures import MessageMedia

logger = logging.getLogger(__name__)

STICKER_SIZE: Final[int] = 512

# Little-endian TIFF header with a single IFD entry (tag 0x5741, type UNDEFINED)
# whose value is the JSON payload placed right after the 22-byte header.
_EXIF_HEADER: Final[bytes] = bytes.fromhex("49492a00080000000100415707000000000016000000")

_VP8X_ALPHA: Final[int] = 0x10
_VP8X_EXIF: Final[int] = 0x08

_FFMPEG_FILTER: Final[str] = (
    "scale='iw*min(300/iw\\,300/ih)':'ih*min(300/iw\\,300/ih)',format=rgba,"
    "pad=512:512:'(512-iw)/2':'(512-ih)/2':'#00000000',setsar=1,fps=10"
)


@dataclass(slots=True)
class StickerMetadata:
    name: str | None = None
    author: str | None = None
    categories: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "author": self.author, "categories": list(self.categories)}


def build_sticker_exif(metadata: StickerMetadata, *, pack_id: str | None = None) -> bytes:
    payload = {
        "sticker-pack-id": pack_id or secrets.token_hex(16),
        "sticker-pack-name": metadata.name or "",
        "sticker-pack-publisher": metadata.author or "",
        "emojis": list(metadata.categories) or [""],
    }
    body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    header = bytearray(_EXIF_HEADER)
    header[14:18] = len(body).to_bytes(4, "little")
    return bytes(header) + body


def _iter_chunks(b: bytes) -> list[tuple[bytes, bytes]]:
    """Return (fourcc, payload) for every top-level chunk of a WebP file."""

    if len(b) < 12 or b[:4] != b"RIFF" or b[8:12] != b"WEBP":
        raise StickerConversionError("not a WebP file")
    out: list[tuple[bytes, bytes]] = []
    off = 12
    while off + 8 <= len(b):
        fourcc = b[off : off + 4]
        size = int.from_bytes(b[off + 4 : off + 8], "little")
        start = off + 8
        end = start + size
        if end > len(b):
            raise StickerConversionError("truncated WebP chunk")
        out.append((fourcc, b[start:end]))
        # Chunks are padded to even sizes.
        off = end + (size % 2)
    return out


def _bitstream_info(chunks: list[tuple[bytes, bytes]]) -> tuple[int, int, bool]:
    """Canvas (width, height, has_alpha) from a simple-format WebP bitstream."""

    for fourcc, data in chunks:
        if fourcc == b"VP8 " and len(data) >= 10 and data[3:6] == b"\x9d\x01\x2a":
            w = int.from_bytes(data[6:8], "little") & 0x3FFF
            h = int.from_bytes(data[8:10], "little") & 0x3FFF
            return w, h, False
        if fourcc == b"VP8L" and len(data) >= 5 and data[0] == 0x2F:
            bits = int.from_bytes(data[1:5], "little")
            w = (bits & 0x3FFF) + 1
            h = ((bits >> 14) & 0x3FFF) + 1
            return w, h, bool((bits >> 28) & 1)
    raise StickerConversionError("WebP file has no image bitstream")


def _chunk(fourcc: bytes, data: bytes) -> bytes:
    pad = b"\x00" if len(data) % 2 else b""
    return fourcc + len(data).to_bytes(4, "little") + data + pad


def set_webp_exif(data: bytes, exif: bytes) -> bytes:
    """
    Return `data` with its EXIF chunk replaced by `exif`.

    Simple-format files (a lone VP8/VP8L chunk) are promoted to the extended
    format, since only VP8X files can carry metadata.
    """

    chunks = [(f, d) for (f, d) in _iter_chunks(bytes(data)) if f != b"EXIF"]
    if chunks and chunks[0][0] == b"VP8X":
        vp8x = bytearray(chunks[0][1])
        vp8x[0] |= _VP8X_EXIF
        chunks[0] = (b"VP8X", bytes(vp8x))
    else:
        w, h, alpha = _bitstream_info(chunks)
        flags = _VP8X_EXIF | (_VP8X_ALPHA if alpha else 0)
        vp8x = (
            bytes([flags, 0, 0, 0])
            + (w - 1).to_bytes(3, "little")
            + (h - 1).to_bytes(3, "little")
        )
        chunks.insert(0, (b"VP8X", vp8x))
    chunks.append((b"EXIF", exif))

    body = b"WEBP" + b"".join(_chunk(f, d) for f, d in chunks)
    return b"RIFF" + len(body).to_bytes(4, "little") + body


def tag_sticker(media: MessageMedia, metadata: StickerMetadata) -> MessageMedia:
    tagged = set_webp_exif(media.to_bytes(), build_sticker_exif(metadata))
    return MessageMedia.from_bytes(tagged, mimetype="image/webp", filename=media.filename)


async def _run_ffmpeg(ffmpeg_path: str, src: Path, dst: Path) -> None:
    proc = await asyncio.create_subprocess_exec(
        ffmpeg_path,
        "-y",
        "-i",
        str(src),
        "-vcodec",
        "libwebp",
        "-vf",
        _FFMPEG_FILTER,
        "-loop",
        "0",
        "-ss",
        "00:00:00.0",
        "-t",
        "00:00:05.0",
        "-preset",
        "default",
        "-an",
        "-vsync",
        "0",
        "-s",
        f"{STICKER_SIZE}:{STICKER_SIZE}",
        str(dst),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    _out, err = await proc.communicate()
    if proc.returncode != 0:
        tail = (err or b"")[-400:].decode("utf-8", errors="replace")
        raise StickerConversionError(f"ffmpeg exited with {proc.returncode}: {tail}")


async def ffmpeg_webp_sticker(
    media: MessageMedia, metadata: StickerMetadata, *, ffmpeg_path: str = "ffmpeg"
) -> MessageMedia:
    """Transcode arbitrary media (video, gif, ...) to an animated 512x512 WebP sticker."""

    ext = media.mimetype.split("/", 1)[-1].split(";", 1)[0] or "bin"
    with tempfile.TemporaryDirectory(prefix="pywaweb-sticker-") as tmp:
        src = Path(tmp) / f"input.{ext}"
        dst = Path(tmp) / "output.webp"
        await asyncio.to_thread(src.write_bytes, media.to_bytes())
        try:
            await _run_ffmpeg(ffmpeg_path, src, dst)
        except FileNotFoundError as e:
            raise StickerConversionError(f"ffmpeg not found at {ffmpeg_path!r}") from e
        webp = await asyncio.to_thread(dst.read_bytes)

    logger.debug("transcoded %s (%d bytes) to sticker", media.mimetype, len(webp))
    return tag_sticker(
        MessageMedia.from_bytes(webp, mimetype="image/webp", filename=media.filename), metadata
    )
