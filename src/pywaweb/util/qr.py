from __future__ import annotations

import io
from pathlib import Path

import qrcode
from qrcode.image.svg import SvgImage


def render_ascii(token: str, *, invert: bool = True) -> str:
    """Render a QR token as block characters for a terminal."""

    qr = qrcode.QRCode(border=1)
    qr.add_data(token)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=invert)
    return out.getvalue()


def write_svg(token: str, path: str | Path) -> Path:
    """Write a scannable QR image to `path`."""

    p = Path(path)
    img = qrcode.make(token, image_factory=SvgImage)
    p.write_bytes(img.to_string())
    return p
