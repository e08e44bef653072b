"""
QR login example.

Usage: python examples/login_qr.py STORE_JS [UTIL_JS ...]

STORE_JS must expose `window.Store` in the web client; the optional UTIL_JS
files define `window.WWebJS`, which the commands rely on.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from pywaweb import ClientConfig, Events, WhatsAppWebClient
from pywaweb.util.qr import render_ascii, write_svg


async def main(store_js: Path, util_js: list[Path]) -> None:
    logging.basicConfig(level=logging.INFO)
    client = WhatsAppWebClient(
        ClientConfig(
            client_id="example",
            qr_max_retries=5,
            store_scripts=[store_js.read_text(encoding="utf-8")],
            util_scripts=[p.read_text(encoding="utf-8") for p in util_js],
        )
    )

    def on_qr(token: str) -> None:
        print("\nScan this QR in WhatsApp -> Settings -> Linked devices -> Link a device\n")
        print(render_ascii(token))
        print(f"wrote {write_svg(token, Path('qr.svg').resolve())}")

    def on_ready() -> None:
        info = client.info
        print("ready as", info.pushname if info else "?", "web version", client.wweb_version)

    client.on(Events.QR_RECEIVED, on_qr)
    client.on(Events.AUTHENTICATED, lambda _creds: print("authenticated"))
    client.on(Events.AUTHENTICATION_FAILURE, lambda err: print("auth failure:", err))
    client.on(Events.READY, on_ready)
    client.on(Events.DISCONNECTED, lambda reason: print("disconnected:", reason))

    try:
        if not await client.initialize():
            return
        await client.events.wait_for(Events.DISCONNECTED)
    finally:
        await client.destroy()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        raise SystemExit(__doc__)
    asyncio.run(main(Path(sys.argv[1]), [Path(p) for p in sys.argv[2:]]))
