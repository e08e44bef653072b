"""
Simple interactive CLI for pywaweb.

Demonstrates:
- QR pairing with a persistent browser profile
- incoming message, ack and revoke events
- listing chats and contacts, sending text, media, locations and contact cards
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
from pathlib import Path

from pywaweb import BrowserConfig, ClientConfig, Events, WhatsAppWebClient
from pywaweb.exceptions import PywawebError
from pywaweb.messages import SendOptions
from pywaweb.structures import Location, MessageMedia
from pywaweb.util.qr import render_ascii


async def _ainput(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


def _short(s: str | None, n: int = 80) -> str:
    if not s:
        return ""
    return s if len(s) <= n else (s[: n - 3] + "...")


async def main() -> None:
    ap = argparse.ArgumentParser(prog="simple_cli.py")
    ap.add_argument("--client-id", default=None, help="session name (default: none)")
    ap.add_argument("--data-path", default="./.wwebjs_auth", help="session folder root")
    ap.add_argument("--headful", action="store_true", help="show the browser window")
    ap.add_argument(
        "--store-script",
        action="append",
        default=[],
        type=Path,
        help="JS file that exposes window.Store (repeatable, evaluated in order)",
    )
    ap.add_argument(
        "--util-script",
        action="append",
        default=[],
        type=Path,
        help="JS file that defines window.WWebJS (repeatable)",
    )
    args = ap.parse_args()

    config = ClientConfig(
        client_id=args.client_id,
        data_path=args.data_path,
        store_scripts=[p.read_text(encoding="utf-8") for p in args.store_script],
        util_scripts=[p.read_text(encoding="utf-8") for p in args.util_script],
        browser=BrowserConfig(headless=not args.headful),
    )
    client = WhatsAppWebClient(config)

    def on_qr(token: str) -> None:
        print("\nScan this QR in WhatsApp -> Settings -> Linked devices -> Link a device\n")
        print(render_ascii(token))

    def on_message(msg) -> None:
        print(f"\n[rx] {msg.from_} {msg.author or ''}: {_short(msg.body, 200)!r}")

    def on_ack(msg, ack) -> None:
        print(f"\n[ack] {msg.id.serialized} -> {ack}")

    def on_revoke(msg, prior) -> None:
        before = _short(prior.body, 60) if prior else "?"
        print(f"\n[revoked] {msg.id.serialized} was {before!r}")

    client.on(Events.QR_RECEIVED, on_qr)
    client.on(Events.READY, lambda: print("ready"))
    client.on(Events.MESSAGE_RECEIVED, on_message)
    client.on(Events.MESSAGE_ACK, on_ack)
    client.on(Events.MESSAGE_REVOKED_EVERYONE, on_revoke)
    client.on(Events.STATE_CHANGED, lambda state: print("\nstate:", state))
    client.on(Events.DISCONNECTED, lambda reason: print("\ndisconnected:", reason))

    if not await client.initialize():
        return

    print(
        "\nCommands: help, chats, contacts, send <id> <text>, send_file <id> <path> [caption], "
        "send_location <id> <lat> <lng> [name], send_contact <id> <contact id>, "
        "search <text>, state, me, logout, quit\n"
    )

    try:
        while True:
            try:
                line = (await _ainput("> ")).strip()
            except (EOFError, KeyboardInterrupt):
                line = "quit"

            if not line:
                continue

            cmd, *rest = line.split(" ", 1)
            cmd = cmd.lower()
            argstr = rest[0] if rest else ""

            if cmd in ("quit", "exit"):
                break

            try:
                if cmd == "help":
                    print("chats | contacts | send <id> <text> | send_file <id> <path> [caption]")
                    print("send_location <id> <lat> <lng> [name] | send_contact <id> <contact id>")
                    print("search <text> | state | me | logout | quit")
                elif cmd == "me":
                    print("me:", client.info)
                elif cmd == "state":
                    print("state:", await client.get_state())
                elif cmd == "chats":
                    for c in await client.get_chats():
                        print(f"- {c.id} {c.name!r} unread={c.unread_count}")
                elif cmd == "contacts":
                    for ct in await client.get_contacts():
                        if ct.is_my_contact:
                            print(f"- {ct.id} {ct.name or ct.pushname!r}")
                elif cmd == "send":
                    chat_id, _, text = argstr.partition(" ")
                    if not text:
                        print("usage: send <id> <text>")
                        continue
                    msg = await client.send_message(chat_id, text)
                    print("sent:", msg.id.serialized)
                elif cmd == "send_file":
                    parts = argstr.split(" ", 2)
                    if len(parts) < 2:
                        print("usage: send_file <id> <path> [caption]")
                        continue
                    media = await MessageMedia.from_file(parts[1])
                    caption = parts[2] if len(parts) > 2 else None
                    msg = await client.send_message(
                        parts[0], media, SendOptions(caption=caption)
                    )
                    print("sent:", msg.id.serialized)
                elif cmd == "send_location":
                    parts = argstr.split(" ", 3)
                    if len(parts) < 3:
                        print("usage: send_location <id> <lat> <lng> [name]")
                        continue
                    loc = Location(
                        float(parts[1]), float(parts[2]), parts[3] if len(parts) > 3 else None
                    )
                    msg = await client.send_message(parts[0], loc)
                    print("sent:", msg.id.serialized)
                elif cmd == "send_contact":
                    chat_id, _, contact_id = argstr.partition(" ")
                    contact = await client.get_contact_by_id(contact_id)
                    msg = await client.send_message(chat_id, contact)
                    print("sent:", msg.id.serialized)
                elif cmd == "search":
                    for m in await client.search_messages(argstr, limit=20):
                        print(f"- {m.id.serialized}: {_short(m.body, 120)!r}")
                elif cmd == "logout":
                    await client.logout()
                    break
                else:
                    print("unknown command; try 'help'")
            except (PywawebError, ValueError) as e:
                print("error:", e)
    finally:
        with contextlib.suppress(PywawebError):
            await client.destroy()


if __name__ == "__main__":
    asyncio.run(main())
