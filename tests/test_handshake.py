from __future__ import annotations

import asyncio

import pytest
from conftest import FakePort, wait_until

from pywaweb.constants import (
    INTRO_IMG_SELECTOR,
    INTRO_QRCODE_SELECTOR,
    DisconnectReason,
)
from pywaweb.exceptions import InitializationError
from pywaweb.handshake import AlreadyAuthenticated, AuthenticationHandshake, QrFlow
from pywaweb.remote import scripts


def _handshake(port: FakePort, *, max_retries: int = 0):
    qrs: list[tuple[str, int]] = []
    aborts: list[int] = []

    async def on_qr(token: str, count: int) -> None:
        qrs.append((token, count))

    async def on_abort() -> None:
        aborts.append(1)

    hs = AuthenticationHandshake(
        port,
        auth_timeout_ms=1000,
        qr_max_retries=max_retries,
        on_qr=on_qr,
        on_abort=on_abort,
    )
    return hs, qrs, aborts


@pytest.mark.asyncio
async def test_intro_selector_wins_race(port: FakePort) -> None:
    hs, qrs, _aborts = _handshake(port)
    port.resolve_selector(INTRO_IMG_SELECTOR)

    result = await hs.run()

    assert isinstance(result, AlreadyAuthenticated)
    assert qrs == []
    assert scripts.QR_CHANGED not in port.exposed


@pytest.mark.asyncio
async def test_race_failure_raises_initialization_error(port: FakePort) -> None:
    hs, _qrs, _aborts = _handshake(port)
    port.fail_selector(INTRO_QRCODE_SELECTOR, "Timeout 1000ms exceeded")

    with pytest.raises(InitializationError):
        await hs.run()


@pytest.mark.asyncio
async def test_qr_flow_counts_every_refresh(port: FakePort) -> None:
    hs, qrs, aborts = _handshake(port)
    port.resolve_selector(INTRO_QRCODE_SELECTOR)

    task = asyncio.create_task(hs.run())
    await wait_until(lambda: scripts.QR_CHANGED in port.exposed)
    assert port.evaluated(scripts.OBSERVE_QR)

    qr_changed = port.exposed[scripts.QR_CHANGED]
    await qr_changed("ref-1")
    await qr_changed("ref-2")
    await qr_changed("ref-3")
    port.resolve_selector(INTRO_IMG_SELECTOR)
    result = await task

    assert result == QrFlow(authenticated=True, refreshes=3)
    assert qrs == [("ref-1", 1), ("ref-2", 2), ("ref-3", 3)]
    assert hs.retry_count == 3
    assert aborts == []


@pytest.mark.asyncio
async def test_max_retries_aborts_once(port: FakePort) -> None:
    hs, qrs, aborts = _handshake(port, max_retries=2)
    port.resolve_selector(INTRO_QRCODE_SELECTOR)

    task = asyncio.create_task(hs.run())
    await wait_until(lambda: scripts.QR_CHANGED in port.exposed)
    qr_changed = port.exposed[scripts.QR_CHANGED]
    for i in range(5):
        await qr_changed(f"ref-{i}")
    result = await task

    assert result == QrFlow(
        authenticated=False, refreshes=3, failure_reason=DisconnectReason.MAX_QR_RETRIES
    )
    assert qrs == [("ref-0", 1), ("ref-1", 2), ("ref-2", 3)]
    assert aborts == [1]


@pytest.mark.asyncio
async def test_failed_flow_returns_after_abort_completes(port: FakePort) -> None:
    gate = asyncio.Event()
    finished: list[str] = []

    async def on_qr(token: str, count: int) -> None:
        pass

    async def on_abort() -> None:
        await gate.wait()
        finished.append("abort")

    hs = AuthenticationHandshake(
        port, auth_timeout_ms=1000, qr_max_retries=1, on_qr=on_qr, on_abort=on_abort
    )
    port.resolve_selector(INTRO_QRCODE_SELECTOR)
    task = asyncio.create_task(hs.run())
    await wait_until(lambda: scripts.QR_CHANGED in port.exposed)
    qr_changed = port.exposed[scripts.QR_CHANGED]
    await qr_changed("ref-1")
    abort = asyncio.create_task(qr_changed("ref-2"))

    await asyncio.sleep(0.05)
    assert not task.done()

    gate.set()
    result = await task
    await abort
    assert finished == ["abort"]
    assert result.authenticated is False
