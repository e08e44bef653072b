from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from .constants import (
    INTRO_IMG_SELECTOR,
    INTRO_QRCODE_SELECTOR,
    QR_CONTAINER_SELECTOR,
    QR_RETRY_BUTTON_SELECTOR,
    DisconnectReason,
)
from .exceptions import InitializationError, RemoteCommandError
from .remote import scripts
from .remote.port import RemoteExecutionPort
from .util.asyncio import first_completed

logger = logging.getLogger(__name__)

QrCallback = Callable[[str, int], Awaitable[None]]
AbortCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class AlreadyAuthenticated:
    """The page came up logged in; no QR was shown."""


@dataclass(frozen=True, slots=True)
class QrFlow:
    authenticated: bool
    refreshes: int
    failure_reason: str | None = None


HandshakeResult = AlreadyAuthenticated | QrFlow


class AuthenticationHandshake:
    """
    Decide between "already logged in" and "needs QR", then drive the QR flow.

    The decision is a race between two selector waits bounded by
    `auth_timeout_ms`: the first wait to settle wins and the other is cancelled.
    If the winner failed (typically a timeout), `InitializationError` is raised.

    In the QR flow, `on_qr(token, count)` is awaited for every token the page
    reports, starting with the one on screen. `count` is the number of tokens
    seen so far. The token that pushes `count` past a positive `qr_max_retries`
    is still reported, then `on_abort()` is awaited and the flow ends with a
    failed `QrFlow` once the abort has completed.
    """

    def __init__(
        self,
        port: RemoteExecutionPort,
        *,
        auth_timeout_ms: int,
        qr_max_retries: int,
        on_qr: QrCallback,
        on_abort: AbortCallback,
    ) -> None:
        self._port = port
        self._auth_timeout_ms = auth_timeout_ms
        self._qr_max_retries = qr_max_retries
        self._on_qr = on_qr
        self._on_abort = on_abort
        self._retries = 0
        self._aborted: asyncio.Future[str] | None = None
        self._abort_done = asyncio.Event()

    @property
    def retry_count(self) -> int:
        return self._retries

    async def run(self) -> HandshakeResult:
        winner, task = await first_completed(
            self._port.wait_for_selector(INTRO_IMG_SELECTOR, timeout_ms=self._auth_timeout_ms),
            self._port.wait_for_selector(INTRO_QRCODE_SELECTOR, timeout_ms=self._auth_timeout_ms),
            names=("pywaweb.auth.intro", "pywaweb.auth.qr"),
        )
        try:
            task.result()
        except RemoteCommandError as e:
            raise InitializationError(f"authentication race failed: {e}") from e

        if winner == 0:
            logger.debug("page reports an authenticated session")
            return AlreadyAuthenticated()
        return await self._qr_flow()

    async def _qr_flow(self) -> QrFlow:
        self._aborted = asyncio.get_running_loop().create_future()
        try:
            await self._port.expose_function(scripts.QR_CHANGED, self._qr_changed)
            await self._port.evaluate(
                scripts.OBSERVE_QR,
                {"container": QR_CONTAINER_SELECTOR, "retryButton": QR_RETRY_BUTTON_SELECTOR},
            )
        except RemoteCommandError as e:
            raise InitializationError(f"failed to observe QR code: {e}") from e

        # Scanning is human-paced: no timeout on the final wait.
        winner, task = await first_completed(
            self._wait_aborted(),
            self._port.wait_for_selector(INTRO_IMG_SELECTOR, timeout_ms=0),
            names=("pywaweb.auth.abort", "pywaweb.auth.scan"),
        )
        if winner == 0:
            await self._abort_done.wait()
            return QrFlow(authenticated=False, refreshes=self._retries, failure_reason=task.result())
        try:
            task.result()
        except RemoteCommandError as e:
            raise InitializationError(f"waiting for QR scan failed: {e}") from e
        return QrFlow(authenticated=True, refreshes=self._retries)

    async def _wait_aborted(self) -> str:
        assert self._aborted is not None
        return await self._aborted

    async def _qr_changed(self, token: str) -> None:
        if self._aborted is None or self._aborted.done():
            return
        self._retries += 1
        exhausted = self._qr_max_retries > 0 and self._retries > self._qr_max_retries
        if exhausted:
            self._aborted.set_result(DisconnectReason.MAX_QR_RETRIES)
        await self._on_qr(token, self._retries)
        if not exhausted:
            return
        logger.info("QR code refreshed %d times, giving up", self._retries)
        try:
            await self._on_abort()
        finally:
            self._abort_done.set()
