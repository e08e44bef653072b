from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .bridge import EventBridge
from .config import ClientConfig
from .constants import (
    ACCEPTED_STATES,
    STORE_READY_EXPRESSION,
    WHATSAPP_WEB_URL,
    DisconnectReason,
    Events,
    WAState,
)
from .exceptions import (
    AuthenticationError,
    InitializationError,
    RemoteCommandError,
    SessionStateError,
)
from .handshake import AuthenticationHandshake, QrFlow
from .remote import scripts
from .remote.port import RemoteExecutionPort
from .session_store import LocalSessionStore
from .structures import ClientInfo
from .util.asyncio import cancel_suppress, ensure_task
from .util.events import AsyncEventEmitter

logger = logging.getLogger(__name__)

PortFactory = Callable[[ClientConfig, Path | None], Awaitable[RemoteExecutionPort]]


@dataclass(frozen=True, slots=True)
class Uninitialized:
    pass


@dataclass(frozen=True, slots=True)
class Launching:
    pass


@dataclass(frozen=True, slots=True)
class AwaitingAuth:
    qr_token: str | None = None
    retry_count: int = 0


@dataclass(frozen=True, slots=True)
class Authenticated:
    credentials: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class StoreReady:
    pass


@dataclass(frozen=True, slots=True)
class Ready:
    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    reason: str


@dataclass(frozen=True, slots=True)
class Destroyed:
    pass


SessionState = (
    Uninitialized
    | Launching
    | AwaitingAuth
    | Authenticated
    | StoreReady
    | Ready
    | Disconnected
    | Destroyed
)

_RANK: dict[type, int] = {
    Uninitialized: 0,
    Launching: 1,
    AwaitingAuth: 2,
    Authenticated: 3,
    StoreReady: 4,
    Ready: 5,
}


def transition_allowed(current: SessionState, new: SessionState) -> bool:
    """
    Forward-only lifecycle, except for QR refreshes (AwaitingAuth -> AwaitingAuth)
    and Disconnected/Destroyed, which are reachable from anywhere.
    """

    if isinstance(current, Destroyed):
        return False
    if isinstance(new, (Disconnected, Destroyed)):
        return True
    if isinstance(current, Disconnected):
        return False
    if isinstance(current, AwaitingAuth) and isinstance(new, AwaitingAuth):
        return True
    return _RANK[type(new)] > _RANK[type(current)]


class SessionController:
    """
    Own the session lifecycle of one client.

    `initialize()` drives launch -> handshake -> store ready -> event wiring ->
    ready, then the controller only reacts: page close, navigation and
    connection state changes downgrade the session to Disconnected. `destroy()`
    is the only call that releases the browser.
    """

    def __init__(
        self,
        config: ClientConfig,
        events: AsyncEventEmitter,
        *,
        port_factory: PortFactory,
        session_store: LocalSessionStore | None,
    ) -> None:
        self.config = config
        self.events = events
        self.session_store = session_store
        self._port_factory = port_factory
        self._port: RemoteExecutionPort | None = None
        self._state: SessionState = Uninitialized()
        self._bridge: EventBridge | None = None
        self._handshake: AuthenticationHandshake | None = None
        self._takeover_tasks: set[asyncio.Task[None]] = set()

        self.info: ClientInfo | None = None
        self.wweb_version: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def port(self) -> RemoteExecutionPort:
        if self._port is None:
            raise SessionStateError("client is not initialized")
        return self._port

    @property
    def bridge(self) -> EventBridge | None:
        return self._bridge

    def _transition(self, new: SessionState) -> bool:
        current = self._state
        if isinstance(current, Destroyed):
            return False
        if not transition_allowed(current, new):
            raise SessionStateError(
                f"illegal session transition {type(current).__name__} -> {type(new).__name__}"
            )
        logger.debug("session %s -> %s", type(current).__name__, new)
        self._state = new
        return True

    async def initialize(self) -> bool:
        """
        Run the full startup sequence.

        Returns False when startup ended without reaching Ready: either the QR
        flow gave up (the session is disconnected and destroyed by the time
        this returns) or the connection dropped while events were being wired
        (the session is Disconnected, or Destroyed under
        `destroy_on_disconnect`). Handshake and authentication failures emit
        `auth_failure`; with `restart_on_auth_fail` the session directory is
        wiped and startup is retried once before the error is raised. Any other
        error destroys the session before it propagates.
        """

        if not isinstance(self._state, Uninitialized):
            raise SessionStateError("initialize() can only be called once")

        attempts = 2 if self.config.restart_on_auth_fail else 1
        for attempt in range(attempts):
            try:
                return await self._start()
            except (InitializationError, AuthenticationError) as e:
                if isinstance(self._state, Destroyed):
                    raise
                logger.warning("authentication failed: %s", e)
                await self.events.emit(Events.AUTHENTICATION_FAILURE, e)
                await self._release()
                if attempt + 1 >= attempts:
                    self._transition(Destroyed())
                    raise
                if self.session_store is not None:
                    await self.session_store.remove()
                logger.info("restarting with a fresh session")
                # A restart is a brand new session.
                self._state = Uninitialized()
            except BaseException:
                await self.destroy()
                raise
        return False

    async def _start(self) -> bool:
        cfg = self.config
        self._transition(Launching())

        user_data_dir = await self.session_store.ensure() if self.session_store else None
        self._port = await self._port_factory(cfg, user_data_dir)
        port = self._port

        try:
            if cfg.legacy_session is not None:
                await port.add_init_script(scripts.SEED_LEGACY_SESSION, cfg.legacy_session)
            await port.navigate(WHATSAPP_WEB_URL)
        except RemoteCommandError as e:
            raise InitializationError(f"failed to load the web client: {e}") from e

        self._transition(AwaitingAuth())
        self._handshake = AuthenticationHandshake(
            port,
            auth_timeout_ms=cfg.auth_timeout_ms,
            qr_max_retries=cfg.qr_max_retries,
            on_qr=self._on_qr,
            on_abort=self._on_qr_retries_exhausted,
        )
        result = await self._handshake.run()
        if isinstance(result, QrFlow) and not result.authenticated:
            return False

        if not cfg.store_scripts:
            logger.warning("no store_scripts configured; window.Store must come from the page")
        try:
            for script in cfg.store_scripts:
                await port.evaluate(script)
            credentials = (
                await port.evaluate(scripts.READ_LEGACY_SESSION)
                if cfg.legacy_session is not None
                else None
            )
            self._transition(Authenticated(credentials))
            logger.info("authenticated")
            await self.events.emit(Events.AUTHENTICATED, credentials)

            await self._wait_store_ready()
            if cfg.legacy_session is not None and await port.evaluate(scripts.IS_MD_BACKEND):
                raise AuthenticationError(
                    "Authenticating via JSON session is not supported for "
                    "multi-device enabled WhatsApp accounts."
                )
            await self._unregister_service_workers()
            self._transition(StoreReady())

            await self._wire()
        except RemoteCommandError as e:
            raise InitializationError(f"startup failed after authentication: {e}") from e

        # A state notification delivered while wiring may already have ended the session.
        if not isinstance(self._state, StoreReady) or not self._transition(Ready()):
            logger.info("session ended before ready: %s", self._state)
            return False
        port.on_page_closed(self._on_page_closed)
        port.on_navigated(self._on_navigated)
        logger.info("client ready")
        await self.events.emit(Events.READY)
        return True

    async def _wait_store_ready(self) -> None:
        timeout_ms = self.config.store_ready_timeout_ms
        try:
            await self.port.wait_for_function(STORE_READY_EXPRESSION, timeout_ms=timeout_ms)
        except RemoteCommandError as e:
            raise InitializationError(
                f"window.Store did not appear within {timeout_ms} ms; "
                f"check ClientConfig.store_scripts: {e}"
            ) from e

    async def _unregister_service_workers(self) -> None:
        try:
            await self.port.evaluate(scripts.UNREGISTER_SERVICE_WORKERS)
        except RemoteCommandError as e:
            logger.warning("could not unregister service workers: %s", e)

    async def _wire(self) -> None:
        port = self.port
        for script in self.config.util_scripts:
            await port.evaluate(script)

        bridge = EventBridge(
            self.events,
            cache_size=self.config.last_seen_cache_size,
            on_app_state=self._on_app_state,
        )
        for name, callback in bridge.exposed_callbacks().items():
            await port.expose_function(name, callback)
        self._bridge = bridge

        if self.config.disable_message_history:
            await port.evaluate(scripts.SET_MESSAGE_HISTORY, True)

        self.info = ClientInfo.from_dict(await port.evaluate(scripts.CLIENT_INFO))
        self.wweb_version = await port.evaluate(scripts.WWEB_VERSION)

        bridge.start()
        await port.evaluate(scripts.INSTALL_STORE_LISTENERS)

    async def _on_qr(self, token: str, count: int) -> None:
        if not isinstance(self._state, AwaitingAuth):
            return
        self._transition(AwaitingAuth(qr_token=token, retry_count=count))
        await self.events.emit(Events.QR_RECEIVED, token)

    async def _on_qr_retries_exhausted(self) -> None:
        await self._disconnect(DisconnectReason.MAX_QR_RETRIES, teardown=True)

    async def _on_page_closed(self) -> None:
        await self._disconnect(DisconnectReason.PAGE_CLOSED)

    async def _on_navigated(self, _url: str) -> None:
        # The web client reloads itself on logout, so any navigation ends the session.
        await self._disconnect(DisconnectReason.NAVIGATION)

    async def _on_app_state(self, state: str) -> None:
        accepted = set(ACCEPTED_STATES)
        if self.config.takeover_on_conflict:
            accepted.add(WAState.CONFLICT.value)
            if state == WAState.CONFLICT.value:
                task = ensure_task(self._takeover_later(), name="pywaweb.takeover")
                self._takeover_tasks.add(task)
                task.add_done_callback(self._takeover_tasks.discard)

        if state in accepted:
            await self.events.emit(Events.STATE_CHANGED, _as_wa_state(state))
        else:
            await self._disconnect(_as_wa_state(state))

    async def _takeover_later(self) -> None:
        await asyncio.sleep(self.config.takeover_timeout_ms / 1000)
        try:
            await self.port.evaluate(scripts.TAKEOVER)
        except RemoteCommandError as e:
            logger.warning("conflict takeover failed: %s", e)

    async def _disconnect(self, reason: WAState | str, *, teardown: bool = False) -> None:
        if isinstance(self._state, Disconnected):
            return
        label = getattr(reason, "value", reason)
        if not self._transition(Disconnected(label)):
            return
        logger.info("disconnected: %s", label)
        await self.events.emit(Events.DISCONNECTED, reason)
        if teardown or self.config.destroy_on_disconnect:
            await self.destroy()

    async def _release(self) -> None:
        for task in list(self._takeover_tasks):
            await cancel_suppress(task)
        if self._port is not None:
            await self._port.close()
        if self._bridge is not None:
            await self._bridge.stop()
        self._bridge = None
        self._handshake = None

    async def destroy(self) -> None:
        """Close the browser. Safe to call repeatedly and from event listeners."""

        if not self._transition(Destroyed()):
            return
        logger.info("destroying session")
        await self._release()

    async def logout(self) -> None:
        await self.port.evaluate(scripts.LOGOUT)
        if self.session_store is not None:
            await self.session_store.remove()
        logger.info("logged out")


def _as_wa_state(state: str) -> WAState | str:
    try:
        return WAState(state)
    except ValueError:
        return state
