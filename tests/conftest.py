from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import pytest

from pywaweb.exceptions import RemoteCommandError, ResourceClosedError
from pywaweb.remote import scripts


class FakePort:
    """
    In-memory `RemoteExecutionPort`.

    `responses` maps a script to its result: a plain value, an exception to
    raise, or a callable taking the evaluation argument. Selector waits park on
    futures the test resolves with `resolve_selector` / `fail_selector`.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {
            scripts.CLIENT_INFO: {
                "pushname": "Tester",
                "wid": {"_serialized": "15550001111@c.us"},
                "platform": "android",
            },
            scripts.WWEB_VERSION: "2.2306.7",
        }
        self.calls: list[tuple[str, Any]] = []
        self.exposed: dict[str, Callable[..., Any]] = {}
        self.init_scripts: list[tuple[str, Any]] = []
        self.navigations: list[str] = []
        self.waited_functions: list[tuple[str, int]] = []
        # Expression -> exception raised by `wait_for_function`.
        self.function_failures: dict[str, BaseException] = {}
        self.close_count = 0
        self._selectors: dict[str, asyncio.Future[None]] = {}
        self._closed_callbacks: list[Callable[[], Any]] = []
        self._navigated_callbacks: list[Callable[[str], Any]] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ResourceClosedError("page closed", command="evaluate")

    async def navigate(self, url: str) -> None:
        self._check_open()
        self.navigations.append(url)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self._check_open()
        self.calls.append((script, arg))
        resp = self.responses.get(script)
        if isinstance(resp, BaseException):
            raise resp
        if callable(resp):
            resp = resp(arg)
            if inspect.isawaitable(resp):
                resp = await resp
        return resp

    def evaluated(self, script: str) -> list[Any]:
        """Arguments of every evaluation of `script`, in call order."""

        return [arg for s, arg in self.calls if s == script]

    async def expose_function(self, name: str, callback: Callable[..., Any]) -> None:
        self._check_open()
        self.exposed[name] = callback

    async def add_init_script(self, script: str, arg: Any = None) -> None:
        self.init_scripts.append((script, arg))

    def _selector(self, selector: str) -> asyncio.Future[None]:
        fut = self._selectors.get(selector)
        if fut is None:
            fut = asyncio.get_running_loop().create_future()
            self._selectors[selector] = fut
        return fut

    def resolve_selector(self, selector: str) -> None:
        fut = self._selector(selector)
        if not fut.done():
            fut.set_result(None)

    def fail_selector(self, selector: str, message: str = "timeout") -> None:
        fut = self._selector(selector)
        if not fut.done():
            fut.set_exception(RemoteCommandError(message, command="wait_for_selector"))

    async def wait_for_selector(self, selector: str, *, timeout_ms: int = 0) -> None:
        # Shielded so a cancelled waiter leaves the selector usable for the next one.
        await asyncio.shield(self._selector(selector))

    async def wait_for_function(self, expression: str, *, timeout_ms: int = 0) -> None:
        self._check_open()
        self.waited_functions.append((expression, timeout_ms))
        failure = self.function_failures.get(expression)
        if failure is not None:
            raise failure

    def on_page_closed(self, callback: Callable[[], Any]) -> None:
        self._closed_callbacks.append(callback)

    def on_navigated(self, callback: Callable[[str], Any]) -> None:
        self._navigated_callbacks.append(callback)

    async def fire_page_closed(self) -> None:
        self._closed = True
        for cb in list(self._closed_callbacks):
            res = cb()
            if inspect.isawaitable(res):
                await res

    async def fire_navigated(self, url: str = "https://web.whatsapp.com/") -> None:
        for cb in list(self._navigated_callbacks):
            res = cb(url)
            if inspect.isawaitable(res):
                await res

    async def collect_garbage(self) -> dict[str, Any]:
        return {"result": {}}

    async def close(self) -> None:
        self.close_count += 1
        self._closed = True


async def wait_until(predicate: Callable[[], bool], *, timeout_s: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    try:
        await asyncio.wait_for(poll(), timeout=timeout_s)
    except asyncio.TimeoutError:
        raise AssertionError("condition not reached") from None


@pytest.fixture
def port() -> FakePort:
    return FakePort()


@pytest.fixture
def port_factory(port: FakePort):
    created: list[Any] = []

    async def factory(config, user_data_dir):
        created.append(user_data_dir)
        return port

    factory.created = created  # type: ignore[attr-defined]
    return factory
