from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

from playwright.async_api import (
    Browser,
    BrowserContext,
    Frame,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError

from ..config import ClientConfig
from ..exceptions import InitializationError, RemoteCommandError, ResourceClosedError

logger = logging.getLogger(__name__)

_CLOSED_MARKERS = ("closed", "Target crashed", "has been disconnected")


class PlaywrightPort:
    """
    `RemoteExecutionPort` backed by a Playwright-controlled Chromium page.

    Use `PlaywrightPort.launch(config, user_data_dir)` to launch a persistent
    profile, or set `config.browser.ws_endpoint` to attach over CDP.
    """

    def __init__(
        self,
        *,
        playwright: Playwright,
        context: BrowserContext,
        page: Page,
        browser: Browser | None = None,
    ) -> None:
        self._playwright = playwright
        self._context = context
        self._page = page
        self._browser = browser
        self._closed = False

    @classmethod
    async def launch(cls, config: ClientConfig, user_data_dir: Path | None) -> PlaywrightPort:
        bc = config.browser
        context_kwargs: dict[str, Any] = {
            "user_agent": config.user_agent,
            "bypass_csp": config.bypass_csp,
        }
        if bc.http_credentials:
            context_kwargs["http_credentials"] = dict(bc.http_credentials)

        pw = await async_playwright().start()
        browser: Browser | None = None
        try:
            if bc.ws_endpoint:
                browser = await pw.chromium.connect_over_cdp(bc.ws_endpoint)
                context = await browser.new_context(**context_kwargs)
                page = await context.new_page()
            else:
                launch_kwargs: dict[str, Any] = {
                    "headless": bc.headless,
                    "args": list(bc.args),
                    **context_kwargs,
                }
                if bc.executable_path:
                    launch_kwargs["executable_path"] = bc.executable_path
                if bc.channel:
                    launch_kwargs["channel"] = bc.channel
                # An empty user data dir makes Playwright use a throwaway profile.
                context = await pw.chromium.launch_persistent_context(
                    str(user_data_dir) if user_data_dir else "", **launch_kwargs
                )
                page = context.pages[0] if context.pages else await context.new_page()
        except PlaywrightError as e:
            await pw.stop()
            raise InitializationError(f"failed to start browser: {e}") from e

        logger.debug("browser page ready (attached=%s)", bool(bc.ws_endpoint))
        return cls(playwright=pw, context=context, page=page, browser=browser)

    @property
    def page(self) -> Page:
        return self._page

    @property
    def is_closed(self) -> bool:
        return self._closed or self._page.is_closed()

    def _translate(self, e: PlaywrightError, command: str) -> RemoteCommandError:
        msg = str(e)
        if self.is_closed or any(m in msg for m in _CLOSED_MARKERS):
            return ResourceClosedError(f"{command}: page is closed ({msg})", command=command)
        return RemoteCommandError(f"{command} failed: {msg}", command=command)

    async def navigate(self, url: str) -> None:
        try:
            await self._page.goto(url, wait_until="load", timeout=0)
        except PlaywrightError as e:
            raise self._translate(e, "navigate") from e

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return await self._page.evaluate(script, arg)
        except PlaywrightError as e:
            raise self._translate(e, "evaluate") from e

    async def expose_function(self, name: str, callback: Callable[..., Any]) -> None:
        try:
            await self._page.expose_function(name, callback)
        except PlaywrightError as e:
            raise self._translate(e, f"expose_function({name})") from e

    async def add_init_script(self, script: str, arg: Any = None) -> None:
        source = f"({script})({json.dumps(arg)})"
        try:
            await self._page.add_init_script(source)
        except PlaywrightError as e:
            raise self._translate(e, "add_init_script") from e

    async def wait_for_selector(self, selector: str, *, timeout_ms: int = 0) -> None:
        try:
            await self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightError as e:
            raise self._translate(e, f"wait_for_selector({selector!r})") from e

    async def wait_for_function(self, expression: str, *, timeout_ms: int = 0) -> None:
        try:
            await self._page.wait_for_function(expression, timeout=timeout_ms)
        except PlaywrightError as e:
            raise self._translate(e, "wait_for_function") from e

    def on_page_closed(self, callback: Callable[[], Any]) -> None:
        self._page.on("close", lambda _page: callback())

    def on_navigated(self, callback: Callable[[str], Any]) -> None:
        def _on_frame(frame: Frame) -> Any:
            if frame is self._page.main_frame:
                return callback(frame.url)
            return None

        self._page.on("framenavigated", _on_frame)

    async def collect_garbage(self) -> dict[str, Any]:
        try:
            cdp = await self._context.new_cdp_session(self._page)
            await cdp.send("HeapProfiler.enable")
            result = await cdp.send("HeapProfiler.collectGarbage")
            await cdp.send("HeapProfiler.disable")
        except PlaywrightError as e:
            raise self._translate(e, "collect_garbage") from e
        return {"result": result}

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if self._browser is not None:
                await self._browser.close()
            else:
                await self._context.close()
        except PlaywrightError as e:
            logger.debug("error while closing browser: %s", e)
        finally:
            await self._playwright.stop()
