from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

Listener = Callable[..., Awaitable[None]] | Callable[..., None]


class AsyncEventEmitter:
    """
    Async-friendly event emitter backing the public client event stream.

    - `on(event, fn)` / `once(event, fn)` register sync or async listeners.
    - `emit(event, *args)` calls listeners in registration order and awaits
      async ones, so two emissions from the same task are observed in order.
    - A listener that raises is logged and skipped; it never aborts the
      emission or the caller that produced the event.
    - `wait_for(event, predicate, timeout_s)` waits for the next matching emission.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._once: set[tuple[str, int]] = set()
        self._waiters: dict[str, list[tuple[Callable[..., bool] | None, asyncio.Future[Any]]]] = (
            defaultdict(list)
        )

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def once(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)
        self._once.add((event, id(listener)))

    def off(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if not listeners:
            return
        with contextlib.suppress(ValueError):
            listeners.remove(listener)
        self._once.discard((event, id(listener)))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
            self._waiters.clear()
            self._once.clear()
            return
        for listener in self._listeners.pop(event, []):
            self._once.discard((event, id(listener)))
        self._waiters.pop(event, None)

    def wait_for_future(
        self, event: str, *, predicate: Callable[..., bool] | None = None
    ) -> asyncio.Future[Any]:
        """
        Register a waiter synchronously and return its Future, so an emission
        that happens before the caller awaits is not lost.
        """

        fut: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._waiters[event].append((predicate, fut))
        return fut

    def _remove_waiter_future(self, event: str, fut: asyncio.Future[Any]) -> None:
        waiters = self._waiters.get(event)
        if not waiters:
            return
        self._waiters[event] = [(p, f) for (p, f) in waiters if f is not fut and not f.done()]
        if not self._waiters[event]:
            self._waiters.pop(event, None)

    def _resolve_waiters(self, event: str, args: tuple[Any, ...]) -> bool:
        waiters = self._waiters.get(event)
        if not waiters:
            return False
        triggered = False
        remaining: list[tuple[Callable[..., bool] | None, asyncio.Future[Any]]] = []
        for predicate, fut in waiters:
            if fut.done():
                continue
            if predicate is None or predicate(*args):
                fut.set_result(args[0] if len(args) == 1 else args)
                triggered = True
            else:
                remaining.append((predicate, fut))
        if remaining:
            self._waiters[event] = remaining
        else:
            self._waiters.pop(event, None)
        return triggered

    async def emit(self, event: str, *args: Any) -> bool:
        triggered = self._resolve_waiters(event, args)

        for listener in list(self._listeners.get(event, [])):
            triggered = True
            if (event, id(listener)) in self._once:
                self.off(event, listener)
            try:
                res = listener(*args)
                if asyncio.iscoroutine(res):
                    await res
            except Exception:
                logger.exception("listener for %r raised", event)

        return triggered

    async def wait_for(
        self,
        event: str,
        *,
        predicate: Callable[..., bool] | None = None,
        timeout_s: float | None = None,
    ) -> Any:
        fut = self.wait_for_future(event, predicate=predicate)
        try:
            if timeout_s is None:
                return await fut
            return await asyncio.wait_for(fut, timeout=timeout_s)
        finally:
            self._remove_waiter_future(event, fut)
