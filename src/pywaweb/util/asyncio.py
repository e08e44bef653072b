from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Coroutine
from typing import Any, TypeVar

T = TypeVar("T")


async def cancel_suppress(task: asyncio.Task[Any] | None) -> None:
    if not task or task.done():
        return
    # Awaiting the current task from itself raises; callers in that position
    # simply return instead.
    if task is asyncio.current_task():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


def ensure_task(coro: Coroutine[Any, Any, T], *, name: str | None = None) -> asyncio.Task[T]:
    return asyncio.create_task(coro, name=name)


async def first_completed(
    *coros: Coroutine[Any, Any, T], names: tuple[str, ...] = ()
) -> tuple[int, asyncio.Task[T]]:
    """
    Run `coros` concurrently and return `(index, task)` of the first to finish.

    The losers are cancelled and awaited before returning. The winning task is
    returned done; calling `.result()` re-raises its error, if any.
    """

    tasks = [
        ensure_task(c, name=names[i] if i < len(names) else None) for i, c in enumerate(coros)
    ]
    try:
        done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        for t in tasks:
            await cancel_suppress(t)
        raise
    # `done` is a set; pick by launch order for determinism on ties.
    winner = next(i for i, t in enumerate(tasks) if t in done)
    for i, t in enumerate(tasks):
        if i != winner:
            await cancel_suppress(t)
            if t.done() and not t.cancelled():
                # Retrieve the exception so the loop does not log it as unhandled.
                t.exception()
    return winner, tasks[winner]
