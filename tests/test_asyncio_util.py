from __future__ import annotations

import asyncio

import pytest

from pywaweb.util.asyncio import first_completed


@pytest.mark.asyncio
async def test_first_completed_cancels_loser() -> None:
    cancelled = asyncio.Event()

    async def slow() -> str:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise
        return "slow"

    async def fast() -> str:
        return "fast"

    index, task = await first_completed(slow(), fast())

    assert index == 1
    assert task.result() == "fast"
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_first_completed_winner_error_is_kept() -> None:
    async def fail() -> None:
        raise LookupError("gone")

    async def never() -> None:
        await asyncio.Event().wait()

    index, task = await first_completed(never(), fail())

    assert index == 1
    with pytest.raises(LookupError):
        task.result()
