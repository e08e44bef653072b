from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class RemoteExecutionPort(Protocol):
    """
    Capability interface onto one controlled browser page.

    Implementations translate their own failures into `RemoteCommandError`
    (or `ResourceClosedError` once the page or browser is gone). A timeout of
    `0` means "wait indefinitely".
    """

    @property
    def is_closed(self) -> bool: ...

    async def navigate(self, url: str) -> None: ...

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def expose_function(self, name: str, callback: Callable[..., Any]) -> None: ...

    async def add_init_script(self, script: str, arg: Any = None) -> None: ...

    async def wait_for_selector(self, selector: str, *, timeout_ms: int = 0) -> None: ...

    async def wait_for_function(self, expression: str, *, timeout_ms: int = 0) -> None: ...

    def on_page_closed(self, callback: Callable[[], Any]) -> None: ...

    def on_navigated(self, callback: Callable[[str], Any]) -> None: ...

    async def collect_garbage(self) -> dict[str, Any]: ...

    async def close(self) -> None: ...
