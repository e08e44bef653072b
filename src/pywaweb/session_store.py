from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from .config import ClientConfig

logger = logging.getLogger(__name__)

_DIR_LOCKS: dict[Path, asyncio.Lock] = {}


def _lock_for(path: Path) -> asyncio.Lock:
    lock = _DIR_LOCKS.get(path)
    if lock is None:
        lock = asyncio.Lock()
        _DIR_LOCKS[path] = lock
    return lock


def session_dir_for(config: ClientConfig, *, cwd: str | Path | None = None) -> Path:
    """
    Resolve the browser profile directory for a client.

    An explicit `browser.user_data_dir` wins; otherwise the directory is
    `<data_path>/session-<client_id>` (or `<data_path>/session` without an id),
    relative to `cwd`.
    """

    if config.browser.user_data_dir:
        return Path(config.browser.user_data_dir).expanduser()
    base = Path(cwd) if cwd is not None else Path.cwd()
    name = f"session-{config.client_id}" if config.client_id else "session"
    return (base / config.data_path / name).expanduser()


class LocalSessionStore:
    """
    Per-client session directory holding the browser profile.

    The directory is the only persisted state of a client and is removed as a
    whole on logout.
    """

    def __init__(self, folder: Path) -> None:
        self.folder = folder

    @classmethod
    def for_config(
        cls, config: ClientConfig, *, cwd: str | Path | None = None
    ) -> LocalSessionStore | None:
        # Legacy JSON sessions live in page localStorage, not on disk.
        if config.uses_legacy_session:
            return None
        return cls(session_dir_for(config, cwd=cwd))

    @property
    def exists(self) -> bool:
        return self.folder.exists()

    async def ensure(self) -> Path:
        async with _lock_for(self.folder):
            await asyncio.to_thread(self.folder.mkdir, parents=True, exist_ok=True)
        return self.folder

    async def remove(self) -> None:
        async with _lock_for(self.folder):
            if not self.folder.exists():
                return
            await asyncio.to_thread(shutil.rmtree, self.folder, ignore_errors=True)
        logger.info("removed session directory %s", self.folder)
