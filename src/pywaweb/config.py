from __future__ import annotations

import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import DEFAULT_DATA_PATH, DEFAULT_USER_AGENT
from .exceptions import ValidationError

if TYPE_CHECKING:
    from .sticker import StickerMetadata
    from .structures import MessageMedia

    StickerTranscoder = Callable[[MessageMedia, StickerMetadata], Awaitable[MessageMedia]]

# Folder naming rules shared by the common desktop filesystems: bounded length,
# no reserved device names, no leading space, no trailing dot or space.
_FOLDER_NAME_RE = re.compile(
    r"^(?!.{256,})(?!(aux|clock\$|con|nul|prn|com[1-9]|lpt[1-9])(?:$|\.))"
    r"[^ ][ .\w\-$()+=\[\];#@~,&']+[^. ]$",
    re.IGNORECASE,
)


def is_valid_client_id(client_id: str) -> bool:
    return bool(_FOLDER_NAME_RE.match(client_id))


@dataclass(slots=True)
class BrowserConfig:
    headless: bool = True
    executable_path: str | None = None
    channel: str | None = None
    # Attach to an already running browser (CDP endpoint) instead of launching one.
    ws_endpoint: str | None = None
    args: Sequence[str] = ()
    user_data_dir: str | None = None
    # {"username": ..., "password": ...} for an authenticating proxy.
    http_credentials: dict[str, str] | None = None


@dataclass(slots=True)
class ClientConfig:
    # 0 disables the timeout on the authentication race.
    auth_timeout_ms: int = 0
    # 0 means unlimited QR refreshes.
    qr_max_retries: int = 0
    restart_on_auth_fail: bool = False
    takeover_on_conflict: bool = False
    takeover_timeout_ms: int = 0
    data_path: str = DEFAULT_DATA_PATH
    user_agent: str = DEFAULT_USER_AGENT
    bypass_csp: bool = False
    client_id: str | None = None
    disable_message_history: bool = False

    destroy_on_disconnect: bool = False
    last_seen_cache_size: int = 32

    # Deprecated JSON session tokens (WABrowserId, WASecretBundle, WAToken1, WAToken2).
    legacy_session: dict[str, str] | None = None

    # Evaluated once logged in, before waiting for `window.Store`. Without them
    # the store never appears and startup fails after `store_ready_timeout_ms`.
    store_scripts: Sequence[str] = ()
    # Evaluated once the store is ready; expected to define `window.WWebJS`.
    util_scripts: Sequence[str] = ()
    # 0 waits for `window.Store` forever.
    store_ready_timeout_ms: int = 60_000

    sticker_transcoder: StickerTranscoder | None = None
    ffmpeg_path: str = "ffmpeg"

    browser: BrowserConfig = field(default_factory=BrowserConfig)

    def __post_init__(self) -> None:
        if self.client_id is not None and not is_valid_client_id(self.client_id):
            raise ValidationError(
                "Invalid client ID. Make sure you abide by the folder naming rules "
                "of your operating system."
            )
        if self.auth_timeout_ms < 0:
            raise ValidationError("auth_timeout_ms must be >= 0")
        if self.qr_max_retries < 0:
            raise ValidationError("qr_max_retries must be >= 0")
        if self.takeover_timeout_ms < 0:
            raise ValidationError("takeover_timeout_ms must be >= 0")
        if self.store_ready_timeout_ms < 0:
            raise ValidationError("store_ready_timeout_ms must be >= 0")
        if self.last_seen_cache_size < 1:
            raise ValidationError("last_seen_cache_size must be >= 1")

    @property
    def uses_legacy_session(self) -> bool:
        return self.legacy_session is not None
