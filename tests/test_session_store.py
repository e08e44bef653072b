from __future__ import annotations

from pathlib import Path

import pytest

from pywaweb.config import BrowserConfig, ClientConfig
from pywaweb.session_store import LocalSessionStore, session_dir_for


def test_session_dir_naming(tmp_path) -> None:
    assert session_dir_for(ClientConfig(), cwd=tmp_path) == tmp_path / ".wwebjs_auth" / "session"
    assert (
        session_dir_for(ClientConfig(client_id="client1", data_path="auth"), cwd=tmp_path)
        == tmp_path / "auth" / "session-client1"
    )


def test_explicit_user_data_dir_wins(tmp_path) -> None:
    cfg = ClientConfig(
        client_id="client1", browser=BrowserConfig(user_data_dir=str(tmp_path / "p"))
    )
    assert session_dir_for(cfg) == Path(tmp_path / "p")


def test_no_store_for_legacy_sessions(tmp_path) -> None:
    cfg = ClientConfig(legacy_session={"WABrowserId": "x"})
    assert LocalSessionStore.for_config(cfg, cwd=tmp_path) is None


@pytest.mark.asyncio
async def test_ensure_and_remove(tmp_path) -> None:
    store = LocalSessionStore.for_config(ClientConfig(client_id="zed"), cwd=tmp_path)
    assert store is not None
    assert not store.exists

    folder = await store.ensure()
    (folder / "Default").mkdir()
    (folder / "Default" / "Cookies").write_bytes(b"\x00")
    assert store.exists

    await store.remove()
    assert not store.exists
    # Removing twice is fine.
    await store.remove()
