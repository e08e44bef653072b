from __future__ import annotations

import pytest

from pywaweb.config import BrowserConfig, ClientConfig, is_valid_client_id
from pywaweb.constants import DEFAULT_DATA_PATH, DEFAULT_USER_AGENT
from pywaweb.exceptions import ValidationError


def test_defaults() -> None:
    cfg = ClientConfig()
    assert cfg.auth_timeout_ms == 0
    assert cfg.qr_max_retries == 0
    assert cfg.data_path == DEFAULT_DATA_PATH
    assert cfg.user_agent == DEFAULT_USER_AGENT
    assert cfg.last_seen_cache_size == 32
    assert cfg.destroy_on_disconnect is False
    assert cfg.store_ready_timeout_ms == 60_000
    assert isinstance(cfg.browser, BrowserConfig)
    assert not cfg.uses_legacy_session


@pytest.mark.parametrize("client_id", ["alpha", "work-phone_2", "client.one", "a b"])
def test_valid_client_ids(client_id: str) -> None:
    assert is_valid_client_id(client_id)
    assert ClientConfig(client_id=client_id).client_id == client_id


@pytest.mark.parametrize(
    "client_id",
    ["con", "NUL", "com1", "lpt9.txt", " leading", "trailing.", "trailing ", "a/b", "x" * 300],
)
def test_invalid_client_ids(client_id: str) -> None:
    assert not is_valid_client_id(client_id)
    with pytest.raises(ValidationError):
        ClientConfig(client_id=client_id)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"auth_timeout_ms": -1},
        {"qr_max_retries": -2},
        {"takeover_timeout_ms": -5},
        {"store_ready_timeout_ms": -1},
        {"last_seen_cache_size": 0},
    ],
)
def test_negative_values_rejected(kwargs) -> None:
    with pytest.raises(ValidationError):
        ClientConfig(**kwargs)


def test_validation_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        ClientConfig(client_id="aux")
