# tests/test_settings.py
from datetime import timedelta

import pytest
from pydantic import ValidationError

from wallet_gate.core.settings import Settings


def test_defaults() -> None:
    config = Settings(SECRET_KEY="x", ENVIRONMENT="local")  # type: ignore[call-arg]

    assert config.jwt_algorithm == "HS256"
    assert config.session_ttl == timedelta(days=7)
    assert config.nonce_ttl == timedelta(minutes=2)
    assert config.nonce_backend == "memory"
    assert config.is_local is True
    assert config.cookie_secure is False


def test_production_cookies_are_secure() -> None:
    config = Settings(SECRET_KEY="x", ENVIRONMENT="production")  # type: ignore[call-arg]
    assert config.cookie_secure is True


def test_log_level_is_normalised() -> None:
    assert Settings(SECRET_KEY="x", LOG_LEVEL="debug").log_level == "DEBUG"  # type: ignore[call-arg]


def test_invalid_log_level_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY="x", LOG_LEVEL="chatty")  # type: ignore[call-arg]


def test_unknown_nonce_backend_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(SECRET_KEY="x", NONCE_BACKEND="memcached")  # type: ignore[call-arg]
