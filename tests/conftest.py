# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("NONCE_SWEEP_INTERVAL_SECONDS", "0")

from wallet_gate.api.v1.dependencies import get_auth_core_dep
from wallet_gate.main import app as fastapi_app
from wallet_gate.services.auth import AuthCore
from wallet_gate.services.nonces import InMemoryNonceStore
from wallet_gate.services.sessions import SessionIssuer
from wallet_gate.services.siwe import SignedMessageVerifier

TEST_SECRET = "test-secret-key"
TEST_DOMAIN = "localhost:3000"
NONCE_TTL = timedelta(minutes=2)
SESSION_TTL = timedelta(days=7)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


class MemoryJar:
    """In-memory ``CredentialJar`` recording every cookie operation."""

    def __init__(self, cookies: dict[str, str] | None = None) -> None:
        self.cookies: dict[str, str] = dict(cookies or {})
        self.attributes: dict[str, dict[str, Any]] = {}
        self.deleted: list[str] = []

    def get(self, name: str) -> str | None:
        return self.cookies.get(name)

    def set(
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        httponly: bool,
        samesite: str,
        secure: bool,
    ) -> None:
        self.cookies[name] = value
        self.attributes[name] = {
            "max_age": max_age,
            "httponly": httponly,
            "samesite": samesite,
            "secure": secure,
        }

    def delete(self, name: str, *, httponly: bool, samesite: str, secure: bool) -> None:
        self.cookies.pop(name, None)
        self.deleted.append(name)


def build_message(
    address: str,
    nonce: str,
    *,
    domain: str = TEST_DOMAIN,
    statement: str | None = "Sign in with Ethereum to the app.",
    issued_at: str = "2026-01-01T12:00:00.000Z",
    chain_id: int = 1,
    **extra_fields: str,
) -> str:
    """Render an EIP-4361 message the way wallet libraries do."""
    lines = [
        f"{domain} wants you to sign in with your Ethereum account:",
        address,
        "",
    ]
    if statement is not None:
        lines.extend([statement, ""])
    else:
        lines.append("")
    lines.extend(
        [
            f"URI: http://{domain}",
            "Version: 1",
            f"Chain ID: {chain_id}",
            f"Nonce: {nonce}",
            f"Issued At: {issued_at}",
        ]
    )
    for tag, value in extra_fields.items():
        lines.append(f"{tag.replace('_', ' ').title()}: {value}")
    return "\n".join(lines)


def sign_text(account: LocalAccount, text: str) -> str:
    signed = account.sign_message(encode_defunct(text=text))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def other_wallet() -> LocalAccount:
    return Account.create()


@pytest.fixture()
def nonce_store(clock: FakeClock) -> InMemoryNonceStore:
    return InMemoryNonceStore(NONCE_TTL, clock)


@pytest.fixture()
def verifier(clock: FakeClock) -> SignedMessageVerifier:
    return SignedMessageVerifier(clock=clock)


@pytest.fixture()
def session_issuer(clock: FakeClock) -> SessionIssuer:
    return SessionIssuer(TEST_SECRET, ttl=SESSION_TTL, clock=clock)


@pytest.fixture()
def auth_core(
    nonce_store: InMemoryNonceStore,
    verifier: SignedMessageVerifier,
    session_issuer: SessionIssuer,
) -> AuthCore:
    return AuthCore(nonce_store, verifier, session_issuer)


@pytest.fixture()
def jar() -> MemoryJar:
    return MemoryJar()


@pytest.fixture()
def signed_login(wallet: LocalAccount) -> Callable[[str], tuple[str, str]]:
    """Return a helper producing ``(message, signature)`` for a nonce."""

    def _sign(nonce: str) -> tuple[str, str]:
        message = build_message(wallet.address, nonce)
        return message, sign_text(wallet, message)

    return _sign


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_auth_core(app: FastAPI, auth_core: AuthCore) -> Iterator[None]:
    app.dependency_overrides[get_auth_core_dep] = lambda: auth_core
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_auth_core_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
