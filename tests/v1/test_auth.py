# mypy: ignore-errors
# tests/v1/test_auth.py
"""Tests for authentication endpoints."""

from __future__ import annotations

from fastapi import status

from wallet_gate.services.auth import UNAUTHORIZED_DETAIL
from tests.conftest import build_message, sign_text


def _request_nonce(client, address: str | None = None) -> str:
    params = {"address": address} if address is not None else None
    response = client.get("/api/v1/auth/nonce", params=params)
    assert response.status_code == status.HTTP_200_OK
    return response.json()["nonce"]


def _login(client, wallet) -> dict:
    nonce = _request_nonce(client, wallet.address)
    message = build_message(wallet.address, nonce)
    return {"message": message, "signature": sign_text(wallet, message)}


def test_nonce_endpoint_returns_fresh_nonce(client, wallet) -> None:
    first = _request_nonce(client, wallet.address)
    second = _request_nonce(client, wallet.address)

    assert first != second
    assert first.isalnum()
    assert len(first) >= 8


def test_nonce_endpoint_without_address(client, auth_core) -> None:
    nonce = _request_nonce(client)
    assert auth_core.nonce_store.consume("anonymous") == nonce


def test_verify_sets_session_cookie(client, wallet) -> None:
    response = client.post("/api/v1/auth/verify", json=_login(client, wallet))

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"address": wallet.address.lower()}
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("access_token=")
    assert "HttpOnly" in set_cookie
    assert "SameSite=lax" in set_cookie
    assert "Path=/" in set_cookie
    assert "Max-Age=604800" in set_cookie


def test_session_reflects_login_and_logout(client, wallet) -> None:
    anonymous = client.get("/api/v1/auth/session")
    assert anonymous.status_code == status.HTTP_200_OK
    assert anonymous.json()["authenticated"] is False

    client.post("/api/v1/auth/verify", json=_login(client, wallet))

    session = client.get("/api/v1/auth/session").json()
    assert session["authenticated"] is True
    assert session["address"] == wallet.address.lower()
    assert session["issued_at"] < session["expires_at"]

    me = client.get("/api/v1/auth/me")
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["address"] == wallet.address.lower()

    logout = client.post("/api/v1/auth/logout")
    assert logout.status_code == status.HTTP_200_OK
    assert logout.json() == {"message": "Logged out successfully."}

    assert client.get("/api/v1/auth/session").json()["authenticated"] is False
    assert client.get("/api/v1/auth/me").status_code == status.HTTP_401_UNAUTHORIZED


def test_me_requires_session(client) -> None:
    response = client.get("/api/v1/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == "Could not validate credentials"


def test_forged_cookie_is_treated_as_anonymous(client) -> None:
    client.cookies.set("access_token", "forged.token.value")
    assert client.get("/api/v1/auth/session").json()["authenticated"] is False
    assert client.get("/api/v1/auth/me").status_code == status.HTTP_401_UNAUTHORIZED


def test_replayed_verify_is_unauthorized(client, wallet) -> None:
    payload = _login(client, wallet)
    assert client.post("/api/v1/auth/verify", json=payload).status_code == status.HTTP_200_OK

    client.cookies.clear()
    replay = client.post("/api/v1/auth/verify", json=payload)

    assert replay.status_code == status.HTTP_401_UNAUTHORIZED
    assert replay.json()["detail"] == UNAUTHORIZED_DETAIL
    assert "set-cookie" not in replay.headers


def test_wrong_signer_is_unauthorized(client, wallet, other_wallet) -> None:
    nonce = _request_nonce(client, wallet.address)
    message = build_message(wallet.address, nonce)

    response = client.post(
        "/api/v1/auth/verify",
        json={"message": message, "signature": sign_text(other_wallet, message)},
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["detail"] == UNAUTHORIZED_DETAIL
    assert "set-cookie" not in response.headers


def test_malformed_message_is_bad_request(client) -> None:
    response = client.post(
        "/api/v1/auth/verify",
        json={"message": "let me in", "signature": "0x00"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"].startswith("Invalid sign-in message")


def test_missing_fields_fail_validation(client) -> None:
    assert client.post("/api/v1/auth/verify", json={}).status_code == 422
    response = client.post("/api/v1/auth/verify", json={"message": "", "signature": ""})
    assert response.status_code == 422


def test_logout_without_session_succeeds(client) -> None:
    response = client.post("/api/v1/auth/logout")
    assert response.status_code == status.HTTP_200_OK
    assert "access_token=" in response.headers["set-cookie"]
