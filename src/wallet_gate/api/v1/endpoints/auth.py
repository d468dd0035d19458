# src/wallet_gate/api/v1/endpoints/auth.py
"""Authentication endpoints for the Wallet Gate API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from wallet_gate.api.v1.dependencies import (
    AuthCoreDep,
    CookieJarDep,
    CurrentSessionDep,
    OptionalSessionDep,
)
from wallet_gate.core.exceptions import BadRequestError, UnauthorizedError
from wallet_gate.schemas.auth import (
    LogoutResponse,
    MeResponse,
    NonceResponse,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.get(
    "/nonce",
    summary="Issue a single-use sign-in nonce",
    response_model=NonceResponse,
)
def issue_nonce(
    auth: AuthCoreDep,
    address: str | None = Query(None, description="Wallet address that will sign in"),
) -> NonceResponse:
    """Return a fresh nonce for the given wallet address."""
    return NonceResponse(nonce=auth.request_nonce(address))


@router.post(
    "/verify",
    summary="Verify a signed sign-in message",
    status_code=status.HTTP_200_OK,
    response_model=VerifyResponse,
)
def verify(payload: VerifyRequest, auth: AuthCoreDep, jar: CookieJarDep) -> VerifyResponse:
    """Verify the wallet signature and set the session cookie on success."""
    try:
        result = auth.verify_and_establish(payload.message, payload.signature, jar)
    except BadRequestError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    except UnauthorizedError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
        ) from err

    return VerifyResponse(address=result.identity)


@router.get(
    "/session",
    summary="Describe the current session",
    response_model=SessionResponse,
)
def read_session(session: OptionalSessionDep) -> SessionResponse:
    """Report the current session; anonymous callers are not an error."""
    if session is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(
        authenticated=True,
        address=session.identity,
        issued_at=session.issued_at,
        expires_at=session.expires_at,
    )


@router.get(
    "/me",
    summary="Return the authenticated wallet",
    response_model=MeResponse,
)
def me(session: CurrentSessionDep) -> MeResponse:
    return MeResponse(
        address=session.identity,
        issued_at=session.issued_at,
        expires_at=session.expires_at,
    )


@router.post(
    "/logout",
    summary="Clear the session cookie",
    status_code=status.HTTP_200_OK,
    response_model=LogoutResponse,
)
def logout(auth: AuthCoreDep, jar: CookieJarDep) -> LogoutResponse:
    auth.end_session(jar)
    return LogoutResponse(message="Logged out successfully.")
