"""Stateless session tokens and their cookie transport."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from fastapi import Request, Response
from jose import JWTError, jwt

from wallet_gate.core.clock import Clock, SystemClock
from wallet_gate.core.exceptions import InvalidSessionSignatureError, SessionExpiredError
from wallet_gate.core.settings import Settings, settings


@dataclass(frozen=True)
class SessionClaims:
    """Authenticated principal carried by a session token."""

    identity: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted token together with the claims it encodes."""

    token: str
    claims: SessionClaims


class CredentialJar(Protocol):
    """Transport-level store for a named credential (a cookie jar)."""

    def get(self, name: str) -> str | None: ...

    def set(
        self,
        name: str,
        value: str,
        *,
        max_age: int,
        httponly: bool,
        samesite: str,
        secure: bool,
    ) -> None: ...

    def delete(self, name: str, *, httponly: bool, samesite: str, secure: bool) -> None: ...


class CookieJar:
    """``CredentialJar`` backed by an incoming request and an outgoing response."""

    def __init__(self, request: Request, response: Response) -> None:
        self._request = request
        self._response = response

    def get(self, name: str) -> str | None:
        return self._request.cookies.get(name)

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
        self._response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            path="/",
            httponly=httponly,
            samesite=samesite,  # type: ignore[arg-type]
            secure=secure,
        )

    def delete(self, name: str, *, httponly: bool, samesite: str, secure: bool) -> None:
        self._response.delete_cookie(
            key=name,
            path="/",
            httponly=httponly,
            samesite=samesite,  # type: ignore[arg-type]
            secure=secure,
        )


class SessionIssuer:
    """Mints and validates signed, time-bounded session tokens."""

    SAMESITE = "lax"

    def __init__(
        self,
        secret_key: str,
        *,
        ttl: timedelta,
        algorithm: str = "HS256",
        cookie_name: str = "access_token",
        cookie_secure: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._ttl = ttl
        self._algorithm = algorithm
        self.cookie_name = cookie_name
        self._cookie_secure = cookie_secure
        self._clock = clock or SystemClock()

    @classmethod
    def from_settings(cls, config: Settings | None = None, clock: Clock | None = None) -> SessionIssuer:
        config = config or settings
        return cls(
            config.secret_key,
            ttl=config.session_ttl,
            algorithm=config.jwt_algorithm,
            cookie_name=config.session_cookie_name,
            cookie_secure=config.cookie_secure,
            clock=clock,
        )

    def mint(self, identity: str) -> IssuedSession:
        """Create a session token for ``identity`` valid for the configured TTL."""
        issued_at = self._clock.now().replace(microsecond=0)
        expires_at = issued_at + self._ttl
        to_encode: dict[str, object] = {
            "sub": identity,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token: str = jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)
        return IssuedSession(
            token=token,
            claims=SessionClaims(identity=identity, issued_at=issued_at, expires_at=expires_at),
        )

    def validate(self, token: str) -> SessionClaims:
        """Check a token's integrity and expiry and return its claims.

        Raises:
            InvalidSessionSignatureError: The token is forged, malformed or
                missing required claims.
            SessionExpiredError: The token is intact but past its expiry.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except JWTError as err:
            raise InvalidSessionSignatureError("Could not validate session token") from err

        identity = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not identity or not isinstance(identity, str):
            raise InvalidSessionSignatureError("Session token has no subject")
        if not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise InvalidSessionSignatureError("Session token has malformed timestamps")

        claims = SessionClaims(
            identity=identity,
            issued_at=datetime.fromtimestamp(issued_at, UTC),
            expires_at=datetime.fromtimestamp(expires_at, UTC),
        )
        if self._clock.now() > claims.expires_at:
            raise SessionExpiredError("Session token has expired")
        return claims

    def attach(self, jar: CredentialJar, session: IssuedSession) -> None:
        """Hand the token to the client; the cookie lives as long as the token."""
        remaining = (session.claims.expires_at - self._clock.now()).total_seconds()
        jar.set(
            self.cookie_name,
            session.token,
            max_age=max(0, math.floor(remaining)),
            httponly=True,
            samesite=self.SAMESITE,
            secure=self._cookie_secure,
        )

    def read(self, jar: CredentialJar) -> str | None:
        return jar.get(self.cookie_name) or None

    def clear(self, jar: CredentialJar) -> None:
        """Remove the cookie. The token itself stays valid until it expires."""
        jar.delete(
            self.cookie_name,
            httponly=True,
            samesite=self.SAMESITE,
            secure=self._cookie_secure,
        )
