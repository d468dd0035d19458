"""Shared API dependencies for authentication."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status

from wallet_gate.services.auth import AuthCore, get_auth_core
from wallet_gate.services.sessions import CookieJar, SessionClaims


def get_auth_core_dep() -> AuthCore:
    return get_auth_core()


AuthCoreDep = Annotated[AuthCore, Depends(get_auth_core_dep)]


def get_cookie_jar(request: Request, response: Response) -> CookieJar:
    """Bind the session cookie to the current request/response pair."""
    return CookieJar(request, response)


CookieJarDep = Annotated[CookieJar, Depends(get_cookie_jar)]


def get_optional_session(auth: AuthCoreDep, jar: CookieJarDep) -> SessionClaims | None:
    """Return the caller's session, or None when anonymous."""
    return auth.current_session(auth.sessions.read(jar))


OptionalSessionDep = Annotated[SessionClaims | None, Depends(get_optional_session)]


def get_current_session(session: OptionalSessionDep) -> SessionClaims:
    """Require a valid session.

    Raises:
        HTTPException: If no valid session cookie was presented.
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return session


CurrentSessionDep = Annotated[SessionClaims, Depends(get_current_session)]
