"""Wallet sign-in orchestration.

``AuthCore`` composes the nonce registry, the sign-in message verifier and
the session issuer into the two user-facing flows: requesting a nonce and
verifying a signed message to establish a session.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from wallet_gate.core.clock import Clock
from wallet_gate.core.exceptions import (
    BadRequestError,
    MalformedMessageError,
    NonceError,
    SessionError,
    UnauthorizedError,
    VerificationError,
)
from wallet_gate.core.settings import Settings, settings
from wallet_gate.services.nonces import NonceStore, build_nonce_store, normalize_identity
from wallet_gate.services.sessions import (
    CredentialJar,
    IssuedSession,
    SessionClaims,
    SessionIssuer,
)
from wallet_gate.services.siwe import SignedMessageVerifier, parse_message

UNAUTHORIZED_DETAIL = "Authentication failed. Request a new nonce."

logger = logging.getLogger(__name__)


class LoginState(enum.Enum):
    """Lifecycle of a single login attempt."""

    UNAUTHENTICATED = "unauthenticated"
    NONCE_ISSUED = "nonce_issued"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful ``verify_and_establish`` call."""

    identity: str
    session: IssuedSession
    state: LoginState = LoginState.AUTHENTICATED


class AuthCore:
    """Entry point for the four wallet authentication operations."""

    def __init__(
        self,
        nonce_store: NonceStore,
        verifier: SignedMessageVerifier,
        sessions: SessionIssuer,
        anonymous_identity: str = "anonymous",
    ) -> None:
        self.nonce_store = nonce_store
        self.verifier = verifier
        self.sessions = sessions
        self.anonymous_identity = anonymous_identity

    @classmethod
    def from_settings(cls, config: Settings | None = None, clock: Clock | None = None) -> AuthCore:
        """Wire the default collaborators from configuration."""
        config = config or settings
        return cls(
            nonce_store=build_nonce_store(config, clock),
            verifier=SignedMessageVerifier(clock=clock, expected_domain=config.siwe_domain),
            sessions=SessionIssuer.from_settings(config, clock),
            anonymous_identity=config.anonymous_identity,
        )

    def request_nonce(self, identity: str | None = None) -> str:
        """Issue a nonce for ``identity``.

        An empty or absent identity falls back to the shared anonymous slot,
        so unrelated anonymous callers overwrite each other's nonce.
        """
        key = normalize_identity(identity or "") or self.anonymous_identity
        nonce = self.nonce_store.issue(key)
        logger.debug("Login %s: %s", LoginState.NONCE_ISSUED.value, key)
        return nonce

    def verify_and_establish(
        self,
        raw_message: str,
        signature: str,
        jar: CredentialJar,
    ) -> LoginResult:
        """Verify a signed sign-in message and attach a session to ``jar``.

        Raises:
            BadRequestError: The message is malformed; no nonce was consumed.
            UnauthorizedError: The nonce is missing or expired, or the
                signature check failed. The nonce is consumed either way.
        """
        try:
            message = parse_message(raw_message)
        except MalformedMessageError as err:
            logger.warning("Login %s: malformed message (%s)", LoginState.REJECTED.value, err)
            raise BadRequestError(f"Invalid sign-in message: {err}") from err

        identity = message.identity
        try:
            expected_nonce = self.nonce_store.consume(identity)
        except NonceError as err:
            logger.warning("Login %s for %s: %s", LoginState.REJECTED.value, identity, err)
            raise UnauthorizedError(UNAUTHORIZED_DETAIL) from err

        logger.debug("Login %s: %s", LoginState.VERIFYING.value, identity)
        try:
            verified = self.verifier.verify(message, signature, expected_nonce)
        except VerificationError as err:
            logger.warning(
                "Login %s for %s: %s (%s)",
                LoginState.REJECTED.value,
                identity,
                type(err).__name__,
                err,
            )
            raise UnauthorizedError(UNAUTHORIZED_DETAIL) from err

        session = self.sessions.mint(verified)
        self.sessions.attach(jar, session)
        logger.info("Login %s: %s", LoginState.AUTHENTICATED.value, verified)
        return LoginResult(identity=verified, session=session)

    def current_session(self, token: str | None) -> SessionClaims | None:
        """Return the claims of a valid token, or None for anonymous callers."""
        if not token:
            return None
        try:
            return self.sessions.validate(token)
        except SessionError as err:
            logger.debug("Ignoring session token: %s", err)
            return None

    def end_session(self, jar: CredentialJar) -> None:
        """Drop the session credential. Safe to call without a session."""
        self.sessions.clear(jar)
        logger.info("Session cleared")


class _AuthCoreSingleton:
    """Singleton wrapper for the process-wide AuthCore."""

    _instance: AuthCore | None = None

    @classmethod
    def get_instance(cls) -> AuthCore:
        """Get or create the singleton AuthCore instance."""
        if cls._instance is None:
            cls._instance = AuthCore.from_settings()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_auth_core() -> AuthCore:
    """Return the AuthCore shared by every request in this process."""
    return _AuthCoreSingleton.get_instance()
