"""Exception hierarchy for the wallet authentication core.

Component-level errors (nonce, message, verification, session) carry the
precise reason. ``AuthCore`` translates them into the two boundary errors,
``BadRequestError`` and ``UnauthorizedError``, before they reach the HTTP
layer.
"""

from __future__ import annotations


class WalletGateError(Exception):
    """Base class for every error raised by this package."""


# --- Nonce registry -------------------------------------------------------------


class NonceError(WalletGateError):
    """Raised when a nonce cannot be consumed."""


class NonceNotFoundError(NonceError):
    """No outstanding nonce exists for the identity."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"No nonce found for {identity}")
        self.identity = identity


class NonceExpiredError(NonceError):
    """The outstanding nonce passed its deadline before being consumed."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Nonce for {identity} has expired")
        self.identity = identity


# --- Sign-in messages ---------------------------------------------------------


class MalformedMessageError(WalletGateError):
    """The raw text is not a well-formed sign-in message."""


class VerificationError(WalletGateError):
    """A parsed sign-in message failed verification."""


class NonceMismatchError(VerificationError):
    """The message embeds a nonce other than the one issued."""


class SignatureMismatchError(VerificationError):
    """The signature does not recover to the claimed address."""


class DomainMismatchError(VerificationError):
    """The message was prepared for a different domain."""


class MessageExpiredError(VerificationError):
    """The message's own expiration time has passed."""


class MessageNotYetValidError(VerificationError):
    """The message's not-before time is still in the future."""


# --- Sessions -----------------------------------------------------------------


class SessionError(WalletGateError):
    """A session token could not be accepted."""


class InvalidSessionSignatureError(SessionError):
    """The token failed its integrity check or carries malformed claims."""


class SessionExpiredError(SessionError):
    """The token is intact but past its expiry."""


# --- Boundary -----------------------------------------------------------------


class AuthError(WalletGateError):
    """Errors surfaced to callers of ``AuthCore``."""


class BadRequestError(AuthError):
    """Malformed client input; retrying the same request cannot succeed."""


class UnauthorizedError(AuthError):
    """Authentication failed; the client must restart with a fresh nonce."""
