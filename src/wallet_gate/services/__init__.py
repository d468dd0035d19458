# src/wallet_gate/services/__init__.py
"""Business logic services for wallet authentication."""

from .auth import AuthCore, LoginResult, LoginState
from .nonces import InMemoryNonceStore, NonceStore, NonceSweeper, RedisNonceStore
from .sessions import CookieJar, CredentialJar, SessionClaims, SessionIssuer
from .siwe import SignedMessageVerifier, SignInMessage, parse_message

__all__ = [
    "AuthCore",
    "LoginResult",
    "LoginState",
    "NonceStore",
    "InMemoryNonceStore",
    "RedisNonceStore",
    "NonceSweeper",
    "CookieJar",
    "CredentialJar",
    "SessionClaims",
    "SessionIssuer",
    "SignInMessage",
    "SignedMessageVerifier",
    "parse_message",
]
