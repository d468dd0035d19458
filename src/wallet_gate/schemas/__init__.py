# src/wallet_gate/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .auth import (
    LogoutResponse,
    MeResponse,
    NonceResponse,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)

__all__ = [
    "NonceResponse",
    "VerifyRequest", "VerifyResponse",
    "SessionResponse", "MeResponse",
    "LogoutResponse",
]
