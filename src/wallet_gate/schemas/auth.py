"""Authentication-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class NonceResponse(BaseModel):
    """Nonce to embed in the next sign-in message."""

    nonce: str = Field(..., description="Single-use nonce, valid for a short time")


class VerifyRequest(BaseModel):
    """Signed sign-in message submitted by the wallet."""

    message: str = Field(..., min_length=1, description="Raw EIP-4361 sign-in message")
    signature: str = Field(..., min_length=1, description="0x-prefixed hex signature from the wallet")


class VerifyResponse(BaseModel):
    """Response returned after a successful sign-in."""

    address: str = Field(..., description="Verified wallet address (lowercase)")


class SessionResponse(BaseModel):
    """Current session state; anonymous callers get ``authenticated=False``."""

    authenticated: bool = Field(..., description="True if a valid session cookie was sent")
    address: str | None = Field(None, description="Wallet address of the session")
    issued_at: datetime | None = Field(None, description="When the session was issued")
    expires_at: datetime | None = Field(None, description="When the session expires")


class MeResponse(BaseModel):
    """Authenticated principal."""

    address: str = Field(..., description="Wallet address of the session")
    issued_at: datetime = Field(..., description="When the session was issued")
    expires_at: datetime = Field(..., description="When the session expires")


class LogoutResponse(BaseModel):
    message: str = Field(..., description="Acknowledgement")
