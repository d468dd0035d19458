"""Sign-In with Ethereum (EIP-4361) message parsing and verification.

A sign-in message looks like::

    example.com wants you to sign in with your Ethereum account:
    0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2

    Sign in to play.

    URI: https://example.com/login
    Version: 1
    Chain ID: 1
    Nonce: 32891756e2d9a1c0
    Issued At: 2021-09-30T16:25:24Z

``parse_message`` turns that text into a ``SignInMessage``;
``SignInMessage.prepare`` rebuilds the exact text the wallet signed, and
``SignedMessageVerifier`` checks it against the nonce that was issued.
"""

from __future__ import annotations

import hmac
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from wallet_gate.core.clock import Clock, SystemClock
from wallet_gate.core.exceptions import (
    DomainMismatchError,
    MalformedMessageError,
    MessageExpiredError,
    MessageNotYetValidError,
    NonceMismatchError,
    SignatureMismatchError,
)
from wallet_gate.core.security import is_valid_address, recover_signer
from wallet_gate.services.nonces import normalize_identity

HEADER_SUFFIX: Final[str] = " wants you to sign in with your Ethereum account:"
SUPPORTED_VERSION: Final[str] = "1"

_HEADER_RE = re.compile(
    r"^(?:(?P<scheme>[a-zA-Z][a-zA-Z0-9+\-.]*)://)?(?P<domain>[^\s/?#]+)"
    + re.escape(HEADER_SUFFIX)
    + r"$"
)
_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_NONCE_RE = re.compile(r"^[a-zA-Z0-9]{8,}$")
_CHAIN_ID_RE = re.compile(r"^(0|[1-9][0-9]*)$")
_URI_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+\-.]*:\S+$")
_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})$"
)


def _parse_timestamp(name: str, value: str) -> datetime:
    # fromisoformat alone also takes basic and space-separated ISO 8601 forms
    if not _TIMESTAMP_RE.match(value):
        raise MalformedMessageError(f"{name} is not an RFC 3339 timestamp")
    try:
        return datetime.fromisoformat(value)
    except ValueError as err:
        raise MalformedMessageError(f"{name} is not an RFC 3339 timestamp") from err


@dataclass(frozen=True)
class SignInMessage:
    """A parsed EIP-4361 message.

    Timestamps are kept as the literal strings that were signed so that
    ``prepare`` reproduces the signed text byte for byte.
    """

    domain: str
    address: str
    uri: str
    version: str
    chain_id: int
    nonce: str
    issued_at: str
    statement: str | None = None
    scheme: str | None = None
    expiration_time: str | None = None
    not_before: str | None = None
    request_id: str | None = None
    resources: tuple[str, ...] = field(default_factory=tuple)

    @property
    def identity(self) -> str:
        """The claimed wallet identity, normalized."""
        return normalize_identity(self.address)

    @property
    def expiration_time_value(self) -> datetime | None:
        if self.expiration_time is None:
            return None
        return _parse_timestamp("Expiration Time", self.expiration_time)

    @property
    def not_before_value(self) -> datetime | None:
        if self.not_before is None:
            return None
        return _parse_timestamp("Not Before", self.not_before)

    def prepare(self) -> str:
        """Return the canonical text of this message, as signed by the wallet."""
        origin = f"{self.scheme}://{self.domain}" if self.scheme else self.domain
        lines = [f"{origin}{HEADER_SUFFIX}", self.address, ""]
        if self.statement is not None:
            lines.extend([self.statement, ""])
        else:
            lines.append("")
        lines.extend(
            [
                f"URI: {self.uri}",
                f"Version: {self.version}",
                f"Chain ID: {self.chain_id}",
                f"Nonce: {self.nonce}",
                f"Issued At: {self.issued_at}",
            ]
        )
        if self.expiration_time is not None:
            lines.append(f"Expiration Time: {self.expiration_time}")
        if self.not_before is not None:
            lines.append(f"Not Before: {self.not_before}")
        if self.request_id is not None:
            lines.append(f"Request ID: {self.request_id}")
        if self.resources:
            lines.append("Resources:")
            lines.extend(f"- {resource}" for resource in self.resources)
        return "\n".join(lines)


class _FieldReader:
    """Cursor over the ``Tag: value`` section of a message."""

    def __init__(self, lines: list[str], start: int) -> None:
        self._lines = lines
        self._index = start

    @property
    def exhausted(self) -> bool:
        return self._index >= len(self._lines)

    def required(self, tag: str) -> str:
        value = self.optional(tag)
        if value is None:
            raise MalformedMessageError(f"Missing required field: {tag}")
        return value

    def optional(self, tag: str) -> str | None:
        if self.exhausted:
            return None
        prefix = f"{tag}: "
        line = self._lines[self._index]
        if not line.startswith(prefix):
            return None
        self._index += 1
        value = line[len(prefix):]
        if not value:
            raise MalformedMessageError(f"Empty value for field: {tag}")
        return value

    def resources(self) -> tuple[str, ...]:
        if self.exhausted or self._lines[self._index] != "Resources:":
            return ()
        self._index += 1
        found: list[str] = []
        while not self.exhausted and self._lines[self._index].startswith("- "):
            resource = self._lines[self._index][2:]
            if not _URI_RE.match(resource):
                raise MalformedMessageError(f"Invalid resource URI: {resource!r}")
            found.append(resource)
            self._index += 1
        if not found:
            raise MalformedMessageError("Resources block must list at least one URI")
        return tuple(found)

    def remaining(self) -> list[str]:
        return self._lines[self._index:]


def parse_message(raw: str) -> SignInMessage:
    """Parse an EIP-4361 sign-in message.

    Raises:
        MalformedMessageError: If the text does not follow the message grammar.
    """
    if not isinstance(raw, str) or not raw:
        raise MalformedMessageError("Sign-in message must be a non-empty string")

    lines = raw.split("\n")
    if len(lines) < 4:
        raise MalformedMessageError("Sign-in message is truncated")

    header = _HEADER_RE.match(lines[0])
    if header is None:
        raise MalformedMessageError("Missing sign-in header line")

    address = lines[1]
    if not _ADDRESS_RE.match(address) or not is_valid_address(address):
        raise MalformedMessageError("Invalid Ethereum address")

    if lines[2] != "":
        raise MalformedMessageError("Expected a blank line after the address")

    statement: str | None = None
    if lines[3] == "":
        start = 4
    else:
        statement = lines[3]
        if len(lines) < 5 or lines[4] != "":
            raise MalformedMessageError("Expected a blank line after the statement")
        start = 5

    reader = _FieldReader(lines, start)
    uri = reader.required("URI")
    if not _URI_RE.match(uri):
        raise MalformedMessageError("Invalid URI")

    version = reader.required("Version")
    if version != SUPPORTED_VERSION:
        raise MalformedMessageError(f"Unsupported message version: {version}")

    chain_id = reader.required("Chain ID")
    if not _CHAIN_ID_RE.match(chain_id):
        raise MalformedMessageError("Chain ID must be an integer without leading zeros")

    nonce = reader.required("Nonce")
    if not _NONCE_RE.match(nonce):
        raise MalformedMessageError("Nonce must be at least 8 alphanumeric characters")

    issued_at = reader.required("Issued At")
    _parse_timestamp("Issued At", issued_at)

    expiration_time = reader.optional("Expiration Time")
    if expiration_time is not None:
        _parse_timestamp("Expiration Time", expiration_time)

    not_before = reader.optional("Not Before")
    if not_before is not None:
        _parse_timestamp("Not Before", not_before)

    request_id = reader.optional("Request ID")
    resources = reader.resources()

    if reader.remaining():
        raise MalformedMessageError("Unexpected content after message fields")

    return SignInMessage(
        domain=header.group("domain"),
        address=address,
        uri=uri,
        version=version,
        chain_id=int(chain_id),
        nonce=nonce,
        issued_at=issued_at,
        statement=statement,
        scheme=header.group("scheme"),
        expiration_time=expiration_time,
        not_before=not_before,
        request_id=request_id,
        resources=resources,
    )


SignerRecovery = Callable[[str, str], str]


class SignedMessageVerifier:
    """Checks a parsed message against the nonce issued for its identity."""

    def __init__(
        self,
        clock: Clock | None = None,
        expected_domain: str | None = None,
        recover: SignerRecovery = recover_signer,
    ) -> None:
        """Initialize the verifier.

        Args:
            clock: Time source for the message's own validity window.
            expected_domain: When set, messages for any other domain are rejected.
            recover: Wallet signature primitive returning the signer address.
        """
        self._clock = clock or SystemClock()
        self._expected_domain = expected_domain
        self._recover = recover

    def verify(self, message: SignInMessage, signature: str, expected_nonce: str) -> str:
        """Verify ``signature`` over ``message`` and return the signer identity.

        Args:
            message: Parsed sign-in message.
            signature: 0x-prefixed wallet signature over ``message.prepare()``.
            expected_nonce: Nonce consumed for the message's identity.

        Returns:
            The normalized identity recovered from the signature.

        Raises:
            NonceMismatchError: The embedded nonce is not the expected one.
            DomainMismatchError: The message targets another domain.
            MessageExpiredError: The message's expiration time has passed.
            MessageNotYetValidError: The message's not-before time is ahead.
            SignatureMismatchError: The signature does not match the address.
        """
        if not hmac.compare_digest(message.nonce.encode(), expected_nonce.encode()):
            raise NonceMismatchError("Message nonce does not match the issued nonce")

        if self._expected_domain is not None and message.domain != self._expected_domain:
            raise DomainMismatchError(f"Message was prepared for {message.domain}")

        now = self._clock.now()
        expiration = message.expiration_time_value
        if expiration is not None and now >= expiration:
            raise MessageExpiredError("Sign-in message has expired")
        not_before = message.not_before_value
        if not_before is not None and now < not_before:
            raise MessageNotYetValidError("Sign-in message is not yet valid")

        try:
            signer = self._recover(message.prepare(), signature)
        except ValueError as err:
            raise SignatureMismatchError(str(err)) from err

        if normalize_identity(signer) != message.identity:
            raise SignatureMismatchError("Signature does not match the claimed address")
        return message.identity
