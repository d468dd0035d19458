"""Single-use, expiring sign-in nonces keyed by wallet identity."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Final, Protocol

import redis

from wallet_gate.core.clock import Clock, SystemClock
from wallet_gate.core.exceptions import NonceExpiredError, NonceNotFoundError
from wallet_gate.core.settings import Settings, settings

NONCE_BYTES: Final[int] = 16
_REDIS_KEY_PREFIX: Final[str] = "nonce:"
_REDIS_GRACE_SECONDS: Final[int] = 300

logger = logging.getLogger(__name__)


def normalize_identity(identity: str) -> str:
    """Return the canonical map key for a wallet identity."""
    return identity.strip().lower()


def generate_nonce() -> str:
    """Generate an unguessable alphanumeric nonce (128 bits)."""
    return secrets.token_hex(NONCE_BYTES)


@dataclass(frozen=True)
class NonceEntry:
    """The outstanding nonce for one identity."""

    nonce: str
    expires_at: datetime


class NonceStore(Protocol):
    """Capability for issuing and consuming per-identity nonces."""

    def issue(self, identity: str) -> str: ...

    def consume(self, identity: str) -> str: ...

    def evict_expired(self) -> int: ...


class InMemoryNonceStore:
    """Process-local nonce registry.

    Every read-modify-write happens under one lock, so two concurrent
    consumes for the same identity can never both observe the entry.
    Expired entries are removed lazily on consume, or by ``evict_expired``.
    """

    def __init__(self, ttl: timedelta, clock: Clock | None = None) -> None:
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._entries: dict[str, NonceEntry] = {}
        self._lock = Lock()

    def issue(self, identity: str) -> str:
        """Store a fresh nonce for ``identity``, replacing any prior one."""
        key = normalize_identity(identity)
        nonce = generate_nonce()
        entry = NonceEntry(nonce=nonce, expires_at=self._clock.now() + self._ttl)
        with self._lock:
            self._entries[key] = entry
        return nonce

    def consume(self, identity: str) -> str:
        """Remove and return the outstanding nonce for ``identity``.

        Raises:
            NonceNotFoundError: No entry exists.
            NonceExpiredError: The entry passed its deadline; it is deleted.
        """
        key = normalize_identity(identity)
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None:
            raise NonceNotFoundError(key)
        if self._clock.now() > entry.expires_at:
            raise NonceExpiredError(key)
        return entry.nonce

    def evict_expired(self) -> int:
        """Drop every entry whose deadline has passed."""
        now = self._clock.now()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if now > entry.expires_at]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisNonceStore:
    """Nonce registry shared between worker processes through Redis.

    ``GETDEL`` makes consume atomic on the server. Keys outlive the nonce
    deadline by a grace period so late consumes still report expiry.
    """

    def __init__(
        self,
        client: redis.Redis,
        ttl: timedelta,
        clock: Clock | None = None,
    ) -> None:
        self._redis = client
        self._ttl = ttl
        self._clock = clock or SystemClock()

    @staticmethod
    def _key(identity: str) -> str:
        return f"{_REDIS_KEY_PREFIX}{normalize_identity(identity)}"

    def issue(self, identity: str) -> str:
        nonce = generate_nonce()
        expires_at = self._clock.now() + self._ttl
        payload = json.dumps({"nonce": nonce, "expires_at": expires_at.timestamp()})
        self._redis.set(
            self._key(identity),
            payload,
            ex=int(self._ttl.total_seconds()) + _REDIS_GRACE_SECONDS,
        )
        return nonce

    def consume(self, identity: str) -> str:
        key = normalize_identity(identity)
        raw = self._redis.getdel(self._key(identity))
        if raw is None:
            raise NonceNotFoundError(key)
        data = json.loads(raw)
        expires_at = datetime.fromtimestamp(float(data["expires_at"]), UTC)
        if self._clock.now() > expires_at:
            raise NonceExpiredError(key)
        return str(data["nonce"])

    def evict_expired(self) -> int:
        # Redis expires keys on its own once the grace period elapses.
        return 0


class NonceSweeper:
    """Periodically evicts expired nonces to keep the registry small."""

    def __init__(self, store: NonceStore, interval_seconds: float) -> None:
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background sweep loop."""
        if self.interval_seconds <= 0:
            return

        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    def sweep_once(self) -> int:
        evicted = self.store.evict_expired()
        if evicted:
            logger.debug("Evicted %d expired nonces", evicted)
        return evicted

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            if self._stopping.is_set():
                return
            try:
                self.sweep_once()
            except redis.RedisError as e:
                logger.warning("NonceSweeper encountered Redis error: %s", e)
            except Exception as e:
                logger.error("NonceSweeper failed to evict nonces: %s", e, exc_info=True)


def build_nonce_store(config: Settings | None = None, clock: Clock | None = None) -> NonceStore:
    """Create the nonce store selected by ``NONCE_BACKEND``."""
    config = config or settings
    if config.nonce_backend == "redis":
        client = redis.Redis.from_url(config.redis_url)
        logger.info("Using Redis nonce store at %s", config.redis_url)
        return RedisNonceStore(client, config.nonce_ttl, clock)
    return InMemoryNonceStore(config.nonce_ttl, clock)
