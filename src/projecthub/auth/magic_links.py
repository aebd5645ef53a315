"""Pending magic-link store.

Learn: A magic link is only honoured while its token sits in this store.
The signed JWT alone is not enough — removing the entry is what makes a
link single-use.

Two backends share one interface:
- InMemoryMagicLinkStore: dict + asyncio.Lock. Entries die with the
  process, which is fine for a short-lived, re-issuable credential.
  MagicLinkSweeper evicts entries nobody redeemed.
- RedisMagicLinkStore: one key per token with a native TTL, so several
  app instances can share pending links. GETDEL gives the atomic claim.

Expiry is always re-checked on read: an entry at or past its expiry is
treated as absent, sweep or no sweep.
"""

import asyncio
import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog
from fastapi import Request

from projecthub.db.redis_pool import get_redis

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingMagicLink:
    email: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class MagicLinkStore(ABC):
    """put / get / pop / sweep over pending magic links."""

    @abstractmethod
    async def put(self, token: str, email: str, expires_at: datetime) -> None:
        ...

    @abstractmethod
    async def get(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        """Return the live entry for `token`, or None if absent or expired."""

    @abstractmethod
    async def pop(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        """Atomically remove and return the live entry for `token`.

        Of two concurrent callers with the same token, at most one gets
        the entry back.
        """

    @abstractmethod
    async def sweep_expired(self, now: datetime) -> int:
        """Drop expired entries, returning how many were removed."""


class InMemoryMagicLinkStore(MagicLinkStore):
    def __init__(self):
        self._entries: dict[str, PendingMagicLink] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    async def put(self, token: str, email: str, expires_at: datetime) -> None:
        async with self._lock:
            self._entries[token] = PendingMagicLink(email=email, expires_at=expires_at)

    async def get(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        async with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[token]
                return None
            return entry

    async def pop(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        async with self._lock:
            entry = self._entries.pop(token, None)
            if entry is None or entry.is_expired(now):
                return None
            return entry

    async def sweep_expired(self, now: datetime) -> int:
        async with self._lock:
            expired = [t for t, e in self._entries.items() if e.is_expired(now)]
            for token in expired:
                del self._entries[token]
            return len(expired)


class RedisMagicLinkStore(MagicLinkStore):
    """Redis-backed store. Keys expire on their own via PX."""

    key_prefix = "projecthub:magic-link:"

    def _key(self, token: str) -> str:
        # Tokens are long JWTs; key on a digest instead
        return self.key_prefix + hashlib.sha256(token.encode()).hexdigest()

    @staticmethod
    def _decode(raw: Optional[str]) -> Optional[PendingMagicLink]:
        if raw is None:
            return None
        data = json.loads(raw)
        return PendingMagicLink(
            email=data["email"],
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )

    async def put(self, token: str, email: str, expires_at: datetime) -> None:
        ttl_ms = int((expires_at - utcnow()).total_seconds() * 1000)
        if ttl_ms <= 0:
            return
        value = json.dumps({"email": email, "expires_at": expires_at.isoformat()})
        await get_redis().set(self._key(token), value, px=ttl_ms)

    async def get(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        entry = self._decode(await get_redis().get(self._key(token)))
        if entry is None or entry.is_expired(now):
            return None
        return entry

    async def pop(self, token: str, now: datetime) -> Optional[PendingMagicLink]:
        entry = self._decode(await get_redis().getdel(self._key(token)))
        if entry is None or entry.is_expired(now):
            return None
        return entry

    async def sweep_expired(self, now: datetime) -> int:
        return 0


def build_magic_link_store(backend: str) -> MagicLinkStore:
    if backend == "redis":
        return RedisMagicLinkStore()
    return InMemoryMagicLinkStore()


def get_magic_link_store(request: Request) -> MagicLinkStore:
    """FastAPI dependency — the store attached to the app in create_app()."""
    return request.app.state.magic_link_store


class MagicLinkSweeper:
    """Background task that evicts expired, never-redeemed magic links.

    Usage:
        sweeper = MagicLinkSweeper(store)
        asyncio.create_task(sweeper.run_loop())
    """

    def __init__(
        self,
        store: MagicLinkStore,
        interval: float = 300.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.interval = interval
        self.clock = clock
        self._running = False

    async def run_loop(self) -> None:
        self._running = True
        logger.info("magic_link_sweeper.started", interval=self.interval)

        while self._running:
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("magic_link_sweeper.error")
            await asyncio.sleep(self.interval)

    async def sweep_once(self) -> int:
        removed = await self.store.sweep_expired(self.clock())
        if removed:
            logger.info("magic_link_sweeper.swept", removed=removed)
        return removed

    def stop(self) -> None:
        """Signal the sweeper to stop."""
        self._running = False
        logger.info("magic_link_sweeper.stopping")
