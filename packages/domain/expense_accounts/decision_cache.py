"""
Decision Cache - In-process memo of resolved transactions

Keyed by the normalized description and destination, so
"COMPRA EN STARBUCKS 1234" and "Compra en Starbucks 9876" share one entry:
- First occurrence: autocomplete + (maybe) AI call
- Repeats: cache hit, no search, no AI call

Entries are deep copies on the way in and on the way out; callers may
mutate the decisions they get without touching the cache. No eviction:
one entry per distinct merchant text for the life of the worker process.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import structlog

from packages.domain.expense_accounts.schemas import AccountDecision

logger = structlog.get_logger()


def build_cache_key(normalized_description: str, normalized_destination: str) -> str:
    return f"{normalized_description}::{normalized_destination}"


class DecisionCache:
    """Per-matcher decision store with per-key locks."""

    def __init__(self):
        self._entries: Dict[str, AccountDecision] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[AccountDecision]:
        cached = self._entries.get(key)
        if cached is None:
            return None
        return cached.model_copy(deep=True)

    def put(self, key: str, decision: AccountDecision) -> None:
        """Store a complete, validated decision."""
        self._entries[key] = decision.model_copy(deep=True)
        logger.debug("decision_cached",
                    key=key,
                    decision=decision.decision.value,
                    source=decision.account.source.value)

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        """
        Serialize resolution of one key across coroutines.

        A lock exists only while someone holds or waits on it, so no lock
        outlives the event loop it was used on.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def clear(self) -> None:
        self._entries.clear()
