"""In-memory storage backend

Gives the repositories the same transactional contract as the SQL backend
inside a single process:

- InMemoryStore holds the tables (plain dicts) and a keyed table of
  asyncio locks shared by every session; a key's lock is dropped once
  nobody holds or waits on it.
- InMemorySession is one transaction: row locks it acquires are held until
  commit or rollback, and every mutation is journaled so rollback (or a
  rollback to a savepoint mark) restores the previous state.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, Hashable, List, Set
from src.domain.listing import Listing

logger = logging.getLogger(__name__)

_MISSING = object()


class InMemoryStore:
    def __init__(self):
        self.accounts: Dict[str, Any] = {}
        self.entries: Dict[int, Any] = {}
        self.entry_keys: Dict[tuple, int] = {}
        self.unlocks: Dict[str, Any] = {}
        self.unlock_keys: Dict[tuple, str] = {}
        self.unlock_events: Dict[int, Any] = {}
        self.listings: Dict[str, Listing] = {}
        self.idempotency: Dict[tuple, Any] = {}
        self.orders: Dict[str, Any] = {}
        self.order_keys: Dict[tuple, str] = {}
        self.order_provider_ids: Dict[tuple, str] = {}
        self.webhook_events: Dict[int, Any] = {}
        self.webhook_event_keys: Dict[tuple, int] = {}
        self.outbound_events: Dict[int, Any] = {}
        self.outbound_dedupe_keys: Dict[str, int] = {}
        self._sequences: Dict[str, int] = defaultdict(int)
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._lock_users: Dict[Hashable, int] = defaultdict(int)

    def next_id(self, table: str) -> int:
        self._sequences[table] += 1
        return self._sequences[table]

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._lock_users[key] += 1
        return lock

    def _forget(self, key: Hashable) -> None:
        """Drop a key's lock once nobody holds or waits on it"""
        self._lock_users[key] -= 1
        if self._lock_users[key] == 0:
            del self._lock_users[key]
            del self._locks[key]

    async def acquire(self, key: Hashable) -> None:
        lock = self._lock_for(key)
        try:
            await lock.acquire()
        except BaseException:
            self._forget(key)
            raise

    async def try_acquire(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        if lock is not None and lock.locked():
            return False
        await self.acquire(key)
        return True

    def release(self, key: Hashable) -> None:
        self._locks[key].release()
        self._forget(key)

    def add_listing(self, listing: Listing) -> Listing:
        """Seed the listing read model (owned by the listings service)"""
        self.listings[listing.id] = listing
        return listing


class InMemorySession:
    """One transaction against an InMemoryStore"""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self._held: Set[Hashable] = set()
        self._journal: List[Callable[[], None]] = []

    async def lock(self, key: Hashable) -> None:
        """Block until the row lock is ours; re-entrant within the session"""
        if key in self._held:
            return
        await self.store.acquire(key)
        self._held.add(key)

    async def try_lock(self, key: Hashable) -> bool:
        """Take the row lock only if nobody holds it (SKIP LOCKED)"""
        if key in self._held:
            return True
        if not await self.store.try_acquire(key):
            return False
        self._held.add(key)
        return True

    def put(self, table: Dict, key: Hashable, value: Any) -> None:
        previous = table.get(key, _MISSING)
        table[key] = value
        self._journal.append(lambda: self._restore(table, key, previous))

    def delete(self, table: Dict, key: Hashable) -> None:
        previous = table.pop(key, _MISSING)
        self._journal.append(lambda: self._restore(table, key, previous))

    def update(self, entity: Any, **changes: Any) -> None:
        previous = {name: getattr(entity, name) for name in changes}
        for name, value in changes.items():
            setattr(entity, name, value)

        def undo():
            for name, value in previous.items():
                setattr(entity, name, value)

        self._journal.append(undo)

    @staticmethod
    def _restore(table: Dict, key: Hashable, previous: Any) -> None:
        if previous is _MISSING:
            table.pop(key, None)
        else:
            table[key] = previous

    def mark(self) -> int:
        return len(self._journal)

    def rollback_to(self, mark: int) -> None:
        while len(self._journal) > mark:
            self._journal.pop()()

    def _release(self) -> None:
        for key in self._held:
            self.store.release(key)
        self._held.clear()

    async def commit(self) -> None:
        self._journal.clear()
        self._release()

    async def rollback(self) -> None:
        if self._journal:
            logger.debug(f"Rolling back {len(self._journal)} in-memory changes")
        self.rollback_to(0)
        self._release()

    async def close(self) -> None:
        await self.rollback()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
