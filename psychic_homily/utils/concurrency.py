"""Keyed advisory locks for serializing critical sections.

Duplicate-show detection is a read-then-write race: two requests can both
see "no show for this headliner at this venue tonight" and both insert.
``AdvisoryLockRegistry`` hands out one ``asyncio.Lock`` per key so those
requests queue up behind each other inside a single process.  The SQLite
provider additionally opens its write transaction with ``BEGIN IMMEDIATE``,
which takes the database write lock across processes.

Keys are arbitrary hashables; the show service uses
``(normalized venue name, "YYYY-MM-DD")``.  Entries are reference counted
and removed once no task holds or waits on them, so the registry does not
grow with the number of distinct venues and dates ever seen.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, Iterable

import structlog

from psychic_homily.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class AdvisoryLockRegistry:
    """Registry of named ``asyncio.Lock`` objects."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._refcounts: dict[Hashable, int] = {}

    def _acquire_entry(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._refcounts[key] = self._refcounts.get(key, 0) + 1
        return lock

    def _release_entry(self, key: Hashable) -> None:
        remaining = self._refcounts.get(key, 1) - 1
        if remaining <= 0:
            self._refcounts.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._refcounts[key] = remaining

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for *key* for the duration of the ``async with`` block."""
        lock = self._acquire_entry(key)
        try:
            async with lock:
                _logger.debug("advisory_lock_acquired", key=str(key))
                yield
        finally:
            self._release_entry(key)

    @asynccontextmanager
    async def hold_many(self, keys: Iterable[Hashable]) -> AsyncIterator[None]:
        """Hold several locks at once.

        Keys are de-duplicated and acquired in sorted order so two callers
        locking overlapping key sets cannot deadlock.
        """
        ordered = sorted(set(keys), key=repr)
        acquired: list[tuple[Hashable, asyncio.Lock]] = []
        try:
            for key in ordered:
                lock = self._acquire_entry(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._release_entry(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._release_entry(key)

    def active_keys(self) -> list[Hashable]:
        """Keys currently held or awaited."""
        return list(self._locks)
