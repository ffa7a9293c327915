"""Asyncio reader/writer lock.

Many readers may hold the lock at once; a writer holds it alone.  Writers
that are waiting block new readers so that a steady stream of read requests
cannot starve a session refresh or a login.  The lock is not re-entrant.

Usage::

    lock = ReadWriteLock()
    async with lock.read():
        ...
    async with lock.write():
        ...
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ReadWriteLock:
    def __init__(self) -> None:
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._waiters: deque[asyncio.Future] = deque()

    # ── State ──────────────────────────────────────────────────────

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def write_locked(self) -> bool:
        return self._writer

    def locked(self) -> bool:
        return self._writer or self._readers > 0

    # ── Scoped acquisition ─────────────────────────────────────────

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        await self._acquire(exclusive=False)
        try:
            yield
        finally:
            self._release(exclusive=False)

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        await self._acquire(exclusive=True)
        try:
            yield
        finally:
            self._release(exclusive=True)

    # ── Internals ──────────────────────────────────────────────────

    def _can_enter(self, exclusive: bool) -> bool:
        if exclusive:
            return not self._writer and self._readers == 0
        return not self._writer and self._writers_waiting == 0

    async def _acquire(self, exclusive: bool) -> None:
        if exclusive:
            self._writers_waiting += 1
        try:
            while not self._can_enter(exclusive):
                fut = asyncio.get_running_loop().create_future()
                self._waiters.append(fut)
                try:
                    await fut
                finally:
                    self._waiters.remove(fut)
        except BaseException:
            if exclusive:
                self._writers_waiting -= 1
                # readers parked behind this writer may now proceed
                self._wake_all()
            raise
        if exclusive:
            self._writers_waiting -= 1
            self._writer = True
        else:
            self._readers += 1

    def _release(self, exclusive: bool) -> None:
        if exclusive:
            self._writer = False
        else:
            self._readers -= 1
        self._wake_all()

    def _wake_all(self) -> None:
        # waiters re-check their own condition after waking
        for fut in self._waiters:
            if not fut.done():
                fut.set_result(None)
