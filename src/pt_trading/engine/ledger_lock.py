"""Per-user in-process critical section around ledger mutation.

Orders from different users never contend; two orders from the same user run
one after the other. Cross-process serialization is the wallet row lock
(SELECT ... FOR UPDATE) taken inside the section.

A user's lock lives only while someone holds or waits for it, so the map
stays bounded by the number of users with orders in flight.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UserLedgerLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[user_id] -= 1
            if self._holders[user_id] == 0:
                del self._holders[user_id]
                del self._locks[user_id]
