# (c) Copyright Datacraft, 2026
"""Per-key asyncio locks.

Locks are process local. Entries are dropped once no coroutine holds or
waits on them, so the registry does not grow with the number of
documents ever touched.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class KeyedLocks:
	def __init__(self):
		self._locks: dict[str, asyncio.Lock] = {}
		self._holders: dict[str, int] = {}

	@asynccontextmanager
	async def hold(self, key: str) -> AsyncIterator[None]:
		lock = self._locks.setdefault(key, asyncio.Lock())
		self._holders[key] = self._holders.get(key, 0) + 1
		try:
			async with lock:
				yield
		finally:
			self._holders[key] -= 1
			if self._holders[key] == 0:
				del self._holders[key]
				del self._locks[key]

	def locked(self, key: str) -> bool:
		lock = self._locks.get(key)
		return lock is not None and lock.locked()

	def __len__(self) -> int:
		return len(self._locks)
