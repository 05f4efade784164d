# (c) Copyright Datacraft, 2026
"""Tests for per-key asyncio locks."""
import asyncio

import pytest

from docvault.core.services.locks import KeyedLocks


@pytest.mark.asyncio
async def test_same_key_is_serialised():
	locks = KeyedLocks()
	events = []

	async def worker(name):
		async with locks.hold("doc"):
			events.append(f"{name}-in")
			await asyncio.sleep(0.01)
			events.append(f"{name}-out")

	await asyncio.gather(worker("a"), worker("b"))
	assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_different_keys_do_not_contend():
	locks = KeyedLocks()
	inside = asyncio.Event()

	async def holder():
		async with locks.hold("doc-1"):
			await inside.wait()

	task = asyncio.create_task(holder())
	await asyncio.sleep(0)
	async with locks.hold("doc-2"):
		assert locks.locked("doc-1")
		inside.set()
	await task


@pytest.mark.asyncio
async def test_released_locks_are_dropped():
	locks = KeyedLocks()
	async with locks.hold("doc"):
		assert len(locks) == 1
	assert len(locks) == 0
	assert not locks.locked("doc")


@pytest.mark.asyncio
async def test_lock_released_on_error():
	locks = KeyedLocks()
	with pytest.raises(RuntimeError):
		async with locks.hold("doc"):
			raise RuntimeError("boom")
	assert len(locks) == 0
