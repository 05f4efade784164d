# (c) Copyright Datacraft, 2026
"""Tests for the local filesystem backend."""
import pytest

from docvault.core.exceptions import StorageError
from docvault.core.storage import DeleteOutcome, ObjectNotFoundError
from docvault.core.storage.local import LocalStorageBackend


@pytest.fixture
def backend(tmp_path) -> LocalStorageBackend:
	return LocalStorageBackend(tmp_path / "blobs", prefix="tenant-a")


@pytest.mark.asyncio
async def test_put_get(backend, tmp_path):
	key = await backend.put("legal-case/CASE-1/2026/01/01/doc/v1_a.pdf", b"content")
	assert key == "legal-case/CASE-1/2026/01/01/doc/v1_a.pdf"
	assert await backend.get(key) == b"content"
	assert (tmp_path / "blobs" / "tenant-a" / key).read_bytes() == b"content"
	assert await backend.exists(key) is True


@pytest.mark.asyncio
async def test_get_missing(backend):
	with pytest.raises(ObjectNotFoundError) as exc_info:
		await backend.get("missing.pdf")
	assert exc_info.value.key == "missing.pdf"
	assert isinstance(exc_info.value, StorageError)


@pytest.mark.asyncio
async def test_delete_is_idempotent(backend):
	await backend.put("a/b.pdf", b"content")
	assert await backend.delete("a/b.pdf") == DeleteOutcome.DELETED
	assert await backend.delete("a/b.pdf") == DeleteOutcome.NOT_FOUND
	assert await backend.exists("a/b.pdf") is False


@pytest.mark.asyncio
async def test_key_cannot_escape_root(backend):
	with pytest.raises(StorageError):
		await backend.put("../../outside.pdf", b"content")
