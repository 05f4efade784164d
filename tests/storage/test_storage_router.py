# (c) Copyright Datacraft, 2026
"""Tests for storage ref routing and the backend factory."""
import asyncio

import pytest

from docvault.core.exceptions import StorageError
from docvault.core.storage import (
	DeleteOutcome,
	StorageBackendType,
	StorageRouter,
	make_ref,
	parse_ref,
)
from docvault.core.storage.factory import build_storage_router
from docvault.core.storage.local import LocalStorageBackend
from docvault.core.storage.s3 import ObjectStorageBackend


def test_ref_round_trip():
	ref = make_ref(StorageBackendType.S3, "legal-case/CASE-1/v1.pdf")
	assert ref == "s3://legal-case/CASE-1/v1.pdf"
	assert parse_ref(ref) == (StorageBackendType.S3, "legal-case/CASE-1/v1.pdf")


@pytest.mark.parametrize("ref", ["no-scheme", "local://", "ftp://a/b.pdf"])
def test_malformed_refs(ref):
	with pytest.raises(StorageError):
		parse_ref(ref)


@pytest.mark.asyncio
async def test_write_goes_to_default_backend(storage, object_backend):
	ref = await storage.write("a/b.pdf", b"local bytes")
	assert ref == "local://a/b.pdf"
	assert await storage.read(ref) == b"local bytes"

	storage.default = StorageBackendType.S3
	ref = await storage.write("a/c.pdf", b"remote bytes")
	assert ref == "s3://a/c.pdf"
	assert object_backend.objects["a/c.pdf"] == b"remote bytes"


@pytest.mark.asyncio
async def test_reads_follow_ref_scheme_after_default_moves(storage):
	local_ref = await storage.write("a/b.pdf", b"old")
	storage.default = StorageBackendType.S3
	await storage.write("a/b.pdf", b"new")

	assert await storage.read(local_ref) == b"old"
	assert await storage.read("s3://a/b.pdf") == b"new"


@pytest.mark.asyncio
async def test_delete_missing_reports_not_found(storage):
	ref = await storage.write("a/b.pdf", b"data")
	assert await storage.delete(ref) == DeleteOutcome.DELETED
	assert await storage.delete(ref) == DeleteOutcome.NOT_FOUND
	assert await storage.exists(ref) is False


@pytest.mark.asyncio
async def test_unregistered_backend(local_backend):
	router = StorageRouter([local_backend])
	with pytest.raises(StorageError):
		await router.read("s3://a/b.pdf")


def test_default_must_be_registered(local_backend):
	with pytest.raises(ValueError):
		StorageRouter([local_backend], default=StorageBackendType.S3)


@pytest.mark.asyncio
async def test_timeout_is_retryable_storage_error(local_backend, object_backend):
	async def slow_get(key):
		await asyncio.sleep(1)
		return b""

	object_backend.get = slow_get
	router = StorageRouter([local_backend, object_backend], timeout=0.01)
	with pytest.raises(StorageError) as exc_info:
		await router.read("s3://a/b.pdf")
	assert exc_info.value.retryable is True


def test_factory_registers_local_only_without_bucket(settings):
	router = build_storage_router(settings)
	assert router.default == StorageBackendType.LOCAL
	assert isinstance(router.backend(StorageBackendType.LOCAL), LocalStorageBackend)
	with pytest.raises(StorageError):
		router.backend(StorageBackendType.S3)


def test_factory_with_object_storage(settings):
	settings = settings.model_copy(update={
		"storage_backend": StorageBackendType.S3,
		"s3_bucket": "legal-docs",
		"s3_endpoint_url": "https://eu-central-1.linodeobjects.com",
	})
	router = build_storage_router(settings)
	assert router.default == StorageBackendType.S3
	backend = router.backend(StorageBackendType.S3)
	assert isinstance(backend, ObjectStorageBackend)
	assert backend.bucket == "legal-docs"
	assert isinstance(router.backend(StorageBackendType.LOCAL), LocalStorageBackend)
