# (c) Copyright Datacraft, 2026
"""Dispatch of storage refs to the backend that owns them.

A storage ref is ``"<scheme>://<key>"`` where the scheme is a
``StorageBackendType`` value. Versions written while another backend was
the default stay readable, since every ref names its own backend.
"""
import asyncio
import logging
from typing import Awaitable, TypeVar

from .base import DeleteOutcome, StorageBackend, StorageBackendType, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

REF_SEPARATOR = "://"


def make_ref(backend_type: StorageBackendType, key: str) -> str:
	return f"{backend_type.value}{REF_SEPARATOR}{key}"


def parse_ref(ref: str) -> tuple[StorageBackendType, str]:
	"""Split a storage ref into backend type and key."""
	scheme, sep, key = ref.partition(REF_SEPARATOR)
	if not sep or not key:
		raise StorageError(f"Malformed storage ref: {ref!r}")
	try:
		return StorageBackendType(scheme), key
	except ValueError:
		raise StorageError(f"Unknown storage backend in ref: {ref!r}") from None


class StorageRouter:
	"""Routes blob operations to local or object storage backends."""

	def __init__(
		self,
		backends: list[StorageBackend],
		default: StorageBackendType | None = None,
		timeout: float | None = 30.0,
	):
		if not backends:
			raise ValueError("At least one storage backend is required")

		self._backends: dict[StorageBackendType, StorageBackend] = {}
		for backend in backends:
			self.register(backend)

		self.default = default or backends[0].backend_type
		if self.default not in self._backends:
			raise ValueError(f"Default backend {self.default.value} is not registered")
		self.timeout = timeout

	def register(self, backend: StorageBackend) -> None:
		self._backends[backend.backend_type] = backend

	def backend(self, backend_type: StorageBackendType) -> StorageBackend:
		try:
			return self._backends[backend_type]
		except KeyError:
			raise StorageError(f"No storage backend registered for {backend_type.value}") from None

	def resolve(self, ref: str) -> tuple[StorageBackend, str]:
		backend_type, key = parse_ref(ref)
		return self.backend(backend_type), key

	async def _bounded(self, operation: Awaitable[T], description: str) -> T:
		try:
			return await asyncio.wait_for(operation, timeout=self.timeout)
		except asyncio.TimeoutError as e:
			logger.warning(f"Storage timeout after {self.timeout}s: {description}")
			raise StorageError(f"Timed out: {description}", e, retryable=True) from e

	async def write(
		self,
		key: str,
		data: bytes,
		content_type: str | None = None,
	) -> str:
		"""Write a blob to the default backend and return its ref."""
		backend = self.backend(self.default)
		stored_key = await self._bounded(
			backend.put(key, data, content_type=content_type),
			f"write {key}",
		)
		return make_ref(backend.backend_type, stored_key)

	async def read(self, ref: str) -> bytes:
		backend, key = self.resolve(ref)
		return await self._bounded(backend.get(key), f"read {ref}")

	async def delete(self, ref: str) -> DeleteOutcome:
		backend, key = self.resolve(ref)
		return await self._bounded(backend.delete(key), f"delete {ref}")

	async def exists(self, ref: str) -> bool:
		backend, key = self.resolve(ref)
		return await self._bounded(backend.exists(key), f"exists {ref}")
