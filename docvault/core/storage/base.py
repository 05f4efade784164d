# (c) Copyright Datacraft, 2026
"""Blob store contract shared by every storage backend.

Backends see only opaque keys and bytes. Encryption, hashing and version
bookkeeping happen before a blob reaches them.
"""

from abc import ABC, abstractmethod
from enum import Enum

from docvault.core.exceptions import StorageError


class StorageBackendType(str, Enum):
	"""Where a blob lives. The value is also the scheme of its storage ref."""
	LOCAL = "local"
	S3 = "s3"


class DeleteOutcome(str, Enum):
	DELETED = "deleted"
	NOT_FOUND = "not_found"


class ObjectNotFoundError(StorageError):
	"""No blob is stored under the key."""

	def __init__(self, key: str):
		self.key = key
		super().__init__(f"Object not found: {key}")


class StorageBackend(ABC):
	"""Key/value blob store for version content."""

	backend_type: StorageBackendType

	@abstractmethod
	async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
		"""Store ``data`` under ``key``, replacing any previous blob.

		Returns the key the blob can be read back with.
		"""

	@abstractmethod
	async def get(self, key: str) -> bytes:
		"""Return the blob, raising ``ObjectNotFoundError`` when absent."""

	@abstractmethod
	async def delete(self, key: str) -> DeleteOutcome:
		"""Remove the blob. A missing blob is ``NOT_FOUND``, not an error."""

	@abstractmethod
	async def exists(self, key: str) -> bool:
		...
