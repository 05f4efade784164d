# (c) Copyright Datacraft, 2026
"""Blob storage on the local filesystem."""

import logging
import secrets
from pathlib import Path

import aiofiles
import aiofiles.os

from .base import (
	DeleteOutcome,
	ObjectNotFoundError,
	StorageBackend,
	StorageBackendType,
	StorageError,
)

logger = logging.getLogger(__name__)


class LocalStorageBackend(StorageBackend):
	"""Stores each blob as a file below ``base_path``.

	Blobs are written to a temporary sibling first and moved into place,
	so a reader never sees a partially written version.
	"""

	backend_type = StorageBackendType.LOCAL

	def __init__(self, base_path: str | Path, prefix: str = ""):
		self.base_path = Path(base_path)
		self.prefix = prefix.strip("/")
		self.root = (self.base_path / self.prefix) if self.prefix else self.base_path
		self.root.mkdir(parents=True, exist_ok=True)
		self._resolved_root = self.root.resolve()

	def _path_for(self, key: str) -> Path:
		path = self.root / key.lstrip("/")
		if not path.resolve().is_relative_to(self._resolved_root):
			raise StorageError(f"Key escapes storage root: {key}")
		return path

	async def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
		path = self._path_for(key)
		tmp_path = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
		try:
			await aiofiles.os.makedirs(path.parent, exist_ok=True)
			async with aiofiles.open(tmp_path, "wb") as f:
				await f.write(data)
			await aiofiles.os.replace(tmp_path, path)
		except OSError as e:
			if tmp_path.exists():
				tmp_path.unlink()
			raise StorageError(f"Failed to write {key}", e) from e

		logger.debug(f"Stored {len(data)} bytes at {path}")
		return key

	async def get(self, key: str) -> bytes:
		path = self._path_for(key)
		try:
			async with aiofiles.open(path, "rb") as f:
				return await f.read()
		except FileNotFoundError:
			raise ObjectNotFoundError(key) from None
		except OSError as e:
			raise StorageError(f"Failed to read {key}", e) from e

	async def delete(self, key: str) -> DeleteOutcome:
		path = self._path_for(key)
		try:
			await aiofiles.os.remove(path)
		except FileNotFoundError:
			return DeleteOutcome.NOT_FOUND
		except OSError as e:
			raise StorageError(f"Failed to delete {key}", e) from e
		return DeleteOutcome.DELETED

	async def exists(self, key: str) -> bool:
		return await aiofiles.os.path.isfile(self._path_for(key))
