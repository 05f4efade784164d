# (c) Copyright Datacraft, 2026
"""S3-compatible object storage backend (AWS S3, Linode, Cloudflare R2)."""

from typing import TYPE_CHECKING

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .base import (
	DeleteOutcome,
	ObjectNotFoundError,
	StorageBackend,
	StorageBackendType,
	StorageError,
)

if TYPE_CHECKING:
	from types_aiobotocore_s3 import S3Client


NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
RETRYABLE_CODES = {
	"500",
	"503",
	"InternalError",
	"RequestTimeout",
	"ServiceUnavailable",
	"SlowDown",
	"Throttling",
}


def _error_code(error: ClientError) -> str:
	return str(error.response.get("Error", {}).get("Code", ""))


def _is_not_found(error: Exception) -> bool:
	return isinstance(error, ClientError) and _error_code(error) in NOT_FOUND_CODES


def _is_retryable(error: Exception) -> bool:
	if isinstance(error, ClientError):
		return _error_code(error) in RETRYABLE_CODES
	# Connection and timeout failures from botocore itself
	return isinstance(error, BotoCoreError)


class ObjectStorageBackend(StorageBackend):
	"""Object storage backend using the S3 API."""

	backend_type = StorageBackendType.S3

	def __init__(
		self,
		bucket: str,
		access_key_id: str | None = None,
		secret_access_key: str | None = None,
		region: str = "us-east-1",
		endpoint_url: str | None = None,
		prefix: str = "",
		session: aioboto3.Session | None = None,
	):
		"""Initialize object storage backend.

		Args:
			bucket: Bucket name
			access_key_id: Access key
			secret_access_key: Secret key
			region: Region name
			endpoint_url: Custom endpoint for S3-compatible providers
			prefix: Optional key prefix for all operations
			session: Pre-built aioboto3 session
		"""
		if not bucket:
			raise ValueError("Object storage requires a bucket name")

		self.bucket = bucket
		self.prefix = prefix.strip("/")

		self._session = session or aioboto3.Session(
			aws_access_key_id=access_key_id,
			aws_secret_access_key=secret_access_key,
			region_name=region,
		)
		self._endpoint_url = endpoint_url
		self._config = Config(
			signature_version="s3v4",
			retries={"max_attempts": 3, "mode": "adaptive"},
		)

	def _full_key(self, key: str) -> str:
		"""Get full key with prefix."""
		if self.prefix:
			return f"{self.prefix}/{key.lstrip('/')}"
		return key.lstrip("/")

	async def _get_client(self) -> "S3Client":
		"""Get S3 client from context manager."""
		return self._session.client(
			"s3",
			endpoint_url=self._endpoint_url,
			config=self._config,
		)

	async def put(
		self,
		key: str,
		data: bytes,
		content_type: str | None = None,
	) -> str:
		params: dict = {
			"Bucket": self.bucket,
			"Key": self._full_key(key),
			"Body": data,
		}
		if content_type:
			params["ContentType"] = content_type

		try:
			async with await self._get_client() as client:
				await client.put_object(**params)
			return key
		except Exception as e:
			raise StorageError(f"Failed to upload {key}", e, retryable=_is_retryable(e)) from e

	async def get(self, key: str) -> bytes:
		try:
			async with await self._get_client() as client:
				response = await client.get_object(Bucket=self.bucket, Key=self._full_key(key))
				async with response["Body"] as stream:
					return await stream.read()
		except Exception as e:
			if _is_not_found(e):
				raise ObjectNotFoundError(key) from e
			raise StorageError(f"Failed to get {key}", e, retryable=_is_retryable(e)) from e

	async def delete(self, key: str) -> DeleteOutcome:
		full_key = self._full_key(key)

		try:
			async with await self._get_client() as client:
				# S3 deletes are silent on missing keys, so check for the key first
				try:
					await client.head_object(Bucket=self.bucket, Key=full_key)
				except ClientError as e:
					if _is_not_found(e):
						return DeleteOutcome.NOT_FOUND
					raise
				await client.delete_object(Bucket=self.bucket, Key=full_key)
		except Exception as e:
			raise StorageError(f"Failed to delete {key}", e, retryable=_is_retryable(e)) from e
		return DeleteOutcome.DELETED

	async def exists(self, key: str) -> bool:
		try:
			async with await self._get_client() as client:
				await client.head_object(Bucket=self.bucket, Key=self._full_key(key))
				return True
		except Exception as e:
			if _is_not_found(e):
				return False
			raise StorageError(f"Failed to head {key}", e, retryable=_is_retryable(e)) from e
