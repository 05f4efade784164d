# (c) Copyright Datacraft, 2026
"""Storage backend factory."""
import logging
from typing import TYPE_CHECKING

from .base import StorageBackend, StorageBackendType
from .router import StorageRouter

if TYPE_CHECKING:
	from docvault.core.config import Settings

logger = logging.getLogger(__name__)


def create_backend(backend_type: StorageBackendType, settings: "Settings") -> StorageBackend:
	"""Create storage backend from config."""
	if backend_type == StorageBackendType.LOCAL:
		from .local import LocalStorageBackend
		return LocalStorageBackend(
			base_path=settings.local_storage_path,
			prefix=settings.storage_prefix,
		)

	elif backend_type == StorageBackendType.S3:
		from .s3 import ObjectStorageBackend
		secret = settings.s3_secret_access_key
		return ObjectStorageBackend(
			bucket=settings.s3_bucket or "",
			access_key_id=settings.s3_access_key_id,
			secret_access_key=secret.get_secret_value() if secret else None,
			region=settings.s3_region,
			endpoint_url=settings.s3_endpoint_url,
			prefix=settings.storage_prefix,
		)

	else:
		raise ValueError(f"Unknown storage backend: {backend_type}")


def build_storage_router(settings: "Settings") -> StorageRouter:
	"""Build a router writing to the configured backend.

	The local backend is always registered so that refs written before a
	move to object storage stay resolvable. Object storage is registered
	whenever a bucket is configured.
	"""
	backends = [create_backend(StorageBackendType.LOCAL, settings)]
	if settings.s3_bucket:
		backends.append(create_backend(StorageBackendType.S3, settings))

	router = StorageRouter(
		backends,
		default=settings.storage_backend,
		timeout=settings.storage_timeout_seconds,
	)
	logger.info(f"Storage router ready, writing to {router.default.value}")
	return router
