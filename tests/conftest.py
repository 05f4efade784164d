# (c) Copyright Datacraft, 2026
"""Shared fixtures: SQLite database, local and in-memory storage, actors."""
import pytest
from sqlalchemy import select

from docvault.core.config import Settings
from docvault.core.db.engine import create_engine, create_session_factory, init_db
from docvault.core.exceptions import StorageError
from docvault.core.features.audit.db.orm import AccessLogEntry
from docvault.core.features.documents.repository import DocumentRepository
from docvault.core.features.documents.schema import Actor, DocumentUploadRequest
from docvault.core.services.encryption import CryptoEngine
from docvault.core.storage import (
	DeleteOutcome,
	ObjectNotFoundError,
	StorageBackend,
	StorageBackendType,
	StorageRouter,
)
from docvault.core.storage.local import LocalStorageBackend
from docvault.core.types import DocumentType, LinkedEntityType


class MemoryObjectStorage(StorageBackend):
	"""Object storage double keeping blobs in a dict."""

	backend_type = StorageBackendType.S3

	def __init__(self):
		self.objects: dict[str, bytes] = {}
		self.failing_deletes: set[str] = set()
		self.fail_puts = False

	async def put(self, key, data, content_type=None):
		if self.fail_puts:
			raise StorageError(f"Failed to upload {key}", retryable=True)
		self.objects[key] = data
		return key

	async def get(self, key):
		if key not in self.objects:
			raise ObjectNotFoundError(key)
		return self.objects[key]

	async def delete(self, key):
		if key in self.failing_deletes:
			raise StorageError(f"Failed to delete {key}")
		if self.objects.pop(key, None) is None:
			return DeleteOutcome.NOT_FOUND
		return DeleteOutcome.DELETED

	async def exists(self, key):
		return key in self.objects


@pytest.fixture
def settings(tmp_path) -> Settings:
	return Settings(
		_env_file=None,
		db_url=f"sqlite+aiosqlite:///{tmp_path / 'docvault.db'}",
		log_config=None,
		local_storage_path=tmp_path / "storage",
		encryption_key="test-master-secret",
		kdf_iterations=1_000,
	)


@pytest.fixture
async def engine(settings):
	engine = create_engine(settings)
	await init_db(engine)
	yield engine
	await engine.dispose()


@pytest.fixture
def session_factory(engine):
	return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory):
	async with session_factory() as session:
		yield session


@pytest.fixture
def local_backend(settings) -> LocalStorageBackend:
	return LocalStorageBackend(settings.local_storage_path)


@pytest.fixture
def object_backend() -> MemoryObjectStorage:
	return MemoryObjectStorage()


@pytest.fixture
def storage(local_backend, object_backend) -> StorageRouter:
	return StorageRouter(
		[local_backend, object_backend],
		default=StorageBackendType.LOCAL,
		timeout=5,
	)


@pytest.fixture
def crypto(settings) -> CryptoEngine:
	return CryptoEngine.from_settings(settings)


@pytest.fixture
def repository(session_factory, storage, crypto, settings) -> DocumentRepository:
	return DocumentRepository(session_factory, storage, crypto, settings)


@pytest.fixture
def legal_officer() -> Actor:
	return Actor(
		user_id="officer-1",
		roles=["Legal Officer"],
		ip_address="10.0.0.1",
		user_agent="pytest",
	)


@pytest.fixture
def admin() -> Actor:
	return Actor(user_id="admin-1", roles=["Admin"])


@pytest.fixture
def field_agent() -> Actor:
	"""Actor outside the privileged role set."""
	return Actor(user_id="agent-1", roles=["Field Agent"])


@pytest.fixture
def make_upload_request():
	"""Factory for upload requests with sensible defaults."""
	def _make_upload_request(**kwargs) -> DocumentUploadRequest:
		data = {
			"linked_entity_type": LinkedEntityType.CASE,
			"linked_entity_id": "CASE-001",
			"document_name": "Demand notice",
			"document_type": DocumentType.LEGAL_NOTICE,
			"file_format": "application/pdf",
			"original_file_name": "demand notice.pdf",
		}
		data.update(kwargs)
		return DocumentUploadRequest(**data)

	return _make_upload_request


@pytest.fixture
def access_log(session_factory):
	"""Fetch access log entries, optionally of one document, oldest first."""
	async def _access_log(document_id: str | None = None) -> list[AccessLogEntry]:
		stmt = select(AccessLogEntry).order_by(AccessLogEntry.id)
		if document_id is not None:
			stmt = stmt.where(AccessLogEntry.document_id == document_id)
		async with session_factory() as session:
			result = await session.execute(stmt)
			return list(result.scalars().all())

	return _access_log
