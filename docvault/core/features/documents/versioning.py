# (c) Copyright Datacraft, 2026
"""Version control for document content.

Versions form the contiguous sequence ``1..current_version_number`` and
are never rewritten. Creating a version happens inside a per-document
exclusive section which is held until the transaction commits; within it
the document row is re-read (``FOR UPDATE`` where the database supports
it) and an optional ``expected_version`` is checked. The composite
primary key and the partial unique index on the latest flag catch any
writer that bypasses the section, which surfaces as
``VersionConflictError``.
"""
import base64
import binascii
import logging
from dataclasses import dataclass

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import (
	IntegrityError,
	NotFoundError,
	StorageError,
	ValidationError,
	VersionConflictError,
)
from docvault.core.features.documents.db.api import DocumentDB
from docvault.core.features.documents.db.orm import Document, DocumentVersion
from docvault.core.features.documents.naming import build_storage_key
from docvault.core.features.documents.schema import VersionDiff, VersionInfo, VersionPage
from docvault.core.features.encryption.db.api import KeyStore
from docvault.core.services.encryption import CryptoEngine
from docvault.core.services.locks import KeyedLocks
from docvault.core.storage import StorageRouter
from docvault.core.utils.tz import as_naive_utc, utc_now

logger = logging.getLogger(__name__)

INITIAL_CHANGE_SUMMARY = "Initial upload"
PAGE_TOKEN_PREFIX = "before:"


@dataclass
class StoredContent:
	storage_ref: str
	content_hash: str
	encrypted: bool
	encryption_key_ref: str | None
	file_size_bytes: int


def encode_page_token(before_version: int) -> str:
	raw = f"{PAGE_TOKEN_PREFIX}{before_version}".encode()
	return base64.urlsafe_b64encode(raw).decode()


def decode_page_token(token: str | None) -> int | None:
	if not token:
		return None
	try:
		raw = base64.urlsafe_b64decode(token.encode()).decode()
	except (binascii.Error, UnicodeDecodeError, ValueError):
		raise ValidationError(f"Invalid page token: {token!r}") from None
	if not raw.startswith(PAGE_TOKEN_PREFIX):
		raise ValidationError(f"Invalid page token: {token!r}")
	try:
		before = int(raw[len(PAGE_TOKEN_PREFIX):])
	except ValueError:
		raise ValidationError(f"Invalid page token: {token!r}") from None
	if before < 1:
		raise ValidationError(f"Invalid page token: {token!r}")
	return before


class VersionControlEngine:
	"""Creates, lists, verifies and rolls back document versions."""

	def __init__(
		self,
		storage: StorageRouter,
		crypto: CryptoEngine,
		locks: KeyedLocks | None = None,
		encrypt_all_documents: bool = True,
		page_size: int = 10,
	):
		self.storage = storage
		self.crypto = crypto
		self.locks = locks or KeyedLocks()
		self.encrypt_all_documents = encrypt_all_documents
		self.page_size = page_size

	def should_encrypt(self, document: Document) -> bool:
		return document.confidential_flag or self.encrypt_all_documents

	# --- Content ---

	async def _store_content(
		self,
		session: AsyncSession,
		document: Document,
		version_number: int,
		content: bytes,
		file_format: str,
		original_file_name: str,
	) -> StoredContent:
		content_hash = self.crypto.digest(content)
		encrypted = self.should_encrypt(document)
		key_ref = None
		blob = content
		if encrypted:
			key_ref = await KeyStore(session, self.crypto).active_key_ref()
			blob = self.crypto.seal(content, key_ref, associated_data=document.document_id.encode())

		key = build_storage_key(
			document.linked_entity_type,
			document.linked_entity_id,
			document.document_id,
			version_number,
			original_file_name,
			encrypted,
		)
		storage_ref = await self.storage.write(key, blob, content_type=file_format)
		return StoredContent(
			storage_ref=storage_ref,
			content_hash=content_hash,
			encrypted=encrypted,
			encryption_key_ref=key_ref,
			file_size_bytes=len(content),
		)

	async def _discard(self, storage_ref: str) -> None:
		"""Best-effort removal of a blob whose version was never committed."""
		try:
			await self.storage.delete(storage_ref)
		except StorageError as e:
			logger.warning(f"Could not remove orphaned blob {storage_ref}: {e}")

	async def load_content(self, session: AsyncSession, version: DocumentVersion) -> bytes:
		"""Read, decrypt and verify the content of a version."""
		blob = await self.storage.read(version.storage_ref)
		try:
			if version.encrypted:
				if not version.encryption_key_ref:
					raise IntegrityError("Encrypted version has no key reference")
				await KeyStore(session, self.crypto).ensure_loaded(version.encryption_key_ref)
				content = self.crypto.unseal(
					blob,
					version.encryption_key_ref,
					associated_data=version.document_id.encode(),
				)
			else:
				content = blob

			if self.crypto.digest(content) != version.content_hash:
				raise IntegrityError("Content hash mismatch")
		except IntegrityError as e:
			logger.error(
				f"Integrity check failed for {version.document_id} v{version.version_number}: {e}"
			)
			raise IntegrityError(
				f"Integrity check failed for {version.document_id} v{version.version_number}: {e}",
				document_id=version.document_id,
				version_number=version.version_number,
			) from e
		return content

	# --- Version creation ---

	async def create_initial_version(
		self,
		session: AsyncSession,
		document: Document,
		content: bytes,
		actor_id: str,
	) -> DocumentVersion:
		"""Persist a new document together with its version 1.

		The document must be transient. Either both rows are committed or
		neither is, and the blob is removed again on failure.
		"""
		stored = await self._store_content(
			session, document, 1, content, document.file_format, document.original_file_name
		)
		document.current_version_number = 1
		if document.created_at is None:
			document.created_at = utc_now()
		document.last_updated = document.created_at
		version = DocumentVersion(
			document_id=document.document_id,
			version_number=1,
			is_latest_version=True,
			storage_ref=stored.storage_ref,
			content_hash=stored.content_hash,
			encrypted=stored.encrypted,
			encryption_key_ref=stored.encryption_key_ref,
			file_format=document.file_format,
			file_size_bytes=stored.file_size_bytes,
			original_file_name=document.original_file_name,
			change_summary=INITIAL_CHANGE_SUMMARY,
			created_by=actor_id,
			created_at=document.created_at,
		)
		session.add(document)
		session.add(version)
		try:
			await session.commit()
		except sa_exc.IntegrityError as e:
			await session.rollback()
			await self._discard(stored.storage_ref)
			raise VersionConflictError(
				document.document_id,
				actual_version=None,
				message=f"Document {document.document_id} already exists",
			) from e
		except BaseException:
			await session.rollback()
			await self._discard(stored.storage_ref)
			raise

		logger.info(f"Created {document.document_id} v1 at {stored.storage_ref}")
		return version

	async def create_version(
		self,
		session: AsyncSession,
		document_id: str,
		content: bytes,
		change_summary: str,
		actor_id: str,
		file_format: str,
		original_file_name: str,
		expected_version: int | None = None,
	) -> DocumentVersion:
		"""Append ``current + 1`` as the new latest version."""
		if not change_summary or not change_summary.strip():
			raise ValidationError("change_summary is required for a new version")

		db = DocumentDB(session)
		async with self.locks.hold(document_id):
			document = await db.get_document(document_id, for_update=True)
			if document is None or document.is_deleted:
				raise NotFoundError(f"Document {document_id} not found")

			current = document.current_version_number
			if expected_version is not None and expected_version != current:
				raise VersionConflictError(document_id, expected_version, current)

			new_number = current + 1
			stored = await self._store_content(
				session, document, new_number, content, file_format, original_file_name
			)
			try:
				await db.clear_latest_flag(document_id)
				await session.flush()

				version = DocumentVersion(
					document_id=document_id,
					version_number=new_number,
					is_latest_version=True,
					storage_ref=stored.storage_ref,
					content_hash=stored.content_hash,
					encrypted=stored.encrypted,
					encryption_key_ref=stored.encryption_key_ref,
					file_format=file_format,
					file_size_bytes=stored.file_size_bytes,
					original_file_name=original_file_name,
					change_summary=change_summary.strip(),
					created_by=actor_id,
					created_at=utc_now(),
				)
				session.add(version)
				document.current_version_number = new_number
				document.file_format = file_format
				document.original_file_name = original_file_name
				document.last_updated = version.created_at
				await session.commit()
			except sa_exc.IntegrityError as e:
				await session.rollback()
				await self._discard(stored.storage_ref)
				raise VersionConflictError(
					document_id,
					expected_version=current,
					message=f"Version {new_number} of {document_id} was created concurrently",
				) from e
			except BaseException:
				await session.rollback()
				await self._discard(stored.storage_ref)
				raise

		logger.info(f"Created {document_id} v{new_number} by {actor_id}")
		return version

	async def rollback(
		self,
		session: AsyncSession,
		document_id: str,
		target_version_number: int,
		actor_id: str,
		expected_version: int | None = None,
	) -> DocumentVersion:
		"""Append a copy of ``target_version_number`` as the new latest version."""
		target = await self.get_version(session, document_id, target_version_number)
		content = await self.load_content(session, target)
		return await self.create_version(
			session,
			document_id,
			content,
			f"Rollback to v{target_version_number}",
			actor_id,
			target.file_format,
			target.original_file_name,
			expected_version=expected_version,
		)

	# --- Queries ---

	async def get_version(
		self,
		session: AsyncSession,
		document_id: str,
		version_number: int,
	) -> DocumentVersion:
		version = await DocumentDB(session).get_version(document_id, version_number)
		if version is None:
			raise NotFoundError(f"Version {version_number} of {document_id} not found")
		return version

	async def get_latest_version(self, session: AsyncSession, document_id: str) -> DocumentVersion:
		version = await DocumentDB(session).get_latest_version(document_id)
		if version is None:
			raise NotFoundError(f"Document {document_id} has no versions")
		return version

	async def list_versions(
		self,
		session: AsyncSession,
		document_id: str,
		page_size: int | None = None,
		page_token: str | None = None,
	) -> VersionPage:
		"""Newest first, paged by an opaque token."""
		page_size = page_size or self.page_size
		if page_size < 1:
			raise ValidationError("page_size must be positive")
		before = decode_page_token(page_token)

		db = DocumentDB(session)
		document = await db.get_document(document_id)
		if document is None:
			raise NotFoundError(f"Document {document_id} not found")

		rows = await db.get_versions(document_id, limit=page_size + 1, before_version=before)
		items = rows[:page_size]
		next_token = None
		if len(rows) > page_size:
			next_token = encode_page_token(items[-1].version_number)

		return VersionPage(
			items=[VersionInfo.model_validate(v) for v in items],
			total=await db.count_versions(document_id),
			current_version=document.current_version_number,
			next_page_token=next_token,
		)

	async def diff(
		self,
		session: AsyncSession,
		document_id: str,
		from_version: int,
		to_version: int,
	) -> VersionDiff:
		old = await self.get_version(session, document_id, from_version)
		new = await self.get_version(session, document_id, to_version)
		age = as_naive_utc(new.created_at) - as_naive_utc(old.created_at)
		return VersionDiff(
			document_id=document_id,
			from_version=from_version,
			to_version=to_version,
			content_changed=old.content_hash != new.content_hash,
			size_delta_bytes=new.file_size_bytes - old.file_size_bytes,
			format_changed=old.file_format != new.file_format,
			from_format=old.file_format,
			to_format=new.file_format,
			encryption_changed=old.encrypted != new.encrypted,
			from_author=old.created_by,
			to_author=new.created_by,
			from_change_summary=old.change_summary,
			to_change_summary=new.change_summary,
			days_between=abs(age).days,
		)
