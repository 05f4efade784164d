# (c) Copyright Datacraft, 2026
"""Document repository: the entry point of every document operation.

Each operation evaluates access first and writes exactly one access log
entry before it returns or raises. Database sessions are closed before
the entry is written, so the trail records the final outcome.
"""
import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Sequence

import pydantic
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.config import Settings, get_settings
from docvault.core.exceptions import (
	AccessDeniedError,
	CryptoError,
	DocumentRepositoryError,
	IntegrityError,
	NotFoundError,
	StorageError,
	ValidationError,
)
from docvault.core.features.audit.db.api import AccessLogDB, AuditLogger
from docvault.core.features.audit.schema import AccessLogPage, AccessStats
from docvault.core.features.documents.db.api import DocumentDB
from docvault.core.features.documents.db.orm import Document
from docvault.core.features.documents.schema import (
	Actor,
	BulkUploadFailure,
	BulkUploadItem,
	BulkUploadResult,
	CleanupReport,
	DeleteResult,
	DocumentInfo,
	DocumentListPage,
	DocumentMetadataUpdate,
	DocumentPermissions,
	DocumentUploadRequest,
	EntityDeleteResult,
	EntityDocumentStats,
	IntegrityReport,
	RetrievedDocument,
	UploadResult,
	VersionDiff,
	VersionInfo,
	VersionPage,
)
from docvault.core.features.documents.versioning import VersionControlEngine
from docvault.core.features.encryption.db.api import KeyStore
from docvault.core.features.encryption.schema import KeyInfo, RotateKeyResponse
from docvault.core.services.access_control import AccessPolicy
from docvault.core.services.encryption import CryptoEngine
from docvault.core.storage import (
	DeleteOutcome,
	ObjectNotFoundError,
	StorageBackendType,
	StorageRouter,
	parse_ref,
)
from docvault.core.storage.factory import build_storage_router
from docvault.core.types import (
	AccessDecision,
	DocumentAction,
	DocumentStatus,
	DocumentType,
	LinkedEntityType,
)
from docvault.core.utils.tz import utc_now

logger = logging.getLogger(__name__)

READ_ACTIONS = (DocumentAction.VIEW, DocumentAction.DOWNLOAD)


@dataclass
class _Attempt:
	"""Outcome of one access attempt, filled in while the operation runs."""
	actor: Actor
	action: DocumentAction
	document_id: str | None = None
	decision: AccessDecision | None = None
	version_number: int | None = None
	reason: str | None = None


class DocumentRepository:
	"""Secure, versioned, audited document storage."""

	def __init__(
		self,
		session_factory: async_sessionmaker,
		storage: StorageRouter,
		crypto: CryptoEngine,
		settings: Settings | None = None,
		policy: AccessPolicy | None = None,
		audit: AuditLogger | None = None,
	):
		self.settings = settings or get_settings()
		self._session_factory = session_factory
		self.storage = storage
		self.crypto = crypto
		self.policy = policy or AccessPolicy.from_settings(self.settings)
		self.audit = audit or AuditLogger(session_factory)
		self.versions = VersionControlEngine(
			storage,
			crypto,
			encrypt_all_documents=self.settings.encrypt_all_documents,
			page_size=self.settings.version_page_size,
		)
		# Document ids come from a max-of-day query; ids handed out but
		# not yet committed are tracked so concurrent uploads never share one
		self._id_lock = asyncio.Lock()
		self._reserved_ids: set[str] = set()

	@classmethod
	def from_settings(
		cls,
		session_factory: async_sessionmaker,
		settings: Settings | None = None,
	) -> "DocumentRepository":
		settings = settings or get_settings()
		return cls(
			session_factory,
			build_storage_router(settings),
			CryptoEngine.from_settings(settings),
			settings,
		)

	# --- Access and audit plumbing ---

	@asynccontextmanager
	async def _audited(
		self,
		actor: Actor,
		action: DocumentAction,
		document_id: str | None = None,
		audit_success: bool = True,
	) -> AsyncIterator[_Attempt]:
		attempt = _Attempt(actor=actor, action=action, document_id=document_id)
		try:
			yield attempt
		except AccessDeniedError as e:
			await self._record(attempt, AccessDecision.DENIED, e.reason, succeeded=False)
			raise
		except Exception as e:
			# Failures before the access check are not grants
			decision = attempt.decision or AccessDecision.DENIED
			await self._record(attempt, decision, str(e), succeeded=False)
			raise
		else:
			if audit_success:
				await self._record(
					attempt,
					attempt.decision or AccessDecision.ALLOWED,
					attempt.reason,
					succeeded=True,
				)

	async def _record(
		self,
		attempt: _Attempt,
		decision: AccessDecision,
		reason: str | None,
		succeeded: bool,
	) -> None:
		await self.audit.record(
			actor=attempt.actor.user_id,
			actor_roles=attempt.actor.roles,
			action=attempt.action,
			decision=decision,
			document_id=attempt.document_id,
			reason=reason,
			succeeded=succeeded,
			version_number=attempt.version_number,
			ip_address=attempt.actor.ip_address,
			user_agent=attempt.actor.user_agent,
		)

	def _check(self, attempt: _Attempt, document: Document) -> None:
		result = self.policy.evaluate(attempt.actor.roles, attempt.action, document)
		attempt.decision = result.decision
		if not result.allowed:
			raise AccessDeniedError(result.reason, document_id=attempt.document_id)

	@staticmethod
	async def _get_document(
		session: AsyncSession,
		document_id: str,
		allow_deleted: bool = False,
	) -> Document:
		document = await DocumentDB(session).get_document(document_id)
		if document is None or (document.is_deleted and not allow_deleted):
			raise NotFoundError(f"Document {document_id} not found")
		return document

	async def _reserve_document_id(self) -> str:
		"""Hand out the next document id.

		The caller must discard the id from ``_reserved_ids`` once its
		document is committed or abandoned.
		"""
		async with self._id_lock:
			async with self._session_factory() as session:
				document_id = await DocumentDB(session).next_document_id(
					self.settings.document_id_prefix, reserved=self._reserved_ids
				)
			self._reserved_ids.add(document_id)
		return document_id

	# --- Validation ---

	@staticmethod
	def _parse_upload(request: DocumentUploadRequest | dict) -> DocumentUploadRequest:
		if isinstance(request, DocumentUploadRequest):
			return request
		try:
			return DocumentUploadRequest.model_validate(request)
		except pydantic.ValidationError as e:
			raise ValidationError(f"Invalid upload request: {e}") from e

	def _validate_content(self, content: bytes, file_format: str) -> None:
		if not content:
			raise ValidationError("File content is empty")
		if len(content) > self.settings.max_file_size_bytes:
			raise ValidationError(
				f"File size {len(content)} exceeds maximum allowed size of "
				f"{self.settings.max_file_size_mb}MB"
			)
		if file_format not in self.settings.allowed_file_types:
			raise ValidationError(f"File type {file_format} is not allowed")

	# --- Upload ---

	async def upload(
		self,
		request: DocumentUploadRequest | dict,
		content: bytes,
		actor: Actor,
	) -> UploadResult:
		"""Create a document with its first version."""
		async with self._audited(actor, DocumentAction.UPDATE) as attempt:
			request = self._parse_upload(request)
			self._validate_content(content, request.file_format)

			now = utc_now()
			document = Document(
				document_id="",
				linked_entity_type=request.linked_entity_type.value,
				linked_entity_id=request.linked_entity_id,
				document_name=request.document_name,
				document_type=request.document_type.value,
				confidential_flag=request.confidential_flag,
				access_permissions=(
					request.access_permissions or list(self.settings.default_access_permissions)
				),
				remarks_tags=list(request.remarks_tags),
				original_file_name=request.original_file_name,
				file_format=request.file_format,
				current_version_number=1,
				status=DocumentStatus.ACTIVE.value,
				created_by=actor.user_id,
				created_at=now,
				last_updated=now,
			)
			self._check(attempt, document)

			document.document_id = await self._reserve_document_id()
			attempt.document_id = document.document_id
			try:
				async with self._session_factory() as session:
					version = await self.versions.create_initial_version(
						session, document, content, actor.user_id
					)
			finally:
				self._reserved_ids.discard(document.document_id)
			attempt.version_number = version.version_number
			result = UploadResult(
				document=DocumentInfo.model_validate(document),
				version=VersionInfo.model_validate(version),
			)

		logger.info(
			f"Uploaded {result.document.document_id} for "
			f"{request.linked_entity_type.value} {request.linked_entity_id} by {actor.user_id}"
		)
		return result

	async def bulk_upload(
		self,
		items: Iterable[BulkUploadItem],
		actor: Actor,
	) -> BulkUploadResult:
		"""Upload every item independently; failures do not stop the batch."""
		result = BulkUploadResult()
		for index, item in enumerate(items):
			try:
				uploaded = await self.upload(item.request, item.content, actor)
			except Exception as e:
				if isinstance(e, DocumentRepositoryError):
					logger.warning(f"Bulk upload item {index} failed: {e}")
				else:
					logger.exception(f"Bulk upload item {index} failed unexpectedly")
				result.failed.append(
					BulkUploadFailure(
						index=index,
						document_name=item.request.document_name,
						reason=str(e),
					)
				)
			else:
				result.succeeded.append(uploaded.document)

		logger.info(
			f"Bulk upload by {actor.user_id}: {len(result.succeeded)} succeeded, "
			f"{len(result.failed)} failed"
		)
		return result

	# --- Retrieval ---

	async def retrieve(
		self,
		document_id: str,
		actor: Actor,
		version_number: int | None = None,
		action: DocumentAction = DocumentAction.VIEW,
	) -> RetrievedDocument:
		"""Return the verified content of the latest or a given version."""
		async with self._audited(actor, action, document_id) as attempt:
			if action not in READ_ACTIONS:
				raise ValidationError(f"{action.value} is not a read action")

			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)

				if version_number is None:
					version = await self.versions.get_latest_version(session, document_id)
				else:
					version = await self.versions.get_version(session, document_id, version_number)
				attempt.version_number = version.version_number

				content = await self.versions.load_content(session, version)
				result = RetrievedDocument(
					document=DocumentInfo.model_validate(document),
					version=VersionInfo.model_validate(version),
					content=content,
				)
		return result

	async def download(
		self,
		document_id: str,
		actor: Actor,
		version_number: int | None = None,
	) -> RetrievedDocument:
		return await self.retrieve(
			document_id, actor, version_number=version_number, action=DocumentAction.DOWNLOAD
		)

	# --- Versioning ---

	async def update(
		self,
		document_id: str,
		content: bytes,
		change_summary: str,
		actor: Actor,
		file_format: str,
		original_file_name: str,
		expected_version: int | None = None,
	) -> VersionInfo:
		"""Store new content as the next version."""
		async with self._audited(actor, DocumentAction.UPDATE, document_id) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)
				self._validate_content(content, file_format)

				version = await self.versions.create_version(
					session,
					document_id,
					content,
					change_summary,
					actor.user_id,
					file_format,
					original_file_name,
					expected_version=expected_version,
				)
				attempt.version_number = version.version_number
				result = VersionInfo.model_validate(version)
		return result

	async def rollback(
		self,
		document_id: str,
		target_version: int,
		actor: Actor,
		expected_version: int | None = None,
	) -> VersionInfo:
		"""Create a new version with the content of ``target_version``."""
		async with self._audited(actor, DocumentAction.ROLLBACK, document_id) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)

				version = await self.versions.rollback(
					session,
					document_id,
					target_version,
					actor.user_id,
					expected_version=expected_version,
				)
				attempt.version_number = version.version_number
				result = VersionInfo.model_validate(version)

		logger.info(f"Rolled back {document_id} to v{target_version} as v{result.version_number}")
		return result

	async def list_versions(
		self,
		document_id: str,
		actor: Actor,
		page_size: int | None = None,
		page_token: str | None = None,
	) -> VersionPage:
		async with self._audited(actor, DocumentAction.VIEW, document_id) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)
				page = await self.versions.list_versions(
					session, document_id, page_size=page_size, page_token=page_token
				)
		return page

	async def compare_versions(
		self,
		document_id: str,
		from_version: int,
		to_version: int,
		actor: Actor,
	) -> VersionDiff:
		async with self._audited(actor, DocumentAction.VIEW, document_id) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)
				diff = await self.versions.diff(session, document_id, from_version, to_version)
		return diff

	# --- Metadata ---

	async def update_metadata(
		self,
		document_id: str,
		actor: Actor,
		document_name: str | None = None,
		document_type: DocumentType | None = None,
		confidential_flag: bool | None = None,
		access_permissions: list[str] | None = None,
		remarks_tags: list[str] | None = None,
	) -> DocumentInfo:
		"""Change document metadata. Content and versions are untouched.

		Marking a document confidential does not re-encrypt versions that
		are already stored in clear; the audit reason lists them.
		"""
		async with self._audited(actor, DocumentAction.UPDATE, document_id) as attempt:
			try:
				changes = DocumentMetadataUpdate(
					document_name=document_name,
					document_type=document_type,
					confidential_flag=confidential_flag,
					access_permissions=access_permissions,
					remarks_tags=remarks_tags,
				)
			except pydantic.ValidationError as e:
				raise ValidationError(f"Invalid metadata update: {e}") from e
			if changes.access_permissions is not None and not changes.access_permissions:
				raise ValidationError("access_permissions must name at least one role")

			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)

				async with self.versions.locks.hold(document_id):
					document = await DocumentDB(session).get_document(document_id, for_update=True)
					for field, value in changes.model_dump(exclude_none=True).items():
						if field == "document_type":
							value = DocumentType(value).value
						setattr(document, field, value)
					document.last_updated = utc_now()
					await session.commit()
				attempt.reason = "Metadata updated: " + ", ".join(
					sorted(changes.model_dump(exclude_none=True))
				)
				if changes.confidential_flag:
					# Stored versions are immutable; only new content gets encrypted
					plain = await DocumentDB(session).get_plain_version_numbers(document_id)
					if plain:
						logger.warning(
							f"{document_id} marked confidential with unencrypted versions {plain}"
						)
						attempt.reason += f"; versions stored unencrypted: {plain}"
				result = DocumentInfo.model_validate(document)

		logger.info(f"Updated metadata of {document_id} by {actor.user_id}")
		return result

	# --- Deletion ---

	async def delete(self, document_id: str, actor: Actor) -> DeleteResult:
		"""Mark the document deleted and remove every version blob.

		Blob removal is best effort and reported in the cleanup report.
		Deleting an already deleted document runs the cleanup again.
		"""
		async with self._audited(actor, DocumentAction.DELETE, document_id) as attempt:
			async with self._session_factory() as session:
				db = DocumentDB(session)
				document = await self._get_document(session, document_id, allow_deleted=True)
				self._check(attempt, document)

				async with self.versions.locks.hold(document_id):
					document = await db.get_document(document_id, for_update=True)
					if not document.is_deleted:
						now = utc_now()
						document.status = DocumentStatus.DELETED.value
						document.deleted_by = actor.user_id
						document.deleted_at = now
						document.last_updated = now
						await session.commit()

				refs = [v.storage_ref for v in await db.get_versions(document_id)]
				info = DocumentInfo.model_validate(document)

			cleanup = await self._cleanup(refs)
			if cleanup.errors:
				attempt.reason = f"Storage cleanup errors: {'; '.join(cleanup.errors)}"

		logger.info(
			f"Deleted {document_id} by {actor.user_id}: {cleanup.local_files_deleted} local, "
			f"{cleanup.remote_files_deleted} remote, {cleanup.not_found} not found, "
			f"{len(cleanup.errors)} errors"
		)
		return DeleteResult(document=info, cleanup=cleanup)

	async def _cleanup(self, storage_refs: Sequence[str]) -> CleanupReport:
		report = CleanupReport()
		for ref in storage_refs:
			try:
				backend_type, _ = parse_ref(ref)
				outcome = await self.storage.delete(ref)
			except StorageError as e:
				logger.warning(f"Failed to delete {ref}: {e}")
				report.errors.append(f"{ref}: {e}")
				continue

			if outcome == DeleteOutcome.NOT_FOUND:
				report.not_found += 1
			elif backend_type == StorageBackendType.LOCAL:
				report.local_files_deleted += 1
			else:
				report.remote_files_deleted += 1
		return report

	async def delete_entity_documents(
		self,
		entity_type: LinkedEntityType,
		entity_id: str,
		actor: Actor,
	) -> EntityDeleteResult:
		"""Delete every active document of a linked entity."""
		async with self._session_factory() as session:
			documents = await DocumentDB(session).list_documents(entity_type, entity_id)
			document_ids = [d.document_id for d in documents]

		result = EntityDeleteResult()
		for document_id in document_ids:
			try:
				deleted = await self.delete(document_id, actor)
			except DocumentRepositoryError as e:
				result.failed[document_id] = str(e)
				continue
			result.documents_deleted.append(document_id)
			result.cleanup = result.cleanup.merge(deleted.cleanup)

		logger.info(
			f"Deleted {len(result.documents_deleted)} documents of "
			f"{entity_type.value} {entity_id}, {len(result.failed)} failed"
		)
		return result

	# --- Listing and permissions ---

	async def list_documents(
		self,
		entity_type: LinkedEntityType,
		entity_id: str,
		actor: Actor,
		page: int = 1,
		page_size: int = 20,
		document_type: DocumentType | None = None,
		include_deleted: bool = False,
	) -> DocumentListPage:
		"""Documents of an entity the actor may view."""
		if page < 1 or page_size < 1:
			raise ValidationError("page and page_size must be positive")

		async with self._session_factory() as session:
			documents = await DocumentDB(session).list_documents(
				entity_type,
				entity_id,
				document_type=document_type,
				include_deleted=include_deleted,
			)
		visible = [
			d for d in documents
			if self.policy.evaluate(actor.roles, DocumentAction.VIEW, d).allowed
		]
		start = (page - 1) * page_size
		return DocumentListPage(
			items=[DocumentInfo.model_validate(d) for d in visible[start:start + page_size]],
			total=len(visible),
			page=page,
			page_size=page_size,
		)

	async def get_entity_document_stats(
		self,
		entity_type: LinkedEntityType,
		entity_id: str,
		actor: Actor,
	) -> EntityDocumentStats:
		"""Totals over the entity's documents the actor may view, deleted ones included."""
		async with self._session_factory() as session:
			db = DocumentDB(session)
			documents = await db.list_documents(entity_type, entity_id, include_deleted=True)
			visible = [
				d for d in documents
				if self.policy.evaluate(actor.roles, DocumentAction.VIEW, d).allowed
			]
			active_ids = [d.document_id for d in visible if not d.is_deleted]
			latest = await db.get_latest_versions(active_ids)

		stats = EntityDocumentStats(
			linked_entity_type=entity_type,
			linked_entity_id=entity_id,
			total_documents=len(visible),
			by_type=dict(Counter(d.document_type for d in visible)),
			by_status=dict(Counter(d.status for d in visible)),
			total_size_bytes=sum(v.file_size_bytes for v in latest),
			last_uploaded_at=max((d.created_at for d in visible), default=None),
		)
		if latest:
			stats.average_size_bytes = stats.total_size_bytes / len(latest)
		return stats

	async def get_permissions(self, document_id: str, actor: Actor) -> DocumentPermissions:
		async with self._session_factory() as session:
			document = await self._get_document(session, document_id)
		actions = self.policy.effective_actions(actor.roles, document)
		return DocumentPermissions(
			document_id=document_id,
			actions=[a for a in DocumentAction if a in actions],
		)

	async def check_bulk_access(
		self,
		document_ids: Sequence[str],
		actor: Actor,
		action: DocumentAction = DocumentAction.VIEW,
	) -> dict[str, bool]:
		"""Access decision per id; unknown or deleted documents are denied."""
		async with self._session_factory() as session:
			documents = await DocumentDB(session).get_documents(document_ids)
		active = [d for d in documents if not d.is_deleted]
		decisions = self.policy.evaluate_many(actor.roles, action, active)
		return {
			document_id: document_id in decisions and decisions[document_id].allowed
			for document_id in document_ids
		}

	# --- Access log ---

	async def get_access_log(
		self,
		document_id: str,
		actor: Actor,
		page: int = 1,
		page_size: int | None = None,
	) -> AccessLogPage:
		page_size = page_size or self.settings.access_log_page_size
		async with self._audited(
			actor, DocumentAction.VIEW, document_id, audit_success=False
		) as attempt:
			if page < 1 or page_size < 1:
				raise ValidationError("page and page_size must be positive")
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id, allow_deleted=True)
				self._check(attempt, document)
				result = await AccessLogDB(session).get_page(document_id, page, page_size)
		return result

	async def get_access_stats(self, document_id: str, actor: Actor) -> AccessStats:
		async with self._audited(
			actor, DocumentAction.VIEW, document_id, audit_success=False
		) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id, allow_deleted=True)
				self._check(attempt, document)
				stats = await AccessLogDB(session).get_stats(document_id)
		return stats

	async def verify_audit_trail(self, document_id: str | None) -> tuple[bool, str | None]:
		async with self._session_factory() as session:
			return await AccessLogDB(session).verify_chain(document_id)

	# --- Integrity and keys ---

	async def verify_integrity(self, document_id: str, actor: Actor) -> IntegrityReport:
		"""Re-verify the stored content of every version."""
		async with self._audited(actor, DocumentAction.VIEW, document_id) as attempt:
			async with self._session_factory() as session:
				document = await self._get_document(session, document_id)
				self._check(attempt, document)

				report = IntegrityReport(document_id=document_id)
				for version in reversed(await DocumentDB(session).get_versions(document_id)):
					report.checked += 1
					try:
						await self.versions.load_content(session, version)
					except IntegrityError:
						report.corrupted.append(version.version_number)
					except CryptoError as e:
						logger.error(f"Cannot decrypt {document_id} v{version.version_number}: {e}")
						report.corrupted.append(version.version_number)
					except ObjectNotFoundError:
						logger.error(f"Blob of {document_id} v{version.version_number} is missing")
						report.missing.append(version.version_number)

			if not report.ok:
				attempt.reason = (
					f"Integrity check: corrupted {report.corrupted}, missing {report.missing}"
				)
		return report

	async def rotate_encryption_key(self, actor: Actor) -> RotateKeyResponse:
		"""Make a new key active for new content. Admin only."""
		async with self._audited(actor, DocumentAction.UPDATE) as attempt:
			if not self.policy.is_admin(actor.roles):
				raise AccessDeniedError("Access denied: key rotation requires Admin")
			attempt.decision = AccessDecision.ALLOWED

			async with self._session_factory() as session:
				new_key, retired = await KeyStore(session, self.crypto).rotate()
				await session.commit()
				result = RotateKeyResponse(
					new_key=KeyInfo.model_validate(new_key),
					retired_key_refs=retired,
				)
			attempt.reason = f"Encryption key rotated to {new_key.key_ref}"
		return result
