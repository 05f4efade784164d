# (c) Copyright Datacraft, 2026
"""Database operations for documents and their versions."""
from typing import Iterable, Sequence

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.features.documents.naming import (
	document_id_stem,
	format_document_id,
	parse_sequence,
)
from docvault.core.types import DocumentStatus, DocumentType, LinkedEntityType

from .orm import Document, DocumentVersion


class DocumentDB:
	"""Database operations for documents."""

	def __init__(self, session: AsyncSession):
		self.session = session

	# --- Documents ---

	async def get_document(self, document_id: str, for_update: bool = False) -> Document | None:
		"""Load a document, always refreshing it from the database."""
		stmt = (
			select(Document)
			.where(Document.document_id == document_id)
			.execution_options(populate_existing=True)
		)
		if for_update:
			stmt = stmt.with_for_update()
		result = await self.session.execute(stmt)
		return result.scalar_one_or_none()

	async def get_documents(self, document_ids: Sequence[str]) -> Sequence[Document]:
		if not document_ids:
			return []
		result = await self.session.execute(
			select(Document).where(Document.document_id.in_(list(document_ids)))
		)
		return result.scalars().all()

	async def next_document_id(self, prefix: str, reserved: Iterable[str] = ()) -> str:
		"""Next ``<prefix>-YYYYMMDD-NNNN`` id; the sequence restarts daily.

		Ids in ``reserved`` are taken by uploads that have not committed yet.
		"""
		stem = document_id_stem(prefix)
		# Past 9999 the suffix grows a digit, so longer ids sort higher
		result = await self.session.execute(
			select(Document.document_id)
			.where(Document.document_id.like(f"{stem}%"))
			.order_by(func.length(Document.document_id).desc(), Document.document_id.desc())
			.limit(1)
		)
		last = result.scalar_one_or_none()
		sequences = [parse_sequence(d) for d in reserved if d.startswith(stem)]
		if last:
			sequences.append(parse_sequence(last))
		return format_document_id(stem, max(sequences, default=0) + 1)

	async def list_documents(
		self,
		entity_type: LinkedEntityType,
		entity_id: str,
		document_type: DocumentType | None = None,
		include_deleted: bool = False,
	) -> Sequence[Document]:
		"""Documents of one linked entity, newest first."""
		conditions = [
			Document.linked_entity_type == entity_type.value,
			Document.linked_entity_id == entity_id,
		]
		if document_type is not None:
			conditions.append(Document.document_type == document_type.value)
		if not include_deleted:
			conditions.append(Document.status == DocumentStatus.ACTIVE.value)

		stmt = (
			select(Document)
			.where(and_(*conditions))
			.order_by(Document.created_at.desc(), Document.document_id.desc())
		)
		result = await self.session.execute(stmt)
		return result.scalars().all()

	# --- Versions ---

	async def get_version(self, document_id: str, version_number: int) -> DocumentVersion | None:
		return await self.session.get(DocumentVersion, (document_id, version_number))

	async def get_latest_version(self, document_id: str) -> DocumentVersion | None:
		stmt = select(DocumentVersion).where(
			DocumentVersion.document_id == document_id,
			DocumentVersion.is_latest_version.is_(True),
		)
		result = await self.session.execute(stmt)
		return result.scalar_one_or_none()

	async def get_versions(
		self,
		document_id: str,
		limit: int | None = None,
		before_version: int | None = None,
	) -> Sequence[DocumentVersion]:
		"""Versions by ``version_number`` descending."""
		stmt = select(DocumentVersion).where(DocumentVersion.document_id == document_id)
		if before_version is not None:
			stmt = stmt.where(DocumentVersion.version_number < before_version)
		stmt = stmt.order_by(DocumentVersion.version_number.desc())
		if limit is not None:
			stmt = stmt.limit(limit)
		result = await self.session.execute(stmt)
		return result.scalars().all()

	async def count_versions(self, document_id: str) -> int:
		result = await self.session.execute(
			select(func.count()).select_from(DocumentVersion).where(
				DocumentVersion.document_id == document_id
			)
		)
		return result.scalar_one()

	async def get_plain_version_numbers(self, document_id: str) -> list[int]:
		"""Versions stored without encryption."""
		result = await self.session.execute(
			select(DocumentVersion.version_number)
			.where(
				DocumentVersion.document_id == document_id,
				DocumentVersion.encrypted.is_(False),
			)
			.order_by(DocumentVersion.version_number)
		)
		return list(result.scalars().all())

	async def get_latest_versions(self, document_ids: Sequence[str]) -> Sequence[DocumentVersion]:
		if not document_ids:
			return []
		result = await self.session.execute(
			select(DocumentVersion).where(
				DocumentVersion.document_id.in_(list(document_ids)),
				DocumentVersion.is_latest_version.is_(True),
			)
		)
		return result.scalars().all()

	async def clear_latest_flag(self, document_id: str) -> int:
		result = await self.session.execute(
			update(DocumentVersion)
			.where(
				DocumentVersion.document_id == document_id,
				DocumentVersion.is_latest_version.is_(True),
			)
			.values(is_latest_version=False)
			.execution_options(synchronize_session="fetch")
		)
		return result.rowcount
