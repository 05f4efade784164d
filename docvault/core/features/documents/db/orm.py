# (c) Copyright Datacraft, 2026
"""Document ORM models."""
from datetime import datetime

from sqlalchemy import (
	Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, Text, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docvault.core.db.base import Base
from docvault.core.types import DocumentStatus
from docvault.core.utils.tz import utc_now


class Document(Base):
	"""Case-linked document. Content lives in its versions."""
	__tablename__ = "documents"

	document_id: Mapped[str] = mapped_column(String(32), primary_key=True)

	# Linked entity
	linked_entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
	linked_entity_id: Mapped[str] = mapped_column(String(100), nullable=False)

	# Classification
	document_name: Mapped[str] = mapped_column(String(100), nullable=False)
	document_type: Mapped[str] = mapped_column(String(50), nullable=False)
	confidential_flag: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	access_permissions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
	remarks_tags: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

	# Latest file
	original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
	file_format: Mapped[str] = mapped_column(String(100), nullable=False)

	# Only mutated inside the per-document version section
	current_version_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

	status: Mapped[str] = mapped_column(
		String(20), default=DocumentStatus.ACTIVE.value, nullable=False
	)

	# Audit columns
	created_by: Mapped[str] = mapped_column(String(100), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
	last_updated: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
	)
	deleted_by: Mapped[str | None] = mapped_column(String(100))
	deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	versions: Mapped[list["DocumentVersion"]] = relationship(
		"DocumentVersion",
		back_populates="document",
		order_by="DocumentVersion.version_number",
		lazy="raise",
	)

	__table_args__ = (
		Index("idx_documents_entity", "linked_entity_type", "linked_entity_id"),
		Index("idx_documents_status", "status"),
	)

	@property
	def is_deleted(self) -> bool:
		return self.status == DocumentStatus.DELETED.value

	def __repr__(self) -> str:
		return (
			f"Document(document_id={self.document_id!r}, "
			f"current_version_number={self.current_version_number}, status={self.status})"
		)


class DocumentVersion(Base):
	"""Immutable version of a document's content.

	The composite primary key rules out reusing a version number and the
	partial unique index allows a single latest version per document.
	"""
	__tablename__ = "document_versions"

	document_id: Mapped[str] = mapped_column(
		ForeignKey("documents.document_id", ondelete="CASCADE"), primary_key=True
	)
	version_number: Mapped[int] = mapped_column(Integer, primary_key=True)
	is_latest_version: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

	# Content location and integrity
	storage_ref: Mapped[str] = mapped_column(String(1024), nullable=False)
	content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
	encrypted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
	encryption_key_ref: Mapped[str | None] = mapped_column(String(64))

	# File information
	file_format: Mapped[str] = mapped_column(String(100), nullable=False)
	file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
	original_file_name: Mapped[str] = mapped_column(String(255), nullable=False)
	change_summary: Mapped[str | None] = mapped_column(Text)

	created_by: Mapped[str] = mapped_column(String(100), nullable=False)
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	document: Mapped["Document"] = relationship(
		"Document", back_populates="versions", lazy="raise"
	)

	__table_args__ = (
		Index(
			"uq_document_versions_latest",
			"document_id",
			unique=True,
			postgresql_where=text("is_latest_version"),
			sqlite_where=text("is_latest_version = 1"),
		),
	)

	def __repr__(self) -> str:
		return (
			f"DocumentVersion(document_id={self.document_id!r}, "
			f"version_number={self.version_number}, latest={self.is_latest_version})"
		)
