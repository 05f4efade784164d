# (c) Copyright Datacraft, 2026
"""Access log ORM model."""
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docvault.core.db.base import Base
from docvault.core.utils.tz import utc_now


class AccessLogEntry(Base):
	"""Append-only record of one access attempt.

	Entries of the same document form a hash chain through
	``previous_hash``/``entry_hash``; rows are never updated or deleted.
	"""
	__tablename__ = "document_access_log"

	id: Mapped[int] = mapped_column(
		BigInteger().with_variant(Integer, "sqlite"),
		primary_key=True,
		autoincrement=True,
	)
	# Nullable: a denied upload has no document yet
	document_id: Mapped[str | None] = mapped_column(String(32))

	actor: Mapped[str] = mapped_column(String(100), nullable=False)
	actor_roles: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
	action: Mapped[str] = mapped_column(String(20), nullable=False)
	decision: Mapped[str] = mapped_column(String(10), nullable=False)
	reason: Mapped[str | None] = mapped_column(Text)
	succeeded: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
	version_number: Mapped[int | None] = mapped_column(Integer)

	# Request context
	ip_address: Mapped[str | None] = mapped_column(String(45))
	user_agent: Mapped[str | None] = mapped_column(String(500))

	timestamp: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)

	# Tamper evidence
	previous_hash: Mapped[str | None] = mapped_column(String(64))
	entry_hash: Mapped[str] = mapped_column(String(64), nullable=False)

	__table_args__ = (
		Index("idx_access_log_document", "document_id", "id"),
		Index("idx_access_log_actor", "actor"),
		Index("idx_access_log_timestamp", "timestamp"),
	)

	def __repr__(self) -> str:
		return (
			f"AccessLogEntry(id={self.id}, document_id={self.document_id!r}, "
			f"action={self.action}, decision={self.decision})"
		)
