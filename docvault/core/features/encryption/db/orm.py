# (c) Copyright Datacraft, 2026
"""Encryption ORM models."""
from datetime import datetime

from sqlalchemy import String, Integer, Boolean, LargeBinary, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from docvault.core.db.base import Base
from docvault.core.utils.tz import utc_now


class EncryptionKey(Base):
	"""Key descriptor. The key itself is derived from the master secret."""
	__tablename__ = "encryption_keys"

	key_ref: Mapped[str] = mapped_column(String(64), primary_key=True)
	algorithm: Mapped[str] = mapped_column(String(50), default="AES-256-GCM", nullable=False)
	salt: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
	kdf_iterations: Mapped[int] = mapped_column(Integer, nullable=False)
	is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

	# Timestamps
	created_at: Mapped[datetime] = mapped_column(
		DateTime(timezone=True), default=utc_now, nullable=False
	)
	rotated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

	__table_args__ = (
		Index("idx_encryption_keys_active", "is_active"),
	)

	def __repr__(self) -> str:
		return f"EncryptionKey(key_ref={self.key_ref!r}, is_active={self.is_active})"
