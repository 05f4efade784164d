# (c) Copyright Datacraft, 2026
"""Database operations for encryption key descriptors."""
import logging
from typing import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.exceptions import CryptoError
from docvault.core.services.encryption import CryptoEngine, KeyDescriptor
from docvault.core.utils.tz import utc_now

from .orm import EncryptionKey

logger = logging.getLogger(__name__)


def _to_descriptor(model: EncryptionKey) -> KeyDescriptor:
	return KeyDescriptor(
		key_ref=model.key_ref,
		salt=model.salt,
		algorithm=model.algorithm,
		iterations=model.kdf_iterations,
		created_at=model.created_at,
	)


class KeyStore:
	"""Persists key descriptors and keeps the crypto engine in sync."""

	def __init__(self, session: AsyncSession, crypto: CryptoEngine):
		self.session = session
		self.crypto = crypto

	async def get_key(self, key_ref: str) -> EncryptionKey | None:
		return await self.session.get(EncryptionKey, key_ref)

	async def list_keys(self) -> Sequence[EncryptionKey]:
		stmt = select(EncryptionKey).order_by(EncryptionKey.created_at.desc())
		result = await self.session.execute(stmt)
		return result.scalars().all()

	async def get_active_key(self) -> EncryptionKey | None:
		stmt = (
			select(EncryptionKey)
			.where(EncryptionKey.is_active.is_(True))
			.order_by(EncryptionKey.created_at.desc())
			.limit(1)
		)
		result = await self.session.execute(stmt)
		return result.scalar_one_or_none()

	async def _create_key(self) -> EncryptionKey:
		descriptor = self.crypto.create_key()
		model = EncryptionKey(
			key_ref=descriptor.key_ref,
			algorithm=descriptor.algorithm,
			salt=descriptor.salt,
			kdf_iterations=descriptor.iterations,
			is_active=True,
			created_at=descriptor.created_at,
		)
		self.session.add(model)
		await self.session.flush()
		return model

	async def active_key_ref(self) -> str:
		"""Key ref new content is encrypted with, creating the first key on demand."""
		model = await self.get_active_key()
		if model is None:
			model = await self._create_key()
			logger.info(f"Initialised first encryption key {model.key_ref}")
		elif not self.crypto.has_key(model.key_ref):
			self.crypto.register_key(_to_descriptor(model))
		return model.key_ref

	async def ensure_loaded(self, key_ref: str) -> None:
		"""Make a persisted key usable by the crypto engine."""
		if self.crypto.has_key(key_ref):
			return
		model = await self.get_key(key_ref)
		if model is None:
			raise CryptoError(f"Unknown encryption key: {key_ref}")
		self.crypto.register_key(_to_descriptor(model))

	async def rotate(self) -> tuple[EncryptionKey, list[str]]:
		"""Retire the active key(s) and create a new active one.

		Returns:
			Tuple of (new key, retired key refs)
		"""
		result = await self.session.execute(
			select(EncryptionKey.key_ref).where(EncryptionKey.is_active.is_(True))
		)
		retired = list(result.scalars().all())
		if retired:
			await self.session.execute(
				update(EncryptionKey)
				.where(EncryptionKey.key_ref.in_(retired))
				.values(is_active=False, rotated_at=utc_now())
			)
		model = await self._create_key()
		logger.info(f"Rotated encryption key to {model.key_ref}, retired {retired}")
		return model, retired
