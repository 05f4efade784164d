# (c) Copyright Datacraft, 2026
"""Encryption Pydantic schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class KeyInfo(BaseModel):
	"""Encryption key descriptor, without any secret."""
	key_ref: str
	algorithm: str
	kdf_iterations: int
	is_active: bool
	created_at: datetime | None = None
	rotated_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class RotateKeyResponse(BaseModel):
	"""Response from key rotation."""
	new_key: KeyInfo
	retired_key_refs: list[str] = []
