# (c) Copyright Datacraft, 2026
from .orm import EncryptionKey

__all__ = [
	"EncryptionKey",
]
