# (c) Copyright Datacraft, 2026
from .orm import Document, DocumentVersion

__all__ = [
	"Document",
	"DocumentVersion",
]
