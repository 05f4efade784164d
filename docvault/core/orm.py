# (c) Copyright Datacraft, 2026
from docvault.core.features.audit.db.orm import AccessLogEntry
from docvault.core.features.documents.db.orm import Document, DocumentVersion
from docvault.core.features.encryption.db.orm import EncryptionKey

__all__ = [
	"AccessLogEntry",
	"Document",
	"DocumentVersion",
	"EncryptionKey",
]
