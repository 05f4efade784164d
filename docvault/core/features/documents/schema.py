# (c) Copyright Datacraft, 2026
"""Document repository Pydantic schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docvault.core.types import DocumentAction, DocumentType, LinkedEntityType


class Actor(BaseModel):
	"""Authenticated caller with resolved role names."""
	user_id: str = Field(min_length=1)
	roles: list[str] = []
	ip_address: str | None = None
	user_agent: str | None = None


def _clean_names(values: list[str] | None) -> list[str]:
	if not values:
		return []
	seen = []
	for value in values:
		value = value.strip()
		if value and value not in seen:
			seen.append(value)
	return seen


class DocumentUploadRequest(BaseModel):
	"""Metadata of a new document. The content travels separately."""
	linked_entity_type: LinkedEntityType
	linked_entity_id: str = Field(min_length=1, max_length=100)
	document_name: str = Field(min_length=1, max_length=100)
	document_type: DocumentType
	file_format: str = Field(min_length=1)
	original_file_name: str = Field(min_length=1, max_length=255)
	confidential_flag: bool = False
	access_permissions: list[str] | None = None
	remarks_tags: list[str] = []

	@field_validator("linked_entity_id", "document_name", "original_file_name")
	@classmethod
	def strip_text(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("must not be blank")
		return value

	@field_validator("access_permissions", "remarks_tags")
	@classmethod
	def clean_names(cls, value: list[str] | None) -> list[str] | None:
		if value is None:
			return None
		return _clean_names(value)


class BulkUploadItem(BaseModel):
	request: DocumentUploadRequest
	content: bytes


class DocumentMetadataUpdate(BaseModel):
	"""Metadata changes. Fields left as None are not touched."""
	document_name: str | None = Field(default=None, min_length=1, max_length=100)
	document_type: DocumentType | None = None
	confidential_flag: bool | None = None
	access_permissions: list[str] | None = None
	remarks_tags: list[str] | None = None

	@field_validator("access_permissions", "remarks_tags")
	@classmethod
	def clean_names(cls, value: list[str] | None) -> list[str] | None:
		if value is None:
			return None
		return _clean_names(value)


class DocumentInfo(BaseModel):
	document_id: str
	linked_entity_type: LinkedEntityType
	linked_entity_id: str
	document_name: str
	document_type: DocumentType
	confidential_flag: bool
	access_permissions: list[str]
	remarks_tags: list[str] = []
	original_file_name: str
	file_format: str
	current_version_number: int
	status: str
	created_by: str
	created_at: datetime
	last_updated: datetime
	deleted_by: str | None = None
	deleted_at: datetime | None = None

	model_config = ConfigDict(from_attributes=True)


class VersionInfo(BaseModel):
	document_id: str
	version_number: int
	is_latest_version: bool
	storage_ref: str
	content_hash: str
	encrypted: bool
	encryption_key_ref: str | None = None
	file_format: str
	file_size_bytes: int
	original_file_name: str
	change_summary: str | None = None
	created_by: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class UploadResult(BaseModel):
	document: DocumentInfo
	version: VersionInfo


class RetrievedDocument(BaseModel):
	document: DocumentInfo
	version: VersionInfo
	content: bytes


class CleanupReport(BaseModel):
	"""Outcome of best-effort blob cleanup across backends."""
	local_files_deleted: int = 0
	remote_files_deleted: int = 0
	not_found: int = 0
	errors: list[str] = []

	def merge(self, other: "CleanupReport") -> "CleanupReport":
		return CleanupReport(
			local_files_deleted=self.local_files_deleted + other.local_files_deleted,
			remote_files_deleted=self.remote_files_deleted + other.remote_files_deleted,
			not_found=self.not_found + other.not_found,
			errors=self.errors + other.errors,
		)


class DeleteResult(BaseModel):
	document: DocumentInfo
	cleanup: CleanupReport


class EntityDeleteResult(BaseModel):
	documents_deleted: list[str] = []
	failed: dict[str, str] = {}
	cleanup: CleanupReport = Field(default_factory=CleanupReport)


class BulkUploadFailure(BaseModel):
	index: int
	document_name: str
	reason: str


class BulkUploadResult(BaseModel):
	succeeded: list[DocumentInfo] = []
	failed: list[BulkUploadFailure] = []


class VersionPage(BaseModel):
	items: list[VersionInfo]
	total: int
	current_version: int
	next_page_token: str | None = None


class VersionDiff(BaseModel):
	"""Metadata-level comparison of two versions."""
	document_id: str
	from_version: int
	to_version: int
	content_changed: bool
	size_delta_bytes: int
	format_changed: bool
	from_format: str
	to_format: str
	encryption_changed: bool
	from_author: str
	to_author: str
	from_change_summary: str | None = None
	to_change_summary: str | None = None
	days_between: int


class IntegrityReport(BaseModel):
	document_id: str
	checked: int = 0
	corrupted: list[int] = []
	missing: list[int] = []

	@property
	def ok(self) -> bool:
		return not self.corrupted and not self.missing


class DocumentListPage(BaseModel):
	items: list[DocumentInfo]
	total: int
	page: int
	page_size: int


class DocumentPermissions(BaseModel):
	document_id: str
	actions: list[DocumentAction]

	def can(self, action: DocumentAction) -> bool:
		return action in self.actions


class EntityDocumentStats(BaseModel):
	"""Totals over the documents of one linked entity the caller may view.

	Sizes cover the latest version of each active document.
	"""
	linked_entity_type: LinkedEntityType
	linked_entity_id: str
	total_documents: int = 0
	by_type: dict[str, int] = {}
	by_status: dict[str, int] = {}
	total_size_bytes: int = 0
	average_size_bytes: float = 0.0
	last_uploaded_at: datetime | None = None
