# (c) Copyright Datacraft, 2026
"""Access log Pydantic schemas."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from docvault.core.types import AccessDecision, DocumentAction


class AccessLogEntryInfo(BaseModel):
	id: int
	document_id: str | None = None
	actor: str
	actor_roles: list[str] = []
	action: DocumentAction
	decision: AccessDecision
	reason: str | None = None
	succeeded: bool
	version_number: int | None = None
	ip_address: str | None = None
	user_agent: str | None = None
	timestamp: datetime
	entry_hash: str

	model_config = ConfigDict(from_attributes=True)


class AccessLogPage(BaseModel):
	items: list[AccessLogEntryInfo]
	total: int
	page: int
	page_size: int

	@property
	def num_pages(self) -> int:
		return (self.total + self.page_size - 1) // self.page_size if self.page_size else 0


class AccessStats(BaseModel):
	"""Aggregated access statistics of one document."""
	document_id: str
	total_accesses: int = 0
	unique_users: int = 0
	denied_count: int = 0
	by_action: dict[str, int] = Field(default_factory=dict)
	last_accessed_at: datetime | None = None
	most_active_user: str | None = None
