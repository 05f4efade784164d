# (c) Copyright Datacraft, 2026
"""Access log writer and queries."""
import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.core.features.audit.schema import AccessLogEntryInfo, AccessLogPage, AccessStats
from docvault.core.features.audit.security import (
	calculate_entry_hash,
	last_entry_hash,
	verify_audit_chain,
)
from docvault.core.services.locks import KeyedLocks
from docvault.core.types import AccessDecision, DocumentAction
from docvault.core.utils.tz import utc_now

from .orm import AccessLogEntry

logger = logging.getLogger(__name__)

# Chain key of entries that have no document, e.g. a denied upload
NO_DOCUMENT_CHAIN = ""


class AuditLogger:
	"""Appends hash-chained access log entries.

	Each entry is written and committed in its own session, so the trail
	survives a rollback of the operation it describes. Appends to the same
	document chain are serialised; different documents never contend.
	"""

	def __init__(self, session_factory: async_sessionmaker):
		self._session_factory = session_factory
		self._locks = KeyedLocks()

	async def record(
		self,
		actor: str,
		actor_roles: Iterable[str],
		action: DocumentAction,
		decision: AccessDecision,
		document_id: str | None = None,
		reason: str | None = None,
		succeeded: bool = True,
		version_number: int | None = None,
		ip_address: str | None = None,
		user_agent: str | None = None,
	) -> AccessLogEntry:
		entry = AccessLogEntry(
			document_id=document_id,
			actor=actor,
			actor_roles=list(actor_roles),
			action=action.value,
			decision=decision.value,
			reason=reason,
			succeeded=succeeded,
			version_number=version_number,
			ip_address=ip_address,
			user_agent=user_agent,
			timestamp=utc_now(),
		)

		async with self._locks.hold(document_id or NO_DOCUMENT_CHAIN):
			async with self._session_factory() as session:
				previous = await last_entry_hash(session, document_id)
				entry.previous_hash = previous
				entry.entry_hash = calculate_entry_hash(entry, previous)
				session.add(entry)
				await session.commit()

		if decision == AccessDecision.DENIED:
			logger.warning(
				f"Access DENIED: {actor} {action.value} {document_id or '<new document>'}: {reason}"
			)
		else:
			logger.debug(f"Access logged: {actor} {action.value} {document_id} succeeded={succeeded}")
		return entry


class AccessLogDB:
	"""Read side of the access log."""

	def __init__(self, session: AsyncSession):
		self.session = session

	async def count(self, document_id: str) -> int:
		result = await self.session.execute(
			select(func.count(AccessLogEntry.id)).where(AccessLogEntry.document_id == document_id)
		)
		return result.scalar_one()

	async def get_entries(
		self,
		document_id: str,
		decision: AccessDecision | None = None,
		limit: int = 50,
		offset: int = 0,
	) -> list[AccessLogEntry]:
		stmt = select(AccessLogEntry).where(AccessLogEntry.document_id == document_id)
		if decision is not None:
			stmt = stmt.where(AccessLogEntry.decision == decision.value)
		stmt = stmt.order_by(AccessLogEntry.id.desc()).limit(limit).offset(offset)
		result = await self.session.execute(stmt)
		return list(result.scalars().all())

	async def get_page(self, document_id: str, page: int, page_size: int) -> AccessLogPage:
		"""Newest entries first."""
		entries = await self.get_entries(
			document_id, limit=page_size, offset=(page - 1) * page_size
		)
		return AccessLogPage(
			items=[AccessLogEntryInfo.model_validate(e) for e in entries],
			total=await self.count(document_id),
			page=page,
			page_size=page_size,
		)

	async def get_stats(self, document_id: str) -> AccessStats:
		by_doc = AccessLogEntry.document_id == document_id

		totals = await self.session.execute(
			select(
				func.count(AccessLogEntry.id),
				func.count(func.distinct(AccessLogEntry.actor)),
				func.max(AccessLogEntry.timestamp),
			).where(by_doc)
		)
		total, unique_users, last_accessed_at = totals.one()

		actions = await self.session.execute(
			select(AccessLogEntry.action, func.count(AccessLogEntry.id))
			.where(by_doc)
			.group_by(AccessLogEntry.action)
		)
		by_action = {action: count for action, count in actions.all()}

		denied = await self.session.execute(
			select(func.count(AccessLogEntry.id)).where(
				by_doc, AccessLogEntry.decision == AccessDecision.DENIED.value
			)
		)

		top_actor = await self.session.execute(
			select(AccessLogEntry.actor, func.count(AccessLogEntry.id).label("n"))
			.where(by_doc)
			.group_by(AccessLogEntry.actor)
			.order_by(func.count(AccessLogEntry.id).desc(), AccessLogEntry.actor)
			.limit(1)
		)
		most_active = top_actor.first()

		return AccessStats(
			document_id=document_id,
			total_accesses=total,
			unique_users=unique_users,
			denied_count=denied.scalar_one(),
			by_action=by_action,
			last_accessed_at=last_accessed_at,
			most_active_user=most_active[0] if most_active else None,
		)

	async def verify_chain(self, document_id: str | None) -> tuple[bool, str | None]:
		return await verify_audit_chain(self.session, document_id)
