# (c) Copyright Datacraft, 2026
"""Cryptographic verification for the access log."""
import json
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.core.features.audit.db.orm import AccessLogEntry
from docvault.core.utils.hash import sha256_hex
from docvault.core.utils.tz import as_naive_utc

logger = logging.getLogger(__name__)


def calculate_entry_hash(entry: AccessLogEntry, previous_hash: Optional[str]) -> str:
	"""
	Calculate the SHA-256 hash of an access log entry.

	The canonical form is sorted-key JSON so the hash does not depend on
	the database's text representation of the row.
	"""
	payload = {
		"timestamp": as_naive_utc(entry.timestamp).isoformat() if entry.timestamp else None,
		"document_id": entry.document_id,
		"actor": entry.actor,
		"actor_roles": sorted(entry.actor_roles or []),
		"action": entry.action,
		"decision": entry.decision,
		"reason": entry.reason,
		"succeeded": bool(entry.succeeded),
		"version_number": entry.version_number,
		"ip_address": entry.ip_address,
		"user_agent": entry.user_agent,
		"previous_hash": previous_hash,
	}
	data = json.dumps(payload, sort_keys=True, separators=(",", ":"))
	return sha256_hex(data.encode())


def _chain_filter(document_id: str | None):
	if document_id is None:
		return AccessLogEntry.document_id.is_(None)
	return AccessLogEntry.document_id == document_id


async def last_entry_hash(session: AsyncSession, document_id: str | None) -> str | None:
	stmt = (
		select(AccessLogEntry.entry_hash)
		.where(_chain_filter(document_id))
		.order_by(AccessLogEntry.id.desc())
		.limit(1)
	)
	result = await session.execute(stmt)
	return result.scalar_one_or_none()


async def verify_audit_chain(
	session: AsyncSession,
	document_id: str | None,
) -> tuple[bool, Optional[str]]:
	"""
	Verify the hash chain of one document's access log.
	Returns (success, error_message).
	"""
	stmt = (
		select(AccessLogEntry)
		.where(_chain_filter(document_id))
		.order_by(AccessLogEntry.id.asc())
	)
	result = await session.execute(stmt)
	entries = result.scalars().all()

	expected_previous_hash = None

	for entry in entries:
		if entry.previous_hash != expected_previous_hash:
			msg = (
				f"Audit chain broken at entry {entry.id}: expected previous_hash "
				f"{expected_previous_hash}, got {entry.previous_hash}"
			)
			logger.error(msg)
			return False, msg

		if calculate_entry_hash(entry, entry.previous_hash) != entry.entry_hash:
			msg = f"Audit entry {entry.id} was modified after it was written"
			logger.error(msg)
			return False, msg

		expected_previous_hash = entry.entry_hash

	return True, None
