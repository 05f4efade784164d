# (c) Copyright Datacraft, 2026
"""Tests for access log integrity and cryptographic chaining."""
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import update

from docvault.core.features.audit.db.api import AccessLogDB, AuditLogger
from docvault.core.features.audit.db.orm import AccessLogEntry
from docvault.core.features.audit.security import calculate_entry_hash, verify_audit_chain
from docvault.core.types import AccessDecision, DocumentAction


def chained_entries(count: int) -> list[AccessLogEntry]:
	entries = []
	previous = None
	for n in range(count):
		entry = AccessLogEntry(
			id=n + 1,
			document_id="LDR-20260101-0001",
			actor="officer-1",
			actor_roles=["Legal Officer"],
			action="VIEW",
			decision="ALLOWED",
			succeeded=True,
			timestamp=datetime(2026, 1, n + 1),
			previous_hash=previous,
		)
		entry.entry_hash = calculate_entry_hash(entry, previous)
		previous = entry.entry_hash
		entries.append(entry)
	return entries


def mock_session(entries) -> AsyncMock:
	session = AsyncMock()
	result_mock = MagicMock()
	result_mock.scalars.return_value.all.return_value = entries
	session.execute.return_value = result_mock
	return session


@pytest.mark.asyncio
async def test_verify_audit_chain_valid():
	"""A valid chain of three entries passes verification."""
	success, error = await verify_audit_chain(mock_session(chained_entries(3)), "LDR-20260101-0001")
	assert success is True
	assert error is None


@pytest.mark.asyncio
async def test_verify_audit_chain_broken():
	"""An entry pointing at the wrong predecessor fails verification."""
	entries = chained_entries(2)
	entries[1].previous_hash = "wrong_hash"

	success, error = await verify_audit_chain(mock_session(entries), "LDR-20260101-0001")
	assert success is False
	assert "Audit chain broken" in error


@pytest.mark.asyncio
async def test_verify_audit_chain_modified_entry():
	entries = chained_entries(3)
	entries[1].decision = "DENIED"

	success, error = await verify_audit_chain(mock_session(entries), "LDR-20260101-0001")
	assert success is False
	assert "modified" in error


def test_hash_ignores_role_order():
	entry, = chained_entries(1)
	original_hash = entry.entry_hash
	entry.actor_roles = ["Compliance", "Legal Officer"]
	reordered_hash = calculate_entry_hash(entry, None)
	entry.actor_roles = ["Legal Officer", "Compliance"]
	assert calculate_entry_hash(entry, None) == reordered_hash
	assert reordered_hash != original_hash


@pytest.mark.asyncio
async def test_recorded_entries_form_a_chain(session_factory):
	audit = AuditLogger(session_factory)
	for action in (DocumentAction.UPDATE, DocumentAction.VIEW, DocumentAction.DOWNLOAD):
		await audit.record("officer-1", ["Legal Officer"], action, AccessDecision.ALLOWED,
			document_id="LDR-20260101-0001")
	other = await audit.record("officer-1", ["Legal Officer"], DocumentAction.VIEW,
		AccessDecision.ALLOWED, document_id="LDR-20260101-0002")

	assert other.previous_hash is None
	async with session_factory() as session:
		db = AccessLogDB(session)
		assert await db.verify_chain("LDR-20260101-0001") == (True, None)
		assert await db.verify_chain("LDR-20260101-0002") == (True, None)
		entries = await db.get_entries("LDR-20260101-0001")
	assert [e.action for e in entries] == ["DOWNLOAD", "VIEW", "UPDATE"]
	assert entries[0].previous_hash == entries[1].entry_hash
	assert entries[2].previous_hash is None


@pytest.mark.asyncio
async def test_entries_without_document_have_their_own_chain(session_factory):
	audit = AuditLogger(session_factory)
	first = await audit.record("agent-1", ["Field Agent"], DocumentAction.UPDATE,
		AccessDecision.DENIED, reason="Access denied")
	await audit.record("officer-1", ["Legal Officer"], DocumentAction.VIEW,
		AccessDecision.ALLOWED, document_id="LDR-20260101-0001")
	second = await audit.record("admin-1", ["Admin"], DocumentAction.UPDATE,
		AccessDecision.ALLOWED, reason="Encryption key rotated")

	assert first.previous_hash is None
	assert second.previous_hash == first.entry_hash
	async with session_factory() as session:
		assert await AccessLogDB(session).verify_chain(None) == (True, None)


@pytest.mark.asyncio
async def test_tampered_row_detected(session_factory):
	audit = AuditLogger(session_factory)
	for actor in ("officer-1", "officer-2", "officer-3"):
		await audit.record(actor, ["Legal Officer"], DocumentAction.VIEW,
			AccessDecision.ALLOWED, document_id="LDR-20260101-0001")

	async with session_factory() as session:
		await session.execute(
			update(AccessLogEntry)
			.where(AccessLogEntry.actor == "officer-2")
			.values(reason="nothing to see")
		)
		await session.commit()

	async with session_factory() as session:
		success, error = await AccessLogDB(session).verify_chain("LDR-20260101-0001")
	assert success is False
	assert "modified" in error
