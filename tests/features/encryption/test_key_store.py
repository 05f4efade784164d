# (c) Copyright Datacraft, 2026
"""Tests for persisted encryption keys."""
import pytest

from docvault.core.exceptions import CryptoError
from docvault.core.features.encryption.db.api import KeyStore
from docvault.core.services.encryption import CryptoEngine


@pytest.mark.asyncio
async def test_first_key_created_on_demand(db_session, crypto):
	store = KeyStore(db_session, crypto)
	assert await store.get_active_key() is None

	key_ref = await store.active_key_ref()
	await db_session.commit()

	assert crypto.has_key(key_ref)
	assert await store.active_key_ref() == key_ref
	keys = await store.list_keys()
	assert [k.key_ref for k in keys] == [key_ref]
	assert keys[0].kdf_iterations == crypto.iterations


@pytest.mark.asyncio
async def test_rotate_retires_active_key(db_session, crypto):
	store = KeyStore(db_session, crypto)
	old_ref = await store.active_key_ref()

	new_key, retired = await store.rotate()
	await db_session.commit()

	assert retired == [old_ref]
	assert new_key.is_active is True
	assert (await store.get_active_key()).key_ref == new_key.key_ref
	old = await store.get_key(old_ref)
	await db_session.refresh(old)
	assert old.is_active is False
	assert old.rotated_at is not None


@pytest.mark.asyncio
async def test_persisted_key_loads_into_new_engine(session_factory, settings, crypto):
	async with session_factory() as session:
		key_ref = await KeyStore(session, crypto).active_key_ref()
		await session.commit()
	blob = crypto.seal(b"sealed content", key_ref, associated_data=b"LDR-20260101-0001")

	restarted = CryptoEngine.from_settings(settings)
	assert not restarted.has_key(key_ref)
	async with session_factory() as session:
		await KeyStore(session, restarted).ensure_loaded(key_ref)
	assert restarted.unseal(blob, key_ref, associated_data=b"LDR-20260101-0001") == b"sealed content"


@pytest.mark.asyncio
async def test_unknown_key_ref(db_session, crypto):
	with pytest.raises(CryptoError):
		await KeyStore(db_session, crypto).ensure_loaded("key-missing")
