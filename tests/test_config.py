# (c) Copyright Datacraft, 2026
"""Tests for settings and logging configuration."""
import logging

import pytest

from docvault.core.config import Settings, get_settings, reset_settings
from docvault.core.log_config import configure_logging
from docvault.core.storage import StorageBackendType


@pytest.fixture(autouse=True)
def clean_settings():
	reset_settings()
	yield
	reset_settings()


def test_defaults(monkeypatch):
	monkeypatch.delenv("DOCVAULT_STORAGE_BACKEND", raising=False)
	settings = Settings(_env_file=None)
	assert settings.storage_backend == StorageBackendType.LOCAL
	assert settings.encrypt_all_documents is True
	assert settings.max_file_size_bytes == 10 * 1024 * 1024
	assert settings.document_id_prefix == "LDR"
	assert "application/pdf" in settings.allowed_file_types
	assert settings.privileged_roles == ["Legal Officer", "Admin", "Compliance"]


def test_async_db_url():
	settings = Settings(_env_file=None, db_url="postgresql://u:p@db:5432/docvault")
	assert settings.async_db_url == "postgresql+asyncpg://u:p@db:5432/docvault"
	sqlite = Settings(_env_file=None, db_url="sqlite+aiosqlite:///tmp/x.db")
	assert sqlite.async_db_url == "sqlite+aiosqlite:///tmp/x.db"


def test_environment_overrides(monkeypatch):
	monkeypatch.setenv("DOCVAULT_STORAGE_BACKEND", "s3")
	monkeypatch.setenv("DOCVAULT_S3_BUCKET", "legal-docs")
	monkeypatch.setenv("DOCVAULT_ENCRYPTION_KEY", "from-env")
	monkeypatch.setenv("DOCVAULT_MAX_FILE_SIZE_MB", "25")

	settings = get_settings()
	assert settings.storage_backend == StorageBackendType.S3
	assert settings.s3_bucket == "legal-docs"
	assert settings.encryption_key.get_secret_value() == "from-env"
	assert "from-env" not in repr(settings)
	assert settings.max_file_size_mb == 25
	assert get_settings() is settings


def test_configure_logging_from_yaml(tmp_path):
	config = tmp_path / "logging.yaml"
	config.write_text(
		"version: 1\n"
		"disable_existing_loggers: false\n"
		"loggers:\n"
		"  docvault.test:\n"
		"    level: WARNING\n"
	)
	assert configure_logging(config) is True
	assert logging.getLogger("docvault.test").level == logging.WARNING


def test_configure_logging_missing_file(tmp_path):
	assert configure_logging(tmp_path / "missing.yaml") is False
