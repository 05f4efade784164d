# (c) Copyright Datacraft, 2026
"""Logging setup from a YAML dictConfig file."""
import logging
import os
from logging.config import dictConfig
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


def configure_logging(path: Path | str | None = None) -> bool:
	"""Apply the logging configuration found at ``path``.

	Falls back to the ``DOCVAULT_LOGGING_CFG`` environment variable and
	then to the ``log_config`` setting. Returns True when a file was
	loaded; a missing file leaves the logging setup untouched.
	"""
	if path is None:
		path = os.environ.get("DOCVAULT_LOGGING_CFG")
	if path is None:
		from docvault.core.config import get_settings
		path = get_settings().log_config
	if path is None:
		return False

	logging_config_path = Path(path)
	if not (logging_config_path.exists() and logging_config_path.is_file()):
		logger.debug(f"Logging config {logging_config_path} not found, keeping defaults")
		return False

	with open(logging_config_path, "r") as stream:
		config = yaml.safe_load(stream)

	dictConfig(config)
	logger.info(f"Logging configured from {logging_config_path}")
	return True
