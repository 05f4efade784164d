# (c) Copyright Datacraft, 2026
"""Document id and storage key naming."""
import re
from datetime import datetime

from docvault.core.types import LinkedEntityType
from docvault.core.utils.tz import utc_now

ENTITY_FOLDERS = {
	LinkedEntityType.BORROWER: "borrower",
	LinkedEntityType.LOAN_ACCOUNT: "loan-account",
	LinkedEntityType.CASE: "legal-case",
}

ENCRYPTED_SUFFIX = ".enc"
SEQUENCE_WIDTH = 4

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9.-]")


def entity_folder(entity_type: LinkedEntityType | str) -> str:
	try:
		return ENTITY_FOLDERS[LinkedEntityType(entity_type)]
	except ValueError:
		return str(entity_type).strip().lower().replace(" ", "-")


def sanitize_file_name(file_name: str) -> str:
	"""Replace anything but letters, digits, dots and dashes with ``_``."""
	name = file_name.replace("\\", "/").rsplit("/", 1)[-1]
	name = _UNSAFE_CHARS.sub("_", name).lstrip(".")
	return name or "file"


def document_id_stem(prefix: str, day: datetime | None = None) -> str:
	day = day or utc_now()
	return f"{prefix}-{day:%Y%m%d}-"


def format_document_id(stem: str, sequence: int) -> str:
	return f"{stem}{sequence:0{SEQUENCE_WIDTH}d}"


def parse_sequence(document_id: str) -> int:
	try:
		return int(document_id.rsplit("-", 1)[-1])
	except ValueError:
		return 0


def build_storage_key(
	entity_type: LinkedEntityType | str,
	entity_id: str,
	document_id: str,
	version_number: int,
	original_file_name: str,
	encrypted: bool,
	now: datetime | None = None,
) -> str:
	"""Key of one version blob.

	``<entity>/<entity id>/<YYYY>/<MM>/<DD>/<document id>/v<N>_<timestamp>_<name>[.enc]``
	"""
	now = now or utc_now()
	name = (
		f"v{version_number}_{now:%Y%m%dT%H%M%S%f}_"
		f"{sanitize_file_name(original_file_name)}"
	)
	if encrypted:
		name += ENCRYPTED_SUFFIX
	return "/".join([
		entity_folder(entity_type),
		sanitize_file_name(entity_id),
		f"{now:%Y}",
		f"{now:%m}",
		f"{now:%d}",
		document_id,
		name,
	])
