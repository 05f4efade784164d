# (c) Copyright Datacraft, 2026
"""Timezone helpers."""
from datetime import datetime, timezone


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


def as_naive_utc(value: datetime) -> datetime:
	"""Normalise a datetime to naive UTC.

	SQLite hands timestamps back without tzinfo, PostgreSQL with it; the
	canonical form keeps both comparable.
	"""
	if value.tzinfo is not None:
		value = value.astimezone(timezone.utc).replace(tzinfo=None)
	return value
