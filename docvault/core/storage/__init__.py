# (c) Copyright Datacraft, 2026
"""Storage backend abstraction layer."""
from .base import DeleteOutcome, ObjectNotFoundError, StorageBackend, StorageBackendType
from .router import StorageRouter, make_ref, parse_ref

__all__ = [
	"DeleteOutcome",
	"ObjectNotFoundError",
	"StorageBackend",
	"StorageBackendType",
	"StorageRouter",
	"make_ref",
	"parse_ref",
]
