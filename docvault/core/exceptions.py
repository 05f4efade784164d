# (c) Copyright Datacraft, 2026
"""Error taxonomy of the document repository."""


class DocumentRepositoryError(Exception):
	"""Base class for all document repository errors."""


class ValidationError(DocumentRepositoryError):
	"""Malformed input. Surfaced to the caller, never retried."""


class NotFoundError(DocumentRepositoryError):
	"""Unknown document or version."""


class AccessDeniedError(DocumentRepositoryError):
	"""Authorization failure. Always audited before being raised."""

	def __init__(self, reason: str, document_id: str | None = None):
		self.reason = reason
		self.document_id = document_id
		super().__init__(reason)


class VersionConflictError(DocumentRepositoryError):
	"""Concurrent write race on the same document.

	The caller may retry the operation with fresh state.
	"""

	def __init__(
		self,
		document_id: str,
		expected_version: int | None = None,
		actual_version: int | None = None,
		message: str | None = None,
	):
		self.document_id = document_id
		self.expected_version = expected_version
		self.actual_version = actual_version
		if message is None:
			message = (
				f"Version conflict on {document_id}: expected v{expected_version}, "
				f"found v{actual_version}"
			)
		super().__init__(message)


class IntegrityError(DocumentRepositoryError):
	"""Hash or authentication tag mismatch. Content is never returned."""

	def __init__(self, message: str, document_id: str | None = None, version_number: int | None = None):
		self.document_id = document_id
		self.version_number = version_number
		super().__init__(message)


class CryptoError(DocumentRepositoryError):
	"""Key material missing or malformed, or cipher failure."""

	def __init__(self, message: str, cause: Exception | None = None):
		self.cause = cause
		super().__init__(message)


class StorageError(DocumentRepositoryError):
	"""Storage backend failure.

	``retryable`` is set for transient failures (timeouts, throttling)
	which the caller may retry with backoff.
	"""

	def __init__(self, message: str, cause: Exception | None = None, retryable: bool = False):
		self.cause = cause
		self.retryable = retryable
		super().__init__(message)
