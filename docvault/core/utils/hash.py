# (c) Copyright Datacraft, 2026
"""Utility for calculating SHA-256 content hashes."""
import hashlib


def sha256_hex(data: bytes) -> str:
	"""
	Calculate the SHA-256 hash of a byte string.

	Args:
		data: Content to hash.

	Returns:
		The hex-encoded SHA-256 digest.
	"""
	return hashlib.sha256(data).hexdigest()
