# (c) Copyright Datacraft, 2026
"""Document encryption service.

Content is encrypted with AES-256-GCM. Per-key secrets are never stored:
each key descriptor carries a random salt and the actual key is derived
from the master secret with PBKDF2-HMAC-SHA256. Rotating a key only adds
a new descriptor, so older versions remain readable through the key ref
recorded on them.
"""
import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from docvault.core.exceptions import CryptoError, IntegrityError
from docvault.core.utils.hash import sha256_hex
from docvault.core.utils.tz import utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "AES-256-GCM"
KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
SALT_SIZE = 16
DEFAULT_ITERATIONS = 390_000


@dataclass
class KeyDescriptor:
	"""Key material descriptor. Holds no secret."""
	key_ref: str
	salt: bytes
	algorithm: str = ALGORITHM
	iterations: int = DEFAULT_ITERATIONS
	created_at: datetime = field(default_factory=utc_now)


class CryptoEngine:
	"""Authenticated encryption and hashing for document content."""

	def __init__(
		self,
		master_secret: bytes | str | None,
		iterations: int = DEFAULT_ITERATIONS,
	):
		if isinstance(master_secret, str):
			master_secret = master_secret.encode()
		self._master_secret = master_secret or None
		self.iterations = iterations
		self._descriptors: dict[str, KeyDescriptor] = {}
		self._derived: dict[str, bytes] = {}

	@classmethod
	def from_settings(cls, settings) -> "CryptoEngine":
		secret = settings.encryption_key
		return cls(
			secret.get_secret_value() if secret else None,
			iterations=settings.kdf_iterations,
		)

	@staticmethod
	def digest(plaintext: bytes) -> str:
		"""SHA-256 of the plaintext, independent of any key."""
		return sha256_hex(plaintext)

	# --- Key management ---

	def create_key(self) -> KeyDescriptor:
		"""Create and register a fresh key descriptor."""
		descriptor = KeyDescriptor(
			key_ref=f"key-{secrets.token_hex(8)}",
			salt=os.urandom(SALT_SIZE),
			iterations=self.iterations,
		)
		self.register_key(descriptor)
		logger.info(f"Created encryption key {descriptor.key_ref}")
		return descriptor

	def register_key(self, descriptor: KeyDescriptor) -> None:
		self._descriptors[descriptor.key_ref] = descriptor

	def has_key(self, key_ref: str) -> bool:
		return key_ref in self._descriptors

	def _key_for(self, key_ref: str) -> bytes:
		if key_ref in self._derived:
			return self._derived[key_ref]

		if not self._master_secret:
			raise CryptoError("Encryption master secret is not configured")

		descriptor = self._descriptors.get(key_ref)
		if descriptor is None:
			raise CryptoError(f"Unknown encryption key: {key_ref}")
		if descriptor.algorithm != ALGORITHM:
			raise CryptoError(f"Unsupported algorithm {descriptor.algorithm} for key {key_ref}")
		if len(descriptor.salt) < SALT_SIZE:
			raise CryptoError(f"Malformed salt for key {key_ref}")

		kdf = PBKDF2HMAC(
			algorithm=hashes.SHA256(),
			length=KEY_SIZE,
			salt=descriptor.salt,
			iterations=descriptor.iterations,
		)
		key = kdf.derive(self._master_secret)
		self._derived[key_ref] = key
		return key

	# --- Cipher ---

	def encrypt(
		self,
		plaintext: bytes,
		key_ref: str,
		associated_data: bytes | None = None,
	) -> tuple[bytes, bytes, bytes]:
		"""Encrypt content.

		Returns:
			Tuple of (ciphertext, iv, auth_tag)
		"""
		aesgcm = AESGCM(self._key_for(key_ref))
		iv = os.urandom(NONCE_SIZE)
		try:
			sealed = aesgcm.encrypt(iv, plaintext, associated_data)
		except Exception as e:
			raise CryptoError(f"Encryption failed with key {key_ref}", e) from e
		return sealed[:-TAG_SIZE], iv, sealed[-TAG_SIZE:]

	def decrypt(
		self,
		ciphertext: bytes,
		iv: bytes,
		auth_tag: bytes,
		key_ref: str,
		associated_data: bytes | None = None,
	) -> bytes:
		"""Decrypt content, failing closed on any authentication error."""
		aesgcm = AESGCM(self._key_for(key_ref))
		if len(iv) != NONCE_SIZE or len(auth_tag) != TAG_SIZE:
			raise IntegrityError("Malformed IV or authentication tag")
		try:
			return aesgcm.decrypt(iv, ciphertext + auth_tag, associated_data)
		except InvalidTag as e:
			raise IntegrityError("Authentication failed: ciphertext or tag was altered") from e

	def seal(
		self,
		plaintext: bytes,
		key_ref: str,
		associated_data: bytes | None = None,
	) -> bytes:
		"""Encrypt into a single ``iv || tag || ciphertext`` blob."""
		ciphertext, iv, auth_tag = self.encrypt(plaintext, key_ref, associated_data)
		return iv + auth_tag + ciphertext

	def unseal(
		self,
		blob: bytes,
		key_ref: str,
		associated_data: bytes | None = None,
	) -> bytes:
		if len(blob) < NONCE_SIZE + TAG_SIZE:
			raise IntegrityError("Encrypted blob is truncated")
		iv = blob[:NONCE_SIZE]
		auth_tag = blob[NONCE_SIZE:NONCE_SIZE + TAG_SIZE]
		return self.decrypt(blob[NONCE_SIZE + TAG_SIZE:], iv, auth_tag, key_ref, associated_data)
