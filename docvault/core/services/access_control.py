# (c) Copyright Datacraft, 2026
"""Role and confidentiality based access decisions.

The evaluator is a pure function of the actor's roles, the requested
action and the document's ``confidential_flag``/``access_permissions``.
It never touches the database or the audit log; callers forward every
decision to the audit logger themselves.
"""
from typing import Iterable, Protocol

from docvault.core.types import AccessDecision, DocumentAction

PRIVILEGED_ROLES = ("Legal Officer", "Admin", "Compliance")
ADMIN_ROLE = "Admin"


class ProtectedDocument(Protocol):
	document_id: str
	confidential_flag: bool
	access_permissions: list[str]


class AccessResult:
	"""Result of access check."""

	def __init__(self, allowed: bool, reason: str | None = None):
		self.allowed = allowed
		self.reason = reason

	@property
	def decision(self) -> AccessDecision:
		return AccessDecision.ALLOWED if self.allowed else AccessDecision.DENIED

	def __repr__(self) -> str:
		return f"AccessResult(allowed={self.allowed}, reason={self.reason!r})"


def _normalise(roles: Iterable[str] | None) -> set[str]:
	return {r.strip().casefold() for r in roles or () if r and r.strip()}


class AccessPolicy:
	"""Immutable policy configuration plus the decision function."""

	def __init__(
		self,
		privileged_roles: Iterable[str] = PRIVILEGED_ROLES,
		admin_role: str = ADMIN_ROLE,
	):
		self._privileged = frozenset(_normalise(privileged_roles))
		self._admin = admin_role.strip().casefold()

	@classmethod
	def from_settings(cls, settings) -> "AccessPolicy":
		return cls(settings.privileged_roles, settings.admin_role)

	def is_admin(self, actor_roles: Iterable[str]) -> bool:
		return self._admin in _normalise(actor_roles)

	def evaluate(
		self,
		actor_roles: Iterable[str],
		action: DocumentAction,
		document: ProtectedDocument,
	) -> AccessResult:
		"""Decide whether ``actor_roles`` may perform ``action`` on ``document``."""
		roles = _normalise(actor_roles)
		if not roles:
			return AccessResult(False, "Access denied: actor has no roles")

		permitted = _normalise(document.access_permissions)
		if not roles & permitted:
			return AccessResult(
				False,
				f"Access denied: none of the actor's roles may {action.value} this document",
			)

		if document.confidential_flag:
			if not roles & self._privileged:
				return AccessResult(
					False,
					"Access denied: document is confidential and requires a privileged role",
				)
			if action == DocumentAction.DELETE and self._admin not in roles:
				return AccessResult(
					False,
					"Access denied: deleting a confidential document requires Admin",
				)

		return AccessResult(True, None)

	def effective_actions(
		self,
		actor_roles: Iterable[str],
		document: ProtectedDocument,
	) -> set[DocumentAction]:
		return {
			action for action in DocumentAction
			if self.evaluate(actor_roles, action, document).allowed
		}

	def evaluate_many(
		self,
		actor_roles: Iterable[str],
		action: DocumentAction,
		documents: Iterable[ProtectedDocument],
	) -> dict[str, AccessResult]:
		roles = list(actor_roles)
		return {doc.document_id: self.evaluate(roles, action, doc) for doc in documents}


_default_policy = AccessPolicy()


def evaluate(
	actor_roles: Iterable[str],
	action: DocumentAction,
	document: ProtectedDocument,
) -> AccessResult:
	"""Evaluate with the default privileged role set."""
	return _default_policy.evaluate(actor_roles, action, document)
