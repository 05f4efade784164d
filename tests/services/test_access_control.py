# (c) Copyright Datacraft, 2026
"""Tests for role and confidentiality based access decisions."""
from types import SimpleNamespace

import pytest

from docvault.core.services.access_control import AccessPolicy, evaluate
from docvault.core.types import AccessDecision, DocumentAction


def make_document(confidential=False, permissions=("Legal Officer",), document_id="LDR-20260101-0001"):
	return SimpleNamespace(
		document_id=document_id,
		confidential_flag=confidential,
		access_permissions=list(permissions),
	)


@pytest.mark.parametrize("action", list(DocumentAction))
def test_non_confidential_allowed_for_listed_role(action):
	result = evaluate(["Legal Officer"], action, make_document())
	assert result.allowed is True
	assert result.decision == AccessDecision.ALLOWED
	assert result.reason is None


def test_non_confidential_denied_without_listed_role():
	result = evaluate(["Field Agent"], DocumentAction.VIEW, make_document())
	assert result.allowed is False
	assert result.decision == AccessDecision.DENIED
	assert result.reason


def test_non_privileged_role_may_view_non_confidential():
	document = make_document(permissions=["Field Agent"])
	assert evaluate(["Field Agent"], DocumentAction.VIEW, document).allowed is True


def test_confidential_denies_listed_but_non_privileged_role():
	document = make_document(confidential=True, permissions=["Field Agent", "Legal Officer"])
	result = evaluate(["Field Agent"], DocumentAction.VIEW, document)
	assert result.allowed is False
	assert "confidential" in result.reason


def test_confidential_requires_listed_role_even_when_privileged():
	document = make_document(confidential=True, permissions=["Legal Officer"])
	assert evaluate(["Compliance"], DocumentAction.VIEW, document).allowed is False


def test_confidential_allows_privileged_listed_role():
	document = make_document(confidential=True, permissions=["Legal Officer"])
	assert evaluate(["Legal Officer"], DocumentAction.VIEW, document).allowed is True
	assert evaluate(["Legal Officer"], DocumentAction.UPDATE, document).allowed is True


def test_confidential_delete_requires_admin():
	document = make_document(confidential=True, permissions=["Legal Officer", "Admin"])
	denied = evaluate(["Legal Officer"], DocumentAction.DELETE, document)
	assert denied.allowed is False
	assert "Admin" in denied.reason
	assert evaluate(["Admin"], DocumentAction.DELETE, document).allowed is True


def test_non_confidential_delete_does_not_require_admin():
	assert evaluate(["Legal Officer"], DocumentAction.DELETE, make_document()).allowed is True


def test_role_names_are_trimmed_and_case_insensitive():
	document = make_document(confidential=True, permissions=[" legal officer "])
	assert evaluate(["LEGAL OFFICER"], DocumentAction.VIEW, document).allowed is True


def test_no_roles_is_denied():
	assert evaluate([], DocumentAction.VIEW, make_document()).allowed is False
	assert evaluate(["  "], DocumentAction.VIEW, make_document()).allowed is False


def test_effective_actions_for_confidential_document():
	policy = AccessPolicy()
	document = make_document(confidential=True, permissions=["Legal Officer", "Admin"])

	officer = policy.effective_actions(["Legal Officer"], document)
	assert officer == {
		DocumentAction.VIEW,
		DocumentAction.DOWNLOAD,
		DocumentAction.UPDATE,
		DocumentAction.ROLLBACK,
	}
	assert policy.effective_actions(["Admin"], document) == set(DocumentAction)
	assert policy.effective_actions(["Field Agent"], document) == set()


def test_evaluate_many():
	policy = AccessPolicy()
	documents = [
		make_document(document_id="A"),
		make_document(document_id="B", confidential=True, permissions=["Field Agent"]),
		make_document(document_id="C", permissions=["Field Agent"]),
	]
	decisions = policy.evaluate_many(["Field Agent"], DocumentAction.VIEW, documents)
	assert {k: v.allowed for k, v in decisions.items()} == {"A": False, "B": False, "C": True}


def test_custom_privileged_roles():
	policy = AccessPolicy(privileged_roles=["Auditor"], admin_role="Root")
	document = make_document(confidential=True, permissions=["Auditor", "Legal Officer"])
	assert policy.evaluate(["Auditor"], DocumentAction.VIEW, document).allowed is True
	assert policy.evaluate(["Legal Officer"], DocumentAction.VIEW, document).allowed is False
	assert policy.is_admin(["root"]) is True
