# (c) Copyright Datacraft, 2026
"""Shared enumerations of the document repository."""
from enum import Enum


class DocumentAction(str, Enum):
	VIEW = "VIEW"
	DOWNLOAD = "DOWNLOAD"
	UPDATE = "UPDATE"
	DELETE = "DELETE"
	ROLLBACK = "ROLLBACK"


class AccessDecision(str, Enum):
	ALLOWED = "ALLOWED"
	DENIED = "DENIED"


class DocumentStatus(str, Enum):
	ACTIVE = "Active"
	DELETED = "Deleted"


class LinkedEntityType(str, Enum):
	BORROWER = "Borrower"
	LOAN_ACCOUNT = "Loan Account"
	CASE = "Case"


class DocumentType(str, Enum):
	LEGAL_NOTICE = "Legal Notice"
	COURT_ORDER = "Court Order"
	AFFIDAVIT = "Affidavit"
	CASE_SUMMARY = "Case Summary"
	PROOF = "Proof"
	CONTRACT = "Contract"
	IDENTITY_PROOF = "Identity Proof"
	ADDRESS_PROOF = "Address Proof"
	OTHER = "Other"
