# Unit Tests for the Document Requirement Policy and strategies
import pytest

from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.document_strategies import (
    BusinessDocumentStrategy,
    IndividualDocumentStrategy,
    get_document_strategy,
)
from kyc_case_service.core.models import CaseType, DocumentType
from kyc_case_service.tests.factories import make_document


@pytest.fixture
def policy():
    return DocumentRequirementPolicy()


def test_get_document_strategy_per_case_type():
    assert isinstance(get_document_strategy(CaseType.INDIVIDUAL), IndividualDocumentStrategy)
    assert isinstance(get_document_strategy(CaseType.BUSINESS), BusinessDocumentStrategy)


def test_accepted_document_types_cover_every_kind(policy):
    assert set(policy.accepted_document_types()) == set(DocumentType)


def test_check_upload_accepts_pdf_passport(policy):
    assert policy.check_upload("passport", "application/pdf", 1024) == []


def test_check_upload_reports_type_and_file_errors(policy):
    errors = policy.check_upload("selfie", "application/zip", 1024)
    assert [e.field_path for e in errors] == ["document_type", "file"]
    assert errors[0].message == "Unsupported document type 'selfie'"


def test_check_upload_requires_document_type(policy):
    errors = policy.check_upload(None, "image/png", 10)
    assert [(e.field_path, e.message) for e in errors] == [("document_type", "Document type is required")]


def test_check_upload_honours_configured_size_limit():
    small_policy = DocumentRequirementPolicy(max_file_size_bytes=1024)
    errors = small_policy.check_upload("passport", "image/png", 2048)
    assert [e.field_path for e in errors] == ["file"]


def test_missing_documents_for_individual(policy, individual_case):
    missing = policy.missing_documents(individual_case)
    assert [e.field_path for e in missing] == ["documents.identity", "documents.proof_of_address"]

    individual_case.documents.append(make_document(individual_case.id, DocumentType.DRIVER_LICENSE))
    individual_case.documents.append(make_document(individual_case.id, DocumentType.BANK_STATEMENT))
    assert policy.missing_documents(individual_case) == []


def test_optional_business_document_never_reported_missing(policy, business_case):
    business_case.documents.append(make_document(business_case.id, DocumentType.INCORPORATION_CERTIFICATE))
    business_case.documents.append(make_document(business_case.id, DocumentType.BUSINESS_LICENSE))
    assert policy.missing_documents(business_case) == []
    assert [r.key for r in policy.satisfied_requirements(business_case)] == ["incorporation", "business_license"]
