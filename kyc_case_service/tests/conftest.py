# Shared fixtures for the KYC case service tests
import pytest

from kyc_case_service.core.models import Actor, Case, CaseStatus, CaseType, SessionContext
from kyc_case_service.tests.factories import complete_individual_profile


@pytest.fixture
def applicant_session() -> SessionContext:
    return SessionContext(user_id="user-1", email="ada@example.com", role=Actor.APPLICANT, token="applicant-token")


@pytest.fixture
def reviewer_session() -> SessionContext:
    return SessionContext(user_id="reviewer-1", email="review@example.com", role=Actor.REVIEWER, token="reviewer-token")


@pytest.fixture
def individual_case() -> Case:
    return Case(user_id="user-1", case_type=CaseType.INDIVIDUAL)


@pytest.fixture
def business_case() -> Case:
    return Case(user_id="user-1", case_type=CaseType.BUSINESS)


@pytest.fixture
def submitted_case() -> Case:
    return Case(
        user_id="user-1",
        case_type=CaseType.INDIVIDUAL,
        status=CaseStatus.SUBMITTED,
        profile=complete_individual_profile(),
    )
