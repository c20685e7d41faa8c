# Fixtures for the API tests: a TestClient with the session and service dependencies overridden
import pytest
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from kyc_case_service.app.dependencies.services import get_session_context, get_verification_service
from kyc_case_service.app.main import app
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.models import Actor, SessionContext

AUTH_HEADERS = {"Authorization": "Bearer test-token"}


@pytest.fixture
def mock_service() -> AsyncMock:
    return AsyncMock(spec=AbstractVerificationService)


@pytest.fixture
def session() -> SessionContext:
    return SessionContext(user_id="user-1", role=Actor.APPLICANT, token="test-token")


@pytest.fixture
def client(mock_service, session):
    app.dependency_overrides[get_session_context] = lambda: session
    app.dependency_overrides[get_verification_service] = lambda: mock_service
    yield TestClient(app, headers=AUTH_HEADERS)
    app.dependency_overrides.clear()


@pytest.fixture
def as_reviewer(session):
    session.role = Actor.REVIEWER
    session.user_id = "reviewer-1"
    return session
