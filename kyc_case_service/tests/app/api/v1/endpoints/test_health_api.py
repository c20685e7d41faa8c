import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from kyc_case_service.app.config import settings
from kyc_case_service.app.main import app


@pytest.fixture
def restore_settings():
    original_url = settings.VERIFICATION_SERVICE_URL
    original_kafka = settings.KAFKA_ENABLED
    yield
    settings.VERIFICATION_SERVICE_URL = original_url
    settings.KAFKA_ENABLED = original_kafka


def test_health_with_mongo_connected(restore_settings):
    settings.VERIFICATION_SERVICE_URL = None
    settings.KAFKA_ENABLED = True
    mock_db = MagicMock()
    mock_db.command = AsyncMock(return_value={"ok": 1})

    with patch("kyc_case_service.infrastructure.database.connection.db", mock_db):
        response = TestClient(app).get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["components"] == {"mongodb": "connected", "kafka": "enabled"}
    mock_db.command.assert_awaited_once_with("ping")


def test_health_with_mongo_unreachable(restore_settings):
    settings.VERIFICATION_SERVICE_URL = None
    settings.KAFKA_ENABLED = False

    with patch("kyc_case_service.infrastructure.database.connection.db", None):
        response = TestClient(app).get("/health")

    assert response.json()["components"] == {"mongodb": "disconnected", "kafka": "disabled"}


def test_health_with_remote_verification_service(restore_settings):
    settings.VERIFICATION_SERVICE_URL = "http://verification.test/api"

    response = TestClient(app).get("/health")

    assert response.json()["components"]["verification_service"] == "remote"
    assert "mongodb" not in response.json()["components"]
