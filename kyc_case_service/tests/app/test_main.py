import pytest
from unittest.mock import patch, AsyncMock, MagicMock
from fastapi import FastAPI
import httpx

from kyc_case_service.app.main import startup_event, shutdown_event
from kyc_case_service.app.config import settings


@pytest.fixture
def mock_app():
    app = FastAPI()
    app.state = MagicMock()
    return app


@pytest.fixture
def verification_service_url():
    original = settings.VERIFICATION_SERVICE_URL
    yield
    settings.VERIFICATION_SERVICE_URL = original


@pytest.mark.asyncio
@patch('kyc_case_service.app.main.httpx.AsyncClient')
@patch('kyc_case_service.app.main.HTTPXClientInstrumentor')
@patch('kyc_case_service.app.main.connect_to_mongo', new_callable=AsyncMock)
@patch('kyc_case_service.app.main.PymongoInstrumentor')
@patch('kyc_case_service.app.main.startup_kafka_producer', new_callable=AsyncMock)
async def test_startup_with_local_store(
    mock_startup_kafka_producer,
    mock_pymongo_instrumentor,
    mock_connect_to_mongo,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app,
    verification_service_url,
):
    settings.VERIFICATION_SERVICE_URL = None

    with patch('kyc_case_service.app.main.app', mock_app):
        await startup_event()

    mock_async_client_constructor.assert_called_once_with(timeout=settings.DEFAULT_HTTP_TIMEOUT)
    assert mock_app.state.http_client == mock_async_client_constructor.return_value
    mock_httpx_instrumentor.return_value.instrument.assert_called_once()
    mock_connect_to_mongo.assert_awaited_once()
    mock_pymongo_instrumentor.return_value.instrument.assert_called_once()
    mock_startup_kafka_producer.assert_awaited_once()


@pytest.mark.asyncio
@patch('kyc_case_service.app.main.httpx.AsyncClient')
@patch('kyc_case_service.app.main.HTTPXClientInstrumentor')
@patch('kyc_case_service.app.main.connect_to_mongo', new_callable=AsyncMock)
@patch('kyc_case_service.app.main.startup_kafka_producer', new_callable=AsyncMock)
async def test_startup_with_remote_verification_service_skips_mongo(
    mock_startup_kafka_producer,
    mock_connect_to_mongo,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app,
    verification_service_url,
):
    settings.VERIFICATION_SERVICE_URL = "http://verification.test/api"

    with patch('kyc_case_service.app.main.app', mock_app):
        await startup_event()

    mock_connect_to_mongo.assert_not_called()
    mock_startup_kafka_producer.assert_not_called()


@pytest.mark.asyncio
@patch('kyc_case_service.app.main.httpx.AsyncClient')
@patch('kyc_case_service.app.main.HTTPXClientInstrumentor')
@patch('kyc_case_service.app.main.connect_to_mongo', new_callable=AsyncMock)
@patch('kyc_case_service.app.main.logger')
async def test_startup_logs_mongo_failure(
    mock_logger,
    mock_connect_to_mongo,
    mock_httpx_instrumentor,
    mock_async_client_constructor,
    mock_app,
    verification_service_url,
):
    settings.VERIFICATION_SERVICE_URL = None
    mock_connect_to_mongo.side_effect = Exception("Mongo connection failed")

    with patch('kyc_case_service.app.main.app', mock_app):
        await startup_event()

    mock_logger.error.assert_called_once()
    assert "Failed during startup: Mongo connection failed" in mock_logger.error.call_args[0][0]


@pytest.mark.asyncio
@patch('kyc_case_service.app.main.shutdown_kafka_producer', new_callable=AsyncMock)
@patch('kyc_case_service.app.main.close_mongo_connection')
async def test_shutdown_closes_collaborators(mock_close_mongo_connection, mock_shutdown_kafka_producer, mock_app):
    mock_http_client = AsyncMock(spec=httpx.AsyncClient)
    mock_app.state.http_client = mock_http_client

    with patch('kyc_case_service.app.main.app', mock_app):
        await shutdown_event()

    mock_http_client.aclose.assert_awaited_once()
    mock_shutdown_kafka_producer.assert_awaited_once()
    mock_close_mongo_connection.assert_called_once()
