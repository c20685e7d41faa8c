# Unit Tests for the workflow event Kafka producer
import asyncio
import pytest
from unittest.mock import patch, AsyncMock, MagicMock

from confluent_kafka import KafkaError, Message

from kyc_case_service.app import config as app_config
from kyc_case_service.app.service.events import models as event_models
from kyc_case_service.app.service.exceptions import KafkaProducerError
from kyc_case_service.infrastructure.kafka import producer as kafka_producer_module
from kyc_case_service.infrastructure.kafka.producer import KafkaProducerService


def submitted_event(case_id: str = "case-1") -> event_models.CaseSubmittedEvent:
    return event_models.CaseSubmittedEvent(
        aggregate_id=case_id,
        version=4,
        payload=event_models.CaseSubmittedEventPayload(
            user_id="user-1", case_type="individual", completion_percentage=85, document_count=1,
        ),
    )


@pytest.fixture(autouse=True)
def manage_kafka_settings():
    original_servers = app_config.settings.KAFKA_BOOTSTRAP_SERVERS
    original_enabled = app_config.settings.KAFKA_ENABLED
    kafka_producer_module._kafka_producer_instance = None
    yield
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = original_servers
    app_config.settings.KAFKA_ENABLED = original_enabled
    kafka_producer_module._kafka_producer_instance = None


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_get_kafka_producer_is_shared(MockConfluentProducer):
    app_config.settings.KAFKA_ENABLED = True
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = "broker:9092"

    first = kafka_producer_module.get_kafka_producer()
    second = kafka_producer_module.get_kafka_producer()

    assert isinstance(first, KafkaProducerService)
    assert first is second
    MockConfluentProducer.assert_called_once_with({'bootstrap.servers': "broker:9092"})


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_get_kafka_producer_disabled(MockConfluentProducer):
    app_config.settings.KAFKA_ENABLED = False

    assert kafka_producer_module.get_kafka_producer() is None
    MockConfluentProducer.assert_not_called()


def test_get_kafka_producer_requires_servers():
    app_config.settings.KAFKA_ENABLED = True
    app_config.settings.KAFKA_BOOTSTRAP_SERVERS = ""
    with pytest.raises(ValueError, match="KAFKA_BOOTSTRAP_SERVERS not configured"):
        kafka_producer_module.get_kafka_producer()


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_produce_workflow_event(MockConfluentProducer):
    confluent_producer = MagicMock()
    MockConfluentProducer.return_value = confluent_producer
    service = KafkaProducerService(bootstrap_servers="broker:9092")
    event = submitted_event()

    service.produce_message("kyc_case_workflow_events", event, key=event.aggregate_id)

    confluent_producer.produce.assert_called_once_with(
        "kyc_case_workflow_events",
        value=event.model_dump_json().encode('utf-8'),
        key=b"case-1",
        callback=service._delivery_report,
    )


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_produce_queue_full_raises_producer_error(MockConfluentProducer):
    confluent_producer = MagicMock()
    confluent_producer.produce.side_effect = BufferError("Local: Queue full")
    MockConfluentProducer.return_value = confluent_producer
    service = KafkaProducerService(bootstrap_servers="broker:9092")

    with pytest.raises(KafkaProducerError, match="queue full"):
        service.produce_message("topic", submitted_event())


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_produce_after_cancel_is_skipped(MockConfluentProducer):
    confluent_producer = MagicMock()
    MockConfluentProducer.return_value = confluent_producer
    service = KafkaProducerService(bootstrap_servers="broker:9092")
    service._cancelled = True

    service.produce_message("topic", submitted_event())
    confluent_producer.produce.assert_not_called()


@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
def test_delivery_report_logs_failure(MockConfluentProducer):
    service = KafkaProducerService(bootstrap_servers="broker:9092")
    msg = MagicMock(spec=Message)
    msg.topic.return_value = "kyc_case_workflow_events"
    msg.key.return_value = b"case-1"

    with patch.object(kafka_producer_module.logger, 'error') as mock_logger_error:
        service._delivery_report(KafkaError(KafkaError._MSG_TIMED_OUT), msg)

    mock_logger_error.assert_called_once()
    assert "Message delivery failed: Topic kyc_case_workflow_events" in mock_logger_error.call_args[0][0]


@pytest.mark.asyncio
@patch('kyc_case_service.infrastructure.kafka.producer.Producer')
async def test_poll_loop_start_stop(MockConfluentProducer):
    confluent_producer = MagicMock()
    MockConfluentProducer.return_value = confluent_producer
    service = KafkaProducerService(bootstrap_servers="broker:9092")

    await service.start_polling()
    await asyncio.sleep(0.25)
    confluent_producer.poll.assert_called_with(0.1)

    await service.stop_polling()
    assert service._cancelled
    assert service._poll_loop_task is None


@pytest.mark.asyncio
async def test_startup_skipped_when_disabled():
    app_config.settings.KAFKA_ENABLED = False
    # Nothing to start; must not raise
    await kafka_producer_module.startup_kafka_producer()
    assert kafka_producer_module._kafka_producer_instance is None


@pytest.mark.asyncio
async def test_shutdown_flushes_and_stops():
    instance = MagicMock(spec=KafkaProducerService)
    instance.stop_polling = AsyncMock()
    kafka_producer_module._kafka_producer_instance = instance

    await kafka_producer_module.shutdown_kafka_producer()

    instance.flush.assert_called_once()
    instance.stop_polling.assert_awaited_once()
