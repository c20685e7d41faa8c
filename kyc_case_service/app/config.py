# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import Optional

class AppSettings(BaseSettings):
    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "kyc_case_db"
    CASES_COLLECTION_NAME: str = "cases"

    # Kafka (workflow events for the reviewer queue)
    KAFKA_ENABLED: bool = True
    KAFKA_BOOTSTRAP_SERVERS: Optional[str] = "kafka:29092"
    CASE_EVENTS_KAFKA_TOPIC: str = "kyc_case_workflow_events"

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "kyc-case-api"

    # External collaborators
    VERIFICATION_SERVICE_URL: Optional[str] = None # e.g., http://localhost:5000/api
    IDENTITY_PROVIDER_URL: Optional[str] = None # e.g., http://localhost:5000/api
    DEFAULT_HTTP_TIMEOUT: float = 10.0

    # Validation policy
    MAX_UPLOAD_SIZE_BYTES: int = 16 * 1024 * 1024
    REQUIRE_BENEFICIAL_OWNER_TOTAL: bool = False
    REQUIRE_MINIMUM_DOCUMENTS: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
logger.info("Application settings module initialized.")
