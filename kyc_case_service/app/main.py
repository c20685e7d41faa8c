# FastAPI Application Entry Point
from fastapi import FastAPI
import httpx

# Configuration and Observability
from kyc_case_service.app.config import settings
from kyc_case_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from kyc_case_service.app.api.errors import FieldErrorsHTTPException, field_errors_exception_handler
# Database connection
from kyc_case_service.infrastructure.database.connection import connect_to_mongo, close_mongo_connection
# Kafka Producer lifecycle
from kyc_case_service.infrastructure.kafka.producer import startup_kafka_producer, shutdown_kafka_producer

# API Routers
from kyc_case_service.app.api.v1.endpoints import health as health_router
from kyc_case_service.app.api.v1.endpoints import cases as cases_router
from kyc_case_service.app.api.v1.endpoints import documents as documents_router
from kyc_case_service.app.api.v1.endpoints import reviews as reviews_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="KYC Case Service",
    description="Individual (KYC) and business (KYB) verification cases: profile, documents and review workflow.",
    version="1.0.0"
)

app.add_exception_handler(FieldErrorsHTTPException, field_errors_exception_handler)

# --- Event Handlers for Collaborators & OTel Instrumentation ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        if settings.VERIFICATION_SERVICE_URL:
            logger.info(f"Using remote Verification Service at {settings.VERIFICATION_SERVICE_URL}; MongoDB not used.")
        else:
            await connect_to_mongo()
            PymongoInstrumentor().instrument()
            logger.info("MongoDB connection established and PyMongo instrumented.")

            await startup_kafka_producer()

    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    if hasattr(app.state, 'http_client') and app.state.http_client:
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

    await shutdown_kafka_producer()
    close_mongo_connection()

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router)
app.include_router(cases_router.router, prefix="/api/v1", tags=["Cases"])
app.include_router(documents_router.router, prefix="/api/v1", tags=["Documents"])
app.include_router(reviews_router.router, prefix="/api/v1", tags=["Reviews"])

logger.info("API routers included. Application setup complete.")

# To run: uvicorn kyc_case_service.app.main:app --reload --port 8000
