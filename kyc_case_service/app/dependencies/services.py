# Request-scoped providers: session context, workflow policies and the Verification Service
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from kyc_case_service.app.config import settings
from kyc_case_service.app.dependencies.http_client import get_http_client
from kyc_case_service.app.service.exceptions import AuthenticationError, ConfigurationError
from kyc_case_service.app.service.interfaces.identity_provider import AbstractIdentityProvider
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.models import SessionContext
from kyc_case_service.core.profile_schema import ValidationPolicy
from kyc_case_service.infrastructure.database.case_store import MongoVerificationService
from kyc_case_service.infrastructure.database.connection import get_db
from kyc_case_service.infrastructure.identity_provider_client import get_identity_provider
from kyc_case_service.infrastructure.kafka.producer import get_kafka_producer
from kyc_case_service.infrastructure.verification_service_client import VerificationServiceClient

logger = logging.getLogger(__name__)


def get_validation_policy() -> ValidationPolicy:
    return ValidationPolicy(
        require_beneficial_owner_total=settings.REQUIRE_BENEFICIAL_OWNER_TOTAL,
        require_minimum_documents=settings.REQUIRE_MINIMUM_DOCUMENTS,
    )


def get_document_policy() -> DocumentRequirementPolicy:
    return DocumentRequirementPolicy(max_file_size_bytes=settings.MAX_UPLOAD_SIZE_BYTES)


async def get_session_context(
    authorization: Optional[str] = Header(default=None),
    identity_provider: AbstractIdentityProvider = Depends(get_identity_provider),
) -> SessionContext:
    """Resolves the caller's bearer token into a SessionContext via the identity provider."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Missing or malformed bearer token.",
                            headers={"WWW-Authenticate": "Bearer"})
    try:
        return await identity_provider.validate_token(token.strip())
    except AuthenticationError as e:
        logger.warning(f"Session token rejected: {e}")
        raise HTTPException(status_code=401, detail=str(e), headers={"WWW-Authenticate": "Bearer"})
    except ConfigurationError as e:
        logger.error(f"Identity provider misconfigured: {e}")
        raise HTTPException(status_code=503, detail="Authentication is not available.")


async def get_verification_service(
    request: Request,
    validation_policy: ValidationPolicy = Depends(get_validation_policy),
    document_policy: DocumentRequirementPolicy = Depends(get_document_policy),
) -> AbstractVerificationService:
    """
    Remote Verification Service when VERIFICATION_SERVICE_URL is set, otherwise
    the MongoDB-backed service owned by this process.
    """
    if settings.VERIFICATION_SERVICE_URL:
        http_client = await get_http_client(request)
        return VerificationServiceClient(http_client=http_client)

    db = None
    async for db in get_db():
        break
    return MongoVerificationService(
        db,
        kafka_producer=get_kafka_producer(),
        validation_policy=validation_policy,
        document_policy=document_policy,
    )
