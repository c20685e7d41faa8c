# Maps service exceptions onto HTTP responses
import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from kyc_case_service.app.service.exceptions import (
    ActionNotPermittedError,
    AuthenticationError,
    BaseCaseManagementError,
    BeneficialOwnerNotFoundError,
    CaseNotFoundError,
    CaseValidationError,
    ConcurrencyConflictError,
    ConfigurationError,
    DocumentNotFoundError,
    DocumentRejectedError,
    InvalidCaseStateError,
    KafkaProducerError,
    MissingReviewDecisionError,
    VerificationServiceError,
)

logger = logging.getLogger(__name__)


class FieldErrorsHTTPException(HTTPException):
    """422 carrying the field-level errors next to the detail message."""
    def __init__(self, detail: str, errors: list):
        super().__init__(status_code=422, detail=detail)
        self.errors = errors


async def field_errors_exception_handler(request, exc: FieldErrorsHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "errors": jsonable_encoder(exc.errors)},
    )


def http_error_for(exc: BaseCaseManagementError) -> HTTPException:
    if isinstance(exc, (CaseValidationError, DocumentRejectedError)):
        logger.warning(f"Validation failure: {exc}")
        return FieldErrorsHTTPException(detail=str(exc), errors=exc.errors)
    if isinstance(exc, MissingReviewDecisionError):
        logger.warning(f"Review without decision: {exc}")
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (CaseNotFoundError, DocumentNotFoundError, BeneficialOwnerNotFoundError)):
        logger.warning(f"Lookup failed: {exc}")
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ActionNotPermittedError):
        logger.warning(f"Action not permitted: {exc}")
        return HTTPException(status_code=403, detail=str(exc))
    if isinstance(exc, (InvalidCaseStateError, ConcurrencyConflictError)):
        logger.warning(f"Conflict: {exc}")
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, AuthenticationError):
        return HTTPException(status_code=401, detail=str(exc), headers={"WWW-Authenticate": "Bearer"})
    if isinstance(exc, VerificationServiceError):
        # Upstream reason passes through verbatim
        logger.error(f"Verification Service failure (status {exc.status_code}): {exc.reason}")
        return HTTPException(status_code=502, detail=exc.reason)
    if isinstance(exc, KafkaProducerError):
        logger.error(f"Workflow event not published: {exc}")
        return HTTPException(status_code=502, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error: {exc}")
        return HTTPException(status_code=503, detail=str(exc))
    logger.error(f"Unmapped service error: {exc}", exc_info=True)
    return HTTPException(status_code=500, detail=str(exc))
