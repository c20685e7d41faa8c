# API Router for Case Documents
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from kyc_case_service.app.api.errors import http_error_for
from kyc_case_service.app.dependencies.services import (
    get_document_policy,
    get_session_context,
    get_verification_service,
)
from kyc_case_service.app.service.commands import handlers as command_handlers
from kyc_case_service.app.service.commands import models as command_models
from kyc_case_service.app.service.exceptions import BaseCaseManagementError
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.models import Case, Document, SessionContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/cases/{case_id}/documents",
    response_model=Document,
    status_code=201,
    summary="Attach a supporting document to a draft case."
)
async def upload_document_api(
    case_id: str,
    document_type: str = Form(...),
    file: UploadFile = File(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
    document_policy: DocumentRequirementPolicy = Depends(get_document_policy),
):
    try:
        content = await file.read()
        cmd = command_models.UploadDocumentCommand(
            case_id=case_id,
            document_type=document_type,
            filename=file.filename or "upload",
            media_type=file.content_type,
            size_bytes=len(content),
            content=content,
        )
        return await command_handlers.handle_upload_document_command(service, session, cmd, document_policy)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error uploading document to case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload document.")
    finally:
        await file.close()


@router.delete(
    "/cases/{case_id}/documents/{document_id}",
    response_model=Case,
    summary="Remove a document from a draft case."
)
async def delete_document_api(
    case_id: str,
    document_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.DeleteDocumentCommand(case_id=case_id, document_id=document_id)
        return await command_handlers.handle_delete_document_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error deleting document {document_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete document.")
