# API Router for Cases (applicant side of the workflow)
import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from kyc_case_service.app.api.errors import http_error_for
from kyc_case_service.app.dependencies.services import (
    get_document_policy,
    get_session_context,
    get_validation_policy,
    get_verification_service,
)
from kyc_case_service.app.service.commands import handlers as command_handlers
from kyc_case_service.app.service.commands import models as command_models
from kyc_case_service.app.service.exceptions import BaseCaseManagementError
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.document_strategies import DocumentRequirement
from kyc_case_service.core.models import Case, CaseType, SessionContext
from kyc_case_service.core.profile_schema import ValidationPolicy
from kyc_case_service.core.workflow import allowed_actions

logger = logging.getLogger(__name__)
router = APIRouter()


# --- API request/response models ---

class CreateCaseRequest(BaseModel):
    case_type: CaseType

class SaveProfileRequest(BaseModel):
    profile: Dict[str, Any] = Field(default_factory=dict)
    expected_version: Optional[int] = None

class BeneficialOwnerRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    ownership_percentage: Optional[Union[str, int, float]] = None
    position_title: Optional[str] = None
    email: Optional[str] = None

class CaseOverview(BaseModel):
    case: Case
    allowed_actions: List[str]
    document_requirements: List[DocumentRequirement]


# --- API Endpoints ---

@router.post("/cases", response_model=Case, status_code=201, summary="Open a new draft case")
async def create_case_api(
    request_data: CreateCaseRequest = Body(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.CreateCaseCommand(case_type=request_data.case_type)
        return await command_handlers.handle_create_case_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error creating case: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create case.")


@router.get("/cases", response_model=List[Case], summary="List cases of a user (defaults to the caller)")
async def list_cases_api(
    user_id: Optional[str] = Query(None, description="Reviewers may list another user's cases."),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        return await service.list_cases_for_user(session, user_id or session.user_id)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.error(f"Unexpected error listing cases: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list cases.")


@router.get("/cases/{case_id}", response_model=CaseOverview, summary="Case with profile, documents and next actions")
async def get_case_api(
    case_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
    document_policy: DocumentRequirementPolicy = Depends(get_document_policy),
):
    try:
        case = await service.get_complete_case(session, case_id)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.error(f"Unexpected error retrieving case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to retrieve case.")
    return CaseOverview(
        case=case,
        allowed_actions=allowed_actions(case.status, session.role),
        document_requirements=document_policy.requirements_for(case),
    )


@router.put("/cases/{case_id}/profile", response_model=command_models.SaveProfileResult, summary="Save the draft profile")
async def save_profile_api(
    case_id: str,
    request_data: SaveProfileRequest = Body(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
    validation_policy: ValidationPolicy = Depends(get_validation_policy),
):
    try:
        cmd = command_models.SaveProfileCommand(
            case_id=case_id,
            profile=request_data.profile,
            expected_version=request_data.expected_version,
        )
        return await command_handlers.handle_save_profile_command(service, session, cmd, validation_policy)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except ValueError as ve:
        logger.warning(f"Invalid profile payload for case {case_id}: {ve}")
        raise HTTPException(status_code=422, detail=str(ve))
    except Exception as e:
        logger.error(f"Unexpected error saving profile for case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save profile.")


@router.post("/cases/{case_id}/beneficial-owners", response_model=Case, status_code=201, summary="Append a beneficial owner row")
async def add_beneficial_owner_api(
    case_id: str,
    request_data: BeneficialOwnerRequest = Body(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.AddBeneficialOwnerCommand(
            case_id=case_id, owner=request_data.model_dump(exclude_none=True)
        )
        return await command_handlers.handle_add_beneficial_owner_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except ValueError as ve:
        logger.warning(f"Beneficial owner not added to case {case_id}: {ve}")
        raise HTTPException(status_code=422, detail=str(ve))


@router.patch("/cases/{case_id}/beneficial-owners/{local_id}", response_model=Case, summary="Change fields of a beneficial owner row")
async def update_beneficial_owner_api(
    case_id: str,
    local_id: str,
    request_data: BeneficialOwnerRequest = Body(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.UpdateBeneficialOwnerCommand(
            case_id=case_id, local_id=local_id, changes=request_data.model_dump(exclude_unset=True)
        )
        return await command_handlers.handle_update_beneficial_owner_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except ValueError as ve:
        logger.warning(f"Beneficial owner {local_id} not updated on case {case_id}: {ve}")
        raise HTTPException(status_code=422, detail=str(ve))


@router.delete("/cases/{case_id}/beneficial-owners/{local_id}", response_model=Case, summary="Remove a beneficial owner row")
async def remove_beneficial_owner_api(
    case_id: str,
    local_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.RemoveBeneficialOwnerCommand(case_id=case_id, local_id=local_id)
        return await command_handlers.handle_remove_beneficial_owner_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except ValueError as ve:
        raise HTTPException(status_code=422, detail=str(ve))


@router.get("/cases/{case_id}/validation", response_model=command_models.CaseValidationReport, summary="Check a case against the submission rules")
async def validate_case_api(
    case_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
    validation_policy: ValidationPolicy = Depends(get_validation_policy),
    document_policy: DocumentRequirementPolicy = Depends(get_document_policy),
):
    try:
        case = await service.get_complete_case(session, case_id)
        return command_handlers.validate_case(case, validation_policy, document_policy)
    except BaseCaseManagementError as e:
        raise http_error_for(e)


@router.post("/cases/{case_id}/submit", response_model=Case, summary="Submit a draft case for review")
async def submit_case_api(
    case_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
    validation_policy: ValidationPolicy = Depends(get_validation_policy),
    document_policy: DocumentRequirementPolicy = Depends(get_document_policy),
):
    try:
        cmd = command_models.SubmitCaseCommand(case_id=case_id)
        return await command_handlers.handle_submit_case_command(
            service, session, cmd, validation_policy, document_policy
        )
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error submitting case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit case.")
