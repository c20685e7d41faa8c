# API Router for the Reviewer Queue
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from kyc_case_service.app.api.errors import http_error_for
from kyc_case_service.app.dependencies.services import get_session_context, get_verification_service
from kyc_case_service.app.service.commands import handlers as command_handlers
from kyc_case_service.app.service.commands import models as command_models
from kyc_case_service.app.service.exceptions import BaseCaseManagementError
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core.models import Case, DashboardStats, RiskLevel, SessionContext

logger = logging.getLogger(__name__)
router = APIRouter()


class ReviewDecisionRequest(BaseModel):
    decision: Optional[str] = None # 'approved' or 'rejected'; no default
    notes: Optional[str] = None
    risk_level: Optional[RiskLevel] = None


@router.get("/reviews/pending", response_model=List[Case], summary="Cases waiting for a reviewer")
async def list_pending_cases_api(
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        return await service.list_pending_cases(session)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.error(f"Unexpected error listing pending cases: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list pending cases.")


@router.get("/reviews/dashboard", response_model=DashboardStats, summary="Case counts per status")
async def dashboard_api(
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        return await service.get_dashboard_stats(session)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.error(f"Unexpected error building dashboard: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build dashboard.")


@router.post("/reviews/{case_id}/start", response_model=Case, summary="Take a submitted case into review")
async def start_review_api(
    case_id: str,
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.StartReviewCommand(case_id=case_id)
        return await command_handlers.handle_start_review_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error starting review of case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to start review.")


@router.post("/reviews/{case_id}/decision", response_model=Case, summary="Approve or reject a case under review")
async def review_case_api(
    case_id: str,
    request_data: ReviewDecisionRequest = Body(...),
    session: SessionContext = Depends(get_session_context),
    service: AbstractVerificationService = Depends(get_verification_service),
):
    try:
        cmd = command_models.ReviewCaseCommand(
            case_id=case_id,
            decision=request_data.decision,
            notes=request_data.notes,
            risk_level=request_data.risk_level,
        )
        return await command_handlers.handle_review_case_command(service, session, cmd)
    except BaseCaseManagementError as e:
        raise http_error_for(e)
    except ValueError as ve:
        logger.warning(f"Invalid review decision for case {case_id}: {ve}")
        raise HTTPException(status_code=422, detail=str(ve))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error reviewing case {case_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to review case.")
