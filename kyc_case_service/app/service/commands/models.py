# Pydantic models for Commands
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union
import uuid

from kyc_case_service.core.models import (
    BusinessProfile,
    Case,
    CaseType,
    FieldValidationError,
    IndividualProfile,
    RiskLevel,
)

class BaseCommand(BaseModel):
    command_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

class CreateCaseCommand(BaseCommand):
    case_type: CaseType

class SaveProfileCommand(BaseCommand):
    case_id: str
    # Either a raw field mapping or a profile model; the variant is picked from the case type
    profile: Union[Dict[str, Any], IndividualProfile, BusinessProfile] = Field(union_mode="left_to_right")
    expected_version: Optional[int] = None # optimistic concurrency hook; None means last write wins

class UploadDocumentCommand(BaseCommand):
    case_id: str
    document_type: str
    filename: str
    media_type: Optional[str] = None
    size_bytes: int = 0
    content: Optional[bytes] = Field(default=None, exclude=True, repr=False)

class DeleteDocumentCommand(BaseCommand):
    case_id: str
    document_id: str

class SubmitCaseCommand(BaseCommand):
    case_id: str

class StartReviewCommand(BaseCommand):
    case_id: str

class ReviewCaseCommand(BaseCommand):
    case_id: str
    decision: Optional[str] = None # no default decision; parsed by the review handler
    notes: Optional[str] = None
    risk_level: Optional[RiskLevel] = None

# --- Beneficial owner row commands (business cases) ---

class AddBeneficialOwnerCommand(BaseCommand):
    case_id: str
    owner: Dict[str, Any] = Field(default_factory=dict)

class UpdateBeneficialOwnerCommand(BaseCommand):
    case_id: str
    local_id: str
    changes: Dict[str, Any] = Field(default_factory=dict)

class RemoveBeneficialOwnerCommand(BaseCommand):
    case_id: str
    local_id: str

# --- Results ---

class CaseValidationReport(BaseModel):
    case_id: str
    status: str
    completion_percentage: int
    is_valid_for_submission: bool
    errors: List[FieldValidationError] = Field(default_factory=list)
    missing_documents: List[FieldValidationError] = Field(default_factory=list)

class SaveProfileResult(BaseModel):
    case: Case
    validation_errors: List[FieldValidationError] = Field(default_factory=list)
