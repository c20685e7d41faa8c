# Case Aggregate: completeness, submission validation and draft mutations
import logging
from typing import Any, Dict, List, Optional, Union

from kyc_case_service.app.service.exceptions import BeneficialOwnerNotFoundError, DocumentNotFoundError
from .document_policy import DocumentRequirementPolicy
from .models import (
    BeneficialOwner,
    BusinessProfile,
    Case,
    CaseType,
    Document,
    FieldValidationError,
    PROFILE_CLASS_BY_CASE_TYPE,
    Profile,
)
from .profile_schema import ValidationPolicy, count_filled_required_fields, get_profile_schema, validate_profile
from .workflow import EditAction, ensure_editable

logger = logging.getLogger(__name__)

PROFILE_WEIGHT = 70
DOCUMENTS_WEIGHT = 30

# Owner fields callers may change; local_id and id are identity, not data
_OWNER_EDITABLE_FIELDS = frozenset(BeneficialOwner.model_fields) - {"local_id", "id"}


def compute_completion(case: Case, document_policy: Optional[DocumentRequirementPolicy] = None) -> int:
    """
    Completion percentage (0-100) derived from the profile and document set.

    Profile share: filled required fields over all required fields of the case
    type's schema. Document share: uploaded documents, capped at the number of
    required document groups for the case type. Only those inputs are read, so
    the result is stable for an unchanged case and edits to optional fields
    never move it.
    """
    document_policy = document_policy or DocumentRequirementPolicy()

    required_fields = get_profile_schema(case.case_type).required_field_names()
    filled = count_filled_required_fields(case.case_type, case.profile)
    profile_share = filled / len(required_fields) if required_fields else 1.0

    expected_documents = sum(1 for r in document_policy.requirements_for(case) if r.is_required)
    if expected_documents:
        document_share = min(len(case.documents), expected_documents) / expected_documents
    else:
        document_share = 1.0

    return int(profile_share * PROFILE_WEIGHT + document_share * DOCUMENTS_WEIGHT)


def refresh_completion(case: Case, document_policy: Optional[DocumentRequirementPolicy] = None) -> Case:
    case.completion_percentage = compute_completion(case, document_policy)
    return case


def validate_for_submission(
    case: Case,
    policy: Optional[ValidationPolicy] = None,
    document_policy: Optional[DocumentRequirementPolicy] = None,
) -> List[FieldValidationError]:
    policy = policy or ValidationPolicy()
    errors = validate_profile(case.case_type, case.profile, policy)
    if policy.require_minimum_documents:
        document_policy = document_policy or DocumentRequirementPolicy()
        errors.extend(document_policy.missing_documents(case))
    return errors


def coerce_profile(case_type: CaseType, profile: Union[Profile, Dict[str, Any]]) -> Profile:
    """Builds the profile variant of the case type; a mismatched variant raises ValueError."""
    profile_cls = PROFILE_CLASS_BY_CASE_TYPE[CaseType(case_type)]
    if isinstance(profile, dict):
        return profile_cls(**profile)
    if not isinstance(profile, profile_cls):
        raise ValueError(
            f"profile of kind '{profile.profile_kind}' does not match case_type '{CaseType(case_type).value}'"
        )
    return profile


def apply_profile(
    case: Case,
    profile: Union[Profile, Dict[str, Any]],
    document_policy: Optional[DocumentRequirementPolicy] = None,
) -> Case:
    ensure_editable(case, EditAction.SAVE_PROFILE)
    case.profile = coerce_profile(case.case_type, profile)
    return refresh_completion(case, document_policy)


def attach_document(case: Case, document: Document, document_policy: Optional[DocumentRequirementPolicy] = None) -> Case:
    ensure_editable(case, EditAction.UPLOAD_DOCUMENT)
    case.documents.append(document)
    return refresh_completion(case, document_policy)


def detach_document(case: Case, document_id: str, document_policy: Optional[DocumentRequirementPolicy] = None) -> Document:
    ensure_editable(case, EditAction.DELETE_DOCUMENT)
    for index, document in enumerate(case.documents):
        if document.id == document_id:
            removed = case.documents.pop(index)
            refresh_completion(case, document_policy)
            return removed
    raise DocumentNotFoundError(document_id=document_id)


# --- Beneficial owner rows ---

def _business_profile(case: Case) -> BusinessProfile:
    ensure_editable(case, EditAction.EDIT_BENEFICIAL_OWNERS)
    if not isinstance(case.profile, BusinessProfile):
        raise ValueError(f"Case '{case.id}' of type '{case.case_type.value}' has no beneficial owners.")
    return case.profile


def _check_owner_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - _OWNER_EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown or read-only beneficial owner field(s): {', '.join(sorted(unknown))}")


def add_beneficial_owner(case: Case, **fields: Any) -> BeneficialOwner:
    profile = _business_profile(case)
    _check_owner_fields(fields)
    owner = BeneficialOwner(**fields)
    profile.beneficial_owners.append(owner)
    logger.debug(f"Beneficial owner {owner.local_id} added to case {case.id}.")
    return owner


def update_beneficial_owner(case: Case, local_id: str, **changes: Any) -> BeneficialOwner:
    profile = _business_profile(case)
    _check_owner_fields(changes)
    for index, owner in enumerate(profile.beneficial_owners):
        if owner.local_id == local_id:
            updated = BeneficialOwner(**{**owner.model_dump(), **changes})
            profile.beneficial_owners[index] = updated
            return updated
    raise BeneficialOwnerNotFoundError(local_id=local_id)


def remove_beneficial_owner(case: Case, local_id: str) -> BeneficialOwner:
    profile = _business_profile(case)
    for index, owner in enumerate(profile.beneficial_owners):
        if owner.local_id == local_id:
            return profile.beneficial_owners.pop(index)
    raise BeneficialOwnerNotFoundError(local_id=local_id)
