# Command Handler Implementation
import logging
from typing import Callable, Optional, TypeVar

from opentelemetry import trace

from .models import (
    AddBeneficialOwnerCommand,
    CaseValidationReport,
    CreateCaseCommand,
    DeleteDocumentCommand,
    RemoveBeneficialOwnerCommand,
    ReviewCaseCommand,
    SaveProfileCommand,
    SaveProfileResult,
    StartReviewCommand,
    SubmitCaseCommand,
    UpdateBeneficialOwnerCommand,
    UploadDocumentCommand,
)
from kyc_case_service.app.observability import (
    case_completion_histogram,
    case_submissions_counter,
    review_decisions_counter,
    workflow_rejections_counter,
)
from kyc_case_service.app.service.exceptions import (
    ActionNotPermittedError,
    CaseValidationError,
    DocumentNotFoundError,
    DocumentRejectedError,
    InvalidCaseStateError,
)
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core import case_aggregate
from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.models import Case, Document, DocumentType, FileUpload, SessionContext
from kyc_case_service.core.profile_schema import ValidationPolicy, validate_profile
from kyc_case_service.core.review import action_for_decision, parse_decision
from kyc_case_service.core.workflow import EditAction, WorkflowAction, ensure_editable, ensure_transition


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _start_span(command_name: str, command_id: str, case_id: Optional[str] = None) -> trace.Span:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", command_name)
    current_span.set_attribute("command.id", command_id)
    if case_id:
        current_span.set_attribute("case.id", case_id)
    current_span.add_event(f"{command_name}HandlerStarted")
    return current_span


def _guarded(action: str, check: Callable[[], T]) -> T:
    # Workflow pre-check; runs before any call to the Verification Service
    try:
        return check()
    except (InvalidCaseStateError, ActionNotPermittedError) as e:
        workflow_rejections_counter.add(1, {"action": action, "reason": type(e).__name__})
        trace.get_current_span().add_event("WorkflowRejected", {"action": action, "reason": str(e)})
        raise


def _record_completion(case: Case) -> None:
    case_completion_histogram.record(case.completion_percentage, {"case_type": case.case_type.value})


async def handle_create_case_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: CreateCaseCommand,
) -> Case:
    current_span = _start_span("CreateCaseCommand", command.command_id)
    current_span.set_attribute("case.type", command.case_type.value)
    logger.info(f"Handling CreateCaseCommand: {command.command_id} for user {session.user_id}, type: {command.case_type.value}")

    case = await service.create_case(session, command.case_type)
    current_span.add_event("CaseCreated", {"case.id": case.id})
    logger.info(f"Case {case.id} created in status '{case.status.value}'.")
    return case


async def handle_save_profile_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: SaveProfileCommand,
    validation_policy: Optional[ValidationPolicy] = None,
) -> SaveProfileResult:
    """
    Saves a (possibly partial) draft profile.

    Drafts may be saved incomplete; the validation errors of the saved profile
    are returned alongside the refreshed case so the caller can fix them in
    place before submitting.
    """
    current_span = _start_span("SaveProfileCommand", command.command_id, command.case_id)
    logger.info(f"Handling SaveProfileCommand: {command.command_id} for case {command.case_id}")

    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.SAVE_PROFILE.value, lambda: ensure_editable(case, EditAction.SAVE_PROFILE, session.role))
    profile = case_aggregate.coerce_profile(case.case_type, command.profile)

    await service.save_profile(session, case.id, profile, expected_version=command.expected_version)
    refreshed = await service.get_complete_case(session, case.id)
    _record_completion(refreshed)

    errors = validate_profile(refreshed.case_type, refreshed.profile, validation_policy)
    current_span.set_attribute("case.completion_percentage", refreshed.completion_percentage)
    current_span.set_attribute("profile.validation_errors", len(errors))
    logger.info(
        f"Profile saved for case {case.id}: completion {refreshed.completion_percentage}%, "
        f"{len(errors)} outstanding validation error(s)."
    )
    return SaveProfileResult(case=refreshed, validation_errors=errors)


async def handle_upload_document_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: UploadDocumentCommand,
    document_policy: Optional[DocumentRequirementPolicy] = None,
) -> Document:
    document_policy = document_policy or DocumentRequirementPolicy()
    current_span = _start_span("UploadDocumentCommand", command.command_id, command.case_id)
    current_span.set_attribute("document.type", command.document_type)
    logger.info(f"Handling UploadDocumentCommand: {command.command_id} for case {command.case_id}, type: {command.document_type}")

    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.UPLOAD_DOCUMENT.value, lambda: ensure_editable(case, EditAction.UPLOAD_DOCUMENT, session.role))

    errors = document_policy.check_upload(command.document_type, command.media_type, command.size_bytes)
    if errors:
        current_span.add_event("DocumentRejected", {"errors": len(errors)})
        raise DocumentRejectedError(case.id, errors)

    upload = FileUpload(
        filename=command.filename,
        media_type=command.media_type,
        size_bytes=command.size_bytes,
        content=command.content,
    )
    document = await service.upload_document(session, case.id, DocumentType(command.document_type), upload)
    current_span.add_event("DocumentUploaded", {"document.id": document.id})
    logger.info(f"Document {document.id} ({document.document_type.value}) uploaded to case {case.id}.")
    return document


async def handle_delete_document_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: DeleteDocumentCommand,
) -> Case:
    current_span = _start_span("DeleteDocumentCommand", command.command_id, command.case_id)
    current_span.set_attribute("document.id", command.document_id)
    logger.info(f"Handling DeleteDocumentCommand: {command.command_id} for document {command.document_id}")

    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.DELETE_DOCUMENT.value, lambda: ensure_editable(case, EditAction.DELETE_DOCUMENT, session.role))
    if not any(document.id == command.document_id for document in case.documents):
        raise DocumentNotFoundError(document_id=command.document_id)

    await service.delete_document(session, command.document_id)
    refreshed = await service.get_complete_case(session, case.id)
    _record_completion(refreshed)
    return refreshed


def validate_case(
    case: Case,
    validation_policy: Optional[ValidationPolicy] = None,
    document_policy: Optional[DocumentRequirementPolicy] = None,
) -> CaseValidationReport:
    """Read-only submission check of a case as it currently stands."""
    document_policy = document_policy or DocumentRequirementPolicy()
    errors = case_aggregate.validate_for_submission(case, validation_policy, document_policy)
    return CaseValidationReport(
        case_id=case.id,
        status=case.status.value,
        completion_percentage=case_aggregate.compute_completion(case, document_policy),
        is_valid_for_submission=not errors,
        errors=errors,
        missing_documents=document_policy.missing_documents(case),
    )


async def handle_submit_case_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: SubmitCaseCommand,
    validation_policy: Optional[ValidationPolicy] = None,
    document_policy: Optional[DocumentRequirementPolicy] = None,
) -> Case:
    current_span = _start_span("SubmitCaseCommand", command.command_id, command.case_id)
    logger.info(f"Handling SubmitCaseCommand: {command.command_id} for case {command.case_id}")

    case = await service.get_complete_case(session, command.case_id)
    try:
        _guarded(WorkflowAction.SUBMIT.value, lambda: ensure_transition(case, WorkflowAction.SUBMIT, session.role))
    except (InvalidCaseStateError, ActionNotPermittedError):
        case_submissions_counter.add(1, {"outcome": "illegal_state", "case_type": case.case_type.value})
        raise

    errors = case_aggregate.validate_for_submission(case, validation_policy, document_policy)
    if errors:
        case_submissions_counter.add(1, {"outcome": "invalid", "case_type": case.case_type.value})
        current_span.add_event("CaseSubmissionInvalid", {"errors": len(errors)})
        logger.warning(f"Case {case.id} not submitted: {len(errors)} validation error(s).")
        raise CaseValidationError(case.id, errors)

    await service.submit_case(session, case.id)
    refreshed = await service.get_complete_case(session, case.id)
    case_submissions_counter.add(1, {"outcome": "accepted", "case_type": case.case_type.value})
    current_span.add_event("CaseSubmitted", {"case.status": refreshed.status.value})
    logger.info(f"Case {case.id} submitted; status now '{refreshed.status.value}'.")
    return refreshed


async def handle_start_review_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: StartReviewCommand,
) -> Case:
    current_span = _start_span("StartReviewCommand", command.command_id, command.case_id)
    logger.info(f"Handling StartReviewCommand: {command.command_id} for case {command.case_id} by {session.user_id}")

    case = await service.get_complete_case(session, command.case_id)
    _guarded(WorkflowAction.START_REVIEW.value, lambda: ensure_transition(case, WorkflowAction.START_REVIEW, session.role))

    await service.start_review(session, case.id)
    refreshed = await service.get_complete_case(session, case.id)
    current_span.add_event("CaseReviewStarted", {"case.status": refreshed.status.value})
    return refreshed


async def handle_review_case_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: ReviewCaseCommand,
) -> Case:
    current_span = _start_span("ReviewCaseCommand", command.command_id, command.case_id)
    logger.info(f"Handling ReviewCaseCommand: {command.command_id} for case {command.case_id} by {session.user_id}")

    decision = parse_decision(command.case_id, command.decision)
    current_span.set_attribute("review.decision", decision.value)

    case = await service.get_complete_case(session, command.case_id)
    action = action_for_decision(decision)
    _guarded(action.value, lambda: ensure_transition(case, action, session.role))

    await service.review_case(session, case.id, decision, notes=command.notes, risk_level=command.risk_level)
    refreshed = await service.get_complete_case(session, case.id)
    review_decisions_counter.add(1, {"decision": decision.value, "case_type": case.case_type.value})
    current_span.add_event("CaseReviewed", {"case.status": refreshed.status.value})
    logger.info(f"Case {case.id} reviewed: {decision.value}.")
    return refreshed


# --- Beneficial owner rows ---
# Rows are edited on a working copy and written back as one profile save,
# guarded by the version the copy was read at.

async def _save_owner_edit(
    service: AbstractVerificationService,
    session: SessionContext,
    case: Case,
) -> Case:
    await service.save_profile(session, case.id, case.profile, expected_version=case.version)
    refreshed = await service.get_complete_case(session, case.id)
    _record_completion(refreshed)
    return refreshed


async def handle_add_beneficial_owner_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: AddBeneficialOwnerCommand,
) -> Case:
    _start_span("AddBeneficialOwnerCommand", command.command_id, command.case_id)
    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.EDIT_BENEFICIAL_OWNERS.value, lambda: ensure_editable(case, EditAction.EDIT_BENEFICIAL_OWNERS, session.role))
    owner = case_aggregate.add_beneficial_owner(case, **command.owner)
    logger.info(f"Adding beneficial owner {owner.local_id} to case {case.id}.")
    return await _save_owner_edit(service, session, case)


async def handle_update_beneficial_owner_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: UpdateBeneficialOwnerCommand,
) -> Case:
    _start_span("UpdateBeneficialOwnerCommand", command.command_id, command.case_id)
    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.EDIT_BENEFICIAL_OWNERS.value, lambda: ensure_editable(case, EditAction.EDIT_BENEFICIAL_OWNERS, session.role))
    case_aggregate.update_beneficial_owner(case, command.local_id, **command.changes)
    return await _save_owner_edit(service, session, case)


async def handle_remove_beneficial_owner_command(
    service: AbstractVerificationService,
    session: SessionContext,
    command: RemoveBeneficialOwnerCommand,
) -> Case:
    _start_span("RemoveBeneficialOwnerCommand", command.command_id, command.case_id)
    case = await service.get_complete_case(session, command.case_id)
    _guarded(EditAction.EDIT_BENEFICIAL_OWNERS.value, lambda: ensure_editable(case, EditAction.EDIT_BENEFICIAL_OWNERS, session.role))
    removed = case_aggregate.remove_beneficial_owner(case, command.local_id)
    logger.info(f"Removing beneficial owner {removed.local_id} from case {case.id}.")
    return await _save_owner_edit(service, session, case)

