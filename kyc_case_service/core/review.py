# Review Decision Handler: applies a reviewer's decision to a case under review
import datetime
import logging
from typing import Optional

from kyc_case_service.app.service.exceptions import MissingReviewDecisionError
from .models import Actor, Case, ReviewDecision, RiskLevel
from .workflow import WorkflowAction, ensure_transition

logger = logging.getLogger(__name__)

_ACTION_BY_DECISION = {
    ReviewDecision.APPROVED: WorkflowAction.APPROVE,
    ReviewDecision.REJECTED: WorkflowAction.REJECT,
}


def action_for_decision(decision: ReviewDecision) -> WorkflowAction:
    return _ACTION_BY_DECISION[ReviewDecision(decision)]


def parse_decision(case_id: str, decision) -> ReviewDecision:
    # There is no default decision: absent or blank input is refused
    if decision is None or (isinstance(decision, str) and not decision.strip()):
        raise MissingReviewDecisionError(case_id)
    try:
        return ReviewDecision(decision.strip().lower() if isinstance(decision, str) else decision)
    except ValueError:
        raise ValueError(f"Unknown review decision '{decision}'. Expected 'approved' or 'rejected'.")


def apply_review_decision(
    case: Case,
    decision: Optional[ReviewDecision],
    notes: Optional[str] = None,
    reviewer_id: Optional[str] = None,
    risk_level: Optional[RiskLevel] = None,
    now: Optional[datetime.datetime] = None,
) -> Case:
    """
    Moves a case under review to its terminal status.

    Notes are kept verbatim as the audit trail of the decision.
    """
    review_decision = parse_decision(case.id, decision)
    target = ensure_transition(case, action_for_decision(review_decision), Actor.REVIEWER)

    now = now or datetime.datetime.now(datetime.UTC)
    case.status = target
    case.review_notes = notes
    case.reviewed_by = reviewer_id
    case.reviewed_at = now
    case.updated_at = now
    if risk_level is not None:
        case.risk_level = RiskLevel(risk_level)

    logger.info(f"Case {case.id} reviewed by {reviewer_id or 'unknown reviewer'}: {review_decision.value}.")
    return case
