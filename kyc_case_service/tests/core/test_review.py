# Unit Tests for the Review Decision Handler
import datetime
import pytest

from kyc_case_service.app.service.exceptions import InvalidCaseStateError, MissingReviewDecisionError
from kyc_case_service.core.models import CaseStatus, ReviewDecision, RiskLevel
from kyc_case_service.core.review import apply_review_decision, parse_decision


@pytest.fixture
def case_under_review(submitted_case):
    submitted_case.status = CaseStatus.UNDER_REVIEW
    return submitted_case


@pytest.mark.parametrize("decision", [None, "", "  "])
def test_missing_decision_is_refused(case_under_review, decision):
    with pytest.raises(MissingReviewDecisionError):
        apply_review_decision(case_under_review, decision, notes="ok")
    assert case_under_review.status == CaseStatus.UNDER_REVIEW


def test_unknown_decision_is_refused():
    with pytest.raises(ValueError, match="Unknown review decision"):
        parse_decision("case-1", "maybe")


def test_parse_decision_normalizes_text():
    assert parse_decision("case-1", " Approved ") == ReviewDecision.APPROVED


def test_approve_sets_audit_fields(case_under_review):
    now = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)
    notes = "  Documents verified.\nLow exposure.  "
    apply_review_decision(
        case_under_review, ReviewDecision.APPROVED, notes,
        reviewer_id="reviewer-1", risk_level=RiskLevel.LOW, now=now,
    )
    assert case_under_review.status == CaseStatus.APPROVED
    assert case_under_review.review_notes == notes
    assert case_under_review.reviewed_by == "reviewer-1"
    assert case_under_review.reviewed_at == now
    assert case_under_review.updated_at == now
    assert case_under_review.risk_level == RiskLevel.LOW


def test_reject_keeps_risk_level_unset(case_under_review):
    apply_review_decision(case_under_review, "rejected", "Mismatch", reviewer_id="reviewer-1")
    assert case_under_review.status == CaseStatus.REJECTED
    assert case_under_review.risk_level is None


def test_review_requires_under_review(submitted_case):
    with pytest.raises(InvalidCaseStateError):
        apply_review_decision(submitted_case, ReviewDecision.APPROVED, "ok")


def test_terminal_case_cannot_be_reviewed_again(case_under_review):
    apply_review_decision(case_under_review, ReviewDecision.REJECTED, "no")
    with pytest.raises(InvalidCaseStateError):
        apply_review_decision(case_under_review, ReviewDecision.APPROVED, "changed my mind")
