# Unit Tests for the Workflow State Machine
import pytest

from kyc_case_service.app.service.exceptions import ActionNotPermittedError, InvalidCaseStateError
from kyc_case_service.core.models import Actor, Case, CaseStatus, CaseType
from kyc_case_service.core.workflow import (
    TRANSITIONS,
    EditAction,
    WorkflowAction,
    allowed_actions,
    ensure_editable,
    ensure_transition,
    is_editable,
    is_terminal,
)


def case_in(status: CaseStatus) -> Case:
    return Case(user_id="user-1", case_type=CaseType.INDIVIDUAL, status=status)


@pytest.mark.parametrize("action,source,target,actor", [
    (WorkflowAction.SUBMIT, CaseStatus.DRAFT, CaseStatus.SUBMITTED, Actor.APPLICANT),
    (WorkflowAction.START_REVIEW, CaseStatus.SUBMITTED, CaseStatus.UNDER_REVIEW, Actor.REVIEWER),
    (WorkflowAction.START_REVIEW, CaseStatus.SUBMITTED, CaseStatus.UNDER_REVIEW, Actor.SYSTEM),
    (WorkflowAction.APPROVE, CaseStatus.UNDER_REVIEW, CaseStatus.APPROVED, Actor.REVIEWER),
    (WorkflowAction.REJECT, CaseStatus.UNDER_REVIEW, CaseStatus.REJECTED, Actor.REVIEWER),
])
def test_legal_transitions(action, source, target, actor):
    assert ensure_transition(case_in(source), action, actor) == target


def test_every_other_source_status_is_refused():
    for action, transition in TRANSITIONS.items():
        actor = next(iter(transition.actors))
        for status in CaseStatus:
            if status == transition.source:
                continue
            with pytest.raises(InvalidCaseStateError):
                ensure_transition(case_in(status), action, actor)


def test_applicant_cannot_approve():
    with pytest.raises(ActionNotPermittedError):
        ensure_transition(case_in(CaseStatus.UNDER_REVIEW), WorkflowAction.APPROVE, Actor.APPLICANT)


def test_reviewer_cannot_submit_for_applicant():
    with pytest.raises(ActionNotPermittedError):
        ensure_transition(case_in(CaseStatus.DRAFT), WorkflowAction.SUBMIT, Actor.REVIEWER)


@pytest.mark.parametrize("action", list(EditAction))
def test_edits_allowed_only_in_draft(action):
    ensure_editable(case_in(CaseStatus.DRAFT), action)
    for status in (CaseStatus.SUBMITTED, CaseStatus.UNDER_REVIEW, CaseStatus.APPROVED, CaseStatus.REJECTED):
        with pytest.raises(InvalidCaseStateError):
            ensure_editable(case_in(status), action)


def test_reviewer_cannot_edit_draft():
    with pytest.raises(ActionNotPermittedError):
        ensure_editable(case_in(CaseStatus.DRAFT), EditAction.SAVE_PROFILE, Actor.REVIEWER)


def test_terminal_and_editable_statuses():
    assert is_terminal(CaseStatus.APPROVED) and is_terminal(CaseStatus.REJECTED)
    assert not is_terminal(CaseStatus.UNDER_REVIEW)
    assert is_editable(CaseStatus.DRAFT)
    assert not is_editable(CaseStatus.SUBMITTED)


def test_allowed_actions():
    assert allowed_actions(CaseStatus.DRAFT, Actor.APPLICANT) == [
        "submit", "save_profile", "upload_document", "delete_document", "edit_beneficial_owners",
    ]
    assert allowed_actions(CaseStatus.DRAFT, Actor.REVIEWER) == []
    assert allowed_actions(CaseStatus.UNDER_REVIEW, Actor.REVIEWER) == ["approve", "reject"]
    assert allowed_actions(CaseStatus.APPROVED) == []
