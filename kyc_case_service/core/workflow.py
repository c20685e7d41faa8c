# Workflow State Machine: legal status transitions and who may trigger them
import enum
import logging
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict

from kyc_case_service.app.service.exceptions import ActionNotPermittedError, InvalidCaseStateError
from .models import Actor, Case, CaseStatus

logger = logging.getLogger(__name__)


class WorkflowAction(str, enum.Enum):
    SUBMIT = "submit"
    START_REVIEW = "start_review"
    APPROVE = "approve"
    REJECT = "reject"


class EditAction(str, enum.Enum):
    SAVE_PROFILE = "save_profile"
    UPLOAD_DOCUMENT = "upload_document"
    DELETE_DOCUMENT = "delete_document"
    EDIT_BENEFICIAL_OWNERS = "edit_beneficial_owners"


class Transition(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: WorkflowAction
    source: CaseStatus
    target: CaseStatus
    actors: FrozenSet[Actor]


INITIAL_STATUS = CaseStatus.DRAFT
EDITABLE_STATUSES = frozenset({CaseStatus.DRAFT})
TERMINAL_STATUSES = frozenset({CaseStatus.APPROVED, CaseStatus.REJECTED})

TRANSITIONS: Dict[WorkflowAction, Transition] = {
    WorkflowAction.SUBMIT: Transition(
        action=WorkflowAction.SUBMIT,
        source=CaseStatus.DRAFT,
        target=CaseStatus.SUBMITTED,
        actors=frozenset({Actor.APPLICANT}),
    ),
    # Hand-over to the reviewer queue happens inside the Verification Service
    WorkflowAction.START_REVIEW: Transition(
        action=WorkflowAction.START_REVIEW,
        source=CaseStatus.SUBMITTED,
        target=CaseStatus.UNDER_REVIEW,
        actors=frozenset({Actor.SYSTEM, Actor.REVIEWER}),
    ),
    WorkflowAction.APPROVE: Transition(
        action=WorkflowAction.APPROVE,
        source=CaseStatus.UNDER_REVIEW,
        target=CaseStatus.APPROVED,
        actors=frozenset({Actor.REVIEWER}),
    ),
    WorkflowAction.REJECT: Transition(
        action=WorkflowAction.REJECT,
        source=CaseStatus.UNDER_REVIEW,
        target=CaseStatus.REJECTED,
        actors=frozenset({Actor.REVIEWER}),
    ),
}

# Who may edit a draft
EDIT_ACTORS = frozenset({Actor.APPLICANT})


def is_terminal(status: CaseStatus) -> bool:
    return CaseStatus(status) in TERMINAL_STATUSES


def is_editable(status: CaseStatus) -> bool:
    return CaseStatus(status) in EDITABLE_STATUSES


def allowed_actions(status: CaseStatus, actor: Optional[Actor] = None) -> list:
    """Lists the workflow and edit actions legal from a status (optionally for one actor)."""
    status = CaseStatus(status)
    actions = [
        transition.action.value for transition in TRANSITIONS.values()
        if transition.source == status and (actor is None or actor in transition.actors)
    ]
    if status in EDITABLE_STATUSES and (actor is None or actor in EDIT_ACTORS):
        actions.extend(action.value for action in EditAction)
    return actions


def ensure_transition(case: Case, action: WorkflowAction, actor: Actor) -> CaseStatus:
    """
    Checks that `actor` may apply `action` to `case` in its current status.

    Returns the target status; raises InvalidCaseStateError when the case is in
    the wrong status and ActionNotPermittedError when the actor may not
    trigger the action.
    """
    transition = TRANSITIONS[WorkflowAction(action)]
    if case.status != transition.source:
        logger.info(
            f"Rejected '{transition.action.value}' for case {case.id}: status is '{case.status.value}', "
            f"expected '{transition.source.value}'."
        )
        raise InvalidCaseStateError(case.id, case.status.value, transition.action.value)
    if Actor(actor) not in transition.actors:
        raise ActionNotPermittedError(Actor(actor).value, transition.action.value, case.id)
    return transition.target


def ensure_editable(case: Case, action: EditAction, actor: Actor = Actor.APPLICANT) -> None:
    action = EditAction(action)
    if not is_editable(case.status):
        logger.info(f"Rejected '{action.value}' for case {case.id}: status '{case.status.value}' is read-only.")
        raise InvalidCaseStateError(case.id, case.status.value, action.value)
    if Actor(actor) not in EDIT_ACTORS:
        raise ActionNotPermittedError(Actor(actor).value, action.value, case.id)
