"""
Custom exceptions for the KYC case service.
"""
from typing import List, Optional


class BaseCaseManagementError(Exception):
    """Base class for exceptions in this module."""
    pass


# --- Validation failures (recoverable in place) ---

class CaseValidationError(BaseCaseManagementError):
    """Raised when a case fails validation for submission."""
    def __init__(self, case_id: str, errors: List["FieldValidationError"]):
        self.case_id = case_id
        self.errors = list(errors)
        super().__init__(f"Case '{case_id}' is not valid for submission: {len(self.errors)} validation error(s).")


class DocumentRejectedError(BaseCaseManagementError):
    """Raised when an uploaded file is not acceptable for a case's document set."""
    def __init__(self, case_id: str, errors: List["FieldValidationError"]):
        self.case_id = case_id
        self.errors = list(errors)
        reasons = "; ".join(error.message for error in self.errors)
        super().__init__(f"Document rejected for case '{case_id}': {reasons}")


class MissingReviewDecisionError(BaseCaseManagementError):
    """Raised when a review is submitted without an explicit decision."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"A review decision (approved or rejected) is required for case '{case_id}'.")


# --- Illegal transitions ---

class InvalidCaseStateError(BaseCaseManagementError):
    """Raised when an operation is attempted on a case in an invalid state."""
    def __init__(self, case_id: str, current_state: str, attempted_action: str):
        self.case_id = case_id
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} for case '{case_id}' in state '{current_state}'.")


class ActionNotPermittedError(BaseCaseManagementError):
    """Raised when the acting party may not trigger an action."""
    def __init__(self, actor: str, attempted_action: str, case_id: Optional[str] = None):
        self.actor = actor
        self.attempted_action = attempted_action
        self.case_id = case_id
        target = f" on case '{case_id}'" if case_id else ""
        super().__init__(f"Actor '{actor}' is not permitted to {attempted_action}{target}.")


# --- Lookups ---

class CaseNotFoundError(BaseCaseManagementError):
    """Raised when a case is not found."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case with ID '{case_id}' not found.")


class DocumentNotFoundError(BaseCaseManagementError):
    """Raised when a document is not found."""
    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document with ID '{document_id}' not found.")


class BeneficialOwnerNotFoundError(BaseCaseManagementError):
    """Raised when a beneficial owner row is not found in a business profile."""
    def __init__(self, local_id: str):
        self.local_id = local_id
        super().__init__(f"Beneficial owner with local ID '{local_id}' not found.")


# --- Collaborator failures ---

class ConcurrencyConflictError(BaseCaseManagementError):
    """Raised when a version conflict is detected during an update operation."""
    def __init__(self, aggregate_id: str, expected_version: int, actual_version: int):
        self.aggregate_id = aggregate_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrency conflict for aggregate '{aggregate_id}'. "
            f"Expected version {expected_version}, but found {actual_version}."
        )


class VerificationServiceError(BaseCaseManagementError):
    """Raised when a Verification Service call fails; reason is the service's own message."""
    def __init__(self, reason: str, status_code: Optional[int] = None):
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)


class AuthenticationError(BaseCaseManagementError):
    """Raised when session credentials are missing or rejected by the identity provider."""
    pass


class ConfigurationError(BaseCaseManagementError):
    """Raised when a configuration issue is detected."""
    pass


class KafkaProducerError(BaseCaseManagementError):
    """Raised when there's an issue with Kafka message production."""
    pass
