from abc import ABC, abstractmethod
from typing import List, Optional

from kyc_case_service.core.models import (
    Case,
    CaseType,
    DashboardStats,
    Document,
    DocumentType,
    FileUpload,
    Profile,
    ReviewDecision,
    RiskLevel,
    SessionContext,
)


class AbstractVerificationService(ABC):
    """
    Boundary to the Verification Service, which owns case storage and has the
    final say over transitions.

    Every call takes the caller's SessionContext explicitly. Failures are raised
    as VerificationServiceError carrying the service's own reason string.
    """

    @abstractmethod
    async def create_case(self, session: SessionContext, case_type: CaseType) -> Case:
        pass

    @abstractmethod
    async def get_case(self, session: SessionContext, case_id: str) -> Case:
        pass

    @abstractmethod
    async def get_complete_case(self, session: SessionContext, case_id: str) -> Case:
        """Returns the case with its nested profile and documents."""
        pass

    @abstractmethod
    async def save_profile(
        self,
        session: SessionContext,
        case_id: str,
        profile: Profile,
        expected_version: Optional[int] = None,
    ) -> Case:
        """
        Persists a profile. When expected_version is given the write only
        succeeds if the stored case still has that version.
        """
        pass

    @abstractmethod
    async def submit_case(self, session: SessionContext, case_id: str) -> Case:
        pass

    @abstractmethod
    async def upload_document(
        self,
        session: SessionContext,
        case_id: str,
        document_type: DocumentType,
        upload: FileUpload,
    ) -> Document:
        pass

    @abstractmethod
    async def delete_document(self, session: SessionContext, document_id: str) -> None:
        pass

    @abstractmethod
    async def list_cases_for_user(self, session: SessionContext, user_id: str) -> List[Case]:
        pass

    @abstractmethod
    async def list_pending_cases(self, session: SessionContext) -> List[Case]:
        """Reviewer-scoped: cases waiting for, or in, review."""
        pass

    @abstractmethod
    async def start_review(self, session: SessionContext, case_id: str) -> Case:
        pass

    @abstractmethod
    async def review_case(
        self,
        session: SessionContext,
        case_id: str,
        decision: ReviewDecision,
        notes: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> Case:
        pass

    @abstractmethod
    async def get_dashboard_stats(self, session: SessionContext) -> DashboardStats:
        pass
