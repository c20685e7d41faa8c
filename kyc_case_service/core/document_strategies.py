# Document requirement strategies: the document groups each case type is expected to carry
from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel

from .models import CaseType, DocumentType


class DocumentRequirement(BaseModel):
    # Satisfied by any one of accepted_types
    key: str
    label: str
    accepted_types: List[DocumentType]
    is_required: bool = True


class DocumentRequirementStrategy(ABC):
    @abstractmethod
    def determine_requirements(self) -> List[DocumentRequirement]:
        """
        Determines the document groups a case of this type is expected to carry.

        Returns:
            A list of requirements; each is satisfied by uploading any one of its
            accepted document types.
        """
        pass


class IndividualDocumentStrategy(DocumentRequirementStrategy):
    def determine_requirements(self) -> List[DocumentRequirement]:
        return [
            DocumentRequirement(
                key="identity",
                label="Government-issued identity document",
                accepted_types=[DocumentType.PASSPORT, DocumentType.NATIONAL_ID, DocumentType.DRIVER_LICENSE],
            ),
            DocumentRequirement(
                key="proof_of_address",
                label="Proof of address",
                accepted_types=[DocumentType.PROOF_OF_ADDRESS, DocumentType.BANK_STATEMENT],
            ),
        ]


class BusinessDocumentStrategy(DocumentRequirementStrategy):
    def determine_requirements(self) -> List[DocumentRequirement]:
        return [
            DocumentRequirement(
                key="incorporation",
                label="Incorporation certificate",
                accepted_types=[DocumentType.INCORPORATION_CERTIFICATE],
            ),
            DocumentRequirement(
                key="business_license",
                label="Business license",
                accepted_types=[DocumentType.BUSINESS_LICENSE],
            ),
            DocumentRequirement(
                key="tax_document",
                label="Tax document",
                accepted_types=[DocumentType.TAX_DOCUMENT],
                is_required=False,
            ),
        ]


class DefaultStrategy(DocumentRequirementStrategy):
    def determine_requirements(self) -> List[DocumentRequirement]:
        return []


def get_document_strategy(case_type: CaseType) -> DocumentRequirementStrategy:
    if case_type == CaseType.INDIVIDUAL:
        return IndividualDocumentStrategy()
    elif case_type == CaseType.BUSINESS:
        return BusinessDocumentStrategy()
    return DefaultStrategy()
