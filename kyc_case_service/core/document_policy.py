# Document Requirement Policy: accepted kinds, upload constraints, per-case-type expectations
import logging
from typing import FrozenSet, List, Optional

from . import validators
from .document_strategies import DocumentRequirement, get_document_strategy
from .models import Case, DocumentType, FieldValidationError

logger = logging.getLogger(__name__)


class DocumentRequirementPolicy:
    def __init__(
        self,
        max_file_size_bytes: int = validators.DEFAULT_MAX_FILE_SIZE_BYTES,
        allowed_media_types: FrozenSet[str] = validators.ALLOWED_MEDIA_TYPES,
    ):
        self.max_file_size_bytes = max_file_size_bytes
        self.allowed_media_types = frozenset(m.lower() for m in allowed_media_types)

    @staticmethod
    def accepted_document_types() -> List[DocumentType]:
        return list(DocumentType)

    def check_upload(
        self,
        document_type: Optional[str],
        media_type: Optional[str],
        size_bytes: Optional[int],
    ) -> List[FieldValidationError]:
        """Checks a file before it is accepted into a case's document set."""
        errors: List[FieldValidationError] = []
        if not document_type:
            errors.append(FieldValidationError(field_path="document_type", message="Document type is required"))
        else:
            try:
                DocumentType(document_type)
            except ValueError:
                errors.append(FieldValidationError(
                    field_path="document_type",
                    message=f"Unsupported document type '{document_type}'",
                ))

        file_failure = validators.validate_file(
            media_type,
            size_bytes,
            max_size_bytes=self.max_file_size_bytes,
            allowed_media_types=self.allowed_media_types,
        )
        if file_failure:
            errors.append(FieldValidationError(field_path="file", message=file_failure))

        if errors:
            logger.info(f"Upload of document type '{document_type}' rejected with {len(errors)} error(s).")
        return errors

    @staticmethod
    def requirements_for(case: Case) -> List[DocumentRequirement]:
        return get_document_strategy(case.case_type).determine_requirements()

    def satisfied_requirements(self, case: Case) -> List[DocumentRequirement]:
        present = {document.document_type for document in case.documents}
        return [
            requirement for requirement in self.requirements_for(case)
            if requirement.is_required and present.intersection(requirement.accepted_types)
        ]

    def missing_documents(self, case: Case) -> List[FieldValidationError]:
        present = {document.document_type for document in case.documents}
        errors: List[FieldValidationError] = []
        for requirement in self.requirements_for(case):
            if requirement.is_required and not present.intersection(requirement.accepted_types):
                errors.append(FieldValidationError(
                    field_path=f"documents.{requirement.key}",
                    message=f"{requirement.label} is required",
                ))
        return errors

