# MongoDB-backed Verification Service: owns the cases collection and enforces the workflow
import datetime
import logging
import uuid
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from opentelemetry import trace

from kyc_case_service.app.config import settings
from kyc_case_service.app.service.events import models as event_models
from kyc_case_service.app.service.exceptions import (
    ActionNotPermittedError,
    CaseNotFoundError,
    CaseValidationError,
    ConcurrencyConflictError,
    DocumentNotFoundError,
    DocumentRejectedError,
)
from kyc_case_service.app.service.interfaces.verification_service import AbstractVerificationService
from kyc_case_service.core import case_aggregate
from kyc_case_service.core.document_policy import DocumentRequirementPolicy
from kyc_case_service.core.models import (
    Actor,
    BusinessProfile,
    Case,
    CaseStatus,
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
from kyc_case_service.core.profile_schema import ValidationPolicy
from kyc_case_service.core.review import apply_review_decision
from kyc_case_service.core.workflow import EditAction, WorkflowAction, ensure_editable, ensure_transition
from kyc_case_service.infrastructure.kafka.producer import KafkaProducerService

logger = logging.getLogger(__name__)

PENDING_STATUSES = [CaseStatus.SUBMITTED.value, CaseStatus.UNDER_REVIEW.value]


def _to_document(case: Case) -> Dict[str, Any]:
    return case.model_dump(mode="json")


def _from_document(doc: Dict[str, Any]) -> Case:
    doc = {k: v for k, v in doc.items() if k != "_id"}
    return Case(**doc)


class MongoVerificationService(AbstractVerificationService):
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        kafka_producer: Optional[KafkaProducerService] = None,
        validation_policy: Optional[ValidationPolicy] = None,
        document_policy: Optional[DocumentRequirementPolicy] = None,
        collection_name: str = settings.CASES_COLLECTION_NAME,
    ):
        self.db = db
        self.collection = db[collection_name]
        self.kafka_producer = kafka_producer
        self.validation_policy = validation_policy or ValidationPolicy()
        self.document_policy = document_policy or DocumentRequirementPolicy()

    # --- helpers ---

    async def _load(self, case_id: str) -> Case:
        doc = await self.collection.find_one({"id": case_id})
        if not doc:
            raise CaseNotFoundError(case_id=case_id)
        return _from_document(doc)

    @staticmethod
    def _authorize_owner(session: SessionContext, case: Case, action: str) -> None:
        if session.is_reviewer:
            return
        if case.user_id != session.user_id:
            raise ActionNotPermittedError(session.user_id, action, case.id)

    @staticmethod
    def _require_reviewer(session: SessionContext, action: str) -> None:
        if not session.is_reviewer:
            raise ActionNotPermittedError(session.role.value, action)

    async def _persist(self, case: Case) -> Case:
        """Writes the case back if nobody changed it since it was loaded (compare-and-set on version)."""
        loaded_version = case.version
        case.version = loaded_version + 1
        case.updated_at = datetime.datetime.now(datetime.UTC)
        result = await self.collection.replace_one({"id": case.id, "version": loaded_version}, _to_document(case))
        if result.matched_count == 0:
            current = await self.collection.find_one({"id": case.id})
            if not current:
                raise CaseNotFoundError(case_id=case.id)
            logger.warning(f"Version conflict persisting case {case.id}: loaded {loaded_version}, stored {current.get('version')}.")
            raise ConcurrencyConflictError(case.id, loaded_version, current.get("version", 0))
        logger.info(f"Case {case.id} persisted at version {case.version} (status '{case.status.value}').")
        return case

    def _publish(self, event: event_models.BaseEvent) -> None:
        if self.kafka_producer is None:
            logger.debug(f"Kafka producer not configured; {event.event_type} for case {event.aggregate_id} not published.")
            return
        self.kafka_producer.produce_message(
            topic=settings.CASE_EVENTS_KAFKA_TOPIC,
            message=event,
            key=event.aggregate_id,
        )
        trace.get_current_span().add_event(
            f"{event.event_type}PublishedToKafka",
            {"event.id": event.event_id, "kafka.topic": settings.CASE_EVENTS_KAFKA_TOPIC},
        )

    # --- AbstractVerificationService ---

    async def create_case(self, session: SessionContext, case_type: CaseType) -> Case:
        case = Case(user_id=session.user_id, case_type=CaseType(case_type))
        case_aggregate.refresh_completion(case, self.document_policy)
        await self.collection.insert_one(_to_document(case))
        logger.info(f"Created {case.case_type.value} case {case.id} for user {session.user_id}.")
        return case

    async def get_case(self, session: SessionContext, case_id: str) -> Case:
        case = await self._load(case_id)
        self._authorize_owner(session, case, "view case")
        return case

    async def get_complete_case(self, session: SessionContext, case_id: str) -> Case:
        # Profile and documents are embedded in the case record
        return await self.get_case(session, case_id)

    async def save_profile(
        self,
        session: SessionContext,
        case_id: str,
        profile: Profile,
        expected_version: Optional[int] = None,
    ) -> Case:
        case = await self._load(case_id)
        self._authorize_owner(session, case, EditAction.SAVE_PROFILE.value)
        ensure_editable(case, EditAction.SAVE_PROFILE, session.role)
        if expected_version is not None and expected_version != case.version:
            raise ConcurrencyConflictError(case.id, expected_version, case.version)

        case_aggregate.apply_profile(case, profile, self.document_policy)
        if isinstance(case.profile, BusinessProfile):
            for owner in case.profile.beneficial_owners:
                if owner.id is None:
                    owner.id = uuid.uuid4().hex
        return await self._persist(case)

    async def submit_case(self, session: SessionContext, case_id: str) -> Case:
        case = await self._load(case_id)
        self._authorize_owner(session, case, WorkflowAction.SUBMIT.value)
        target = ensure_transition(case, WorkflowAction.SUBMIT, session.role)

        errors = case_aggregate.validate_for_submission(case, self.validation_policy, self.document_policy)
        if errors:
            raise CaseValidationError(case.id, errors)

        now = datetime.datetime.now(datetime.UTC)
        case.status = target
        case.submitted_at = now
        case_aggregate.refresh_completion(case, self.document_policy)
        case = await self._persist(case)

        self._publish(event_models.CaseSubmittedEvent(
            aggregate_id=case.id,
            version=case.version,
            payload=event_models.CaseSubmittedEventPayload(
                user_id=case.user_id,
                case_type=case.case_type.value,
                completion_percentage=case.completion_percentage,
                document_count=len(case.documents),
            ),
            metadata=event_models.EventMetaData(actor_id=session.user_id),
        ))
        return case

    async def upload_document(
        self,
        session: SessionContext,
        case_id: str,
        document_type: DocumentType,
        upload: FileUpload,
    ) -> Document:
        case = await self._load(case_id)
        self._authorize_owner(session, case, EditAction.UPLOAD_DOCUMENT.value)
        ensure_editable(case, EditAction.UPLOAD_DOCUMENT, session.role)

        errors = self.document_policy.check_upload(
            document_type.value if isinstance(document_type, DocumentType) else document_type,
            upload.media_type,
            upload.size_bytes,
        )
        if errors:
            raise DocumentRejectedError(case.id, errors)

        document = Document(
            case_id=case.id,
            document_type=DocumentType(document_type),
            original_filename=upload.filename,
            media_type=upload.media_type,
            size_bytes=upload.size_bytes,
        )
        case_aggregate.attach_document(case, document, self.document_policy)
        await self._persist(case)
        return document

    async def delete_document(self, session: SessionContext, document_id: str) -> None:
        doc = await self.collection.find_one({"documents.id": document_id})
        if not doc:
            raise DocumentNotFoundError(document_id=document_id)
        case = _from_document(doc)
        self._authorize_owner(session, case, EditAction.DELETE_DOCUMENT.value)
        ensure_editable(case, EditAction.DELETE_DOCUMENT, session.role)
        case_aggregate.detach_document(case, document_id, self.document_policy)
        await self._persist(case)

    async def list_cases_for_user(self, session: SessionContext, user_id: str) -> List[Case]:
        if not session.is_reviewer and user_id != session.user_id:
            raise ActionNotPermittedError(session.user_id, "list cases of another user")
        cursor = self.collection.find({"user_id": user_id}).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
        return [_from_document(doc) for doc in docs]

    async def list_pending_cases(self, session: SessionContext) -> List[Case]:
        self._require_reviewer(session, "list pending cases")
        cursor = self.collection.find({"status": {"$in": PENDING_STATUSES}}).sort("submitted_at", 1)
        docs = await cursor.to_list(length=None)
        return [_from_document(doc) for doc in docs]

    async def start_review(self, session: SessionContext, case_id: str) -> Case:
        self._require_reviewer(session, WorkflowAction.START_REVIEW.value)
        case = await self._load(case_id)
        case.status = ensure_transition(case, WorkflowAction.START_REVIEW, Actor.REVIEWER)
        case.reviewed_by = session.user_id
        case = await self._persist(case)

        self._publish(event_models.CaseReviewStartedEvent(
            aggregate_id=case.id,
            version=case.version,
            payload=event_models.CaseReviewStartedEventPayload(reviewer_id=session.user_id),
            metadata=event_models.EventMetaData(actor_id=session.user_id),
        ))
        return case

    async def review_case(
        self,
        session: SessionContext,
        case_id: str,
        decision: ReviewDecision,
        notes: Optional[str] = None,
        risk_level: Optional[RiskLevel] = None,
    ) -> Case:
        self._require_reviewer(session, "review case")
        case = await self._load(case_id)
        apply_review_decision(case, decision, notes, reviewer_id=session.user_id, risk_level=risk_level)
        case = await self._persist(case)

        self._publish(event_models.CaseReviewedEvent(
            aggregate_id=case.id,
            version=case.version,
            payload=event_models.CaseReviewedEventPayload(
                decision=case.status.value,
                reviewer_id=session.user_id,
                risk_level=case.risk_level.value if case.risk_level else None,
                notes=notes,
            ),
            metadata=event_models.EventMetaData(actor_id=session.user_id),
        ))
        return case

    async def get_dashboard_stats(self, session: SessionContext) -> DashboardStats:
        self._require_reviewer(session, "view dashboard")
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        rows = await self.collection.aggregate(pipeline).to_list(length=None)
        counts = {row["_id"]: row["count"] for row in rows}
        return DashboardStats(
            total_cases=sum(counts.values()),
            **{status.value: counts.get(status.value, 0) for status in CaseStatus},
        )
