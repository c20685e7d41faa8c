# Pydantic models for workflow events published to the reviewer queue
from pydantic import BaseModel, Field
from typing import Optional
import datetime
import uuid

class EventMetaData(BaseModel):
    correlation_id: Optional[str] = None
    causation_id: Optional[str] = None # command_id that produced the event
    actor_id: Optional[str] = None

class BaseEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str # To be overridden by specific events
    aggregate_id: str # case_id
    timestamp: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    version: int = 1 # case version after the change
    payload: BaseModel
    metadata: EventMetaData = Field(default_factory=EventMetaData)

# --- Payloads ---
class CaseSubmittedEventPayload(BaseModel):
    user_id: Optional[str] = None
    case_type: str
    completion_percentage: int
    document_count: int

class CaseReviewStartedEventPayload(BaseModel):
    reviewer_id: Optional[str] = None

class CaseReviewedEventPayload(BaseModel):
    decision: str
    reviewer_id: Optional[str] = None
    risk_level: Optional[str] = None
    notes: Optional[str] = None

# --- Events ---
class CaseSubmittedEvent(BaseEvent):
    event_type: str = "CaseSubmitted"
    payload: CaseSubmittedEventPayload

class CaseReviewStartedEvent(BaseEvent):
    event_type: str = "CaseReviewStarted"
    payload: CaseReviewStartedEventPayload

class CaseReviewedEvent(BaseEvent):
    event_type: str = "CaseReviewed"
    payload: CaseReviewedEventPayload
