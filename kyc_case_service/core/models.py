# Pydantic models for the case domain (case, profiles, documents)
import datetime
import enum
import uuid
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CaseType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class CaseStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, enum.Enum):
    PASSPORT = "passport"
    NATIONAL_ID = "national_id"
    DRIVER_LICENSE = "driver_license"
    BIRTH_CERTIFICATE = "birth_certificate"
    PROOF_OF_ADDRESS = "proof_of_address"
    BANK_STATEMENT = "bank_statement"
    TAX_DOCUMENT = "tax_document"
    INCORPORATION_CERTIFICATE = "incorporation_certificate"
    BUSINESS_LICENSE = "business_license"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ReviewDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Actor(str, enum.Enum):
    APPLICANT = "applicant"
    REVIEWER = "reviewer"
    SYSTEM = "system"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def new_local_id() -> str:
    return uuid.uuid4().hex


class IndividualProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    profile_kind: Literal["individual"] = "individual"

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None # ISO date, e.g. 1990-04-21
    nationality: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None # e.g. US, UK, CA
    occupation: Optional[str] = None
    employer: Optional[str] = None
    annual_income_range: Optional[str] = None
    passport_number: Optional[str] = None
    national_id_number: Optional[str] = None


class BeneficialOwner(BaseModel):
    # local_id is only stable for one editing session; id is assigned by the service on save
    local_id: str = Field(default_factory=new_local_id)
    id: Optional[str] = None

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    nationality: Optional[str] = None
    ownership_percentage: Optional[str] = None # kept as entered; checked by validate_percentage
    position_title: Optional[str] = None
    email: Optional[str] = None

    @field_validator("ownership_percentage", mode="before")
    @classmethod
    def stringify_percentage(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class BusinessProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    profile_kind: Literal["business"] = "business"

    business_name: Optional[str] = None
    legal_business_name: Optional[str] = None
    business_registration_number: Optional[str] = None
    tax_identification_number: Optional[str] = None
    incorporation_date: Optional[str] = None
    business_type: Optional[str] = None # e.g. llc, corporation, partnership
    industry_sector: Optional[str] = None
    business_email: Optional[str] = None
    business_phone: Optional[str] = None
    business_website: Optional[str] = None
    business_address_line1: Optional[str] = None
    business_address_line2: Optional[str] = None
    business_city: Optional[str] = None
    business_state_province: Optional[str] = None
    business_postal_code: Optional[str] = None
    business_country: Optional[str] = None
    number_of_employees: Optional[str] = None
    annual_revenue_range: Optional[str] = None
    is_publicly_traded: bool = False
    stock_symbol: Optional[str] = None

    beneficial_owners: List[BeneficialOwner] = Field(default_factory=list)


Profile = Union[IndividualProfile, BusinessProfile]

PROFILE_CLASS_BY_CASE_TYPE = {
    CaseType.INDIVIDUAL: IndividualProfile,
    CaseType.BUSINESS: BusinessProfile,
}


def empty_profile_for(case_type: CaseType) -> Profile:
    return PROFILE_CLASS_BY_CASE_TYPE[CaseType(case_type)]()


class Document(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    case_id: str
    document_type: DocumentType
    original_filename: str
    media_type: Optional[str] = None
    size_bytes: int = 0
    status: DocumentStatus = DocumentStatus.PENDING
    uploaded_at: datetime.datetime = Field(default_factory=_utcnow)


class FieldValidationError(BaseModel):
    field_path: str
    message: str


class Case(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4().hex))
    user_id: Optional[str] = None # owning applicant
    case_type: CaseType
    status: CaseStatus = CaseStatus.DRAFT
    profile: Union[IndividualProfile, BusinessProfile, None] = None
    documents: List[Document] = Field(default_factory=list)
    completion_percentage: int = 0
    risk_level: Optional[RiskLevel] = None

    review_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime.datetime] = None
    submitted_at: Optional[datetime.datetime] = None

    version: int = 1 # incremented on every persisted mutation

    created_at: datetime.datetime = Field(default_factory=_utcnow)
    updated_at: datetime.datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def coerce_profile_variant(cls, data):
        # Pick the profile class from case_type instead of letting the union guess
        if isinstance(data, dict):
            case_type = data.get("case_type")
            profile = data.get("profile")
            if case_type is not None and isinstance(profile, dict):
                profile_cls = PROFILE_CLASS_BY_CASE_TYPE[CaseType(case_type)]
                data = {**data, "profile": profile_cls(**profile)}
        return data

    @model_validator(mode="after")
    def profile_matches_case_type(self) -> "Case":
        if self.profile is None:
            self.profile = empty_profile_for(self.case_type)
        expected_cls = PROFILE_CLASS_BY_CASE_TYPE[self.case_type]
        if not isinstance(self.profile, expected_cls):
            raise ValueError(
                f"profile of kind '{self.profile.profile_kind}' does not match case_type '{self.case_type.value}'"
            )
        return self


class SessionContext(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: Actor = Actor.APPLICANT
    token: Optional[str] = None

    @property
    def is_reviewer(self) -> bool:
        return self.role == Actor.REVIEWER


class FileUpload(BaseModel):
    # Metadata of a file handed to the upload path; bytes stay with the transport
    filename: str
    media_type: Optional[str] = None
    size_bytes: int = 0
    content: Optional[bytes] = Field(default=None, exclude=True, repr=False)


class DashboardStats(BaseModel):
    total_cases: int = 0
    draft: int = 0
    submitted: int = 0
    under_review: int = 0
    approved: int = 0
    rejected: int = 0
