# Profile Schema Registry: required fields and format rules per case type
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from . import validators
from .models import (
    BeneficialOwner,
    BusinessProfile,
    CaseType,
    FieldValidationError,
    Profile,
)

logger = logging.getLogger(__name__)

# A check receives the field value and the record it belongs to (some rules,
# e.g. postal code, depend on a sibling field).
Check = Callable[[Any, BaseModel], Optional[str]]


class ValidationPolicy(BaseModel):
    """Switches for product rules the intake flow does not enforce by default."""
    require_beneficial_owner_total: bool = False
    beneficial_owner_total_tolerance: float = 0.01
    require_minimum_documents: bool = False


class FieldRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    required: bool = True
    checks: Tuple[Check, ...] = ()

    def evaluate(self, record: BaseModel) -> Optional[str]:
        value = getattr(record, self.name, None)
        if self.required:
            missing = validators.validate_required(value, self.label)
            if missing:
                return missing
        elif validators.is_blank(value):
            return None
        for check in self.checks:
            failure = check(value, record)
            if failure:
                return failure
        return None


def _email(value, record):
    return validators.validate_email(value)


def _phone(value, record):
    return validators.validate_phone_number(value)


def _date_of_birth(value, record):
    return validators.validate_date_of_birth(value)


def _percentage(value, record):
    return validators.validate_percentage(value)


def _tax_id(value, record):
    return validators.validate_tax_id(value)


def _url(value, record):
    return validators.validate_url(value)


def _date(value, record):
    if validators.parse_date(value) is None:
        return "Invalid date format"
    return None


def _postal_code_for(country_field: str) -> Check:
    def _check(value, record):
        return validators.validate_postal_code(value, getattr(record, country_field, None))
    return _check


class ProfileSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    case_type: CaseType
    field_rules: Tuple[FieldRule, ...]
    owner_fields: Tuple[FieldRule, ...] = ()

    def required_field_names(self) -> List[str]:
        return [rule.name for rule in self.field_rules if rule.required]


INDIVIDUAL_SCHEMA = ProfileSchema(
    case_type=CaseType.INDIVIDUAL,
    field_rules=(
        FieldRule(name="first_name", label="First name"),
        FieldRule(name="last_name", label="Last name"),
        FieldRule(name="date_of_birth", label="Date of birth", checks=(_date_of_birth,)),
        FieldRule(name="nationality", label="Nationality"),
        FieldRule(name="email", label="Email", checks=(_email,)),
        FieldRule(name="phone_number", label="Phone number", checks=(_phone,)),
        FieldRule(name="address_line1", label="Address line 1"),
        FieldRule(name="city", label="City"),
        FieldRule(name="state_province", label="State/Province"),
        FieldRule(name="postal_code", label="Postal code", checks=(_postal_code_for("country"),)),
        FieldRule(name="country", label="Country"),
        FieldRule(name="occupation", label="Occupation"),
    ),
)

BENEFICIAL_OWNER_FIELDS = (
    FieldRule(name="first_name", label="First name"),
    FieldRule(name="last_name", label="Last name"),
    FieldRule(name="date_of_birth", label="Date of birth", checks=(_date_of_birth,)),
    FieldRule(name="nationality", label="Nationality"),
    FieldRule(name="ownership_percentage", label="Ownership percentage", checks=(_percentage,)),
)

BUSINESS_SCHEMA = ProfileSchema(
    case_type=CaseType.BUSINESS,
    field_rules=(
        FieldRule(name="business_name", label="Business name"),
        FieldRule(name="legal_business_name", label="Legal business name"),
        FieldRule(name="business_registration_number", label="Business registration number"),
        FieldRule(name="tax_identification_number", label="Tax identification number", checks=(_tax_id,)),
        FieldRule(name="incorporation_date", label="Incorporation date", checks=(_date,)),
        FieldRule(name="business_type", label="Business type"),
        FieldRule(name="industry_sector", label="Industry sector"),
        FieldRule(name="business_email", label="Business email", checks=(_email,)),
        FieldRule(name="business_phone", label="Business phone", checks=(_phone,)),
        FieldRule(name="business_website", label="Business website", required=False, checks=(_url,)),
        FieldRule(name="business_address_line1", label="Business address line 1"),
        FieldRule(name="business_city", label="Business city"),
        FieldRule(name="business_state_province", label="Business state/province"),
        FieldRule(
            name="business_postal_code",
            label="Business postal code",
            checks=(_postal_code_for("business_country"),),
        ),
        FieldRule(name="business_country", label="Business country"),
    ),
    owner_fields=BENEFICIAL_OWNER_FIELDS,
)

PROFILE_SCHEMAS: Dict[CaseType, ProfileSchema] = {
    CaseType.INDIVIDUAL: INDIVIDUAL_SCHEMA,
    CaseType.BUSINESS: BUSINESS_SCHEMA,
}


def get_profile_schema(case_type: CaseType) -> ProfileSchema:
    return PROFILE_SCHEMAS[CaseType(case_type)]


def validate_beneficial_owner(
    owner: BeneficialOwner,
    index: int,
    rules: Tuple[FieldRule, ...] = BENEFICIAL_OWNER_FIELDS,
) -> List[FieldValidationError]:
    errors: List[FieldValidationError] = []
    for rule in rules:
        failure = rule.evaluate(owner)
        if failure:
            errors.append(FieldValidationError(field_path=f"beneficial_owners[{index}].{rule.name}", message=failure))
    return errors


def beneficial_ownership_total(owners: List[BeneficialOwner]) -> float:
    total = 0.0
    for owner in owners:
        share = validators.parse_percentage(owner.ownership_percentage)
        if share is not None:
            total += share
    return total


def validate_profile(
    case_type: CaseType,
    profile: Profile,
    policy: Optional[ValidationPolicy] = None,
) -> List[FieldValidationError]:
    """
    Runs every rule of the case type's schema against the profile.

    Returns the complete list of errors (one per failing field, first failing
    rule wins); an empty list means the profile is valid for submission.
    """
    policy = policy or ValidationPolicy()
    schema = get_profile_schema(case_type)

    errors: List[FieldValidationError] = []
    for rule in schema.field_rules:
        failure = rule.evaluate(profile)
        if failure:
            errors.append(FieldValidationError(field_path=rule.name, message=failure))

    if isinstance(profile, BusinessProfile):
        for index, owner in enumerate(profile.beneficial_owners):
            errors.extend(validate_beneficial_owner(owner, index, schema.owner_fields))

        if policy.require_beneficial_owner_total:
            total = beneficial_ownership_total(profile.beneficial_owners)
            if abs(total - 100.0) > policy.beneficial_owner_total_tolerance:
                errors.append(FieldValidationError(
                    field_path="beneficial_owners",
                    message=f"Beneficial ownership must total 100% (currently {total:g}%)",
                ))

    logger.debug(f"Profile validation for case type {CaseType(case_type).value} produced {len(errors)} error(s).")
    return errors


def count_filled_required_fields(case_type: CaseType, profile: Profile) -> int:
    schema = get_profile_schema(case_type)
    return sum(1 for name in schema.required_field_names() if not validators.is_blank(getattr(profile, name, None)))


