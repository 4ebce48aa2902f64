from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from models import VerificationStatus

# Admins may only move a provider to a terminal review outcome.
ALLOWED_REVIEW_STATUSES = {
    VerificationStatus.VERIFIED.value,
    VerificationStatus.REJECTED.value,
}

TRUTHY_FORM_VALUES = {"true"}


def _require_identifier(value: Any, label: str) -> str:
    if value is None:
        raise ValueError(f"{label} is required")
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise ValueError(f"{label} must be a string")
    value = str(value).strip()
    if not value:
        raise ValueError(f"{label} is required")
    if len(value) > 64:
        raise ValueError(f"{label} must be at most 64 characters")
    return value


class LawyerStatusPayload(BaseModel):
    lawyer_id: str = Field(
        default="",
        validate_default=True,
        validation_alias=AliasChoices("lawyer_id", "lawyerId"),
    )
    status: str = Field(default="", validate_default=True)

    # HTML forms post extra fields such as submit button names.
    model_config = ConfigDict(extra="ignore")

    @field_validator("lawyer_id", mode="before")
    @classmethod
    def validate_lawyer_id(cls, value):
        return _require_identifier(value, "Lawyer ID")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        value = value.strip() if isinstance(value, str) else value
        if value not in ALLOWED_REVIEW_STATUSES:
            raise ValueError("Invalid input")
        return value


class LawyerActivePayload(BaseModel):
    lawyer_id: str = Field(
        default="",
        validate_default=True,
        validation_alias=AliasChoices("lawyer_id", "lawyerId"),
    )
    suspend: bool = False

    model_config = ConfigDict(extra="ignore")

    @field_validator("lawyer_id", mode="before")
    @classmethod
    def validate_lawyer_id(cls, value):
        return _require_identifier(value, "Lawyer ID")

    @field_validator("suspend", mode="before")
    @classmethod
    def coerce_suspend(cls, value) -> bool:
        # Only an explicit "true" suspends; anything else reinstates.
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in TRUTHY_FORM_VALUES
        return False


class PayoutApprovalPayload(BaseModel):
    payout_id: str = Field(
        default="",
        validate_default=True,
        validation_alias=AliasChoices("payout_id", "payoutId"),
    )

    model_config = ConfigDict(extra="ignore")

    @field_validator("payout_id", mode="before")
    @classmethod
    def validate_payout_id(cls, value):
        return _require_identifier(value, "Payout ID")
