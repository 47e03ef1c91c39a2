"""
Bill Record Schema
===================

Pydantic model for a single electricity billing statement, plus the
structural validator that turns decoded extractor output into a BillRecord.

Types are checked strictly: the extractor is told to return numbers, and a
quoted "266.45" is reported as a violation rather than silently coerced.
Every violation is collected so the caller sees the complete failure set
in one pass.
"""
from __future__ import annotations

import logging
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import FieldViolation, SchemaViolation
from response_cleanup import decode_payload

log = logging.getLogger(__name__)

MAX_USAGE_HISTORY = 6

ROOT_PATH = "<root>"


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class ChargeItem(BaseModel):
    """One line of the charge breakdown."""
    model_config = ConfigDict(strict=True, frozen=True, allow_inf_nan=False)

    description: str
    amount: float


class UsageHistoryEntry(BaseModel):
    """Historical monthly usage, as read off the bill's usage chart."""
    model_config = ConfigDict(strict=True, frozen=True, allow_inf_nan=False)

    month: str  # short name, e.g. "Jan"
    usage_kwh: float


class BillRecord(BaseModel):
    """A structurally valid billing statement.

    Optional metrics may still be None after validation; see
    derived_metrics.resolve_derived_metrics for the fallbacks.
    """
    model_config = ConfigDict(strict=True, frozen=True, allow_inf_nan=False)

    billing_period: str
    billing_days: Optional[int] = None
    total_amount_due: float = Field(ge=0)
    currency: str
    total_usage_kwh: float = Field(ge=0)
    payment_due_date: str
    breakdown_charges: list[ChargeItem]

    average_daily_usage: Optional[float] = None
    average_monthly_usage: Optional[float] = None
    generation_cost: Optional[float] = None
    green_incentive: Optional[float] = None
    usage_history: Optional[
        Annotated[list[UsageHistoryEntry], Field(max_length=MAX_USAGE_HISTORY)]
    ] = None

    @field_validator("billing_days", mode="before")
    @classmethod
    def _whole_number_days(cls, value: Any) -> Any:
        # JSON decoders hand back 30.0 for "30.0"; accept it as 30.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @property
    def charges_total(self) -> float:
        """Sum of the breakdown lines (need not equal total_amount_due)."""
        return round(sum(c.amount for c in self.breakdown_charges), 2)

    def to_dict(self) -> dict:
        return self.model_dump()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _format_path(loc: tuple) -> str:
    if not loc:
        return ROOT_PATH
    return ".".join(str(part) for part in loc)


def _violations_from_error(err: ValidationError) -> list[FieldViolation]:
    return [
        FieldViolation(
            path=_format_path(tuple(e["loc"])),
            message=e["msg"],
            kind=e["type"],
        )
        for e in err.errors()
    ]


def validate_bill_payload(payload: Any) -> BillRecord:
    """Validate a decoded payload against the BillRecord schema.

    Args:
        payload: Value returned by decode_payload (expected to be a dict).

    Returns:
        BillRecord with all required fields present and correctly typed.

    Raises:
        SchemaViolation: With one FieldViolation per failing field path.
    """
    try:
        return BillRecord.model_validate(payload)
    except ValidationError as e:
        violations = _violations_from_error(e)
        log.warning(
            "Bill payload failed schema check: %d violation(s) at %s",
            len(violations), [v.path for v in violations],
        )
        raise SchemaViolation(violations) from e


def parse_bill_response(raw: str) -> BillRecord:
    """Sanitize, decode and validate raw extractor output in one step.

    Raises:
        MalformedPayload: Text is not decodable JSON.
        SchemaViolation: JSON does not match the schema.
    """
    return validate_bill_payload(decode_payload(raw))
