"""Error types raised by the bill analysis and forecast pipelines.

Every error here is terminal for the request that raised it: nothing in
the core retries, and no partial BillRecord or ForecastReport is ever
returned alongside one of these.
"""
from __future__ import annotations

from dataclasses import dataclass


class BillInsightError(Exception):
    """Base class for pipeline errors."""


class MalformedPayload(BillInsightError):
    """Extractor or predictor output could not be decoded as JSON."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


@dataclass
class FieldViolation:
    """A single schema failure, addressed by dotted field path."""
    path: str
    message: str
    kind: str = ""

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaViolation(BillInsightError):
    """Decoded payload does not match the BillRecord schema."""

    def __init__(self, violations: list[FieldViolation]):
        self.violations = list(violations)
        summary = "; ".join(str(v) for v in self.violations[:5])
        if len(self.violations) > 5:
            summary += f" (+{len(self.violations) - 5} more)"
        super().__init__(
            f"Bill data failed validation with {len(self.violations)} "
            f"violation(s): {summary}"
        )

    @property
    def paths(self) -> list[str]:
        return [v.path for v in self.violations]


class CalculationDomainError(BillInsightError, ValueError):
    """A tariff or forecast input is outside the valid domain."""


class UnsupportedDocument(BillInsightError, ValueError):
    """Uploaded document is empty, unreadable, or of an unknown type."""


class PredictionServiceError(BillInsightError, RuntimeError):
    """The usage predictor answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
