"""
Pipeline Orchestrator
======================

Wires the stages into two entry points.

Bill analysis:
  document -> intake -> extractor (LLM) -> cleanup/decode -> schema check
  -> derived metrics -> BillRecord

Usage forecast:
  PredictionInput -> predictor -> RawPrediction -> ForecastReport

Usage:
    from orchestrator import analyze_bill
    result = analyze_bill("path/to/bill.pdf")
    print(result.bill.model_dump_json(indent=2))

Both pipelines are request-scoped and stop at the first error; nothing is
retried and no partial result is returned.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from bill_schema import BillRecord, validate_bill_payload
from derived_metrics import resolve_derived_metrics
from document_intake import DocumentPayload, load_document
from forecast import ForecastReport, PredictionInput, RawPrediction, build_forecast
from llm_extraction import EXTRACTION_PROMPT, BillExtractor, GeminiBillExtractor
from predictor import HttpUsagePredictor, UsagePredictor
from response_cleanup import decode_payload

log = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Finalized bill plus what it was extracted from."""
    bill: BillRecord
    document: DocumentPayload
    raw_text: str

    @property
    def warnings(self) -> list[str]:
        return self.document.warnings


def finalize_bill(raw_text: str) -> BillRecord:
    """Cleanup, decode, validate and resolve one extractor answer.

    Raises:
        MalformedPayload: Answer is not decodable JSON.
        SchemaViolation: JSON does not match the BillRecord schema.
    """
    payload = decode_payload(raw_text)
    record = validate_bill_payload(payload)
    return resolve_derived_metrics(record)


def analyze_bill(
    source: bytes | str | Path,
    extractor: Optional[BillExtractor] = None,
    filename: Optional[str] = None,
) -> AnalysisResult:
    """Extract a finalized BillRecord from a bill PDF or photo.

    Args:
        source: File path or uploaded bytes.
        extractor: Document-understanding backend; Gemini when omitted.
        filename: Upload name, for MIME detection of raw bytes.

    Raises:
        UnsupportedDocument: Empty, unreadable or unknown document.
        MalformedPayload: Extractor answer is not JSON.
        SchemaViolation: Extractor answer fails the schema.
        RuntimeError: Gemini backend without GEMINI_API_KEY.
    """
    document = load_document(source, filename=filename)
    extractor = extractor if extractor is not None else GeminiBillExtractor()

    raw_text = extractor.extract(document, EXTRACTION_PROMPT)
    bill = finalize_bill(raw_text)

    log.debug(
        "Analysed %s: %s %.2f for %.1f kWh",
        document.filename or "document", bill.currency,
        bill.total_amount_due, bill.total_usage_kwh,
    )
    return AnalysisResult(bill=bill, document=document, raw_text=raw_text)


def forecast_usage(
    params: PredictionInput,
    predictor: Optional[UsagePredictor] = None,
) -> ForecastReport:
    """Predict daily usage for ``params`` and build the forecast report.

    Args:
        params: Household parameters.
        predictor: Prediction backend; HTTP (PREDICTOR_URL) when omitted.

    Raises:
        CalculationDomainError: Prediction figures are missing or invalid.
        PredictionServiceError: Predictor answered with an error.
        MalformedPayload: Predictor answer is not a JSON object.
    """
    predictor = predictor if predictor is not None else HttpUsagePredictor()
    raw = RawPrediction.from_payload(predictor.predict(params))
    return build_forecast(raw, params)
