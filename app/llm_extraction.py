"""
LLM Bill Extraction
====================

Sends a bill document (PDF or photo) to Gemini together with a fixed
extraction prompt and returns the model's answer as raw text.

The answer is untrusted: it may be fenced in Markdown, carry commentary,
or miss fields. Cleanup and validation happen in response_cleanup and
bill_schema; this module only talks to the model.

Any object with an ``extract(document, prompt) -> str`` method can stand
in for the Gemini backend (see BillExtractor).
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Protocol

from document_intake import DocumentPayload

log = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"

EXTRACTION_PROMPT = (
    "Analyze this electricity bill. Extract the data into raw JSON.\n"
    "\n"
    "Required keys:\n"
    "- billing_period (string): the date range of the bill.\n"
    "- billing_days (number): the number of days in this billing period.\n"
    "- total_amount_due (number)\n"
    "- currency (string)\n"
    "- total_usage_kwh (number)\n"
    "- payment_due_date (string)\n"
    "- breakdown_charges (array of {description, amount})\n"
    "\n"
    "Optional keys (find or calculate these where possible, otherwise null):\n"
    "- average_daily_usage (number): average kWh per day. If not printed, "
    "calculate total_usage_kwh / billing_days.\n"
    "- average_monthly_usage (number): average kWh per month. If not printed "
    "and billing_days is between 28 and 32, use total_usage_kwh.\n"
    "- generation_cost (number): total cost of generation/supply. Look for "
    "'Supply Charges', 'Generation Charges', 'Energy Charges' or "
    "'Cost of Electricity'.\n"
    "- green_incentive (number): credits or incentives for green energy such "
    "as 'Solar Credit', 'Renewable Incentive' or 'Export Credit'. Return a "
    "positive number.\n"
    "- usage_history (array of {month, usage_kwh}): up to 6 months of "
    "historical usage if a chart or table is present. Month is a short name "
    "(e.g. 'Jan', 'Feb').\n"
    "\n"
    "total_amount_due, total_usage_kwh and every breakdown amount must be "
    "numbers, not strings.\n"
    "Do not use Markdown. Return ONLY the JSON object."
)


class BillExtractor(Protocol):
    """Document-understanding capability: document + prompt in, text out."""

    def extract(self, document: DocumentPayload, prompt: str = EXTRACTION_PROMPT) -> str:
        ...


def _require_genai():
    """Import google-genai, returning ``(genai, types)``."""
    try:
        from google import genai
        from google.genai import types
    except ImportError as e:
        raise RuntimeError(
            "Gemini calls need the google-genai package (pip install google-genai)"
        ) from e
    return genai, types


def get_gemini_client(client=None):
    """Return ``client`` unchanged, or build one from GEMINI_API_KEY.

    Raises:
        RuntimeError: If no client is given and GEMINI_API_KEY is unset.
    """
    if client is not None:
        return client
    genai, _ = _require_genai()
    api_key = os.environ.get("GEMINI_API_KEY", "").strip()
    if not api_key:
        raise RuntimeError(
            "GEMINI_API_KEY is not set; bill extraction and the assistant "
            "need a Google AI Studio key"
        )
    return genai.Client(api_key=api_key)


def gemini_model_name(model: Optional[str] = None) -> str:
    """Explicit model, else GEMINI_MODEL, else DEFAULT_MODEL."""
    return model or os.environ.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL


class GeminiBillExtractor:
    """BillExtractor backed by the Gemini API.

    Args:
        model: Gemini model name; defaults to GEMINI_MODEL or gemini-2.0-flash.
        client: Pre-built ``genai.Client``. Created from GEMINI_API_KEY on
            first use when omitted.
    """

    def __init__(self, model: Optional[str] = None, client=None):
        self.model = gemini_model_name(model)
        self._client = client

    @property
    def client(self):
        self._client = get_gemini_client(self._client)
        return self._client

    def extract(self, document: DocumentPayload, prompt: str = EXTRACTION_PROMPT) -> str:
        """Send the document inline and return the model's raw answer.

        Raises:
            RuntimeError: If GEMINI_API_KEY is not set or google-genai is
                not installed.
        """
        _, types = _require_genai()
        client = self.client
        part = types.Part.from_bytes(data=document.data, mime_type=document.mime_type)

        try:
            response = client.models.generate_content(
                model=self.model,
                contents=[part, prompt],
            )
        except Exception as e:
            log.warning("Gemini extraction failed (%s): %s", self.model, e)
            raise

        text = response.text or ""
        log.debug(
            "Gemini returned %d chars for %s (%s)",
            len(text), document.filename or "document", document.mime_type,
        )
        return text
