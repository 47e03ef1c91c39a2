"""
Tests for the Gemini bill extractor.

Unit tests use a MagicMock in place of ``genai.Client``.

Live tests (marked 'live', need GEMINI_API_KEY and a sample bill):
  - Extract and validate a real PDF bill end to end
"""
import os
from unittest.mock import MagicMock

import pytest

from document_intake import DocumentPayload, load_document
from llm_extraction import (
    DEFAULT_MODEL,
    EXTRACTION_PROMPT,
    GeminiBillExtractor,
    gemini_model_name,
    get_gemini_client,
)

BILLS_DIR = os.path.join(os.path.dirname(__file__), "..", "sample_bills")
SAMPLE_BILL = os.path.join(BILLS_DIR, "sample_bill.pdf")


def _has_gemini_key() -> bool:
    return bool(os.environ.get("GEMINI_API_KEY"))


def _document() -> DocumentPayload:
    return DocumentPayload(data=b"\xff\xd8\xff\xe0fake", mime_type="image/jpeg", filename="bill.jpg")


def _mock_client(text):
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return client


# ===================================================================
# Unit tests - no API key needed
# ===================================================================


class TestExtractionPrompt:

    @pytest.mark.parametrize("key", [
        "billing_period", "billing_days", "total_amount_due", "currency",
        "total_usage_kwh", "payment_due_date", "breakdown_charges",
        "average_daily_usage", "average_monthly_usage", "generation_cost",
        "green_incentive", "usage_history",
    ])
    def test_prompt_names_every_key(self, key):
        assert key in EXTRACTION_PROMPT

    def test_prompt_asks_for_bare_json(self):
        assert "Return ONLY the JSON object" in EXTRACTION_PROMPT


class TestModelName:

    def test_default(self, monkeypatch):
        monkeypatch.delenv("GEMINI_MODEL", raising=False)
        assert gemini_model_name() == DEFAULT_MODEL

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-flash")
        assert gemini_model_name() == "gemini-2.5-flash"
        assert GeminiBillExtractor().model == "gemini-2.5-flash"

    def test_explicit_model_wins(self, monkeypatch):
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-flash")
        assert GeminiBillExtractor(model="gemini-2.0-pro").model == "gemini-2.0-pro"
        assert gemini_model_name("gemini-2.0-pro") == "gemini-2.0-pro"


class TestGeminiBillExtractor:

    def test_returns_raw_text_untouched(self):
        raw = '```json\n{"total_amount_due": 12.5}\n```'
        extractor = GeminiBillExtractor(model="gemini-2.0-flash", client=_mock_client(raw))
        assert extractor.extract(_document()) == raw

    def test_sends_document_and_prompt(self):
        client = _mock_client("{}")
        GeminiBillExtractor(model="gemini-2.0-flash", client=client).extract(_document())

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        part, prompt = kwargs["contents"]
        assert prompt == EXTRACTION_PROMPT
        assert part.inline_data.mime_type == "image/jpeg"
        assert part.inline_data.data == b"\xff\xd8\xff\xe0fake"

    def test_custom_prompt(self):
        client = _mock_client("{}")
        GeminiBillExtractor(client=client).extract(_document(), prompt="Just the total.")
        assert client.models.generate_content.call_args.kwargs["contents"][1] == "Just the total."

    def test_empty_response_text(self):
        extractor = GeminiBillExtractor(client=_mock_client(None))
        assert extractor.extract(_document()) == ""

    def test_api_error_propagates(self):
        client = MagicMock()
        client.models.generate_content.side_effect = ConnectionError("quota exceeded")
        with pytest.raises(ConnectionError, match="quota"):
            GeminiBillExtractor(client=client).extract(_document())


class TestMissingCredentials:

    def test_given_client_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        client = _mock_client("{}")
        assert get_gemini_client(client) is client

    def test_blank_key_rejected(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "   ")
        with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
            get_gemini_client()

    def test_no_api_key(self, monkeypatch):
        """extract should raise RuntimeError when key not set."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="GEMINI_API_KEY"):
            GeminiBillExtractor().extract(_document())


# ===================================================================
# Live tests - require GEMINI_API_KEY
# ===================================================================


@pytest.mark.live
@pytest.mark.skipif(not _has_gemini_key(), reason="GEMINI_API_KEY not set")
class TestGeminiLive:
    """Calls the actual Gemini API."""

    @pytest.mark.skipif(not os.path.exists(SAMPLE_BILL), reason="Sample bill not found")
    def test_extract_sample_pdf(self):
        from orchestrator import finalize_bill

        raw = GeminiBillExtractor().extract(load_document(SAMPLE_BILL))
        bill = finalize_bill(raw)
        assert bill.total_amount_due >= 0
        assert bill.currency
