"""
Bill Assistant
===============

Answers free-text questions about the user's bill and forecast with
Gemini. The finalized BillRecord and ForecastReport are flattened into a
plain-text context block that is prepended to the question.

ask_assistant never raises: failures come back as ChatReply(success=False)
so the caller can show the message next to the conversation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from bill_schema import BillRecord
from forecast import ForecastReport
from llm_extraction import get_gemini_client, gemini_model_name

log = logging.getLogger(__name__)

_ASSISTANT_PREAMBLE = (
    "You are a helpful energy assistant. Answer the user's question about "
    "their electricity bill and usage forecast using the context below. "
    "Be concise and practical. If the context does not contain the answer, "
    "say so instead of guessing."
)


@dataclass
class ChatReply:
    success: bool
    data: Optional[str] = None
    error: Optional[str] = None


def _fmt(value: Optional[float], digits: int = 2) -> str:
    return "N/A" if value is None else f"{value:,.{digits}f}"


def _bill_context(bill: BillRecord) -> list[str]:
    cur = bill.currency
    lines = [
        "Bill:",
        f"- Billing period: {bill.billing_period}"
        + (f" ({bill.billing_days} days)" if bill.billing_days else ""),
        f"- Total amount due: {cur} {_fmt(bill.total_amount_due)}",
        f"- Payment due date: {bill.payment_due_date}",
        f"- Total usage: {_fmt(bill.total_usage_kwh)} kWh",
        f"- Average daily usage: {_fmt(bill.average_daily_usage)} kWh",
        f"- Average monthly usage: {_fmt(bill.average_monthly_usage)} kWh",
        f"- Generation cost: {cur} {_fmt(bill.generation_cost or 0)}",
        f"- Green incentive: {cur} {_fmt(bill.green_incentive or 0)}",
    ]
    if bill.breakdown_charges:
        lines.append("- Charges:")
        lines.extend(
            f"  - {c.description}: {cur} {_fmt(c.amount)}"
            for c in bill.breakdown_charges
        )
    if bill.usage_history:
        history = ", ".join(
            f"{h.month} {_fmt(h.usage_kwh, 0)} kWh" for h in bill.usage_history
        )
        lines.append(f"- Usage history: {history}")
    return lines


def _forecast_context(forecast: ForecastReport) -> list[str]:
    lines = [
        "Forecast:",
        f"- Mode: {forecast.mode.value}",
        f"- Predicted daily usage: {_fmt(forecast.daily_usage_kwh)} kWh",
        f"- Projected monthly usage: {_fmt(forecast.monthly_usage_kwh, 0)} kWh",
        f"- Estimated monthly bill: RM {_fmt(forecast.estimated_bill)}",
    ]
    if forecast.status is not None:
        lines.append(
            f"- Status: {forecast.status.value} "
            f"(threshold {_fmt(forecast.threshold)} kWh/day)"
        )
    if forecast.net_energy_kwh is not None:
        lines.append(
            f"- Solar generation: {_fmt(forecast.generation_kwh)} kWh/day, "
            f"net {_fmt(forecast.net_energy_kwh)} kWh/day ({forecast.net_energy_label})"
        )
    if forecast.suggestions:
        lines.append("- Suggestions:")
        lines.extend(f"  - {s}" for s in forecast.suggestions)
    return lines


def build_chat_context(
    bill: Optional[BillRecord] = None,
    forecast: Optional[ForecastReport] = None,
) -> str:
    """Plain-text summary of the bill and/or forecast for the assistant."""
    sections: list[str] = []
    if bill is not None:
        sections.append("\n".join(_bill_context(bill)))
    if forecast is not None:
        sections.append("\n".join(_forecast_context(forecast)))
    if not sections:
        return "No bill or forecast has been analysed yet."
    return "\n\n".join(sections)


def ask_assistant(
    message: str,
    context: str,
    client=None,
    model: Optional[str] = None,
) -> ChatReply:
    """Ask Gemini a question about the bill context.

    Args:
        message: The user's question.
        context: Output of build_chat_context.
        client: Pre-built ``genai.Client``; created from GEMINI_API_KEY
            when omitted.
        model: Gemini model name; defaults to GEMINI_MODEL.
    """
    if not message or not message.strip():
        return ChatReply(success=False, error="Message is empty")

    prompt = f"{_ASSISTANT_PREAMBLE}\n\nContext:\n{context}\n\nQuestion: {message.strip()}"
    try:
        gemini = get_gemini_client(client)
        response = gemini.models.generate_content(
            model=gemini_model_name(model),
            contents=prompt,
        )
    except Exception as e:
        log.warning("Assistant request failed: %s", e)
        return ChatReply(success=False, error=str(e) or "Failed to generate response")

    text = (response.text or "").strip()
    if not text:
        return ChatReply(success=False, error="Failed to generate response")
    return ChatReply(success=True, data=text)
