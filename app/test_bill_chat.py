"""Tests for the bill assistant: context building and Gemini call handling."""

from unittest.mock import MagicMock

from bill_chat import ChatReply, ask_assistant, build_chat_context
from bill_schema import BillRecord
from forecast import ForecastMode, ForecastReport, ForecastStatus


def _bill(**overrides) -> BillRecord:
    data = {
        "billing_period": "01 Jun 2025 - 30 Jun 2025",
        "billing_days": 30,
        "total_amount_due": 142.35,
        "currency": "RM",
        "total_usage_kwh": 450.0,
        "payment_due_date": "21 Jul 2025",
        "breakdown_charges": [{"description": "Energy Charge", "amount": 121.64}],
        "average_daily_usage": 15.0,
        "usage_history": [{"month": "May", "usage_kwh": 430}],
    }
    data.update(overrides)
    return BillRecord.model_validate(data)


def _forecast(**overrides) -> ForecastReport:
    data = dict(
        mode=ForecastMode.STANDARD,
        daily_usage_kwh=12.0,
        monthly_usage_kwh=360.0,
        threshold=20.0,
        status=ForecastStatus.SAFE,
        estimated_bill=169.95,
        suggestions=["Turn things off."],
    )
    data.update(overrides)
    return ForecastReport(**data)


def _client(text=None, error=None):
    client = MagicMock()
    if error is not None:
        client.models.generate_content.side_effect = error
    else:
        client.models.generate_content.return_value = MagicMock(text=text)
    return client


class TestBuildChatContext:

    def test_bill_section(self):
        context = build_chat_context(bill=_bill())
        assert "Billing period: 01 Jun 2025 - 30 Jun 2025 (30 days)" in context
        assert "Total amount due: RM 142.35" in context
        assert "Energy Charge: RM 121.64" in context
        assert "Usage history: May 430 kWh" in context
        assert "Forecast:" not in context

    def test_missing_metrics(self):
        context = build_chat_context(bill=_bill(average_daily_usage=None))
        assert "Average daily usage: N/A kWh" in context
        assert "Average monthly usage: N/A kWh" in context

    def test_generation_cost_and_incentive_default_to_zero(self):
        context = build_chat_context(bill=_bill())
        assert "Generation cost: RM 0.00" in context
        assert "Green incentive: RM 0.00" in context

    def test_forecast_section(self):
        context = build_chat_context(forecast=_forecast())
        assert "Status: Safe (threshold 20.00 kWh/day)" in context
        assert "Estimated monthly bill: RM 169.95" in context
        assert "- Turn things off." in context
        assert "Bill:" not in context

    def test_solar_forecast_section(self):
        report = _forecast(
            mode=ForecastMode.SOLAR, status=None,
            generation_kwh=16.0, net_energy_kwh=4.0, bill_impact=0.0,
        )
        context = build_chat_context(forecast=report)
        assert "net 4.00 kWh/day (profit)" in context
        assert "Status:" not in context

    def test_both_sections(self):
        context = build_chat_context(bill=_bill(), forecast=_forecast())
        assert context.index("Bill:") < context.index("Forecast:")

    def test_nothing_analysed(self):
        assert build_chat_context() == "No bill or forecast has been analysed yet."


class TestAskAssistant:

    def test_success(self):
        client = _client(text="  Your bill is mostly energy charges.  ")
        reply = ask_assistant("What drives my bill?", "Bill: ...", client=client, model="gemini-2.0-flash")
        assert reply == ChatReply(success=True, data="Your bill is mostly energy charges.")

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert "Context:\nBill: ..." in kwargs["contents"]
        assert kwargs["contents"].endswith("Question: What drives my bill?")

    def test_api_failure_reported_not_raised(self):
        reply = ask_assistant("Hi", "ctx", client=_client(error=RuntimeError("quota exceeded")))
        assert reply.success is False
        assert reply.error == "quota exceeded"

    def test_empty_answer(self):
        reply = ask_assistant("Hi", "ctx", client=_client(text=""))
        assert reply.success is False
        assert reply.error == "Failed to generate response"

    def test_empty_message(self):
        client = _client(text="unused")
        reply = ask_assistant("   ", "ctx", client=client)
        assert reply.success is False
        client.models.generate_content.assert_not_called()

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        reply = ask_assistant("Hi", "ctx")
        assert reply.success is False
        assert "GEMINI_API_KEY" in reply.error
