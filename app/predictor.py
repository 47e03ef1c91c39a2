"""
Usage Predictor Client
=======================

HTTP client for the external daily-usage prediction service.

The service takes the household parameters as a flat JSON object and
answers with ``{"prediction": ..., "consumption": ..., "generation": ...,
"threshold": ...}`` (kWh/day); solar households get consumption and
generation, everyone else a single prediction. Interpreting the answer is
forecast.build_forecast's job.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Protocol

import httpx

from errors import MalformedPayload, PredictionServiceError
from forecast import PredictionInput

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class UsagePredictor(Protocol):
    """Prediction capability: household parameters in, raw figures out."""

    def predict(self, params: PredictionInput) -> dict:
        ...


def prediction_payload(params: PredictionInput) -> dict:
    """Request body in the field names the prediction service expects."""
    return {
        "Day": params.day_of_week.value,
        "Avg_Temperature_C": params.avg_temperature_c,
        "Household_Size": params.household_size,
        "Has_AC": "Yes" if params.has_ac else "No",
        "Peak_Hours_Usage_kWh": params.peak_hours_usage_kwh,
        "Has_Solar": params.has_solar,
        "Solar_Panel_Size_kW": params.solar_panel_size_kw if params.has_solar else 0,
    }


def _timeout_from_env() -> float:
    raw = os.environ.get("PREDICTOR_TIMEOUT", "").strip()
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        log.warning("Ignoring invalid PREDICTOR_TIMEOUT=%r", raw)
        return DEFAULT_TIMEOUT


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Failed to fetch prediction (HTTP {response.status_code})"


class HttpUsagePredictor:
    """UsagePredictor that POSTs to the prediction service with httpx.

    Args:
        endpoint: Full URL of the predict endpoint; defaults to PREDICTOR_URL.
        timeout: Request timeout in seconds; defaults to PREDICTOR_TIMEOUT or 30.
        client: Pre-built ``httpx.Client`` (e.g. with a mock transport).
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.endpoint = endpoint or os.environ.get("PREDICTOR_URL", "").strip()
        if not self.endpoint:
            raise RuntimeError(
                "PREDICTOR_URL environment variable not set. "
                "Set it to the prediction service's predict endpoint."
            )
        self.timeout = timeout if timeout is not None else _timeout_from_env()
        self._client = client

    def predict(self, params: PredictionInput) -> dict:
        """Request a prediction for ``params``.

        Raises:
            PredictionServiceError: Service answered with a non-2xx status.
            MalformedPayload: Body is not a JSON object.
            httpx.HTTPError: Transport failure (connection, timeout).
        """
        payload = prediction_payload(params)

        if self._client is not None:
            response = self._client.post(self.endpoint, json=payload, timeout=self.timeout)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.endpoint, json=payload)

        if response.is_error:
            message = _error_message(response)
            log.warning(
                "Prediction service returned %d: %s", response.status_code, message,
            )
            raise PredictionServiceError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedPayload(
                f"Prediction service returned non-JSON body: {e}",
                raw_text=response.text,
            ) from e

        if not isinstance(data, dict):
            raise MalformedPayload(
                "Prediction service returned a non-object body",
                raw_text=response.text,
            )
        return data
