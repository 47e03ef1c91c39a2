"""
Usage Forecast
===============

Turns a raw daily-usage prediction into a ForecastReport: monthly
projection, estimated bill, Safe/Critical status and household advice.

Two modes, picked from the shape of the prediction:

  standard: the predictor returned gross daily consumption only
  solar:    the predictor returned consumption AND solar generation

Solar mode reports net energy (generation - consumption) instead of a
Safe/Critical status, which needs a consumption-only baseline.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

from errors import CalculationDomainError
from tariff import calculate_bill

log = logging.getLogger(__name__)

DEFAULT_THRESHOLD_KWH = 20.0  # kWh/day, used when the predictor omits one
DAYS_PER_MONTH = 30
HIGH_MONTHLY_USAGE_KWH = 300.0

WEEKEND_TIP = (
    "Weekend Alert: Energy rates/usage are typically higher on weekends. "
    "Avoid running all heavy appliances at once."
)
AC_TIP = (
    "AC Detected: Air conditioning is your biggest cost. Setting it to 24°C "
    "instead of 20°C can save up to 20% on your bill."
)
HIGH_USAGE_TIP = (
    "High Consumption: Your predicted usage is above average (>300 kWh). "
    "Consider checking for 'Vampire Power' devices on standby."
)
EFFICIENT_TIP = "Great Job! Your energy usage pattern is very efficient."


class DayOfWeek(Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def is_weekend(self) -> bool:
        return self in (DayOfWeek.SATURDAY, DayOfWeek.SUNDAY)

    @classmethod
    def parse(cls, value: "DayOfWeek | str") -> "DayOfWeek":
        """Accept an enum member or a day name in any case."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        for day in cls:
            if day.value.lower() == name:
                return day
        raise CalculationDomainError(f"Unknown day of week: {value!r}")


class ForecastMode(Enum):
    STANDARD = "standard"
    SOLAR = "solar"


class ForecastStatus(Enum):
    SAFE = "Safe"
    CRITICAL = "Critical"


def _finite(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CalculationDomainError(
            f"{name} must be a number, got {type(value).__name__}"
        )
    if not math.isfinite(value):
        raise CalculationDomainError(f"{name} must be finite, got {value}")
    return float(value)


def _non_negative(name: str, value: Any) -> float:
    number = _finite(name, value)
    if number < 0:
        raise CalculationDomainError(f"{name} must be >= 0, got {number}")
    return number


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass
class PredictionInput:
    """Household parameters for one forecast request.

    Out-of-domain values are rejected with CalculationDomainError. Panel
    size is forced to 0 for households without solar.
    """
    day_of_week: DayOfWeek
    avg_temperature_c: float
    household_size: int
    has_ac: bool
    peak_hours_usage_kwh: float
    has_solar: bool = False
    solar_panel_size_kw: float = 0.0

    def __post_init__(self):
        self.day_of_week = DayOfWeek.parse(self.day_of_week)
        self.avg_temperature_c = _finite("avg_temperature_c", self.avg_temperature_c)

        if isinstance(self.household_size, bool) or not isinstance(self.household_size, int):
            raise CalculationDomainError(
                f"household_size must be an integer, got {self.household_size!r}"
            )
        if self.household_size < 1:
            raise CalculationDomainError(
                f"household_size must be at least 1, got {self.household_size}"
            )

        self.peak_hours_usage_kwh = _non_negative(
            "peak_hours_usage_kwh", self.peak_hours_usage_kwh
        )
        self.has_ac = bool(self.has_ac)
        self.has_solar = bool(self.has_solar)
        if self.has_solar:
            self.solar_panel_size_kw = _non_negative(
                "solar_panel_size_kw", self.solar_panel_size_kw
            )
        else:
            self.solar_panel_size_kw = 0.0


@dataclass(frozen=True)
class RawPrediction:
    """Figures returned by the usage predictor (kWh/day).

    Raises:
        CalculationDomainError: If neither ``prediction`` nor ``consumption``
            is given, or any figure is negative or non-numeric.
    """
    prediction: Optional[float] = None
    consumption: Optional[float] = None
    generation: Optional[float] = None
    threshold: Optional[float] = None
    bill_impact: Optional[float] = None

    def __post_init__(self):
        for name in ("consumption", "generation", "threshold"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _non_negative(name, value))

        # Net usage for solar households and bill credits may be negative.
        for name in ("prediction", "bill_impact"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, _finite(name, value))

        if self.prediction is None and self.consumption is None:
            raise CalculationDomainError(
                "Prediction carries neither 'prediction' nor 'consumption'"
            )
        if self.consumption is None and self.prediction < 0:
            raise CalculationDomainError(
                f"prediction must be >= 0, got {self.prediction}"
            )

    @classmethod
    def from_payload(cls, payload: dict) -> "RawPrediction":
        """Build from the predictor's JSON body; unknown keys are ignored."""
        if not isinstance(payload, dict):
            raise CalculationDomainError(
                f"Prediction must be an object, got {type(payload).__name__}"
            )
        return cls(
            prediction=payload.get("prediction"),
            consumption=payload.get("consumption"),
            generation=payload.get("generation"),
            threshold=payload.get("threshold"),
            bill_impact=payload.get("bill_impact"),
        )

    @property
    def is_solar(self) -> bool:
        return self.consumption is not None and self.generation is not None

    @property
    def gross_daily_kwh(self) -> float:
        if self.consumption is not None:
            return self.consumption
        return self.prediction


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass
class ForecastReport:
    """Derived forecast for one request; not stored."""
    mode: ForecastMode
    daily_usage_kwh: float
    monthly_usage_kwh: float
    threshold: float
    status: Optional[ForecastStatus]  # None in solar mode
    estimated_bill: float
    suggestions: list[str] = field(default_factory=list)

    # Solar mode only
    generation_kwh: Optional[float] = None
    net_energy_kwh: Optional[float] = None
    bill_impact: Optional[float] = None

    @property
    def net_energy_label(self) -> Optional[str]:
        """'profit' for a solar surplus, 'deficit' otherwise."""
        if self.net_energy_kwh is None:
            return None
        return "profit" if self.net_energy_kwh > 0 else "deficit"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["mode"] = self.mode.value
        d["status"] = self.status.value if self.status else None
        d["net_energy_label"] = self.net_energy_label
        return d


def advise(params: PredictionInput, monthly_usage_kwh: float) -> list[str]:
    """Household suggestions, in fixed rule order.

    The efficiency message is the else-branch of the high-usage rule and
    only fires when no earlier rule has added anything.
    """
    suggestions: list[str] = []

    if params.day_of_week.is_weekend:
        suggestions.append(WEEKEND_TIP)

    if params.has_ac:
        suggestions.append(AC_TIP)

    if monthly_usage_kwh > HIGH_MONTHLY_USAGE_KWH:
        suggestions.append(HIGH_USAGE_TIP)
    elif len(suggestions) == 0:
        suggestions.append(EFFICIENT_TIP)

    return suggestions


def _solar_bill_impact(raw: RawPrediction, net_energy: float) -> float:
    if raw.bill_impact is not None:
        return raw.bill_impact
    if net_energy >= 0:
        return 0.0
    return calculate_bill(-net_energy * DAYS_PER_MONTH)


def build_forecast(raw: RawPrediction, params: PredictionInput) -> ForecastReport:
    """Combine a raw prediction with household parameters into a report."""
    threshold = raw.threshold if raw.threshold is not None else DEFAULT_THRESHOLD_KWH
    daily = raw.gross_daily_kwh
    monthly = daily * DAYS_PER_MONTH

    report = ForecastReport(
        mode=ForecastMode.SOLAR if raw.is_solar else ForecastMode.STANDARD,
        daily_usage_kwh=daily,
        monthly_usage_kwh=monthly,
        threshold=threshold,
        status=None,
        estimated_bill=calculate_bill(monthly),
        suggestions=advise(params, monthly),
    )

    if report.mode is ForecastMode.SOLAR:
        net = raw.generation - raw.consumption
        report.generation_kwh = raw.generation
        report.net_energy_kwh = net
        report.bill_impact = _solar_bill_impact(raw, net)
    else:
        report.status = (
            ForecastStatus.CRITICAL if daily > threshold else ForecastStatus.SAFE
        )

    log.debug(
        "Forecast %s: %.2f kWh/day, %.0f kWh/month, bill %.2f",
        report.mode.value, daily, monthly, report.estimated_bill,
    )
    return report
