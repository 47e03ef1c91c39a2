"""Residential electricity tariff.

Tiered domestic tariff (RP4 schedule, effective July 2025), billed as four
additive components per month:

  - Energy: 27.03 sen/kWh for the first 1500 kWh, 37.03 sen/kWh beyond
  - Capacity: 4.55 sen/kWh
  - Network: 12.85 sen/kWh
  - Retail: RM10.00 flat, waived below 600 kWh

The bill is never less than the RM3.00 minimum charge. The retail step at
600 kWh makes the bill jump by RM10.00 at that point; that is the schedule,
not an artefact.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from errors import CalculationDomainError

TIER1_LIMIT_KWH = 1500.0
TIER1_RATE = 0.2703
TIER2_RATE = 0.3703
CAPACITY_RATE = 0.0455
NETWORK_RATE = 0.1285
RETAIL_WAIVER_BELOW_KWH = 600.0
RETAIL_CHARGE = 10.00
MINIMUM_CHARGE = 3.00


@dataclass(frozen=True)
class TariffBreakdown:
    """Component charges for one month of usage."""
    monthly_kwh: float
    energy: float
    capacity: float
    network: float
    retail: float
    subtotal: float  # sum of components, before the minimum charge
    total: float

    @property
    def minimum_applied(self) -> bool:
        return self.total > self.subtotal

    def to_dict(self) -> dict:
        return asdict(self)


def _check_kwh(monthly_kwh) -> float:
    if isinstance(monthly_kwh, bool) or not isinstance(monthly_kwh, (int, float)):
        raise CalculationDomainError(
            f"monthly_kwh must be a number, got {type(monthly_kwh).__name__}"
        )
    if not math.isfinite(monthly_kwh):
        raise CalculationDomainError(f"monthly_kwh must be finite, got {monthly_kwh}")
    return float(monthly_kwh)


def energy_charge(monthly_kwh: float) -> float:
    """Tiered energy charge; units above 1500 kWh use the tier-2 rate."""
    tier1 = min(monthly_kwh, TIER1_LIMIT_KWH)
    tier2 = max(monthly_kwh - TIER1_LIMIT_KWH, 0.0)
    return tier1 * TIER1_RATE + tier2 * TIER2_RATE


def retail_charge(monthly_kwh: float) -> float:
    return 0.0 if monthly_kwh < RETAIL_WAIVER_BELOW_KWH else RETAIL_CHARGE


def tariff_breakdown(monthly_kwh: float) -> TariffBreakdown:
    """Price one month of usage, component by component.

    Args:
        monthly_kwh: Energy used in the month. Zero or negative usage is
            billed at the minimum charge without evaluating the tiers.

    Raises:
        CalculationDomainError: If monthly_kwh is not a finite number.
    """
    kwh = _check_kwh(monthly_kwh)

    if kwh <= 0:
        return TariffBreakdown(
            monthly_kwh=kwh, energy=0.0, capacity=0.0, network=0.0,
            retail=0.0, subtotal=0.0, total=MINIMUM_CHARGE,
        )

    energy = energy_charge(kwh)
    capacity = kwh * CAPACITY_RATE
    network = kwh * NETWORK_RATE
    retail = retail_charge(kwh)
    subtotal = energy + capacity + network + retail

    return TariffBreakdown(
        monthly_kwh=kwh,
        energy=energy,
        capacity=capacity,
        network=network,
        retail=retail,
        subtotal=subtotal,
        total=max(subtotal, MINIMUM_CHARGE),
    )


def calculate_bill(monthly_kwh: float) -> float:
    """Monthly bill amount for ``monthly_kwh`` under the residential tariff."""
    return tariff_breakdown(monthly_kwh).total
