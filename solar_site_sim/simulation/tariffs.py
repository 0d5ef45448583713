"""
Hydro-Québec rate schedules (2025) and billing calculations.

The module encodes the regulated schedules as immutable :class:`TariffSchedule`
records and offers three operations on top of them:

* :func:`calculate_monthly_cost` - bill one month from consumption and peak demand.
* :func:`calculate_annual_cost` - spread annual consumption evenly over 12 months.
* :func:`detect_tariff` - guess the applicable schedule from the demand profile.

Daily quantities (access fee, daily tier thresholds) are prorated on a
30-day month.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

DAYS_PER_BILLING_MONTH = 30
HOURS_PER_MONTH = 730

FALLBACK_ENERGY_RATE = 0.057
FALLBACK_DEMAND_RATE = 17.57


@dataclass(frozen=True)
class EnergyTier:
    """
    One band of the energy charge.

    ``threshold_kwh`` is ``None`` for the last band, which absorbs every
    remaining kWh. ``daily`` thresholds are multiplied by the billing days.
    """

    rate: float
    threshold_kwh: float | None = None
    daily: bool = False

    def limit_kwh(self) -> float | None:
        if self.threshold_kwh is None:
            return None
        return self.threshold_kwh * DAYS_PER_BILLING_MONTH if self.daily else self.threshold_kwh


@dataclass(frozen=True)
class MinimumBill:
    single_phase: float
    three_phase: float


@dataclass(frozen=True)
class TariffSchedule:
    """
    Immutable description of a utility rate schedule.

    Attributes:
        code: Schedule code ("M", "Flex G", ...).
        name: Localized display names keyed by language ("fr", "en").
        access_fee: Fixed fee, per day when ``access_fee_daily`` else per month.
        power_rate: $/kW applied to billed peak demand (0 when not billed).
        power_threshold_kw: Demand below this value is not billed.
        energy_tiers: Energy bands consumed lowest tier first.
        minimum_monthly: Optional floor on the monthly total.
        peak_event_rate: Critical-peak rate of the dynamic "flex" schedules.
        min_demand_kw / max_demand_kw: Applicability bounds.
    """

    code: str
    name: Dict[str, str]
    energy_tiers: Tuple[EnergyTier, ...]
    access_fee: float = 0.0
    access_fee_daily: bool = False
    power_rate: float = 0.0
    power_threshold_kw: float | None = None
    minimum_monthly: MinimumBill | None = None
    peak_event_rate: float | None = None
    min_demand_kw: float | None = None
    max_demand_kw: float | None = None

    @property
    def is_flex(self) -> bool:
        return self.peak_event_rate is not None


@dataclass(frozen=True)
class MonthlyCost:
    access_fee: float
    power_charge: float
    energy_charge: float
    total: float


@dataclass
class AnnualCost:
    tariff: TariffSchedule
    monthly_breakdown: List[Dict[str, float]]
    annual_total: float
    average_rate: float


@dataclass
class TariffDetectionResult:
    detected_tariff: str
    confidence: str
    reason: Dict[str, str]
    suggested_tariffs: List[str] = field(default_factory=list)
    peak_demand_kw: float = 0.0
    annual_consumption_kwh: float = 0.0
    load_factor: float = 0.0


_STANDARD_MINIMUM = MinimumBill(single_phase=14.86, three_phase=44.58)

TARIFFS: Dict[str, TariffSchedule] = {
    schedule.code: schedule
    for schedule in (
        TariffSchedule(
            code="D",
            name={"fr": "Tarif D (Domestique)", "en": "Rate D (Domestic)"},
            access_fee=0.46154,
            access_fee_daily=True,
            energy_tiers=(EnergyTier(0.06905, 40, daily=True), EnergyTier(0.10652)),
            max_demand_kw=50,
        ),
        TariffSchedule(
            code="G",
            name={"fr": "Tarif G (Petite puissance)", "en": "Rate G (Small Power)"},
            access_fee=14.86,
            power_rate=21.261,
            power_threshold_kw=50,
            energy_tiers=(EnergyTier(0.11933, 15_090), EnergyTier(0.09184)),
            minimum_monthly=_STANDARD_MINIMUM,
            max_demand_kw=65,
        ),
        TariffSchedule(
            code="M",
            name={"fr": "Tarif M (Moyenne puissance)", "en": "Rate M (Medium Power)"},
            power_rate=17.573,
            energy_tiers=(EnergyTier(0.06061, 210_000), EnergyTier(0.04495)),
            minimum_monthly=_STANDARD_MINIMUM,
            min_demand_kw=65,
            max_demand_kw=5000,
        ),
        TariffSchedule(
            code="L",
            name={"fr": "Tarif L (Grande puissance)", "en": "Rate L (Large Power)"},
            power_rate=14.476,
            energy_tiers=(EnergyTier(0.03681),),
            min_demand_kw=5000,
        ),
        TariffSchedule(
            code="G9",
            name={"fr": "Tarif G9", "en": "Rate G9"},
            power_rate=5.098,
            energy_tiers=(EnergyTier(0.12148),),
            minimum_monthly=_STANDARD_MINIMUM,
            min_demand_kw=65,
            max_demand_kw=5000,
        ),
        TariffSchedule(
            code="GD",
            name={"fr": "Tarif GD", "en": "Rate GD"},
            power_rate=6.39,
            energy_tiers=(EnergyTier(0.0753),),
            minimum_monthly=_STANDARD_MINIMUM,
            min_demand_kw=65,
            max_demand_kw=5000,
        ),
        TariffSchedule(
            code="BR",
            name={"fr": "Tarif BR (Biénergie)", "en": "Rate BR (Dual-energy)"},
            energy_tiers=(
                EnergyTier(0.127, 50, daily=True),
                EnergyTier(0.24574),
                EnergyTier(0.16837),
            ),
            minimum_monthly=_STANDARD_MINIMUM,
        ),
        TariffSchedule(
            code="Flex D",
            name={"fr": "Tarif Flex D", "en": "Flex D Rate"},
            access_fee=0.46154,
            access_fee_daily=True,
            energy_tiers=(EnergyTier(0.04774, 40, daily=True), EnergyTier(0.08699)),
            peak_event_rate=0.45088,
        ),
        TariffSchedule(
            code="Flex G",
            name={"fr": "Tarif Flex G", "en": "Flex G Rate"},
            access_fee=14.86,
            energy_tiers=(EnergyTier(0.098),),
            minimum_monthly=_STANDARD_MINIMUM,
            peak_event_rate=0.54442,
        ),
        TariffSchedule(
            code="Flex M",
            name={"fr": "Tarif Flex M", "en": "Flex M Rate"},
            power_rate=17.573,
            energy_tiers=(EnergyTier(0.0382),),
            minimum_monthly=_STANDARD_MINIMUM,
            peak_event_rate=0.60262,
            min_demand_kw=65,
            max_demand_kw=5000,
        ),
    )
}


def get_tariff(code: str) -> TariffSchedule:
    """
    Look up a schedule by code.

    Raises:
        ValueError: If the code is not a known schedule.
    """
    try:
        return TARIFFS[code]
    except KeyError:
        raise ValueError(f"Unknown tariff code: {code}") from None


def list_tariffs() -> List[TariffSchedule]:
    return list(TARIFFS.values())


def calculate_monthly_cost(
    tariff: TariffSchedule | str,
    consumption_kwh: float,
    peak_demand_kw: float,
    is_three_phase: bool = True,
) -> MonthlyCost:
    """
    Bill one month: access fee, demand charge, tiered energy, then minimum floor.

    Args:
        tariff: Schedule or schedule code.
        consumption_kwh: Energy consumed in the month.
        peak_demand_kw: Highest billed demand in the month.
        is_three_phase: Selects the three-phase minimum bill.

    Returns:
        MonthlyCost with each component and the total.
    """
    schedule = get_tariff(tariff) if isinstance(tariff, str) else tariff

    access_fee = schedule.access_fee * DAYS_PER_BILLING_MONTH if schedule.access_fee_daily else schedule.access_fee

    power_charge = 0.0
    if schedule.power_rate:
        billable = peak_demand_kw
        if schedule.power_threshold_kw:
            billable = max(0.0, peak_demand_kw - schedule.power_threshold_kw)
        power_charge = billable * schedule.power_rate

    energy_charge = 0.0
    remaining = consumption_kwh
    for tier in schedule.energy_tiers:
        limit = tier.limit_kwh()
        if limit is None:
            energy_charge += remaining * tier.rate
            remaining = 0.0
        else:
            in_tier = min(remaining, limit)
            energy_charge += in_tier * tier.rate
            remaining -= in_tier
        if remaining <= 0:
            break

    total = access_fee + power_charge + energy_charge
    if schedule.minimum_monthly is not None:
        minimum = (
            schedule.minimum_monthly.three_phase
            if is_three_phase
            else schedule.minimum_monthly.single_phase
        )
        total = max(total, minimum)

    return MonthlyCost(
        access_fee=access_fee,
        power_charge=power_charge,
        energy_charge=energy_charge,
        total=total,
    )


def calculate_annual_cost(
    tariff_code: str,
    annual_consumption_kwh: float,
    peak_demand_kw: float,
    is_three_phase: bool = True,
) -> AnnualCost:
    """
    Bill a full year assuming flat monthly consumption and a constant peak.

    Raises:
        ValueError: If ``tariff_code`` is unknown.
    """
    schedule = get_tariff(tariff_code)
    monthly_consumption = annual_consumption_kwh / 12

    breakdown: List[Dict[str, float]] = []
    annual_total = 0.0
    for month in range(1, 13):
        cost = calculate_monthly_cost(schedule, monthly_consumption, peak_demand_kw, is_three_phase)
        breakdown.append(
            {
                "month": month,
                "access_fee": cost.access_fee,
                "power_charge": cost.power_charge,
                "energy_charge": cost.energy_charge,
                "total": cost.total,
            }
        )
        annual_total += cost.total

    return AnnualCost(
        tariff=schedule,
        monthly_breakdown=breakdown,
        annual_total=annual_total,
        average_rate=annual_total / annual_consumption_kwh if annual_consumption_kwh > 0 else 0.0,
    )


def detect_tariff(
    peak_demand_kw: float,
    annual_consumption_kwh: float,
    has_demand_meter: bool,
) -> TariffDetectionResult:
    """
    Classify the likely schedule from peak demand and load factor.

    Sites without a demand meter (or under 10 kW) are treated as domestic.
    Between 65 kW and 5 MW a load factor below 0.3 ranks the intermittent-use
    G9 schedule first among the suggestions.
    """
    monthly = annual_consumption_kwh / 12
    load_factor = monthly / (peak_demand_kw * HOURS_PER_MONTH) if peak_demand_kw > 0 else 0.0

    if not has_demand_meter or peak_demand_kw < 10:
        detected = "D"
        confidence = "high" if has_demand_meter else "medium"
        if has_demand_meter:
            reason = {
                "fr": "Demande de pointe < 10 kW indique usage résidentiel",
                "en": "Peak demand < 10 kW indicates residential use",
            }
        else:
            reason = {
                "fr": "Absence de données de puissance suggère tarif résidentiel",
                "en": "No power data suggests residential rate",
            }
        suggested = ["D", "Flex D"]
    elif peak_demand_kw < 65:
        detected = "G"
        confidence = "high"
        reason = {
            "fr": f"Demande de pointe de {peak_demand_kw:.0f} kW < 65 kW",
            "en": f"Peak demand of {peak_demand_kw:.0f} kW < 65 kW",
        }
        suggested = ["G", "Flex G"]
    elif peak_demand_kw < 5000:
        detected = "M"
        confidence = "high"
        reason = {
            "fr": f"Demande de pointe de {peak_demand_kw:.0f} kW entre 65 kW et 5 MW",
            "en": f"Peak demand of {peak_demand_kw:.0f} kW between 65 kW and 5 MW",
        }
        suggested = ["G9", "M", "Flex M"] if load_factor < 0.3 else ["M", "Flex M", "G9"]
    else:
        detected = "L"
        confidence = "high"
        reason = {
            "fr": f"Demande de pointe de {peak_demand_kw / 1000:.1f} MW > 5 MW",
            "en": f"Peak demand of {peak_demand_kw / 1000:.1f} MW > 5 MW",
        }
        suggested = ["L"]

    return TariffDetectionResult(
        detected_tariff=detected,
        confidence=confidence,
        reason=reason,
        suggested_tariffs=suggested,
        peak_demand_kw=peak_demand_kw,
        annual_consumption_kwh=annual_consumption_kwh,
        load_factor=load_factor,
    )


def get_simplified_rates(tariff_code: str) -> Tuple[float, float]:
    """
    Return ``(energy_rate, demand_rate)`` used by the financial engine.

    The first energy tier stands in for the blended rate. Unknown codes fall
    back to rate M figures instead of raising.
    """
    schedule = TARIFFS.get(tariff_code)
    if schedule is None:
        return FALLBACK_ENERGY_RATE, FALLBACK_DEMAND_RATE
    energy_rate = schedule.energy_tiers[0].rate if schedule.energy_tiers else FALLBACK_ENERGY_RATE
    return energy_rate, schedule.power_rate
