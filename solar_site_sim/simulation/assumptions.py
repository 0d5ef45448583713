"""
Analysis assumptions, system sizing and PV derate parameters.

These value objects are shared by every layer of the engine: the hourly
simulation reads :class:`SystemModelingParams`, the financial engine reads
:class:`AnalysisAssumptions` and :class:`SystemSizing`, and the sweep and
Monte Carlo wrappers derive perturbed copies via :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping


_NUMBER_TYPES = {"float", "int", "float | None", "int | None"}
_BOOL_TYPES = {"bool", "bool | None"}
_STR_TYPES = {"str", "str | None"}


def check_fields(cls: type, data: Mapping[str, Any], section: str) -> None:
    """
    Reject keys that are not fields of ``cls`` and wrongly typed scalar values.

    Raises:
        ValueError: Naming the first offending key.
    """
    known = {f.name: f.type for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"Unknown {section} keys: {', '.join(unknown)}")
    for name, value in data.items():
        kind = known[name]
        if value is None and kind.endswith("| None"):
            continue
        if kind in _NUMBER_TYPES:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{section}.{name} must be a number, got {value!r}")
            if kind.startswith("int") and not float(value).is_integer():
                raise ValueError(f"{section}.{name} must be an integer, got {value!r}")
        elif kind in _STR_TYPES and not isinstance(value, str):
            raise ValueError(f"{section}.{name} must be a string, got {value!r}")
        elif kind in _BOOL_TYPES and not isinstance(value, bool):
            raise ValueError(f"{section}.{name} must be true or false, got {value!r}")


@dataclass(frozen=True)
class SystemModelingParams:
    """
    Derate and gain coefficients applied to DC production.

    Attributes:
        inverter_load_ratio: DC/AC ratio. AC capacity = pv_kw / ILR.
        temp_coefficient: Power temperature coefficient per °C (negative).
        wire_losses_percent: Ohmic wiring loss (fraction).
        lid_loss_percent: Light-induced degradation loss (fraction).
        mismatch_losses_percent: Module mismatch loss (fraction).
        mismatch_strings_percent: String mismatch loss (fraction).
        module_quality_gain_percent: Positive power tolerance gain (fraction).
    """

    inverter_load_ratio: float = 1.45
    temp_coefficient: float = -0.004
    wire_losses_percent: float = 0.03
    lid_loss_percent: float = 0.01
    mismatch_losses_percent: float = 0.02
    mismatch_strings_percent: float = 0.0015
    module_quality_gain_percent: float = 0.0075

    def __post_init__(self) -> None:
        if self.inverter_load_ratio <= 0:
            raise ValueError("inverter_load_ratio must be positive")

    def loss_multiplier(self) -> float:
        """Combined multiplicative factor of the fixed derates and gain."""
        return (
            (1.0 - self.wire_losses_percent)
            * (1.0 - self.lid_loss_percent)
            * (1.0 - self.mismatch_losses_percent)
            * (1.0 - self.mismatch_strings_percent)
            * (1.0 + self.module_quality_gain_percent)
        )


@dataclass(frozen=True)
class SystemSizing:
    """Solar array and battery ratings of one configuration."""

    pv_kw: float = 0.0
    battery_kwh: float = 0.0
    battery_kw: float = 0.0

    def __post_init__(self) -> None:
        if self.pv_kw < 0 or self.battery_kwh < 0 or self.battery_kw < 0:
            raise ValueError("System sizes must be non-negative")

    def describe(self) -> str:
        return f"PV {self.pv_kw:g} kW | BESS {self.battery_kwh:g} kWh / {self.battery_kw:g} kW"


@dataclass(frozen=True)
class AnalysisAssumptions:
    """
    Tariff, cost, escalation and site assumptions for one analysis.

    Defaults reproduce a Hydro-Québec rate M customer with 2025 cost figures.
    ``solar_cost_per_w`` left to ``None`` selects the size-tiered cost table.
    ``bifacial_enabled`` is tri-state: ``None`` lets the roof color decide.
    ``yield_source`` is the previously stored yield source, if any.
    """

    tariff_code: str = "M"
    tariff_energy: float = 0.06061
    tariff_power: float = 17.573
    solar_yield_kwh_per_kwp: float = 1150.0
    orientation_factor: float = 1.0
    inflation_rate: float = 0.048
    discount_rate: float = 0.08
    tax_rate: float = 0.265
    solar_cost_per_w: float | None = None
    battery_capacity_cost: float = 550.0
    battery_power_cost: float = 800.0
    om_solar_percent: float = 0.01
    om_battery_percent: float = 0.005
    om_escalation: float = 0.025
    degradation_rate: float = 0.004
    surplus_compensation_rate: float = 0.0454
    roof_area_sqft: float = 100_000.0
    roof_utilization_ratio: float = 0.80
    max_pv_from_roof_kw: float | None = None
    battery_replacement_year: int = 10
    battery_replacement_cost_factor: float = 0.60
    battery_price_decline_rate: float = 0.05
    bifacial_enabled: bool | None = None
    bifacial_cost_premium: float = 0.10
    yield_source: str | None = None
    use_manual_yield: bool = False
    snow_loss_profile: str | None = None
    system_params: SystemModelingParams = field(default_factory=SystemModelingParams)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "AnalysisAssumptions":
        """
        Build assumptions from a JSON-like mapping, keeping defaults for absent keys.

        Raises:
            ValueError: If the mapping contains keys that are not assumptions
                or values of the wrong type.
        """
        if not data:
            return cls()
        check_fields(cls, data, "assumptions")

        values = dict(data)
        params = values.pop("system_params", None)
        if isinstance(params, Mapping):
            check_fields(SystemModelingParams, params, "system_params")
            values["system_params"] = SystemModelingParams(**params)
        elif isinstance(params, SystemModelingParams):
            values["system_params"] = params
        elif params is not None:
            raise ValueError(f"system_params must be an object, got {params!r}")
        return cls(**values)
