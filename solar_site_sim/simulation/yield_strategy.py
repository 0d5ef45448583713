"""
Resolution of the specific-yield assumption used by an analysis.

A site analysis may hold several competing yield figures: a stored value from a
previous run, a fresh remote-sensing production estimate, a sunshine-hours
proxy, an analyst's manual entry, or nothing at all. :func:`resolve_yield_strategy`
picks one of them, once, and returns an immutable :class:`YieldStrategy` that
callers pass explicitly to every simulation and financial function so that no
code path recomputes yield on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from .assumptions import AnalysisAssumptions

logger = logging.getLogger(__name__)

BASELINE_YIELD = 1150.0
"""Reference specific yield (kWh/kWp/year) the hourly model is calibrated on."""

BIFACIAL_BOOST = 1.15
SUNSHINE_HOURS_EFFICIENCY = 1.0
ORIENTATION_MIN = 0.6
ORIENTATION_MAX = 1.0

SOURCE_REMOTE = "remote"
SOURCE_MANUAL = "manual"
SOURCE_DEFAULT = "default"
YIELD_SOURCES = (SOURCE_REMOTE, SOURCE_MANUAL, SOURCE_DEFAULT)

_SOURCE_ALIASES = {"google": SOURCE_REMOTE}


@dataclass(frozen=True)
class RemoteSensingData:
    """
    Optional remote-sensing inputs for a roof.

    Attributes:
        yearly_energy_kwh: Modelled annual AC production of ``system_size_kw``.
        system_size_kw: Size of the modelled reference array.
        max_sunshine_hours_per_year: Peak sun hours, used as a yield proxy.
    """

    yearly_energy_kwh: float | None = None
    system_size_kw: float | None = None
    max_sunshine_hours_per_year: float | None = None

    def has_production_estimate(self) -> bool:
        return bool(
            self.yearly_energy_kwh
            and self.system_size_kw
            and self.yearly_energy_kwh > 0
            and self.system_size_kw > 0
        )


@dataclass(frozen=True)
class BifacialConfig:
    boost: float
    albedo: float
    recommended: bool
    reason: Dict[str, str]


# Rear-side gain grows with the albedo of the roof membrane.
ROOF_COLOR_BIFACIAL: Dict[str, BifacialConfig] = {
    "white_membrane": BifacialConfig(
        1.15, 0.70, True,
        {"fr": "Membrane blanche, albédo élevé (+15%)", "en": "White membrane, high albedo (+15%)"},
    ),
    "light": BifacialConfig(
        1.10, 0.50, True,
        {"fr": "Toit pâle, albédo moyen (+10%)", "en": "Light roof, medium albedo (+10%)"},
    ),
    "gravel": BifacialConfig(
        1.05, 0.35, False,
        {"fr": "Toit en gravier, gain bifacial limité (+5%)", "en": "Gravel roof, limited bifacial gain (+5%)"},
    ),
    "dark": BifacialConfig(
        1.0, 0.15, False,
        {"fr": "Toit foncé, bifacial non recommandé", "en": "Dark roof, bifacial not recommended"},
    ),
}

_UNKNOWN_ROOF = BifacialConfig(
    1.0, 0.20, False,
    {"fr": "Couleur de toit inconnue", "en": "Unknown roof color"},
)


@dataclass(frozen=True)
class YieldStrategy:
    """
    Yield figures resolved once per analysis.

    Attributes:
        effective_yield: ``base_yield × bifacial_boost × orientation_factor``.
        source: ``"remote"``, ``"manual"`` or ``"default"``.
        skip_temperature_correction: True unless the source is ``"default"``;
            remote and manual yields already include thermal losses.
        base_yield: Yield before bifacial and orientation adjustments.
        bifacial_boost: Rear-side production multiplier.
        orientation_factor: Orientation derate actually applied.
        yield_factor: ``effective_yield / 1150``, consumed by the hourly model.
    """

    effective_yield: float
    source: str
    skip_temperature_correction: bool
    base_yield: float
    bifacial_boost: float
    orientation_factor: float
    yield_factor: float

    @classmethod
    def build(
        cls,
        base_yield: float,
        source: str,
        bifacial_boost: float = 1.0,
        orientation_factor: float = 1.0,
    ) -> "YieldStrategy":
        if source not in YIELD_SOURCES:
            raise ValueError(f"Unknown yield source: {source!r}")
        effective = base_yield * bifacial_boost * orientation_factor
        return cls(
            effective_yield=effective,
            source=source,
            skip_temperature_correction=source != SOURCE_DEFAULT,
            base_yield=base_yield,
            bifacial_boost=bifacial_boost,
            orientation_factor=orientation_factor,
            yield_factor=effective / BASELINE_YIELD,
        )

    def scaled(self, multiplier: float) -> "YieldStrategy":
        """Copy with the base yield scaled, e.g. by a sampled production variance."""
        return YieldStrategy.build(
            self.base_yield * multiplier,
            self.source,
            self.bifacial_boost,
            self.orientation_factor,
        )


def get_bifacial_config_from_roof_color(roof_color: str | None) -> BifacialConfig:
    if not roof_color:
        return _UNKNOWN_ROOF
    return ROOF_COLOR_BIFACIAL.get(roof_color.lower(), _UNKNOWN_ROOF)


def _normalize_source(source: str | None) -> str | None:
    if source is None:
        return None
    return _SOURCE_ALIASES.get(source, source)


def resolve_yield_strategy(
    assumptions: AnalysisAssumptions,
    remote_data: RemoteSensingData | None = None,
    roof_color: str | None = None,
) -> YieldStrategy:
    """
    Decide which specific yield to trust for the whole analysis.

    Resolution order (first match wins):

    1. a stored remote source, unless manual yield is forced;
    2. a fresh remote production estimate (``energy / size``, rounded);
    3. remote sunshine hours (× efficiency factor, rounded);
    4. ``use_manual_yield`` set;
    5. a stored manual source;
    6. a yield different from the 1,150 kWh/kWp baseline;
    7. the baseline.

    The bifacial boost resolves independently: an explicit flag wins, otherwise
    the roof color gives a recommendation. The orientation derate is clamped to
    [0.6, 1.0] and only applied to default yields.

    Args:
        assumptions: Analysis assumptions (stored source, manual flag, yield...).
        remote_data: Optional remote-sensing estimates for the roof.
        roof_color: Optional roof color classification.

    Returns:
        The resolved YieldStrategy.
    """
    stored_source = _normalize_source(assumptions.yield_source)
    manual_forced = assumptions.use_manual_yield
    stored_yield = assumptions.solar_yield_kwh_per_kwp
    base_yield = stored_yield or BASELINE_YIELD

    if stored_source == SOURCE_REMOTE and not manual_forced:
        source = SOURCE_REMOTE
    elif remote_data is not None and remote_data.has_production_estimate() and not manual_forced:
        base_yield = float(round(remote_data.yearly_energy_kwh / remote_data.system_size_kw))
        source = SOURCE_REMOTE
    elif remote_data is not None and remote_data.max_sunshine_hours_per_year and not manual_forced:
        base_yield = float(round(remote_data.max_sunshine_hours_per_year * SUNSHINE_HOURS_EFFICIENCY))
        source = SOURCE_REMOTE
    elif manual_forced:
        source = SOURCE_MANUAL
    elif stored_source == SOURCE_MANUAL:
        source = SOURCE_MANUAL
    elif stored_yield and stored_yield != BASELINE_YIELD:
        source = SOURCE_MANUAL
    else:
        source = SOURCE_DEFAULT

    if assumptions.bifacial_enabled is True:
        bifacial_boost = BIFACIAL_BOOST
    elif assumptions.bifacial_enabled is False:
        bifacial_boost = 1.0
    else:
        bifacial_boost = get_bifacial_config_from_roof_color(roof_color).boost

    clamped = min(ORIENTATION_MAX, max(ORIENTATION_MIN, assumptions.orientation_factor or 1.0))
    orientation_factor = clamped if source == SOURCE_DEFAULT else 1.0

    strategy = YieldStrategy.build(base_yield, source, bifacial_boost, orientation_factor)
    logger.debug(
        "Resolved yield: source=%s base=%.0f bifacial=%.2f orientation=%.2f effective=%.1f",
        strategy.source,
        strategy.base_yield,
        strategy.bifacial_boost,
        strategy.orientation_factor,
        strategy.effective_yield,
    )
    return strategy
