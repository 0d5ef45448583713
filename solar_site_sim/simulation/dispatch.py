"""
Battery dispatch strategies.

The hourly simulation owns the accumulation loop (state of charge, totals,
trace); the decision of how much to charge or discharge each hour is delegated
to a :class:`DispatchStrategy`. Strategies are built once per simulation run
from a read-only :class:`DispatchContext` and answer ``decide(hour, state)``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, FrozenSet

import numpy as np

LOOKAHEAD_HOURS = 6
GRID_CHARGE_START_HOUR = 22
NON_PRIORITY_DISCHARGE_SHARE = 0.5


@dataclass(frozen=True)
class DispatchContext:
    """
    Read-only data of one simulation run shared with the strategy.

    Attributes:
        peaks_kw: Pre-battery demand for every simulated hour.
        months: Month number (1-12) for every simulated hour.
        threshold_kw: Demand-shaving target.
        battery_kwh: Usable energy capacity.
        battery_kw: Charge/discharge power rating.
    """

    peaks_kw: np.ndarray
    months: np.ndarray
    threshold_kw: float
    battery_kwh: float
    battery_kw: float


@dataclass(frozen=True)
class DispatchState:
    hour_of_day: int
    month: int
    consumption_kwh: float
    production_kwh: float
    peak_kw: float
    soc_kwh: float

    @property
    def net_load_kwh(self) -> float:
        return self.consumption_kwh - self.production_kwh


@dataclass(frozen=True)
class DispatchAction:
    """
    Battery energy exchanged during one hour.

    ``energy_kwh`` is positive when charging and negative when discharging.
    ``from_grid`` marks charging energy drawn from the grid.
    """

    energy_kwh: float = 0.0
    from_grid: bool = False

    @property
    def charge_kwh(self) -> float:
        return max(0.0, self.energy_kwh)

    @property
    def discharge_kwh(self) -> float:
        return max(0.0, -self.energy_kwh)


IDLE = DispatchAction()


class DispatchStrategy(ABC):
    """
    Interface of a per-hour battery dispatch policy.

    Implementations must keep the returned action within the battery power
    rating and the available energy / headroom given by ``state.soc_kwh``.
    """

    def __init__(self, context: DispatchContext) -> None:
        self.context = context

    @abstractmethod
    def decide(self, hour: int, state: DispatchState) -> DispatchAction:
        """Return the battery action for simulated hour index ``hour``."""
        raise NotImplementedError


DispatcherFactory = Callable[[DispatchContext], DispatchStrategy]


def priority_peak_indices(peaks_kw: np.ndarray, months: np.ndarray, threshold_kw: float) -> FrozenSet[int]:
    """
    Index of the highest-demand hour of each day, kept only above the threshold.

    Days are consecutive blocks of 24 simulated hours; ties keep the earliest hour.
    """
    indices = set()
    best: dict = {}
    for i, (peak, month) in enumerate(zip(peaks_kw, months)):
        key = (int(month), i // 24)
        current = best.get(key)
        if current is None or peak > peaks_kw[current]:
            best[key] = i
    for i in best.values():
        if peaks_kw[i] > threshold_kw:
            indices.add(i)
    return frozenset(indices)


class GreedyLookaheadDispatcher(DispatchStrategy):
    """
    Greedy demand-shaving heuristic with a short lookahead.

    * Above the threshold the battery discharges: fully on the day's priority
      peak, otherwise at most half of its charge, and not at all when a higher
      peak arrives within the next six hours.
    * With surplus solar it charges from the excess.
    * From 22:00 it tops up from the grid.
    """

    def __init__(self, context: DispatchContext) -> None:
        super().__init__(context)
        self._priority = priority_peak_indices(context.peaks_kw, context.months, context.threshold_kw)

    def _higher_peak_coming(self, hour: int, peak_kw: float) -> bool:
        peaks = self.context.peaks_kw
        end = min(len(peaks), hour + LOOKAHEAD_HOURS + 1)
        return bool(np.any(peaks[hour + 1:end] > peak_kw))

    def decide(self, hour: int, state: DispatchState) -> DispatchAction:
        ctx = self.context
        if ctx.battery_kw <= 0 or ctx.battery_kwh <= 0:
            return IDLE

        above_threshold = state.peak_kw > ctx.threshold_kw
        is_priority = hour in self._priority
        higher_coming = False
        if above_threshold and not is_priority:
            higher_coming = self._higher_peak_coming(hour, state.peak_kw)

        if above_threshold and state.soc_kwh > 0 and (is_priority or not higher_coming):
            available = state.soc_kwh if is_priority else state.soc_kwh * NON_PRIORITY_DISCHARGE_SHARE
            amount = min(state.peak_kw - ctx.threshold_kw, ctx.battery_kw, available)
            return DispatchAction(energy_kwh=-amount)

        headroom = ctx.battery_kwh - state.soc_kwh
        if state.net_load_kwh < 0 and headroom > 0:
            return DispatchAction(energy_kwh=min(-state.net_load_kwh, ctx.battery_kw, headroom))

        if state.hour_of_day >= GRID_CHARGE_START_HOUR and headroom > 0:
            return DispatchAction(energy_kwh=min(ctx.battery_kw, headroom), from_grid=True)

        return IDLE
