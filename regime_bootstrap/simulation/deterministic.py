"""
Sources without randomness.

Flat: the same (stocks, bonds, inflation) every year; one iteration is all
there is. Sequential: history replayed in order from offset = iteration,
which bounds the iterations to T - n + 1 for T years of history.
"""

from typing import Optional

import numpy as np

from regime_bootstrap.config import FlatOptions
from regime_bootstrap.history.returns import HistoricalSeries
from regime_bootstrap.simulation.contracts import SamplingCounters, SamplingStats, Scenario, ScenarioSource


class FlatBootstrapper(ScenarioSource):
    """Constant growth and inflation."""

    def __init__(self, options: FlatOptions, counters: Optional[SamplingCounters] = None) -> None:
        super().__init__(counters)
        self.options = options

    def max_iterations(self, n_years: int) -> int:
        return 1

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        row = (self.options.stocks, self.options.bonds, self.options.inflation)
        return Scenario(np.tile(row, (n_years, 1)), iteration, SamplingStats())

    def describe(self) -> str:
        o = self.options
        return f"Flat growth and inflation | Stocks: {o.stocks:.1%} Bonds: {o.bonds:.1%} Inflation: {o.inflation:.1%}"


class SequentialBootstrapper(ScenarioSource):
    """Historical returns in calendar order, sliding one year per iteration."""

    def __init__(self, history: HistoricalSeries, counters: Optional[SamplingCounters] = None) -> None:
        super().__init__(counters)
        self.history = history

    def max_iterations(self, n_years: int) -> int:
        return max(0, len(self.history) - n_years + 1)

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        window = self.history.as_array()[iteration:iteration + n_years]
        return Scenario(window, iteration, SamplingStats(blocks_sampled=1))

    def describe(self) -> str:
        return (
            f"Sequence of historical returns and inflation from "
            f"{self.history.min_year} to {self.history.max_year}"
        )
