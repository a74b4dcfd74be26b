"""
Parametric scenario generation.

Each simulated year draws three independent normals and pushes them through
correlation, persistence and shape adjustments (see
`regime_bootstrap.returns.normal`):

    z_k     = Φ⁻¹(u_k),               u_k ~ U(0, 1)
    x       = L z                     L L' = Ω
    a_{k,t} = ρ_k a_{k,t-1} + sqrt(1 - ρ_k²) x_k
    r_k     = clamp_k(μ_k + σ_k CF(a_{k,t}; S_k, K_k))

with k ∈ {stocks, bonds, inflation} and a_{k,-1} = 0.

The regime-aware variant takes (μ, σ, S, K, ρ, Ω) from the active regime. A
regime stays active for a dwell time drawn from the candidate block lengths,
then the next regime is drawn from the smoothed transition row. The AR(1)
state carries over regime changes.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from regime_bootstrap.config import ParametricOptions
from regime_bootstrap.returns.correlation import CorrelationModel
from regime_bootstrap.returns.normal import (
    BONDS_BOUNDS,
    INFLATION_BOUNDS,
    STOCKS_BOUNDS,
    ar1_step,
    clamp,
    cornish_fisher,
    inverse_normal_cdf,
    safe_uniform,
)
from regime_bootstrap.seeding import weighted_index
from regime_bootstrap.simulation.contracts import (
    RandomScenarioSource,
    SamplingCounters,
    SamplingStats,
    Scenario,
)
from regime_bootstrap.simulation.snapshot import SnapshotProvider

ASSET_BOUNDS = (STOCKS_BOUNDS, BONDS_BOUNDS, INFLATION_BOUNDS)


def sample_year(
    rng: np.random.Generator,
    assets: Sequence,
    correlation: CorrelationModel,
    state: List[float]
) -> Tuple[float, float, float]:
    """
    Simulate one year of (stocks, bonds, inflation).

    Parameters
    ----------
    rng : np.random.Generator
        Iteration generator.
    assets : Sequence
        Three parameter sets (stocks, bonds, inflation), each exposing mean,
        volatility, skewness, kurtosis and autocorrelation.
    correlation : CorrelationModel
        Cross-asset correlation.
    state : List[float]
        AR(1) state of each asset; updated in place.

    Returns
    -------
    Tuple[float, float, float]
        Clamped annual returns.
    """
    u = rng.random(3)
    x = correlation.correlate(
        inverse_normal_cdf(safe_uniform(u[0])),
        inverse_normal_cdf(safe_uniform(u[1])),
        inverse_normal_cdf(safe_uniform(u[2])),
    )

    year = []
    for k, asset in enumerate(assets):
        state[k] = ar1_step(x[k], state[k], asset.autocorrelation)
        warped = cornish_fisher(state[k], asset.skewness, asset.kurtosis)
        year.append(clamp(asset.mean + warped * asset.volatility, ASSET_BOUNDS[k]))

    return year[0], year[1], year[2]


class ParametricBootstrapper(RandomScenarioSource):
    """
    Synthetic returns from fixed distribution parameters.

    Parameters
    ----------
    options : ParametricOptions
        Per-asset parameters and correlations.
    seed : int
        Global seed.
    counters : SamplingCounters, optional
        Caller-owned aggregate diagnostics.
    """

    def __init__(
        self,
        options: ParametricOptions,
        seed: int,
        counters: Optional[SamplingCounters] = None
    ) -> None:
        super().__init__(seed, counters)
        self.options = options
        self.correlation = CorrelationModel(
            options.stocks_bonds_correlation,
            options.stocks_inflation_correlation,
            options.bonds_inflation_correlation,
        )

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        rng = self.rng_for(iteration)
        assets = self.options.assets

        returns: NDArray[np.float64] = np.empty((n_years, 3))
        state = [0.0, 0.0, 0.0]
        for t in range(n_years):
            returns[t] = sample_year(rng, assets, self.correlation, state)

        return Scenario(returns, iteration, SamplingStats())

    def describe(self) -> str:
        o = self.options
        return (
            f"Parametric returns | Stocks: {o.stocks.mean:.1%} ± {o.stocks.volatility:.1%} "
            f"Bonds: {o.bonds.mean:.1%} ± {o.bonds.volatility:.1%} "
            f"Inflation: {o.inflation.mean:.1%} ± {o.inflation.volatility:.1%}"
        )


class RegimeAwareParametricBootstrapper(RandomScenarioSource):
    """
    Synthetic returns whose parameters follow discovered regimes.

    Parameters
    ----------
    provider : SnapshotProvider
        Shared market snapshot; must be built with regimes.
    seed : int
        Global seed.
    block_sizes : Sequence[int]
        Candidate dwell times in years.
    regime_awareness : float
        λ in [0, 1].
    counters : SamplingCounters, optional
        Caller-owned aggregate diagnostics.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        seed: int,
        block_sizes: Sequence[int] = (3, 4, 5),
        regime_awareness: float = 0.5,
        counters: Optional[SamplingCounters] = None
    ) -> None:
        super().__init__(seed, counters)
        if not block_sizes or min(block_sizes) <= 0:
            raise ValueError(f"block_sizes must be positive. Got {block_sizes}")
        if not (0.0 <= regime_awareness <= 1.0):
            raise ValueError(f"regime_awareness must be in [0, 1]. Got {regime_awareness}")

        self.provider = provider
        self.block_sizes = tuple(block_sizes)
        self.regime_awareness = regime_awareness

    def _generate(self, iteration: int, n_years: int) -> Scenario:
        regime_set = self.provider.get().require_regimes()
        rng = self.rng_for(iteration)

        profiles = [regime.profile for regime in regime_set.regimes]
        correlations = [profile.correlation_model() for profile in profiles]
        transitions = regime_set.transitions.smoothed(self.regime_awareness)

        returns: NDArray[np.float64] = np.empty((n_years, 3))
        state = [0.0, 0.0, 0.0]
        n_segments = 0
        n_switches = 0

        regime = weighted_index(rng, regime_set.transitions.unconditional)
        t = 0
        while t < n_years:
            dwell = self.block_sizes[rng.integers(len(self.block_sizes))]
            profile = profiles[regime]
            assets = (profile.stocks, profile.bonds, profile.inflation)

            for _ in range(min(dwell, n_years - t)):
                returns[t] = sample_year(rng, assets, correlations[regime], state)
                t += 1
            n_segments += 1

            if t < n_years:
                following = weighted_index(rng, transitions[regime])
                n_switches += int(following != regime)
                regime = following

        return Scenario(returns, iteration, SamplingStats(blocks_sampled=n_segments, regime_switches=n_switches))

    def describe(self) -> str:
        sizes = "/".join(str(size) for size in self.block_sizes)
        return (
            f"Regime-aware parametric returns with {sizes}-year regime segments | "
            f"Regime awareness: {self.regime_awareness:.0%}"
        )
