"""
Unit tests for the parametric sources.

Tests cover:
- Degenerate parameters reproduce the mean exactly
- Hard clamps on every asset
- Cross-asset correlation of generated years
- Reproducibility per iteration
- Regime-aware segments and statistics
- AR(1) persistence across regime switches
"""

from types import SimpleNamespace

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from regime_bootstrap.config import AssetParams, ParametricOptions
from regime_bootstrap.regimes.discovery import Regime, RegimeProfile
from regime_bootstrap.regimes.markov import TransitionModel
from regime_bootstrap.returns.correlation import create_uncorrelated_model
from regime_bootstrap.returns.moments import AssetMoments
from regime_bootstrap.returns.normal import BONDS_BOUNDS, INFLATION_BOUNDS, STOCKS_BOUNDS
from regime_bootstrap.seeding import spawn_rng, weighted_index
from regime_bootstrap.simulation.parametric import (
    ParametricBootstrapper,
    RegimeAwareParametricBootstrapper,
    sample_year,
)


def flat_options(**correlations) -> ParametricOptions:
    return ParametricOptions(
        stocks=AssetParams(mean=0.07, volatility=0.0),
        bonds=AssetParams(mean=0.04, volatility=0.0),
        inflation=AssetParams(mean=0.02, volatility=0.0),
        **correlations,
    )


class TestSampleYear:
    """Tests for a single simulated year."""

    def test_zero_volatility_returns_mean(self) -> None:
        options = flat_options(
            stocks_bonds_correlation=0.0,
            stocks_inflation_correlation=0.0,
            bonds_inflation_correlation=0.0,
        )
        state = [0.0, 0.0, 0.0]
        year = sample_year(np.random.default_rng(0), options.assets, create_uncorrelated_model(), state)
        assert year == (0.07, 0.04, 0.02)

    def test_state_is_updated(self) -> None:
        assets = ParametricOptions().assets
        state = [0.0, 0.0, 0.0]
        sample_year(np.random.default_rng(0), assets, create_uncorrelated_model(), state)
        assert any(s != 0.0 for s in state)

    def test_clamps(self) -> None:
        """Extreme means are pinned to the hard bounds."""
        high = (AssetParams(0.9, 0.0), AssetParams(0.9, 0.0), AssetParams(0.9, 0.0))
        low = (AssetParams(-0.9, 0.0), AssetParams(-0.9, 0.0), AssetParams(-0.9, 0.0))
        model = create_uncorrelated_model()

        assert sample_year(np.random.default_rng(0), high, model, [0.0] * 3) == \
            (STOCKS_BOUNDS[1], BONDS_BOUNDS[1], INFLATION_BOUNDS[1])
        assert sample_year(np.random.default_rng(0), low, model, [0.0] * 3) == \
            (STOCKS_BOUNDS[0], BONDS_BOUNDS[0], INFLATION_BOUNDS[0])


class TestParametricBootstrapper:
    """Tests for the fixed-parameter source."""

    def test_degenerate_scenario_is_constant(self) -> None:
        source = ParametricBootstrapper(flat_options(), seed=1)
        scenario = source.scenario(0, 20)

        assert_array_equal(scenario.stocks, np.full(20, 0.07))
        assert_array_equal(scenario.bonds, np.full(20, 0.04))
        assert_array_equal(scenario.inflation, np.full(20, 0.02))

    def test_within_bounds(self) -> None:
        source = ParametricBootstrapper(ParametricOptions(), seed=3)
        for i in range(20):
            returns = source.scenario(i, 50).as_array()
            for k, bounds in enumerate((STOCKS_BOUNDS, BONDS_BOUNDS, INFLATION_BOUNDS)):
                assert np.all(returns[:, k] >= bounds[0])
                assert np.all(returns[:, k] <= bounds[1])

    def test_correlation_fidelity(self) -> None:
        """Small volatility keeps clamps out of the way; ρ = 0 makes years independent."""
        options = ParametricOptions(
            stocks=AssetParams(mean=0.05, volatility=0.01),
            bonds=AssetParams(mean=0.04, volatility=0.01),
            inflation=AssetParams(mean=0.03, volatility=0.01),
            stocks_bonds_correlation=-0.4,
            stocks_inflation_correlation=0.3,
            bonds_inflation_correlation=0.2,
        )
        returns = ParametricBootstrapper(options, seed=8).scenario(0, 6000).as_array()
        observed = np.corrcoef(returns.T)

        assert observed[0, 1] == pytest.approx(-0.4, abs=0.05)
        assert observed[0, 2] == pytest.approx(0.3, abs=0.05)
        assert observed[1, 2] == pytest.approx(0.2, abs=0.05)

    def test_moments(self) -> None:
        options = ParametricOptions(
            stocks=AssetParams(mean=0.06, volatility=0.05),
            bonds=AssetParams(mean=0.04, volatility=0.02),
            inflation=AssetParams(mean=0.03, volatility=0.01),
        )
        returns = ParametricBootstrapper(options, seed=2).scenario(0, 8000).as_array()

        assert_allclose(returns.mean(axis=0), [0.06, 0.04, 0.03], atol=0.003)
        assert_allclose(returns.std(axis=0), [0.05, 0.02, 0.01], rtol=0.05)

    def test_persistence(self) -> None:
        options = ParametricOptions(
            inflation=AssetParams(mean=0.03, volatility=0.01, autocorrelation=0.8),
        )
        inflation = ParametricBootstrapper(options, seed=4).scenario(0, 6000).inflation
        lag1 = np.corrcoef(inflation[:-1], inflation[1:])[0, 1]
        assert lag1 == pytest.approx(0.8, abs=0.05)

    def test_reproducible(self) -> None:
        first = ParametricBootstrapper(ParametricOptions(), seed=42).scenario(5, 30)
        second = ParametricBootstrapper(ParametricOptions(), seed=42).scenario(5, 30)
        assert_array_equal(first.as_array(), second.as_array())

    def test_iterations_and_seeds_differ(self) -> None:
        source = ParametricBootstrapper(ParametricOptions(), seed=42)
        other = ParametricBootstrapper(ParametricOptions(), seed=43)
        assert not np.array_equal(source.scenario(0, 30).as_array(), source.scenario(1, 30).as_array())
        assert not np.array_equal(source.scenario(0, 30).as_array(), other.scenario(0, 30).as_array())

    def test_no_block_statistics(self) -> None:
        stats = ParametricBootstrapper(ParametricOptions(), seed=1).scenario(0, 10).stats
        assert stats.blocks_sampled == 0
        assert stats.regime_switches == 0

    def test_describe(self) -> None:
        text = ParametricBootstrapper(ParametricOptions(), seed=1).describe()
        assert "Stocks: 10.0% ± 18.0%" in text


class TestRegimeAwareParametricBootstrapper:
    """Tests for the regime-following parametric source."""

    @pytest.mark.parametrize("n_years", [1, 3, 17, 60])
    def test_exact_horizon(self, regime_provider, n_years) -> None:
        source = RegimeAwareParametricBootstrapper(regime_provider, seed=6)
        assert len(source.scenario(0, n_years)) == n_years

    def test_reproducible(self, regime_provider) -> None:
        first = RegimeAwareParametricBootstrapper(regime_provider, seed=6).scenario(2, 40)
        second = RegimeAwareParametricBootstrapper(regime_provider, seed=6).scenario(2, 40)
        assert_array_equal(first.as_array(), second.as_array())
        assert first.stats == second.stats

    def test_within_bounds(self, regime_provider) -> None:
        source = RegimeAwareParametricBootstrapper(regime_provider, seed=6)
        for i in range(10):
            returns = source.scenario(i, 40).as_array()
            assert np.all(np.abs(returns[:, 0]) <= STOCKS_BOUNDS[1])
            assert np.all(returns[:, 1] >= BONDS_BOUNDS[0])
            assert np.all(returns[:, 2] <= INFLATION_BOUNDS[1])

    def test_segment_statistics(self, regime_provider) -> None:
        source = RegimeAwareParametricBootstrapper(regime_provider, seed=6, block_sizes=(4,))
        for i in range(20):
            stats = source.scenario(i, 30).stats
            assert stats.blocks_sampled == 8        # ⌈30 / 4⌉
            assert 0 <= stats.regime_switches <= 7

    def test_memoryless_still_switches(self, regime_provider) -> None:
        source = RegimeAwareParametricBootstrapper(regime_provider, seed=6, regime_awareness=0.0)
        switches = sum(source.scenario(i, 60).stats.regime_switches for i in range(20))
        assert switches > 0

    def test_invalid_arguments(self, regime_provider) -> None:
        with pytest.raises(ValueError, match="block_sizes"):
            RegimeAwareParametricBootstrapper(regime_provider, seed=1, block_sizes=())
        with pytest.raises(ValueError, match="regime_awareness"):
            RegimeAwareParametricBootstrapper(regime_provider, seed=1, regime_awareness=-0.5)

    def test_describe(self, regime_provider) -> None:
        text = RegimeAwareParametricBootstrapper(regime_provider, seed=1, block_sizes=(3, 5)).describe()
        assert "3/5-year" in text


class TestAutocorrelationAcrossRegimes:
    """The AR(1) state is shared by consecutive regime segments."""

    MEANS = ((0.02, 0.03, 0.02), (0.08, 0.05, 0.04))
    VOLATILITY = (0.01, 0.01, 0.005)
    RHO = 0.9

    @pytest.fixture
    def alternating_provider(self):
        """Two regimes that swap every segment."""
        regimes = []
        for k, means in enumerate(self.MEANS):
            stocks, bonds, inflation = (
                AssetMoments(mean, vol, 0.0, 3.0, self.RHO) for mean, vol in zip(means, self.VOLATILITY)
            )
            profile = RegimeProfile(stocks, bonds, inflation, 0.0, 0.0, 0.0)
            regimes.append(Regime(k, f"regime-{k}", profile, 10))

        regime_set = SimpleNamespace(
            regimes=tuple(regimes),
            transitions=TransitionModel(np.array([[0.0, 1.0], [1.0, 0.0]]), np.array([0.5, 0.5])),
        )
        snapshot = SimpleNamespace(require_regimes=lambda: regime_set)
        return SimpleNamespace(get=lambda: snapshot), regime_set

    def test_lag1_correlation_survives_switches(self, alternating_provider) -> None:
        provider, _ = alternating_provider
        n_years = 4000
        source = RegimeAwareParametricBootstrapper(provider, seed=3, block_sizes=(1,), regime_awareness=1.0)

        scenario = source.scenario(0, n_years)

        assert scenario.stats.regime_switches == n_years - 1
        first = weighted_index(spawn_rng(3, 0), [0.5, 0.5])
        regimes = (first + np.arange(n_years)) % 2
        means = np.array(self.MEANS)[regimes, 0]
        z = (scenario.stocks - means) / self.VOLATILITY[0]

        # Every consecutive pair straddles a regime switch
        lag1 = np.corrcoef(z[:-1], z[1:])[0, 1]
        assert lag1 == pytest.approx(self.RHO, abs=0.05)

    def test_matches_single_state_replay(self, alternating_provider) -> None:
        provider, regime_set = alternating_provider
        n_years = 12
        source = RegimeAwareParametricBootstrapper(provider, seed=9, block_sizes=(1,), regime_awareness=1.0)

        rng = spawn_rng(9, 2)
        transitions = regime_set.transitions.smoothed(1.0)
        state = [0.0, 0.0, 0.0]
        expected = []
        regime = weighted_index(rng, regime_set.transitions.unconditional)
        for t in range(n_years):
            rng.integers(1)
            profile = regime_set.regimes[regime].profile
            assets = (profile.stocks, profile.bonds, profile.inflation)
            expected.append(sample_year(rng, assets, profile.correlation_model(), state))
            if t < n_years - 1:
                regime = weighted_index(rng, transitions[regime])

        assert_array_equal(source.scenario(2, n_years).as_array(), np.array(expected))
