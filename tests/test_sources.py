"""
Unit tests for the scenario contract, deterministic sources, the shared
snapshot, the source registry and the command line.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
import numpy as np
import pandas as pd
from numpy.testing import assert_array_equal, assert_allclose

from regime_bootstrap import cli
from regime_bootstrap.config import BootstrapConfig, BootstrapKind, BootstrapOptions, FlatOptions
from regime_bootstrap.errors import ConfigurationError, InvariantViolation
from regime_bootstrap.simulation import snapshot as snapshot_module
from regime_bootstrap.simulation.block_bootstrap import MovingBlockBootstrapper
from regime_bootstrap.simulation.contracts import (
    ReturnTriple,
    SamplingCounters,
    SamplingStats,
    Scenario,
    ScenarioSource,
)
from regime_bootstrap.simulation.deterministic import FlatBootstrapper, SequentialBootstrapper
from regime_bootstrap.simulation.registry import SOURCE_REGISTRY, create_source
from regime_bootstrap.simulation.snapshot import SnapshotProvider, build_snapshot, ranking_thresholds


class TestScenario:
    """Tests for the scenario container."""

    def test_sequence_protocol(self) -> None:
        scenario = Scenario(np.array([[0.1, 0.02, 0.03], [-0.2, 0.04, 0.01]]), iteration=3)

        assert len(scenario) == 2
        assert scenario[0] == ReturnTriple(0.1, 0.02, 0.03)
        assert scenario[-1].stocks == -0.2
        assert scenario[0:1] == [ReturnTriple(0.1, 0.02, 0.03)]
        assert [t.bonds for t in scenario] == [0.02, 0.04]
        assert scenario.iteration == 3
        assert scenario.stats == SamplingStats()

    def test_read_only(self) -> None:
        scenario = Scenario(np.zeros((3, 3)))
        with pytest.raises(ValueError):
            scenario.as_array()[0, 0] = 1.0

    def test_copy_of_input(self) -> None:
        data = np.zeros((2, 3))
        scenario = Scenario(data)
        data[0, 0] = 5.0
        assert scenario.stocks[0] == 0.0

    def test_invalid_shape(self) -> None:
        with pytest.raises(ValueError, match="n_years, 3"):
            Scenario(np.zeros((3, 2)))
        with pytest.raises(ValueError):
            Scenario(np.zeros((0, 3)))

    def test_stats_addition(self) -> None:
        total = SamplingStats(1, 2, 3, 4, 5) + SamplingStats(1, 1, 1, 1, 1)
        assert total == SamplingStats(2, 3, 4, 5, 6)

    def test_short_scenario_is_an_invariant_violation(self) -> None:
        class ShortSource(ScenarioSource):
            def max_iterations(self, n_years):
                return 1

            def _generate(self, iteration, n_years):
                return Scenario(np.zeros((n_years - 1, 3)))

            def describe(self):
                return "short"

        with pytest.raises(InvariantViolation):
            ShortSource().scenario(0, 5)


class TestFlatBootstrapper:
    """Tests for constant returns."""

    def test_constant_rows(self) -> None:
        scenario = FlatBootstrapper(FlatOptions()).scenario(0, 4)
        assert_allclose(scenario.as_array(), np.tile([0.06, 0.04, 0.03], (4, 1)))

    def test_single_iteration(self) -> None:
        source = FlatBootstrapper(FlatOptions())
        assert source.max_iterations(30) == 1
        assert len(list(source.scenarios(10, 30))) == 1
        with pytest.raises(ValueError, match="outside the range"):
            source.scenario(1, 30)

    def test_describe(self) -> None:
        assert "Stocks: 6.0%" in FlatBootstrapper(FlatOptions()).describe()


class TestSequentialBootstrapper:
    """Tests for in-order historical replay."""

    def test_windows(self, concrete_history) -> None:
        source = SequentialBootstrapper(concrete_history)

        assert source.max_iterations(3) == 3
        assert_array_equal(source.scenario(1, 3).as_array(), concrete_history.as_array()[1:4])
        assert source.scenario(2, 3)[0].stocks == 0.08

    def test_horizon_longer_than_history(self, concrete_history) -> None:
        source = SequentialBootstrapper(concrete_history)
        assert source.max_iterations(6) == 0
        assert list(source.scenarios(5, 6)) == []
        with pytest.raises(ValueError):
            source.scenario(0, 6)

    def test_full_length(self, concrete_history) -> None:
        source = SequentialBootstrapper(concrete_history)
        assert source.max_iterations(5) == 1
        assert source.scenario(0, 5).stats.blocks_sampled == 1

    def test_out_of_range_iteration(self, concrete_history) -> None:
        with pytest.raises(ValueError, match="Iteration #3"):
            SequentialBootstrapper(concrete_history).scenario(3, 3)


class TestSnapshot:
    """Tests for the shared market snapshot."""

    def test_thresholds_are_sample_percentiles(self, plain_provider) -> None:
        snapshot = plain_provider.get()
        scores = sorted(block.ranking_score for block in snapshot.catalog)

        assert snapshot.thresholds.disaster in scores
        assert snapshot.thresholds.jackpot in scores
        assert snapshot.thresholds.disaster < snapshot.thresholds.jackpot
        below = sum(score <= snapshot.thresholds.disaster for score in scores)
        assert below == pytest.approx(0.1 * len(scores), abs=2)

    def test_ranking_thresholds_empty(self) -> None:
        with pytest.raises(ValueError):
            ranking_thresholds([])

    def test_without_regimes(self, plain_provider) -> None:
        snapshot = plain_provider.get()
        assert not snapshot.has_regimes
        assert snapshot.regime_groups == ()
        with pytest.raises(InvariantViolation):
            snapshot.require_regimes()

    def test_with_regimes(self, regime_provider) -> None:
        snapshot = regime_provider.get()
        assert snapshot.has_regimes
        assert len(snapshot.regime_groups) == snapshot.require_regimes().n_regimes
        assert sum(len(g) for g in snapshot.regime_groups) == len(snapshot.catalog)

    def test_no_blocks_fit(self, concrete_history) -> None:
        with pytest.raises(InvariantViolation, match="No blocks"):
            build_snapshot(concrete_history, BootstrapOptions(block_sizes=(8,), training_block_length=8))

    def test_built_once_under_concurrency(self, history, monkeypatch) -> None:
        calls = []
        real_build = snapshot_module.build_snapshot
        barrier = threading.Barrier(8)

        def counting_build(*args, **kwargs):
            calls.append(1)
            return real_build(*args, **kwargs)

        monkeypatch.setattr(snapshot_module, "build_snapshot", counting_build)
        provider = SnapshotProvider(history, BootstrapOptions())
        assert not provider.is_built

        def get(_):
            barrier.wait()
            return provider.get()

        with ThreadPoolExecutor(max_workers=8) as pool:
            snapshots = list(pool.map(get, range(8)))

        assert len(calls) == 1
        assert all(s is snapshots[0] for s in snapshots)
        assert provider.is_built

    def test_catalog_is_shared_with_sources(self, plain_provider) -> None:
        first = MovingBlockBootstrapper(plain_provider, seed=1)
        second = MovingBlockBootstrapper(plain_provider, seed=2)
        first.scenario(0, 10)
        second.scenario(0, 10)
        assert first.provider.get() is second.provider.get()


class TestRegistry:
    """Tests for building sources from configuration."""

    def test_every_kind_is_registered(self) -> None:
        assert set(SOURCE_REGISTRY) == set(BootstrapKind)

    @pytest.mark.parametrize("kind", list(BootstrapKind))
    def test_create_every_kind(self, kind, history) -> None:
        config = BootstrapConfig(kind=kind, bootstrap=BootstrapOptions(n_regimes=3))
        counters = SamplingCounters()
        source = create_source(config, history, counters)

        scenario = source.scenario(0, 20)

        assert len(scenario) == 20
        assert counters.scenarios == 1
        assert source.describe()

    @pytest.mark.parametrize("kind", ["moving_block", "regime_moving_block", "regime_parametric"])
    def test_training_length_outside_block_sizes(self, kind, history) -> None:
        options = BootstrapOptions(block_sizes=(4, 5), n_regimes=2)
        source = create_source(BootstrapConfig(kind=kind, bootstrap=options), history)

        assert len(source.scenario(0, 25)) == 25
        if source.provider.get().has_regimes:
            assert source.provider.get().require_regimes().training_block_length == 3

    def test_history_required(self) -> None:
        with pytest.raises(ConfigurationError, match="requires historical data"):
            create_source(BootstrapConfig(kind="moving_block"))

    def test_history_not_required(self) -> None:
        source = create_source(BootstrapConfig(kind="parametric"))
        assert len(source.scenario(0, 5)) == 5

    def test_regimes_required_from_provider(self, plain_provider) -> None:
        with pytest.raises(ConfigurationError, match="requires a snapshot with regimes"):
            create_source(BootstrapConfig(kind="regime_moving_block"), provider=plain_provider)

    def test_shared_provider(self, regime_provider) -> None:
        block = create_source(BootstrapConfig(kind="regime_moving_block"), provider=regime_provider)
        parametric = create_source(BootstrapConfig(kind="regime_parametric"), provider=regime_provider)
        assert block.provider is parametric.provider

    def test_seed_hint_changes_output(self, history) -> None:
        first = create_source(BootstrapConfig(seed_hint="a"), history).scenario(0, 30)
        second = create_source(BootstrapConfig(seed_hint="b"), history).scenario(0, 30)
        assert not np.array_equal(first.as_array(), second.as_array())


class TestCli:
    """Smoke tests for the command line."""

    @pytest.fixture
    def history_csv(self, history, tmp_path):
        path = tmp_path / "returns.csv"
        pd.DataFrame(
            [(o.year, o.stocks, o.bonds, o.inflation) for o in history],
            columns=["year", "stocks", "bonds", "inflation"],
        ).to_csv(path, index=False)
        return path

    def test_moving_block(self, history_csv, capsys) -> None:
        code = cli.main(["--history", str(history_csv), "--iterations", "20", "--years", "10"])

        assert code == 0
        out = capsys.readouterr().out
        assert "Moving block bootstrap" in out
        assert "20 scenarios x 10 years" in out

    def test_regime_kind_prints_regimes(self, history_csv, tmp_path, capsys) -> None:
        config = tmp_path / "bootstrap.json"
        config.write_text('{"bootstrap": {"n_regimes": 3}}')

        code = cli.main([
            "--history", str(history_csv), "--config", str(config),
            "--kind", "regime_parametric", "--iterations", "5",
        ])

        assert code == 0
        out = capsys.readouterr().out
        assert "silhouette=" in out
        assert "stationary" in out

    def test_regime_table_reports_stationary_share(self, regime_provider) -> None:
        regime_set = regime_provider.get().require_regimes()
        table = cli.regime_table(regime_set)

        assert list(table.index) == list(regime_set.labels)
        assert_allclose(table["stationary"].to_numpy(), regime_set.transitions.stationary_distribution())
        assert table["stationary"].sum() == pytest.approx(1.0)

    def test_parametric_without_history(self, capsys) -> None:
        assert cli.main(["--kind", "parametric", "--iterations", "5", "--years", "3"]) == 0

    def test_missing_history_exits(self) -> None:
        with pytest.raises(SystemExit):
            cli.main(["--kind", "sequential"])

    @pytest.mark.parametrize("args", [["--years", "0"], ["--iterations", "-1"], ["--iterations", "0"]])
    def test_non_positive_counts_exit(self, args, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--kind", "parametric"] + args)

        assert exc_info.value.code == 2
        assert "must be >= 1" in capsys.readouterr().err

    def test_bad_history_reports_error(self, tmp_path) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("year,stocks,bonds,inflation\n2000,0.1,0.05,0.02\n2002,0.1,0.05,0.02\n")
        assert cli.main(["--history", str(path), "--iterations", "5"]) == 1

    def test_horizon_longer_than_history(self, history_csv) -> None:
        assert cli.main(["--history", str(history_csv), "--kind", "sequential", "--years", "100"]) == 1
