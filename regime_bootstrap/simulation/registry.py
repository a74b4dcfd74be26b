"""
Source registry.

Maps each `BootstrapKind` to the factory that builds it. Resolved once, when
the caller creates its source.
"""

from typing import Callable, Dict, Optional

from regime_bootstrap.config import BootstrapConfig, BootstrapKind
from regime_bootstrap.errors import ConfigurationError
from regime_bootstrap.history.returns import HistoricalSeries
from regime_bootstrap.seeding import seed_from_hint
from regime_bootstrap.simulation.block_bootstrap import (
    MovingBlockBootstrapper,
    RegimeAwareMovingBlockBootstrapper,
)
from regime_bootstrap.simulation.contracts import SamplingCounters, ScenarioSource
from regime_bootstrap.simulation.deterministic import FlatBootstrapper, SequentialBootstrapper
from regime_bootstrap.simulation.parametric import ParametricBootstrapper, RegimeAwareParametricBootstrapper
from regime_bootstrap.simulation.snapshot import SnapshotProvider

SourceFactory = Callable[
    [BootstrapConfig, Optional[SnapshotProvider], Optional[SamplingCounters]],
    ScenarioSource,
]


def _flat(config, provider, counters):
    return FlatBootstrapper(config.flat, counters)


def _sequential(config, provider, counters):
    return SequentialBootstrapper(provider.history, counters)


def _moving_block(config, provider, counters):
    return MovingBlockBootstrapper(
        provider,
        seed_from_hint(config.seed_hint),
        avoid_extreme_repeats=config.bootstrap.avoid_extreme_repeats,
        counters=counters,
    )


def _regime_moving_block(config, provider, counters):
    return RegimeAwareMovingBlockBootstrapper(
        provider,
        seed_from_hint(config.seed_hint),
        regime_awareness=config.bootstrap.regime_awareness,
        counters=counters,
    )


def _parametric(config, provider, counters):
    return ParametricBootstrapper(config.parametric, seed_from_hint(config.seed_hint), counters)


def _regime_parametric(config, provider, counters):
    return RegimeAwareParametricBootstrapper(
        provider,
        seed_from_hint(config.seed_hint),
        block_sizes=config.bootstrap.block_sizes,
        regime_awareness=config.bootstrap.regime_awareness,
        counters=counters,
    )


SOURCE_REGISTRY: Dict[BootstrapKind, SourceFactory] = {
    BootstrapKind.FLAT: _flat,
    BootstrapKind.SEQUENTIAL: _sequential,
    BootstrapKind.MOVING_BLOCK: _moving_block,
    BootstrapKind.REGIME_MOVING_BLOCK: _regime_moving_block,
    BootstrapKind.PARAMETRIC: _parametric,
    BootstrapKind.REGIME_PARAMETRIC: _regime_parametric,
}


def create_source(
    config: BootstrapConfig,
    history: Optional[HistoricalSeries] = None,
    counters: Optional[SamplingCounters] = None,
    provider: Optional[SnapshotProvider] = None
) -> ScenarioSource:
    """
    Build the scenario source selected by `config.kind`.

    Parameters
    ----------
    config : BootstrapConfig
        Validated configuration.
    history : HistoricalSeries, optional
        Required by every history-based kind unless `provider` is given.
    counters : SamplingCounters, optional
        Caller-owned aggregate diagnostics.
    provider : SnapshotProvider, optional
        Shared snapshot provider. Built from `history` when omitted.

    Returns
    -------
    ScenarioSource

    Raises
    ------
    ConfigurationError
        If the kind needs history and none was given, or the provider does
        not carry regimes for a regime-aware kind.
    """
    kind = config.kind
    factory = SOURCE_REGISTRY.get(kind)
    if factory is None:
        raise ConfigurationError(f"No scenario source registered for '{kind}'")

    if kind.uses_history and provider is None:
        if history is None:
            raise ConfigurationError(f"Bootstrap kind '{kind.value}' requires historical data")
        provider = SnapshotProvider(
            history,
            config.bootstrap,
            with_regimes=kind.uses_regimes,
            regime_discovery_seed=config.regime_discovery_seed,
        )

    if kind.uses_regimes and not provider.with_regimes:
        raise ConfigurationError(f"Bootstrap kind '{kind.value}' requires a snapshot with regimes")

    return factory(config, provider, counters)
