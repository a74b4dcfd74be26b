"""
Scenario generation for an outer Monte Carlo engine.

This module provides the scenario sources and their shared state:
- ScenarioSource contract, Scenario and per-run SamplingStats
- Moving block bootstrap (plain and regime-aware)
- Parametric generator (plain and regime-aware)
- Flat and sequential (deterministic) sources
- MarketSnapshot built once and shared across threads
- Registry mapping a BootstrapKind to its source

**Usage:**
```python
from regime_bootstrap.config import BootstrapConfig
from regime_bootstrap.history import load_history
from regime_bootstrap.simulation import create_source

history = load_history("returns.csv")
source = create_source(BootstrapConfig(kind="regime_moving_block"), history)

for scenario in source.scenarios(n_iterations=1000, n_years=30):
    stocks, bonds, inflation = scenario[0]
```
"""

from regime_bootstrap.simulation.contracts import (
    RandomScenarioSource,
    ReturnTriple,
    SamplingCounters,
    SamplingStats,
    Scenario,
    ScenarioSource,
)
from regime_bootstrap.simulation.snapshot import (
    MarketSnapshot,
    RankingThresholds,
    SnapshotProvider,
    build_snapshot,
    ranking_thresholds,
)
from regime_bootstrap.simulation.block_bootstrap import (
    MovingBlockBootstrapper,
    RegimeAwareMovingBlockBootstrapper,
    draw_block,
)
from regime_bootstrap.simulation.parametric import (
    ParametricBootstrapper,
    RegimeAwareParametricBootstrapper,
    sample_year,
)
from regime_bootstrap.simulation.deterministic import FlatBootstrapper, SequentialBootstrapper
from regime_bootstrap.simulation.registry import SOURCE_REGISTRY, create_source

__all__ = [
    # Contract
    "RandomScenarioSource",
    "ReturnTriple",
    "SamplingCounters",
    "SamplingStats",
    "Scenario",
    "ScenarioSource",
    # Shared state
    "MarketSnapshot",
    "RankingThresholds",
    "SnapshotProvider",
    "build_snapshot",
    "ranking_thresholds",
    # Sources
    "MovingBlockBootstrapper",
    "RegimeAwareMovingBlockBootstrapper",
    "draw_block",
    "ParametricBootstrapper",
    "RegimeAwareParametricBootstrapper",
    "sample_year",
    "FlatBootstrapper",
    "SequentialBootstrapper",
    # Registry
    "SOURCE_REGISTRY",
    "create_source",
]
