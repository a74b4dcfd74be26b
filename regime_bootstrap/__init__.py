"""
Regime-aware scenario bootstrapping for Monte Carlo retirement simulations.

Annual (stocks, bonds, inflation) history is cut into overlapping blocks,
clustered into market regimes, and replayed or modelled to produce
reproducible synthetic return paths:

**history**    annual series, loader, block catalog and block features
**regimes**    k-means, clustering quality, transition model, discovery
**returns**    moments, correlation (Cholesky), per-year transforms
**simulation** scenario sources, shared snapshot, registry
"""

from regime_bootstrap.config import (
    AssetParams,
    BootstrapConfig,
    BootstrapKind,
    BootstrapOptions,
    FlatOptions,
    ParametricOptions,
    load_config,
)
from regime_bootstrap.errors import (
    BootstrapError,
    ConfigurationError,
    HistoryError,
    InvariantViolation,
    RegimeDiscoveryError,
)
from regime_bootstrap.history import HistoricalSeries, Observation, load_history
from regime_bootstrap.seeding import seed_from_hint
from regime_bootstrap.simulation import Scenario, ScenarioSource, SamplingCounters, create_source

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "AssetParams",
    "BootstrapConfig",
    "BootstrapKind",
    "BootstrapOptions",
    "FlatOptions",
    "ParametricOptions",
    "load_config",
    # Errors
    "BootstrapError",
    "ConfigurationError",
    "HistoryError",
    "InvariantViolation",
    "RegimeDiscoveryError",
    # Data
    "HistoricalSeries",
    "Observation",
    "load_history",
    # Scenarios
    "Scenario",
    "ScenarioSource",
    "SamplingCounters",
    "create_source",
    "seed_from_hint",
]
