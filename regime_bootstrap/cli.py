"""
Command line preview of a scenario source.

Usage:
    # Regime-aware block bootstrap over a CSV of annual returns
    python -m regime_bootstrap --history returns.csv --kind regime_moving_block

    # Parametric source from a JSON configuration
    regime-bootstrap --config bootstrap.json --kind parametric --years 40
"""

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

import numpy as np
import pandas as pd

from regime_bootstrap.config import BootstrapConfig, BootstrapKind, load_config
from regime_bootstrap.errors import BootstrapError
from regime_bootstrap.history.returns import load_history
from regime_bootstrap.regimes.discovery import RegimeSet
from regime_bootstrap.simulation.contracts import SamplingCounters, ScenarioSource
from regime_bootstrap.simulation.registry import create_source

logger = logging.getLogger(__name__)

ASSETS = ("stocks", "bonds", "inflation")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="regime-bootstrap",
        description="Generate and summarize Monte Carlo return scenarios",
    )
    parser.add_argument("--history", help="CSV or Excel file with year, stocks, bonds, inflation columns")
    parser.add_argument("--sheet", default=None, help="Excel sheet name (default: first sheet)")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in BootstrapKind],
        help="Scenario source (overrides the configuration)",
    )
    parser.add_argument("--years", type=int, default=30, help="Horizon in years (default: 30)")
    parser.add_argument("--iterations", type=int, default=1000, help="Number of scenarios (default: 1000)")
    parser.add_argument("--seed-hint", dest="seed_hint", help="Text hint the global seed is derived from")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def regime_table(regime_set: RegimeSet) -> pd.DataFrame:
    """One row per regime: size, long-run share, moments and expected duration."""
    durations = regime_set.transitions.expected_durations()
    stationary = regime_set.transitions.stationary_distribution()
    rows = []
    for regime in regime_set.regimes:
        p = regime.profile
        rows.append({
            "regime": regime.label,
            "blocks": regime.n_training_blocks,
            "share": regime_set.transitions.unconditional[regime.regime_id],
            "stationary": stationary[regime.regime_id],
            "stocks_mean": p.stocks.mean,
            "stocks_vol": p.stocks.volatility,
            "bonds_mean": p.bonds.mean,
            "bonds_vol": p.bonds.volatility,
            "inflation_mean": p.inflation.mean,
            "stocks_bonds_corr": p.stocks_bonds,
            "duration": durations[regime.regime_id],
        })
    return pd.DataFrame(rows).set_index("regime")


def summarize(source: ScenarioSource, n_iterations: int, n_years: int) -> pd.DataFrame:
    """Mean, standard deviation and range of every generated year, per asset."""
    paths = [scenario.as_array() for scenario in source.scenarios(n_iterations, n_years)]
    if not paths:
        raise BootstrapError(f"{source.describe()} cannot produce a {n_years}-year scenario")

    years = np.concatenate(paths, axis=0)
    return pd.DataFrame(
        {
            "mean": years.mean(axis=0),
            "stdev": years.std(axis=0, ddof=1) if years.shape[0] > 1 else np.zeros(3),
            "min": years.min(axis=0),
            "max": years.max(axis=0),
        },
        index=list(ASSETS),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.years < 1:
        parser.error(f"--years must be >= 1. Got {args.years}")
    if args.iterations < 1:
        parser.error(f"--iterations must be >= 1. Got {args.iterations}")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else BootstrapConfig()
        overrides = {}
        if args.kind:
            overrides["kind"] = BootstrapKind(args.kind)
        if args.seed_hint is not None:
            overrides["seed_hint"] = args.seed_hint
        if overrides:
            config = dataclasses.replace(config, **overrides)

        if config.kind.uses_history and not args.history:
            parser.error(f"--history is required for '{config.kind.value}'")

        history = load_history(args.history, args.sheet) if args.history else None

        counters = SamplingCounters()
        source = create_source(config, history, counters)

        print(source.describe())
        summary = summarize(source, args.iterations, args.years)

        if config.kind.uses_regimes:
            regime_set = source.provider.get().require_regimes()
            q = regime_set.quality
            print()
            print(regime_table(regime_set).to_string(float_format=lambda v: f"{v:.3f}"))
            print(
                f"silhouette={q.silhouette:.3f} davies_bouldin={q.davies_bouldin:.3f} "
                f"calinski_harabasz={q.calinski_harabasz:.1f} dunn={q.dunn:.3f} inertia={q.inertia:.2f}"
            )

        print()
        print(summary.to_string(float_format=lambda v: f"{v:.2%}"))
        print()
        print(f"{counters.scenarios} scenarios x {args.years} years | {counters.totals}")

    except BootstrapError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
