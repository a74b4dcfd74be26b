"""
Bootstrap configuration.

Plain dataclasses validated on construction, plus a JSON loader. Every range
is checked before any source is built, so a bad value fails at startup and
never half-way through a simulation.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from regime_bootstrap.errors import ConfigurationError
from regime_bootstrap.regimes.discovery import DEFAULT_DISCOVERY_SEED, DEFAULT_TRAINING_BLOCK_LENGTH
from regime_bootstrap.seeding import DEFAULT_SEED_HINT


class BootstrapKind(str, Enum):
    """Which scenario source to build."""

    FLAT = "flat"
    SEQUENTIAL = "sequential"
    MOVING_BLOCK = "moving_block"
    REGIME_MOVING_BLOCK = "regime_moving_block"
    PARAMETRIC = "parametric"
    REGIME_PARAMETRIC = "regime_parametric"

    @property
    def uses_history(self) -> bool:
        return self not in (BootstrapKind.FLAT, BootstrapKind.PARAMETRIC)

    @property
    def uses_regimes(self) -> bool:
        return self in (BootstrapKind.REGIME_MOVING_BLOCK, BootstrapKind.REGIME_PARAMETRIC)


def _check_range(name: str, value: float, lower: float, upper: float) -> None:
    if not (lower <= value <= upper):
        raise ConfigurationError(f"{name} must be in [{lower}, {upper}]. Got {value}")


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class AssetParams:
    """Distribution parameters of one asset for the parametric generator."""

    mean: float
    volatility: float
    skewness: float = 0.0
    kurtosis: float = 3.0       # Pearson; normal = 3
    autocorrelation: float = 0.0

    def __post_init__(self):
        _check_range("mean", self.mean, -1.0, 1.0)
        _check_range("volatility", self.volatility, 0.0, 1.0)
        _check_range("skewness", self.skewness, -10.0, 10.0)
        _check_range("kurtosis", self.kurtosis, 0.0, 10.0)
        _check_range("autocorrelation", self.autocorrelation, -1.0, 1.0)


@dataclass(frozen=True)
class ParametricOptions:
    """Per-asset parameters and pairwise correlations."""

    # Fat left tail: a 2008-style crash every couple of decades
    stocks: AssetParams = AssetParams(mean=0.10, volatility=0.18, skewness=-0.5, kurtosis=4.0, autocorrelation=0.05)
    bonds: AssetParams = AssetParams(mean=0.05, volatility=0.08, skewness=0.0, kurtosis=3.0, autocorrelation=0.0)
    # Inflation is sticky
    inflation: AssetParams = AssetParams(mean=0.03, volatility=0.02, skewness=0.5, kurtosis=3.0, autocorrelation=0.7)

    stocks_bonds_correlation: float = -0.15
    stocks_inflation_correlation: float = -0.20
    bonds_inflation_correlation: float = -0.10

    def __post_init__(self):
        _check_range("stocks_bonds_correlation", self.stocks_bonds_correlation, -1.0, 1.0)
        _check_range("stocks_inflation_correlation", self.stocks_inflation_correlation, -1.0, 1.0)
        _check_range("bonds_inflation_correlation", self.bonds_inflation_correlation, -1.0, 1.0)

    @property
    def assets(self) -> Tuple[AssetParams, AssetParams, AssetParams]:
        return self.stocks, self.bonds, self.inflation


@dataclass(frozen=True)
class BootstrapOptions:
    """Block resampling and regime options."""

    block_sizes: Tuple[int, ...] = (3, 4, 5)
    avoid_extreme_repeats: bool = True
    n_regimes: int = 5
    regime_awareness: float = 0.5
    training_block_length: int = DEFAULT_TRAINING_BLOCK_LENGTH

    def __post_init__(self):
        # Accept lists from JSON
        object.__setattr__(self, "block_sizes", tuple(self.block_sizes))

        if not self.block_sizes:
            raise ConfigurationError("block_sizes cannot be empty")
        if not all(_is_positive_int(size) for size in self.block_sizes):
            raise ConfigurationError(f"block_sizes must be positive integers. Got {self.block_sizes}")
        if self.n_regimes < 1:
            raise ConfigurationError(f"n_regimes must be >= 1. Got {self.n_regimes}")
        _check_range("regime_awareness", self.regime_awareness, 0.0, 1.0)
        if not _is_positive_int(self.training_block_length):
            raise ConfigurationError(
                f"training_block_length must be a positive integer. Got {self.training_block_length!r}"
            )


@dataclass(frozen=True)
class FlatOptions:
    """Constant annual returns."""

    stocks: float = 0.06
    bonds: float = 0.04
    inflation: float = 0.03

    def __post_init__(self):
        _check_range("stocks", self.stocks, -1.0, 1.0)
        _check_range("bonds", self.bonds, -1.0, 1.0)
        _check_range("inflation", self.inflation, -1.0, 1.0)


@dataclass(frozen=True)
class BootstrapConfig:
    """Complete configuration of one scenario source."""

    kind: BootstrapKind = BootstrapKind.MOVING_BLOCK
    seed_hint: str = DEFAULT_SEED_HINT
    regime_discovery_seed: int = DEFAULT_DISCOVERY_SEED
    bootstrap: BootstrapOptions = field(default_factory=BootstrapOptions)
    parametric: ParametricOptions = field(default_factory=ParametricOptions)
    flat: FlatOptions = field(default_factory=FlatOptions)

    def __post_init__(self):
        try:
            object.__setattr__(self, "kind", BootstrapKind(self.kind))
        except ValueError:
            valid = ", ".join(kind.value for kind in BootstrapKind)
            raise ConfigurationError(f"Unknown bootstrap kind '{self.kind}'. Expected one of: {valid}") from None

        if self.regime_discovery_seed < 0:
            raise ConfigurationError(f"regime_discovery_seed must be >= 0. Got {self.regime_discovery_seed}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BootstrapConfig":
        """
        Build a configuration from plain data (e.g. parsed JSON).

        Nested sections may be omitted; missing keys take their defaults.

        Raises
        ------
        ConfigurationError
            On unknown keys, wrong types or out-of-range values.
        """
        data = dict(data)
        _reject_unknown(cls, data, "config")

        if "bootstrap" in data:
            data["bootstrap"] = _build(BootstrapOptions, data["bootstrap"], "bootstrap")
        if "flat" in data:
            data["flat"] = _build(FlatOptions, data["flat"], "flat")
        if "parametric" in data:
            section = dict(data["parametric"])
            _reject_unknown(ParametricOptions, section, "parametric")
            for asset in ("stocks", "bonds", "inflation"):
                if asset in section:
                    section[asset] = _build(AssetParams, section[asset], f"parametric.{asset}")
            data["parametric"] = _build(ParametricOptions, section, "parametric")

        return _build(cls, data, "config")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to plain data."""
        data = asdict(self)
        data["kind"] = self.kind.value
        data["bootstrap"]["block_sizes"] = list(self.bootstrap.block_sizes)
        return data


def _reject_unknown(cls, data: Dict[str, Any], section: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown {section} keys: {unknown}")


def _build(cls, data: Any, section: str):
    if isinstance(data, cls):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Section '{section}' must be an object. Got {type(data).__name__}")

    _reject_unknown(cls, data, section)
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid '{section}' section: {e}") from e


def load_config(path: Union[str, Path]) -> BootstrapConfig:
    """
    Load configuration from a JSON file.

    Raises
    ------
    ConfigurationError
        If the file cannot be parsed or holds invalid values.
    """
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must hold a JSON object")

    return BootstrapConfig.from_dict(data)
