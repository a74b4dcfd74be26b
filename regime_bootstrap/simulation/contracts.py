"""
Scenario source contract.

An outer Monte Carlo engine asks a source for one scenario per iteration:

    max_iterations(n_years) -> int
    scenario(iteration, n_years) -> Scenario      # exactly n_years triples

A scenario is a read-only sequence of (stocks, bonds, inflation) annual
returns. Sources are stateless between calls: everything an iteration needs
is either shared immutable data or local to the call (its own generator and
any carried AR(1) state), so iterations may run on any thread in any order.

Sampling diagnostics are returned with each scenario (`Scenario.stats`) and
can be summed across threads by a caller-owned `SamplingCounters`.
"""

import sys
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Iterator, List, NamedTuple, Optional, Union, overload

import numpy as np
from numpy.typing import NDArray

from regime_bootstrap.errors import InvariantViolation
from regime_bootstrap.seeding import spawn_rng


class ReturnTriple(NamedTuple):
    """Returns for one simulated year."""

    stocks: float
    bonds: float
    inflation: float


class SamplingStats(NamedTuple):
    """Diagnostics of one generated scenario."""

    blocks_sampled: int = 0
    overlaps: int = 0
    rejections: int = 0
    forced_accepts: int = 0
    regime_switches: int = 0

    def __add__(self, other: "SamplingStats") -> "SamplingStats":  # type: ignore[override]
        return SamplingStats(*(a + b for a, b in zip(self, other)))


class SamplingCounters:
    """
    Thread-safe running totals of sampling diagnostics.

    Owned by the caller; pass one to a source to aggregate every scenario it
    produces.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._totals = SamplingStats()
        self._scenarios = 0

    def record(self, stats: SamplingStats) -> None:
        with self._lock:
            self._totals = self._totals + stats
            self._scenarios += 1

    @property
    def totals(self) -> SamplingStats:
        with self._lock:
            return self._totals

    @property
    def scenarios(self) -> int:
        with self._lock:
            return self._scenarios

    def __repr__(self) -> str:
        """String representation."""
        return f"SamplingCounters(scenarios={self.scenarios}, totals={self.totals})"


class Scenario(Sequence):
    """
    Immutable sequence of annual return triples.

    Attributes
    ----------
    iteration : int
        Iteration index that produced the scenario.
    stats : SamplingStats
        Sampling diagnostics of this scenario.
    """

    def __init__(
        self,
        returns: NDArray[np.float64],
        iteration: int = 0,
        stats: Optional[SamplingStats] = None
    ) -> None:
        returns = np.array(returns, dtype=np.float64)
        if returns.ndim != 2 or returns.shape[1] != 3 or returns.shape[0] == 0:
            raise ValueError(f"Scenario returns must have shape (n_years, 3). Got {returns.shape}")

        returns.setflags(write=False)
        self._returns = returns
        self.iteration = iteration
        self.stats = stats if stats is not None else SamplingStats()

    @overload
    def __getitem__(self, index: int) -> ReturnTriple: ...

    @overload
    def __getitem__(self, index: slice) -> List[ReturnTriple]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[ReturnTriple, List[ReturnTriple]]:
        if isinstance(index, slice):
            return [ReturnTriple(*map(float, row)) for row in self._returns[index]]
        return ReturnTriple(*map(float, self._returns[index]))

    def __len__(self) -> int:
        return self._returns.shape[0]

    def __iter__(self) -> Iterator[ReturnTriple]:
        for row in self._returns:
            yield ReturnTriple(*map(float, row))

    @property
    def n_years(self) -> int:
        return len(self)

    def as_array(self) -> NDArray[np.float64]:
        """Read-only (n_years, 3) array; columns are stocks, bonds, inflation."""
        return self._returns

    @property
    def stocks(self) -> NDArray[np.float64]:
        return self._returns[:, 0]

    @property
    def bonds(self) -> NDArray[np.float64]:
        return self._returns[:, 1]

    @property
    def inflation(self) -> NDArray[np.float64]:
        return self._returns[:, 2]

    def __repr__(self) -> str:
        """String representation."""
        return f"Scenario(iteration={self.iteration}, n_years={self.n_years}, stats={self.stats})"


class ScenarioSource(ABC):
    """
    Base class of every scenario source.

    Subclasses implement `max_iterations`, `_generate` and `describe`;
    argument validation and counter bookkeeping live here.
    """

    def __init__(self, counters: Optional[SamplingCounters] = None) -> None:
        self.counters = counters

    @abstractmethod
    def max_iterations(self, n_years: int) -> int:
        """Upper bound on distinct iterations for a horizon of `n_years`."""

    @abstractmethod
    def _generate(self, iteration: int, n_years: int) -> Scenario:
        pass

    @abstractmethod
    def describe(self) -> str:
        """One-line human description."""

    def scenario(self, iteration: int, n_years: int) -> Scenario:
        """
        Generate the scenario of one iteration.

        Parameters
        ----------
        iteration : int
            Iteration index, 0 <= iteration < max_iterations(n_years).
        n_years : int
            Horizon length, >= 1.

        Returns
        -------
        Scenario
            Exactly `n_years` annual return triples.

        Raises
        ------
        ValueError
            If `n_years < 1` or `iteration` is out of range.
        """
        if n_years < 1:
            raise ValueError(f"n_years must be >= 1. Got {n_years}")
        if iteration < 0:
            raise ValueError(f"iteration must be >= 0. Got {iteration}")
        if iteration >= self.max_iterations(n_years):
            raise ValueError(
                f"Iteration #{iteration} is outside the range of {type(self).__name__} "
                f"for {n_years} years (max {self.max_iterations(n_years)})"
            )

        result = self._generate(iteration, n_years)

        if len(result) != n_years:
            raise InvariantViolation(f"Expected {n_years} years, generated {len(result)}")

        if self.counters is not None:
            self.counters.record(result.stats)
        return result

    def scenarios(self, n_iterations: int, n_years: int) -> Iterator[Scenario]:
        """Scenarios for iterations 0 … n_iterations-1, capped at max_iterations."""
        for iteration in range(min(n_iterations, self.max_iterations(n_years))):
            yield self.scenario(iteration, n_years)

    def __repr__(self) -> str:
        """String representation."""
        return f"{type(self).__name__}({self.describe()})"


class RandomScenarioSource(ScenarioSource):
    """
    A source backed by randomness; effectively unbounded.

    Iteration i draws from generator(seed, i) only.
    """

    def __init__(self, seed: int, counters: Optional[SamplingCounters] = None) -> None:
        super().__init__(counters)
        if seed < 0:
            raise ValueError(f"seed must be non-negative. Got {seed}")
        self.seed = seed

    def max_iterations(self, n_years: int) -> int:
        return sys.maxsize

    def rng_for(self, iteration: int) -> np.random.Generator:
        return spawn_rng(self.seed, iteration)
