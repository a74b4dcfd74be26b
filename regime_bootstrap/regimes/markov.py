"""
Regime transition model.

A discrete-time Markov chain over K market regimes, estimated by counting
regime-to-regime moves between chronologically adjacent historical blocks.

Mathematical formulation:
    s_t ∈ {0, …, K-1}                         # Active regime
    P(s_{t+1} = j | s_t = i) = P_{ij}         # Empirical transition probability
    π_j = share of training blocks in j       # Unconditional occurrence

Empirical rows are normalized counts. A row without any observed transition
would be a dead state, so it defaults to π.

The chain actually walked by the generators is smoothed towards π with the
regime awareness λ ∈ [0, 1]:

    P̃_{ij} = λ P_{ij} + (1 - λ) π_j

λ = 0 samples every segment's regime independently from π (memoryless),
λ = 1 follows the empirical chain.
"""

import numpy as np
from numpy.typing import NDArray

ROW_TOLERANCE = 1e-9


def _is_distribution(values: NDArray[np.float64]) -> bool:
    return bool(
        np.all(values >= 0.0)
        and np.all(values <= 1.0 + ROW_TOLERANCE)
        and np.allclose(values.sum(axis=-1), 1.0, atol=ROW_TOLERANCE)
    )


class TransitionModel:
    """
    Empirical regime transition matrix plus unconditional distribution.

    Attributes
    ----------
    n_regimes : int
        Number of regimes (K)
    transition_matrix : NDArray[np.float64]
        Row-stochastic matrix of shape (K, K); P[i, j] is the probability of
        moving from regime i to regime j.
    unconditional : NDArray[np.float64]
        Unconditional regime distribution of shape (K,).
    """

    def __init__(
        self,
        transition_matrix: NDArray[np.float64],
        unconditional: NDArray[np.float64],
        validate: bool = True
    ) -> None:
        """
        Initialize transition model.

        Parameters
        ----------
        transition_matrix : NDArray[np.float64]
            Row-stochastic matrix of shape (K, K).
        unconditional : NDArray[np.float64]
            Probability vector of shape (K,).
        validate : bool, optional
            If True, check shapes and that rows and vector sum to 1.
            Default is True.

        Raises
        ------
        ValueError
            If a validation check fails.
        """
        self.transition_matrix = np.array(transition_matrix, dtype=np.float64)
        self.unconditional = np.array(unconditional, dtype=np.float64)
        self.n_regimes: int = self.transition_matrix.shape[0]

        if validate:
            self._validate_parameters()

        self.transition_matrix.setflags(write=False)
        self.unconditional.setflags(write=False)

    def _validate_parameters(self) -> None:
        P = self.transition_matrix
        if P.ndim != 2 or P.shape[0] != P.shape[1] or P.shape[0] == 0:
            raise ValueError(f"Transition matrix must be square. Got shape {P.shape}")

        if self.unconditional.shape != (self.n_regimes,):
            raise ValueError(
                f"Unconditional distribution must have shape ({self.n_regimes},). "
                f"Got {self.unconditional.shape}"
            )

        if not _is_distribution(P):
            raise ValueError(f"Each row must be a probability distribution. Got row sums: {P.sum(axis=1)}")

        if not _is_distribution(self.unconditional):
            raise ValueError(
                f"Unconditional distribution must sum to 1. Got {self.unconditional.sum()}"
            )

    @classmethod
    def from_counts(
        cls,
        counts: NDArray[np.float64],
        unconditional: NDArray[np.float64]
    ) -> "TransitionModel":
        """
        Estimate the model from observed transition counts.

        Parameters
        ----------
        counts : NDArray[np.float64]
            counts[i, j] = number of observed moves i → j, shape (K, K).
        unconditional : NDArray[np.float64]
            Fallback distribution for rows without observations, shape (K,).

        Returns
        -------
        TransitionModel
        """
        counts = np.asarray(counts, dtype=np.float64)
        if np.any(counts < 0):
            raise ValueError("Transition counts must be non-negative")

        unconditional = np.asarray(unconditional, dtype=np.float64)
        row_totals = counts.sum(axis=1)

        P = np.empty_like(counts)
        for i in range(counts.shape[0]):
            P[i] = counts[i] / row_totals[i] if row_totals[i] > 0 else unconditional

        return cls(P, unconditional)

    def smoothed(self, awareness: float) -> NDArray[np.float64]:
        """
        Transition matrix blended towards the unconditional distribution.

        Parameters
        ----------
        awareness : float
            λ in [0, 1].

        Returns
        -------
        NDArray[np.float64]
            λ P + (1 - λ) π (broadcast over rows), shape (K, K).
        """
        if not (0.0 <= awareness <= 1.0):
            raise ValueError(f"awareness must be in [0, 1]. Got {awareness}")

        blended = awareness * self.transition_matrix + (1.0 - awareness) * self.unconditional[np.newaxis, :]
        # Renormalize against rounding drift
        return blended / blended.sum(axis=1, keepdims=True)

    def stationary_distribution(self) -> NDArray[np.float64]:
        """
        Long-run regime probabilities of the empirical chain.

        The stationary distribution satisfies π P = π, Σ π_i = 1 and is taken
        as the left eigenvector of P for the eigenvalue closest to 1.

        Returns
        -------
        NDArray[np.float64]
            Shape (K,), sums to 1.
        """
        eigenvalues, eigenvectors = np.linalg.eig(self.transition_matrix.T)

        idx = np.argmin(np.abs(eigenvalues - 1.0))
        stationary = np.abs(np.real(eigenvectors[:, idx]))

        return (stationary / stationary.sum()).astype(np.float64)

    def expected_duration(self, regime: int) -> float:
        """
        Expected number of consecutive steps spent in a regime.

            E[duration | regime i] = 1 / (1 - P_{ii})

        Raises
        ------
        ValueError
            If regime index is out of bounds or the regime is absorbing.
        """
        if not (0 <= regime < self.n_regimes):
            raise ValueError(f"regime must be in {{0, …, {self.n_regimes - 1}}}")

        self_prob = self.transition_matrix[regime, regime]
        if self_prob >= 1.0:
            raise ValueError(
                f"Regime {regime} is absorbing (P_{{{regime},{regime}}} = 1). "
                "Expected duration is infinite."
            )

        return 1.0 / (1.0 - self_prob)

    def expected_durations(self) -> NDArray[np.float64]:
        """Expected durations for all regimes; absorbing regimes report inf."""
        durations = np.full(self.n_regimes, np.inf)
        for i in range(self.n_regimes):
            if self.transition_matrix[i, i] < 1.0:
                durations[i] = self.expected_duration(i)
        return durations

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"TransitionModel(n_regimes={self.n_regimes}, "
            f"unconditional={np.round(self.unconditional, 3)})"
        )


def create_uniform_transition_model(n_regimes: int) -> TransitionModel:
    """
    Memoryless model with equal probability for every regime.

    Useful as a baseline and for tests.
    """
    if n_regimes < 1:
        raise ValueError(f"n_regimes must be >= 1. Got {n_regimes}")

    uniform = np.full(n_regimes, 1.0 / n_regimes)
    return TransitionModel(np.tile(uniform, (n_regimes, 1)), uniform)
