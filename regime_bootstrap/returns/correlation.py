"""
Cross-asset correlation for (stocks, bonds, inflation).

The three pairwise correlations define the target matrix

        [ 1     ρ_SB  ρ_SI ]
    Ω = [ ρ_SB  1     ρ_BI ]
        [ ρ_SI  ρ_BI  1    ]

and its Cholesky factor L (Ω = L Lᵀ) turns three independent standard normals
z into correlated ones, x = L z. For three assets L has a closed form:

    L11 = 1
    L21 = ρ_SB                      L22 = sqrt(1 - L21²)
    L31 = ρ_SI                      L32 = (ρ_BI - L31 L21) / L22
                                    L33 = sqrt(1 - L31² - L32²)

Square roots are floored at zero and a vanishing L22 is treated as 1, so an
inconsistent (not positive semi-definite) triple still yields a usable,
nearest-feasible factor instead of NaNs.
"""

from typing import Tuple
import numpy as np
from numpy.typing import NDArray

_DEGENERATE = 1e-9


class CorrelationModel:
    """
    Target correlation structure of the three simulated series.

    Attributes
    ----------
    stocks_bonds : float
        ρ_SB
    stocks_inflation : float
        ρ_SI
    bonds_inflation : float
        ρ_BI
    """

    def __init__(
        self,
        stocks_bonds: float,
        stocks_inflation: float,
        bonds_inflation: float,
        validate: bool = True
    ) -> None:
        """
        Initialize correlation model.

        Parameters
        ----------
        stocks_bonds : float
            Correlation between stocks and bonds, in [-1, 1].
        stocks_inflation : float
            Correlation between stocks and inflation, in [-1, 1].
        bonds_inflation : float
            Correlation between bonds and inflation, in [-1, 1].
        validate : bool, optional
            If True, check that every correlation is in [-1, 1].

        Raises
        ------
        ValueError
            If a correlation is outside [-1, 1].
        """
        self.stocks_bonds = float(stocks_bonds)
        self.stocks_inflation = float(stocks_inflation)
        self.bonds_inflation = float(bonds_inflation)

        if validate:
            self._validate_parameters()

        self._cholesky = self._compute_cholesky()

    def _validate_parameters(self) -> None:
        for name, value in (
            ("stocks_bonds", self.stocks_bonds),
            ("stocks_inflation", self.stocks_inflation),
            ("bonds_inflation", self.bonds_inflation),
        ):
            if not (-1.0 <= value <= 1.0):
                raise ValueError(f"Correlation {name} must be in [-1, 1]. Got {value}")

    def _compute_cholesky(self) -> Tuple[float, float, float, float, float, float]:
        """
        Closed-form lower-triangular factor.

        Returns
        -------
        Tuple[float, ...]
            (L11, L21, L22, L31, L32, L33)
        """
        l11 = 1.0

        l21 = self.stocks_bonds
        l22 = np.sqrt(max(0.0, 1.0 - l21 * l21))

        l31 = self.stocks_inflation
        l32 = (self.bonds_inflation - l31 * l21) / (l22 if l22 > _DEGENERATE else 1.0)
        l33 = np.sqrt(max(0.0, 1.0 - l31 * l31 - l32 * l32))

        return l11, l21, float(l22), l31, float(l32), float(l33)

    @property
    def matrix(self) -> NDArray[np.float64]:
        """
        Target correlation matrix Ω.

        Returns
        -------
        NDArray[np.float64]
            Shape (3, 3), symmetric with unit diagonal.
        """
        return np.array([
            [1.0, self.stocks_bonds, self.stocks_inflation],
            [self.stocks_bonds, 1.0, self.bonds_inflation],
            [self.stocks_inflation, self.bonds_inflation, 1.0],
        ])

    @property
    def cholesky(self) -> NDArray[np.float64]:
        """
        Cholesky factor L as a matrix.

        Returns
        -------
        NDArray[np.float64]
            Lower triangular, shape (3, 3).
        """
        l11, l21, l22, l31, l32, l33 = self._cholesky
        return np.array([
            [l11, 0.0, 0.0],
            [l21, l22, 0.0],
            [l31, l32, l33],
        ])

    @property
    def is_positive_definite(self) -> bool:
        """True if Ω is a valid (positive definite) correlation matrix."""
        try:
            np.linalg.cholesky(self.matrix)
        except np.linalg.LinAlgError:
            return False
        return True

    def correlate(self, z1: float, z2: float, z3: float) -> Tuple[float, float, float]:
        """
        Map independent standard normals to correlated ones: x = L z.

        Parameters
        ----------
        z1, z2, z3 : float
            Independent standard normal deviates (stocks, bonds, inflation).

        Returns
        -------
        Tuple[float, float, float]
            Correlated deviates in the same order.
        """
        l11, l21, l22, l31, l32, l33 = self._cholesky

        x1 = l11 * z1
        x2 = l21 * z1 + l22 * z2
        x3 = l31 * z1 + l32 * z2 + l33 * z3

        return x1, x2, x3

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CorrelationModel(stocks_bonds={self.stocks_bonds:.3f}, "
            f"stocks_inflation={self.stocks_inflation:.3f}, "
            f"bonds_inflation={self.bonds_inflation:.3f})"
        )


def create_uncorrelated_model() -> CorrelationModel:
    """Identity correlation: the three series are independent."""
    return CorrelationModel(0.0, 0.0, 0.0, validate=False)
