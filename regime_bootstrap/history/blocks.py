"""
Historical blocks: overlapping fixed-length windows into the annual series.

For every candidate length L and every start offset i with i + L <= T, one
block is produced:

    B_{i,L} = (o_i, o_{i+1}, …, o_{i+L-1})

Each block carries a feature vector computed from its returns:

    CAGR(r)        = (Π_t (1 + r_t))^{1/L} - 1            # geometric mean
    RealCAGR(r)    = (1 + CAGR(r)) / (1 + CAGR(π)) - 1     # inflation adjusted
    MaxDD(r)       = max_t (peak_t - V_t) / peak_t,  V_t = Π_{u<=t} (1 + r_u)

plus the real CAGR of a fixed 60/40 stocks/bonds blend, which doubles as the
block's ranking score (used to spot "disaster" and "jackpot" windows).

The catalog is ordered by start year, then by length, so that any consumer
iterating over it is reproducible.
"""

from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Sequence

import numpy as np
from numpy.typing import NDArray

from regime_bootstrap.errors import ConfigurationError, HistoryError
from regime_bootstrap.history.returns import HistoricalSeries

STOCKS_WEIGHT_6040 = 0.6
BONDS_WEIGHT_6040 = 1.0 - STOCKS_WEIGHT_6040


class BlockFeatures(NamedTuple):
    """Summary statistics of one block."""

    nominal_cagr_stocks: float
    nominal_cagr_bonds: float
    real_cagr_stocks: float
    real_cagr_bonds: float
    max_drawdown_stocks: float
    max_drawdown_bonds: float
    gmean_inflation: float
    real_cagr_6040: float


@dataclass(frozen=True, eq=False)
class Block:
    """
    A contiguous window of annual observations.

    Attributes
    ----------
    start_index : int
        Offset of the first observation in the historical series.
    start_year : int
        Calendar year of the first observation.
    end_year : int
        Calendar year of the last observation (inclusive).
    returns : NDArray[np.float64]
        Read-only view of shape (length, 3); columns are stocks, bonds, inflation.
    features : BlockFeatures
        Summary statistics of the window.
    """

    start_index: int
    start_year: int
    end_year: int
    returns: NDArray[np.float64]
    features: BlockFeatures

    @property
    def length(self) -> int:
        return self.returns.shape[0]

    @property
    def ranking_score(self) -> float:
        """Real CAGR of the 60/40 reference blend."""
        return self.features.real_cagr_6040

    def __repr__(self) -> str:
        return f"Block({self.start_year}-{self.end_year}, length={self.length})"


def geometric_mean(values: NDArray[np.float64]) -> float:
    """
    Annualized compound growth rate of a sequence of periodic returns.

    Raises
    ------
    ValueError
        If `values` is empty.
    """
    if len(values) == 0:
        raise ValueError("Invalid zero length block")

    growth = 1.0
    for value in values:
        growth *= 1.0 + float(value)

    return growth ** (1.0 / len(values)) - 1.0


def real_cagr(values: NDArray[np.float64], inflation: NDArray[np.float64]) -> float:
    """Inflation-adjusted CAGR: (1 + nominal) / (1 + inflation) - 1."""
    return (1.0 + geometric_mean(values)) / (1.0 + geometric_mean(inflation)) - 1.0


def max_drawdown(values: NDArray[np.float64]) -> float:
    """
    Worst peak-to-trough decline of the cumulative value, as a positive fraction.

    The starting value (1.0) counts as the first peak.
    """
    peak = 1.0
    value = 1.0
    worst = 0.0

    for roi in values:
        value *= 1.0 + float(roi)
        if value > peak:
            peak = value

        drawdown = (peak - value) / peak
        if drawdown > worst:
            worst = drawdown

    return worst


def compute_block_features(returns: NDArray[np.float64]) -> BlockFeatures:
    """
    Compute the feature vector of one window.

    Parameters
    ----------
    returns : NDArray[np.float64]
        Shape (L, 3); columns are stocks, bonds, inflation.

    Returns
    -------
    BlockFeatures

    Raises
    ------
    ValueError
        If the window is empty.
    """
    if returns.shape[0] == 0:
        raise ValueError("Invalid block | Block was empty")

    stocks = returns[:, 0]
    bonds = returns[:, 1]
    inflation = returns[:, 2]
    blend = stocks * STOCKS_WEIGHT_6040 + bonds * BONDS_WEIGHT_6040

    return BlockFeatures(
        nominal_cagr_stocks=geometric_mean(stocks),
        nominal_cagr_bonds=geometric_mean(bonds),
        real_cagr_stocks=real_cagr(stocks, inflation),
        real_cagr_bonds=real_cagr(bonds, inflation),
        max_drawdown_stocks=max_drawdown(stocks),
        max_drawdown_bonds=max_drawdown(bonds),
        gmean_inflation=geometric_mean(inflation),
        real_cagr_6040=real_cagr(blend, inflation),
    )


def normalize_block_sizes(block_sizes: Iterable[int]) -> List[int]:
    """Distinct, ascending block lengths. Rejects empty sets and lengths <= 0."""
    sizes = sorted({int(size) for size in block_sizes})
    if not sizes or sizes[0] <= 0:
        raise ConfigurationError(f"Invalid block sizes: {list(block_sizes)}")
    return sizes


def extract_blocks(
    history: HistoricalSeries,
    block_sizes: Iterable[int]
) -> List[Block]:
    """
    Slice the series into overlapping windows of every candidate length.

    Parameters
    ----------
    history : HistoricalSeries
        Validated annual series.
    block_sizes : Iterable[int]
        Candidate lengths, e.g. (3, 4, 5).

    Returns
    -------
    List[Block]
        Catalog ordered by start year, then length.
    """
    sizes = normalize_block_sizes(block_sizes)

    if len(history) == 0:
        raise HistoryError("Invalid historical data | Series is empty")

    returns = history.as_array()
    years = history.years

    blocks = []
    for length in sizes:
        for start in range(len(history) - length + 1):
            window = returns[start:start + length]
            blocks.append(
                Block(
                    start_index=start,
                    start_year=years[start],
                    end_year=years[start + length - 1],
                    returns=window,
                    features=compute_block_features(window),
                )
            )

    blocks.sort(key=lambda b: (b.start_year, b.length))
    return blocks


def overlaps(previous: Block, following: Block) -> bool:
    """True if the two blocks share at least one calendar year."""
    return following.start_year <= previous.end_year and following.end_year >= previous.start_year


def is_chronological(blocks: Sequence[Block]) -> bool:
    """True if blocks are ordered by start year, then by length."""
    for prev, curr in zip(blocks, blocks[1:]):
        if curr.start_year < prev.start_year:
            return False
        if curr.start_year == prev.start_year and curr.length < prev.length:
            return False
    return True
