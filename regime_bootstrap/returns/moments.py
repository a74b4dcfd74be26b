"""
Sample moments of annual return series.

A regime profile is fitted from the annual observations of the blocks that
belong to the regime. Blocks are separate windows of history, so the lag-1
autocorrelation is pooled over pairs that are adjacent *within* a block only:

              Σ_b Σ_t (x_{b,t} - x̄)(x_{b,t+1} - x̄)
    ρ̂_1  =  ----------------------------------------
                   Σ_b Σ_t (x_{b,t} - x̄)²

Skewness and kurtosis are the (biased) sample estimators from scipy.stats;
kurtosis is Pearson's definition (normal = 3).

Degenerate inputs (fewer than two points, zero spread) map to the moments of
a point mass: volatility 0, skewness 0, kurtosis 3, autocorrelation 0, and
correlations 0. Every moment is clipped into the range accepted by the
parametric configuration.
"""

from typing import NamedTuple, Sequence
import numpy as np
from numpy.typing import NDArray
from scipy import stats

MEAN_RANGE = (-1.0, 1.0)
VOLATILITY_RANGE = (0.0, 1.0)
SKEWNESS_RANGE = (-10.0, 10.0)
KURTOSIS_RANGE = (0.0, 10.0)
AUTOCORRELATION_RANGE = (-1.0, 1.0)
CORRELATION_RANGE = (-1.0, 1.0)

NORMAL_KURTOSIS = 3.0


class AssetMoments(NamedTuple):
    """Distribution parameters of one asset."""

    mean: float
    volatility: float
    skewness: float
    kurtosis: float
    autocorrelation: float


def _clip(value: float, bounds: tuple) -> float:
    if not np.isfinite(value):
        return 0.0
    return float(min(bounds[1], max(bounds[0], value)))


def pooled_autocorrelation(segments: Sequence[NDArray[np.float64]]) -> float:
    """
    Lag-1 autocorrelation using only pairs adjacent within each segment.

    Parameters
    ----------
    segments : Sequence[NDArray[np.float64]]
        Independent 1-D series (one per block).

    Returns
    -------
    float
        Autocorrelation in [-1, 1]; 0 when undefined.
    """
    pooled = np.concatenate([np.asarray(s, dtype=np.float64) for s in segments]) if segments else np.empty(0)
    if pooled.size < 2:
        return 0.0

    centre = pooled.mean()
    denominator = float(np.sum((pooled - centre) ** 2))
    if denominator <= 0.0:
        return 0.0

    numerator = 0.0
    for segment in segments:
        deviations = np.asarray(segment, dtype=np.float64) - centre
        numerator += float(np.sum(deviations[:-1] * deviations[1:]))

    return _clip(numerator / denominator, AUTOCORRELATION_RANGE)


def fit_moments(segments: Sequence[NDArray[np.float64]]) -> AssetMoments:
    """
    Fit distribution parameters from pooled segments.

    Parameters
    ----------
    segments : Sequence[NDArray[np.float64]]
        Annual values of one asset, one array per member block.

    Returns
    -------
    AssetMoments
    """
    values = np.concatenate([np.asarray(s, dtype=np.float64) for s in segments])
    if values.size == 0:
        raise ValueError("Cannot fit moments of an empty sample")

    mean = float(values.mean())
    volatility = float(values.std(ddof=1)) if values.size > 1 else 0.0

    if volatility > 0.0:
        skewness = float(stats.skew(values))
        kurtosis = float(stats.kurtosis(values, fisher=False))
    else:
        skewness = 0.0
        kurtosis = NORMAL_KURTOSIS

    return AssetMoments(
        mean=_clip(mean, MEAN_RANGE),
        volatility=_clip(volatility, VOLATILITY_RANGE),
        skewness=_clip(skewness, SKEWNESS_RANGE),
        kurtosis=_clip(kurtosis, KURTOSIS_RANGE),
        autocorrelation=pooled_autocorrelation(segments),
    )


def pearson_correlation(x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
    """Pearson correlation of two equally long samples; 0 when undefined."""
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    if x.shape != y.shape:
        raise ValueError(f"Samples must have the same shape. Got {x.shape} and {y.shape}")
    if x.size < 2 or x.std() == 0.0 or y.std() == 0.0:
        return 0.0

    return _clip(float(np.corrcoef(x, y)[0, 1]), CORRELATION_RANGE)
