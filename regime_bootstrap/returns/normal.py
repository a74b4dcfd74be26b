"""
Per-year transforms of the parametric generator.

One simulated year runs each asset through:

    u   ~ U(0, 1)                           clamped to [1e-10, 1 - 1e-10]
    z   = Φ⁻¹(u)                            Acklam rational approximation
    x   = L z                               cross-asset correlation
    a_t = ρ a_{t-1} + sqrt(1 - ρ²) x        AR(1) persistence
    w   = CF(a_t; S, K)                     Cornish-Fisher warp
    r   = clamp(μ + σ w)                    hard per-asset bounds

Cornish-Fisher (4th order, excess kurtosis κ = K - 3):

    CF(z) = z + (z² - 1) S/6 + (z³ - 3z) κ/24 - (2z³ - 5z) S²/36

The clamps are the behavioural contract of the generator and are not
configurable.
"""

import math

UNIFORM_EPSILON = 1e-10

# (lower, upper) bounds for one simulated year
STOCKS_BOUNDS = (-0.60, 0.60)
BONDS_BOUNDS = (-0.15, 0.25)
INFLATION_BOUNDS = (-0.10, 0.30)

# Acklam coefficients
_A = (-3.969683028665376e+01, 2.209460984245205e+02, -2.759285104469687e+02,
      1.383577518672690e+02, -3.066479806614716e+01, 2.506628277459239e+00)
_B = (-5.447609879822406e+01, 1.615858368580409e+02, -1.556989798598866e+02,
      6.680131188771972e+01, -1.328068155288572e+01)
_C = (-7.784894002430293e-03, -3.223964580411365e-01, -2.400758277161838e+00,
      -2.549732539343734e+00, 4.374664141464968e+00, 2.938163982698783e+00)
_D = (7.784695709041462e-03, 3.224671290700398e-01, 2.445134137142996e+00,
      3.754408661907416e+00)

_P_LOW = 0.02425
_P_HIGH = 1.0 - _P_LOW


def inverse_normal_cdf(p: float) -> float:
    """
    Standard normal quantile Φ⁻¹(p), accurate to about 1e-9.

    Three-region piecewise rational approximation (lower tail, central
    region, upper tail).

    Parameters
    ----------
    p : float
        Probability, strictly inside (0, 1).

    Returns
    -------
    float
        z such that Φ(z) = p.

    Raises
    ------
    ValueError
        If p is not strictly between 0 and 1.
    """
    if not (0.0 < p < 1.0):
        raise ValueError(f"Probability must be in (0, 1). Got {p}")

    a1, a2, a3, a4, a5, a6 = _A
    b1, b2, b3, b4, b5 = _B
    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D

    if p < _P_LOW:
        q = math.sqrt(-2.0 * math.log(p))
        return (((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) / \
            ((((d1 * q + d2) * q + d3) * q + d4) * q + 1.0)

    if p <= _P_HIGH:
        q = p - 0.5
        r = q * q
        return (((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q / \
            (((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1.0)

    q = math.sqrt(-2.0 * math.log(1.0 - p))
    return -(((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) / \
        ((((d1 * q + d2) * q + d3) * q + d4) * q + 1.0)


def safe_uniform(u: float) -> float:
    """Keep a uniform draw away from the exact boundaries 0 and 1."""
    return min(max(u, UNIFORM_EPSILON), 1.0 - UNIFORM_EPSILON)


def ar1_step(epsilon: float, previous: float, rho: float) -> float:
    """
    One AR(1) step that keeps a unit-variance process at unit variance.

    z_t = ρ z_{t-1} + sqrt(1 - ρ²) ε_t; with ρ ≈ 0 the innovation passes through.
    """
    if abs(rho) < 1e-9:
        return epsilon
    return rho * previous + math.sqrt(max(0.0, 1.0 - rho * rho)) * epsilon


def cornish_fisher(z: float, skewness: float, kurtosis: float) -> float:
    """
    Warp a standard normal deviate for skewness and kurtosis.

    Parameters
    ----------
    z : float
        Standard normal deviate.
    skewness : float
        Target skewness S.
    kurtosis : float
        Target (Pearson, non-excess) kurtosis K; normal is 3.

    Returns
    -------
    float
        Warped deviate.
    """
    s = skewness
    k = kurtosis - 3.0
    z2 = z * z
    z3 = z2 * z

    return z + (z2 - 1.0) * s / 6.0 + (z3 - 3.0 * z) * k / 24.0 - (2.0 * z3 - 5.0 * z) * s * s / 36.0


def clamp(value: float, bounds: tuple) -> float:
    lower, upper = bounds
    return min(upper, max(lower, value))
