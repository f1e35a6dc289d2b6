"""
Binning and smoothing of model predictions onto the rating scale.

Ratings and model strengths are rounded with the same function so both land
on the same grid. A model posterior is turned into a categorical
distribution over the bins by Gaussian kernel smoothing, with a floor on
every bin so no observed rating can ever have zero likelihood.
"""

from __future__ import annotations

import numpy as np
from scipy import stats

from tug_of_war.model.distributions import Categorical, Distribution
from tug_of_war.model.posterior import Posterior
from tug_of_war.utils.constants import BIN_HIGH, BIN_LOW, BIN_STEP, EPSILON, ROUND_DIGITS


def make_bins(
    low: float = BIN_LOW,
    high: float = BIN_HIGH,
    step: float = BIN_STEP,
    digits: int = ROUND_DIGITS,
) -> np.ndarray:
    """
    Ordered bin values from low to high inclusive.

    Examples:
        >>> make_bins()[:3]
        array([-2.2, -2.1, -2. ])
        >>> len(make_bins(0.0, 4.4))
        45
    """
    if high <= low:
        raise ValueError(f"Bin range must have low < high, got [{low}, {high}]")
    n = int(round((high - low) / step)) + 1
    return np.round(low + step * np.arange(n), digits)


def round_rating(x, digits: int = ROUND_DIGITS):
    """Round ratings or strengths to the bin precision."""
    rounded = np.round(np.asarray(x, dtype=float), digits)
    return float(rounded) if rounded.ndim == 0 else rounded


def round_to_bin(x, bins: np.ndarray | None = None, digits: int = ROUND_DIGITS):
    """
    Round values with round_rating, then snap them onto the grid.

    Values beyond the grid are clipped to its first or last bin, so every
    result is an element of `bins`. Inside the grid the result equals
    round_rating(x), half-way cases included.
    """
    bins = make_bins() if bins is None else np.asarray(bins, dtype=float)
    x = np.clip(np.asarray(round_rating(x, digits), dtype=float), bins.min(), bins.max())
    idx = np.abs(x[..., None] - bins).argmin(axis=-1)
    snapped = bins[idx]
    return float(snapped) if snapped.ndim == 0 else snapped


def smooth_to_bins(
    dist: Posterior | Distribution,
    sigma: float,
    bins: np.ndarray | None = None,
    epsilon: float = EPSILON,
) -> Categorical:
    """
    Smooth a distribution into a categorical distribution over bins.

    For each support value x of `dist`, the bins are weighted by
    epsilon + N(b; x, sigma) and normalized; the result mixes these
    per-value categoricals by the probability of x. With sigma == 0 the
    kernel is a point mass on the bin equal to x.

    Args:
        dist: Posterior or finite distribution over real values
        sigma: Kernel standard deviation (the noise parameter)
        bins: Bin grid (default: make_bins())
        epsilon: Floor added to every bin weight

    Returns:
        Categorical over bins with every probability strictly positive
    """
    if sigma < 0:
        raise ValueError(f"sigma must be non-negative, got {sigma}")
    if epsilon <= 0:
        raise ValueError(f"epsilon must be positive, got {epsilon}")

    bins = make_bins() if bins is None else np.asarray(bins, dtype=float)
    support, probs = _finite_support(dist)

    x = support[:, None]
    if sigma == 0:
        kernel = np.isclose(bins[None, :], x).astype(float)
    else:
        kernel = stats.norm.pdf(bins[None, :], loc=x, scale=sigma)

    weights = kernel + epsilon
    weights /= weights.sum(axis=1, keepdims=True)
    return Categorical(bins.tolist(), probs @ weights)


def _finite_support(dist) -> tuple[np.ndarray, np.ndarray]:
    if isinstance(dist, Posterior):
        return np.asarray(dist.values, dtype=float), dist.probs
    if isinstance(dist, Categorical):
        return np.asarray(dist.values, dtype=float), dist.probs
    support = dist.support()
    probs = np.exp(np.array([dist.log_prob(v) for v in support], dtype=float))
    return np.asarray(support, dtype=float), probs / probs.sum()
