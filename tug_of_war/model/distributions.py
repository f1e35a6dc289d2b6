"""
Primitive distributions for generative programs.

Every distribution can draw samples (scalar or a batch of independent
draws) and score values. Finite distributions expose their support so they
can be enumerated; continuous ones raise ContinuousSupportError instead.

MCMC proposals default to redrawing from the prior. UniformDrift overrides
this with a symmetric window around the current value, which gives a
Metropolis random walk over a bounded parameter.
"""

from __future__ import annotations

import numpy as np
from scipy import stats

from tug_of_war.exceptions import ContinuousSupportError


class Distribution:
    """Base class for all distributions."""

    def sample(self, rng: np.random.Generator, size: int | None = None):
        raise NotImplementedError

    def log_prob(self, value):
        raise NotImplementedError

    def support(self) -> list:
        raise ContinuousSupportError(
            f"{type(self).__name__} has no finite support; "
            "use a discretized prior or a sampling strategy"
        )

    def proposal(self, current, rng: np.random.Generator):
        """Propose a new value given the current one (prior by default)."""
        return self.sample(rng)

    def proposal_log_prob(self, proposed, current) -> float:
        """Log density of proposing `proposed` from `current`."""
        return float(self.log_prob(proposed))


class Bernoulli(Distribution):
    """Coin flip returning True with probability p."""

    def __init__(self, p: float):
        if not 0.0 <= p <= 1.0:
            raise ValueError(f"Bernoulli probability must be in [0, 1], got {p}")
        self.p = float(p)

    def sample(self, rng, size=None):
        draws = rng.random(size) < self.p
        return bool(draws) if size is None else draws

    def log_prob(self, value):
        with np.errstate(divide="ignore"):
            return np.where(np.asarray(value, dtype=bool), np.log(self.p), np.log1p(-self.p))

    def support(self) -> list:
        return [False, True]

    def __repr__(self) -> str:
        return f"Bernoulli(p={self.p})"


class Normal(Distribution):
    """Gaussian with mean mu and standard deviation sigma."""

    def __init__(self, mu: float = 0.0, sigma: float = 1.0):
        if sigma <= 0:
            raise ValueError(f"sigma must be positive, got {sigma}")
        self.mu = float(mu)
        self.sigma = float(sigma)

    def sample(self, rng, size=None):
        draws = rng.normal(self.mu, self.sigma, size)
        return float(draws) if size is None else draws

    def log_prob(self, value):
        return stats.norm.logpdf(value, loc=self.mu, scale=self.sigma)

    def __repr__(self) -> str:
        return f"Normal(mu={self.mu}, sigma={self.sigma})"


class FoldedNormal(Distribution):
    """
    Absolute value of a Gaussian, |N(mu, sigma)|.

    Used as the version-2 strength prior: values are never negative.
    """

    def __init__(self, mu: float = 0.0, sigma: float = 1.0):
        if sigma <= 0:
            raise ValueError(f"sigma must be positive, got {sigma}")
        self.mu = float(mu)
        self.sigma = float(sigma)

    def sample(self, rng, size=None):
        draws = np.abs(rng.normal(self.mu, self.sigma, size))
        return float(draws) if size is None else draws

    def log_prob(self, value):
        value = np.asarray(value, dtype=float)
        logp = np.logaddexp(
            stats.norm.logpdf(value, loc=self.mu, scale=self.sigma),
            stats.norm.logpdf(-value, loc=self.mu, scale=self.sigma),
        )
        return np.where(value >= 0, logp, -np.inf)

    def __repr__(self) -> str:
        return f"FoldedNormal(mu={self.mu}, sigma={self.sigma})"


class Uniform(Distribution):
    """Continuous uniform on [low, high]."""

    def __init__(self, low: float, high: float):
        if high <= low:
            raise ValueError(f"Uniform requires low < high, got [{low}, {high}]")
        self.low = float(low)
        self.high = float(high)

    def sample(self, rng, size=None):
        draws = rng.uniform(self.low, self.high, size)
        return float(draws) if size is None else draws

    def log_prob(self, value):
        value = np.asarray(value, dtype=float)
        inside = (value >= self.low) & (value <= self.high)
        return np.where(inside, -np.log(self.high - self.low), -np.inf)

    def __repr__(self) -> str:
        return f"Uniform({self.low}, {self.high})"


class UniformDrift(Uniform):
    """
    Uniform prior whose MCMC proposal drifts locally.

    Proposals are drawn uniformly from [current - width, current + width].
    The kernel is symmetric, so forward and reverse proposal densities
    cancel in the acceptance ratio; proposals outside [low, high] have zero
    prior probability and are rejected.
    """

    def __init__(self, low: float, high: float, width: float = 0.1):
        super().__init__(low, high)
        if width <= 0:
            raise ValueError(f"Drift width must be positive, got {width}")
        self.width = float(width)

    def proposal(self, current, rng):
        return float(rng.uniform(current - self.width, current + self.width))

    def proposal_log_prob(self, proposed, current) -> float:
        if abs(proposed - current) > self.width:
            return -np.inf
        return -np.log(2 * self.width)

    def __repr__(self) -> str:
        return f"UniformDrift({self.low}, {self.high}, width={self.width})"


class Categorical(Distribution):
    """
    Distribution over an explicit list of values.

    Weights need not be normalized. Values compare by rounded key so float
    grids (bins, discretized priors) can be scored without exact equality.
    """

    def __init__(self, values, weights=None):
        values = list(values)
        if not values:
            raise ValueError("Categorical requires at least one value")
        if weights is None:
            weights = np.ones(len(values))
        weights = np.asarray(weights, dtype=float)
        if weights.shape != (len(values),):
            raise ValueError(
                f"Expected {len(values)} weights, got shape {weights.shape}"
            )
        if np.any(weights < 0) or not np.isfinite(weights).all():
            raise ValueError("Categorical weights must be finite and non-negative")
        total = weights.sum()
        if total <= 0:
            raise ValueError("Categorical weights sum to zero")

        self.values = values
        self.probs = weights / total
        with np.errstate(divide="ignore"):
            self._log_probs = np.log(self.probs)
        self._index = {_key(v): i for i, v in enumerate(values)}

    def sample(self, rng, size=None):
        idx = rng.choice(len(self.values), size=size, p=self.probs)
        if size is None:
            return self.values[int(idx)]
        return np.asarray(self.values)[idx]

    def log_prob(self, value):
        if np.ndim(value) == 0:
            i = self._index.get(_key(value))
            return -np.inf if i is None else float(self._log_probs[i])
        return np.array([self.log_prob(v) for v in np.asarray(value).ravel()])

    def support(self) -> list:
        return list(self.values)

    def __repr__(self) -> str:
        return f"Categorical(n={len(self.values)})"


class UniformDraw(Categorical):
    """Uniform choice among a finite list of values."""

    def __init__(self, values):
        super().__init__(values)

    def __repr__(self) -> str:
        return f"UniformDraw({self.values})"


class DiscretizedNormal(Categorical):
    """Normal prior restricted to a grid, weighted by the density at each point."""

    def __init__(self, mu: float, sigma: float, grid):
        grid = np.asarray(grid, dtype=float)
        self.mu = float(mu)
        self.sigma = float(sigma)
        super().__init__(grid.tolist(), stats.norm.pdf(grid, loc=mu, scale=sigma))


class DiscretizedFoldedNormal(Categorical):
    """Folded normal prior on a non-negative grid."""

    def __init__(self, mu: float, sigma: float, grid):
        grid = np.asarray(grid, dtype=float)
        if np.any(grid < 0):
            raise ValueError("Folded normal grid must be non-negative")
        self.mu = float(mu)
        self.sigma = float(sigma)
        weights = stats.norm.pdf(grid, loc=mu, scale=sigma) + stats.norm.pdf(-grid, loc=mu, scale=sigma)
        super().__init__(grid.tolist(), weights)


def _key(value):
    """Hashable comparison key, rounding floats."""
    if isinstance(value, (float, np.floating)):
        return round(float(value), 9)
    if isinstance(value, np.generic):
        return value.item()
    return value
