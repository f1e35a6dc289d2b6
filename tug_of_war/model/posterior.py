"""
Posterior distributions returned by inference.

A Posterior is a finite distribution over the values a program returned:
either an enumerated support with exact probabilities, or the empirical
distribution of a sample set. Sample-based posteriors keep the raw draws
(and their chain labels when produced by MCMC) so HDIs and convergence
diagnostics can be computed with ArviZ.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Callable, Literal

import arviz as az
import numpy as np
import pandas as pd
from scipy import stats
from scipy.special import logsumexp

from tug_of_war.exceptions import ConditioningError


def freeze(value):
    """Convert a return value into a hashable key."""
    if isinstance(value, dict):
        return tuple(sorted((k, freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, np.ndarray):
        return tuple(freeze(v) for v in value.tolist())
    if isinstance(value, np.generic):
        return value.item()
    return value


class Posterior:
    """
    Distribution over program return values.

    Usage:
        post = strategy.run(program)
        post.expectation()            # mean of a real-valued posterior
        post.hdi(0.95)                # highest-density interval
        post.marginal("noise").mode() # MAP of one field of dict returns
    """

    def __init__(
        self,
        values: list,
        probs,
        samples: list | None = None,
        chains: np.ndarray | None = None,
    ):
        probs = np.asarray(probs, dtype=float)
        if len(values) != len(probs):
            raise ValueError("values and probs must have the same length")
        if len(values) == 0:
            raise ConditioningError("Posterior has empty support")

        self.values = list(values)
        self.probs = probs / probs.sum()
        self.samples = samples
        self.chains = None if chains is None else np.asarray(chains, dtype=int)

    @classmethod
    def from_samples(cls, samples: list, chains=None) -> "Posterior":
        """Empirical distribution of a list of returned values."""
        if len(samples) == 0:
            raise ConditioningError("No samples to build a posterior from")

        counts: "OrderedDict[Any, list]" = OrderedDict()
        for s in samples:
            key = freeze(s)
            if key in counts:
                counts[key][1] += 1
            else:
                counts[key] = [s, 1]

        values = [v for v, _ in counts.values()]
        probs = np.array([n for _, n in counts.values()], dtype=float)
        return cls(values, probs, samples=list(samples), chains=chains)

    @classmethod
    def from_weighted(cls, values: list, log_weights) -> "Posterior":
        """Normalize log-weighted values, merging duplicates."""
        log_weights = np.asarray(log_weights, dtype=float)
        if len(values) == 0 or not np.isfinite(log_weights).any():
            raise ConditioningError("All worlds have zero probability")

        merged: "OrderedDict[Any, list]" = OrderedDict()
        for v, lw in zip(values, log_weights):
            if lw == -np.inf:
                continue
            key = freeze(v)
            if key in merged:
                merged[key][1].append(lw)
            else:
                merged[key] = [v, [lw]]

        support = [v for v, _ in merged.values()]
        log_probs = np.array([logsumexp(lws) for _, lws in merged.values()])
        log_probs -= logsumexp(log_probs)
        return cls(support, np.exp(log_probs))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        kind = f"{len(self.samples)} samples" if self.samples is not None else "enumerated"
        return f"Posterior(support={len(self.values)}, {kind})"

    @property
    def is_sampled(self) -> bool:
        return self.samples is not None

    def _project(self, key: str | Callable | None) -> np.ndarray:
        return np.array([_apply(v, key) for v in self.values], dtype=float)

    def expectation(self, key: str | Callable | None = None) -> float:
        """Expected value, optionally of a field or function of the value."""
        return float(np.dot(self.probs, self._project(key)))

    def variance(self, key: str | Callable | None = None) -> float:
        x = self._project(key)
        mean = np.dot(self.probs, x)
        return float(np.dot(self.probs, (x - mean) ** 2))

    def mode(self):
        """Most probable value (MAP)."""
        return self.values[int(np.argmax(self.probs))]

    def probability(self, value) -> float:
        key = freeze(value)
        return float(sum(p for v, p in zip(self.values, self.probs) if freeze(v) == key))

    def score(self, value) -> float:
        """Log-probability of a value."""
        p = self.probability(value)
        return float(np.log(p)) if p > 0 else -np.inf

    def density(self, x, bandwidth: float, key: str | Callable | None = None):
        """Gaussian kernel density of a real-valued posterior at x."""
        if bandwidth <= 0:
            raise ValueError(f"bandwidth must be positive, got {bandwidth}")
        support = self._project(key)
        x = np.asarray(x, dtype=float)
        kernel = stats.norm.pdf(x[..., None], loc=support, scale=bandwidth)
        return kernel @ self.probs

    def hdi(self, prob: float = 0.95, key: str | Callable | None = None) -> tuple[float, float]:
        """
        Highest-density interval.

        Sample-based posteriors use ArviZ on the raw draws; enumerated ones
        take the shortest interval of the sorted support holding `prob` mass.
        """
        if not 0 < prob <= 1:
            raise ValueError(f"prob must be in (0, 1], got {prob}")

        if self.samples is not None and len(self.samples) > 2:
            draws = np.array([_apply(s, key) for s in self.samples], dtype=float)
            lower, upper = az.hdi(draws, hdi_prob=prob)
            return float(lower), float(upper)

        return _weighted_hdi(self._project(key), self.probs, prob)

    def marginal(self, key: str | Callable) -> "Posterior":
        """Distribution of one field (or function) of the returned values."""
        if self.samples is not None:
            return Posterior.from_samples([_apply(s, key) for s in self.samples], chains=self.chains)
        projected = [_apply(v, key) for v in self.values]
        with np.errstate(divide="ignore"):
            return Posterior.from_weighted(projected, np.log(self.probs))

    def sample(self, rng: np.random.Generator | None = None, size: int | None = None):
        rng = rng if rng is not None else np.random.default_rng()
        idx = rng.choice(len(self.values), size=size, p=self.probs)
        if size is None:
            return self.values[int(idx)]
        return [self.values[i] for i in np.atleast_1d(idx)]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_dataframe(self, output: Literal["histogram", "samples"] = "histogram") -> pd.DataFrame:
        """
        Tabulate the posterior.

        Args:
            output: 'histogram' for (support, prob) rows, or 'samples' for one
                row per draw (sample-based posteriors only)

        Returns:
            DataFrame with one column per field of dict-valued returns, or a
            single 'value' column.
        """
        if output == "histogram":
            df = pd.DataFrame([_as_record(v) for v in self.values])
            df["prob"] = self.probs
            return df
        if output == "samples":
            if self.samples is None:
                raise ValueError("Posterior was enumerated and has no samples")
            df = pd.DataFrame([_as_record(s) for s in self.samples])
            if self.chains is not None:
                df.insert(0, "chain", self.chains)
            return df
        raise ValueError(f"Unknown output format: {output}")

    def to_inference_data(self, keys: list[str] | None = None) -> az.InferenceData:
        """
        Convert chain-labelled samples to ArviZ InferenceData.

        Args:
            keys: Fields of dict-valued samples to include (default: every
                numeric field); real-valued samples are stored as 'value'.
        """
        if self.samples is None:
            raise ValueError("Posterior was enumerated and has no samples")

        chains = self.chains if self.chains is not None else np.zeros(len(self.samples), dtype=int)
        chain_ids = np.unique(chains)
        n_draws = min(int((chains == c).sum()) for c in chain_ids)

        first = self.samples[0]
        if isinstance(first, dict):
            keys = keys or [k for k, v in first.items() if np.isscalar(v) and not isinstance(v, str)]
        else:
            keys = [None]

        posterior = {}
        for key in keys:
            draws = np.array([_apply(s, key) for s in self.samples], dtype=float)
            posterior["value" if key is None else key] = np.stack(
                [draws[chains == c][:n_draws] for c in chain_ids]
            )
        return az.from_dict(posterior=posterior)


def _apply(value, key):
    if key is None:
        return value
    if callable(key):
        return key(value)
    return value[key]


def _as_record(value) -> dict:
    if isinstance(value, dict):
        return dict(value)
    return {"value": value}


def _weighted_hdi(x: np.ndarray, probs: np.ndarray, prob: float) -> tuple[float, float]:
    """Shortest interval of a discrete distribution holding `prob` mass."""
    order = np.argsort(x, kind="stable")
    x, probs = x[order], probs[order]
    cum = np.concatenate([[0.0], np.cumsum(probs)])

    best = (float(x[0]), float(x[-1]))
    best_width = np.inf
    j = 0
    for i in range(len(x)):
        j = max(j, i)
        while j < len(x) and cum[j + 1] - cum[i] < prob - 1e-12:
            j += 1
        if j == len(x):
            break
        width = x[j] - x[i]
        if width < best_width:
            best_width = width
            best = (float(x[i]), float(x[j]))
    return best
