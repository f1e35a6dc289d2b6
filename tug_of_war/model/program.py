"""
Evaluation context for generative programs.

A generative program is any callable taking a ModelContext as its first
argument. Random choices go through `ctx.sample(name, dist)`, constraints
through `ctx.condition(...)` and soft evidence through `ctx.factor(...)` or
`ctx.observe(...)`. The inference strategy decides how choices are made by
handing the context a chooser: plain prior sampling, replay of an
enumeration prefix, or reuse of a previous MCMC trace.

Programs run in one of two modes:
- scalar (batch_size=None): one possible world per run
- batch (batch_size=n): n independent worlds at once, each choice a numpy
  array of length n. Programs written with numpy operations (np.where
  rather than `if`) run unchanged in both modes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from tug_of_war.model.distributions import Distribution


class ZeroProbability(Exception):
    """Raised in scalar mode when the current world has zero probability."""


@dataclass
class Choice:
    """One random choice in a program trace."""

    value: Any
    log_prob: float
    dist: Distribution


def prior_chooser(rng: np.random.Generator, batch_size: int | None = None):
    """Chooser drawing every choice from its prior."""

    def choose(name: str, dist: Distribution):
        return dist.sample(rng, batch_size)

    return choose


class ModelContext:
    """
    State of a single program evaluation.

    Attributes:
        rng: Random generator for this evaluation
        batch_size: None for scalar mode, else number of parallel worlds
        trace: Random choices made so far, keyed by address
        log_prior: Sum of prior log-probabilities of the choices
        log_weight: Accumulated conditioning/factor score
    """

    def __init__(
        self,
        rng: np.random.Generator | None = None,
        batch_size: int | None = None,
        chooser: Callable[[str, Distribution], Any] | None = None,
    ):
        self.rng = rng if rng is not None else np.random.default_rng()
        self.batch_size = batch_size
        self.trace: dict[str, Choice] = {}
        self.log_prior = 0.0 if batch_size is None else np.zeros(batch_size)
        self.log_weight = 0.0 if batch_size is None else np.zeros(batch_size)
        self._choose = chooser or prior_chooser(self.rng, batch_size)
        self._mem_caches: dict[Callable, dict] = {}

    @property
    def scalar(self) -> bool:
        return self.batch_size is None

    @property
    def score(self):
        """Total log score (prior plus conditioning) of the world(s)."""
        return self.log_prior + self.log_weight

    def sample(self, name: str, dist: Distribution):
        """Make a named random choice."""
        if name in self.trace:
            raise ValueError(f"Duplicate choice address: {name!r}")

        value = self._choose(name, dist)
        log_prob = dist.log_prob(value)
        if self.scalar:
            log_prob = float(log_prob)
            if log_prob == -np.inf:
                raise ZeroProbability(name)

        self.trace[name] = Choice(value, log_prob, dist)
        self.log_prior = self.log_prior + log_prob
        return value

    def condition(self, predicate) -> None:
        """Hard constraint: worlds where predicate is false get zero weight."""
        if self.scalar:
            if not bool(predicate):
                self.log_weight = -np.inf
                raise ZeroProbability("condition")
        else:
            predicate = np.broadcast_to(np.asarray(predicate, dtype=bool), (self.batch_size,))
            self.log_weight = np.where(predicate, self.log_weight, -np.inf)

    def factor(self, score) -> None:
        """Add a log-score to the current world(s)."""
        self.log_weight = self.log_weight + score
        if self.scalar and self.log_weight == -np.inf:
            raise ZeroProbability("factor")

    def observe(self, dist: Distribution, value) -> None:
        """Condition on `value` having been drawn from `dist`."""
        self.factor(dist.log_prob(value))

    def mem(self, fn: Callable) -> Callable:
        """
        Memoize `fn` for the lifetime of this evaluation.

        Repeated calls with the same arguments return the first result, so a
        person's strength is drawn once and shared by every match they
        appear in. The cache is dropped with the context.
        """
        cache = self._mem_caches.setdefault(fn, {})

        def memoized(*args):
            if args not in cache:
                cache[args] = fn(*args)
            return cache[args]

        return memoized
