"""
Tug-of-war cognitive model of strength inference.

Each person has a latent strength drawn once per evaluation, and each person
may independently be lazy, in which case they pull with only a fraction of
their strength. A team's pulling force is the sum over its members and the
stronger team wins. Conditioning on three observed rounds gives the
posterior over a reference person's strength:

    strength[p] ~ N(0, 1)                   (version 1)
    strength[p] ~ |N(2.2, 1)|               (version 2, non-negative)
    lazy[p]     ~ Bernoulli(laziness_prior)
    pull[r, p]  = strength[p] × (lazy_pulling if lazy[p] else 1)
    team1 wins round r  ⇔  Σ pull[r, team1] > Σ pull[r, team2]

With laziness_scope="round", lazy[r, p] is redrawn for every round instead.

The program runs on the native strategies (rejection, enumeration, MCMC);
`build()` gives the equivalent pm.Model for PyMCSampler.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Literal

import numpy as np
import pymc as pm
import pytensor.tensor as pt

from tug_of_war.exceptions import ConditioningError
from tug_of_war.model.distributions import (
    Bernoulli,
    DiscretizedFoldedNormal,
    DiscretizedNormal,
    Distribution,
    FoldedNormal,
    Normal,
)
from tug_of_war.model.inference import PyMCSampler, Rejection
from tug_of_war.model.posterior import Posterior
from tug_of_war.model.program import ModelContext, ZeroProbability
from tug_of_war.model.smoothing import round_rating
from tug_of_war.utils.constants import HALF_NORMAL_MEAN, HALF_NORMAL_SD, N_ROUNDS, ROUND_DIGITS


@dataclass(frozen=True)
class Match:
    """One round: two teams and which of them won."""

    team1: tuple[str, ...]
    team2: tuple[str, ...]
    team1_won: bool = True

    @property
    def winner(self) -> tuple[str, ...]:
        return self.team1 if self.team1_won else self.team2

    @property
    def loser(self) -> tuple[str, ...]:
        return self.team2 if self.team1_won else self.team1

    def flipped(self) -> "Match":
        """Same teams, opposite result."""
        return Match(self.team1, self.team2, not self.team1_won)

    def __str__(self) -> str:
        return f"{'+'.join(self.winner)} beat {'+'.join(self.loser)}"


@dataclass(frozen=True)
class MatchInfo:
    """Three observed rounds plus the person whose strength is queried."""

    rounds: tuple[Match, ...]
    reference: str = "A"

    def __post_init__(self):
        if len(self.rounds) != N_ROUNDS:
            raise ValueError(f"Expected {N_ROUNDS} rounds, got {len(self.rounds)}")
        if self.reference not in self.people:
            raise ValueError(f"Reference person {self.reference!r} does not play in any round")
        for m in self.rounds:
            if set(m.team1) & set(m.team2):
                raise ValueError(f"A person cannot play on both teams: {m}")

    @property
    def people(self) -> tuple[str, ...]:
        """Everyone appearing in the rounds, in order of first appearance."""
        seen: dict[str, None] = {}
        for m in self.rounds:
            for person in m.team1 + m.team2:
                seen.setdefault(person, None)
        return tuple(seen)

    def flipped(self) -> "MatchInfo":
        return MatchInfo(tuple(m.flipped() for m in self.rounds), self.reference)

    def __str__(self) -> str:
        return "; ".join(str(m) for m in self.rounds)


@dataclass
class TugOfWarConfig:
    """Configuration for the tug-of-war model."""

    # 'normal': N(mean, sd); 'half_normal': |N(mean, sd)|
    strength_prior: Literal["normal", "half_normal"] = "normal"
    strength_mean: float = 0.0
    strength_sd: float = 1.0

    # Grid for a discretized strength prior (needed by Enumerate)
    strength_grid: tuple[float, ...] | None = None

    # Decimal places of the returned strength
    round_digits: int = ROUND_DIGITS

    # 'strict': team1 wins only on strictly greater pull, so ties go to
    #   team2
    # 'reject': an exact tie matches neither outcome and is discarded
    tie_policy: Literal["strict", "reject"] = "strict"

    # 'evaluation': a person is lazy or not for all three rounds
    # 'round': laziness is redrawn independently in every round
    laziness_scope: Literal["evaluation", "round"] = "evaluation"

    # Default inner inference
    samples: int = 1000
    max_attempts: int = 1_000_000

    @classmethod
    def half_normal(cls, **kwargs) -> "TugOfWarConfig":
        """Version-2 configuration with non-negative strengths."""
        return cls(
            strength_prior="half_normal",
            strength_mean=HALF_NORMAL_MEAN,
            strength_sd=HALF_NORMAL_SD,
            **kwargs,
        )


class TugOfWarModel:
    """
    Posterior over a reference person's strength given three match results.

    Usage:
        model = TugOfWarModel()
        post = model.run(lazy_pulling=0.5, laziness_prior=0.3, match=match)
        post.expectation(), post.hdi(0.95)
    """

    def __init__(self, config: TugOfWarConfig | None = None):
        self.config = config or TugOfWarConfig()
        if self.config.tie_policy not in ("strict", "reject"):
            raise ValueError(f"Unknown tie policy: {self.config.tie_policy}")
        if self.config.strength_prior not in ("normal", "half_normal"):
            raise ValueError(f"Unknown strength prior: {self.config.strength_prior}")
        if self.config.laziness_scope not in ("evaluation", "round"):
            raise ValueError(f"Unknown laziness scope: {self.config.laziness_scope}")

    def strength_distribution(self) -> Distribution:
        cfg = self.config
        if cfg.strength_prior == "half_normal":
            if cfg.strength_grid is not None:
                return DiscretizedFoldedNormal(cfg.strength_mean, cfg.strength_sd, cfg.strength_grid)
            return FoldedNormal(cfg.strength_mean, cfg.strength_sd)
        if cfg.strength_grid is not None:
            return DiscretizedNormal(cfg.strength_mean, cfg.strength_sd, cfg.strength_grid)
        return Normal(cfg.strength_mean, cfg.strength_sd)

    def program(
        self,
        ctx: ModelContext,
        lazy_pulling: float,
        laziness_prior: float,
        match: MatchInfo,
        conditioned: bool = True,
    ):
        """Generative program; returns the reference person's rounded strength."""
        prior = self.strength_distribution()
        strength = ctx.mem(lambda person: ctx.sample(f"strength_{person}", prior))
        lazy_all_rounds = ctx.mem(lambda person: ctx.sample(f"lazy_{person}", Bernoulli(laziness_prior)))

        def is_lazy(person: str, round_idx: int):
            if self.config.laziness_scope == "round":
                return ctx.sample(f"lazy_{round_idx}_{person}", Bernoulli(laziness_prior))
            return lazy_all_rounds(person)

        def pulling(person: str, round_idx: int):
            lazy = is_lazy(person, round_idx)
            s = strength(person)
            return np.where(lazy, s * lazy_pulling, s)

        def total_pulling(team: tuple[str, ...], round_idx: int):
            return sum(pulling(person, round_idx) for person in team)

        for r, m in enumerate(match.rounds):
            pull1 = total_pulling(m.team1, r)
            pull2 = total_pulling(m.team2, r)
            if not conditioned:
                continue
            if self.config.tie_policy == "reject":
                ctx.condition(pull1 != pull2)
            ctx.condition((pull1 > pull2) == m.team1_won)

        return round_rating(strength(match.reference), self.config.round_digits)

    def run(
        self,
        lazy_pulling: float,
        laziness_prior: float,
        match: MatchInfo,
        strategy=None,
    ) -> Posterior:
        """
        Infer the reference person's strength.

        Args:
            lazy_pulling: Fraction of strength a lazy person pulls with
            laziness_prior: Probability a person is lazy in a round
            match: Observed rounds
            strategy: Inference strategy (default: Rejection)

        Returns:
            Posterior over the rounded strength

        Raises:
            ConditioningError: if conditioning is infeasible for the strategy
        """
        _check_unit_interval("lazy_pulling", lazy_pulling)
        _check_unit_interval("laziness_prior", laziness_prior)
        strategy = strategy or self.default_strategy()

        if isinstance(strategy, PyMCSampler):
            model = self.build(lazy_pulling, laziness_prior, match)
            return strategy.sample_model(
                model,
                var_name=f"strength_{match.reference}",
                initvals=self.feasible_point(lazy_pulling, laziness_prior, match),
                digits=self.config.round_digits,
            )

        return strategy.run(
            partial(
                self.program,
                lazy_pulling=lazy_pulling,
                laziness_prior=laziness_prior,
                match=match,
            )
        )

    def prior(self, lazy_pulling: float, laziness_prior: float, match: MatchInfo, strategy=None) -> Posterior:
        """The same program without conditioning on the match results."""
        strategy = strategy or self.default_strategy()
        return strategy.run(
            partial(
                self.program,
                lazy_pulling=lazy_pulling,
                laziness_prior=laziness_prior,
                match=match,
                conditioned=False,
            )
        )

    def default_strategy(self) -> Rejection:
        return Rejection(samples=self.config.samples, max_attempts=self.config.max_attempts)

    # ------------------------------------------------------------------
    # PyMC
    # ------------------------------------------------------------------

    def build(self, lazy_pulling: float, laziness_prior: float, match: MatchInfo) -> pm.Model:
        """
        Build the PyMC version of the model.

        Match results enter as -inf potentials, so the model must be sampled
        from a feasible starting point (see feasible_point()).
        """
        cfg = self.config

        with pm.Model() as model:
            strengths = {}
            for person in match.people:
                raw = pm.Normal(f"strength_raw_{person}", mu=cfg.strength_mean, sigma=cfg.strength_sd)
                value = pt.abs(raw) if cfg.strength_prior == "half_normal" else raw
                strengths[person] = pm.Deterministic(f"strength_{person}", value)

            per_round = cfg.laziness_scope == "round"
            if not per_round:
                lazies = {p: pm.Bernoulli(f"lazy_{p}", p=laziness_prior) for p in match.people}

            for r, m in enumerate(match.rounds):
                totals = []
                for team in (m.team1, m.team2):
                    pulls = []
                    for person in team:
                        if per_round:
                            lazy = pm.Bernoulli(f"lazy_{r}_{person}", p=laziness_prior)
                        else:
                            lazy = lazies[person]
                        pulls.append(
                            pt.switch(lazy, lazy_pulling * strengths[person], strengths[person])
                        )
                    totals.append(pt.sum(pt.stack(pulls)))

                if m.team1_won:
                    consistent = pt.gt(totals[0], totals[1])
                elif cfg.tie_policy == "reject":
                    consistent = pt.lt(totals[0], totals[1])
                else:
                    consistent = pt.le(totals[0], totals[1])
                pm.Potential(f"round_{r}", pt.switch(consistent, 0.0, -np.inf))

        return model

    def feasible_point(
        self,
        lazy_pulling: float,
        laziness_prior: float,
        match: MatchInfo,
        max_attempts: int = 100_000,
        seed: int | None = None,
    ) -> dict:
        """Initial values for build() that satisfy every observed round."""
        rng = np.random.default_rng(seed)
        for _ in range(max_attempts):
            ctx = ModelContext(rng)
            try:
                self.program(ctx, lazy_pulling, laziness_prior, match)
            except ZeroProbability:
                continue
            initvals = {}
            for name, choice in ctx.trace.items():
                if name.startswith("strength_"):
                    person = name[len("strength_"):]
                    initvals[f"strength_raw_{person}"] = float(choice.value)
                else:
                    initvals[name] = int(choice.value)
            return initvals
        raise ConditioningError(
            f"No world consistent with the match results after {max_attempts:,} attempts",
            attempts=max_attempts,
        )


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
