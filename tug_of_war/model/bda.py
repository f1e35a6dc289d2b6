"""
Bayesian data analysis of the tug-of-war model against human ratings.

The outer model treats the cognitive model's hyperparameters as unknowns:

    laziness_prior ~ Uniform(0, 1)      (or a grid)
    lazy_pulling   ~ Uniform(0, 1)      (or a grid)
    noise          ~ Uniform(lo, hi)    (or a grid)

For each sample it runs the cognitive model once per condition present in
both the match table and the data, smooths the resulting strength posterior
onto the rating bins with kernel width `noise`, and scores every rating in
that condition. Enumerating the grid or running MCMC over the ranges gives
the joint posterior over hyperparameters together with each condition's
posterior-predictive mean strength.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import arviz as az
import numpy as np
import pandas as pd
from scipy import stats

from tug_of_war.model.conditions import MATCH_CONFIGURATIONS, Condition, lookup_match
from tug_of_war.model.core import MatchInfo, TugOfWarModel
from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.distributions import UniformDraw, UniformDrift
from tug_of_war.model.inference import Enumerate, Rejection
from tug_of_war.model.posterior import Posterior
from tug_of_war.model.program import ModelContext
from tug_of_war.model.smoothing import make_bins, smooth_to_bins
from tug_of_war.utils.constants import EPSILON
from tug_of_war.utils.logging import print_info, print_success, print_warning

PARAMETERS = ("laziness_prior", "lazy_pulling", "noise")


@dataclass
class DataAnalysisConfig:
    """Configuration for the outer data-analysis model."""

    # Grids for enumeration
    laziness_prior_grid: tuple[float, ...] = (0.1, 0.3, 0.5, 0.7, 0.9)
    lazy_pulling_grid: tuple[float, ...] = (0.1, 0.3, 0.5, 0.7, 0.9)
    noise_grid: tuple[float, ...] = (0.25, 0.5, 1.0, 1.5)

    # Ranges and drift windows for MCMC
    laziness_prior_range: tuple[float, float] = (0.0, 1.0)
    lazy_pulling_range: tuple[float, float] = (0.0, 1.0)
    noise_range: tuple[float, float] = (0.05, 3.0)
    laziness_prior_drift: float = 0.1
    lazy_pulling_drift: float = 0.1
    noise_drift: float = 0.2

    # Rating scale
    bins: tuple[float, ...] | None = None
    epsilon: float = EPSILON

    # Inner inference
    inner_samples: int = 500
    inner_seed: int | None = None

    # Reuse inner posteriors for repeated (hyperparameters, condition) pairs,
    # keeping at most inner_cache_size of the most recently used
    cache_inner: bool = True
    inner_cache_size: int = 256


@dataclass
class _ActiveCondition:
    condition: Condition
    match: MatchInfo
    ratings: np.ndarray


class DataAnalysisModel:
    """
    Outer Bayesian model over the cognitive model's hyperparameters.

    Usage:
        dataset = RatingsDataset.from_csv("ratings.csv", zscore=True)
        bda = DataAnalysisModel(dataset)

        # Exact, over the configured grid
        result = bda.run(Enumerate())

        # Random walk over the continuous ranges
        result = bda.run(MetropolisHastings(samples=2000, burn=500))

        result.parameter_summary()
        result.posterior_predictive()
    """

    def __init__(
        self,
        dataset: RatingsDataset,
        match_table: dict[Condition, MatchInfo] | None = None,
        config: DataAnalysisConfig | None = None,
        cognitive_model: TugOfWarModel | None = None,
        inner_strategy=None,
        verbose: bool = False,
    ):
        self.dataset = dataset
        self.match_table = MATCH_CONFIGURATIONS if match_table is None else match_table
        self.config = config or DataAnalysisConfig()
        self.cognitive_model = cognitive_model or TugOfWarModel()
        self.inner_strategy = inner_strategy or Rejection(
            samples=self.config.inner_samples, seed=self.config.inner_seed
        )
        self.bins = make_bins() if self.config.bins is None else np.asarray(self.config.bins, dtype=float)
        self.verbose = verbose
        self._inner_cache: OrderedDict[tuple, Posterior] = OrderedDict()
        self._active = self._active_conditions()

    def _active_conditions(self) -> list[_ActiveCondition]:
        """Conditions with both a match configuration and ratings."""
        active = []
        skipped = []
        for cond in self.dataset.conditions():
            match = lookup_match(cond, self.match_table)
            if match is None:
                skipped.append(cond)
                continue
            ratings = self.dataset.for_condition(cond)
            if len(ratings) == 0:
                continue
            active.append(_ActiveCondition(cond, match, ratings))

        if self.verbose:
            print_info(f"Scoring {len(active)} conditions, {sum(len(a.ratings) for a in active):,} ratings")
            for cond in skipped:
                print_warning(f"No match configuration for {cond}; skipped")
        return active

    @property
    def conditions(self) -> list[Condition]:
        return [a.condition for a in self._active]

    def hyperparameter_priors(self, prior: Literal["grid", "continuous"]) -> dict:
        cfg = self.config
        if prior == "grid":
            return {
                "laziness_prior": UniformDraw(cfg.laziness_prior_grid),
                "lazy_pulling": UniformDraw(cfg.lazy_pulling_grid),
                "noise": UniformDraw(cfg.noise_grid),
            }
        if prior == "continuous":
            return {
                "laziness_prior": UniformDrift(*cfg.laziness_prior_range, width=cfg.laziness_prior_drift),
                "lazy_pulling": UniformDrift(*cfg.lazy_pulling_range, width=cfg.lazy_pulling_drift),
                "noise": UniformDrift(*cfg.noise_range, width=cfg.noise_drift),
            }
        raise ValueError(f"Unknown prior type: {prior}")

    def inner_posterior(
        self,
        laziness_prior: float,
        lazy_pulling: float,
        condition: Condition,
        match: MatchInfo,
    ) -> Posterior:
        """Cognitive-model posterior for one condition, cached if enabled."""
        key = (float(laziness_prior), float(lazy_pulling), condition)
        if self.config.cache_inner and key in self._inner_cache:
            self._inner_cache.move_to_end(key)
            return self._inner_cache[key]

        posterior = self.cognitive_model.run(
            lazy_pulling=lazy_pulling,
            laziness_prior=laziness_prior,
            match=match,
            strategy=self.inner_strategy,
        )
        if self.config.cache_inner:
            self._inner_cache[key] = posterior
            while len(self._inner_cache) > self.config.inner_cache_size:
                self._inner_cache.popitem(last=False)
        return posterior

    @property
    def inner_cache_len(self) -> int:
        return len(self._inner_cache)

    def program(self, ctx: ModelContext, prior: Literal["grid", "continuous"] = "grid") -> dict:
        """Outer generative program; returns hyperparameters and predictives."""
        priors = self.hyperparameter_priors(prior)
        laziness_prior = ctx.sample("laziness_prior", priors["laziness_prior"])
        lazy_pulling = ctx.sample("lazy_pulling", priors["lazy_pulling"])
        noise = ctx.sample("noise", priors["noise"])

        predictives = {}
        for active in self._active:
            inner = self.inner_posterior(laziness_prior, lazy_pulling, active.condition, active.match)
            smoothed = smooth_to_bins(inner, noise, self.bins, self.config.epsilon)
            # One likelihood term per rating
            ctx.factor(float(np.sum(smoothed.log_prob(active.ratings))))
            predictives[active.condition] = inner.expectation()

        return {
            "laziness_prior": float(laziness_prior),
            "lazy_pulling": float(lazy_pulling),
            "noise": float(noise),
            "predictives": predictives,
        }

    def run(self, strategy=None, prior: Literal["grid", "continuous"] | None = None) -> "BDAResult":
        """
        Infer the joint posterior over hyperparameters.

        Args:
            strategy: Outer strategy (default: Enumerate)
            prior: 'grid' or 'continuous' hyperparameter priors; defaults to
                'grid' for Enumerate and 'continuous' otherwise

        Returns:
            BDAResult wrapping the joint posterior
        """
        if not self._active:
            raise ValueError("No condition has both a match configuration and ratings")

        strategy = strategy or Enumerate()
        if prior is None:
            prior = "grid" if isinstance(strategy, Enumerate) else "continuous"

        if self.verbose:
            print_info(f"Running {type(strategy).__name__} over {prior} hyperparameter prior")

        posterior = strategy.run(_OuterProgram(self, prior))

        if self.verbose:
            print_success(f"Posterior over {len(posterior):,} distinct hyperparameter settings")

        return BDAResult(posterior, self.dataset)


class _OuterProgram:
    """Picklable program binding a prior type, for multi-process MCMC."""

    def __init__(self, model: DataAnalysisModel, prior: str):
        self.model = model
        self.prior = prior

    def __call__(self, ctx: ModelContext) -> dict:
        return self.model.program(ctx, prior=self.prior)


@dataclass
class BDAResult:
    """Joint posterior over hyperparameters and per-condition predictives."""

    posterior: Posterior
    dataset: RatingsDataset
    _predictive_cache: dict = field(default_factory=dict, init=False, repr=False)

    def parameters(self) -> pd.DataFrame:
        """Distinct hyperparameter settings with posterior probability."""
        rows = [{k: v[k] for k in PARAMETERS} for v in self.posterior.values]
        df = pd.DataFrame(rows)
        df["prob"] = self.posterior.probs
        return df.groupby(list(PARAMETERS), as_index=False)["prob"].sum()

    def parameter_summary(self, hdi_prob: float = 0.95) -> pd.DataFrame:
        """
        Posterior summary of each hyperparameter.

        Returns:
            DataFrame indexed by parameter with mean, sd, map, hdi_lower,
            hdi_upper
        """
        rows = []
        for name in PARAMETERS:
            marginal = self.posterior.marginal(name)
            lower, upper = marginal.hdi(hdi_prob)
            rows.append({
                "parameter": name,
                "mean": marginal.expectation(),
                "sd": np.sqrt(marginal.variance()),
                "map": float(marginal.mode()),
                "hdi_lower": lower,
                "hdi_upper": upper,
            })
        return pd.DataFrame(rows).set_index("parameter")

    def posterior_predictive(self, hdi_prob: float = 0.95) -> pd.DataFrame:
        """
        Model predictions per condition next to the empirical ratings.

        Returns:
            DataFrame with tournament, outcome, pattern, model_mean,
            model_lower, model_upper, n, empirical_mean, empirical_lower,
            empirical_upper
        """
        if hdi_prob in self._predictive_cache:
            return self._predictive_cache[hdi_prob].copy()

        conditions = list(self.posterior.values[0]["predictives"])
        rows = []
        for cond in conditions:
            marginal = self.posterior.marginal(lambda v, c=cond: v["predictives"][c])
            lower, upper = marginal.hdi(hdi_prob)
            rows.append({
                **cond._asdict(),
                "model_mean": marginal.expectation(),
                "model_lower": lower,
                "model_upper": upper,
            })

        predicted = pd.DataFrame(rows)
        empirical = self.dataset.summary()
        merged = predicted.merge(empirical, on=list(Condition._fields), how="left")
        self._predictive_cache[hdi_prob] = merged
        return merged.copy()

    def fit_statistics(self) -> dict:
        """Correlation and RMSE between model and empirical condition means."""
        pp = self.posterior_predictive()
        if len(pp) < 2:
            raise ValueError("Need at least two conditions to compute fit statistics")
        r, p_value = stats.pearsonr(pp["model_mean"], pp["empirical_mean"])
        rmse = float(np.sqrt(np.mean((pp["model_mean"] - pp["empirical_mean"]) ** 2)))
        return {"r": float(r), "r_squared": float(r ** 2), "p_value": float(p_value), "rmse": rmse}

    def to_inference_data(self) -> az.InferenceData:
        """Hyperparameter draws as ArviZ InferenceData (MCMC posteriors only)."""
        return self.posterior.to_inference_data(keys=list(PARAMETERS))

    def to_csv(self, path: str | Path) -> Path:
        """
        Save the joint posterior in long format.

        One row per (hyperparameter setting, condition) with the setting's
        probability and the condition's predictive mean.
        """
        rows = []
        for value, prob in zip(self.posterior.values, self.posterior.probs):
            for cond, expected in value["predictives"].items():
                rows.append({
                    **{k: value[k] for k in PARAMETERS},
                    "prob": prob,
                    **cond._asdict(),
                    "predictive_mean": expected,
                })
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(rows).to_csv(path, index=False)
        return path


def simulate_ratings(
    laziness_prior: float,
    lazy_pulling: float,
    noise: float,
    n_per_condition: int = 20,
    conditions: list[Condition] | None = None,
    match_table: dict[Condition, MatchInfo] | None = None,
    cognitive_model: TugOfWarModel | None = None,
    strategy=None,
    bins: np.ndarray | None = None,
    seed: int | None = None,
) -> pd.DataFrame:
    """
    Simulate a ratings table from the model with known hyperparameters.

    Useful for parameter-recovery checks and examples: each rating is a draw
    from the smoothed posterior of its condition.

    Returns:
        DataFrame with participant, tournament, outcome, pattern, rating
    """
    rng = np.random.default_rng(seed)
    match_table = MATCH_CONFIGURATIONS if match_table is None else match_table
    conditions = list(match_table) if conditions is None else [Condition(*c) for c in conditions]
    cognitive_model = cognitive_model or TugOfWarModel()
    strategy = strategy or Rejection(samples=500, seed=seed)
    bins = make_bins() if bins is None else np.asarray(bins, dtype=float)

    rows = []
    for cond in conditions:
        match = lookup_match(cond, match_table)
        if match is None:
            continue
        inner = cognitive_model.run(lazy_pulling, laziness_prior, match, strategy)
        smoothed = smooth_to_bins(inner, noise, bins)
        for i, rating in enumerate(smoothed.sample(rng, size=n_per_condition)):
            rows.append({
                "participant": f"sim{i:03d}",
                **cond._asdict(),
                "rating": float(rating),
            })
    return pd.DataFrame(rows)
