"""
Inference strategies for generative programs.

Supports:
- Exhaustive enumeration (exact, finite choices only)
- Vectorized rejection sampling (hard conditions, fast)
- Single-site Metropolis-Hastings over program traces, with independent
  chains optionally run in worker processes
- PyMC sampling of models that can be written as a pm.Model

Every strategy exposes `run(program) -> Posterior`, so callers select the
algorithm by passing a strategy object rather than a string option.
"""

from __future__ import annotations

import copy
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Callable, Literal

import arviz as az
import numpy as np
import pymc as pm

from tug_of_war.exceptions import ConditioningError
from tug_of_war.model.distributions import Distribution
from tug_of_war.model.posterior import Posterior
from tug_of_war.model.program import Choice, ModelContext, ZeroProbability
from tug_of_war.utils.logging import print_info, print_success

Program = Callable[[ModelContext], object]

MIN_BATCH_SIZE = 1000


@dataclass
class InferenceConfig:
    """Configuration for model inference."""

    method: Literal["enumerate", "rejection", "mcmc", "pymc"] = "rejection"

    # Number of accepted samples (rejection) or kept draws per chain (MCMC)
    samples: int = 1000

    # MCMC settings
    burn: int = 0
    lag: int = 0
    chains: int = 1
    cores: int = 1

    # Rejection settings
    max_attempts: int = 1_000_000
    batch_size: int | None = None

    # Enumeration settings
    max_executions: int = 1_000_000

    random_seed: int | None = None


def make_strategy(config: InferenceConfig):
    """Build the strategy object named by `config.method`."""
    method = config.method.lower()
    if method == "enumerate":
        return Enumerate(max_executions=config.max_executions)
    if method == "rejection":
        return Rejection(
            samples=config.samples,
            max_attempts=config.max_attempts,
            batch_size=config.batch_size,
            seed=config.random_seed,
        )
    if method == "mcmc":
        return MetropolisHastings(
            samples=config.samples,
            burn=config.burn,
            lag=config.lag,
            chains=config.chains,
            cores=config.cores,
            seed=config.random_seed,
        )
    if method == "pymc":
        return PyMCSampler(config)
    raise ValueError(f"Unknown inference method: {config.method}")


# ============================================================================
# Enumeration
# ============================================================================


class _Branch(Exception):
    def __init__(self, support: list):
        self.support = support


class Enumerate:
    """
    Exact inference by exploring every combination of finite choices.

    The program is re-run once per node of the choice tree: each run replays
    a prefix of choices and stops at the first unassigned one, pushing one
    extension per support value. Zero-probability branches are pruned.
    """

    def __init__(self, max_executions: int = 1_000_000, seed: int | None = None):
        self.max_executions = max_executions
        self._rng = np.random.default_rng(seed)

    def run(self, program: Program) -> Posterior:
        stack: list[list] = [[]]
        values, log_weights = [], []
        executions = 0

        while stack:
            prefix = stack.pop()
            executions += 1
            if executions > self.max_executions:
                raise ValueError(
                    f"Enumeration exceeded {self.max_executions:,} executions; "
                    "use a coarser grid or a sampling strategy"
                )

            ctx = ModelContext(self._rng, chooser=_replay_chooser(prefix))
            try:
                result = program(ctx)
            except _Branch as branch:
                for value in reversed(branch.support):
                    stack.append(prefix + [value])
                continue
            except ZeroProbability:
                continue

            values.append(result)
            log_weights.append(ctx.score)

        if not values:
            raise ConditioningError("Enumeration found no world with positive probability")
        return Posterior.from_weighted(values, log_weights)


def _replay_chooser(prefix: list):
    position = [0]

    def choose(name: str, dist: Distribution):
        i = position[0]
        if i < len(prefix):
            position[0] += 1
            return prefix[i]
        support = [v for v in dist.support() if np.isfinite(dist.log_prob(v))]
        raise _Branch(support)

    return choose


# ============================================================================
# Rejection sampling
# ============================================================================


class Rejection:
    """
    Rejection sampling with a fixed attempt budget.

    Worlds are drawn in batches (vectorized programs) and accepted with
    probability exp(log_weight - max_score), so hard conditions accept
    exactly the consistent worlds. If fewer than `samples` worlds are
    accepted within `max_attempts` draws, ConditioningError is raised
    instead of returning a short or biased sample.

    Args:
        samples: Number of accepted samples to return
        max_attempts: Total worlds drawn before giving up
        batch_size: Worlds per vectorized run (default: `samples`, at least
            MIN_BATCH_SIZE)
        max_score: Upper bound of the program's log-weight
        vectorized: Run the program in batch mode; set False for programs
            using Python control flow on random values
        seed: Random seed
    """

    def __init__(
        self,
        samples: int = 1000,
        max_attempts: int = 1_000_000,
        batch_size: int | None = None,
        max_score: float = 0.0,
        vectorized: bool = True,
        seed: int | None = None,
    ):
        if samples < 1:
            raise ValueError(f"samples must be positive, got {samples}")
        self.samples = samples
        self.max_attempts = max_attempts
        self.batch_size = batch_size or max(samples, MIN_BATCH_SIZE)
        self.max_score = max_score
        self.vectorized = vectorized
        self._rng = np.random.default_rng(seed)

    def run(self, program: Program) -> Posterior:
        accepted: list = []
        attempts = 0

        while len(accepted) < self.samples and attempts < self.max_attempts:
            n = min(self.batch_size, self.max_attempts - attempts)
            if self.vectorized:
                accepted.extend(self._run_batch(program, n))
            else:
                accepted.extend(self._run_scalar(program, n))
            attempts += n

        if len(accepted) < self.samples:
            raise ConditioningError(
                f"Rejection sampling accepted {len(accepted):,} of {self.samples:,} "
                f"requested samples after {attempts:,} attempts; the conditioning "
                "event is too rare for rejection, use enumeration or MCMC",
                accepted=len(accepted),
                attempts=attempts,
            )
        return Posterior.from_samples(accepted[: self.samples])

    def _run_batch(self, program: Program, n: int) -> list:
        ctx = ModelContext(self._rng, batch_size=n)
        result = np.broadcast_to(np.asarray(program(ctx)), (n,))
        log_weight = np.broadcast_to(ctx.log_weight, (n,))
        with np.errstate(invalid="ignore"):
            keep = np.log(self._rng.random(n)) < log_weight - self.max_score
        return result[keep].tolist()

    def _run_scalar(self, program: Program, n: int) -> list:
        kept = []
        for _ in range(n):
            ctx = ModelContext(self._rng)
            try:
                result = program(ctx)
            except ZeroProbability:
                continue
            if np.log(self._rng.random()) < ctx.log_weight - self.max_score:
                kept.append(result)
        return kept


# ============================================================================
# Metropolis-Hastings over program traces
# ============================================================================


@dataclass
class _Trace:
    choices: dict[str, Choice]
    score: float
    result: object


class MetropolisHastings:
    """
    Single-site Metropolis-Hastings over program traces.

    Each step picks one random choice uniformly, proposes a new value from
    its distribution's proposal kernel (the prior, or a local drift for
    UniformDrift), re-runs the program reusing every other choice, and
    accepts with the trace-MH ratio. Each chain runs on its own copy of the
    program, so state the program keeps (such as a cache) is never shared
    between chains and seeded results do not depend on `cores`. Draws are
    concatenated with chain labels kept for diagnostics.

    Usage:
        mh = MetropolisHastings(samples=2000, burn=500, chains=2, cores=2)
        posterior = mh.run(program)
    """

    def __init__(
        self,
        samples: int = 1000,
        burn: int = 0,
        lag: int = 0,
        chains: int = 1,
        cores: int = 1,
        max_init_attempts: int = 10_000,
        seed: int | None = None,
        verbose: bool = False,
    ):
        if samples < 1:
            raise ValueError(f"samples must be positive, got {samples}")
        if chains < 1:
            raise ValueError(f"chains must be positive, got {chains}")
        self.samples = samples
        self.burn = burn
        self.lag = lag
        self.chains = chains
        self.cores = cores
        self.max_init_attempts = max_init_attempts
        self.seed = seed
        self.verbose = verbose

    def run(self, program: Program) -> Posterior:
        seeds = np.random.SeedSequence(self.seed).spawn(self.chains)

        if self.verbose:
            print_info(
                f"Starting MCMC: {self.samples} draws × {self.chains} chains "
                f"(+ {self.burn} burn-in, lag {self.lag})"
            )

        if self.cores > 1 and self.chains > 1:
            with ProcessPoolExecutor(max_workers=min(self.cores, self.chains)) as pool:
                runs = list(pool.map(self._run_chain, [program] * self.chains, seeds, range(self.chains)))
        else:
            runs = [self._run_chain(program, s, c) for c, s in enumerate(seeds)]

        samples = [v for draws, _ in runs for v in draws]
        chains = np.repeat(np.arange(self.chains), self.samples)

        if self.verbose:
            rates = ", ".join(f"{rate:.2f}" for _, rate in runs)
            print_success(f"MCMC complete (acceptance per chain: {rates})")

        return Posterior.from_samples(samples, chains=chains)

    def _run_chain(self, program: Program, seed: np.random.SeedSequence, chain: int):
        # Same starting state in-process as a worker gets by pickling
        program = copy.deepcopy(program)
        rng = np.random.default_rng(seed)
        trace = self._initial_trace(program, rng)

        draws = []
        accepted = 0
        n_steps = self.burn + self.samples * (self.lag + 1)
        for i in range(n_steps):
            trace, moved = self._step(program, trace, rng)
            accepted += moved
            if i >= self.burn and (i - self.burn) % (self.lag + 1) == 0:
                draws.append(trace.result)

        return draws, accepted / max(n_steps, 1)

    def _initial_trace(self, program: Program, rng: np.random.Generator) -> _Trace:
        for _ in range(self.max_init_attempts):
            ctx = ModelContext(rng)
            try:
                result = program(ctx)
            except ZeroProbability:
                continue
            if np.isfinite(ctx.score):
                return _Trace(ctx.trace, float(ctx.score), result)
        raise ConditioningError(
            f"No initial trace with positive probability after {self.max_init_attempts:,} attempts",
            attempts=self.max_init_attempts,
        )

    def _step(self, program: Program, trace: _Trace, rng: np.random.Generator) -> tuple[_Trace, bool]:
        names = list(trace.choices)
        if not names:
            return trace, False

        name = names[rng.integers(len(names))]
        old = trace.choices[name]
        proposed = old.dist.proposal(old.value, rng)
        forward = old.dist.proposal_log_prob(proposed, old.value)
        if forward == -np.inf or not np.isfinite(old.dist.log_prob(proposed)):
            return trace, False

        chooser = _TraceChooser(trace.choices, name, proposed, rng)
        ctx = ModelContext(rng, chooser=chooser)
        try:
            result = program(ctx)
        except ZeroProbability:
            return trace, False

        new_score = float(ctx.score)
        new_site = ctx.trace.get(name)
        reverse = new_site.dist.proposal_log_prob(old.value, proposed) if new_site is not None else 0.0
        stale = sum(c.log_prob for n, c in trace.choices.items() if n not in ctx.trace)

        log_accept = (
            new_score
            - trace.score
            + np.log(len(names))
            - np.log(len(ctx.trace))
            + reverse
            - forward
            + stale
            - chooser.fresh_log_prob
        )
        if np.log(rng.random()) < log_accept:
            return _Trace(ctx.trace, new_score, result), True
        return trace, False


class _TraceChooser:
    """Reuse an old trace except at the proposal site."""

    def __init__(self, old: dict[str, Choice], target: str, proposed, rng: np.random.Generator):
        self.old = old
        self.target = target
        self.proposed = proposed
        self.rng = rng
        self.fresh_log_prob = 0.0

    def __call__(self, name: str, dist: Distribution):
        if name == self.target:
            return self.proposed
        if name in self.old:
            value = self.old[name].value
            if np.isfinite(dist.log_prob(value)):
                return value
        value = dist.sample(self.rng)
        self.fresh_log_prob += float(dist.log_prob(value))
        return value


# ============================================================================
# PyMC backend
# ============================================================================


class PyMCSampler:
    """
    Sample a model expressed as a pm.Model.

    Continuous variables are updated with Metropolis and binary ones with
    BinaryGibbsMetropolis, so hard constraints written as -inf potentials
    are respected provided sampling starts from a feasible point.
    """

    def __init__(self, config: InferenceConfig | None = None, progressbar: bool = False):
        self.config = config or InferenceConfig(method="pymc")
        self.progressbar = progressbar

    def run(self, program: Program) -> Posterior:
        raise TypeError(
            "PyMCSampler samples pm.Model objects; use a model's build() "
            "method or a native strategy for generative programs"
        )

    def sample_model(
        self,
        model: pm.Model,
        var_name: str,
        initvals: dict | None = None,
        digits: int | None = None,
    ) -> Posterior:
        """
        Draw posterior samples of one variable.

        Args:
            model: PyMC model to sample
            var_name: Variable whose posterior is returned
            initvals: Feasible starting values for the free variables
            digits: Round draws to this many decimals

        Returns:
            Sample-based Posterior with chain labels
        """
        cfg = self.config
        with model:
            binary = [v for v in model.free_RVs if v.dtype.startswith("int")]
            continuous = [v for v in model.free_RVs if v not in binary]
            step = []
            if continuous:
                step.append(pm.Metropolis(vars=continuous))
            if binary:
                step.append(pm.BinaryGibbsMetropolis(vars=binary))

            idata = pm.sample(
                draws=cfg.samples,
                tune=cfg.burn,
                chains=cfg.chains,
                cores=cfg.cores,
                step=step,
                initvals=initvals,
                random_seed=cfg.random_seed,
                progressbar=self.progressbar,
                compute_convergence_checks=False,
            )

        draws = idata.posterior[var_name].values
        if digits is not None:
            draws = np.round(draws, digits)
        n_chains, n_draws = draws.shape
        return Posterior.from_samples(
            [float(v) for v in draws.ravel()],
            chains=np.repeat(np.arange(n_chains), n_draws),
        )


# ============================================================================
# Diagnostics
# ============================================================================


def diagnostics(posterior: Posterior, keys: list[str] | None = None) -> dict:
    """
    Convergence diagnostics for a chain-labelled posterior.

    Returns:
        Dictionary with R-hat and effective sample size summaries
    """
    if posterior.samples is None:
        raise ValueError("Diagnostics need a sample-based posterior")

    idata = posterior.to_inference_data(keys=keys)
    summary = az.summary(idata, kind="diagnostics")

    n_chains = idata.posterior.sizes["chain"]
    result = {
        "r_hat_max": float(summary["r_hat"].max()) if n_chains > 1 else float("nan"),
        "ess_bulk_min": float(summary["ess_bulk"].min()),
        "ess_tail_min": float(summary["ess_tail"].min()),
        "n_chains": int(n_chains),
        "n_draws": int(idata.posterior.sizes["draw"]),
    }

    if n_chains > 1 and result["r_hat_max"] > 1.01:
        print(f"Warning: High R-hat detected ({result['r_hat_max']:.3f})")
    if result["ess_bulk_min"] < 400:
        print(f"Warning: Low ESS detected ({result['ess_bulk_min']:.0f})")

    return result
