"""Tests for inference strategies."""

import pytest
import numpy as np

from tug_of_war.exceptions import ConditioningError, ContinuousSupportError
from tug_of_war.model.distributions import Bernoulli, Normal, UniformDraw, UniformDrift
from tug_of_war.model.inference import (
    Enumerate,
    InferenceConfig,
    MetropolisHastings,
    PyMCSampler,
    Rejection,
    diagnostics,
    make_strategy,
)


def two_coins(ctx):
    """P(first heads | at least one heads) = 2/3."""
    a = ctx.sample("a", Bernoulli(0.5))
    b = ctx.sample("b", Bernoulli(0.5))
    ctx.condition(a | b)
    return a


def impossible(ctx):
    a = ctx.sample("a", Bernoulli(0.5))
    ctx.condition(a != a)
    return a


def linear_density(ctx):
    """Posterior density 2x on [0, 1], mean 2/3."""
    x = ctx.sample("x", UniformDrift(0, 1, width=0.2))
    ctx.factor(np.log(x))
    return x


def dice_sum(ctx):
    a = ctx.sample("a", UniformDraw([1, 2, 3]))
    b = ctx.sample("b", UniformDraw([1, 2, 3]))
    ctx.condition(a + b >= 5)
    return {"a": a, "total": a + b}


class CountingProgram:
    """dice_sum that counts how often it has been run."""

    def __init__(self):
        self.calls = 0

    def __call__(self, ctx):
        self.calls += 1
        return dice_sum(ctx)


class TestEnumerate:
    """Test exact enumeration."""

    def test_two_coins_exact(self):
        posterior = Enumerate().run(two_coins)
        assert np.isclose(posterior.probability(True), 2 / 3)

    def test_dict_returns(self):
        posterior = Enumerate().run(dice_sum)
        # (2,3), (3,2), (3,3)
        assert len(posterior) == 3
        assert np.isclose(posterior.expectation("total"), (5 + 5 + 6) / 3)
        assert np.isclose(posterior.marginal("a").probability(3), 2 / 3)

    def test_no_consistent_world(self):
        with pytest.raises(ConditioningError):
            Enumerate().run(impossible)

    def test_continuous_choice_rejected(self):
        with pytest.raises(ContinuousSupportError):
            Enumerate().run(lambda ctx: ctx.sample("x", Normal()))

    def test_execution_budget(self):
        with pytest.raises(ValueError, match="exceeded"):
            Enumerate(max_executions=3).run(dice_sum)


class TestRejection:
    """Test rejection sampling."""

    def test_two_coins_vectorized(self):
        posterior = Rejection(samples=20000, seed=1).run(two_coins)
        assert abs(posterior.probability(True) - 2 / 3) < 0.02
        assert len(posterior.samples) == 20000

    def test_two_coins_scalar(self):
        posterior = Rejection(samples=3000, vectorized=False, seed=1).run(two_coins)
        assert abs(posterior.probability(True) - 2 / 3) < 0.04

    def test_budget_exhausted(self):
        with pytest.raises(ConditioningError) as exc_info:
            Rejection(samples=10, max_attempts=500, seed=0).run(impossible)
        assert exc_info.value.accepted == 0
        assert exc_info.value.attempts == 500

    def test_soft_factor_acceptance(self):
        """Factors are accepted with probability exp(log_weight)."""
        def halve_tails(ctx):
            a = ctx.sample("a", Bernoulli(0.5))
            ctx.factor(np.where(a, 0.0, np.log(0.5)))
            return a

        posterior = Rejection(samples=20000, seed=3).run(halve_tails)
        assert abs(posterior.probability(True) - 2 / 3) < 0.02

    def test_reproducible_with_seed(self):
        first = Rejection(samples=500, seed=7).run(two_coins)
        second = Rejection(samples=500, seed=7).run(two_coins)
        assert first.samples == second.samples


class TestMetropolisHastings:
    """Test trace MCMC."""

    def test_two_coins(self):
        posterior = MetropolisHastings(samples=5000, burn=100, seed=2).run(two_coins)
        assert abs(posterior.probability(True) - 2 / 3) < 0.05

    def test_drift_proposals(self):
        posterior = MetropolisHastings(samples=4000, burn=500, seed=3).run(linear_density)
        assert abs(posterior.expectation() - 2 / 3) < 0.05
        assert all(0 <= x <= 1 for x in posterior.samples)

    def test_chain_labels(self):
        posterior = MetropolisHastings(samples=100, chains=3, seed=4).run(dice_sum)
        assert len(posterior.samples) == 300
        assert np.bincount(posterior.chains).tolist() == [100, 100, 100]

    def test_lag_thins_draws(self):
        posterior = MetropolisHastings(samples=50, lag=4, seed=5).run(dice_sum)
        assert len(posterior.samples) == 50

    def test_no_initial_trace(self):
        with pytest.raises(ConditioningError):
            MetropolisHastings(samples=10, max_init_attempts=50, seed=0).run(impossible)

    def test_agrees_with_enumeration(self):
        exact = Enumerate().run(dice_sum)
        approx = MetropolisHastings(samples=5000, burn=200, seed=6).run(dice_sum)
        assert abs(exact.expectation("total") - approx.expectation("total")) < 0.05

    def test_chains_run_on_copies(self):
        program = CountingProgram()
        MetropolisHastings(samples=20, chains=2, seed=9).run(program)
        assert program.calls == 0

    def test_seeded_draws_independent_of_cores(self):
        serial = MetropolisHastings(samples=50, chains=2, cores=1, seed=10).run(dice_sum)
        parallel = MetropolisHastings(samples=50, chains=2, cores=2, seed=10).run(dice_sum)
        assert serial.samples == parallel.samples
        assert serial.chains.tolist() == parallel.chains.tolist()


class TestStrategyFactory:
    """Test building strategies from InferenceConfig."""

    @pytest.mark.parametrize("method,cls", [
        ("enumerate", Enumerate),
        ("rejection", Rejection),
        ("mcmc", MetropolisHastings),
        ("pymc", PyMCSampler),
    ])
    def test_methods(self, method, cls):
        assert isinstance(make_strategy(InferenceConfig(method=method)), cls)

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown inference method"):
            make_strategy(InferenceConfig(method="hmc"))

    def test_config_forwarded(self):
        strategy = make_strategy(InferenceConfig(method="mcmc", samples=10, burn=5, chains=2))
        assert (strategy.samples, strategy.burn, strategy.chains) == (10, 5, 2)

    def test_pymc_sampler_needs_model(self):
        with pytest.raises(TypeError):
            PyMCSampler().run(two_coins)


class TestDiagnostics:
    """Test convergence diagnostics."""

    def test_multi_chain_summary(self):
        posterior = MetropolisHastings(samples=300, chains=2, seed=8).run(linear_density)
        diag = diagnostics(posterior)
        assert diag["n_chains"] == 2
        assert diag["n_draws"] == 300
        assert np.isfinite(diag["r_hat_max"])
        assert diag["ess_bulk_min"] > 0

    def test_enumerated_posterior_rejected(self):
        with pytest.raises(ValueError):
            diagnostics(Enumerate().run(two_coins))
