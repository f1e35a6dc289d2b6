"""Unit tests for tug_of_war.model.program module."""

import pytest
import numpy as np

from tug_of_war.model.distributions import Bernoulli, Normal, UniformDraw
from tug_of_war.model.program import ModelContext, ZeroProbability


@pytest.fixture
def rng():
    return np.random.default_rng(0)


class TestScalarContext:
    """Test single-world evaluation."""

    def test_sample_records_trace(self, rng):
        ctx = ModelContext(rng)
        x = ctx.sample("x", UniformDraw([1, 2]))
        assert ctx.trace["x"].value == x
        assert np.isclose(ctx.log_prior, np.log(0.5))

    def test_duplicate_address_rejected(self, rng):
        ctx = ModelContext(rng)
        ctx.sample("x", Normal())
        with pytest.raises(ValueError, match="Duplicate"):
            ctx.sample("x", Normal())

    def test_false_condition_raises(self, rng):
        ctx = ModelContext(rng)
        with pytest.raises(ZeroProbability):
            ctx.condition(False)
        assert ctx.log_weight == -np.inf

    def test_true_condition_keeps_weight(self, rng):
        ctx = ModelContext(rng)
        ctx.condition(True)
        assert ctx.log_weight == 0.0

    def test_factor_accumulates(self, rng):
        ctx = ModelContext(rng)
        ctx.factor(-1.0)
        ctx.factor(-0.5)
        assert ctx.log_weight == -1.5
        assert ctx.score == -1.5

    def test_observe_scores_value(self, rng):
        ctx = ModelContext(rng)
        ctx.observe(Normal(0, 1), 0.0)
        assert np.isclose(ctx.log_weight, -0.5 * np.log(2 * np.pi))

    def test_chooser_overrides_sampling(self, rng):
        ctx = ModelContext(rng, chooser=lambda name, dist: 2)
        assert ctx.sample("x", UniformDraw([1, 2])) == 2

    def test_impossible_choice_raises(self, rng):
        ctx = ModelContext(rng, chooser=lambda name, dist: True)
        with pytest.raises(ZeroProbability):
            ctx.sample("lazy", Bernoulli(0.0))


class TestBatchContext:
    """Test vectorized evaluation over many worlds."""

    def test_sample_shape(self, rng):
        ctx = ModelContext(rng, batch_size=50)
        x = ctx.sample("x", Normal())
        assert x.shape == (50,)
        assert ctx.log_prior.shape == (50,)

    def test_condition_masks_worlds(self, rng):
        ctx = ModelContext(rng, batch_size=4)
        ctx.condition(np.array([True, False, True, False]))
        assert np.isfinite(ctx.log_weight).tolist() == [True, False, True, False]

    def test_scalar_condition_broadcasts(self, rng):
        ctx = ModelContext(rng, batch_size=3)
        ctx.condition(False)
        assert np.isneginf(ctx.log_weight).all()


class TestMem:
    """Test persistent per-evaluation memoization."""

    def test_same_argument_same_value(self, rng):
        ctx = ModelContext(rng)
        strength = ctx.mem(lambda p: ctx.sample(f"strength_{p}", Normal()))
        assert strength("A") == strength("A")
        assert list(ctx.trace) == ["strength_A"]

    def test_different_arguments_independent(self, rng):
        ctx = ModelContext(rng)
        strength = ctx.mem(lambda p: ctx.sample(f"strength_{p}", Normal()))
        strength("A")
        strength("B")
        assert set(ctx.trace) == {"strength_A", "strength_B"}

    def test_cache_does_not_outlive_context(self, rng):
        def draw(ctx):
            strength = ctx.mem(lambda p: ctx.sample(f"strength_{p}", Normal()))
            return strength("A")

        assert draw(ModelContext(rng)) != draw(ModelContext(rng))

    def test_batch_mode_memoizes_arrays(self, rng):
        ctx = ModelContext(rng, batch_size=10)
        strength = ctx.mem(lambda p: ctx.sample(f"strength_{p}", Normal()))
        assert strength("A") is strength("A")
