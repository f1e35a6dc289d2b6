"""Tests for posterior summaries and export."""

import pytest
import numpy as np
import arviz as az
from scipy import integrate

from tug_of_war.exceptions import ConditioningError
from tug_of_war.model.posterior import Posterior, freeze


@pytest.fixture
def weighted():
    """Enumerated posterior over four strengths."""
    return Posterior([-1.0, 0.0, 1.0, 2.0], [0.1, 0.2, 0.6, 0.1])


@pytest.fixture
def sampled():
    rng = np.random.default_rng(0)
    draws = [{"noise": float(x), "label": "a"} for x in rng.normal(1.0, 0.2, 400)]
    return Posterior.from_samples(draws, chains=np.repeat([0, 1], 200))


class TestConstruction:
    """Test building posteriors."""

    def test_probs_normalized(self):
        post = Posterior(["x", "y"], [2, 6])
        assert np.allclose(post.probs, [0.25, 0.75])

    def test_from_samples_counts(self):
        post = Posterior.from_samples([1, 1, 2, 1])
        assert post.probability(1) == 0.75
        assert post.is_sampled

    def test_from_weighted_merges_duplicates(self):
        post = Posterior.from_weighted([0.5, 0.5, 1.0], np.log([1, 1, 2]))
        assert len(post) == 2
        assert np.isclose(post.probability(0.5), 0.5)
        assert not post.is_sampled

    def test_from_weighted_drops_impossible(self):
        post = Posterior.from_weighted([0.0, 1.0], [0.0, -np.inf])
        assert post.values == [0.0]

    def test_all_impossible(self):
        with pytest.raises(ConditioningError):
            Posterior.from_weighted([0.0, 1.0], [-np.inf, -np.inf])

    def test_no_samples(self):
        with pytest.raises(ConditioningError):
            Posterior.from_samples([])

    def test_freeze_nested(self):
        assert freeze({"b": [1, 2], "a": np.float64(0.5)}) == (("a", 0.5), ("b", (1, 2)))


class TestQueries:
    """Test posterior queries."""

    def test_expectation(self, weighted):
        assert np.isclose(weighted.expectation(), -0.1 + 0.6 + 0.2)

    def test_variance(self):
        post = Posterior([0.0, 2.0], [0.5, 0.5])
        assert np.isclose(post.variance(), 1.0)

    def test_mode(self, weighted):
        assert weighted.mode() == 1.0

    def test_score(self, weighted):
        assert np.isclose(weighted.score(1.0), np.log(0.6))
        assert weighted.score(5.0) == -np.inf

    def test_weighted_hdi(self, weighted):
        # 0.0 and 1.0 hold 0.8; adding -1.0 or 2.0 gives 0.9
        assert weighted.hdi(0.8) == (0.0, 1.0)
        assert weighted.hdi(0.9) in [(-1.0, 1.0), (0.0, 2.0)]
        assert weighted.hdi(1.0) == (-1.0, 2.0)

    def test_sampled_hdi(self, sampled):
        lower, upper = sampled.hdi(0.95, key="noise")
        assert 0.5 < lower < 1.0 < upper < 1.5

    def test_hdi_invalid_prob(self, weighted):
        with pytest.raises(ValueError):
            weighted.hdi(0.0)

    def test_density_integrates(self, weighted):
        x = np.linspace(-4, 5, 2001)
        dens = weighted.density(x, bandwidth=0.3)
        assert np.isclose(integrate.trapezoid(dens, x), 1.0, atol=1e-3)

    def test_marginal_of_samples(self, sampled):
        noise = sampled.marginal("noise")
        assert noise.is_sampled
        assert np.isclose(noise.expectation(), sampled.expectation("noise"))

    def test_marginal_of_weighted(self):
        post = Posterior([{"a": 1, "b": 0}, {"a": 1, "b": 1}, {"a": 2, "b": 0}], [0.2, 0.3, 0.5])
        assert np.isclose(post.marginal("a").probability(1), 0.5)

    def test_sample(self, weighted):
        draws = weighted.sample(np.random.default_rng(1), size=5000)
        assert abs(np.mean(draws) - weighted.expectation()) < 0.05


class TestExport:
    """Test DataFrame and ArviZ export."""

    def test_histogram(self, weighted):
        df = weighted.to_dataframe("histogram")
        assert list(df.columns) == ["value", "prob"]
        assert np.isclose(df["prob"].sum(), 1.0)

    def test_samples_table(self, sampled):
        df = sampled.to_dataframe("samples")
        assert list(df.columns) == ["chain", "noise", "label"]
        assert len(df) == 400

    def test_samples_of_enumerated(self, weighted):
        with pytest.raises(ValueError):
            weighted.to_dataframe("samples")

    def test_unknown_output(self, weighted):
        with pytest.raises(ValueError):
            weighted.to_dataframe("trace")

    def test_inference_data(self, sampled):
        idata = sampled.to_inference_data()
        assert isinstance(idata, az.InferenceData)
        assert list(idata.posterior.data_vars) == ["noise"]
        assert idata.posterior["noise"].shape == (2, 200)

    def test_inference_data_real_valued(self):
        post = Posterior.from_samples([0.1, 0.2, 0.3])
        idata = post.to_inference_data()
        assert idata.posterior["value"].shape == (1, 3)
