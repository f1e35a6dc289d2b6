"""Smoke tests for notebook plotting helpers."""

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from tug_of_war.model.bda import DataAnalysisConfig, DataAnalysisModel, simulate_ratings
from tug_of_war.model.conditions import Condition, lookup_match
from tug_of_war.model.core import TugOfWarModel
from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.inference import Enumerate, MetropolisHastings, Rejection
from tug_of_war.notebook_utils import (
    configure_plot_style,
    plot_parameter_posterior,
    plot_posterior_predictive,
    plot_strength_posterior,
    predictive_table,
    print_summary,
)

CONDITIONS = [
    Condition("single", "win", "confounded evidence"),
    Condition("single", "loss", "strong indirect evidence"),
    Condition("double", "win", "diverse evidence"),
]


@pytest.fixture(scope="module")
def dataset():
    df = simulate_ratings(0.3, 0.5, 0.5, n_per_condition=8, conditions=CONDITIONS, seed=0)
    return RatingsDataset(df)


@pytest.fixture(scope="module")
def bda(dataset):
    config = DataAnalysisConfig(
        laziness_prior_grid=(0.3, 0.7),
        lazy_pulling_grid=(0.3, 0.7),
        noise_grid=(0.5, 1.0),
        inner_samples=200,
        inner_seed=0,
    )
    return DataAnalysisModel(dataset, config=config)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


def test_configure_plot_style():
    configure_plot_style(figsize=(6, 4))
    assert tuple(plt.rcParams["figure.figsize"]) == (6, 4)


def test_print_summary(dataset, capsys):
    print_summary(dataset)
    out = capsys.readouterr().out
    assert "Ratings: 24" in out
    assert "Conditions: 3" in out


def test_plot_strength_posterior():
    model = TugOfWarModel()
    match = lookup_match(CONDITIONS[0])
    posterior = model.run(0.5, 0.3, match, Rejection(samples=500, seed=1))
    prior = model.prior(0.5, 0.3, match, Rejection(samples=500, seed=2))
    ax = plot_strength_posterior(posterior, prior)
    assert ax.get_xlabel() == "strength"


def test_plot_parameter_posterior_grid(bda):
    ax = plot_parameter_posterior(bda.run(Enumerate()))
    assert "laziness_prior" in ax.get_title()


def test_plot_parameter_posterior_samples(bda):
    result = bda.run(MetropolisHastings(samples=30, seed=3))
    ax = plot_parameter_posterior(result, x="noise", y="lazy_pulling")
    assert "noise" in ax.get_title()


def test_plot_posterior_predictive(bda):
    result = bda.run(Enumerate())
    ax = plot_posterior_predictive(result)
    assert ax.get_ylabel() == "mean human rating"

    table = predictive_table(result)
    assert len(table) == 3
    assert table["model_mean"].is_monotonic_decreasing
