"""Shared plotting and summary utilities for notebooks in the tug-of-war project."""

from typing import Tuple

import numpy as np
import pandas as pd

from tug_of_war.model.bda import BDAResult
from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.posterior import Posterior


def configure_plot_style(figsize: Tuple[int, int] = (10, 6), font_scale: float = 1.0):
    """Configure matplotlib and seaborn for better-looking plots."""
    import matplotlib.pyplot as plt
    import seaborn as sns

    plt.rcParams['figure.figsize'] = figsize
    sns.set_context("notebook", font_scale=font_scale)
    sns.set_palette("husl")


def print_summary(dataset: RatingsDataset, title: str = "Ratings Summary"):
    """Print a formatted summary of a ratings dataset."""
    from tug_of_war.utils.logging import print_section

    df = dataset.df
    print_section(title)
    print(f"Ratings: {len(df):,}")
    print(f"Conditions: {len(dataset.conditions())}")
    if 'participant' in df.columns:
        print(f"Participants: {df['participant'].nunique():,}")
    print(f"Mean rating: {df['rating'].mean():+.2f} (sd {df['rating'].std():.2f})")


def plot_strength_posterior(posterior: Posterior, prior: Posterior | None = None, ax=None):
    """Bar plot of a strength posterior, optionally over its prior."""
    import matplotlib.pyplot as plt

    if ax is None:
        _, ax = plt.subplots()

    hist = posterior.to_dataframe("histogram").sort_values("value")
    ax.bar(hist["value"], hist["prob"], width=0.08, alpha=0.7, label="posterior")

    if prior is not None:
        prior_hist = prior.to_dataframe("histogram").sort_values("value")
        ax.plot(prior_hist["value"], prior_hist["prob"], color="black", lw=1, label="prior")
        ax.legend()

    ax.axvline(posterior.expectation(), color="red", ls="--", lw=1)
    ax.set_xlabel("strength")
    ax.set_ylabel("probability")
    return ax


def plot_parameter_posterior(result: BDAResult, x: str = "laziness_prior", y: str = "lazy_pulling", ax=None):
    """
    Joint posterior density of two hyperparameters.

    Enumerated posteriors are drawn as a probability-weighted heatmap over
    the grid; sampled ones as a 2D kernel density estimate.
    """
    import matplotlib.pyplot as plt
    import seaborn as sns

    if ax is None:
        _, ax = plt.subplots()

    if result.posterior.is_sampled:
        draws = result.posterior.to_dataframe("samples")
        sns.kdeplot(data=draws, x=x, y=y, fill=True, ax=ax)
    else:
        params = result.parameters()
        joint = params.groupby([y, x])["prob"].sum().unstack(x)
        sns.heatmap(joint.sort_index(ascending=False), cmap="viridis", ax=ax)

    ax.set_title(f"Joint posterior: {x} × {y}")
    return ax


def plot_posterior_predictive(result: BDAResult, hdi_prob: float = 0.95, ax=None):
    """Model predictions against empirical means, one point per condition."""
    import matplotlib.pyplot as plt
    import seaborn as sns

    if ax is None:
        _, ax = plt.subplots()

    pp = result.posterior_predictive(hdi_prob)
    ax.errorbar(
        pp["model_mean"],
        pp["empirical_mean"],
        xerr=[pp["model_mean"] - pp["model_lower"], pp["model_upper"] - pp["model_mean"]],
        yerr=[pp["empirical_mean"] - pp["empirical_lower"], pp["empirical_upper"] - pp["empirical_mean"]],
        fmt="none",
        ecolor="gray",
        alpha=0.6,
    )
    sns.scatterplot(data=pp, x="model_mean", y="empirical_mean", hue="pattern", style="tournament", ax=ax)

    lims = np.array([
        min(pp["model_lower"].min(), pp["empirical_lower"].min()),
        max(pp["model_upper"].max(), pp["empirical_upper"].max()),
    ])
    ax.plot(lims, lims, color="black", lw=0.5, ls=":")
    ax.set_xlabel("model prediction")
    ax.set_ylabel("mean human rating")
    return ax


def predictive_table(result: BDAResult) -> pd.DataFrame:
    """Posterior-predictive table sorted by model prediction."""
    return result.posterior_predictive().sort_values("model_mean", ascending=False).reset_index(drop=True)
