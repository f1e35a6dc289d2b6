"""CLI helper functions shared across commands."""

from pathlib import Path

import pandas as pd

from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.smoothing import make_bins
from tug_of_war.utils.constants import SHIFTED_BIN_HIGH, SHIFTED_BIN_LOW
from tug_of_war.utils.logging import print_info, print_section, print_success


def setup_data(
    path: Path,
    zscore: bool = False,
    zscore_by: str | None = None,
    shifted: bool = False,
    verbose: bool = True,
) -> RatingsDataset:
    """
    Load and prepare a ratings table.

    Args:
        path: CSV file with tournament, outcome, pattern and rating columns
        zscore: Z-score ratings before binning
        zscore_by: Column to z-score within (e.g. participant)
        shifted: Use the 0..4.4 scale of the half-normal model, shifting
            ratings up by 2.2
        verbose: Print status messages

    Returns:
        RatingsDataset
    """
    if verbose:
        print_section("LOADING DATA")

    if shifted:
        bins = make_bins(SHIFTED_BIN_LOW, SHIFTED_BIN_HIGH)
        shift = SHIFTED_BIN_HIGH / 2
    else:
        bins = None
        shift = 0.0

    dataset = RatingsDataset.from_csv(
        path,
        zscore=zscore,
        zscore_by=zscore_by,
        shift=shift,
        bins=bins,
    )

    if verbose:
        df = dataset.df
        print_success(f"Loaded: {len(df):,} ratings")
        print_info(f"  Conditions: {len(dataset.conditions())}")
        print_info(f"  Tournaments: {', '.join(sorted(df['tournament'].unique()))}")
        print_info(f"  Rating range: {df['rating'].min():.2f} to {df['rating'].max():.2f}")

    return dataset


def format_interval(lower: float, upper: float, precision: int = 2) -> str:
    """Format an interval as [lower, upper]."""
    return f"[{lower:.{precision}f}, {upper:.{precision}f}]"


def format_parameter_summary(summary: pd.DataFrame, precision: int = 3) -> str:
    """Render BDAResult.parameter_summary() as aligned text lines."""
    lines = []
    for name, row in summary.iterrows():
        lines.append(
            f"{name:<16} mean {row['mean']:.{precision}f}  "
            f"MAP {row['map']:.{precision}f}  "
            f"HDI {format_interval(row['hdi_lower'], row['hdi_upper'], precision)}"
        )
    return "\n".join(lines)
