"""
Loading and preparation of human strength ratings.

Each row of the ratings table is one participant's judgement of the focal
person's strength after seeing one tournament item. The loader:
- fails fast on missing columns or non-numeric ratings
- normalizes condition labels to the vocabulary in conditions.py
- optionally z-scores ratings (globally or per participant) and shifts them
- rounds ratings onto the bin grid used for likelihood scoring
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from tug_of_war.exceptions import DataValidationError
from tug_of_war.model.conditions import OUTCOMES, PATTERNS, TOURNAMENTS, Condition
from tug_of_war.model.smoothing import make_bins, round_to_bin
from tug_of_war.utils.logging import print_success, print_warning

REQUIRED_COLUMNS = ("tournament", "outcome", "pattern", "rating")

TOURNAMENT_ALIASES = {
    "singles": "single",
    "doubles": "double",
}

OUTCOME_ALIASES = {
    "won": "win",
    "winner": "win",
    "lose": "loss",
    "lost": "loss",
    "loser": "loss",
}

PATTERN_ALIASES = {
    "confounded": "confounded evidence",
    "strong indirect": "strong indirect evidence",
    "weak indirect": "weak indirect evidence",
    "diverse": "diverse evidence",
    "partner": "confounded with partner",
    "opponent": "confounded with opponent",
    "roundrobin": "round robin",
    "round_robin": "round robin",
}


def normalize_label(label: str, aliases: dict[str, str]) -> str:
    """Lower-case, collapse whitespace and underscores, apply aliases."""
    label = " ".join(str(label).strip().lower().replace("_", " ").split())
    return aliases.get(label, label)


class RatingsDataset:
    """
    Ratings table keyed by condition.

    Usage:
        dataset = RatingsDataset.from_csv("ratings.csv", zscore=True)
        dataset.conditions()
        dataset.for_condition(Condition("single", "win", "confounded evidence"))
    """

    def __init__(
        self,
        df: pd.DataFrame,
        rating_col: str = "rating",
        zscore: bool = False,
        zscore_by: str | None = None,
        shift: float = 0.0,
        bins: np.ndarray | None = None,
        column_map: dict[str, str] | None = None,
        verbose: bool = False,
    ):
        self.bins = make_bins() if bins is None else np.asarray(bins, dtype=float)
        self.rating_col = rating_col
        self.df = self._prepare(
            df, rating_col, zscore, zscore_by, shift, column_map or {}, verbose
        )

    @classmethod
    def from_csv(cls, path: str | Path, **kwargs) -> "RatingsDataset":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Ratings file not found: {path}")
        return cls(pd.read_csv(path), **kwargs)

    def _prepare(
        self,
        df: pd.DataFrame,
        rating_col: str,
        zscore: bool,
        zscore_by: str | None,
        shift: float,
        column_map: dict[str, str],
        verbose: bool,
    ) -> pd.DataFrame:
        df = df.rename(columns=column_map).copy()
        if rating_col != "rating":
            if rating_col not in df.columns:
                raise DataValidationError(f"Missing required columns: ['{rating_col}']")
            df["rating"] = df[rating_col]

        missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise DataValidationError(f"Missing required columns: {missing}")
        if zscore_by is not None and zscore_by not in df.columns:
            raise DataValidationError(f"Missing z-score grouping column: '{zscore_by}'")

        rating = pd.to_numeric(df["rating"], errors="coerce")
        bad = rating.isna() & df["rating"].notna()
        if bad.any():
            examples = df.loc[bad, "rating"].head(3).tolist()
            raise DataValidationError(f"Non-numeric ratings in {bad.sum()} rows, e.g. {examples}")
        df["rating"] = rating

        n_missing = int(df["rating"].isna().sum())
        if n_missing:
            if verbose:
                print_warning(f"Dropping {n_missing} rows without a rating")
            df = df[df["rating"].notna()].copy()

        df["tournament"] = df["tournament"].map(lambda x: normalize_label(x, TOURNAMENT_ALIASES))
        df["outcome"] = df["outcome"].map(lambda x: normalize_label(x, OUTCOME_ALIASES))
        df["pattern"] = df["pattern"].map(lambda x: normalize_label(x, PATTERN_ALIASES))

        for col, allowed in (("tournament", TOURNAMENTS), ("outcome", OUTCOMES), ("pattern", PATTERNS)):
            unknown = sorted(set(df[col]) - set(allowed))
            if unknown:
                raise DataValidationError(f"Unknown {col} labels: {unknown}")

        if zscore:
            if zscore_by is None:
                df["rating"] = _zscore(df["rating"])
            else:
                df["rating"] = df.groupby(zscore_by)["rating"].transform(_zscore)

        df["rating"] = df["rating"] + shift
        df["rating_bin"] = round_to_bin(df["rating"].to_numpy(), self.bins)

        if verbose:
            print_success(f"Loaded {len(df):,} ratings in {df.groupby(list(Condition._fields)).ngroups} conditions")

        return df.reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.df)

    def conditions(self) -> list[Condition]:
        """Conditions with at least one rating."""
        keys = self.df[list(Condition._fields)].drop_duplicates()
        return sorted(Condition(*row) for row in keys.itertuples(index=False))

    def for_condition(self, condition: Condition) -> np.ndarray:
        """Binned ratings for one condition (empty if none)."""
        cond = Condition(*condition)
        mask = (
            (self.df["tournament"] == cond.tournament)
            & (self.df["outcome"] == cond.outcome)
            & (self.df["pattern"] == cond.pattern)
        )
        return self.df.loc[mask, "rating_bin"].to_numpy()

    def summary(self, n_boot: int = 1000, ci: float = 0.95, seed: int | None = 0) -> pd.DataFrame:
        """
        Empirical mean rating per condition with bootstrap confidence interval.

        Returns:
            DataFrame with tournament, outcome, pattern, n, empirical_mean,
            empirical_lower, empirical_upper
        """
        rng = np.random.default_rng(seed)
        alpha = (1 - ci) / 2
        rows = []
        for cond, group in self.df.groupby(list(Condition._fields)):
            values = group["rating"].to_numpy()
            boot = rng.choice(values, size=(n_boot, len(values)), replace=True).mean(axis=1)
            rows.append({
                **Condition(*cond)._asdict(),
                "n": len(values),
                "empirical_mean": float(values.mean()),
                "empirical_lower": float(np.quantile(boot, alpha)),
                "empirical_upper": float(np.quantile(boot, 1 - alpha)),
            })
        return pd.DataFrame(rows)


def _zscore(x: pd.Series) -> pd.Series:
    sd = x.std(ddof=1)
    if not np.isfinite(sd) or sd == 0:
        return x - x.mean()
    return (x - x.mean()) / sd
