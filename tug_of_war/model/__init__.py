"""
Bayesian modelling components for the tug-of-war analysis.
"""

from tug_of_war.model.distributions import (
    Bernoulli,
    Categorical,
    DiscretizedFoldedNormal,
    DiscretizedNormal,
    FoldedNormal,
    Normal,
    Uniform,
    UniformDraw,
    UniformDrift,
)
from tug_of_war.model.program import ModelContext
from tug_of_war.model.posterior import Posterior
from tug_of_war.model.inference import (
    InferenceConfig,
    Enumerate,
    Rejection,
    MetropolisHastings,
    PyMCSampler,
    make_strategy,
    diagnostics,
)
from tug_of_war.model.core import Match, MatchInfo, TugOfWarModel, TugOfWarConfig
from tug_of_war.model.smoothing import make_bins, round_rating, round_to_bin, smooth_to_bins
from tug_of_war.model.conditions import (
    Condition,
    MATCH_CONFIGURATIONS,
    PATTERNS,
    lookup_match,
    match_table,
)
from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.bda import (
    DataAnalysisModel,
    DataAnalysisConfig,
    BDAResult,
    simulate_ratings,
)

__all__ = [
    "Bernoulli",
    "Categorical",
    "DiscretizedFoldedNormal",
    "DiscretizedNormal",
    "FoldedNormal",
    "Normal",
    "Uniform",
    "UniformDraw",
    "UniformDrift",
    "ModelContext",
    "Posterior",
    "InferenceConfig",
    "Enumerate",
    "Rejection",
    "MetropolisHastings",
    "PyMCSampler",
    "make_strategy",
    "diagnostics",
    "Match",
    "MatchInfo",
    "TugOfWarModel",
    "TugOfWarConfig",
    "make_bins",
    "round_rating",
    "round_to_bin",
    "smooth_to_bins",
    "Condition",
    "MATCH_CONFIGURATIONS",
    "PATTERNS",
    "lookup_match",
    "match_table",
    "RatingsDataset",
    "DataAnalysisModel",
    "DataAnalysisConfig",
    "BDAResult",
    "simulate_ratings",
]
