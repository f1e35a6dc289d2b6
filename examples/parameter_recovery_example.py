"""
Example: Hyperparameter Recovery

Demonstrates how to:
1. Simulate ratings from known hyperparameters
2. Fit the data-analysis model over a grid
3. Compare recovered and true values
4. Check how the fit degrades with fewer ratings per condition
"""

from tug_of_war.model.bda import DataAnalysisConfig, DataAnalysisModel, simulate_ratings
from tug_of_war.model.data import RatingsDataset
from tug_of_war.model.inference import Enumerate
from tug_of_war.utils.cli_helpers import format_interval

TRUE_PARAMS = {"laziness_prior": 0.3, "lazy_pulling": 0.5, "noise": 0.5}


# ============================================================================
# Example 1: Recover hyperparameters from simulated ratings
# ============================================================================

def example_recovery(n_per_condition: int = 30, seed: int = 0):
    """Simulate a full experiment and fit it back."""

    print("=" * 70)
    print(f"Example 1: Recovery with {n_per_condition} ratings per condition")
    print("=" * 70)
    print()

    df = simulate_ratings(**TRUE_PARAMS, n_per_condition=n_per_condition, seed=seed)
    dataset = RatingsDataset(df)
    print(f"Simulated {len(df):,} ratings in {len(dataset.conditions())} conditions")
    print()

    bda = DataAnalysisModel(dataset, config=DataAnalysisConfig(inner_samples=1000, inner_seed=seed))
    result = bda.run(Enumerate())

    summary = result.parameter_summary()
    print(f"{'parameter':<16}{'true':>8}{'MAP':>8}   95% HDI")
    for name, row in summary.iterrows():
        covered = row["hdi_lower"] <= TRUE_PARAMS[name] <= row["hdi_upper"]
        print(
            f"{name:<16}{TRUE_PARAMS[name]:>8.2f}{row['map']:>8.2f}   "
            f"{format_interval(row['hdi_lower'], row['hdi_upper'])}"
            f"{'' if covered else '  (missed)'}"
        )
    print()
    return result


# ============================================================================
# Example 2: Fewer ratings, wider posteriors
# ============================================================================

def example_sample_size():
    """Posterior width of the noise parameter as data shrinks."""

    print("=" * 70)
    print("Example 2: Posterior width vs ratings per condition")
    print("=" * 70)
    print()

    for n in (5, 15, 45):
        df = simulate_ratings(**TRUE_PARAMS, n_per_condition=n, seed=n)
        bda = DataAnalysisModel(RatingsDataset(df), config=DataAnalysisConfig(inner_samples=500, inner_seed=n))
        summary = bda.run(Enumerate()).parameter_summary()
        print(f"n={n:>3}: sd(noise) = {summary.loc['noise', 'sd']:.3f}, "
              f"sd(laziness_prior) = {summary.loc['laziness_prior', 'sd']:.3f}")
    print()


if __name__ == "__main__":
    example_recovery()
    example_sample_size()
