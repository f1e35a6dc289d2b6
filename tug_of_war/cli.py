"""
Command-line interface for the tug-of-war analysis.

    tug-of-war conditions
    tug-of-war posterior --tournament single --outcome win --pattern "confounded evidence"
    tug-of-war fit --data ratings.csv --method enumerate --output results.csv
    tug-of-war simulate --output ratings.csv --laziness-prior 0.3 --lazy-pulling 0.5 --noise 0.5
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

from tug_of_war.exceptions import TugOfWarError
from tug_of_war.model.conditions import OUTCOMES, PATTERNS, TOURNAMENTS, Condition, lookup_match, match_table
from tug_of_war.model.core import TugOfWarConfig, TugOfWarModel
from tug_of_war.model.inference import InferenceConfig, make_strategy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bayesian data analysis of the tug-of-war strength model"
    )
    parser.add_argument("--verbose", action="store_true", help="Extra progress output")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Conditions command
    subparsers.add_parser("conditions", help="List the match configuration table")

    # Posterior command
    posterior_parser = subparsers.add_parser(
        "posterior",
        help="Strength posterior for one condition"
    )
    _add_condition_args(posterior_parser)
    posterior_parser.add_argument("--lazy-pulling", type=float, default=0.5,
                                  help="Fraction of strength a lazy person pulls with (default: 0.5)")
    posterior_parser.add_argument("--laziness-prior", type=float, default=0.3,
                                  help="Probability of being lazy in a round (default: 0.3)")
    posterior_parser.add_argument("--method", choices=["rejection", "mcmc", "pymc"], default="rejection",
                                  help="Inference method (default: rejection)")
    posterior_parser.add_argument("--samples", type=int, default=5000,
                                  help="Number of samples (default: 5000)")
    posterior_parser.add_argument("--burn", type=int, default=500,
                                  help="MCMC burn-in (default: 500)")
    posterior_parser.add_argument("--half-normal", action="store_true",
                                  help="Use the non-negative |N(2.2, 1)| strength prior")
    posterior_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Fit command
    fit_parser = subparsers.add_parser(
        "fit",
        help="Fit hyperparameters to human ratings"
    )
    fit_parser.add_argument("--data", type=Path, required=True, help="Ratings CSV")
    fit_parser.add_argument("--method", choices=["enumerate", "mcmc"], default="enumerate",
                            help="Outer inference method (default: enumerate)")
    fit_parser.add_argument("--samples", type=int, default=1000,
                            help="MCMC draws per chain (default: 1000)")
    fit_parser.add_argument("--burn", type=int, default=200,
                            help="MCMC burn-in (default: 200)")
    fit_parser.add_argument("--chains", type=int, default=1, help="MCMC chains (default: 1)")
    fit_parser.add_argument("--cores", type=int, default=1,
                            help="Worker processes for chains (default: 1)")
    fit_parser.add_argument("--inner-samples", type=int, default=500,
                            help="Rejection samples per inner inference (default: 500)")
    fit_parser.add_argument("--zscore", action="store_true", help="Z-score ratings before fitting")
    fit_parser.add_argument("--zscore-by", type=str, default=None,
                            help="Column to z-score within, e.g. participant")
    fit_parser.add_argument("--half-normal", action="store_true",
                            help="Use the non-negative strength prior and 0..4.4 rating scale")
    fit_parser.add_argument("--output", type=Path, default=None, help="Save long-format results CSV")
    fit_parser.add_argument("--seed", type=int, default=None, help="Random seed")

    # Simulate command
    simulate_parser = subparsers.add_parser(
        "simulate",
        help="Simulate a ratings table from known hyperparameters"
    )
    simulate_parser.add_argument("--output", type=Path, required=True, help="Output CSV")
    simulate_parser.add_argument("--laziness-prior", type=float, default=0.3)
    simulate_parser.add_argument("--lazy-pulling", type=float, default=0.5)
    simulate_parser.add_argument("--noise", type=float, default=0.5)
    simulate_parser.add_argument("--n-per-condition", type=int, default=20)
    simulate_parser.add_argument("--seed", type=int, default=None)

    return parser


def _add_condition_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tournament", choices=TOURNAMENTS, required=True)
    parser.add_argument("--outcome", choices=OUTCOMES, required=True)
    parser.add_argument("--pattern", choices=PATTERNS, required=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    from tug_of_war.utils.logging import print_error, setup_logging

    setup_logging(args.verbose)

    commands = {
        "conditions": run_conditions,
        "posterior": run_posterior,
        "fit": run_fit,
        "simulate": run_simulate,
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        commands[args.command](args)
    except TugOfWarError as e:
        print_error(str(e))
        return 2
    return 0


def run_conditions(args):
    """Print the match configuration table."""
    with pd.option_context("display.max_colwidth", 40, "display.width", 200):
        print(match_table().to_string(index=False))


def run_posterior(args):
    """Print the strength posterior for one condition."""
    from tug_of_war.utils.cli_helpers import format_interval
    from tug_of_war.utils.logging import print_kv, print_subsection

    condition = Condition(args.tournament, args.outcome, args.pattern)
    match = lookup_match(condition)
    if match is None:
        print(f"No match configuration for {condition}")
        print("Available conditions:")
        for cond in sorted(match_table().itertuples(index=False)):
            print(f"  - {cond.tournament}/{cond.outcome}/{cond.pattern}")
        return

    config = TugOfWarConfig.half_normal() if args.half_normal else TugOfWarConfig()
    model = TugOfWarModel(config)
    strategy = make_strategy(InferenceConfig(
        method=args.method,
        samples=args.samples,
        burn=args.burn,
        random_seed=args.seed,
    ))

    posterior = model.run(args.lazy_pulling, args.laziness_prior, match, strategy)
    lower, upper = posterior.hdi(0.95)

    print_subsection(f"{condition}: {match}")
    print_kv(f"E[strength of {match.reference}]", f"{posterior.expectation():+.3f}")
    print_kv("MAP", f"{posterior.mode():+.1f}")
    print_kv("95% HDI", format_interval(lower, upper))


def run_fit(args):
    """Fit the data-analysis model and report the posterior."""
    from tug_of_war.model.bda import DataAnalysisConfig, DataAnalysisModel
    from tug_of_war.model.smoothing import make_bins
    from tug_of_war.utils.cli_helpers import format_parameter_summary, setup_data
    from tug_of_war.utils.constants import SHIFTED_BIN_HIGH, SHIFTED_BIN_LOW
    from tug_of_war.utils.logging import print_section, print_success

    dataset = setup_data(
        args.data,
        zscore=args.zscore,
        zscore_by=args.zscore_by,
        shifted=args.half_normal,
        verbose=True,
    )

    config = DataAnalysisConfig(inner_samples=args.inner_samples, inner_seed=args.seed)
    cognitive = TugOfWarModel()
    if args.half_normal:
        config.bins = tuple(make_bins(SHIFTED_BIN_LOW, SHIFTED_BIN_HIGH))
        cognitive = TugOfWarModel(TugOfWarConfig.half_normal())

    bda = DataAnalysisModel(dataset, config=config, cognitive_model=cognitive, verbose=args.verbose)
    strategy = make_strategy(InferenceConfig(
        method=args.method,
        samples=args.samples,
        burn=args.burn,
        chains=args.chains,
        cores=args.cores,
        random_seed=args.seed,
    ))

    print_section(f"FITTING ({args.method.upper()})")
    result = bda.run(strategy)

    print("\nHyperparameters:")
    print(format_parameter_summary(result.parameter_summary()))

    if len(bda.conditions) > 1:
        fit = result.fit_statistics()
        print(f"\nModel vs data: r = {fit['r']:.3f}, RMSE = {fit['rmse']:.3f}")

    if args.method == "mcmc" and args.chains > 1:
        from tug_of_war.model.inference import diagnostics

        diag = diagnostics(result.posterior, keys=["laziness_prior", "lazy_pulling", "noise"])
        print(f"  R-hat max: {diag['r_hat_max']:.3f}")
        print(f"  ESS min: {diag['ess_bulk_min']:.0f}")

    if args.output is not None:
        path = result.to_csv(args.output)
        print_success(f"Saved results to {path}")


def run_simulate(args):
    """Write a simulated ratings table."""
    from tug_of_war.model.bda import simulate_ratings
    from tug_of_war.utils.logging import print_parameters, print_success

    df = simulate_ratings(
        laziness_prior=args.laziness_prior,
        lazy_pulling=args.lazy_pulling,
        noise=args.noise,
        n_per_condition=args.n_per_condition,
        seed=args.seed,
    )
    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.output, index=False)
    print_success(f"Wrote {len(df):,} simulated ratings to {args.output}")
    print_parameters({
        "laziness_prior": args.laziness_prior,
        "lazy_pulling": args.lazy_pulling,
        "noise": args.noise,
    })


if __name__ == "__main__":
    sys.exit(main())
