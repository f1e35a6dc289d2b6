"""Tests for the tug-of-war command-line interface."""

import pytest
import pandas as pd

from tug_of_war.cli import build_parser, main


@pytest.fixture
def ratings_csv(tmp_path):
    path = tmp_path / "ratings.csv"
    assert main([
        "simulate", "--output", str(path),
        "--n-per-condition", "2", "--seed", "0",
    ]) == 0
    return path


class TestParser:
    """Test argument parsing."""

    def test_posterior_requires_condition(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["posterior", "--tournament", "single"])

    def test_fit_defaults(self, tmp_path):
        args = build_parser().parse_args(["fit", "--data", str(tmp_path / "x.csv")])
        assert args.method == "enumerate"
        assert args.inner_samples == 500

    def test_no_command(self, capsys):
        assert main([]) == 1


class TestCommands:
    """Run each command end to end."""

    def test_conditions(self, capsys):
        assert main(["conditions"]) == 0
        out = capsys.readouterr().out
        assert "confounded evidence" in out
        assert "round robin" in out

    def test_posterior(self, capsys):
        code = main([
            "posterior", "--tournament", "single", "--outcome", "win",
            "--pattern", "confounded evidence", "--samples", "500", "--seed", "0",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "E[strength of A]" in out
        assert "95% HDI" in out

    def test_posterior_unknown_condition(self, capsys):
        code = main([
            "posterior", "--tournament", "single", "--outcome", "win",
            "--pattern", "round robin", "--samples", "100",
        ])
        assert code == 0
        assert "No match configuration" in capsys.readouterr().out

    def test_posterior_impossible(self, capsys):
        code = main([
            "posterior", "--tournament", "single", "--outcome", "win",
            "--pattern", "confounded evidence", "--lazy-pulling", "0",
            "--laziness-prior", "1", "--samples", "10",
        ])
        # Everyone pulls with zero force, so team 1 can never win
        assert code == 2

    def test_simulate(self, ratings_csv):
        df = pd.read_csv(ratings_csv)
        assert len(df) == 40
        assert {"tournament", "outcome", "pattern", "rating"} <= set(df.columns)

    def test_fit_mcmc(self, ratings_csv, tmp_path, capsys):
        output = tmp_path / "fit.csv"
        code = main([
            "fit", "--data", str(ratings_csv), "--method", "mcmc",
            "--samples", "5", "--burn", "0", "--inner-samples", "50",
            "--seed", "1", "--output", str(output),
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "noise" in out
        assert "Model vs data" in out
        assert output.exists()

    def test_fit_bad_data(self, tmp_path, capsys):
        path = tmp_path / "bad.csv"
        pd.DataFrame({"tournament": ["single"], "rating": [0.1]}).to_csv(path, index=False)
        assert main(["fit", "--data", str(path)]) == 2
