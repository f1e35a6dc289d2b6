"""Tests for the condition table."""

import pytest

from tug_of_war.model.conditions import (
    MATCH_CONFIGURATIONS,
    OUTCOMES,
    PATTERNS,
    TOURNAMENTS,
    Condition,
    lookup_match,
    match_table,
)
from tug_of_war.model.core import Match, MatchInfo


class TestMatchConfigurations:
    """Test the 20 configured conditions."""

    def test_table_size(self):
        assert len(MATCH_CONFIGURATIONS) == 20

    def test_patterns_per_tournament(self):
        singles = {c.pattern for c in MATCH_CONFIGURATIONS if c.tournament == "single"}
        doubles = {c.pattern for c in MATCH_CONFIGURATIONS if c.tournament == "double"}
        assert len(singles) == 4
        assert len(doubles) == 6
        assert "round robin" not in singles

    def test_labels_in_vocabulary(self):
        for cond in MATCH_CONFIGURATIONS:
            assert cond.tournament in TOURNAMENTS
            assert cond.outcome in OUTCOMES
            assert cond.pattern in PATTERNS

    def test_loss_is_flipped_win(self):
        for cond, info in MATCH_CONFIGURATIONS.items():
            if cond.outcome == "win":
                loss = MATCH_CONFIGURATIONS[Condition(cond.tournament, "loss", cond.pattern)]
                assert loss == info.flipped()

    def test_reference_plays_first_round(self):
        for info in MATCH_CONFIGURATIONS.values():
            assert info.reference == "A"
            assert "A" in info.rounds[0].team1

    @pytest.mark.parametrize("tournament,team_size", [("single", 1), ("double", 2)])
    def test_team_sizes(self, tournament, team_size):
        for cond, info in MATCH_CONFIGURATIONS.items():
            if cond.tournament == tournament:
                assert all(len(m.team1) == len(m.team2) == team_size for m in info.rounds)

    def test_confounded_evidence(self):
        info = MATCH_CONFIGURATIONS[Condition("single", "win", "confounded evidence")]
        assert all(m == Match(("A",), ("B",), True) for m in info.rounds)

    def test_round_robin_people(self):
        info = MATCH_CONFIGURATIONS[Condition("double", "win", "round robin")]
        assert info.people == ("A", "B", "C", "D")


class TestLookup:
    """Test condition lookups."""

    def test_lookup(self):
        info = lookup_match(Condition("double", "loss", "confounded with partner"))
        assert isinstance(info, MatchInfo)
        assert all(not m.team1_won for m in info.rounds)

    def test_lookup_accepts_tuple(self):
        assert lookup_match(("single", "win", "diverse evidence")) is not None

    def test_missing_condition(self):
        assert lookup_match(Condition("single", "win", "round robin")) is None

    def test_custom_table(self):
        cond = Condition("single", "win", "confounded evidence")
        table = {cond: MATCH_CONFIGURATIONS[cond]}
        assert lookup_match(Condition("double", "win", "round robin"), table) is None
        assert lookup_match(cond, table) is MATCH_CONFIGURATIONS[cond]

    def test_condition_str(self):
        assert str(Condition("single", "win", "diverse evidence")) == "single/win/diverse evidence"


class TestMatchTable:
    """Test the tabular view."""

    def test_columns(self):
        df = match_table()
        assert list(df.columns) == ["tournament", "outcome", "pattern", "round1", "round2", "round3", "n_people"]
        assert len(df) == 20

    def test_round_descriptions(self):
        df = match_table()
        row = df[(df["tournament"] == "single") & (df["outcome"] == "loss")
                 & (df["pattern"] == "confounded evidence")].iloc[0]
        assert row["round1"] == "B beat A"
        assert row["n_people"] == 2
