"""
Experimental conditions and their match configurations.

A condition is a (tournament, outcome, pattern) triple. Single tournaments
pit one person against another, double tournaments pit pairs against
pairs. Each evidence pattern describes three rounds involving the focal
person A; the 'loss' outcome shows the same rounds with every result
reversed.

Single tournaments use four patterns and double tournaments six, so the
table has 20 entries and some (tournament, pattern) pairs never occur.
"""

from __future__ import annotations

from typing import NamedTuple

import pandas as pd

from tug_of_war.model.core import Match, MatchInfo

TOURNAMENTS = ("single", "double")
OUTCOMES = ("win", "loss")

PATTERNS = (
    "confounded evidence",
    "strong indirect evidence",
    "weak indirect evidence",
    "diverse evidence",
    "confounded with partner",
    "confounded with opponent",
    "round robin",
)


class Condition(NamedTuple):
    """Experimental condition key."""

    tournament: str
    outcome: str
    pattern: str

    def __str__(self) -> str:
        return f"{self.tournament}/{self.outcome}/{self.pattern}"


def _round(team1: str, team2: str, winner: str) -> Match:
    t1, t2 = tuple(team1), tuple(team2)
    if winner not in (team1, team2):
        raise ValueError(f"Winner {winner!r} did not play in {team1} vs {team2}")
    return Match(t1, t2, team1_won=(winner == team1))


# Win configurations, one per (tournament, pattern). Team strings list
# members by single-letter name, so "AB" is the pair A and B.
_WIN_ROUNDS = {
    ("single", "confounded evidence"): (
        _round("A", "B", "A"), _round("A", "B", "A"), _round("A", "B", "A"),
    ),
    ("single", "strong indirect evidence"): (
        _round("A", "B", "A"), _round("B", "C", "B"), _round("B", "D", "B"),
    ),
    ("single", "weak indirect evidence"): (
        _round("A", "B", "A"), _round("B", "C", "C"), _round("B", "D", "D"),
    ),
    ("single", "diverse evidence"): (
        _round("A", "B", "A"), _round("A", "C", "A"), _round("A", "D", "A"),
    ),
    ("double", "confounded with partner"): (
        _round("AB", "CD", "AB"), _round("AB", "EF", "AB"), _round("AB", "GH", "AB"),
    ),
    ("double", "confounded with opponent"): (
        _round("AB", "CD", "AB"), _round("AE", "CF", "AE"), _round("AG", "CH", "AG"),
    ),
    ("double", "strong indirect evidence"): (
        _round("AB", "CD", "AB"), _round("CD", "EF", "CD"), _round("CD", "GH", "CD"),
    ),
    ("double", "weak indirect evidence"): (
        _round("AB", "CD", "AB"), _round("CD", "EF", "EF"), _round("CD", "GH", "GH"),
    ),
    ("double", "diverse evidence"): (
        _round("AB", "CD", "AB"), _round("AE", "FG", "AE"), _round("AH", "IJ", "AH"),
    ),
    ("double", "round robin"): (
        _round("AB", "CD", "AB"), _round("AC", "BD", "AC"), _round("AD", "BC", "AD"),
    ),
}


def _build_table() -> dict[Condition, MatchInfo]:
    table = {}
    for (tournament, pattern), rounds in _WIN_ROUNDS.items():
        win = MatchInfo(rounds, reference="A")
        table[Condition(tournament, "win", pattern)] = win
        table[Condition(tournament, "loss", pattern)] = win.flipped()
    return table


MATCH_CONFIGURATIONS: dict[Condition, MatchInfo] = _build_table()


def lookup_match(
    condition: Condition,
    table: dict[Condition, MatchInfo] | None = None,
) -> MatchInfo | None:
    """Match configuration for a condition, or None if it has none."""
    table = MATCH_CONFIGURATIONS if table is None else table
    return table.get(Condition(*condition))


def match_table(table: dict[Condition, MatchInfo] | None = None) -> pd.DataFrame:
    """
    Configuration table with one row per condition.

    Returns:
        DataFrame with columns tournament, outcome, pattern, round1..round3
        and n_people
    """
    table = MATCH_CONFIGURATIONS if table is None else table
    rows = []
    for cond, info in table.items():
        row = cond._asdict()
        for i, m in enumerate(info.rounds, 1):
            row[f"round{i}"] = str(m)
        row["n_people"] = len(info.people)
        rows.append(row)
    return pd.DataFrame(rows)
