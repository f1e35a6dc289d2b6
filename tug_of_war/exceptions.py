"""Exceptions raised by the tug-of-war package.

All inherit from ValueError so callers catching ValueError keep working.

Exception Hierarchy:
    TugOfWarError (ValueError)
    ├── DataValidationError
    ├── ConditioningError
    └── ContinuousSupportError
"""

from __future__ import annotations


class TugOfWarError(ValueError):
    """Base exception for all tug-of-war errors."""

    pass


class DataValidationError(TugOfWarError):
    """Raised when a ratings table is malformed.

    Common causes:
        - Required columns missing from the CSV
        - Ratings that are not numeric
        - Unknown tournament or outcome labels
    """

    pass


class ConditioningError(TugOfWarError):
    """Raised when conditioning is infeasible or yields too few samples.

    Rejection sampling gives up after its attempt budget and enumeration
    reports a zero normalizing constant, rather than returning an empty or
    biased posterior.
    """

    def __init__(self, message: str, accepted: int = 0, attempts: int = 0):
        super().__init__(message)
        self.accepted = accepted
        self.attempts = attempts


class ContinuousSupportError(TugOfWarError):
    """Raised when enumeration reaches a choice with no finite support."""

    pass
