"""Shared utilities for the tug-of-war project.

cli_helpers depends on the model package and is imported directly
(`from tug_of_war.utils.cli_helpers import ...`) to keep this package
importable from the model modules.
"""

from .logging import (
    setup_logging,
    print_section,
    print_subsection,
    print_kv,
    print_parameters,
    print_success,
    print_error,
    print_warning,
    print_info,
)
from .constants import EPSILON, BIN_LOW, BIN_HIGH, BIN_STEP, ROUND_DIGITS

__all__ = [
    "setup_logging",
    "print_section",
    "print_subsection",
    "print_kv",
    "print_parameters",
    "print_success",
    "print_error",
    "print_warning",
    "print_info",
    "EPSILON",
    "BIN_LOW",
    "BIN_HIGH",
    "BIN_STEP",
    "ROUND_DIGITS",
]
