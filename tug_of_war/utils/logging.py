"""
Console output for the CLI, notebooks and verbose model runs.

Status lines carry a one-character marker so progress from long inference
runs can be told apart from results. They are flushed immediately because
they are usually followed by minutes of sampling.
"""

import sys

SECTION_WIDTH = 70
KEY_WIDTH = 24

# Third-party loggers that report every sampling run at INFO level
_CHATTY_LOGGERS = ("pymc", "pytensor", "arviz")

_MARKERS = {
    "success": "✓ ",
    "error": "✗ ",
    "warning": "⚠️  ",
    "info": "ℹ  ",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging; sampler chatter is only shown when verbose."""
    import logging

    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(level)


def _rule(char: str, title: str, leading_blank: bool = False) -> None:
    print(("\n" if leading_blank else "") + char * SECTION_WIDTH)
    print(title)
    print(char * SECTION_WIDTH)


def print_section(title: str) -> None:
    """Print a formatted section header."""
    _rule("=", title)


def print_subsection(title: str) -> None:
    _rule("-", title, leading_blank=True)


def print_kv(label: str, value, indent: int = 2) -> None:
    """Print an aligned 'label: value' line."""
    print(f"{' ' * indent}{label + ':':<{KEY_WIDTH}}{value}")


def print_parameters(params: dict, indent: int = 2, digits: int = 3) -> None:
    """Print hyperparameter values one per line, floats to `digits` places."""
    for name, value in params.items():
        print_kv(name, f"{value:.{digits}f}" if isinstance(value, float) else value, indent)


def _status(kind: str, message: str) -> None:
    stream = sys.stderr if kind == "error" else sys.stdout
    print(f"{_MARKERS[kind]}{message}", file=stream, flush=True)


def print_success(message: str) -> None:
    _status("success", message)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    _status("error", message)


def print_warning(message: str) -> None:
    _status("warning", message)


def print_info(message: str) -> None:
    _status("info", message)
