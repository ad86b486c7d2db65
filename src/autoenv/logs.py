"""structlog configuration for diagnostic output.

Diagnostics go to stderr so they never mix with REPL or report output.
Only warnings and errors are shown unless ``verbose`` is set.
"""

import logging
import sys

import structlog


def setup_logging(verbose: bool = False) -> None:
    """Configure structlog for the process."""
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
