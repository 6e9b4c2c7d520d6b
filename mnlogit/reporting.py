"""
Progress and diagnostic reporting for estimation runs.

The estimator never writes output on its own; it hands EstimationEvent objects
to a reporter callable. The default reporter forwards them to the standard
logging module, filtered by the requested verbosity.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger("mnlogit")

# Lowest event level forwarded for each verbosity setting
VERBOSITY_LEVELS = {
    "silent": logging.WARNING,
    "summary": logging.INFO,
    "trace": logging.DEBUG,
}


@dataclass(frozen=True)
class EstimationEvent:
    """A single progress or diagnostic message from the estimator."""

    kind: str
    message: str
    level: int = logging.INFO
    data: dict[str, Any] = field(default_factory=dict)


Reporter = Callable[[EstimationEvent], None]


def check_verbosity(verbose: str) -> str:
    if verbose not in VERBOSITY_LEVELS:
        raise ValueError(
            f"verbose must be one of {sorted(VERBOSITY_LEVELS)}, got {verbose!r}"
        )
    return verbose


class LoggingReporter:
    """Forward events at or above the verbosity threshold to a logger."""

    def __init__(
        self, verbose: str = "silent", log: Optional[logging.Logger] = None
    ) -> None:
        self.verbose = check_verbosity(verbose)
        self.threshold = VERBOSITY_LEVELS[verbose]
        self.log = log or logger

    def __call__(self, event: EstimationEvent) -> None:
        if event.level < self.threshold:
            return
        self.log.log(event.level, event.message)


class CollectingReporter:
    """Keep every event in memory; handy for tests and notebooks."""

    def __init__(self) -> None:
        self.events: list[EstimationEvent] = []

    def __call__(self, event: EstimationEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


def emit(
    reporter: Optional[Reporter],
    kind: str,
    message: str,
    level: int = logging.INFO,
    **data: Any,
) -> None:
    """Send an event to ``reporter`` if one is set."""
    if reporter is not None:
        reporter(EstimationEvent(kind=kind, message=message, level=level, data=data))
