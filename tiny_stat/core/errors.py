"""
Exceptions raised by TinyStat summaries.

Argument validation uses the built-in ``ValueError`` and ``TypeError``; the
classes below cover the two conditions that are specific to a running
summary: asking for a statistic before any sample was seen, and asking for a
quantile from an accumulator that was built without a quantile sketch.
"""


class TinyStatError(Exception):
    """Base class for all TinyStat errors."""


class EmptySummaryError(TinyStatError, ValueError):
    """Raised when a statistic is requested from a summary with no samples."""

    def __init__(self, statistic: str):
        super().__init__(f"Cannot compute {statistic} of an empty summary")
        self.statistic = statistic


class QuantilesDisabledError(TinyStatError, RuntimeError):
    """Raised when a quantile-dependent operation runs without a quantile sketch."""

    def __init__(self, operation: str = "quantile"):
        super().__init__(
            f"Cannot compute {operation}: quantile estimation is disabled "
            "(construct the accumulator with enable_quantiles=True)"
        )
        self.operation = operation
