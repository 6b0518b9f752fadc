"""
tiny-stat - Lightweight Streaming Statistics

tiny-stat is a Python library for summarizing numeric streams in a single pass:
running min, max, count, sum, mean, rms and standard deviation in constant
memory, with optional T-Digest quantile estimation.
"""

import logging

__version__ = "0.1.0"

# Import main classes to make them available at the top level
from tiny_stat.algorithms.accumulator import Accumulator
from tiny_stat.algorithms.quantile_sketch import TDigest
from tiny_stat.core.base import StreamSummary
from tiny_stat.core.errors import (
    EmptySummaryError,
    QuantilesDisabledError,
    TinyStatError,
)
from tiny_stat.core.numeric import NumericKind, get_kind

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Core base classes
    "StreamSummary",
    "NumericKind",
    "get_kind",
    # Errors
    "TinyStatError",
    "EmptySummaryError",
    "QuantilesDisabledError",
    # Algorithm implementations
    "Accumulator",
    "TDigest",
]
