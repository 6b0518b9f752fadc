"""
Core functionality for TinyStat.
"""

from tiny_stat.core.base import StreamSummary
from tiny_stat.core.errors import (
    EmptySummaryError,
    QuantilesDisabledError,
    TinyStatError,
)
from tiny_stat.core.numeric import KINDS, NumericKind, get_kind

__all__ = [
    # Base classes
    "StreamSummary",
    # Numeric kinds
    "NumericKind",
    "KINDS",
    "get_kind",
    # Errors
    "TinyStatError",
    "EmptySummaryError",
    "QuantilesDisabledError",
]
