"""
Algorithm implementations for TinyStat.
"""

from tiny_stat.algorithms.accumulator import Accumulator
from tiny_stat.algorithms.quantile_sketch import TDigest

__all__ = [
    "Accumulator",
    "TDigest",
]
