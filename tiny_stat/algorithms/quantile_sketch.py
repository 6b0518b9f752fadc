# tiny_stat/algorithms/quantile_sketch.py

import bisect
import logging
import math
import sys
from typing import Any, Dict, List, Optional, Tuple, TypeVar, Union

from tiny_stat.core.base import StreamSummary

logger = logging.getLogger(__name__)

# Type variable for the class itself (for merge)
TDigestType = TypeVar("TDigestType", bound="TDigest")


class _Centroid:
    """Internal representation of a centroid in the T-Digest algorithm."""

    __slots__ = ["mean", "weight"]

    def __init__(self, mean: float, weight: float = 1.0):
        """Initialize a centroid with a mean value and weight."""
        if weight < 0:
            raise ValueError("Centroid weight cannot be negative")
        self.mean = float(mean)
        self.weight = float(weight)

    def __lt__(self, other: "_Centroid") -> bool:
        """Allow centroids to be sorted by mean value."""
        return self.mean < other.mean

    def __repr__(self) -> str:
        """Provide a readable representation of the centroid."""
        return f"Centroid(mean={self.mean:.4g}, weight={self.weight:.4g})"

    def absorb(self, other: "_Centroid") -> None:
        """Fold another centroid into this one, keeping the weighted mean."""
        total = self.weight + other.weight
        # Incremental form keeps the mean inside [self.mean, other.mean]
        self.mean += (other.mean - self.mean) * (other.weight / total)
        self.weight = total


class TDigest(StreamSummary[float, float]):
    """
    T-Digest for efficient and accurate quantile estimation over data streams.

    The T-Digest (Dunning, 2019) is a probabilistic data structure that provides
    accurate estimation of quantiles while using bounded memory. Key properties:

    1. Memory usage is controlled by the compression parameter, not data size
    2. Accuracy is non-uniform: extreme quantiles (near 0 or 1) are more precise
    3. Error bounds scale with q(1-q), making tails more accurate
    4. Mergeable: multiple digests from separate streams can be combined

    This is the merging variant: incoming values collect in a buffer and are
    folded into the sorted centroid list in a single pass whenever the buffer
    fills. The pass uses the k1 scale function

        k(q) = compression / (2 * pi) * asin(2q - 1)

    and lets a cluster grow only while it spans at most one unit of k. Since k
    is steep near q = 0 and q = 1, clusters there stay small, and the number
    of centroids is bounded by about ``compression`` however long the stream.
    """

    DEFAULT_COMPRESSION: int = 100
    DEFAULT_BUFFER_FACTOR: int = 5

    def __init__(self, compression: int = DEFAULT_COMPRESSION):
        """
        Initialize a TDigest sketch.

        Args:
            compression: Controls accuracy and memory usage. Higher values
                improve accuracy at the cost of more memory. The number of
                centroids after compression is bounded by about this value.
                Must be >= 20. Default: 100.

        Raises:
            ValueError: If compression is less than 20 or not an integer.
        """
        super().__init__()
        if (
            not isinstance(compression, int)
            or isinstance(compression, bool)
            or compression < 20
        ):
            raise ValueError("Compression factor must be an integer >= 20")

        self.compression: int = compression
        self._centroids: List[_Centroid] = []
        self._unmerged_buffer: List[_Centroid] = []
        self._buffer_size: int = max(10, self.DEFAULT_BUFFER_FACTOR * self.compression)

        # Cumulative weight at the midpoint of each centroid, rebuilt on flush
        self._midpoints: List[float] = []

        self._total_weight: float = 0.0
        self._min_val: Optional[float] = None
        self._max_val: Optional[float] = None

    def update(self, item: float, weight: float = 1.0) -> None:
        """
        Add a value to the sketch.

        The value is buffered; when the buffer reaches capacity it is merged
        into the centroids.

        Args:
            item: Numeric value to add. Non-finite values (NaN, +/-Inf) and
                  ints beyond float range are ignored.
            weight: Positive weight of the value. Default: 1.0.

        Raises:
            ValueError: If weight is not a positive finite number.
        """
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return
        try:
            if not math.isfinite(item):
                return
        except OverflowError:
            # int too large for a float
            return
        if not (isinstance(weight, (int, float)) and 0 < weight < math.inf):
            raise ValueError("Weight must be a positive finite number")

        super().update(item)

        item = float(item)
        self._unmerged_buffer.append(_Centroid(item, weight))
        self._total_weight += weight

        # Track min/max for precise quantile estimation at the extremes
        if self._min_val is None or item < self._min_val:
            self._min_val = item
        if self._max_val is None or item > self._max_val:
            self._max_val = item

        if len(self._unmerged_buffer) >= self._buffer_size:
            self._process_buffer()

    def _process_buffer(self) -> None:
        """
        Merge buffered values into the centroid list.
        """
        if not self._unmerged_buffer:
            return

        # Both lists are sorted runs after the first flush; timsort exploits that
        self._unmerged_buffer.sort()
        combined = self._centroids + self._unmerged_buffer
        combined.sort()
        self._unmerged_buffer = []

        before = len(combined)
        self._centroids = self._merge_pass(combined)
        self._rebuild_midpoints()

        logger.debug(
            "TDigest flush: %d centroids -> %d (compression=%d, weight=%g)",
            before,
            len(self._centroids),
            self.compression,
            self._total_weight,
        )

    def _k_scale(self, q: float) -> float:
        """k1 scale function, mapping a quantile to k-space."""
        return self.compression / (2 * math.pi) * math.asin(2 * q - 1)

    def _k_inverse(self, k: float) -> float:
        """Inverse of the k1 scale function, clamped to [0, 1]."""
        if k >= self.compression / 4:
            return 1.0
        return (math.sin(k * 2 * math.pi / self.compression) + 1) / 2

    def _merge_pass(self, centroids: List[_Centroid]) -> List[_Centroid]:
        """
        Fold sorted centroids into clusters no wider than one unit of k.

        Args:
            centroids: Centroids sorted by mean. They are not modified.

        Returns:
            The compressed, sorted centroid list.
        """
        total = sum(c.weight for c in centroids)
        merged: List[_Centroid] = []

        current = _Centroid(centroids[0].mean, centroids[0].weight)
        weight_before = 0.0
        weight_limit = total * self._k_inverse(self._k_scale(0.0) + 1)

        for c in centroids[1:]:
            if weight_before + current.weight + c.weight <= weight_limit:
                current.absorb(c)
                continue

            merged.append(current)
            weight_before += current.weight
            q = min(1.0, weight_before / total)
            weight_limit = total * self._k_inverse(self._k_scale(q) + 1)
            current = _Centroid(c.mean, c.weight)

        merged.append(current)
        return merged

    def _rebuild_midpoints(self) -> None:
        """Recompute the cumulative weight at each centroid's midpoint."""
        midpoints = []
        cumulative = 0.0
        for c in self._centroids:
            midpoints.append(cumulative + c.weight / 2.0)
            cumulative += c.weight
        self._midpoints = midpoints

    def query(self, quantile: float) -> float:
        """
        Estimate the value at the given quantile.

        Args:
            quantile: Target quantile between 0.0 and 1.0.
                      0.0 returns the minimum value.
                      0.5 returns the estimated median.
                      1.0 returns the maximum value.

        Returns:
            Estimated value at the specified quantile. Returns NaN
            if the sketch is empty.

        Raises:
            ValueError: If quantile is not between 0.0 and 1.0.
        """
        if not (0.0 <= quantile <= 1.0):
            raise ValueError("Quantile must be between 0.0 and 1.0")

        # Ensure all buffered data is incorporated
        self._process_buffer()

        if not self._centroids or self._total_weight == 0:
            return float("nan")

        # The tracked extremes are exact, so the ends need no estimate
        if quantile == 0.0:
            return self._min_val
        if quantile == 1.0:
            return self._max_val

        target = quantile * self._total_weight
        midpoints = self._midpoints
        first = self._centroids[0]
        last = self._centroids[-1]

        if target <= midpoints[0]:
            # Left half of the first centroid: interpolate up from the minimum
            fraction = target / midpoints[0]
            return self._min_val + fraction * (first.mean - self._min_val)

        if target >= midpoints[-1]:
            # Right half of the last centroid: interpolate up to the maximum
            fraction = (target - midpoints[-1]) / (last.weight / 2.0)
            fraction = min(1.0, fraction)
            return last.mean + fraction * (self._max_val - last.mean)

        # midpoints[i - 1] < target <= midpoints[i]
        i = bisect.bisect_left(midpoints, target)
        lower = self._centroids[i - 1]
        upper = self._centroids[i]

        span = midpoints[i] - midpoints[i - 1]
        if span <= 1e-9:
            return upper.mean

        fraction = (target - midpoints[i - 1]) / span
        return lower.mean + fraction * (upper.mean - lower.mean)

    def merge(self: TDigestType, other: TDigestType) -> TDigestType:
        """
        Merge this sketch with another T-Digest.

        Creates a new sketch that represents the combined data from both inputs.
        The original sketches are not modified.

        Args:
            other: Another TDigest sketch with the same compression parameter.

        Returns:
            A new TDigest containing data from both inputs.

        Raises:
            TypeError: If 'other' is not a TDigest.
            ValueError: If the compression parameters don't match.
        """
        self._check_same_type(other)

        if self.compression != other.compression:
            raise ValueError(
                f"Cannot merge TDigest sketches with different compression factors: "
                f"{self.compression} != {other.compression}"
            )

        merged_sketch = self.__class__(compression=self.compression)

        # Copies, so later flushes of the merged sketch leave the inputs alone
        merged_sketch._unmerged_buffer = [
            _Centroid(c.mean, c.weight)
            for c in (
                self._centroids
                + self._unmerged_buffer
                + other._centroids
                + other._unmerged_buffer
            )
        ]
        merged_sketch._total_weight = self._total_weight + other._total_weight
        merged_sketch._items_processed = self._combine_items_processed(other)

        extremes = [
            v
            for v in (self._min_val, other._min_val, self._max_val, other._max_val)
            if v is not None
        ]
        if extremes:
            merged_sketch._min_val = min(extremes)
            merged_sketch._max_val = max(extremes)

        merged_sketch._process_buffer()
        logger.debug(
            "Merged TDigests (%d + %d items) into %d centroids",
            self.items_processed,
            other.items_processed,
            len(merged_sketch._centroids),
        )
        return merged_sketch

    @property
    def total_weight(self) -> float:
        """Total weight of all values added, buffered or merged."""
        return self._total_weight

    @property
    def min_value(self) -> Optional[float]:
        """Smallest value seen, or None if the sketch is empty."""
        return self._min_val

    @property
    def max_value(self) -> Optional[float]:
        """Largest value seen, or None if the sketch is empty."""
        return self._max_val

    def get_centroids(self) -> List[Tuple[float, float]]:
        """
        Return the current centroids as (mean, weight) tuples.

        This is primarily for debugging and inspection purposes.

        Returns:
            List of centroids as (mean, weight) tuples, sorted by mean.
        """
        self._process_buffer()
        return [(c.mean, c.weight) for c in self._centroids]

    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the T-Digest in bytes.

        Returns:
            Estimated size in bytes.
        """
        size = super().estimate_size()

        size += sys.getsizeof(self.compression)
        size += sys.getsizeof(self._total_weight)
        size += sys.getsizeof(self._buffer_size)
        if self._min_val is not None:
            size += sys.getsizeof(self._min_val)
        if self._max_val is not None:
            size += sys.getsizeof(self._max_val)

        per_centroid = sys.getsizeof(_Centroid(0.0)) + 2 * sys.getsizeof(0.0)

        size += sys.getsizeof(self._centroids)
        size += len(self._centroids) * per_centroid
        size += sys.getsizeof(self._midpoints)
        size += len(self._midpoints) * sys.getsizeof(0.0)

        size += sys.getsizeof(self._unmerged_buffer)
        size += len(self._unmerged_buffer) * per_centroid

        return size

    #
    # Benchmarking hooks
    #
    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the T-Digest.

        Returns:
            A dictionary describing the sketch configuration, its centroid
            structure and its error characteristics.
        """
        self._process_buffer()

        stats = super().get_stats()
        stats.update(
            {
                "compression": self.compression,
                "buffer_size": self._buffer_size,
                "total_weight": self._total_weight,
                "num_centroids": len(self._centroids),
                "buffer_items": len(self._unmerged_buffer),
                "compression_ratio": len(self._centroids) / max(1, self.compression),
            }
        )

        if self._min_val is not None:
            stats["min_value"] = self._min_val
        if self._max_val is not None:
            stats["max_value"] = self._max_val

        if self._centroids:
            weights = [c.weight for c in self._centroids]
            stats.update(
                {
                    "min_weight": min(weights),
                    "max_weight": max(weights),
                    "avg_weight": sum(weights) / len(weights),
                    "total_centroid_weight": sum(weights),
                }
            )

            means = [c.mean for c in self._centroids]
            if len(means) > 1:
                span = means[-1] - means[0]
                stats["centroid_span"] = span
                stats["avg_centroid_spacing"] = span / (len(means) - 1)

        stats.update(self.error_bounds())

        if self.items_processed > 0:
            stats["bytes_per_item"] = self.estimate_size() / self.items_processed

        return stats

    def error_bounds(self) -> Dict[str, Union[str, float, Dict[str, float]]]:
        """
        Calculate the theoretical error bounds for this T-Digest.

        T-Digest error is non-uniform: the rank error at quantile q is
        roughly proportional to q(1-q)/compression, so tails are tighter
        than the median.

        Returns:
            A dictionary with error characteristics at different quantiles.
        """
        self._process_buffer()

        if self.is_empty or not self._centroids:
            return {"state": "empty"}

        c = self.compression
        quantiles = [0.001, 0.01, 0.05, 0.25, 0.5, 0.75, 0.95, 0.99, 0.999]
        return {
            "accuracy_model": "non-uniform (higher at tails)",
            "theoretical_max_centroids": c,
            "actual_centroids": len(self._centroids),
            "error_bounds": {f"q{q:.3f}": q * (1 - q) / c for q in quantiles},
        }

    @classmethod
    def create_from_accuracy_target(
        cls, accuracy_target: float, tail_focus: bool = True
    ) -> "TDigest":
        """
        Create a T-Digest with a compression factor sized for a target accuracy.

        Args:
            accuracy_target: Target rank error for quantile estimates (0.0-1.0).
            tail_focus: If True, sizes for accuracy at q=0.01/0.99,
                        otherwise for the median.

        Returns:
            A new T-Digest configured for the target accuracy.

        Raises:
            ValueError: If accuracy_target is not between 0 and 1.
        """
        if not (0.0 < accuracy_target < 1.0):
            raise ValueError("Accuracy target must be between 0 and 1")

        # Rank error ~ q(1-q)/compression: 0.0099/c at the tails, 0.25/c at the median
        numerator = 0.0099 if tail_focus else 0.25
        compression = max(20, math.ceil(numerator / accuracy_target))

        return cls(compression=compression)

    def __repr__(self) -> str:
        return (
            f"TDigest(compression={self.compression}, "
            f"items_processed={self.items_processed})"
        )
