"""
Running statistics accumulator for TinyStat.

This module provides an Accumulator that summarizes a stream of numbers in a
single pass: minimum, maximum, count, sum, sum of squares, mean, root mean
square and population standard deviation, each updated in constant time and
memory per sample. Optionally, the same samples also feed a T-Digest so the
accumulator can answer approximate quantile queries.

Mean is recomputed from the running sum on every update rather than through
the incremental mean recurrence. Standard deviation comes from Welford's
online algorithm, which avoids the catastrophic cancellation of the
sum-of-squares formula when the mean is large compared to the spread.

References:
    - Welford, B. P. (1962). Note on a method for calculating corrected sums
      of squares and products. Technometrics, 4(3), 419-420.
    - Chan, T. F., Golub, G. H., & LeVeque, R. J. (1979). Updating formulae
      and a pairwise algorithm for computing sample variances.
"""

import logging
import math
import sys
import time
from typing import Any, BinaryIO, Dict, Optional, Union

from tiny_stat.algorithms.quantile_sketch import TDigest
from tiny_stat.core.base import StreamSummary
from tiny_stat.core.errors import EmptySummaryError, QuantilesDisabledError
from tiny_stat.core.numeric import Number, NumericKind, get_kind

logger = logging.getLogger(__name__)


class Accumulator(StreamSummary[Number, float]):
    """
    Single-pass summary of a numeric stream.

    The accumulator is parameterized by a numeric kind (see
    ``tiny_stat.core.numeric``) which validates each sample and decides the
    type reported by ``min`` and ``max``. All other statistics are computed
    in double precision.

    An accumulator starts empty and becomes populated with its first sample;
    there is no way back to the empty state. Statistics other than ``count``,
    ``sum`` and ``sum_squares`` raise EmptySummaryError while it is empty.

    The accumulator is not thread-safe: a single owner performs all updates.

    Example:
        >>> acc = Accumulator("int64", enable_quantiles=True)
        >>> for v in range(10):
        ...     acc.update(v)
        >>> acc.mean
        4.5
    """

    # Compression of the internal T-Digest when quantiles are enabled
    QUANTILE_COMPRESSION: int = 1000
    DEFAULT_KIND: str = "float64"

    def __init__(
        self,
        kind: Union[str, NumericKind] = DEFAULT_KIND,
        enable_quantiles: bool = False,
        memory_limit_bytes: Optional[int] = None,
    ):
        """
        Initialize an empty accumulator.

        Args:
            kind: Numeric kind of the samples, by name ("int32", "uint8",
                  "float64", ...) or as a NumericKind. Default: "float64".
            enable_quantiles: Whether to maintain a T-Digest for quantile
                              estimation. Default: False.
            memory_limit_bytes: Optional maximum memory usage in bytes.

        Raises:
            ValueError: If kind is not a known numeric kind.
        """
        super().__init__(memory_limit_bytes)

        self._kind = get_kind(kind)

        self._min: Number = 0
        self._max: Number = 0
        self._sum: float = 0.0
        self._sum_squares: float = 0.0
        self._mean: float = 0.0

        # Welford state: running mean and sum of squared deviations from it
        self._running_mean: float = 0.0
        self._m2: float = 0.0

        self._digest: Optional[TDigest] = None
        if enable_quantiles:
            self._digest = TDigest(compression=self.QUANTILE_COMPRESSION)
            logger.debug(
                "Accumulator(%s) created with quantile sketch (compression=%d)",
                self._kind,
                self.QUANTILE_COMPRESSION,
            )

    def update(self, item: Number) -> None:
        """
        Add a sample to the accumulator.

        Args:
            item: The sample. Must be valid for the accumulator's kind.

        Raises:
            TypeError: If the sample's type is not accepted by the kind.
            ValueError: If the sample is out of range for the kind, or is
                        not finite.
        """
        start = time.perf_counter() if self._tracking_enabled else None

        value = self._kind.cast(item)
        x = float(value)
        if not math.isfinite(x):
            raise ValueError(f"Cannot accumulate non-finite value {item!r}")

        super().update(value)
        n = self._items_processed

        if n == 1:
            self._min = value
            self._max = value
            self._sum = x
            self._sum_squares = x * x
            self._mean = x
            self._running_mean = x
            self._m2 = 0.0
        else:
            if value < self._min:
                self._min = value
            if value > self._max:
                self._max = value
            self._sum += x
            self._sum_squares += x * x
            self._mean = self._sum / n

            delta = x - self._running_mean
            self._running_mean += delta / n
            self._m2 += delta * (x - self._running_mean)

        if self._digest is not None:
            self._digest.update(x, 1.0)

        if start is not None:
            self._record_update_time(time.perf_counter() - start)

    def _require_samples(self, statistic: str) -> None:
        if self._items_processed == 0:
            raise EmptySummaryError(statistic)

    @property
    def kind(self) -> NumericKind:
        """The numeric kind of the samples."""
        return self._kind

    @property
    def quantiles_enabled(self) -> bool:
        """Whether the accumulator maintains a quantile sketch."""
        return self._digest is not None

    @property
    def count(self) -> int:
        """Number of samples added."""
        return self._items_processed

    @property
    def sum(self) -> float:
        """Sum of all samples in double precision (0.0 when empty)."""
        return self._sum

    @property
    def sum_squares(self) -> float:
        """Sum of the squares of all samples in double precision (0.0 when empty)."""
        return self._sum_squares

    @property
    def min(self) -> Number:
        """Smallest sample seen, as the kind's native type."""
        self._require_samples("min")
        return self._min

    @property
    def max(self) -> Number:
        """Largest sample seen, as the kind's native type."""
        self._require_samples("max")
        return self._max

    @property
    def mean(self) -> float:
        """Arithmetic mean, ``sum / count``."""
        self._require_samples("mean")
        return self._mean

    @property
    def rms(self) -> float:
        """Root mean square, ``sqrt(sum_squares / count)``."""
        self._require_samples("rms")
        return math.sqrt(self._sum_squares / self._items_processed)

    @property
    def variance(self) -> float:
        """Population variance (divisor ``count``)."""
        self._require_samples("variance")
        return self._m2 / self._items_processed

    @property
    def stddev(self) -> float:
        """Population standard deviation (divisor ``count``)."""
        self._require_samples("stddev")
        return math.sqrt(self._m2 / self._items_processed)

    def quantile(self, q: float) -> float:
        """
        Estimate the value at quantile ``q``.

        Args:
            q: Quantile between 0.0 and 1.0.

        Returns:
            The T-Digest estimate of the value at rank q. q=0 and q=1 return
            the exact minimum and maximum.

        Raises:
            QuantilesDisabledError: If the accumulator was created without
                                    enable_quantiles.
            EmptySummaryError: If no samples were added.
            ValueError: If q is not between 0.0 and 1.0.
        """
        if self._digest is None:
            raise QuantilesDisabledError("quantile")
        self._require_samples("quantile")
        return self._digest.query(q)

    def query(self, q: float) -> float:
        """Alias for ``quantile`` to satisfy the StreamSummary interface."""
        return self.quantile(q)

    def summarize(self) -> str:
        """
        Format the accumulator as a text summary.

        See ``tiny_stat.reporting.text.format_summary`` for the layout.

        Raises:
            EmptySummaryError: If no samples were added.
        """
        from tiny_stat.reporting.text import format_summary

        return format_summary(self)

    def draw_png(self, fp: BinaryIO, points: int = 100) -> None:
        """
        Render the estimated quantile curve as a PNG image.

        The curve is sampled at ``points`` equally spaced ranks i / points
        for i in range(points).

        Args:
            fp: Binary stream the PNG is written to.
            points: Number of rank points to sample. Default: 100.

        Raises:
            QuantilesDisabledError: If the accumulator was created without
                                    enable_quantiles.
            EmptySummaryError: If no samples were added.
            ValueError: If points is less than 1.
        """
        if self._digest is None:
            raise QuantilesDisabledError("quantile plot")
        self._require_samples("quantile plot")

        # matplotlib is only loaded when a plot is actually drawn
        from tiny_stat.reporting.plot import quantile_curve, render_quantile_curve

        render_quantile_curve(quantile_curve(self._digest.query, points), fp)

    def merge(self, other: "Accumulator") -> "Accumulator":
        """
        Combine this accumulator with another into a new one.

        The result describes the concatenation of both streams. Neither input
        is modified.

        Args:
            other: Another Accumulator of the same kind and quantile setting.

        Returns:
            A new Accumulator.

        Raises:
            TypeError: If other is not an Accumulator.
            ValueError: If the kinds or quantile settings differ.
        """
        self._check_same_type(other)

        if self._kind != other._kind:
            raise ValueError(
                f"Cannot merge accumulators of different kinds: "
                f"{self._kind} != {other._kind}"
            )
        if self.quantiles_enabled != other.quantiles_enabled:
            raise ValueError(
                "Cannot merge accumulators with different quantile settings"
            )

        merged = self.__class__(
            kind=self._kind,
            enable_quantiles=False,
            memory_limit_bytes=self._memory_limit_bytes,
        )
        n_a = self._items_processed
        n_b = other._items_processed
        n = n_a + n_b

        if n_a == 0 or n_b == 0:
            source = other if n_a == 0 else self
            merged._min = source._min
            merged._max = source._max
            merged._running_mean = source._running_mean
            merged._m2 = source._m2
        else:
            merged._min = min(self._min, other._min)
            merged._max = max(self._max, other._max)

            # Chan et al. pairwise combination of the Welford state
            delta = other._running_mean - self._running_mean
            merged._running_mean = self._running_mean + delta * n_b / n
            merged._m2 = self._m2 + other._m2 + delta * delta * n_a * n_b / n

        merged._items_processed = n
        merged._sum = self._sum + other._sum
        merged._sum_squares = self._sum_squares + other._sum_squares
        merged._mean = merged._sum / n if n else 0.0

        if self._digest is not None and other._digest is not None:
            merged._digest = self._digest.merge(other._digest)

        logger.debug("Merged accumulators (%d + %d samples)", n_a, n_b)
        return merged

    def estimate_size(self) -> int:
        """
        Estimate the memory footprint of the accumulator in bytes.

        Constant for a disabled sketch; bounded by the digest's compression
        otherwise.
        """
        size = super().estimate_size()
        size += sys.getsizeof(self._min) + sys.getsizeof(self._max)
        size += 5 * sys.getsizeof(0.0)
        if self._digest is not None:
            size += self._digest.estimate_size()
        return size

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the accumulator.

        Returns:
            A dictionary with the configuration, the running statistics (when
            populated) and the quantile sketch structure (when enabled).
        """
        stats = super().get_stats()
        stats.update(
            {
                "kind": self._kind.name,
                "quantiles_enabled": self.quantiles_enabled,
                "count": self.count,
                "sum": self._sum,
                "sum_squares": self._sum_squares,
            }
        )

        if not self.is_empty:
            stats.update(
                {
                    "min": self._min,
                    "max": self._max,
                    "mean": self.mean,
                    "rms": self.rms,
                    "stddev": self.stddev,
                }
            )

        if self._digest is not None:
            digest_stats = self._digest.get_stats()
            stats["quantile_compression"] = digest_stats["compression"]
            stats["num_centroids"] = digest_stats["num_centroids"]
            stats["error_bounds"] = self.error_bounds()

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Error characteristics of the accumulator.

        Point statistics are exact up to double-precision rounding; only the
        quantile estimates carry approximation error, described by the
        digest's bounds.
        """
        if self._digest is None:
            return {}
        return self._digest.error_bounds()

    def __str__(self) -> str:
        if self.is_empty:
            return repr(self)
        return self.summarize()

    def __repr__(self) -> str:
        return (
            f"Accumulator(kind='{self._kind}', count={self.count}, "
            f"quantiles_enabled={self.quantiles_enabled})"
        )
