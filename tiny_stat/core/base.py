"""
Base classes and interfaces for TinyStat streaming summaries.

This module defines the abstract base class that the accumulator and the
quantile sketch implement, giving them a consistent interface for updating,
querying and merging, together with size estimation and benchmarking hooks
for measuring their performance characteristics.
"""

import abc
import sys
from collections import deque
from typing import Any, Deque, Dict, Generic, Optional, TypeVar

T = TypeVar("T")  # Type for the items being processed
R = TypeVar("R")  # Type for the result of queries


class StreamSummary(Generic[T, R], abc.ABC):
    """
    Abstract base class for all streaming summaries.

    A summary sees each item of a stream exactly once through ``update`` and
    answers queries about everything seen so far without retaining the items.
    Summaries of the same type can be merged into a new summary describing
    the union of their streams.
    """

    def __init__(self, memory_limit_bytes: Optional[int] = None):
        """
        Initialize a new stream summary.

        Args:
            memory_limit_bytes: Optional maximum memory usage in bytes.
                                None means no explicit limit.
        """
        self._memory_limit_bytes = memory_limit_bytes
        self._items_processed = 0

        # Performance tracking attributes
        self._last_update_time: float = 0.0
        self._total_update_time: float = 0.0
        self._update_count: int = 0

        # Optional performance tracking buffer for recent updates
        self._tracking_enabled: bool = False
        self._recent_update_times: Optional[Deque[float]] = None
        self._max_update_history: int = 100

    @abc.abstractmethod
    def update(self, item: T) -> None:
        """
        Update the summary with a new item from the stream.

        Derived classes validate the item first and then call
        ``super().update(item)`` to count it.

        Args:
            item: The new item to process.
        """
        self._items_processed += 1

    @abc.abstractmethod
    def query(self, *args: Any, **kwargs: Any) -> R:
        """
        Query the current state of the summary.

        The parameters and return value depend on the specific algorithm.
        """

    @abc.abstractmethod
    def merge(self, other: "StreamSummary[T, R]") -> "StreamSummary[T, R]":
        """
        Merge this summary with another of the same type.

        Args:
            other: Another stream summary of the same type.

        Returns:
            A new merged stream summary. Neither input is modified.

        Raises:
            TypeError: If other is not of the same type.
        """

    def _check_same_type(self, other: "StreamSummary[T, R]") -> None:
        """
        Raise TypeError unless ``other`` is an instance of this summary's class.
        """
        if not isinstance(other, self.__class__):
            raise TypeError(f"Cannot merge with {other.__class__.__name__}")

    def _combine_items_processed(self, other: "StreamSummary[T, R]") -> int:
        """Return the combined count of processed items for a merge."""
        return self._items_processed + other._items_processed

    def _record_update_time(self, elapsed: float) -> None:
        """
        Record the wall time spent in one update.

        Derived classes time their own update body and report it here when
        performance tracking is enabled.
        """
        self._last_update_time = elapsed
        self._total_update_time += elapsed
        self._update_count += 1

        if self._recent_update_times is not None:
            self._recent_update_times.append(elapsed)

    def estimate_size(self) -> int:
        """
        Estimate the current memory usage of this summary in bytes.

        This is a rough estimate of the base object and its instance
        dictionary. Derived classes add the size of their own structures.

        Returns:
            Estimated memory usage in bytes.
        """
        size = sys.getsizeof(self)

        if hasattr(self, "__dict__"):
            size += sys.getsizeof(self.__dict__)

        if self._recent_update_times is not None:
            size += sys.getsizeof(self._recent_update_times)
            size += len(self._recent_update_times) * sys.getsizeof(0.0)

        return size

    def check_memory_limit(self) -> bool:
        """
        Check if the current memory usage is within the configured limit.

        Returns:
            True if there is no limit or usage is within it, False otherwise.
        """
        if self._memory_limit_bytes is None:
            return True

        return self.estimate_size() <= self._memory_limit_bytes

    def enable_performance_tracking(
        self, track_recent_updates: bool = True, max_history: int = 100
    ) -> None:
        """
        Enable update timing for benchmarking.

        Timing adds overhead to every update, so it should only be enabled
        when benchmarking or debugging performance issues.

        Args:
            track_recent_updates: Whether to keep the timings of recent updates.
            max_history: Maximum number of recent update timings to keep.
        """
        self._tracking_enabled = True
        self._max_update_history = max(1, max_history)

        if track_recent_updates:
            self._recent_update_times = deque(maxlen=self._max_update_history)
        else:
            self._recent_update_times = None

    def disable_performance_tracking(self) -> None:
        """Disable performance tracking to remove its overhead."""
        self._tracking_enabled = False
        self._recent_update_times = None

    @property
    def performance_tracking(self) -> bool:
        """Whether updates are currently being timed."""
        return self._tracking_enabled

    def get_performance_stats(self) -> Dict[str, Any]:
        """
        Get performance statistics for this summary.

        Returns:
            A dictionary with the items processed, memory usage and, when
            tracking is enabled, average/last/recent update times in
            nanoseconds.
        """
        stats: Dict[str, Any] = {
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9
            stats["last_update_time_ns"] = self._last_update_time * 1e9

        if self._recent_update_times:
            recent_times_ns = [t * 1e9 for t in self._recent_update_times]
            stats["recent_update_times_ns"] = recent_times_ns
            stats["min_update_time_ns"] = min(recent_times_ns)
            stats["max_update_time_ns"] = max(recent_times_ns)

        return stats

    def get_stats(self) -> Dict[str, Any]:
        """
        Get detailed statistics about the current state of the summary.

        Derived classes extend this with their own statistics while calling
        ``super().get_stats()`` to include the base metrics.

        Returns:
            A dictionary containing various statistics about the summary state.
        """
        stats: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "items_processed": self._items_processed,
            "memory_bytes": self.estimate_size(),
        }

        if self._memory_limit_bytes is not None:
            stats["memory_limit_bytes"] = self._memory_limit_bytes
            stats["memory_usage_pct"] = (
                self.estimate_size() / self._memory_limit_bytes
            ) * 100

        if self._update_count > 0:
            stats["avg_update_time_ns"] = (
                self._total_update_time / self._update_count
            ) * 1e9

        return stats

    def error_bounds(self) -> Dict[str, Any]:
        """
        Get the theoretical error bounds for this summary.

        The base implementation returns an empty dictionary; approximate
        summaries override it to describe their accuracy/memory tradeoff.
        """
        return {}

    @property
    def items_processed(self) -> int:
        """Get the total number of items processed by this summary."""
        return self._items_processed

    @property
    def is_empty(self) -> bool:
        """Check if the summary has seen any items."""
        return self._items_processed == 0

    def __len__(self) -> int:
        """Return the number of items processed."""
        return self._items_processed
