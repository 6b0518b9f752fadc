# tests/unit/test_quantile_sketch.py

import math
import random
import unittest

from tiny_stat.algorithms.quantile_sketch import TDigest, _Centroid


class TestCentroid(unittest.TestCase):
    """Tests for the internal _Centroid helper class."""

    def test_init(self):
        c = _Centroid(mean=10.0, weight=5.0)
        self.assertEqual(c.mean, 10.0)
        self.assertEqual(c.weight, 5.0)

    def test_init_negative_weight(self):
        with self.assertRaises(ValueError):
            _Centroid(mean=10.0, weight=-1.0)

    def test_lt(self):
        c1 = _Centroid(mean=5.0, weight=1.0)
        c2 = _Centroid(mean=10.0, weight=1.0)
        c3 = _Centroid(mean=5.0, weight=2.0)  # Same mean as c1
        self.assertTrue(c1 < c2)
        self.assertFalse(c2 < c1)
        self.assertFalse(c1 < c3)  # Comparison should only use mean
        self.assertFalse(c3 < c1)

    def test_repr(self):
        c = _Centroid(mean=12.3456, weight=7.89)
        self.assertEqual(repr(c), "Centroid(mean=12.35, weight=7.89)")

    def test_absorb(self):
        c = _Centroid(mean=10.0, weight=1.0)
        c.absorb(_Centroid(mean=20.0, weight=3.0))
        self.assertAlmostEqual(c.mean, 17.5)
        self.assertEqual(c.weight, 4.0)


class TestTDigest(unittest.TestCase):
    """Tests for the TDigest quantile sketch implementation."""

    def test_initialization_defaults(self):
        td = TDigest()
        self.assertEqual(td.compression, TDigest.DEFAULT_COMPRESSION)
        self.assertEqual(td.items_processed, 0)
        self.assertEqual(td.total_weight, 0.0)
        self.assertEqual(len(td._centroids), 0)
        self.assertEqual(len(td._unmerged_buffer), 0)
        self.assertIsNone(td.min_value)
        self.assertIsNone(td.max_value)
        self.assertTrue(td.is_empty)

    def test_initialization_custom_compression(self):
        td = TDigest(compression=50)
        self.assertEqual(td.compression, 50)
        self.assertEqual(td._buffer_size, 250)

    def test_initialization_invalid_compression(self):
        with self.assertRaises(ValueError):
            TDigest(compression=19)
        with self.assertRaises(ValueError):
            TDigest(compression=0)
        with self.assertRaises(ValueError):
            TDigest(compression=-100)
        with self.assertRaises(ValueError):
            TDigest(compression=100.5)  # Must be int
        with self.assertRaises(ValueError):
            TDigest(compression=True)

    def test_update_single_item(self):
        td = TDigest()
        td.update(10.5)
        self.assertEqual(td.items_processed, 1)
        self.assertEqual(len(td._unmerged_buffer), 1)
        self.assertEqual(td._unmerged_buffer[0].mean, 10.5)
        self.assertEqual(td.min_value, 10.5)
        self.assertEqual(td.max_value, 10.5)
        # Buffered weight already counts toward the total
        self.assertEqual(td.total_weight, 1.0)
        self.assertFalse(td.is_empty)

    def test_update_multiple_items_no_process(self):
        td = TDigest(compression=100)
        td.update(10)
        td.update(20)
        td.update(5)
        self.assertEqual(td.items_processed, 3)
        self.assertEqual(len(td._unmerged_buffer), 3)
        self.assertEqual(len(td._centroids), 0)
        self.assertEqual(td.min_value, 5)
        self.assertEqual(td.max_value, 20)
        self.assertEqual(td.total_weight, 3.0)
        self.assertCountEqual([c.mean for c in td._unmerged_buffer], [10, 20, 5])

    def test_update_weighted(self):
        td = TDigest()
        td.update(1.0, weight=3.0)
        td.update(2.0, weight=0.5)
        self.assertEqual(td.items_processed, 2)
        self.assertEqual(td.total_weight, 3.5)

    def test_update_invalid_weight(self):
        td = TDigest()
        for weight in (0, -1.0, float("nan"), float("inf")):
            with self.assertRaises(ValueError, msg=f"weight={weight}"):
                td.update(1.0, weight=weight)
        self.assertTrue(td.is_empty)

    def test_update_non_finite(self):
        td = TDigest()
        td.update(10)
        td.update(float("inf"))
        td.update(20)
        td.update(float("-inf"))
        td.update(float("nan"))
        td.update("30")  # Not a number
        td.update(10**400)  # Beyond float range
        td.update(-(10**400))
        td.update(5)
        self.assertEqual(td.items_processed, 3)  # Only finite numbers counted
        self.assertCountEqual([c.mean for c in td._unmerged_buffer], [10, 20, 5])
        self.assertEqual(td.min_value, 5)
        self.assertEqual(td.max_value, 20)

    def test_process_buffer(self):
        td = TDigest(compression=20)
        # Force a small buffer size to trigger processing easily
        td._buffer_size = 3

        td.update(10)
        td.update(20)
        self.assertEqual(len(td._unmerged_buffer), 2)
        self.assertEqual(len(td._centroids), 0)

        td.update(5)  # This update should trigger processing
        self.assertEqual(td.items_processed, 3)
        self.assertEqual(len(td._unmerged_buffer), 0)
        self.assertEqual(len(td._centroids), 3)
        self.assertEqual(td.total_weight, 3.0)

        # Too few points to merge: one sorted singleton per value
        self.assertEqual(td.get_centroids(), [(5.0, 1.0), (10.0, 1.0), (20.0, 1.0)])
        self.assertEqual(td._midpoints, [0.5, 1.5, 2.5])

    def test_compression(self):
        compression = 20
        td = TDigest(compression=compression)
        num_items = compression * 10
        for i in range(num_items):
            td.update(float(i))

        td._process_buffer()

        self.assertEqual(td.items_processed, num_items)
        self.assertEqual(td.total_weight, float(num_items))
        self.assertEqual(len(td._unmerged_buffer), 0)
        # Core check: number of centroids bounded by the compression factor
        self.assertLessEqual(len(td._centroids), compression)
        self.assertGreater(len(td._centroids), 0)

        # Centroid weights account for every value
        self.assertAlmostEqual(sum(w for _, w in td.get_centroids()), num_items)

        self.assertEqual(td.min_value, 0.0)
        self.assertEqual(td.max_value, float(num_items - 1))

    def test_centroid_count_independent_of_stream_length(self):
        td = TDigest(compression=50)
        counts = []
        for i in range(50000):
            td.update(float(i % 997))
            if (i + 1) % 10000 == 0:
                counts.append(len(td.get_centroids()))

        for count in counts:
            self.assertLessEqual(count, 50)

    def test_centroids_sorted(self):
        td = TDigest(compression=30)
        random.seed(7)
        for _ in range(2000):
            td.update(random.expovariate(1.0))
        means = [m for m, _ in td.get_centroids()]
        self.assertEqual(means, sorted(means))

    def test_tail_centroids_smaller_than_middle(self):
        td = TDigest(compression=50)
        for i in range(10000):
            td.update(float(i))
        weights = [w for _, w in td.get_centroids()]
        middle = weights[len(weights) // 2]
        self.assertLess(weights[0], middle)
        self.assertLess(weights[-1], middle)

    def test_query_empty(self):
        td = TDigest()
        self.assertTrue(math.isnan(td.query(0.5)))
        self.assertTrue(math.isnan(td.query(0.0)))
        self.assertTrue(math.isnan(td.query(1.0)))

    def test_query_single_item(self):
        td = TDigest()
        td.update(42.0)
        # For a single item, all quantiles should return that item
        for q in (0.0, 0.25, 0.5, 0.75, 1.0):
            self.assertEqual(td.query(q), 42.0)

    def test_query_two_items(self):
        td = TDigest()
        td.update(10.0)
        td.update(20.0)
        self.assertEqual(td.query(0.0), 10.0)
        self.assertEqual(td.query(1.0), 20.0)
        self.assertAlmostEqual(td.query(0.5), 15.0, places=5)
        # Centroid midpoints map to the centroid means
        self.assertAlmostEqual(td.query(0.25), 10.0, places=5)
        self.assertAlmostEqual(td.query(0.75), 20.0, places=5)

    def test_query_monotonic(self):
        td = TDigest(compression=50)
        random.seed(11)
        for _ in range(5000):
            td.update(random.gauss(0, 1))
        previous = td.query(0.0)
        for i in range(1, 101):
            current = td.query(i / 100)
            self.assertGreaterEqual(current, previous)
            previous = current

    def test_query_uniform_distribution(self):
        td = TDigest(compression=100)
        n = 10000
        random.seed(42)
        data = [random.uniform(0, 100) for _ in range(n)]
        for x in data:
            td.update(x)

        data.sort()

        for q in [0.01, 0.1, 0.25, 0.5, 0.75, 0.9, 0.99]:
            estimated = td.query(q)
            actual = data[min(n - 1, int(q * n))]

            # 10% relative error or absolute error of 0.1, whichever is larger
            tolerance = max(abs(actual) * 0.10, 0.1)
            self.assertAlmostEqual(
                estimated,
                actual,
                delta=tolerance,
                msg=f"Quantile {q}: Estimated={estimated:.4f}, Actual={actual:.4f}",
            )

        # Edges are exact
        self.assertEqual(td.query(0.0), min(data))
        self.assertEqual(td.query(1.0), max(data))

    def test_query_median_of_integer_range(self):
        td = TDigest(compression=1000)
        for i in range(10000):
            td.update(i)
        # Within 1% of the range of the true median 4999.5
        self.assertAlmostEqual(td.query(0.5), 4999.5, delta=100)
        self.assertAlmostEqual(td.query(0.9), 8999.5, delta=100)

    def test_accuracy_improves_with_compression(self):
        random.seed(5)
        data = [random.lognormvariate(0, 1) for _ in range(20000)]
        ordered = sorted(data)

        def max_rank_error(compression):
            td = TDigest(compression=compression)
            for x in data:
                td.update(x)
            worst = 0.0
            for q in (0.01, 0.1, 0.25, 0.5, 0.75, 0.9, 0.99):
                estimate = td.query(q)
                rank = sum(1 for x in ordered if x <= estimate) / len(ordered)
                worst = max(worst, abs(rank - q))
            return worst

        coarse = max_rank_error(20)
        fine = max_rank_error(500)
        self.assertLessEqual(fine, coarse)
        self.assertLess(fine, 0.01)

    def test_query_constant_values(self):
        td = TDigest()
        for _ in range(100):
            td.update(50.0)
        for q in (0.0, 0.1, 0.5, 0.9, 1.0):
            self.assertEqual(td.query(q), 50.0)

    def test_query_invalid_quantile(self):
        td = TDigest()
        td.update(10)
        with self.assertRaises(ValueError):
            td.query(-0.1)
        with self.assertRaises(ValueError):
            td.query(1.1)
        with self.assertRaises(ValueError):
            td.query(float("nan"))

    def test_merge_basic(self):
        td1 = TDigest(compression=50)
        td1.update(10)
        td1.update(20)
        td1.update(30)

        td2 = TDigest(compression=50)
        td2.update(40)
        td2.update(50)

        merged_td = td1.merge(td2)

        self.assertIsInstance(merged_td, TDigest)
        self.assertEqual(merged_td.compression, 50)
        self.assertEqual(merged_td.items_processed, 5)
        self.assertEqual(merged_td.total_weight, 5.0)
        self.assertEqual(merged_td.min_value, 10.0)
        self.assertEqual(merged_td.max_value, 50.0)
        self.assertLessEqual(len(merged_td.get_centroids()), 50)

        self.assertEqual(merged_td.query(0.0), 10.0)
        self.assertEqual(merged_td.query(1.0), 50.0)
        self.assertAlmostEqual(merged_td.query(0.5), 30.0, delta=1e-9)

        # Verify original sketches were not modified
        self.assertEqual(td1.items_processed, 3)
        self.assertEqual(td1.total_weight, 3.0)
        self.assertEqual(len(td1.get_centroids()), 3)
        self.assertEqual(td2.items_processed, 2)
        self.assertEqual(td2.total_weight, 2.0)
        self.assertEqual(len(td2.get_centroids()), 2)

    def test_merge_does_not_share_centroids(self):
        td1 = TDigest(compression=20)
        td2 = TDigest(compression=20)
        for i in range(500):
            td1.update(float(i))
            td2.update(float(i + 500))
        before = td1.get_centroids()

        merged = td1.merge(td2)
        for i in range(2000):
            merged.update(float(i))

        self.assertEqual(td1.get_centroids(), before)

    def test_merge_with_empty(self):
        td1 = TDigest()
        td1.update(10)
        td1.update(20)
        td1_q50 = td1.query(0.5)

        td_empty = TDigest()

        merged1 = td1.merge(td_empty)
        self.assertEqual(merged1.items_processed, 2)
        self.assertEqual(merged1.total_weight, 2.0)
        self.assertEqual(merged1.query(0.5), td1_q50)
        self.assertEqual(merged1.query(0.0), 10.0)
        self.assertEqual(merged1.query(1.0), 20.0)

        merged2 = td_empty.merge(td1)
        self.assertEqual(merged2.items_processed, 2)
        self.assertEqual(merged2.total_weight, 2.0)
        self.assertEqual(merged2.query(0.5), td1_q50)

    def test_merge_two_empty(self):
        merged = TDigest().merge(TDigest())
        self.assertTrue(merged.is_empty)
        self.assertEqual(merged.items_processed, 0)
        self.assertEqual(merged.total_weight, 0.0)
        self.assertIsNone(merged.min_value)
        self.assertTrue(math.isnan(merged.query(0.5)))

    def test_merge_different_compression(self):
        td1 = TDigest(compression=50)
        td2 = TDigest(compression=100)
        with self.assertRaises(ValueError):
            td1.merge(td2)
        with self.assertRaises(ValueError):
            td2.merge(td1)

    def test_merge_different_types(self):
        td = TDigest()
        with self.assertRaises(TypeError):
            td.merge(object())

    def test_merge_preserves_data(self):
        compression = 50
        n1, n2 = 1000, 1500
        random.seed(43)
        data1 = [random.gauss(100, 10) for _ in range(n1)]
        data2 = [random.gauss(200, 20) for _ in range(n2)]
        combined_data = sorted(data1 + data2)

        td1 = TDigest(compression=compression)
        for x in data1:
            td1.update(x)

        td2 = TDigest(compression=compression)
        for x in data2:
            td2.update(x)

        merged_td = td1.merge(td2)

        for q in [0.01, 0.25, 0.5, 0.75, 0.99]:
            estimated = merged_td.query(q)
            actual = combined_data[min(n1 + n2 - 1, int(q * (n1 + n2)))]
            tolerance = max(abs(actual) * 0.1, 1.0)
            self.assertAlmostEqual(
                estimated,
                actual,
                delta=tolerance,
                msg=f"Merged Quantile {q}: Est={estimated}, Act={actual}",
            )

    def test_len_and_is_empty(self):
        td = TDigest()
        self.assertTrue(td.is_empty)
        self.assertEqual(len(td), 0)

        td.update(10)
        self.assertFalse(td.is_empty)
        self.assertEqual(len(td), 1)

        td.update(20)
        self.assertEqual(len(td), 2)

        td.update(float("nan"))  # Ignored
        self.assertEqual(len(td), 2)

        td1 = TDigest()
        td1.update(1)
        td1.update(2)
        td2 = TDigest()
        td2.update(3)
        td2.update(4)
        td2.update(5)
        merged = td1.merge(td2)
        self.assertFalse(merged.is_empty)
        self.assertEqual(len(merged), 5)

    def test_create_from_accuracy_target(self):
        td = TDigest.create_from_accuracy_target(0.0002)
        self.assertEqual(td.compression, 50)

        td_median = TDigest.create_from_accuracy_target(0.003, tail_focus=False)
        self.assertEqual(td_median.compression, 84)

        # Loose targets still respect the minimum compression
        self.assertEqual(TDigest.create_from_accuracy_target(0.5).compression, 20)

        with self.assertRaises(ValueError):
            TDigest.create_from_accuracy_target(0.0)
        with self.assertRaises(ValueError):
            TDigest.create_from_accuracy_target(1.0)

    def test_repr(self):
        td = TDigest(compression=40)
        td.update(1.0)
        self.assertEqual(repr(td), "TDigest(compression=40, items_processed=1)")


if __name__ == "__main__":
    unittest.main()
