"""
Example of summarizing numeric streams with tiny-stat.

This example feeds simulated request latencies through an Accumulator,
prints the running summary, compares quantile estimates against the exact
values, merges per-shard accumulators and writes the quantile curve to PNG.
"""

import random
import sys

from tiny_stat import Accumulator, QuantilesDisabledError


def demonstrate_basic_accumulator():
    """Running statistics over an integer stream."""
    print("\n=== Basic Accumulator Demo ===")

    acc = Accumulator("int64")
    for i in range(10):
        acc.update(i)

    print(acc.summarize())
    print(f"Approximate memory usage: {acc.estimate_size()} bytes")

    try:
        acc.quantile(0.5)
    except QuantilesDisabledError as e:
        print(f"Quantile query refused: {e}")


def demonstrate_latency_quantiles(n=200000):
    """Quantile estimates over a long-tailed stream."""
    print("\n=== Latency Quantiles Demo ===")

    rng = random.Random(42)
    acc = Accumulator("float64", enable_quantiles=True)
    latencies = []

    print(f"Processing {n} simulated latencies...")
    for i in range(n):
        latency = rng.lognormvariate(3.0, 0.6)
        acc.update(latency)
        latencies.append(latency)

        if i % 50000 == 0:
            print(f"  Processed {i} items")

    print()
    print(acc.summarize())

    latencies.sort()
    print("\nQuantile   estimate     exact")
    for q in (0.5, 0.9, 0.99, 0.999):
        exact = latencies[min(n - 1, int(q * n))]
        print(f"{q:<9}  {acc.quantile(q):9.3f}  {exact:9.3f}")

    stats = acc.get_stats()
    print(f"\nCentroids kept: {stats['num_centroids']} for {acc.count} samples")
    return acc


def demonstrate_merge():
    """Combine accumulators built on separate shards of a stream."""
    print("\n=== Merge Demo ===")

    rng = random.Random(7)
    shards = []
    for shard in range(4):
        acc = Accumulator("uint32", enable_quantiles=True)
        for _ in range(25000):
            acc.update(rng.randint(0, 10000) + shard * 1000)
        shards.append(acc)

    combined = shards[0]
    for acc in shards[1:]:
        combined = combined.merge(acc)

    print(combined.summarize())


def main(png_path=None):
    demonstrate_basic_accumulator()
    acc = demonstrate_latency_quantiles()
    demonstrate_merge()

    if png_path:
        with open(png_path, "wb") as fp:
            acc.draw_png(fp, points=200)
        print(f"\nQuantile curve written to {png_path}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
