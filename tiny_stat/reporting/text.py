"""
Text summaries of accumulators.

The layout is consumed by existing tooling, so field order, labels and
precision are fixed:

    min: 1, max: 3, avg: 2.0, rms: 2.2, stddev: 0.8, sum: 6, amount: 3

followed, when the accumulator estimates quantiles, by a second line with
the estimates at SUMMARY_QUANTILES:

    0.1%: 1.0, 1%: 1.0, 10%: 1.0, 50%: 2.0, 90%: 3.0, 99%: 3.0, 99.9%: 3.0
"""

import struct
from typing import TYPE_CHECKING, Optional, Sequence, Union

from tiny_stat.core.numeric import NumericKind

if TYPE_CHECKING:
    from tiny_stat.algorithms.accumulator import Accumulator

SUMMARY_QUANTILES = (0.001, 0.01, 0.1, 0.5, 0.9, 0.99, 0.999)

# Largest magnitude printed in positional notation
_POSITIONAL_LIMIT = 1e21

_FLOAT32 = struct.Struct("<f")


def _shortest_float32(value: float) -> str:
    """Shortest %g text that packs back to the same single precision bits."""
    packed = _FLOAT32.pack(value)
    for precision in range(1, 10):
        text = "%.*g" % (precision, value)
        try:
            if _FLOAT32.pack(float(text)) == packed:
                return text
        except OverflowError:
            continue
    return repr(value)


def format_number(
    value: Union[int, float], kind: Optional[NumericKind] = None
) -> str:
    """
    Format a value the way downstream tooling expects untyped fields.

    Integers print as-is, integral floats drop the fractional part and other
    floats use their shortest round-trip representation. Values of a 32-bit
    float kind round-trip through single precision, so 0.1f prints as 0.1.
    """
    if isinstance(value, float):
        if value.is_integer() and abs(value) < _POSITIONAL_LIMIT:
            return str(int(value))
        if kind is not None and not kind.is_integer and kind.bits == 32:
            return _shortest_float32(value)
        return repr(value)
    return str(value)


def format_quantile_label(q: float) -> str:
    """Format a quantile as a percentage label, e.g. 0.001 -> '0.1%'."""
    return f"{q * 100:g}%"


def format_quantiles(accumulator: "Accumulator", quantiles: Sequence[float]) -> str:
    """Format quantile estimates as 'label: value' pairs with one decimal."""
    return ", ".join(
        f"{format_quantile_label(q)}: {accumulator.quantile(q):.1f}" for q in quantiles
    )


def format_summary(
    accumulator: "Accumulator", quantiles: Sequence[float] = SUMMARY_QUANTILES
) -> str:
    """
    Format an accumulator as a one or two line text summary.

    Args:
        accumulator: A populated accumulator.
        quantiles: Quantiles for the second line, used only when the
                   accumulator estimates quantiles.

    Returns:
        The summary text, without a trailing newline.

    Raises:
        EmptySummaryError: If the accumulator has no samples.
    """
    kind = accumulator.kind
    line = (
        f"min: {format_number(accumulator.min, kind)}, "
        f"max: {format_number(accumulator.max, kind)}, "
        f"avg: {accumulator.mean:.1f}, "
        f"rms: {accumulator.rms:.1f}, "
        f"stddev: {accumulator.stddev:.1f}, "
        f"sum: {format_number(accumulator.sum)}, "
        f"amount: {accumulator.count}"
    )

    if not accumulator.quantiles_enabled:
        return line
    return line + "\n" + format_quantiles(accumulator, quantiles)
