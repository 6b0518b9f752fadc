"""
Numeric element kinds for TinyStat accumulators.

An accumulator is parameterized by the kind of values it ingests: one of the
fixed-width signed or unsigned integer kinds, or an IEEE single or double
precision float. The kind decides how an incoming Python value is validated
and which native value ``min``/``max`` report; all running arithmetic is done
in double precision regardless of kind.
"""

import struct
from dataclasses import dataclass
from typing import Dict, Union

Number = Union[int, float]

_FLOAT32 = struct.Struct("<f")


@dataclass(frozen=True)
class NumericKind:
    """
    Description of a numeric element kind.

    Attributes:
        name: Canonical kind name, e.g. "int32" or "float64".
        is_integer: True for the integer kinds.
        bits: Width of the kind in bits.
        signed: Whether an integer kind admits negative values.
                Always True for float kinds.
    """

    name: str
    is_integer: bool
    bits: int
    signed: bool = True

    @property
    def lower(self) -> Number:
        """Smallest representable value (integer kinds only are bounded here)."""
        if not self.is_integer:
            return float("-inf")
        return -(1 << (self.bits - 1)) if self.signed else 0

    @property
    def upper(self) -> Number:
        """Largest representable value."""
        if not self.is_integer:
            return float("inf")
        return (1 << (self.bits - 1)) - 1 if self.signed else (1 << self.bits) - 1

    def cast(self, value: Number) -> Number:
        """
        Validate a value and convert it to this kind's native representation.

        Args:
            value: The incoming value.

        Returns:
            An ``int`` for integer kinds or a ``float`` for float kinds.

        Raises:
            TypeError: If the value is not a number this kind accepts.
            ValueError: If the value does not fit in the kind.
        """
        # bool is an int subclass but never a sample value
        if isinstance(value, bool):
            raise TypeError(f"{self.name} does not accept bool values")

        if self.is_integer:
            if not isinstance(value, int):
                raise TypeError(
                    f"{self.name} expects an int, got {type(value).__name__}"
                )
            if not (self.lower <= value <= self.upper):
                raise ValueError(
                    f"Value {value} out of range for {self.name} "
                    f"[{self.lower}, {self.upper}]"
                )
            return int(value)

        if not isinstance(value, (int, float)):
            raise TypeError(
                f"{self.name} expects an int or float, got {type(value).__name__}"
            )
        try:
            result = float(value)
        except OverflowError as e:
            raise ValueError(f"Value {value} out of range for {self.name}") from e

        if self.bits == 32:
            try:
                result = _FLOAT32.unpack(_FLOAT32.pack(result))[0]
            except OverflowError as e:
                raise ValueError(f"Value {value} out of range for {self.name}") from e
        return result

    def __str__(self) -> str:
        return self.name


KINDS: Dict[str, NumericKind] = {
    kind.name: kind
    for kind in (
        NumericKind("int8", True, 8),
        NumericKind("int16", True, 16),
        NumericKind("int32", True, 32),
        NumericKind("int64", True, 64),
        NumericKind("uint8", True, 8, signed=False),
        NumericKind("uint16", True, 16, signed=False),
        NumericKind("uint32", True, 32, signed=False),
        NumericKind("uint64", True, 64, signed=False),
        NumericKind("float32", False, 32),
        NumericKind("float64", False, 64),
    )
}

# Platform-width names resolve to their 64-bit kinds
ALIASES: Dict[str, str] = {"int": "int64", "uint": "uint64", "float": "float64"}


def get_kind(kind: Union[str, NumericKind]) -> NumericKind:
    """
    Resolve a kind name (or pass through a NumericKind).

    Raises:
        ValueError: If the name is not a known kind.
        TypeError: If kind is neither a string nor a NumericKind.
    """
    if isinstance(kind, NumericKind):
        return kind
    if not isinstance(kind, str):
        raise TypeError(f"Kind must be a str or NumericKind, got {type(kind).__name__}")

    name = ALIASES.get(kind, kind)
    try:
        return KINDS[name]
    except KeyError:
        known = ", ".join(sorted(set(KINDS) | set(ALIASES)))
        raise ValueError(f"Unknown numeric kind '{kind}' (known: {known})") from None
