#!/usr/bin/env python3
"""
senml_numeric.py - Closed numeric variant and fixed-point decimal

SenML producers send numbers as signed or unsigned integers, floats, or
CBOR decimal fractions (tag 4, [exponent, mantissa]). Numeric wraps one of
those four kinds and converts between them with Go-style 64-bit semantics:

    to_int64    truncates toward zero, wraps modulo 2**64 into int64 range
    to_uint64   truncates toward zero, wraps modulo 2**64
    to_float64  nearest double, saturating to +-inf or 0.0 for decimal
                exponents beyond the double range

Non-finite floats cannot be converted to integers (ValueError).
"""

import decimal
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union


MASK64 = (1 << 64) - 1
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


def wrap_int64(value: int) -> int:
    value &= MASK64
    return value - (1 << 64) if value > INT64_MAX else value


def wrap_uint64(value: int) -> int:
    return value & MASK64


# Decimal exponents past this (in digits) are 0 or inf as a double
FLOAT_DIGIT_LIMIT = 400


def pow10(n: int) -> int:
    """Integer power of ten for n >= 0."""
    if n < 0:
        raise ValueError("n must be positive")
    return 10 ** n


def _trunc(value: float) -> int:
    if not math.isfinite(value):
        raise ValueError(f"Cannot convert {value} to integer")
    return math.trunc(value)


# =============================================================================
# Decimal fraction
# =============================================================================

@dataclass(frozen=True)
class Decimal:
    """Fixed-point number: mantissa * 10**exponent."""
    exponent: int
    mantissa: int

    def magnitude(self) -> int:
        """Upper bound on the decimal digits left of the point (may be <= 0)."""
        digits = int(abs(self.mantissa).bit_length() * 0.30103) + 1
        return self.exponent + digits

    def to_float(self) -> float:
        """Nearest double; saturates to +-inf or +-0.0 for extreme exponents."""
        if self.mantissa == 0:
            return 0.0
        magnitude = self.magnitude()
        if magnitude > FLOAT_DIGIT_LIMIT:
            return math.copysign(math.inf, self.mantissa)
        if magnitude < -FLOAT_DIGIT_LIMIT:
            return math.copysign(0.0, self.mantissa)
        try:
            if self.exponent < 0:
                # int / int is correctly rounded
                return self.mantissa / pow10(-self.exponent)
            return float(self.mantissa * pow10(self.exponent))
        except OverflowError:
            return math.copysign(math.inf, self.mantissa)

    def to_int(self) -> int:
        """
        Integer part; negative exponents truncate toward zero.

        Raises OverflowError when the exponent is too large to scale.
        """
        if self.exponent < 0:
            if self.magnitude() < 0:
                return 0
            q = abs(self.mantissa) // pow10(-self.exponent)
            return q if self.mantissa >= 0 else -q
        if self.exponent > FLOAT_DIGIT_LIMIT:
            raise OverflowError(f"Decimal exponent too large: {self.exponent}")
        return self.mantissa * pow10(self.exponent)

    def to_int_mod64(self) -> int:
        """Integer part reduced modulo 2**64, for any exponent."""
        if self.exponent < 0:
            return self.to_int() & MASK64
        return (self.mantissa * pow(10, self.exponent, 1 << 64)) & MASK64

    def pair(self) -> List[int]:
        """CBOR tag 4 content: [exponent, mantissa]."""
        return [self.exponent, self.mantissa]

    @classmethod
    def from_pair(cls, pair: List[int]) -> 'Decimal':
        if len(pair) != 2:
            raise ValueError(f"Invalid decimal size: {len(pair)}")
        exponent, mantissa = pair
        return cls(exponent=int(exponent), mantissa=int(mantissa))

    @classmethod
    def from_std(cls, value: decimal.Decimal) -> 'Decimal':
        """Convert a standard library Decimal (e.g. from a CBOR decoder)."""
        sign, digits, exponent = value.as_tuple()
        if not isinstance(exponent, int):
            raise ValueError(f"Cannot convert {value} to a decimal fraction")
        mantissa = int(''.join(str(d) for d in digits) or '0')
        return cls(exponent=exponent, mantissa=-mantissa if sign else mantissa)

    def to_std(self) -> decimal.Decimal:
        sign = 1 if self.mantissa < 0 else 0
        digits = tuple(int(d) for d in str(abs(self.mantissa)))
        return decimal.Decimal((sign, digits, self.exponent))


# =============================================================================
# Numeric variant
# =============================================================================

class NumericKind(Enum):
    SIGNED = 'signed'
    UNSIGNED = 'unsigned'
    FLOAT = 'float'
    DECIMAL = 'decimal'


INTEGER_KINDS = (NumericKind.SIGNED, NumericKind.UNSIGNED)


@dataclass(frozen=True)
class Numeric:
    """One number of a known kind."""
    kind: NumericKind
    value: Union[int, float, Decimal]

    @classmethod
    def signed(cls, value: int) -> 'Numeric':
        return cls(NumericKind.SIGNED, wrap_int64(value))

    @classmethod
    def unsigned(cls, value: int) -> 'Numeric':
        return cls(NumericKind.UNSIGNED, wrap_uint64(value))

    @classmethod
    def floating(cls, value: float) -> 'Numeric':
        return cls(NumericKind.FLOAT, float(value))

    @classmethod
    def fixed(cls, value: Decimal) -> 'Numeric':
        return cls(NumericKind.DECIMAL, value)

    @property
    def is_integer(self) -> bool:
        return self.kind in INTEGER_KINDS

    def to_int64(self) -> int:
        if self.kind == NumericKind.SIGNED:
            return self.value
        if self.kind == NumericKind.UNSIGNED:
            return wrap_int64(self.value)
        if self.kind == NumericKind.FLOAT:
            return wrap_int64(_trunc(self.value))
        return wrap_int64(self.value.to_int_mod64())

    def to_uint64(self) -> int:
        if self.kind == NumericKind.FLOAT:
            return wrap_uint64(_trunc(self.value))
        if self.kind == NumericKind.DECIMAL:
            return self.value.to_int_mod64()
        return wrap_uint64(self.value)

    def to_float64(self) -> float:
        if self.kind == NumericKind.DECIMAL:
            return self.value.to_float()
        return float(self.value)


def numeric_from(value) -> Optional[Numeric]:
    """
    Classify a Python scalar.

    ints inside the int64 range are SIGNED, larger ones up to 2**64 - 1 are
    UNSIGNED. Standard library Decimals become DECIMAL.
    """
    if value is None or isinstance(value, Numeric):
        return value
    if isinstance(value, bool):
        raise TypeError(f"Invalid value type: {type(value).__name__}")
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return Numeric.signed(value)
        if 0 <= value <= MASK64:
            return Numeric.unsigned(value)
        raise ValueError(f"Integer out of 64-bit range: {value}")
    if isinstance(value, float):
        return Numeric.floating(value)
    if isinstance(value, Decimal):
        return Numeric.fixed(value)
    if isinstance(value, decimal.Decimal):
        if value.is_finite():
            return Numeric.fixed(Decimal.from_std(value))
        return Numeric.floating(float(value))
    raise TypeError(f"Invalid value type: {type(value).__name__}")


def sum_numeric(a: Optional[Numeric], b: Optional[Numeric]) -> Optional[Numeric]:
    """
    Add two numerics, picking the result kind from the operands.

    None is the identity. signed + integer is signed, unsigned + unsigned
    stays unsigned, and anything involving a float or decimal is a float.
    """
    if a is None:
        return b
    if b is None:
        return a
    if a.is_integer and b.is_integer:
        if a.kind == NumericKind.UNSIGNED and b.kind == NumericKind.UNSIGNED:
            return Numeric.unsigned(a.value + b.value)
        return Numeric.signed(a.to_int64() + b.to_int64())
    return Numeric.floating(a.to_float64() + b.to_float64())
