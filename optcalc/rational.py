"""Exact rational helpers shared by every solver.

Values are plain ``fractions.Fraction`` objects: always reduced, denominator
positive, immutable. Floats only appear at the edges (``to_number`` for
display, ``from_number`` for user input that arrives as a float).
"""

from __future__ import annotations

import math
from decimal import Decimal
from fractions import Fraction
from typing import List, Optional, Sequence, Union

from .errors import InputError

Num = Union[int, float, Fraction, Decimal, str]


def F(x: Num) -> Fraction:
    """Convert a number to Fraction exactly when possible.
    - Fraction -> as is
    - Decimal -> exact rational
    - int -> exact
    - float -> best rational approx (limit large denominator)
    - str -> parsed, see parse_rational
    """
    if isinstance(x, Fraction):
        return x
    if isinstance(x, Decimal):
        return Fraction(x)
    if isinstance(x, bool):
        raise InputError(f"Not a number: {x!r}")
    if isinstance(x, int):
        return Fraction(x)
    if isinstance(x, float):
        if math.isnan(x) or math.isinf(x):
            raise InputError(f"Not a finite number: {x!r}")
        return Fraction.from_float(x).limit_denominator(10**12)
    if isinstance(x, str):
        return parse_rational(x)
    raise InputError(f"Not a number: {x!r}")


def parse_rational(text: str) -> Fraction:
    """Parse "3", "-0.25", "3/4" or "1,5" into an exact Fraction.

    Decimals are scaled by the power of ten of their fractional digits, so
    "0.25" is exactly 1/4.
    """
    s = str(text).strip().replace(",", ".").replace(" ", "")
    if not s:
        raise InputError("Empty numeric cell")
    try:
        return Fraction(s)
    except (ValueError, ZeroDivisionError) as e:
        raise InputError(f"Not a number: {text!r}") from e


def from_number(x: Union[int, float]) -> Fraction:
    return F(x)


def to_number(x: Num) -> float:
    """Nearest float, for display and plotting only."""
    return float(F(x))


def parse_vector(cells: Sequence[Num], name: str = "vector") -> List[Fraction]:
    if not len(cells):
        raise InputError(f"{name} is empty")
    out = []
    for k, cell in enumerate(cells):
        try:
            out.append(F(cell))
        except InputError as e:
            raise InputError(f"{name}[{k + 1}]: {e}") from e
    return out


def parse_matrix(rows: Sequence[Sequence[Num]], name: str = "matrix") -> List[List[Fraction]]:
    if not len(rows) or not len(rows[0]):
        raise InputError(f"{name} is empty")
    width = len(rows[0])
    out = []
    for i, row in enumerate(rows):
        if len(row) != width:
            raise InputError(
                f"{name}: row {i + 1} has {len(row)} cells, expected {width}"
            )
        out.append(parse_vector(row, name=f"{name}[{i + 1}]"))
    return out


def rational_sqrt(q: Fraction) -> Optional[Fraction]:
    """Exact square root of a non-negative Fraction, or None if it is irrational."""
    q = F(q)
    if q < 0:
        return None
    n, d = q.numerator, q.denominator
    rn, rd = math.isqrt(n), math.isqrt(d)
    if rn * rn == n and rd * rd == d:
        return Fraction(rn, rd)
    return None


def _icbrt(n: int) -> int:
    # floor cube root of n >= 0, integer Newton from an overestimate
    if n < 2:
        return n
    x = 1 << ((n.bit_length() + 2) // 3)
    while True:
        y = (2 * x + n // (x * x)) // 3
        if y >= x:
            return x
        x = y


def rational_cbrt(q: Fraction) -> Optional[Fraction]:
    """Exact cube root of a Fraction (any sign), or None if it is irrational."""
    q = F(q)
    sign = -1 if q < 0 else 1
    n, d = abs(q.numerator), q.denominator
    rn, rd = _icbrt(n), _icbrt(d)
    if rn ** 3 == n and rd ** 3 == d:
        return sign * Fraction(rn, rd)
    return None


def fmt_out(x: Num) -> str:
    """Pretty-print numbers as integers or reduced fractions for final outputs."""
    fr = F(x)
    if fr.denominator == 1:
        return str(fr.numerator)
    sign = '-' if fr < 0 else ''
    return f"{sign}{abs(fr.numerator)}/{fr.denominator}"
