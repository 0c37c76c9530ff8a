from decimal import Decimal
from fractions import Fraction

import pytest

from optcalc.errors import InputError
from optcalc.rational import (F, fmt_out, parse_matrix, parse_rational, parse_vector, rational_cbrt,
                              rational_sqrt, to_number)


def test_parse_rational_forms():
    assert parse_rational("3") == 3
    assert parse_rational("-0.25") == Fraction(-1, 4)
    assert parse_rational("3/4") == Fraction(3, 4)
    assert parse_rational("1,5") == Fraction(3, 2)
    assert parse_rational(" 2 ") == 2


@pytest.mark.parametrize("text", ["", "   ", "abc", "1/0", "1..2"])
def test_parse_rational_rejects(text):
    with pytest.raises(InputError):
        parse_rational(text)


def test_F_conversions():
    assert F(Decimal("0.1")) == Fraction(1, 10)
    assert F(0.5) == Fraction(1, 2)
    assert F(7) == 7
    assert F(Fraction(2, 6)) == Fraction(1, 3)
    with pytest.raises(InputError):
        F(True)
    with pytest.raises(InputError):
        F(float("nan"))
    with pytest.raises(InputError):
        F(None)


def test_results_stay_reduced():
    x = F("2/4") + F("1/4")
    assert (x.numerator, x.denominator) == (3, 4)
    assert F(Fraction(6, -8)) == Fraction(-3, 4)
    assert F(Fraction(6, -8)).denominator > 0


def test_parse_vector_and_matrix():
    assert parse_vector(["1", 2, "0.5"]) == [1, 2, Fraction(1, 2)]
    assert parse_matrix([[1, 2], ["3", "4/3"]]) == [[1, 2], [3, Fraction(4, 3)]]
    with pytest.raises(InputError):
        parse_vector([])
    with pytest.raises(InputError):
        parse_matrix([[1, 2], [3]])
    with pytest.raises(InputError):
        parse_matrix([])
    with pytest.raises(InputError, match=r"cost\[2\]\[1\]"):
        parse_matrix([[1], ["x"]], name="cost")


def test_fmt_out():
    assert fmt_out(Fraction(-3, 4)) == "-3/4"
    assert fmt_out(Fraction(8, 4)) == "2"
    assert fmt_out(0) == "0"
    assert to_number(Fraction(1, 4)) == 0.25


def test_rational_sqrt():
    assert rational_sqrt(Fraction(9, 4)) == Fraction(3, 2)
    assert rational_sqrt(Fraction(0)) == 0
    assert rational_sqrt(Fraction(2)) is None
    assert rational_sqrt(Fraction(-1)) is None


def test_rational_cbrt():
    assert rational_cbrt(Fraction(64)) == 4
    assert rational_cbrt(Fraction(-27, 8)) == Fraction(-3, 2)
    assert rational_cbrt(Fraction(0)) == 0
    assert rational_cbrt(Fraction(20)) is None
    assert rational_cbrt(Fraction(10**30 + 1)) is None
    assert rational_cbrt(Fraction(10**30)) == 10**10


@pytest.mark.parametrize("a, b", [
    ("3/4", "-2/7"),
    ("-5", "1/3"),
    ("0.125", "9"),
    ("0", "-11/13"),
    ("123456789/1000", "1/987654321"),
])
def test_division_round_trip(a, b):
    a, b = F(a), F(b)
    assert a / b * b == a
    assert (a / b).denominator > 0


def test_division_by_zero():
    with pytest.raises(ZeroDivisionError):
        F("3/4") / F(0)
    with pytest.raises(InputError):
        F("1/0")
