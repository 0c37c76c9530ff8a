from fractions import Fraction

import pytest

from optcalc.errors import InputError
from optcalc.expr import natural_key, parse_constraint, parse_linear, parse_lp


def test_linear_with_implicit_multiplication():
    e = parse_linear("2x1 + 3x2 - 4")
    assert e.coeffs == {"x1": 2, "x2": 3}
    assert e.const == -4

    e = parse_linear("3(x + 1)")
    assert e.coeffs == {"x": 3}
    assert e.const == 3


def test_linear_division_power_and_decimals():
    assert parse_linear("x1/2").coeffs == {"x1": Fraction(1, 2)}
    assert parse_linear("2^3 x").coeffs == {"x": 8}
    assert parse_linear("0.5x - -y").coeffs == {"x": Fraction(1, 2), "y": 1}
    assert parse_linear("1,5x").coeffs == {"x": Fraction(3, 2)}
    assert parse_linear("x^1").coeffs == {"x": 1}


@pytest.mark.parametrize("text", [
    "x*y",
    "x^2",
    "1/x",
    "(x + 1",
    "x + 1)",
    "x $ 2",
    "2/0",
    "",
    "x +",
])
def test_linear_rejects(text):
    with pytest.raises(InputError):
        parse_linear(text)


def test_constraint_moves_constants_right():
    assert parse_constraint("2x1 + 3x2 <= 12") == ({"x1": 2, "x2": 3}, "<=", 12)
    coeffs, sense, rhs = parse_constraint("x1 + 2 >= 3 - x2")
    assert coeffs == {"x1": 1, "x2": 1}
    assert sense == ">="
    assert rhs == 1


def test_constraint_relations():
    assert parse_constraint("x1 ≥ 1")[1] == ">="
    assert parse_constraint("x1 ≤ 1")[1] == "<="
    assert parse_constraint("x1 =< 1")[1] == "<="
    assert parse_constraint("x1 => 1")[1] == ">="
    assert parse_constraint("x1 == 2")[1] == "="
    assert parse_constraint("x1 = 2")[1] == "="


@pytest.mark.parametrize("text", ["x1 < 2", "x1 + x2", "x1 <= 2 <= 3", "2 <= 3", "<= 4"])
def test_constraint_rejects(text):
    with pytest.raises(InputError):
        parse_constraint(text)


def test_natural_order():
    assert sorted(["x10", "x2", "x1"], key=natural_key) == ["x1", "x2", "x10"]


def test_parse_lp_drops_nonnegativity_and_keeps_offset():
    lp = parse_lp("3x + 2y + 5", ["x + y <= 4", "x >= 0", "y >= 0", ""], maximize=False)
    assert lp.var_names == ["x", "y"]
    assert lp.c == [3, 2]
    assert lp.A == [[1, 1]]
    assert lp.b == [4]
    assert lp.senses == ["<="]
    assert lp.offset == 5
    assert lp.maximize is False


def test_parse_lp_collects_variables_from_constraints():
    lp = parse_lp("x1", ["x1 + x3 <= 4", "x2 >= 1"])
    assert lp.var_names == ["x1", "x2", "x3"]
    assert lp.c == [1, 0, 0]
    assert lp.A == [[1, 0, 1], [0, 1, 0]]


def test_parse_lp_needs_constraints():
    with pytest.raises(InputError):
        parse_lp("x1 + x2", ["x1 >= 0"])
    with pytest.raises(InputError):
        parse_lp("5", [])
