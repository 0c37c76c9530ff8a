from fractions import Fraction

import pytest

from optcalc.errors import InputError, NonConvergenceError
from optcalc.gradient import QuadraticCoeffs, gradient_descent

BOWL = {"A": 1, "B": 1, "D": -4, "E": -2}


def test_steepest_descent_exact_step():
    res = gradient_descent(BOWL, (0, 0))
    assert res.converged
    assert res.point == (2, 1)
    assert res.value == -5
    assert len(res.iterations) == 2
    first = res.iterations[0]
    assert first.grad == (-4, -2)
    assert first.norm_sq == 20
    assert first.step == Fraction(1, 2)
    assert first.next_point == (2, 1)
    assert res.iterations[-1].desc.startswith("Stop")


def test_constant_step():
    res = gradient_descent(BOWL, (0, 0), mode="const", alpha="1/2")
    assert res.point == (2, 1)
    assert len(res.iterations) == 2


def test_start_at_minimum():
    res = gradient_descent(BOWL, ("2", "1"))
    assert len(res.iterations) == 1
    assert res.iterations[0].step == 0


def test_stop_test_is_exact():
    # |grad| = 1/10 exactly at the start
    res = gradient_descent({"D": "0.1"}, (0, 0), epsilon="0.1", mode="const")
    assert len(res.iterations) == 1


def test_small_step_hits_the_cap():
    with pytest.raises(NonConvergenceError) as exc:
        gradient_descent(BOWL, (0, 0), mode="const", alpha="1/100", max_iter=3)
    assert len(exc.value.steps) == 3
    assert exc.value.steps[0].next_point == (Fraction(1, 25), Fraction(1, 50))


def test_steepest_needs_convexity():
    with pytest.raises(InputError):
        gradient_descent({"A": -1, "D": 1}, (0, 0))


@pytest.mark.parametrize("kwargs", [
    dict(mode="newton"),
    dict(epsilon=0),
    dict(mode="const", alpha=-1),
])
def test_invalid_settings(kwargs):
    with pytest.raises(InputError):
        gradient_descent(BOWL, (0, 0), **kwargs)


def test_coefficients():
    c = QuadraticCoeffs.parse(BOWL)
    assert str(c) == "x1^2 + x2^2 - 4x1 - 2x2"
    assert c.value(Fraction(2), Fraction(1)) == -5
    assert c.gradient(Fraction(0), Fraction(0)) == (-4, -2)
    assert QuadraticCoeffs.parse({"A": "1/2"}).A == Fraction(1, 2)
    assert str(QuadraticCoeffs()) == "0"
    with pytest.raises(InputError):
        QuadraticCoeffs.parse({"G": 1})


def test_calculation_lines(capsys):
    res = gradient_descent(BOWL, (0, 0), verbose=True)
    assert "t = 20 / 40 = 1/2" in res.iterations[0].calculations
    assert "--- Iteration 1 ---" in capsys.readouterr().out
