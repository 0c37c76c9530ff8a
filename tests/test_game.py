from fractions import Fraction

import pytest

from optcalc.errors import InputError
from optcalc.game import reduce_dominance, saddle_point, solve_2x2, solve_game
from optcalc.rational import parse_matrix

SCENARIO = [[1, 7, 8, 10], [9, 6, 0, 5], [0, 3, 4, 2]]


def test_dominance_removes_row_then_column():
    red = reduce_dominance(parse_matrix(SCENARIO))
    assert red.rows == [0, 1]
    assert red.cols == [0, 1, 2]
    assert red.matrix == [[1, 7, 8], [9, 6, 0]]
    assert [s.title for s in red.steps] == ["Dominance (rows)", "Dominance (columns)"]
    assert "Remove A3" in red.steps[0].note
    assert "Remove B4" in red.steps[1].note


def test_dominance_is_idempotent():
    red = reduce_dominance(parse_matrix(SCENARIO))
    again = reduce_dominance(red.matrix)
    assert again.steps == []
    assert again.matrix == red.matrix


def test_equal_rows_drop_the_first():
    red = reduce_dominance(parse_matrix([[1, 2], [1, 2]]))
    assert red.rows == [1]


def test_saddle_point_values():
    alpha, beta, i, j = saddle_point(parse_matrix([[1, 7, 8], [9, 6, 0]]))
    assert (alpha, beta, i, j) == (1, 7, 0, 1)


def test_scenario_by_simplex():
    res = solve_game(SCENARIO)
    assert res.method == "simplex"
    assert (res.alpha, res.beta) == (1, 7)
    assert res.saddle is None
    assert res.value == Fraction(9, 2)
    assert res.p == [Fraction(9, 16), Fraction(7, 16), 0]
    assert res.q == [Fraction(1, 2), 0, Fraction(1, 2), 0]
    assert res.shift == 0
    assert res.alpha <= res.value <= res.beta
    assert len(res.lp_steps) == 3


def test_strategies_guarantee_the_value():
    res = solve_game(SCENARIO)
    for j in range(4):
        assert sum(res.p[i] * SCENARIO[i][j] for i in range(3)) >= res.value
    for i in range(3):
        assert sum(res.q[j] * SCENARIO[i][j] for j in range(4)) <= res.value


def test_two_by_two_formula():
    res = solve_game([[3, -1], [-2, 4]])
    assert res.method == "2x2"
    assert (res.alpha, res.beta) == (-1, 3)
    assert res.p == [Fraction(3, 5), Fraction(2, 5)]
    assert res.q == [Fraction(1, 2), Fraction(1, 2)]
    assert res.value == 1


def test_solve_2x2_zero_denominator():
    assert solve_2x2(parse_matrix([[1, 1], [1, 1]])) is None


def test_pure_strategy():
    res = solve_game([[2, 3], [1, 4]])
    assert res.method == "saddle"
    assert res.value == 2
    assert res.saddle == (0, 0)
    assert res.p == [1, 0]
    assert res.q == [1, 0]


def test_shift_for_non_positive_value():
    res = solve_game([[0, -1, 1], [1, 0, -1], [-1, 1, 0]])
    assert res.method == "simplex"
    assert res.shift == 2
    assert res.value == 0
    assert res.p == [Fraction(1, 3)] * 3
    assert res.q == [Fraction(1, 3)] * 3


def test_probabilities_sum_to_one():
    for payoff in (SCENARIO, [[3, -1], [-2, 4]], [[0, -1, 1], [1, 0, -1], [-1, 1, 0]]):
        res = solve_game(payoff)
        assert sum(res.p) == 1
        assert sum(res.q) == 1
        assert all(v >= 0 for v in res.p + res.q)


def test_invalid_payoff():
    with pytest.raises(InputError):
        solve_game([[1, 2], [3]])
    with pytest.raises(InputError):
        solve_game([])
    with pytest.raises(InputError):
        solve_game([[1, "x"]])


def test_verbose_output(capsys):
    solve_game(SCENARIO, verbose=True)
    out = capsys.readouterr().out
    assert "alpha = 1, beta = 7" in out
    assert "Remove A3" in out
