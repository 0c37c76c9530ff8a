from fractions import Fraction

import pytest

from optcalc.errors import InputError, NonConvergenceError, StructuralError, UnboundedError
from optcalc.tableau import Tableau, format_step


def small():
    # max x1 + 2x2 s.t. 2x1 + 3x2 <= 12, x1 + 5x2 <= 15
    return Tableau(["s1", "s2"], ["x1", "x2"], [[2, 3], [1, 5]], [12, 15], [-1, -2])


def test_rectangle_rule_and_label_swap():
    tab = Tableau(["s1"], ["x1"], [[2]], [4], [-3])
    tab.pivot(0, 0)
    assert tab.matrix == [[Fraction(1, 2)]]
    assert tab.rhs == [2]
    assert tab.objective_row == [Fraction(3, 2)]
    assert tab.value == 6
    assert tab.row_labels == ["x1"]
    assert tab.col_labels == ["s1"]


def test_pivot_updates_other_rows():
    tab = small()
    tab.pivot(1, 1)
    assert tab.row_labels == ["s1", "x2"]
    assert tab.col_labels == ["x1", "s2"]
    assert tab.matrix == [[Fraction(7, 5), Fraction(-3, 5)], [Fraction(1, 5), Fraction(1, 5)]]
    assert tab.rhs == [3, 3]
    assert tab.objective_row == [Fraction(-3, 5), Fraction(2, 5)]
    assert tab.value == 6


def test_solve_small_problem():
    tab = small()
    steps = tab.solve()
    assert tab.value == Fraction(51, 7)
    assert tab.iter == 2
    assert tab.values()["x1"] == Fraction(15, 7)
    assert tab.values()["x2"] == Fraction(18, 7)
    assert tab.values()["s1"] == 0
    assert steps[0].pivot == (1, 1)
    assert steps[0].entering == "x2"
    assert steps[0].leaving == "s2"
    assert steps[0].ratios == (4, 3)
    assert steps[-1].pivot is None
    assert all(v >= 0 for step in steps for v in step.rhs)
    assert all(v >= 0 for v in tab.objective_row)


def test_labels_stay_partitioned():
    tab = small()
    for step in tab.solve():
        labels = step.row_labels + step.col_labels
        assert sorted(labels) == ["s1", "s2", "x1", "x2"]


def test_steps_are_snapshots():
    tab = small()
    steps = tab.solve()
    assert steps[0].value == 0
    assert steps[0].row_labels == ("s1", "s2")


def test_first_column_wins_ties():
    tab = Tableau(["s1"], ["x1", "x2"], [[1, 1]], [4], [-1, -1])
    tab.solve()
    assert tab.row_labels == ["x1"]


def test_zero_pivot():
    tab = Tableau(["s1"], ["x1", "x2"], [[0, 1]], [1], [0, 0])
    with pytest.raises(StructuralError):
        tab.pivot(0, 0)


def test_unbounded_column():
    tab = Tableau(["s1"], ["x1", "x2"], [[-1, 1]], [1], [-1, 0])
    with pytest.raises(UnboundedError) as exc:
        tab.solve()
    assert exc.value.entering == "x1"
    assert "unbounded" in tab.steps[-1].title


def test_iteration_cap():
    with pytest.raises(NonConvergenceError) as exc:
        small().solve(max_iter=1)
    assert len(exc.value.steps) == 1


def test_price_builds_objective_row():
    tab = Tableau(["s1", "s2"], ["x1", "x2"], [[2, 3], [1, 5]], [12, 15], [0, 0])
    tab.price({"x1": 1, "x2": 2})
    assert tab.objective_row == [-1, -2]
    assert tab.value == 0
    tab.price({"s1": 1})
    assert tab.objective_row == [2, 3]
    assert tab.value == 12


@pytest.mark.parametrize("kwargs", [
    dict(row_labels=["s1"], col_labels=["s1"], matrix=[[1]], rhs=[1], objective_row=[0]),
    dict(row_labels=["s1"], col_labels=["x1"], matrix=[[1]], rhs=[-1], objective_row=[0]),
    dict(row_labels=["s1"], col_labels=["x1"], matrix=[[1, 2]], rhs=[1], objective_row=[0]),
    dict(row_labels=["s1", "s2"], col_labels=["x1"], matrix=[[1]], rhs=[1], objective_row=[0]),
])
def test_invalid_tableau(kwargs):
    with pytest.raises(InputError):
        Tableau(**kwargs)


def test_format_step_marks_pivot():
    tab = small()
    steps = tab.solve()
    text = format_step(steps[0])
    assert "BV" in text
    assert "RHS" in text
    assert "Ratio" in text
    assert "[5]" in text
    assert "x2 enters, s2 leaves" in text
