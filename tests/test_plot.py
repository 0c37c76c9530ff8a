import matplotlib

matplotlib.use("Agg")

from matplotlib.figure import Figure  # noqa: E402

from optcalc.expr import parse_lp  # noqa: E402
from optcalc.plot import plot_2d, vertices  # noqa: E402
from optcalc.simplex import solve  # noqa: E402


def test_vertices_of_feasible_region():
    lp = parse_lp("x1 + 2x2", ["2x1 + 3x2 <= 12", "x1 + 5x2 <= 15"])
    pts = sorted(vertices(lp))
    assert len(pts) == 4
    assert pts[0] == (0.0, 0.0)
    assert abs(pts[1][0] - 0.0) < 1e-9 and abs(pts[1][1] - 3.0) < 1e-9
    assert abs(pts[2][0] - 15 / 7) < 1e-9 and abs(pts[2][1] - 18 / 7) < 1e-9
    assert abs(pts[3][0] - 6.0) < 1e-9


def test_plot_returns_figure():
    lp = parse_lp("2x1 + 4x2", ["x1 + 2x2 <= 5", "x1 + x2 <= 4"])
    fig = plot_2d(lp, solve(lp))
    assert isinstance(fig, Figure)
    labels = [t.get_text() for t in fig.axes[0].get_legend().get_texts()]
    assert "optimal edge (alternate optima)" in labels


def test_plot_needs_two_variables():
    lp = parse_lp("x1 + x2 + x3", ["x1 + x2 + x3 <= 1"])
    assert plot_2d(lp) is None


def test_plot_infeasible_region():
    lp = parse_lp("x1 + x2", ["x1 + x2 <= 1", "x1 + x2 >= 2"])
    assert plot_2d(lp) is None
