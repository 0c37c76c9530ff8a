"""Feasible region plot for two-variable LPs (matplotlib + numpy)."""

from itertools import combinations
from typing import List, Optional, Tuple

from .rational import fmt_out, to_number
from .simplex import LP, SimplexResult

TOL = 1e-9


def _halfplanes(lp: LP):
    A = [[to_number(v) for v in row] for row in lp.A]
    b = [to_number(v) for v in lp.b]
    return A, b, list(lp.senses)


def _feasible(p: Tuple[float, float], A, b, senses) -> bool:
    x, y = p
    if x < -TOL or y < -TOL:
        return False
    for (a1, a2), bi, s in zip(A, b, senses):
        lhs = a1 * x + a2 * y
        if s == "<=" and lhs > bi + TOL:
            return False
        if s == ">=" and lhs < bi - TOL:
            return False
        if s == "=" and abs(lhs - bi) > TOL:
            return False
    return True


def vertices(lp: LP) -> List[Tuple[float, float]]:
    """Basic feasible solutions: pairwise intersections of the constraint
    lines and both axes that satisfy every constraint, deduplicated."""
    A, b, senses = _halfplanes(lp)
    lines = [(a1, a2, bi) for (a1, a2), bi in zip(A, b)] + [(1.0, 0.0, 0.0), (0.0, 1.0, 0.0)]
    out: List[Tuple[float, float]] = []
    for (a1, a2, bi), (c1, c2, bj) in combinations(lines, 2):
        det = a1 * c2 - a2 * c1
        if abs(det) < 1e-12:
            continue
        p = ((bi * c2 - a2 * bj) / det, (a1 * bj - bi * c1) / det)
        if _feasible(p, A, b, senses) and not any(
                abs(p[0] - q[0]) < 1e-7 and abs(p[1] - q[1]) < 1e-7 for q in out):
            out.append(p)
    return out


def plot_2d(lp: LP, res: Optional[SimplexResult] = None):
    """Constraint lines, shaded feasible region, BFS points and the
    iso-profit line through the optimum. Returns a Figure, or None when the
    LP does not have exactly two variables or no feasible vertex exists."""
    import matplotlib.pyplot as plt
    import numpy as np

    if len(lp.c) != 2:
        return None
    A, b, senses = _halfplanes(lp)
    bfs = vertices(lp)
    if not bfs:
        return None

    xs = [p[0] for p in bfs]
    ys = [p[1] for p in bfs]
    xmin, xmax = min(0.0, min(xs)), max(xs) * 1.2 + 1
    ymin, ymax = min(0.0, min(ys)), max(ys) * 1.2 + 1
    grid_x = np.linspace(xmin, xmax, 400)
    x_name, y_name = lp.var_names

    fig, ax = plt.subplots(figsize=(6, 6))
    colors = plt.rcParams['axes.prop_cycle'].by_key()['color']
    for i, ((a1, a2), bi, s) in enumerate(zip(A, b, senses)):
        c = colors[i % len(colors)]
        label = f"Constraint {i + 1}: {a1:g}{x_name} + {a2:g}{y_name} {s} {bi:g}"
        if abs(a2) < 1e-12:
            ax.axvline(bi / a1 if abs(a1) > 1e-12 else 0, color=c, alpha=0.7, label=label)
        else:
            ax.plot(grid_x, (bi - a1 * grid_x) / a2, color=c, alpha=0.7, label=label)

    X, Y = np.meshgrid(np.linspace(xmin, xmax, 200), np.linspace(ymin, ymax, 200))
    mask = (X >= -TOL) & (Y >= -TOL)
    for (a1, a2), bi, s in zip(A, b, senses):
        lhs = a1 * X + a2 * Y
        if s == "<=":
            mask &= lhs <= bi + TOL
        elif s == ">=":
            mask &= lhs >= bi - TOL
        else:
            mask &= np.abs(lhs - bi) <= TOL
    ax.contourf(X, Y, mask, levels=[0.5, 1.5], colors=['#e8f7ff'], alpha=0.5)

    if res is not None:
        xopt = to_number(res.solution[x_name])
        yopt = to_number(res.solution[y_name])
        zopt = to_number(res.optimal_value - lp.offset)
        c1, c2 = to_number(lp.c[0]), to_number(lp.c[1])
        if abs(c2) < 1e-12:
            ax.axvline(zopt / c1, color='red', linestyle='--', label='iso-profit')
        else:
            ax.plot(grid_x, (zopt - c1 * grid_x) / c2, 'r--', label='iso-profit (through optimum)')
        ax.plot([xopt], [yopt], 'ro', label='optimal')
        ax.annotate(f"({fmt_out(res.solution[x_name])}, {fmt_out(res.solution[y_name])})",
                    (xopt, yopt), textcoords="offset points", xytext=(8, -12))
        ax.annotate(f"Z* = {fmt_out(res.optimal_value)}", (xopt, yopt),
                    textcoords="offset points", xytext=(8, 8))

        if res.details.get('alternate_optimal'):
            on_edge = sorted(p for p in bfs if abs(c1 * p[0] + c2 * p[1] - zopt) <= 1e-6)
            if len(on_edge) >= 2:
                (x1, y1), (x2, y2) = on_edge[0], on_edge[-1]
                ax.plot([x1, x2], [y1, y2], color='red', linewidth=3, alpha=0.6,
                        label='optimal edge (alternate optima)')

    ax.scatter(xs, ys, s=25, color='#444444', alpha=0.9, label='BFS')
    ax.set_xlim(xmin, xmax)
    ax.set_ylim(ymin, ymax)
    ax.set_xlabel(x_name)
    ax.set_ylabel(y_name)
    ax.set_title('Constraints, Feasible Region, Iso-profit')
    ax.legend(loc='best', fontsize=8)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig
