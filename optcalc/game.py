"""Zero-sum matrix games: dominance, saddle point, 2x2 formula, LP via simplex.

Rows are the strategies of player A (maximiser), columns those of player B.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

from .errors import InputError
from .rational import Num, fmt_out, parse_matrix
from .tableau import Step, Tableau

GAME_MAX_ITERATIONS = 15


@dataclass(frozen=True)
class GameStep:
    title: str
    note: str
    matrix: Tuple[Tuple[Fraction, ...], ...]
    row_labels: Tuple[str, ...]
    col_labels: Tuple[str, ...]
    removed_row: Optional[int] = None
    removed_col: Optional[int] = None


@dataclass
class Reduction:
    matrix: List[List[Fraction]]
    rows: List[int]  # original row index of each remaining row
    cols: List[int]
    steps: List[GameStep] = field(default_factory=list)


@dataclass
class GameResult:
    value: Fraction
    p: List[Fraction]  # player A, indexed like the input rows
    q: List[Fraction]  # player B, indexed like the input columns
    alpha: Fraction
    beta: Fraction
    saddle: Optional[Tuple[int, int]]
    method: str  # "saddle" | "2x2" | "simplex"
    steps: List[GameStep] = field(default_factory=list)
    lp_steps: List[Step] = field(default_factory=list)
    shift: Fraction = Fraction(0)
    lines: List[str] = field(default_factory=list)


def _labels(rows: Sequence[int], cols: Sequence[int]):
    return tuple(f"A{i + 1}" for i in rows), tuple(f"B{j + 1}" for j in cols)


def _snapshot(title, note, mat, rows, cols, removed_row=None, removed_col=None) -> GameStep:
    rl, cl = _labels(rows, cols)
    return GameStep(title, note, tuple(tuple(r) for r in mat), rl, cl, removed_row, removed_col)


def reduce_dominance(matrix: Sequence[Sequence[Fraction]]) -> Reduction:
    """Drop dominated rows and columns until nothing changes.

    Row i goes when it is entrywise <= some other row (A never prefers it);
    column j goes when it is entrywise >= some other column (B never prefers
    it). The comparison is non-strict, so of two equal rows the first goes.
    After each removal the scan restarts, rows before columns.
    """
    mat = [list(r) for r in matrix]
    rows = list(range(len(mat)))
    cols = list(range(len(mat[0])))
    steps: List[GameStep] = []

    while True:
        removed = False
        if len(mat) > 1:
            for i in range(len(mat)):
                k = next((k for k in range(len(mat))
                          if k != i and all(a <= b for a, b in zip(mat[i], mat[k]))), None)
                if k is not None:
                    steps.append(_snapshot(
                        "Dominance (rows)",
                        f"A{rows[i] + 1} <= A{rows[k] + 1}. Remove A{rows[i] + 1}.",
                        mat, rows, cols, removed_row=i))
                    del mat[i]
                    del rows[i]
                    removed = True
                    break
        if removed:
            continue
        if len(mat[0]) > 1:
            for j in range(len(mat[0])):
                k = next((k for k in range(len(mat[0]))
                          if k != j and all(r[j] >= r[k] for r in mat)), None)
                if k is not None:
                    steps.append(_snapshot(
                        "Dominance (columns)",
                        f"B{cols[j] + 1} >= B{cols[k] + 1}. Remove B{cols[j] + 1}.",
                        mat, rows, cols, removed_col=j))
                    for r in mat:
                        del r[j]
                    del cols[j]
                    removed = True
                    break
        if not removed:
            return Reduction(mat, rows, cols, steps)


def saddle_point(matrix: Sequence[Sequence[Fraction]]):
    """Return (alpha, beta, row, col): lower value, upper value and the first
    row/column attaining them."""
    row_mins = [min(r) for r in matrix]
    col_maxs = [max(r[j] for r in matrix) for j in range(len(matrix[0]))]
    alpha = max(row_mins)
    beta = min(col_maxs)
    return alpha, beta, row_mins.index(alpha), col_maxs.index(beta)


def _spread(values: Sequence[Fraction], index: Sequence[int], size: int) -> List[Fraction]:
    out = [Fraction(0)] * size
    for v, k in zip(values, index):
        out[k] = v
    return out


def solve_2x2(mat: Sequence[Sequence[Fraction]]):
    """Closed form for a 2x2 game without a saddle point. Returns (V, p, q, lines)."""
    (a11, a12), (a21, a22) = mat
    denom = a11 + a22 - a12 - a21
    if denom == 0:
        return None
    p1 = (a22 - a21) / denom
    q1 = (a22 - a12) / denom
    V = (a11 * a22 - a12 * a21) / denom
    lines = [
        "System for B (q):",
        f"{fmt_out(a11)}q1 + {fmt_out(a12)}q2 = V",
        f"{fmt_out(a21)}q1 + {fmt_out(a22)}q2 = V",
        "q1 + q2 = 1",
        f"q1 = {fmt_out(q1)}, q2 = {fmt_out(1 - q1)}",
        "System for A (p):",
        f"{fmt_out(a11)}p1 + {fmt_out(a21)}p2 = V",
        f"{fmt_out(a12)}p1 + {fmt_out(a22)}p2 = V",
        f"p1 = {fmt_out(p1)}, p2 = {fmt_out(1 - p1)}",
        f"V = {fmt_out(V)}",
    ]
    return V, [p1, 1 - p1], [q1, 1 - q1], lines


def game_tableau(mat: Sequence[Sequence[Fraction]], cols: Sequence[int]) -> Tableau:
    """LP for player B: max sum(y) s.t. sum_j a_ij y_j <= 1, y >= 0."""
    m = len(mat)
    col_labels = [f"y{j + 1}" for j in cols]
    row_labels = [f"u{i + 1}" for i in range(m)]
    return Tableau(row_labels, col_labels, mat, [1] * m, [-1] * len(col_labels))


def solve_lp_game(mat: Sequence[Sequence[Fraction]], cols: Sequence[int], verbose=False,
                  max_iter: int = GAME_MAX_ITERATIONS):
    """Run the simplex on a game with positive value. Returns (V, p, q, tableau).

    q_j = y_j / Z, p_i = (objective entry under u_i) / Z, V = 1 / Z.
    """
    tab = game_tableau(mat, cols)
    tab.solve("Simplex iteration", verbose=verbose, max_iter=max_iter)
    Z = tab.value
    if Z <= 0:
        raise InputError("The game LP has a non-positive optimum; the value must be positive")
    V = 1 / Z
    values = tab.values()
    q = [values[f"y{j + 1}"] * V for j in cols]
    p = []
    for i in range(len(mat)):
        name = f"u{i + 1}"
        p.append(tab.objective_row[tab.col_labels.index(name)] * V if name in tab.col_labels else Fraction(0))
    return V, p, q, tab


def solve_game(payoff: Sequence[Sequence[Num]], verbose=False,
               max_iter: int = GAME_MAX_ITERATIONS) -> GameResult:
    original = parse_matrix(payoff, name="payoff")
    m0, n0 = len(original), len(original[0])

    red = reduce_dominance(original)
    steps = list(red.steps)
    mat, rows, cols = red.matrix, red.rows, red.cols
    if verbose:
        for s in steps:
            print(f"{s.title}: {s.note}")

    alpha, beta, si, sj = saddle_point(mat)
    steps.append(_snapshot("Saddle point search", f"alpha = {fmt_out(alpha)}, beta = {fmt_out(beta)}",
                           mat, rows, cols))
    if verbose:
        print(f"alpha = {fmt_out(alpha)}, beta = {fmt_out(beta)}")

    if alpha == beta:
        p = _spread([Fraction(1)], [rows[si]], m0)
        q = _spread([Fraction(1)], [cols[sj]], n0)
        return GameResult(alpha, p, q, alpha, beta, (rows[si], cols[sj]), "saddle", steps)

    if len(mat) == 2 and len(mat[0]) == 2:
        closed = solve_2x2(mat)
        if closed is not None:
            V, p, q, lines = closed
            steps.append(_snapshot("Analytic solution (2x2)", "\n".join(lines), mat, rows, cols))
            if verbose:
                print("\n".join(lines))
            return GameResult(V, _spread(p, rows, m0), _spread(q, cols, n0), alpha, beta, None,
                              "2x2", steps, lines=lines)

    # shift so that every payoff, and therefore the value, is positive
    shift = Fraction(0)
    if alpha <= 0:
        shift = 1 - min(min(r) for r in mat)
    lp_mat = [[a + shift for a in r] for r in mat]
    lines = [f"Matrix {len(mat)}x{len(mat[0])}. Reduce to an LP."]
    if shift:
        lines.append(f"alpha <= 0: add {fmt_out(shift)} to every payoff, the value moves by the same amount.")
    for r in lp_mat:
        terms = [f"{fmt_out(a)}y{cols[j] + 1}" for j, a in enumerate(r) if a != 0]
        lines.append(" + ".join(terms) + " <= 1")
    lines.append("Z = sum(y) -> max, y >= 0")

    V, p, q, tab = solve_lp_game(lp_mat, cols, verbose=verbose, max_iter=max_iter)
    lines.append(f"Z (max) = {fmt_out(tab.value)}")
    lines.append(f"V = 1/Z - {fmt_out(shift)} = {fmt_out(V - shift)}" if shift else f"V = 1/Z = {fmt_out(V)}")
    steps.append(_snapshot("Simplex solution", "\n".join(lines), mat, rows, cols))
    return GameResult(V - shift, _spread(p, rows, m0), _spread(q, cols, n0), alpha, beta, None,
                      "simplex", steps, lp_steps=list(tab.steps), shift=shift, lines=lines)
