from __future__ import annotations

"""
Exchange-form simplex tableau with exact Fraction entries.

Layout: each row is a basic variable, each column a non-basic one.

    basic_i = rhs[i] - sum_j matrix[i][j] * col_j
    Z       = value  - sum_j objective_row[j] * col_j

A pivot on (r, c) swaps row_labels[r] with col_labels[c] and updates every
cell by the rectangle rule, so the shape never changes and a label is always
either basic or non-basic, never both.

The objective is maximised: a negative objective_row entry means that raising
its column improves Z.
"""

from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InputError, NonConvergenceError, StructuralError, UnboundedError
from .rational import F, Num, fmt_out

MAX_ITERATIONS = 20


@dataclass(frozen=True)
class Step:
    title: str
    note: str
    row_labels: Tuple[str, ...]
    col_labels: Tuple[str, ...]
    matrix: Tuple[Tuple[Fraction, ...], ...]
    rhs: Tuple[Fraction, ...]
    objective_row: Tuple[Fraction, ...]
    value: Fraction
    pivot: Optional[Tuple[int, int]] = None
    entering: Optional[str] = None
    leaving: Optional[str] = None
    ratios: Tuple[Optional[Fraction], ...] = ()


class Tableau:
    def __init__(
        self,
        row_labels: Sequence[str],
        col_labels: Sequence[str],
        matrix: Sequence[Sequence[Num]],
        rhs: Sequence[Num],
        objective_row: Sequence[Num],
        value: Num = 0,
    ):
        self.row_labels = list(row_labels)
        self.col_labels = list(col_labels)
        self.matrix = [[F(v) for v in row] for row in matrix]
        self.rhs = [F(v) for v in rhs]
        self.objective_row = [F(v) for v in objective_row]
        self.value = F(value)
        self.iter = 0
        self.steps: List[Step] = []
        self._validate()

    def _validate(self):
        m, n = len(self.row_labels), len(self.col_labels)
        if len(self.matrix) != m or len(self.rhs) != m:
            raise InputError("Tableau rows, labels and rhs differ in length")
        if any(len(row) != n for row in self.matrix) or len(self.objective_row) != n:
            raise InputError("Tableau columns, labels and objective row differ in length")
        labels = self.row_labels + self.col_labels
        if len(set(labels)) != len(labels):
            raise InputError("Tableau labels must be unique")
        if any(v < 0 for v in self.rhs):
            raise InputError("Initial tableau is not feasible (negative rhs)")

    @property
    def m(self) -> int:
        return len(self.row_labels)

    @property
    def n(self) -> int:
        return len(self.col_labels)

    def values(self) -> Dict[str, Fraction]:
        """Current value of every label; non-basic ones sit at zero."""
        out = {name: Fraction(0) for name in self.col_labels}
        for name, v in zip(self.row_labels, self.rhs):
            out[name] = v
        return out

    def snapshot(self, title: str, note: str = "", pivot: Optional[Tuple[int, int]] = None,
                 ratios: Sequence[Optional[Fraction]] = ()) -> Step:
        entering = leaving = None
        if pivot is not None:
            leaving = self.row_labels[pivot[0]]
            entering = self.col_labels[pivot[1]]
        return Step(
            title=title,
            note=note,
            row_labels=tuple(self.row_labels),
            col_labels=tuple(self.col_labels),
            matrix=tuple(tuple(row) for row in self.matrix),
            rhs=tuple(self.rhs),
            objective_row=tuple(self.objective_row),
            value=self.value,
            pivot=pivot,
            entering=entering,
            leaving=leaving,
            ratios=tuple(ratios),
        )

    def record(self, step: Step, verbose: bool = False) -> Step:
        self.steps.append(step)
        if verbose:
            print_tableau(step)
        return step

    def choose_entering(self) -> Optional[int]:
        best_j = None
        best_val = Fraction(0)
        for j, rc in enumerate(self.objective_row):
            if rc < best_val:
                best_val = rc
                best_j = j
        return best_j

    def ratios(self, col: int) -> List[Optional[Fraction]]:
        return [self.rhs[i] / self.matrix[i][col] if self.matrix[i][col] > 0 else None
                for i in range(self.m)]

    def choose_leaving(self, col: int) -> Optional[int]:
        best_i = None
        best = None
        for i, r in enumerate(self.ratios(col)):
            if r is not None and (best is None or r < best):
                best, best_i = r, i
        return best_i

    def pivot(self, row: int, col: int):
        piv = self.matrix[row][col]
        if piv == 0:
            raise StructuralError("Zero pivot encountered")
        old = [r[:] for r in self.matrix]
        old_rhs = self.rhs[:]
        old_obj = self.objective_row[:]

        for j in range(self.n):
            self.matrix[row][j] = old[row][j] / piv
        self.matrix[row][col] = 1 / piv
        self.rhs[row] = old_rhs[row] / piv

        for i in range(self.m):
            if i == row:
                continue
            coeff = old[i][col]
            self.matrix[i][col] = -coeff / piv
            if coeff == 0:
                continue
            for j in range(self.n):
                if j != col:
                    self.matrix[i][j] = old[i][j] - coeff * old[row][j] / piv
            self.rhs[i] = old_rhs[i] - coeff * old_rhs[row] / piv

        coeff = old_obj[col]
        self.objective_row[col] = -coeff / piv
        if coeff != 0:
            for j in range(self.n):
                if j != col:
                    self.objective_row[j] = old_obj[j] - coeff * old[row][j] / piv
            self.value = self.value - coeff * old_rhs[row] / piv

        self.row_labels[row], self.col_labels[col] = self.col_labels[col], self.row_labels[row]

    def price(self, costs: Dict[str, Num]):
        """Rebuild the objective row for Z = sum(costs[label] * label).

        Labels missing from ``costs`` cost nothing.
        """
        cb = [F(costs.get(name, 0)) for name in self.row_labels]
        self.objective_row = [
            sum((cb[i] * self.matrix[i][j] for i in range(self.m)), Fraction(0)) - F(costs.get(name, 0))
            for j, name in enumerate(self.col_labels)
        ]
        self.value = sum((cb[i] * self.rhs[i] for i in range(self.m)), Fraction(0))

    def drop_columns(self, labels: Sequence[str]):
        drop = set(labels)
        keep = [j for j, name in enumerate(self.col_labels) if name not in drop]
        self.col_labels = [self.col_labels[j] for j in keep]
        self.matrix = [[row[j] for j in keep] for row in self.matrix]
        self.objective_row = [self.objective_row[j] for j in keep]

    def drop_row(self, row: int):
        del self.row_labels[row]
        del self.matrix[row]
        del self.rhs[row]

    def solve(self, title: str = "Iteration", verbose: bool = False,
              max_iter: int = MAX_ITERATIONS) -> List[Step]:
        """Pivot until the objective row has no negative entry.

        Returns the steps recorded by this call. Raises UnboundedError when the
        entering column has no positive entry and NonConvergenceError when
        ``max_iter`` pivots were not enough.
        """
        start = len(self.steps)
        pivots = 0
        while True:
            enter_j = self.choose_entering()
            if enter_j is None:
                self.record(self.snapshot(f"{title} {self.iter}: optimal",
                                          "No negative entry in the objective row; the tableau is optimal."),
                            verbose)
                return self.steps[start:]
            name = self.col_labels[enter_j]
            ratios = self.ratios(enter_j)
            leave_i = self.choose_leaving(enter_j)
            if leave_i is None:
                self.record(self.snapshot(f"{title} {self.iter}: unbounded",
                                          f"Column {name} has no positive entry; the objective is unbounded.",
                                          ratios=ratios), verbose)
                raise UnboundedError(f"Objective is unbounded along {name}", entering=name)
            if pivots >= max_iter:
                raise NonConvergenceError(f"No optimum after {max_iter} iterations", self.steps[start:])
            note = (f"Most negative objective entry {fmt_out(self.objective_row[enter_j])} is under {name}; "
                    f"min ratio {fmt_out(ratios[leave_i])} in row {self.row_labels[leave_i]}; "
                    f"pivot {fmt_out(self.matrix[leave_i][enter_j])}. "
                    f"{name} enters, {self.row_labels[leave_i]} leaves.")
            self.record(self.snapshot(f"{title} {self.iter}", note, pivot=(leave_i, enter_j), ratios=ratios),
                        verbose)
            self.pivot(leave_i, enter_j)
            self.iter += 1
            pivots += 1


def format_step(step: Step) -> str:
    """Render a step as a fixed-width text table with BV, RHS and Ratio columns."""
    headers = ["BV"] + list(step.col_labels) + ["RHS", "Ratio"]
    rows: List[List[str]] = []
    for i, name in enumerate(step.row_labels):
        cells = [name]
        for j, v in enumerate(step.matrix[i]):
            s = fmt_out(v)
            if step.pivot == (i, j):
                s = f"[{s}]"
            cells.append(s)
        cells.append(fmt_out(step.rhs[i]))
        ratio = step.ratios[i] if i < len(step.ratios) else None
        cells.append(fmt_out(ratio) if ratio is not None else "")
        rows.append(cells)
    rows.append(["Z"] + [fmt_out(v) for v in step.objective_row] + [fmt_out(step.value), ""])

    colw = max(6, max(len(s) for s in headers + [c for r in rows for c in r]) + 2)
    lines = [f"\n{step.title}"]
    lines.append(" ".join(f"{h:>{colw}}" for h in headers))
    lines.append("-" * (len(headers) * (colw + 1)))
    for r in rows:
        lines.append(" ".join(f"{c:>{colw}}" for c in r))
    if step.note:
        lines.append(step.note)
    return "\n".join(lines)


def print_tableau(step: Step):
    print(format_step(step))
