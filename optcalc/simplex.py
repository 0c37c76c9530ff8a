from __future__ import annotations

"""
Tableau Simplex for small LPs, exact in Fractions.
- Supports max/min by converting to max internally.
- Constraints: <=, >=, = (rows with negative b are flipped first).
- Two-Phase or Big-M when a row needs an artificial variable.
- Every tableau is recorded as a Step; verbose=True also prints them.

Input contract (programmatic API):
- c: objective coefficients for original variables (length n)
- A: constraint coefficients (m x n)
- b: RHS (length m)
- senses: entries in {"<=", ">=", "="}
- maximize: True for max, False for min
- method: one of "auto", "simplex", "big_m", "two_phase"

solve_text() accepts the same problem as strings, e.g.
"x1 + 2x2" with ["2x1 + 3x2 <= 12", "x1 + 5x2 <= 15"].
"""

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InfeasibleError, InputError
from .expr import parse_lp
from .rational import F, Num, fmt_out
from .tableau import MAX_ITERATIONS, Step, Tableau

DEFAULT_BIG_M = 10**6
SENSES = ("<=", ">=", "=")
FLIP = {"<=": ">=", ">=": "<=", "=": "="}


@dataclass
class LP:
    c: List[Num]
    A: List[List[Num]]
    b: List[Num]
    senses: List[str]
    maximize: bool = True
    var_names: Optional[List[str]] = None
    offset: Num = 0

    def __post_init__(self):
        n = len(self.c)
        if n == 0:
            raise InputError("Objective has no coefficients")
        if not self.A:
            raise InputError("At least one constraint is required")
        if len(self.b) != len(self.A) or len(self.senses) != len(self.A):
            raise InputError("A, b and senses must have the same number of rows")
        for i, row in enumerate(self.A):
            if len(row) != n:
                raise InputError(f"Constraint {i + 1} has {len(row)} coefficients, expected {n}")
        for s in self.senses:
            if s not in SENSES:
                raise InputError("sense must be one of <=, >=, =")
        if self.var_names is None:
            self.var_names = [f"x{j + 1}" for j in range(n)]
        if len(self.var_names) != n or len(set(self.var_names)) != n:
            raise InputError("var_names must be unique, one per objective coefficient")
        self.c = [F(v) for v in self.c]
        self.A = [[F(v) for v in row] for row in self.A]
        self.b = [F(v) for v in self.b]
        self.offset = F(self.offset)


@dataclass
class SimplexResult:
    optimal_value: Fraction
    solution: Dict[str, Fraction]
    iterations: int
    method: str
    steps: List[Step] = field(default_factory=list)
    details: Dict[str, object] = field(default_factory=dict)


def _aux_names(lp: LP, i: int):
    names = (f"s{i + 1}", f"e{i + 1}", f"a{i + 1}")
    clash = set(names) & set(lp.var_names)
    if clash:
        raise InputError(f"Variable name {sorted(clash)[0]} is reserved for slack/surplus/artificial variables")
    return names


def build_tableau(lp: LP) -> Tuple[Tableau, List[str]]:
    """Initial exchange-form tableau and the list of artificial labels.

    <= rows start with their slack basic, >= rows get a surplus column and an
    artificial basic, = rows only an artificial.
    """
    m = len(lp.A)
    rows = []
    for i in range(m):
        a, b, s = lp.A[i], lp.b[i], lp.senses[i]
        if b < 0:
            a, b, s = [-v for v in a], -b, FLIP[s]
        rows.append((a, b, s))

    col_labels = list(lp.var_names)
    surplus_rows = []
    row_labels = []
    artificial = []
    for i, (_, _, s) in enumerate(rows):
        slack, surplus, art = _aux_names(lp, i)
        if s == "<=":
            row_labels.append(slack)
        else:
            row_labels.append(art)
            artificial.append(art)
            if s == ">=":
                col_labels.append(surplus)
                surplus_rows.append(i)

    matrix = []
    for i, (a, _, _) in enumerate(rows):
        # the surplus enters its own row as -e_i
        matrix.append(list(a) + [Fraction(-1) if k == i else Fraction(0) for k in surplus_rows])
    rhs = [b for _, b, _ in rows]
    tab = Tableau(row_labels, col_labels, matrix, rhs, [Fraction(0)] * len(col_labels))
    return tab, artificial


def _costs(lp: LP) -> Dict[str, Fraction]:
    sign = 1 if lp.maximize else -1
    return {name: sign * c for name, c in zip(lp.var_names, lp.c)}


def _drive_out_artificials(tab: Tableau, artificial: Sequence[str], verbose: bool):
    art = set(artificial)
    tab.drop_columns(artificial)
    i = 0
    while i < tab.m:
        if tab.row_labels[i] not in art:
            i += 1
            continue
        col = next((j for j in range(tab.n) if tab.matrix[i][j] != 0), None)
        if col is None:
            tab.record(tab.snapshot("Phase I cleanup",
                                    f"Row {tab.row_labels[i]} is redundant (all zeros) and is dropped."), verbose)
            tab.drop_row(i)
            continue
        leaving = tab.row_labels[i]
        tab.record(tab.snapshot("Phase I cleanup",
                                f"Artificial {leaving} is basic at zero; pivot it out on {tab.col_labels[col]}.",
                                pivot=(i, col)), verbose)
        tab.pivot(i, col)
        # the artificial is now a column; it must never re-enter
        tab.drop_columns([leaving])
        i += 1


def _result(lp: LP, tab: Tableau, method: str, artificial: Sequence[str]) -> SimplexResult:
    values = tab.values()
    z = tab.value if lp.maximize else -tab.value
    art = set(artificial)
    alt_vars = [name for j, name in enumerate(tab.col_labels)
                if name not in art and tab.objective_row[j] == 0]
    details = {
        "alternate_optimal": len(alt_vars) > 0,
        "alt_zero_rc_vars": alt_vars,
        "basis": list(tab.row_labels),
        "slack": {name: v for name, v in values.items() if name[0] in "se" and name not in lp.var_names},
    }
    return SimplexResult(
        optimal_value=z + lp.offset,
        solution={name: values.get(name, Fraction(0)) for name in lp.var_names},
        iterations=tab.iter,
        method=method,
        steps=list(tab.steps),
        details=details,
    )


def simplex_two_phase(lp: LP, verbose=False, max_iter: int = MAX_ITERATIONS) -> SimplexResult:
    tab, artificial = build_tableau(lp)
    if artificial:
        # Phase I: maximize -sum(a)
        if verbose:
            print("\n=== Phase I ===")
        tab.price({name: -1 for name in artificial})
        tab.solve("Phase I, iteration", verbose=verbose, max_iter=max_iter)
        if tab.value < 0:
            raise InfeasibleError(
                f"Phase I optimum is {fmt_out(tab.value)} < 0: no feasible point exists")
        _drive_out_artificials(tab, artificial, verbose)
        if verbose:
            print("\n=== Phase II ===")
    tab.price(_costs(lp))
    tab.solve("Phase II, iteration" if artificial else "Iteration", verbose=verbose, max_iter=max_iter)
    return _result(lp, tab, "two_phase" if artificial else "simplex", artificial)


def simplex_big_m(lp: LP, verbose=False, M: Num = DEFAULT_BIG_M,
                  max_iter: int = MAX_ITERATIONS) -> SimplexResult:
    tab, artificial = build_tableau(lp)
    M = F(M)
    if M <= 0:
        raise InputError("Big-M must be positive")
    costs = _costs(lp)
    costs.update({name: -M for name in artificial})
    tab.price(costs)
    tab.solve("Iteration", verbose=verbose, max_iter=max_iter)
    # Feasibility check: an artificial still basic at a positive level
    for name, v in zip(tab.row_labels, tab.rhs):
        if name in artificial and v > 0:
            raise InfeasibleError(f"Artificial {name} stays basic at {fmt_out(v)}: no feasible point exists")
    return _result(lp, tab, "big_m" if artificial else "simplex", artificial)


def solve(lp: LP, method: str = "auto", verbose=False, M: Num = DEFAULT_BIG_M,
          max_iter: int = MAX_ITERATIONS) -> SimplexResult:
    # auto: plain slack simplex when every row is <= with b >= 0, otherwise two-phase
    if method in ("auto", "simplex"):
        plain = all(s == "<=" and b >= 0 for s, b in zip(lp.senses, lp.b))
        if method == "simplex" and not plain:
            raise InputError("method 'simplex' needs every constraint as <= with a non-negative right side")
        method = "two_phase"
    if method == "big_m":
        return simplex_big_m(lp, verbose=verbose, M=M, max_iter=max_iter)
    elif method == "two_phase":
        return simplex_two_phase(lp, verbose=verbose, max_iter=max_iter)
    else:
        raise InputError("method must be one of auto, simplex, big_m, two_phase")


def solve_text(objective: str, constraints: Sequence[str], maximize: bool = True,
               method: str = "auto", verbose=False, M: Num = DEFAULT_BIG_M,
               max_iter: int = MAX_ITERATIONS) -> SimplexResult:
    lp = parse_lp(objective, constraints, maximize=maximize)
    return solve(lp, method=method, verbose=verbose, M=M, max_iter=max_iter)
