"""Transportation problem: minimum-cost start, potentials (u, v) and the
stepping-stone cycle, all in exact Fractions.

Tie-breaks are fixed so that the same input always yields the same plan:
every "first" below means lowest row-major index (i, j).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InputError, NonConvergenceError, StructuralError
from .rational import Num, fmt_out, parse_matrix, parse_vector

MAX_ITERATIONS = 20

Coord = Tuple[int, int]


@dataclass
class Cell:
    cost: Fraction
    value: Fraction = Fraction(0)
    is_basic: bool = False


@dataclass
class TransportProblem:
    supply: List[Fraction]
    demand: List[Fraction]
    cost: List[List[Fraction]]
    dummy: Optional[str] = None  # None | "row" | "col"

    @property
    def m(self) -> int:
        return len(self.supply)

    @property
    def n(self) -> int:
        return len(self.demand)


@dataclass(frozen=True)
class TransportStep:
    title: str
    lines: Tuple[str, ...]
    values: Tuple[Tuple[Fraction, ...], ...]
    basic: Tuple[Tuple[bool, ...], ...]
    u: Tuple[Optional[Fraction], ...] = ()
    v: Tuple[Optional[Fraction], ...] = ()
    reduced: Tuple[Tuple[Coord, Fraction], ...] = ()
    entering: Optional[Coord] = None
    cycle: Tuple[Coord, ...] = ()
    theta: Optional[Fraction] = None
    leaving: Optional[Coord] = None
    total_cost: Fraction = Fraction(0)


@dataclass
class TransportResult:
    total_cost: Fraction
    allocation: List[List[Fraction]]
    cells: List[List[Cell]]
    problem: TransportProblem
    steps: List[TransportStep] = field(default_factory=list)
    iterations: int = 0


def make_problem(supply: Sequence[Num], demand: Sequence[Num], cost: Sequence[Sequence[Num]]) -> TransportProblem:
    supply = parse_vector(supply, name="supply")
    demand = parse_vector(demand, name="demand")
    cost = parse_matrix(cost, name="cost")
    if len(cost) != len(supply) or len(cost[0]) != len(demand):
        raise InputError(
            f"cost is {len(cost)}x{len(cost[0])}, expected {len(supply)}x{len(demand)}")
    if any(s < 0 for s in supply) or any(d < 0 for d in demand):
        raise InputError("supply and demand must be non-negative")
    return TransportProblem(supply, demand, cost)


def balance(problem: TransportProblem) -> TransportProblem:
    """Append a zero-cost dummy row or column so that supply equals demand."""
    total_supply = sum(problem.supply)
    total_demand = sum(problem.demand)
    if total_supply == total_demand:
        return TransportProblem(list(problem.supply), list(problem.demand),
                                [list(r) for r in problem.cost], problem.dummy)
    if total_supply > total_demand:
        return TransportProblem(list(problem.supply), list(problem.demand) + [total_supply - total_demand],
                                [list(r) + [Fraction(0)] for r in problem.cost], "col")
    return TransportProblem(list(problem.supply) + [total_demand - total_supply], list(problem.demand),
                            [list(r) for r in problem.cost] + [[Fraction(0)] * problem.n], "row")


class _Forest:
    """Union-find over m row nodes followed by n column nodes."""

    def __init__(self, size: int):
        self.parent = list(range(size))

    def find(self, x: int) -> int:
        while self.parent[x] != x:
            self.parent[x] = self.parent[self.parent[x]]
            x = self.parent[x]
        return x

    def union(self, a: int, b: int) -> bool:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return False
        self.parent[ra] = rb
        return True


def min_cost_start(problem: TransportProblem) -> Tuple[List[List[Cell]], List[str]]:
    """Initial basic feasible solution by the minimum-cost rule.

    Degenerate plans get zero-valued basic cells, cheapest first, but only
    where they join two separate parts of the basis so it stays a tree.
    """
    m, n = problem.m, problem.n
    cells = [[Cell(problem.cost[i][j]) for j in range(n)] for i in range(m)]
    supply = list(problem.supply)
    demand = list(problem.demand)
    row_open = [True] * m
    col_open = [True] * n
    forest = _Forest(m + n)
    lines = ["Initial plan by the minimum-cost rule:"]

    order = sorted(((problem.cost[i][j], i, j) for i in range(m) for j in range(n)))
    while any(row_open) and any(col_open):
        pick = next(((c, i, j) for c, i, j in order if row_open[i] and col_open[j]), None)
        if pick is None:
            break
        c, i, j = pick
        amount = min(supply[i], demand[j])
        cell = cells[i][j]
        cell.value, cell.is_basic = amount, True
        forest.union(i, m + j)
        lines.append(f"c{i + 1}{j + 1} = {fmt_out(c)}: x{i + 1}{j + 1} = min({fmt_out(supply[i])}, "
                     f"{fmt_out(demand[j])}) = {fmt_out(amount)}")
        supply[i] -= amount
        demand[j] -= amount
        if supply[i] == 0:
            row_open[i] = False
        if demand[j] == 0:
            col_open[j] = False

    required = m + n - 1
    count = sum(c.is_basic for row in cells for c in row)
    if count < required:
        lines.append(f"Degenerate plan: {count} basic cells < {required}; adding zero shipments.")
        for c, i, j in order:
            if count == required:
                break
            if not cells[i][j].is_basic and forest.union(i, m + j):
                cells[i][j].is_basic = True
                count += 1
                lines.append(f"Zero shipment added at ({i + 1}, {j + 1})")
    check_basis(cells, problem)
    return cells, lines


def check_basis(cells: List[List[Cell]], problem: TransportProblem):
    m, n = problem.m, problem.n
    count = sum(c.is_basic for row in cells for c in row)
    if count != m + n - 1:
        raise StructuralError(f"Basis has {count} cells, expected {m + n - 1}")
    for i in range(m):
        if sum(c.value for c in cells[i]) != problem.supply[i]:
            raise StructuralError(f"Row {i + 1} ships more or less than its supply")
    for j in range(n):
        if sum(cells[i][j].value for i in range(m)) != problem.demand[j]:
            raise StructuralError(f"Column {j + 1} receives more or less than its demand")


def potentials(cells: List[List[Cell]]) -> Tuple[List[Fraction], List[Fraction]]:
    """Solve u[i] + v[j] = cost[i][j] over the basic cells, u[0] = 0."""
    m, n = len(cells), len(cells[0])
    u: List[Optional[Fraction]] = [None] * m
    v: List[Optional[Fraction]] = [None] * n
    u[0] = Fraction(0)
    stack = [("row", 0)]
    while stack:
        kind, k = stack.pop()
        if kind == "row":
            for j in range(n):
                if cells[k][j].is_basic and v[j] is None:
                    v[j] = cells[k][j].cost - u[k]
                    stack.append(("col", j))
        else:
            for i in range(m):
                if cells[i][k].is_basic and u[i] is None:
                    u[i] = cells[i][k].cost - v[k]
                    stack.append(("row", i))
    if any(x is None for x in u) or any(x is None for x in v):
        raise StructuralError("Basis graph is disconnected; potentials are undetermined")
    return u, v


def reduced_costs(cells: List[List[Cell]], u: Sequence[Fraction], v: Sequence[Fraction]) -> Dict[Coord, Fraction]:
    return {(i, j): cell.cost - u[i] - v[j]
            for i, row in enumerate(cells) for j, cell in enumerate(row) if not cell.is_basic}


def find_cycle(cells: List[List[Cell]], entering: Coord) -> Tuple[Coord, ...]:
    """Stepping-stone cycle through the basic cells, starting at ``entering``.

    The basis is a tree over row nodes and column nodes, so the path from the
    entering column back to the entering row is unique. It is found with an
    explicit stack: from a column node search along that column for basic
    cells, from a row node along that row. Consecutive cells of the returned
    cycle alternately share a column and a row; signs are + - + - from the
    entering cell.
    """
    m, n = len(cells), len(cells[0])
    ei, ej = entering
    start, goal = ("col", ej), ("row", ei)
    came_from: Dict[Tuple[str, int], Tuple[Tuple[str, int], Coord]] = {start: None}
    stack = [start]
    while stack:
        node = stack.pop()
        if node == goal:
            break
        kind, k = node
        if kind == "col":
            nbrs = [(("row", i), (i, k)) for i in range(m) if cells[i][k].is_basic and (i, k) != entering]
        else:
            nbrs = [(("col", j), (k, j)) for j in range(n) if cells[k][j].is_basic and (k, j) != entering]
        for nxt, via in nbrs:
            if nxt not in came_from:
                came_from[nxt] = (node, via)
                stack.append(nxt)
    if goal not in came_from:
        raise StructuralError(f"No cycle through cell ({ei + 1}, {ej + 1}); the basis is broken")

    path: List[Coord] = []
    node = goal
    while came_from[node] is not None:
        prev, via = came_from[node]
        path.append(via)
        node = prev
    path.reverse()
    return (entering,) + tuple(path)


def total_cost(cells: List[List[Cell]]) -> Fraction:
    return sum((c.cost * c.value for row in cells for c in row), Fraction(0))


def _snapshot(title, lines, cells, **kw) -> TransportStep:
    return TransportStep(
        title=title,
        lines=tuple(lines),
        values=tuple(tuple(c.value for c in row) for row in cells),
        basic=tuple(tuple(c.is_basic for c in row) for row in cells),
        total_cost=total_cost(cells),
        **kw,
    )


def format_step(step: TransportStep) -> str:
    """Render a step as a text grid; basic cells show their value, others a dot."""
    out = [f"\n{step.title}"]
    for i, row in enumerate(step.values):
        cells = [fmt_out(v) if step.basic[i][j] else "." for j, v in enumerate(row)]
        out.append(" ".join(f"{c:>6}" for c in cells))
    out.extend(step.lines)
    out.append(f"F = {fmt_out(step.total_cost)}")
    return "\n".join(out)


def solve_transport(supply: Sequence[Num], demand: Sequence[Num], cost: Sequence[Sequence[Num]],
                    verbose=False, max_iter: int = MAX_ITERATIONS) -> TransportResult:
    problem = balance(make_problem(supply, demand, cost))
    steps: List[TransportStep] = []

    def record(step: TransportStep):
        steps.append(step)
        if verbose:
            print(format_step(step))

    cells, lines = min_cost_start(problem)
    if problem.dummy == "col":
        lines.insert(0, f"Supply exceeds demand: dummy destination B{problem.n} added with zero cost.")
    elif problem.dummy == "row":
        lines.insert(0, f"Demand exceeds supply: dummy source A{problem.m} added with zero cost.")
    record(_snapshot("Initial plan", lines, cells))

    iteration = 0
    while True:
        u, v = potentials(cells)
        reduced = reduced_costs(cells, u, v)
        lines = [f"u = [{', '.join(fmt_out(x) for x in u)}]",
                 f"v = [{', '.join(fmt_out(x) for x in v)}]"]
        lines += [f"p{i + 1}{j + 1} = {fmt_out(cells[i][j].cost)} - {fmt_out(u[i])} - {fmt_out(v[j])} = {fmt_out(p)}"
                  for (i, j), p in sorted(reduced.items())]
        title = f"Iteration {iteration + 1}"
        entering = None
        for coord, p in sorted(reduced.items()):
            if p < 0 and (entering is None or p < reduced[entering]):
                entering = coord
        if entering is None:
            lines.append("All estimates >= 0: the plan is optimal.")
            record(_snapshot(title, lines, cells, u=tuple(u), v=tuple(v),
                             reduced=tuple(sorted(reduced.items()))))
            break
        if iteration >= max_iter:
            raise NonConvergenceError(f"No optimal plan after {max_iter} iterations", steps)

        cycle = find_cycle(cells, entering)
        minus = cycle[1::2]
        theta = min(cells[i][j].value for i, j in minus)
        leaving = min(c for c in minus if cells[c[0]][c[1]].value == theta)
        ei, ej = entering
        signs = " ".join(f"{'+' if k % 2 == 0 else '-'}({i + 1},{j + 1})" for k, (i, j) in enumerate(cycle))
        lines.append(f"Entering cell ({ei + 1}, {ej + 1}) with p = {fmt_out(reduced[entering])}")
        lines.append(f"Cycle: {signs}")
        lines.append(f"theta = {fmt_out(theta)}; cell ({leaving[0] + 1}, {leaving[1] + 1}) leaves the basis")
        record(_snapshot(title, lines, cells, u=tuple(u), v=tuple(v),
                         reduced=tuple(sorted(reduced.items())), entering=entering,
                         cycle=cycle, theta=theta, leaving=leaving))

        for k, (i, j) in enumerate(cycle):
            cells[i][j].value += theta if k % 2 == 0 else -theta
        cells[ei][ej].is_basic = True
        li, lj = leaving
        cells[li][lj].is_basic = False
        cells[li][lj].value = Fraction(0)
        check_basis(cells, problem)
        iteration += 1

    allocation = [[c.value for c in row] for row in cells]
    return TransportResult(total_cost(cells), allocation, cells, problem, steps, iteration)
