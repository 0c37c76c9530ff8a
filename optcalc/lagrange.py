"""Lagrange multipliers for a polynomial objective under one equality constraint.

    f = G x1^2x2 + H x1x2^2 + A x1^2 + B x2^2 + C x1x2 + D x1 + E x2 + F
    g = a x1^2 + b x2^2 + c x1x2 + d x1 + e x2 + f = 0
    L = f + lambda * g

Three shapes have a closed form and are supported:

* g linear, f quadratic (G = H = 0): the stationarity system is linear in
  (x1, x2, lambda) and is solved exactly.
* g linear, f cubic: along the line the stationarity condition is a quadratic
  in one variable; roots are exact when its discriminant is a perfect square.
* f linear and g a centred conic (c = d = e = 0): lambda^2 is rational, lambda
  itself is exact when that is a perfect square and a float otherwise.

Each critical point is classified with the bordered Hessian. Two classic
geometry problems (cylinder and open box of fixed volume) are solved in
closed form by ``solve_geometry``.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InputError
from .gradient import QuadraticCoeffs
from .rational import F, Num, fmt_out, rational_cbrt, rational_sqrt

CYLINDER_VOLUME = 403
BOX_VOLUME = 32


@dataclass(frozen=True)
class CubicCoeffs(QuadraticCoeffs):
    """Objective coefficients; G and H weigh x1^2x2 and x1x2^2."""
    G: Fraction = Fraction(0)
    H: Fraction = Fraction(0)

    NAMES = "ABCDEFGH"

    def value(self, x1: Fraction, x2: Fraction) -> Fraction:
        return super().value(x1, x2) + self.G * x1 * x1 * x2 + self.H * x1 * x2 * x2

    def gradient(self, x1: Fraction, x2: Fraction):
        g1, g2 = super().gradient(x1, x2)
        return (g1 + 2 * self.G * x1 * x2 + self.H * x2 * x2,
                g2 + self.G * x1 * x1 + 2 * self.H * x1 * x2)

    def terms(self):
        return ((self.G, "x1^2x2"), (self.H, "x1x2^2")) + super().terms()


@dataclass(frozen=True)
class CriticalPoint:
    x1: Fraction
    x2: Fraction
    lam: Fraction
    f_value: Fraction
    kind: str  # "min" | "max" | "saddle" | "unknown"
    exact: bool
    det: Fraction
    hessian: tuple = ()


@dataclass
class LagrangeResult:
    lagrangian: str
    partials: List[str]
    solution_lines: List[str]
    points: List[CriticalPoint] = field(default_factory=list)
    conclusion: str = ""


@dataclass
class GeometryResult:
    problem: str
    lagrangian: str
    partials: List[str]
    solution_lines: List[str]
    point: Dict[str, Fraction]
    lam: Fraction
    value: Fraction
    kind: str
    exact: bool
    minors: Tuple[Fraction, ...] = ()
    conclusion: str = ""


def parse_objective_coeffs(coeffs) -> CubicCoeffs:
    if isinstance(coeffs, CubicCoeffs):
        return coeffs
    if isinstance(coeffs, QuadraticCoeffs):
        return CubicCoeffs(**asdict(coeffs))
    return CubicCoeffs.parse(coeffs)


def parse_constraint_coeffs(coeffs: Dict[str, Num]) -> QuadraticCoeffs:
    """Constraint coefficients come as a..f; stored in the same shape as f."""
    unknown = set(coeffs) - set("abcdef")
    if unknown:
        raise InputError(f"Unknown constraint coefficient(s): {', '.join(sorted(unknown))}")
    return QuadraticCoeffs(**{k.upper(): F(v) for k, v in coeffs.items()})


def bordered_det(gx: Fraction, gy: Fraction, lxx: Fraction, lxy: Fraction, lyy: Fraction) -> Fraction:
    """det of [[0, gx, gy], [gx, Lxx, Lxy], [gy, Lxy, Lyy]]."""
    return -gx * gx * lyy + 2 * gx * gy * lxy - gy * gy * lxx


def determinant(rows: Sequence[Sequence[Fraction]]) -> Fraction:
    a = [list(r) for r in rows]
    n = len(a)
    det = Fraction(1)
    for col in range(n):
        piv = next((r for r in range(col, n) if a[r][col] != 0), None)
        if piv is None:
            return Fraction(0)
        if piv != col:
            a[col], a[piv] = a[piv], a[col]
            det = -det
        det *= a[col][col]
        for r in range(col + 1, n):
            k = a[r][col] / a[col][col]
            if k != 0:
                a[r] = [v - k * w for v, w in zip(a[r], a[col])]
    return det


def classify_minors(minors: Sequence[Fraction]) -> str:
    """Second-order test with one constraint.

    ``minors`` are the leading principal minors of the bordered Hessian of
    order 3, 4, ... A minimum needs all of them negative; a maximum needs the
    sign of (-1)^r for the minor covering r variables.
    """
    if any(d == 0 for d in minors):
        return "unknown"
    if all(d < 0 for d in minors):
        return "min"
    if all((d > 0) == (r % 2 == 0) for r, d in enumerate(minors, start=2)):
        return "max"
    return "saddle"


def classify(det: Fraction) -> str:
    return classify_minors([det])


def bordered_minors(grad: Sequence[Fraction], hess: Sequence[Sequence[Fraction]]) -> Tuple[Fraction, ...]:
    n = len(grad)
    full = [[Fraction(0)] + list(grad)] + [[grad[i]] + list(hess[i]) for i in range(n)]
    return tuple(determinant([row[:k] for row in full[:k]]) for k in range(3, n + 2))


def solve_linear(rows: Sequence[Sequence[Fraction]]) -> Optional[List[Fraction]]:
    """Gauss-Jordan on an augmented n x (n+1) system.

    Returns the unique solution, None when the system is singular.
    """
    a = [list(r) for r in rows]
    n = len(a)
    for col in range(n):
        piv = next((r for r in range(col, n) if a[r][col] != 0), None)
        if piv is None:
            return None
        a[col], a[piv] = a[piv], a[col]
        p = a[col][col]
        a[col] = [v / p for v in a[col]]
        for r in range(n):
            if r != col and a[r][col] != 0:
                k = a[r][col]
                a[r] = [v - k * w for v, w in zip(a[r], a[col])]
    return [a[r][n] for r in range(n)]


def _is_consistent(rows: Sequence[Sequence[Fraction]]) -> bool:
    """True when a singular augmented system still has solutions (rank test)."""
    def rank(mat):
        a = [list(r) for r in mat]
        rk = 0
        for col in range(len(a[0])):
            piv = next((r for r in range(rk, len(a)) if a[r][col] != 0), None)
            if piv is None:
                continue
            a[rk], a[piv] = a[piv], a[rk]
            for r in range(len(a)):
                if r != rk and a[r][col] != 0:
                    k = a[r][col] / a[rk][col]
                    a[r] = [v - k * w for v, w in zip(a[r], a[rk])]
            rk += 1
        return rk

    return rank([r[:-1] for r in rows]) == rank(rows)


def _lin(terms) -> str:
    s = " + ".join(f"{fmt_out(k)}{name}" for k, name in terms if k != 0)
    return s.replace("+ -", "- ") or "0"


def _partials(f: CubicCoeffs, g: QuadraticCoeffs) -> List[str]:
    return [
        f"dL/dx1 = {_lin([(2 * f.G, 'x1x2'), (f.H, 'x2^2'), (2 * f.A, 'x1'), (f.C, 'x2'), (f.D, '')])} "
        f"+ lambda({_lin([(2 * g.A, 'x1'), (g.C, 'x2'), (g.D, '')])}) = 0",
        f"dL/dx2 = {_lin([(f.G, 'x1^2'), (2 * f.H, 'x1x2'), (2 * f.B, 'x2'), (f.C, 'x1'), (f.E, '')])} "
        f"+ lambda({_lin([(2 * g.B, 'x2'), (g.C, 'x1'), (g.E, '')])}) = 0",
        f"dL/dlambda = {g} = 0",
    ]


def _linear_constraint(f: CubicCoeffs, g: QuadraticCoeffs, lines: List[str]) -> List[CriticalPoint]:
    system = [
        [2 * f.A, f.C, g.D, -f.D],
        [f.C, 2 * f.B, g.E, -f.E],
        [g.D, g.E, Fraction(0), -g.F],
    ]
    lines.append("Linear constraint: the stationarity system is linear in x1, x2, lambda.")
    for r in system:
        lines.append(f"{fmt_out(r[0])}x1 + {fmt_out(r[1])}x2 + {fmt_out(r[2])}lambda = {fmt_out(r[3])}")
    sol = solve_linear(system)
    if sol is None:
        if _is_consistent(system):
            lines.append("The system is singular but consistent: infinitely many stationary points.")
        else:
            lines.append("The system is inconsistent: no stationary point, the extremum is at infinity.")
        return []
    x1, x2, lam = sol
    lines.append(f"x1 = {fmt_out(x1)}, x2 = {fmt_out(x2)}, lambda = {fmt_out(lam)}")
    lxx, lxy, lyy = 2 * f.A, f.C, 2 * f.B
    det = bordered_det(g.D, g.E, lxx, lxy, lyy)
    kind = classify(det)
    hessian = (f"Lxx = {fmt_out(lxx)}, Lxy = {fmt_out(lxy)}, Lyy = {fmt_out(lyy)}",
               f"gx = {fmt_out(g.D)}, gy = {fmt_out(g.E)}",
               f"det(H) = {fmt_out(det)} -> {kind}")
    return [CriticalPoint(x1, x2, lam, f.value(x1, x2), kind, True, det, hessian)]


def _poly_add(*polys):
    out = [Fraction(0)] * max(len(p) for p in polys)
    for p in polys:
        for i, a in enumerate(p):
            out[i] += a
    return out


def _poly_mul(p, q):
    out = [Fraction(0)] * (len(p) + len(q) - 1)
    for i, a in enumerate(p):
        for j, b in enumerate(q):
            out[i + j] += a * b
    return out


def _poly_at(p, t: Fraction) -> Fraction:
    return sum((a * t ** i for i, a in enumerate(p)), Fraction(0))


def _cubic_on_line(f: CubicCoeffs, g: QuadraticCoeffs, lines: List[str]) -> List[CriticalPoint]:
    # parametrise the line by one free variable t
    if g.E != 0:
        free = "x1"
        p1, p2 = [Fraction(0), Fraction(1)], [-g.F / g.E, -g.D / g.E]
        lines.append(f"From the constraint: x2 = {_lin([(-g.F / g.E, ''), (-g.D / g.E, 'x1')])}")
    else:
        free = "x2"
        p1, p2 = [-g.F / g.D], [Fraction(0), Fraction(1)]
        lines.append(f"From the constraint: x1 = {fmt_out(-g.F / g.D)}")
    q1, q2 = (p1[1] if len(p1) > 1 else Fraction(0)), (p2[1] if len(p2) > 1 else Fraction(0))

    # directional derivative of f along the line must vanish
    fx1 = _poly_add([2 * f.A * v for v in p1], [f.C * v for v in p2], [f.D],
                    [2 * f.G * v for v in _poly_mul(p1, p2)], [f.H * v for v in _poly_mul(p2, p2)])
    fx2 = _poly_add([2 * f.B * v for v in p2], [f.C * v for v in p1], [f.E],
                    [f.G * v for v in _poly_mul(p1, p1)], [2 * f.H * v for v in _poly_mul(p1, p2)])
    cond = _poly_add([q1 * v for v in fx1], [q2 * v for v in fx2], [Fraction(0)] * 3)
    c0, c1, c2 = cond[:3]
    lines.append(f"Stationarity along the constraint: "
                 f"{_lin([(c2, free + '^2'), (c1, free), (c0, '')])} = 0")

    if c2 == 0:
        if c1 == 0:
            if c0 == 0:
                lines.append("Every point of the constraint is stationary: infinitely many stationary points.")
            else:
                lines.append("The equation is inconsistent: no stationary point.")
            return []
        roots, exact = [-c0 / c1], True
    else:
        disc = c1 * c1 - 4 * c2 * c0
        lines.append(f"Discriminant = {fmt_out(disc)}")
        if disc < 0:
            lines.append("Discriminant < 0: no real critical points.")
            return []
        root = rational_sqrt(disc)
        exact = root is not None
        if root is None:
            root = F(math.sqrt(disc))
            lines.append(f"sqrt(Discriminant) ~ {float(root):.6f}")
        roots = sorted({(-c1 - root) / (2 * c2), (-c1 + root) / (2 * c2)})

    points = []
    for t in roots:
        x1, x2 = _poly_at(p1, t), _poly_at(p2, t)
        fx1_t, fx2_t = f.gradient(x1, x2)
        lam = -fx1_t / g.D if g.D != 0 else -fx2_t / g.E
        lxx = 2 * f.A + 2 * f.G * x2
        lxy = f.C + 2 * f.G * x1 + 2 * f.H * x2
        lyy = 2 * f.B + 2 * f.H * x1
        det = bordered_det(g.D, g.E, lxx, lxy, lyy)
        kind = classify(det)
        show = fmt_out if exact else (lambda v: f"{float(v):.6f}")
        lines.append(f"x1 = {show(x1)}, x2 = {show(x2)}, lambda = {show(lam)}")
        hessian = (f"Lxx = {show(lxx)}, Lxy = {show(lxy)}, Lyy = {show(lyy)}",
                   f"gx = {fmt_out(g.D)}, gy = {fmt_out(g.E)}",
                   f"det(H) = {show(det)} -> {kind}"
                   + (" (further analysis needed)" if kind == "unknown" else ""))
        points.append(CriticalPoint(x1, x2, lam, f.value(x1, x2), kind, exact, det, hessian))
    return points


def _centred_conic(f: CubicCoeffs, g: QuadraticCoeffs, lines: List[str]) -> List[CriticalPoint]:
    if g.A == 0 or g.B == 0:
        raise InputError("Conic constraint needs both x1^2 and x2^2 terms")
    if f.D == 0 and f.E == 0:
        raise InputError("The objective is constant")
    lines.append("Linear objective, centred conic constraint:")
    lines.append(f"x1 = {fmt_out(-f.D)}/({fmt_out(2 * g.A)} lambda), x2 = {fmt_out(-f.E)}/({fmt_out(2 * g.B)} lambda)")
    if g.F == 0:
        lines.append("The constraint passes through the origin: no finite lambda.")
        return []
    lam_sq = (f.D * f.D / g.A + f.E * f.E / g.B) / (-4 * g.F)
    lines.append(f"lambda^2 = {fmt_out(lam_sq)}")
    if lam_sq <= 0:
        lines.append("lambda^2 <= 0: no real critical points.")
        return []
    lam = rational_sqrt(lam_sq)
    exact = lam is not None
    if lam is None:
        lam = F(float(lam_sq) ** 0.5)
    lines.append(f"lambda = +-{fmt_out(lam)}" + ("" if exact else f" (~{float(lam):.6f})"))

    points = []
    for sign in (1, -1):
        lm = sign * lam
        x1 = -f.D / (2 * g.A * lm)
        x2 = -f.E / (2 * g.B * lm)
        lxx, lyy = 2 * g.A * lm, 2 * g.B * lm
        gx, gy = 2 * g.A * x1, 2 * g.B * x2
        det = bordered_det(gx, gy, lxx, Fraction(0), lyy)
        kind = classify(det)
        hessian = (f"lambda = {fmt_out(lm)}: Lxx = 2a*lambda = {fmt_out(lxx)}, Lyy = 2b*lambda = {fmt_out(lyy)}",
                   f"gx = {fmt_out(gx)}, gy = {fmt_out(gy)}",
                   f"det(H) = {fmt_out(det)} -> {kind}")
        points.append(CriticalPoint(x1, x2, lm, f.value(x1, x2), kind, exact, det, hessian))
    return points


def solve_lagrange(objective, constraint, verbose=False) -> LagrangeResult:
    f = parse_objective_coeffs(objective)
    g = constraint if isinstance(constraint, QuadraticCoeffs) else parse_constraint_coeffs(constraint)

    lagrangian = f"L(x1, x2, lambda) = {f} + lambda({g})"
    partials = _partials(f, g)
    lines: List[str] = []

    g_linear = g.A == 0 and g.B == 0 and g.C == 0
    f_cubic = f.G != 0 or f.H != 0
    f_linear = f.A == 0 and f.B == 0 and f.C == 0 and not f_cubic
    if g_linear:
        if g.D == 0 and g.E == 0:
            raise InputError("The constraint has no variables")
        points = (_cubic_on_line if f_cubic else _linear_constraint)(f, g, lines)
    elif f_linear and g.C == 0 and g.D == 0 and g.E == 0:
        points = _centred_conic(f, g, lines)
    else:
        raise InputError("Unsupported problem: needs a linear constraint, "
                         "or a linear objective with a centred conic constraint")

    if points:
        show = fmt_out if all(p.exact for p in points) else (lambda v: f"{float(v):.6f}")
        conclusion = "; ".join(
            f"{p.kind} at ({show(p.x1)}, {show(p.x2)}), f = {show(p.f_value)}" for p in points)
    else:
        conclusion = "No isolated critical point."
    result = LagrangeResult(lagrangian, partials, lines, points, conclusion)
    if verbose:
        print("\n".join([lagrangian] + partials + lines + [conclusion]))
    return result


def _positive_volume(volume: Num) -> Fraction:
    v = F(volume)
    if v <= 0:
        raise InputError("Volume V must be positive")
    return v


def _show(v: Fraction, exact: bool) -> str:
    return fmt_out(v) if exact else f"{float(v):.6f}"


def solve_cylinder(volume: Num = CYLINDER_VOLUME) -> GeometryResult:
    """Closed cylinder of volume V with least surface S = 2 pi R^2 + 2 pi R h."""
    v = _positive_volume(volume)
    pi = math.pi
    r = (float(v) / (2 * pi)) ** (1 / 3)
    h = 2 * r
    lam = -2 / r
    s = 6 * pi * r * r
    lines = [
        "dL/dh = 0: 2piR + piR^2 lambda = 0 -> lambda = -2/R",
        "dL/dR = 0: 4piR + 2pih - 4pih = 0 -> h = 2R",
        f"piR^2 h = V -> 2piR^3 = {fmt_out(v)} -> R = cbrt(V / (2pi))",
        f"R ~ {r:.6f}, h ~ {h:.6f}, lambda ~ {lam:.6f}",
        f"S = 6piR^2 ~ {s:.6f}",
    ]
    grad = [F(2 * pi * r * h), F(pi * r * r)]
    hess = [[F(4 * pi + 2 * pi * h * lam), F(2 * pi + 2 * pi * r * lam)],
            [F(2 * pi + 2 * pi * r * lam), Fraction(0)]]
    minors = bordered_minors(grad, hess)
    kind = classify_minors(minors)
    lines.append(f"det(H) ~ {float(minors[0]):.6f} -> {kind}")
    return GeometryResult(
        problem="cylinder",
        lagrangian=f"L(R, h, lambda) = 2piR^2 + 2piRh + lambda(piR^2 h - {fmt_out(v)})",
        partials=["dL/dR = 4piR + 2pih + 2piRh lambda = 0",
                  "dL/dh = 2piR + piR^2 lambda = 0",
                  f"dL/dlambda = piR^2 h - {fmt_out(v)} = 0"],
        solution_lines=lines,
        point={"R": F(r), "h": F(h)},
        lam=F(lam),
        value=F(s),
        kind=kind,
        exact=False,
        minors=minors,
        conclusion=f"{kind} at R ~ {r:.4f}, h ~ {h:.4f}, S ~ {s:.4f}",
    )


def solve_box(volume: Num = BOX_VOLUME) -> GeometryResult:
    """Open box of volume V with least surface S = xy + 2xz + 2yz."""
    v = _positive_volume(volume)
    x = rational_cbrt(2 * v)
    exact = x is not None
    if x is None:
        x = F(float(2 * v) ** (1 / 3))
    y, z = x, x / 2
    lam = -4 / x
    s = 3 * x * x
    lines = [
        "dL/dx - dL/dy: (y - x)(1 + lambda z) = 0 -> x = y",
        "dL/dz = 0 with y = x: 4x + lambda x^2 = 0 -> lambda = -4/x",
        "dL/dx = 0: x + 2z - 4z = 0 -> x = 2z",
        f"xyz = V -> x^3 = 2V = {fmt_out(2 * v)}",
        f"x = y = {_show(x, exact)}, z = {_show(z, exact)}, lambda = {_show(lam, exact)}",
        f"S = 3x^2 = {_show(s, exact)}",
    ]
    grad = [y * z, x * z, x * y]
    lxy, lxz, lyz = 1 + lam * z, 2 + lam * y, 2 + lam * x
    hess = [[Fraction(0), lxy, lxz], [lxy, Fraction(0), lyz], [lxz, lyz, Fraction(0)]]
    minors = bordered_minors(grad, hess)
    kind = classify_minors(minors)
    lines.append("Bordered minors: " + ", ".join(_show(d, exact) for d in minors) + f" -> {kind}")
    return GeometryResult(
        problem="box",
        lagrangian=f"L(x, y, z, lambda) = xy + 2xz + 2yz + lambda(xyz - {fmt_out(v)})",
        partials=["dL/dx = y + 2z + lambda yz = 0",
                  "dL/dy = x + 2z + lambda xz = 0",
                  "dL/dz = 2x + 2y + lambda xy = 0",
                  f"dL/dlambda = xyz - {fmt_out(v)} = 0"],
        solution_lines=lines,
        point={"x": x, "y": y, "z": z},
        lam=lam,
        value=s,
        kind=kind,
        exact=exact,
        minors=minors,
        conclusion=f"{kind} at x = {_show(x, exact)}, y = {_show(y, exact)}, "
                   f"z = {_show(z, exact)}, S = {_show(s, exact)}",
    )


GEOMETRY = {"cylinder": solve_cylinder, "box": solve_box}


def solve_geometry(problem: str, volume: Optional[Num] = None, verbose=False) -> GeometryResult:
    if problem not in GEOMETRY:
        raise InputError(f"problem must be one of {', '.join(GEOMETRY)}")
    solver = GEOMETRY[problem]
    res = solver() if volume is None else solver(volume)
    if verbose:
        print("\n".join([res.lagrangian] + res.partials + res.solution_lines + [res.conclusion]))
    return res
