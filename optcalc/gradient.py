"""Gradient descent on f = A x1^2 + B x2^2 + C x1x2 + D x1 + E x2 + F.

Points, gradients and step sizes stay exact; only the printed norm uses a
square root.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Tuple

from .errors import InputError, NonConvergenceError
from .rational import F, Num, fmt_out

GRADIENT_MAX_ITERATIONS = 10
MODES = ("steepest", "const")

Point = Tuple[Fraction, Fraction]


@dataclass(frozen=True)
class QuadraticCoeffs:
    A: Fraction = Fraction(0)
    B: Fraction = Fraction(0)
    C: Fraction = Fraction(0)
    D: Fraction = Fraction(0)
    E: Fraction = Fraction(0)
    F: Fraction = Fraction(0)

    NAMES = "ABCDEF"

    @classmethod
    def parse(cls, coeffs: Dict[str, Num]) -> "QuadraticCoeffs":
        unknown = set(coeffs) - set(cls.NAMES)
        if unknown:
            raise InputError(f"Unknown coefficient(s): {', '.join(sorted(unknown))}")
        return cls(**{k: F(v) for k, v in coeffs.items()})

    def value(self, x1: Fraction, x2: Fraction) -> Fraction:
        return (self.A * x1 * x1 + self.B * x2 * x2 + self.C * x1 * x2
                + self.D * x1 + self.E * x2 + self.F)

    def gradient(self, x1: Fraction, x2: Fraction) -> Point:
        return (2 * self.A * x1 + self.C * x2 + self.D,
                2 * self.B * x2 + self.C * x1 + self.E)

    def terms(self) -> Tuple[Tuple[Fraction, str], ...]:
        return ((self.A, "x1^2"), (self.B, "x2^2"), (self.C, "x1x2"),
                (self.D, "x1"), (self.E, "x2"), (self.F, ""))

    def __str__(self):
        parts = []
        for coef, term in self.terms():
            if coef == 0:
                continue
            if term and abs(coef) == 1:
                s = term
            else:
                s = f"{fmt_out(abs(coef))}{term}"
            if parts:
                parts.append(("- " if coef < 0 else "+ ") + s)
            else:
                parts.append(("-" if coef < 0 else "") + s)
        return " ".join(parts) or "0"


@dataclass(frozen=True)
class GradientLog:
    k: int
    point: Point
    grad: Point
    norm_sq: Fraction
    norm: float
    step: Fraction
    next_point: Point
    desc: str
    calculations: Tuple[str, ...]


@dataclass
class GradientResult:
    point: Point
    value: Fraction
    iterations: List[GradientLog] = field(default_factory=list)
    converged: bool = True


def _paren(x: Fraction) -> str:
    s = fmt_out(x)
    return f"({s})" if x < 0 else s


def gradient_descent(coeffs, start: Tuple[Num, Num], epsilon: Num = Fraction(1, 10),
                     mode: str = "steepest", alpha: Num = Fraction(1, 2), verbose=False,
                     max_iter: int = GRADIENT_MAX_ITERATIONS) -> GradientResult:
    """Iterate x <- x - t * grad f(x) until |grad f| <= epsilon.

    mode "steepest" takes the exact line-search step for a quadratic,
    t = |g|^2 / (2 (A g1^2 + B g2^2 + C g1 g2)); mode "const" uses ``alpha``.
    """
    if not isinstance(coeffs, QuadraticCoeffs):
        coeffs = QuadraticCoeffs.parse(coeffs)
    if mode not in MODES:
        raise InputError("mode must be 'steepest' or 'const'")
    eps = F(epsilon)
    if eps <= 0:
        raise InputError("epsilon must be positive")
    alpha = F(alpha)
    if mode == "const" and alpha <= 0:
        raise InputError("step alpha must be positive")
    c = coeffs
    x1, x2 = F(start[0]), F(start[1])
    logs: List[GradientLog] = []

    for k in range(1, max_iter + 1):
        calc = [f"--- Iteration {k} ---", f"x^({k}) = ({fmt_out(x1)}; {fmt_out(x2)})"]
        g1, g2 = c.gradient(x1, x2)
        calc.append(f"df/dx1 = 2*{_paren(c.A)}*{_paren(x1)} + {_paren(c.C)}*{_paren(x2)} + {_paren(c.D)} = {fmt_out(g1)}")
        calc.append(f"df/dx2 = 2*{_paren(c.B)}*{_paren(x2)} + {_paren(c.C)}*{_paren(x1)} + {_paren(c.E)} = {fmt_out(g2)}")
        norm_sq = g1 * g1 + g2 * g2
        norm = math.sqrt(norm_sq)
        calc.append(f"|grad f| = sqrt({fmt_out(g1)}^2 + {fmt_out(g2)}^2) = sqrt({fmt_out(norm_sq)}) ~ {norm:.3f}")

        if norm_sq <= eps * eps:
            desc = f"Stop: |grad f| ({norm:.3f}) <= eps ({fmt_out(eps)})"
            calc.append(desc)
            logs.append(GradientLog(k, (x1, x2), (g1, g2), norm_sq, norm, Fraction(0), (x1, x2), desc, tuple(calc)))
            if verbose:
                print("\n".join(calc))
            return GradientResult((x1, x2), c.value(x1, x2), logs, True)

        if mode == "const":
            t = alpha
            calc.append(f"Constant step alpha = {fmt_out(t)}")
        else:
            a_quad = c.A * g1 * g1 + c.B * g2 * g2 + c.C * g1 * g2
            slope = 2 * a_quad
            calc.append(f"f(t) = {fmt_out(a_quad)}t^2 - {fmt_out(norm_sq)}t + const")
            calc.append(f"f'(t) = {fmt_out(slope)}t - {fmt_out(norm_sq)} = 0")
            if slope <= 0:
                raise InputError("f is not convex along the antigradient; steepest descent has no minimising step")
            t = norm_sq / slope
            calc.append(f"t = {fmt_out(norm_sq)} / {fmt_out(slope)} = {fmt_out(t)}")

        n1, n2 = x1 - t * g1, x2 - t * g2
        calc.append(f"x1^({k + 1}) = {fmt_out(x1)} - {fmt_out(t)}*{_paren(g1)} = {fmt_out(n1)}")
        calc.append(f"x2^({k + 1}) = {fmt_out(x2)} - {fmt_out(t)}*{_paren(g2)} = {fmt_out(n2)}")
        desc = f"Iteration {k}. Step t = {fmt_out(t)}. |grad f| ~ {norm:.2f}"
        logs.append(GradientLog(k, (x1, x2), (g1, g2), norm_sq, norm, t, (n1, n2), desc, tuple(calc)))
        if verbose:
            print("\n".join(calc))
        x1, x2 = n1, n2

    raise NonConvergenceError(f"|grad f| > eps after {max_iter} iterations", logs)
