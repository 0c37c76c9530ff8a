"""Linear expression parser for objective and constraint strings.

Grammar (recursive descent, no eval):

    expr   := term (("+" | "-") term)*
    term   := unary (("*" | "/") unary | <implicit> unary)*
    unary  := ("+" | "-") unary | power
    power  := atom ("^" unary)?
    atom   := NUMBER | NAME | "(" expr ")"

Implicit multiplication covers "2x1", "3(x + y)" and "(a)(b)". Every value is
kept as a LinearExpr; anything that would leave the linear space raises
InputError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InputError

TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<num>\d+(?:[.,]\d*)?|[.,]\d+)"
    r"|(?P<name>[A-Za-z_][A-Za-z_0-9]*)"
    r"|(?P<op>[-+*/^()])"
    r")"
)
RELATION_RE = re.compile(r"<=|>=|=<|=>|==|≤|≥|=|<|>")
RELATIONS = {"<=": "<=", "=<": "<=", "≤": "<=", ">=": ">=", "=>": ">=", "≥": ">=", "=": "=", "==": "="}


@dataclass(frozen=True)
class LinearExpr:
    coeffs: Dict[str, Fraction] = field(default_factory=dict)
    const: Fraction = Fraction(0)

    @property
    def is_constant(self) -> bool:
        return not any(self.coeffs.values())

    def __add__(self, other: "LinearExpr") -> "LinearExpr":
        coeffs = dict(self.coeffs)
        for k, v in other.coeffs.items():
            coeffs[k] = coeffs.get(k, Fraction(0)) + v
        return LinearExpr(coeffs, self.const + other.const)

    def __neg__(self) -> "LinearExpr":
        return LinearExpr({k: -v for k, v in self.coeffs.items()}, -self.const)

    def __sub__(self, other: "LinearExpr") -> "LinearExpr":
        return self + (-other)

    def scale(self, k: Fraction) -> "LinearExpr":
        return LinearExpr({n: v * k for n, v in self.coeffs.items()}, self.const * k)

    def variables(self) -> List[str]:
        return [k for k, v in self.coeffs.items() if v != 0]


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise InputError(f"Unexpected character {text[pos]!r} at position {pos + 1} in {text!r}")
        pos = m.end()
        if m.group("num") is not None:
            tokens.append(("num", m.group("num").replace(",", ".")))
        elif m.group("name") is not None:
            tokens.append(("name", m.group("name")))
        else:
            tokens.append(("op", m.group("op")))
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> Tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise InputError(f"Unexpected end of expression in {self.text!r}")
        self.pos += 1
        return tok

    def at_op(self, *ops: str) -> bool:
        tok = self.peek()
        return tok is not None and tok[0] == "op" and tok[1] in ops

    def parse(self) -> LinearExpr:
        if not self.tokens:
            raise InputError("Empty expression")
        value = self.expr()
        if self.peek() is not None:
            kind, val = self.peek()
            if val == ")":
                raise InputError(f"Unbalanced parentheses in {self.text!r}")
            raise InputError(f"Unexpected {val!r} in {self.text!r}")
        return value

    def expr(self) -> LinearExpr:
        value = self.term()
        while self.at_op("+", "-"):
            op = self.take()[1]
            rhs = self.term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def term(self) -> LinearExpr:
        value = self.unary()
        while True:
            if self.at_op("*"):
                self.take()
                value = _mul(value, self.unary(), self.text)
            elif self.at_op("/"):
                self.take()
                value = _div(value, self.unary(), self.text)
            elif self.peek() is not None and (self.peek()[0] == "name" or self.at_op("(")):
                value = _mul(value, self.power(), self.text)
            else:
                return value

    def unary(self) -> LinearExpr:
        if self.at_op("-"):
            self.take()
            return -self.unary()
        if self.at_op("+"):
            self.take()
            return self.unary()
        return self.power()

    def power(self) -> LinearExpr:
        base = self.atom()
        if self.at_op("^"):
            self.take()
            exp = self.unary()
            return _pow(base, exp, self.text)
        return base

    def atom(self) -> LinearExpr:
        kind, val = self.take()
        if kind == "num":
            return LinearExpr({}, Fraction(val))
        if kind == "name":
            return LinearExpr({val: Fraction(1)}, Fraction(0))
        if val == "(":
            inner = self.expr()
            if not self.at_op(")"):
                raise InputError(f"Unbalanced parentheses in {self.text!r}")
            self.take()
            return inner
        raise InputError(f"Unexpected {val!r} in {self.text!r}")


def _mul(a: LinearExpr, b: LinearExpr, text: str) -> LinearExpr:
    if a.is_constant:
        return b.scale(a.const)
    if b.is_constant:
        return a.scale(b.const)
    raise InputError(f"Nonlinear product in {text!r}")


def _div(a: LinearExpr, b: LinearExpr, text: str) -> LinearExpr:
    if not b.is_constant:
        raise InputError(f"Division by a variable in {text!r}")
    if b.const == 0:
        raise InputError(f"Division by zero in {text!r}")
    return a.scale(1 / b.const)


def _pow(base: LinearExpr, exp: LinearExpr, text: str) -> LinearExpr:
    if not exp.is_constant or exp.const.denominator != 1:
        raise InputError(f"Exponent must be an integer constant in {text!r}")
    n = exp.const.numerator
    if base.is_constant:
        if base.const == 0 and n < 0:
            raise InputError(f"Division by zero in {text!r}")
        return LinearExpr({}, base.const ** n)
    if n == 1:
        return base
    if n == 0:
        return LinearExpr({}, Fraction(1))
    raise InputError(f"Nonlinear power in {text!r}")


def parse_linear(text: str) -> LinearExpr:
    return _Parser(text).parse()


def parse_constraint(text: str) -> Tuple[Dict[str, Fraction], str, Fraction]:
    """Split "2x1 + 3x2 <= 12" into ({x1: 2, x2: 3}, "<=", 12).

    Terms may sit on both sides; constants are moved to the right.
    """
    found = RELATION_RE.findall(text)
    if not found:
        raise InputError(f"Missing relation (<=, >=, =) in {text!r}")
    if len(found) > 1:
        raise InputError(f"More than one relation in {text!r}")
    rel = found[0]
    if rel not in RELATIONS:
        raise InputError(f"Strict inequality {rel!r} is not supported in {text!r}")
    lhs_text, rhs_text = RELATION_RE.split(text)
    if not lhs_text.strip() or not rhs_text.strip():
        raise InputError(f"Incomplete constraint {text!r}")
    diff = parse_linear(lhs_text) - parse_linear(rhs_text)
    coeffs = {k: v for k, v in diff.coeffs.items() if v != 0}
    if not coeffs:
        raise InputError(f"Constraint has no variables: {text!r}")
    return coeffs, RELATIONS[rel], -diff.const


def natural_key(name: str):
    # x2 before x10
    return [int(p) if p.isdigit() else p for p in re.split(r"(\d+)", name)]


def _is_nonnegativity(coeffs: Dict[str, Fraction], sense: str, rhs: Fraction) -> bool:
    if len(coeffs) != 1 or rhs != 0:
        return False
    (coef,) = coeffs.values()
    return (sense == ">=" and coef > 0) or (sense == "<=" and coef < 0)


def parse_lp(objective: str, constraints: Sequence[str], maximize: bool = True):
    """Build an LP from an objective string and constraint strings.

    Every variable is non-negative; explicit "x >= 0" rows are dropped.
    """
    from .simplex import LP

    obj = parse_linear(objective)
    rows = []
    for text in constraints:
        if not text or not text.strip():
            continue
        coeffs, sense, rhs = parse_constraint(text)
        if _is_nonnegativity(coeffs, sense, rhs):
            continue
        rows.append((coeffs, sense, rhs))

    names = set(obj.variables())
    for coeffs, _, _ in rows:
        names.update(coeffs)
    if not names:
        raise InputError("The problem has no variables")
    var_names = sorted(names, key=natural_key)
    if not rows:
        raise InputError("At least one constraint besides non-negativity is required")

    c = [obj.coeffs.get(v, Fraction(0)) for v in var_names]
    A = [[coeffs.get(v, Fraction(0)) for v in var_names] for coeffs, _, _ in rows]
    b = [rhs for _, _, rhs in rows]
    senses = [sense for _, sense, _ in rows]
    return LP(c=c, A=A, b=b, senses=senses, maximize=maximize,
              var_names=var_names, offset=obj.const)
