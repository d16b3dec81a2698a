"""Small expression tree for FFmpeg per-frame expressions.

Expressions are built from nodes and rendered to text once, at the end, so
parenthesization and constant folding happen in one place.
"""

import re
from dataclasses import dataclass
from typing import Tuple, Union

from ..core.timing import format_number

_ATOM = 3
_SIMPLE_RAW = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$|^-?[0-9.]+$")
_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}

Operand = Union["Expr", int, float, str]


class Expr:
    """Base class for expression nodes."""

    precedence = _ATOM

    def render(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.render()

    def __add__(self, other: Operand) -> "Expr":
        return binop("+", self, other)

    def __radd__(self, other: Operand) -> "Expr":
        return binop("+", other, self)

    def __sub__(self, other: Operand) -> "Expr":
        return binop("-", self, other)

    def __rsub__(self, other: Operand) -> "Expr":
        return binop("-", other, self)

    def __mul__(self, other: Operand) -> "Expr":
        return binop("*", self, other)

    def __rmul__(self, other: Operand) -> "Expr":
        return binop("*", other, self)

    def __truediv__(self, other: Operand) -> "Expr":
        return binop("/", self, other)

    def __rtruediv__(self, other: Operand) -> "Expr":
        return binop("/", other, self)

    def __neg__(self) -> "Expr":
        return binop("*", Num(-1), self)


@dataclass(frozen=True, eq=True)
class Num(Expr):
    value: float

    def render(self) -> str:
        return format_number(self.value)


@dataclass(frozen=True, eq=True)
class Var(Expr):
    name: str

    def render(self) -> str:
        return self.name


@dataclass(frozen=True, eq=True)
class Raw(Expr):
    """Caller-supplied expression text, passed through verbatim."""

    text: str

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return _ATOM if _SIMPLE_RAW.match(self.text) else 0

    def render(self) -> str:
        return self.text


@dataclass(frozen=True, eq=True)
class BinOp(Expr):
    op: str
    left: Expr
    right: Expr

    @property
    def precedence(self) -> int:  # type: ignore[override]
        return _PRECEDENCE[self.op]

    def render(self) -> str:
        prec = self.precedence
        left = self.left.render()
        if self.left.precedence < prec:
            left = f"({left})"
        right = self.right.render()
        right_prec = self.right.precedence
        if (
            right_prec < prec
            or (right_prec == prec and self.op in "-/")
            or (isinstance(self.right, Num) and self.right.value < 0)
        ):
            right = f"({right})"
        return f"{left}{self.op}{right}"


@dataclass(frozen=True, eq=True)
class Call(Expr):
    name: str
    args: Tuple[Expr, ...]

    def render(self) -> str:
        return f"{self.name}({','.join(arg.render() for arg in self.args)})"


def to_expr(value: Operand) -> Expr:
    """Coerce a number or raw expression string to an expression node."""
    if isinstance(value, Expr):
        return value
    if isinstance(value, bool):
        return Num(int(value))
    if isinstance(value, (int, float)):
        return Num(value)
    if isinstance(value, str):
        return Raw(value.strip())
    raise TypeError(f"Cannot build an expression from {type(value).__name__}")


def _is_num(node: Expr, value: float) -> bool:
    return isinstance(node, Num) and node.value == value


def binop(op: str, left: Operand, right: Operand) -> Expr:
    """Build a binary operation, folding constants and identities."""
    a = to_expr(left)
    b = to_expr(right)

    if isinstance(a, Num) and isinstance(b, Num):
        if op == "+":
            return Num(a.value + b.value)
        if op == "-":
            return Num(a.value - b.value)
        if op == "*":
            return Num(a.value * b.value)
        if op == "/" and b.value != 0:
            return Num(a.value / b.value)

    if op == "+":
        if _is_num(a, 0):
            return b
        if _is_num(b, 0):
            return a
        if isinstance(b, Num) and b.value < 0:
            return BinOp("-", a, Num(-b.value))
    elif op == "-":
        if _is_num(b, 0):
            return a
        if isinstance(b, Num) and b.value < 0:
            return BinOp("+", a, Num(-b.value))
    elif op == "*":
        if _is_num(a, 0) or _is_num(b, 0):
            return Num(0)
        if _is_num(a, 1):
            return b
        if _is_num(b, 1):
            return a
    elif op == "/":
        if _is_num(b, 1):
            return a
        if _is_num(a, 0):
            return Num(0)

    return BinOp(op, a, b)


def call(name: str, *args: Operand) -> Expr:
    return Call(name, tuple(to_expr(arg) for arg in args))


T = Var("t")
PI = Var("PI")


def gte(a: Operand, b: Operand) -> Expr:
    return call("gte", a, b)


def lt(a: Operand, b: Operand) -> Expr:
    return call("lt", a, b)


def clip(value: Operand, low: Operand, high: Operand) -> Expr:
    return call("clip", value, low, high)


def sin(value: Operand) -> Expr:
    return call("sin", value)


def abs_(value: Operand) -> Expr:
    return call("abs", value)


def min_(a: Operand, b: Operand) -> Expr:
    return call("min", a, b)


def max_(a: Operand, b: Operand) -> Expr:
    return call("max", a, b)


def window(start: float, end=None) -> Expr:
    """
    Visibility predicate for the half-open window ``start <= t < end``.

    Args:
        start: Window start in seconds
        end: Window end in seconds, or None for an open-ended window

    Returns:
        Expression evaluating to 1 inside the window and 0 outside
    """
    if end is None:
        return gte(T, start)
    return gte(T, start) * lt(T, end)
