"""Abstract syntax tree built by the parser and walked by the evaluator.

Nodes are immutable. Child sequences are tuples. Every node remembers where
its first token starts so evaluation errors can point back at the source.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Node:
    line: int = field(default=0, kw_only=True, compare=False)
    column: int = field(default=0, kw_only=True, compare=False)
    offset: int = field(default=0, kw_only=True, compare=False)


# -------------------------
# Expressions
# -------------------------


@dataclass(frozen=True)
class NumberLiteral(Node):
    value: float


@dataclass(frozen=True)
class Identifier(Node):
    name: str


@dataclass(frozen=True)
class BinaryExpression(Node):
    operator: str  # + - * / % < > <= >= == != && ||
    left: Expression
    right: Expression


@dataclass(frozen=True)
class UnaryExpression(Node):
    operator: str  # - or !
    operand: Expression


@dataclass(frozen=True)
class CalcExpression(Node):
    inner: Expression


@dataclass(frozen=True)
class FunctionCall(Node):
    name: str
    args: tuple[Expression, ...]


Expression = (
    BinaryExpression
    | UnaryExpression
    | CalcExpression
    | FunctionCall
    | Identifier
    | NumberLiteral
)

# The only expression forms allowed directly inside a path command.
PathArg = NumberLiteral | Identifier | CalcExpression | FunctionCall


# -------------------------
# Statements
# -------------------------


@dataclass(frozen=True)
class LetDeclaration(Node):
    name: str
    value: Expression


@dataclass(frozen=True)
class ForLoop(Node):
    variable: str
    start: Expression
    end: Expression
    body: tuple[Statement, ...]


@dataclass(frozen=True)
class IfStatement(Node):
    condition: Expression
    consequent: tuple[Statement, ...]
    alternate: tuple[Statement, ...] | None = None


@dataclass(frozen=True)
class FunctionDefinition(Node):
    name: str
    params: tuple[str, ...]
    body: tuple[Statement, ...]


@dataclass(frozen=True)
class PathCommand(Node):
    # An empty command marks a statement-level call: args holds one FunctionCall
    # whose path segment stands in for the whole command.
    command: str
    args: tuple[PathArg, ...]

    @property
    def is_call(self) -> bool:
        return self.command == ""


Statement = LetDeclaration | ForLoop | IfStatement | FunctionDefinition | PathCommand


@dataclass(frozen=True)
class Program(Node):
    body: tuple[Statement, ...]


@dataclass(frozen=True)
class Comment(Node):
    text: str


# -------------------------
# Source rendering
# -------------------------

_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "==": 3,
    "!=": 3,
    "<": 4,
    ">": 4,
    "<=": 4,
    ">=": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "%": 6,
}


def _number_text(value: float) -> str:
    if math.isfinite(value) and value == int(value) and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def describe(expr: Expression, parent_precedence: int = 0) -> str:
    """Render an expression back to source-like text, parenthesised minimally."""
    if isinstance(expr, NumberLiteral):
        return _number_text(expr.value)
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, CalcExpression):
        return f"calc({describe(expr.inner)})"
    if isinstance(expr, FunctionCall):
        return f"{expr.name}({', '.join(describe(a) for a in expr.args)})"
    if isinstance(expr, UnaryExpression):
        return f"{expr.operator}{describe(expr.operand, 7)}"
    if isinstance(expr, BinaryExpression):
        prec = _PRECEDENCE[expr.operator]
        text = (
            f"{describe(expr.left, prec)} {expr.operator} "
            f"{describe(expr.right, prec + 1)}"
        )
        return f"({text})" if prec < parent_precedence else text
    raise TypeError(f"Unknown expression node {type(expr).__name__}")
