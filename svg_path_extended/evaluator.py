"""Tree-walking evaluator.

All mutable state of one compile lives on an ``EvalContext`` that is threaded
through every call: the frame arena (scopes addressed by index), the pen, the
shared loop-iteration budget, the user-call budget and depth, the random
source, collected ``print`` output and an optional tracer for the annotated
compile.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

from . import stdlib
from .ast_nodes import (
    BinaryExpression,
    CalcExpression,
    Expression,
    ForLoop,
    FunctionCall,
    FunctionDefinition,
    Identifier,
    IfStatement,
    LetDeclaration,
    Node,
    NumberLiteral,
    PathArg,
    PathCommand,
    Program,
    Statement,
    UnaryExpression,
    describe,
)
from .errors import (
    ArityMismatchError,
    CommandArgumentError,
    IterationLimitExceededError,
    NonFiniteBoundsError,
    NonFiniteValueError,
    RecursionLimitExceededError,
    TypeMismatchError,
    UndefinedFunctionError,
    UndefinedVariableError,
)
from .formatter import format_num
from .pen import PenState
from .segments import PathOp, PathSegment, valid_argument_count

if TYPE_CHECKING:
    from .annotated import Tracer

MAX_ITERATIONS = 10_000
MAX_CALL_DEPTH = 64
MAX_CALLS = 10_000


# -------------------------
# Runtime values
# -------------------------


@dataclass(frozen=True)
class Closure:
    name: str
    params: tuple[str, ...]
    body: tuple[Statement, ...]
    frame: int  # index of the defining frame


Value = Union[float, bool, PathSegment, Closure]


@dataclass
class Frame:
    bindings: dict[str, Value]
    parent: int | None


@dataclass(frozen=True)
class LogEntry:
    line: int
    column: int
    message: str
    values: tuple[float | bool | str, ...]


@dataclass
class EvalContext:
    pen: PenState = field(default_factory=PenState)
    rng: random.Random = field(default_factory=random.Random)
    budget: int = MAX_ITERATIONS
    calls: int = MAX_CALLS  # user-function calls left
    call_depth: int = 0
    frames: list[Frame] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    trace: Tracer | None = None

    def new_frame(self, parent: int | None) -> int:
        self.frames.append(Frame({}, parent))
        return len(self.frames) - 1

    def bind(self, frame: int, name: str, value: Value) -> None:
        self.frames[frame].bindings[name] = value

    def resolve(self, frame: int | None, name: str) -> tuple[bool, Value | None]:
        while frame is not None:
            f = self.frames[frame]
            if name in f.bindings:
                return True, f.bindings[name]
            frame = f.parent
        return False, None


def display_value(value: Value) -> str:
    """Human-readable text for a runtime value (logs, traces, snapshots)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, PathSegment):
        return value.render()
    if isinstance(value, Closure):
        return f"fn {value.name}({', '.join(value.params)})"
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return format_num(value)


def _type_name(value: Value) -> str:
    if isinstance(value, PathSegment):
        return "a path segment"
    if isinstance(value, Closure):
        return f"function '{value.name}'"
    return "a number"


# -------------------------
# Expressions
# -------------------------


def numeric(value: Value, node: Node, what: str) -> float:
    if isinstance(value, (PathSegment, Closure)):
        raise TypeMismatchError(
            f"{what} requires a number, got {_type_name(value)}", node.line, node.column
        )
    return float(value)


def truthy(value: Value, node: Node) -> bool:
    # Zero and NaN are false; every other number is true.
    number = numeric(value, node, "Condition")
    return number == number and number != 0


def eval_identifier(expr: Identifier, frame: int, ctx: EvalContext) -> Value:
    found, value = ctx.resolve(frame, expr.name)
    if not found:
        raise UndefinedVariableError(
            f"Undefined variable '{expr.name}'", expr.line, expr.column
        )
    if isinstance(value, Closure):
        raise TypeMismatchError(
            f"Function '{expr.name}' cannot be used as a value", expr.line, expr.column
        )
    assert value is not None
    return value


def eval_expr(expr: Expression, frame: int, ctx: EvalContext) -> Value:
    if isinstance(expr, NumberLiteral):
        return expr.value
    if isinstance(expr, Identifier):
        return eval_identifier(expr, frame, ctx)
    if isinstance(expr, CalcExpression):
        return eval_expr(expr.inner, frame, ctx)
    if isinstance(expr, FunctionCall):
        return eval_call(expr, frame, ctx)
    if isinstance(expr, UnaryExpression):
        operand = eval_expr(expr.operand, frame, ctx)
        if expr.operator == "!":
            return not truthy(operand, expr)
        return -numeric(operand, expr, "Unary '-'")
    if isinstance(expr, BinaryExpression):
        return eval_binary(expr, frame, ctx)
    raise TypeError(f"Unknown expression node {type(expr).__name__}")


def eval_binary(expr: BinaryExpression, frame: int, ctx: EvalContext) -> Value:
    op = expr.operator

    if op == "&&":
        if not truthy(eval_expr(expr.left, frame, ctx), expr.left):
            return False
        return truthy(eval_expr(expr.right, frame, ctx), expr.right)
    if op == "||":
        if truthy(eval_expr(expr.left, frame, ctx), expr.left):
            return True
        return truthy(eval_expr(expr.right, frame, ctx), expr.right)

    what = f"Operator '{op}'"
    left = numeric(eval_expr(expr.left, frame, ctx), expr.left, what)
    right = numeric(eval_expr(expr.right, frame, ctx), expr.right, what)

    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        return stdlib.ieee_div(left, right)
    if op == "%":
        return stdlib.ieee_mod(left, right)
    if op == "<":
        return left < right
    if op == ">":
        return left > right
    if op == "<=":
        return left <= right
    if op == ">=":
        return left >= right
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    raise TypeError(f"Unknown binary operator {op!r}")


# -------------------------
# Calls
# -------------------------


def _plural(n: int) -> str:
    return f"{n} argument{'s' if n != 1 else ''}"


def eval_call(
    call: FunctionCall, frame: int, ctx: EvalContext, *, emitting: bool = False
) -> Value:
    found, binding = ctx.resolve(frame, call.name)
    if found:
        if isinstance(binding, Closure):
            return call_user(binding, call, frame, ctx, emitting=emitting)
        assert binding is not None
        raise TypeMismatchError(
            f"'{call.name}' is {_type_name(binding)}, not a function",
            call.line,
            call.column,
        )
    if call.name == "print":
        return record_print(call, frame, ctx)
    builtin = resolve_builtin(call)
    args = [eval_expr(a, frame, ctx) for a in call.args]
    return call_builtin(builtin, call, args, ctx)


def resolve_builtin(call: FunctionCall) -> stdlib.Builtin:
    builtin = stdlib.lookup(call.name)
    if builtin is None:
        raise UndefinedFunctionError(
            f"Undefined function '{call.name}'", call.line, call.column
        )
    if not builtin.accepts(len(call.args)):
        raise ArityMismatchError(
            f"{call.name}() expects {builtin.describe_arity()}, got {len(call.args)}",
            call.line,
            call.column,
        )
    return builtin


def call_builtin(
    builtin: stdlib.Builtin, call: FunctionCall, args: list[Value], ctx: EvalContext
) -> Value:
    numbers = [
        numeric(v, a, f"Argument {i + 1} of {call.name}()")
        for i, (v, a) in enumerate(zip(args, call.args))
    ]
    implicit: list[object] = []
    if builtin.implicit == "pen":
        implicit.append(ctx.pen)
    elif builtin.implicit == "rng":
        implicit.append(ctx.rng)
    try:
        return builtin.fn(*implicit, *numbers)
    except ValueError as e:
        error = (
            NonFiniteValueError
            if not all(math.isfinite(n) for n in numbers)
            else CommandArgumentError
        )
        raise error(f"{call.name}(): {e}", call.line, call.column) from e


def call_user(
    closure: Closure,
    call: FunctionCall,
    frame: int,
    ctx: EvalContext,
    *,
    emitting: bool = False,
) -> PathSegment:
    """Run a user function and return the commands its body produced.

    With ``emitting`` the body draws with the real pen and the returned
    segment is already applied. Otherwise only the value is wanted: the body
    runs against a scratch copy of the pen and outside the trace.
    """
    if len(call.args) != len(closure.params):
        raise ArityMismatchError(
            f"{closure.name}() expects {_plural(len(closure.params))}, "
            f"got {len(call.args)}",
            call.line,
            call.column,
        )
    if ctx.call_depth >= MAX_CALL_DEPTH:
        raise RecursionLimitExceededError(
            f"Call depth exceeded {MAX_CALL_DEPTH} in {closure.name}()",
            call.line,
            call.column,
        )
    if ctx.calls <= 0:
        raise IterationLimitExceededError(
            f"Call limit of {MAX_CALLS} exceeded in {closure.name}()",
            call.line,
            call.column,
        )
    ctx.calls -= 1

    args = [eval_expr(a, frame, ctx) for a in call.args]
    fn_frame = ctx.new_frame(closure.frame)
    for name, value in zip(closure.params, args):
        ctx.bind(fn_frame, name, value)

    trace = ctx.trace
    pen = ctx.pen
    if not emitting:
        ctx.pen = pen.copy()
        if trace is not None:
            trace.muted += 1
    if trace is not None:
        trace.call_start(
            closure.name, ", ".join(display_value(v) for v in args), call.line
        )
    body: list[PathOp] = []
    ctx.call_depth += 1
    exec_block(closure.body, fn_frame, ctx, body)
    ctx.call_depth -= 1
    if trace is not None:
        trace.call_end()
        if not emitting:
            trace.muted -= 1
    ctx.pen = pen

    return PathSegment(tuple(body), applied=emitting)


def record_print(call: FunctionCall, frame: int, ctx: EvalContext) -> PathSegment:
    values: list[Value] = [eval_expr(a, frame, ctx) for a in call.args]
    parts: list[str] = []
    logged: list[float | bool | str] = []
    for arg, value in zip(call.args, values):
        text = display_value(value)
        if isinstance(arg, NumberLiteral):
            parts.append(text)
        else:
            parts.append(f"{describe(arg)} = {text}")
        logged.append(text if isinstance(value, (PathSegment, Closure)) else value)
    ctx.logs.append(LogEntry(call.line, call.column, ", ".join(parts), tuple(logged)))
    return PathSegment()


def produces_path(call: FunctionCall, frame: int, ctx: EvalContext) -> bool:
    """Whether a call yields a path segment, decided without evaluating it."""
    found, binding = ctx.resolve(frame, call.name)
    if found:
        return isinstance(binding, Closure)
    return (
        call.name == "print"
        or call.name in stdlib.PATH_FUNCTIONS
        or call.name in stdlib.CONTEXT_FUNCTIONS
    )


# -------------------------
# Emission
# -------------------------


def emit(
    ops: tuple[PathOp, ...], node: Node, ctx: EvalContext, out: list[PathOp]
) -> None:
    for op in ops:
        for value in op.args:
            if not math.isfinite(value):
                raise NonFiniteValueError(
                    f"'{op.letter}' argument is {display_value(value)}; "
                    "path data needs finite numbers",
                    node.line,
                    node.column,
                )
        ctx.pen.advance(op)
        if ctx.trace is not None:
            ctx.trace.command(op)
        out.append(op)


def emit_segment(
    segment: PathSegment, node: Node, ctx: EvalContext, out: list[PathOp]
) -> None:
    if segment.applied:
        out.extend(segment.commands)
    else:
        emit(segment.commands, node, ctx, out)


def eval_path_arg(arg: PathArg, frame: int, ctx: EvalContext) -> Value:
    if isinstance(arg, NumberLiteral):
        return arg.value
    if isinstance(arg, Identifier):
        return eval_identifier(arg, frame, ctx)
    if isinstance(arg, CalcExpression):
        return eval_expr(arg.inner, frame, ctx)
    if isinstance(arg, FunctionCall):
        return eval_call(arg, frame, ctx)
    raise TypeError(f"Unknown path argument node {type(arg).__name__}")


def _segment_result(value: Value, call: FunctionCall) -> PathSegment:
    if not isinstance(value, PathSegment):
        raise TypeMismatchError(
            f"{call.name}() returned {_type_name(value)}; "
            "only path segments can stand in for a path command",
            call.line,
            call.column,
        )
    return value


def exec_path_call(
    call: FunctionCall, frame: int, ctx: EvalContext, out: list[PathOp]
) -> None:
    found, _ = ctx.resolve(frame, call.name)
    if found or call.name == "print":
        value = eval_call(call, frame, ctx, emitting=True)
        emit_segment(_segment_result(value, call), call, ctx, out)
        return

    builtin = resolve_builtin(call)
    args = [eval_expr(a, frame, ctx) for a in call.args]
    segment = _segment_result(call_builtin(builtin, call, args, ctx), call)
    if ctx.trace is not None and segment:
        ctx.trace.call_start(
            call.name, ", ".join(display_value(v) for v in args), call.line
        )
        emit_segment(segment, call, ctx, out)
        ctx.trace.call_end()
    else:
        emit_segment(segment, call, ctx, out)


def exec_path_command(
    stmt: PathCommand, frame: int, ctx: EvalContext, out: list[PathOp]
) -> None:
    if stmt.is_call:
        call = stmt.args[0]
        assert isinstance(call, FunctionCall)
        exec_path_call(call, frame, ctx, out)
        return

    # Path-producing calls can only trail the numeric arguments; they are run
    # after the command itself is emitted so the pen sees the command first.
    split = len(stmt.args)
    for i, arg in enumerate(stmt.args):
        if isinstance(arg, FunctionCall) and produces_path(arg, frame, ctx):
            split = i
            break

    numbers: list[float] = []
    for arg in stmt.args[:split]:
        value = eval_path_arg(arg, frame, ctx)
        numbers.append(numeric(value, arg, f"'{stmt.command}' argument"))

    if not valid_argument_count(stmt.command, len(numbers)):
        raise CommandArgumentError(
            f"'{stmt.command}' cannot take {_plural(len(numbers))}",
            stmt.line,
            stmt.column,
        )
    emit((PathOp(stmt.command, tuple(numbers)),), stmt, ctx, out)

    for arg in stmt.args[split:]:
        if not isinstance(arg, FunctionCall) or not produces_path(arg, frame, ctx):
            raise TypeMismatchError(
                f"Numeric argument after a path segment in '{stmt.command}'",
                arg.line,
                arg.column,
            )
        exec_path_call(arg, frame, ctx, out)


# -------------------------
# Statements
# -------------------------


def exec_for(stmt: ForLoop, frame: int, ctx: EvalContext, out: list[PathOp]) -> None:
    start = numeric(eval_expr(stmt.start, frame, ctx), stmt.start, "Loop bound")
    end = numeric(eval_expr(stmt.end, frame, ctx), stmt.end, "Loop bound")
    if not (math.isfinite(start) and math.isfinite(end)):
        raise NonFiniteBoundsError(
            f"Loop bounds must be finite, got {display_value(start)}.."
            f"{display_value(end)}",
            stmt.line,
            stmt.column,
        )

    # The end bound is exclusive; descending ranges step by -1.
    step = 1.0 if end > start else -1.0
    count = math.ceil(abs(end - start))
    if count > ctx.budget:
        raise IterationLimitExceededError(
            f"Loop needs {count} iterations but only {ctx.budget} of "
            f"{MAX_ITERATIONS} remain",
            stmt.line,
            stmt.column,
        )

    trace = ctx.trace
    if trace is not None:
        trace.loop_start(
            stmt.variable, display_value(start), display_value(end), stmt.line
        )
    for k in range(count):
        if ctx.budget <= 0:
            raise IterationLimitExceededError(
                f"Iteration limit of {MAX_ITERATIONS} exceeded",
                stmt.line,
                stmt.column,
            )
        ctx.budget -= 1
        value = start + k * step
        loop_frame = ctx.new_frame(frame)
        ctx.bind(loop_frame, stmt.variable, value)

        visible = trace is None or trace.iteration(k, count, display_value(value))
        if not visible:
            trace.muted += 1  # type: ignore[union-attr]
        exec_block(stmt.body, loop_frame, ctx, out)
        if not visible:
            trace.muted -= 1  # type: ignore[union-attr]
    if trace is not None:
        trace.loop_end()


def define(stmt: FunctionDefinition, frame: int, ctx: EvalContext) -> None:
    ctx.bind(frame, stmt.name, Closure(stmt.name, stmt.params, stmt.body, frame))


def exec_statement(
    stmt: Statement, frame: int, ctx: EvalContext, out: list[PathOp]
) -> None:
    if ctx.trace is not None:
        ctx.trace.comments_before(stmt.offset)

    if isinstance(stmt, LetDeclaration):
        ctx.bind(frame, stmt.name, eval_expr(stmt.value, frame, ctx))
    elif isinstance(stmt, FunctionDefinition):
        define(stmt, frame, ctx)
    elif isinstance(stmt, PathCommand):
        exec_path_command(stmt, frame, ctx, out)
    elif isinstance(stmt, ForLoop):
        exec_for(stmt, frame, ctx, out)
    elif isinstance(stmt, IfStatement):
        if truthy(eval_expr(stmt.condition, frame, ctx), stmt.condition):
            exec_block(stmt.consequent, ctx.new_frame(frame), ctx, out)
        elif stmt.alternate is not None:
            exec_block(stmt.alternate, ctx.new_frame(frame), ctx, out)
    else:
        raise TypeError(f"Unknown statement node {type(stmt).__name__}")


def exec_block(
    statements: tuple[Statement, ...], frame: int, ctx: EvalContext, out: list[PathOp]
) -> None:
    # Functions are visible from the top of their block; lets are not hoisted.
    for stmt in statements:
        if isinstance(stmt, FunctionDefinition):
            define(stmt, frame, ctx)
    for stmt in statements:
        exec_statement(stmt, frame, ctx, out)


def evaluate(program: Program, ctx: EvalContext) -> list[PathOp]:
    """Run a program, returning every emitted command in order."""
    root = ctx.new_frame(None)
    out: list[PathOp] = []
    exec_block(program.body, root, ctx, out)
    return out
