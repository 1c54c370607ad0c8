"""Compile entry points: source text in, path data (and friends) out."""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .annotated import AnnotatedLine, Tracer, format_annotated
from .errors import CompileError, ConfigError
from .evaluator import Closure, EvalContext, LogEntry, display_value, evaluate
from .parser import parse_with_comments
from .pen import CommandRecord, Point
from .segments import PathOp, PathSegment

logger = logging.getLogger(__name__)

MAX_FIXED_DIGITS = 20


# -------------------------
# Options
# -------------------------


@dataclass(frozen=True)
class CompileOptions:
    to_fixed: int | None = None  # fixed decimal places for every number
    seed: int | None = None  # seed for random() and randomRange()


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def parse_options(obj: Mapping[str, Any]) -> CompileOptions:
    """Validate a plain mapping (e.g. decoded JSON) into ``CompileOptions``."""
    _require(isinstance(obj, Mapping), "options must be an object")

    to_fixed = obj.get("toFixed", obj.get("to_fixed"))
    if to_fixed is not None:
        to_fixed = _as_int(to_fixed, "toFixed")
        _require(
            0 <= to_fixed <= MAX_FIXED_DIGITS,
            f"toFixed must be between 0 and {MAX_FIXED_DIGITS}",
        )

    seed = obj.get("seed")
    if seed is not None:
        seed = _as_int(seed, "seed")

    return CompileOptions(to_fixed=to_fixed, seed=seed)


OptionsLike = Union[CompileOptions, Mapping[str, Any], None]


def _coerce_options(options: OptionsLike) -> CompileOptions:
    if options is None:
        return CompileOptions()
    if isinstance(options, CompileOptions):
        if options.to_fixed is not None:
            _require(
                0 <= options.to_fixed <= MAX_FIXED_DIGITS,
                f"toFixed must be between 0 and {MAX_FIXED_DIGITS}",
            )
        return options
    return parse_options(options)


# -------------------------
# Results
# -------------------------


def _jsonable(value: float | bool | str) -> float | bool | str:
    if isinstance(value, float) and not math.isfinite(value):
        return display_value(value)
    return value


def _point(p: Point) -> dict[str, float]:
    return {"x": p[0], "y": p[1]}


@dataclass(frozen=True)
class ContextSnapshot:
    """Pen state and top-level variables after a compile."""

    position: Point
    start: Point
    direction: float
    history: tuple[CommandRecord, ...]
    variables: dict[str, float | bool | str] = field(default_factory=dict)
    extent: tuple[Point, ...] = ()  # every point the path can reach

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": _point(self.position),
            "start": _point(self.start),
            "direction": self.direction,
            "commands": [
                {
                    "command": r.command,
                    "args": list(r.args),
                    "start": _point(r.start),
                    "end": _point(r.end),
                }
                for r in self.history
            ],
            "variables": {k: _jsonable(v) for k, v in self.variables.items()},
        }


@dataclass(frozen=True)
class CompileResult:
    path: str
    context: ContextSnapshot
    logs: tuple[LogEntry, ...] = ()
    annotated: tuple[AnnotatedLine, ...] = ()  # filled when traced

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "context": self.context.to_dict(),
            "logs": [
                {
                    "line": e.line,
                    "column": e.column,
                    "message": e.message,
                    "values": [_jsonable(v) for v in e.values],
                }
                for e in self.logs
            ],
        }


def _snapshot(ctx: EvalContext) -> ContextSnapshot:
    variables: dict[str, float | bool | str] = {}
    for name, value in ctx.frames[0].bindings.items():
        if isinstance(value, (PathSegment, Closure)):
            variables[name] = display_value(value)
        else:
            variables[name] = value
    pen = ctx.pen
    return ContextSnapshot(
        position=pen.position,
        start=pen.start,
        direction=pen.direction,
        history=tuple(pen.history),
        variables=variables,
        extent=tuple(pen.extent),
    )


# -------------------------
# Entry points
# -------------------------


def _run(
    source: str, options: OptionsLike, *, annotate: bool = False
) -> tuple[CompileOptions, EvalContext, list[PathOp]]:
    opts = _coerce_options(options)
    try:
        program, comments = parse_with_comments(source)
        tracer = Tracer(comments, opts.to_fixed) if annotate else None
        ctx = EvalContext(rng=random.Random(opts.seed), trace=tracer)
        ops = evaluate(program, ctx)
    except CompileError as e:
        logger.debug("compile failed: %s at %d:%d", e.kind.value, e.line, e.column)
        raise
    if tracer is not None:
        tracer.comments_before(None)
    logger.debug(
        "compiled %d statements into %d commands", len(program.body), len(ops)
    )
    return opts, ctx, ops


def _render(ops: list[PathOp], precision: int | None) -> str:
    return " ".join(op.render(precision) for op in ops)


def compile(source: str, options: OptionsLike = None) -> str:
    """Compile extended path source into plain SVG path data.

    Raises a ``CompileError`` subclass (carrying line and column) on the first
    problem found; nothing is returned for a failed compile.
    """
    opts, _, ops = _run(source, options)
    return _render(ops, opts.to_fixed)


def annotate(source: str, options: OptionsLike = None) -> list[AnnotatedLine]:
    _, ctx, _ = _run(source, options, annotate=True)
    assert ctx.trace is not None
    return ctx.trace.lines


def compile_annotated(source: str, options: OptionsLike = None) -> str:
    """Compile to a readable listing with loop and call markers."""
    return format_annotated(annotate(source, options))


def compile_with_context(
    source: str, options: OptionsLike = None, *, trace: bool = False
) -> CompileResult:
    """Compile and also report the final pen state, variables and logs.

    With ``trace`` the same run records the annotated lines as well.
    """
    opts, ctx, ops = _run(source, options, annotate=trace)
    return CompileResult(
        path=_render(ops, opts.to_fixed),
        context=_snapshot(ctx),
        logs=tuple(ctx.logs),
        annotated=tuple(ctx.trace.lines) if ctx.trace is not None else (),
    )
