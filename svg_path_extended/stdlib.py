"""Built-in functions available to every program.

Math functions follow IEEE float semantics instead of raising: a domain error
yields NaN and an overflow yields an infinity, so bad values surface where
they are emitted or used as loop bounds. Geometry builders return path
segments; context-aware builders also read the pen (never mutate it).
"""

from __future__ import annotations

import functools
import inspect
import math
import random
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from .pen import PenState
from .segments import PathSegment

TAU = math.pi * 2

# Upper bound on vertices generated by one polygon/star call.
MAX_VERTICES = 10_000


# -------------------------
# IEEE helpers
# -------------------------


def ieee_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def ieee_mod(a: float, b: float) -> float:
    # Truncated remainder: the result takes the sign of the dividend.
    if b == 0 or math.isinf(a) or math.isnan(a) or math.isnan(b):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def _ieee(fn: Callable[..., float], overflow: float = math.inf) -> Callable[..., float]:
    @functools.wraps(fn)
    def wrapper(*args: float) -> float:
        try:
            return float(fn(*args))
        except ValueError:
            return math.nan
        except OverflowError:
            return overflow

    return wrapper


def _logarithm(base: float | None) -> Callable[[float], float]:
    def log(x: float) -> float:
        if x == 0:
            return -math.inf
        if x < 0 or math.isnan(x):
            return math.nan
        return math.log(x) if base is None else math.log(x, base)

    return log


def _rounding(fn: Callable[[float], Any]) -> Callable[[float], float]:
    def rounded(x: float) -> float:
        if not math.isfinite(x):
            return x
        return float(fn(x))

    return rounded


def _sinh(x: float) -> float:
    try:
        return math.sinh(x)
    except OverflowError:
        return math.copysign(math.inf, x)


def _pow(x: float, y: float) -> float:
    if x == 0 and y < 0:
        return math.inf
    try:
        return math.pow(x, y)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


def _cbrt(x: float) -> float:
    if not math.isfinite(x):
        return x
    return math.copysign(abs(x) ** (1 / 3), x)


def _sign(x: float) -> float:
    if x == 0 or math.isnan(x):
        return x
    return math.copysign(1.0, x)


def _min(first: float, *rest: float) -> float:
    values = (first, *rest)
    if any(math.isnan(v) for v in values):
        return math.nan
    return float(min(values))


def _max(first: float, *rest: float) -> float:
    values = (first, *rest)
    if any(math.isnan(v) for v in values):
        return math.nan
    return float(max(values))


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def _clamp(value: float, low: float, high: float) -> float:
    return _min(_max(value, low), high)


def _map(
    value: float, in_min: float, in_max: float, out_min: float, out_max: float
) -> float:
    return out_min + ieee_div(value - in_min, in_max - in_min) * (out_max - out_min)


MATH_FUNCTIONS: dict[str, Callable[..., float]] = {
    # Trigonometric (radians)
    "sin": _ieee(math.sin),
    "cos": _ieee(math.cos),
    "tan": _ieee(math.tan),
    "asin": _ieee(math.asin),
    "acos": _ieee(math.acos),
    "atan": _ieee(math.atan),
    "atan2": _ieee(math.atan2),
    # Hyperbolic
    "sinh": _sinh,
    "cosh": _ieee(math.cosh),
    "tanh": _ieee(math.tanh),
    # Exponential and logarithmic
    "exp": _ieee(math.exp),
    "log": _logarithm(None),
    "log10": _logarithm(10),
    "log2": _logarithm(2),
    "pow": _pow,
    "sqrt": _ieee(math.sqrt),
    "cbrt": _cbrt,
    # Rounding; round() rounds halves up
    "floor": _rounding(math.floor),
    "ceil": _rounding(math.ceil),
    "round": _rounding(lambda x: math.floor(x + 0.5)),
    "trunc": _rounding(math.trunc),
    # Utility
    "abs": _ieee(math.fabs),
    "sign": _sign,
    "min": _min,
    "max": _max,
    "lerp": _lerp,
    "clamp": _clamp,
    "map": _map,
    "deg": _ieee(math.degrees),
    "rad": _ieee(math.radians),
    # Constants
    "PI": lambda: math.pi,
    "E": lambda: math.e,
    "TAU": lambda: TAU,
}


# -------------------------
# Random (the only non-deterministic functions)
# -------------------------


def _random(rng: random.Random) -> float:
    return rng.random()


def _random_range(rng: random.Random, low: float, high: float) -> float:
    return low + rng.random() * (high - low)


RANDOM_FUNCTIONS: dict[str, Callable[..., float]] = {
    "random": _random,
    "randomRange": _random_range,
}


# -------------------------
# Geometry builders
# -------------------------


def circle(cx: float, cy: float, r: float) -> PathSegment:
    return PathSegment.of(
        ("M", (cx - r, cy)),
        ("A", (r, r, 0, 1, 1, cx + r, cy)),
        ("A", (r, r, 0, 1, 1, cx - r, cy)),
    )


def arc(
    rx: float,
    ry: float,
    rotation: float,
    large_arc: float,
    sweep: float,
    x: float,
    y: float,
) -> PathSegment:
    return PathSegment.of(("A", (rx, ry, rotation, large_arc, sweep, x, y)))


def rect(x: float, y: float, width: float, height: float) -> PathSegment:
    return PathSegment.of(
        ("M", (x, y)),
        ("L", (x + width, y)),
        ("L", (x + width, y + height)),
        ("L", (x, y + height)),
        ("Z", ()),
    )


def round_rect(
    x: float, y: float, width: float, height: float, radius: float
) -> PathSegment:
    r = min(radius, width / 2, height / 2)
    right = x + width
    bottom = y + height
    return PathSegment.of(
        ("M", (x + r, y)),
        ("L", (right - r, y)),
        ("Q", (right, y, right, y + r)),
        ("L", (right, bottom - r)),
        ("Q", (right, bottom, right - r, bottom)),
        ("L", (x + r, bottom)),
        ("Q", (x, bottom, x, bottom - r)),
        ("L", (x, y + r)),
        ("Q", (x, y, x + r, y)),
        ("Z", ()),
    )


def _vertex_count(name: str, count: float) -> int:
    if not math.isfinite(count):
        raise ValueError(f"{name} must be finite")
    n = math.ceil(count)
    if n > MAX_VERTICES:
        raise ValueError(f"{name} must not exceed {MAX_VERTICES} vertices")
    return max(n, 0)


def _vertex_loop(
    cx: float, cy: float, radii: list[float], divisions: float
) -> PathSegment:
    # First vertex at the top, then clockwise on screen. Vertex i sits at
    # i/divisions of a turn, so a fractional count leaves an uneven last edge.
    if not radii:
        return PathSegment()
    ops: list[tuple[str, tuple[float, ...]]] = []
    for i, radius in enumerate(radii):
        angle = (i / divisions) * TAU - math.pi / 2
        point = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
        ops.append(("M" if i == 0 else "L", point))
    ops.append(("Z", ()))
    return PathSegment.of(*ops)


def polygon(cx: float, cy: float, radius: float, sides: float) -> PathSegment:
    n = _vertex_count("sides", sides)
    return _vertex_loop(cx, cy, [radius] * n, sides)


def star(
    cx: float, cy: float, outer_radius: float, inner_radius: float, points: float
) -> PathSegment:
    n = _vertex_count("points", points * 2)
    radii = [outer_radius if i % 2 == 0 else inner_radius for i in range(n)]
    return _vertex_loop(cx, cy, radii, points * 2)


def line(x1: float, y1: float, x2: float, y2: float) -> PathSegment:
    return PathSegment.of(("M", (x1, y1)), ("L", (x2, y2)))


def quadratic(
    x1: float, y1: float, cx: float, cy: float, x2: float, y2: float
) -> PathSegment:
    return PathSegment.of(("M", (x1, y1)), ("Q", (cx, cy, x2, y2)))


def cubic(
    x1: float,
    y1: float,
    c1x: float,
    c1y: float,
    c2x: float,
    c2y: float,
    x2: float,
    y2: float,
) -> PathSegment:
    return PathSegment.of(("M", (x1, y1)), ("C", (c1x, c1y, c2x, c2y, x2, y2)))


def move_to(x: float, y: float) -> PathSegment:
    return PathSegment.of(("M", (x, y)))


def line_to(x: float, y: float) -> PathSegment:
    return PathSegment.of(("L", (x, y)))


def close_path() -> PathSegment:
    return PathSegment.of(("Z", ()))


PATH_FUNCTIONS: dict[str, Callable[..., PathSegment]] = {
    "circle": circle,
    "arc": arc,
    "rect": rect,
    "roundRect": round_rect,
    "polygon": polygon,
    "star": star,
    "line": line,
    "quadratic": quadratic,
    "cubic": cubic,
    "moveTo": move_to,
    "lineTo": line_to,
    "closePath": close_path,
}


# -------------------------
# Context-aware builders
# -------------------------


def polar_point(pen: PenState, angle: float, distance: float) -> PathSegment:
    # There are no point values, so the point is delivered as a move to it.
    return PathSegment.of(("M", pen.polar(angle, distance)))


def polar_move(
    pen: PenState, angle: float, distance: float, is_move_to: float = 0.0
) -> PathSegment:
    return PathSegment.of(("M" if is_move_to else "L", pen.polar(angle, distance)))


def polar_line(pen: PenState, angle: float, distance: float) -> PathSegment:
    return PathSegment.of(("L", pen.polar(angle, distance)))


def arc_from_center(
    pen: PenState,
    dcx: float,
    dcy: float,
    radius: float,
    start_angle: float,
    end_angle: float,
    clockwise: float = 1.0,
) -> PathSegment:
    cx, cy = pen.x + dcx, pen.y + dcy
    start = (cx + radius * math.cos(start_angle), cy + radius * math.sin(start_angle))
    end = (cx + radius * math.cos(end_angle), cy + radius * math.sin(end_angle))

    ops: list[tuple[str, tuple[float, ...]]] = []
    if math.dist(start, pen.position) > 1e-9:
        ops.append(("L", start))

    delta = (end_angle - start_angle) if clockwise else (start_angle - end_angle)
    delta %= TAU
    if delta:
        r = abs(radius)
        large = 1 if delta > math.pi else 0
        ops.append(("A", (r, r, 0, large, 1 if clockwise else 0, *end)))
    return PathSegment.of(*ops)


def tangent_line(pen: PenState, length: float) -> PathSegment:
    return PathSegment.of(("L", pen.polar(pen.direction, length)))


def tangent_arc(pen: PenState, radius: float, sweep_angle: float) -> PathSegment:
    if not math.isfinite(sweep_angle):
        raise ValueError("sweepAngle must be finite")
    sweep = math.copysign(math.fmod(abs(sweep_angle), TAU), sweep_angle)
    r = abs(radius)
    if not sweep or not r:
        return PathSegment()

    # The centre sits on the side the arc turns towards.
    side = 1 if sweep > 0 else -1
    normal = pen.direction + side * math.pi / 2
    cx, cy = pen.x + r * math.cos(normal), pen.y + r * math.sin(normal)
    end_angle = normal + math.pi + sweep
    end = (cx + r * math.cos(end_angle), cy + r * math.sin(end_angle))
    large = 1 if abs(sweep) > math.pi else 0
    return PathSegment.of(("A", (r, r, 0, large, 1 if sweep > 0 else 0, *end)))


CONTEXT_FUNCTIONS: dict[str, Callable[..., PathSegment]] = {
    "polarPoint": polar_point,
    "polarMove": polar_move,
    "polarLine": polar_line,
    "arcFromCenter": arc_from_center,
    "tangentLine": tangent_line,
    "tangentArc": tangent_arc,
}


# -------------------------
# Lookup
# -------------------------


@dataclass(frozen=True)
class Builtin:
    name: str
    fn: Callable[..., Any]
    # Extra leading argument supplied by the evaluator, not by the caller.
    implicit: Literal["pen", "rng"] | None = None

    @functools.cached_property
    def arity(self) -> tuple[int, int | None]:
        """(minimum, maximum) caller-supplied arguments; maximum None if variadic."""
        params = list(inspect.signature(self.fn).parameters.values())
        if self.implicit is not None:
            params = params[1:]
        required = 0
        maximum: int | None = 0
        for p in params:
            if p.kind is inspect.Parameter.VAR_POSITIONAL:
                maximum = None
                continue
            if maximum is not None:
                maximum += 1
            if p.default is inspect.Parameter.empty:
                required += 1
        return required, maximum

    def accepts(self, count: int) -> bool:
        low, high = self.arity
        return count >= low and (high is None or count <= high)

    def describe_arity(self) -> str:
        low, high = self.arity
        if high is None:
            return f"at least {low} argument{'s' if low != 1 else ''}"
        if low == high:
            return f"{low} argument{'s' if low != 1 else ''}"
        return f"{low} to {high} arguments"


@functools.lru_cache(maxsize=None)
def lookup(name: str) -> Builtin | None:
    if name in MATH_FUNCTIONS:
        return Builtin(name, MATH_FUNCTIONS[name])
    if name in PATH_FUNCTIONS:
        return Builtin(name, PATH_FUNCTIONS[name])
    if name in CONTEXT_FUNCTIONS:
        return Builtin(name, CONTEXT_FUNCTIONS[name], "pen")
    if name in RANDOM_FUNCTIONS:
        return Builtin(name, RANDOM_FUNCTIONS[name], "rng")
    return None


def builtin_names() -> list[str]:
    return sorted(
        {*MATH_FUNCTIONS, *PATH_FUNCTIONS, *CONTEXT_FUNCTIONS, *RANDOM_FUNCTIONS}
    )
