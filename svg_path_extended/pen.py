"""Pen state: where the path currently is and which way it is heading.

Angles are radians with 0 along +X. SVG's y axis points down, so positive
angles turn clockwise on screen.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace

from .segments import PathOp, command_groups

Point = tuple[float, float]


@dataclass(frozen=True)
class CommandRecord:
    command: str
    args: tuple[float, ...]
    start: Point
    end: Point


def _heading(origin: Point, target: Point) -> float | None:
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    if dx == 0 and dy == 0:
        return None
    return math.atan2(dy, dx)


def _arc_centre(
    start: Point,
    rx: float,
    ry: float,
    phi: float,
    large_arc: bool,
    sweep: bool,
    end: Point,
) -> tuple[float, float, float, float, float, float]:
    """Centre-space form of an SVG arc, per the SVG implementation notes.

    Returns ``(x1', y1', cx', cy', rx, ry)`` in the rotated frame, with radii
    too small to span the endpoints scaled up.
    """
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    hx = (start[0] - end[0]) / 2
    hy = (start[1] - end[1]) / 2
    x1p = cos_phi * hx + sin_phi * hy
    y1p = -sin_phi * hx + cos_phi * hy

    lam = (x1p * x1p) / (rx * rx) + (y1p * y1p) / (ry * ry)
    if lam > 1:
        scale = math.sqrt(lam)
        rx *= scale
        ry *= scale

    num = rx * rx * ry * ry - rx * rx * y1p * y1p - ry * ry * x1p * x1p
    den = rx * rx * y1p * y1p + ry * ry * x1p * x1p
    coef = math.sqrt(max(0.0, num / den))
    if large_arc == sweep:
        coef = -coef
    cxp = coef * rx * y1p / ry
    cyp = -coef * ry * x1p / rx
    return x1p, y1p, cxp, cyp, rx, ry


def arc_end_direction(
    start: Point,
    rx: float,
    ry: float,
    rotation_deg: float,
    large_arc: bool,
    sweep: bool,
    end: Point,
) -> float | None:
    """Tangent direction at the end of an SVG elliptical arc.

    Degenerate arcs (zero radius) are straight lines.
    """
    if start == end:
        return None
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0:
        return _heading(start, end)

    phi = math.radians(rotation_deg)
    x1p, y1p, cxp, cyp, rx, ry = _arc_centre(
        start, rx, ry, phi, large_arc, sweep, end
    )
    theta_end = math.atan2((-y1p - cyp) / ry, (-x1p - cxp) / rx)
    dxp = -rx * math.sin(theta_end)
    dyp = ry * math.cos(theta_end)
    if not sweep:
        dxp, dyp = -dxp, -dyp
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    return math.atan2(sin_phi * dxp + cos_phi * dyp, cos_phi * dxp - sin_phi * dyp)


def arc_box(
    start: Point,
    rx: float,
    ry: float,
    rotation_deg: float,
    large_arc: bool,
    sweep: bool,
    end: Point,
) -> list[Point]:
    """Opposite corners of the box around the arc's whole ellipse.

    Empty for arcs that draw nothing or degrade to a straight line.
    """
    rx, ry = abs(rx), abs(ry)
    if start == end or rx == 0 or ry == 0:
        return []
    phi = math.radians(rotation_deg)
    _, _, cxp, cyp, rx, ry = _arc_centre(start, rx, ry, phi, large_arc, sweep, end)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    cx = cos_phi * cxp - sin_phi * cyp + (start[0] + end[0]) / 2
    cy = sin_phi * cxp + cos_phi * cyp + (start[1] + end[1]) / 2
    half_w = math.hypot(rx * cos_phi, ry * sin_phi)
    half_h = math.hypot(rx * sin_phi, ry * cos_phi)
    return [(cx - half_w, cy - half_h), (cx + half_w, cy + half_h)]


@dataclass
class PenState:
    x: float = 0.0
    y: float = 0.0
    direction: float = 0.0
    start_x: float = 0.0
    start_y: float = 0.0
    # Last curve control point and its family ("C" or "Q") for S/T reflection.
    control: Point | None = None
    control_kind: str | None = None
    history: list[CommandRecord] = field(default_factory=list)
    # Every point the drawn path can reach: segment ends, curve control points
    # and the boxes around arcs. Curves stay inside their control hull.
    extent: list[Point] = field(default_factory=list)

    @property
    def position(self) -> Point:
        return (self.x, self.y)

    @property
    def start(self) -> Point:
        return (self.start_x, self.start_y)

    def copy(self) -> PenState:
        return replace(self, history=list(self.history), extent=list(self.extent))

    def polar(self, angle: float, distance: float) -> Point:
        return (
            self.x + distance * math.cos(angle),
            self.y + distance * math.sin(angle),
        )

    def advance(self, op: PathOp) -> None:
        """Move the pen through every repetition of one emitted command."""
        letter = op.letter
        upper = letter.upper()
        relative = letter != upper
        before = self.position
        for i, group in enumerate(command_groups(letter, op.args)):
            self._advance_group(upper, relative, group, first=i == 0)
        self.history.append(CommandRecord(letter, op.args, before, self.position))

    def _reflected(self, kind: str) -> Point:
        if self.control is None or self.control_kind != kind:
            return self.position
        return (2 * self.x - self.control[0], 2 * self.y - self.control[1])

    def _advance_group(
        self, upper: str, relative: bool, g: tuple[float, ...], *, first: bool
    ) -> None:
        here = self.position
        ox, oy = here if relative else (0.0, 0.0)

        def at(px: float, py: float) -> Point:
            return (ox + px, oy + py)

        control: Point | None = None
        kind: str | None = None
        heading: float | None
        reach: list[Point] = []

        if upper == "M" and first:
            end = at(g[0], g[1])
            self.start_x, self.start_y = end
            heading = None
        elif upper in ("M", "L"):
            end = at(g[0], g[1])
            heading = _heading(here, end)
        elif upper == "H":
            end = (ox + g[0], here[1])
            heading = _heading(here, end)
        elif upper == "V":
            end = (here[0], oy + g[0])
            heading = _heading(here, end)
        elif upper in ("C", "S"):
            if upper == "C":
                c1, c2, end = at(g[0], g[1]), at(g[2], g[3]), at(g[4], g[5])
            else:
                c1, c2, end = self._reflected("C"), at(g[0], g[1]), at(g[2], g[3])
            reach += [c1, c2]
            control, kind = c2, "C"
            heading = _first_heading((c2, c1, here), end)
        elif upper in ("Q", "T"):
            if upper == "Q":
                c, end = at(g[0], g[1]), at(g[2], g[3])
            else:
                c, end = self._reflected("Q"), at(g[0], g[1])
            reach.append(c)
            control, kind = c, "Q"
            heading = _first_heading((c, here), end)
        elif upper == "A":
            end = at(g[5], g[6])
            heading = arc_end_direction(
                here, g[0], g[1], g[2], bool(g[3]), bool(g[4]), end
            )
            reach += arc_box(here, g[0], g[1], g[2], bool(g[3]), bool(g[4]), end)
        elif upper == "Z":
            end = self.start
            heading = _heading(here, end)
        else:
            raise ValueError(f"Unknown path command '{upper}'")

        if not (upper == "M" and first):
            self.extent.append(here)
        self.extent.extend(reach)
        self.extent.append(end)
        self.x, self.y = end
        if heading is not None:
            self.direction = heading
        self.control = control
        self.control_kind = kind


def _first_heading(origins: tuple[Point, ...], target: Point) -> float | None:
    for origin in origins:
        heading = _heading(origin, target)
        if heading is not None:
            return heading
    return None
