"""Command-line front end.

Run:
  svg-path-extended compile shape.svgx
  svg-path-extended compile -e 'for (i in 0..4) { L calc(i * 10) 0 }'
  svg-path-extended compile shape.svgx --output-svg shape.svg --stroke red
  svg-path-extended check shape.svgx
  svg-path-extended --help
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import os
import sys
from dataclasses import dataclass

from .annotated import format_annotated
from .ast_nodes import FunctionDefinition, PathCommand, Program, Statement
from .compiler import MAX_FIXED_DIGITS, CompileOptions, compile_with_context
from .errors import CompileError, ConfigError
from .parser import parse
from .pen import Point

logger = logging.getLogger(__name__)


# -------------------------
# SVG writing
# -------------------------


@dataclass(frozen=True)
class SvgStyle:
    stroke: str = "#000"
    stroke_width: float = 1.0
    fill: str = "none"
    stroke_linecap: str = "round"
    stroke_linejoin: str = "round"


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)


def _fmt(x: float, precision: int = 3) -> str:
    # Normalise -0.0 so it never produces "-0" in SVG output.
    if not x:
        x = 0.0
    s = f"{x:.{precision}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def compute_view_box(points: list[Point], margin: float) -> tuple[float, ...]:
    _require(len(points) > 0, "No drawable geometry produced.")
    min_x = min(p[0] for p in points) - margin
    min_y = min(p[1] for p in points) - margin
    w = max(p[0] for p in points) + margin - min_x
    h = max(p[1] for p in points) + margin - min_y
    _require(
        w > 0 and h > 0,
        "Degenerate bounds (width or height is zero); pass --view-box explicitly.",
    )
    return (min_x, min_y, w, h)


def parse_view_box(text: str) -> tuple[float, ...]:
    parts = text.replace(",", " ").split()
    _require(len(parts) == 4, "--view-box needs four numbers: MIN_X MIN_Y WIDTH HEIGHT")
    try:
        box = tuple(float(p) for p in parts)
    except ValueError as e:
        raise ConfigError(f"--view-box has a non-numeric value: {text!r}") from e
    _require(
        all(math.isfinite(v) for v in box) and box[2] > 0 and box[3] > 0,
        "--view-box width and height must be > 0",
    )
    return box


def write_svg(
    path_data: str,
    *,
    out_path: str,
    view_box: tuple[float, ...],
    width: float | None,
    height: float | None,
    style: SvgStyle,
    background: str | None,
    title: str | None = None,
) -> None:
    svg_w_attr = f' width="{_fmt(float(width))}"' if width else ""
    svg_h_attr = f' height="{_fmt(float(height))}"' if height else ""
    min_x, min_y, w, h = view_box

    lines: list[str] = []
    lines.append('<?xml version="1.0" encoding="UTF-8"?>')
    lines.append(
        "<svg xmlns=\"http://www.w3.org/2000/svg\" version=\"1.1\" "
        f"viewBox=\"{' '.join(_fmt(v) for v in view_box)}\"{svg_w_attr}{svg_h_attr}>"
    )

    if title:
        safe_title = (
            title.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        )
        lines.append(f"  <title>{safe_title}</title>")

    if background and background.lower() != "none":
        lines.append(
            f'  <rect x="{_fmt(min_x)}" y="{_fmt(min_y)}" '
            f'width="{_fmt(w)}" height="{_fmt(h)}" fill="{background}" />'
        )

    lines.append(
        f'  <path d="{path_data}" stroke="{style.stroke}" '
        f'stroke-width="{_fmt(style.stroke_width)}" fill="{style.fill}" '
        f'stroke-linecap="{style.stroke_linecap}" '
        f'stroke-linejoin="{style.stroke_linejoin}" />'
    )
    lines.append("</svg>")

    _ensure_parent_dir(out_path)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
        f.write("\n")


# -------------------------
# CLI / Help
# -------------------------

HELP_EPILOG = r"""
SOURCE SYNTAX

Plain SVG path data is valid source:
  M 0 0 L 10 10 Z

On top of it:
  let r = 10;                        variables (numbers, booleans, segments)
  L calc(r * 2) 0                    arithmetic inside calc(...)
  for (i in 0..5) { L calc(i*10) 0 } loops; the end bound is exclusive
  if (r > 5) { ... } else { ... }    conditionals
  fn box(w, h) { L w 0 L w h Z }     functions returning path segments
  box(5, 5)                          call a path function as a command
  circle(0, 0, 10)                   built-in shapes, math and pen helpers
  print(r, r * 2)                    execution log (see --context)
  30deg, 1.5pi                       angle units, converted to radians

Loops share a budget of 10000 iterations per compile.
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="svg-path-extended",
        description="Compile extended SVG path syntax into plain path data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "--verbose", action="store_true", help="Enable debug logging on stderr."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser(
        "compile",
        help="Compile a source file into SVG path data.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pc.add_argument(
        "source", nargs="?", default=None, help="Source file, or '-' for stdin."
    )
    pc.add_argument("-e", "--expr", default=None, help="Compile CODE given inline.")
    pc.add_argument(
        "--to-fixed",
        type=int,
        default=None,
        help=f"Format every number with N decimals (0..{MAX_FIXED_DIGITS}).",
    )
    pc.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )
    mode = pc.add_mutually_exclusive_group()
    mode.add_argument(
        "--annotated",
        action="store_true",
        help="Print a readable listing with loop and call markers.",
    )
    mode.add_argument(
        "--context",
        action="store_true",
        help="Print JSON with the path, final pen state, variables and logs.",
    )
    pc.add_argument("-o", "--output", default=None, help="Write output to a file.")

    svg = pc.add_argument_group("standalone SVG output")
    svg.add_argument(
        "--output-svg", default=None, help="Also write an SVG document to this path."
    )
    svg.add_argument(
        "--view-box",
        default=None,
        help="'MIN_X MIN_Y WIDTH HEIGHT'. Default: pen bounds plus --margin.",
    )
    svg.add_argument("--margin", type=float, default=10.0)
    svg.add_argument("--width", type=float, default=None)
    svg.add_argument("--height", type=float, default=None)
    svg.add_argument("--stroke", default="#000")
    svg.add_argument("--stroke-width", type=float, default=1.0)
    svg.add_argument("--fill", default="none")
    svg.add_argument("--background", default=None)
    svg.add_argument("--title", default=None)

    pk = sub.add_parser(
        "check",
        help="Parse a source file and print a brief summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pk.add_argument("source", help="Source file, or '-' for stdin.")

    return p


# -------------------------
# Commands
# -------------------------


def read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _emit(text: str, output: str | None) -> None:
    if output is None:
        print(text)
        return
    _ensure_parent_dir(output)
    with open(output, "w", encoding="utf-8") as f:
        f.write(text)
        f.write("\n")
    logger.info("wrote %s", output)


def cmd_compile(args: argparse.Namespace) -> None:
    if args.expr is not None:
        _require(args.source is None, "Pass either SOURCE or -e CODE, not both")
        source = args.expr
    else:
        _require(args.source is not None, "Missing SOURCE (or -e CODE)")
        source = read_source(args.source)

    options = CompileOptions(to_fixed=args.to_fixed, seed=args.seed)
    result = compile_with_context(source, options, trace=args.annotated)

    if args.annotated:
        text = format_annotated(result.annotated)
    elif args.context:
        text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    else:
        text = result.path
    _emit(text, args.output)

    if args.output_svg is not None:
        if args.view_box is not None:
            view_box = parse_view_box(args.view_box)
        else:
            view_box = compute_view_box(list(result.context.extent), args.margin)
        for name in ("width", "height", "stroke_width"):
            value = getattr(args, name)
            flag = "--" + name.replace("_", "-")
            _require(value is None or value > 0, f"{flag} must be > 0")
        write_svg(
            result.path,
            out_path=args.output_svg,
            view_box=view_box,
            width=args.width,
            height=args.height,
            style=SvgStyle(
                stroke=args.stroke, stroke_width=args.stroke_width, fill=args.fill
            ),
            background=args.background,
            title=args.title,
        )
        logger.info("SVG written to %s", args.output_svg)


def _count_commands(statements: tuple[Statement, ...]) -> int:
    total = 0
    for stmt in statements:
        if isinstance(stmt, PathCommand) and not stmt.is_call:
            total += 1
        for block in ("body", "consequent", "alternate"):
            inner = getattr(stmt, block, None)
            if inner:
                total += _count_commands(inner)
    return total


def cmd_check(source_path: str) -> None:
    program: Program = parse(read_source(source_path))
    functions = [s.name for s in program.body if isinstance(s, FunctionDefinition)]
    print(f"statements: {len(program.body)}")
    print(f"functions: {', '.join(functions) if functions else '(none)'}")
    print(f"path commands: {_count_commands(program.body)}")


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.cmd == "compile":
            cmd_compile(args)
        elif args.cmd == "check":
            cmd_check(args.source)
        else:
            raise AssertionError("unreachable")
    except CompileError as e:
        print(f"{e.kind.value}: {e}", file=sys.stderr)
        return 2
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
