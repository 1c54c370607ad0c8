"""Annotated output: the emitted path with loop and call structure kept visible."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from .ast_nodes import Comment
from .segments import PathOp

LineKind = Literal[
    "comment",
    "path_command",
    "loop_start",
    "iteration",
    "iteration_skip",
    "loop_end",
    "function_call",
    "function_call_end",
]

# Loops longer than this show only their first and last few iterations.
TRUNCATE_ABOVE = 10
SHOWN_AT_EACH_END = 3


@dataclass(frozen=True)
class AnnotatedLine:
    """One structural event of an annotated compile.

    ``text`` holds the rendered command, the comment, the iteration value or
    the call's argument list depending on ``kind``.
    """

    kind: LineKind
    text: str = ""
    name: str = ""
    line: int = 0
    count: int = 0


class Tracer:
    """Collects ``AnnotatedLine`` events while the evaluator runs.

    While ``muted`` is non-zero (inside a hidden loop iteration) nothing is
    recorded, but evaluation continues normally.
    """

    def __init__(
        self, comments: Iterable[Comment] = (), precision: int | None = None
    ) -> None:
        self.precision = precision
        self.lines: list[AnnotatedLine] = []
        self.pending = deque(sorted(comments, key=lambda c: c.offset))
        self.muted = 0

    def _push(self, line: AnnotatedLine) -> None:
        if not self.muted:
            self.lines.append(line)

    def comments_before(self, offset: int | None) -> None:
        """Emit queued comments that start before ``offset`` (all if None)."""
        if self.muted:
            return
        while self.pending and (offset is None or self.pending[0].offset < offset):
            comment = self.pending.popleft()
            self._push(AnnotatedLine("comment", comment.text, line=comment.line))

    def command(self, op: PathOp) -> None:
        self._push(AnnotatedLine("path_command", op.render(self.precision)))

    def loop_start(self, variable: str, start: str, end: str, line: int) -> None:
        self._push(AnnotatedLine("loop_start", f"{start}..{end}", variable, line))

    def iteration(self, index: int, total: int, value: str) -> bool:
        """Record an iteration marker; returns False if the iteration is hidden."""
        if total > TRUNCATE_ABOVE:
            if index == SHOWN_AT_EACH_END:
                hidden = total - 2 * SHOWN_AT_EACH_END
                self._push(AnnotatedLine("iteration_skip", count=hidden))
            if SHOWN_AT_EACH_END <= index < total - SHOWN_AT_EACH_END:
                return False
        self._push(AnnotatedLine("iteration", value))
        return True

    def loop_end(self) -> None:
        self._push(AnnotatedLine("loop_end"))

    def call_start(self, name: str, args: str, line: int) -> None:
        self._push(AnnotatedLine("function_call", args, name, line))

    def call_end(self) -> None:
        self._push(AnnotatedLine("function_call_end"))


def format_annotated(lines: Iterable[AnnotatedLine], indent_size: int = 2) -> str:
    out: list[str] = []
    level = 0

    def put(text: str) -> None:
        out.append(" " * (level * indent_size) + text)

    for line in lines:
        if line.kind in ("comment", "path_command"):
            put(line.text)
        elif line.kind == "loop_start":
            out.append("")
            put(f"//--- for ({line.name} in {line.text}) from line {line.line}")
            level += 1
        elif line.kind == "iteration":
            put(f"//--- iteration {line.text}")
        elif line.kind == "iteration_skip":
            put(f"... {line.count} more iterations ...")
        elif line.kind == "function_call":
            put(f"//--- {line.name}({line.text}) called from line {line.line}")
            level += 1
        elif line.kind in ("loop_end", "function_call_end"):
            level -= 1
    return "\n".join(out)
