"""Path data values: single commands and the opaque segments built from them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .formatter import format_num

PATH_COMMAND_LETTERS = "MLHVCSQTAZmlhvcsqtaz"

# Numbers consumed by one repetition of each command.
COMMAND_ARITY = {
    "M": 2,
    "L": 2,
    "H": 1,
    "V": 1,
    "C": 6,
    "S": 4,
    "Q": 4,
    "T": 2,
    "A": 7,
    "Z": 0,
}

# Positions of the large-arc and sweep flags inside one arc group.
_ARC_FLAG_SLOTS = (3, 4)


def command_groups(letter: str, args: tuple[float, ...]) -> list[tuple[float, ...]]:
    """Split a command's arguments into its implicit repetitions."""
    arity = COMMAND_ARITY[letter.upper()]
    if arity == 0:
        return [()]
    return [args[i : i + arity] for i in range(0, len(args), arity)]


def valid_argument_count(letter: str, count: int) -> bool:
    arity = COMMAND_ARITY[letter.upper()]
    if arity == 0:
        return count == 0
    return count > 0 and count % arity == 0


@dataclass(frozen=True)
class PathOp:
    letter: str
    args: tuple[float, ...] = ()

    def render(self, precision: int | None = None) -> str:
        parts = [self.letter]
        is_arc = self.letter in ("A", "a")
        for i, value in enumerate(self.args):
            if is_arc and i % 7 in _ARC_FLAG_SLOTS:
                parts.append("1" if value else "0")
            else:
                parts.append(format_num(value, precision))
        return " ".join(parts)


@dataclass(frozen=True)
class PathSegment:
    """A ready-to-emit run of path commands.

    ``applied`` marks segments whose commands already advanced the pen while
    they were produced (user function bodies), so emitting them again must
    not move the pen a second time.
    """

    commands: tuple[PathOp, ...] = ()
    applied: bool = False

    @classmethod
    def of(cls, *ops: tuple[str, Iterable[float]]) -> PathSegment:
        return cls(
            tuple(PathOp(letter, tuple(float(a) for a in args)) for letter, args in ops)
        )

    def render(self, precision: int | None = None) -> str:
        return " ".join(op.render(precision) for op in self.commands)

    @property
    def text(self) -> str:
        return self.render()

    def __bool__(self) -> bool:
        return bool(self.commands)
