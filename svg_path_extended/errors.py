"""Error taxonomy shared by the parser, the evaluator and the entry points.

Every failure carries a message, a 1-based source position and a kind, so a
caller can point at the offending source span without parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    SYNTAX = "SyntaxError"
    RESERVED_IDENTIFIER = "ReservedIdentifierError"
    UNDEFINED_VARIABLE = "UndefinedVariableError"
    UNDEFINED_FUNCTION = "UndefinedFunctionError"
    ARITY_MISMATCH = "ArityMismatchError"
    NON_FINITE_BOUNDS = "NonFiniteBoundsError"
    ITERATION_LIMIT_EXCEEDED = "IterationLimitExceededError"
    TYPE_MISMATCH = "TypeMismatchError"
    NON_FINITE_VALUE = "NonFiniteValueError"
    RECURSION_LIMIT_EXCEEDED = "RecursionLimitExceededError"
    COMMAND_ARGUMENT = "CommandArgumentError"


class ConfigError(ValueError):
    pass


class CompileError(ValueError):
    kind: ErrorKind = ErrorKind.SYNTAX

    def __init__(self, message: str, line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "kind": self.kind.value,
        }


class PathSyntaxError(CompileError):
    kind = ErrorKind.SYNTAX


class ReservedIdentifierError(CompileError):
    kind = ErrorKind.RESERVED_IDENTIFIER


class UndefinedVariableError(CompileError):
    kind = ErrorKind.UNDEFINED_VARIABLE


class UndefinedFunctionError(CompileError):
    kind = ErrorKind.UNDEFINED_FUNCTION


class ArityMismatchError(CompileError):
    kind = ErrorKind.ARITY_MISMATCH


class NonFiniteBoundsError(CompileError):
    kind = ErrorKind.NON_FINITE_BOUNDS


class IterationLimitExceededError(CompileError):
    kind = ErrorKind.ITERATION_LIMIT_EXCEEDED


class TypeMismatchError(CompileError):
    kind = ErrorKind.TYPE_MISMATCH


class NonFiniteValueError(CompileError):
    kind = ErrorKind.NON_FINITE_VALUE


class RecursionLimitExceededError(CompileError):
    kind = ErrorKind.RECURSION_LIMIT_EXCEEDED


class CommandArgumentError(CompileError):
    kind = ErrorKind.COMMAND_ARGUMENT
