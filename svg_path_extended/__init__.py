"""Compile an extended SVG path language (variables, loops, functions, calc)
into plain SVG path data."""

from .annotated import AnnotatedLine, format_annotated
from .compiler import (
    CompileOptions,
    CompileResult,
    ContextSnapshot,
    annotate,
    compile,
    compile_annotated,
    compile_with_context,
    parse_options,
)
from .errors import (
    ArityMismatchError,
    CommandArgumentError,
    CompileError,
    ConfigError,
    ErrorKind,
    IterationLimitExceededError,
    NonFiniteBoundsError,
    NonFiniteValueError,
    PathSyntaxError,
    RecursionLimitExceededError,
    ReservedIdentifierError,
    TypeMismatchError,
    UndefinedFunctionError,
    UndefinedVariableError,
)
from .evaluator import LogEntry
from .formatter import format_num
from .parser import parse, parse_with_comments

__version__ = "0.1.0"

__all__ = [
    "AnnotatedLine",
    "ArityMismatchError",
    "CommandArgumentError",
    "CompileError",
    "CompileOptions",
    "CompileResult",
    "ConfigError",
    "ContextSnapshot",
    "ErrorKind",
    "IterationLimitExceededError",
    "LogEntry",
    "NonFiniteBoundsError",
    "NonFiniteValueError",
    "PathSyntaxError",
    "RecursionLimitExceededError",
    "ReservedIdentifierError",
    "TypeMismatchError",
    "UndefinedFunctionError",
    "UndefinedVariableError",
    "annotate",
    "compile",
    "compile_annotated",
    "compile_with_context",
    "format_annotated",
    "format_num",
    "parse",
    "parse_options",
    "parse_with_comments",
]
