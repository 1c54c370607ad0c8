"""Tokenizer for the extended path language.

Whitespace (newlines included) only separates tokens. ``//`` comments are
kept aside with their positions for the annotated compile.
"""

from __future__ import annotations

import math

from .ast_nodes import Comment
from .errors import PathSyntaxError
from .segments import PATH_COMMAND_LETTERS

KEYWORDS = {
    "let": "LET",
    "for": "FOR",
    "in": "IN",
    "if": "IF",
    "else": "ELSE",
    "fn": "FN",
    "calc": "CALC",
}

_PUNCTUATION = {
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ";": "SEMI",
}

# Two-character operators must be tried before their one-character prefixes.
_OPERATORS_2 = ("<=", ">=", "==", "!=", "&&", "||")
_OPERATORS_1 = ("+", "-", "*", "/", "%", "<", ">", "!")

_UNITS = {
    "deg": math.radians,
    "rad": lambda v: v,
    "pi": lambda v: v * math.pi,
}


class Token:
    def __init__(
        self,
        type: str,
        value: str | float | None = None,
        line: int = 1,
        column: int = 1,
        offset: int = 0,
    ) -> None:
        self.type = type
        self.value = value
        self.line = line
        self.column = column
        self.offset = offset

    def __repr__(self) -> str:
        if self.value is not None:
            return f"{self.type}({self.value})"
        return f"{self.type}"

    def describe(self) -> str:
        if self.type == "EOF":
            return "end of input"
        if self.value is not None:
            if self.type == "NUMBER":
                return "number"
            return f"'{self.value}'"
        return self.type.lower()


class Lexer:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.current_char: str | None = text[0] if text else None
        self.line = 1
        self.column = 1
        self.comments: list[Comment] = []

    def advance(self) -> None:
        if self.current_char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.pos += 1
        if self.pos >= len(self.text):
            self.current_char = None
        else:
            self.current_char = self.text[self.pos]

    def peek(self) -> str | None:
        nxt = self.pos + 1
        if nxt >= len(self.text):
            return None
        return self.text[nxt]

    def _at_command_letter(self) -> bool:
        ch, nxt = self.current_char, self.peek()
        return (
            ch is not None
            and ch in PATH_COMMAND_LETTERS
            and not (nxt is not None and (nxt.isalnum() or nxt == "_"))
        )

    def error(self, message: str, line: int, column: int) -> PathSyntaxError:
        return PathSyntaxError(message, line, column)

    def skip_whitespace(self) -> None:
        while self.current_char is not None and self.current_char.isspace():
            self.advance()

    def read_comment(self) -> None:
        line, column, offset = self.line, self.column, self.pos
        result = ""
        while self.current_char is not None and self.current_char != "\n":
            result += self.current_char
            self.advance()
        self.comments.append(
            Comment(result.rstrip(), line=line, column=column, offset=offset)
        )

    def read_identifier(self) -> Token:
        line, column, offset = self.line, self.column, self.pos
        result = ""
        while self.current_char is not None and (
            self.current_char.isalnum() or self.current_char == "_"
        ):
            result += self.current_char
            self.advance()
        if result in KEYWORDS:
            return Token(KEYWORDS[result], result, line, column, offset)
        return Token("IDENT", result, line, column, offset)

    def _read_digits(self) -> str:
        result = ""
        while self.current_char is not None and self.current_char.isdigit():
            result += self.current_char
            self.advance()
        return result

    def read_number(self) -> Token:
        line, column, offset = self.line, self.column, self.pos
        text = self._read_digits()

        # A dot followed by a dot is the range operator, never a decimal point.
        if self.current_char == "." and self.peek() != ".":
            text += "."
            self.advance()
            text += self._read_digits()
            if self.current_char == "." and self.peek() != ".":
                raise self.error(
                    f"Malformed number '{text}.': more than one decimal point",
                    line,
                    column,
                )

        value = float(text)

        if self._at_command_letter():
            # Compact path data such as "10 10Z": the letter starts a new token.
            return Token("NUMBER", value, line, column, offset)

        if self.current_char is not None and (
            self.current_char.isalpha() or self.current_char == "_"
        ):
            suffix = ""
            while self.current_char is not None and (
                self.current_char.isalnum() or self.current_char == "_"
            ):
                suffix += self.current_char
                self.advance()
            convert = _UNITS.get(suffix)
            if convert is None:
                raise self.error(
                    f"Malformed number '{text}{suffix}'", line, column
                )
            value = convert(value)

        return Token("NUMBER", value, line, column, offset)

    def get_next_token(self) -> Token:
        while self.current_char is not None:
            ch = self.current_char
            nxt = self.peek()

            if ch.isspace():
                self.skip_whitespace()
                continue

            if ch == "/" and nxt == "/":
                self.read_comment()
                continue

            if ch.isdigit() or (
                ch == "." and nxt is not None and nxt.isdigit()
            ):
                return self.read_number()

            if ch.isalpha() or ch == "_":
                return self.read_identifier()

            line, column, offset = self.line, self.column, self.pos

            if ch == "." and nxt == ".":
                self.advance()
                self.advance()
                return Token("DOTDOT", "..", line, column, offset)

            if ch in _PUNCTUATION:
                self.advance()
                return Token(_PUNCTUATION[ch], ch, line, column, offset)

            pair = ch + (nxt or "")
            if pair in _OPERATORS_2:
                self.advance()
                self.advance()
                return Token("OP", pair, line, column, offset)

            if ch == "=":
                self.advance()
                return Token("ASSIGN", "=", line, column, offset)

            if ch in _OPERATORS_1:
                self.advance()
                return Token("OP", ch, line, column, offset)

            raise self.error(f"Unexpected character '{ch}'", line, column)

        return Token("EOF", None, self.line, self.column, self.pos)

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            tok = self.get_next_token()
            tokens.append(tok)
            if tok.type == "EOF":
                return tokens
