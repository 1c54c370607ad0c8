"""Recursive-descent parser producing the AST.

The parser does no evaluation and no name resolution; a call to a function
declared further down the same block is resolved by the evaluator.
"""

from __future__ import annotations

from .ast_nodes import (
    BinaryExpression,
    CalcExpression,
    Comment,
    Expression,
    ForLoop,
    FunctionCall,
    FunctionDefinition,
    Identifier,
    IfStatement,
    LetDeclaration,
    NumberLiteral,
    PathArg,
    PathCommand,
    Program,
    Statement,
    UnaryExpression,
)
from .errors import PathSyntaxError, ReservedIdentifierError
from .lexer import Lexer, Token
from .segments import PATH_COMMAND_LETTERS

# Binary precedence levels, loosest first. Each level is left-associative.
_BINARY_LEVELS: tuple[tuple[str, ...], ...] = (
    ("||",),
    ("&&",),
    ("==", "!="),
    ("<", ">", "<=", ">="),
    ("+", "-"),
    ("*", "/", "%"),
)

_STATEMENT_KEYWORDS = ("LET", "FOR", "IF", "ELSE", "FN", "IN")


def is_command_letter(name: str) -> bool:
    return len(name) == 1 and name in PATH_COMMAND_LETTERS


class Parser:
    def __init__(self, lexer: Lexer) -> None:
        self.lexer = lexer
        self.tokens = lexer.tokenize()
        self.pos = 0

    @property
    def current_token(self) -> Token:
        return self.tokens[self.pos]

    def peek_token(self, n: int = 1) -> Token:
        idx = min(self.pos + n, len(self.tokens) - 1)
        return self.tokens[idx]

    def error_here(self, message: str, tok: Token | None = None) -> PathSyntaxError:
        tok = tok or self.current_token
        return PathSyntaxError(message, tok.line, tok.column)

    # Consumes and returns the current token; any other type is a syntax error.
    def eat(self, token_type: str, what: str | None = None) -> Token:
        tok = self.current_token
        if tok.type != token_type:
            expected = what or token_type.lower()
            raise self.error_here(f"Expected {expected}, got {tok.describe()}")
        self.pos += 1
        return tok

    def eat_closing(self, token_type: str, opener: Token) -> Token:
        tok = self.current_token
        if tok.type == token_type:
            self.pos += 1
            return tok
        closer = ")" if token_type == "RPAREN" else "}"
        if tok.type == "EOF":
            kind = "parenthesis" if opener.type == "LPAREN" else "block"
            raise self.error_here(
                f"Unterminated {kind}: '{opener.value}' is never closed", opener
            )
        raise self.error_here(f"Expected '{closer}', got {tok.describe()}")

    def declared_name(
        self, role: str, *, allow_command_letter: bool = False
    ) -> Token:
        tok = self.current_token
        if tok.type != "IDENT":
            if tok.value in ("let", "for", "in", "if", "else", "fn", "calc"):
                raise self.error_here(
                    f"Keyword '{tok.value}' cannot be used as a {role} name"
                )
            raise self.error_here(f"Expected {role} name, got {tok.describe()}")
        name = str(tok.value)
        if is_command_letter(name) and not allow_command_letter:
            raise ReservedIdentifierError(
                f"'{name}' is a path command and cannot be used as a {role} name",
                tok.line,
                tok.column,
            )
        self.pos += 1
        return tok

    # ---------- TOP LEVEL ----------
    def parse(self) -> Program:
        statements: list[Statement] = []
        while self.current_token.type != "EOF":
            statements.append(self.statement())
        return Program(tuple(statements), line=1, column=1, offset=0)

    # ---------- STATEMENTS ----------
    def statement(self) -> Statement:
        tok = self.current_token

        if tok.type == "LET":
            return self.let_declaration()
        if tok.type == "FOR":
            return self.for_loop()
        if tok.type == "IF":
            return self.if_statement()
        if tok.type == "FN":
            return self.function_definition()
        if tok.type == "ELSE":
            raise self.error_here("'else' without a preceding 'if'")

        if tok.type == "IDENT":
            name = str(tok.value)
            if is_command_letter(name):
                return self.path_command()
            if self.peek_token().type == "LPAREN":
                call = self.function_call()
                return PathCommand(
                    "", (call,), line=tok.line, column=tok.column, offset=tok.offset
                )
            raise self.error_here(
                f"Unexpected identifier '{name}': expected a path command, "
                "a declaration or a function call"
            )

        raise self.error_here(f"Unexpected {tok.describe()} at start of statement")

    def let_declaration(self) -> LetDeclaration:
        tok = self.eat("LET")
        name = self.declared_name("variable")
        self.eat("ASSIGN", "'='")
        value = self.expr()
        self.eat("SEMI", "';'")
        return LetDeclaration(
            str(name.value), value, line=tok.line, column=tok.column, offset=tok.offset
        )

    def for_loop(self) -> ForLoop:
        tok = self.eat("FOR")
        lparen = self.eat("LPAREN", "'('")
        var = self.declared_name("loop variable")
        self.eat("IN", "'in'")
        start = self.expr()
        self.eat("DOTDOT", "'..'")
        end = self.expr()
        self.eat_closing("RPAREN", lparen)
        body = self.block()
        return ForLoop(
            str(var.value),
            start,
            end,
            body,
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
        )

    def if_statement(self) -> IfStatement:
        tok = self.eat("IF")
        lparen = self.eat("LPAREN", "'('")
        condition = self.expr()
        self.eat_closing("RPAREN", lparen)
        consequent = self.block()
        alternate: tuple[Statement, ...] | None = None
        if self.current_token.type == "ELSE":
            self.eat("ELSE")
            if self.current_token.type == "IF":
                alternate = (self.if_statement(),)
            else:
                alternate = self.block()
        return IfStatement(
            condition,
            consequent,
            alternate,
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
        )

    def function_definition(self) -> FunctionDefinition:
        tok = self.eat("FN")
        name = self.declared_name("function")
        lparen = self.eat("LPAREN", "'('")
        params: list[str] = []
        if self.current_token.type != "RPAREN":
            while True:
                param = self.declared_name("parameter", allow_command_letter=True)
                if str(param.value) in params:
                    raise self.error_here(
                        f"Duplicate parameter '{param.value}'", param
                    )
                params.append(str(param.value))
                if self.current_token.type != "COMMA":
                    break
                self.eat("COMMA")
        self.eat_closing("RPAREN", lparen)
        body = self.block()
        return FunctionDefinition(
            str(name.value),
            tuple(params),
            body,
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
        )

    def block(self) -> tuple[Statement, ...]:
        lbrace = self.eat("LBRACE", "'{'")
        statements: list[Statement] = []
        while self.current_token.type not in ("RBRACE", "EOF"):
            statements.append(self.statement())
        self.eat_closing("RBRACE", lbrace)
        return tuple(statements)

    # ---------- PATH COMMANDS ----------
    def path_command(self) -> PathCommand:
        tok = self.eat("IDENT")
        args: list[PathArg] = []
        while True:
            if self.current_token.type == "COMMA":
                self.eat("COMMA")
                continue
            arg = self.path_arg()
            if arg is None:
                break
            args.append(arg)
        return PathCommand(
            str(tok.value),
            tuple(args),
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
        )

    def path_arg(self) -> PathArg | None:
        tok = self.current_token

        if tok.type == "NUMBER":
            self.pos += 1
            return self.number(tok)

        # Signed literal: a minus directly followed by a number.
        if tok.type == "OP" and tok.value == "-":
            nxt = self.peek_token()
            if nxt.type == "NUMBER":
                self.pos += 2
                return self.number(nxt, negate=True, start=tok)
            return None

        if tok.type == "CALC":
            return self.calc_expression()

        if tok.type == "IDENT":
            name = str(tok.value)
            if is_command_letter(name):
                return None
            if self.peek_token().type == "LPAREN":
                return self.function_call()
            self.pos += 1
            return Identifier(name, line=tok.line, column=tok.column, offset=tok.offset)

        return None

    # ---------- EXPRESSIONS ----------
    def expr(self) -> Expression:
        return self.binary(0)

    def binary(self, level: int) -> Expression:
        if level == len(_BINARY_LEVELS):
            return self.unary()
        operators = _BINARY_LEVELS[level]
        left = self.binary(level + 1)
        while self.current_token.type == "OP" and self.current_token.value in operators:
            op = self.current_token
            self.pos += 1
            right = self.binary(level + 1)
            left = BinaryExpression(
                str(op.value),
                left,
                right,
                line=left.line,
                column=left.column,
                offset=left.offset,
            )
        return left

    def unary(self) -> Expression:
        tok = self.current_token
        if tok.type == "OP" and tok.value in ("-", "!"):
            nxt = self.peek_token()
            if tok.value == "-" and nxt.type == "NUMBER":
                self.pos += 2
                return self.number(nxt, negate=True, start=tok)
            self.pos += 1
            operand = self.unary()
            return UnaryExpression(
                str(tok.value),
                operand,
                line=tok.line,
                column=tok.column,
                offset=tok.offset,
            )
        return self.primary()

    def primary(self) -> Expression:
        tok = self.current_token

        if tok.type == "NUMBER":
            self.pos += 1
            return self.number(tok)

        if tok.type == "CALC":
            return self.calc_expression()

        if tok.type == "IDENT":
            name = str(tok.value)
            if self.peek_token().type == "LPAREN":
                return self.function_call()
            self.pos += 1
            return Identifier(name, line=tok.line, column=tok.column, offset=tok.offset)

        if tok.type == "LPAREN":
            self.pos += 1
            inner = self.expr()
            self.eat_closing("RPAREN", tok)
            return inner

        if tok.type in _STATEMENT_KEYWORDS:
            raise self.error_here(
                f"Keyword '{tok.value}' cannot be used inside an expression"
            )
        raise self.error_here(f"Expected an expression, got {tok.describe()}")

    def calc_expression(self) -> CalcExpression:
        tok = self.eat("CALC")
        lparen = self.eat("LPAREN", "'(' after calc")
        inner = self.expr()
        self.eat_closing("RPAREN", lparen)
        return CalcExpression(
            inner, line=tok.line, column=tok.column, offset=tok.offset
        )

    def function_call(self) -> FunctionCall:
        tok = self.eat("IDENT")
        lparen = self.eat("LPAREN", "'('")
        args: list[Expression] = []
        if self.current_token.type != "RPAREN":
            while True:
                args.append(self.expr())
                if self.current_token.type != "COMMA":
                    break
                self.eat("COMMA")
        self.eat_closing("RPAREN", lparen)
        return FunctionCall(
            str(tok.value),
            tuple(args),
            line=tok.line,
            column=tok.column,
            offset=tok.offset,
        )

    def number(
        self, tok: Token, *, negate: bool = False, start: Token | None = None
    ) -> NumberLiteral:
        value = float(tok.value)  # type: ignore[arg-type]
        origin = start or tok
        return NumberLiteral(
            -value if negate else value,
            line=origin.line,
            column=origin.column,
            offset=origin.offset,
        )


def parse(source: str) -> Program:
    """Parse source text into a Program, raising a CompileError on bad input."""
    return Parser(Lexer(source)).parse()


def parse_with_comments(source: str) -> tuple[Program, list[Comment]]:
    lexer = Lexer(source)
    program = Parser(lexer).parse()
    return program, lexer.comments
