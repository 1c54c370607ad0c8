import math

import pytest

from svg_path_extended.ast_nodes import (
    BinaryExpression,
    CalcExpression,
    ForLoop,
    FunctionCall,
    FunctionDefinition,
    Identifier,
    IfStatement,
    LetDeclaration,
    NumberLiteral,
    PathCommand,
    UnaryExpression,
    describe,
)
from svg_path_extended.errors import (
    ErrorKind,
    PathSyntaxError,
    ReservedIdentifierError,
)
from svg_path_extended.lexer import Lexer
from svg_path_extended.parser import parse, parse_with_comments


def token_types(source: str) -> list[str]:
    return [t.type for t in Lexer(source).tokenize()]


class TestLexer:
    def test_range_is_not_a_decimal_point(self) -> None:
        tokens = Lexer("0..10").tokenize()
        assert [t.type for t in tokens] == ["NUMBER", "DOTDOT", "NUMBER", "EOF"]
        assert tokens[0].value == 0
        assert tokens[2].value == 10

    def test_decimal_forms(self) -> None:
        values = [t.value for t in Lexer("4.5 .5 5.").tokenize()[:-1]]
        assert values == [4.5, 0.5, 5.0]

    def test_angle_units(self) -> None:
        deg, rad, pi = [t.value for t in Lexer("90deg 1.5rad 2pi").tokenize()[:-1]]
        assert deg == pytest.approx(math.pi / 2)
        assert rad == 1.5
        assert pi == pytest.approx(2 * math.pi)

    def test_keywords_and_operators(self) -> None:
        assert token_types("let x = a <= b && !c;") == [
            "LET",
            "IDENT",
            "ASSIGN",
            "IDENT",
            "OP",
            "IDENT",
            "OP",
            "OP",
            "IDENT",
            "SEMI",
            "EOF",
        ]

    def test_positions_are_one_based(self) -> None:
        tokens = Lexer("M 0 0\n  L 5 5").tokenize()
        l_tok = tokens[3]
        assert l_tok.value == "L"
        assert (l_tok.line, l_tok.column, l_tok.offset) == (2, 3, 8)

    def test_comments_are_collected(self) -> None:
        lexer = Lexer("// first\nM 0 0 // second")
        assert token_types("// first\nM 0 0 // second") == [
            "IDENT",
            "NUMBER",
            "NUMBER",
            "EOF",
        ]
        lexer.tokenize()
        assert [c.text for c in lexer.comments] == ["// first", "// second"]
        assert lexer.comments[1].line == 2

    def test_compact_command_letter_after_number(self) -> None:
        assert token_types("L 10 10Z") == ["IDENT", "NUMBER", "NUMBER", "IDENT", "EOF"]

    @pytest.mark.parametrize("source", ["1.2.3", "1e5", "12abc", "5px"])
    def test_malformed_numbers(self, source: str) -> None:
        with pytest.raises(PathSyntaxError) as exc:
            Lexer(f"M {source}").tokenize()
        assert exc.value.line == 1
        assert exc.value.column == 3

    def test_unexpected_character(self) -> None:
        with pytest.raises(PathSyntaxError) as exc:
            Lexer("M 0 0\nL 1 # 2").tokenize()
        assert (exc.value.line, exc.value.column) == (2, 5)
        assert exc.value.kind is ErrorKind.SYNTAX


class TestStatements:
    def test_plain_path(self) -> None:
        program = parse("M 0 0 L 10, 10 Z")
        assert program.body == (
            PathCommand("M", (NumberLiteral(0), NumberLiteral(0))),
            PathCommand("L", (NumberLiteral(10), NumberLiteral(10))),
            PathCommand("Z", ()),
        )

    def test_signed_literals_in_path_args(self) -> None:
        (cmd,) = parse("l -5 -.5").body
        assert cmd == PathCommand("l", (NumberLiteral(-5), NumberLiteral(-0.5)))

    def test_let_requires_semicolon(self) -> None:
        assert parse("let x = 1;").body == (LetDeclaration("x", NumberLiteral(1)),)
        with pytest.raises(PathSyntaxError):
            parse("let x = 1 M 0 0")

    def test_for_loop(self) -> None:
        (loop,) = parse("for (i in 0..3) { L i 0 }").body
        assert isinstance(loop, ForLoop)
        assert loop.variable == "i"
        assert loop.start == NumberLiteral(0)
        assert loop.end == NumberLiteral(3)
        assert loop.body == (PathCommand("L", (Identifier("i"), NumberLiteral(0))),)

    def test_else_if_chain(self) -> None:
        (stmt,) = parse("if (p) { M 0 0 } else if (k) { M 1 1 } else { M 2 2 }").body
        assert isinstance(stmt, IfStatement)
        assert stmt.alternate is not None
        (nested,) = stmt.alternate
        assert isinstance(nested, IfStatement)
        assert nested.condition == Identifier("k")
        assert nested.alternate == (
            PathCommand("M", (NumberLiteral(2), NumberLiteral(2))),
        )

    def test_function_definition(self) -> None:
        (fn,) = parse("fn box(w, ht) { L w 0 L w ht }").body
        assert isinstance(fn, FunctionDefinition)
        assert fn.name == "box"
        assert fn.params == ("w", "ht")
        assert len(fn.body) == 2

    def test_statement_level_call(self) -> None:
        (stmt,) = parse("circle(0, 0, 10)").body
        assert isinstance(stmt, PathCommand)
        assert stmt.is_call
        assert stmt.args == (
            FunctionCall(
                "circle", (NumberLiteral(0), NumberLiteral(0), NumberLiteral(10))
            ),
        )

    def test_path_args_stop_at_command_letter(self) -> None:
        body = parse("let n = 1; M n calc(n + 1) L f(n) 2").body
        m, l_cmd = body[1], body[2]
        assert isinstance(m, PathCommand) and isinstance(l_cmd, PathCommand)
        assert m.args == (
            Identifier("n"),
            CalcExpression(BinaryExpression("+", Identifier("n"), NumberLiteral(1))),
        )
        assert l_cmd.args == (
            FunctionCall("f", (Identifier("n"),)),
            NumberLiteral(2),
        )

    def test_bare_binary_expression_is_not_a_path_arg(self) -> None:
        with pytest.raises(PathSyntaxError):
            parse("M x + 1 0")

    def test_positions_recorded(self) -> None:
        body = parse("M 0 0\n\n  for (i in 0..2) {\n    L i i\n  }").body
        loop = body[1]
        assert (loop.line, loop.column) == (3, 3)
        assert isinstance(loop, ForLoop)
        assert (loop.body[0].line, loop.body[0].column) == (4, 5)


class TestExpressions:
    def expr(self, source: str):  # type: ignore[no-untyped-def]
        (stmt,) = parse(f"let value = {source};").body
        assert isinstance(stmt, LetDeclaration)
        return stmt.value

    def test_precedence(self) -> None:
        assert self.expr("1 + 2 * 3") == BinaryExpression(
            "+",
            NumberLiteral(1),
            BinaryExpression("*", NumberLiteral(2), NumberLiteral(3)),
        )

    def test_left_associative(self) -> None:
        assert self.expr("8 - 4 - 2") == BinaryExpression(
            "-",
            BinaryExpression("-", NumberLiteral(8), NumberLiteral(4)),
            NumberLiteral(2),
        )

    def test_logical_below_comparison(self) -> None:
        e = self.expr("x < 1 || y == 2 && w")
        assert isinstance(e, BinaryExpression)
        assert e.operator == "||"
        assert isinstance(e.right, BinaryExpression)
        assert e.right.operator == "&&"

    def test_unary(self) -> None:
        assert self.expr("-x") == UnaryExpression("-", Identifier("x"))
        assert self.expr("!(x > y)") == UnaryExpression(
            "!", BinaryExpression(">", Identifier("x"), Identifier("y"))
        )
        assert self.expr("-3") == NumberLiteral(-3)

    def test_describe_round_trip(self) -> None:
        assert describe(self.expr("(x + 1) * sin(y)")) == "(x + 1) * sin(y)"
        assert describe(self.expr("x - (y - w)")) == "x - (y - w)"


class TestSyntaxErrors:
    def test_reserved_identifier(self) -> None:
        with pytest.raises(ReservedIdentifierError) as exc:
            parse("let M = 5;")
        assert exc.value.kind is ErrorKind.RESERVED_IDENTIFIER
        assert (exc.value.line, exc.value.column) == (1, 5)

    @pytest.mark.parametrize(
        "source",
        ["fn L() { }", "let z = 1;", "for (A in 0..2) { }"],
    )
    def test_command_letters_cannot_be_declared(self, source: str) -> None:
        with pytest.raises(ReservedIdentifierError):
            parse(source)

    def test_unterminated_block_points_at_opener(self) -> None:
        with pytest.raises(PathSyntaxError) as exc:
            parse("fn f() {\n  M 0 0\n")
        assert "never closed" in exc.value.message
        assert (exc.value.line, exc.value.column) == (1, 8)

    def test_unterminated_calc(self) -> None:
        with pytest.raises(PathSyntaxError) as exc:
            parse("M calc(1 + 2 0")
        assert exc.value.line == 1

    def test_keyword_in_expression(self) -> None:
        with pytest.raises(PathSyntaxError):
            parse("let x = for;")

    def test_else_without_if(self) -> None:
        with pytest.raises(PathSyntaxError):
            parse("else { M 0 0 }")

    def test_parameters_may_be_command_letters(self) -> None:
        (fn,) = parse("fn box(w, h) { rect(0, 0, w, h) L calc(h) 0 }").body
        assert isinstance(fn, FunctionDefinition)
        assert fn.params == ("w", "h")
        call, line_to = fn.body
        assert isinstance(call, PathCommand) and call.is_call
        assert line_to == PathCommand(
            "L", (CalcExpression(Identifier("h")), NumberLiteral(0))
        )

    def test_duplicate_parameter(self) -> None:
        with pytest.raises(PathSyntaxError):
            parse("fn f(p, p) { }")

    def test_error_string_carries_position(self) -> None:
        with pytest.raises(PathSyntaxError) as exc:
            parse("M 0 0\n)")
        assert str(exc.value).startswith("line 2, column 1:")
        assert exc.value.to_dict()["kind"] == "SyntaxError"


class TestComments:
    def test_parse_with_comments(self) -> None:
        program, comments = parse_with_comments("// head\nM 0 0 // tail\n")
        assert len(program.body) == 1
        assert [(c.text, c.line, c.column) for c in comments] == [
            ("// head", 1, 1),
            ("// tail", 2, 7),
        ]
