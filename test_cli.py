import io
import json
import os
import tempfile
from contextlib import redirect_stderr, redirect_stdout

import pytest

from svg_path_extended.cli import (
    SvgStyle,
    compute_view_box,
    main,
    parse_view_box,
    write_svg,
)
from svg_path_extended.errors import ConfigError

_EXAMPLE_DIR = os.path.join(os.path.dirname(__file__), "example")


def run(argv: list[str]) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestSvgWriting:
    def test_view_box_from_points(self) -> None:
        assert compute_view_box([(0, 0), (10, 5)], 1) == (-1, -1, 12, 7)

    def test_view_box_needs_geometry(self) -> None:
        with pytest.raises(ConfigError):
            compute_view_box([], 10)
        with pytest.raises(ConfigError):
            compute_view_box([(1, 1)], 0)

    def test_parse_view_box(self) -> None:
        assert parse_view_box("0 0 100,50") == (0, 0, 100, 50)
        with pytest.raises(ConfigError):
            parse_view_box("0 0 100")
        with pytest.raises(ConfigError):
            parse_view_box("0 0 0 10")

    def test_write_svg(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            out_path = os.path.join(tmpdir, "nested", "out.svg")
            write_svg(
                "M 0 0 L 10 10",
                out_path=out_path,
                view_box=(0, 0, 10, 10),
                width=200.0,
                height=None,
                style=SvgStyle(stroke="red"),
                background="#fff",
                title="Tom & <Jerry>",
            )
            with open(out_path) as f:
                content = f.read()
        assert 'viewBox="0 0 10 10"' in content
        assert 'width="200"' in content
        assert "height=" not in content.split("<svg", 1)[1].split(">", 1)[0]
        assert '<path d="M 0 0 L 10 10" stroke="red"' in content
        assert 'fill="#fff"' in content
        assert "Tom &amp; &lt;Jerry&gt;" in content


class TestCompileCommand:
    def test_inline_source(self) -> None:
        code, out, _ = run(["compile", "-e", "let r = 5; M calc(r*2) 0"])
        assert code == 0
        assert out == "M 10 0\n"

    def test_example_files(self) -> None:
        for name in ("flower.svgx", "grid.svgx"):
            code, out, err = run(["compile", os.path.join(_EXAMPLE_DIR, name)])
            assert code == 0, err
            assert out.startswith("M ")

    def test_to_fixed(self) -> None:
        code, out, _ = run(["compile", "-e", "L calc(1/3) 0", "--to-fixed", "2"])
        assert code == 0
        assert out == "L 0.33 0.00\n"

    def test_annotated(self) -> None:
        source = "for (i in 0..1) { L i 0 }"
        code, out, _ = run(["compile", "-e", source, "--annotated"])
        assert code == 0
        assert "//--- for (i in 0..1) from line 1" in out

    def test_context_json(self) -> None:
        code, out, _ = run(["compile", "-e", "let k = 2; L k 3 print(k)", "--context"])
        assert code == 0
        data = json.loads(out)
        assert data["path"] == "L 2 3"
        assert data["context"]["variables"] == {"k": 2}
        assert data["logs"][0]["message"] == "k = 2"

    def test_output_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            out_path = os.path.join(tmpdir, "path.txt")
            svg_path = os.path.join(tmpdir, "shape.svg")
            code, out, _ = run(
                [
                    "compile",
                    "-e",
                    "M 0 0 L 10 10",
                    "-o",
                    out_path,
                    "--output-svg",
                    svg_path,
                    "--title",
                    "diag",
                ]
            )
            assert code == 0
            assert out == ""
            with open(out_path) as f:
                assert f.read() == "M 0 0 L 10 10\n"
            with open(svg_path) as f:
                content = f.read()
        assert 'viewBox="-10 -10 30 30"' in content
        assert "<title>diag</title>" in content

    def test_view_box_covers_arcs(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            svg_path = os.path.join(tmpdir, "ring.svg")
            argv = ["compile", "-e", "circle(0, 0, 50)", "--output-svg", svg_path]
            code, _, _ = run(argv)
            assert code == 0
            with open(svg_path) as f:
                content = f.read()
        assert 'viewBox="-60 -60 120 120"' in content

    def test_annotated_and_svg_share_one_run(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            svg_path = os.path.join(tmpdir, "random.svg")
            source = "M 0 0 L calc(random() * 100) 5"
            argv = ["compile", "-e", source, "--annotated", "--output-svg", svg_path]
            code, out, _ = run(argv)
            assert code == 0
            with open(svg_path) as f:
                content = f.read()
        path_data = " ".join(out.split("\n")).strip()
        assert f'<path d="{path_data}"' in content

    def test_compile_error_exit_code(self) -> None:
        code, out, err = run(["compile", "-e", "M 0 0 L x 0"])
        assert code == 2
        assert out == ""
        assert "UndefinedVariableError: line 1, column 9" in err

    def test_missing_file(self) -> None:
        code, _, err = run(["compile", "nonexistent_source.svgx"])
        assert code == 2
        assert "File error" in err

    def test_source_and_expr_conflict(self) -> None:
        code, _, err = run(["compile", "a.svgx", "-e", "M 0 0"])
        assert code == 2
        assert "Config error" in err

    def test_bad_option(self) -> None:
        code, _, _ = run(["compile", "-e", "M 0 0", "--to-fixed", "50"])
        assert code == 2

    def test_bad_view_box(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            svg_path = os.path.join(tmpdir, "shape.svg")
            argv = ["compile", "-e", "M 0 0", "--output-svg", svg_path]
            code, _, _ = run([*argv, "--view-box", "1 2"])
        assert code == 2


class TestCheckCommand:
    def test_summary(self) -> None:
        code, out, _ = run(["check", os.path.join(_EXAMPLE_DIR, "flower.svgx")])
        assert code == 0
        assert "statements: 5" in out
        assert "functions: petal" in out
        assert "path commands: 2" in out

    def test_syntax_error(self) -> None:
        with tempfile.NamedTemporaryFile(
            suffix=".svgx", mode="w", delete=False
        ) as tmp:
            tmp.write("let M = 1;")
            tmp_path = tmp.name
        try:
            code, _, err = run(["check", tmp_path])
            assert code == 2
            assert "ReservedIdentifierError" in err
        finally:
            os.unlink(tmp_path)
