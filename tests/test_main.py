"""Command line driver tests."""

import io
import logging

import pytest

from main import main


@pytest.fixture
def program(tmp_path):
    def _write(src: str):
        path = tmp_path / "prog.c4"
        path.write_text(src, encoding="utf-8")
        return str(path)

    return _write


def test_run_prints_int_result(program, capsys):
    assert main(["run", program("print(1); return 6 * 7;")]) == 0
    assert capsys.readouterr().out == "1\nProgram finished. Final result = 42\n"


def test_run_prints_quoted_string_result(program, capsys):
    assert main(["run", program('return "done";')]) == 0
    assert capsys.readouterr().out == 'Program finished. Final result = "done"\n'


def test_array_result_reads_as_zero(program, capsys):
    assert main(["run", program("return [1, 2];")]) == 0
    assert capsys.readouterr().out == "Program finished. Final result = 0\n"


def test_run_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("let a = 2; return a + 1;"))
    assert main(["run"]) == 0
    assert capsys.readouterr().out.endswith("Final result = 3\n")


@pytest.mark.parametrize(
    "src, expected",
    [
        ("return 1 / 0;", "RuntimeError at 1:10 - Division by zero\n"),
        ("let x = ;", "ParseError at 1:9 - Unexpected token SEMI_COLON ';' in expression\n"),
        ("let s = \"abc;", "LexError at 1:9 - Unterminated string literal\n"),
    ],
)
def test_errors_are_the_only_output(program, capsys, src, expected):
    assert main(["run", program(src)]) == 1
    assert capsys.readouterr().out == expected


def test_output_before_failure_is_kept(program, capsys):
    assert main(["run", program("print(5); return missing;")]) == 1
    assert capsys.readouterr().out == "5\nRuntimeError at 1:18 - Variable 'missing' not found\n"


def test_lex_mode(program, capsys):
    assert main(["lex", program("let x = 1;")]) == 0
    out = capsys.readouterr().out
    assert "LET" in out and "NUMBER" in out and "SEMI_COLON" in out


def test_parse_mode(program, capsys):
    assert main(["parse", program("let x = 1; fn f() { return x; }")]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("Let(")
    assert lines[1].startswith("FunctionDef(")


@pytest.mark.parametrize("argv", [[], ["compile", "x"], ["--bogus", "run"], ["run", "a", "b"]])
def test_usage_on_bad_arguments(capsys, argv):
    assert main(argv) == 1
    assert capsys.readouterr().out.startswith("Usage:")


def test_options(program, capsys, monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.append(kw))
    assert main(["--debug", "--recursion-limit", "20000", "run", program("return 1;")]) == 0
    assert calls[0]["level"] == logging.DEBUG
    assert capsys.readouterr().out.endswith("= 1\n")


def test_deep_recursion_fits_default_limit(program, capsys):
    src = "fn down(n) { if (n == 0) return 0; return 1 + down(n - 1); } return down(500);"
    assert main(["run", program(src)]) == 0
    assert capsys.readouterr().out.endswith("= 500\n")
