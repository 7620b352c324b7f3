"""Parser tests: AST shape, precedence and diagnostics."""

import re

import pytest

from ast_nodes import *
from errors import ParseError
from main import parse_source
from vm import VM


def expr_of(parse, src: str):
    (stmt,) = parse(src)
    assert isinstance(stmt, (ExprStmt, Return))
    return stmt.expr if isinstance(stmt, ExprStmt) else stmt.value


def test_multiplication_binds_tighter_than_addition(parse):
    e = expr_of(parse, "return 2 + 3 * 4;")
    assert e.op is BinOp.ADD
    assert isinstance(e.left, Number)
    assert e.right.op is BinOp.MUL


def test_parentheses_group(parse):
    e = expr_of(parse, "return (2 + 3) * 4;")
    assert e.op is BinOp.MUL
    assert e.left.op is BinOp.ADD


def test_precedence_ladder(parse):
    # || < && < | < ^ < & < comparison < shift < additive
    e = expr_of(parse, "return a || b && c | d ^ e & f == g << h + i;")
    assert e.op is BinOp.OR
    e = e.right
    assert e.op is BinOp.AND
    e = e.right
    assert e.op is BinOp.BIT_OR
    e = e.right
    assert e.op is BinOp.BIT_XOR
    e = e.right
    assert e.op is BinOp.BIT_AND
    e = e.right
    assert e.op is BinOp.EQUAL
    e = e.right
    assert e.op is BinOp.SHL
    assert e.right.op is BinOp.ADD


def test_binary_operators_are_left_associative(parse):
    e = expr_of(parse, "return 10 - 4 - 3;")
    assert e.op is BinOp.SUB
    assert e.left.op is BinOp.SUB
    assert e.right.value == 3


def test_assignment_is_right_associative(parse):
    e = expr_of(parse, "return a = b = 4;")
    assert e.op is BinOp.ASSIGN
    assert e.left == Variable(name="a", line=1, column=8)
    assert e.right.op is BinOp.ASSIGN


def test_ternary_wraps_assignment(parse):
    e = expr_of(parse, "return c ? 1 : 2;")
    assert isinstance(e, Ternary)
    assert isinstance(e.cond, Variable)


@pytest.mark.parametrize("src", ["1 = 2;", "a + b = 3;", "f() = 1;", "(a) + 1 = 2;"])
def test_invalid_assignment_target(parse, src):
    with pytest.raises(ParseError, match="Invalid assignment target"):
        parse(src)


def test_array_index_is_assignable(parse):
    (stmt,) = parse("arr[1] = 42;")
    assert isinstance(stmt, ExprStmt)
    assert stmt.expr.op is BinOp.ASSIGN
    assert isinstance(stmt.expr.left, ArrayIndex)


def test_plain_assignment_statement(parse):
    (stmt,) = parse("x = 7;")
    assert isinstance(stmt, AssignStmt)
    assert stmt.name == "x"
    assert stmt.value.value == 7


def test_unary_and_postfix_forms(parse):
    assert isinstance(expr_of(parse, "return &x;"), AddressOf)
    assert isinstance(expr_of(parse, "return *p;"), Deref)
    assert isinstance(expr_of(parse, "return ++x;"), PreInc)
    assert isinstance(expr_of(parse, "return --x;"), PreDec)
    assert isinstance(expr_of(parse, "return x++;"), PostInc)
    assert isinstance(expr_of(parse, "return x--;"), PostDec)
    neg = expr_of(parse, "return -x;")
    assert isinstance(neg, UnaryOp) and neg.op is UnOp.NEG
    inv = expr_of(parse, "return ~x;")
    assert inv.op is UnOp.BIT_NOT
    nt = expr_of(parse, "return !x;")
    assert nt.op is UnOp.NOT


def test_deref_binds_tighter_than_multiplication(parse):
    e = expr_of(parse, "return a * *p;")
    assert e.op is BinOp.MUL
    assert isinstance(e.right, Deref)


def test_cast_versus_grouping(parse):
    cast = expr_of(parse, "return (char)300;")
    assert cast == Cast(target=CharType(), operand=Number(value=300, line=1, column=14), line=1, column=8)
    ptr = expr_of(parse, "return (*int)x;")
    assert ptr.target == PointerType(IntType())
    grouped = expr_of(parse, "return (x);")
    assert isinstance(grouped, Variable)


def test_cast_with_star_on_non_type_is_an_error(parse):
    with pytest.raises(ParseError, match="Unknown type 'p'"):
        parse("return (*p);")


def test_sizeof_types(parse):
    assert expr_of(parse, "return sizeof(int);").target == IntType()
    assert expr_of(parse, "return sizeof(bool);").target == CharType()
    assert expr_of(parse, "return sizeof(str);").target == PointerType(CharType())
    assert expr_of(parse, "return sizeof(int[3][2]);").target == ArrayType(ArrayType(IntType(), 3), 2)


def test_unknown_type_name(parse):
    with pytest.raises(ParseError, match="Unknown type 'float'"):
        parse("return sizeof(float);")


def test_array_literals_and_indexing(parse):
    e = expr_of(parse, "return [100, 200, 300][1];")
    assert isinstance(e, ArrayIndex)
    assert [item.value for item in e.array.items] == [100, 200, 300]
    braces = expr_of(parse, "return {1, 2,};")
    assert isinstance(braces, ArrayLiteral) and len(braces.items) == 2


def test_function_call_and_enum_value(parse):
    call = expr_of(parse, "return add(1, 2 * 3);")
    assert isinstance(call, FunctionCall)
    assert call.name == "add" and len(call.args) == 2
    ev = expr_of(parse, "return Color::Red;")
    assert ev == EnumValue(enum_name="Color", variant="Red", line=1, column=8)


def test_call_target_must_be_identifier(parse):
    with pytest.raises(ParseError, match="Call target must be identifier"):
        parse("return (1)(2);")


def test_let_forms(parse):
    (single,) = parse("let x = 1;")
    assert isinstance(single, Let) and single.var_type == IntType()
    (typed,) = parse("let s: str = \"a\";")
    assert typed.var_type == PointerType(CharType())
    (multi,) = parse("let x = 1, y = 2, z = x + y;")
    assert isinstance(multi, Block)
    assert [d.name for d in multi.statements] == ["x", "y", "z"]
    assert multi.is_let_only()


def test_typed_declarations_and_functions(parse):
    decl, fn, vfn, arrow = parse(
        "int *p = 0;"
        "int square(n) { return n * n; }"
        "void greet() { print(\"hi\"); }"
        "fn add(a, b) { return a + b; }"
    )
    assert isinstance(decl, Let) and decl.var_type == PointerType(IntType())
    assert isinstance(fn, FunctionDef)
    assert (fn.name, fn.params, fn.return_type) == ("square", ["n"], IntType())
    assert vfn.return_type == VoidType() and vfn.params == []
    assert arrow.return_type is None and arrow.params == ["a", "b"]


def test_control_flow_statements(parse):
    if_stmt, while_stmt = parse("if (x < 5) return 0; else { return 1; } while (i) i = i - 1;")
    assert isinstance(if_stmt, IfStmt)
    assert isinstance(if_stmt.then_branch, Return)
    assert isinstance(if_stmt.else_branch, Block)
    assert isinstance(while_stmt, WhileStmt)
    assert isinstance(while_stmt.body, AssignStmt)


def test_bare_return_yields_zero(parse):
    (block,) = parse("{ return; }")
    assert block.statements[0].value.value == 0


def test_enum_registers_constants_during_parse():
    vm = VM()
    program, _ = parse_source("enum { A = 5, B, C = 10, D }; enum Color { Red, Green = -2, Blue };", vm)
    assert all(isinstance(st, Block) and not st.statements for st in program)
    assert vm.constants == {
        "A": 5, "B": 6, "C": 10, "D": 11,
        "Red": 0, "Color::Red": 0,
        "Green": -2, "Color::Green": -2,
        "Blue": -1, "Color::Blue": -1,
    }


@pytest.mark.parametrize(
    "src, message",
    [
        ("enum { A = x };", "number after '=' in enum"),
        ("enum { A B };", "Expected ',' or '}' in enum declaration"),
        ("enum { A }", "';' after enum"),
    ],
)
def test_malformed_enum(parse, src, message):
    with pytest.raises(ParseError, match=message):
        parse(src)


@pytest.mark.parametrize(
    "src, message, loc",
    [
        ("let x = 1", "';' after let", (1, 10)),
        ("print(1;", "')' after expression", (1, 8)),
        ("if x) {}", "'(' after 'if'", (1, 4)),
        ("{ let x = 1;", "'}' to close block", (1, 13)),
        ("let = 4;", "identifier after 'let'", (1, 5)),
        ("return );", "Unexpected token RPAREN", (1, 8)),
        ("\n  x = ;", "Unexpected token SEMI_COLON", (2, 7)),
    ],
)
def test_diagnostics_carry_location(parse, src, message, loc):
    with pytest.raises(ParseError, match=re.escape(message)) as info:
        parse(src)
    assert (info.value.line, info.value.col) == loc
