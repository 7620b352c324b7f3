from __future__ import annotations
import logging
from typing import Callable, Dict, List, Optional

from ast_nodes import *
from errors import ParseError
from symbols import C4_TYPES
from values import wrap_i32

logger = logging.getLogger("c4.parser")
logger.addHandler(logging.NullHandler())


def describe(tok: dict) -> str:
    if tok["type"] == "EOF":
        return "end of input"
    if tok["value"] is None:
        return tok["type"]
    return f"{tok['type']} '{tok['value']}'"


class TokenStream:
    """Single-token look-ahead over a lexer that already has its input."""

    def __init__(self, lexer):
        self.lexer = lexer
        self.current = lexer.next_token()

    def peek(self) -> dict:
        return self.current

    def at_end(self) -> bool:
        return self.current["type"] == "EOF"

    def advance(self) -> dict:
        tok = self.current
        if tok["type"] != "EOF":
            self.current = self.lexer.next_token()
        return tok

    def check(self, *types: str) -> bool:
        return self.current["type"] in types

    def match(self, *types: str) -> Optional[dict]:
        if self.check(*types):
            return self.advance()
        return None

    def expect(self, ttype: str, what: Optional[str] = None) -> dict:
        tok = self.current
        if tok["type"] != ttype:
            raise ParseError(f"Expected {what or ttype}, got {describe(tok)}", tok["line"], tok["column"])
        return self.advance()


def _loc(tok: dict):
    return tok["line"], tok["column"]


class Parser:
    """Recursive-descent parser for C4.

    ``vm`` receives enum constants while parsing: an ``enum`` declaration
    registers its names in ``vm.constants`` and leaves an empty block behind.
    """

    def __init__(self, lexer, vm):
        self.ts = TokenStream(lexer)
        self.vm = vm

    def parse_program(self) -> List[Stmt]:
        statements: List[Stmt] = []
        while not self.ts.at_end():
            statements.append(self.parse_stmt())
        return statements

    # ---------------- STATEMENTS ----------------
    def parse_stmt(self) -> Stmt:
        tok = self.ts.peek()
        ttype = tok["type"]

        # int x = ...;  /  int f(a, b) { ... }
        if ttype == "ID" and tok["value"] in C4_TYPES:
            return self.parse_typed_decl()

        if ttype == "RETURN":
            return self.parse_return()
        if ttype == "LET":
            return self.parse_let()
        if ttype == "PRINT":
            return self.parse_print()
        if ttype == "IF":
            return self.parse_if()
        if ttype == "WHILE":
            return self.parse_while()
        if ttype == "LCURLYEBR":
            return self.parse_block()
        if ttype == "FN":
            return self.parse_fn()
        if ttype == "ENUM":
            return self.parse_enum()

        # Otherwise: expression statement
        expr = self.parse_expr()
        self.ts.expect("SEMI_COLON", "';' after expression")
        if isinstance(expr, BinaryOp) and expr.op is BinOp.ASSIGN and isinstance(expr.left, Variable):
            return AssignStmt(name=expr.left.name, value=expr.right, line=tok["line"], column=tok["column"])
        return ExprStmt(expr=expr, line=tok["line"], column=tok["column"])

    def parse_typed_decl(self) -> Stmt:
        start = self.ts.peek()
        var_type = self.parse_type()
        name_tok = self.ts.expect("ID", "name after type")
        if self.ts.match("LPAREN"):
            params = self.parse_param_list_opt()
            self.ts.expect("RPAREN", "')' after parameters")
            body = self.parse_block()
            logger.debug("function %s(%s) -> %s", name_tok["value"], ", ".join(params), var_type)
            return FunctionDef(name=name_tok["value"], params=params, body=body, return_type=var_type,
                               line=start["line"], column=start["column"])

        self.ts.expect("EQ", "'=' after variable name")
        value = self.parse_expr()
        self.ts.expect("SEMI_COLON", "';' after variable declaration")
        return Let(name=name_tok["value"], value=value, var_type=var_type,
                   line=name_tok["line"], column=name_tok["column"])

    def parse_fn(self) -> FunctionDef:
        t = self.ts.expect("FN")
        name_tok = self.ts.expect("ID", "function name after 'fn'")
        self.ts.expect("LPAREN", "'(' after function name")
        params = self.parse_param_list_opt()
        self.ts.expect("RPAREN", "')' after parameters")
        body = self.parse_block()
        logger.debug("function %s(%s)", name_tok["value"], ", ".join(params))
        return FunctionDef(name=name_tok["value"], params=params, body=body, line=t["line"], column=t["column"])

    def parse_param_list_opt(self) -> List[str]:
        params: List[str] = []
        if self.ts.check("RPAREN"):
            return params
        while True:
            params.append(self.ts.expect("ID", "parameter name")["value"])
            if self.ts.match("COMMA") is None:
                break
        return params

    def parse_return(self) -> Return:
        t = self.ts.expect("RETURN")
        if self.ts.check("SEMI_COLON", "RCURLYEBR", "EOF"):
            value = Number(value=0, line=t["line"], column=t["column"])
        else:
            value = self.parse_expr()
        self.ts.match("SEMI_COLON")
        return Return(value=value, line=t["line"], column=t["column"])

    def parse_let(self) -> Stmt:
        t = self.ts.expect("LET")
        decls: List[Stmt] = []
        while True:
            name_tok = self.ts.expect("ID", "identifier after 'let'")
            var_type = IntType()
            if self.ts.match("COLON"):
                var_type = self.parse_type()
            self.ts.expect("EQ", "'=' after identifier")
            value = self.parse_expr()
            decls.append(Let(name=name_tok["value"], value=value, var_type=var_type,
                             line=name_tok["line"], column=name_tok["column"]))
            if self.ts.match("COMMA") is None:
                break
        self.ts.expect("SEMI_COLON", "';' after let")
        if len(decls) == 1:
            return decls[0]
        return Block(statements=decls, line=t["line"], column=t["column"])

    def parse_print(self) -> PrintStmt:
        t = self.ts.expect("PRINT")
        self.ts.expect("LPAREN", "'(' after 'print'")
        value = self.parse_expr()
        self.ts.expect("RPAREN", "')' after expression")
        self.ts.expect("SEMI_COLON", "';' after print")
        return PrintStmt(value=value, line=t["line"], column=t["column"])

    def parse_if(self) -> IfStmt:
        t = self.ts.expect("IF")
        self.ts.expect("LPAREN", "'(' after 'if'")
        cond = self.parse_expr()
        self.ts.expect("RPAREN", "')' after condition")
        then_branch = self.parse_stmt()
        else_branch = None
        if self.ts.match("ELSE"):
            else_branch = self.parse_stmt()
        return IfStmt(cond=cond, then_branch=then_branch, else_branch=else_branch,
                      line=t["line"], column=t["column"])

    def parse_while(self) -> WhileStmt:
        t = self.ts.expect("WHILE")
        self.ts.expect("LPAREN", "'(' after 'while'")
        cond = self.parse_expr()
        self.ts.expect("RPAREN", "')' after condition")
        body = self.parse_stmt()
        return WhileStmt(cond=cond, body=body, line=t["line"], column=t["column"])

    def parse_block(self) -> Block:
        t = self.ts.expect("LCURLYEBR", "'{' to start block")
        block = Block(line=t["line"], column=t["column"])
        while not self.ts.check("RCURLYEBR"):
            if self.ts.at_end():
                tok = self.ts.peek()
                raise ParseError("Expected '}' to close block, got end of input", tok["line"], tok["column"])
            block.statements.append(self.parse_stmt())
        self.ts.advance()
        return block

    def parse_enum(self) -> Block:
        t = self.ts.expect("ENUM")
        name_tok = self.ts.match("ID")
        self.ts.expect("LCURLYEBR", "'{' after 'enum'")
        value = 0
        while not self.ts.check("RCURLYEBR"):
            member = self.ts.expect("ID", "identifier in enum")
            if self.ts.match("EQ"):
                negative = self.ts.match("MINUS") is not None
                value = self.ts.expect("NUMBER", "number after '=' in enum")["value"]
                if negative:
                    value = -value
            self.vm.constants[member["value"]] = value
            if name_tok is not None:
                self.vm.constants[f"{name_tok['value']}::{member['value']}"] = value
            logger.debug("enum constant %s = %d", member["value"], value)
            value = wrap_i32(value + 1)
            if self.ts.match("COMMA") is None and not self.ts.check("RCURLYEBR"):
                tok = self.ts.peek()
                raise ParseError(f"Expected ',' or '}}' in enum declaration, got {describe(tok)}",
                                 tok["line"], tok["column"])
        self.ts.expect("RCURLYEBR", "'}' after enum")
        self.ts.expect("SEMI_COLON", "';' after enum")
        return Block(line=t["line"], column=t["column"])

    # ---------------- TYPES ----------------
    def parse_type(self) -> Type:
        tok = self.ts.peek()
        if self.ts.match("MULT"):
            return PointerType(self.parse_type())
        if tok["type"] != "ID":
            raise ParseError(f"Expected type name, got {describe(tok)}", tok["line"], tok["column"])
        name = tok["value"]
        if name == "int":
            base = IntType()
        elif name in ("char", "bool"):
            base = CharType()
        elif name == "str":
            base = PointerType(CharType())
        elif name == "void":
            base = VoidType()
        else:
            raise ParseError(f"Unknown type '{name}'", tok["line"], tok["column"])
        self.ts.advance()

        while self.ts.match("MULT"):
            base = PointerType(base)
        while self.ts.match("LSQUAREBR"):
            size = self.ts.expect("NUMBER", "array size inside brackets")
            self.ts.expect("RSQUAREBR", "']' after array size")
            base = ArrayType(base, size["value"])
        return base

    # ---------------- EXPRESSIONS (precedence) ----------------
    def parse_expr(self) -> Expr:
        return self.parse_ternary()

    def parse_ternary(self) -> Expr:
        cond = self.parse_assignment()
        if self.ts.match("QUESTION"):
            then_e = self.parse_expr()
            self.ts.expect("COLON", "':' in ternary")
            else_e = self.parse_expr()
            return Ternary(cond=cond, then_expr=then_e, else_expr=else_e, line=cond.line, column=cond.column)
        return cond

    def parse_assignment(self) -> Expr:
        lhs = self.parse_logic_or()
        eq_tok = self.ts.match("EQ")
        if eq_tok is None:
            return lhs
        if not isinstance(lhs, (Variable, ArrayIndex)):
            raise ParseError("Invalid assignment target", *_loc(eq_tok))
        rhs = self.parse_assignment()
        return BinaryOp(op=BinOp.ASSIGN, left=lhs, right=rhs, line=lhs.line, column=lhs.column)

    def _left_assoc(self, operand: Callable[[], Expr], ops: Dict[str, BinOp]) -> Expr:
        expr = operand()
        while self.ts.check(*ops):
            op_tok = self.ts.advance()
            rhs = operand()
            expr = BinaryOp(op=ops[op_tok["type"]], left=expr, right=rhs, line=op_tok["line"], column=op_tok["column"])
        return expr

    def parse_logic_or(self) -> Expr:
        return self._left_assoc(self.parse_logic_and, {"OR": BinOp.OR})

    def parse_logic_and(self) -> Expr:
        return self._left_assoc(self.parse_bit_or, {"AND": BinOp.AND})

    def parse_bit_or(self) -> Expr:
        return self._left_assoc(self.parse_bit_xor, {"BIT_OR": BinOp.BIT_OR})

    def parse_bit_xor(self) -> Expr:
        return self._left_assoc(self.parse_bit_and, {"BIT_XOR": BinOp.BIT_XOR})

    def parse_bit_and(self) -> Expr:
        return self._left_assoc(self.parse_comparison, {"BIT_AND": BinOp.BIT_AND})

    def parse_comparison(self) -> Expr:
        return self._left_assoc(self.parse_shift, {
            "EQ_EQ": BinOp.EQUAL,
            "NOT_EQ": BinOp.NOT_EQUAL,
            "LESS_THAN": BinOp.LESS_THAN,
            "GREATER_THAN": BinOp.GREATER_THAN,
            "LESS_EQ": BinOp.LESS_EQUAL,
            "GREATER_EQ": BinOp.GREATER_EQUAL,
        })

    def parse_shift(self) -> Expr:
        return self._left_assoc(self.parse_additive, {"SHL": BinOp.SHL, "SHR": BinOp.SHR})

    def parse_additive(self) -> Expr:
        return self._left_assoc(self.parse_multiplicative, {"PLUS": BinOp.ADD, "MINUS": BinOp.SUB})

    def parse_multiplicative(self) -> Expr:
        return self._left_assoc(self.parse_unary, {"MULT": BinOp.MUL, "DIV": BinOp.DIV, "MOD": BinOp.MOD})

    def parse_unary(self) -> Expr:
        tok = self.ts.peek()
        ttype = tok["type"]
        line, col = _loc(tok)
        if ttype in ("NOT", "MINUS", "BIT_NOT"):
            self.ts.advance()
            op_map = {"NOT": UnOp.NOT, "MINUS": UnOp.NEG, "BIT_NOT": UnOp.BIT_NOT}
            return UnaryOp(op=op_map[ttype], operand=self.parse_unary(), line=line, column=col)
        if ttype == "BIT_AND":
            self.ts.advance()
            return AddressOf(operand=self.parse_unary(), line=line, column=col)
        if ttype == "MULT":
            self.ts.advance()
            return Deref(operand=self.parse_unary(), line=line, column=col)
        if ttype == "PLUS_PLUS":
            self.ts.advance()
            return PreInc(operand=self.parse_unary(), line=line, column=col)
        if ttype == "MINUS_MINUS":
            self.ts.advance()
            return PreDec(operand=self.parse_unary(), line=line, column=col)
        return self.parse_postfix()

    def parse_postfix(self) -> Expr:
        expr = self.parse_primary()
        while True:
            tok = self.ts.peek()
            if self.ts.match("LPAREN"):
                if not isinstance(expr, Variable):
                    raise ParseError("Call target must be identifier", *_loc(tok))
                args = self.parse_items_until("RPAREN")
                self.ts.expect("RPAREN", "')' after arguments")
                expr = FunctionCall(name=expr.name, args=args, line=expr.line, column=expr.column)
            elif self.ts.match("LSQUAREBR"):
                idx = self.parse_expr()
                self.ts.expect("RSQUAREBR", "']' after array index")
                expr = ArrayIndex(array=expr, index=idx, line=expr.line, column=expr.column)
            elif self.ts.match("PLUS_PLUS"):
                expr = PostInc(operand=expr, line=expr.line, column=expr.column)
            elif self.ts.match("MINUS_MINUS"):
                expr = PostDec(operand=expr, line=expr.line, column=expr.column)
            else:
                break
        return expr

    def parse_items_until(self, end_token: str) -> List[Expr]:
        items: List[Expr] = []
        while not self.ts.check(end_token):
            items.append(self.parse_expr())
            if self.ts.match("COMMA") is None:
                break
        return items

    def parse_primary(self) -> Expr:
        tok = self.ts.peek()
        line, col = _loc(tok)

        if self.ts.match("NUMBER"):
            return Number(value=tok["value"], line=line, column=col)

        if self.ts.match("TRUE", "FALSE"):
            return Boolean(value=tok["type"] == "TRUE", line=line, column=col)

        if self.ts.match("CHAR"):
            return Char(value=tok["value"], line=line, column=col)

        if self.ts.match("STRING"):
            return StringLiteral(value=tok["value"], line=line, column=col)

        if self.ts.match("SIZEOF"):
            self.ts.expect("LPAREN", "'(' after sizeof")
            target = self.parse_type()
            self.ts.expect("RPAREN", "')' after type")
            return SizeOf(target=target, line=line, column=col)

        if self.ts.match("LSQUAREBR"):
            items = self.parse_items_until("RSQUAREBR")
            self.ts.expect("RSQUAREBR", "']' after array literal")
            return ArrayLiteral(items=items, line=line, column=col)

        if self.ts.match("LCURLYEBR"):
            items = self.parse_items_until("RCURLYEBR")
            self.ts.expect("RCURLYEBR", "'}' after array literal")
            return ArrayLiteral(items=items, line=line, column=col)

        if self.ts.match("ID"):
            if self.ts.match("DBL_COLON"):
                variant = self.ts.expect("ID", "enum variant after '::'")
                return EnumValue(enum_name=tok["value"], variant=variant["value"], line=line, column=col)
            return Variable(name=tok["value"], line=line, column=col)

        if self.ts.match("LPAREN"):
            inner = self.ts.peek()
            # one-token decision: a type name or '*' opens a cast
            if inner["type"] == "MULT" or (inner["type"] == "ID" and inner["value"] in C4_TYPES):
                target = self.parse_type()
                self.ts.expect("RPAREN", "')' after type")
                operand = self.parse_unary()
                return Cast(target=target, operand=operand, line=line, column=col)
            expr = self.parse_expr()
            self.ts.expect("RPAREN", "')' after expression")
            return expr

        raise ParseError(f"Unexpected token {describe(tok)} in expression", line, col)
