from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

@dataclass
class Node:
    line: int = 0
    column: int = 0

# ---------- Type annotations ----------
@dataclass(frozen=True)
class Type:
    pass

@dataclass(frozen=True)
class IntType(Type):
    def __str__(self):
        return "int"

@dataclass(frozen=True)
class CharType(Type):
    def __str__(self):
        return "char"

@dataclass(frozen=True)
class VoidType(Type):
    def __str__(self):
        return "void"

@dataclass(frozen=True)
class PointerType(Type):
    target: Type = None

    def __str__(self):
        return f"{self.target}*"

@dataclass(frozen=True)
class ArrayType(Type):
    element: Type = None
    length: int = 0

    def __str__(self):
        return f"{self.element}[{self.length}]"

# ---------- Operators ----------
class BinOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS_THAN = "<"
    GREATER_THAN = ">"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    AND = "&&"
    OR = "||"
    ASSIGN = "="
    BIT_AND = "&"
    BIT_OR = "|"
    BIT_XOR = "^"
    SHL = "<<"
    SHR = ">>"

class UnOp(Enum):
    NOT = "!"
    NEG = "-"
    BIT_NOT = "~"

# ---------- Statements ----------
class Stmt(Node): ...

@dataclass
class Block(Stmt):
    statements: List[Stmt] = field(default_factory=list)

    def is_let_only(self) -> bool:
        return all(isinstance(st, Let) for st in self.statements)

@dataclass
class Let(Stmt):
    name: str = ""
    value: "Expr" = None
    var_type: Optional[Type] = None

@dataclass
class AssignStmt(Stmt):
    name: str = ""
    value: "Expr" = None

@dataclass
class Return(Stmt):
    value: "Expr" = None

@dataclass
class PrintStmt(Stmt):
    value: "Expr" = None

@dataclass
class ExprStmt(Stmt):
    expr: "Expr" = None

@dataclass
class IfStmt(Stmt):
    cond: "Expr" = None
    then_branch: Stmt = None
    else_branch: Optional[Stmt] = None

@dataclass
class WhileStmt(Stmt):
    cond: "Expr" = None
    body: Stmt = None

@dataclass
class FunctionDef(Stmt):
    name: str = ""
    params: List[str] = field(default_factory=list)
    body: Block = None
    return_type: Optional[Type] = None

# ---------- Expressions ----------
class Expr(Node): ...

@dataclass
class Number(Expr):
    value: int = 0

@dataclass
class Boolean(Expr):
    value: bool = False

@dataclass
class Char(Expr):
    value: str = ""

@dataclass
class StringLiteral(Expr):
    value: str = ""

@dataclass
class Variable(Expr):
    name: str = ""

@dataclass
class ArrayLiteral(Expr):
    items: List[Expr] = field(default_factory=list)

@dataclass
class ArrayIndex(Expr):
    array: Expr = None
    index: Expr = None

@dataclass
class BinaryOp(Expr):
    op: BinOp = None
    left: Expr = None
    right: Expr = None

@dataclass
class UnaryOp(Expr):
    op: UnOp = None
    operand: Expr = None

@dataclass
class FunctionCall(Expr):
    name: str = ""
    args: List[Expr] = field(default_factory=list)

@dataclass
class EnumValue(Expr):
    enum_name: str = ""
    variant: str = ""

@dataclass
class SizeOf(Expr):
    target: Type = None

@dataclass
class Cast(Expr):
    target: Type = None
    operand: Expr = None

@dataclass
class AddressOf(Expr):
    operand: Expr = None

@dataclass
class Deref(Expr):
    operand: Expr = None

@dataclass
class PreInc(Expr):
    operand: Expr = None

@dataclass
class PreDec(Expr):
    operand: Expr = None

@dataclass
class PostInc(Expr):
    operand: Expr = None

@dataclass
class PostDec(Expr):
    operand: Expr = None

@dataclass
class Ternary(Expr):
    cond: Expr = None
    then_expr: Expr = None
    else_expr: Expr = None
