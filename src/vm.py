from __future__ import annotations
import logging
from typing import Any, Dict, Iterator, List, Optional

from ast_nodes import *
from errors import (
    ArityError, DivisionByZeroError, EvalError, IndexOutOfBoundsError, InvalidCastError,
    InvalidTargetError, PointerError, SizeOfError, TypeMismatchError, UnboundNameError,
)
from symbols import Function, Scope
from values import c_div, c_mod, copy_value, is_truthy, kind_of, render, wrap_i32

logger = logging.getLogger("c4.vm")
logger.addHandler(logging.NullHandler())

POINTER_SCALE = 1000

SIZES = {IntType: 4, CharType: 1, PointerType: 8, VoidType: 0}


class VM:
    """Tree-walking evaluator.

    State lives for one program run:

    * ``scopes``: stack of binding frames, innermost last. ``scopes[0]`` is the
      global frame.
    * ``frame_bases``: for each active call, the index of its parameter frame.
      Code inside a call sees its own frames plus the global frame only.
    * ``functions``: flat name -> Function table, last declaration wins.
    * ``constants``: enum constants, filled in by the parser.
    * ``last_result`` / ``should_return``: the value of the last ``return`` and
      the latch that skips statements until the enclosing call finishes.
    """

    def __init__(self, out=None):
        self.scopes: List[Scope] = [Scope()]
        self.frame_bases: List[int] = []
        self.functions: Dict[str, Function] = {}
        self.constants: Dict[str, int] = {}
        self.last_result: Any = 0
        self.should_return = False
        self.out = out

    # ---------- results ----------
    def get_result(self) -> int:
        if isinstance(self.last_result, int):
            return self.last_result
        return 0

    def get_result_str(self) -> Optional[str]:
        if isinstance(self.last_result, str):
            return self.last_result
        return None

    def run(self, program: List[Stmt]):
        for st in program:
            self.execute(st)

    # ---------- scopes ----------
    def _visible_scopes(self) -> Iterator[Scope]:
        base = self.frame_bases[-1] if self.frame_bases else 0
        for i in range(len(self.scopes) - 1, base - 1, -1):
            yield self.scopes[i]
        if base > 0:
            yield self.scopes[0]

    def _find_scope(self, name: str) -> Optional[Scope]:
        for scope in self._visible_scopes():
            if scope.has(name):
                return scope
        return None

    def _store(self, name: str, value: Any):
        scope = self._find_scope(name) or self.scopes[-1]
        scope.define(name, value)

    # ---------- statements ----------
    def execute(self, st: Stmt):
        if self.should_return:
            return

        if isinstance(st, Return):
            self.last_result = self.eval(st.value)
            self.should_return = True

        elif isinstance(st, Let):
            self.scopes[-1].define(st.name, self.eval(st.value))

        elif isinstance(st, AssignStmt):
            self._store(st.name, self.eval(st.value))

        elif isinstance(st, ExprStmt):
            self.eval(st.expr)

        elif isinstance(st, PrintStmt):
            print(render(self.eval(st.value)), file=self.out)

        elif isinstance(st, IfStmt):
            if is_truthy(self.eval(st.cond)):
                self.execute(st.then_branch)
            elif st.else_branch is not None:
                self.execute(st.else_branch)

        elif isinstance(st, WhileStmt):
            while is_truthy(self.eval(st.cond)):
                self.execute(st.body)
                if self.should_return:
                    break

        elif isinstance(st, Block):
            self.exec_block(st)

        elif isinstance(st, FunctionDef):
            logger.debug("define %s/%d", st.name, len(st.params))
            self.functions[st.name] = Function(st.name, st.params, st.body, st.return_type)

        else:
            raise EvalError(f"Unknown statement {type(st).__name__}", st.line, st.column)

    def exec_block(self, block: Block):
        # let-only blocks (including `let a = 1, b = 2;`) declare into the enclosing scope
        if block.is_let_only():
            for st in block.statements:
                self.execute(st)
            return

        self.scopes.append(Scope())
        logger.debug("push scope (depth %d)", len(self.scopes))
        try:
            for st in block.statements:
                self.execute(st)
                if self.should_return:
                    break
        finally:
            self.scopes.pop()
            logger.debug("pop scope (depth %d)", len(self.scopes))

    # ---------- expressions ----------
    def eval(self, e: Expr) -> Any:
        if isinstance(e, Number):
            return e.value
        if isinstance(e, Boolean):
            return 1 if e.value else 0
        if isinstance(e, Char):
            return ord(e.value)
        if isinstance(e, StringLiteral):
            return e.value
        if isinstance(e, Variable):
            return self.lookup(e)
        if isinstance(e, ArrayLiteral):
            return [self.eval(item) for item in e.items]
        if isinstance(e, ArrayIndex):
            return self.eval_index(e)
        if isinstance(e, BinaryOp):
            if e.op is BinOp.ASSIGN:
                return self.eval_assign(e)
            return self.eval_binary(e)
        if isinstance(e, UnaryOp):
            return self.eval_unary(e)
        if isinstance(e, Ternary):
            if is_truthy(self.eval(e.cond)):
                return self.eval(e.then_expr)
            return self.eval(e.else_expr)
        if isinstance(e, FunctionCall):
            return self.call(e)
        if isinstance(e, EnumValue):
            key = f"{e.enum_name}::{e.variant}"
            if key not in self.constants:
                raise UnboundNameError(f"Enum variant '{key}' not found", e.line, e.column)
            return self.constants[key]
        if isinstance(e, SizeOf):
            return self.size_of(e.target, e)
        if isinstance(e, Cast):
            return self.eval_cast(e)
        if isinstance(e, AddressOf):
            v = self.eval(e.operand)
            if not isinstance(v, int):
                raise PointerError(f"Cannot take address of {kind_of(v)}", e.line, e.column)
            return wrap_i32(v * POINTER_SCALE)
        if isinstance(e, Deref):
            v = self.eval(e.operand)
            if not isinstance(v, int):
                raise PointerError(f"Invalid pointer dereference of {kind_of(v)}", e.line, e.column)
            return c_div(v, POINTER_SCALE)
        if isinstance(e, (PreInc, PreDec, PostInc, PostDec)):
            return self.eval_step(e)
        raise EvalError(f"Unknown expression {type(e).__name__}", e.line, e.column)

    def lookup(self, e: Variable) -> Any:
        scope = self._find_scope(e.name)
        if scope is not None:
            return copy_value(scope.get(e.name))
        if e.name in self.constants:
            return self.constants[e.name]
        raise UnboundNameError(f"Variable '{e.name}' not found", e.line, e.column)

    def eval_index(self, e: ArrayIndex) -> Any:
        array = self.eval(e.array)
        index = self.eval(e.index)
        if not isinstance(index, int):
            raise TypeMismatchError("Array index must be an integer", e.line, e.column)
        if not isinstance(array, list):
            raise TypeMismatchError(f"Attempted to index {kind_of(array)} value", e.line, e.column)
        if index < 0 or index >= len(array):
            raise IndexOutOfBoundsError(f"Array index out of bounds: {index}", e.line, e.column)
        return array[index]

    def eval_assign(self, e: BinaryOp) -> Any:
        target = e.left
        if isinstance(target, Variable):
            value = self.eval(e.right)
            self._store(target.name, value)
            return copy_value(value)

        if isinstance(target, ArrayIndex):
            if not isinstance(target.array, Variable):
                raise InvalidTargetError("Left-hand side must be a variable array reference", e.line, e.column)
            name = target.array.name
            index = self.eval(target.index)
            if not isinstance(index, int):
                raise TypeMismatchError("Array index must be an integer", e.line, e.column)
            value = self.eval(e.right)
            scope = self._find_scope(name)
            if scope is None:
                raise UnboundNameError(f"Array '{name}' not found", e.line, e.column)
            array = scope.get(name)
            if not isinstance(array, list):
                raise TypeMismatchError(f"'{name}' is not an array", e.line, e.column)
            if index < 0 or index >= len(array):
                raise IndexOutOfBoundsError(f"Array index {index} out of bounds", e.line, e.column)
            array[index] = value
            return copy_value(value)

        raise InvalidTargetError("Left-hand side of assignment must be a variable or array element",
                                 e.line, e.column)

    def eval_binary(self, e: BinaryOp) -> Any:
        l = self.eval(e.left)
        r = self.eval(e.right)
        op = e.op

        if isinstance(l, int) and isinstance(r, int):
            if op is BinOp.ADD:
                return wrap_i32(l + r)
            if op is BinOp.SUB:
                return wrap_i32(l - r)
            if op is BinOp.MUL:
                return wrap_i32(l * r)
            if op is BinOp.DIV:
                if r == 0:
                    raise DivisionByZeroError("Division by zero", e.line, e.column)
                return wrap_i32(c_div(l, r))
            if op is BinOp.MOD:
                if r == 0:
                    raise DivisionByZeroError("Modulo by zero", e.line, e.column)
                return c_mod(l, r)
            if op is BinOp.EQUAL:
                return int(l == r)
            if op is BinOp.NOT_EQUAL:
                return int(l != r)
            if op is BinOp.LESS_THAN:
                return int(l < r)
            if op is BinOp.GREATER_THAN:
                return int(l > r)
            if op is BinOp.LESS_EQUAL:
                return int(l <= r)
            if op is BinOp.GREATER_EQUAL:
                return int(l >= r)
            if op is BinOp.AND:
                return int(l != 0 and r != 0)
            if op is BinOp.OR:
                return int(l != 0 or r != 0)
            if op is BinOp.BIT_AND:
                return l & r
            if op is BinOp.BIT_OR:
                return l | r
            if op is BinOp.BIT_XOR:
                return l ^ r
            if op is BinOp.SHL:
                return wrap_i32(l << (r & 31))
            if op is BinOp.SHR:
                return l >> (r & 31)

        if isinstance(l, str) and isinstance(r, str):
            if op is BinOp.ADD:
                return l + r
            if op is BinOp.EQUAL:
                return int(l == r)
            if op is BinOp.NOT_EQUAL:
                return int(l != r)
            raise TypeMismatchError(f"Unsupported string operation '{op.value}'", e.line, e.column)

        raise TypeMismatchError(
            f"Mismatched types for operation '{op.value}': {kind_of(l)} and {kind_of(r)}", e.line, e.column)

    def eval_unary(self, e: UnaryOp) -> Any:
        v = self.eval(e.operand)
        if e.op is UnOp.NOT:
            if isinstance(v, int):
                return 1 if v == 0 else 0
            if isinstance(v, str):
                return 0
            raise TypeMismatchError("Cannot apply '!' to an array", e.line, e.column)
        if not isinstance(v, int):
            raise TypeMismatchError(f"Cannot apply '{e.op.value}' to {kind_of(v)}", e.line, e.column)
        if e.op is UnOp.NEG:
            return wrap_i32(-v)
        return ~v

    def eval_step(self, e: Expr) -> int:
        symbol = "++" if isinstance(e, (PreInc, PostInc)) else "--"
        if not isinstance(e.operand, Variable):
            raise InvalidTargetError(f"{symbol} requires a variable", e.line, e.column)
        name = e.operand.name
        scope = self._find_scope(name)
        if scope is None:
            raise UnboundNameError(f"Variable '{name}' not found", e.line, e.column)
        old = scope.get(name)
        if not isinstance(old, int):
            raise TypeMismatchError(f"{symbol} requires an int, '{name}' is {kind_of(old)}", e.line, e.column)
        new = wrap_i32(old + 1 if symbol == "++" else old - 1)
        scope.define(name, new)
        if isinstance(e, (PreInc, PreDec)):
            return new
        return old

    def size_of(self, t: Type, e: Expr) -> int:
        if isinstance(t, ArrayType):
            if isinstance(t.element, ArrayType):
                raise SizeOfError("Nested arrays not supported in sizeof", e.line, e.column)
            return SIZES[type(t.element)] * t.length
        return SIZES[type(t)]

    def eval_cast(self, e: Cast) -> int:
        v = self.eval(e.operand)
        t = e.target
        if isinstance(v, int):
            if isinstance(t, (IntType, PointerType)):
                return v
            if isinstance(t, CharType):
                return v & 0xFF
        # string to int/char is a stub that always yields 0
        if isinstance(v, str) and isinstance(t, (IntType, CharType)):
            return 0
        raise InvalidCastError(f"Unsupported cast: {kind_of(v)} to {t}", e.line, e.column)

    # ---------- calls ----------
    def call(self, e: FunctionCall) -> Any:
        fn = self.functions.get(e.name)
        if fn is None:
            raise UnboundNameError(f"Function '{e.name}' not found", e.line, e.column)

        args = [self.eval(a) for a in e.args]
        if len(args) != len(fn.params):
            raise ArityError(
                f"Function '{e.name}' expected {len(fn.params)} arguments, got {len(args)}", e.line, e.column)

        self.frame_bases.append(len(self.scopes))
        self.scopes.append(Scope(dict(zip(fn.params, args))))
        saved_result, saved_return = self.last_result, self.should_return
        self.last_result, self.should_return = 0, False
        logger.debug("call %s/%d depth=%d", fn.name, len(args), len(self.frame_bases))
        try:
            self.execute(fn.body)
            result = self.last_result
        finally:
            self.scopes.pop()
            self.frame_bases.pop()
            self.last_result, self.should_return = saved_result, saved_return
        logger.debug("return %s -> %r", fn.name, result)
        return result
