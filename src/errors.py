from __future__ import annotations
from typing import Optional


class C4Error(Exception):
    kind = "Error"

    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        if line is not None:
            text = f"{self.kind} at {line}:{col} - {message}"
        else:
            text = f"{self.kind} - {message}"
        super().__init__(text)
        self.message = message
        self.line = line
        self.col = col


class LexError(C4Error):
    kind = "LexError"


class ParseError(C4Error):
    kind = "ParseError"


# ---------- evaluation ----------
class EvalError(C4Error):
    kind = "RuntimeError"


class UnboundNameError(EvalError):
    pass


class ArityError(EvalError):
    pass


class TypeMismatchError(EvalError):
    pass


class DivisionByZeroError(EvalError):
    pass


class IndexOutOfBoundsError(EvalError):
    pass


class InvalidCastError(EvalError):
    pass


class PointerError(EvalError):
    pass


class SizeOfError(EvalError):
    pass


class InvalidTargetError(EvalError):
    pass
