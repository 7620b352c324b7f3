"""Runtime values.

A value is a Python ``int`` (always kept within signed 32-bit range), a
``str``, or a ``list`` of values. Nothing else reaches the VM.
"""
from __future__ import annotations
from typing import Any


def wrap_i32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def kind_of(value: Any) -> str:
    if isinstance(value, int):
        return "int"
    if isinstance(value, str):
        return "str"
    return "array"


def is_truthy(value: Any) -> bool:
    if isinstance(value, int):
        return value != 0
    return True


def copy_value(value: Any) -> Any:
    """Arrays are values: every read hands out an independent copy."""
    if isinstance(value, list):
        return [copy_value(v) for v in value]
    return value


def c_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def c_mod(a: int, b: int) -> int:
    return a - b * c_div(a, b)


def render_element(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return render(value)
    return str(value)


def render(value: Any) -> str:
    """Text written by ``print``."""
    if isinstance(value, list):
        return "[" + ", ".join(render_element(v) for v in value) + "]"
    return str(value)
