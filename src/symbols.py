from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ast_nodes import Block, Type

C4_TYPES = {"int", "char", "bool", "str", "void"}

@dataclass
class Function:
    name: str
    params: List[str]
    body: Block
    return_type: Optional[Type] = None  # informational only

@dataclass
class Scope:
    vars: Dict[str, Any] = field(default_factory=dict)

    def define(self, name: str, value: Any):
        self.vars[name] = value

    def has(self, name: str) -> bool:
        return name in self.vars

    def get(self, name: str) -> Any:
        return self.vars[name]
