"""Program model dataclasses: pure data, no logic."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TypeRef:
    qualname: str | None   # "compose.runtime.State", None when unresolved
    name: str              # "State": simple name as written
    text: str              # "State[UiState]": annotation source text


@dataclass(frozen=True)
class FunctionKey:
    """Declaration identity: qualified name plus parameter-type signature."""
    qualname: str                  # "app.screens.header" / "app.screens.Screen.body"
    signature: tuple[str, ...]     # annotation text per parameter, "" when missing

    def __str__(self) -> str:
        return f"{self.qualname}({', '.join(self.signature)})"


@dataclass
class ParamDecl:
    name: str
    annotation: TypeRef | None
    line: int
    col: int
    kind: str = "positional"       # "positional"|"keyword_only"|"var_positional"|"var_keyword"
    has_default: bool = False


@dataclass
class FunctionDecl:
    key: FunctionKey
    name: str
    module: str
    file: str
    line: int
    node: ast.FunctionDef | ast.AsyncFunctionDef = field(repr=False)
    params: list[ParamDecl] = field(default_factory=list)
    is_ui_building: bool = False
    class_name: str | None = None
    is_static: bool = False

    @property
    def display_name(self) -> str:
        return f"{self.class_name}.{self.name}" if self.class_name else self.name


# ── Call targets (tagged variant) ─────────────────────────────────────────


@dataclass(frozen=True)
class Resolved:
    """Call resolved to a UI-building declaration."""
    key: FunctionKey


@dataclass(frozen=True)
class Unknown:
    """Dynamic dispatch: callee is a local, a subscript, a call result, ..."""
    reason: str


@dataclass(frozen=True)
class External:
    """Anything else: builtins, third-party code, non-UI project functions."""
    name: str


CallTarget = Resolved | Unknown | External
