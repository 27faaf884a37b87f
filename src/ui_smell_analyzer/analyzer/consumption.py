"""Classify how a UI-building function uses one of its parameters.

A parameter is:
  Consumed    : referenced anywhere other than as an unchanged argument to a
                UI-building call (attribute access, value read, f-string,
                destructuring, non-UI call argument, use inside a callback,
                rebinding, ...). Consumption anywhere wins over forwarding.
  PureForward : only ever passed unchanged to UI-building calls. The first
                forwarding target is the chain link; all targets are kept.
  Unused      : never referenced, or only passed to Unknown call targets.
                A value both forwarded and handed to an Unknown target is
                Consumed.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from enum import Enum

from ui_smell_analyzer.analyzer.call_graph import CallGraph, CallSite, FunctionNode
from ui_smell_analyzer.analyzer.scope import ScopedNode
from ui_smell_analyzer.ir.nodes import FunctionKey, Resolved


class UsageKind(str, Enum):
    CONSUMED = "consumed"
    PURE_FORWARD = "pure_forward"
    UNUSED = "unused"


@dataclass(frozen=True)
class Forward:
    call_site: CallSite
    callee: FunctionKey
    param_name: str


@dataclass(frozen=True)
class UsageClassification:
    kind: UsageKind
    forward: Forward | None = None          # representative link (PureForward only)
    fan_out: tuple[Forward, ...] = ()       # every forward, in source order
    line: int | None = None                 # first consumption (Consumed only)
    reason: str = ""

    @property
    def is_fan_out(self) -> bool:
        """Forwarded to more than one distinct callee (sibling children share it)."""
        return len({f.callee for f in self.fan_out}) > 1

    @classmethod
    def consumed(cls, line: int | None, reason: str) -> UsageClassification:
        return cls(UsageKind.CONSUMED, line=line, reason=reason)

    @classmethod
    def unused(cls) -> UsageClassification:
        return cls(UsageKind.UNUSED)

    @classmethod
    def pure_forward(cls, forwards: list[Forward]) -> UsageClassification:
        return cls(UsageKind.PURE_FORWARD, forward=forwards[0], fan_out=tuple(forwards))


class ConsumptionAnalyzer:
    """Per-function parameter usage classification over the cached scope walk."""

    def __init__(self, graph: CallGraph) -> None:
        self._graph = graph

    def classify(self, node: FunctionNode, param_name: str) -> UsageClassification:
        scope = self._graph.scope(node.key)
        parents = {id(s.node): s.parent for s in scope}
        forwards: list[Forward] = []
        dead_end: ast.Name | None = None

        for scoped in scope:
            ref = scoped.node
            if not isinstance(ref, ast.Name) or ref.id != param_name:
                continue
            if param_name in scoped.shadowed:
                continue

            if not isinstance(ref.ctx, ast.Load):
                return UsageClassification.consumed(ref.lineno, "parameter rebound")

            verdict = self._classify_reference(ref, scoped, parents)
            if verdict is None:
                dead_end = dead_end or ref
                continue
            if isinstance(verdict, Forward):
                forwards.append(verdict)
                continue
            return UsageClassification.consumed(ref.lineno, verdict)

        if forwards and dead_end is not None:
            return UsageClassification.consumed(dead_end.lineno, "passed to an unresolved call")
        if forwards:
            return UsageClassification.pure_forward(forwards)
        return UsageClassification.unused()

    def _classify_reference(
        self,
        ref: ast.Name,
        scoped: ScopedNode,
        parents: dict[int, ast.AST | None],
    ) -> Forward | str | None:
        """Forward, a consumption reason, or None for an argument to an Unknown target."""
        if not scoped.ui_scope:
            return "used inside a callback"

        call = _enclosing_call(ref, scoped.parent, parents)
        if call is None:
            return _describe_use(scoped.parent)

        # Only UI-building and Unknown targets are recorded as call sites
        site = self._graph.site_for(call)
        if site is None:
            return "passed to a non-UI call"
        if not isinstance(site.target, Resolved):
            return None  # Unknown target: graph dead end

        binding = site.binding_for(ref)
        if binding is None or binding.param_name is None or binding.variadic:
            return "passed without a bindable parameter"
        return Forward(site, site.target.key, binding.param_name)


# ── Helpers ───────────────────────────────────────────────────────────────


def _enclosing_call(
    ref: ast.Name,
    parent: ast.AST | None,
    parents: dict[int, ast.AST | None],
) -> ast.Call | None:
    """The Call that receives `ref` directly as an argument, if any."""
    if isinstance(parent, ast.Call):
        if any(arg is ref for arg in parent.args):
            return parent
        return None
    if isinstance(parent, ast.keyword):
        grand = parents.get(id(parent))
        if isinstance(grand, ast.Call):
            return grand
    return None


def _describe_use(parent: ast.AST | None) -> str:
    if isinstance(parent, ast.Attribute):
        return f"attribute access '.{parent.attr}'"
    if isinstance(parent, ast.FormattedValue):
        return "used in an f-string"
    if isinstance(parent, ast.Call):
        return "called"
    if isinstance(parent, (ast.Assign, ast.AnnAssign, ast.NamedExpr)):
        return "assigned to a local"
    if isinstance(parent, ast.Starred):
        return "unpacked"
    return f"read in {type(parent).__name__}" if parent is not None else "read"
