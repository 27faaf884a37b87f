"""Build the call graph of UI-building functions.

Nodes are UI-building declarations keyed by (qualified name, signature), so
same-named functions with different signatures never collapse into one node.
Edges are the direct calls made from render-time scope to other UI-building
functions, each with its argument-to-parameter binding. Calls made from
ordinary callbacks (non-UI closures) are not edges.
"""

from __future__ import annotations

import ast
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from ui_smell_analyzer.analyzer.models import AnalysisError
from ui_smell_analyzer.analyzer.scope import ScopedNode, local_names, walk_scope
from ui_smell_analyzer.ir.nodes import (
    CallTarget,
    FunctionDecl,
    FunctionKey,
    ParamDecl,
    Resolved,
    Unknown,
)
from ui_smell_analyzer.ir.program import Program
from ui_smell_analyzer.ir.reactive_registry import ReactiveKind, ReactiveTypeClassifier

log = logging.getLogger(__name__)

_VARIADIC = ("var_positional", "var_keyword")


@dataclass(frozen=True)
class Parameter:
    name: str
    type_text: str             # annotation source text, "" when missing
    declared_kind: ReactiveKind | None
    line: int
    col: int
    kind: str = "positional"   # "positional"|"keyword_only"|"var_positional"|"var_keyword"

    @property
    def variadic(self) -> bool:
        return self.kind in _VARIADIC


@dataclass(frozen=True)
class FunctionNode:
    key: FunctionKey
    name: str                  # display name: "header" / "Screen.body"
    file: str
    line: int
    params: tuple[Parameter, ...]
    decl: FunctionDecl = field(compare=False, repr=False)

    def param(self, name: str) -> Parameter | None:
        for p in self.params:
            if p.name == name:
                return p
        return None


@dataclass(frozen=True)
class ArgumentBinding:
    param_name: str | None     # None when the argument cannot be bound to one parameter
    expr: ast.expr = field(compare=False, repr=False)
    variadic: bool = False     # bound into *args / **kwargs of the callee


@dataclass(frozen=True)
class CallSite:
    caller: FunctionKey
    target: CallTarget
    line: int
    col: int
    index: int                 # position among the caller's call sites
    node: ast.Call = field(compare=False, repr=False)
    bindings: tuple[ArgumentBinding, ...] = field(default=(), compare=False)

    def binding_for(self, expr: ast.expr) -> ArgumentBinding | None:
        """Binding whose argument is exactly `expr` (identity)."""
        for b in self.bindings:
            if b.expr is expr:
                return b
        return None

    def argument_for(self, param_name: str) -> ast.expr | None:
        for b in self.bindings:
            if b.param_name == param_name and not b.variadic:
                return b.expr
        return None


class CallGraph:
    """UI-building nodes plus their outgoing call sites, in source order."""

    def __init__(self) -> None:
        self.nodes: dict[FunctionKey, FunctionNode] = {}
        self._sites: dict[FunctionKey, list[CallSite]] = defaultdict(list)
        self._callers: dict[FunctionKey, list[CallSite]] = defaultdict(list)
        # id(ast.Call) -> CallSite
        self._by_call: dict[int, CallSite] = {}
        self._scopes: dict[FunctionKey, list[ScopedNode]] = {}
        # Nodes whose construction failed; their parameters count as consumed
        self.failed: set[FunctionKey] = set()
        self.errors: list[AnalysisError] = []

    def add_node(self, node: FunctionNode) -> None:
        self.nodes[node.key] = node

    def add_call_site(self, site: CallSite) -> None:
        self._sites[site.caller].append(site)
        self._by_call[id(site.node)] = site
        if isinstance(site.target, Resolved):
            self._callers[site.target.key].append(site)

    def call_sites(self, key: FunctionKey) -> list[CallSite]:
        return self._sites.get(key, [])

    def callers_of(self, key: FunctionKey) -> list[CallSite]:
        """Resolved call sites targeting `key`, in discovery order."""
        return self._callers.get(key, [])

    def site_for(self, call: ast.Call) -> CallSite | None:
        return self._by_call.get(id(call))

    def scope(self, key: FunctionKey) -> list[ScopedNode]:
        return self._scopes.get(key, [])

    def set_scope(self, key: FunctionKey, scope: list[ScopedNode]) -> None:
        self._scopes[key] = scope

    def all_call_sites(self) -> list[CallSite]:
        return [site for key in self.nodes for site in self._sites.get(key, [])]

    def __len__(self) -> int:
        return len(self.nodes)


def build_call_graph(
    program: Program,
    classifier: ReactiveTypeClassifier,
) -> CallGraph:
    """Build a CallGraph over every UI-building declaration in `program`.

    Args:
        program: Parsed and resolved program model.
        classifier: Classifies parameter types into reactive kinds.

    Returns:
        CallGraph with nodes, call sites and cached scope walks.
    """
    graph = CallGraph()

    # Pass 1: nodes
    for decl in program.ui_functions():
        graph.add_node(FunctionNode(
            key=decl.key,
            name=decl.display_name,
            file=decl.file,
            line=decl.line,
            params=tuple(_parameter(p, classifier) for p in decl.params),
            decl=decl,
        ))

    # Pass 2: call sites from render-time scope
    for node in list(graph.nodes.values()):
        try:
            scope, sites = _collect_call_sites(node, program, classifier, graph)
        except Exception as exc:
            log.exception("Call graph construction failed for %s", node.key)
            graph.failed.add(node.key)
            graph.errors.append(AnalysisError(
                function=node.name, file=node.file, message=f"{type(exc).__name__}: {exc}",
            ))
            continue
        graph.set_scope(node.key, scope)
        for site in sites:
            graph.add_call_site(site)

    log.info(
        "Call graph built: %d UI-building functions, %d call sites",
        len(graph), len(graph.all_call_sites()),
    )
    return graph


# ── Helpers ───────────────────────────────────────────────────────────────


def _parameter(p: ParamDecl, classifier: ReactiveTypeClassifier) -> Parameter:
    return Parameter(
        name=p.name,
        type_text=p.annotation.text if p.annotation else "",
        declared_kind=classifier.classify(p.annotation),
        line=p.line,
        col=p.col,
        kind=p.kind,
    )


def _collect_call_sites(
    node: FunctionNode,
    program: Program,
    classifier: ReactiveTypeClassifier,
    graph: CallGraph,
) -> tuple[list[ScopedNode], list[CallSite]]:
    """Scope walk and outgoing call sites of `node`, committed by the caller."""
    decl = node.decl
    bound = local_names(decl.node)
    targets: dict[int, CallTarget] = {}

    def target_of(call: ast.Call) -> CallTarget:
        if id(call) not in targets:
            targets[id(call)] = program.resolve_call(decl, call, bound)
        return targets[id(call)]

    def is_ui_call(call: ast.Call) -> bool:
        return isinstance(target_of(call), Resolved)

    def is_ui_def(fn: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
        for dec in fn.decorator_list:
            dec_target = dec.func if isinstance(dec, ast.Call) else dec
            written = getattr(dec_target, "id", None) or getattr(dec_target, "attr", "")
            qualname = program.resolve_name(decl.module, dec_target)
            if classifier.is_ui_marker(qualname, written):
                return True
        return False

    scope = walk_scope(decl.node, is_ui_call, is_ui_def)
    sites: list[CallSite] = []
    for scoped in scope:
        call = scoped.node
        if not isinstance(call, ast.Call) or not scoped.ui_scope:
            continue
        if _callee_shadowed(call, scoped.shadowed):
            target: CallTarget = Unknown("callee rebound by enclosing closure")
        else:
            target = target_of(call)

        if isinstance(target, Resolved):
            callee = graph.nodes.get(target.key)
            if callee is None:
                continue
            bindings = _bind_arguments(call, callee)
        elif isinstance(target, Unknown):
            bindings = tuple(ArgumentBinding(None, arg) for arg in _argument_exprs(call))
        else:
            continue

        sites.append(CallSite(
            caller=node.key,
            target=target,
            line=call.lineno,
            col=call.col_offset,
            index=len(sites),
            node=call,
            bindings=bindings,
        ))

    return scope, sites


def _callee_shadowed(call: ast.Call, shadowed: frozenset[str]) -> bool:
    func = call.func
    while isinstance(func, ast.Attribute):
        func = func.value
    return isinstance(func, ast.Name) and func.id in shadowed


def _argument_exprs(call: ast.Call) -> list[ast.expr]:
    return list(call.args) + [kw.value for kw in call.keywords]


def _bind_arguments(call: ast.Call, callee: FunctionNode) -> tuple[ArgumentBinding, ...]:
    """Bind each argument expression of `call` to a callee parameter."""
    positional = [p for p in callee.params if p.kind == "positional"]
    var_positional = next((p for p in callee.params if p.kind == "var_positional"), None)
    var_keyword = next((p for p in callee.params if p.kind == "var_keyword"), None)
    by_name = {p.name: p for p in callee.params if not p.variadic}

    bindings: list[ArgumentBinding] = []
    starred_seen = False
    for i, arg in enumerate(call.args):
        if isinstance(arg, ast.Starred):
            starred_seen = True
            bindings.append(ArgumentBinding(None, arg))
        elif starred_seen:
            # Positions after *args are unknown
            bindings.append(ArgumentBinding(None, arg))
        elif i < len(positional):
            bindings.append(ArgumentBinding(positional[i].name, arg))
        elif var_positional is not None:
            bindings.append(ArgumentBinding(var_positional.name, arg, variadic=True))
        else:
            bindings.append(ArgumentBinding(None, arg))

    for kw in call.keywords:
        if kw.arg is None:
            bindings.append(ArgumentBinding(None, kw.value))
        elif kw.arg in by_name:
            bindings.append(ArgumentBinding(kw.arg, kw.value))
        elif var_keyword is not None:
            bindings.append(ArgumentBinding(var_keyword.name, kw.value, variadic=True))
        else:
            bindings.append(ArgumentBinding(None, kw.value))

    return tuple(bindings)
