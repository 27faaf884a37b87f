"""Relay chain reconstruction and origin resolution.

A chain starts at a PureForward (function, parameter) pair that no other
PureForward pair forwards into, follows representative forward edges, and
ends at the first Consumed pair (qualifying terminal), an Unused pair
(disqualified) or a pair already visited (cycle, unresolved).

All memo tables and visited sets live in an AnalysisContext scoped to one run.
"""

from __future__ import annotations

import ast
import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum

from ui_smell_analyzer.analyzer.call_graph import CallGraph, CallSite, FunctionNode, Parameter
from ui_smell_analyzer.analyzer.consumption import (
    ConsumptionAnalyzer,
    UsageClassification,
    UsageKind,
)
from ui_smell_analyzer.analyzer.models import AnalysisError
from ui_smell_analyzer.ir.nodes import FunctionKey, Resolved
from ui_smell_analyzer.ir.program import Program
from ui_smell_analyzer.ir.reactive_registry import ReactiveKind, ReactiveTypeClassifier

log = logging.getLogger(__name__)

PairKey = tuple[FunctionKey, str]


class ChainEnd(str, Enum):
    CONSUMED = "consumed"
    UNUSED = "unused"
    UNRESOLVED = "unresolved"


class OriginKind(str, Enum):
    DIRECT_CREATION = "direct-creation"
    COLLECTED_FROM_STREAM = "collected-from-stream"


@dataclass(frozen=True)
class OriginInfo:
    variable: str
    function: FunctionNode
    kind: OriginKind
    line: int


@dataclass(frozen=True)
class LocalBinding:
    """A local variable assignment relevant to reactive provenance."""
    name: str
    line: int
    kind: ReactiveKind | None = None
    origin: OriginKind | None = None     # set for creation/collection/hook initializers
    alias_of: str | None = None          # set for `x = other_name`


@dataclass(frozen=True)
class ChainLink:
    node: FunctionNode
    param: Parameter
    usage: UsageClassification

    @property
    def reportable(self) -> bool:
        # Fan-out to sibling children is a sharing point, not a relay
        return not self.usage.is_fan_out


@dataclass
class Chain:
    links: list[ChainLink]
    end: ChainEnd
    terminal: tuple[FunctionNode, Parameter] | None = None
    origin: OriginInfo | None = None

    @property
    def relay_links(self) -> list[ChainLink]:
        return [link for link in self.links if link.reportable]

    def qualifies(self, min_length: int) -> bool:
        return self.end is ChainEnd.CONSUMED and len(self.relay_links) >= min_length


@dataclass
class AnalysisContext:
    """Everything one analysis run reads or memoizes."""
    program: Program
    graph: CallGraph
    classifier: ReactiveTypeClassifier
    analyzer: ConsumptionAnalyzer
    usage_memo: dict[PairKey, UsageClassification] = field(default_factory=dict)
    bindings_memo: dict[FunctionKey, dict[str, list[LocalBinding]]] = field(default_factory=dict)
    tracked: dict[PairKey, ReactiveKind] = field(default_factory=dict)
    errors: list[AnalysisError] = field(default_factory=list)

    def usage(self, key: FunctionKey, param_name: str) -> UsageClassification:
        """Memoized classification; a failing function is treated as Consumed."""
        pair = (key, param_name)
        if pair not in self.usage_memo:
            node = self.graph.nodes[key]
            if key in self.graph.failed:
                self.usage_memo[pair] = UsageClassification.consumed(None, "analysis error")
                return self.usage_memo[pair]
            try:
                self.usage_memo[pair] = self.analyzer.classify(node, param_name)
            except Exception as exc:
                log.exception("Usage analysis failed for %s.%s", node.name, param_name)
                self.record_error(node, exc)
                self.usage_memo[pair] = UsageClassification.consumed(None, "analysis error")
        return self.usage_memo[pair]

    def local_bindings(self, key: FunctionKey) -> dict[str, list[LocalBinding]]:
        """Memoized binding table; a failing function has no known bindings."""
        if key not in self.bindings_memo:
            node = self.graph.nodes[key]
            try:
                self.bindings_memo[key] = collect_local_bindings(self, node)
            except Exception as exc:
                log.exception("Local binding scan failed for %s", node.name)
                self.record_error(node, exc)
                self.bindings_memo[key] = {}
        return self.bindings_memo[key]

    def record_error(self, node: FunctionNode, exc: Exception) -> None:
        self.errors.append(AnalysisError(
            function=node.name, file=node.file, message=f"{type(exc).__name__}: {exc}",
        ))

    def binding_before(self, key: FunctionKey, name: str, line: int) -> LocalBinding | None:
        """Latest assignment of `name` in `key` at or before `line`."""
        latest = None
        for binding in self.local_bindings(key).get(name, []):
            if binding.line <= line:
                latest = binding
        return latest


# ── Local provenance ──────────────────────────────────────────────────────


def collect_local_bindings(ctx: AnalysisContext, node: FunctionNode) -> dict[str, list[LocalBinding]]:
    """Scan the render-time scope of `node` for reactive-relevant assignments."""
    module = node.decl.module
    bindings: dict[str, list[LocalBinding]] = {}

    def resolve(expr: ast.expr) -> str | None:
        return ctx.program.resolve_name(module, expr)

    def factory_return(expr: ast.expr):
        found = ctx.program.factory_return(module, expr)
        if found is None:
            return None
        factory_module, value = found
        return value, lambda e: ctx.program.resolve_name(factory_module, e)

    def created(value: ast.expr) -> ReactiveKind | None:
        return ctx.classifier.creation_kind(value, resolve, factory_return)

    def add(binding: LocalBinding) -> None:
        bindings.setdefault(binding.name, []).append(binding)

    for scoped in ctx.graph.scope(node.key):
        stmt = scoped.node
        if not scoped.ui_scope or scoped.shadowed:
            continue

        if isinstance(stmt, ast.Assign) and len(stmt.targets) == 1:
            target, value = stmt.targets[0], stmt.value
            annotation = None
        elif isinstance(stmt, ast.AnnAssign) and stmt.value is not None:
            target, value = stmt.target, stmt.value
            annotation = stmt.annotation
        elif isinstance(stmt, ast.NamedExpr):
            target, value = stmt.target, stmt.value
            annotation = None
        else:
            continue

        if isinstance(target, ast.Name):
            binding = _binding_for_value(
                ctx, node, target.id, value, stmt.lineno, created, bindings,
            )
            if annotation is not None:
                declared = ctx.classifier.classify(
                    ctx.program.resolve_annotation(module, annotation)
                )
                if declared is not None:
                    binding = replace(binding, kind=declared)
            add(binding)
        elif isinstance(target, (ast.Tuple, ast.List)) and target.elts:
            first = target.elts[0]
            if not isinstance(first, ast.Name):
                continue
            # value, set_value = use_state(0) / = remember(lambda: mutable_state_of(0))
            if ctx.classifier.is_state_hook(value, resolve) or (
                created(value) is ReactiveKind.MUTABLE_VALUE_HOLDER
            ):
                add(LocalBinding(
                    name=first.id, line=stmt.lineno,
                    kind=ReactiveKind.DERIVED, origin=OriginKind.DIRECT_CREATION,
                ))
            else:
                add(LocalBinding(name=first.id, line=stmt.lineno))

    return bindings


def _binding_for_value(
    ctx: AnalysisContext,
    node: FunctionNode,
    name: str,
    value: ast.expr,
    line: int,
    created,
    earlier: dict[str, list[LocalBinding]],
) -> LocalBinding:
    kind = created(value)
    if kind is not None:
        return LocalBinding(name=name, line=line, kind=kind, origin=OriginKind.DIRECT_CREATION)

    if isinstance(value, ast.Call) and isinstance(value.func, ast.Attribute):
        receiver_kind = _expr_kind(ctx, node, value.func.value, earlier)
        if ctx.classifier.is_collection_operation(value, receiver_kind):
            return LocalBinding(
                name=name, line=line,
                kind=ReactiveKind.VALUE_HOLDER, origin=OriginKind.COLLECTED_FROM_STREAM,
            )

    if isinstance(value, ast.Name):
        return LocalBinding(
            name=name, line=line,
            kind=_expr_kind(ctx, node, value, earlier), alias_of=value.id,
        )

    return LocalBinding(name=name, line=line)


def _expr_kind(
    ctx: AnalysisContext,
    node: FunctionNode,
    expr: ast.expr,
    earlier: dict[str, list[LocalBinding]],
) -> ReactiveKind | None:
    """Reactive kind of a Name given the bindings collected so far."""
    if not isinstance(expr, ast.Name):
        return None
    if earlier.get(expr.id):
        return earlier[expr.id][-1].kind
    param = node.param(expr.id)
    if param is not None:
        return ctx.tracked.get((node.key, expr.id)) or param.declared_kind
    return None


# ── Tracked parameters (reactive + state-derived) ─────────────────────────


def compute_tracked_parameters(ctx: AnalysisContext) -> dict[PairKey, ReactiveKind]:
    """Fixpoint: parameters declared reactive, plus any bound from a reactive value."""
    tracked: dict[PairKey, ReactiveKind] = {}
    for node in ctx.graph.nodes.values():
        for p in node.params:
            if p.declared_kind is not None:
                tracked[(node.key, p.name)] = p.declared_kind
    ctx.tracked = tracked

    changed = True
    while changed:
        changed = False
        for site in ctx.graph.all_call_sites():
            if not isinstance(site.target, Resolved):
                continue
            callee = ctx.graph.nodes[site.target.key]
            for binding in site.bindings:
                if binding.param_name is None or binding.variadic:
                    continue
                pair = (callee.key, binding.param_name)
                if pair in tracked:
                    continue
                source = _argument_kind(ctx, site, binding.expr)
                if source is None:
                    continue
                param = callee.param(binding.param_name)
                if param is None:
                    continue
                tracked[pair] = _bound_kind(param, source)
                changed = True

    log.debug("Tracked %d reactive or state-derived parameters", len(tracked))
    return tracked


def _argument_kind(ctx: AnalysisContext, site: CallSite, expr: ast.expr) -> ReactiveKind | None:
    if not isinstance(expr, ast.Name):
        return None
    caller = ctx.graph.nodes[site.caller]
    local = ctx.binding_before(caller.key, expr.id, site.line)
    if local is not None:
        if local.kind is not None:
            return local.kind
        if local.alias_of and caller.param(local.alias_of) is not None:
            return ctx.tracked.get((caller.key, local.alias_of))
        return None
    if caller.param(expr.id) is not None:
        return ctx.tracked.get((caller.key, expr.id))
    return None


def _bound_kind(param: Parameter, source: ReactiveKind) -> ReactiveKind:
    """Kind a callee parameter takes on when bound from a value of `source` kind."""
    if param.declared_kind is not None:
        return param.declared_kind
    if not param.type_text and source is not ReactiveKind.DERIVED:
        # Unannotated parameter holds the container itself
        return source
    return ReactiveKind.DERIVED


# ── Chain tracking ────────────────────────────────────────────────────────


class ChainTracker:
    """Builds maximal relay chains from tracked PureForward pairs."""

    def __init__(self, ctx: AnalysisContext) -> None:
        self._ctx = ctx

    def chains(self) -> list[Chain]:
        ctx = self._ctx
        forwarding: list[PairKey] = []
        successors: set[PairKey] = set()
        for node in ctx.graph.nodes.values():
            for p in node.params:
                pair = (node.key, p.name)
                if pair not in ctx.tracked:
                    continue
                usage = ctx.usage(*pair)
                if usage.kind is UsageKind.PURE_FORWARD and usage.forward is not None:
                    forwarding.append(pair)
                    successors.add((usage.forward.callee, usage.forward.param_name))

        heads = [pair for pair in forwarding if pair not in successors]
        result = [self._follow(head) for head in heads]
        log.debug("Built %d chains from %d forwarding pairs", len(result), len(forwarding))
        return result

    def _follow(self, head: PairKey) -> Chain:
        ctx = self._ctx
        links: list[ChainLink] = []
        visited: set[PairKey] = set()
        current = head

        while True:
            if current in visited:
                return Chain(links=links, end=ChainEnd.UNRESOLVED)
            visited.add(current)

            node = ctx.graph.nodes.get(current[0])
            param = node.param(current[1]) if node else None
            if node is None or param is None:
                return Chain(links=links, end=ChainEnd.UNRESOLVED)

            usage = ctx.usage(*current)
            if usage.kind is UsageKind.CONSUMED:
                return Chain(links=links, end=ChainEnd.CONSUMED, terminal=(node, param))
            if usage.kind is UsageKind.UNUSED or usage.forward is None:
                return Chain(links=links, end=ChainEnd.UNUSED)

            links.append(ChainLink(node=node, param=param, usage=usage))
            current = (usage.forward.callee, usage.forward.param_name)


# ── Origin resolution ─────────────────────────────────────────────────────


class OriginResolver:
    """Walks callers backwards from a chain head to the creation point."""

    def __init__(self, ctx: AnalysisContext) -> None:
        self._ctx = ctx

    def resolve(self, chain: Chain) -> OriginInfo | None:
        if not chain.links:
            return None
        head = chain.links[0]
        ctx = self._ctx

        queue: deque[PairKey] = deque([(head.node.key, head.param.name)])
        visited: set[PairKey] = set()

        while queue:
            pair = queue.popleft()
            if pair in visited:
                continue
            visited.add(pair)

            for site in ctx.graph.callers_of(pair[0]):
                arg = site.argument_for(pair[1])
                if not isinstance(arg, ast.Name):
                    continue
                caller = ctx.graph.nodes[site.caller]
                origin, upstream = self._trace_local(caller, arg.id, site.line)
                if origin is not None:
                    return origin
                if upstream is not None and upstream not in visited:
                    queue.append(upstream)

        return None

    def _trace_local(
        self,
        caller: FunctionNode,
        name: str,
        line: int,
    ) -> tuple[OriginInfo | None, PairKey | None]:
        """Follow local aliases of `name`; return an origin or the caller param to climb to."""
        ctx = self._ctx
        seen: set[str] = set()
        while name not in seen:
            seen.add(name)
            binding = ctx.binding_before(caller.key, name, line)
            if binding is None:
                if caller.param(name) is not None:
                    return None, (caller.key, name)
                return None, None
            if binding.origin is not None:
                return OriginInfo(
                    variable=binding.name, function=caller,
                    kind=binding.origin, line=binding.line,
                ), None
            if binding.alias_of is None:
                return None, None
            name, line = binding.alias_of, binding.line
        return None, None
