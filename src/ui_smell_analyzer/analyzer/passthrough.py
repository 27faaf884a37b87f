"""Reactive state pass-through detection.

Flags UI-building functions that receive a reactive value (or a plain value
derived from one) only to hand it, unchanged, to another UI-building
function. One finding is emitted per relay layer of a qualifying chain.
"""

from __future__ import annotations

import logging

from ui_smell_analyzer.analyzer.call_graph import build_call_graph
from ui_smell_analyzer.analyzer.chains import (
    AnalysisContext,
    Chain,
    ChainLink,
    ChainTracker,
    OriginInfo,
    OriginResolver,
    compute_tracked_parameters,
)
from ui_smell_analyzer.analyzer.consumption import ConsumptionAnalyzer
from ui_smell_analyzer.analyzer.models import (
    Evidence,
    Finding,
    OriginReport,
    PassThroughReport,
)
from ui_smell_analyzer.config import AnalyzerConfig
from ui_smell_analyzer.ir.nodes import FunctionKey
from ui_smell_analyzer.ir.program import Program
from ui_smell_analyzer.ir.reactive_registry import ReactiveKind, ReactiveTypeClassifier
from ui_smell_analyzer.utils import snippet

log = logging.getLogger(__name__)

RULE_ID = "ReactiveStatePassThrough"


class PassThroughReporter:
    """Turns qualifying chains into findings, one per relay link."""

    def __init__(self, ctx: AnalysisContext, config: AnalyzerConfig) -> None:
        self._ctx = ctx
        self._config = config
        self._reported: set[tuple[FunctionKey, str]] = set()

    def report(self, chain: Chain) -> list[Finding]:
        if not chain.qualifies(self._config.min_chain_length):
            return []

        origin = chain.origin
        path = [link.node.name for link in chain.links]
        if chain.terminal is not None:
            path.append(chain.terminal[0].name)

        findings: list[Finding] = []
        for link in chain.relay_links:
            pair = (link.node.key, link.param.name)
            if pair in self._reported:
                continue
            self._reported.add(pair)
            findings.append(self._finding(link, origin, path))
        return findings

    def _finding(self, link: ChainLink, origin: OriginInfo | None, path: list[str]) -> Finding:
        param = link.param
        kind = self._ctx.tracked.get((link.node.key, param.name), ReactiveKind.DERIVED)
        return Finding(
            rule_id=RULE_ID,
            severity=self._config.severity,
            message=format_message(link, origin),
            file=link.node.file,
            line=param.line,
            column=param.col,
            function=link.node.name,
            parameter=param.name,
            parameter_type=param.type_text,
            reactive_kind=kind.value,
            origin=self._origin_report(origin),
            chain=path,
            evidence=[Evidence(
                file=link.node.file,
                line=param.line,
                snippet=self._snippet(link.node.key, param.line),
                function_name=link.node.name,
            )],
        )

    def _origin_report(self, origin: OriginInfo | None) -> OriginReport | None:
        if origin is None:
            return None
        return OriginReport(
            variable=origin.variable,
            function=origin.function.name,
            kind=origin.kind.value,
            file=origin.function.file,
            line=origin.line,
        )

    def _snippet(self, key: FunctionKey, line: int) -> str:
        decl = self._ctx.program.get(key)
        module = self._ctx.program.module(decl.module) if decl else None
        return snippet(module.source, line) if module else ""


def format_message(link: ChainLink, origin: OriginInfo | None) -> str:
    param = link.param
    if param.declared_kind is not None:
        subject = (
            f"Reactive state parameter '{param.name}' of type '{param.type_text}' "
            f"in function '{link.node.name}'"
        )
    else:
        subject = (
            f"Reactive state or state-derived parameter '{param.name}' "
            f"in function '{link.node.name}'"
        )
    where = ""
    if origin is not None:
        where = f" (originated from variable '{origin.variable}' in function '{origin.function.name}')"
    return (
        f"{subject} is passed through without being used{where}. "
        "Consider moving state closer to usage or passing an immutable value."
    )


def scan_passthrough(
    program: Program,
    config: AnalyzerConfig,
    files_scanned: int = 0,
) -> PassThroughReport:
    """Run pass-through detection over a built program.

    Args:
        program: Program model built by ui_smell_analyzer.ir.build_program.
        config: Analyzer configuration (vocabulary, thresholds, severity).
        files_scanned: Number of Python files the program was built from.

    Returns:
        PassThroughReport with findings in discovery order.
    """
    classifier = ReactiveTypeClassifier(config)
    graph = build_call_graph(program, classifier)
    ctx = AnalysisContext(
        program=program,
        graph=graph,
        classifier=classifier,
        analyzer=ConsumptionAnalyzer(graph),
        errors=list(graph.errors),
    )
    compute_tracked_parameters(ctx)

    chains = ChainTracker(ctx).chains()
    resolver = OriginResolver(ctx)
    reporter = PassThroughReporter(ctx, config)

    findings: list[Finding] = []
    for chain in chains:
        if not chain.qualifies(config.min_chain_length):
            continue
        chain.origin = resolver.resolve(chain)
        findings.extend(reporter.report(chain))

    log.info(
        "Pass-through analysis: %d chains, %d findings, %d errors",
        len(chains), len(findings), len(ctx.errors),
    )
    return PassThroughReport(
        findings=findings,
        files_scanned=files_scanned,
        ui_functions=len(graph),
        chains_examined=len(chains),
        errors=ctx.errors,
    )
