"""Tests for reactive state pass-through chain detection."""

from __future__ import annotations

import textwrap
from pathlib import Path

from ui_smell_analyzer.analyzer import call_graph, chains
from ui_smell_analyzer.analyzer.consumption import ConsumptionAnalyzer
from ui_smell_analyzer.analyzer.models import PassThroughReport
from ui_smell_analyzer.analyzer.passthrough import RULE_ID, scan_passthrough
from ui_smell_analyzer.config import AnalyzerConfig
from ui_smell_analyzer.ir import build_program
from ui_smell_analyzer.ir.reactive_registry import ReactiveTypeClassifier
from ui_smell_analyzer.utils import discover_python_files

IMPORTS = """
from compose import (
    MutableState, State, StateFlow, button, composable, mutable_state_of,
    remember, text, use_state,
)
"""


def make_py_file(tmp_path: Path, name: str, code: str) -> Path:
    f = tmp_path / name
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(textwrap.dedent(code))
    return f


def _scan(tmp_path: Path, code: str | None = None, **overrides) -> PassThroughReport:
    if code is not None:
        make_py_file(tmp_path, "app.py", IMPORTS + textwrap.dedent(code))
    config = AnalyzerConfig(**overrides)
    classifier = ReactiveTypeClassifier(config)
    py_files = discover_python_files(tmp_path)
    program = build_program(tmp_path, py_files, classifier)
    return scan_passthrough(program, config, files_scanned=len(py_files))


def _flagged(report: PassThroughReport) -> list[tuple[str, str]]:
    return [(f.function, f.parameter) for f in report.findings]


FOUR_LAYERS = """
@composable
def screen():
    count = remember(lambda: mutable_state_of(0))
    layer_a(count)

@composable
def layer_a(state: State[int]):
    layer_b(state)

@composable
def layer_b(state: State[int]):
    leaf(state)

@composable
def leaf(state: State[int]):
    text(f"{state.value}")
"""


class TestChains:
    def test_two_relays_reported_with_origin(self, tmp_path):
        report = _scan(tmp_path, FOUR_LAYERS)
        assert _flagged(report) == [("layer_a", "state"), ("layer_b", "state")]
        for f in report.findings:
            assert f.rule_id == RULE_ID
            assert f.severity == "warning"
            assert f.origin.variable == "count"
            assert f.origin.function == "screen"
            assert f.origin.kind == "direct-creation"
            assert f.chain == ["layer_a", "layer_b", "leaf"]
        first = report.findings[0]
        assert first.message == (
            "Reactive state parameter 'state' of type 'State[int]' in function 'layer_a' "
            "is passed through without being used (originated from variable 'count' in "
            "function 'screen'). Consider moving state closer to usage or passing an "
            "immutable value."
        )
        assert first.file == "app.py"
        assert first.evidence[0].snippet == "def layer_a(state: State[int]):"

    def test_single_relay_not_reported(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def screen():
                count = remember(lambda: mutable_state_of(0))
                relay(count)

            @composable
            def relay(state: State[int]):
                leaf(state)

            @composable
            def leaf(state: State[int]):
                text(str(state.value))
        """)
        assert report.findings == []

    def test_min_chain_length_override(self, tmp_path):
        report = _scan(tmp_path, FOUR_LAYERS, min_chain_length=3)
        assert report.findings == []
        report = _scan(tmp_path, FOUR_LAYERS, min_chain_length=1, severity="error")
        assert len(report.findings) == 2
        assert {f.severity for f in report.findings} == {"error"}

    def test_read_before_forward_is_not_reported(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: MutableState[int]):
                text(str(v.value))
                c(v)

            @composable
            def c(v: MutableState[int]):
                d(v)

            @composable
            def d(v: MutableState[int]):
                text(str(v.value))
        """)
        assert report.findings == []

    def test_chain_ending_unused_is_not_reported(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: MutableState[int]):
                c(v)

            @composable
            def c(v: MutableState[int]):
                d(v)

            @composable
            def d(v: MutableState[int]):
                text("nothing")
        """)
        assert report.findings == []

    def test_callback_read_terminates_chain(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: MutableState[int]):
                c(v)

            @composable
            def c(v: MutableState[int]):
                d(v)

            @composable
            def d(v: MutableState[int]):
                button("+", on_click=lambda: v.set(v.value + 1))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]

    def test_fan_out_is_not_a_relay(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: MutableState[int]):
                c(v)

            @composable
            def c(v: MutableState[int]):
                left(v)
                right(v)

            @composable
            def left(v: State[int]):
                text(str(v.value))

            @composable
            def right(v: MutableState[int]):
                button("+", on_click=lambda: v.set(v.value + 1))
        """)
        assert report.findings == []

    def test_cycle_terminates_without_findings(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def entry():
                v = remember(lambda: mutable_state_of(0))
                ping(v)

            @composable
            def ping(v: State[int]):
                pong(v)

            @composable
            def pong(v: State[int]):
                ping(v)
        """)
        assert report.findings == []
        assert report.errors == []

    def test_unknown_target_is_dead_end(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a(render):
                v = remember(lambda: mutable_state_of(0))
                b(v, render)

            @composable
            def b(v: State[int], render):
                c(v, render)

            @composable
            def c(v: State[int], render):
                render(v)
        """)
        assert report.findings == []

    def test_value_also_handed_to_unknown_target_is_not_a_relay(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a(sink):
                v = remember(lambda: mutable_state_of(0))
                b(v, sink)

            @composable
            def b(v: State[int], sink):
                sink(v)
                c(v)

            @composable
            def c(v: State[int]):
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert report.findings == []

    def test_comprehension_target_named_like_callee(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: State[int]):
                names = [c for c in "xyz"]
                c(v)

            @composable
            def c(v: State[int]):
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]

    def test_repeated_call_to_one_child_is_a_relay(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def b(v: State[int]):
                c(v)

            @composable
            def c(v: State[int]):
                d(v)
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]

    def test_non_reactive_parameters_are_ignored(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                b("title")

            @composable
            def b(title: str):
                c(title)

            @composable
            def c(title: str):
                d(title)

            @composable
            def d(title: str):
                text(title)
        """)
        assert report.findings == []

    def test_each_pair_reported_once(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                v = remember(lambda: mutable_state_of(0))
                b(v)

            @composable
            def a2():
                w = remember(lambda: mutable_state_of(1))
                b(w)

            @composable
            def b(v: State[int]):
                c(v)

            @composable
            def c(v: State[int]):
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]
        assert report.findings[0].origin.variable == "v"

    def test_deterministic_across_runs(self, tmp_path):
        first = _scan(tmp_path, FOUR_LAYERS)
        second = _scan(tmp_path)
        assert first.model_dump() == second.model_dump()


class TestOrigins:
    def test_collected_stream_origin(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def screen(vm):
                ui_state = vm.ui_state.collect_as_state()
                body(ui_state)

            @composable
            def body(state: State[str]):
                section(state)

            @composable
            def section(state: State[str]):
                title(state)

            @composable
            def title(state: State[str]):
                text(state.value)
        """)
        assert _flagged(report) == [("body", "state"), ("section", "state")]
        origin = report.findings[0].origin
        assert (origin.variable, origin.function, origin.kind) == (
            "ui_state", "screen", "collected-from-stream",
        )

    def test_origin_through_outer_parameter(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def root():
                count = remember(lambda: mutable_state_of(0))
                outer(count)

            @composable
            def outer(count: State[int]):
                text(str(count.value))
                local = count
                b(local)

            @composable
            def b(v: State[int]):
                c(v)

            @composable
            def c(v: State[int]):
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]
        origin = report.findings[0].origin
        assert (origin.variable, origin.function) == ("count", "root")

    def test_inline_creation_has_no_origin(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def a():
                b(remember(lambda: mutable_state_of(0)))

            @composable
            def b(v: State[int]):
                c(v)

            @composable
            def c(v: State[int]):
                d(v)

            @composable
            def d(v: State[int]):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]
        assert report.findings[0].origin is None
        assert "originated from" not in report.findings[0].message

    def test_remember_of_named_factory_is_a_creation(self, tmp_path):
        report = _scan(tmp_path, """
            def make_count():
                return mutable_state_of(0)

            @composable
            def a():
                v = remember(make_count)
                b(v)

            @composable
            def b(v):
                c(v)

            @composable
            def c(v):
                d(v)

            @composable
            def d(v):
                text(str(v.value))
        """)
        assert _flagged(report) == [("b", "v"), ("c", "v")]
        origin = report.findings[0].origin
        assert (origin.variable, origin.function, origin.kind) == ("v", "a", "direct-creation")

    def test_state_hook_derived_values(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def T1():
                den, set_den = use_state(0)
                T2(den)

            @composable
            def T2(test):
                T3(test)

            @composable
            def T3(test):
                T4(test)

            @composable
            def T4(test):
                text(str(test))
        """)
        assert _flagged(report) == [("T2", "test"), ("T3", "test")]
        first = report.findings[0]
        assert first.reactive_kind == "derived"
        assert first.message.startswith(
            "Reactive state or state-derived parameter 'test' in function 'T2' "
            "is passed through without being used (originated from variable 'den' "
            "in function 'T1')."
        )

    def test_plain_values_from_plain_sources_not_tracked(self, tmp_path):
        report = _scan(tmp_path, """
            @composable
            def T1():
                den = compute()
                T2(den)

            @composable
            def T2(test):
                T3(test)

            @composable
            def T3(test):
                T4(test)

            @composable
            def T4(test):
                text(str(test))

            def compute():
                return 1
        """)
        assert report.findings == []


class TestOverloadsAndModules:
    def test_same_name_in_different_modules(self, tmp_path):
        make_py_file(tmp_path, "text_rows.py", IMPORTS + textwrap.dedent("""
            @composable
            def row(v: State[str]):
                cell(v)

            @composable
            def cell(v: State[str]):
                text(v.value)
        """))
        make_py_file(tmp_path, "num_rows.py", IMPORTS + textwrap.dedent("""
            @composable
            def row(v: State[int]):
                cell(v)

            @composable
            def cell(v: State[int]):
                text(str(v.value))
        """))
        make_py_file(tmp_path, "screen.py", IMPORTS + textwrap.dedent("""
            import num_rows
            import text_rows

            @composable
            def screen():
                count = remember(lambda: mutable_state_of(0))
                name = remember(lambda: mutable_state_of("x"))
                numbers(count)
                names(name)

            @composable
            def numbers(v: State[int]):
                num_rows.row(v)

            @composable
            def names(v: State[str]):
                text_rows.row(v)
        """))
        report = _scan(tmp_path)
        flagged = [(f.file, f.function) for f in report.findings]
        assert ("num_rows.py", "row") in flagged
        assert ("text_rows.py", "row") in flagged
        assert ("screen.py", "numbers") in flagged
        assert ("screen.py", "names") in flagged
        assert len(flagged) == 4


class TestErrorIsolation:
    def test_classification_failure_is_recorded(self, tmp_path, monkeypatch):
        real_classify = ConsumptionAnalyzer.classify

        def flaky(self, node, param_name):
            if node.name == "layer_b":
                raise RuntimeError("boom")
            return real_classify(self, node, param_name)

        monkeypatch.setattr(ConsumptionAnalyzer, "classify", flaky)
        report = _scan(tmp_path, FOUR_LAYERS)
        assert report.findings == []
        assert len(report.errors) == 1
        assert report.errors[0].function == "layer_b"
        assert "boom" in report.errors[0].message

    def test_call_graph_failure_is_recorded(self, tmp_path, monkeypatch):
        real_collect = call_graph._collect_call_sites

        def flaky(node, *args):
            if node.name == "layer_b":
                raise RuntimeError("graph boom")
            return real_collect(node, *args)

        monkeypatch.setattr(call_graph, "_collect_call_sites", flaky)
        report = _scan(tmp_path, FOUR_LAYERS)
        assert report.findings == []
        assert [e.function for e in report.errors] == ["layer_b"]
        assert "graph boom" in report.errors[0].message

    def test_binding_scan_failure_is_recorded(self, tmp_path, monkeypatch):
        real_bindings = chains.collect_local_bindings

        def flaky(ctx, node):
            if node.name == "screen":
                raise RuntimeError("bindings boom")
            return real_bindings(ctx, node)

        monkeypatch.setattr(chains, "collect_local_bindings", flaky)
        report = _scan(tmp_path, FOUR_LAYERS)
        assert _flagged(report) == [("layer_a", "state"), ("layer_b", "state")]
        assert [e.function for e in report.errors] == ["screen"]
        assert "bindings boom" in report.errors[0].message

    def test_counts(self, tmp_path):
        report = _scan(tmp_path, FOUR_LAYERS)
        assert report.files_scanned == 1
        assert report.ui_functions == 4
        assert report.chains_examined == 1
