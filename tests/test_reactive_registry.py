"""Tests for the reactive container vocabulary and classifier."""

from __future__ import annotations

import ast

import pytest

from ui_smell_analyzer.config import AnalyzerConfig
from ui_smell_analyzer.ir.nodes import TypeRef
from ui_smell_analyzer.ir.reactive_registry import (
    ReactiveKind,
    ReactiveTypeClassifier,
    is_assignable,
    unwrap_optional,
)


@pytest.fixture
def classifier() -> ReactiveTypeClassifier:
    return ReactiveTypeClassifier(AnalyzerConfig())


def _call(code: str) -> ast.Call:
    return ast.parse(code, mode="eval").body


def _compose_resolver(expr: ast.expr) -> str | None:
    """Pretend every bare name was imported from the framework module."""
    if isinstance(expr, ast.Name):
        return f"compose.{expr.id}"
    return None


class TestSubtypes:
    def test_mutable_holder_is_a_holder(self):
        assert is_assignable(ReactiveKind.MUTABLE_VALUE_HOLDER, ReactiveKind.VALUE_HOLDER)
        assert not is_assignable(ReactiveKind.VALUE_HOLDER, ReactiveKind.MUTABLE_VALUE_HOLDER)

    def test_hot_stream_chain(self):
        assert is_assignable(ReactiveKind.MUTABLE_HOT_STREAM, ReactiveKind.HOT_STREAM)
        assert is_assignable(ReactiveKind.MUTABLE_HOT_STREAM, ReactiveKind.STREAM)
        assert is_assignable(ReactiveKind.HOT_STREAM, ReactiveKind.STREAM)
        assert not is_assignable(ReactiveKind.STREAM, ReactiveKind.HOT_STREAM)

    def test_holders_are_not_streams(self):
        assert not is_assignable(ReactiveKind.VALUE_HOLDER, ReactiveKind.STREAM)


class TestClassify:
    def test_framework_types(self, classifier):
        assert classifier.classify(TypeRef("compose.State", "State", "State[int]")) is ReactiveKind.VALUE_HOLDER
        assert classifier.classify(
            TypeRef("compose.runtime.MutableState", "MutableState", "MutableState[int]")
        ) is ReactiveKind.MUTABLE_VALUE_HOLDER
        assert classifier.classify(
            TypeRef("compose.MutableStateFlow", "MutableStateFlow", "MutableStateFlow[int]")
        ) is ReactiveKind.MUTABLE_HOT_STREAM

    def test_same_name_outside_framework_is_not_reactive(self, classifier):
        assert classifier.classify(TypeRef("myapp.State", "State", "State")) is None
        assert classifier.classify(TypeRef("composer.State", "State", "State")) is None

    def test_unresolved_is_not_reactive(self, classifier):
        assert classifier.classify(None) is None
        assert classifier.classify(TypeRef(None, "State", "State[int]")) is None

    def test_unwrap_optional_forms(self):
        for code in ("Optional[State[int]]", "State[int] | None", "None | State[int]",
                     "Annotated[State[int], 'x']"):
            inner = unwrap_optional(ast.parse(code, mode="eval").body)
            assert ast.unparse(inner) == "State[int]"


class TestCallRecognition:
    def test_direct_creation(self, classifier):
        call = _call("mutable_state_of(0)")
        assert classifier.creation_kind(call, _compose_resolver) is ReactiveKind.MUTABLE_VALUE_HOLDER

    def test_creation_inside_remember(self, classifier):
        call = _call("remember(lambda: derived_state_of(lambda: 1))")
        assert classifier.creation_kind(call, _compose_resolver) is ReactiveKind.VALUE_HOLDER

    def test_remember_of_plain_value_is_not_creation(self, classifier):
        call = _call("remember(lambda: 42)")
        assert classifier.creation_kind(call, _compose_resolver) is None

    def test_remember_of_named_factory(self, classifier):
        call = _call("remember(make_state)")
        body = _call("mutable_state_of(0)")

        def factory_return(expr):
            return (body, _compose_resolver) if expr.id == "make_state" else None

        assert classifier.creation_kind(call, _compose_resolver) is None
        assert classifier.creation_kind(
            call, _compose_resolver, factory_return,
        ) is ReactiveKind.MUTABLE_VALUE_HOLDER

    def test_remember_of_factory_returning_plain_value(self, classifier):
        call = _call("remember(make_value)")
        assert classifier.creation_kind(
            call, _compose_resolver, lambda expr: (_call("compute(1)"), lambda e: "app.compute"),
        ) is None

    def test_non_framework_creation_name(self, classifier):
        call = _call("mutable_state_of(0)")
        assert classifier.creation_kind(call, lambda e: "mylib.mutable_state_of") is None

    def test_collection_operation(self, classifier):
        call = _call("vm.flow.collect_as_state()")
        assert classifier.is_collection_operation(call)
        assert classifier.is_collection_operation(call, ReactiveKind.MUTABLE_HOT_STREAM)
        assert not classifier.is_collection_operation(call, ReactiveKind.VALUE_HOLDER)
        assert not classifier.is_collection_operation(_call("vm.flow.collect()"))

    def test_state_hook(self, classifier):
        assert classifier.is_state_hook(_call("use_state(0)"), _compose_resolver)
        assert not classifier.is_state_hook(_call("use_state(0)"), lambda e: "react.use_state")

    def test_ui_marker(self, classifier):
        assert classifier.is_ui_marker("compose.composable", "composable")
        assert classifier.is_ui_marker(None, "composable")
        assert not classifier.is_ui_marker("functools.cache", "cache")


def test_configured_vocabulary_extends_defaults():
    config = AnalyzerConfig(
        framework_modules=["compose", "reactivex"],
        reactive_types={"Observable": ReactiveKind.STREAM},
    )
    classifier = ReactiveTypeClassifier(config)
    assert classifier.classify(TypeRef("reactivex.Observable", "Observable", "Observable")) is ReactiveKind.STREAM
