"""Central extensibility point: the reactive container vocabulary of the UI framework.

Maps framework type names, creation functions and collection operations to
ReactiveKind. New container types = new registry entries (or a config file),
no analyzer logic changes.
"""

from __future__ import annotations

import ast
from enum import Enum
from typing import TYPE_CHECKING, Callable

from ui_smell_analyzer.ir.nodes import TypeRef

if TYPE_CHECKING:
    from ui_smell_analyzer.config import AnalyzerConfig

# Bumped whenever the meaning of a registry entry changes
REGISTRY_VERSION = 1

# Named factory -> (returned expression, resolver for the factory's module)
FactoryLookup = Callable[[ast.expr], "tuple[ast.expr, Callable[[ast.expr], str | None]] | None"]


class ReactiveKind(str, Enum):
    VALUE_HOLDER = "value_holder"                  # State[T]
    MUTABLE_VALUE_HOLDER = "mutable_value_holder"  # MutableState[T]
    STREAM = "stream"                              # Flow[T]
    HOT_STREAM = "hot_stream"                      # StateFlow[T]
    MUTABLE_HOT_STREAM = "mutable_hot_stream"      # MutableStateFlow[T]
    DERIVED = "derived"                            # plain value read out of reactive state


# Subtype relation between kinds: child -> parent
KIND_PARENTS: dict[ReactiveKind, ReactiveKind] = {
    ReactiveKind.MUTABLE_VALUE_HOLDER: ReactiveKind.VALUE_HOLDER,
    ReactiveKind.MUTABLE_HOT_STREAM: ReactiveKind.HOT_STREAM,
    ReactiveKind.HOT_STREAM: ReactiveKind.STREAM,
}

# ── Default vocabulary ─────────────────────────────────────────────────────

DEFAULT_FRAMEWORK_MODULES = ["compose"]

DEFAULT_UI_MARKERS = ["composable"]

DEFAULT_REACTIVE_TYPES: dict[str, ReactiveKind] = {
    "State": ReactiveKind.VALUE_HOLDER,
    "DerivedState": ReactiveKind.VALUE_HOLDER,
    "LiveData": ReactiveKind.VALUE_HOLDER,
    "MutableState": ReactiveKind.MUTABLE_VALUE_HOLDER,
    "MutableLiveData": ReactiveKind.MUTABLE_VALUE_HOLDER,
    "Flow": ReactiveKind.STREAM,
    "StateFlow": ReactiveKind.HOT_STREAM,
    "SharedFlow": ReactiveKind.HOT_STREAM,
    "MutableStateFlow": ReactiveKind.MUTABLE_HOT_STREAM,
    "MutableSharedFlow": ReactiveKind.MUTABLE_HOT_STREAM,
}

DEFAULT_CREATION_FUNCTIONS: dict[str, ReactiveKind] = {
    "mutable_state_of": ReactiveKind.MUTABLE_VALUE_HOLDER,
    "derived_state_of": ReactiveKind.VALUE_HOLDER,
    "produce_state": ReactiveKind.VALUE_HOLDER,
    "mutable_state_flow": ReactiveKind.MUTABLE_HOT_STREAM,
    "MutableStateFlow": ReactiveKind.MUTABLE_HOT_STREAM,
    "flow_of": ReactiveKind.STREAM,
}

DEFAULT_REMEMBER_WRAPPERS = ["remember", "remember_saveable"]

DEFAULT_COLLECTION_OPERATIONS = [
    "collect_as_state",
    "collect_as_state_with_lifecycle",
    "observe_as_state",
]

DEFAULT_STATE_HOOKS = ["use_state"]

_OPTIONAL_WRAPPERS = {"Optional", "Annotated"}


def is_assignable(kind: ReactiveKind, target: ReactiveKind) -> bool:
    """True if a value of `kind` can be used where `target` is expected."""
    current: ReactiveKind | None = kind
    while current is not None:
        if current is target:
            return True
        current = KIND_PARENTS.get(current)
    return False


class ReactiveTypeClassifier:
    """Classifies resolved types and call expressions against the registry."""

    def __init__(self, config: AnalyzerConfig) -> None:
        self._config = config
        self._framework_modules = tuple(config.framework_modules)
        self._markers = frozenset(config.ui_markers)
        self._types = dict(config.reactive_types)
        self._creations = dict(config.creation_functions)
        self._remember = frozenset(config.remember_wrappers)
        self._collections = frozenset(config.collection_operations)
        self._hooks = frozenset(config.state_hooks)

    def is_framework_name(self, qualname: str | None) -> bool:
        if not qualname or "." not in qualname:
            return False
        module = qualname.rsplit(".", 1)[0]
        return any(
            module == m or module.startswith(m + ".")
            for m in self._framework_modules
        )

    def is_ui_marker(self, qualname: str | None, written: str) -> bool:
        """Decorator check. Accepts the marker by its written name when unresolved."""
        if qualname:
            return qualname.rsplit(".", 1)[-1] in self._markers
        return written in self._markers

    def classify(self, type_ref: TypeRef | None) -> ReactiveKind | None:
        """Map a resolved type to its reactive kind. Unresolved types are never reactive."""
        if type_ref is None or type_ref.qualname is None:
            return None
        if not self.is_framework_name(type_ref.qualname):
            return None
        return self._types.get(type_ref.qualname.rsplit(".", 1)[-1])

    def creation_kind(
        self,
        call: ast.expr,
        resolve: Callable[[ast.expr], str | None],
        factory_return: FactoryLookup | None = None,
    ) -> ReactiveKind | None:
        """Kind created by a creation call, looking through remember(lambda: ...).

        `factory_return` maps a named factory passed to remember(make_state)
        to its returned expression and a resolver for the factory's module.
        Factories are followed one level deep.
        """
        if not isinstance(call, ast.Call):
            return None
        qualname = resolve(call.func)
        if not self.is_framework_name(qualname):
            return None
        short = qualname.rsplit(".", 1)[-1]
        if short in self._creations:
            return self._creations[short]
        if short in self._remember:
            factory = _first_argument(call)
            if isinstance(factory, ast.Lambda):
                return self.creation_kind(factory.body, resolve)
            if factory_return is not None and isinstance(factory, (ast.Name, ast.Attribute)):
                produced = factory_return(factory)
                if produced is not None:
                    body, body_resolve = produced
                    return self.creation_kind(body, body_resolve)
        return None

    def is_collection_operation(
        self,
        call: ast.expr,
        receiver_kind: ReactiveKind | None = None,
    ) -> bool:
        """stream.collect_as_state(...) style call.

        A receiver of known kind must be a stream; an unknown receiver is
        accepted on the method name alone.
        """
        if not isinstance(call, ast.Call) or not isinstance(call.func, ast.Attribute):
            return False
        if call.func.attr not in self._collections:
            return False
        if receiver_kind is None:
            return True
        return is_assignable(receiver_kind, ReactiveKind.STREAM)

    def is_state_hook(
        self,
        call: ast.expr,
        resolve: Callable[[ast.expr], str | None],
    ) -> bool:
        if not isinstance(call, ast.Call):
            return False
        qualname = resolve(call.func)
        return self.is_framework_name(qualname) and qualname.rsplit(".", 1)[-1] in self._hooks


def unwrap_optional(ann: ast.expr) -> ast.expr:
    """Optional[X], Annotated[X, ...] and X | None all classify as X."""
    while True:
        if isinstance(ann, ast.BinOp) and isinstance(ann.op, ast.BitOr):
            if _is_none(ann.right):
                ann = ann.left
                continue
            if _is_none(ann.left):
                ann = ann.right
                continue
            return ann
        if isinstance(ann, ast.Subscript):
            base = ann.value
            name = base.attr if isinstance(base, ast.Attribute) else getattr(base, "id", "")
            if name in _OPTIONAL_WRAPPERS:
                inner = ann.slice
                if isinstance(inner, ast.Tuple) and inner.elts:
                    inner = inner.elts[0]
                ann = inner
                continue
        return ann


def _is_none(node: ast.expr) -> bool:
    return isinstance(node, ast.Constant) and node.value is None


def _first_argument(call: ast.Call) -> ast.expr | None:
    if call.args:
        return call.args[0]
    if len(call.keywords) == 1:
        return call.keywords[0].value
    return None
