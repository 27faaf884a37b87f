"""Source-order walk over a UI-building function's scope.

The scope of a UI-building function is its body, including nested closures
and local helper functions. Every visited node is tagged with:

  ui_scope  : True while inside render-time code (the body itself, nested
              defs carrying the UI marker, lambdas passed straight to a
              UI-building call). False inside ordinary callbacks/helpers.
  shadowed  : names rebound by an enclosing nested closure or comprehension,
              so references to them do not refer to the outer parameter.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Callable

_FuncDef = (ast.FunctionDef, ast.AsyncFunctionDef)
_Comprehensions = (ast.ListComp, ast.SetComp, ast.GeneratorExp, ast.DictComp)


@dataclass(frozen=True)
class ScopedNode:
    node: ast.AST
    parent: ast.AST | None
    ui_scope: bool
    shadowed: frozenset[str]


def walk_scope(
    func: ast.FunctionDef | ast.AsyncFunctionDef,
    is_ui_call: Callable[[ast.Call], bool],
    is_ui_def: Callable[[ast.FunctionDef | ast.AsyncFunctionDef], bool],
) -> list[ScopedNode]:
    """Pre-order, source-ordered list of every node in `func`'s body."""
    result: list[ScopedNode] = []
    # (node, parent, ui_scope, shadowed, argument of a UI-building call)
    stack: list[tuple[ast.AST, ast.AST | None, bool, frozenset[str], bool]] = [
        (stmt, func, True, frozenset(), False) for stmt in reversed(func.body)
    ]

    while stack:
        node, parent, ui_scope, shadowed, feeds_ui = stack.pop()
        result.append(ScopedNode(node, parent, ui_scope, shadowed))

        children: list[tuple[ast.AST, bool, frozenset[str], bool]] = []

        if isinstance(node, _FuncDef):
            # Decorators and defaults evaluate in the enclosing scope
            for dec in node.decorator_list:
                children.append((dec, ui_scope, shadowed, False))
            for default in _defaults(node.args):
                children.append((default, ui_scope, shadowed, False))
            inner_ui = ui_scope and is_ui_def(node)
            inner_shadow = shadowed | local_names(node)
            for stmt in node.body:
                children.append((stmt, inner_ui, inner_shadow, False))

        elif isinstance(node, ast.Lambda):
            for default in _defaults(node.args):
                children.append((default, ui_scope, shadowed, False))
            children.append((node.body, ui_scope and feeds_ui, shadowed | _arg_names(node.args), False))

        elif isinstance(node, ast.Call):
            ui_call = ui_scope and is_ui_call(node)
            for child in ast.iter_child_nodes(node):
                children.append((child, ui_scope, shadowed, ui_call and child is not node.func))

        elif isinstance(node, ast.keyword):
            children.append((node.value, ui_scope, shadowed, feeds_ui))

        elif isinstance(node, _Comprehensions):
            targets = frozenset(
                n.id
                for gen in node.generators
                for n in ast.walk(gen.target)
                if isinstance(n, ast.Name)
            )
            for child in ast.iter_child_nodes(node):
                children.append((child, ui_scope, shadowed | targets, False))

        else:
            for child in ast.iter_child_nodes(node):
                children.append((child, ui_scope, shadowed, False))

        for child, child_ui, child_shadow, child_feeds in reversed(children):
            stack.append((child, node, child_ui, child_shadow, child_feeds))

    return result


def local_names(func: ast.FunctionDef | ast.AsyncFunctionDef) -> set[str]:
    """Parameters and variables bound in `func`'s own scope.

    Names bound only inside nested defs, lambdas and comprehensions are
    left to the `shadowed` sets of walk_scope. Nested def names are
    excluded: calling a local helper is a resolved (non-UI) call, not
    dynamic dispatch.
    """
    names = set(_arg_names(func.args))
    stack: list[ast.AST] = list(func.body)
    while stack:
        node = stack.pop()
        if isinstance(node, (*_FuncDef, ast.Lambda, ast.ClassDef)):
            continue
        if isinstance(node, _Comprehensions):
            # Walrus targets inside a comprehension bind in the enclosing scope
            names.update(
                n.target.id for n in ast.walk(node)
                if isinstance(n, ast.NamedExpr) and isinstance(n.target, ast.Name)
            )
            continue
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Store):
            names.add(node.id)
        elif isinstance(node, ast.ExceptHandler) and node.name:
            names.add(node.name)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                names.add((alias.asname or alias.name).split(".")[0])
        stack.extend(ast.iter_child_nodes(node))
    return names


# ── Helpers ───────────────────────────────────────────────────────────────


def _arg_names(args: ast.arguments) -> frozenset[str]:
    names = [a.arg for a in args.posonlyargs + args.args + args.kwonlyargs]
    if args.vararg:
        names.append(args.vararg.arg)
    if args.kwarg:
        names.append(args.kwarg.arg)
    return frozenset(names)


def _defaults(args: ast.arguments) -> list[ast.expr]:
    return list(args.defaults) + [d for d in args.kw_defaults if d is not None]
