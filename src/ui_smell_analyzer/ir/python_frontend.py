"""AST frontend: turns Python source files into ModuleInfo/FunctionDecl facts.

Passes per file:
  1. Imports: local alias map and star imports (relative imports resolved)
  2. Top-level names: functions, classes, assignments
  3. Declarations: module functions and class methods, UI marker detection,
     parameters with resolved annotations
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path

from ui_smell_analyzer.ir.nodes import FunctionDecl, FunctionKey, ParamDecl, TypeRef
from ui_smell_analyzer.ir.program import ModuleInfo, Program
from ui_smell_analyzer.ir.reactive_registry import ReactiveTypeClassifier

log = logging.getLogger(__name__)

_FuncDef = (ast.FunctionDef, ast.AsyncFunctionDef)


def module_name_for(rel: Path) -> tuple[str, bool]:
    """'app/screens/home.py' -> ('app.screens.home', False); packages map to their dir."""
    parts = list(rel.with_suffix("").parts)
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    if parts and parts[0] == "src":
        parts = parts[1:]
    return ".".join(parts) or "__main__", is_package


def analyze_file(
    fpath: Path,
    workspace: Path,
    classifier: ReactiveTypeClassifier,
    program: Program,
) -> ModuleInfo | None:
    """Parse one file and register its module facts in `program`.

    Returns the ModuleInfo, or None when the file cannot be parsed.
    """
    rel = fpath.relative_to(workspace)
    try:
        source = fpath.read_text(errors="replace")
        tree = ast.parse(source, filename=str(rel))
    except SyntaxError:
        log.debug("Skipping %s: syntax error", rel, exc_info=True)
        return None

    name, is_package = module_name_for(rel)
    module = ModuleInfo(
        name=name,
        file=str(rel),
        tree=tree,
        source=source,
        is_package=is_package,
    )

    # Pass 1: Imports
    _pass1_imports(tree, module)

    # Pass 2: Top-level names
    module.top_level = _pass2_top_level(tree)

    # Registering first lets annotations resolve against this module
    program.add_module(module)

    # Pass 3: Declarations
    module.functions = _pass3_declarations(tree, module, classifier, program)
    program.add_module(module)
    return module


def _pass1_imports(tree: ast.Module, module: ModuleInfo) -> None:
    """Collect import aliases (local name -> dotted target) and star imports."""
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if alias.asname:
                    module.aliases[alias.asname] = alias.name
                else:
                    root = alias.name.split(".")[0]
                    module.aliases[root] = root

        elif isinstance(node, ast.ImportFrom):
            base = _absolute_module(module, node.module, node.level)
            if base is None:
                continue
            for alias in node.names:
                if alias.name == "*":
                    module.star_imports.append(base)
                    continue
                local = alias.asname or alias.name
                module.aliases[local] = f"{base}.{alias.name}" if base else alias.name


def _absolute_module(module: ModuleInfo, target: str | None, level: int) -> str | None:
    if level == 0:
        return target
    package = module.name.split(".") if module.is_package else module.name.split(".")[:-1]
    if level > 1:
        if level - 1 > len(package):
            return None
        package = package[: len(package) - (level - 1)]
    parts = package + ([target] if target else [])
    return ".".join(p for p in parts if p)


def _pass2_top_level(tree: ast.Module) -> set[str]:
    names: set[str] = set()
    for stmt in tree.body:
        if isinstance(stmt, (*_FuncDef, ast.ClassDef)):
            names.add(stmt.name)
        elif isinstance(stmt, ast.Assign):
            for target in stmt.targets:
                if isinstance(target, ast.Name):
                    names.add(target.id)
        elif isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
            names.add(stmt.target.id)
    return names


def _pass3_declarations(
    tree: ast.Module,
    module: ModuleInfo,
    classifier: ReactiveTypeClassifier,
    program: Program,
) -> list[FunctionDecl]:
    decls: list[FunctionDecl] = []
    for stmt in tree.body:
        if isinstance(stmt, _FuncDef):
            decl = _make_decl(stmt, module, classifier, program, class_name=None)
            if decl:
                decls.append(decl)
        elif isinstance(stmt, ast.ClassDef):
            for item in stmt.body:
                if isinstance(item, _FuncDef):
                    decl = _make_decl(item, module, classifier, program, class_name=stmt.name)
                    if decl:
                        decls.append(decl)
    return decls


def _make_decl(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    module: ModuleInfo,
    classifier: ReactiveTypeClassifier,
    program: Program,
    class_name: str | None,
) -> FunctionDecl | None:
    decorator_names = [_decorator_name(dec) for dec in node.decorator_list]
    # typing.overload stubs carry no body worth analyzing
    if any(written == "overload" for _, written in decorator_names):
        return None

    is_static = any(written == "staticmethod" for _, written in decorator_names)
    is_ui = False
    for dec, written in decorator_names:
        qualname = program.resolve_name(module.name, dec) if dec is not None else None
        if classifier.is_ui_marker(qualname, written):
            is_ui = True
            break

    params = _collect_params(node, module, program)
    if class_name and not is_static and params and params[0].name in ("self", "cls"):
        params = params[1:]

    qualname = f"{module.name}.{class_name}.{node.name}" if class_name else f"{module.name}.{node.name}"
    signature = tuple(p.annotation.text if p.annotation else "" for p in params)
    return FunctionDecl(
        key=FunctionKey(qualname=qualname, signature=signature),
        name=node.name,
        module=module.name,
        file=module.file,
        line=node.lineno,
        node=node,
        params=params,
        is_ui_building=is_ui,
        class_name=class_name,
        is_static=is_static,
    )


def _decorator_name(dec: ast.expr) -> tuple[ast.expr | None, str]:
    """Return (callee expression, simple written name) for a decorator."""
    target = dec.func if isinstance(dec, ast.Call) else dec
    if isinstance(target, ast.Name):
        return target, target.id
    if isinstance(target, ast.Attribute):
        return target, target.attr
    return None, ""


def _collect_params(
    node: ast.FunctionDef | ast.AsyncFunctionDef,
    module: ModuleInfo,
    program: Program,
) -> list[ParamDecl]:
    args = node.args
    params: list[ParamDecl] = []
    positional = args.posonlyargs + args.args
    n_defaults = len(args.defaults)
    for i, arg in enumerate(positional):
        params.append(_param(
            arg, module, program, "positional",
            has_default=i >= len(positional) - n_defaults,
        ))
    if args.vararg:
        params.append(_param(args.vararg, module, program, "var_positional"))
    for arg, default in zip(args.kwonlyargs, args.kw_defaults):
        params.append(_param(arg, module, program, "keyword_only", has_default=default is not None))
    if args.kwarg:
        params.append(_param(args.kwarg, module, program, "var_keyword"))
    return params


def _param(
    arg: ast.arg,
    module: ModuleInfo,
    program: Program,
    kind: str,
    has_default: bool = False,
) -> ParamDecl:
    annotation: TypeRef | None = program.resolve_annotation(module.name, arg.annotation)
    return ParamDecl(
        name=arg.arg,
        annotation=annotation,
        line=arg.lineno,
        col=arg.col_offset,
        kind=kind,
        has_default=has_default,
    )
