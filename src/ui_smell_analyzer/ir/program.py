"""Program: read-only view over parsed modules with symbol and call resolution."""

from __future__ import annotations

import ast
from dataclasses import dataclass, field

from ui_smell_analyzer.ir.nodes import (
    CallTarget,
    External,
    FunctionDecl,
    FunctionKey,
    Resolved,
    TypeRef,
    Unknown,
)
from ui_smell_analyzer.ir.reactive_registry import unwrap_optional


@dataclass
class ModuleInfo:
    name: str                                # dotted module name: "app.screens"
    file: str                                # path relative to the workspace
    tree: ast.Module = field(repr=False)
    source: str = field(default="", repr=False)
    is_package: bool = False
    aliases: dict[str, str] = field(default_factory=dict)   # local name -> dotted target
    star_imports: list[str] = field(default_factory=list)   # modules imported with *
    top_level: set[str] = field(default_factory=set)        # names defined at module level
    functions: list[FunctionDecl] = field(default_factory=list)


class Program:
    """All scanned modules plus the declaration index used for resolution."""

    def __init__(self) -> None:
        self._modules: dict[str, ModuleInfo] = {}
        self._decls: dict[FunctionKey, FunctionDecl] = {}
        # "module.func" / "module.Class.method" -> key (later definition wins)
        self._by_qualname: dict[str, FunctionKey] = {}

    def add_module(self, module: ModuleInfo) -> None:
        self._modules[module.name] = module
        for decl in module.functions:
            self._decls[decl.key] = decl
            self._by_qualname[decl.key.qualname] = decl.key

    def module(self, name: str) -> ModuleInfo | None:
        return self._modules.get(name)

    def modules(self) -> list[ModuleInfo]:
        return sorted(self._modules.values(), key=lambda m: m.file)

    def get(self, key: FunctionKey) -> FunctionDecl | None:
        return self._decls.get(key)

    def functions(self) -> list[FunctionDecl]:
        """All declarations in file, then source, order."""
        return [fn for mod in self.modules() for fn in mod.functions]

    def ui_functions(self) -> list[FunctionDecl]:
        return [fn for fn in self.functions() if fn.is_ui_building]

    def __len__(self) -> int:
        return len(self._decls)

    # ── Resolution ──────────────────────────────────────────────────────

    def resolve_name(self, module_name: str, expr: ast.expr) -> str | None:
        """Resolve a Name/Attribute expression to a dotted qualified name."""
        module = self._modules.get(module_name)
        if module is None:
            return None
        if isinstance(expr, ast.Name):
            return self._resolve_global(module, expr.id, set())
        if isinstance(expr, ast.Attribute):
            base = self.resolve_name(module_name, expr.value)
            if base is None:
                return None
            return f"{base}.{expr.attr}"
        return None

    def resolve_annotation(self, module_name: str, ann: ast.expr | None) -> TypeRef | None:
        """Resolve a parameter/variable annotation to a TypeRef."""
        if ann is None:
            return None
        text = ast.unparse(ann)
        if isinstance(ann, ast.Constant) and isinstance(ann.value, str):
            try:
                ann = ast.parse(ann.value, mode="eval").body
            except SyntaxError:
                return TypeRef(qualname=None, name=ann.value, text=text)
        base = unwrap_optional(ann)
        if isinstance(base, ast.Subscript):
            base = base.value
        if isinstance(base, ast.Name):
            name = base.id
        elif isinstance(base, ast.Attribute):
            name = base.attr
        else:
            return TypeRef(qualname=None, name="", text=text)
        return TypeRef(
            qualname=self.resolve_name(module_name, base),
            name=name,
            text=text,
        )

    def resolve_call(
        self,
        decl: FunctionDecl,
        call: ast.Call,
        local_names: set[str],
    ) -> CallTarget:
        """Resolve the callee of `call` made from inside `decl`.

        local_names holds names bound inside the caller (parameters and
        assigned variables); calling through one of them is dynamic dispatch.
        """
        func = call.func
        if isinstance(func, ast.Name):
            if func.id in local_names:
                return Unknown(f"call through local '{func.id}'")
            qualname = self.resolve_name(decl.module, func)
            return self._target_for(qualname or func.id)

        if isinstance(func, ast.Attribute):
            root = _attribute_root(func)
            if root is None:
                return Unknown(f"method on computed receiver '.{func.attr}'")
            if root in ("self", "cls") and decl.class_name and isinstance(func.value, ast.Name):
                return self._target_for(f"{decl.module}.{decl.class_name}.{func.attr}")
            if root in local_names:
                return Unknown(f"method on local '{root}'")
            qualname = self.resolve_name(decl.module, func)
            if qualname is None:
                return External(func.attr)
            target = self._target_for(qualname)
            if isinstance(target, Resolved):
                callee = self._decls[target.key]
                # Class.method(...) only binds like a plain call for static methods
                if callee.class_name and not callee.is_static:
                    return External(qualname)
            return target

        return Unknown(f"computed callee {type(func).__name__}")

    def factory_return(self, module_name: str, expr: ast.expr) -> tuple[str, ast.expr] | None:
        """(defining module, returned expression) of a zero-argument factory.

        Only module functions whose body has exactly one top-level
        `return <value>` qualify.
        """
        qualname = self.resolve_name(module_name, expr)
        key = self._key_for(qualname) if qualname else None
        if key is None:
            return None
        decl = self._decls[key]
        if decl.params or decl.class_name:
            return None
        returns = [
            stmt.value for stmt in decl.node.body
            if isinstance(stmt, ast.Return) and stmt.value is not None
        ]
        if len(returns) != 1:
            return None
        return decl.module, returns[0]

    # ── Helpers ─────────────────────────────────────────────────────────

    def _key_for(self, qualname: str) -> FunctionKey | None:
        key = self._by_qualname.get(qualname)
        if key is None:
            reexported = self._follow_reexport(qualname)
            if reexported is not None:
                key = self._by_qualname.get(reexported)
        return key

    def _target_for(self, qualname: str) -> CallTarget:
        key = self._key_for(qualname)
        if key is None:
            return External(qualname)
        if self._decls[key].is_ui_building:
            return Resolved(key)
        return External(qualname)

    def _follow_reexport(self, qualname: str) -> str | None:
        """Map pkg.name re-exported by pkg/__init__.py to the defining submodule."""
        if "." not in qualname:
            return None
        module_name, name = qualname.rsplit(".", 1)
        module = self._modules.get(module_name)
        if module is None or name in module.top_level:
            return None
        found = self._resolve_global(module, name, set())
        return found if found != qualname else None

    def _resolve_global(self, module: ModuleInfo, name: str, seen: set[str]) -> str | None:
        if module.name in seen:
            return None
        seen.add(module.name)
        if name in module.top_level:
            return f"{module.name}.{name}"
        if name in module.aliases:
            return module.aliases[name]
        for star in module.star_imports:
            target = self._modules.get(star)
            if target is not None:
                found = self._resolve_global(target, name, seen)
                if found:
                    return found
            else:
                # External module imported with *: assume the name comes from it
                return f"{star}.{name}"
        return None


def _attribute_root(expr: ast.expr) -> str | None:
    while isinstance(expr, ast.Attribute):
        expr = expr.value
    if isinstance(expr, ast.Name):
        return expr.id
    return None
