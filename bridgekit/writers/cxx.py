"""Render a bridge as a ``#[cxx::bridge]`` module.

Output layout
-------------
1. The bridge module (``ffi`` by default): shared structs and enums for
   by-value types, then an ``unsafe extern "C++"`` block with one
   ``include!`` per header, a ``type`` declaration per opaque type and
   every function signature.
2. One ``pub mod`` per namespace that re-exports the bridge items living in
   it and carries constants, type aliases and the scanner's use
   statements, none of which ``cxx`` can express inside the bridge.

Example
-------
::

    from bridgekit.writers import get_writer

    writer = get_writer("cxx")
    source = writer.write(bridge)
"""

from __future__ import annotations

import re

from bridgekit.api import (
    Api,
    ApiKind,
    Bridge,
    ConstDetail,
    FunctionDetail,
    ParamDetail,
    Passing,
    TypeDetail,
    TypeRepresentation,
    UseDetail,
)
from bridgekit.ir import UseStatement
from bridgekit.namespaces import NamespaceEntries

INDENT = "    "

# Bridge identifiers are unqualified; namespaces go into attributes.
_QUALIFIER_RE = re.compile(r"\b(?:\w+::)+")
_PATH_RE = re.compile(r"^(?:\w+::)*\w+$")

RUST_KEYWORDS: set[str] = {
    "as", "box", "break", "const", "continue", "crate", "dyn", "else", "enum", "extern",
    "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod", "move",
    "mut", "pub", "ref", "return", "self", "static", "struct", "super", "trait", "true",
    "type", "unsafe", "use", "where", "while", "async", "await", "try",
}  # fmt: skip


def ident(name: str) -> str:
    """Escape Rust keywords as raw identifiers."""
    return f"r#{name}" if name in RUST_KEYWORDS else name


def unqualify(type_name: str) -> str:
    """Strip namespace qualifiers: ``UniquePtr<ns::Foo>`` -> ``UniquePtr<Foo>``."""
    return _QUALIFIER_RE.sub("", type_name)


def spell_type(type_name: str, passing: Passing, is_const: bool) -> str:
    """Spell a parameter or return type for a bridge signature."""
    name = unqualify(type_name)
    if passing is Passing.BY_REFERENCE:
        if name == "str":
            return "&str"
        return f"&{name}" if is_const else f"Pin<&mut {name}>"
    if passing is Passing.BY_POINTER:
        return f"*const {name}" if is_const else f"*mut {name}"
    if passing is Passing.UNIQUE_PTR:
        return f"UniquePtr<{name}>"
    return name


class BridgeEmitter:
    """Emits ``cxx`` source for one :class:`~bridgekit.api.Bridge`.

    :param bridge: The pruned bridge.
    :param module_name: Name of the generated bridge module.
    """

    def __init__(self, bridge: Bridge, module_name: str = "ffi") -> None:
        self.bridge = bridge
        self.module_name = module_name
        self.crate_path = f"crate::{module_name}"
        self.type_names: set[str] = {str(a.name) for a in bridge.apis if a.kind is ApiKind.TYPE}

    def write(self) -> str:
        lines: list[str] = [f"// Generated by bridgekit from module `{self.bridge.module_name}`. Do not edit."]
        lines.extend(self._bridge_module())

        # Methods are emitted inside the bridge only.
        tree = NamespaceEntries.from_apis([a for a in self.bridge.apis if not _is_method(a)])
        for path in sorted(self.bridge.use_stmts_by_mod):
            node = tree
            for segment in path:
                node = node.children.setdefault(segment, NamespaceEntries(segment))

        root_body = self._namespace_body(tree, (), reexport=False)
        if root_body:
            lines.append("")
            lines.extend(root_body)
        for name, child in tree.children.items():
            lines.append("")
            lines.extend(self._namespace_module(child, (name,), 0))
        return "\n".join(lines) + "\n"

    # -----------------------------------------------------------------
    # Bridge module
    # -----------------------------------------------------------------

    def _bridge_module(self) -> list[str]:
        shared: list[str] = []
        extern: list[str] = [f'{INDENT * 2}include!("{path}");' for path in self.bridge.include_list]

        for api in self.bridge.apis:
            if not isinstance(api.detail, TypeDetail):
                continue
            if _is_shared(api.detail):
                if shared:
                    shared.append("")
                shared.extend(self._shared_type(api, api.detail))
            else:
                if extern:
                    extern.append("")
                extern.extend(self._opaque_type(api))
        for api in self.bridge.apis:
            if isinstance(api.detail, FunctionDetail):
                if extern:
                    extern.append("")
                extern.extend(self._function(api, api.detail))

        lines = ["#[cxx::bridge]", f"pub mod {self.module_name} {{"]
        lines.extend(shared)
        if extern:
            if shared:
                lines.append("")
            lines.append(f'{INDENT}unsafe extern "C++" {{')
            lines.extend(extern)
            lines.append(f"{INDENT}}}")
        lines.append("}")
        return lines

    def _shared_type(self, api: Api, detail: TypeDetail) -> list[str]:
        lines = _namespace_attr(api, INDENT)
        name = ident(api.name.name)
        if detail.representation is TypeRepresentation.ENUM:
            lines.append(f"{INDENT}enum {name} {{")
            for value_name, value in detail.enum_values:
                if isinstance(value, int):
                    lines.append(f"{INDENT * 2}{ident(value_name)} = {value},")
                else:
                    lines.append(f"{INDENT * 2}{ident(value_name)},")
        else:
            lines.append(f"{INDENT}struct {name} {{")
            for fld in detail.fields:
                lines.append(f"{INDENT * 2}{ident(fld.name)}: {unqualify(fld.type_name)},")
        lines.append(f"{INDENT}}}")
        return lines

    def _opaque_type(self, api: Api) -> list[str]:
        lines = _namespace_attr(api, INDENT * 2)
        lines.append(f"{INDENT * 2}type {ident(api.name.name)};")
        return lines

    def _function(self, api: Api, detail: FunctionDetail) -> list[str]:
        lines = _namespace_attr(api, INDENT * 2)
        if api.cpp_name:
            lines.append(f'{INDENT * 2}#[cxx_name = "{api.cpp_name}"]')

        params: list[str] = []
        if detail.receiver is not None:
            receiver = ident(detail.receiver.name)
            params.append(f"self: &{receiver}" if detail.receiver_is_const else f"self: Pin<&mut {receiver}>")
        params.extend(_param(p) for p in detail.params)

        signature = f"fn {ident(api.name.name)}({', '.join(params)})"
        if detail.return_type is not None:
            signature = f"{signature} -> {spell_type(detail.return_type, detail.return_passing, False)}"
        prefix = "unsafe " if detail.is_unsafe else ""
        lines.append(f"{INDENT * 2}{prefix}{signature};")
        return lines

    # -----------------------------------------------------------------
    # Namespace modules
    # -----------------------------------------------------------------

    def _namespace_module(self, node: NamespaceEntries, path: tuple[str, ...], depth: int) -> list[str]:
        pad = INDENT * depth
        lines = [f"{pad}pub mod {ident(node.name)} {{"]
        lines.extend(f"{pad}{INDENT}{line}" for line in self._namespace_body(node, path))
        for name, child in node.children.items():
            lines.extend(self._namespace_module(child, (*path, name), depth + 1))
        lines.append(f"{pad}}}")
        return lines

    def _namespace_body(self, node: NamespaceEntries, path: tuple[str, ...], reexport: bool = True) -> list[str]:
        lines = [_use_line(stmt) for stmt in self.bridge.use_stmts_by_mod.get(path, [])]
        for api in node.entries:
            if api.kind in (ApiKind.TYPE, ApiKind.FUNCTION):
                if reexport:
                    lines.append(f"pub use {self.crate_path}::{ident(api.name.name)};")
            elif isinstance(api.detail, ConstDetail):
                const = _const_line(api, api.detail)
                if const is not None:
                    lines.append(const)
            elif isinstance(api.detail, UseDetail):
                lines.append(f"pub type {ident(api.name.name)} = {self._alias_target(api.detail)};")
        return lines

    def _alias_target(self, detail: UseDetail) -> str:
        target = detail.target
        if _PATH_RE.match(target) and target in self.type_names:
            return f"{self.crate_path}::{unqualify(target)}"
        return unqualify(target)


def _namespace_attr(api: Api, pad: str) -> list[str]:
    ns = api.name.namespace
    if isinstance(api.detail, FunctionDetail) and api.detail.receiver is not None:
        ns = api.detail.receiver.namespace
    if not ns:
        return []
    return [f'{pad}#[namespace = "{"::".join(ns)}"]']


def _param(p: ParamDetail) -> str:
    return f"{ident(p.name)}: {spell_type(p.type_name, p.passing, p.is_const)}"


def _is_shared(detail: TypeDetail) -> bool:
    if detail.representation is TypeRepresentation.ENUM:
        return True
    # cxx has no shared unions; they stay opaque.
    return detail.representation is TypeRepresentation.BY_VALUE and not detail.is_union


def _is_method(api: Api) -> bool:
    return isinstance(api.detail, FunctionDetail) and api.detail.receiver is not None


def _use_line(stmt: UseStatement) -> str:
    if stmt.alias:
        return f"use {stmt.path} as {ident(stmt.alias)};"
    return f"use {stmt.path};"


def _const_line(api: Api, detail: ConstDetail) -> str | None:
    name = ident(api.name.name)
    value = detail.value
    if isinstance(value, bool):
        return f"pub const {name}: bool = {'true' if value else 'false'};"
    if isinstance(value, int):
        type_name = unqualify(detail.type_name) if detail.type_name else "i64"
        return f"pub const {name}: {type_name} = {value};"
    if isinstance(value, float):
        type_name = unqualify(detail.type_name) if detail.type_name else "f64"
        return f"pub const {name}: {type_name} = {value!r};"
    if isinstance(value, str) and len(value) >= 2 and value[0] == value[-1] == '"':
        return f"pub const {name}: &str = {value};"
    # Expression macros and unknown values have no equivalent.
    return None


# =====================================================================
# Public convenience function
# =====================================================================


def write_bridge(bridge: Bridge, module_name: str = "ffi") -> str:
    """Render a bridge as ``cxx`` source.

    Convenience function that creates a :class:`BridgeEmitter` and calls
    :meth:`~BridgeEmitter.write`.
    """
    return BridgeEmitter(bridge, module_name).write()


# =====================================================================
# WriterBackend wrapper
# =====================================================================


class CxxWriter:
    """Writer that renders a bridge as a ``cxx`` bridge module.

    Options
    -------
    module_name : str
        Name of the generated bridge module. Defaults to ``"ffi"``.
    """

    def __init__(self, module_name: str = "ffi") -> None:
        self._module_name = module_name

    def write(self, bridge: Bridge) -> str:
        """Convert the bridge to ``cxx`` source."""
        return write_bridge(bridge, self._module_name)

    @property
    def name(self) -> str:
        """Human-readable name of this writer."""
        return "cxx"

    @property
    def format_description(self) -> str:
        """Short description of the output format."""
        return "cxx bridge module with namespace re-exports"


from bridgekit.writers import register_writer  # noqa: E402

register_writer("cxx", CxxWriter, is_default=True)
