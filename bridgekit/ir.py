"""Intermediate Representation for scanned binding declarations.

This module defines the declaration tree that the upstream header scanner
hands to bridgekit. The tree mirrors what a ``bindgen``-style tool emits
with namespaces enabled: an outer :class:`BindingModule` whose single
top-level item is a ``root`` :class:`Namespace`, which in turn contains the
declarations and any nested namespaces.

Type Expressions
----------------
:class:`CType`, :class:`Pointer`, :class:`Reference`, :class:`Array` and
:class:`FunctionPointer` describe the types used in signatures and fields.
``CType`` names may be namespace qualified (``"ns::Widget"``) and may name
a template instantiation (``"std::unique_ptr<Widget>"``).

Declarations
------------
:class:`Struct`, :class:`Enum`, :class:`Function`, :class:`Typedef`,
:class:`Constant`, :class:`Variable` and :class:`UseStatement`, plus the
:class:`Namespace` container.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

# =============================================================================
# Type Expressions
# =============================================================================


@dataclass
class CType:
    """A named type, optionally qualified.

    :param name: Type name (e.g. ``"int"``, ``"ns::Point"``,
        ``"std::unique_ptr<Widget>"``).
    :param qualifiers: Type qualifiers such as ``"const"``.
    """

    name: str
    qualifiers: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        if self.qualifiers:
            return f"{' '.join(self.qualifiers)} {self.name}"
        return self.name


@dataclass
class Pointer:
    """A raw pointer to another type.

    :param pointee: The pointed-to type.
    :param qualifiers: Qualifiers applied to the pointer itself.
    """

    pointee: TypeExpr
    qualifiers: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.pointee}*"


@dataclass
class Reference:
    """A C++ lvalue or rvalue reference.

    :param referent: The referenced type.
    :param is_rvalue: True for ``T&&``.
    """

    referent: TypeExpr
    is_rvalue: bool = False

    def __str__(self) -> str:
        return f"{self.referent}{'&&' if self.is_rvalue else '&'}"


@dataclass
class Array:
    """A fixed or flexible array.

    :param element_type: Element type.
    :param size: Element count, a size expression, or None if unsized.
    """

    element_type: TypeExpr
    size: int | str | None = None

    def __str__(self) -> str:
        size_str = str(self.size) if self.size is not None else ""
        return f"{self.element_type}[{size_str}]"


@dataclass
class Parameter:
    """A function parameter.

    :param name: Parameter name, or None if unnamed.
    :param type: Parameter type.
    """

    name: str | None
    type: TypeExpr

    def __str__(self) -> str:
        if self.name:
            return f"{self.type} {self.name}"
        return str(self.type)


@dataclass
class FunctionPointer:
    """A function pointer type.

    :param return_type: Return type.
    :param parameters: Parameter list.
    :param is_variadic: True if the function takes ``...``.
    """

    return_type: TypeExpr
    parameters: list[Parameter] = field(default_factory=list)
    is_variadic: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        if self.is_variadic:
            params = f"{params}, ..." if params else "..."
        return f"{self.return_type} (*)({params})"


TypeExpr = Union[CType, Pointer, Reference, Array, FunctionPointer]

# =============================================================================
# Declarations
# =============================================================================


@dataclass
class Field:
    """A struct/union/class data member."""

    name: str
    type: TypeExpr

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass
class EnumValue:
    """A single enumerator."""

    name: str
    value: int | str | None = None

    def __str__(self) -> str:
        if self.value is not None:
            return f"{self.name} = {self.value}"
        return self.name


@dataclass
class Enum:
    """An enumeration.

    :param name: Enum name, or None if anonymous.
    :param values: Enumerators in declaration order.
    """

    name: str | None
    values: list[EnumValue] = field(default_factory=list)

    def __str__(self) -> str:
        return f"enum {self.name or '(anonymous)'}"


@dataclass
class Function:
    """A free function or a method.

    :param name: Function name.
    :param return_type: Return type.
    :param parameters: Parameters in order.
    :param is_variadic: True if the function takes ``...``.
    :param is_marked_unsafe: The scanner flagged this function as requiring
        an unsafe call annotation.
    :param is_const: For methods, True if the method is ``const``.
    """

    name: str
    return_type: TypeExpr
    parameters: list[Parameter] = field(default_factory=list)
    is_variadic: bool = False
    is_marked_unsafe: bool = False
    is_const: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.parameters)
        if self.is_variadic:
            params = f"{params}, ..." if params else "..."
        return f"{self.return_type} {self.name}({params})"


@dataclass
class Struct:
    """A struct, union or class.

    The special-member flags describe whether the type has user-provided
    lifetime semantics. Any of them makes the type non-trivially copyable.

    :param name: Type name, or None if anonymous.
    :param fields: Data members in declaration order.
    :param bases: Names of base classes.
    :param methods: Member functions.
    :param is_union: True for unions.
    :param is_cppclass: True if declared with ``class``.
    :param is_complete: False for a declaration without a definition.
    :param has_destructor: User-provided destructor.
    :param has_copy_constructor: User-provided copy constructor.
    :param has_move_constructor: User-provided move constructor.
    """

    name: str | None
    fields: list[Field] = field(default_factory=list)
    bases: list[str] = field(default_factory=list)
    methods: list[Function] = field(default_factory=list)
    is_union: bool = False
    is_cppclass: bool = False
    is_complete: bool = True
    has_destructor: bool = False
    has_copy_constructor: bool = False
    has_move_constructor: bool = False

    @property
    def is_trivially_copyable(self) -> bool:
        return not (self.has_destructor or self.has_copy_constructor or self.has_move_constructor)

    def __str__(self) -> str:
        if self.is_union:
            kind = "union"
        elif self.is_cppclass:
            kind = "class"
        else:
            kind = "struct"
        return f"{kind} {self.name or '(anonymous)'}"


@dataclass
class Typedef:
    """A type alias (``typedef`` or ``using X = Y``)."""

    name: str
    underlying_type: TypeExpr

    def __str__(self) -> str:
        return f"typedef {self.underlying_type} {self.name}"


@dataclass
class Constant:
    """A named compile-time constant.

    :param name: Constant name.
    :param value: Evaluated value, or None if unknown.
    :param type: Declared type, or None for untyped macros.
    :param is_macro: True if this came from ``#define``.
    """

    name: str
    value: int | float | str | None = None
    type: TypeExpr | None = None
    is_macro: bool = False

    def __str__(self) -> str:
        if self.value is None:
            return self.name
        return f"{self.name} = {self.value}"


@dataclass
class Variable:
    """A global variable."""

    name: str
    type: TypeExpr

    def __str__(self) -> str:
        return f"{self.type} {self.name}"


@dataclass
class UseStatement:
    """An import emitted by the scanner inside a namespace.

    :param path: Imported path, ``::`` separated.
    :param alias: Local alias, or None to import under the last segment.
    """

    path: str
    alias: str | None = None

    def __str__(self) -> str:
        if self.alias:
            return f"use {self.path} as {self.alias}"
        return f"use {self.path}"


@dataclass
class Namespace:
    """A namespace container.

    :param name: Namespace name.
    :param items: Nested items, or None for a declaration with no body.
    """

    name: str
    items: list[Item] | None = field(default_factory=list)

    def __str__(self) -> str:
        return f"namespace {self.name}"


Declaration = Union[Struct, Enum, Function, Typedef, Constant, Variable, UseStatement]

Item = Union[Declaration, Namespace]

# =============================================================================
# Container
# =============================================================================


@dataclass
class BindingModule:
    """The outer module produced by the scanner.

    :param name: Module name; carried through to the generated bridge.
    :param items: Top-level items, or None if the module has no content.
    """

    name: str
    items: list[Item] | None = None

    def __str__(self) -> str:
        count = len(self.items) if self.items is not None else 0
        return f"BindingModule({self.name!r}, {count} items)"
