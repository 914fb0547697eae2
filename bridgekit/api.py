"""API records: the intermediate representation between parsing and codegen.

An :class:`Api` is the unit that the garbage collector keeps or discards.
Each record has a unique fully-qualified :class:`QualifiedName` and a set of
outgoing edges (``deps``) naming every type it mentions.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

from bridgekit.ir import UseStatement

# =============================================================================
# Names
# =============================================================================


@dataclass(frozen=True, order=True)
class QualifiedName:
    """A type or item name together with its namespace path.

    Two names are equal iff their fully-qualified paths match.

    :param namespace: Enclosing namespaces, outermost first.
    :param name: Final path segment.
    """

    namespace: tuple[str, ...]
    name: str

    @classmethod
    def parse(cls, text: str) -> QualifiedName:
        """Parse ``"a::b::Name"`` (a leading ``::`` is ignored)."""
        parts = [p for p in text.strip().split("::") if p]
        if not parts:
            raise ValueError(f"Empty qualified name: {text!r}")
        return cls(tuple(parts[:-1]), parts[-1])

    @classmethod
    def in_namespace(cls, namespace: Iterable[str], name: str) -> QualifiedName:
        return cls(tuple(namespace), name)

    @property
    def path(self) -> tuple[str, ...]:
        return (*self.namespace, self.name)

    def child(self, name: str) -> QualifiedName:
        """Name of a member of this item (e.g. a method of a class)."""
        return QualifiedName(self.path, name)

    def __str__(self) -> str:
        return "::".join(self.path)


def split_template(text: str) -> tuple[str, list[str]]:
    """Split ``"std::map<K, std::vector<V>>"`` into its base and arguments.

    Only top-level commas separate arguments. Names without a template
    argument list return an empty argument list.
    """
    text = text.strip()
    start = text.find("<")
    if start == -1 or not text.endswith(">"):
        return text, []
    base = text[:start].strip()
    inner = text[start + 1 : -1]
    args: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in inner:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    tail = "".join(current).strip()
    if tail:
        args.append(tail)
    return base, args


# =============================================================================
# Enumerations
# =============================================================================


class Safety(enum.Enum):
    """By-value safety classification of an aggregate type."""

    BY_VALUE_SAFE = "by_value_safe"
    NOT_SAFE = "not_safe"
    UNKNOWN = "unknown"


class ApiKind(enum.Enum):
    FUNCTION = "function"
    TYPE = "type"
    CONST = "const"
    USE = "use"


class UnsafePolicy(enum.Enum):
    """Which generated function wrappers need an unsafe-call annotation."""

    ALL_FUNCTIONS_SAFE = "all_functions_safe"
    ALL_FUNCTIONS_UNSAFE = "all_functions_unsafe"
    PER_FUNCTION_MARKED = "per_function_marked"


class Passing(enum.Enum):
    """How a value crosses the bridge in a generated signature."""

    BY_VALUE = "by_value"
    BY_REFERENCE = "by_reference"
    BY_POINTER = "by_pointer"
    UNIQUE_PTR = "unique_ptr"


class TypeRepresentation(enum.Enum):
    """How a type record is represented in the generated bridge."""

    BY_VALUE = "by_value"
    OPAQUE = "opaque"
    ENUM = "enum"


# =============================================================================
# Record details
# =============================================================================


@dataclass(frozen=True)
class ParamDetail:
    """A converted function parameter.

    :param name: Parameter name (synthesised as ``arg<N>`` when unnamed).
    :param type_name: Spelling of the type in the generated signature.
    :param passing: How the argument crosses the bridge.
    :param is_const: True if the referenced/pointed-to value is const.
    """

    name: str
    type_name: str
    passing: Passing
    is_const: bool = False


@dataclass(frozen=True)
class FunctionDetail:
    """Details of a ``FUNCTION`` record.

    :param params: Converted parameters.
    :param return_type: Spelling of the return type, or None for void.
    :param return_passing: How the return value crosses the bridge.
    :param is_unsafe: The wrapper requires an unsafe-call annotation.
    :param receiver: For methods, the class the method belongs to.
    :param receiver_is_const: For methods, True if the receiver is const.
    """

    params: tuple[ParamDetail, ...]
    return_type: str | None
    return_passing: Passing = Passing.BY_VALUE
    is_unsafe: bool = False
    receiver: QualifiedName | None = None
    receiver_is_const: bool = False


@dataclass(frozen=True)
class FieldDetail:
    name: str
    type_name: str


@dataclass(frozen=True)
class TypeDetail:
    """Details of a ``TYPE`` record.

    ``fields`` is only populated for by-value representations; opaque
    types expose no layout. ``enum_values`` is only populated for enums.
    """

    representation: TypeRepresentation
    fields: tuple[FieldDetail, ...] = ()
    enum_values: tuple[tuple[str, int | str | None], ...] = ()
    is_union: bool = False


@dataclass(frozen=True)
class ConstDetail:
    value: int | float | str | None
    type_name: str | None = None


@dataclass(frozen=True)
class UseDetail:
    """Details of a ``USE`` record: ``target`` re-exported as the record name."""

    target: str


ApiDetail = Union[FunctionDetail, TypeDetail, ConstDetail, UseDetail]


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class Api:
    """A single API record.

    :param name: Unique fully-qualified name.
    :param kind: Record kind.
    :param detail: Kind-specific payload.
    :param deps: Outgoing type-reference edges.
    :param safety: Safety classification, for ``TYPE`` records.
    :param allowlist_name: Name checked against the allowlist. Defaults to
        ``name``; methods use their class and renamed functions their C++
        name.
    :param cpp_name: Original spelling, when renaming (overloads or a
        clash with a type name) applied.
    :param is_utility: Synthesised helper record.
    :param unresolved: Type names the declaration mentions that are
        neither declared nor known. Keeping such a record is an error.
    """

    name: QualifiedName
    kind: ApiKind
    detail: ApiDetail
    deps: frozenset[QualifiedName] = field(default_factory=frozenset)
    safety: Safety | None = None
    allowlist_name: QualifiedName | None = None
    cpp_name: str | None = None
    is_utility: bool = False
    unresolved: frozenset[QualifiedName] = field(default_factory=frozenset)

    @property
    def typename_for_allowlist(self) -> QualifiedName:
        return self.allowlist_name if self.allowlist_name is not None else self.name

    def __str__(self) -> str:
        return f"{self.kind.value} {self.name}"


@dataclass
class Bridge:
    """Everything a writer needs to emit the bridge module.

    :param module_name: Name of the scanner's outer module.
    :param include_list: Header paths, in order, for include directives.
    :param apis: Surviving records, in declaration order.
    :param use_stmts_by_mod: Use statements keyed by namespace path.
    """

    module_name: str
    include_list: list[str] = field(default_factory=list)
    apis: list[Api] = field(default_factory=list)
    use_stmts_by_mod: dict[tuple[str, ...], list[UseStatement]] = field(default_factory=dict)


@dataclass
class ParseResults:
    """Output of the parser.

    :param apis: All records, in declaration order.
    :param use_stmts_by_mod: Use statements keyed by namespace path; only
        needed for emission.
    """

    apis: list[Api]
    use_stmts_by_mod: dict[tuple[str, ...], list[UseStatement]] = field(default_factory=dict)
