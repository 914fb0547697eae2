"""Name resolution over the extracted declaration tree.

Both the by-value analyzer and the parser need to turn a type spelling
found in a field or signature (``"struct Foo"``, ``"ns::Bar"``,
``"std::unique_ptr<Baz>"``) into either a declared item or a type known to
the :class:`~bridgekit.type_database.TypeDatabase`. The
:class:`DeclarationIndex` collects every named declaration once and
performs C++-style lookup from a namespace outward.
"""

from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from bridgekit.api import QualifiedName, split_template
from bridgekit.ir import (
    Array,
    CType,
    Enum,
    FunctionPointer,
    Item,
    Namespace,
    Pointer,
    Reference,
    Struct,
    Typedef,
    TypeExpr,
)
from bridgekit.type_database import KnownType, TypeDatabase, is_primitive

_ELABORATED_PREFIXES = ("struct ", "union ", "enum ", "class ")


def strip_elaborated(spelling: str) -> str:
    """Drop a leading ``struct``/``union``/``enum``/``class`` keyword."""
    spelling = spelling.strip()
    for prefix in _ELABORATED_PREFIXES:
        if spelling.startswith(prefix):
            return spelling[len(prefix) :].strip()
    return spelling


def type_spellings(t: TypeExpr) -> list[str]:
    """Extract every named type spelling referenced by a type expression.

    Pointers, references, arrays and function pointers are unwrapped; the
    names they mention are returned in order of appearance.
    """
    if isinstance(t, CType):
        return [strip_elaborated(t.name)]
    if isinstance(t, Pointer):
        return type_spellings(t.pointee)
    if isinstance(t, Reference):
        return type_spellings(t.referent)
    if isinstance(t, Array):
        return type_spellings(t.element_type)
    if isinstance(t, FunctionPointer):
        names = type_spellings(t.return_type)
        for p in t.parameters:
            names.extend(type_spellings(p.type))
        return names
    return []


class RefKind(enum.Enum):
    PRIMITIVE = "primitive"
    KNOWN = "known"
    DECLARED = "declared"
    UNKNOWN_TEMPLATE = "unknown_template"
    UNDECLARED = "undeclared"


@dataclass(frozen=True)
class Resolution:
    """Result of resolving one type spelling.

    :param spelling: The spelling that was resolved.
    :param kind: What the spelling turned out to be.
    :param name: The declared item, for ``DECLARED``; the best-guess name
        for ``UNDECLARED`` and ``UNKNOWN_TEMPLATE``.
    :param known: Type database entry, for ``KNOWN``.
    :param args: Resolved template arguments, if any.
    """

    spelling: str
    kind: RefKind
    name: QualifiedName | None = None
    known: KnownType | None = None
    args: tuple[Resolution, ...] = field(default_factory=tuple)

    def walk(self) -> Iterator[Resolution]:
        """Yield this resolution and all nested template arguments."""
        yield self
        for arg in self.args:
            yield from arg.walk()


class DeclarationIndex:
    """Every named struct, enum and typedef in a declaration tree.

    :param items: Extracted items (the contents of the root namespace).
    :param type_database: Oracle for types not declared in the tree.
    """

    def __init__(self, items: Sequence[Item], type_database: TypeDatabase) -> None:
        self.type_database = type_database
        self.structs: dict[QualifiedName, Struct] = {}
        self.enums: dict[QualifiedName, Enum] = {}
        self.typedefs: dict[QualifiedName, Typedef] = {}
        self._index(items, ())
        self._drop_self_aliases()

    def _drop_self_aliases(self) -> None:
        # ``typedef struct Point {...} Point;`` names the struct itself.
        for qname, typedef in list(self.typedefs.items()):
            if qname not in self.structs and qname not in self.enums:
                continue
            if isinstance(typedef.underlying_type, CType) and strip_elaborated(typedef.underlying_type.name) in (
                qname.name,
                str(qname),
            ):
                del self.typedefs[qname]

    def _index(self, items: Sequence[Item], namespace: tuple[str, ...]) -> None:
        for item in items:
            if isinstance(item, Namespace):
                self._index(item.items or [], (*namespace, item.name))
            elif isinstance(item, Struct) and item.name:
                qname = QualifiedName(namespace, item.name)
                # A complete definition wins over a forward declaration.
                existing = self.structs.get(qname)
                if existing is None or (not existing.is_complete and item.is_complete):
                    self.structs[qname] = item
            elif isinstance(item, Enum) and item.name:
                self.enums[QualifiedName(namespace, item.name)] = item
            elif isinstance(item, Typedef):
                self.typedefs[QualifiedName(namespace, item.name)] = item

    def is_declared(self, name: QualifiedName) -> bool:
        return name in self.structs or name in self.enums or name in self.typedefs

    def lookup(self, spelling: str, namespace: Sequence[str]) -> QualifiedName | None:
        """Find a declared item, searching from ``namespace`` outward."""
        spelling = strip_elaborated(spelling)
        absolute = spelling.startswith("::")
        parts = tuple(p for p in spelling.split("::") if p)
        if not parts:
            return None
        scopes = [()] if absolute else [tuple(namespace[:i]) for i in range(len(namespace), -1, -1)]
        for scope in scopes:
            full = (*scope, *parts)
            candidate = QualifiedName(full[:-1], full[-1])
            if self.is_declared(candidate):
                return candidate
        return None

    def resolve(self, spelling: str, namespace: Sequence[str]) -> Resolution:
        """Resolve a type spelling as seen from ``namespace``."""
        spelling = strip_elaborated(spelling)
        if is_primitive(spelling):
            return Resolution(spelling, RefKind.PRIMITIVE, known=self.type_database.known_type(spelling))

        declared = self.lookup(spelling, namespace)
        if declared is not None:
            return Resolution(spelling, RefKind.DECLARED, name=declared)

        base, arg_spellings = split_template(spelling)
        args = tuple(self.resolve(a, namespace) for a in arg_spellings)
        known = self.type_database.known_type(spelling)
        if known is not None:
            return Resolution(spelling, RefKind.KNOWN, known=known, args=args)
        if arg_spellings:
            base_decl = self.lookup(base, namespace)
            guess = base_decl or _guess_name(base, namespace)
            return Resolution(spelling, RefKind.UNKNOWN_TEMPLATE, name=guess, args=args)
        return Resolution(spelling, RefKind.UNDECLARED, name=_guess_name(spelling, namespace))

    def resolve_type(self, t: TypeExpr, namespace: Sequence[str]) -> list[Resolution]:
        return [self.resolve(s, namespace) for s in type_spellings(t)]

    def typedef_target(self, name: QualifiedName) -> list[Resolution]:
        """Resolve the underlying type of a typedef from its own namespace."""
        typedef = self.typedefs[name]
        return self.resolve_type(typedef.underlying_type, name.namespace)

    def canonical(self, name: QualifiedName) -> QualifiedName:
        """Follow typedef aliases to the aggregate or enum they name.

        Returns ``name`` unchanged if it is not a typedef of a declared
        item, and stops if the alias chain loops.
        """
        seen: set[QualifiedName] = set()
        current = name
        while current in self.typedefs and current not in seen:
            seen.add(current)
            typedef = self.typedefs[current]
            if not isinstance(typedef.underlying_type, CType):
                return current
            target = self.resolve(typedef.underlying_type.name, current.namespace)
            if target.kind is not RefKind.DECLARED or target.name is None:
                return current
            current = target.name
        return current


def _guess_name(spelling: str, namespace: Sequence[str]) -> QualifiedName:
    parts = tuple(p for p in spelling.split("::") if p)
    if spelling.startswith("::"):
        return QualifiedName(parts[:-1], parts[-1])
    full = (*namespace, *parts)
    return QualifiedName(full[:-1], full[-1])
