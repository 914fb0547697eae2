"""Convert extracted declarations into API records.

The parser walks the declarations inside the root namespace and produces
one or more :class:`~bridgekit.api.Api` records per declaration. For each
type it consults the :class:`~bridgekit.byvalue.ByValueChecker` to decide
whether the type is an owned value or an opaque handle, and rewrites
function signatures accordingly: an opaque type taken by value becomes a
reference parameter, and an opaque type returned by value becomes an
owning ``UniquePtr``.

Every declared type a declaration mentions becomes an outgoing edge of
its record, which the garbage collector follows later. Names nothing
declares are kept as the record's ``unresolved`` set instead.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field

from bridgekit.api import (
    Api,
    ApiKind,
    ConstDetail,
    FieldDetail,
    FunctionDetail,
    ParamDetail,
    ParseResults,
    Passing,
    QualifiedName,
    Safety,
    TypeDetail,
    TypeRepresentation,
    UnsafePolicy,
    UseDetail,
)
from bridgekit.byvalue import ByValueChecker
from bridgekit.errors import UnrecognizedDeclaration
from bridgekit.ir import (
    Array,
    Constant,
    CType,
    Enum,
    Function,
    FunctionPointer,
    Item,
    Namespace,
    Pointer,
    Reference,
    Struct,
    Typedef,
    TypeExpr,
    UseStatement,
    Variable,
)
from bridgekit.resolve import RefKind, Resolution
from bridgekit.type_database import UTILITIES_NAMESPACE, TypeDatabase

logger = logging.getLogger(__name__)

# Positions a type can appear in; they differ in how opaque types are passed.
_PARAM = "param"
_RETURN = "return"
_FIELD = "field"
_ALIAS = "alias"


@dataclass
class _Converted:
    """A type expression converted for the generated bridge."""

    type_name: str | None
    passing: Passing = Passing.BY_VALUE
    is_const: bool = False
    deps: set[QualifiedName] = field(default_factory=set)
    unresolved: set[QualifiedName] = field(default_factory=set)


def make_utility_apis() -> list[Api]:
    """Helper APIs synthesised into :data:`UTILITIES_NAMESPACE`."""
    make_string = Api(
        name=QualifiedName(UTILITIES_NAMESPACE, "make_string"),
        kind=ApiKind.FUNCTION,
        detail=FunctionDetail(
            params=(ParamDetail("str_", "str", Passing.BY_REFERENCE, is_const=True),),
            return_type="CxxString",
            return_passing=Passing.UNIQUE_PTR,
        ),
        deps=frozenset({QualifiedName(("std",), "string")}),
        is_utility=True,
    )
    return [make_string]


class ParseBindgen:
    """Parser from extracted declarations to API records.

    :param byvalue_checker: Result of the by-value analysis.
    :param type_database: Oracle for known types.
    :param unsafe_policy: Decides which function wrappers are ``unsafe``.
    """

    def __init__(
        self,
        byvalue_checker: ByValueChecker,
        type_database: TypeDatabase,
        unsafe_policy: UnsafePolicy = UnsafePolicy.ALL_FUNCTIONS_SAFE,
    ) -> None:
        self.byvalue_checker = byvalue_checker
        self.type_database = type_database
        self.unsafe_policy = unsafe_policy
        self._index = byvalue_checker.index
        self._apis: list[Api] = []
        self._use_stmts_by_mod: dict[tuple[str, ...], list[UseStatement]] = {}
        self._overloads: dict[tuple[str, ...], Counter[str]] = {}

    def convert_items(self, items: Sequence[Item], exclude_utilities: bool = False) -> ParseResults:
        """Convert every declaration into API records.

        :param items: Contents of the root namespace.
        :param exclude_utilities: Do not synthesise helper APIs, and drop
            any declarations in the utilities namespace.
        :returns: The records and the use statements by namespace.
        :raises UnrecognizedDeclaration: On the first declaration that
            cannot be converted.
        """
        self._apis = []
        self._use_stmts_by_mod = {}
        self._overloads = {}

        self._convert_items(items, (), exclude_utilities)
        if not exclude_utilities:
            self._apis.extend(make_utility_apis())

        logger.debug("Parsed %d API records", len(self._apis))
        return ParseResults(apis=self._apis, use_stmts_by_mod=self._use_stmts_by_mod)

    # -----------------------------------------------------------------
    # Item dispatch
    # -----------------------------------------------------------------

    def _convert_items(self, items: Sequence[Item], ns: tuple[str, ...], exclude_utilities: bool) -> None:
        for item in items:
            if isinstance(item, Namespace):
                child = (*ns, item.name)
                if exclude_utilities and child[: len(UTILITIES_NAMESPACE)] == UTILITIES_NAMESPACE:
                    logger.debug("Excluding utilities namespace %s", "::".join(child))
                    continue
                self._convert_items(item.items or [], child, exclude_utilities)
            elif isinstance(item, Struct):
                self._convert_struct(item, ns)
            elif isinstance(item, Enum):
                self._convert_enum(item, ns)
            elif isinstance(item, Function):
                self._add_function(item, ns)
            elif isinstance(item, Typedef):
                self._convert_typedef(item, ns)
            elif isinstance(item, Constant):
                self._convert_constant(item, ns)
            elif isinstance(item, UseStatement):
                self._use_stmts_by_mod.setdefault(ns, []).append(item)
            elif isinstance(item, Variable):
                raise UnrecognizedDeclaration(
                    _qualified(ns, item.name), "variable", "global variables cannot be bridged"
                )
            else:
                raise UnrecognizedDeclaration(
                    _qualified(ns, getattr(item, "name", None) or "<unnamed>"), type(item).__name__
                )

    # -----------------------------------------------------------------
    # Types
    # -----------------------------------------------------------------

    def _convert_struct(self, decl: Struct, ns: tuple[str, ...]) -> None:
        if not decl.name:
            raise UnrecognizedDeclaration(_qualified(ns, "<anonymous>"), str(decl).split()[0], "anonymous type")
        qname = QualifiedName(ns, decl.name)
        if self._index.structs.get(qname) is not decl:
            # Forward declaration superseded by a definition (or a redeclaration).
            return

        safety = self.byvalue_checker.classification(qname)
        # Unresolved bases and fields make a type unsafe, and opaque types
        # never expose them, so only resolved names are kept.
        deps: set[QualifiedName] = set()
        for base in decl.bases:
            deps.update(self._edges(self._index.resolve(base, ns))[0])

        fields: list[FieldDetail] = []
        for fld in decl.fields:
            converted = self._convert_type(fld.type, ns, _FIELD, f"{qname}.{fld.name}")
            deps.update(converted.deps)
            fields.append(FieldDetail(fld.name, converted.type_name or "()"))

        if safety is Safety.BY_VALUE_SAFE:
            detail = TypeDetail(TypeRepresentation.BY_VALUE, tuple(fields), is_union=decl.is_union)
        else:
            detail = TypeDetail(TypeRepresentation.OPAQUE, is_union=decl.is_union)

        # Self references are not edges to other records.
        deps.discard(qname)
        self._apis.append(Api(qname, ApiKind.TYPE, detail, frozenset(deps), safety=safety))

        for method in decl.methods:
            self._add_function(method, qname.path, receiver=qname)

    def _convert_enum(self, decl: Enum, ns: tuple[str, ...]) -> None:
        if decl.name is None:
            # Anonymous enums only contribute their enumerators.
            for v in decl.values:
                qname = QualifiedName(ns, v.name)
                self._apis.append(Api(qname, ApiKind.CONST, ConstDetail(v.value, "i32")))
            return
        detail = TypeDetail(
            TypeRepresentation.ENUM,
            enum_values=tuple((v.name, v.value) for v in decl.values),
        )
        self._apis.append(Api(QualifiedName(ns, decl.name), ApiKind.TYPE, detail, safety=Safety.BY_VALUE_SAFE))

    def _convert_typedef(self, decl: Typedef, ns: tuple[str, ...]) -> None:
        qname = QualifiedName(ns, decl.name)
        if self._index.typedefs.get(qname) is not decl:
            # Names the struct or enum of the same name, which has its own record.
            logger.debug("Skipping typedef %s naming its own type", qname)
            return
        converted = self._convert_type(decl.underlying_type, ns, _ALIAS, str(qname))
        deps = set(converted.deps)
        deps.discard(qname)
        target = converted.type_name or "()"
        self._apis.append(
            Api(qname, ApiKind.USE, UseDetail(target), frozenset(deps), unresolved=frozenset(converted.unresolved))
        )

    def _convert_constant(self, decl: Constant, ns: tuple[str, ...]) -> None:
        qname = QualifiedName(ns, decl.name)
        converted = _Converted(None)
        if decl.type is not None:
            converted = self._convert_type(decl.type, ns, _FIELD, str(qname))
        self._apis.append(
            Api(
                qname,
                ApiKind.CONST,
                ConstDetail(decl.value, converted.type_name),
                frozenset(converted.deps),
                unresolved=frozenset(converted.unresolved),
            )
        )

    # -----------------------------------------------------------------
    # Functions
    # -----------------------------------------------------------------

    def _add_function(
        self,
        decl: Function,
        ns: tuple[str, ...],
        receiver: QualifiedName | None = None,
    ) -> None:
        qualified = _qualified(ns, decl.name)
        if decl.is_variadic:
            raise UnrecognizedDeclaration(qualified, "function", "variadic functions cannot be bridged")

        deps: set[QualifiedName] = set()
        unresolved: set[QualifiedName] = set()
        params: list[ParamDetail] = []
        for i, p in enumerate(decl.parameters):
            converted = self._convert_type(p.type, ns, _PARAM, qualified)
            deps.update(converted.deps)
            unresolved.update(converted.unresolved)
            params.append(
                ParamDetail(
                    p.name or f"arg{i}",
                    converted.type_name or "()",
                    converted.passing,
                    converted.is_const,
                )
            )
        ret = self._convert_type(decl.return_type, ns, _RETURN, qualified)
        deps.update(ret.deps)
        unresolved.update(ret.unresolved)
        if receiver is not None:
            deps.add(receiver)

        is_unsafe = self._is_unsafe(decl, params, ret)
        detail = FunctionDetail(
            params=tuple(params),
            return_type=ret.type_name,
            return_passing=ret.passing,
            is_unsafe=is_unsafe,
            receiver=receiver,
            receiver_is_const=decl.is_const,
        )

        name = self._overload_name(ns, decl.name)
        renamed = name != decl.name
        allowlist_name = receiver
        if allowlist_name is None and renamed:
            allowlist_name = QualifiedName(ns, decl.name)
        self._apis.append(
            Api(
                QualifiedName(ns, name),
                ApiKind.FUNCTION,
                detail,
                frozenset(deps),
                allowlist_name=allowlist_name,
                cpp_name=decl.name if renamed else None,
                unresolved=frozenset(unresolved),
            )
        )

    def _overload_name(self, ns: tuple[str, ...], name: str) -> str:
        """Rename repeated function names to ``name1``, ``name2``, ...

        A function sharing its name with a declared type (``struct stat``
        and ``stat()``) is renamed as if the type came first.
        """
        seen = self._overloads.setdefault(ns, Counter())
        while True:
            count = seen[name]
            seen[name] += 1
            candidate = name if count == 0 else f"{name}{count}"
            if not self._index.is_declared(QualifiedName(ns, candidate)):
                return candidate

    def _is_unsafe(self, decl: Function, params: Sequence[ParamDetail], ret: _Converted) -> bool:
        if self.unsafe_policy is UnsafePolicy.ALL_FUNCTIONS_UNSAFE:
            return True
        if self.unsafe_policy is UnsafePolicy.ALL_FUNCTIONS_SAFE:
            return False
        if decl.is_marked_unsafe:
            return True
        return ret.passing is Passing.BY_POINTER or any(p.passing is Passing.BY_POINTER for p in params)

    # -----------------------------------------------------------------
    # Type conversion
    # -----------------------------------------------------------------

    def _convert_type(self, t: TypeExpr, ns: tuple[str, ...], position: str, context: str) -> _Converted:
        """Spell a type for the bridge and decide how it is passed."""
        if isinstance(t, CType):
            return self._convert_named(t, ns, position, context)

        if isinstance(t, FunctionPointer):
            return self._convert_function_pointer(t, ns, context)

        if isinstance(t, Pointer):
            if isinstance(t.pointee, FunctionPointer):
                return self._convert_function_pointer(t.pointee, ns, context)
            inner = self._convert_type(t.pointee, ns, _FIELD, context)
            is_const = _is_const(t.pointee)
            if isinstance(t.pointee, Pointer):
                mutability = "const" if is_const else "mut"
                return _carry(inner, f"*{mutability} {inner.type_name}", Passing.BY_POINTER, False)
            return _carry(inner, inner.type_name or "c_void", Passing.BY_POINTER, is_const)

        if isinstance(t, Reference):
            if t.is_rvalue:
                raise UnrecognizedDeclaration(context, "rvalue reference", "rvalue references cannot be bridged")
            inner = self._convert_type(t.referent, ns, _FIELD, context)
            return _carry(inner, inner.type_name, Passing.BY_REFERENCE, _is_const(t.referent))

        if isinstance(t, Array):
            inner = self._convert_type(t.element_type, ns, _FIELD, context)
            if position == _PARAM:
                # Array parameters decay to pointers.
                return _carry(inner, inner.type_name, Passing.BY_POINTER, _is_const(t.element_type))
            size = t.size if t.size is not None else 0
            return _carry(inner, f"[{inner.type_name}; {size}]", Passing.BY_VALUE, False)

        raise UnrecognizedDeclaration(context, type(t).__name__, "unsupported type expression")

    def _convert_named(self, t: CType, ns: tuple[str, ...], position: str, context: str) -> _Converted:
        ref = self._index.resolve(t.name, ns)
        is_const = "const" in t.qualifiers
        deps, unresolved = self._edges(ref)

        if ref.kind is RefKind.PRIMITIVE:
            if ref.spelling == "void":
                return _Converted(None)
            return _Converted(self._spell(ref), Passing.BY_VALUE, is_const)

        type_name = self._spell(ref)
        if self._value_passable(ref) or position in (_FIELD, _ALIAS):
            return _Converted(type_name, Passing.BY_VALUE, is_const, deps, unresolved)
        if position == _RETURN:
            return _Converted(type_name, Passing.UNIQUE_PTR, False, deps, unresolved)
        return _Converted(type_name, Passing.BY_REFERENCE, True, deps, unresolved)

    def _convert_function_pointer(self, fp: FunctionPointer, ns: tuple[str, ...], context: str) -> _Converted:
        if fp.is_variadic:
            raise UnrecognizedDeclaration(context, "function pointer", "variadic function pointers cannot be bridged")
        result = _Converted(None)
        params: list[str] = []
        for p in fp.parameters:
            converted = self._convert_type(p.type, ns, _FIELD, context)
            result.deps.update(converted.deps)
            result.unresolved.update(converted.unresolved)
            params.append(_spell_converted(converted))
        ret = self._convert_type(fp.return_type, ns, _FIELD, context)
        result.deps.update(ret.deps)
        result.unresolved.update(ret.unresolved)
        result.type_name = f"fn({', '.join(params)})"
        if ret.type_name is not None:
            result.type_name = f"{result.type_name} -> {_spell_converted(ret)}"
        return result

    def _spell(self, ref: Resolution) -> str:
        if ref.kind is RefKind.KNOWN and ref.known is not None:
            if ref.args:
                return f"{ref.known.bridge_name}<{', '.join(self._spell(a) for a in ref.args)}>"
            return ref.known.bridge_name
        if ref.kind is RefKind.PRIMITIVE and ref.known is not None:
            return ref.known.bridge_name
        if ref.name is not None:
            return str(ref.name)
        return ref.spelling

    def _value_passable(self, ref: Resolution, seen: frozenset[QualifiedName] = frozenset()) -> bool:
        """Whether a value of this type may cross the bridge by value."""
        if ref.kind is RefKind.KNOWN:
            # Smart pointers are passed by value; strings and containers are not.
            return ref.known is not None and (ref.known.by_value_safe or ref.known.is_smart_pointer)
        if ref.kind is not RefKind.DECLARED or ref.name is None:
            return False
        target = self._index.canonical(ref.name)
        if target in self._index.typedefs:
            if target in seen:
                return False
            parts = self._index.typedef_target(target)
            inner = seen | {target}
            return all(p.kind is RefKind.PRIMITIVE or self._value_passable(p, inner) for p in parts)
        return self.byvalue_checker.is_by_value_safe(target)

    def _edges(self, ref: Resolution) -> tuple[set[QualifiedName], set[QualifiedName]]:
        """Names of records a resolved spelling refers to, and names it
        mentions that nothing declares."""
        deps: set[QualifiedName] = set()
        unresolved: set[QualifiedName] = set()
        for part in ref.walk():
            if part.name is None:
                continue
            if part.kind is RefKind.DECLARED:
                deps.add(part.name)
            elif part.kind is RefKind.UNKNOWN_TEMPLATE and self._index.is_declared(part.name):
                deps.add(part.name)
            elif part.kind in (RefKind.UNDECLARED, RefKind.UNKNOWN_TEMPLATE):
                unresolved.add(part.name)
        return deps, unresolved


def _carry(inner: _Converted, type_name: str | None, passing: Passing, is_const: bool) -> _Converted:
    """Wrap a converted inner type, keeping its edges."""
    return _Converted(type_name, passing, is_const, inner.deps, inner.unresolved)


def _spell_converted(converted: _Converted) -> str:
    name = converted.type_name or "()"
    if converted.passing is Passing.BY_REFERENCE:
        return f"&{name}" if converted.is_const else f"&mut {name}"
    if converted.passing is Passing.BY_POINTER:
        return f"*const {name}" if converted.is_const else f"*mut {name}"
    if converted.passing is Passing.UNIQUE_PTR:
        return f"UniquePtr<{name}>"
    return name


def _is_const(t: TypeExpr) -> bool:
    return isinstance(t, CType) and "const" in t.qualifiers


def _qualified(ns: Sequence[str], name: str) -> str:
    return "::".join((*ns, name))
