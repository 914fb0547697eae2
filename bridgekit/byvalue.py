"""By-value safety analysis for aggregate types.

Decides, for every struct/union/class in the extracted declarations,
whether it may be copied or moved by value across the bridge, or must be
treated as an opaque type that is only ever handled through a reference or
an owning pointer.

Algorithm
---------
1. Build a direct dependency graph from each aggregate to every named type
   its fields and bases mention (through pointers, references and arrays
   as well). Typedefs are transparent.
2. Record intrinsic blockers: user-provided destructor/copy/move, fields of
   non-trivially-copyable library types, unknown templates, undeclared
   names. Aggregates declared without a definition are ``UNKNOWN``.
3. Resolve in dependency order (Kahn's algorithm). A type is
   ``BY_VALUE_SAFE`` iff it has no blockers and every dependency is
   ``BY_VALUE_SAFE``. Whatever is left when the queue drains sits on, or
   depends on, a cycle and is ``NOT_SAFE``.
4. Verify every by-value request from the type database.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence

from bridgekit.api import QualifiedName, Safety
from bridgekit.errors import SafetyViolation
from bridgekit.ir import Item, Struct
from bridgekit.resolve import DeclarationIndex, RefKind, Resolution
from bridgekit.type_database import TypeDatabase

logger = logging.getLogger(__name__)


class ByValueChecker:
    """Read-only result of the by-value analysis.

    :param classifications: Safety of every aggregate and enum.
    :param reasons: Explanation for each type that is not by-value safe.
    :param index: The declaration index the analysis ran over.
    """

    def __init__(
        self,
        classifications: Mapping[QualifiedName, Safety],
        reasons: Mapping[QualifiedName, str],
        index: DeclarationIndex,
    ) -> None:
        self._classifications = dict(classifications)
        self._reasons = dict(reasons)
        self.index = index

    @property
    def classifications(self) -> dict[QualifiedName, Safety]:
        return dict(self._classifications)

    def classification(self, name: QualifiedName) -> Safety:
        """Safety of a type; typedefs are followed, unknown names are ``UNKNOWN``."""
        return self._classifications.get(self.index.canonical(name), Safety.UNKNOWN)

    def is_by_value_safe(self, name: QualifiedName) -> bool:
        return self.classification(name) is Safety.BY_VALUE_SAFE

    def reason(self, name: QualifiedName) -> str | None:
        return self._reasons.get(self.index.canonical(name))


class _Analysis:
    """Working state for one run of :func:`identify_byvalue_safe_types`."""

    def __init__(self, index: DeclarationIndex) -> None:
        self.index = index
        self.deps: dict[QualifiedName, set[QualifiedName]] = {}
        self.blockers: dict[QualifiedName, list[str]] = defaultdict(list)

    def scan(self) -> None:
        for name, struct in self.index.structs.items():
            self.deps[name] = set()
            self._scan_struct(name, struct)

    def _scan_struct(self, name: QualifiedName, struct: Struct) -> None:
        if struct.has_destructor:
            self.blockers[name].append("has a user-provided destructor")
        if struct.has_copy_constructor:
            self.blockers[name].append("has a user-provided copy constructor")
        if struct.has_move_constructor:
            self.blockers[name].append("has a user-provided move constructor")

        for base in struct.bases:
            self._add_reference(name, self.index.resolve(base, name.namespace), f"base {base}")
        for fld in struct.fields:
            for ref in self.index.resolve_type(fld.type, name.namespace):
                self._add_reference(name, ref, f"field {fld.name!r}")

    def _add_reference(self, owner: QualifiedName, ref: Resolution, where: str) -> None:
        for part in ref.walk():
            if part.kind is RefKind.PRIMITIVE:
                continue
            if part.kind is RefKind.KNOWN:
                if part.known is not None and not part.known.by_value_safe:
                    self.blockers[owner].append(f"{where} uses {part.spelling}, which is not trivially copyable")
            elif part.kind is RefKind.UNKNOWN_TEMPLATE:
                self.blockers[owner].append(f"{where} uses unsupported template {part.spelling}")
            elif part.kind is RefKind.UNDECLARED:
                self.blockers[owner].append(f"{where} refers to undeclared type {part.spelling}")
            elif part.name is not None:
                self._add_declared(owner, part.name, where, set())

    def _add_declared(
        self,
        owner: QualifiedName,
        name: QualifiedName,
        where: str,
        seen_typedefs: set[QualifiedName],
    ) -> None:
        if name in self.index.structs:
            self.deps[owner].add(name)
        elif name in self.index.typedefs:
            if name in seen_typedefs:
                self.blockers[owner].append(f"{where} uses typedef {name}, which aliases itself")
                return
            seen_typedefs.add(name)
            for ref in self.index.typedef_target(name):
                for part in ref.walk():
                    if part.kind is RefKind.DECLARED and part.name is not None:
                        self._add_declared(owner, part.name, where, seen_typedefs)
                    else:
                        self._add_reference(owner, Resolution(part.spelling, part.kind, part.name, part.known), where)
        # Enums are always trivially copyable.

    def resolve(self) -> tuple[dict[QualifiedName, Safety], dict[QualifiedName, str]]:
        classifications: dict[QualifiedName, Safety] = {}
        reasons: dict[QualifiedName, str] = {}

        dependents: dict[QualifiedName, set[QualifiedName]] = defaultdict(set)
        in_degree: dict[QualifiedName, int] = {}
        for name, deps in self.deps.items():
            in_degree[name] = len(deps)
            for dep in deps:
                dependents[dep].add(name)

        queue = [name for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(queue)
        while queue:
            name = heapq.heappop(queue)
            classifications[name], reason = self._classify(name, classifications)
            if reason is not None:
                reasons[name] = reason
            for dependent in dependents[name]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(queue, dependent)

        for name in sorted(self.deps):
            if name not in classifications:
                classifications[name] = Safety.NOT_SAFE
                reasons[name] = "is part of, or depends on, a cycle of type references"

        for name in self.index.enums:
            classifications[name] = Safety.BY_VALUE_SAFE
        return classifications, reasons

    def _classify(
        self,
        name: QualifiedName,
        done: Mapping[QualifiedName, Safety],
    ) -> tuple[Safety, str | None]:
        if not self.index.structs[name].is_complete:
            return Safety.UNKNOWN, "is declared but never defined"
        if self.blockers[name]:
            return Safety.NOT_SAFE, self.blockers[name][0]
        for dep in sorted(self.deps[name]):
            if done[dep] is not Safety.BY_VALUE_SAFE:
                return Safety.NOT_SAFE, f"depends on {dep}, which is not by-value safe"
        return Safety.BY_VALUE_SAFE, None


def identify_byvalue_safe_types(items: Sequence[Item], type_database: TypeDatabase) -> ByValueChecker:
    """Classify every aggregate type and verify the user's by-value requests.

    :param items: Extracted declarations (contents of the root namespace).
    :param type_database: Source of by-value requests and known types.
    :returns: The classification of every aggregate and enum.
    :raises SafetyViolation: If a requested type is not by-value safe,
        or names no known type.
    """
    index = DeclarationIndex(items, type_database)
    analysis = _Analysis(index)
    analysis.scan()
    classifications, reasons = analysis.resolve()
    checker = ByValueChecker(classifications, reasons, index)

    for requested in sorted(type_database.pod_requests):
        _verify_request(requested, checker, type_database)

    safe = sum(1 for s in classifications.values() if s is Safety.BY_VALUE_SAFE)
    logger.debug("Classified %d types, %d by-value safe", len(classifications), safe)
    return checker


def _verify_request(requested: QualifiedName, checker: ByValueChecker, type_database: TypeDatabase) -> None:
    if checker.index.is_declared(requested):
        target = checker.index.canonical(requested)
        if target in checker.index.typedefs:
            # Alias of something that is not a declared aggregate.
            refs = checker.index.typedef_target(target)
            if all(r.kind is RefKind.PRIMITIVE for r in refs):
                return
            raise SafetyViolation(str(requested), f"aliases {refs[0].spelling if refs else 'nothing'}")
        if not checker.is_by_value_safe(target):
            reason = checker.reason(target) or "classification is unknown"
            raise SafetyViolation(str(requested), reason)
        return

    known = type_database.known_type(str(requested))
    if known is None:
        raise SafetyViolation(str(requested), "no such type is declared")
    if not known.by_value_safe:
        raise SafetyViolation(str(requested), f"{known.cpp_name} is not trivially copyable")
