"""Prune API records down to what the allowlist transitively needs.

The records and their ``deps`` edges form a graph. Starting from every
record whose allowlist name or own name the user asked for, a
breadth-first walk marks everything reachable; the rest is discarded. The
result is the same set whatever order edges are visited in, and adding
names to the allowlist can only ever keep more records.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Sequence

from bridgekit.api import Api, QualifiedName
from bridgekit.errors import GraphInconsistency, UnrecognizedDeclaration
from bridgekit.resolve import strip_elaborated
from bridgekit.type_database import TypeDatabase, is_primitive

logger = logging.getLogger(__name__)

DependencyGraph = dict[QualifiedName, frozenset[QualifiedName]]


def build_dependency_graph(apis: Sequence[Api]) -> DependencyGraph:
    """Adjacency mapping from each record name to the names it references.

    :raises GraphInconsistency: If two records share a name.
    """
    graph: DependencyGraph = {}
    for api in apis:
        if api.name in graph:
            raise GraphInconsistency(f"duplicate API record name: {api.name}")
        graph[api.name] = api.deps
    return graph


def find_roots(apis: Sequence[Api], allowlist: Iterable[QualifiedName]) -> list[QualifiedName]:
    """Names of records that seed the walk, in input order.

    Synthesised utility records are always roots; exclusion is how they
    are removed.
    """
    wanted = frozenset(allowlist)
    return [api.name for api in apis if api.is_utility or _answers_to(api, wanted)]


def _answers_to(api: Api, wanted: frozenset[QualifiedName]) -> bool:
    # A method is kept by naming its class or the method itself.
    return api.typename_for_allowlist in wanted or api.name in wanted


def reachable_names(
    graph: DependencyGraph,
    roots: Iterable[QualifiedName],
    type_database: TypeDatabase | None = None,
) -> set[QualifiedName]:
    """Breadth-first closure of ``roots`` over ``graph``.

    Edges to names with no record are allowed when they name a primitive,
    a type known to ``type_database`` or a utility; they are not followed.

    :raises GraphInconsistency: If a reached edge names anything else.
    """
    visited: set[QualifiedName] = set()
    todo: deque[QualifiedName] = deque()
    for root in roots:
        if root not in visited:
            visited.add(root)
            todo.append(root)

    while todo:
        current = todo.popleft()
        for dep in sorted(graph[current]):
            if dep in visited:
                continue
            if dep not in graph:
                if not _is_external(dep, type_database):
                    raise GraphInconsistency(f"{current} refers to {dep}, which has no API record")
                continue
            visited.add(dep)
            todo.append(dep)
    return visited


def _is_external(name: QualifiedName, type_database: TypeDatabase | None) -> bool:
    if is_primitive(strip_elaborated(str(name))):
        return True
    if type_database is None:
        return False
    return type_database.is_known_type(name) or type_database.is_utility_name(name)


def filter_apis_by_following_edges_from_allowlist(apis: Sequence[Api], type_database: TypeDatabase) -> list[Api]:
    """Keep only the records reachable from the allowlist.

    :param apis: All parsed records.
    :param type_database: Provides the allowlist and known external types.
    :returns: Surviving records, in their original order, unmodified.
    :raises UnrecognizedDeclaration: If a kept record mentions a type
        nothing declares.
    :raises GraphInconsistency: On duplicate names or dangling edges.
    """
    graph = build_dependency_graph(apis)
    roots = find_roots(apis, type_database.allowlist)
    for missing in unmatched_allowlist_names(apis, type_database.allowlist):
        logger.warning("Allowlisted name %s matches no API record", missing)

    keep = reachable_names(graph, roots, type_database)
    output = [api for api in apis if api.name in keep]
    for api in output:
        _check_resolved(api, type_database)
    logger.debug("Garbage collection kept %d of %d API records", len(output), len(apis))
    return output


def unmatched_allowlist_names(apis: Sequence[Api], allowlist: Iterable[QualifiedName]) -> list[QualifiedName]:
    """Allowlisted names that no record answers to, sorted."""
    present = {api.typename_for_allowlist for api in apis} | {api.name for api in apis}
    return sorted(name for name in set(allowlist) if name not in present)


def _check_resolved(api: Api, type_database: TypeDatabase) -> None:
    missing = sorted(name for name in api.unresolved if not _is_external(name, type_database))
    if missing:
        raise UnrecognizedDeclaration(
            str(api.name), api.kind.value, f"refers to undeclared type {', '.join(map(str, missing))}"
        )
