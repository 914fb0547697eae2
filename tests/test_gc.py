"""Tests for allowlist-driven garbage collection of API records."""

import itertools
import logging

import pytest

from bridgekit.api import Api, ApiKind, FunctionDetail, QualifiedName, TypeDetail, TypeRepresentation
from bridgekit.errors import GraphInconsistency, UnrecognizedDeclaration
from bridgekit.gc import (
    build_dependency_graph,
    filter_apis_by_following_edges_from_allowlist,
    find_roots,
    reachable_names,
    unmatched_allowlist_names,
)
from bridgekit.parse import make_utility_apis
from bridgekit.type_database import TypeDatabase


def _qn(text: str) -> QualifiedName:
    return QualifiedName.parse(text)


def _type(name: str, *deps: str) -> Api:
    return Api(
        _qn(name),
        ApiKind.TYPE,
        TypeDetail(TypeRepresentation.OPAQUE),
        frozenset(_qn(d) for d in deps),
    )


def _method(owner: str, name: str) -> Api:
    return Api(
        _qn(f"{owner}::{name}"),
        ApiKind.FUNCTION,
        FunctionDetail((), "i32", receiver=_qn(owner)),
        frozenset({_qn(owner)}),
        allowlist_name=_qn(owner),
    )


def _names(apis) -> list[str]:
    return [str(a.name) for a in apis]


@pytest.fixture
def chain():
    """Foo -> Bar -> Baz, with an unrelated Qux."""
    return [_type("Foo", "Bar"), _type("Bar", "Baz"), _type("Baz"), _type("Qux")]


class TestFilter:
    def test_keeps_transitive_dependencies(self, chain):
        kept = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Foo"]))
        assert _names(kept) == ["Foo", "Bar", "Baz"]

    def test_keeps_input_order_and_identity(self, chain):
        kept = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Baz", "Foo"]))
        assert kept == chain[:3]
        assert all(a is b for a, b in zip(kept, chain))

    def test_empty_allowlist_keeps_nothing(self, chain):
        assert filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase()) == []

    def test_leaf_allowlisted(self, chain):
        kept = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Baz"]))
        assert _names(kept) == ["Baz"]

    def test_cycles_terminate(self):
        apis = [_type("A", "B"), _type("B", "A"), _type("C")]
        kept = filter_apis_by_following_edges_from_allowlist(apis, TypeDatabase(allowlist=["A"]))
        assert _names(kept) == ["A", "B"]

    def test_monotonic_in_allowlist(self, chain):
        smaller = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Bar"]))
        larger = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Bar", "Qux"]))
        assert set(_names(smaller)) <= set(_names(larger))
        assert _names(larger) == ["Bar", "Baz", "Qux"]

    def test_independent_of_input_order(self, chain):
        db = TypeDatabase(allowlist=["Foo"])
        results = {
            frozenset(_names(filter_apis_by_following_edges_from_allowlist(list(perm), db)))
            for perm in itertools.permutations(chain)
        }
        assert results == {frozenset({"Foo", "Bar", "Baz"})}

    def test_method_kept_by_class_name(self):
        widget = _type("ui::Widget")
        method = Api(
            _qn("ui::Widget::size"),
            ApiKind.FUNCTION,
            FunctionDetail((), "i32", receiver=_qn("ui::Widget")),
            frozenset({_qn("ui::Widget")}),
            allowlist_name=_qn("ui::Widget"),
        )
        kept = filter_apis_by_following_edges_from_allowlist([widget, method], TypeDatabase(allowlist=["ui::Widget"]))
        assert _names(kept) == ["ui::Widget", "ui::Widget::size"]

    def test_method_kept_by_own_name(self):
        widget = _type("Foo")
        method = _method("Foo", "bar")
        db = TypeDatabase(allowlist=["Foo::bar"])
        kept = filter_apis_by_following_edges_from_allowlist([widget, method], db)
        assert _names(kept) == ["Foo", "Foo::bar"]
        assert unmatched_allowlist_names([widget, method], db.allowlist) == []

    def test_unresolved_name_in_kept_record_raises(self):
        opener = Api(_qn("open"), ApiKind.FUNCTION, FunctionDetail((), None), unresolved=frozenset({_qn("FILE")}))
        with pytest.raises(UnrecognizedDeclaration, match="FILE") as excinfo:
            filter_apis_by_following_edges_from_allowlist([opener], TypeDatabase(allowlist=["open"]))
        assert excinfo.value.name == "open"
        assert excinfo.value.kind == "function"

    def test_unresolved_name_outside_closure_ignored(self):
        opener = Api(_qn("open"), ApiKind.FUNCTION, FunctionDetail((), None), unresolved=frozenset({_qn("FILE")}))
        kept = filter_apis_by_following_edges_from_allowlist([_type("Foo"), opener], TypeDatabase(allowlist=["Foo"]))
        assert _names(kept) == ["Foo"]

    def test_missing_allowlist_name_is_tolerated(self, chain, caplog):
        with caplog.at_level(logging.WARNING, logger="bridgekit.gc"):
            kept = filter_apis_by_following_edges_from_allowlist(chain, TypeDatabase(allowlist=["Foo", "Nope"]))
        assert _names(kept) == ["Foo", "Bar", "Baz"]
        assert "Nope" in caplog.text

    def test_dangling_edge_from_root_raises(self):
        apis = [_type("Foo", "Ghost")]
        with pytest.raises(GraphInconsistency, match="Ghost"):
            filter_apis_by_following_edges_from_allowlist(apis, TypeDatabase(allowlist=["Foo"]))

    def test_dangling_edge_outside_closure_ignored(self):
        apis = [_type("Foo"), _type("Orphan", "Ghost")]
        kept = filter_apis_by_following_edges_from_allowlist(apis, TypeDatabase(allowlist=["Foo"]))
        assert _names(kept) == ["Foo"]

    def test_edges_to_known_types_allowed(self):
        apis = [_type("Person", "std::string", "int")]
        kept = filter_apis_by_following_edges_from_allowlist(apis, TypeDatabase(allowlist=["Person"]))
        assert _names(kept) == ["Person"]

    def test_duplicate_names_raise(self):
        with pytest.raises(GraphInconsistency, match="duplicate"):
            filter_apis_by_following_edges_from_allowlist([_type("A"), _type("A")], TypeDatabase(allowlist=["A"]))

    def test_utilities_always_kept(self, chain):
        apis = chain + make_utility_apis()
        kept = filter_apis_by_following_edges_from_allowlist(apis, TypeDatabase(allowlist=["Baz"]))
        assert _names(kept) == ["Baz", "bridgekit_utils::make_string"]


class TestHelpers:
    def test_build_dependency_graph(self, chain):
        graph = build_dependency_graph(chain)
        assert graph[_qn("Foo")] == frozenset({_qn("Bar")})
        assert graph[_qn("Qux")] == frozenset()

    def test_find_roots(self, chain):
        assert find_roots(chain, [_qn("Qux"), _qn("Foo")]) == [_qn("Foo"), _qn("Qux")]

    def test_roots_agree_with_unmatched_names(self):
        apis = [_type("Foo"), _method("Foo", "bar"), _method("Foo", "baz")]
        allowlist = [_qn("Foo::bar"), _qn("Foo::qux")]
        assert find_roots(apis, allowlist) == [_qn("Foo::bar")]
        assert unmatched_allowlist_names(apis, allowlist) == [_qn("Foo::qux")]

    def test_reachable_without_database_rejects_unknown(self):
        graph = {_qn("A"): frozenset({_qn("std::string")})}
        with pytest.raises(GraphInconsistency):
            reachable_names(graph, [_qn("A")])

    def test_reachable_primitive_edge(self):
        graph = {_qn("A"): frozenset({_qn("int")})}
        assert reachable_names(graph, [_qn("A")]) == {_qn("A")}

    def test_unmatched_allowlist_names(self, chain):
        assert unmatched_allowlist_names(chain, [_qn("Zed"), _qn("Foo"), _qn("Abc")]) == [_qn("Abc"), _qn("Zed")]
