"""Tests for grouping API records by namespace."""

from bridgekit.api import Api, ApiKind, ConstDetail, QualifiedName
from bridgekit.namespaces import NamespaceEntries


def _const(name: str) -> Api:
    return Api(QualifiedName.parse(name), ApiKind.CONST, ConstDetail(0))


def test_from_apis_builds_tree():
    tree = NamespaceEntries.from_apis([_const("A"), _const("ns::B"), _const("ns::inner::C"), _const("other::D")])
    assert [str(a.name) for a in tree.entries] == ["A"]
    assert list(tree.children) == ["ns", "other"]
    assert tree.children["ns"].name == "ns"
    assert [str(a.name) for a in tree.children["ns"].children["inner"].entries] == ["ns::inner::C"]


def test_from_apis_keeps_order_within_namespace():
    tree = NamespaceEntries.from_apis([_const("ns::Z"), _const("ns::A")])
    assert [a.name.name for a in tree.children["ns"].entries] == ["Z", "A"]


def test_empty():
    tree = NamespaceEntries.from_apis([])
    assert tree.entries == []
    assert tree.children == {}
