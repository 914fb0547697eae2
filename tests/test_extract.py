"""Tests for root namespace extraction."""

import pytest

from bridgekit.errors import MalformedInput, NoContent, UnexpectedOuterItem
from bridgekit.extract import ROOT_NAMESPACE, find_items_in_root
from bridgekit.ir import BindingModule, CType, Function, Namespace, Struct


def _module(*items: object) -> BindingModule:
    return BindingModule("bindings", list(items))


class TestFindItemsInRoot:
    def test_returns_wrapped_items_in_order(self):
        a = Struct("A")
        b = Function("b", CType("void"))
        c = Namespace("inner", [Struct("C")])
        items = find_items_in_root(_module(Namespace(ROOT_NAMESPACE, [a, b, c])))
        assert items == [a, b, c]
        assert items[0] is a

    def test_returns_new_list(self):
        root = Namespace("root", [Struct("A")])
        items = find_items_in_root(_module(root))
        items.append(Struct("B"))
        assert len(root.items) == 1

    def test_empty_root_gives_empty_list(self):
        assert find_items_in_root(_module(Namespace("root", []))) == []

    def test_module_without_content(self):
        with pytest.raises(NoContent):
            find_items_in_root(BindingModule("bindings", None))

    def test_module_with_no_items(self):
        with pytest.raises(NoContent):
            find_items_in_root(BindingModule("bindings", []))

    def test_root_without_body(self):
        with pytest.raises(NoContent, match="root namespace"):
            find_items_in_root(_module(Namespace("root", None)))

    def test_top_level_declaration(self):
        with pytest.raises(UnexpectedOuterItem, match="struct 'Stray'"):
            find_items_in_root(_module(Struct("Stray")))

    def test_declaration_next_to_root(self):
        with pytest.raises(UnexpectedOuterItem):
            find_items_in_root(_module(Namespace("root", []), Function("f", CType("void"))))

    def test_wrongly_named_namespace(self):
        with pytest.raises(UnexpectedOuterItem, match="'std'"):
            find_items_in_root(_module(Namespace("std", [])))

    def test_two_top_level_containers(self):
        with pytest.raises(UnexpectedOuterItem, match="second"):
            find_items_in_root(_module(Namespace("root", []), Namespace("root", [])))

    def test_all_shape_errors_are_malformed_input(self):
        for module in (
            BindingModule("bindings", None),
            _module(Struct("Stray")),
            _module(Namespace("root", []), Namespace("other", [])),
        ):
            with pytest.raises(MalformedInput):
                find_items_in_root(module)
