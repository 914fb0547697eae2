"""Tests for the by-value safety analysis."""

import pytest

from bridgekit.api import QualifiedName, Safety
from bridgekit.byvalue import identify_byvalue_safe_types
from bridgekit.errors import SafetyViolation
from bridgekit.ir import Array, CType, Enum, EnumValue, Field, Namespace, Pointer, Reference, Struct, Typedef
from bridgekit.type_database import TypeDatabase


def _qn(text: str) -> QualifiedName:
    return QualifiedName.parse(text)


def _classify(items, pod_requests=()):
    return identify_byvalue_safe_types(items, TypeDatabase(pod_requests=pod_requests))


POINT = Struct("Point", [Field("x", CType("int")), Field("y", CType("int"))])


class TestClassification:
    def test_plain_struct_is_safe(self):
        checker = _classify([POINT])
        assert checker.classification(_qn("Point")) is Safety.BY_VALUE_SAFE
        assert checker.is_by_value_safe(_qn("Point"))
        assert checker.reason(_qn("Point")) is None

    def test_self_referential_struct_is_not_safe(self):
        node = Struct("Node", [Field("value", CType("int")), Field("next", Pointer(CType("Node")))])
        checker = _classify([node])
        assert checker.classification(_qn("Node")) is Safety.NOT_SAFE
        assert "cycle" in checker.reason(_qn("Node"))

    def test_mutual_cycle_is_not_safe(self):
        a = Struct("A", [Field("b", Pointer(CType("struct B")))])
        b = Struct("B", [Field("a", Pointer(CType("struct A")))])
        checker = _classify([a, b])
        assert checker.classification(_qn("A")) is Safety.NOT_SAFE
        assert checker.classification(_qn("B")) is Safety.NOT_SAFE

    def test_dependent_of_cycle_is_not_safe(self):
        a = Struct("A", [Field("b", Pointer(CType("B")))])
        b = Struct("B", [Field("a", Pointer(CType("A")))])
        c = Struct("C", [Field("a", CType("A"))])
        checker = _classify([a, b, c])
        assert checker.classification(_qn("C")) is Safety.NOT_SAFE

    def test_nested_safe_structs(self):
        line = Struct("Line", [Field("start", CType("Point")), Field("end", CType("Point"))])
        checker = _classify([POINT, line])
        assert checker.classification(_qn("Line")) is Safety.BY_VALUE_SAFE

    def test_destructor_is_not_safe(self):
        checker = _classify([Struct("Handle", [Field("fd", CType("int"))], has_destructor=True)])
        assert checker.classification(_qn("Handle")) is Safety.NOT_SAFE
        assert "destructor" in checker.reason(_qn("Handle"))

    def test_unsafety_propagates_through_fields(self):
        handle = Struct("Handle", [Field("fd", CType("int"))], has_copy_constructor=True)
        holder = Struct("Holder", [Field("h", CType("Handle"))])
        checker = _classify([handle, holder])
        assert checker.classification(_qn("Holder")) is Safety.NOT_SAFE
        assert "Handle" in checker.reason(_qn("Holder"))

    def test_unsafety_propagates_through_bases(self):
        base = Struct("Base", has_move_constructor=True)
        derived = Struct("Derived", [Field("x", CType("int"))], bases=["Base"])
        checker = _classify([base, derived])
        assert checker.classification(_qn("Derived")) is Safety.NOT_SAFE

    def test_string_field_is_not_safe(self):
        checker = _classify([Struct("Person", [Field("name", CType("std::string"))])])
        assert checker.classification(_qn("Person")) is Safety.NOT_SAFE
        assert "std::string" in checker.reason(_qn("Person"))

    def test_unknown_template_is_not_safe(self):
        checker = _classify([Struct("Holder", [Field("m", CType("absl::flat_hash_map<int, int>"))])])
        assert checker.classification(_qn("Holder")) is Safety.NOT_SAFE
        assert "template" in checker.reason(_qn("Holder"))

    def test_undeclared_field_type_is_not_safe(self):
        checker = _classify([Struct("Holder", [Field("m", CType("Mystery"))])])
        assert checker.classification(_qn("Holder")) is Safety.NOT_SAFE
        assert "undeclared" in checker.reason(_qn("Holder"))

    def test_forward_declaration_is_unknown(self):
        checker = _classify([Struct("Opaque", is_complete=False)])
        assert checker.classification(_qn("Opaque")) is Safety.UNKNOWN

    def test_pointer_to_forward_declaration_is_not_safe(self):
        opaque = Struct("Opaque", is_complete=False)
        user = Struct("User", [Field("o", Pointer(CType("Opaque")))])
        checker = _classify([opaque, user])
        assert checker.classification(_qn("User")) is Safety.NOT_SAFE

    def test_definition_wins_over_forward_declaration(self):
        checker = _classify([Struct("Point", is_complete=False), POINT])
        assert checker.classification(_qn("Point")) is Safety.BY_VALUE_SAFE

    def test_enums_and_arrays_are_safe(self):
        color = Enum("Color", [EnumValue("RED", 0)])
        pixel = Struct("Pixel", [Field("c", CType("enum Color")), Field("rgb", Array(CType("uint8_t"), 3))])
        checker = _classify([color, pixel])
        assert checker.classification(_qn("Color")) is Safety.BY_VALUE_SAFE
        assert checker.classification(_qn("Pixel")) is Safety.BY_VALUE_SAFE

    def test_typedef_is_transparent(self):
        alias = Typedef("point_t", CType("struct Point"))
        shape = Struct("Shape", [Field("origin", CType("point_t"))])
        checker = _classify([POINT, alias, shape])
        assert checker.classification(_qn("Shape")) is Safety.BY_VALUE_SAFE
        assert checker.classification(_qn("point_t")) is Safety.BY_VALUE_SAFE

    def test_typedef_naming_its_own_struct(self):
        checker = _classify([POINT, Typedef("Point", CType("struct Point"))])
        assert checker.classification(_qn("Point")) is Safety.BY_VALUE_SAFE
        assert _qn("Point") not in checker.index.typedefs

    def test_typedef_to_unsafe_type(self):
        alias = Typedef("name_t", CType("std::string"))
        person = Struct("Person", [Field("name", CType("name_t"))])
        checker = _classify([alias, person])
        assert checker.classification(_qn("Person")) is Safety.NOT_SAFE

    def test_reference_field_follows_referent(self):
        handle = Struct("Handle", has_destructor=True)
        view = Struct("View", [Field("h", Reference(CType("Handle")))])
        checker = _classify([handle, view])
        assert checker.classification(_qn("View")) is Safety.NOT_SAFE

    def test_namespaced_lookup_from_enclosing_scope(self):
        items = [
            Struct("Point", [Field("x", CType("int"))]),
            Namespace("geo", [Struct("Line", [Field("a", CType("Point"))])]),
        ]
        checker = _classify(items)
        assert checker.classification(_qn("geo::Line")) is Safety.BY_VALUE_SAFE

    def test_unknown_name_defaults_to_unknown(self):
        assert _classify([]).classification(_qn("Nope")) is Safety.UNKNOWN

    def test_idempotent(self):
        node = Struct("Node", [Field("next", Pointer(CType("Node")))])
        handle = Struct("Handle", has_destructor=True)
        items = [POINT, node, handle]
        first = _classify(items).classifications
        second = _classify(items).classifications
        assert first == second


class TestPodRequests:
    def test_safe_request_passes(self):
        checker = _classify([POINT], pod_requests=["Point"])
        assert checker.is_by_value_safe(_qn("Point"))

    def test_request_with_non_trivial_field(self):
        person = Struct("Person", [Field("age", CType("int")), Field("name", CType("std::string"))])
        with pytest.raises(SafetyViolation) as excinfo:
            _classify([person], pod_requests=["Person"])
        assert excinfo.value.type_name == "Person"
        assert "std::string" in excinfo.value.reason

    def test_request_for_cyclic_type(self):
        node = Struct("Node", [Field("next", Pointer(CType("Node")))])
        with pytest.raises(SafetyViolation, match="Node"):
            _classify([node], pod_requests=["Node"])

    def test_request_for_undeclared_type(self):
        with pytest.raises(SafetyViolation, match="no such type"):
            _classify([POINT], pod_requests=["Missing"])

    def test_request_for_forward_declaration(self):
        with pytest.raises(SafetyViolation, match="never defined"):
            _classify([Struct("Opaque", is_complete=False)], pod_requests=["Opaque"])

    def test_request_through_typedef(self):
        checker = _classify([POINT, Typedef("point_t", CType("Point"))], pod_requests=["point_t"])
        assert checker.is_by_value_safe(_qn("point_t"))

    def test_request_for_struct_with_same_named_typedef(self):
        checker = _classify([Typedef("Point", CType("struct Point")), POINT], pod_requests=["Point"])
        assert checker.is_by_value_safe(_qn("Point"))

    def test_request_for_primitive_alias(self):
        _classify([Typedef("handle_t", CType("uint64_t"))], pod_requests=["handle_t"])

    def test_request_for_known_unsafe_type(self):
        with pytest.raises(SafetyViolation, match="not trivially copyable"):
            _classify([], pod_requests=["std::string"])

    def test_request_namespaced(self):
        items = [Namespace("geo", [Struct("Vec", [Field("x", CType("double"))])])]
        checker = _classify(items, pod_requests=["geo::Vec"])
        assert checker.is_by_value_safe(_qn("geo::Vec"))
