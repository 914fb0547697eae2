"""Load a scanned declaration tree from JSON.

The upstream scanner exchanges its output as JSON. Every node is an
object with a ``"kind"`` key, using the same vocabulary as the IR::

    {
      "name": "bindings",
      "items": [
        {"kind": "namespace", "name": "root", "items": [
          {"kind": "struct", "name": "Point", "fields": [
            {"name": "x", "type": {"kind": "ctype", "name": "int"}}
          ]}
        ]}
      ]
    }

Type kinds: ``ctype``, ``pointer``, ``reference``, ``array``,
``function_pointer``. Item kinds: ``namespace``, ``struct``, ``union``,
``class``, ``enum``, ``function``, ``typedef``, ``constant``,
``variable``, ``use``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from bridgekit.ir import (
    Array,
    BindingModule,
    Constant,
    CType,
    Enum,
    EnumValue,
    Field,
    Function,
    FunctionPointer,
    Item,
    Namespace,
    Parameter,
    Pointer,
    Reference,
    Struct,
    Typedef,
    TypeExpr,
    UseStatement,
    Variable,
)


def _type_from_dict(d: dict[str, Any]) -> TypeExpr:
    kind = d.get("kind")
    if kind == "ctype":
        return CType(d["name"], list(d.get("qualifiers", [])))
    elif kind == "pointer":
        return Pointer(_type_from_dict(d["pointee"]), list(d.get("qualifiers", [])))
    elif kind == "reference":
        return Reference(_type_from_dict(d["referent"]), bool(d.get("is_rvalue", False)))
    elif kind == "array":
        return Array(_type_from_dict(d["element_type"]), d.get("size"))
    elif kind == "function_pointer":
        return FunctionPointer(
            _type_from_dict(d["return_type"]),
            [_param_from_dict(p) for p in d.get("parameters", [])],
            bool(d.get("is_variadic", False)),
        )
    raise ValueError(f"Unknown type kind: {kind!r}")


def _param_from_dict(d: dict[str, Any]) -> Parameter:
    return Parameter(d.get("name"), _type_from_dict(d["type"]))


def _function_from_dict(d: dict[str, Any]) -> Function:
    return Function(
        d["name"],
        _type_from_dict(d.get("return_type", {"kind": "ctype", "name": "void"})),
        [_param_from_dict(p) for p in d.get("parameters", [])],
        is_variadic=bool(d.get("is_variadic", False)),
        is_marked_unsafe=bool(d.get("is_unsafe", False)),
        is_const=bool(d.get("is_const", False)),
    )


def _item_from_dict(d: dict[str, Any]) -> Item:
    """Convert one JSON object to an IR item."""
    kind = d.get("kind")
    if kind == "namespace":
        items = d.get("items")
        return Namespace(d["name"], [_item_from_dict(i) for i in items] if items is not None else None)
    elif kind in ("struct", "union", "class"):
        return Struct(
            d.get("name"),
            fields=[Field(f["name"], _type_from_dict(f["type"])) for f in d.get("fields", [])],
            bases=list(d.get("bases", [])),
            methods=[_function_from_dict(m) for m in d.get("methods", [])],
            is_union=kind == "union",
            is_cppclass=kind == "class",
            is_complete=bool(d.get("is_complete", True)),
            has_destructor=bool(d.get("has_destructor", False)),
            has_copy_constructor=bool(d.get("has_copy_constructor", False)),
            has_move_constructor=bool(d.get("has_move_constructor", False)),
        )
    elif kind == "enum":
        return Enum(d.get("name"), [EnumValue(v["name"], v.get("value")) for v in d.get("values", [])])
    elif kind == "function":
        return _function_from_dict(d)
    elif kind == "typedef":
        return Typedef(d["name"], _type_from_dict(d["underlying_type"]))
    elif kind == "constant":
        type_d = d.get("type")
        return Constant(
            d["name"],
            d.get("value"),
            _type_from_dict(type_d) if type_d is not None else None,
            is_macro=bool(d.get("is_macro", False)),
        )
    elif kind == "variable":
        return Variable(d["name"], _type_from_dict(d["type"]))
    elif kind == "use":
        return UseStatement(d["path"], d.get("alias"))
    raise ValueError(f"Unknown item kind: {kind!r}")


def module_from_dict(data: dict[str, Any]) -> BindingModule:
    """Build a :class:`~bridgekit.ir.BindingModule` from decoded JSON.

    :raises ValueError: If the data does not describe a module.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    items = data.get("items")
    if items is not None and not isinstance(items, list):
        raise ValueError("'items' must be a list or null")
    return BindingModule(
        data.get("name", "bindings"),
        [_item_from_dict(i) for i in items] if items is not None else None,
    )


def module_from_json(text: str) -> BindingModule:
    """Parse a JSON string into a module."""
    return module_from_dict(json.loads(text))


def load_module(path: str | Path) -> BindingModule:
    """Read a module from a JSON file."""
    return module_from_json(Path(path).read_text(encoding="utf-8"))
