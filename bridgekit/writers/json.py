"""Serialize a bridge to JSON.

Converts a :class:`~bridgekit.api.Bridge` and its surviving API records to
a JSON string suitable for inspection, debugging, or as input to custom
code generators.
"""

from __future__ import annotations

import json
from typing import Any

from bridgekit.api import (
    Api,
    ApiDetail,
    Bridge,
    ConstDetail,
    FunctionDetail,
    ParamDetail,
    TypeDetail,
    UseDetail,
)


def _param_to_dict(p: ParamDetail) -> dict[str, Any]:
    d: dict[str, Any] = {"name": p.name, "type": p.type_name, "passing": p.passing.value}
    if p.is_const:
        d["is_const"] = True
    return d


def _detail_to_dict(detail: ApiDetail) -> dict[str, Any]:
    """Convert a record's kind-specific payload to a dict."""
    if isinstance(detail, FunctionDetail):
        d: dict[str, Any] = {
            "params": [_param_to_dict(p) for p in detail.params],
            "return_type": detail.return_type,
            "return_passing": detail.return_passing.value,
        }
        if detail.is_unsafe:
            d["is_unsafe"] = True
        if detail.receiver is not None:
            d["receiver"] = str(detail.receiver)
            d["receiver_is_const"] = detail.receiver_is_const
        return d
    elif isinstance(detail, TypeDetail):
        d = {"representation": detail.representation.value}
        if detail.fields:
            d["fields"] = [{"name": f.name, "type": f.type_name} for f in detail.fields]
        if detail.enum_values:
            d["values"] = [{"name": n, "value": v} if v is not None else {"name": n} for n, v in detail.enum_values]
        if detail.is_union:
            d["is_union"] = True
        return d
    elif isinstance(detail, ConstDetail):
        d = {}
        if detail.value is not None:
            d["value"] = detail.value
        if detail.type_name is not None:
            d["type"] = detail.type_name
        return d
    elif isinstance(detail, UseDetail):
        return {"target": detail.target}
    else:
        return {"repr": repr(detail)}


def api_to_dict(api: Api) -> dict[str, Any]:
    """Convert an API record to a JSON-serializable dict."""
    d: dict[str, Any] = {
        "name": str(api.name),
        "kind": api.kind.value,
        "deps": sorted(str(dep) for dep in api.deps),
    }
    if api.safety is not None:
        d["safety"] = api.safety.value
    if api.allowlist_name is not None:
        d["allowlist_name"] = str(api.allowlist_name)
    if api.cpp_name:
        d["cpp_name"] = api.cpp_name
    if api.is_utility:
        d["is_utility"] = True
    d.update(_detail_to_dict(api.detail))
    return d


def bridge_to_json_dict(bridge: Bridge) -> dict[str, Any]:
    """Convert a Bridge to a JSON-serializable dict (no string encoding)."""
    data: dict[str, Any] = {
        "module": bridge.module_name,
        "include_list": list(bridge.include_list),
        "apis": [api_to_dict(a) for a in bridge.apis],
    }
    if bridge.use_stmts_by_mod:
        data["use_statements"] = {
            "::".join(path): [str(stmt) for stmt in stmts] for path, stmts in sorted(bridge.use_stmts_by_mod.items())
        }
    return data


def bridge_to_json(bridge: Bridge, indent: int | None = 2) -> str:
    """Convert a Bridge to a JSON string.

    :param bridge: Pruned bridge.
    :param indent: JSON indentation level. None for compact output.
    """
    return json.dumps(bridge_to_json_dict(bridge), indent=indent)


class JsonWriter:
    """Writer that serializes a bridge to JSON.

    Options
    -------
    indent : int | None
        JSON indentation level. Defaults to 2. None for compact output.

    Example
    -------
    ::

        from bridgekit.writers import get_writer

        writer = get_writer("json", indent=4)
        json_string = writer.write(bridge)
    """

    def __init__(self, indent: int | None = 2) -> None:
        self._indent = indent

    def write(self, bridge: Bridge) -> str:
        """Convert the bridge to a JSON string."""
        return bridge_to_json(bridge, indent=self._indent)

    @property
    def name(self) -> str:
        """Human-readable name of this writer."""
        return "json"

    @property
    def format_description(self) -> str:
        """Short description of the output format."""
        return "JSON serialization of API records for inspection and tooling"


from bridgekit.writers import register_writer  # noqa: E402

register_writer("json", JsonWriter)
