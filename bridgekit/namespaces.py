"""Group API records by namespace for emission."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from bridgekit.api import Api


@dataclass
class NamespaceEntries:
    """Records directly in one namespace, plus its child namespaces.

    :param name: Namespace segment; empty for the root.
    :param entries: Records declared directly in this namespace.
    :param children: Child namespaces by name, in first-seen order.
    """

    name: str = ""
    entries: list[Api] = field(default_factory=list)
    children: dict[str, NamespaceEntries] = field(default_factory=dict)

    @classmethod
    def from_apis(cls, apis: Sequence[Api]) -> NamespaceEntries:
        root = cls()
        for api in apis:
            node = root
            for segment in api.name.namespace:
                node = node.children.setdefault(segment, cls(segment))
            node.entries.append(api)
        return root
