"""Locate the declarations wrapped by the scanner's root namespace.

With namespaces enabled the scanner always wraps everything in a single
namespace called ``root``. That wrapper is not part of the bound API, so
extraction steps straight into it.
"""

from __future__ import annotations

import logging

from bridgekit.errors import NoContent, UnexpectedOuterItem
from bridgekit.ir import BindingModule, Item, Namespace

logger = logging.getLogger(__name__)

ROOT_NAMESPACE = "root"


def _describe(item: object) -> str:
    name = getattr(item, "name", None)
    kind = type(item).__name__.lower()
    return f"{kind} {name!r}" if name else kind


def find_items_in_root(module: BindingModule) -> list[Item]:
    """Return the items inside the module's ``root`` namespace, in order.

    :param module: The scanner's outer module.
    :returns: A new list of the wrapped items. Empty if the root namespace
        is present but empty.
    :raises NoContent: If the module has no content, no top-level items,
        or a root namespace without a body.
    :raises UnexpectedOuterItem: If any top-level item is not the single
        ``root`` namespace.
    """
    if module.items is None:
        raise NoContent()

    root: Namespace | None = None
    for item in module.items:
        if not isinstance(item, Namespace) or item.name != ROOT_NAMESPACE:
            raise UnexpectedOuterItem(_describe(item))
        if root is not None:
            raise UnexpectedOuterItem(f"second {_describe(item)}")
        root = item

    if root is None:
        raise NoContent("bindings module contains no root namespace")
    if root.items is None:
        raise NoContent("root namespace has no content")

    logger.debug("Found %d items in root namespace of %r", len(root.items), module.name)
    return list(root.items)
