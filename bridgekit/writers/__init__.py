"""Output formats for a pruned :class:`~bridgekit.api.Bridge`.

``cxx`` renders the ``#[cxx::bridge]`` module and is the default; ``json``
dumps the surviving records for tooling. Each writer module registers its
class when imported, and the built-in modules are imported the first time
the registry is consulted::

    from bridgekit.writers import get_writer

    text = get_writer("json", indent=None).write(bridge)
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from bridgekit.api import Bridge

__all__ = ["WriterBackend", "get_writer", "list_writers", "register_writer"]


@runtime_checkable
class WriterBackend(Protocol):
    """What the code generator needs from an output format.

    Options such as the JSON indent are constructor keyword arguments.
    ``write`` must not raise for a bridge the garbage collector produced;
    records a format cannot express are left out.
    """

    def write(self, bridge: Bridge) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def format_description(self) -> str: ...


_writers: dict[str, type[WriterBackend]] = {}
_default: str | None = None
_builtins_imported = False


def register_writer(name: str, writer_class: type[WriterBackend], is_default: bool = False) -> None:
    """Make ``writer_class`` available as ``name``.

    The first writer registered is the default until one registers with
    ``is_default=True``.

    :raises ValueError: If ``name`` is taken.
    """
    global _default  # pylint: disable=global-statement
    if name in _writers:
        raise ValueError(f"Writer already registered: {name!r}")
    _writers[name] = writer_class
    if is_default or _default is None:
        _default = name


def list_writers() -> list[str]:
    """Registered writer names, in registration order."""
    _import_builtins()
    return list(_writers)


def get_writer(name: str | None = None, **options: object) -> WriterBackend:
    """Instantiate the writer called ``name`` (or the default) with ``options``.

    :raises ValueError: If no such writer is registered.
    """
    _import_builtins()
    name = name or _default
    if name is None or name not in _writers:
        available = ", ".join(_writers) or "(none)"
        raise ValueError(f"Unknown writer: {name!r}. Available: {available}")
    return _writers[name](**options)


def _import_builtins() -> None:
    # The writer modules import register_writer from here, so they can only
    # be imported once this module has finished loading.
    global _builtins_imported  # pylint: disable=global-statement
    if _builtins_imported:
        return
    _builtins_imported = True
    import bridgekit.writers.cxx  # noqa: F401
    import bridgekit.writers.json  # noqa: F401
