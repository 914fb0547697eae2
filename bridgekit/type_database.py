"""Read-only oracle of user intentions and well-known types.

The :class:`TypeDatabase` answers three questions for the pipeline:

* Is this name on the allowlist (a garbage-collection root)?
* Did the user ask for this type to be passed by value (a POD request)?
* Is this a type bridgekit knows without it being declared in the input
  (primitives, ``std::string``, smart pointers)? And if so, may it be
  copied by value?

Example
-------
::

    from bridgekit.type_database import TypeDatabase

    db = TypeDatabase(allowlist=["Foo", "ns::bar"], pod_requests=["Point"])
    db.is_on_allowlist(QualifiedName.parse("ns::bar"))  # True
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from bridgekit.api import QualifiedName, split_template

# Namespace holding synthesised helper APIs (see ``exclude_utilities``).
UTILITIES_NAMESPACE: tuple[str, ...] = ("bridgekit_utils",)


@dataclass(frozen=True)
class KnownType:
    """Metadata for a type known without being declared in the input.

    :param cpp_name: C++ spelling.
    :param bridge_name: Spelling in the generated bridge.
    :param by_value_safe: May be copied/moved by value.
    :param is_template: True for class templates such as ``std::unique_ptr``.
    :param is_smart_pointer: An owning handle that crosses the bridge by
        value even though the pointee may not.
    """

    cpp_name: str
    bridge_name: str
    by_value_safe: bool
    is_template: bool = False
    is_smart_pointer: bool = False


def _primitive(cpp_name: str, bridge_name: str) -> KnownType:
    return KnownType(cpp_name, bridge_name, by_value_safe=True)


PRIMITIVE_TYPES: dict[str, KnownType] = {
    t.cpp_name: t
    for t in [
        _primitive("void", "()"),
        _primitive("bool", "bool"),
        _primitive("_Bool", "bool"),
        _primitive("char", "c_char"),
        _primitive("signed char", "i8"),
        _primitive("unsigned char", "u8"),
        _primitive("short", "i16"),
        _primitive("unsigned short", "u16"),
        _primitive("int", "i32"),
        _primitive("unsigned int", "u32"),
        _primitive("long", "c_long"),
        _primitive("unsigned long", "c_ulong"),
        _primitive("long long", "i64"),
        _primitive("unsigned long long", "u64"),
        _primitive("float", "f32"),
        _primitive("double", "f64"),
        _primitive("size_t", "usize"),
        _primitive("ssize_t", "isize"),
        _primitive("int8_t", "i8"),
        _primitive("int16_t", "i16"),
        _primitive("int32_t", "i32"),
        _primitive("int64_t", "i64"),
        _primitive("uint8_t", "u8"),
        _primitive("uint16_t", "u16"),
        _primitive("uint32_t", "u32"),
        _primitive("uint64_t", "u64"),
        _primitive("uintptr_t", "usize"),
        _primitive("intptr_t", "isize"),
    ]
}

LIBRARY_TYPES: dict[str, KnownType] = {
    t.cpp_name: t
    for t in [
        KnownType("std::string", "CxxString", by_value_safe=False),
        KnownType("std::unique_ptr", "UniquePtr", by_value_safe=False, is_template=True, is_smart_pointer=True),
        KnownType("std::shared_ptr", "SharedPtr", by_value_safe=False, is_template=True, is_smart_pointer=True),
        KnownType("std::vector", "CxxVector", by_value_safe=False, is_template=True),
    ]
}


def is_primitive(cpp_name: str) -> bool:
    return cpp_name in PRIMITIVE_TYPES


class TypeDatabase:
    """Configuration and type oracle consulted by every pipeline stage.

    :param allowlist: Fully-qualified names that must survive pruning.
    :param pod_requests: Fully-qualified names the user wants passed by value.
    :param known_types: Extra known types, merged over the built-in table.
    """

    def __init__(
        self,
        allowlist: Iterable[str] = (),
        pod_requests: Iterable[str] = (),
        known_types: Mapping[str, KnownType] | None = None,
    ) -> None:
        self._allowlist: frozenset[QualifiedName] = frozenset(QualifiedName.parse(n) for n in allowlist)
        self._pod_requests: frozenset[QualifiedName] = frozenset(QualifiedName.parse(n) for n in pod_requests)
        self._known_types: dict[str, KnownType] = {**PRIMITIVE_TYPES, **LIBRARY_TYPES}
        if known_types:
            self._known_types.update(known_types)

    @property
    def allowlist(self) -> frozenset[QualifiedName]:
        return self._allowlist

    @property
    def pod_requests(self) -> frozenset[QualifiedName]:
        return self._pod_requests

    def is_on_allowlist(self, name: QualifiedName) -> bool:
        return name in self._allowlist

    def is_pod_requested(self, name: QualifiedName) -> bool:
        return name in self._pod_requests

    def known_type(self, cpp_name: str) -> KnownType | None:
        """Look up a known type by its C++ spelling.

        Template instantiations match their template (``std::unique_ptr<T>``
        finds ``std::unique_ptr``).
        """
        spelling = cpp_name.strip()
        if spelling.startswith("::"):
            spelling = spelling[2:]
        found = self._known_types.get(spelling)
        if found is not None:
            return found
        base, args = split_template(spelling)
        if args:
            found = self._known_types.get(base)
            if found is not None and found.is_template:
                return found
        return None

    def is_known_type(self, name: QualifiedName | str) -> bool:
        return self.known_type(str(name)) is not None

    def is_utility_name(self, name: QualifiedName) -> bool:
        return name.namespace[: len(UTILITIES_NAMESPACE)] == UTILITIES_NAMESPACE

    def __repr__(self) -> str:
        return (
            f"TypeDatabase(allowlist={sorted(str(n) for n in self._allowlist)!r}, "
            f"pod_requests={sorted(str(n) for n in self._pod_requests)!r})"
        )
