"""Errors raised by the conversion pipeline.

Every stage either returns its complete output or raises one of these.
Nothing is skipped or partially converted; the first error ends the run.
"""

from __future__ import annotations

__all__ = [
    "ConvertError",
    "MalformedInput",
    "NoContent",
    "UnexpectedOuterItem",
    "SafetyViolation",
    "UnrecognizedDeclaration",
    "GraphInconsistency",
]


class ConvertError(Exception):
    """Base class for all conversion failures."""


class MalformedInput(ConvertError):
    """The input tree does not have the expected wrapping shape."""


class NoContent(MalformedInput):
    """The module, or its root namespace, has no content at all."""

    def __init__(self, detail: str = "bindings module has no content") -> None:
        super().__init__(detail)


class UnexpectedOuterItem(MalformedInput):
    """A top-level item other than the single root namespace was found.

    :param item: Short description of the offending item.
    """

    def __init__(self, item: str) -> None:
        super().__init__(f"unexpected item outside the root namespace: {item}")
        self.item = item


class SafetyViolation(ConvertError):
    """A type requested as pass-by-value failed verification.

    :param type_name: Fully-qualified name of the requested type.
    :param reason: Why the type cannot be passed by value.
    """

    def __init__(self, type_name: str, reason: str) -> None:
        super().__init__(f"type {type_name!r} was requested as by-value but is not safe: {reason}")
        self.type_name = type_name
        self.reason = reason


class UnrecognizedDeclaration(ConvertError):
    """A declaration has a shape the parser does not support.

    :param name: Declaration name, or a placeholder for anonymous items.
    :param kind: Declaration kind (e.g. ``"variable"``).
    :param detail: Optional extra explanation.
    """

    def __init__(self, name: str, kind: str, detail: str | None = None) -> None:
        message = f"unsupported {kind} declaration {name!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.name = name
        self.kind = kind


class GraphInconsistency(ConvertError):
    """An internal invariant of the API graph does not hold."""
