"""Evaluated values: a raw context value plus the output modifiers to apply.

Truthiness and stringification follow template conventions rather than
Python's: ``"false"`` and ``"0"`` are falsy, empty lists are truthy, and
``True`` renders as ``true``.

Safe markup is kida's ``Markup``; any object with ``__html__`` (markupsafe
included) is trusted the same way and never escaped again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from numbers import Number
from typing import TYPE_CHECKING, Any

from kida.template import Markup

if TYPE_CHECKING:
    from taltree.modifiers import OutputModifier

ISO8601 = "%Y-%m-%dT%H:%M:%SZ"


def is_safe(raw: Any) -> bool:
    return hasattr(raw, "__html__")


def stringify(raw: Any) -> str:
    """Render a context value as text, before any modifiers."""
    match raw:
        case None:
            return ""
        case _ if is_safe(raw):
            return str(raw.__html__())
        case str():
            return raw
        case bool():
            return "true" if raw else "false"
        case float() if raw.is_integer():
            return str(int(raw))
        case datetime():
            if raw.tzinfo is None:
                raw = raw.replace(tzinfo=timezone.utc)
            return raw.astimezone(timezone.utc).strftime(ISO8601)
        case date():
            return raw.isoformat()
        case list() | tuple():
            return ",".join(stringify(item) for item in raw)
        case _:
            return str(raw)


def truthy(raw: Any) -> bool:
    match raw:
        case None:
            return False
        case bool():
            return raw
        case Number():
            return raw != 0
        case str():
            return not (raw == "" or raw == "0" or raw.lower() == "false")
        case _:
            return True


@dataclass(frozen=True, slots=True)
class Value:
    """Result of evaluating an expression against a scope."""

    raw: Any = None
    modifiers: tuple[OutputModifier, ...] = ()

    @property
    def as_bool(self) -> bool:
        return truthy(self.raw)

    @property
    def as_string(self) -> str:
        result = stringify(self.raw)
        for modifier in self.modifiers:
            result = modifier.apply(result)
        return result

    @property
    def should_escape(self) -> bool:
        if is_safe(self.raw):
            return False
        return not any(modifier.suppresses_escaping for modifier in self.modifiers)

    def __str__(self) -> str:
        return self.as_string
