"""Directive recognition and ordering.

A directive is an attribute in the reserved namespace (``tal`` unless
configured otherwise) whose local name is a keyword, or the shorthand
``tal:_name`` which sets the single attribute ``name``::

    <a tal:condition="user" tal:_href="user.url" tal:content="user.name">

Directives on one element run in fixed rank order, highest first. Equal
ranks keep their declaration order.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from taltree.expressions import split_unquoted
from taltree.nodes import AttributeValue, QName


class DirectiveKind(Enum):
    EXTENDS = "extends"
    DEFINE = "define"
    CONDITION = "condition"
    REPEAT = "repeat"
    REPLACE = "replace"
    ATTRIBUTES = "attributes"
    SLOT = "slot"
    CONTENT = "content"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {
    DirectiveKind.EXTENDS: 10,
    DirectiveKind.DEFINE: 9,
    DirectiveKind.CONDITION: 4,
    DirectiveKind.REPEAT: 3,
    DirectiveKind.REPLACE: 2,
    DirectiveKind.ATTRIBUTES: 1,
    DirectiveKind.SLOT: 1,
    DirectiveKind.CONTENT: 0,
}


@dataclass(frozen=True, slots=True)
class Directive:
    """One recognized directive attribute.

    ``arguments`` are the attribute value split on single spaces, so
    ``expression`` rebuilds the value exactly. ``target_attribute`` is set
    only for the ``_name`` shorthand. ``source`` is the attribute's own name,
    used to strip it from clones.
    """

    kind: DirectiveKind
    arguments: tuple[str, ...]
    source: QName
    target_attribute: str | None = None

    @property
    def rank(self) -> int:
        return self.kind.rank

    @property
    def expression(self) -> str:
        return " ".join(self.arguments)

    def __getitem__(self, index: int) -> str:
        """Argument at *index*, or ``""`` when out of range."""
        if -len(self.arguments) <= index < len(self.arguments):
            return self.arguments[index]
        return ""

    @classmethod
    def from_attribute(cls, attr: AttributeValue, namespace: str = "tal") -> "Directive | None":
        name = attr.name
        if name.namespace != namespace:
            return None
        arguments = tuple(attr.value.split(" "))
        try:
            kind = DirectiveKind(name.local.lower())
        except ValueError:
            if len(name.local) > 1 and name.local.startswith("_"):
                return cls(DirectiveKind.ATTRIBUTES, arguments, name, name.local[1:])
            return None
        return cls(kind, arguments, name)


def parse_directives(attributes: Iterable[AttributeValue], namespace: str = "tal") -> list[Directive]:
    """Recognize the directives among *attributes*, highest rank first."""
    found = []
    for attr in attributes:
        directive = Directive.from_attribute(attr, namespace)
        if directive is not None:
            found.append(directive)
    # sorted() is stable: equal ranks stay in declaration order
    return sorted(found, key=lambda directive: -directive.rank)


def parse_assignments(text: str) -> Iterator[tuple[str, str]]:
    """Yield ``(name, expression)`` pairs from ``"a expr; b expr2"``.

    Clauses without both a name and an expression are skipped.
    """
    for clause in split_unquoted(text, ";"):
        parts = clause.split(None, 1)
        if len(parts) == 2:
            yield parts[0], parts[1].strip()


def parse_repeat(text: str) -> tuple[str, str] | None:
    """Split ``"item in items"`` (or the older ``"item items"``) into its parts."""
    parts = text.split(None, 1)
    if len(parts) != 2:
        return None
    variable, rest = parts
    keyword, _, expression = rest.partition(" ")
    if keyword == "in" and expression.strip():
        return variable, expression.strip()
    return variable, rest.strip()
