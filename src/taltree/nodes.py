"""Generic markup node model.

A document is a tree of ``Element`` nodes whose leaves are
``AttributeValue`` runs of text. Elements are immutable: every helper
returns a new node, so a parsed tree can be transformed by the engine
without disturbing the source tree it came from.

The model knows nothing about directives beyond "drop the attributes of
one namespace"; interpretation lives in ``taltree.engine``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import ClassVar, TypeAlias


@dataclass(frozen=True, slots=True)
class QName:
    """A qualified name: optional namespace prefix plus local name."""

    local: str
    namespace: str | None = None

    NEVER: ClassVar[QName]
    TEXT: ClassVar[QName]
    FRAGMENT: ClassVar[QName]

    @classmethod
    def parse(cls, text: str) -> QName:
        """Split ``"ns:local"``; any other shape is a bare local name."""
        parts = text.split(":")
        if len(parts) == 2:
            return cls(parts[1], parts[0])
        return cls(text)

    def matches(self, text: str) -> bool:
        return bool(text) and text == str(self)

    def __str__(self) -> str:
        if self.namespace is not None:
            return f"{self.namespace}:{self.local}"
        return self.local


QName.NEVER = QName("")
QName.TEXT = QName("text")
QName.FRAGMENT = QName("#fragment")


def _as_qname(name: str | QName) -> QName:
    return name if isinstance(name, QName) else QName.parse(name)


@dataclass(frozen=True, slots=True, eq=False)
class AttributeValue:
    """A tag attribute, or a run of text when used as a child node.

    Two values are equal when their names are, so an attribute can be
    located and replaced by name regardless of its current content.
    """

    name: QName
    value: str = ""
    should_escape: bool = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeValue):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    @property
    def is_text(self) -> bool:
        return self.name == QName.TEXT


@dataclass(frozen=True, slots=True)
class Element:
    """A named node with ordered attributes and ordered children."""

    name: QName
    attributes: tuple[AttributeValue, ...] = ()
    children: tuple[Node, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, tuple):
            object.__setattr__(self, "attributes", tuple(self.attributes))
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    # -- Queries --

    @property
    def is_leaf(self) -> bool:
        """True when no child is an element (text children allowed)."""
        return not any(isinstance(child, Element) for child in self.children)

    @property
    def is_fragment(self) -> bool:
        return self.name == QName.FRAGMENT

    def attribute(self, name: str | QName) -> AttributeValue | None:
        qname = _as_qname(name)
        for attr in self.attributes:
            if attr.name == qname:
                return attr
        return None

    def elements(self) -> Iterator[Element]:
        for child in self.children:
            if isinstance(child, Element):
                yield child

    # -- Derived copies --

    def remove_attribute(self, name: str | QName) -> Element:
        """Drop the first attribute called *name*. Absent names are a no-op."""
        qname = _as_qname(name)
        for index, attr in enumerate(self.attributes):
            if attr.name == qname:
                remaining = self.attributes[:index] + self.attributes[index + 1 :]
                return Element(self.name, remaining, self.children)
        return self

    def replace_attribute(self, attr: AttributeValue) -> Element:
        """Swap the first same-named attribute for *attr*, or append it."""
        attributes = list(self.attributes)
        for index, existing in enumerate(attributes):
            if existing == attr:
                attributes[index] = attr
                break
        else:
            attributes.append(attr)
        return Element(self.name, tuple(attributes), self.children)

    def without_namespace(self, namespace: str) -> Element:
        """Drop every attribute in *namespace* plus its ``xmlns:`` declaration."""
        declaration = QName(namespace, "xmlns")
        kept = tuple(
            attr
            for attr in self.attributes
            if attr.name.namespace != namespace and attr.name != declaration
        )
        if len(kept) == len(self.attributes):
            return self
        return Element(self.name, kept, self.children)

    def with_children(self, children: Iterable[Node]) -> Element:
        return Element(self.name, self.attributes, tuple(children))


Node: TypeAlias = Element | AttributeValue


def text(value: str, should_escape: bool = True) -> AttributeValue:
    """Build a text leaf."""
    return AttributeValue(QName.TEXT, value, should_escape)


def fragment(children: Iterable[Node]) -> Element:
    """Build a nameless container that serializes as its children."""
    return Element(QName.FRAGMENT, (), tuple(children))
