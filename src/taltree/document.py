"""DocumentTree: a parsed document root plus its namespace declarations."""

from __future__ import annotations

from dataclasses import dataclass, field

from taltree.nodes import Element, QName


@dataclass(frozen=True, slots=True)
class DocumentTree:
    """A parsed markup document.

    ``namespaces`` maps the prefixes declared with ``xmlns:prefix`` to
    their URIs. Directive prefixes do not need to be declared.
    """

    root: Element
    namespaces: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_markup(cls, source: str, *, strip_whitespace: bool = True) -> DocumentTree:
        from taltree.parsing import parse_markup

        return parse_markup(source, strip_whitespace=strip_whitespace)

    @property
    def name(self) -> QName:
        return self.root.name

    def to_markup(self, *, namespace: str = "tal", pretty: bool = False) -> str:
        from taltree.serializer import serialize

        return serialize(self.root, namespace=namespace, pretty=pretty)
