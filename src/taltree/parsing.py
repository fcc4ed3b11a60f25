"""Tolerant markup parser producing a ``DocumentTree``.

Built on the standard library's ``html.parser`` so undeclared prefixes
(``tal:content``) and HTML habits (void elements, bare attributes,
unclosed ``<li>``) are accepted. ``HTMLParser`` lower-cases names; the
original spelling is recovered from the raw start tag so
``tal:_dataUserId`` keeps its case.
"""

import logging
import re
from html.parser import HTMLParser

from taltree.document import DocumentTree
from taltree.errors import MarkupParseError
from taltree.nodes import AttributeValue, Element, Node, QName, fragment, text

logger = logging.getLogger("taltree.parsing")

VOID_ELEMENTS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

_RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

_TAG_NAME = re.compile(r"<\s*([^\s/>]+)")
_ATTR_NAME = re.compile(
    r"""([^\s/>"'=]+)(?:\s*=\s*(?:"[^"]*"|'[^']*'|[^\s>]*))?"""
)


class _OpenElement:
    __slots__ = ("attributes", "children", "key", "name")

    def __init__(self, name: QName, attributes: tuple[AttributeValue, ...]) -> None:
        self.name = name
        self.key = str(name).lower()
        self.attributes = attributes
        self.children: list[Node] = []

    def close(self) -> Element:
        return Element(self.name, self.attributes, tuple(self.children))


class _TreeBuilder(HTMLParser):
    def __init__(self, *, strip_whitespace: bool) -> None:
        super().__init__(convert_charrefs=True)
        self.strip_whitespace = strip_whitespace
        self.top: list[Node] = []
        self.stack: list[_OpenElement] = []
        self.namespaces: dict[str, str] = {}

    # -- Helpers --

    def _append(self, node: Node) -> None:
        siblings = self.stack[-1].children if self.stack else self.top
        if (
            isinstance(node, AttributeValue)
            and siblings
            and isinstance(siblings[-1], AttributeValue)
            and siblings[-1].should_escape == node.should_escape
        ):
            siblings[-1] = text(siblings[-1].value + node.value, node.should_escape)
            return
        siblings.append(node)

    def _spelled_names(self, tag: str, attrs: list[tuple[str, str | None]]) -> tuple[str, list[str]]:
        """Recover source-cased tag and attribute names from the raw start tag."""
        lowered = [name for name, _ in attrs]
        raw = self.get_starttag_text() or ""
        match = _TAG_NAME.match(raw)
        if match is None or match.group(1).lower() != tag:
            return tag, lowered
        names = [m.group(1) for m in _ATTR_NAME.finditer(raw, match.end())]
        if [name.lower() for name in names] != lowered:
            logger.debug("Could not recover attribute case in %r", raw)
            return match.group(1), lowered
        return match.group(1), names

    def _open(self, tag: str, attrs: list[tuple[str, str | None]]) -> _OpenElement:
        spelled, names = self._spelled_names(tag, attrs)
        attributes = []
        for name, (_, value) in zip(names, attrs, strict=True):
            qname = QName.parse(name)
            if qname.namespace == "xmlns":
                self.namespaces[qname.local] = value or ""
            attributes.append(AttributeValue(qname, value if value is not None else ""))
        return _OpenElement(QName.parse(spelled), tuple(attributes))

    # -- HTMLParser callbacks --

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        element = self._open(tag, attrs)
        if tag in VOID_ELEMENTS:
            self._append(element.close())
        else:
            self.stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._append(self._open(tag, attrs).close())

    def handle_endtag(self, tag: str) -> None:
        if tag in VOID_ELEMENTS:
            return
        for depth in range(len(self.stack) - 1, -1, -1):
            if self.stack[depth].key == tag:
                while len(self.stack) > depth:
                    self._close_top()
                return
        line, _ = self.getpos()
        msg = f"closing tag </{tag}> does not match any open element"
        raise MarkupParseError(msg, line)

    def handle_data(self, data: str) -> None:
        if self.strip_whitespace and not data.strip():
            return
        raw = bool(self.stack) and self.stack[-1].key in _RAW_TEXT_ELEMENTS
        self._append(text(data, should_escape=not raw))

    def unknown_decl(self, data: str) -> None:
        if data.startswith("CDATA["):
            self.handle_data(data[len("CDATA[") :])
        else:
            logger.debug("Dropping declaration <![%s]>", data)

    def handle_comment(self, data: str) -> None:
        logger.debug("Dropping comment")

    def _close_top(self) -> None:
        element = self.stack.pop().close()
        self._append(element)

    def finish(self) -> Element:
        self.close()
        while self.stack:
            logger.debug("Closing unterminated <%s> at end of input", self.stack[-1].name)
            self._close_top()
        if not any(isinstance(node, Element) for node in self.top):
            line, _ = self.getpos()
            msg = "document has no root element"
            raise MarkupParseError(msg, line)
        root = self.top[0]
        if len(self.top) == 1 and isinstance(root, Element):
            return root
        return fragment(self.top)


def parse_markup(source: str, *, strip_whitespace: bool = True) -> DocumentTree:
    """Parse markup text into a document tree.

    Raises ``MarkupParseError`` when the source has no root element or
    closes an element that was never opened.
    """
    builder = _TreeBuilder(strip_whitespace=strip_whitespace)
    builder.feed(source)
    return DocumentTree(builder.finish(), dict(builder.namespaces))
