"""Turn a processed node tree back into markup text.

Directive attributes never reach the output: anything in the reserved
namespace, and its ``xmlns:`` declaration, is skipped while writing.
Fragments (repeat output, multi-root documents) write their children only.
"""

from taltree.nodes import AttributeValue, Element, Node, QName

_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
})

INDENT = "  "


def escape(value: str) -> str:
    """Escape the five markup-significant characters."""
    return value.translate(_ESCAPES)


def _is_directive(attr: AttributeValue, namespace: str) -> bool:
    name = attr.name
    return name.namespace == namespace or name == QName(namespace, "xmlns")


def _start_tag(element: Element, namespace: str, *, close: bool) -> str:
    parts = [f"<{element.name}"]
    for attr in element.attributes:
        if _is_directive(attr, namespace):
            continue
        value = escape(attr.value) if attr.should_escape else attr.value
        parts.append(f' {attr.name}="{value}"')
    parts.append("/>" if close else ">")
    return "".join(parts)


def _write(node: Node, namespace: str, out: list[str]) -> None:
    if isinstance(node, AttributeValue):
        out.append(escape(node.value) if node.should_escape else node.value)
        return
    if node.is_fragment:
        for child in node.children:
            _write(child, namespace, out)
        return
    if not node.children:
        out.append(_start_tag(node, namespace, close=True))
        return
    out.append(_start_tag(node, namespace, close=False))
    for child in node.children:
        _write(child, namespace, out)
    out.append(f"</{node.name}>")


def _write_pretty(node: Node, namespace: str, level: int, lines: list[str]) -> None:
    pad = INDENT * level
    if isinstance(node, Element) and node.is_fragment:
        for child in node.children:
            _write_pretty(child, namespace, level, lines)
        return
    if isinstance(node, AttributeValue) or node.is_leaf:
        out: list[str] = []
        _write(node, namespace, out)
        lines.append(pad + "".join(out))
        return
    lines.append(pad + _start_tag(node, namespace, close=False))
    for child in node.children:
        _write_pretty(child, namespace, level + 1, lines)
    lines.append(f"{pad}</{node.name}>")


def serialize(node: Node | None, *, namespace: str = "tal", pretty: bool = False) -> str:
    """Serialize *node* to markup. ``None`` (a removed node) is empty output."""
    if node is None:
        return ""
    if pretty:
        lines: list[str] = []
        _write_pretty(node, namespace, 0, lines)
        return "\n".join(lines)
    out: list[str] = []
    _write(node, namespace, out)
    return "".join(out)
