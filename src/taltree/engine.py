"""The directive engine: walks a document tree and applies TAL directives.

Each element's directives run in rank order (see ``taltree.directives``):

    extends    render a base template with this element's slots
    define     bind variables for this element and its children
    condition  drop the element when falsy
    repeat     one processed copy per item, wrapped in a fragment
    replace    swap the element for a text leaf
    attributes set or replace attributes
    slot       take the content a child template provided for this slot
    content    replace the children with a text leaf

Rendering is synchronous and depth-first. The async entry points resolve
awaitable context values and the top-level template on the event loop,
then run the same synchronous walk in a worker thread, hopping back to the
loop only when ``extends`` needs the resolver.
"""

import functools
import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from contextlib import ExitStack
from typing import Any

import anyio.from_thread
import anyio.to_thread

from taltree._internal.invoke import invoke, resolve_awaitables
from taltree._internal.types import AsyncTemplateResolver, Context, TemplateResolver
from taltree.config import EngineConfig
from taltree.directives import Directive, DirectiveKind, parse_assignments, parse_directives, parse_repeat
from taltree.document import DocumentTree
from taltree.errors import ConfigurationError, MarkupParseError, TemplateCycleError, TemplateNotFound
from taltree.expressions import evaluate, strip_quotes
from taltree.modifiers import ModifierRegistry
from taltree.nodes import AttributeValue, Element, Node, QName, fragment, text
from taltree.parsing import parse_markup
from taltree.scope import Scope
from taltree.serializer import serialize
from taltree.values import Markup, Value

logger = logging.getLogger("taltree.engine")

_KEEP = object()


def collect_slots(node: Element, namespace: str = "tal") -> dict[str, Element]:
    """Map slot names to the elements that define them under *node*.

    Pre-order, *node* included. A slot definition is taken whole (minus its
    slot attribute) and not searched further. Later duplicates win.
    """
    marker = QName("slot", namespace)
    slots: dict[str, Element] = {}

    def visit(element: Element) -> None:
        attr = element.attribute(marker)
        if attr is not None:
            slots[strip_quotes(attr.value)] = element.remove_attribute(marker)
            return
        for child in element.elements():
            visit(child)

    visit(node)
    return slots


def diagnostic(error: MarkupParseError, source: str) -> str:
    """Comment describing a parse failure, followed by the raw source."""
    detail = str(error).replace("--", "- -")
    return f"<!-- Markup parsing error: {detail} -->\n<!-- Raw content follows: -->\n{source}"


def _bound(value: Value) -> Any:
    # define keeps the raw value unless modifiers turned it into text
    if not value.modifiers:
        return value.raw
    rendered = value.as_string
    return rendered if value.should_escape else Markup(rendered)


def _is_collection(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, Mapping))


def _merge(context: Context | None, values: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(context or {})
    merged.update(values)
    return merged


class _RenderPass:
    """State for one render: resolver access and the extends chain."""

    __slots__ = ("chain", "config", "engine", "resolve")

    def __init__(
        self,
        engine: "TemplateEngine",
        resolve: Callable[[str], str],
        chain: Iterable[str] = (),
    ) -> None:
        self.engine = engine
        self.config = engine.config
        self.resolve = resolve
        self.chain = list(chain)

    def process(self, node: Element, scope: Scope) -> Node | None:
        # Frames pushed by define live until this element's subtree is done
        with ExitStack() as frames:
            return self._process(node, scope, frames)

    def _process(self, node: Element, scope: Scope, frames: ExitStack) -> Node | None:
        namespace = self.config.namespace
        # set once a slot substitution has already processed the subtree
        substituted = False
        for directive in parse_directives(node.attributes, namespace):
            match directive.kind:
                case DirectiveKind.EXTENDS:
                    return self._extends(node, directive, scope)
                case DirectiveKind.DEFINE:
                    bindings = {
                        name: _bound(evaluate(expression, scope))
                        for name, expression in parse_assignments(directive.expression)
                    }
                    if bindings:
                        frames.enter_context(scope.frame(bindings))
                case DirectiveKind.CONDITION:
                    if not evaluate(directive.expression, scope).as_bool:
                        return None
                case DirectiveKind.REPEAT:
                    repeated = self._repeat(node, directive, scope)
                    if repeated is not None:
                        return repeated
                case DirectiveKind.REPLACE:
                    value = evaluate(directive.expression, scope)
                    return text(value.as_string, value.should_escape)
                case DirectiveKind.ATTRIBUTES:
                    node = self._attributes(node, directive, scope)
                case DirectiveKind.SLOT:
                    filled = self._slot(directive, scope)
                    if filled is _KEEP:
                        continue
                    if not isinstance(filled, Element) or filled.is_fragment:
                        return filled
                    node, substituted = filled, True
                case DirectiveKind.CONTENT:
                    value = evaluate(directive.expression, scope)
                    content = text(value.as_string, value.should_escape)
                    return node.with_children((content,)).without_namespace(namespace)

        if substituted:
            return node.without_namespace(namespace)
        children = []
        for child in node.children:
            if isinstance(child, Element):
                processed = self.process(child, scope)
                if processed is not None:
                    children.append(processed)
            else:
                children.append(child)
        return node.with_children(children).without_namespace(namespace)

    def _extends(self, node: Element, directive: Directive, scope: Scope) -> Node | None:
        name = strip_quotes(directive.expression)
        if name in self.chain:
            raise TemplateCycleError((*self.chain, name))
        document = self.engine.parse(self.resolve(name))
        logger.debug("Extending %r", name)

        slots = collect_slots(node, self.config.namespace)
        # A template further down the chain overrides slots of the same name
        outer = scope.resolve(self.config.slots_key)
        if isinstance(outer, Mapping):
            slots.update(outer)

        self.chain.append(name)
        try:
            with scope.frame({self.config.slots_key: slots}):
                return self.process(document.root, scope)
        finally:
            self.chain.pop()

    def _repeat(self, node: Element, directive: Directive, scope: Scope) -> Element | None:
        parsed = parse_repeat(directive.expression)
        if parsed is None:
            logger.debug("Ignoring malformed repeat %r", directive.expression)
            return None
        variable, expression = parsed
        items = evaluate(expression, scope).raw
        if not _is_collection(items):
            logger.debug("Repeat source %r is not a collection; ignoring", expression)
            return None

        template = node.remove_attribute(directive.source)
        results = []
        for index, item in enumerate(items):
            with scope.frame({variable: item, f"{variable}__index": index}):
                processed = self.process(template, scope)
            if processed is not None:
                results.append(processed)
        return fragment(results)

    def _attributes(self, node: Element, directive: Directive, scope: Scope) -> Element:
        node = node.without_namespace(self.config.namespace)

        if directive.target_attribute is not None:
            value = evaluate(directive.expression, scope)
            rendered = value.as_string
            if not rendered and self.config.drop_empty_shorthand:
                return node.remove_attribute(QName.parse(directive.target_attribute))
            attr = AttributeValue(QName.parse(directive.target_attribute), rendered, value.should_escape)
            return node.replace_attribute(attr)

        for name, expression in parse_assignments(directive.expression):
            value = evaluate(expression, scope)
            node = node.replace_attribute(AttributeValue(QName.parse(name), value.as_string, value.should_escape))
        return node

    def _slot(self, directive: Directive, scope: Scope) -> Any:
        slots = scope.resolve(self.config.slots_key)
        name = strip_quotes(directive.expression)
        if not isinstance(slots, Mapping) or name not in slots:
            return _KEEP
        remaining = {key: value for key, value in slots.items() if key != name}
        with scope.frame({self.config.slots_key: remaining}):
            return self.process(slots[name], scope)


class TemplateEngine:
    """Render TAL templates.

    Args:
        resolver: Maps a template name to its markup source (or ``None``).
            Needed by ``render_template`` and by ``tal:extends``.
        modifiers: Registry of custom output modifiers. Each engine gets
            its own empty registry by default.
        config: Engine options, see ``EngineConfig``.

    Usage::

        engine = TemplateEngine(DictResolver({"base.html": BASE}))
        html = engine.render('<p tal:content="name|upper">x</p>', name="ada")
    """

    __slots__ = ("config", "modifiers", "resolver")

    def __init__(
        self,
        resolver: TemplateResolver | AsyncTemplateResolver | None = None,
        *,
        modifiers: ModifierRegistry | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.resolver = resolver
        self.modifiers = modifiers if modifiers is not None else ModifierRegistry()
        self.config = config or EngineConfig()

    # -- Building blocks --

    def new_scope(self, context: Context | None = None) -> Scope:
        return Scope(context, modifiers=self.modifiers)

    def parse(self, markup: str) -> DocumentTree:
        return parse_markup(markup, strip_whitespace=self.config.strip_whitespace)

    def process(self, node: Element, scope: Scope) -> Node | None:
        """Apply directives to *node* and its subtree. ``None`` means removed."""
        return _RenderPass(self, self._resolve).process(node, scope)

    def serialize(self, node: Node | None) -> str:
        return serialize(node, namespace=self.config.namespace, pretty=self.config.pretty)

    # -- Sync entry points --

    def render(self, markup: str, context: Context | None = None, /, **values: Any) -> str:
        """Render a markup string with *context* and keyword bindings."""
        return self._render(markup, _merge(context, values), self._resolve)

    def render_template(self, name: str, context: Context | None = None, /, **values: Any) -> str:
        """Render the template the resolver knows as *name*."""
        source = self._resolve(name)
        return self._render(source, _merge(context, values), self._resolve, name)

    # -- Async entry points --

    async def render_async(self, markup: str, context: Context | None = None, /, **values: Any) -> str:
        """Render a markup string, awaiting any awaitable context values first."""
        resolved = await resolve_awaitables(_merge(context, values))
        job = functools.partial(self._render, markup, resolved, self._resolve_from_thread)
        return await anyio.to_thread.run_sync(job)

    async def render_template_async(
        self, name: str, context: Context | None = None, /, **values: Any
    ) -> str:
        """Render a named template. The resolver may be sync or async."""
        resolved = await resolve_awaitables(_merge(context, values))
        source = await self._resolve_async(name)
        job = functools.partial(self._render, source, resolved, self._resolve_from_thread, name)
        return await anyio.to_thread.run_sync(job)

    # -- Internals --

    def _render(
        self,
        source: str,
        context: Context,
        resolve: Callable[[str], str],
        name: str | None = None,
    ) -> str:
        try:
            document = self.parse(source)
            render_pass = _RenderPass(self, resolve, [name] if name else ())
            result = render_pass.process(document.root, self.new_scope(context))
            return self.serialize(result)
        except MarkupParseError as exc:
            if not self.config.lenient:
                raise
            logger.warning("Rendering %s as raw source: %s", repr(name) if name else "markup", exc)
            return diagnostic(exc, source)

    def _require_resolver(self) -> TemplateResolver | AsyncTemplateResolver:
        if self.resolver is None:
            msg = "TemplateEngine has no resolver; pass one to resolve template names"
            raise ConfigurationError(msg)
        return self.resolver

    def _resolve(self, name: str) -> str:
        source = self._require_resolver()(name)
        if inspect.isawaitable(source):
            if inspect.iscoroutine(source):
                source.close()
            msg = f"Resolver returned an awaitable for {name!r}; use render_async() or render_template_async()"
            raise ConfigurationError(msg)
        if source is None:
            raise TemplateNotFound(name)
        return source

    async def _resolve_async(self, name: str) -> str:
        source = await invoke(self._require_resolver(), name)
        if source is None:
            raise TemplateNotFound(name)
        return source

    def _resolve_from_thread(self, name: str) -> str:
        return anyio.from_thread.run(self._resolve_async, name)
