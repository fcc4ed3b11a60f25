"""``markdown`` output modifier backed by patitas.

    from taltree.markdown import register_markdown_modifier

    register_markdown_modifier(engine.modifiers)

then ``<article tal:content="post.body|markdown">...</article>`` inserts the
rendered HTML unescaped. Needs the ``markdown`` extra
(``pip install taltree[markdown]``).
"""

import logging

from taltree.errors import MarkdownNotInstalledError
from taltree.modifiers import ModifierRegistry, OutputModifier

logger = logging.getLogger("taltree.modifiers")


def markdown_modifier(
    *,
    plugins: list[str] | None = None,
    highlight: bool = False,
    name: str = "markdown",
) -> OutputModifier:
    """Build an escape-suppressing modifier that renders its input as Markdown.

    Args:
        plugins: patitas plugins to enable (default: all).
        highlight: Syntax-highlight fenced code blocks.
        name: Modifier name used in expressions.

    Raises:
        MarkdownNotInstalledError: patitas cannot be imported.
    """
    try:
        from patitas import Markdown
    except ImportError:
        msg = f"The {name!r} modifier needs patitas; install with: pip install taltree[markdown]"
        raise MarkdownNotInstalledError(msg) from None

    to_html = Markdown(plugins=plugins or ["all"], highlight=highlight)

    def render(value: str) -> str:
        return to_html(value) if value else ""

    return OutputModifier(name, render, suppresses_escaping=True)


def register_markdown_modifier(
    registry: ModifierRegistry,
    *,
    plugins: list[str] | None = None,
    highlight: bool = False,
    name: str = "markdown",
) -> OutputModifier:
    """Add a Markdown modifier to *registry* and return it.

    The returned modifier can render outside templates too::

        md = register_markdown_modifier(engine.modifiers)
        html = md.apply("# Hello")
    """
    modifier = markdown_modifier(plugins=plugins, highlight=highlight, name=name)
    registry.register_all({name: modifier})
    logger.debug("Registered Markdown modifier %r", name)
    return modifier
