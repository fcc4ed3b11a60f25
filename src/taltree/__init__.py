"""Taltree: attribute-driven markup templates.

Templates are plain markup annotated with ``tal:`` directives. The engine
parses them into a node tree, applies the directives against your data
and serializes the result.

Basic usage::

    from taltree import TemplateEngine

    engine = TemplateEngine()
    html = engine.render(
        '<ul><li tal:repeat="p in people" tal:content="p.name|upper">x</li></ul>',
        people=[{"name": "Ada"}, {"name": "Linus"}],
    )

Template inheritance (``tal:extends`` + ``tal:slot``) needs a resolver::

    from taltree import DictResolver, TemplateEngine

    engine = TemplateEngine(DictResolver({"base.html": BASE, "page.html": PAGE}))
    html = engine.render_template("page.html", title="Home")

Markdown output (``pip install taltree[markdown]``)::

    from taltree.markdown import register_markdown_modifier
    register_markdown_modifier(engine.modifiers)
"""

__version__ = "0.1.0.dev0"

# Public name -> defining module. Imported on first access.
_LAZY_IMPORTS: dict[str, str] = {
    "TemplateEngine": "taltree.engine",
    "EngineConfig": "taltree.config",
    "Scope": "taltree.scope",
    "FieldAccess": "taltree.scope",
    "Value": "taltree.values",
    "Markup": "taltree.values",
    "OutputModifier": "taltree.modifiers",
    "ModifierRegistry": "taltree.modifiers",
    "QName": "taltree.nodes",
    "AttributeValue": "taltree.nodes",
    "Element": "taltree.nodes",
    "DocumentTree": "taltree.document",
    "parse_markup": "taltree.parsing",
    "serialize": "taltree.serializer",
    "escape": "taltree.serializer",
    "Directive": "taltree.directives",
    "DirectiveKind": "taltree.directives",
    "parse_directives": "taltree.directives",
    "evaluate": "taltree.expressions",
    "DictResolver": "taltree.loaders",
    "FileSystemResolver": "taltree.loaders",
    "ChoiceResolver": "taltree.loaders",
    "LoaderResolver": "taltree.loaders",
    "TaltreeError": "taltree.errors",
    "ConfigurationError": "taltree.errors",
    "MarkupParseError": "taltree.errors",
    "TemplateNotFound": "taltree.errors",
    "TemplateCycleError": "taltree.errors",
}

__all__ = [
    "AttributeValue",
    "ChoiceResolver",
    "ConfigurationError",
    "DictResolver",
    "Directive",
    "DirectiveKind",
    "DocumentTree",
    "Element",
    "EngineConfig",
    "FieldAccess",
    "FileSystemResolver",
    "LoaderResolver",
    "Markup",
    "MarkupParseError",
    "ModifierRegistry",
    "OutputModifier",
    "QName",
    "Scope",
    "TaltreeError",
    "TemplateCycleError",
    "TemplateEngine",
    "TemplateNotFound",
    "Value",
    "escape",
    "evaluate",
    "parse_directives",
    "parse_markup",
    "serialize",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import taltree`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
