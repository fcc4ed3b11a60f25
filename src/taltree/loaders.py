"""Stock template resolvers.

The engine only needs a callable ``name -> source | None``. File lookup is
delegated to kida's loaders; these classes adapt them and compose::

    resolver = ChoiceResolver([
        DictResolver({"layout.html": LAYOUT}),
        FileSystemResolver(["templates", "components"]),
    ])
    engine = TemplateEngine(resolver)
"""

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from kida import ChoiceLoader, FileSystemLoader
from kida.environment.exceptions import TemplateNotFoundError

from taltree._internal.types import TemplateResolver

logger = logging.getLogger("taltree.loaders")


class DictResolver:
    """Serve templates from an in-memory mapping."""

    __slots__ = ("templates",)

    def __init__(self, templates: Mapping[str, str]) -> None:
        self.templates = dict(templates)

    def __call__(self, name: str) -> str | None:
        return self.templates.get(name)


class LoaderResolver:
    """Resolve names through any kida loader (``get_source(name)``).

    A name the loader does not know resolves to ``None``.
    """

    __slots__ = ("loader",)

    def __init__(self, loader: Any) -> None:
        self.loader = loader

    def __call__(self, name: str) -> str | None:
        try:
            source, _ = self.loader.get_source(name)
        except TemplateNotFoundError:
            logger.debug("Loader has no template %r", name)
            return None
        return source


class FileSystemResolver(LoaderResolver):
    """Read templates from one or more directories, first match wins."""

    __slots__ = ("search_path",)

    def __init__(self, search_path: str | Path | Iterable[str | Path]) -> None:
        if isinstance(search_path, (str, Path)):
            search_path = [search_path]
        self.search_path = tuple(str(directory) for directory in search_path)
        loaders = [FileSystemLoader(directory) for directory in self.search_path]
        super().__init__(loaders[0] if len(loaders) == 1 else ChoiceLoader(loaders))


class ChoiceResolver:
    """Ask several resolvers in order; the first non-``None`` answer wins.

    Unlike kida's ``ChoiceLoader`` this chains plain resolver callables, so
    in-memory mappings and custom functions mix with file resolvers.
    """

    __slots__ = ("resolvers",)

    def __init__(self, resolvers: Iterable[TemplateResolver]) -> None:
        self.resolvers = tuple(resolvers)

    def __call__(self, name: str) -> str | None:
        for resolver in self.resolvers:
            source = resolver(name)
            if source is not None:
                return source
        return None
