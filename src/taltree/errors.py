"""Taltree exception hierarchy.

Shared across the parser, the directive engine and the template resolvers
so every module raises and catches the same types.
"""


class TaltreeError(Exception):
    """Base for all taltree-specific errors."""


class ConfigurationError(TaltreeError):
    """Raised when the engine is used in a way its setup does not allow.

    Typically a name-based render or ``tal:extends`` with no resolver
    configured, or an async resolver handed to a synchronous render.
    """


class MarkupParseError(TaltreeError):
    """The markup source could not be turned into a document tree.

    ``line`` is the 1-based source line where parsing stopped, when known.
    """

    def __init__(self, detail: str, line: int | None = None) -> None:
        self.detail = detail
        self.line = line
        super().__init__(detail)

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.detail}"
        return self.detail


class TemplateNotFound(TaltreeError):  # noqa: N818
    """The resolver had no source for a template name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Template not found: {name!r}")


class TemplateCycleError(TaltreeError):
    """A template extends itself, directly or through its bases."""

    def __init__(self, chain: tuple[str, ...]) -> None:
        self.chain = chain
        super().__init__("Template inheritance cycle: " + " -> ".join(chain))


class MarkdownNotInstalledError(ConfigurationError):
    """The ``markdown`` modifier was requested but patitas is not installed."""
