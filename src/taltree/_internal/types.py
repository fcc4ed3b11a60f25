"""Shared type aliases used across taltree modules."""

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeAlias

# Initial variable bindings for a render
Context: TypeAlias = Mapping[str, Any]

# Template name -> markup source, or None when the name is unknown
TemplateResolver: TypeAlias = Callable[[str], str | None]

# Async variant, accepted by the async render entry points only
AsyncTemplateResolver: TypeAlias = Callable[[str], Awaitable[str | None]]
