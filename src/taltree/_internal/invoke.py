"""Invoke helpers: call sync or async resolvers uniformly.

Template resolvers can be ``def`` or ``async def``. The async render entry
points accept both, so the sync/async check lives here.

Usage::

    from taltree._internal.invoke import invoke

    source = await invoke(resolver, "base.html")
"""

import inspect
from collections.abc import Mapping
from typing import Any

import anyio


async def invoke(fn: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *fn* and await the result if it is awaitable."""
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def resolve_awaitables(context: Mapping[str, Any]) -> dict[str, Any]:
    """Copy *context* with every awaitable value replaced by its result.

    The awaitables run concurrently in one task group. A failure cancels
    the others and is raised from the group.
    """
    resolved = dict(context)
    pending = [key for key, value in resolved.items() if inspect.isawaitable(value)]
    if pending:
        async with anyio.create_task_group() as tg:
            for key in pending:
                tg.start_soon(_settle, resolved, key)
    return resolved


async def _settle(values: dict[str, Any], key: str) -> None:
    values[key] = await values[key]
