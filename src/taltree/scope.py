"""Variable scope: a stack of binding frames searched innermost first.

A dotted path such as ``"user.posts.0.title"`` is resolved against one
frame at a time. The first frame that resolves the *whole* path wins;
partial matches never combine across frames.

Each segment "dives" one level into the current value:

- mappings look the segment up as a key
- sequences (not strings) take a non-negative in-range integer index
- values implementing ``FieldAccess`` are asked for the field
- other objects expose their public, non-callable attributes
"""

import re
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from taltree.modifiers import ModifierRegistry
from taltree.values import Value


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_INDEX = re.compile(r"[0-9]+")


@runtime_checkable
class FieldAccess(Protocol):
    """Capability for opaque values that expose named fields to templates.

    ``field`` raises ``LookupError`` (usually ``KeyError``) when the value
    has no such field.
    """

    def field(self, name: str) -> Any: ...


def dive(value: Any, segments: Sequence[str]) -> Any:
    """Walk *segments* into *value*. Returns ``MISSING`` on the first miss."""
    for segment in segments:
        if isinstance(value, Mapping):
            if segment not in value:
                return MISSING
            value = value[segment]
        elif (
            isinstance(value, Sequence)
            and not isinstance(value, (str, bytes))
            and _INDEX.fullmatch(segment)
        ):
            index = int(segment)
            if index >= len(value):
                return MISSING
            value = value[index]
        elif isinstance(value, FieldAccess):
            try:
                value = value.field(segment)
            except LookupError:
                return MISSING
        elif segment and not segment.startswith("_"):
            found = getattr(value, segment, MISSING)
            if found is MISSING or callable(found):
                return MISSING
            value = found
        else:
            return MISSING
    return value


class Scope:
    """Stack of variable frames used while rendering one template."""

    __slots__ = ("_frames", "modifiers")

    def __init__(
        self,
        root: Mapping[str, Any] | None = None,
        *,
        modifiers: ModifierRegistry | None = None,
    ) -> None:
        self._frames: list[Mapping[str, Any]] = [dict(root or {})]
        self.modifiers = modifiers if modifiers is not None else ModifierRegistry()

    @property
    def depth(self) -> int:
        return len(self._frames)

    # -- Frames --

    def push(self, frame: Mapping[str, Any]) -> None:
        self._frames.append(frame)

    def pop(self) -> Mapping[str, Any] | None:
        """Drop the innermost frame. The root frame is never popped."""
        if len(self._frames) == 1:
            return None
        return self._frames.pop()

    @contextmanager
    def frame(self, bindings: Mapping[str, Any]) -> Iterator["Scope"]:
        """Push *bindings* for the duration of a ``with`` block."""
        self.push(bindings)
        try:
            yield self
        finally:
            self.pop()

    # -- Resolution --

    def find(self, path: str, default: Any = None) -> Any:
        if not path:
            return default
        segments = path.split(".")
        for frame in reversed(self._frames):
            value = dive(frame, segments)
            if value is not MISSING:
                return value
        return default

    def resolve(self, path: str) -> Any:
        """Value at *path*, or ``None`` when no frame resolves it."""
        return self.find(path)

    def lookup(self, path: str) -> Value:
        return Value(self.resolve(path))

    def evaluate(self, expression: str) -> Value:
        """Evaluate ``path|mod1|mod2`` against this scope."""
        from taltree.expressions import evaluate_pipeline

        return evaluate_pipeline(expression, self)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.find(path, MISSING) is not MISSING
