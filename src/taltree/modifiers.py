"""Output modifiers: the named string transforms used in ``expr|name`` pipes.

Built-in modifiers are always present and always win a name clash.
Custom modifiers live in a per-engine ``ModifierRegistry``.

Free-threading safety:
    - OutputModifier is a frozen dataclass (immutable, safe to share)
    - ModifierRegistry publishes an immutable mapping; writers swap it under
      a Lock, readers never lock and never see a half-applied update
"""

import logging
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

logger = logging.getLogger("taltree.modifiers")

Transform = Callable[[str], str]


@dataclass(frozen=True, slots=True)
class OutputModifier:
    """A named string transform applied to an evaluated value."""

    name: str
    transform: Transform
    suppresses_escaping: bool = False

    def apply(self, value: str) -> str:
        return self.transform(value)


_WORD = re.compile(r"\S+")


def capitalize(value: str) -> str:
    """Upper-case the first letter of each word, lower-case the rest."""
    return _WORD.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), value)


BUILTIN_MODIFIERS: Mapping[str, OutputModifier] = MappingProxyType({
    "raw": OutputModifier("raw", lambda value: value, suppresses_escaping=True),
    "upper": OutputModifier("upper", str.upper),
    "lower": OutputModifier("lower", str.lower),
    "trim": OutputModifier("trim", str.strip),
    "capitalize": OutputModifier("capitalize", capitalize),
})


class ModifierRegistry:
    """Lookup table for output modifiers: built-ins first, then custom ones.

    ``register`` doubles as a decorator::

        registry = ModifierRegistry()

        @registry.register("shout")
        def shout(value: str) -> str:
            return value.upper() + "!"
    """

    __slots__ = ("_custom", "_lock")

    def __init__(self, custom: Mapping[str, Transform | OutputModifier] | None = None) -> None:
        self._lock = threading.Lock()
        self._custom: Mapping[str, OutputModifier] = MappingProxyType({})
        if custom:
            self.register_all(custom)

    # -- Writes --

    def register(
        self,
        name: str,
        transform: Transform | None = None,
        *,
        suppresses_escaping: bool = False,
    ) -> Callable[[Transform], Transform] | Transform:
        """Add or overwrite a custom modifier.

        Called without *transform*, returns a decorator.
        """
        if transform is None:

            def decorator(fn: Transform) -> Transform:
                self.register(name, fn, suppresses_escaping=suppresses_escaping)
                return fn

            return decorator

        self._publish({name: OutputModifier(name, transform, suppresses_escaping)})
        return transform

    def register_all(self, modifiers: Mapping[str, Transform | OutputModifier]) -> None:
        """Register several modifiers in one atomic update."""
        batch = {
            name: entry if isinstance(entry, OutputModifier) else OutputModifier(name, entry)
            for name, entry in modifiers.items()
        }
        self._publish(batch)

    def unregister(self, name: str) -> bool:
        """Remove a custom modifier. Built-ins cannot be removed."""
        with self._lock:
            if name not in self._custom:
                return False
            updated = dict(self._custom)
            del updated[name]
            self._custom = MappingProxyType(updated)
        return True

    def clear_custom(self) -> None:
        with self._lock:
            self._custom = MappingProxyType({})

    def _publish(self, batch: dict[str, OutputModifier]) -> None:
        for name in batch:
            if name in BUILTIN_MODIFIERS:
                logger.warning("Modifier %r is built in; the custom registration is shadowed", name)
        with self._lock:
            self._custom = MappingProxyType({**self._custom, **batch})

    # -- Reads --

    def lookup(self, name: str) -> OutputModifier | None:
        builtin = BUILTIN_MODIFIERS.get(name)
        if builtin is not None:
            return builtin
        return self._custom.get(name)

    def resolve_chain(self, names: Iterable[str]) -> tuple[OutputModifier, ...]:
        """Look up each name in order, dropping the ones that are unknown."""
        chain = []
        for name in names:
            modifier = self.lookup(name)
            if modifier is None:
                logger.debug("Unknown modifier %r dropped", name)
                continue
            chain.append(modifier)
        return tuple(chain)

    def names(self) -> frozenset[str]:
        return frozenset(BUILTIN_MODIFIERS) | frozenset(self._custom)

    def __contains__(self, name: object) -> bool:
        return name in BUILTIN_MODIFIERS or name in self._custom

    def __len__(self) -> int:
        return len(self.names())
