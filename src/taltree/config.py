"""Engine configuration.

EngineConfig is a frozen dataclass: immutable after creation, shared freely
between renders and threads.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Template engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = EngineConfig(lenient=True, pretty=True)
    """

    # Directives
    namespace: str = "tal"  # Prefix reserved for directive attributes
    slots_key: str = "__slots__"  # Scope key carrying slot content into a base template

    # Attribute synthesis: tal:_href="" removes href instead of emitting href=""
    drop_empty_shorthand: bool = True

    # Parsing
    strip_whitespace: bool = True  # Drop whitespace-only text runs
    lenient: bool = False  # Render a diagnostic comment + raw source on parse failure

    # Output
    pretty: bool = False

    def __post_init__(self) -> None:
        if not self.namespace or ":" in self.namespace:
            from taltree.errors import ConfigurationError

            msg = f"Invalid directive namespace {self.namespace!r}"
            raise ConfigurationError(msg)
