"""The template expression language.

Deliberately tiny::

    user.name                    path lookup
    'text' / "text"              string literal
    42 / 3.5 / true / false      number and boolean literals
    title|trim|upper             pipe through output modifiers
    active ? 'on' : 'off'        ternary, branches may pipe or nest

There are no operators, calls or arithmetic. ``?``, ``:`` and ``|``
inside quoted literals are plain characters.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from taltree.values import Value, truthy

if TYPE_CHECKING:
    from taltree.scope import Scope

_INTEGER = re.compile(r"[+-]?\d+")
_FLOAT = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+(?=[eE]))(?:[eE][+-]?\d+)?")
_QUOTES = "'\""


def is_quoted(text: str) -> bool:
    """True when *text* is exactly one quoted literal."""
    return len(text) >= 2 and text[0] in _QUOTES and text.find(text[0], 1) == len(text) - 1


def strip_quotes(text: str) -> str:
    """Remove one layer of matching surrounding quotes, if present."""
    text = text.strip()
    return text[1:-1] if is_quoted(text) else text


def _find_unquoted(text: str, char: str, start: int = 0) -> int:
    quote = None
    for index in range(start, len(text)):
        current = text[index]
        if quote:
            if current == quote:
                quote = None
        elif current in _QUOTES:
            quote = current
        elif current == char:
            return index
    return -1


def split_unquoted(text: str, separator: str) -> list[str]:
    """Split on *separator* wherever it is outside a quoted literal."""
    parts = []
    start = 0
    while (found := _find_unquoted(text, separator, start)) != -1:
        parts.append(text[start:found])
        start = found + 1
    parts.append(text[start:])
    return parts


def split_pipes(expression: str) -> list[str]:
    """Split ``head|mod1|mod2`` into the head and the modifier names."""
    return split_unquoted(expression, "|")


def split_ternary(expression: str) -> tuple[str, str, str] | None:
    """Split ``cond ? a : b`` at the first ``?`` and the first ``:`` after it.

    Returns ``None`` when the expression is not a complete ternary.
    """
    question = _find_unquoted(expression, "?")
    if question == -1:
        return None
    colon = _find_unquoted(expression, ":", question + 1)
    if colon == -1:
        return None
    return (
        expression[:question].strip(),
        expression[question + 1 : colon].strip(),
        expression[colon + 1 :].strip(),
    )


def evaluate_term(term: str, scope: Scope) -> Any:
    """A literal, or the value at a path (``None`` when unresolved)."""
    term = term.strip()
    if not term:
        return None
    if is_quoted(term):
        return term[1:-1]
    if _INTEGER.fullmatch(term):
        return int(term)
    if _FLOAT.fullmatch(term):
        return float(term)
    match term.lower():
        case "true":
            return True
        case "false":
            return False
    return scope.resolve(term)


def evaluate_pipeline(expression: str, scope: Scope) -> Value:
    """Evaluate ``head|mod1|mod2``. Unknown modifier names are dropped."""
    head, *names = split_pipes(expression)
    modifiers = scope.modifiers.resolve_chain(
        name.strip() for name in names if name.strip()
    )
    return Value(evaluate_term(head, scope), modifiers)


def evaluate(expression: str, scope: Scope) -> Value:
    """Evaluate a full expression, ternaries included."""
    expression = expression.strip()
    parts = split_ternary(expression)
    if parts is None:
        return evaluate_pipeline(expression, scope)
    condition, when_true, when_false = parts
    branch = when_true if truthy(evaluate_term(condition, scope)) else when_false
    if is_quoted(branch):
        return Value(branch[1:-1])
    return evaluate(branch, scope)
