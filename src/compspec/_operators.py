"""Operator vocabulary used when rendering descriptions."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from compspec._types import _operators_override


@dataclass(frozen=True)
class Operators:
    """
    Display tokens for the four logical operators.

    Only descriptions use these; evaluation never looks at them.

    Example:
        c_style = Operators("&&", "||", "!=", "!")
        rule.describe(operators=c_style)  # "(a && b)"
    """

    and_: str = "AND"
    or_: str = "OR"
    xor: str = "XOR"
    not_: str = "NOT"


DEFAULT_OPERATORS = Operators()

_lock = threading.Lock()
_global_operators = DEFAULT_OPERATORS


def set_operators(and_: str, or_: str, xor: str, not_: str) -> None:
    """
    Replace the process-wide operator tokens.

    Takes effect for every later describe() call, including on rules built
    before the change.

    Example:
        set_operators("&&", "||", "!=", "!")
        (a & b).describe()  # "(a && b)"
    """
    global _global_operators
    with _lock:
        _global_operators = Operators(and_, or_, xor, not_)


def reset_operators() -> None:
    """Restore the default AND / OR / XOR / NOT tokens."""
    global _global_operators
    with _lock:
        _global_operators = DEFAULT_OPERATORS


def get_operators() -> Operators:
    """Return the effective vocabulary: the scoped override, else the global one."""
    override = _operators_override.get()
    if override is not None:
        return override
    with _lock:
        return _global_operators


@contextmanager
def use_operators(operators: Operators) -> Iterator[Operators]:
    """
    Context manager that overrides the vocabulary for the current context only.

    The override is held in a ContextVar, so other threads and asyncio tasks
    keep rendering with the global vocabulary.

    Example:
        with use_operators(Operators("&&", "||", "^", "!")):
            print(rule.describe())
    """
    token = _operators_override.set(operators)
    try:
        yield operators
    finally:
        _operators_override.reset(token)
