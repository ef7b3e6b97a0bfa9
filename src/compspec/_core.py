"""Core specification base class and the composite node variants."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Protocol, runtime_checkable

from compspec._operators import Operators, get_operators
from compspec._token import CancellationToken
from compspec._tracing import _traced_call
from compspec._types import T, T_contra, _trace_hook

# =============================================================================
# Predicate Capability
# =============================================================================


@runtime_checkable
class Satisfiable(Protocol[T_contra]):
    """
    The minimal contract every rule satisfies, leaf or composite.

    Any object with these two methods can be wrapped with spec() and
    combined with other rules; no base class is required.

    Example:
        class TitleContains:
            def __init__(self, word):
                self.word = word

            def is_satisfied_by(self, doc, token):
                return self.word in doc.title

            def describe(self):
                return f"doc title must contain '{self.word}'"
    """

    def is_satisfied_by(self, candidate: T_contra, token: CancellationToken) -> bool:
        """
        Check the candidate. Raise an exception to signal failure.

        Must not mutate the candidate.
        """
        ...

    def describe(self) -> str:
        """Human-readable text for the rule. Must be pure."""
        ...


# =============================================================================
# Core Specification Base
# =============================================================================


class Specification(ABC, Generic[T]):
    """
    Base class for all composable rules.

    Rules combine with methods or operators, always producing a new rule:
        a.and_(b, c)  or  a & b    = all must hold (short-circuits on False)
        a.or_(b, c)   or  a | b    = any must hold (short-circuits on True)
        a.xor(b)      or  a ^ b    = exactly one of the two holds
        a.not_()      or  ~a       = inverse

    Evaluation:
        ok = rule.is_satisfied_by(candidate)            # raises leaf errors
        ok, err = rule.evaluate(candidate, token)       # returns them

    Description:
        rule.describe()                                 # "(a AND (b OR c))"

    Subclasses implement _is_satisfied_by() and _describe().
    """

    is_composite = False

    @abstractmethod
    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        """Internal evaluation - subclasses implement this."""
        ...

    @abstractmethod
    def _describe(self, operators: Operators) -> str:
        """Internal rendering - subclasses implement this."""
        ...

    def _trace_name(self) -> str:
        return self.describe()

    def is_satisfied_by(
        self, candidate: T, token: CancellationToken | None = None
    ) -> bool:
        """
        Check whether the candidate satisfies this rule.

        Exceptions raised by leaves propagate unchanged. If tracing is
        enabled via use_tracing(), the call is traced.
        """
        if token is None:
            token = CancellationToken.background()

        hook = _trace_hook.get()
        if hook is not None:
            return _traced_call(self, candidate, token, hook)

        return bool(self._is_satisfied_by(candidate, token))

    def evaluate(
        self, candidate: T, token: CancellationToken | None = None
    ) -> tuple[bool, Exception | None]:
        """
        Check the candidate and return (satisfied, error).

        The boolean is always False when an error is returned. Any exception
        raised during the check is returned, including one raised by a trace
        hook installed with use_tracing(); use is_satisfied_by() to let it
        propagate instead.
        """
        try:
            return self.is_satisfied_by(candidate, token), None
        except Exception as e:
            return False, e

    def describe(self, operators: Operators | None = None) -> str:
        """
        Render the rule as a fully parenthesized infix string.

        Uses the effective vocabulary (see set_operators() / use_operators())
        unless `operators` is given. Never evaluates anything.
        """
        return self._describe(operators or get_operators())

    # -------------------------------------------------
    # Builders
    # -------------------------------------------------

    def and_(self, other: Satisfiable[T], *more: Satisfiable[T]) -> Specification[T]:
        """All of self, other and more must hold, checked in argument order."""
        return _And((self, _coerce(other), *map(_coerce, more)))

    def or_(self, other: Satisfiable[T], *more: Satisfiable[T]) -> Specification[T]:
        """Any of self, other and more must hold, checked in argument order."""
        return _Or((self, _coerce(other), *map(_coerce, more)))

    def xor(self, other: Satisfiable[T]) -> Specification[T]:
        """Exactly one of self and other must hold."""
        return _Xor(self, _coerce(other))

    def not_(self) -> Specification[T]:
        """Invert this rule."""
        return _Not(self)

    def __and__(self, other: Satisfiable[T]) -> Specification[T]:
        """a & b = check b only if a holds."""
        return self.and_(other)

    def __or__(self, other: Satisfiable[T]) -> Specification[T]:
        """a | b = check b only if a does not hold."""
        return self.or_(other)

    def __xor__(self, other: Satisfiable[T]) -> Specification[T]:
        """a ^ b = check both, hold if exactly one holds."""
        return self.xor(other)

    def __invert__(self) -> Specification[T]:
        """~a = invert."""
        return self.not_()

    def __call__(self, candidate: T, token: CancellationToken | None = None) -> bool:
        """Shorthand for is_satisfied_by()."""
        return self.is_satisfied_by(candidate, token)

    def __str__(self) -> str:
        return self.describe()


def _coerce(other: Any) -> Specification[Any]:
    """Wrap a foreign Satisfiable so it can sit inside a rule tree."""
    if isinstance(other, Specification):
        return other
    if isinstance(other, Satisfiable):
        return _Leaf(other)
    raise TypeError(
        f"expected a Satisfiable (is_satisfied_by + describe), got {type(other).__name__}"
    )


# =============================================================================
# Composite Nodes
# =============================================================================


@dataclass(frozen=True)
class _Leaf(Specification[T]):
    """Adapter for objects that satisfy the protocol without subclassing."""

    inner: Satisfiable[T]

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        return bool(self.inner.is_satisfied_by(candidate, token))

    def _describe(self, operators: Operators) -> str:
        return self.inner.describe()

    def __repr__(self) -> str:
        return f"Leaf({self.inner!r})"


@dataclass(frozen=True)
class _And(Specification[T]):
    children: tuple[Specification[T], ...]

    is_composite = True

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        for child in self.children:
            if not child.is_satisfied_by(candidate, token):
                return False
        return True

    def _describe(self, operators: Operators) -> str:
        joined = f" {operators.and_} ".join(
            child._describe(operators) for child in self.children
        )
        return f"({joined})"

    def _trace_name(self) -> str:
        return "AND"

    def __repr__(self) -> str:
        return f"And({', '.join(map(repr, self.children))})"


@dataclass(frozen=True)
class _Or(Specification[T]):
    children: tuple[Specification[T], ...]

    is_composite = True

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        for child in self.children:
            if child.is_satisfied_by(candidate, token):
                return True
        return False

    def _describe(self, operators: Operators) -> str:
        joined = f" {operators.or_} ".join(
            child._describe(operators) for child in self.children
        )
        return f"({joined})"

    def _trace_name(self) -> str:
        return "OR"

    def __repr__(self) -> str:
        return f"Or({', '.join(map(repr, self.children))})"


@dataclass(frozen=True)
class _Xor(Specification[T]):
    left: Specification[T]
    right: Specification[T]

    is_composite = True

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        # Both sides are always needed; a left error stops before right runs
        left = self.left.is_satisfied_by(candidate, token)
        right = self.right.is_satisfied_by(candidate, token)
        return bool(left) != bool(right)

    def _describe(self, operators: Operators) -> str:
        return (
            f"({self.left._describe(operators)} {operators.xor} "
            f"{self.right._describe(operators)})"
        )

    def _trace_name(self) -> str:
        return "XOR"

    def __repr__(self) -> str:
        return f"Xor({self.left!r}, {self.right!r})"


@dataclass(frozen=True)
class _Not(Specification[T]):
    inner: Specification[T]

    is_composite = True

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        return not self.inner.is_satisfied_by(candidate, token)

    def _describe(self, operators: Operators) -> str:
        return f"{operators.not_}({self.inner._describe(operators)})"

    def _trace_name(self) -> str:
        return "NOT"

    def __repr__(self) -> str:
        return f"Not({self.inner!r})"
