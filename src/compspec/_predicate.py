"""Leaf rules built from plain functions, and the spec() wrapper."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, Generic, overload

from compspec._core import Satisfiable, Specification, _Leaf
from compspec._operators import Operators
from compspec._token import CancellationToken
from compspec._types import T


def _accepts_token(fn: Callable[..., Any]) -> bool:
    """True if fn declares a parameter named `token`."""
    try:
        return "token" in inspect.signature(fn).parameters
    except (TypeError, ValueError):
        return False


class Predicate(Specification[T]):
    """
    A leaf rule backed by a function of the candidate.

    If the function declares a `token` parameter, the evaluation's
    CancellationToken is passed to it by keyword.

    Example:
        is_recent: Predicate[Doc] = Predicate(
            lambda doc: doc.date > cutoff, "doc must be recent"
        )
        is_recent.is_satisfied_by(doc)  # True / False
    """

    def __init__(self, fn: Callable[..., bool], description: str | None = None):
        self.fn = fn
        self.description = (
            description
            if description is not None
            else getattr(fn, "__name__", "predicate")
        )
        self._wants_token = _accepts_token(fn)

    def _is_satisfied_by(self, candidate: T, token: CancellationToken) -> bool:
        if self._wants_token:
            return bool(self.fn(candidate, token=token))
        return bool(self.fn(candidate))

    def _describe(self, operators: Operators) -> str:
        return self.description

    def __repr__(self) -> str:
        return f"Predicate({self.description!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Predicate):
            return NotImplemented
        return self.fn == other.fn and self.description == other.description

    def __hash__(self) -> int:
        return hash((id(self.fn), self.description))


class PredicateFactory(Generic[T]):
    """
    A factory that creates Predicates when called with arguments.

    Used for parameterized rules like `title_contains("First")`. With a
    description template, the bound arguments are formatted into it:

        PredicateFactory(fn, "title_contains", "doc title must contain '{word}'")
    """

    def __init__(
        self,
        fn: Callable[..., bool],
        name: str,
        description: str | None = None,
    ):
        self._fn = fn
        self._name = name
        self._description = description
        self._signature = inspect.signature(fn)
        self.__name__ = name

    def _render(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
        if self._description is None:
            return f"{self._name}({', '.join(map(repr, args))})"
        # Bind with a placeholder candidate so parameter names line up
        bound = self._signature.bind_partial(None, *args, **kwargs)
        bound.apply_defaults()
        values = dict(list(bound.arguments.items())[1:])
        values.pop("token", None)
        return self._description.format(**values)

    def __call__(self, *args: Any, **kwargs: Any) -> Predicate[T]:
        description = self._render(args, kwargs)
        if "token" in self._signature.parameters:

            def check(ctx: T, token: CancellationToken) -> bool:
                return self._fn(ctx, *args, token=token, **kwargs)

        else:

            def check(ctx: T) -> bool:
                return self._fn(ctx, *args, **kwargs)

        return Predicate(check, description)

    def __repr__(self) -> str:
        return f"PredicateFactory({self._name})"


@overload
def rule(fn: Callable[..., bool], *, description: str | None = None) -> Predicate[Any]: ...


@overload
def rule(
    fn: None = None, *, description: str | None = None
) -> Callable[[Callable[..., bool]], Predicate[Any]]: ...


def rule(
    fn: Callable[..., bool] | None = None, *, description: str | None = None
) -> Predicate[Any] | Callable[[Callable[..., bool]], Predicate[Any]]:
    """
    Decorator to create a simple rule (single candidate argument).

    Example:
        @rule
        def is_published(doc: Doc) -> bool:
            return doc.published

        @rule(description="doc must not be archived")
        def not_archived(doc: Doc) -> bool:
            return not doc.archived

    For parameterized rules, use @rule_args instead.
    """

    def decorator(f: Callable[..., bool]) -> Predicate[Any]:
        return Predicate(f, description)

    if fn is not None:
        return decorator(fn)
    return decorator


@overload
def rule_args(
    fn: Callable[..., bool], *, description: str | None = None
) -> PredicateFactory[Any]: ...


@overload
def rule_args(
    fn: None = None, *, description: str | None = None
) -> Callable[[Callable[..., bool]], PredicateFactory[Any]]: ...


def rule_args(
    fn: Callable[..., bool] | None = None, *, description: str | None = None
) -> PredicateFactory[Any] | Callable[[Callable[..., bool]], PredicateFactory[Any]]:
    """
    Decorator to create a parameterized rule factory.

    Example:
        @rule_args(description="doc title must contain '{word}'")
        def title_contains(doc: Doc, word: str) -> bool:
            return word in doc.title

        r = title_contains("First")  # Returns Predicate
        r.describe()                 # "doc title must contain 'First'"

    For simple rules (single argument), use @rule instead.
    """

    def decorator(f: Callable[..., bool]) -> PredicateFactory[Any]:
        return PredicateFactory(f, f.__name__, description)

    if fn is not None:
        return decorator(fn)
    return decorator


def spec(
    source: Satisfiable[T] | Callable[..., bool], description: str | None = None
) -> Specification[T]:
    """
    Make anything rule-shaped composable.

    - a Specification is returned unchanged
    - an object with is_satisfied_by() and describe() is wrapped
    - a plain function becomes a Predicate

    Example:
        recent = spec(DateLowerThan(cutoff))
        rule = recent & spec(lambda doc: doc.published, "doc must be published")
    """
    if isinstance(source, Specification):
        return source
    if isinstance(source, Satisfiable):
        return _Leaf(source)
    if callable(source):
        return Predicate(source, description)
    raise TypeError(
        f"cannot build a specification from {type(source).__name__}"
    )
