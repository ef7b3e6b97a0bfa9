"""
Compspec - Composable Specification Combinators

A Python library implementing the Specification pattern: small, reusable
rules over a candidate value combine into boolean expression trees that can
be checked, combined further, and described in plain text.

Operators:
    &  = and  (short-circuits on False)
    |  = or   (short-circuits on True)
    ^  = xor  (checks both, true if exactly one holds)
    ~  = not

Example:
    from compspec import rule, rule_args

    @rule_args(description="doc title must contain '{word}'")
    def title_contains(doc, word):
        return word in doc.title

    @rule_args(description="doc content must contain '{word}'")
    def content_contains(doc, word):
        return word in doc.content

    first = title_contains("First") & content_contains("First")
    third = title_contains("Third") & content_contains("Third")
    matches = first | third

    matches.is_satisfied_by(doc)   # True / False
    matches.evaluate(doc)          # (True / False, error or None)
    matches.describe()
    # ((doc title must contain 'First' AND doc content must contain 'First')
    #  OR (doc title must contain 'Third' AND doc content must contain 'Third'))
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    # Core
    "Satisfiable",
    "Specification",
    "Predicate",
    "PredicateFactory",
    "spec",
    # Decorators
    "rule",
    "rule_args",
    # Operator vocabulary
    "Operators",
    "DEFAULT_OPERATORS",
    "set_operators",
    "reset_operators",
    "get_operators",
    "use_operators",
    # Cancellation
    "CancellationToken",
    "Cancelled",
    "DeadlineExceeded",
    # Tracing
    "TraceHook",
    "TraceConfig",
    "use_tracing",
    "run_traced",
    "PrintHook",
    "LoggingHook",
    "OpenTelemetryHook",
    # Explanation
    "explain",
]

from compspec._core import Satisfiable, Specification
from compspec._explain import explain
from compspec._operators import (
    DEFAULT_OPERATORS,
    Operators,
    get_operators,
    reset_operators,
    set_operators,
    use_operators,
)
from compspec._predicate import Predicate, PredicateFactory, rule, rule_args, spec
from compspec._token import CancellationToken, Cancelled, DeadlineExceeded
from compspec._tracing import (
    LoggingHook,
    OpenTelemetryHook,
    PrintHook,
    TraceConfig,
    TraceHook,
    run_traced,
    use_tracing,
)
