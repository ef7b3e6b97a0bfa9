"""
Example: Filtering documents with composed specifications

Shows the three ways to write leaf rules (protocol objects, Specification
subclasses, decorated functions), how to combine them, and how to check,
describe, explain and trace the result.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from compspec import (
    CancellationToken,
    LoggingHook,
    Operators,
    Specification,
    explain,
    rule,
    rule_args,
    spec,
    use_operators,
    use_tracing,
)

# =============================================================================
# Domain model
# =============================================================================


@dataclass(frozen=True)
class Document:
    title: str
    content: str
    date: datetime
    archived: bool = False


# =============================================================================
# 1. Leaf rules
# =============================================================================


class TitleContainsWord:
    """Any object with is_satisfied_by() and describe() can take part."""

    def __init__(self, word: str):
        self.word = word

    def is_satisfied_by(self, doc: Document, token: CancellationToken) -> bool:
        return self.word in doc.title

    def describe(self) -> str:
        return f"doc title must contain '{self.word}'"


class DateLowerThan(Specification[Document]):
    """Subclassing Specification gives the combinators directly."""

    def __init__(self, date: datetime):
        self.date = date

    def _is_satisfied_by(self, doc, token):
        return doc.date < self.date

    def _describe(self, operators):
        return f"doc date must be lower than '{self.date:%Y-%m-%dT%H:%M:%SZ}'"


@rule_args(description="doc content must contain '{word}'")
def content_contains(doc: Document, word: str) -> bool:
    return word in doc.content


@rule(description="doc must be archived")
def is_archived(doc: Document) -> bool:
    return doc.archived


# =============================================================================
# 2. Composition
# =============================================================================

DATE = datetime(2023, 6, 27, 20, 56, tzinfo=timezone.utc)
CUTOFF = datetime(2023, 6, 27, 23, 0, tzinfo=timezone.utc)

first = spec(TitleContainsWord("First")) & content_contains("First")
third = spec(TitleContainsWord("Third")) & content_contains("Third")

recent_matches = DateLowerThan(CUTOFF).and_(first.or_(third))
visible = recent_matches & ~is_archived


def main() -> None:
    docs = [
        Document("First title", "First doc content", DATE),
        Document("Second title", "Second doc content", DATE + timedelta(hours=1)),
        Document("Third title", "Third doc content", DATE + timedelta(hours=2), True),
        Document("Fourth title", "Fourth doc content", DATE + timedelta(hours=3)),
    ]

    print("recent_matches:", recent_matches.describe())
    for doc in docs:
        print(f"  {doc.title:<13} {recent_matches.is_satisfied_by(doc)}")

    # 3. Errors come back as values with evaluate()
    token = CancellationToken.with_timeout(1.0)
    for doc in docs:
        ok, err = visible.evaluate(doc, token)
        print(f"  visible({doc.title}) = {ok} (error={err})")

    # 4. Rendering
    with use_operators(Operators("&&", "||", "^", "!")):
        print("C-style:", visible.describe())
    print(explain(visible))

    # 5. Tracing through the standard logging module
    logging.basicConfig(level=logging.DEBUG, format="%(message)s")
    with use_tracing(LoggingHook(logging.getLogger("documents"))):
        visible.is_satisfied_by(docs[0])


if __name__ == "__main__":
    main()
