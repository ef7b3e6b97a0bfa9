"""Tests for CancellationToken and cancellation inside rule trees."""

from __future__ import annotations

import threading
import time

import pytest

from compspec import (
    CancellationToken,
    Cancelled,
    DeadlineExceeded,
    Predicate,
    rule,
)

# ---------------------------------------------------------------------------
# Token behaviour
# ---------------------------------------------------------------------------


class TestCancellationToken:
    def test_background_is_shared_and_live(self):
        token = CancellationToken.background()
        assert token is CancellationToken.background()
        assert token.cancelled is False
        assert token.deadline is None
        assert token.remaining() is None
        token.raise_if_cancelled()

    def test_background_cannot_be_cancelled(self):
        with pytest.raises(RuntimeError):
            CancellationToken.background().cancel()

    def test_cancel(self):
        token = CancellationToken.with_cancel()
        assert token.cancelled is False
        token.cancel()
        assert token.cancelled is True
        with pytest.raises(Cancelled):
            token.raise_if_cancelled()

    def test_child_observes_parent(self):
        parent = CancellationToken.with_cancel()
        child = CancellationToken.with_cancel(parent)
        parent.cancel()
        assert child.cancelled is True
        with pytest.raises(Cancelled):
            child.raise_if_cancelled()

    def test_parent_does_not_observe_child(self):
        parent = CancellationToken.with_cancel()
        child = CancellationToken.with_cancel(parent)
        child.cancel()
        assert parent.cancelled is False

    def test_timeout_expires(self):
        token = CancellationToken.with_timeout(0)
        assert token.cancelled is True
        assert token.remaining() == 0.0
        with pytest.raises(DeadlineExceeded):
            token.raise_if_cancelled()

    def test_deadline_exceeded_is_cancelled(self):
        assert issubclass(DeadlineExceeded, Cancelled)

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValueError):
            CancellationToken.with_timeout(-1)

    def test_child_inherits_earlier_deadline(self):
        parent = CancellationToken.with_timeout(1)
        child = CancellationToken.with_timeout(60, parent)
        assert child.deadline == parent.deadline

    def test_child_keeps_own_earlier_deadline(self):
        parent = CancellationToken.with_timeout(60)
        child = CancellationToken.with_timeout(1, parent)
        assert child.deadline < parent.deadline

    def test_wait_returns_when_cancelled_from_other_thread(self):
        token = CancellationToken.with_cancel()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(5) is True
        finally:
            timer.cancel()

    def test_wait_observes_parent(self):
        parent = CancellationToken.with_cancel()
        child = CancellationToken.with_cancel(parent)
        timer = threading.Timer(0.05, parent.cancel)
        timer.start()
        try:
            assert child.wait(5) is True
        finally:
            timer.cancel()

    def test_wait_times_out(self):
        token = CancellationToken.with_cancel()
        start = time.monotonic()
        assert token.wait(0.05) is False
        assert time.monotonic() - start >= 0.04

    def test_repr(self):
        assert "live" in repr(CancellationToken.with_cancel())
        assert "remaining" in repr(CancellationToken.with_timeout(10))


# ---------------------------------------------------------------------------
# Tokens inside rule trees
# ---------------------------------------------------------------------------


class TestCancellationInRules:
    def test_token_reaches_every_leaf(self):
        seen = []

        def leaf(value):
            return Predicate(lambda _, token: seen.append(token) or value)

        token = CancellationToken.with_cancel()
        tree = (leaf(True) & leaf(True)) ^ ~leaf(False)
        tree.is_satisfied_by("doc", token)
        assert seen == [token, token, token]

    def test_leaf_observing_cancellation_aborts_tree(self):
        @rule
        def slow_lookup(doc, token):
            token.raise_if_cancelled()
            return True

        after = []
        tail = Predicate(lambda _: after.append(1) or True, "tail")
        token = CancellationToken.with_cancel()
        token.cancel()

        ok, err = (slow_lookup & tail).evaluate("doc", token)
        assert ok is False
        assert isinstance(err, Cancelled)
        assert after == []

    def test_composites_do_not_check_the_token(self):
        token = CancellationToken.with_cancel()
        token.cancel()
        tree = Predicate(lambda _: True, "a") & Predicate(lambda _: True, "b")
        assert tree.evaluate("doc", token) == (True, None)
