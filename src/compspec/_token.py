"""Cancellation tokens threaded through every evaluation."""

from __future__ import annotations

import threading
import time

_POLL_INTERVAL = 0.05


class Cancelled(Exception):
    """Raised by a leaf that observed a cancelled token."""


class DeadlineExceeded(Cancelled):
    """Raised by a leaf that observed a token whose deadline has passed."""


class CancellationToken:
    """
    A cancellation / deadline signal passed down the whole rule tree.

    Composite rules only forward the token. Leaves that do blocking or slow
    work should call raise_if_cancelled() (or check `cancelled`) themselves.

    Example:
        token = CancellationToken.with_timeout(0.5)
        ok = rule.is_satisfied_by(doc, token)

        @rule
        def remote_lookup(doc, token):
            token.raise_if_cancelled()
            return client.exists(doc.id, timeout=token.remaining())
    """

    def __init__(
        self,
        deadline: float | None = None,
        parent: CancellationToken | None = None,
    ):
        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
        self.deadline = deadline
        self.parent = parent
        self._event = threading.Event()

    @classmethod
    def background(cls) -> CancellationToken:
        """Shared token that is never cancelled and has no deadline."""
        return _BACKGROUND

    @classmethod
    def with_cancel(cls, parent: CancellationToken | None = None) -> CancellationToken:
        """New token that can be cancelled independently of its parent."""
        return cls(parent=parent)

    @classmethod
    def with_timeout(
        cls, seconds: float, parent: CancellationToken | None = None
    ) -> CancellationToken:
        """New token that expires `seconds` from now (or earlier, with its parent)."""
        if seconds < 0:
            raise ValueError(f"timeout must be non-negative, got {seconds}")
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    def cancel(self) -> None:
        """Cancel this token and every token derived from it."""
        if self is _BACKGROUND:
            raise RuntimeError("the background token cannot be cancelled")
        self._event.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        if self._event.is_set() or self.expired:
            return True
        return self.parent is not None and self.parent.cancelled

    def remaining(self) -> float | None:
        """Seconds until the deadline (never negative), or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise DeadlineExceeded or Cancelled if the token is no longer live."""
        if self.expired:
            raise DeadlineExceeded("deadline exceeded")
        if self._event.is_set():
            raise Cancelled("evaluation cancelled")
        if self.parent is not None:
            self.parent.raise_if_cancelled()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until the token is cancelled, it expires, or `timeout` elapses.

        Returns True if the token is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        if self.parent is None:
            self._event.wait(timeout)
            return self.cancelled

        # Parent cancellation does not set our event, so poll in short slices
        end = None if timeout is None else time.monotonic() + timeout
        while not self.cancelled:
            left = None if end is None else end - time.monotonic()
            if left is not None and left <= 0:
                break
            self._event.wait(_POLL_INTERVAL if left is None else min(left, _POLL_INTERVAL))
        return self.cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "live"
        if self.deadline is None:
            return f"CancellationToken({state})"
        return f"CancellationToken({state}, remaining={self.remaining():.3f}s)"


_BACKGROUND = CancellationToken()
