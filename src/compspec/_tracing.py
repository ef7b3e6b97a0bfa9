"""Tracing hooks for observing rule evaluation."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from compspec._types import T, _trace_config, _trace_depth, _trace_hook

if TYPE_CHECKING:
    from compspec._core import Specification
    from compspec._token import CancellationToken

# Optional OpenTelemetry imports - only needed if using OpenTelemetryHook
try:
    from opentelemetry.trace import Status as _Status
    from opentelemetry.trace import StatusCode as _StatusCode
    from opentelemetry.trace import set_span_in_context as _set_span_in_context

    _HAS_OPENTELEMETRY = True
except ImportError:
    _HAS_OPENTELEMETRY = False
    _Status = None
    _StatusCode = None
    _set_span_in_context = None


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for trace hooks.

    Implement this to integrate with logging, OpenTelemetry, or other
    tracing systems.

    Example:
        class MyHook:
            def on_enter(self, name, candidate, depth):
                print(f"{'  ' * depth}-> {name}")
                return None  # span token

            def on_exit(self, span, name, ok, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} {ok} ({duration_ms:.2f}ms)")

            def on_error(self, span, name, error, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} ERROR: {error}")
    """

    def on_enter(self, name: str, candidate: Any, depth: int) -> Any:
        """
        Called before a rule is checked.

        Args:
            name: AND / OR / XOR / NOT for composites, the description for leaves
            candidate: The candidate being checked
            depth: Nesting depth (0 = root)

        Returns:
            Span token to pass to on_exit (can be None)
        """
        ...

    def on_exit(
        self, span: Any, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        """Called after a rule returns a result."""
        ...

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        """Called if a rule raises. The error is re-raised afterwards."""
        ...


@dataclass
class TraceConfig:
    """
    Configuration for tracing behavior.

    Attributes:
        nested: If True, trace child rules (AND, OR, XOR, NOT children)
        max_depth: Maximum depth to trace (None = unlimited)
        include_leaf_only: If True, only report leaf rules
    """

    nested: bool = True
    max_depth: int | None = None
    include_leaf_only: bool = False


@contextmanager
def use_tracing(hook: TraceHook, config: TraceConfig | None = None) -> Iterator[None]:
    """
    Context manager to enable tracing for all rule checks in scope.

    Example:
        with use_tracing(LoggingHook(logger)):
            rule.is_satisfied_by(doc)  # This will be traced

        with use_tracing(PrintHook(), TraceConfig(max_depth=2)):
            complex_rule.is_satisfied_by(doc)
    """
    hook_token = _trace_hook.set(hook)
    config_token = _trace_config.set(config or TraceConfig())
    try:
        yield
    finally:
        _trace_hook.reset(hook_token)
        _trace_config.reset(config_token)


def run_traced(
    specification: Specification[T],
    candidate: T,
    hook: TraceHook,
    token: CancellationToken | None = None,
    config: TraceConfig | None = None,
) -> bool:
    """
    Check a candidate with explicit tracing.

    Example:
        ok = run_traced(rule, doc, PrintHook())
    """
    with use_tracing(hook, config):
        return specification.is_satisfied_by(candidate, token)


def _traced_call(
    node: Specification[T],
    candidate: T,
    token: CancellationToken,
    hook: TraceHook,
) -> bool:
    """Run one node under the active hook, reporting enter/exit/error."""
    config = _trace_config.get() or TraceConfig()
    depth = _trace_depth.get()

    if (config.max_depth is not None and depth > config.max_depth) or (
        depth > 0 and not config.nested
    ):
        return bool(node._is_satisfied_by(candidate, token))

    silent = config.include_leaf_only and node.is_composite
    name = node._trace_name()

    span = None if silent else hook.on_enter(name, candidate, depth)
    start = time.perf_counter()
    depth_token = _trace_depth.set(depth + 1)
    try:
        ok = bool(node._is_satisfied_by(candidate, token))
    except Exception as e:
        if not silent:
            duration_ms = (time.perf_counter() - start) * 1000
            hook.on_error(span, name, e, duration_ms, depth)
        raise
    finally:
        _trace_depth.reset(depth_token)

    if not silent:
        duration_ms = (time.perf_counter() - start) * 1000
        hook.on_exit(span, name, ok, duration_ms, depth)
    return ok


# =============================================================================
# Built-in Trace Hooks
# =============================================================================


class PrintHook:
    """
    Simple trace hook that prints to stdout.

    Example:
        with use_tracing(PrintHook()):
            rule.is_satisfied_by(doc)

        # Output:
        # -> AND
        #   -> doc title must contain 'First'
        #   <- doc title must contain 'First' ✔ (0.01ms)
        #   -> doc content must contain 'First'
        #   <- doc content must contain 'First' ✗ (0.01ms)
        # <- AND ✗ (0.05ms)
    """

    def __init__(self, indent: str = "  ", show_candidate: bool = False):
        self.indent = indent
        self.show_candidate = show_candidate

    def on_enter(self, name: str, candidate: Any, depth: int) -> None:
        prefix = self.indent * depth
        if self.show_candidate:
            print(f"{prefix}-> {name} | candidate={candidate}")
        else:
            print(f"{prefix}-> {name}")

    def on_exit(
        self, span: None, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        status = "✔" if ok else "✗"
        print(f"{prefix}<- {name} {status} ({duration_ms:.2f}ms)")

    def on_error(
        self, span: None, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        print(f"{prefix}<- {name} ERROR: {error} ({duration_ms:.2f}ms)")


class LoggingHook:
    """
    Trace hook that logs to a Python logger.

    Example:
        import logging
        logger = logging.getLogger("compspec")

        with use_tracing(LoggingHook(logger)):
            rule.is_satisfied_by(doc)
    """

    def __init__(self, logger: logging.Logger, level: int = logging.DEBUG):
        self.logger = logger
        self.level = level

    def on_enter(self, name: str, candidate: Any, depth: int) -> dict:
        span = {"name": name, "depth": depth, "start": time.perf_counter()}
        self.logger.log(self.level, "[ENTER] %s (depth=%d)", name, depth)
        return span

    def on_exit(
        self, span: dict, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        status = "OK" if ok else "FAIL"
        self.logger.log(
            self.level, "[EXIT] %s -> %s (%.2fms)", name, status, duration_ms
        )

    def on_error(
        self, span: dict, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        self.logger.error("[ERROR] %s -> %s (%.2fms)", name, error, duration_ms)


class OpenTelemetryHook:
    """
    OpenTelemetry trace hook: one span per traced rule, nested by depth.

    Composite spans carry `compspec.operator`; every span records
    `compspec.satisfied` and `compspec.depth`. Errors are recorded on the
    span and mark it with an ERROR status.

    The hook keeps a stack of open spans, so an instance must not be shared
    by evaluations running concurrently in different threads; create one
    hook per thread.

    Requires: pip install opentelemetry-api
    """

    def __init__(self, tracer: Any, *, max_span_depth: int | None = None):
        if not _HAS_OPENTELEMETRY:
            raise ImportError(
                "OpenTelemetry is not installed. "
                "Install it with: pip install opentelemetry-api"
            )
        self.tracer = tracer
        self.max_span_depth = max_span_depth
        self._span_stack: list[Any] = []

    def on_enter(self, name: str, candidate: Any, depth: int) -> Any:
        # Guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _set_span_in_context is not None

        if self.max_span_depth is not None and depth > self.max_span_depth:
            return None

        parent = self._span_stack[-1] if self._span_stack else None
        parent_ctx = _set_span_in_context(parent) if parent else None
        span = self.tracer.start_span(name, context=parent_ctx)

        if name in {"AND", "OR", "XOR", "NOT"}:
            span.set_attribute("compspec.operator", name)
            span.set_attribute("compspec.node_type", "logical")
        else:
            span.set_attribute("compspec.node_type", "leaf")
        span.set_attribute("compspec.depth", depth)

        self._span_stack.append(span)
        return span

    def on_exit(
        self, span: Any, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        if span is None:
            return
        span.set_attribute("compspec.satisfied", ok)
        span.set_attribute("compspec.duration_ms", duration_ms)
        span.end()
        self._span_stack.pop()

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        if span is None:
            return

        # Guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _Status is not None
        assert _StatusCode is not None

        span.set_attribute("compspec.satisfied", False)
        span.set_attribute("compspec.duration_ms", duration_ms)
        span.record_exception(error)
        span.set_status(_Status(_StatusCode.ERROR, str(error)))
        span.end()
        self._span_stack.pop()
