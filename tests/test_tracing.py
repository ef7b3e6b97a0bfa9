"""Tests for tracing hooks."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Any

import pytest

from compspec import (
    LoggingHook,
    Predicate,
    PrintHook,
    TraceConfig,
    TraceHook,
    run_traced,
    use_tracing,
)


class RecordingHook:
    def __init__(self):
        self.events: list[tuple[Any, ...]] = []

    def on_enter(self, name, candidate, depth):
        self.events.append(("enter", name, depth))
        return name

    def on_exit(self, span, name, ok, duration_ms, depth):
        assert span == name
        assert duration_ms >= 0
        self.events.append(("exit", name, ok, depth))

    def on_error(self, span, name, error, duration_ms, depth):
        self.events.append(("error", name, type(error).__name__, depth))


def leaf(name: str, value: bool) -> Predicate:
    return Predicate(lambda _: value, name)


def boom(_):
    raise LookupError("no such doc")


# ---------------------------------------------------------------------------
# Scoping & event order
# ---------------------------------------------------------------------------


class TestUseTracing:
    def test_recording_hook_is_a_trace_hook(self):
        assert isinstance(RecordingHook(), TraceHook)

    def test_events_in_order(self):
        hook = RecordingHook()
        tree = leaf("a", True) & ~leaf("b", True)
        with use_tracing(hook):
            assert tree.is_satisfied_by(None) is False

        assert hook.events == [
            ("enter", "AND", 0),
            ("enter", "a", 1),
            ("exit", "a", True, 1),
            ("enter", "NOT", 1),
            ("enter", "b", 2),
            ("exit", "b", True, 2),
            ("exit", "NOT", False, 1),
            ("exit", "AND", False, 0),
        ]

    def test_short_circuit_is_visible(self):
        hook = RecordingHook()
        with use_tracing(hook):
            (leaf("a", True) | leaf("b", True)).is_satisfied_by(None)
        assert ("enter", "b", 1) not in hook.events

    def test_not_traced_outside_scope(self):
        hook = RecordingHook()
        with use_tracing(hook):
            pass
        leaf("a", True).is_satisfied_by(None)
        assert hook.events == []

    def test_error_reported_and_reraised(self):
        hook = RecordingHook()
        tree = leaf("a", True) ^ Predicate(boom, "lookup")
        with use_tracing(hook):
            ok, err = tree.evaluate(None)

        assert ok is False
        assert isinstance(err, LookupError)
        assert hook.events[-2:] == [
            ("error", "lookup", "LookupError", 1),
            ("error", "XOR", "LookupError", 0),
        ]

    def test_run_traced(self):
        hook = RecordingHook()
        assert run_traced(leaf("a", True), "doc", hook) is True
        assert hook.events == [("enter", "a", 0), ("exit", "a", True, 0)]


# ---------------------------------------------------------------------------
# TraceConfig
# ---------------------------------------------------------------------------


class TestTraceConfig:
    def test_not_nested_traces_root_only(self):
        hook = RecordingHook()
        tree = leaf("a", True) & (leaf("b", True) | leaf("c", True))
        with use_tracing(hook, TraceConfig(nested=False)):
            tree.is_satisfied_by(None)
        assert hook.events == [("enter", "AND", 0), ("exit", "AND", True, 0)]

    def test_max_depth(self):
        hook = RecordingHook()
        tree = leaf("a", True) & (leaf("b", True) | leaf("c", True))
        with use_tracing(hook, TraceConfig(max_depth=1)):
            tree.is_satisfied_by(None)
        names = [event[1] for event in hook.events if event[0] == "enter"]
        assert names == ["AND", "a", "OR"]

    def test_include_leaf_only(self):
        hook = RecordingHook()
        tree = leaf("a", True) & ~leaf("b", False)
        with use_tracing(hook, TraceConfig(include_leaf_only=True)):
            tree.is_satisfied_by(None)
        assert hook.events == [
            ("enter", "a", 1),
            ("exit", "a", True, 1),
            ("enter", "b", 2),
            ("exit", "b", False, 2),
        ]


# ---------------------------------------------------------------------------
# Built-in hooks
# ---------------------------------------------------------------------------


class TestBuiltinHooks:
    def test_print_hook(self, capsys):
        with use_tracing(PrintHook()):
            (leaf("a", True) & leaf("b", False)).is_satisfied_by(None)
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "-> AND"
        assert lines[1] == "  -> a"
        assert lines[2].startswith("  <- a ✔")
        assert lines[-1].startswith("<- AND ✗")

    def test_print_hook_error(self, capsys):
        with use_tracing(PrintHook(show_candidate=True)):
            Predicate(boom, "lookup").evaluate("doc-1")
        out = capsys.readouterr().out
        assert "-> lookup | candidate=doc-1" in out
        assert "ERROR: no such doc" in out

    def test_logging_hook(self, caplog):
        logger = logging.getLogger("compspec.test")
        with caplog.at_level(logging.DEBUG, logger="compspec.test"):
            with use_tracing(LoggingHook(logger)):
                (leaf("a", True) | Predicate(boom, "lookup")).is_satisfied_by(None)

        messages = [record.getMessage() for record in caplog.records]
        assert messages[0] == "[ENTER] OR (depth=0)"
        assert any(m.startswith("[EXIT] a -> OK") for m in messages)
        assert not any("lookup" in m for m in messages)

    def test_logging_hook_error_level(self, caplog):
        logger = logging.getLogger("compspec.test")
        with caplog.at_level(logging.DEBUG, logger="compspec.test"):
            with use_tracing(LoggingHook(logger)):
                Predicate(boom, "lookup").evaluate(None)

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].getMessage().startswith("[ERROR] lookup -> no such doc")


class TestOpenTelemetryHook:
    @pytest.fixture
    def exporter_and_tracer(self):
        pytest.importorskip("opentelemetry.sdk")
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return exporter, provider.get_tracer("compspec-tests")

    def test_span_hierarchy(self, exporter_and_tracer):
        from compspec import OpenTelemetryHook

        exporter, tracer = exporter_and_tracer
        with use_tracing(OpenTelemetryHook(tracer)):
            (leaf("a", True) & leaf("b", False)).is_satisfied_by(None)

        spans = {span.name: span for span in exporter.get_finished_spans()}
        assert set(spans) == {"AND", "a", "b"}
        root = spans["AND"]
        assert root.attributes["compspec.operator"] == "AND"
        assert root.attributes["compspec.satisfied"] is False
        for name in ("a", "b"):
            assert spans[name].parent.span_id == root.context.span_id
            assert spans[name].attributes["compspec.node_type"] == "leaf"

    def test_error_status(self, exporter_and_tracer):
        from opentelemetry.trace import StatusCode

        from compspec import OpenTelemetryHook

        exporter, tracer = exporter_and_tracer
        with use_tracing(OpenTelemetryHook(tracer)):
            Predicate(boom, "lookup").evaluate(None)

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code is StatusCode.ERROR
        assert span.events[0].name == "exception"

    def test_max_span_depth(self, exporter_and_tracer):
        from compspec import OpenTelemetryHook

        exporter, tracer = exporter_and_tracer
        with use_tracing(OpenTelemetryHook(tracer, max_span_depth=0)):
            (leaf("a", True) & leaf("b", True)).is_satisfied_by(None)

        assert [span.name for span in exporter.get_finished_spans()] == ["AND"]

    def test_one_hook_per_thread(self, exporter_and_tracer):
        from compspec import OpenTelemetryHook

        exporter, tracer = exporter_and_tracer
        start = threading.Barrier(4)

        def worker(index: int) -> None:
            tree = leaf(f"a{index}", True) & leaf(f"b{index}", True)
            start.wait()
            with use_tracing(OpenTelemetryHook(tracer)):
                for _ in range(20):
                    tree.is_satisfied_by(None)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        spans = exporter.get_finished_spans()
        roots = {span.context.span_id for span in spans if span.name == "AND"}
        leaves = [span for span in spans if span.name != "AND"]
        assert len(roots) == 80
        assert len(leaves) == 160
        children = Counter(span.parent.span_id for span in leaves)
        assert set(children) == roots
        assert set(children.values()) == {2}


# ---------------------------------------------------------------------------
# Hook failures
# ---------------------------------------------------------------------------


class FailingHook(RecordingHook):
    def on_enter(self, name, candidate, depth):
        if name == "b":
            raise RuntimeError("hook broke")
        return super().on_enter(name, candidate, depth)


class TestHookFailures:
    def test_evaluate_returns_hook_errors(self):
        tree = leaf("a", True) & leaf("b", True)
        with use_tracing(FailingHook()):
            ok, err = tree.evaluate(None)
        assert ok is False
        assert isinstance(err, RuntimeError)
        assert str(err) == "hook broke"

    def test_is_satisfied_by_raises_hook_errors(self):
        tree = leaf("a", True) & leaf("b", True)
        with use_tracing(FailingHook()):
            with pytest.raises(RuntimeError, match="hook broke"):
                tree.is_satisfied_by(None)
