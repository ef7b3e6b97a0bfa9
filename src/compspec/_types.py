"""Shared type variables and context-scoped state."""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from compspec._operators import Operators
    from compspec._tracing import TraceConfig, TraceHook

T = TypeVar("T")
T_contra = TypeVar("T_contra", contravariant=True)

# Scoped overrides (see use_operators() / use_tracing())
_operators_override: ContextVar[Operators | None] = ContextVar(
    "operators_override", default=None
)
_trace_hook: ContextVar[TraceHook | None] = ContextVar("trace_hook", default=None)
_trace_config: ContextVar[TraceConfig | None] = ContextVar(
    "trace_config", default=None
)
_trace_depth: ContextVar[int] = ContextVar("trace_depth", default=0)
