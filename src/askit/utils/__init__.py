"""Utility helpers shared across services."""

from .retry import RetryConfig, RetryState, async_retry, backoff_delay
from .tracing import TraceContext, get_current_trace_ids, start_span

__all__ = [
    "get_current_trace_ids",
    "start_span",
    "TraceContext",
    "async_retry",
    "backoff_delay",
    "RetryConfig",
    "RetryState",
]
