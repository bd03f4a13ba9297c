"""Retry helpers for IO-bound calls to external providers."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import ParamSpec, TypeVar

P = ParamSpec("P")
R = TypeVar("R")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration controlling retry behaviour."""

    attempts: int = 3
    base_delay: float = 0.5
    backoff: float = 2.0
    max_delay: float = 10.0
    jitter: float = 0.1


@dataclass
class RetryState:
    """Captures the state of an individual retry loop."""

    attempt: int
    last_exception: Exception | None = None
    delay: float = 0.0


def backoff_delay(config: RetryConfig, attempt: int) -> float:
    """Return the jittered exponential delay before retrying ``attempt``."""

    delay = min(config.base_delay * (config.backoff ** (attempt - 1)), config.max_delay)
    if config.jitter:
        delay += random.uniform(0, config.jitter)
    return delay


def _log_retry(func_name: str, state: RetryState) -> None:
    logger.warning(
        "retrying after transient failure",
        extra={
            "operation": func_name,
            "attempt": state.attempt,
            "delay": round(state.delay, 3),
            "error": str(state.last_exception),
        },
    )


def async_retry(
    *,
    config: RetryConfig | None = None,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    before_sleep: Callable[[RetryState], Awaitable[None]] | None = None,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator retrying an async callable with exponential backoff.

    Only ``exceptions`` are retried; anything else propagates on the first
    attempt. The final failure is re-raised unchanged.
    """

    retry_config = config or RetryConfig()

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            state = RetryState(attempt=1)

            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as exc:
                    state.last_exception = exc
                    if state.attempt >= retry_config.attempts:
                        raise

                    state.delay = backoff_delay(retry_config, state.attempt)
                    _log_retry(getattr(func, "__qualname__", repr(func)), state)
                    if before_sleep is not None:
                        await before_sleep(state)
                    await asyncio.sleep(state.delay)
                    state.attempt += 1

        return wrapper

    return decorator
