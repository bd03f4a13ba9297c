from __future__ import annotations

import pytest

from askit.utils.retry import RetryConfig, RetryState, async_retry, backoff_delay

pytestmark = pytest.mark.unit

FAST = RetryConfig(attempts=3, base_delay=0.0, jitter=0.0)


class Flaky:
    def __init__(self, failures: int, exc: type[Exception] = ConnectionError) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"failure {self.calls}")
        return "ok"


@pytest.mark.asyncio
async def test_async_retry_recovers_from_transient_failures() -> None:
    flaky = Flaky(failures=2)
    observed: list[int] = []

    async def before_sleep(state: RetryState) -> None:
        observed.append(state.attempt)

    wrapped = async_retry(config=FAST, exceptions=(ConnectionError,), before_sleep=before_sleep)(
        flaky
    )

    assert await wrapped() == "ok"
    assert flaky.calls == 3
    assert observed == [1, 2]


@pytest.mark.asyncio
async def test_async_retry_reraises_after_last_attempt() -> None:
    flaky = Flaky(failures=5)
    wrapped = async_retry(config=FAST, exceptions=(ConnectionError,))(flaky)

    with pytest.raises(ConnectionError, match="failure 3"):
        await wrapped()
    assert flaky.calls == 3


@pytest.mark.asyncio
async def test_async_retry_does_not_retry_unlisted_exceptions() -> None:
    flaky = Flaky(failures=1, exc=ValueError)
    wrapped = async_retry(config=FAST, exceptions=(ConnectionError,))(flaky)

    with pytest.raises(ValueError):
        await wrapped()
    assert flaky.calls == 1


def test_backoff_delay_is_capped() -> None:
    config = RetryConfig(base_delay=1.0, backoff=2.0, max_delay=3.0, jitter=0.0)

    assert backoff_delay(config, 1) == 1.0
    assert backoff_delay(config, 2) == 2.0
    assert backoff_delay(config, 5) == 3.0
