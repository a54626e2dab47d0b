"""Tenacity polling wrapper driven by PollConfig and a deadline."""

from __future__ import annotations

from collections.abc import Callable, Sized
from datetime import UTC, datetime

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from .config import PollConfig

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(UTC)


def poll_until(
    deadline: datetime | None,
    config: PollConfig,
    *,
    clock: Clock = utcnow,
) -> Callable:
    """Return a tenacity decorator that repeats a call while it returns nothing.

    Only empty results are retried: an exception raised by the wrapped
    call propagates on its first occurrence.  Without a *deadline* the
    call runs exactly once.  With one, attempts continue until a
    non-empty result or until ``clock()`` reaches the deadline, at which
    point the last (empty) result is returned.  Waits grow exponentially
    within ``config`` bounds but are cut short at the deadline.

    Usage::

        @poll_until(deadline, poll_config)
        async def search() -> list[Message]: ...
    """
    backoff = wait_exponential(
        multiplier=config.multiplier,
        min=config.initial_wait_seconds,
        max=config.max_wait_seconds,
    )

    if deadline is None:
        return retry(
            stop=stop_after_attempt(1),
            retry=retry_if_result(_is_empty),
            retry_error_callback=_last_result,
        )

    if deadline.tzinfo is None:
        deadline = deadline.astimezone()

    def _remaining() -> float:
        return (deadline - clock()).total_seconds()

    def _stop(retry_state: RetryCallState) -> bool:
        return _remaining() <= 0

    def _wait(retry_state: RetryCallState) -> float:
        return max(0.0, min(backoff(retry_state), _remaining()))

    return retry(
        stop=_stop,
        wait=_wait,
        retry=retry_if_result(_is_empty),
        retry_error_callback=_last_result,
        before_sleep=_log_retry,
    )


def _is_empty(result: Sized) -> bool:
    return len(result) == 0


def _last_result(retry_state: RetryCallState):
    # Stopping on an empty result is not an error: hand back that result.
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    logger.debug(
        "search_retry",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
    )
