"""Bounded retry with per-error backoff policies, on top of tenacity.

Policies are plain values so the retry budget can be configured and tested
apart from the action being retried:

    call_with_retry(
        fetch,
        [RetryPolicy(3, exponential_backoff(1.0, cap=8.0), (GenerationBackendError,)),
         RetryPolicy(3, linear_backoff(0.5), (InvalidResponseError,))],
    )
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_exception_type

from feedsync.errors import RetryExhaustedError
from feedsync.logging_config import get_logger

log = get_logger(__name__)

T = TypeVar("T")

Backoff = Callable[[int], float]


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry one family of errors.

    Attributes:
        max_attempts: Total attempts (first call included) before giving up.
        backoff: Delay in seconds after the n-th failed attempt (n starts at 1).
        retry_on: Exception types this policy applies to.
    """

    max_attempts: int
    backoff: Backoff
    retry_on: tuple[type[BaseException], ...]

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def matches(self, error: BaseException | None) -> bool:
        return isinstance(error, self.retry_on)


def linear_backoff(step: float) -> Backoff:
    """step × attempt: 0.5s, 1.0s, 1.5s … for step=0.5."""
    return lambda attempt: step * attempt


def exponential_backoff(base: float, cap: float | None = None) -> Backoff:
    """base × 2^(attempt-1), optionally capped: 1s, 2s, 4s … for base=1."""

    def _delay(attempt: int) -> float:
        delay = base * (2 ** (attempt - 1))
        return min(delay, cap) if cap is not None else delay

    return _delay


def _failure(retry_state: RetryCallState) -> BaseException | None:
    outcome = retry_state.outcome
    return outcome.exception() if outcome is not None else None


def call_with_retry(
    action: Callable[[], T],
    policies: Sequence[RetryPolicy],
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run *action*, retrying failures covered by *policies*.

    The first policy matching the latest error decides whether another attempt
    is allowed and how long to wait. tenacity counts attempts across all
    policies, so the total number of calls never exceeds the largest
    ``max_attempts``.

    Raises:
        RetryExhaustedError: A covered error persisted past its policy's budget.
        Exception: Any error no policy covers, unchanged.
    """
    covered = tuple(exc for policy in policies for exc in policy.retry_on)

    def _policy(retry_state: RetryCallState) -> RetryPolicy:
        error = _failure(retry_state)
        return next(p for p in policies if p.matches(error))

    def _stop(retry_state: RetryCallState) -> bool:
        return retry_state.attempt_number >= _policy(retry_state).max_attempts

    def _wait(retry_state: RetryCallState) -> float:
        return _policy(retry_state).backoff(retry_state.attempt_number)

    def _before_sleep(retry_state: RetryCallState) -> None:
        error = _failure(retry_state)
        log.warning(
            "retrying_after_error",
            attempt=retry_state.attempt_number,
            max_attempts=_policy(retry_state).max_attempts,
            delay_seconds=retry_state.upcoming_sleep,
            error_type=type(error).__name__,
            error=str(error),
        )

    retrying = Retrying(
        retry=retry_if_exception_type(covered),
        stop=_stop,
        wait=_wait,
        sleep=sleep,
        before_sleep=_before_sleep,
    )
    try:
        return retrying(action)
    except RetryError as err:
        last = err.last_attempt
        cause = last.exception()
        raise RetryExhaustedError(cause, last.attempt_number) from cause
