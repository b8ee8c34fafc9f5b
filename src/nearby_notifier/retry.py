"""Retry policy for the startup handshake."""

import time
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from .errors import NoResponseError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    When and how often to retry a failing call.

    Attributes:
        max_attempts: Total attempts including the first; None retries forever
        delay: Seconds to wait between attempts (0 retries immediately)
        retry_on: Exception types that trigger a retry
    """
    max_attempts: Optional[int] = None
    delay: float = 0.0
    retry_on: Tuple[Type[Exception], ...] = (NoResponseError,)

    def __post_init__(self):
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    def should_retry(self, exc: Exception, attempt: int) -> bool:
        if not isinstance(exc, self.retry_on):
            return False
        return self.max_attempts is None or attempt < self.max_attempts


class RetryExhausted(Exception):
    """Raised when a bounded policy runs out of attempts."""

    def __init__(self, last_error: Exception, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"All {attempts} attempts failed. Last error: {last_error}")


class RetryCancelled(Exception):
    """Raised when retrying is abandoned because the caller is shutting down."""

    def __init__(self, last_error: Exception, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"Retry cancelled after {attempts} attempts. Last error: {last_error}")


def retry_call(
    func: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    should_continue: Optional[Callable[[], bool]] = None,
) -> T:
    """
    Call ``func`` until it succeeds or the policy gives up.

    Exceptions outside ``policy.retry_on`` propagate unchanged. When the
    attempt limit is reached on a retryable error, RetryExhausted is raised
    with the last error chained.

    Args:
        func: Zero-argument callable to run
        policy: Retry policy
        sleep: Sleep function used between attempts
        on_retry: Called with (error, attempt) before each retry
        should_continue: Checked after each failure; returning False raises
            RetryCancelled instead of retrying
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except policy.retry_on as e:
            if not policy.should_retry(e, attempt):
                logger.debug(f"Giving up after attempt {attempt}: {e}")
                raise RetryExhausted(e, attempt) from e
            if should_continue is not None and not should_continue():
                logger.debug(f"Retry cancelled after attempt {attempt}: {e}")
                raise RetryCancelled(e, attempt) from e
            if on_retry:
                on_retry(e, attempt)
            if policy.delay > 0:
                sleep(policy.delay)
