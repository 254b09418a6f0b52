"""
Client-side throttling for Key Vault service limits.

When Key Vault answers 429 (Too Many Requests) the operation is retried with
exponential backoff:
    1. Wait 1 second, retry request
    2. If still throttled wait 2 seconds, retry request
    3. If still throttled wait 4 seconds, retry request
    4. If still throttled wait 8 seconds, retry request
    5. If still throttled wait 16 seconds, retry request
After the fifth retry the last error is re-raised. Any other failure is
raised immediately after the first attempt.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Final, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOO_MANY_REQUESTS: Final[int] = 429
NOT_FOUND: Final[int] = 404


def exponential_backoff(retries: int = 5, base_seconds: float = 1.0) -> tuple[float, ...]:
    """
    Build a backoff schedule where ``delay(attempt) = base * 2^(attempt-1)``.

    Example:
        >>> exponential_backoff()
        (1.0, 2.0, 4.0, 8.0, 16.0)
    """
    return tuple(base_seconds * 2 ** (attempt - 1) for attempt in range(1, retries + 1))


DEFAULT_BACKOFF: Final[tuple[float, ...]] = exponential_backoff()


def get_status_code(exception: BaseException) -> int | None:
    """
    Extract the HTTP status code from a transport exception.

    Understands azure-core ``HttpResponseError`` (``status_code``) as well as
    older msrest-style errors that only expose ``response.status_code``.
    """
    status_code = getattr(exception, "status_code", None)
    if status_code is None:
        response = getattr(exception, "response", None)
        status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return status_code
    return None


def is_too_many_requests(exception: BaseException) -> bool:
    """Return True when the exception is a 429 throttling response."""
    return get_status_code(exception) == TOO_MANY_REQUESTS


def is_not_found(exception: BaseException) -> bool:
    """Return True when the exception is a 404 response."""
    return get_status_code(exception) == NOT_FOUND


@dataclass(frozen=True)
class ThrottlingPolicy:
    """
    Retry policy: a classifier deciding which errors are retried, plus the
    ordered delays to wait before each retry.

    Attributes:
        is_retryable: Returns True for exceptions worth retrying
        backoff: Delay in seconds before retry 1, 2, ...; its length is the
            maximum number of retries
        sleep: Awaitable sleep used between attempts (injectable for tests)

    Example:
        >>> policy = ThrottlingPolicy()
        >>> secret = await policy.execute(lambda: client.get_secret("Api-Key"))
    """

    is_retryable: Callable[[BaseException], bool] = is_too_many_requests
    backoff: tuple[float, ...] = DEFAULT_BACKOFF
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep)

    def __post_init__(self) -> None:
        if any(delay < 0 for delay in self.backoff):
            raise ValueError("Backoff delays must not be negative")

    @property
    def max_attempts(self) -> int:
        return len(self.backoff) + 1

    def _wait(self, retry_state: RetryCallState) -> float:
        # tenacity may compute the wait before checking the stop condition,
        # so the attempt after the last retry must still map to a delay
        if not self.backoff:
            return 0.0
        index = min(retry_state.attempt_number, len(self.backoff)) - 1
        return self.backoff[index]

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``operation``, retrying on retryable errors per the backoff schedule.

        Raises:
            Exception: The last error raised by ``operation`` once it is not
                retryable or the schedule is exhausted
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(self.is_retryable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self.sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation()
        raise AssertionError("unreachable: tenacity re-raises once retries are exhausted")
