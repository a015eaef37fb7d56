"""
Retry policy as a pure function of (attempt, error).

Attempts are 1-based. Only retryable errors are retried; the delay doubles per
attempt from base_delay and is capped at max_delay.
"""
from dataclasses import dataclass

from workgraph.config.system_settings import system_settings


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay: float = 0.0


NO_RETRY = RetryDecision(retry=False)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0

    def __call__(self, attempt: int, error: BaseException) -> RetryDecision:
        if attempt >= self.max_attempts:
            return NO_RETRY
        if not getattr(error, "retryable", False):
            return NO_RETRY
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        return RetryDecision(retry=True, delay=delay)

    @classmethod
    def from_settings(cls, settings=None) -> "RetryPolicy":
        settings = settings or system_settings
        return cls(
            max_attempts=settings.FETCH_RETRY_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY_SECONDS,
            max_delay=settings.RETRY_MAX_DELAY_SECONDS,
        )
