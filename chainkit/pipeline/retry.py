## Retry policy for pipeline invocations
from dataclasses import dataclass, field

from chainkit.pipeline.errors import PipelineError
from chainkit.settings import settings


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-delay retry on transport faults only.

    Attempts are numbered from 1. After a failed attempt ``n`` the caller asks
    ``should_retry(err, n)``; if True it waits ``delay_before_next_attempt(n)``
    seconds and runs attempt ``n + 1``.
    """
    max_attempts: int = 3
    delay_seconds: float = 1.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            delay_seconds=settings.retry_delay_ms / 1000,
        )

    def should_retry(self, error: Exception, attempt: int, max_attempts: int | None = None) -> bool:
        limit = self.max_attempts if max_attempts is None else max_attempts
        if attempt >= limit:
            return False
        return isinstance(error, PipelineError) and error.retryable

    def delay_before_next_attempt(self, attempt: int) -> float:
        return self.delay_seconds


@dataclass
class RetryState:
    """Per-call attempt bookkeeping. Never shared between invocations."""
    max_attempts: int
    attempt: int = 1
    errors: list[PipelineError] = field(default_factory=list)

    def record_failure(self, error: PipelineError) -> None:
        self.errors.append(error)

    def advance(self) -> None:
        self.attempt += 1

    @property
    def last_error(self) -> PipelineError | None:
        return self.errors[-1] if self.errors else None
