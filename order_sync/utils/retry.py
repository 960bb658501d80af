"""
Retry policy with exponential backoff.

One policy object is built from settings at start-up and applied by the
sync service around each per-order step, instead of wrapping individual
writes.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type

from order_sync.utils.logger import log


@dataclass
class RetryStats:
    """Tracks retry statistics for a single operation."""
    attempts: int = 0
    total_delay_seconds: float = 0.0
    last_error: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    success: bool = False

    def record_attempt(self, error: Optional[Exception] = None, delay: float = 0.0):
        """Record an attempt, failed if error is given."""
        self.attempts += 1
        self.total_delay_seconds += delay
        if error:
            error_str = f"{type(error).__name__}: {str(error)}"
            self.last_error = error_str
            self.errors.append(error_str)

    def mark_success(self):
        """Mark the operation as successful."""
        self.success = True

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/storage."""
        return {
            "attempts": self.attempts,
            "total_delay_seconds": round(self.total_delay_seconds, 2),
            "success": self.success,
            "last_error": self.last_error,
            "errors": self.errors[:5]  # Cap at 5 errors
        }


class RetryError(Exception):
    """All attempts failed; wraps the last error together with the stats."""

    def __init__(self, last_error: Exception, stats: RetryStats):
        self.last_error = last_error
        self.stats = stats
        super().__init__(str(last_error))


def calculate_backoff(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True
) -> float:
    """
    Calculate delay for exponential backoff.

    Args:
        attempt: Current attempt number (1-indexed)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap
        exponential_base: Base for exponential calculation
        jitter: Add 0-25% randomness on top of the delay

    Returns:
        Delay in seconds
    """
    delay = base_delay * (exponential_base ** (attempt - 1))
    delay = min(delay, max_delay)

    if jitter:
        delay += delay * random.uniform(0, 0.25)

    return delay


@dataclass
class RetryPolicy:
    """
    Retry an async operation a fixed number of times with backoff.

    Usage:
        policy = RetryPolicy(max_attempts=3)
        result, stats = await policy.run(import_order, payload)
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_retries(cls, retries: int, base_delay: float = 1.0, **kwargs) -> "RetryPolicy":
        """Build a policy from an extra-attempt count (retries=2 -> 3 attempts)."""
        return cls(max_attempts=1 + retries, base_delay=base_delay, **kwargs)

    async def run(
        self,
        func: Callable[..., Awaitable[Any]],
        *args,
        operation_name: Optional[str] = None,
        **kwargs
    ) -> Tuple[Any, RetryStats]:
        """
        Await func(*args, **kwargs) until it succeeds or attempts run out.

        Returns:
            (result, stats) on success

        Raises:
            RetryError wrapping the last exception once attempts are exhausted,
            or the original exception if it is not retryable
        """
        name = operation_name or getattr(func, "__name__", "operation")
        stats = RetryStats()

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                if not isinstance(e, self.retryable_exceptions):
                    stats.record_attempt(error=e)
                    raise

                if attempt >= self.max_attempts:
                    stats.record_attempt(error=e)
                    log.error(f"{name} failed after {attempt} attempts: {e}")
                    raise RetryError(e, stats) from e

                delay = calculate_backoff(
                    attempt,
                    base_delay=self.base_delay,
                    max_delay=self.max_delay,
                    exponential_base=self.exponential_base,
                    jitter=self.jitter
                )
                stats.record_attempt(error=e, delay=delay)

                log.warning(
                    f"{name} attempt {attempt} failed: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )

                await asyncio.sleep(delay)
                continue

            stats.record_attempt()
            stats.mark_success()

            if attempt > 1:
                log.info(
                    f"{name} succeeded on attempt {attempt} "
                    f"after {stats.total_delay_seconds:.1f}s total delay"
                )

            return result, stats

        # max_attempts >= 1 guarantees the loop returns or raises
        raise RuntimeError("Retry exhausted")
