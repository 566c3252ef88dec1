"""Retry with exponential backoff.

Provides automatic retry for transient failures with:
- Geometric backoff capped at a maximum delay
- Multiplicative jitter to de-synchronize concurrent callers
- Named policies for receipt polling, network calls, and crypto operations
- Optional retryable-error predicate
"""

import asyncio
import functools
import inspect
import logging
import random
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from ..storage.base import StorageError, StorageErrorCode

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Union[Awaitable[T], T]]
RetryCallback = Callable[[int, Exception, float], None]

# Exceptions to NOT retry when using is_retryable (permanent failures)
NON_RETRYABLE_EXCEPTIONS = (
    ValueError,
    TypeError,
    KeyError,
    AttributeError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    ``max_retries`` counts retries after the first attempt, so an operation
    is invoked at most ``max_retries + 1`` times.
    """

    max_retries: int = 3
    initial_delay_ms: float = 100.0
    backoff_multiplier: float = 2.0
    max_delay_ms: float = 5000.0
    jitter: bool = True
    retryable: Optional[Callable[[Exception], bool]] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError("max_retries must be a non-negative integer")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.max_delay_ms < 0:
            raise ValueError("max_delay_ms must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("backoff_multiplier must be > 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def with_overrides(self, **overrides: Any) -> "RetryPolicy":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)


DEFAULT_RETRY_POLICY = RetryPolicy()

# Long tail: block confirmation can take minutes
TRANSACTION_RECEIPT_POLICY = RetryPolicy(
    max_retries=30,
    initial_delay_ms=1000,
    backoff_multiplier=1.3,
    max_delay_ms=5000,
)

# Fast-fail for typical HTTP flakiness
NETWORK_CALL_POLICY = RetryPolicy(
    max_retries=5,
    initial_delay_ms=500,
    backoff_multiplier=2.0,
    max_delay_ms=3000,
)

# Few retries: crypto failures are usually deterministic
CRYPTO_OPERATION_POLICY = RetryPolicy(
    max_retries=3,
    initial_delay_ms=300,
    backoff_multiplier=1.5,
    max_delay_ms=1000,
)


@dataclass
class RetryResult(Generic[T]):
    """Outcome of retry_with_result."""

    success: bool
    attempts: int
    total_time_ms: float
    result: Optional[T] = None
    error: Optional[Exception] = None


def calculate_backoff(
    attempt: int,
    policy: RetryPolicy,
    jitter: Optional[bool] = None,
) -> float:
    """Calculate backoff delay for a retry attempt.

    Args:
        attempt: Index of the attempt that just failed (0-indexed)
        policy: Retry policy
        jitter: Override ``policy.jitter``

    Returns:
        Delay in milliseconds
    """
    # Exponential backoff capped at max_delay_ms
    try:
        delay = policy.initial_delay_ms * (policy.backoff_multiplier**attempt)
    except OverflowError:
        delay = policy.max_delay_ms
    delay = min(policy.max_delay_ms, delay)

    if policy.jitter if jitter is None else jitter:
        delay *= random.uniform(0.5, 1.0)

    return delay


def is_retryable(exception: Exception) -> bool:
    """Default classification of transient vs permanent errors.

    Pass as ``RetryPolicy(retryable=is_retryable)`` to skip retrying
    programming errors, invalid storage input and unavailable storage.
    """
    if isinstance(exception, RetryableError):
        return True
    if isinstance(exception, StorageError):
        # An unavailable backend stays unavailable between attempts
        return exception.code not in (
            StorageErrorCode.INVALID_INPUT,
            StorageErrorCode.NOT_AVAILABLE,
        )
    return not isinstance(exception, NON_RETRYABLE_EXCEPTIONS)


async def call_operation(operation: Operation[T]) -> T:
    """Call ``operation`` and await the result if it is awaitable."""
    result = operation()
    if inspect.isawaitable(result):
        return await result
    return result


def _describe(operation: Callable) -> str:
    return getattr(operation, "__name__", None) or type(operation).__name__


async def retry(
    operation: Operation[T],
    policy: Optional[RetryPolicy] = None,
    *,
    on_retry: Optional[RetryCallback] = None,
) -> T:
    """Run ``operation`` until it succeeds or the retry budget is spent.

    Args:
        operation: Zero-argument callable; may return an awaitable
        policy: Retry policy (default: DEFAULT_RETRY_POLICY)
        on_retry: Optional callback (attempt_number, error, delay_ms) before each sleep

    Returns:
        The operation's result

    Raises:
        Exception: The last error raised by ``operation``, unchanged

    Usage:
        receipt = await retry(lambda: provider.get_receipt(tx_hash), NETWORK_CALL_POLICY)
    """
    policy = policy or DEFAULT_RETRY_POLICY
    name = _describe(operation)
    attempt = 0

    while True:
        try:
            return await call_operation(operation)
        except Exception as e:
            if policy.retryable is not None and not policy.retryable(e):
                logger.warning(f"Non-retryable error in {name}: {e}")
                raise

            if attempt >= policy.max_retries:
                logger.error(f"All {policy.max_attempts} attempts failed for {name}: {e}")
                raise

            delay_ms = calculate_backoff(attempt, policy)
            logger.warning(
                f"Attempt {attempt + 1}/{policy.max_attempts} failed for "
                f"{name}: {e}. Retrying in {delay_ms / 1000:.2f}s"
            )

            if on_retry:
                try:
                    on_retry(attempt + 1, e, delay_ms)
                except Exception:
                    logger.exception(f"on_retry callback failed for {name}")

            await asyncio.sleep(delay_ms / 1000)
            attempt += 1


async def retry_with_result(
    operation: Operation[T],
    policy: Optional[RetryPolicy] = None,
    *,
    on_retry: Optional[RetryCallback] = None,
) -> RetryResult[T]:
    """Like retry(), but report the outcome instead of raising."""
    attempts = 0

    async def counted() -> T:
        nonlocal attempts
        attempts += 1
        return await call_operation(operation)

    counted.__name__ = _describe(operation)
    start = time.monotonic()
    try:
        result = await retry(counted, policy, on_retry=on_retry)
    except Exception as e:
        return RetryResult(
            success=False,
            attempts=attempts,
            total_time_ms=(time.monotonic() - start) * 1000,
            error=e,
        )
    return RetryResult(
        success=True,
        attempts=attempts,
        total_time_ms=(time.monotonic() - start) * 1000,
        result=result,
    )


async def retry_transaction_receipt(operation: Operation[T], **overrides: Any) -> T:
    """Retry with the transaction receipt polling policy."""
    return await retry(operation, TRANSACTION_RECEIPT_POLICY.with_overrides(**overrides))


async def retry_network_call(operation: Operation[T], **overrides: Any) -> T:
    """Retry with the network call policy."""
    return await retry(operation, NETWORK_CALL_POLICY.with_overrides(**overrides))


async def retry_crypto_operation(operation: Operation[T], **overrides: Any) -> T:
    """Retry with the encryption/decryption operation policy."""
    return await retry(operation, CRYPTO_OPERATION_POLICY.with_overrides(**overrides))


def retry_with_backoff(
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[RetryCallback] = None,
    **overrides: Any,
):
    """Decorator for retry with exponential backoff.

    Args:
        policy: Base retry policy (default: DEFAULT_RETRY_POLICY)
        on_retry: Optional callback (attempt_number, error, delay_ms)
        **overrides: RetryPolicy fields to replace

    Returns:
        Decorated coroutine function

    Usage:
        @retry_with_backoff(NETWORK_CALL_POLICY, max_retries=2)
        async def fetch_public_key():
            ...
    """
    config = (policy or DEFAULT_RETRY_POLICY).with_overrides(**overrides)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            async def call() -> T:
                return await func(*args, **kwargs)

            call.__name__ = func.__name__
            return await retry(call, config, on_retry=on_retry)

        return wrapper

    return decorator


class RetryableError(Exception):
    """Exception that should be retried."""

    pass


class NetworkError(RetryableError):
    """Network-related error that should be retried."""

    pass


class TransactionPendingError(RetryableError):
    """Transaction receipt not available yet."""

    def __init__(self, tx_hash: str = ""):
        super().__init__(f"Transaction receipt not available yet: {tx_hash}")
        self.tx_hash = tx_hash
