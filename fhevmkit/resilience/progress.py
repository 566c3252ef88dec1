"""Retry with observable progress.

Pushes status snapshots to subscribers so a UI (or a log line) can show
"Attempt 2/4", "Retrying in 1s...", "Success" while an operation retries.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, TypeVar

from .retry import Operation, RetryPolicy, call_operation, calculate_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROGRESS_POLICY = RetryPolicy(max_retries=3, initial_delay_ms=500, backoff_multiplier=2.0)


@dataclass(frozen=True)
class RetryProgress:
    """Snapshot of a retry in progress."""

    is_retrying: bool = False
    attempt: int = 0  # 0-indexed
    message: str = ""


ProgressListener = Callable[[RetryProgress], None]


class RetryProgressTracker:
    """Runs operations with retry and publishes progress to listeners.

    Usage:
        tracker = RetryProgressTracker()
        tracker.subscribe(lambda p: print(p.message))
        result = await tracker.run("fetch-data", fetch)
    """

    def __init__(self, policy: Optional[RetryPolicy] = None):
        """Initialize tracker.

        Args:
            policy: Default policy for run() (default: 3 retries from 500ms)
        """
        self.policy = policy or DEFAULT_PROGRESS_POLICY
        self._state = RetryProgress()
        self._listeners: list[ProgressListener] = []

    @property
    def state(self) -> RetryProgress:
        return self._state

    @property
    def is_retrying(self) -> bool:
        return self._state.is_retrying

    @property
    def attempt(self) -> int:
        return self._state.attempt

    @property
    def message(self) -> str:
        return self._state.message

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("Retry progress listener failed")

    async def run(
        self,
        label: str,
        operation: Operation[T],
        policy: Optional[RetryPolicy] = None,
    ) -> T:
        """Run ``operation`` with retry, publishing progress at each phase.

        Args:
            label: Operation label used in status messages
            operation: Zero-argument callable; may return an awaitable
            policy: Override the tracker's policy

        Returns:
            The operation's result

        Raises:
            Exception: The last error raised by ``operation``, unchanged
        """
        policy = policy or self.policy
        total = policy.max_attempts
        self._publish(is_retrying=True, attempt=0)

        try:
            attempt = 0
            while True:
                self._publish(attempt=attempt, message=f"{label} - Attempt {attempt + 1}/{total}")
                try:
                    result = await call_operation(operation)
                except Exception as e:
                    if policy.retryable is not None and not policy.retryable(e):
                        raise
                    if attempt >= policy.max_retries:
                        logger.error(f"{label} - All {total} attempts failed: {e}")
                        raise

                    delay_ms = calculate_backoff(attempt, policy)
                    self._publish(message=f"{label} - Retrying in {round(delay_ms / 1000)}s...")
                    logger.warning(f"{label} - Attempt {attempt + 1}/{total} failed: {e}")
                    await asyncio.sleep(delay_ms / 1000)
                    attempt += 1
                    continue

                self._publish(message=f"{label} - Success")
                return result
        finally:
            self._publish(is_retrying=False)


async def retry_with_progress(
    label: str,
    operation: Operation[T],
    policy: Optional[RetryPolicy] = None,
    on_progress: Optional[ProgressListener] = None,
) -> T:
    """One-shot helper around RetryProgressTracker.run()."""
    tracker = RetryProgressTracker(policy)
    if on_progress:
        tracker.subscribe(on_progress)
    return await tracker.run(label, operation)
