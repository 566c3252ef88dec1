"""Resilience layer for FHEVM client operations.

This module provides:
- Retry with exponential backoff and jitter
- Named policies for receipt polling, network calls, and crypto operations
- Progress-observable retry for UI feedback
"""

from .progress import RetryProgress, RetryProgressTracker, retry_with_progress
from .retry import (
    CRYPTO_OPERATION_POLICY,
    DEFAULT_RETRY_POLICY,
    NETWORK_CALL_POLICY,
    TRANSACTION_RECEIPT_POLICY,
    NetworkError,
    RetryableError,
    RetryPolicy,
    RetryResult,
    TransactionPendingError,
    calculate_backoff,
    is_retryable,
    retry,
    retry_crypto_operation,
    retry_network_call,
    retry_transaction_receipt,
    retry_with_backoff,
    retry_with_result,
)

__all__ = [
    "retry",
    "retry_with_result",
    "retry_with_backoff",
    "retry_transaction_receipt",
    "retry_network_call",
    "retry_crypto_operation",
    "calculate_backoff",
    "is_retryable",
    "RetryPolicy",
    "RetryResult",
    "DEFAULT_RETRY_POLICY",
    "TRANSACTION_RECEIPT_POLICY",
    "NETWORK_CALL_POLICY",
    "CRYPTO_OPERATION_POLICY",
    "RetryableError",
    "NetworkError",
    "TransactionPendingError",
    "RetryProgress",
    "RetryProgressTracker",
    "retry_with_progress",
]
