"""Tests for resilience module."""

import pytest


def test_resilience_imports():
    """Test that resilience module can be imported."""
    from fhevmkit.resilience import (
        retry,
        retry_with_backoff,
        RetryPolicy,
        RetryProgressTracker,
        NETWORK_CALL_POLICY,
    )

    assert retry is not None
    assert retry_with_backoff is not None
    assert RetryPolicy is not None
    assert RetryProgressTracker is not None
    assert NETWORK_CALL_POLICY is not None
