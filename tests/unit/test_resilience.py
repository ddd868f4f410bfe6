"""
Unit tests for the retry helpers.
"""

import pytest

from blog_api.services.resilience import backoff_delay, with_sync_retry


class TestBackoffDelay:
    """Exponential backoff with a cap."""

    def test_doubles_per_attempt(self):
        assert backoff_delay(1, 1.0, 5.0) == 1.0
        assert backoff_delay(2, 1.0, 5.0) == 2.0
        assert backoff_delay(3, 1.0, 5.0) == 4.0

    def test_capped_at_max_wait(self):
        assert backoff_delay(4, 1.0, 5.0) == 5.0
        assert backoff_delay(10, 1.0, 5.0) == 5.0


class TestSyncRetry:
    """Tests for with_sync_retry."""

    def test_success_first_try(self):
        """A successful call is not retried."""
        sleeps = []

        @with_sync_retry(max_attempts=3, sleep=sleeps.append)
        def success():
            return "ok"

        assert success() == "ok"
        assert sleeps == []

    def test_eventual_success(self):
        """Failures below the attempt budget are absorbed."""
        call_count = 0
        sleeps = []

        @with_sync_retry(max_attempts=3, min_wait=1.0, max_wait=5.0, retry_exceptions=(ValueError,), sleep=sleeps.append)
        def eventual_success():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ValueError("not yet")
            return "ok"

        assert eventual_success() == "ok"
        assert call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_all_fail_raises_last_error(self):
        """When every attempt fails, the last exception propagates."""
        errors = [ValueError("first"), ValueError("second"), ValueError("third")]

        @with_sync_retry(max_attempts=3, retry_exceptions=(ValueError,), sleep=lambda _: None)
        def always_fail():
            raise errors.pop(0)

        with pytest.raises(ValueError, match="third"):
            always_fail()
        assert errors == []

    def test_non_retryable_exception(self):
        """Exceptions outside retry_exceptions are raised immediately."""
        call_count = 0

        @with_sync_retry(max_attempts=3, retry_exceptions=(ValueError,), sleep=lambda _: None)
        def wrong_exception():
            nonlocal call_count
            call_count += 1
            raise TypeError("not retryable")

        with pytest.raises(TypeError):
            wrong_exception()

        assert call_count == 1

    def test_preserves_function_name(self):
        @with_sync_retry()
        def named():
            return None

        assert named.__name__ == "named"
