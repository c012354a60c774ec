"""
Test cases for the OnError model.
"""

import pytest

from .options_on_error import OnError, RetryBackoff


class TestOnError:
    """Test cases for OnError options."""

    def test_default_options(self):
        opts = OnError()
        assert opts.timeout == 300.0
        assert opts.max_retries == 3
        assert opts.retry_delay == 5.0
        assert opts.retry_backoff == RetryBackoff.LINEAR
        assert opts.timeout_retryable is True

    def test_backoff_from_string(self):
        opts = OnError(retry_backoff="exponential")
        assert opts.retry_backoff is RetryBackoff.EXPONENTIAL

    def test_validation_negative_timeout(self):
        with pytest.raises(ValueError, match="timeout cannot be negative"):
            OnError(timeout=-1.0)

    def test_validation_max_retries(self):
        with pytest.raises(ValueError, match="max retries must be at least 1"):
            OnError(max_retries=0)

    def test_validation_negative_retry_delay(self):
        with pytest.raises(ValueError, match="retry delay cannot be negative"):
            OnError(retry_delay=-1.0)

    def test_validation_invalid_backoff(self):
        with pytest.raises(ValueError, match="invalid retry backoff"):
            OnError(retry_backoff="invalid")

    @pytest.mark.parametrize(
        "backoff, expected",
        [
            (RetryBackoff.NONE, [5.0, 5.0, 5.0]),
            (RetryBackoff.LINEAR, [5.0, 10.0, 15.0]),
            (RetryBackoff.EXPONENTIAL, [5.0, 10.0, 20.0]),
        ],
    )
    def test_backoff_delay(self, backoff, expected):
        opts = OnError(retry_delay=5.0, retry_backoff=backoff)
        assert [opts.backoff_delay(attempt) for attempt in (1, 2, 3)] == expected

    def test_backoff_delay_before_first_failure(self):
        assert OnError().backoff_delay(0) == 0.0

    def test_dict_round_trip(self):
        opts = OnError(
            timeout=10.0,
            max_retries=2,
            retry_delay=0.5,
            retry_backoff=RetryBackoff.NONE,
            timeout_retryable=False,
        )
        data = opts.to_dict()
        assert data["retry_backoff"] == "none"

        restored = OnError.from_dict(data)
        assert restored.to_dict() == data
