from unittest.mock import patch

import pytest

from jobmatch.errors import NetworkError, ValidationError
from jobmatch.retry import backoff_delay, retry


class TestRetry:
    @patch("jobmatch.retry.time.sleep")
    def test_retries_until_success(self, sleep):
        calls = []

        @retry(max_attempts=3, base_delay=1.0, jitter=False, retryable=(NetworkError,))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise NetworkError("reset")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    @patch("jobmatch.retry.time.sleep")
    def test_reraises_last_error(self, sleep):
        @retry(max_attempts=2, retryable=(NetworkError,))
        def down():
            raise NetworkError("down")

        with pytest.raises(NetworkError):
            down()
        assert sleep.call_count == 1

    @patch("jobmatch.retry.time.sleep")
    def test_other_errors_are_not_retried(self, sleep):
        calls = []

        @retry(max_attempts=5, retryable=(NetworkError,))
        def invalid():
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            invalid()
        assert len(calls) == 1
        sleep.assert_not_called()

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            retry(max_attempts=0)


class TestBackoffDelay:
    def test_grows_and_caps(self):
        delays = [backoff_delay(n, 2.0, 2.0, 10.0, jitter=False) for n in range(1, 5)]
        assert delays == [2.0, 4.0, 8.0, 10.0]

    def test_jitter_stays_in_range(self):
        for _ in range(20):
            assert 1.0 <= backoff_delay(1, 2.0, 2.0, 10.0, jitter=True) <= 3.0
