"""Tests for Retry-After parsing and the post-failure wait strategy"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import pytest
from tenacity import RetryCallState, Retrying, wait_fixed

from conftest import fast_policy, make_response
from retryable.errors import NonRetryableError, RetryableError
from retryable.infrastructure.retry import create_backoff_wait, wait_jitter
from retryable.infrastructure.retry_after import (
    parse_retry_after,
    parse_retry_after_value,
    retry_after_from_response,
)


def _http_date(delta: timedelta) -> str:
    return format_datetime(datetime.now(timezone.utc) + delta, usegmt=True)


def _failed_state(exc: BaseException, attempt_number: int = 1) -> RetryCallState:
    state = RetryCallState(retry_object=Retrying(), fn=None, args=(), kwargs={})
    state.attempt_number = attempt_number
    state.set_exception((type(exc), exc, None))
    return state


class TestParseRetryAfter:
    """Tests for parse_retry_after_value"""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_absent(self, value):
        assert parse_retry_after_value(value) is None

    def test_seconds(self):
        assert parse_retry_after_value("120") == 120.0
        assert parse_retry_after_value(" 1 ") == 1.0
        assert parse_retry_after_value("0") == 0.0

    @pytest.mark.parametrize("value", ["-5", "1.5", "soon", "1e3"])
    def test_unparseable(self, value):
        assert parse_retry_after_value(value) is None

    @pytest.mark.parametrize("value", ["9" * 400, "9" * 5000])
    def test_too_large_for_a_delay(self, value):
        assert parse_retry_after_value(value) is None

    def test_large_but_finite(self):
        assert parse_retry_after_value("9" * 300) == float("9" * 300)

    def test_future_date(self):
        delay = parse_retry_after_value(_http_date(timedelta(seconds=30)))

        assert 25 <= delay <= 30

    def test_past_date(self):
        delay = parse_retry_after_value("Wed, 21 Oct 2015 07:28:00 GMT")

        assert delay < 0

    def test_headers(self):
        assert parse_retry_after({"Retry-After": "3"}) == 3.0
        assert parse_retry_after({}) is None
        assert parse_retry_after(None) is None

    def test_response(self):
        response = make_response(429, headers={"retry-after": "7"})

        assert retry_after_from_response(response) == 7.0
        assert retry_after_from_response(None) is None


class TestBackoffWait:
    """Tests for create_backoff_wait"""

    def test_exponential(self):
        wait = create_backoff_wait(fast_policy(retry_delay=0.5, retry_multiplier=1.5))
        exc = RetryableError("invalid status code (500)")

        assert wait(_failed_state(exc, 1)) == pytest.approx(0.5)
        assert wait(_failed_state(exc, 2)) == pytest.approx(0.75)
        assert wait(_failed_state(exc, 3)) == pytest.approx(1.125)

    def test_retry_after_is_used_without_jitter(self):
        wait = create_backoff_wait(fast_policy(retry_delay=0.5, retry_jitter=0.5))
        response = make_response(503, headers={"Retry-After": "4"})
        exc = RetryableError("invalid status code (503)", response=response)

        assert [wait(_failed_state(exc)) for _ in range(5)] == [4.0] * 5

    def test_past_retry_after_falls_back(self):
        wait = create_backoff_wait(fast_policy(retry_delay=2.0))
        response = make_response(503, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"})
        exc = RetryableError("invalid status code (503)", response=response)

        assert wait(_failed_state(exc)) == pytest.approx(2.0)

    def test_error_without_response(self):
        wait = create_backoff_wait(fast_policy(retry_delay=1.0))

        assert wait(_failed_state(NonRetryableError("boom"))) == pytest.approx(1.0)

    def test_jitter_bounds(self):
        wait = wait_jitter(wait_fixed(10), 0.5)
        state = _failed_state(RetryableError("x"))

        for _ in range(50):
            assert 5.0 <= wait(state) <= 15.0
