"""Tests for the bounded polling helper."""

import pytest

from common.exceptions import WaitTimeoutError
from common.retry import RetryPolicy, retry


class TestRetry:

    async def test_returns_first_truthy_result(self, fake_sleep, sleeps):
        results = iter([False, None, "ready"])

        value = await retry(lambda: next(results), RetryPolicy(interval=1, max_wait=10), sleep=fake_sleep)

        assert value == "ready"
        assert sleeps == [1, 1]

    async def test_accepts_coroutine_actions(self, fake_sleep):
        async def check():
            return True

        assert await retry(check, RetryPolicy(interval=1, max_wait=0), sleep=fake_sleep) is True

    async def test_budget_counted_in_steps(self, fake_sleep, sleeps):
        calls = []

        def never():
            calls.append(1)
            return False

        with pytest.raises(WaitTimeoutError) as exc_info:
            await retry(never, RetryPolicy(interval=2, max_wait=60), sleep=fake_sleep)

        assert len(calls) == 31
        assert sum(sleeps) == 60
        assert exc_info.value.attempts == 31
        assert exc_info.value.waited == 60

    async def test_zero_budget_tries_once(self, fake_sleep, sleeps):
        with pytest.raises(WaitTimeoutError):
            await retry(lambda: False, RetryPolicy(interval=1, max_wait=0), sleep=fake_sleep)
        assert sleeps == []

    async def test_on_wait_reports_remaining_budget(self, fake_sleep):
        reports = []

        with pytest.raises(WaitTimeoutError):
            await retry(lambda: False, RetryPolicy(interval=1, max_wait=3), sleep=fake_sleep,
                        on_wait=lambda attempt, remaining: reports.append((attempt, remaining)))

        assert reports == [(1, 3), (2, 2), (3, 1)]

    async def test_action_errors_propagate(self, fake_sleep):
        def broken():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await retry(broken, RetryPolicy(interval=1, max_wait=5), sleep=fake_sleep)

    def test_policy_validation(self):
        with pytest.raises(ValueError):
            RetryPolicy(interval=0, max_wait=5)
        with pytest.raises(ValueError):
            RetryPolicy(interval=1, max_wait=-1)
