"""Tests for the rate-limit retry gateway."""

from unittest.mock import AsyncMock

import pytest

from qa_agent.ai.retry import with_rate_limit_retry


RATE_LIMITED = Exception("429 Too Many Requests")


class TestWithRateLimitRetry:
    """Tests for bounded exponential backoff."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        call = AsyncMock(return_value="ok")
        sleep = AsyncMock()
        assert await with_rate_limit_retry(call, sleep=sleep) == "ok"
        assert call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recovers_after_rate_limit(self):
        call = AsyncMock(side_effect=[RATE_LIMITED, "ok"])
        sleep = AsyncMock()
        assert await with_rate_limit_retry(call, sleep=sleep) == "ok"
        assert call.await_count == 2
        sleep.assert_awaited_once_with(5.0)

    @pytest.mark.asyncio
    async def test_exhausted_after_three_attempts(self):
        """Two retries at 5s then 10s, then the last error is re-raised unchanged."""
        last = Exception("RESOURCE_EXHAUSTED again")
        call = AsyncMock(side_effect=[RATE_LIMITED, RATE_LIMITED, last])
        sleep = AsyncMock()

        with pytest.raises(Exception) as exc_info:
            await with_rate_limit_retry(call, sleep=sleep)

        assert exc_info.value is last
        assert call.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [5.0, 10.0]

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self):
        err = Exception("API key not valid")
        call = AsyncMock(side_effect=err)
        sleep = AsyncMock()

        with pytest.raises(Exception) as exc_info:
            await with_rate_limit_retry(call, sleep=sleep)

        assert exc_info.value is err
        assert call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quota_is_not_retried(self):
        call = AsyncMock(side_effect=Exception("429 quota exceeded"))
        sleep = AsyncMock()
        with pytest.raises(Exception):
            await with_rate_limit_retry(call, sleep=sleep)
        assert call.await_count == 1

    @pytest.mark.asyncio
    async def test_custom_policy(self):
        call = AsyncMock(side_effect=[RATE_LIMITED, RATE_LIMITED, RATE_LIMITED, "ok"])
        sleep = AsyncMock()
        result = await with_rate_limit_retry(call, max_retries=3, initial_delay=1.0, sleep=sleep)
        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self):
        call = AsyncMock(side_effect=RATE_LIMITED)
        sleep = AsyncMock()
        with pytest.raises(Exception):
            await with_rate_limit_retry(call, max_retries=0, sleep=sleep)
        assert call.await_count == 1
        sleep.assert_not_awaited()
