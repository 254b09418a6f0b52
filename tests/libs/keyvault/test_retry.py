"""Tests for libs/keyvault/retry.py - client-side throttling policy."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from azure.core.exceptions import HttpResponseError

from libs.keyvault.retry import (
    DEFAULT_BACKOFF,
    ThrottlingPolicy,
    exponential_backoff,
    get_status_code,
    is_not_found,
    is_too_many_requests,
)
from tests.libs.keyvault.conftest import make_http_error


class TestBackoffSchedule:
    """Test backoff schedule construction."""

    @pytest.mark.unit()
    def test_default_schedule(self):
        assert DEFAULT_BACKOFF == (1.0, 2.0, 4.0, 8.0, 16.0)

    @pytest.mark.unit()
    def test_custom_schedule(self):
        assert exponential_backoff(retries=3, base_seconds=0.5) == (0.5, 1.0, 2.0)

    @pytest.mark.unit()
    def test_negative_delays_rejected(self):
        with pytest.raises(ValueError):
            ThrottlingPolicy(backoff=(1.0, -1.0))

    @pytest.mark.unit()
    def test_max_attempts(self):
        assert ThrottlingPolicy().max_attempts == 6


class TestStatusClassification:
    """Test status code extraction from transport exceptions."""

    @pytest.mark.unit()
    def test_azure_core_error(self):
        assert get_status_code(make_http_error(429)) == 429
        assert is_too_many_requests(make_http_error(429))
        assert is_not_found(make_http_error(404))

    @pytest.mark.unit()
    def test_legacy_error_with_response(self):
        error = RuntimeError("legacy failure")
        error.response = SimpleNamespace(status_code=404)  # type: ignore[attr-defined]
        assert get_status_code(error) == 404
        assert is_not_found(error)

    @pytest.mark.unit()
    def test_error_without_status(self):
        error = ValueError("no status")
        assert get_status_code(error) is None
        assert not is_too_many_requests(error)
        assert not is_not_found(error)


class TestThrottlingPolicy:
    """Test ThrottlingPolicy.execute() retry behavior."""

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_success_first_attempt(self, throttling_policy, recording_sleep):
        operation = AsyncMock(return_value="ok")

        result = await throttling_policy.execute(operation)

        assert result == "ok"
        operation.assert_awaited_once()
        assert recording_sleep.delays == []

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_always_throttled_attempts_six_times(self, throttling_policy, recording_sleep):
        """1 initial attempt + 5 retries, waiting 1, 2, 4, 8, 16 seconds."""
        final_error = make_http_error(429, "Too Many Requests")
        operation = AsyncMock(side_effect=[make_http_error(429)] * 5 + [final_error])

        with pytest.raises(type(final_error)) as exc_info:
            await throttling_policy.execute(operation)

        assert exc_info.value is final_error
        assert operation.await_count == 6
        assert recording_sleep.delays == [1.0, 2.0, 4.0, 8.0, 16.0]

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_recovers_after_throttling(self, throttling_policy, recording_sleep):
        operation = AsyncMock(side_effect=[make_http_error(429), make_http_error(429), "ok"])

        result = await throttling_policy.execute(operation)

        assert result == "ok"
        assert operation.await_count == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 500, 503])
    async def test_other_statuses_not_retried(self, throttling_policy, recording_sleep, status_code):
        error = make_http_error(status_code)
        operation = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await throttling_policy.execute(operation)

        operation.assert_awaited_once()
        assert recording_sleep.delays == []

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_custom_classifier(self, recording_sleep):
        policy = ThrottlingPolicy(
            is_retryable=lambda e: isinstance(e, ConnectionError),
            backoff=(0.1, 0.2),
            sleep=recording_sleep,
        )
        operation = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await policy.execute(operation)

        assert operation.await_count == 3
        assert recording_sleep.delays == [0.1, 0.2]

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_operation_returning_coroutine_is_awaited(self, throttling_policy):
        """A plain callable producing a coroutine is awaited on every attempt."""

        async def fetch() -> str:
            return "ok"

        result = await throttling_policy.execute(lambda: fetch())

        assert result == "ok"

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_coroutine_factory_retried_on_throttling(self, throttling_policy, recording_sleep):
        responses = [make_http_error(429), "ok"]

        async def fetch() -> str:
            response = responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

        result = await throttling_policy.execute(lambda: fetch())

        assert result == "ok"
        assert recording_sleep.delays == [1.0]

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_short_schedule_exhausted_raises_last_error(self, recording_sleep):
        policy = ThrottlingPolicy(backoff=exponential_backoff(retries=2), sleep=recording_sleep)
        operation = AsyncMock(side_effect=make_http_error(429))

        with pytest.raises(HttpResponseError) as exc_info:
            await policy.execute(operation)

        assert exc_info.value.status_code == 429
        assert operation.await_count == 3
        assert recording_sleep.delays == [1.0, 2.0]

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_empty_schedule_attempts_once(self, recording_sleep):
        policy = ThrottlingPolicy(backoff=(), sleep=recording_sleep)
        operation = AsyncMock(side_effect=make_http_error(429))

        with pytest.raises(HttpResponseError):
            await policy.execute(operation)

        operation.assert_awaited_once()
        assert recording_sleep.delays == []
