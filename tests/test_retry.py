"""Tests for mailbox_query.retry."""

from __future__ import annotations

import time
from datetime import timedelta

import pytest

from mailbox_query.config import PollConfig
from mailbox_query.retry import poll_until, utcnow


class TestPollUntil:
    @pytest.mark.asyncio
    async def test_no_deadline_runs_once(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(None, poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return []

        assert await fn() == []
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_past_deadline_runs_once(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(utcnow() - timedelta(seconds=1), poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return []

        started = time.monotonic()
        assert await fn() == []
        assert call_count == 1
        assert time.monotonic() - started < 0.5

    @pytest.mark.asyncio
    async def test_first_result_returned_without_retry(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(utcnow() + timedelta(seconds=10), poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return ["found"]

        assert await fn() == ["found"]
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_retries_until_found(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(utcnow() + timedelta(seconds=10), poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return ["found"] if call_count == 3 else []

        started = time.monotonic()
        assert await fn() == ["found"]
        assert call_count == 3
        assert time.monotonic() - started >= 0.04

    @pytest.mark.asyncio
    async def test_returns_empty_when_deadline_passes(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(utcnow() + timedelta(seconds=0.2), poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return []

        started = time.monotonic()
        assert await fn() == []
        assert call_count >= 2
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_wait_is_capped_at_deadline(self):
        config = PollConfig(initial_wait_seconds=5.0, max_wait_seconds=5.0, multiplier=1.0)

        @poll_until(utcnow() + timedelta(seconds=0.1), config)
        async def fn():
            return []

        started = time.monotonic()
        assert await fn() == []
        assert time.monotonic() - started < 2.0

    @pytest.mark.asyncio
    async def test_exceptions_are_not_retried(self, poll_config: PollConfig):
        call_count = 0

        @poll_until(utcnow() + timedelta(seconds=10), poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            raise ConnectionError("broken")

        with pytest.raises(ConnectionError, match="broken"):
            await fn()
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_uses_injected_clock(self, poll_config: PollConfig):
        deadline = utcnow() + timedelta(hours=1)
        call_count = 0

        @poll_until(deadline, poll_config, clock=lambda: deadline + timedelta(seconds=1))
        async def fn():
            nonlocal call_count
            call_count += 1
            return []

        assert await fn() == []
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_naive_deadline_is_local_time(self, poll_config: PollConfig):
        call_count = 0
        naive_past = (utcnow() - timedelta(seconds=5)).astimezone().replace(tzinfo=None)

        @poll_until(naive_past, poll_config)
        async def fn():
            nonlocal call_count
            call_count += 1
            return []

        assert await fn() == []
        assert call_count == 1
