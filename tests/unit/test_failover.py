# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for DualPathExecutor

Tests retry, backoff, fallback and error preservation.
"""

import asyncio
from typing import List

import pytest

from skills_registry.client.failover import (
    DualPathExecutor,
    FailoverConfig,
    FailoverState,
)
from skills_registry.client.transports import RegistryTransport
from skills_registry.core.errors import HTTPError, NetworkError, ParseError, RequestTimeoutError


class ScriptedTransport(RegistryTransport):
    """Transport that replays a scripted list of outcomes"""

    def __init__(self, name: str, outcomes: List):
        self.name = name
        self.outcomes = list(outcomes)
        self.calls = 0

    async def query(self, operation, params=None):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if outcome == "hang":
            await asyncio.sleep(10)
        return outcome


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_executor(fast_outcomes, fallback_outcomes, **config):
    fast = ScriptedTransport("fast", fast_outcomes)
    fallback = ScriptedTransport("fallback", fallback_outcomes)
    sleep = RecordingSleep()
    executor = DualPathExecutor(fast, fallback, FailoverConfig(**config), sleep=sleep)
    return executor, fast, fallback, sleep


class TestFastPath:
    """Test fast-path attempts"""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self):
        """No retry or fallback on success"""
        executor, fast, fallback, sleep = make_executor([{"ok": True}], [{"fallback": True}])
        assert await executor.execute("info") == {"ok": True}
        assert fast.calls == 1
        assert fallback.calls == 0
        assert sleep.delays == []
        assert executor.last_trace.served_by == "fast"

    @pytest.mark.asyncio
    async def test_retries_5xx_with_backoff(self):
        """5xx is retried with 100ms then 200ms delays"""
        executor, fast, fallback, sleep = make_executor(
            [HTTPError("bad gateway", 502), HTTPError("unavailable", 503), {"ok": True}],
            [{"fallback": True}],
        )
        assert await executor.execute("search", {"query": "x"}) == {"ok": True}
        assert fast.calls == 3
        assert fallback.calls == 0
        assert sleep.delays == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_network_errors_exhaust_three_attempts(self):
        """Retryable errors stop after three attempts then fall back"""
        executor, fast, fallback, sleep = make_executor(
            [NetworkError("refused")], [{"fallback": True}]
        )
        assert await executor.execute("info") == {"fallback": True}
        assert fast.calls == 3
        assert fallback.calls == 1
        assert sleep.delays == [0.1, 0.2]
        assert executor.last_trace.served_by == "fallback"

    @pytest.mark.asyncio
    async def test_attempt_timeout(self):
        """Each attempt has its own timeout budget"""
        executor, fast, fallback, sleep = make_executor(
            ["hang"], [{"fallback": True}], attempt_timeout=0.01
        )
        assert await executor.execute("info") == {"fallback": True}
        assert fast.calls == 3
        assert isinstance(executor.last_trace.fast_path_error, RequestTimeoutError)

    @pytest.mark.asyncio
    async def test_application_payload_passes_through(self):
        """A not-found payload is a success, not a transport failure"""
        payload = {"status": 404, "error": "Skill not found: x"}
        executor, fast, fallback, sleep = make_executor([payload], [{"fallback": True}])
        assert await executor.execute("get", {"name": "x"}) == payload
        assert fallback.calls == 0


class TestFallback:
    """Test fallback behaviour"""

    @pytest.mark.asyncio
    async def test_4xx_is_not_retried(self):
        """A 4xx goes straight to the fallback"""
        executor, fast, fallback, sleep = make_executor(
            [HTTPError("not found", 404)], [{"fallback": True}]
        )
        assert await executor.execute("info") == {"fallback": True}
        assert fast.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_double_failure_raises_original_4xx(self):
        """Fallback failure re-surfaces the fast-path 4xx"""
        original = HTTPError("bad request", 400)
        executor, fast, fallback, sleep = make_executor(
            [original], [NetworkError("fallback down")]
        )
        with pytest.raises(HTTPError) as exc:
            await executor.execute("search", {"query": "x"})
        assert exc.value is original
        assert fast.calls == 1
        assert fallback.calls == 1
        assert isinstance(executor.last_trace.fallback_error, NetworkError)

    @pytest.mark.asyncio
    async def test_double_failure_after_retries_raises_fast_path_error(self):
        """Fast-path root cause wins over the fallback error"""
        executor, fast, fallback, sleep = make_executor(
            [HTTPError("unavailable", 503)], [ParseError("garbage")]
        )
        with pytest.raises(HTTPError) as exc:
            await executor.execute("info")
        assert exc.value.http_status == 503

    @pytest.mark.asyncio
    async def test_parse_error_goes_to_fallback(self):
        """Malformed fast-path body is not retried"""
        executor, fast, fallback, sleep = make_executor(
            [ParseError("bad json")], [{"fallback": True}]
        )
        assert await executor.execute("info") == {"fallback": True}
        assert fast.calls == 1

    @pytest.mark.asyncio
    async def test_state_sequence(self):
        """Trace records the state machine path"""
        executor, fast, fallback, sleep = make_executor(
            [HTTPError("unavailable", 503), HTTPError("not found", 404)], [{"fallback": True}]
        )
        await executor.execute("info")
        assert executor.last_trace.states == [
            FailoverState.ATTEMPT,
            FailoverState.BACKOFF,
            FailoverState.ATTEMPT,
            FailoverState.FALLBACK,
            FailoverState.DONE,
        ]


class TestTrace:
    """Test the execution trace and backoff schedule"""

    @pytest.mark.asyncio
    async def test_trace_records_fast_path_failure(self):
        """Trace keeps attempts, delays and the first fast-path error"""
        first = NetworkError("down")
        executor, fast, fallback, sleep = make_executor([first], [{"ok": True}])
        await executor.execute("info")

        trace = executor.last_trace
        assert trace.attempts == 3
        assert trace.delays == [0.1, 0.2]
        assert trace.fast_path_error is first
        assert trace.served_by == "fallback"
        assert trace.fallback_error is None

    def test_delay_schedule_clamps(self):
        """Attempts past the schedule reuse the last delay"""
        config = FailoverConfig()
        assert [config.delay_after(n) for n in (1, 2, 3, 4)] == [0.1, 0.2, 0.4, 0.4]
