"""
Unit tests for ResilientLoader
Retry cap, backoff schedule, error classification and last-writer-wins
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from district_atlas.errors import EmptyResultError, ErrorKind, FormatError, TransportError
from district_atlas.loader import LoadPhase, ResilientLoader


def failing_fetch(*errors, result="loaded"):
    """Fetch that raises each error in turn, then returns result"""
    pending = list(errors)

    async def fetch():
        if pending:
            raise pending.pop(0)
        return result

    return AsyncMock(side_effect=fetch)


class TestResilientLoader:

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, sleep_recorder):
        fetch = failing_fetch()
        on_success = AsyncMock()
        loader = ResilientLoader("sites", "Head Start programs", fetch,
                                 sleep=sleep_recorder, on_success=on_success)

        result = await loader.run()

        assert result == "loaded"
        assert loader.state.phase == LoadPhase.SUCCESS
        assert loader.state.error is None
        assert loader.state.retry_count == 0
        assert sleep_recorder.delays == []
        on_success.assert_awaited_once_with("loaded")

    @pytest.mark.asyncio
    async def test_persistent_failure_stops_at_cap(self, sleep_recorder):
        fetch = AsyncMock(side_effect=TransportError("connection refused"))
        loader = ResilientLoader("sites", "Head Start programs", fetch, sleep=sleep_recorder)

        result = await loader.run()

        assert result is None
        assert fetch.await_count == 4
        assert sleep_recorder.delays == [1.0, 2.0, 4.0]
        assert loader.state.phase == LoadPhase.FAILED
        assert loader.state.retry_count == 4
        assert loader.state.error_kind == ErrorKind.NETWORK
        assert loader.state.error.startswith("Network error: Unable to load Head Start programs data.")

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, sleep_recorder):
        fetch = failing_fetch(TransportError("timeout"), FormatError("bad json"))
        loader = ResilientLoader("zones", "congressional districts", fetch, sleep=sleep_recorder)

        result = await loader.run()

        assert result == "loaded"
        assert fetch.await_count == 3
        assert sleep_recorder.delays == [1.0, 2.0]
        assert loader.state.phase == LoadPhase.SUCCESS
        assert loader.state.retry_count == 0
        assert loader.state.error is None

    @pytest.mark.asyncio
    async def test_custom_retry_policy(self, sleep_recorder):
        fetch = AsyncMock(side_effect=FormatError("bad"))
        loader = ResilientLoader("sites", "programs", fetch, max_retries=1,
                                 base_delay=0.5, sleep=sleep_recorder)

        await loader.run()

        assert fetch.await_count == 2
        assert sleep_recorder.delays == [0.5]

    def test_backoff_delay_doubles(self):
        loader = ResilientLoader("sites", "programs", AsyncMock())
        assert [loader.backoff_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, kind, prefix", [
        (TransportError("offline"), ErrorKind.NETWORK, "Network error:"),
        (ConnectionRefusedError("refused"), ErrorKind.NETWORK, "Network error:"),
        (FormatError("not json"), ErrorKind.FORMAT, "Data format error:"),
        (ValueError("unexpected"), ErrorKind.FORMAT, "Data format error:"),
        (EmptyResultError("nothing valid"), ErrorKind.EMPTY, "Failed to load programs data:"),
    ])
    async def test_error_classification(self, sleep_recorder, error, kind, prefix):
        loader = ResilientLoader("sites", "programs", AsyncMock(side_effect=error),
                                 max_retries=0, sleep=sleep_recorder)

        await loader.run()

        assert loader.state.error_kind == kind
        assert loader.state.error.startswith(prefix)

    @pytest.mark.asyncio
    async def test_retry_resets_counter(self, sleep_recorder):
        fetch = failing_fetch(*[TransportError("down")] * 4)
        loader = ResilientLoader("sites", "programs", fetch, sleep=sleep_recorder)

        assert await loader.run() is None
        assert loader.state.retry_count == 4

        result = await loader.retry()

        assert result == "loaded"
        assert fetch.await_count == 5
        assert loader.state.phase == LoadPhase.SUCCESS
        assert loader.state.retry_count == 0
        # Manual retry does not wait
        assert sleep_recorder.delays == [1.0, 2.0, 4.0]

    def test_reset_returns_failed_to_idle(self):
        loader = ResilientLoader("sites", "programs", AsyncMock())
        loader.state.phase = LoadPhase.FAILED
        loader.state.error = "boom"
        loader.state.retry_count = 2

        loader.reset()

        assert loader.state.phase == LoadPhase.IDLE
        assert loader.state.error is None
        assert loader.state.retry_count == 0

    @pytest.mark.asyncio
    async def test_loading_flag_during_fetch(self):
        observed = []
        loader = None

        async def fetch():
            observed.append((loader.state.loading, loader.state.error))
            return []

        loader = ResilientLoader("sites", "programs", fetch)
        await loader.run()

        assert observed == [(True, None)]
        assert loader.state.loading is False

    @pytest.mark.asyncio
    async def test_newer_run_supersedes_older(self):
        """An older attempt that settles after a newer run started is discarded"""
        release_first = asyncio.Event()
        calls = []

        async def fetch():
            calls.append(len(calls))
            if len(calls) == 1:
                await release_first.wait()
                return "stale"
            return "fresh"

        on_success = AsyncMock()
        loader = ResilientLoader("zones", "districts", fetch, on_success=on_success)

        first = asyncio.create_task(loader.run())
        await asyncio.sleep(0)
        second = await loader.run()
        release_first.set()
        stale = await first

        assert second == "fresh"
        assert stale is None
        on_success.assert_awaited_once_with("fresh")
        assert loader.state.phase == LoadPhase.SUCCESS

    @pytest.mark.asyncio
    async def test_newer_run_cancels_pending_backoff(self):
        waiting = asyncio.Event()
        release = asyncio.Event()

        async def slow_sleep(delay):
            waiting.set()
            await release.wait()

        fetch = failing_fetch(TransportError("down"))
        loader = ResilientLoader("sites", "programs", fetch, sleep=slow_sleep)

        first = asyncio.create_task(loader.run())
        await waiting.wait()
        second = await loader.run()
        release.set()

        assert second == "loaded"
        assert await first is None
        assert fetch.await_count == 2
