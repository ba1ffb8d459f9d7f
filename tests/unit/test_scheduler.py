"""
Tests for the auto-run scheduler.
"""

import asyncio

import pytest

from code_debugger.scheduler import AutoRunScheduler


def run_async(coro):
    """Helper to run async tests without pytest-asyncio."""
    return asyncio.run(coro)


class Recorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, code):
        self.calls.append(code)


class TestSchedule:
    """Tests for schedule()."""

    def test_fires_after_delay(self):
        recorder = Recorder()

        async def scenario():
            scheduler = AutoRunScheduler(recorder)
            scheduler.schedule("print(1)", 0.02)
            assert scheduler.pending
            assert scheduler.pending_code == "print(1)"
            assert recorder.calls == []
            await scheduler.wait()
            return scheduler

        scheduler = run_async(scenario())
        assert recorder.calls == ["print(1)"]
        assert scheduler.pending is False
        assert scheduler.fired_count == 1

    def test_rescheduling_replaces_pending(self):
        """Arming twice results in exactly one run with the second code."""
        recorder = Recorder()

        async def scenario():
            scheduler = AutoRunScheduler(recorder)
            scheduler.schedule("first", 0.02)
            scheduler.schedule("second", 0.02)
            await asyncio.sleep(0.08)

        run_async(scenario())
        assert recorder.calls == ["second"]

    def test_negative_delay_rejected(self):
        async def scenario():
            scheduler = AutoRunScheduler(Recorder())
            with pytest.raises(ValueError):
                scheduler.schedule("x", -1)

        run_async(scenario())


class TestCancel:
    """Tests for cancel()."""

    def test_cancel_prevents_run(self):
        recorder = Recorder()

        async def scenario():
            scheduler = AutoRunScheduler(recorder)
            scheduler.schedule("x", 0.02)
            assert scheduler.cancel() is True
            await asyncio.sleep(0.05)
            return scheduler

        scheduler = run_async(scenario())
        assert recorder.calls == []
        assert scheduler.fired_count == 0

    def test_cancel_is_idempotent(self):
        scheduler = AutoRunScheduler(Recorder())
        assert scheduler.cancel() is False
        assert scheduler.cancel() is False
        assert scheduler.pending is False

    def test_wait_after_cancel_returns(self):
        async def scenario():
            scheduler = AutoRunScheduler(Recorder())
            scheduler.schedule("x", 10)
            scheduler.cancel()
            await asyncio.wait_for(scheduler.wait(), timeout=1)

        run_async(scenario())

    def test_fired_run_cannot_cancel_itself(self):
        """A run that cancels the scheduler (as user actions do) still completes."""
        finished = []

        async def scenario():
            scheduler = None

            async def callback(code):
                assert scheduler.cancel() is False
                await asyncio.sleep(0.01)
                finished.append(code)

            scheduler = AutoRunScheduler(callback)
            scheduler.schedule("repaired", 0.01)
            await scheduler.wait()

        run_async(scenario())
        assert finished == ["repaired"]
