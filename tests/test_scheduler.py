from __future__ import annotations

import asyncio
import logging

import pytest

from core.scheduler import BackgroundScheduler


def test_run_once_skips_while_a_pass_is_in_flight():
    async def scenario():
        gate = asyncio.Event()
        calls = []

        async def job():
            calls.append("run")
            await gate.wait()

        scheduler = BackgroundScheduler(job, interval=60)
        first = asyncio.ensure_future(scheduler.run_once())
        await asyncio.sleep(0)
        assert scheduler.in_flight

        second = await scheduler.run_once()
        gate.set()
        first_result = await first
        return scheduler, calls, first_result, second

    scheduler, calls, first_result, second = asyncio.run(scenario())

    assert calls == ["run"]
    assert first_result is True
    assert second is False
    assert scheduler.skipped_ticks == 1
    assert scheduler.completed_passes == 1
    assert not scheduler.in_flight


def test_failed_pass_is_logged_and_reported(caplog):
    async def job():
        raise RuntimeError("boom")

    scheduler = BackgroundScheduler(job, interval=60)

    with caplog.at_level(logging.ERROR, logger="core.scheduler"):
        result = asyncio.run(scheduler.run_once())

    assert result is False
    assert scheduler.completed_passes == 0
    assert not scheduler.in_flight
    assert any("pass failed" in record.getMessage() for record in caplog.records)


def test_loop_runs_job_periodically_and_stops():
    async def scenario():
        calls = []

        async def job():
            calls.append(1)

        scheduler = BackgroundScheduler(job, interval=0.01)
        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.1)
        await scheduler.stop()
        return scheduler, calls

    scheduler, calls = asyncio.run(scenario())

    assert len(calls) >= 2
    assert scheduler.completed_passes == len(calls)
    assert not scheduler.running


def test_loop_skips_ticks_during_slow_pass():
    async def scenario():
        started = []

        async def job():
            started.append(1)
            await asyncio.sleep(0.2)

        scheduler = BackgroundScheduler(job, interval=0.01)
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()
        return scheduler, started

    scheduler, started = asyncio.run(scenario())

    assert len(started) == 1
    assert scheduler.skipped_ticks >= 1
    assert scheduler.completed_passes == 0


def test_interval_must_be_positive():
    async def job():
        return None

    with pytest.raises(ValueError):
        BackgroundScheduler(job, interval=0)
