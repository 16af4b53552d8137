# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for TaskScheduler and its triggers."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from txinsight.scheduling import TaskScheduler, Trigger


class _Counter:
    def __init__(self) -> None:
        self.call_count = 0

    async def tick(self) -> None:
        self.call_count += 1

    def sync_tick(self) -> None:
        self.call_count += 1


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


class TestTrigger:
    def test_interval_follows_the_set_field(self) -> None:
        assert Trigger(fixed_delay=timedelta(seconds=2)).interval == timedelta(seconds=2)
        assert Trigger(fixed_rate=timedelta(milliseconds=50)).interval == timedelta(milliseconds=50)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"fixed_rate": timedelta(seconds=1), "fixed_delay": timedelta(seconds=1)},
            {"fixed_delay": timedelta(0)},
            {"fixed_rate": timedelta(seconds=1), "initial_delay": timedelta(seconds=-1)},
        ],
    )
    def test_invalid_triggers_rejected(self, kwargs: dict[str, timedelta]) -> None:
        with pytest.raises(ValueError):
            Trigger(**kwargs)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class TestTaskScheduler:
    def test_schedule_registers_job(self) -> None:
        counter = _Counter()
        scheduler = TaskScheduler()
        job = scheduler.schedule(counter.tick, fixed_delay=timedelta(seconds=1))
        assert scheduler.jobs == [job]
        assert job.name == "_Counter.tick"
        assert job.trigger == Trigger(fixed_delay=timedelta(seconds=1))

    @pytest.mark.asyncio
    async def test_fixed_rate_and_fixed_delay_jobs_run(self) -> None:
        rate, delay = _Counter(), _Counter()
        scheduler = TaskScheduler()
        scheduler.schedule(rate.tick, fixed_rate=timedelta(seconds=0.02))
        scheduler.schedule(delay.sync_tick, fixed_delay=timedelta(seconds=0.02))

        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert rate.call_count >= 2
        assert delay.call_count >= 2
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_schedule_callable_with_initial_delay(self) -> None:
        calls: list[int] = []

        async def job() -> None:
            calls.append(1)

        scheduler = TaskScheduler()
        scheduler.schedule(job, fixed_delay=timedelta(seconds=0.01), initial_delay=timedelta(seconds=0.2))
        await scheduler.start()
        await asyncio.sleep(0.05)
        assert calls == []
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_failing_run_does_not_stop_the_loop(self, caplog: pytest.LogCaptureFixture) -> None:
        calls: list[int] = []

        async def flaky() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first scan failed")

        scheduler = TaskScheduler()
        scheduler.schedule(flaky, fixed_delay=timedelta(seconds=0.01))
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert len(calls) >= 2
        assert "first scan failed" in caplog.text
        (job,) = scheduler.jobs
        assert job.failures == 1
        assert job.last_error == "RuntimeError: first scan failed"
        assert job.runs == len(calls)

    def test_schedule_requires_one_trigger(self) -> None:
        with pytest.raises(ValueError):
            TaskScheduler().schedule(lambda: None)
