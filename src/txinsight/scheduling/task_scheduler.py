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
"""Task scheduler — runs periodic jobs such as the outbox relay scan on asyncio tasks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from txinsight.scheduling.triggers import Trigger

logger = logging.getLogger(__name__)


@dataclass
class ScheduledJob:
    """A periodic callable plus counters describing how its runs went."""

    name: str
    method: Callable[..., Any]
    trigger: Trigger
    runs: int = 0
    failures: int = 0
    last_error: str | None = None


class TaskScheduler:
    """Runs every registered job in its own asyncio loop.

    Jobs are registered with :meth:`schedule`, whose trigger is built at
    runtime from configuration, as for the relay scan interval.

    A run that raises is logged and counted on its :class:`ScheduledJob`;
    the loop carries on with the next run.

    Usage::

        scheduler = TaskScheduler()
        scheduler.schedule(relay.relay, fixed_delay=timedelta(seconds=1))
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self) -> None:
        self._jobs: list[ScheduledJob] = []
        self._loops: list[asyncio.Task[None]] = []
        self._inflight: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs)

    def schedule(
        self,
        method: Callable[..., Any],
        *,
        fixed_rate: timedelta | None = None,
        fixed_delay: timedelta | None = None,
        initial_delay: timedelta | None = None,
    ) -> ScheduledJob:
        """Register *method* with a trigger built at runtime."""
        trigger = Trigger(fixed_rate=fixed_rate, fixed_delay=fixed_delay, initial_delay=initial_delay or timedelta(0))
        return self._add(getattr(method, "__qualname__", repr(method)), method, trigger)

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        for job in self._jobs:
            task = asyncio.create_task(self._loop(job), name=f"txinsight-scheduler:{job.name}")
            task.add_done_callback(self._on_loop_done)
            self._loops.append(task)

    async def stop(self) -> None:
        """Cancel every loop and wait until they have exited."""
        self._running = False
        for task in self._loops:
            task.cancel()
        pending = [*self._loops, *self._inflight]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._loops.clear()

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    def _add(self, name: str, method: Callable[..., Any], trigger: Trigger) -> ScheduledJob:
        job = ScheduledJob(name=name, method=method, trigger=trigger)
        self._jobs.append(job)
        logger.debug("Scheduled %s every %s", name, trigger.interval)
        return job

    async def _loop(self, job: ScheduledJob) -> None:
        trigger = job.trigger
        if trigger.initial_delay:
            await asyncio.sleep(trigger.initial_delay.total_seconds())
        while self._running:
            if trigger.fixed_rate is not None:
                run = asyncio.create_task(self._run_once(job))
                self._inflight.add(run)
                run.add_done_callback(self._inflight.discard)
                await asyncio.sleep(trigger.fixed_rate.total_seconds())
            else:
                await self._run_once(job)
                await asyncio.sleep(trigger.interval.total_seconds())

    @staticmethod
    async def _run_once(job: ScheduledJob) -> None:
        job.runs += 1
        try:
            result = job.method()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            job.failures += 1
            job.last_error = f"{type(exc).__name__}: {exc}"
            logger.exception("Scheduled job %s failed", job.name)

    @staticmethod
    def _on_loop_done(task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scheduler loop %s crashed", task.get_name(), exc_info=task.exception())
