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
"""Schedule triggers for :class:`~txinsight.scheduling.task_scheduler.TaskScheduler`."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Trigger:
    """When a periodic job runs.

    ``fixed_rate`` starts runs a fixed interval apart, however long each run
    takes. ``fixed_delay`` waits the interval after a run finishes, so runs
    never overlap. Exactly one of the two is set.
    """

    fixed_rate: timedelta | None = None
    fixed_delay: timedelta | None = None
    initial_delay: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if (self.fixed_rate is None) == (self.fixed_delay is None):
            raise ValueError("Exactly one of fixed_rate or fixed_delay must be specified")
        interval = self.interval
        if interval.total_seconds() <= 0:
            raise ValueError(f"Schedule interval must be positive, got {interval}")
        if self.initial_delay.total_seconds() < 0:
            raise ValueError("initial_delay must not be negative")

    @property
    def interval(self) -> timedelta:
        return self.fixed_rate if self.fixed_rate is not None else self.fixed_delay  # type: ignore[return-value]
