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
"""Retry policy for failed outbox deliveries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from txinsight.kernel.exceptions import ValidationException


@dataclass(frozen=True)
class RetryPolicy:
    """How often a FAILED row is handed back to the relay, and when.

    ``max_attempts`` counts every publish attempt, the first included. The
    default of ``1`` makes FAILED terminal. Before attempt ``n + 1`` the
    relay waits ``backoff_ms * backoff_multiplier ** (n - 1)`` milliseconds.
    """

    max_attempts: int = 1
    backoff_ms: int = 0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValidationException("max_attempts must be at least 1", code="OUTBOX_INVALID_POLICY")
        if self.backoff_ms < 0:
            raise ValidationException("backoff_ms must not be negative", code="OUTBOX_INVALID_POLICY")
        if self.backoff_multiplier < 1:
            raise ValidationException("backoff_multiplier must be at least 1", code="OUTBOX_INVALID_POLICY")

    def can_retry(self, attempts: int) -> bool:
        return attempts < self.max_attempts

    def backoff(self, attempts: int) -> timedelta:
        """Delay before the attempt that follows *attempts* failed ones."""
        if attempts < 1 or self.backoff_ms == 0:
            return timedelta(0)
        return timedelta(milliseconds=self.backoff_ms * self.backoff_multiplier ** (attempts - 1))

    def next_attempt_at(self, attempts: int, now: datetime) -> datetime | None:
        """When a row with *attempts* failures becomes eligible again, or ``None`` if never."""
        if not self.can_retry(attempts):
            return None
        return now + self.backoff(attempts)
