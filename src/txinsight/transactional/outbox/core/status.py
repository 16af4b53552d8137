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
"""Outbox row status and the tagged delivery state derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class OutboxStatus(StrEnum):
    """Persisted delivery status of an outbox row."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


@dataclass(frozen=True)
class Pending:
    """Not delivered yet; picked up by the next relay scan."""


@dataclass(frozen=True)
class Sent:
    """Delivered to the broker. Terminal."""

    sent_at: datetime


@dataclass(frozen=True)
class Failed:
    """Last publish attempt failed."""

    attempts: int
    last_error: str | None


OutboxState = Pending | Sent | Failed
