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
"""Messaging data types."""

from __future__ import annotations

from dataclasses import dataclass, field

OUTBOX_ID_HEADER = "outbox-id"
EVENT_TYPE_HEADER = "event-type"


@dataclass(frozen=True)
class Message:
    """One record handed to the broker: ``event_type`` topic, ``aggregate_id`` key, payload value."""

    topic: str
    value: bytes
    key: bytes | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def outbox_id(self) -> int | None:
        """Id of the outbox row this record came from, for consumer-side deduplication."""
        raw = self.headers.get(OUTBOX_ID_HEADER)
        return int(raw) if raw is not None else None

    def text(self) -> str:
        return self.value.decode("utf-8")
