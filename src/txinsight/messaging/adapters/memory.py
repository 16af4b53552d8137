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
"""In-process broker: keeps every record and feeds topic subscribers inline."""

from __future__ import annotations

import logging
from collections import defaultdict

from txinsight.kernel.exceptions import BrokerNotRunningException
from txinsight.messaging.ports.outbound import MessageHandler
from txinsight.messaging.types import Message

logger = logging.getLogger(__name__)


class InMemoryMessageBroker:
    """Broker for tests, demos and single-process deployments.

    Records land in :attr:`published` in publish order. Subscribers of the
    topic run before :meth:`publish` returns; if one raises, the publish
    fails and the relay records the row as FAILED, which makes this broker
    handy for exercising failure paths.
    """

    def __init__(self) -> None:
        self.published: list[Message] = []
        self._handlers: defaultdict[str, list[MessageHandler]] = defaultdict(list)
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        self._started = False

    async def subscribe(self, topic: str, handler: MessageHandler) -> None:
        self._handlers[topic].append(handler)

    async def publish(
        self,
        topic: str,
        value: bytes,
        *,
        key: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if not self._started:
            raise BrokerNotRunningException(f"In-memory broker is stopped; cannot publish to '{topic}'")
        message = Message(topic=topic, value=value, key=key, headers=dict(headers or {}))
        self.published.append(message)
        logger.debug("Published %d bytes to %s", len(value), topic)
        for handler in self._handlers.get(topic, ()):
            await handler(message)

    def on_topic(self, topic: str) -> list[Message]:
        """Records published to *topic*, oldest first."""
        return [m for m in self.published if m.topic == topic]

    def duplicates(self) -> dict[int, int]:
        """Outbox ids delivered more than once, with their delivery counts."""
        counts: dict[int, int] = {}
        for message in self.published:
            if message.outbox_id is not None:
                counts[message.outbox_id] = counts.get(message.outbox_id, 0) + 1
        return {outbox_id: n for outbox_id, n in counts.items() if n > 1}
