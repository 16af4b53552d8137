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
"""Kafka publisher built on aiokafka's producer."""

from __future__ import annotations

import logging
from typing import Any

from txinsight.kernel.exceptions import BrokerNotRunningException

logger = logging.getLogger(__name__)


class KafkaAdapter:
    """Publishes outbox records to Kafka, one topic per event type.

    Needs the ``kafka`` extra (``pip install txinsight[kafka]``). The producer
    waits for all in-sync replicas (``acks="all"``) and runs idempotent, so
    its own retries never write a record twice within one producer session.
    Redelivery by the relay is still possible and is left to consumers.
    """

    def __init__(
        self,
        bootstrap_servers: str = "localhost:9092",
        *,
        client_id: str = "txinsight-outbox-relay",
        linger_ms: int = 5,
        max_batch_size: int = 32_768,
        request_timeout_ms: int = 30_000,
    ) -> None:
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.linger_ms = linger_ms
        self.max_batch_size = max_batch_size
        self.request_timeout_ms = request_timeout_ms
        self._producer: Any = None

    def producer_options(self) -> dict[str, Any]:
        return {
            "bootstrap_servers": self.bootstrap_servers,
            "client_id": self.client_id,
            "acks": "all",
            "enable_idempotence": True,
            "linger_ms": self.linger_ms,
            "max_batch_size": self.max_batch_size,
            "request_timeout_ms": self.request_timeout_ms,
        }

    async def start(self) -> None:
        if self._producer is not None:
            return
        from aiokafka import AIOKafkaProducer  # type: ignore[import-untyped]

        producer = AIOKafkaProducer(**self.producer_options())
        await producer.start()
        self._producer = producer
        logger.info("Kafka producer connected to %s", self.bootstrap_servers)

    async def stop(self) -> None:
        producer, self._producer = self._producer, None
        if producer is not None:
            await producer.stop()

    async def publish(
        self,
        topic: str,
        value: bytes,
        *,
        key: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if self._producer is None:
            raise BrokerNotRunningException(f"Kafka producer is not started; cannot publish to '{topic}'")
        record_headers = [(name, text.encode("utf-8")) for name, text in headers.items()] if headers else None
        await self._producer.send_and_wait(topic, value=value, key=key, headers=record_headers)
