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
"""Messaging configuration and broker selection."""

from __future__ import annotations

import importlib.util
from dataclasses import dataclass

from txinsight.core.config import config_properties
from txinsight.kernel.exceptions import ValidationException
from txinsight.messaging.ports.outbound import MessageBrokerPort


@config_properties(prefix="txinsight.messaging")
@dataclass
class MessagingProperties:
    """Broker settings.

    YAML structure::

        txinsight:
          messaging:
            provider: kafka        # memory | kafka | auto
            bootstrap_servers: localhost:9092
            linger_ms: 5
            max_batch_size: 32768
    """

    provider: str = "memory"
    bootstrap_servers: str = "localhost:9092"
    client_id: str = "txinsight-outbox-relay"
    linger_ms: int = 5
    max_batch_size: int = 32_768
    request_timeout_ms: int = 30_000


def detect_provider() -> str:
    """Return ``kafka`` when aiokafka is importable, ``memory`` otherwise."""
    if importlib.util.find_spec("aiokafka") is not None:
        return "kafka"
    return "memory"


def create_broker(properties: MessagingProperties) -> MessageBrokerPort:
    """Build the broker adapter named by ``properties.provider``."""
    provider = properties.provider.lower()
    if provider == "auto":
        provider = detect_provider()

    if provider == "kafka":
        from txinsight.messaging.adapters.kafka import KafkaAdapter

        return KafkaAdapter(
            bootstrap_servers=properties.bootstrap_servers,
            client_id=properties.client_id,
            linger_ms=properties.linger_ms,
            max_batch_size=properties.max_batch_size,
            request_timeout_ms=properties.request_timeout_ms,
        )
    if provider == "memory":
        from txinsight.messaging.adapters.memory import InMemoryMessageBroker

        return InMemoryMessageBroker()

    raise ValidationException(
        f"Unknown messaging provider '{properties.provider}'",
        code="MESSAGING_UNKNOWN_PROVIDER",
        context={"provider": properties.provider},
    )
