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
"""Transactional outbox.

Usage::

    from txinsight.transactional.outbox import OutboxRelay, OutboxStore

    class OrderService:
        @transactional()
        async def create_order(self, order_id, payload):
            ...
            await OutboxStore().append(order_id, "OrderCreated", payload)

    relay = OutboxRelay(session_factory, broker)
    await relay.start()
"""

from txinsight.transactional.outbox.config.properties import OutboxRelayProperties
from txinsight.transactional.outbox.core.message import OutboxMessage
from txinsight.transactional.outbox.core.policy import RetryPolicy
from txinsight.transactional.outbox.core.status import Failed, OutboxState, OutboxStatus, Pending, Sent
from txinsight.transactional.outbox.relay import OutboxRelay, RelayReport
from txinsight.transactional.outbox.store import OutboxStore, serialize_payload

__all__ = [
    "Failed",
    "OutboxMessage",
    "OutboxRelay",
    "OutboxRelayProperties",
    "OutboxState",
    "OutboxStatus",
    "OutboxStore",
    "Pending",
    "RelayReport",
    "RetryPolicy",
    "Sent",
    "serialize_payload",
]
