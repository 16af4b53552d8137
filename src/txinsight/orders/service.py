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
"""Order service — the business write that emits an outbox event."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from txinsight.data.entity import utcnow
from txinsight.data.transactional import current_session, transactional
from txinsight.kernel.exceptions import ConflictException, TransactionRequiredException, ValidationException
from txinsight.orders.entity import Order
from txinsight.transactional.outbox.core.message import OutboxMessage
from txinsight.transactional.outbox.store import OutboxStore

ORDER_CREATED = "OrderCreated"


class OrderService:
    """Creates orders and records their ``OrderCreated`` event atomically.

    The order row and the outbox row share one ``@transactional`` session:
    both commit or neither does.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        outbox: OutboxStore | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._outbox = outbox or OutboxStore()

    @transactional()
    async def create_order(self, order_id: str, payload: Any) -> OutboxMessage:
        """Insert order *order_id* and append its event with *payload*.

        Raises:
            ConflictException: If the order already exists.
            OutboxSerializationException: If *payload* cannot be serialized;
                the order insert is rolled back with it.
        """
        if not order_id:
            raise ValidationException("order_id is required", code="ORDER_INVALID")
        session = current_session()
        if session is None:
            raise TransactionRequiredException(
                "create_order must run inside a transaction", code="ORDER_NO_TRANSACTION"
            )
        if await session.get(Order, order_id) is not None:
            raise ConflictException(
                f"Order '{order_id}' already exists",
                code="ORDER_EXISTS",
                context={"order_id": order_id},
            )
        session.add(Order(id=order_id, status="CREATED", created_at=utcnow()))
        await session.flush()
        return await self._outbox.append(order_id, ORDER_CREATED, payload)

    async def find_order(self, order_id: str) -> Order | None:
        async with self._session_factory() as session:
            return await session.get(Order, order_id)
