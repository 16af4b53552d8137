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
"""Tests for OrderService: the order row and its OrderCreated event commit together."""

from __future__ import annotations

import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from txinsight.kernel.exceptions import ConflictException, OutboxSerializationException, TransactionRequiredException
from txinsight.messaging.adapters.memory import InMemoryMessageBroker
from txinsight.orders import ORDER_CREATED, Order, OrderService
from txinsight.transactional.outbox import OutboxMessage, OutboxRelay, OutboxStatus, OutboxStore


async def _count(session_factory: async_sessionmaker[AsyncSession], model: type) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_body_outside_a_transaction_is_rejected(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        service = OrderService(session_factory)
        undecorated = OrderService.create_order.__wrapped__  # type: ignore[attr-defined]

        with pytest.raises(TransactionRequiredException) as exc_info:
            await undecorated(service, "order-1", {})

        assert exc_info.value.code == "ORDER_NO_TRANSACTION"
        assert await _count(session_factory, Order) == 0

    @pytest.mark.asyncio
    async def test_order_and_event_are_written_together(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        service = OrderService(session_factory)

        message = await service.create_order("order-1", {"sku": "ABC", "qty": 2})

        order = await service.find_order("order-1")
        assert order is not None
        assert order.status == "CREATED"
        assert message.event_type == ORDER_CREATED
        assert message.aggregate_id == "order-1"
        assert json.loads(message.payload) == {"sku": "ABC", "qty": 2}
        async with session_factory() as session:
            pending = await OutboxStore(session).find_pending()
        assert [m.id for m in pending] == [message.id]

    @pytest.mark.asyncio
    async def test_serialization_failure_leaves_no_order(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        service = OrderService(session_factory)

        with pytest.raises(OutboxSerializationException):
            await service.create_order("order-2", {"bad": object()})

        assert await service.find_order("order-2") is None
        assert await _count(session_factory, Order) == 0
        assert await _count(session_factory, OutboxMessage) == 0

    @pytest.mark.asyncio
    async def test_duplicate_order_rejected_without_second_event(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        service = OrderService(session_factory)
        await service.create_order("order-3", "{}")

        with pytest.raises(ConflictException):
            await service.create_order("order-3", "{}")

        assert await _count(session_factory, OutboxMessage) == 1

    @pytest.mark.asyncio
    async def test_created_order_reaches_the_broker(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        await OrderService(session_factory).create_order("order-4", {"total": "9.90"})

        report = await OutboxRelay(session_factory, broker).relay()

        assert len(report.sent) == 1
        assert broker.published[0].topic == ORDER_CREATED
        assert broker.published[0].key == b"order-4"
        async with session_factory() as session:
            counts = await OutboxStore(session).count_by_status()
        assert counts[OutboxStatus.SENT] == 1
