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
"""Tests for OutboxRelay scans: delivery, failure isolation, timeouts, retries and scheduling."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog.testing import capture_logs

from txinsight.kernel.exceptions import ValidationException
from txinsight.messaging.adapters.memory import InMemoryMessageBroker
from txinsight.messaging.types import Message
from txinsight.observability.metrics import MetricsRegistry, TransactionMetrics
from txinsight.transactional.outbox import (
    Failed,
    OutboxMessage,
    OutboxRelay,
    OutboxRelayProperties,
    OutboxStatus,
    OutboxStore,
    RelayReport,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _append(session_factory: async_sessionmaker[AsyncSession], *aggregates: str) -> list[int]:
    ids = []
    async with session_factory() as session, session.begin():
        store = OutboxStore(session)
        for aggregate in aggregates:
            message = await store.append(aggregate, "OrderCreated", {"orderId": aggregate})
            ids.append(message.id)
    return ids


async def _statuses(session_factory: async_sessionmaker[AsyncSession]) -> dict[OutboxStatus, int]:
    async with session_factory() as session:
        return await OutboxStore(session).count_by_status()


class _FailingFor(InMemoryMessageBroker):
    """In-memory broker that raises for selected aggregate keys."""

    def __init__(self, *bad_keys: str) -> None:
        super().__init__()
        self.bad_keys = {k.encode() for k in bad_keys}
        self.attempted: list[bytes | None] = []

    async def publish(self, topic, value, *, key=None, headers=None):  # type: ignore[no-untyped-def]
        self.attempted.append(key)
        if key in self.bad_keys:
            raise ConnectionError(f"cannot deliver {key!r}")
        await super().publish(topic, value, key=key, headers=headers)


# ---------------------------------------------------------------------------
# Single scans
# ---------------------------------------------------------------------------


class TestRelayScan:
    @pytest.mark.asyncio
    async def test_pending_rows_are_published_and_marked_sent(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        ids = await _append(session_factory, "order-1", "order-2")
        relay = OutboxRelay(session_factory, broker)

        report = await relay.relay()

        assert report == RelayReport(sent=tuple(ids), failed=())
        assert [m.key for m in broker.published] == [b"order-1", b"order-2"]
        first: Message = broker.published[0]
        assert first.topic == "OrderCreated"
        assert first.value == b'{"orderId":"order-1"}'
        assert first.headers == {"outbox-id": str(ids[0]), "event-type": "OrderCreated"}
        assert await _statuses(session_factory) == {
            OutboxStatus.PENDING: 0,
            OutboxStatus.SENT: 2,
            OutboxStatus.FAILED: 0,
        }

    @pytest.mark.asyncio
    async def test_second_scan_publishes_nothing(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        await _append(session_factory, "order-1")
        relay = OutboxRelay(session_factory, broker)

        await relay.relay()
        report = await relay.relay()

        assert report.scanned == 0
        assert len(broker.published) == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_block_later_rows(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        ids = await _append(session_factory, "a", "b", "c")
        broker = _FailingFor("b")
        await broker.start()
        relay = OutboxRelay(session_factory, broker)

        with capture_logs() as logs:
            report = await relay.relay()

        assert report.sent == (ids[0], ids[2])
        assert report.failed == (ids[1],)
        async with session_factory() as session:
            failed = await OutboxStore(session).find_by_id(ids[1])
        assert failed is not None
        assert failed.state == Failed(attempts=1, last_error="ConnectionError: cannot deliver b'b'")
        assert any(e["event"] == "outbox_publish_failed" and e["outbox_id"] == ids[1] for e in logs)

    @pytest.mark.asyncio
    async def test_failed_rows_are_terminal_by_default(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        await _append(session_factory, "a")
        broker = _FailingFor("a")
        await broker.start()
        relay = OutboxRelay(session_factory, broker)

        await relay.relay()
        broker.bad_keys.clear()
        report = await relay.relay()

        assert report.scanned == 0
        assert broker.attempted == [b"a"]
        assert (await _statuses(session_factory))[OutboxStatus.FAILED] == 1

    @pytest.mark.asyncio
    async def test_failed_rows_retry_under_policy(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        (row,) = await _append(session_factory, "a")
        broker = _FailingFor("a")
        await broker.start()
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(max_attempts=3))

        assert (await relay.relay()).failed == (row,)
        broker.bad_keys.clear()
        assert (await relay.relay()).sent == (row,)

        async with session_factory() as session:
            stored = await OutboxStore(session).find_by_id(row)
        assert stored is not None
        assert stored.status is OutboxStatus.SENT
        assert stored.attempts == 2

    @pytest.mark.asyncio
    async def test_publish_timeout_marks_failed(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        (row,) = await _append(session_factory, "slow")

        async def _hang(*args: object, **kwargs: object) -> None:
            await asyncio.sleep(10)

        broker = AsyncMock()
        broker.publish.side_effect = _hang
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(publish_timeout_ms=50))

        report = await relay.relay()

        assert report.failed == (row,)
        async with session_factory() as session:
            stored = await OutboxStore(session).find_by_id(row)
        assert stored is not None
        assert stored.last_error == "PublishTimeoutException: Publish timed out after 50 ms"

    @pytest.mark.asyncio
    async def test_batch_size_bounds_one_scan(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        ids = await _append(session_factory, "a", "b", "c")
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(batch_size=2))

        assert (await relay.relay()).sent == tuple(ids[:2])
        assert (await relay.relay()).sent == (ids[2],)

    @pytest.mark.asyncio
    async def test_concurrent_publishing(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        ids = await _append(session_factory, *(f"order-{i}" for i in range(6)))
        in_flight = 0
        peak = 0

        async def _publish(*args: object, **kwargs: object) -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.02)
            in_flight -= 1

        broker = AsyncMock()
        broker.publish.side_effect = _publish
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(concurrency=3))

        report = await relay.relay()

        assert report.sent == tuple(ids)
        assert 1 < peak <= 3

    @pytest.mark.asyncio
    async def test_row_sent_elsewhere_is_not_failed(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A row another relay already marked SENT is reported sent, not failed."""
        (row,) = await _append(session_factory, "a")

        async def _publish_and_race(*args: object, **kwargs: object) -> None:
            async with session_factory() as session, session.begin():
                await OutboxStore(session).mark_sent(row)

        broker = AsyncMock()
        broker.publish.side_effect = _publish_and_race
        relay = OutboxRelay(session_factory, broker)

        with capture_logs() as logs:
            report = await relay.relay()

        assert report.sent == (row,)
        assert any(e["event"] == "outbox_already_sent" for e in logs)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("concurrency", [1, 3])
    async def test_mark_step_error_does_not_stop_the_batch(
        self, session_factory: async_sessionmaker[AsyncSession], concurrency: int
    ) -> None:
        first, second, third = await _append(session_factory, "a", "b", "c")

        async def _publish_and_delete(*args: object, headers: dict[str, str], **kwargs: object) -> None:
            if int(headers["outbox-id"]) == first:
                async with session_factory() as session, session.begin():
                    await session.delete(await session.get(OutboxMessage, first))

        broker = AsyncMock()
        broker.publish.side_effect = _publish_and_delete
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(concurrency=concurrency))

        with capture_logs() as logs:
            report = await relay.relay()

        assert report.sent == (second, third)
        assert report.failed == (first,)
        assert await _statuses(session_factory) == {
            OutboxStatus.PENDING: 0,
            OutboxStatus.SENT: 2,
            OutboxStatus.FAILED: 0,
        }
        mark_errors = [e for e in logs if e["event"] == "outbox_mark_failed"]
        assert [e["outbox_id"] for e in mark_errors] == [first]
        assert mark_errors[0]["published"] is True
        assert mark_errors[0]["error"].startswith("ResourceNotFoundException")

    @pytest.mark.asyncio
    async def test_relay_metrics(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        await _append(session_factory, "a", "b")
        broker = _FailingFor("b")
        await broker.start()
        registry = CollectorRegistry()
        relay = OutboxRelay(session_factory, broker, metrics=TransactionMetrics(MetricsRegistry(registry)))

        await relay.relay()

        assert registry.get_sample_value("txinsight_outbox_messages_total", {"status": "SENT"}) == 1.0
        assert registry.get_sample_value("txinsight_outbox_messages_total", {"status": "FAILED"}) == 1.0

    @pytest.mark.parametrize(
        "properties",
        [
            OutboxRelayProperties(publish_timeout_ms=0),
            OutboxRelayProperties(concurrency=0),
            OutboxRelayProperties(batch_size=-1),
        ],
    )
    def test_invalid_properties_rejected(
        self, properties: OutboxRelayProperties, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        with pytest.raises(ValidationException):
            OutboxRelay(session_factory, AsyncMock(), properties)


# ---------------------------------------------------------------------------
# Scheduled loop
# ---------------------------------------------------------------------------


class TestRelayLifecycle:
    @pytest.mark.asyncio
    async def test_start_relays_on_fixed_delay(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(interval_ms=20))
        await relay.start()
        try:
            assert relay.running
            await _append(session_factory, "late")
            deadline = datetime.now(UTC) + timedelta(seconds=2)
            while not broker.published and datetime.now(UTC) < deadline:
                await asyncio.sleep(0.02)
        finally:
            await relay.stop()

        assert not relay.running
        assert [m.key for m in broker.published] == [b"late"]

    @pytest.mark.asyncio
    async def test_disabled_relay_does_not_start(
        self, session_factory: async_sessionmaker[AsyncSession], broker: InMemoryMessageBroker
    ) -> None:
        relay = OutboxRelay(session_factory, broker, OutboxRelayProperties(enabled=False))
        await relay.start()
        assert not relay.running
        await relay.stop()
