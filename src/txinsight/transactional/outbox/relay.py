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
"""Outbox relay — publishes undelivered rows and records the outcome per row."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from txinsight.data.transactional import session_scope
from txinsight.kernel.exceptions import (
    InvalidStatusTransitionException,
    PublishTimeoutException,
    ValidationException,
)
from txinsight.messaging.ports.outbound import MessageBrokerPort
from txinsight.messaging.types import EVENT_TYPE_HEADER, OUTBOX_ID_HEADER
from txinsight.observability.metrics import TransactionMetrics
from txinsight.scheduling.task_scheduler import TaskScheduler
from txinsight.transactional.outbox.config.properties import OutboxRelayProperties
from txinsight.transactional.outbox.core.message import OutboxMessage
from txinsight.transactional.outbox.store import OutboxStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RelayReport:
    """Row ids published (``sent``) and not published (``failed``) by one scan."""

    sent: tuple[int, ...] = ()
    failed: tuple[int, ...] = ()

    @property
    def scanned(self) -> int:
        return len(self.sent) + len(self.failed)


class OutboxRelay:
    """Scans the outbox and hands each eligible row to the broker.

    One scan (:meth:`relay`) reads a snapshot of retryable rows in creation
    order, publishes ``(event_type, aggregate_id, payload)`` per row under
    ``publish_timeout_ms`` and persists SENT or FAILED in its own short
    transaction right after each attempt. A failed row never stops the rows
    after it.

    Delivery is at-least-once. A crash between publish and the status
    update republishes the row on the next scan, and several relays may
    publish the same PENDING row; consumers must deduplicate, e.g. on the
    ``outbox-id`` header.

    :meth:`start` runs scans on a fixed delay through a
    :class:`TaskScheduler`; :meth:`stop` ends them.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        broker: MessageBrokerPort,
        properties: OutboxRelayProperties | None = None,
        metrics: TransactionMetrics | None = None,
        scheduler: TaskScheduler | None = None,
    ) -> None:
        self._properties = properties or OutboxRelayProperties()
        if self._properties.publish_timeout_ms <= 0:
            raise ValidationException("publish_timeout_ms must be positive", code="OUTBOX_INVALID_RELAY")
        if self._properties.concurrency < 1:
            raise ValidationException("concurrency must be at least 1", code="OUTBOX_INVALID_RELAY")
        if self._properties.batch_size < 0:
            raise ValidationException("batch_size must not be negative", code="OUTBOX_INVALID_RELAY")
        self._session_factory = session_factory
        self._broker = broker
        self._metrics = metrics
        self._policy = self._properties.retry_policy()
        self._scheduler = scheduler or TaskScheduler()
        self._started = False

    @property
    def properties(self) -> OutboxRelayProperties:
        return self._properties

    @property
    def running(self) -> bool:
        return self._started

    # ── lifecycle ────────────────────────────────────────────

    async def start(self) -> None:
        """Schedule :meth:`relay` every ``interval_ms`` after the previous scan finishes."""
        if self._started:
            return
        if not self._properties.enabled:
            logger.info("outbox_relay_disabled")
            return
        self._scheduler.schedule(
            self.relay,
            fixed_delay=timedelta(milliseconds=self._properties.interval_ms),
            initial_delay=timedelta(milliseconds=self._properties.initial_delay_ms),
        )
        await self._scheduler.start()
        self._started = True
        logger.info(
            "outbox_relay_started",
            interval_ms=self._properties.interval_ms,
            batch_size=self._properties.batch_size,
            concurrency=self._properties.concurrency,
        )

    async def stop(self) -> None:
        if not self._started:
            return
        await self._scheduler.stop()
        self._started = False
        logger.info("outbox_relay_stopped")

    # ── scanning ─────────────────────────────────────────────

    async def relay(self) -> RelayReport:
        """Run one scan and return which rows were sent and which failed."""
        start = time.perf_counter()
        async with self._session_factory() as session:
            messages = await OutboxStore(session).find_retryable(
                self._policy,
                limit=self._properties.batch_size or None,
            )
        if not messages:
            return RelayReport()

        if self._properties.concurrency == 1:
            outcomes = [await self._relay_one(message) for message in messages]
        else:
            semaphore = asyncio.Semaphore(self._properties.concurrency)

            async def _bounded(message: OutboxMessage) -> bool:
                async with semaphore:
                    return await self._relay_one(message)

            outcomes = list(await asyncio.gather(*(_bounded(m) for m in messages)))

        report = RelayReport(
            sent=tuple(m.id for m, ok in zip(messages, outcomes, strict=True) if ok),
            failed=tuple(m.id for m, ok in zip(messages, outcomes, strict=True) if not ok),
        )
        duration = time.perf_counter() - start
        logger.info(
            "outbox_relay_scan",
            scanned=report.scanned,
            sent=len(report.sent),
            failed=len(report.failed),
            duration_ms=round(duration * 1000, 2),
        )
        if self._metrics is not None:
            self._metrics.record_relay(len(report.sent), len(report.failed), duration)
        return report

    async def _relay_one(self, message: OutboxMessage) -> bool:
        """Publish one row and persist the outcome; never raises for a single row."""
        error = await self._publish(message)
        try:
            return await self._record_outcome(message, error)
        except InvalidStatusTransitionException:
            logger.warning("outbox_already_sent", outbox_id=message.id)
            return error is None
        except Exception as exc:
            logger.error(
                "outbox_mark_failed",
                outbox_id=message.id,
                event_type=message.event_type,
                published=error is None,
                error=f"{type(exc).__name__}: {exc}",
                exc_info=exc,
            )
            return False

    async def _record_outcome(self, message: OutboxMessage, error: str | None) -> bool:
        async with session_scope(self._session_factory):
            store = OutboxStore()
            if error is None:
                await store.mark_sent(message.id)
                return True
            updated = await store.mark_failed(message.id, error, self._policy)
            attempts, retry_at = updated.attempts, updated.next_attempt_at
        logger.warning(
            "outbox_publish_failed",
            outbox_id=message.id,
            event_type=message.event_type,
            attempts=attempts,
            retry_at=retry_at.isoformat() if retry_at else None,
            error=error,
        )
        return False

    async def _publish(self, message: OutboxMessage) -> str | None:
        """Publish *message*; return ``None`` on success or the failure reason."""
        timeout_ms = self._properties.publish_timeout_ms
        try:
            try:
                await asyncio.wait_for(
                    self._broker.publish(
                        message.event_type,
                        message.payload.encode("utf-8"),
                        key=message.aggregate_id.encode("utf-8"),
                        headers={
                            OUTBOX_ID_HEADER: str(message.id),
                            EVENT_TYPE_HEADER: message.event_type,
                        },
                    ),
                    timeout=timeout_ms / 1000,
                )
            except TimeoutError as exc:
                raise PublishTimeoutException(
                    f"Publish timed out after {timeout_ms} ms",
                    code="OUTBOX_PUBLISH_TIMEOUT",
                    context={"id": message.id},
                ) from exc
        except Exception as exc:
            return f"{type(exc).__name__}: {exc}"
        logger.debug("outbox_published", outbox_id=message.id, event_type=message.event_type)
        return None
