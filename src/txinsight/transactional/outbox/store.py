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
"""Outbox store — writes and queries ``outbox_message`` rows through an AsyncSession."""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from txinsight.data.entity import utcnow
from txinsight.data.transactional import current_session
from txinsight.kernel.exceptions import (
    OutboxSerializationException,
    ResourceNotFoundException,
    TransactionRequiredException,
    ValidationException,
)
from txinsight.transactional.outbox.core.message import OutboxMessage
from txinsight.transactional.outbox.core.policy import RetryPolicy
from txinsight.transactional.outbox.core.status import OutboxStatus

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal | UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_payload(payload: Any) -> str:
    """Turn *payload* into the string stored in the ``payload`` column.

    Strings are stored as-is; bytes must be UTF-8. Anything else is encoded
    as compact JSON (datetimes, decimals, UUIDs, enums and dataclasses
    included).

    Raises:
        OutboxSerializationException: If the payload cannot be encoded.
    """
    if isinstance(payload, str):
        return payload
    try:
        if isinstance(payload, bytes):
            return payload.decode("utf-8")
        return json.dumps(payload, default=_json_default, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise OutboxSerializationException(
            f"Cannot serialize outbox payload of type {type(payload).__name__}: {exc}",
            code="OUTBOX_SERIALIZATION",
        ) from exc


class OutboxStore:
    """Data access for outbox rows.

    Without an explicit *session* the store joins the session of the active
    ``@transactional`` call, so :meth:`append` commits or rolls back together
    with the caller's business write.
    """

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._session = session

    def _require_session(self) -> AsyncSession:
        session = self._session if self._session is not None else current_session()
        if session is None:
            raise TransactionRequiredException(
                "OutboxStore needs an AsyncSession or an active @transactional call",
                code="OUTBOX_NO_TRANSACTION",
            )
        return session

    # ── writes ───────────────────────────────────────────────

    async def append(self, aggregate_id: str, event_type: str, payload: Any) -> OutboxMessage:
        """Insert a PENDING row inside the active transaction.

        Raises:
            TransactionRequiredException: If no transaction is active.
            OutboxSerializationException: If *payload* cannot be serialized.
        """
        session = self._require_session()
        if not session.in_transaction():
            raise TransactionRequiredException(
                "OutboxStore.append must run inside the business transaction",
                code="OUTBOX_NO_TRANSACTION",
            )
        if not aggregate_id or not event_type:
            raise ValidationException(
                "aggregate_id and event_type are required",
                code="OUTBOX_INVALID_MESSAGE",
                context={"aggregate_id": aggregate_id, "event_type": event_type},
            )
        body = serialize_payload(payload)

        now = utcnow()
        message = OutboxMessage(
            aggregate_id=str(aggregate_id),
            event_type=event_type,
            payload=body,
            status=OutboxStatus.PENDING,
            attempts=0,
            created_at=now,
            updated_at=now,
        )
        session.add(message)
        await session.flush()
        logger.debug("Appended outbox message %s (%s) for %s", message.id, event_type, aggregate_id)
        return message

    async def mark_sent(self, message_id: int) -> OutboxMessage:
        """Move a row to SENT. Raises InvalidStatusTransitionException if it already is."""
        message = await self._get(message_id)
        message.mark_sent()
        await self._require_session().flush()
        return message

    async def mark_failed(self, message_id: int, error: str, policy: RetryPolicy | None = None) -> OutboxMessage:
        """Move a row to FAILED and schedule its next attempt per *policy*."""
        message = await self._get(message_id)
        message.mark_failed(error, policy)
        await self._require_session().flush()
        return message

    # ── reads ────────────────────────────────────────────────

    async def find_by_id(self, message_id: int) -> OutboxMessage | None:
        return await self._require_session().get(OutboxMessage, message_id)

    async def find_pending(self) -> list[OutboxMessage]:
        """All PENDING rows in creation order."""
        stmt = (
            select(OutboxMessage)
            .where(OutboxMessage.status == OutboxStatus.PENDING)
            .order_by(OutboxMessage.created_at, OutboxMessage.id)
        )
        result = await self._require_session().execute(stmt)
        return list(result.scalars().all())

    async def find_retryable(
        self,
        policy: RetryPolicy | None = None,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[OutboxMessage]:
        """PENDING rows plus FAILED rows the policy still allows, in creation order."""
        policy = policy or RetryPolicy()
        now = now or utcnow()
        retryable_failure = and_(
            OutboxMessage.status == OutboxStatus.FAILED,
            OutboxMessage.attempts < policy.max_attempts,
            or_(OutboxMessage.next_attempt_at.is_(None), OutboxMessage.next_attempt_at <= now),
        )
        stmt = (
            select(OutboxMessage)
            .where(or_(OutboxMessage.status == OutboxStatus.PENDING, retryable_failure))
            .order_by(OutboxMessage.created_at, OutboxMessage.id)
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self._require_session().execute(stmt)
        return list(result.scalars().all())

    async def count_by_status(self) -> dict[OutboxStatus, int]:
        counts = {status: 0 for status in OutboxStatus}
        stmt = select(OutboxMessage.status, func.count()).group_by(OutboxMessage.status)
        result = await self._require_session().execute(stmt)
        for status, count in result.all():
            counts[OutboxStatus(status)] = count
        return counts

    async def _get(self, message_id: int) -> OutboxMessage:
        message = await self.find_by_id(message_id)
        if message is None:
            raise ResourceNotFoundException(
                f"Outbox message {message_id} not found",
                code="OUTBOX_NOT_FOUND",
                context={"id": message_id},
            )
        return message
