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
"""OutboxMessage — the ``outbox_message`` table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from txinsight.data.entity import AutoIncrementId, Base, utcnow
from txinsight.kernel.exceptions import InvalidStatusTransitionException
from txinsight.transactional.outbox.core.policy import RetryPolicy
from txinsight.transactional.outbox.core.status import Failed, OutboxState, OutboxStatus, Pending, Sent

MAX_ERROR_LENGTH = 1000


class OutboxMessage(Base):
    """An integration event written in the same transaction as its business change.

    Rows start ``PENDING``. The relay moves them to ``SENT`` (terminal) or
    ``FAILED``; a FAILED row goes back to the relay only while its
    :class:`RetryPolicy` allows. Rows are never deleted here.
    """

    __tablename__ = "outbox_message"
    __table_args__ = (Index("ix_outbox_message_status_created", "status", "created_at"),)

    id: Mapped[int] = mapped_column(AutoIncrementId, primary_key=True, autoincrement=True)
    aggregate_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[OutboxStatus] = mapped_column(
        Enum(OutboxStatus, native_enum=False, length=16),
        default=OutboxStatus.PENDING,
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(String(MAX_ERROR_LENGTH), default=None)
    next_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def state(self) -> OutboxState:
        if self.status is OutboxStatus.SENT:
            return Sent(sent_at=self.updated_at)
        if self.status is OutboxStatus.FAILED:
            return Failed(attempts=self.attempts, last_error=self.last_error)
        return Pending()

    def mark_sent(self) -> None:
        self._check_not_sent(OutboxStatus.SENT)
        now = utcnow()
        self.status = OutboxStatus.SENT
        self.attempts = (self.attempts or 0) + 1
        self.last_error = None
        self.next_attempt_at = None
        self.updated_at = now

    def mark_failed(self, error: str, policy: RetryPolicy | None = None) -> None:
        self._check_not_sent(OutboxStatus.FAILED)
        now = utcnow()
        self.status = OutboxStatus.FAILED
        self.attempts = (self.attempts or 0) + 1
        self.last_error = error[:MAX_ERROR_LENGTH]
        self.next_attempt_at = (policy or RetryPolicy()).next_attempt_at(self.attempts, now)
        self.updated_at = now

    def _check_not_sent(self, target: OutboxStatus) -> None:
        if self.status is OutboxStatus.SENT:
            raise InvalidStatusTransitionException(
                f"Outbox message {self.id} is already SENT, cannot mark {target}",
                code="OUTBOX_ALREADY_SENT",
                context={"id": self.id, "target": str(target)},
            )

    def __repr__(self) -> str:
        return f"OutboxMessage(id={self.id}, event_type={self.event_type!r}, status={self.status})"
