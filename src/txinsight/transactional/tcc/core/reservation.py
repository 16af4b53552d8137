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
"""Reservation — handle returned by a branch's try step."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from txinsight.kernel.exceptions import ValidationException


@dataclass(frozen=True)
class Reservation:
    """Identifies one reserved amount for one party.

    ``confirm`` and ``cancel`` receive this handle, so a single branch-action
    instance can serve many concurrent transactions.
    """

    party: str
    amount: Decimal
    reservation_id: str = field(default_factory=lambda: uuid.uuid4().hex)


def as_amount(amount: Decimal | int | str) -> Decimal:
    """Coerce *amount* to :class:`Decimal`, rejecting floats and malformed input."""
    if isinstance(amount, float):
        raise ValidationException("Amounts must be Decimal, int or str, not float", code="LEDGER_INVALID_AMOUNT")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(amount)
    except (InvalidOperation, TypeError) as exc:
        raise ValidationException(f"Invalid amount: {amount!r}", code="LEDGER_INVALID_AMOUNT") from exc
    if not value.is_finite():
        raise ValidationException(f"Invalid amount: {amount!r}", code="LEDGER_INVALID_AMOUNT")
    return value
