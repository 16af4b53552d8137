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
"""Outbound port implemented by every TCC branch participant."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from txinsight.transactional.tcc.core.reservation import Reservation


@runtime_checkable
class BranchAction(Protocol):
    """Try/Confirm/Cancel capability of one resource (ledger, inventory, ...).

    Methods may be plain or ``async``; the coordinator awaits whatever they
    return. Each phase must be safe to call exactly once per reservation.
    """

    def reserve(self, party: str, amount: Decimal) -> Reservation | Any:
        """Try: set *amount* aside for *party* and return the reservation handle."""
        ...

    def confirm(self, reservation: Reservation) -> Any:
        """Confirm: settle a reservation made by :meth:`reserve`."""
        ...

    def cancel(self, reservation: Reservation) -> Any:
        """Cancel: release a reservation made by :meth:`reserve`."""
        ...
