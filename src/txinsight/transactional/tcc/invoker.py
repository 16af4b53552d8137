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
"""Branch invoker — calls reserve/confirm/cancel on sync or async branch actions."""

from __future__ import annotations

import inspect
from decimal import Decimal
from typing import Any

from txinsight.kernel.exceptions import ValidationException
from txinsight.transactional.tcc.core.reservation import Reservation, as_amount


class BranchInvoker:
    """Invokes branch action methods, awaiting them when they are coroutines."""

    async def invoke_reserve(self, action: Any, party: str, amount: Decimal | int | str) -> Reservation:
        """Invoke the try step and return the reservation it produced.

        Raises:
            ValidationException: If the action returned something other than a
                :class:`Reservation`.
        """
        reservation = await self._call(action.reserve, party, as_amount(amount))
        if not isinstance(reservation, Reservation):
            raise ValidationException(
                f"{type(action).__name__}.reserve returned {type(reservation).__name__}, expected Reservation",
                code="TCC_INVALID_RESERVATION",
            )
        return reservation

    async def invoke_confirm(self, action: Any, reservation: Reservation) -> None:
        await self._call(action.confirm, reservation)

    async def invoke_cancel(self, action: Any, reservation: Reservation) -> None:
        await self._call(action.cancel, reservation)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _call(method: Any, *args: Any) -> Any:
        result = method(*args)
        if inspect.isawaitable(result):
            return await result
        return result
