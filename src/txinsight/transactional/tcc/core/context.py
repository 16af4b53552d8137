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
"""GlobalTransactionContext and TccBranch — runtime state of one coordinated transaction."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from txinsight.kernel.exceptions import ConflictException
from txinsight.transactional.tcc.core.phase import TccPhase
from txinsight.transactional.tcc.core.reservation import Reservation

if TYPE_CHECKING:
    from txinsight.transactional.tcc.invoker import BranchInvoker

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class TccBranch:
    """One participant registered on a global transaction.

    Holds a live reference to the branch action plus the reservation made
    through it. The handle is returned by
    :meth:`~txinsight.transactional.tcc.coordinator.TccCoordinator.register_branch`.
    """

    branch_id: str
    action: Any
    context: GlobalTransactionContext
    invoker: BranchInvoker
    reservation: Reservation | None = None

    @property
    def action_name(self) -> str:
        return type(self.action).__name__

    async def reserve(self, party: str, amount: Decimal | int | str) -> Reservation:
        """Run the action's try step and bind the reservation to this branch.

        If the transaction completes while the try step is still running, the
        new reservation is cancelled through the action before
        :class:`ConflictException` is raised, so no funds stay frozen.
        """
        with self.context.lock:
            rejection = self._rejection()
        if rejection is not None:
            raise rejection
        reservation = await self.invoker.invoke_reserve(self.action, party, amount)
        with self.context.lock:
            rejection = self._rejection()
            if rejection is None:
                self.reservation = reservation
                return reservation
        await self._release_late(reservation)
        raise rejection

    def _rejection(self) -> ConflictException | None:
        """Why a reservation cannot be bound now. Call with the context lock held."""
        if self.context.completed_phase is not None:
            return ConflictException(
                f"Transaction '{self.context.tx_id}' already completed with {self.context.completed_phase}",
                code="TCC_CONTEXT_COMPLETED",
                context={"tx_id": self.context.tx_id, "branch_id": self.branch_id},
            )
        if self.reservation is not None:
            return ConflictException(
                f"Branch '{self.branch_id}' already holds reservation {self.reservation.reservation_id}",
                code="TCC_BRANCH_RESERVED",
                context={"tx_id": self.context.tx_id, "branch_id": self.branch_id},
            )
        return None

    async def _release_late(self, reservation: Reservation) -> None:
        logger.warning(
            "Cancelling reservation %s of %s: it completed after the branch was closed",
            reservation.reservation_id,
            self.branch_id,
        )
        await self.invoker.invoke_cancel(self.action, reservation)


@dataclass(eq=False)
class GlobalTransactionContext:
    """Ordered branch registrations of one in-flight global transaction.

    Branches are added through the owning coordinator under its registry
    lock. ``lock`` guards ``completed_phase`` and the branches' bound
    reservations, so a try step that finishes after completion is seen and
    released rather than silently left out of the sweep.
    """

    tx_id: str
    branches: list[TccBranch] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_phase: TccPhase | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def complete(self, phase: TccPhase) -> None:
        with self.lock:
            self.completed_phase = phase

    def add_branch(
        self,
        action: Any,
        invoker: BranchInvoker,
        reservation: Reservation | None = None,
    ) -> TccBranch:
        branch = TccBranch(
            branch_id=f"{self.tx_id}#{len(self.branches) + 1}",
            action=action,
            context=self,
            invoker=invoker,
            reservation=reservation,
        )
        self.branches.append(branch)
        return branch
