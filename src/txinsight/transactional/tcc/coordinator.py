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
"""TCC coordinator — registry of in-flight global transactions and the confirm/cancel sweep."""

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime
from typing import Any

import structlog

from txinsight.kernel.exceptions import DuplicateTransactionException
from txinsight.observability.metrics import TransactionMetrics
from txinsight.transactional.tcc.config.properties import DuplicateBeginPolicy, TccCoordinatorProperties
from txinsight.transactional.tcc.core.context import GlobalTransactionContext, TccBranch
from txinsight.transactional.tcc.core.phase import TccPhase
from txinsight.transactional.tcc.core.reservation import Reservation
from txinsight.transactional.tcc.core.result import BranchResult, BranchStatus, CompletionReport
from txinsight.transactional.tcc.invoker import BranchInvoker

logger = structlog.get_logger(__name__)


class TccCoordinator:
    """Tracks global transaction contexts and fans confirm or cancel out to their branches.

    Each coordinator owns its registry; share the instance by reference.
    Registry access is guarded by a :class:`threading.Lock`, so ``begin`` and
    ``register_branch`` may be called from parallel application threads.

    A context exists from ``begin`` (or the first ``register_branch``) until
    exactly one of :meth:`commit` / :meth:`rollback` removes it. Later
    references to the same id are no-ops.

    Branch failures during the sweep are logged and recorded in the returned
    :class:`CompletionReport`; they never stop the remaining branches and
    never raise. Returning from ``commit`` therefore does not mean every
    branch confirmed: check :attr:`CompletionReport.success`.

    .. note::

       A ``register_branch`` racing a ``commit``/``rollback`` on the same
       ``tx_id`` is not resolved here. The branch is either part of the
       sweep or lands in a fresh context created after removal, which then
       stays active until it is completed on its own. Callers must finish
       registering before completing a transaction.

    Usage::

        coordinator = TccCoordinator()
        coordinator.begin("tx-1")
        branch = coordinator.register_branch("tx-1", ledger)
        await branch.reserve("alice", Decimal("100"))
        report = await coordinator.commit("tx-1")
    """

    def __init__(
        self,
        properties: TccCoordinatorProperties | None = None,
        invoker: BranchInvoker | None = None,
        metrics: TransactionMetrics | None = None,
    ) -> None:
        self._properties = properties or TccCoordinatorProperties()
        self._invoker = invoker or BranchInvoker()
        self._metrics = metrics
        self._contexts: dict[str, GlobalTransactionContext] = {}
        self._lock = threading.Lock()

    # ── registry ─────────────────────────────────────────────

    def begin(self, tx_id: str) -> GlobalTransactionContext:
        """Create an empty context for *tx_id*.

        Raises:
            DuplicateTransactionException: If *tx_id* is already active and
                the duplicate-begin policy is ``reject``.
        """
        with self._lock:
            existing = self._contexts.get(tx_id)
            if existing is not None:
                if self._properties.duplicate_begin is DuplicateBeginPolicy.REJECT:
                    raise DuplicateTransactionException(
                        f"Transaction '{tx_id}' is already active",
                        code="TCC_DUPLICATE_BEGIN",
                        context={"tx_id": tx_id},
                    )
                logger.warning(
                    "tcc_begin_overwrite",
                    tx_id=tx_id,
                    discarded_branches=len(existing.branches),
                )
            context = GlobalTransactionContext(tx_id=tx_id)
            self._contexts[tx_id] = context
            active = len(self._contexts)
        self._track_active(active)
        logger.debug("tcc_begin", tx_id=tx_id)
        return context

    def register_branch(
        self,
        tx_id: str,
        action: Any,
        reservation: Reservation | None = None,
    ) -> TccBranch:
        """Append *action* as the next branch of *tx_id*, creating the context if needed.

        Pass *reservation* when the try step already ran outside the
        coordinator; otherwise call :meth:`TccBranch.reserve` on the handle.
        """
        with self._lock:
            context = self._contexts.get(tx_id)
            if context is None:
                context = GlobalTransactionContext(tx_id=tx_id)
                self._contexts[tx_id] = context
            branch = context.add_branch(action, self._invoker, reservation)
            active = len(self._contexts)
        self._track_active(active)
        logger.debug(
            "tcc_branch_registered",
            tx_id=tx_id,
            branch_id=branch.branch_id,
            action=branch.action_name,
        )
        return branch

    def is_active(self, tx_id: str) -> bool:
        with self._lock:
            return tx_id in self._contexts

    def active_transactions(self) -> list[str]:
        with self._lock:
            return list(self._contexts)

    # ── completion ───────────────────────────────────────────

    async def commit(self, tx_id: str) -> CompletionReport:
        """Confirm every branch of *tx_id* in registration order."""
        return await self._complete(tx_id, TccPhase.CONFIRM)

    async def rollback(self, tx_id: str) -> CompletionReport:
        """Cancel every branch of *tx_id* in registration order."""
        return await self._complete(tx_id, TccPhase.CANCEL)

    async def _complete(self, tx_id: str, phase: TccPhase) -> CompletionReport:
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        with self._lock:
            context = self._contexts.pop(tx_id, None)
            if context is not None:
                context.complete(phase)
            active = len(self._contexts)
        self._track_active(active)

        if context is None:
            logger.debug("tcc_unknown_transaction", tx_id=tx_id, phase=str(phase))
            return CompletionReport(
                tx_id=tx_id,
                phase=phase,
                found=False,
                results=(),
                started_at=started_at,
                completed_at=datetime.now(UTC),
            )

        results = [await self._settle_branch(context, branch, phase) for branch in context.branches]
        report = CompletionReport(
            tx_id=tx_id,
            phase=phase,
            found=True,
            results=tuple(results),
            started_at=started_at,
            completed_at=datetime.now(UTC),
        )
        duration = time.perf_counter() - start

        failed = len(report.failed_branches())
        logger.info(
            "tcc_completed",
            tx_id=tx_id,
            phase=str(phase),
            branches=len(results),
            failed=failed,
            duration_ms=round(duration * 1000, 2),
        )
        if self._metrics is not None:
            self._metrics.record_completion(str(phase), failed, duration)
        return report

    def _track_active(self, count: int) -> None:
        if self._metrics is not None:
            self._metrics.set_active_transactions(count)

    async def _settle_branch(
        self,
        context: GlobalTransactionContext,
        branch: TccBranch,
        phase: TccPhase,
    ) -> BranchResult:
        reservation = branch.reservation
        if reservation is None:
            logger.debug("tcc_branch_skipped", tx_id=context.tx_id, branch_id=branch.branch_id)
            return BranchResult(branch.branch_id, branch.action_name, BranchStatus.SKIPPED)

        try:
            if phase is TccPhase.CONFIRM:
                await self._invoker.invoke_confirm(branch.action, reservation)
            else:
                await self._invoker.invoke_cancel(branch.action, reservation)
        except Exception as exc:
            logger.error(
                phase.failure_event,
                tx_id=context.tx_id,
                branch_id=branch.branch_id,
                action=branch.action_name,
                reservation_id=reservation.reservation_id,
                error=str(exc),
                exc_info=exc,
            )
            status = BranchStatus.CONFIRM_FAILED if phase is TccPhase.CONFIRM else BranchStatus.CANCEL_FAILED
            return BranchResult(branch.branch_id, branch.action_name, status, reservation, exc)

        status = BranchStatus.CONFIRMED if phase is TccPhase.CONFIRM else BranchStatus.CANCELLED
        return BranchResult(branch.branch_id, branch.action_name, status, reservation)
