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
"""Immutable result types — BranchResult and CompletionReport."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from txinsight.transactional.tcc.core.phase import TccPhase
from txinsight.transactional.tcc.core.reservation import Reservation


class BranchStatus(StrEnum):
    """Outcome of driving one branch through confirm or cancel."""

    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    CONFIRM_FAILED = "CONFIRM_FAILED"
    CANCEL_FAILED = "CANCEL_FAILED"
    SKIPPED = "SKIPPED"

    @property
    def failed(self) -> bool:
        return self in (BranchStatus.CONFIRM_FAILED, BranchStatus.CANCEL_FAILED)


@dataclass(frozen=True)
class BranchResult:
    """Immutable snapshot of how a single branch completed.

    Fields
    ------
    branch_id:
        ``<tx_id>#<n>`` where *n* is the registration position.
    action_name:
        Class name of the branch action.
    status:
        Outcome of the phase. ``SKIPPED`` means the branch never reserved
        anything, so there was nothing to settle.
    reservation:
        Reservation bound to the branch, or ``None``.
    error:
        Exception raised by confirm/cancel, or ``None``.
    """

    branch_id: str
    action_name: str
    status: BranchStatus
    reservation: Reservation | None = None
    error: Exception | None = None

    @property
    def reason(self) -> str | None:
        return str(self.error) if self.error is not None else None


@dataclass(frozen=True)
class CompletionReport:
    """Summary of one commit or rollback sweep.

    ``found`` is ``False`` when no context existed for ``tx_id``; the sweep
    was then a no-op. Callers must check :attr:`success` (or
    :meth:`failed_branches`) rather than assume that returning from
    ``commit`` means every branch confirmed.
    """

    tx_id: str
    phase: TccPhase
    found: bool
    results: tuple[BranchResult, ...]
    started_at: datetime
    completed_at: datetime

    @property
    def success(self) -> bool:
        return not any(r.status.failed for r in self.results)

    def failed_branches(self) -> list[BranchResult]:
        return [r for r in self.results if r.status.failed]

    def status_of(self, branch_id: str) -> BranchStatus | None:
        for result in self.results:
            if result.branch_id == branch_id:
                return result.status
        return None
