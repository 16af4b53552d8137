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
"""Try-Confirm-Cancel coordination.

Usage::

    from txinsight.transactional.tcc import TccCoordinator, LedgerBranchAction

    ledger = LedgerBranchAction({"alice": 1000})
    coordinator = TccCoordinator()
    coordinator.begin("tx-1")
    branch = coordinator.register_branch("tx-1", ledger)
    await branch.reserve("alice", 100)
    report = await coordinator.rollback("tx-1")
"""

from txinsight.transactional.tcc.config.properties import DuplicateBeginPolicy, TccCoordinatorProperties
from txinsight.transactional.tcc.coordinator import TccCoordinator
from txinsight.transactional.tcc.core.context import GlobalTransactionContext, TccBranch
from txinsight.transactional.tcc.core.phase import TccPhase
from txinsight.transactional.tcc.core.reservation import Reservation
from txinsight.transactional.tcc.core.result import BranchResult, BranchStatus, CompletionReport
from txinsight.transactional.tcc.invoker import BranchInvoker
from txinsight.transactional.tcc.participants.ledger import LedgerBranchAction
from txinsight.transactional.tcc.ports.outbound import BranchAction

__all__ = [
    "BranchAction",
    "BranchInvoker",
    "BranchResult",
    "BranchStatus",
    "CompletionReport",
    "DuplicateBeginPolicy",
    "GlobalTransactionContext",
    "LedgerBranchAction",
    "Reservation",
    "TccBranch",
    "TccCoordinator",
    "TccCoordinatorProperties",
    "TccPhase",
]
