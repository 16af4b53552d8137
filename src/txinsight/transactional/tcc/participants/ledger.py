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
"""Ledger branch action — per-party available/reserved balances."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from txinsight.kernel.exceptions import (
    AccountNotFoundException,
    InsufficientFundsException,
    ReservationStateException,
    ValidationException,
)
from txinsight.transactional.tcc.core.phase import TccPhase
from txinsight.transactional.tcc.core.reservation import Reservation, as_amount

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)
DEFAULT_SETTLED_HISTORY = 10_000


@dataclass
class _Account:
    available: Decimal
    reserved: Decimal = _ZERO
    lock: threading.Lock = field(default_factory=threading.Lock)
    open: dict[str, Decimal] = field(default_factory=dict)
    settled: OrderedDict[str, TccPhase] = field(default_factory=OrderedDict)


class LedgerBranchAction:
    """Branch action that freezes funds on reserve and settles or thaws them later.

    Each party's balances are mutated under that party's own lock, so
    transactions on different parties never contend. ``available + reserved``
    is conserved by reserve and cancel; confirm removes the confirmed amount
    from the ledger (it is settled elsewhere).

    A reservation is settled at most once. Repeating the phase it was settled
    with is a no-op; settling it with the opposite phase raises
    :class:`ReservationStateException`. Cancelling a reservation this ledger
    never saw records the cancel and changes no balance.

    Settled reservation ids are kept per account as idempotency history,
    oldest evicted first once *settled_history* entries are held. A repeat
    confirm or cancel for an evicted id is treated like one for an unknown
    reservation.
    """

    def __init__(
        self,
        balances: Mapping[str, Decimal | int | str] | None = None,
        settled_history: int = DEFAULT_SETTLED_HISTORY,
    ) -> None:
        if settled_history < 1:
            raise ValidationException("settled_history must be at least 1", code="LEDGER_INVALID_HISTORY")
        self._settled_history = settled_history
        self._accounts: dict[str, _Account] = {}
        self._accounts_lock = threading.Lock()
        for party, balance in (balances or {}).items():
            self.open_account(party, balance)

    # ── setup and inspection ─────────────────────────────────

    def open_account(self, party: str, balance: Decimal | int | str = _ZERO) -> None:
        amount = as_amount(balance)
        if amount < 0:
            raise ValidationException(f"Opening balance for '{party}' must not be negative", code="LEDGER_INVALID_AMOUNT")
        with self._accounts_lock:
            if party in self._accounts:
                raise ValidationException(f"Account '{party}' already exists", code="LEDGER_ACCOUNT_EXISTS")
            self._accounts[party] = _Account(available=amount)

    def available(self, party: str) -> Decimal:
        account = self._account(party)
        with account.lock:
            return account.available

    def reserved(self, party: str) -> Decimal:
        account = self._account(party)
        with account.lock:
            return account.reserved

    def total(self, party: str) -> Decimal:
        account = self._account(party)
        with account.lock:
            return account.available + account.reserved

    # ── try / confirm / cancel ───────────────────────────────

    def reserve(self, party: str, amount: Decimal | int | str) -> Reservation:
        value = as_amount(amount)
        if value <= 0:
            raise ValidationException(f"Reserve amount must be positive, got {value}", code="LEDGER_INVALID_AMOUNT")
        account = self._account(party)
        with account.lock:
            if value > account.available:
                raise InsufficientFundsException(party, value, account.available)
            account.available -= value
            account.reserved += value
            reservation = Reservation(party=party, amount=value)
            account.open[reservation.reservation_id] = value
        logger.debug("Reserved %s for %s (%s)", value, party, reservation.reservation_id)
        return reservation

    def confirm(self, reservation: Reservation) -> None:
        account = self._account(reservation.party)
        with account.lock:
            if self._already_settled(account, reservation, TccPhase.CONFIRM):
                return
            amount = account.open.pop(reservation.reservation_id, None)
            if amount is None:
                raise ReservationStateException(
                    f"Unknown reservation {reservation.reservation_id} for '{reservation.party}'",
                    code="LEDGER_UNKNOWN_RESERVATION",
                    context={"reservation_id": reservation.reservation_id},
                )
            account.reserved -= amount
            self._record_settled(account, reservation, TccPhase.CONFIRM)
        logger.debug("Confirmed %s for %s", amount, reservation.party)

    def cancel(self, reservation: Reservation) -> None:
        account = self._account(reservation.party)
        with account.lock:
            if self._already_settled(account, reservation, TccPhase.CANCEL):
                return
            amount = account.open.pop(reservation.reservation_id, None)
            self._record_settled(account, reservation, TccPhase.CANCEL)
            if amount is None:
                logger.warning(
                    "Cancel for unknown reservation %s on '%s'; nothing to release",
                    reservation.reservation_id,
                    reservation.party,
                )
                return
            account.reserved -= amount
            account.available += amount
        logger.debug("Cancelled %s for %s", amount, reservation.party)

    # ── internals ────────────────────────────────────────────

    def _account(self, party: str) -> _Account:
        with self._accounts_lock:
            account = self._accounts.get(party)
        if account is None:
            raise AccountNotFoundException(f"Unknown account '{party}'", context={"party": party})
        return account

    def _record_settled(self, account: _Account, reservation: Reservation, phase: TccPhase) -> None:
        account.settled[reservation.reservation_id] = phase
        while len(account.settled) > self._settled_history:
            account.settled.popitem(last=False)

    @staticmethod
    def _already_settled(account: _Account, reservation: Reservation, phase: TccPhase) -> bool:
        settled = account.settled.get(reservation.reservation_id)
        if settled is None:
            return False
        if settled is phase:
            return True
        raise ReservationStateException(
            f"Reservation {reservation.reservation_id} was already settled with {settled}, cannot {phase}",
            code="LEDGER_RESERVATION_SETTLED",
            context={"reservation_id": reservation.reservation_id, "settled": str(settled)},
        )
