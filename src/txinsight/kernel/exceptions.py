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
"""Unified exception hierarchy for txinsight.

All library exceptions inherit from TxInsightException so callers can catch
one base type, or a specific subclass for targeted handling.

Categories:
- BusinessException: domain rule violations raised before any side effect
  is committed (insufficient funds, duplicate transaction, bad state).
- InfrastructureException: persistence, serialization and messaging failures.
"""

from __future__ import annotations


# =============================================================================
# Base Exception
# =============================================================================


class TxInsightException(Exception):
    """Base exception for all txinsight errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "TCC_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(TxInsightException):
    """Domain rule violations and business logic errors."""


class ValidationException(BusinessException):
    """Input validation failures."""


class ResourceNotFoundException(BusinessException):
    """Requested resource does not exist."""


class ConflictException(BusinessException):
    """Operation conflicts with current state."""


class AccountNotFoundException(ResourceNotFoundException):
    """The ledger has no account for the requested party."""


class InsufficientFundsException(BusinessException):
    """A reserve asked for more than the party's available balance."""

    def __init__(self, party: str, requested: object, available: object) -> None:
        super().__init__(
            f"Insufficient funds for '{party}': requested {requested}, available {available}",
            code="LEDGER_INSUFFICIENT_FUNDS",
            context={"party": party, "requested": requested, "available": available},
        )
        self.party = party
        self.requested = requested
        self.available = available


class DuplicateTransactionException(ConflictException):
    """``begin`` was called for a transaction id that is already active."""


class ReservationStateException(ConflictException):
    """A reservation was settled in one phase and then asked to settle in the other."""


class InvalidStatusTransitionException(ConflictException):
    """An outbox message was asked to leave a terminal status."""


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(TxInsightException):
    """Infrastructure failures: database, serialization, messaging."""


class OutboxSerializationException(InfrastructureException):
    """An outbox payload could not be serialized."""


class TransactionRequiredException(InfrastructureException):
    """An operation that must join the caller's transaction found none active."""


class PublishTimeoutException(InfrastructureException):
    """A publish call to the message channel exceeded its time limit."""


class BrokerNotRunningException(InfrastructureException):
    """The message broker was used before ``start()`` or after ``stop()``."""
