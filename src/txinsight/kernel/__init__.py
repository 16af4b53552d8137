"""txinsight kernel: shared exception hierarchy."""

from txinsight.kernel.exceptions import (
    AccountNotFoundException,
    BrokerNotRunningException,
    BusinessException,
    ConflictException,
    DuplicateTransactionException,
    InfrastructureException,
    InsufficientFundsException,
    InvalidStatusTransitionException,
    OutboxSerializationException,
    PublishTimeoutException,
    ReservationStateException,
    ResourceNotFoundException,
    TransactionRequiredException,
    TxInsightException,
    ValidationException,
)

__all__ = [
    "AccountNotFoundException",
    "BrokerNotRunningException",
    "BusinessException",
    "ConflictException",
    "DuplicateTransactionException",
    "InfrastructureException",
    "InsufficientFundsException",
    "InvalidStatusTransitionException",
    "OutboxSerializationException",
    "PublishTimeoutException",
    "ReservationStateException",
    "ResourceNotFoundException",
    "TransactionRequiredException",
    "TxInsightException",
    "ValidationException",
]
