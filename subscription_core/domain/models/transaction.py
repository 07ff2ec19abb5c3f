"""Ledger entry recording an activation or cancellation attempt."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class TransactionAction(str, Enum):
    ACTIVATION = "activation"
    CANCELLATION = "cancellation"


class TransactionStatus(str, Enum):
    INITIATED = "initiated"
    PENDING = "pending"
    COMPLETE = "complete"
    FAILED = "failed"
    ABORTED = "aborted"


GATEWAY_PAYPAL = "paypal"
GATEWAY_NONE = "none"


class Transaction:
    """
    Append-only record of one attempt to activate or cancel a subscription.

    Attributes:
        id: Unique identifier
        subscription_id: Subscription the attempt targets
        action: Activation or cancellation
        gateway: ``paypal`` for billed activations, ``none`` otherwise
        initiator: Admin identity that started the attempt, if any
        status: Processing status
        identifier: Gateway checkout token or profile id
        related_transaction_id: Activation that triggered a cancellation
        reason: Requested cancel reason
        error: Failure message for failed attempts
    """

    def __init__(
        self,
        id: Optional[int],
        subscription_id: int,
        action: TransactionAction,
        gateway: str,
        initiator: Optional[str] = None,
        status: TransactionStatus = TransactionStatus.INITIATED,
        identifier: Optional[str] = None,
        related_transaction_id: Optional[int] = None,
        reason: Optional[str] = None,
        error: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.subscription_id = subscription_id
        self.action = TransactionAction(action)
        self.gateway = gateway
        self.initiator = initiator
        self.status = TransactionStatus(status)
        self.identifier = identifier
        self.related_transaction_id = related_transaction_id
        self.reason = reason
        self.error = error
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    def is_activation(self) -> bool:
        return self.action is TransactionAction.ACTIVATION

    def is_cancellation(self) -> bool:
        return self.action is TransactionAction.CANCELLATION

    def is_open(self) -> bool:
        return self.status in (TransactionStatus.INITIATED, TransactionStatus.PENDING)

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} subscription_id={self.subscription_id} "
            f"action={self.action.value} status={self.status.value}>"
        )
