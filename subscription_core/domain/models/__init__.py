"""Domain models for subscription lifecycle management."""

from .billing import CheckoutHandle, GatewayStatus, RecurringDetails, RecurringProfile
from .plan import Plan
from .subject import Subject, SubjectRef
from .subscription import CancelReason, Subscription
from .transaction import (
    GATEWAY_NONE,
    GATEWAY_PAYPAL,
    Transaction,
    TransactionAction,
    TransactionStatus,
)

__all__ = [
    "CancelReason",
    "CheckoutHandle",
    "GATEWAY_NONE",
    "GATEWAY_PAYPAL",
    "GatewayStatus",
    "Plan",
    "RecurringDetails",
    "RecurringProfile",
    "Subject",
    "SubjectRef",
    "Subscription",
    "Transaction",
    "TransactionAction",
    "TransactionStatus",
]
