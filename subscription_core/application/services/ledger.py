import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ...domain.models import (
    GATEWAY_NONE,
    GATEWAY_PAYPAL,
    Subscription,
    Transaction,
    TransactionAction,
)
from ...domain.ports.persistence import TransactionRepository

logger = logging.getLogger(__name__)


class TransactionLedger:
    """Records activation and cancellation attempts for subscriptions."""

    def __init__(
        self,
        transactions: TransactionRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._transactions = transactions
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def create_activation(
        self,
        subscription: Subscription,
        gateway: str,
        admin: Optional[str],
    ) -> Transaction:
        transaction = self._transactions.add_transaction(
            Transaction(
                id=None,
                subscription_id=subscription.id,
                action=TransactionAction.ACTIVATION,
                gateway=gateway,
                initiator=admin,
                created_at=self._clock(),
            )
        )
        logger.info(
            "Recorded activation attempt %s for subscription %s via %s",
            transaction.id,
            subscription.id,
            gateway,
        )
        return transaction

    def create_cancellation(
        self,
        subscription: Subscription,
        admin: Optional[str],
        triggering_transaction: Optional[Transaction],
        reason: Optional[str] = None,
    ) -> Transaction:
        transaction = self._transactions.add_transaction(
            Transaction(
                id=None,
                subscription_id=subscription.id,
                action=TransactionAction.CANCELLATION,
                gateway=GATEWAY_PAYPAL if subscription.paypal_profile_id else GATEWAY_NONE,
                initiator=admin,
                related_transaction_id=(
                    triggering_transaction.id if triggering_transaction else None
                ),
                reason=reason,
                created_at=self._clock(),
            )
        )
        logger.info(
            "Recorded cancellation attempt %s for subscription %s (trigger=%s)",
            transaction.id,
            subscription.id,
            transaction.related_transaction_id,
        )
        return transaction
