from __future__ import annotations

from typing import List, Optional, Protocol

from ..models import Subscription, Transaction


class SubscriptionRepository(Protocol):
    """Abstract storage for subscriptions."""

    def add_subscription(self, subscription: Subscription) -> Subscription:
        ...

    def save_subscription(self, subscription: Subscription) -> Subscription:
        ...

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def list_next_subscriptions(
        self,
        prev_subscription_id: int,
        exclude_id: Optional[int] = None,
    ) -> List[Subscription]:
        """Successors of a subscription ordered by creation time then id."""
        ...


class TransactionRepository(Protocol):
    """Abstract append-only storage for ledger entries."""

    def add_transaction(self, transaction: Transaction) -> Transaction:
        ...

    def save_transaction(self, transaction: Transaction) -> Transaction:
        ...

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        ...

    def list_related_transactions(self, transaction_id: int) -> List[Transaction]:
        ...


class PersistenceGateway(SubscriptionRepository, TransactionRepository, Protocol):
    """Composite gateway combining every persistence concern used by the core."""

    pass
