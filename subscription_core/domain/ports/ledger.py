from __future__ import annotations

from typing import Optional, Protocol

from ..models import Subscription, Transaction


class SubscriptionLedger(Protocol):
    """Factory for activation and cancellation attempts."""

    def create_activation(
        self,
        subscription: Subscription,
        gateway: str,
        admin: Optional[str],
    ) -> Transaction:
        ...

    def create_cancellation(
        self,
        subscription: Subscription,
        admin: Optional[str],
        triggering_transaction: Optional[Transaction],
        reason: Optional[str] = None,
    ) -> Transaction:
        ...
