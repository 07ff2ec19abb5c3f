from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from ..models import CheckoutHandle, RecurringDetails, RecurringProfile


class RecurringBillingGateway(Protocol):
    """Opaque recurring-payment provider bound to a single currency."""

    def start_checkout(
        self,
        return_url: str,
        cancel_url: str,
        email: str,
        amount: Decimal,
        description: str,
    ) -> CheckoutHandle:
        ...

    def create_recurring(
        self,
        token: str,
        billing_starts_at: datetime,
        price: Decimal,
        price_tax: Decimal,
        description: str,
    ) -> RecurringProfile:
        ...

    def recurring_details(self, profile_id: str) -> RecurringDetails:
        ...

    def cancel_recurring(self, profile_id: str, reason: str) -> None:
        ...


class GatewayFactory(Protocol):
    """Builds a gateway for the currency of the plan being billed."""

    def __call__(self, currency: str) -> RecurringBillingGateway:
        ...
