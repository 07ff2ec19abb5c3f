"""Billing date derivation for a subscription and its successors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta

from ...domain.models import RecurringDetails, Subscription


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BillingSchedule:
    """
    Billing dates of one subscription, computed from an explicit snapshot of
    the gateway's recurring profile details.

    The snapshot is fetched once when the schedule is built; build a new
    schedule to see fresh gateway data.
    """

    subscription: Subscription
    details: RecurringDetails = field(default_factory=RecurringDetails.empty)
    clock: Callable[[], datetime] = _utcnow

    @property
    def next_billing_date(self) -> Optional[datetime]:
        return self.details.next_billing_date

    @property
    def last_billing_date(self) -> Optional[datetime]:
        return self.details.last_payment_date

    @property
    def estimated_next_billing_date(self) -> Optional[datetime]:
        last = self.last_billing_date
        if last is None:
            return None
        # calendar month, clamped to the last day (Jan 31 -> Feb 28/29)
        return last + relativedelta(months=1)

    def successor_billing_start_date(self) -> datetime:
        # a canceled subscription has no further billing cycle
        return (
            self.subscription.canceled_at
            or self.next_billing_date
            or self.estimated_next_billing_date
            or self.clock()
        )
