"""Invariant checks run before a subscription is written."""

from __future__ import annotations

from typing import Dict, List

from .errors import ValidationError
from .models import CancelReason, Subscription
from .ports.catalog import PlanCatalog


def validate_subscription(
    subscription: Subscription,
    catalog: PlanCatalog,
    creating: bool = False,
) -> None:
    """
    Collect every invariant violation and raise them together.

    The plan key must be known to the catalog when the record is created;
    afterwards the key is immutable and a retired plan no longer blocks
    updates.

    Raises:
        ValidationError: If any invariant is violated
    """
    errors: Dict[str, List[str]] = {}

    def add(field: str, message: str) -> None:
        errors.setdefault(field, []).append(message)

    if subscription.subject is None:
        add("subject", "can't be blank")
    if not subscription.plan_key:
        add("plan_key", "can't be blank")
    elif creating and subscription.plan_key not in catalog:
        add("plan_key", f"is not included in the list ({subscription.plan_key})")
    if subscription.starts_at is None:
        add("starts_at", "can't be blank")
    if subscription.billing_starts_at is None:
        add("billing_starts_at", "can't be blank")

    if subscription.is_activated() and subscription.plan_key in catalog:
        plan = catalog.lookup(subscription.plan_key)
        if subscription.is_activated_paid_subscription(plan) and not subscription.paypal_profile_id:
            add("paypal_profile_id", "can't be blank")

    if subscription.is_canceled():
        if not subscription.cancel_reason:
            add("cancel_reason", "can't be blank")
        elif subscription.cancel_reason not in CancelReason.values():
            add("cancel_reason", f"is not included in the list ({subscription.cancel_reason})")

    if errors:
        raise ValidationError(errors)
