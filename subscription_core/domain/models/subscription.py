"""Subscription domain model binding a subject to a billing plan."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from .plan import Plan
from .subject import SubjectRef


class CancelReason(str, Enum):
    UPDATE = "update"
    CANCEL = "cancel"
    TIMEOUT = "timeout"
    ADMIN = "admin"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(item.value for item in cls)


class Subscription:
    """
    Subscription entity tracking one plan selection for one subject.

    A subscription starts out initializing, is activated exactly once and
    may be canceled exactly once. Successors created on a plan change point
    back to the subscription they replace through ``prev_subscription_id``.

    Attributes:
        id: Unique identifier (None until persisted)
        subject: Owner reference
        plan_key: Plan catalog key, fixed at creation
        starts_at: When the subscription takes effect
        billing_starts_at: When the gateway starts charging
        activated_at: Activation timestamp
        canceled_at: Cancellation timestamp
        cancel_reason: One of ``CancelReason`` once canceled
        paypal_profile_id: Gateway recurring profile id for paid subscriptions
        sponsored: Exempt from gateway billing regardless of plan price
        prev_subscription_id: Subscription this one supersedes
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: Optional[int],
        subject: SubjectRef,
        plan_key: str,
        starts_at: datetime,
        billing_starts_at: datetime,
        activated_at: Optional[datetime] = None,
        canceled_at: Optional[datetime] = None,
        cancel_reason: Optional[str] = None,
        paypal_profile_id: Optional[str] = None,
        sponsored: bool = False,
        prev_subscription_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.subject = subject
        self.plan_key = plan_key
        self.starts_at = starts_at
        self.billing_starts_at = billing_starts_at
        self.activated_at = activated_at
        self.canceled_at = canceled_at
        self.cancel_reason = cancel_reason
        self.paypal_profile_id = paypal_profile_id
        self.sponsored = sponsored
        self.prev_subscription_id = prev_subscription_id
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    def is_activated(self) -> bool:
        return self.activated_at is not None

    def is_canceled(self) -> bool:
        return self.canceled_at is not None

    def is_paid_subscription(self, plan: Plan) -> bool:
        return not plan.is_free() and not self.sponsored

    def is_activated_paid_subscription(self, plan: Plan) -> bool:
        return self.is_activated() and self.is_paid_subscription(plan)

    def sort_key(self) -> Tuple[datetime, int]:
        """Creation time then id, the order subscriptions are always listed in."""
        return (self.created_at, self.id if self.id is not None else 0)

    def __repr__(self) -> str:
        if self.is_canceled():
            state = "canceled"
        elif self.is_activated():
            state = "activated"
        else:
            state = "initializing"
        return (
            f"<Subscription id={self.id} subject={self.subject} "
            f"plan={self.plan_key} state={state}>"
        )
