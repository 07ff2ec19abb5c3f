"""State machine for a subscription and the cascade across its successors."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from ...domain.errors import (
    AlreadyActivatedError,
    AlreadyCanceledError,
    NotFoundError,
    ValidationError,
)
from ...domain.models import (
    GATEWAY_NONE,
    GATEWAY_PAYPAL,
    CancelReason,
    CheckoutHandle,
    Plan,
    RecurringDetails,
    RecurringProfile,
    SubjectRef,
    Subscription,
    Transaction,
)
from ...domain.ports.billing import GatewayFactory, RecurringBillingGateway
from ...domain.ports.catalog import PlanCatalog
from ...domain.ports.ledger import SubscriptionLedger
from ...domain.ports.persistence import SubscriptionRepository
from ...domain.validation import validate_subscription
from .billing_schedule import BillingSchedule
from .subject_registry import SubjectRegistry

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION_TEMPLATE = "{plan_name} for {subject_desc} ({price})"


class SubscriptionLifecycleService:
    """Drives subscriptions from initializing through activation to cancellation."""

    def __init__(
        self,
        subscriptions: SubscriptionRepository,
        ledger: SubscriptionLedger,
        catalog: PlanCatalog,
        gateway_factory: GatewayFactory,
        subject_registry: SubjectRegistry,
        description_template: str = DEFAULT_DESCRIPTION_TEMPLATE,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._subscriptions = subscriptions
        self._ledger = ledger
        self._catalog = catalog
        self._gateway_factory = gateway_factory
        self._subjects = subject_registry
        self._description_template = description_template
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Construction ---------------------------------------------------------
    def build_for_initializing(
        self,
        subject: SubjectRef,
        plan_key: str,
        start_time: Optional[datetime] = None,
        billing_start_time: Optional[datetime] = None,
        prev_subscription: Optional[Subscription] = None,
        sponsored: bool = False,
    ) -> Subscription:
        """
        Create and persist a subscription in the initializing state.

        Args:
            subject: Owner of the subscription
            plan_key: Plan catalog key
            start_time: When the plan takes effect, defaults to now
            billing_start_time: When billing starts, defaults to ``start_time``
            prev_subscription: Subscription this one will supersede
            sponsored: Skip gateway billing regardless of plan price

        Raises:
            ValidationError: If the plan key is unknown or a field is missing
        """
        start_time = start_time or self._clock()
        subscription = Subscription(
            id=None,
            subject=subject,
            plan_key=plan_key,
            starts_at=start_time,
            billing_starts_at=billing_start_time or start_time,
            sponsored=sponsored,
            prev_subscription_id=prev_subscription.id if prev_subscription else None,
            created_at=self._clock(),
        )
        validate_subscription(subscription, self._catalog, creating=True)
        subscription = self._subscriptions.add_subscription(subscription)
        logger.info(
            "Built subscription %s for %s on plan %s (prev=%s)",
            subscription.id,
            subject,
            plan_key,
            subscription.prev_subscription_id,
        )
        return subscription

    def get(self, subscription_id: int) -> Subscription:
        subscription = self._subscriptions.get_subscription(subscription_id)
        if subscription is None:
            raise NotFoundError(resource="Subscription", resource_id=subscription_id)
        return subscription

    # Queries ----------------------------------------------------------------
    def plan(self, subscription: Subscription) -> Plan:
        return self._catalog.lookup(subscription.plan_key)

    def is_paid_subscription(self, subscription: Subscription) -> bool:
        return subscription.is_paid_subscription(self.plan(subscription))

    def is_activated_paid_subscription(self, subscription: Subscription) -> bool:
        return subscription.is_activated_paid_subscription(self.plan(subscription))

    def human_description(self, subscription: Subscription) -> str:
        plan = self.plan(subscription)
        subject = self._subjects.resolve(subscription.subject)
        return self._description_template.format(
            plan_name=plan.human_name,
            subject_desc=subject.human_description_for_subscription(),
            price=plan.human_price(),
        )

    # Billing dates ----------------------------------------------------------
    def recurring_details(self, subscription: Subscription) -> RecurringDetails:
        if not subscription.paypal_profile_id:
            return RecurringDetails.empty()
        return self._gateway(subscription).recurring_details(subscription.paypal_profile_id)

    def billing_schedule(
        self,
        subscription: Subscription,
        details: Optional[RecurringDetails] = None,
    ) -> BillingSchedule:
        """Build a schedule, fetching gateway details unless a snapshot is given."""
        if details is None:
            details = self.recurring_details(subscription)
        return BillingSchedule(subscription=subscription, details=details, clock=self._clock)

    def successor_billing_start_date(
        self,
        subscription: Subscription,
        schedule: Optional[BillingSchedule] = None,
    ) -> datetime:
        schedule = schedule or self.billing_schedule(subscription)
        return schedule.successor_billing_start_date()

    def successor_start_date(
        self,
        subscription: Subscription,
        new_plan_key: str,
        schedule: Optional[BillingSchedule] = None,
    ) -> datetime:
        new_plan = self._catalog.lookup(new_plan_key)
        if new_plan > self.plan(subscription):
            # upgrades start immediately
            return self._clock()
        # everything else waits for the next billing cycle
        return self.successor_billing_start_date(subscription, schedule)

    # Billing API ------------------------------------------------------------
    def initiate_activation(self, subscription: Subscription, admin: Optional[str] = None) -> Transaction:
        """
        Record an activation attempt and supersede the predecessor chain.

        When the subscription replaces another one, the predecessor and every
        other successor candidate of that predecessor get a cancellation
        attempt tied to the new activation. A failing cancellation attempt is
        logged and does not undo the activation.
        """
        to_cancel: List[Subscription] = []
        if subscription.prev_subscription_id is not None:
            to_cancel.append(self.get(subscription.prev_subscription_id))
            to_cancel.extend(
                self._subscriptions.list_next_subscriptions(
                    subscription.prev_subscription_id, exclude_id=subscription.id
                )
            )

        plan = self.plan(subscription)
        gateway = GATEWAY_NONE if plan.is_free() or subscription.sponsored else GATEWAY_PAYPAL
        transaction = self._ledger.create_activation(subscription, gateway, admin)

        for other in to_cancel:
            try:
                self.initiate_cancellation(other, admin, transaction)
            except Exception:
                logger.exception(
                    "Failed to initiate cancellation of subscription %s superseded by %s",
                    other.id,
                    subscription.id,
                )
        return transaction

    def initiate_cancellation(
        self,
        subscription: Subscription,
        admin: Optional[str] = None,
        activation_transaction: Optional[Transaction] = None,
        reason: Optional[Union[CancelReason, str]] = None,
    ) -> Transaction:
        reason_value = None
        if reason is not None:
            reason_value = reason.value if isinstance(reason, CancelReason) else str(reason)
            if reason_value not in CancelReason.values():
                raise ValidationError({"cancel_reason": [f"is not included in the list ({reason_value})"]})
        return self._ledger.create_cancellation(
            subscription, admin, activation_transaction, reason=reason_value
        )

    # Called from transaction processing only ---------------------------------
    def start_checkout(
        self,
        subscription: Subscription,
        return_url: str,
        cancel_url: str,
        email: str,
    ) -> CheckoutHandle:
        if subscription.is_activated():
            raise AlreadyActivatedError(subscription.id)
        plan = self.plan(subscription)
        return self._gateway(subscription).start_checkout(
            return_url,
            cancel_url,
            email,
            plan.price_with_tax(),
            self.human_description(subscription),
        )

    def activate_with_gateway(self, subscription: Subscription, token: str) -> RecurringProfile:
        if subscription.is_activated():
            raise AlreadyActivatedError(subscription.id)
        plan = self.plan(subscription)
        profile = self._gateway(subscription).create_recurring(
            token,
            subscription.billing_starts_at,
            plan.price,
            plan.price_tax(),
            self.human_description(subscription),
        )
        self._apply(
            subscription,
            paypal_profile_id=profile.profile_id,
            activated_at=self._clock(),
        )
        logger.info(
            "Activated subscription %s with profile %s (%s)",
            subscription.id,
            profile.profile_id,
            profile.status.value,
        )
        return profile

    def activate_without_billing(self, subscription: Subscription, **options: Any) -> Subscription:
        if subscription.is_activated():
            raise AlreadyActivatedError(subscription.id)
        self._apply(subscription, activated_at=self._clock())
        logger.info("Activated subscription %s without billing %s", subscription.id, options or "")
        return subscription

    def cancel(
        self,
        subscription: Subscription,
        timestamp: datetime,
        reason: Union[CancelReason, str],
    ) -> Subscription:
        """
        Cancel the subscription locally, then at the gateway.

        The local record is written first and stays canceled when the gateway
        call fails; the gateway error is re-raised to the caller.
        """
        if subscription.is_canceled():
            raise AlreadyCanceledError(subscription.id)
        reason_value = reason.value if isinstance(reason, CancelReason) else str(reason)
        self._apply(subscription, canceled_at=timestamp, cancel_reason=reason_value)
        logger.info("Canceled subscription %s (%s)", subscription.id, reason_value)

        if subscription.paypal_profile_id:
            self._gateway(subscription).cancel_recurring(subscription.paypal_profile_id, reason_value)
        return subscription

    # ------------------------------------------------------------------------
    def _gateway(self, subscription: Subscription) -> RecurringBillingGateway:
        return self._gateway_factory(self.plan(subscription).currency)

    def _apply(self, subscription: Subscription, **changes: Any) -> None:
        """Set fields, validate and persist; restore the old values on failure."""
        previous: Dict[str, Any] = {name: getattr(subscription, name) for name in changes}
        for name, value in changes.items():
            setattr(subscription, name, value)
        try:
            validate_subscription(subscription, self._catalog)
            self._subscriptions.save_subscription(subscription)
        except Exception:
            for name, value in previous.items():
                setattr(subscription, name, value)
            raise
