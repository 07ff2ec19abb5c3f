"""Test configuration and fixtures."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from subscription_core.application.services.ledger import TransactionLedger
from subscription_core.application.services.subject_registry import SubjectRegistry
from subscription_core.application.services.subscription_lifecycle import (
    SubscriptionLifecycleService,
)
from subscription_core.application.services.transaction_service import TransactionService
from subscription_core.domain.errors import GatewayError
from subscription_core.domain.models import (
    CheckoutHandle,
    GatewayStatus,
    RecurringDetails,
    RecurringProfile,
    SubjectRef,
)
from subscription_core.infrastructure.catalog import StaticPlanCatalog
from subscription_core.infrastructure.persistence.sqlite import SQLitePersistence

PLAN_DEFINITIONS = {
    "free": {"name": "Free", "value": 0, "price": "0"},
    "basic": {"name": "Basic", "value": 1, "price": "9.00", "tax_rate": "8"},
    "pro": {"name": "Pro", "value": 2, "price": "29.00", "tax_rate": "8"},
}


class FixedClock:
    """Controllable clock returning timezone-aware UTC datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeGateway:
    """In-memory recurring billing gateway recording every call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.currencies: List[str] = []
        self.profile_status = GatewayStatus.COMPLETE
        self.details: Dict[str, RecurringDetails] = {}
        self.fail_create = False
        self.fail_cancel = False
        self._profile_seq = 0

    def start_checkout(self, return_url, cancel_url, email, amount, description) -> CheckoutHandle:
        self.calls.append(("start_checkout", (return_url, cancel_url, email, amount, description)))
        return CheckoutHandle(token="EC-TOKEN", redirect_url="https://paypal.test/checkout?token=EC-TOKEN")

    def create_recurring(self, token, billing_starts_at, price, price_tax, description) -> RecurringProfile:
        self.calls.append(("create_recurring", (token, billing_starts_at, price, price_tax, description)))
        if self.fail_create:
            raise GatewayError("PayPal CreateRecurringPaymentsProfile failed: token expired", gateway_code="11502")
        self._profile_seq += 1
        return RecurringProfile(profile_id=f"I-PROFILE{self._profile_seq}", status=self.profile_status)

    def recurring_details(self, profile_id: str) -> RecurringDetails:
        self.calls.append(("recurring_details", (profile_id,)))
        return self.details.get(profile_id, RecurringDetails.empty())

    def cancel_recurring(self, profile_id: str, reason: str) -> None:
        self.calls.append(("cancel_recurring", (profile_id, reason)))
        if self.fail_cancel:
            raise GatewayError("PayPal ManageRecurringPaymentsProfileStatus failed", gateway_code="11556")

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    def factory(self, currency: str) -> "FakeGateway":
        self.currencies.append(currency)
        return self


@dataclass
class Account:
    id: str
    name: str

    def human_description_for_subscription(self) -> str:
        return f"account {self.name}"


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def catalog():
    return StaticPlanCatalog.from_definitions(PLAN_DEFINITIONS)


@pytest.fixture
def accounts():
    return {"1": Account(id="1", name="Acme"), "2": Account(id="2", name="Globex")}


@pytest.fixture
def subject_registry(accounts):
    registry = SubjectRegistry()
    registry.register("account", accounts.get)
    return registry


@pytest.fixture
def persistence(tmp_path):
    store = SQLitePersistence(tmp_path / "subscriptions.db")
    yield store
    store.close()


@pytest.fixture
def ledger(persistence, clock):
    return TransactionLedger(persistence, clock=clock)


@pytest.fixture
def lifecycle(persistence, ledger, catalog, gateway, subject_registry, clock):
    return SubscriptionLifecycleService(
        subscriptions=persistence,
        ledger=ledger,
        catalog=catalog,
        gateway_factory=gateway.factory,
        subject_registry=subject_registry,
        clock=clock,
    )


@pytest.fixture
def transaction_service(persistence, lifecycle, clock):
    return TransactionService(persistence, lifecycle, clock=clock)


@pytest.fixture
def subject():
    return SubjectRef("account", "1")


@pytest.fixture
def make_subscription(lifecycle, subject):
    """Build a persisted initializing subscription."""

    def _make(plan_key: str = "basic", prev=None, sponsored: bool = False, **kwargs):
        return lifecycle.build_for_initializing(
            subject, plan_key, prev_subscription=prev, sponsored=sponsored, **kwargs
        )

    return _make


@pytest.fixture
def activate_paid(lifecycle):
    """Activate a paid subscription through the gateway path."""

    def _activate(subscription, token: Optional[str] = "EC-TOKEN"):
        lifecycle.activate_with_gateway(subscription, token)
        return subscription

    return _activate
