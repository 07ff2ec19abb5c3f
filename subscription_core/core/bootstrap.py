from __future__ import annotations

import logging
from typing import Optional

from ..application.services.ledger import TransactionLedger
from ..application.services.subject_registry import SubjectRegistry
from ..application.services.subscription_lifecycle import SubscriptionLifecycleService
from ..application.services.transaction_service import TransactionService
from ..domain.ports.billing import GatewayFactory
from ..domain.ports.catalog import PlanCatalog
from ..infrastructure.billing.paypal import PayPalGatewayFactory
from ..infrastructure.catalog import StaticPlanCatalog
from ..infrastructure.persistence.sqlite import SQLitePersistence
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging

logger = logging.getLogger(__name__)


def create_container(
    settings: Optional[Settings] = None,
    plan_catalog: Optional[PlanCatalog] = None,
    gateway_factory: Optional[GatewayFactory] = None,
    subject_registry: Optional[SubjectRegistry] = None,
) -> ApplicationContainer:
    """Wire the subscription core from settings, allowing collaborators to be swapped."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    persistence = SQLitePersistence(settings.database_path)
    catalog = plan_catalog or StaticPlanCatalog.from_file(settings.plan_catalog_path)
    if gateway_factory is None:
        if not settings.paypal_configured:
            logger.warning("PayPal credentials missing; paid activations will fail")
        gateway_factory = PayPalGatewayFactory(settings)
    subjects = subject_registry or SubjectRegistry()

    ledger = TransactionLedger(persistence)
    lifecycle = SubscriptionLifecycleService(
        subscriptions=persistence,
        ledger=ledger,
        catalog=catalog,
        gateway_factory=gateway_factory,
        subject_registry=subjects,
        description_template=settings.description_template,
    )
    transaction_service = TransactionService(persistence, lifecycle)

    return ApplicationContainer(
        settings=settings,
        persistence=persistence,
        plan_catalog=catalog,
        gateway_factory=gateway_factory,
        subject_registry=subjects,
        ledger=ledger,
        lifecycle=lifecycle,
        transaction_service=transaction_service,
    )
