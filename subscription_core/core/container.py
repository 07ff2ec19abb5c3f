from dataclasses import dataclass

from ..application.services.ledger import TransactionLedger
from ..application.services.subject_registry import SubjectRegistry
from ..application.services.subscription_lifecycle import SubscriptionLifecycleService
from ..application.services.transaction_service import TransactionService
from ..domain.ports.billing import GatewayFactory
from ..domain.ports.catalog import PlanCatalog
from ..domain.ports.persistence import PersistenceGateway
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared by whatever surface drives the lifecycle."""

    settings: Settings
    persistence: PersistenceGateway
    plan_catalog: PlanCatalog
    gateway_factory: GatewayFactory
    subject_registry: SubjectRegistry
    ledger: TransactionLedger
    lifecycle: SubscriptionLifecycleService
    transaction_service: TransactionService
