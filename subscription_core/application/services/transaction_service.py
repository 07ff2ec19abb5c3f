"""Processing of activation and cancellation attempts recorded in the ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ...domain.errors import GatewayError, InvalidTransactionStateError, NotFoundError
from ...domain.models import (
    GATEWAY_PAYPAL,
    CancelReason,
    CheckoutHandle,
    GatewayStatus,
    Transaction,
    TransactionStatus,
)
from ...domain.ports.persistence import TransactionRepository
from .subscription_lifecycle import SubscriptionLifecycleService

logger = logging.getLogger(__name__)


class TransactionService:
    """Completes, fails or aborts ledger entries and applies them to subscriptions."""

    def __init__(
        self,
        transactions: TransactionRepository,
        lifecycle: SubscriptionLifecycleService,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._transactions = transactions
        self._lifecycle = lifecycle
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get(self, transaction_id: int) -> Transaction:
        transaction = self._transactions.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(resource="Transaction", resource_id=transaction_id)
        return transaction

    def start_checkout(
        self,
        transaction: Transaction,
        return_url: str,
        cancel_url: str,
        email: str,
    ) -> CheckoutHandle:
        """
        Begin the interactive gateway checkout for a billed activation.

        The checkout token is kept on the entry so the gateway return can be
        matched with ``complete``.
        """
        self._require(transaction, TransactionStatus.INITIATED)
        if not transaction.is_activation() or transaction.gateway != GATEWAY_PAYPAL:
            raise InvalidTransactionStateError(
                transaction.id, f"{transaction.action.value}/{transaction.gateway}", "paypal activation"
            )
        subscription = self._lifecycle.get(transaction.subscription_id)
        try:
            handle = self._lifecycle.start_checkout(subscription, return_url, cancel_url, email)
        except GatewayError as exc:
            self.fail(transaction, exc.message)
            raise
        transaction.identifier = handle.token
        self._transactions.save_transaction(transaction)
        return handle

    def complete(self, transaction: Transaction, token: Optional[str] = None) -> Transaction:
        """
        Apply a confirmed attempt to its subscription.

        Args:
            transaction: Ledger entry to complete
            token: Gateway checkout token for billed activations, defaults to
                the token stored by ``start_checkout``

        Raises:
            InvalidTransactionStateError: If the entry is not open
            GatewayError: If the gateway call fails; the entry is marked failed
        """
        if not transaction.is_open():
            raise InvalidTransactionStateError(transaction.id, transaction.status.value, "open")
        if transaction.is_activation():
            return self._complete_activation(transaction, token)
        return self._complete_cancellation(transaction)

    def fail(self, transaction: Transaction, error: str) -> Transaction:
        transaction.status = TransactionStatus.FAILED
        transaction.error = error
        logger.warning("Transaction %s failed: %s", transaction.id, error)
        return self._transactions.save_transaction(transaction)

    def abort(self, transaction: Transaction) -> Transaction:
        if not transaction.is_open():
            raise InvalidTransactionStateError(transaction.id, transaction.status.value, "open")
        transaction.status = TransactionStatus.ABORTED
        logger.info("Transaction %s aborted", transaction.id)
        return self._transactions.save_transaction(transaction)

    # ------------------------------------------------------------------------
    def _complete_activation(self, transaction: Transaction, token: Optional[str]) -> Transaction:
        subscription = self._lifecycle.get(transaction.subscription_id)
        if transaction.status is TransactionStatus.PENDING and subscription.is_activated():
            # gateway confirmed a profile that was pending
            transaction.status = TransactionStatus.COMPLETE
            return self._transactions.save_transaction(transaction)

        if transaction.gateway == GATEWAY_PAYPAL:
            token = token or transaction.identifier
            if not token:
                raise InvalidTransactionStateError(transaction.id, "missing checkout token", "checkout started")
            try:
                profile = self._lifecycle.activate_with_gateway(subscription, token)
            except GatewayError as exc:
                self.fail(transaction, exc.message)
                raise
            transaction.identifier = profile.profile_id
            transaction.status = (
                TransactionStatus.PENDING
                if profile.status is GatewayStatus.PENDING
                else TransactionStatus.COMPLETE
            )
        else:
            self._lifecycle.activate_without_billing(subscription, initiator=transaction.initiator)
            transaction.status = TransactionStatus.COMPLETE
        self._transactions.save_transaction(transaction)

        for related in self._transactions.list_related_transactions(transaction.id):
            if not related.is_cancellation() or related.status is not TransactionStatus.INITIATED:
                continue
            try:
                self._complete_cancellation(related, trigger=transaction)
            except Exception:
                logger.exception(
                    "Failed to complete cancellation %s triggered by activation %s",
                    related.id,
                    transaction.id,
                )
        return transaction

    def _complete_cancellation(
        self,
        transaction: Transaction,
        trigger: Optional[Transaction] = None,
    ) -> Transaction:
        subscription = self._lifecycle.get(transaction.subscription_id)
        if subscription.is_canceled():
            logger.info(
                "Subscription %s already canceled, closing transaction %s",
                subscription.id,
                transaction.id,
            )
            transaction.status = TransactionStatus.COMPLETE
            return self._transactions.save_transaction(transaction)

        if trigger is None and transaction.related_transaction_id is not None:
            trigger = self._transactions.get_transaction(transaction.related_transaction_id)
        reason = transaction.reason or self._default_reason(transaction, trigger)
        try:
            self._lifecycle.cancel(subscription, self._clock(), reason)
        except GatewayError as exc:
            # the subscription itself stays canceled
            logger.error(
                "Gateway cancellation failed for subscription %s: %s", subscription.id, exc.message
            )
            transaction.error = exc.message
        transaction.reason = reason
        transaction.status = TransactionStatus.COMPLETE
        return self._transactions.save_transaction(transaction)

    @staticmethod
    def _default_reason(transaction: Transaction, trigger: Optional[Transaction]) -> str:
        if trigger is not None and trigger.subscription_id != transaction.subscription_id:
            return CancelReason.UPDATE.value
        return CancelReason.CANCEL.value

    def _require(self, transaction: Transaction, status: TransactionStatus) -> None:
        if transaction.status is not status:
            raise InvalidTransactionStateError(transaction.id, transaction.status.value, status.value)
