"""Typed errors raised by the subscription lifecycle."""

from typing import Any, Dict, List, Optional


class SubscriptionError(Exception):
    """Base class for every error raised by the subscription core."""

    def __init__(
        self,
        message: str,
        error_code: str = "SUBSCRIPTION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(SubscriptionError):
    """A record violates one or more invariants at the point of persistence."""

    def __init__(self, errors: Dict[str, List[str]], message: str = "Validation failed"):
        self.errors = errors
        super().__init__(
            message=f"{message}: " + "; ".join(
                f"{field} {msg}" for field, messages in errors.items() for msg in messages
            ),
            error_code="VALIDATION_ERROR",
            details={"errors": errors},
        )


class AlreadyActivatedError(SubscriptionError):
    def __init__(self, subscription_id: Optional[int] = None):
        super().__init__(
            message=f"Subscription {subscription_id} is already activated",
            error_code="ALREADY_ACTIVATED",
            details={"subscription_id": subscription_id},
        )


class AlreadyCanceledError(SubscriptionError):
    def __init__(self, subscription_id: Optional[int] = None):
        super().__init__(
            message=f"Subscription {subscription_id} is already canceled",
            error_code="ALREADY_CANCELED",
            details={"subscription_id": subscription_id},
        )


class NotFoundError(SubscriptionError):
    """Lookup of a subscription, transaction, plan or subject failed."""

    def __init__(self, resource: str = "Resource", resource_id: Optional[Any] = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message += f": {resource_id}"
        super().__init__(
            message=message,
            error_code="NOT_FOUND",
            details={"resource": resource, "resource_id": resource_id},
        )


class GatewayError(SubscriptionError):
    """The recurring billing gateway rejected a call or could not be reached."""

    def __init__(
        self,
        message: str = "Recurring billing gateway error",
        gateway_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.gateway_code = gateway_code
        payload = dict(details or {})
        if gateway_code:
            payload["gateway_code"] = gateway_code
        super().__init__(message=message, error_code="GATEWAY_ERROR", details=payload)


class InvalidTransactionStateError(SubscriptionError):
    def __init__(self, transaction_id: Optional[int], status: str, expected: str):
        super().__init__(
            message=(
                f"Transaction {transaction_id} is {status}, expected {expected}"
            ),
            error_code="INVALID_TRANSACTION_STATE",
            details={"transaction_id": transaction_id, "status": status},
        )
