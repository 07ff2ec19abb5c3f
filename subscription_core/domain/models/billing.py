"""Values exchanged with the recurring billing gateway."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class GatewayStatus(str, Enum):
    COMPLETE = "complete"
    PENDING = "pending"
    INVALID = "invalid"

    @classmethod
    def from_gateway(cls, code: Optional[str]) -> "GatewayStatus":
        """Normalize a raw gateway profile status; anything unknown is invalid."""
        if code in ("ActiveProfile", "Active"):
            return cls.COMPLETE
        if code in ("PendingProfile", "Pending"):
            return cls.PENDING
        return cls.INVALID


@dataclass(frozen=True, slots=True)
class CheckoutHandle:
    token: str
    redirect_url: str


@dataclass(frozen=True, slots=True)
class RecurringProfile:
    profile_id: str
    status: GatewayStatus


@dataclass(frozen=True, slots=True)
class RecurringDetails:
    """Snapshot of a gateway profile; empty when there is no profile."""

    next_billing_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    status: GatewayStatus = GatewayStatus.INVALID

    @classmethod
    def empty(cls) -> "RecurringDetails":
        return cls()
