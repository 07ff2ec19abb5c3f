"""Plan value objects consumed from the plan catalog."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import total_ordering

_CENTS = Decimal("0.01")


@total_ordering
@dataclass(frozen=True, eq=False)
class Plan:
    """
    A named billing tier.

    Plans compare by ``value`` only, so a higher tier is "greater" regardless
    of its price or currency.

    Attributes:
        key: Catalog key used by subscriptions
        name: Human readable plan name
        value: Tier used for upgrade/downgrade decisions
        price: Monthly price before tax
        tax_rate: Tax percentage applied on top of ``price``
        currency: ISO currency code charged by the gateway
    """

    key: str
    name: str
    value: int
    price: Decimal
    tax_rate: Decimal = Decimal("0")
    currency: str = "USD"

    def is_free(self) -> bool:
        return self.price <= 0

    def price_tax(self) -> Decimal:
        return (self.price * self.tax_rate / Decimal(100)).quantize(_CENTS, rounding=ROUND_HALF_UP)

    def price_with_tax(self) -> Decimal:
        return self.price + self.price_tax()

    @property
    def human_name(self) -> str:
        return self.name

    def human_price(self) -> str:
        if self.is_free():
            return "free"
        return f"{self.price_with_tax():,.2f} {self.currency}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Plan):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: Plan) -> bool:
        if not isinstance(other, Plan):
            return NotImplemented
        return self.value < other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"<Plan key={self.key} value={self.value} price={self.price} {self.currency}>"
