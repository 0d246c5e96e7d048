"""Inbound events consumed by the loyalty core."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class OrderCompleted:
    """
    Emitted by order management when an order is paid and completed.

    order_id is the deduplication key: the same order is never accrued twice.
    """

    customer_code: str
    paid_amount: Decimal
    order_id: str

    @property
    def dedup_key(self) -> str:
        return f"order:{self.order_id}"


@dataclass(frozen=True)
class CustomerCreated:
    """Emitted by the customer directory after signup."""

    customer_code: str
    referred_by_code: str | None = None
