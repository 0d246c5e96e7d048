"""Accrual policy protocol: how many points an order is worth."""

from decimal import Decimal
from typing import Protocol, runtime_checkable


@runtime_checkable
class AccrualPolicy(Protocol):
    """
    Protocol for the business-configured points formula.

    Implemented by adapters/flat_rate.py.

    Configuration in settings.py:
        REWARDMAN = {
            "ACCRUAL_BACKEND": "rewardman.adapters.flat_rate.FlatRateAccrual",
            "ACCRUAL_RATE": "0.1",
        }
    """

    def points_for(self, customer_code: str, paid_amount: Decimal) -> int:
        """
        Return points to award for a completed order.

        Args:
            customer_code: Customer code
            paid_amount: Amount actually paid (currency units)

        Returns:
            Non-negative integer number of points
        """
        ...
