"""Flat-rate AccrualPolicy adapter."""

from decimal import ROUND_FLOOR, Decimal

from rewardman.conf import rewardman_settings


class FlatRateAccrual:
    """
    points = floor(paid_amount * rate)

    The rate defaults to REWARDMAN["ACCRUAL_RATE"] (points per currency unit).
    """

    def __init__(self, rate: Decimal | str | None = None):
        if rate is None:
            rate = rewardman_settings.ACCRUAL_RATE
        self.rate = Decimal(str(rate))

    def points_for(self, customer_code: str, paid_amount: Decimal) -> int:
        amount = Decimal(str(paid_amount))
        if amount <= 0 or self.rate <= 0:
            return 0
        return int((amount * self.rate).to_integral_value(rounding=ROUND_FLOOR))
