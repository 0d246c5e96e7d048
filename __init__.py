"""
Django Rewardman - Customer Loyalty.

Usage:
    from rewardman import LoyaltyService
    from rewardman.gates import Gates, GateResult
    from rewardman.protocols import OrderCompleted

    summary = LoyaltyService.summary("CUST-001")
    LoyaltyService.redeem("CUST-001", reward_id=3)
    LoyaltyService.order_completed(OrderCompleted("CUST-001", Decimal("120.00"), "ORD-9"))

    # Gates validation
    Gates.sufficient_balance(customer, 500)
    Gates.check_stock_availability(reward)
"""


def __getattr__(name):
    if name == "LoyaltyService":
        from rewardman.service import LoyaltyService

        return LoyaltyService
    if name == "Gates":
        from rewardman.gates import Gates

        return Gates
    if name == "GateResult":
        from rewardman.gates import GateResult

        return GateResult
    if name == "RewardmanError":
        from rewardman.exceptions import RewardmanError

        return RewardmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyService", "Gates", "GateResult", "RewardmanError"]
__version__ = "0.1.0"
