"""
Rewardman public API.

CORE (essential):
    LoyaltyService.summary(code)          - Balance, totals, tier, history
    LoyaltyService.adjust_points(...)     - Operator correction
    LoyaltyService.redeem(code, reward)   - Exchange points for a reward
    LoyaltyService.order_completed(event) - Inbound OrderCompleted

CONVENIENCE (helpers):
    LoyaltyService.list_rewards(...)      - Catalog
    LoyaltyService.list_referrals(...)    - Referrals
    LoyaltyService.tier_distribution()    - Aggregates
"""

from rewardman.models import LoyaltyReward, PointsTransaction, Referral
from rewardman.protocols.accrual import AccrualPolicy
from rewardman.protocols.events import CustomerCreated, OrderCompleted
from rewardman.services import analytics, customer, ledger, orders, referrals, rewards


class LoyaltyService:
    """
    Rewardman public API.

    Uses @classmethod so integrators can subclass and override single
    entry points. Every method delegates to the matching service module;
    no business rule lives here.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def summary(cls, customer_code: str, limit: int | None = None) -> ledger.BalanceSummary:
        """
        Balance, lifetime totals, tier and recent transactions.

        Raises:
            CustomerNotFound: If customer is missing or inactive
        """
        return ledger.balance(customer_code, limit=limit)

    @classmethod
    def history(cls, customer_code: str, limit: int | None = None) -> list[PointsTransaction]:
        return ledger.history(customer_code, limit=limit)

    @classmethod
    def adjust_points(
        cls,
        customer_code: str,
        amount: int,
        direction: str,
        reason: str,
        created_by: str = "",
    ) -> ledger.AdjustmentResult:
        """
        Manual add/subtract. A subtraction is clamped at the balance; see
        ``AdjustmentResult.shortfall``.
        """
        return ledger.adjust(customer_code, amount, direction, reason, created_by=created_by)

    @classmethod
    def redeem(cls, customer_code: str, reward_id: int, created_by: str = "") -> rewards.Redemption:
        return rewards.redeem(customer_code, reward_id, created_by=created_by)

    @classmethod
    def order_completed(
        cls,
        event: OrderCompleted,
        policy: AccrualPolicy | None = None,
    ) -> orders.OrderAccrual:
        return orders.handle_order_completed(event, policy=policy)

    @classmethod
    def customer_created(cls, event: CustomerCreated) -> Referral | None:
        return customer.handle_customer_created(event)

    # ======================================================================
    # CATALOG
    # ======================================================================

    @classmethod
    def list_rewards(
        cls,
        reward_type: str | None = None,
        only_active: bool = False,
    ) -> list[LoyaltyReward]:
        return rewards.list_rewards(reward_type=reward_type, only_active=only_active)

    @classmethod
    def available_rewards(cls, customer_code: str) -> list[LoyaltyReward]:
        return rewards.available_rewards(customer_code)

    @classmethod
    def create_reward(cls, name: str, points_required: int, reward_value, **fields) -> LoyaltyReward:
        return rewards.create_reward(name, points_required, reward_value, **fields)

    @classmethod
    def update_reward(cls, reward_id: int, **fields) -> LoyaltyReward:
        return rewards.update_reward(reward_id, **fields)

    @classmethod
    def delete_reward(cls, reward_id: int) -> None:
        rewards.delete_reward(reward_id)

    @classmethod
    def toggle_active(cls, reward_id: int) -> LoyaltyReward:
        return rewards.toggle_active(reward_id)

    # ======================================================================
    # REFERRALS
    # ======================================================================

    @classmethod
    def list_referrals(cls, status: str | None = None, limit: int | None = None) -> list[Referral]:
        return referrals.list_referrals(status=status, limit=limit)

    @classmethod
    def mark_referral_completed(cls, referral_id: int) -> Referral:
        """Operator override: complete and disburse without an order."""
        return referrals.mark_completed(referral_id)

    # ======================================================================
    # AGGREGATES
    # ======================================================================

    @classmethod
    def tier_distribution(cls) -> list[analytics.TierShare]:
        return analytics.tier_distribution()

    @classmethod
    def top_referrers(cls, limit: int = 5) -> list[analytics.ReferrerStat]:
        return analytics.top_referrers(limit=limit)

    @classmethod
    def referral_stats(cls) -> analytics.ReferralStats:
        return analytics.referral_stats()

    @classmethod
    def program_totals(cls) -> analytics.ProgramTotals:
        return analytics.program_totals()
