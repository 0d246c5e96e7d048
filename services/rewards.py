"""Reward catalog and redemption.

A redemption is one atomic unit: reward row locked, eligibility checked,
stock decremented with a conditional UPDATE (stock_quantity > 0) and the
points debited through the ledger. Two redemptions of the last unit can
never both succeed, even when both read stock = 1.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from rewardman.exceptions import InvalidReward, OutOfStock, RewardNotFound
from rewardman.gates import Gates
from rewardman.models import (
    LoyaltyReward,
    PointsTransaction,
    ReferenceType,
    RewardType,
)
from rewardman.services import customer as customer_service
from rewardman.services import ledger, tiers
from rewardman.signals import reward_redeemed
from rewardman.utils import run_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redemption:
    """Result of a successful redemption."""

    customer_code: str
    reward_id: int
    reward_name: str
    points_spent: int
    transaction: PointsTransaction
    remaining_stock: int | None


# ======================================================================
# Catalog
# ======================================================================

UPDATABLE_FIELDS = {
    "name",
    "description",
    "reward_type",
    "points_required",
    "reward_value",
    "min_tier_required",
    "stock_quantity",
    "is_active",
    "valid_from",
    "valid_until",
    "terms_conditions",
}


def list_rewards(
    reward_type: str | None = None,
    only_active: bool = False,
) -> list[LoyaltyReward]:
    """List catalog rewards, optionally filtered by type."""
    qs = LoyaltyReward.objects.all()
    if reward_type:
        qs = qs.filter(reward_type=reward_type)
    if only_active:
        qs = qs.filter(is_active=True)
    return list(qs)


def get_reward(reward_id: int) -> LoyaltyReward:
    try:
        return LoyaltyReward.objects.get(pk=reward_id)
    except LoyaltyReward.DoesNotExist:
        raise RewardNotFound(reward_id=reward_id)


def available_rewards(customer_code: str) -> list[LoyaltyReward]:
    """Active, in-window, in-stock rewards the customer's tier unlocks."""
    cust = customer_service.require(customer_code)
    level = tiers.level_of(cust)
    now = timezone.now()

    qs = (
        LoyaltyReward.objects.filter(
            is_active=True,
            min_tier_required__lte=level,
            valid_from__lte=now,
        )
        .filter(Q(valid_until__isnull=True) | Q(valid_until__gte=now))
        .filter(Q(stock_quantity__isnull=True) | Q(stock_quantity__gt=0))
        .order_by("points_required")
    )
    return list(qs)


def create_reward(
    name: str,
    points_required: int,
    reward_value,
    reward_type: str = RewardType.DISCOUNT,
    **fields,
) -> LoyaltyReward:
    """
    Add a reward to the catalog.

    Raises:
        InvalidReward: If cost/value are not positive or type is unknown
    """
    data = {
        "name": name,
        "points_required": points_required,
        "reward_value": reward_value,
        "reward_type": reward_type,
        **{k: v for k, v in fields.items() if k in UPDATABLE_FIELDS},
    }
    _validate(data)
    reward = LoyaltyReward.objects.create(**data)
    logger.info("Reward %s created (%s pts)", reward.pk, reward.points_required)
    return reward


def update_reward(reward_id: int, **fields) -> LoyaltyReward:
    """
    Update catalog fields (only whitelisted fields are accepted).

    Only the given fields are written, so a concurrent redemption's stock
    decrement is never overwritten.

    Raises:
        RewardNotFound: If reward does not exist
        InvalidReward: If the result would be invalid
    """
    changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
    with transaction.atomic():
        reward = _lock_reward(reward_id)
        _validate(
            {
                "points_required": changes.get("points_required", reward.points_required),
                "reward_value": changes.get("reward_value", reward.reward_value),
                "reward_type": changes.get("reward_type", reward.reward_type),
            }
        )
        for key, value in changes.items():
            setattr(reward, key, value)
        reward.save(update_fields=[*changes, "updated_at"])
    return reward


def toggle_active(reward_id: int) -> LoyaltyReward:
    """Flip is_active. Past redemptions are unaffected."""
    reward = get_reward(reward_id)
    reward.is_active = not reward.is_active
    reward.save(update_fields=["is_active", "updated_at"])
    logger.info("Reward %s %s", reward.pk, "activated" if reward.is_active else "deactivated")
    return reward


def deactivate(reward_id: int) -> LoyaltyReward:
    reward = get_reward(reward_id)
    if reward.is_active:
        reward.is_active = False
        reward.save(update_fields=["is_active", "updated_at"])
    return reward


def delete_reward(reward_id: int) -> None:
    """Remove a reward. Redemptions live in the ledger and stay intact."""
    reward = get_reward(reward_id)
    reward.delete()
    logger.info("Reward %s deleted", reward_id)


def _validate(data: dict) -> None:
    points = data.get("points_required")
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise InvalidReward(message="points_required must be positive", points_required=points)

    try:
        value = Decimal(str(data.get("reward_value")))
    except (InvalidOperation, ValueError):
        raise InvalidReward(message="reward_value must be a number")
    if value <= 0:
        raise InvalidReward(message="reward_value must be positive", reward_value=str(value))

    if data.get("reward_type") not in RewardType.values:
        raise InvalidReward(message="Unknown reward type", reward_type=data.get("reward_type"))


# ======================================================================
# Redemption
# ======================================================================


def redeem(customer_code: str, reward_id: int, created_by: str = "") -> Redemption:
    """
    Exchange points for a reward.

    Args:
        customer_code: Customer code
        reward_id: LoyaltyReward pk
        created_by: Who triggered the redemption

    Returns:
        Redemption with the ledger transaction

    Raises:
        RewardNotFound, RewardInactive, RewardExpired, TierTooLow,
        OutOfStock, InsufficientBalance, CustomerNotFound, Conflict
    """

    def attempt() -> Redemption:
        reward = _lock_reward(reward_id)
        Gates.reward_availability(reward)

        cust = customer_service.require(customer_code)
        Gates.tier_eligibility(tiers.level_of(cust), reward, customer_code=customer_code)
        Gates.stock_availability(reward)
        Gates.sufficient_balance(cust, reward.points_required, reward_id=reward.pk)

        remaining = None
        if not reward.is_unlimited:
            if not _take_stock(reward):
                raise OutOfStock(reward_id=reward.pk, stock_quantity=0)
            remaining = (
                LoyaltyReward.objects.filter(pk=reward.pk)
                .values_list("stock_quantity", flat=True)
                .get()
            )

        tx = ledger.record_spend(
            customer_code,
            reward.points_required,
            reference_type=ReferenceType.REDEMPTION,
            description=f"Redeemed: {reward.name}",
            reference=f"reward:{reward.pk}",
            created_by=created_by,
        )
        return Redemption(
            customer_code=customer_code,
            reward_id=reward.pk,
            reward_name=reward.name,
            points_spent=reward.points_required,
            transaction=tx,
            remaining_stock=remaining,
        )

    redemption = run_atomic(attempt, label="rewards.redeem")
    logger.info(
        "Customer %s redeemed reward %s for %d pts",
        customer_code,
        reward_id,
        redemption.points_spent,
    )
    transaction.on_commit(lambda: reward_redeemed.send(sender=LoyaltyReward, redemption=redemption))
    return redemption


def _lock_reward(reward_id: int) -> LoyaltyReward:
    """Get reward with row-level lock. MUST be called inside transaction.atomic()."""
    try:
        return LoyaltyReward.objects.select_for_update().get(pk=reward_id)
    except LoyaltyReward.DoesNotExist:
        raise RewardNotFound(reward_id=reward_id)


def _take_stock(reward: LoyaltyReward) -> bool:
    """Decrement one unit unless already exhausted. False if none was left."""
    updated = LoyaltyReward.objects.filter(
        pk=reward.pk,
        stock_quantity__gt=0,
    ).update(stock_quantity=F("stock_quantity") - 1)
    return updated == 1
