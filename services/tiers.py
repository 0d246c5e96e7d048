"""Tier table and tier resolution.

resolve_tier() is pure: it maps qualifying points to a tier and never
writes. The ledger calls it after every balance change and persists the
result on the customer.
"""

from collections.abc import Iterable

from rewardman.conf import rewardman_settings
from rewardman.exceptions import InvalidTierTable
from rewardman.models import Customer, LoyaltyTier

DEFAULT_TIERS = [
    {
        "name": "Bronze",
        "tier_level": 1,
        "min_points": 0,
        "discount_percentage": "0",
        "benefits": ["Earn points on every order"],
        "color": "#CD7F32",
    },
    {
        "name": "Silver",
        "tier_level": 2,
        "min_points": 1000,
        "discount_percentage": "5",
        "benefits": ["5% discount", "Birthday bonus"],
        "color": "#C0C0C0",
    },
    {
        "name": "Gold",
        "tier_level": 3,
        "min_points": 5000,
        "discount_percentage": "10",
        "benefits": ["10% discount", "Priority support"],
        "color": "#FFD700",
    },
    {
        "name": "Platinum",
        "tier_level": 4,
        "min_points": 20000,
        "discount_percentage": "15",
        "benefits": ["15% discount", "Free delivery", "Dedicated manager"],
        "color": "#E5E4E2",
    },
    {
        "name": "Diamond",
        "tier_level": 5,
        "min_points": 50000,
        "discount_percentage": "20",
        "benefits": ["20% discount", "Exclusive events"],
        "color": "#B9F2FF",
    },
]


class TierTable:
    """
    Explicit ordered list of tiers (ascending tier_level).

    Usage:
        table = TierTable.load()
        tier = table.resolve(customer.total_points_earned)
    """

    def __init__(self, tiers: Iterable[LoyaltyTier]):
        self.tiers = sorted(tiers, key=lambda t: t.tier_level)
        for lower, upper in zip(self.tiers, self.tiers[1:]):
            if upper.min_points < lower.min_points:
                raise InvalidTierTable(
                    lower_level=lower.tier_level,
                    upper_level=upper.tier_level,
                )

    @classmethod
    def load(cls) -> "TierTable":
        return cls(LoyaltyTier.objects.all())

    def __len__(self):
        return len(self.tiers)

    def __iter__(self):
        return iter(self.tiers)

    @property
    def floor(self) -> LoyaltyTier | None:
        """Entry tier (lowest level)."""
        return self.tiers[0] if self.tiers else None

    def resolve(self, qualifying_points: int) -> LoyaltyTier | None:
        return resolve_tier(qualifying_points, self.tiers)


def resolve_tier(
    qualifying_points: int,
    tiers: Iterable[LoyaltyTier] | None = None,
) -> LoyaltyTier | None:
    """
    Return the highest tier whose min_points <= qualifying_points.

    Walks tiers by descending tier_level, so identical thresholds resolve to
    the higher level. Below every threshold the entry tier is returned.

    Args:
        qualifying_points: Lifetime earned or balance (see qualifying_points())
        tiers: Tier list; loaded from the database when omitted

    Returns:
        LoyaltyTier, or None when no tiers are configured
    """
    if tiers is None:
        tiers = LoyaltyTier.objects.all()
    ordered = sorted(tiers, key=lambda t: t.tier_level, reverse=True)
    if not ordered:
        return None

    for tier in ordered:
        if tier.min_points <= qualifying_points:
            return tier
    return ordered[-1]


def qualifying_points(customer: Customer) -> int:
    """Points that count toward tier membership, per TIER_QUALIFYING_POINTS."""
    return points_for_basis(customer.total_points_earned, customer.points_balance)


def points_for_basis(total_points_earned: int, points_balance: int) -> int:
    if rewardman_settings.TIER_QUALIFYING_POINTS == "balance":
        return points_balance
    return total_points_earned


def level_of(customer: Customer) -> int:
    """Customer's tier level (cached tier, else resolved; 0 without tiers)."""
    if customer.tier_id:
        return customer.tier.tier_level
    tier = resolve_tier(qualifying_points(customer))
    return tier.tier_level if tier else 0


def seed_default_tiers() -> list[LoyaltyTier]:
    """Install the default Bronze..Diamond table. Existing levels are kept."""
    created = []
    for data in DEFAULT_TIERS:
        tier, was_created = LoyaltyTier.objects.get_or_create(
            tier_level=data["tier_level"],
            defaults={k: v for k, v in data.items() if k != "tier_level"},
        )
        if was_created:
            created.append(tier)
    return created
