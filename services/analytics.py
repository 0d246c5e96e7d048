"""Program analytics.

Informational aggregates computed by scanning customers, ledger rows and
referrals. No isolation guarantees; nothing here is persisted.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Count, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.models import (
    Customer,
    LoyaltyTier,
    PointsTransaction,
    ReferenceType,
    Referral,
    ReferralStatus,
)


@dataclass(frozen=True)
class TierShare:
    tier_id: int
    name: str
    tier_level: int
    count: int
    percentage: Decimal


@dataclass(frozen=True)
class ProgramTotals:
    total_members: int
    points_awarded: int
    points_redeemed: int
    outstanding_points: int
    average_points_per_customer: int
    top_tier_customers: int
    rewards_claimed: int
    new_members_this_month: int
    engagement_rate: Decimal


@dataclass(frozen=True)
class ReferrerStat:
    customer_code: str
    name: str
    referral_count: int
    total_points: int


@dataclass(frozen=True)
class ReferralStats:
    total: int
    completed: int
    pending: int
    rewarded: int
    points_awarded: int
    conversion_rate: Decimal


def _percent(part: int, whole: int) -> Decimal:
    if whole <= 0:
        return Decimal("0")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def tier_distribution() -> list[TierShare]:
    """Active customers per tier, in tier order."""
    total = Customer.objects.filter(is_active=True).count()
    tiers = LoyaltyTier.objects.annotate(
        member_count=Count("customers", filter=Q(customers__is_active=True)),
    ).order_by("tier_level")
    return [
        TierShare(
            tier_id=tier.pk,
            name=tier.name,
            tier_level=tier.tier_level,
            count=tier.member_count,
            percentage=_percent(tier.member_count, total),
        )
        for tier in tiers
    ]


def program_totals() -> ProgramTotals:
    """Headline numbers for the loyalty dashboard."""
    members = Customer.objects.filter(is_active=True)
    sums = members.aggregate(
        count=Count("id"),
        earned=Coalesce(Sum("total_points_earned"), 0),
        spent=Coalesce(Sum("total_points_spent"), 0),
        balance=Coalesce(Sum("points_balance"), 0),
    )
    total_members = sums["count"]

    top_tier = members.filter(tier__tier_level__gte=rewardman_settings.TOP_TIER_LEVEL).count()

    month_start = timezone.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    new_members = members.filter(created_at__gte=month_start).count()

    rewards_claimed = PointsTransaction.objects.filter(
        reference_type=ReferenceType.REDEMPTION,
    ).count()

    return ProgramTotals(
        total_members=total_members,
        points_awarded=sums["earned"],
        points_redeemed=sums["spent"],
        outstanding_points=sums["balance"],
        average_points_per_customer=(
            round(sums["earned"] / total_members) if total_members else 0
        ),
        top_tier_customers=top_tier,
        rewards_claimed=rewards_claimed,
        new_members_this_month=new_members,
        engagement_rate=_percent(top_tier, total_members),
    )


def top_referrers(limit: int = 5) -> list[ReferrerStat]:
    """Customers with the most referrals (points: referrer share of rewarded ones)."""
    rows = (
        Customer.objects.annotate(
            referral_count=Count("referrals_made"),
            referral_points=Coalesce(
                Sum(
                    "referrals_made__referrer_points",
                    filter=Q(referrals_made__status=ReferralStatus.REWARDED),
                ),
                0,
            ),
        )
        .filter(referral_count__gt=0)
        .order_by("-referral_count", "-referral_points", "code")[:limit]
    )
    return [
        ReferrerStat(
            customer_code=c.code,
            name=c.name,
            referral_count=c.referral_count,
            total_points=c.referral_points,
        )
        for c in rows
    ]


def referral_stats() -> ReferralStats:
    """Referral program funnel. Completed counts completed + rewarded."""
    counts = Referral.objects.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=ReferralStatus.PENDING)),
        completed=Count("id", filter=~Q(status=ReferralStatus.PENDING)),
        rewarded=Count("id", filter=Q(status=ReferralStatus.REWARDED)),
    )
    points = PointsTransaction.objects.filter(
        reference_type=ReferenceType.REFERRAL,
    ).aggregate(total=Coalesce(Sum("points_earned"), 0))["total"]

    return ReferralStats(
        total=counts["total"],
        completed=counts["completed"],
        pending=counts["pending"],
        rewarded=counts["rewarded"],
        points_awarded=points,
        conversion_rate=_percent(counts["completed"], counts["total"]),
    )


def recent_activity(limit: int = 10) -> list[PointsTransaction]:
    """Latest ledger rows across all customers."""
    return list(PointsTransaction.objects.select_related("customer")[:limit])
