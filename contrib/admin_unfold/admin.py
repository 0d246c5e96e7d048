"""
Rewardman Admin with Unfold theme.

To use, add 'rewardman.contrib.admin_unfold' to INSTALLED_APPS after
'rewardman'. The basic admins are unregistered and replaced by the
Unfold versions. Each Unfold admin extends the basic one, so read-only
rules, actions and save behaviour stay identical.
"""

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from unfold.decorators import display

from rewardman import admin as basic
from rewardman.contrib.admin_unfold.base import BaseModelAdmin, BaseTabularInline
from rewardman.models import (
    Customer,
    LoyaltyReward,
    LoyaltyTier,
    PointsTransaction,
    ProcessedEvent,
    Referral,
)


def _unfold_badge(text, color="base"):
    """Create Unfold badge with colored background."""
    base_classes = (
        "inline-block font-semibold h-6 leading-6 px-2 "
        "rounded-default whitespace-nowrap text-xs uppercase"
    )

    color_classes = {
        "base": "bg-base-100 text-base-700 dark:bg-base-500/20 dark:text-base-200",
        "red": "bg-red-100 text-red-700 dark:bg-red-500/20 dark:text-red-400",
        "green": "bg-green-100 text-green-700 dark:bg-green-500/20 dark:text-green-400",
        "yellow": "bg-yellow-100 text-yellow-700 dark:bg-yellow-500/20 dark:text-yellow-400",
        "blue": "bg-blue-100 text-blue-700 dark:bg-blue-500/20 dark:text-blue-400",
    }

    classes = f"{base_classes} {color_classes.get(color, color_classes['base'])}"
    return format_html('<span class="{}">{}</span>', classes, text)


KIND_COLORS = {
    "earned": "green",
    "spent": "blue",
    "expired": "yellow",
    "adjustment": "base",
}

STATUS_COLORS = {
    "pending": "yellow",
    "completed": "blue",
    "rewarded": "green",
}


# Unregister basic admins
for model in [LoyaltyTier, Customer, PointsTransaction, LoyaltyReward, Referral, ProcessedEvent]:
    try:
        admin.site.unregister(model)
    except admin.sites.NotRegistered:
        pass


# =============================================================================
# TIER ADMIN
# =============================================================================


@admin.register(LoyaltyTier)
class LoyaltyTierAdmin(basic.LoyaltyTierAdmin, BaseModelAdmin):
    list_display = [
        "tier_level",
        "name",
        "min_points",
        "discount_percentage",
        "customer_count",
    ]

    @display(description="Customers")
    def customer_count(self, obj):
        return obj.customers.count()


# =============================================================================
# CUSTOMER ADMIN
# =============================================================================


class PointsTransactionInline(basic.PointsTransactionInline, BaseTabularInline):
    pass


@admin.register(Customer)
class CustomerAdmin(basic.CustomerAdmin, BaseModelAdmin):
    list_display = [
        "code",
        "name",
        "tier_badge",
        "points_balance",
        "total_points_earned",
        "referral_code",
        "is_active_badge",
    ]
    inlines = [PointsTransactionInline]

    @display(description="Tier")
    def tier_badge(self, obj):
        if not obj.tier:
            return "-"
        return _unfold_badge(obj.tier.name, "blue")

    @display(description="Active", boolean=True)
    def is_active_badge(self, obj):
        return obj.is_active


# =============================================================================
# LEDGER ADMIN
# =============================================================================


@admin.register(PointsTransaction)
class PointsTransactionAdmin(basic.PointsTransactionAdmin, BaseModelAdmin):
    list_display = [
        "created_at",
        "customer_link",
        "kind_badge",
        "points_display",
        "balance_after",
        "reference_type",
        "description",
    ]

    @display(description="Kind")
    def kind_badge(self, obj):
        return _unfold_badge(obj.get_kind_display(), KIND_COLORS.get(obj.kind, "base"))

    @display(description="Customer")
    def customer_link(self, obj):
        url = reverse("admin:rewardman_customer_change", args=[obj.customer_id])
        return format_html(
            '<a href="{}" class="text-primary-600 hover:text-primary-700">{}</a>',
            url,
            obj.customer.code,
        )


# =============================================================================
# REWARD ADMIN
# =============================================================================


@admin.register(LoyaltyReward)
class LoyaltyRewardAdmin(basic.LoyaltyRewardAdmin, BaseModelAdmin):
    list_display = [
        "name",
        "reward_type_badge",
        "points_required",
        "reward_value",
        "min_tier_required",
        "stock_display",
        "is_active_badge",
        "valid_until",
    ]

    @display(description="Type")
    def reward_type_badge(self, obj):
        return _unfold_badge(obj.get_reward_type_display(), "blue")

    @display(description="Active", boolean=True)
    def is_active_badge(self, obj):
        return obj.is_active


# =============================================================================
# REFERRAL ADMIN
# =============================================================================


@admin.register(Referral)
class ReferralAdmin(basic.ReferralAdmin, BaseModelAdmin):
    list_display = [
        "id",
        "referrer",
        "referred",
        "status_badge",
        "referrer_points",
        "referred_points",
        "manually_confirmed",
        "created_at",
        "rewarded_at",
    ]

    @display(description="Status")
    def status_badge(self, obj):
        return _unfold_badge(obj.get_status_display(), STATUS_COLORS.get(obj.status, "base"))


@admin.register(ProcessedEvent)
class ProcessedEventAdmin(basic.ProcessedEventAdmin, BaseModelAdmin):
    pass
