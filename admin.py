"""Rewardman admin.

The ledger is read-only here: points move only through the services
(adjustments, redemptions, referral actions). The Unfold-styled variant
lives in rewardman.contrib.admin_unfold.
"""

from django.contrib import admin, messages
from django.urls import reverse
from django.utils.html import format_html

from rewardman.exceptions import RewardmanError
from rewardman.models import (
    Customer,
    LoyaltyReward,
    LoyaltyTier,
    PointsTransaction,
    ProcessedEvent,
    Referral,
    ReferralStatus,
)
from rewardman.services import customer as customer_service
from rewardman.services import referrals, rewards

LOYALTY_READONLY_FIELDS = [
    "points_balance",
    "total_points_earned",
    "total_points_spent",
    "tier",
    "referral_code",
    "version",
]


# ===========================================
# Tier Admin
# ===========================================


@admin.register(LoyaltyTier)
class LoyaltyTierAdmin(admin.ModelAdmin):
    list_display = [
        "tier_level",
        "name",
        "min_points",
        "discount_percentage",
        "color_swatch",
        "customer_count",
    ]
    search_fields = ["name"]
    ordering = ["tier_level"]

    def color_swatch(self, obj):
        return format_html(
            '<span style="background:{}; padding:2px 8px; border-radius:3px;">&nbsp;</span>',
            obj.color or "#6c757d",
        )

    color_swatch.short_description = "Color"

    def customer_count(self, obj):
        return obj.customers.count()

    customer_count.short_description = "Customers"


# ===========================================
# Customer Admin
# ===========================================


class PointsTransactionInline(admin.TabularInline):
    model = PointsTransaction
    extra = 0
    fields = [
        "created_at",
        "kind",
        "points_earned",
        "points_spent",
        "balance_after",
        "reference_type",
        "description",
    ]
    readonly_fields = fields
    ordering = ["-created_at"]
    max_num = 0
    verbose_name_plural = "Points history"

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = [
        "code",
        "name",
        "tier_badge",
        "points_balance",
        "total_points_earned",
        "referral_code",
        "is_active",
    ]
    list_filter = ["tier", "is_active"]
    search_fields = ["code", "name", "email", "referral_code"]
    readonly_fields = ["uuid", *LOYALTY_READONLY_FIELDS, "created_at", "updated_at"]
    inlines = [PointsTransactionInline]

    fieldsets = [
        ("Identification", {"fields": ["code", "uuid", "name", "email", "is_active"]}),
        ("Loyalty", {"fields": LOYALTY_READONLY_FIELDS}),
        ("Metadata", {"fields": ["metadata"], "classes": ["collapse"]}),
        ("Dates", {"fields": ["created_at", "updated_at"], "classes": ["collapse"]}),
    ]

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return
        # Loyalty columns are owned by the ledger; never write back stale values.
        changed = [f for f in form.changed_data if f in customer_service.UPDATABLE_FIELDS]
        if changed:
            obj.save(update_fields=[*changed, "updated_at"])

    def tier_badge(self, obj):
        if not obj.tier:
            return "-"
        return format_html(
            '<span style="background:{}; color:#fff; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            obj.tier.color or "#6c757d",
            obj.tier.name,
        )

    tier_badge.short_description = "Tier"


# ===========================================
# Ledger Admin (read-only)
# ===========================================


@admin.register(PointsTransaction)
class PointsTransactionAdmin(admin.ModelAdmin):
    list_display = [
        "created_at",
        "customer_link",
        "kind",
        "points_display",
        "balance_after",
        "reference_type",
        "description",
    ]
    list_filter = ["kind", "reference_type"]
    search_fields = ["customer__code", "description", "reference"]
    date_hierarchy = "created_at"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def customer_link(self, obj):
        url = reverse("admin:rewardman_customer_change", args=[obj.customer_id])
        return format_html('<a href="{}">{}</a>', url, obj.customer.code)

    customer_link.short_description = "Customer"

    def points_display(self, obj):
        if obj.delta > 0:
            return format_html('<span style="color:green">+{}</span>', obj.delta)
        return format_html('<span style="color:red">{}</span>', obj.delta)

    points_display.short_description = "Points"


# ===========================================
# Reward Admin
# ===========================================


@admin.register(LoyaltyReward)
class LoyaltyRewardAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "reward_type",
        "points_required",
        "reward_value",
        "min_tier_required",
        "stock_display",
        "is_active",
        "valid_until",
    ]
    list_filter = ["reward_type", "is_active", "min_tier_required"]
    search_fields = ["name", "description"]
    readonly_fields = ["created_at", "updated_at"]
    actions = ["activate_rewards", "deactivate_rewards"]

    def save_model(self, request, obj, form, change):
        if not change:
            super().save_model(request, obj, form, change)
            return
        # Redemptions decrement stock concurrently; write only edited columns.
        changed = [f for f in form.changed_data if f in rewards.UPDATABLE_FIELDS]
        if changed:
            obj.save(update_fields=[*changed, "updated_at"])

    def stock_display(self, obj):
        return "∞" if obj.is_unlimited else obj.stock_quantity

    stock_display.short_description = "Stock"

    @admin.action(description="Activate selected rewards")
    def activate_rewards(self, request, queryset):
        count = 0
        for reward in queryset.filter(is_active=False):
            rewards.toggle_active(reward.pk)
            count += 1
        self.message_user(request, f"{count} reward(s) activated.")

    @admin.action(description="Deactivate selected rewards")
    def deactivate_rewards(self, request, queryset):
        count = 0
        for reward in queryset.filter(is_active=True):
            rewards.deactivate(reward.pk)
            count += 1
        self.message_user(request, f"{count} reward(s) deactivated.")


# ===========================================
# Referral Admin
# ===========================================


@admin.register(Referral)
class ReferralAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "referrer",
        "referred",
        "status",
        "referrer_points",
        "referred_points",
        "manually_confirmed",
        "created_at",
        "rewarded_at",
    ]
    list_filter = ["status", "manually_confirmed", "first_order_completed"]
    search_fields = ["referrer__code", "referred__code", "referrer_code"]
    raw_id_fields = ["referrer", "referred"]
    readonly_fields = [
        "status",
        "first_order_completed",
        "manually_confirmed",
        "referrer_transaction",
        "referred_transaction",
        "created_at",
        "completed_at",
        "rewarded_at",
    ]
    actions = ["mark_completed"]

    @admin.action(description="Mark as completed and pay bonuses")
    def mark_completed(self, request, queryset):
        done = 0
        for referral in queryset.exclude(status=ReferralStatus.REWARDED):
            try:
                referrals.mark_completed(referral.pk)
                done += 1
            except RewardmanError as exc:
                self.message_user(request, f"Referral {referral.pk}: {exc}", messages.ERROR)
        self.message_user(request, f"{done} referral(s) rewarded.")


# ===========================================
# ProcessedEvent Admin
# ===========================================


@admin.register(ProcessedEvent)
class ProcessedEventAdmin(admin.ModelAdmin):
    list_display = ["nonce", "provider", "subject", "processed_at"]
    list_filter = ["provider"]
    search_fields = ["nonce", "subject"]
    readonly_fields = ["nonce", "provider", "subject", "processed_at"]
    date_hierarchy = "processed_at"

    def has_add_permission(self, request):
        return False
