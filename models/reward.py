"""LoyaltyReward model: the redeemable catalog."""

from datetime import datetime

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RewardType(models.TextChoices):
    DISCOUNT = "discount", _("Discount")
    PRODUCT = "product", _("Product")
    SERVICE = "service", _("Service")
    CASHBACK = "cashback", _("Cashback")


class LoyaltyReward(models.Model):
    """
    Catalog item exchangeable for points.

    Redemptions are ledger transactions (reference_type=redemption,
    reference=reward:<id>), so editing or deleting a reward never touches
    past redemptions.
    """

    name = models.CharField(_("name"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    reward_type = models.CharField(
        _("type"),
        max_length=20,
        choices=RewardType.choices,
        default=RewardType.DISCOUNT,
        db_index=True,
    )

    points_required = models.PositiveIntegerField(_("points required"))
    reward_value = models.DecimalField(_("value"), max_digits=10, decimal_places=2)
    min_tier_required = models.PositiveSmallIntegerField(
        _("minimum tier level"),
        default=1,
    )
    stock_quantity = models.IntegerField(
        _("stock"),
        null=True,
        blank=True,
        help_text=_("Empty = unlimited"),
    )

    is_active = models.BooleanField(_("active"), default=True, db_index=True)
    valid_from = models.DateTimeField(_("valid from"), default=timezone.now)
    valid_until = models.DateTimeField(_("valid until"), null=True, blank=True)
    terms_conditions = models.TextField(_("terms and conditions"), blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty reward")
        verbose_name_plural = _("loyalty rewards")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=Q(points_required__gt=0),
                name="rewardman_reward_cost_positive",
            ),
            models.CheckConstraint(
                condition=Q(reward_value__gt=0),
                name="rewardman_reward_value_positive",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.points_required} pts)"

    @property
    def is_unlimited(self) -> bool:
        return self.stock_quantity is None

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity is None or self.stock_quantity > 0

    def is_valid_at(self, moment: datetime | None = None) -> bool:
        """True if ``moment`` (default: now) falls inside the validity window."""
        moment = moment or timezone.now()
        if self.valid_from and moment < self.valid_from:
            return False
        if self.valid_until and moment > self.valid_until:
            return False
        return True
