"""LoyaltyTier model."""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _


class LoyaltyTier(models.Model):
    """
    Loyalty level unlocked by a points threshold.

    Tiers are totally ordered by tier_level (1 = entry tier). min_points
    must not decrease as the level grows; TierTable enforces it on load.
    """

    name = models.CharField(_("name"), max_length=50)
    tier_level = models.PositiveSmallIntegerField(
        _("level"),
        unique=True,
        help_text=_("1 = entry tier, higher = better"),
    )
    min_points = models.PositiveIntegerField(
        _("minimum points"),
        default=0,
        help_text=_("Qualifying points needed to reach this tier"),
    )
    discount_percentage = models.DecimalField(
        _("discount %"),
        max_digits=5,
        decimal_places=2,
        default=Decimal("0"),
    )
    benefits = models.JSONField(_("benefits"), default=list, blank=True)
    color = models.CharField(_("color"), max_length=7, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("loyalty tier")
        verbose_name_plural = _("loyalty tiers")
        ordering = ["tier_level"]

    def __str__(self):
        return f"{self.name} (L{self.tier_level}, {self.min_points}+ pts)"
