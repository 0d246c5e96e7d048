"""Referral model: two-sided referral program."""

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class ReferralStatus(models.TextChoices):
    """Referral lifecycle. Moves forward only."""

    PENDING = "pending", _("Pending")
    COMPLETED = "completed", _("Completed")
    REWARDED = "rewarded", _("Rewarded")


class Referral(models.Model):
    """
    A customer brought in by another customer's referral code.

    pending   - created at signup with the referrer's code
    completed - referred customer's first order detected (or confirmed
                manually by an operator)
    rewarded  - both sides credited (terminal)

    referrer_transaction / referred_transaction record which side has been
    paid, so a retried disbursement never credits a side twice.
    """

    referrer = models.ForeignKey(
        "rewardman.Customer",
        on_delete=models.PROTECT,
        related_name="referrals_made",
        verbose_name=_("referrer"),
    )
    referrer_code = models.CharField(
        _("referrer code"),
        max_length=20,
        help_text=_("Referral code used at signup (snapshot)"),
    )
    referred = models.ForeignKey(
        "rewardman.Customer",
        on_delete=models.PROTECT,
        related_name="referrals_received",
        null=True,
        blank=True,
        verbose_name=_("referred customer"),
    )

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=ReferralStatus.choices,
        default=ReferralStatus.PENDING,
        db_index=True,
    )
    referrer_points = models.PositiveIntegerField(_("referrer points"))
    referred_points = models.PositiveIntegerField(_("referred points"))

    first_order_completed = models.BooleanField(_("first order completed"), default=False)
    manually_confirmed = models.BooleanField(_("manually confirmed"), default=False)

    referrer_transaction = models.OneToOneField(
        "rewardman.PointsTransaction",
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("referrer credit"),
    )
    referred_transaction = models.OneToOneField(
        "rewardman.PointsTransaction",
        on_delete=models.PROTECT,
        related_name="+",
        null=True,
        blank=True,
        verbose_name=_("referred credit"),
    )

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    completed_at = models.DateTimeField(_("completed at"), null=True, blank=True)
    rewarded_at = models.DateTimeField(_("rewarded at"), null=True, blank=True)

    class Meta:
        verbose_name = _("referral")
        verbose_name_plural = _("referrals")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["referred"],
                condition=Q(referred__isnull=False),
                name="rewardman_unique_referral_per_customer",
            ),
            models.CheckConstraint(
                condition=~Q(referrer=F("referred")),
                name="rewardman_referral_not_self",
            ),
        ]

    def __str__(self):
        referred = self.referred.code if self.referred_id else "?"
        return f"{self.referrer_code} -> {referred} ({self.status})"

    @property
    def referrer_paid(self) -> bool:
        return self.referrer_transaction_id is not None

    @property
    def referred_paid(self) -> bool:
        return self.referred_transaction_id is not None
