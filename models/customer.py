"""Customer model (loyalty projection of the customer directory).

Data architecture:
    Customer.points_balance / total_points_earned / total_points_spent / tier
        Denormalized cache of the ledger. Written only by
        rewardman.services.ledger, always in the same database transaction
        as the PointsTransaction row that explains the change.

    PointsTransaction
        Append-only source of truth. The cache can be re-derived from it at
        any time (see ledger.audit()).

    Customer.version
        Optimistic concurrency counter. Every ledger write is an UPDATE
        guarded by the version it read, so a racing writer is detected and
        the attempt retried.
"""

import uuid as uuid_lib

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


class Customer(models.Model):
    """
    Customer as seen by the loyalty program.

    Identity and contact data belong to the customer directory; this app
    only mutates the loyalty fields (balance, lifetime totals, tier).
    """

    # Identification
    code = models.CharField(
        _("code"),
        max_length=50,
        unique=True,
        help_text=_("Unique customer code (e.g. CUST-001)"),
    )
    uuid = models.UUIDField(default=uuid_lib.uuid4, editable=False, unique=True)
    name = models.CharField(_("name"), max_length=200)
    email = models.EmailField(_("email"), blank=True, db_index=True)
    is_active = models.BooleanField(_("active"), default=True, db_index=True)

    # Loyalty cache (owned by the ledger)
    points_balance = models.IntegerField(
        _("points balance"),
        default=0,
        help_text=_("Points available for redemption"),
    )
    total_points_earned = models.IntegerField(
        _("total points earned"),
        default=0,
        help_text=_("Lifetime points earned (never decreases)"),
    )
    total_points_spent = models.IntegerField(
        _("total points spent"),
        default=0,
        help_text=_("Lifetime points spent, expired or deducted"),
    )
    tier = models.ForeignKey(
        "rewardman.LoyaltyTier",
        on_delete=models.SET_NULL,
        related_name="customers",
        null=True,
        blank=True,
        verbose_name=_("tier"),
    )

    referral_code = models.CharField(
        _("referral code"),
        max_length=20,
        unique=True,
        editable=False,
        help_text=_("Generated once at creation, never changes"),
    )

    version = models.PositiveIntegerField(_("version"), default=0, editable=False)

    # Extension point
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    # Audit
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        verbose_name = _("customer")
        verbose_name_plural = _("customers")
        ordering = ["name", "code"]
        constraints = [
            models.CheckConstraint(
                condition=Q(points_balance__gte=0),
                name="rewardman_customer_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(
                    points_balance=F("total_points_earned") - F("total_points_spent")
                ),
                name="rewardman_customer_balance_matches_totals",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def tier_level(self) -> int | None:
        return self.tier.tier_level if self.tier_id else None

    def save(self, *args, **kwargs):
        if not self.referral_code:
            self.referral_code = self._unique_referral_code()

        if self._state.adding and not self.tier_id:
            from rewardman.services.tiers import TierTable

            self.tier = TierTable.load().floor

        super().save(*args, **kwargs)

    @classmethod
    def _unique_referral_code(cls) -> str:
        from rewardman.utils import generate_referral_code

        while True:
            code = generate_referral_code()
            if not cls.objects.filter(referral_code=code).exists():
                return code
