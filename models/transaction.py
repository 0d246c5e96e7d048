"""PointsTransaction model: the append-only points ledger."""

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from rewardman.exceptions import LedgerImmutable


class TransactionKind(models.TextChoices):
    EARNED = "earned", _("Earned")
    SPENT = "spent", _("Spent")
    EXPIRED = "expired", _("Expired")
    ADJUSTMENT = "adjustment", _("Adjustment")


class ReferenceType(models.TextChoices):
    ORDER = "order", _("Order")
    REDEMPTION = "redemption", _("Redemption")
    REFERRAL = "referral", _("Referral")
    MANUAL = "manual", _("Manual")
    EXPIRATION = "expiration", _("Expiration")


class PointsTransactionQuerySet(models.QuerySet):
    """Ledger rows are never bulk-updated or bulk-deleted."""

    def update(self, **kwargs):
        raise LedgerImmutable(operation="update")

    def delete(self):
        raise LedgerImmutable(operation="delete")


class PointsTransaction(models.Model):
    """
    Immutable record of a points movement.

    Exactly one of points_earned / points_spent is non-zero. Rows are only
    created by rewardman.services.ledger, in the same database transaction
    that updates the customer's cached balance.
    """

    customer = models.ForeignKey(
        "rewardman.Customer",
        on_delete=models.PROTECT,
        related_name="point_transactions",
        verbose_name=_("customer"),
    )

    kind = models.CharField(_("kind"), max_length=20, choices=TransactionKind.choices)
    points_earned = models.PositiveIntegerField(_("points earned"), default=0)
    points_spent = models.PositiveIntegerField(_("points spent"), default=0)
    balance_after = models.IntegerField(
        _("balance after"),
        help_text=_("Customer balance right after this transaction"),
    )

    reference_type = models.CharField(
        _("reference type"),
        max_length=20,
        choices=ReferenceType.choices,
    )
    reference = models.CharField(
        _("reference"),
        max_length=100,
        blank=True,
        help_text=_("External ID (e.g. order:123, reward:7)"),
    )
    description = models.CharField(_("description"), max_length=255)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    objects = PointsTransactionQuerySet.as_manager()

    class Meta:
        verbose_name = _("points transaction")
        verbose_name_plural = _("points transactions")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="rewardman_tx_cust_created_idx"),
            models.Index(fields=["reference_type", "kind"], name="rewardman_tx_reftype_kind_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(points_earned__gt=0, points_spent=0)
                    | Q(points_earned=0, points_spent__gt=0)
                ),
                name="rewardman_transaction_one_sided",
            ),
        ]

    def __str__(self):
        return f"{self.delta:+d}pts ({self.kind}) - {self.description}"

    @property
    def delta(self) -> int:
        """Signed balance change."""
        return self.points_earned - self.points_spent

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutable(operation="save", transaction_id=self.pk)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutable(operation="delete", transaction_id=self.pk)
