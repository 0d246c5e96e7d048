"""Points ledger: the only writer of PointsTransaction rows and of the
customer's loyalty fields.

Every write is one atomic unit (utils.run_atomic):
    1. read the customer row with select_for_update()
    2. validate against the locked values
    3. UPDATE the cached totals WHERE version = <version read>
    4. INSERT the PointsTransaction row

Step 3 matching no row means another writer committed in between; the
attempt is rolled back and retried, then surfaced as Conflict.
"""

import logging
from dataclasses import dataclass

from django.db import models, transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from rewardman.conf import rewardman_settings
from rewardman.exceptions import CustomerNotFound
from rewardman.gates import Gates
from rewardman.models import (
    Customer,
    PointsTransaction,
    ReferenceType,
    TransactionKind,
)
from rewardman.services import tiers
from rewardman.signals import points_posted
from rewardman.utils import StaleWrite, run_atomic

logger = logging.getLogger(__name__)


class AdjustDirection(models.TextChoices):
    ADD = "add", _("Add")
    SUBTRACT = "subtract", _("Subtract")


@dataclass(frozen=True)
class AdjustmentResult:
    """
    Outcome of a manual adjustment or expiration.

    A subtraction is clamped at the available balance: ``applied`` is what
    was logged, ``shortfall`` is the part of the request that could not be
    applied. ``transaction`` is None when nothing could be applied.
    """

    requested: int
    applied: int
    transaction: PointsTransaction | None

    @property
    def shortfall(self) -> int:
        return self.requested - self.applied

    @property
    def clamped(self) -> bool:
        return self.applied < self.requested


@dataclass(frozen=True)
class BalanceSummary:
    customer_code: str
    points_balance: int
    total_points_earned: int
    total_points_spent: int
    tier_name: str | None
    tier_level: int | None
    discount_percentage: str | None
    referral_code: str
    recent_transactions: list[PointsTransaction]


@dataclass(frozen=True)
class LedgerDiscrepancy:
    """Cached customer totals that disagree with the transaction log."""

    customer_code: str
    cached_balance: int
    cached_earned: int
    cached_spent: int
    logged_earned: int
    logged_spent: int

    @property
    def logged_balance(self) -> int:
        return self.logged_earned - self.logged_spent


# ======================================================================
# Writes
# ======================================================================


def record_earn(
    customer_code: str,
    amount: int,
    reference_type: str,
    description: str,
    reference: str = "",
    created_by: str = "",
) -> PointsTransaction:
    """
    Credit points to a customer.

    Args:
        customer_code: Customer code
        amount: Points to credit (must be positive)
        reference_type: ReferenceType (order, referral, ...)
        description: Reason shown in history
        reference: External reference (order:123)
        created_by: Who triggered the credit

    Returns:
        Created PointsTransaction

    Raises:
        InvalidAmount: If amount <= 0
        CustomerNotFound: If customer is missing or inactive
        Conflict: If contention persists after retries
    """
    Gates.positive_amount(amount, customer_code=customer_code)

    tx = run_atomic(
        lambda: _post(
            customer_code,
            kind=TransactionKind.EARNED,
            earned=amount,
            spent=0,
            reference_type=reference_type,
            description=description,
            reference=reference,
            created_by=created_by,
        ),
        label="ledger.earn",
    )
    transaction.on_commit(lambda: points_posted.send(sender=PointsTransaction, transaction=tx))
    return tx


def record_spend(
    customer_code: str,
    amount: int,
    reference_type: str,
    description: str,
    reference: str = "",
    created_by: str = "",
) -> PointsTransaction:
    """
    Debit points from a customer.

    Raises:
        InvalidAmount: If amount <= 0
        InsufficientBalance: If amount > points_balance
        CustomerNotFound: If customer is missing or inactive
        Conflict: If contention persists after retries
    """
    Gates.positive_amount(amount, customer_code=customer_code)

    tx = run_atomic(
        lambda: _post(
            customer_code,
            kind=TransactionKind.SPENT,
            earned=0,
            spent=amount,
            reference_type=reference_type,
            description=description,
            reference=reference,
            created_by=created_by,
        ),
        label="ledger.spend",
    )
    transaction.on_commit(lambda: points_posted.send(sender=PointsTransaction, transaction=tx))
    return tx


def adjust(
    customer_code: str,
    amount: int,
    direction: str,
    reason: str,
    created_by: str = "",
) -> AdjustmentResult:
    """
    Manual correction by an operator.

    ``add`` credits like an earn (balance and lifetime earned grow).
    ``subtract`` never drives the balance negative: it applies at most the
    current balance and logs the applied amount.

    Raises:
        InvalidAmount: If amount <= 0
        MissingReason: If reason is empty
        ValueError: If direction is not add/subtract
    """
    Gates.positive_amount(amount, customer_code=customer_code)
    Gates.reason_present(reason, customer_code=customer_code)
    if direction not in AdjustDirection.values:
        raise ValueError(f"Unknown adjustment direction: {direction!r}")

    if direction == AdjustDirection.ADD:
        earned, spent, clamp = amount, 0, False
    else:
        earned, spent, clamp = 0, amount, True

    tx = run_atomic(
        lambda: _post(
            customer_code,
            kind=TransactionKind.ADJUSTMENT,
            earned=earned,
            spent=spent,
            reference_type=ReferenceType.MANUAL,
            description=reason.strip(),
            created_by=created_by,
            clamp=clamp,
        ),
        label="ledger.adjust",
    )

    applied = tx.points_earned + tx.points_spent if tx else 0
    if applied < amount:
        logger.info(
            "Adjustment for %s clamped: requested -%d, applied -%d",
            customer_code,
            amount,
            applied,
        )
    if tx:
        transaction.on_commit(lambda: points_posted.send(sender=PointsTransaction, transaction=tx))
    return AdjustmentResult(requested=amount, applied=applied, transaction=tx)


def record_expiration(
    customer_code: str,
    amount: int,
    description: str = "",
    reference: str = "",
    created_by: str = "",
) -> AdjustmentResult:
    """
    Expire points. Clamped at the current balance; counted as spent.

    Raises:
        InvalidAmount: If amount <= 0
    """
    Gates.positive_amount(amount, customer_code=customer_code)

    tx = run_atomic(
        lambda: _post(
            customer_code,
            kind=TransactionKind.EXPIRED,
            earned=0,
            spent=amount,
            reference_type=ReferenceType.EXPIRATION,
            description=description or "Points expired",
            reference=reference,
            created_by=created_by,
            clamp=True,
        ),
        label="ledger.expire",
    )
    applied = tx.points_spent if tx else 0
    if tx:
        transaction.on_commit(lambda: points_posted.send(sender=PointsTransaction, transaction=tx))
    return AdjustmentResult(requested=amount, applied=applied, transaction=tx)


def _post(
    customer_code: str,
    *,
    kind: str,
    earned: int,
    spent: int,
    reference_type: str,
    description: str,
    reference: str = "",
    created_by: str = "",
    clamp: bool = False,
) -> PointsTransaction | None:
    """
    One ledger write. MUST run inside run_atomic().

    Returns None when a clamped debit has nothing to apply.
    """
    customer = _lock_customer(customer_code)

    if spent:
        if clamp:
            spent = min(spent, customer.points_balance)
            if spent == 0:
                return None
        else:
            Gates.sufficient_balance(customer, spent)

    balance = customer.points_balance + earned - spent
    total_earned = customer.total_points_earned + earned
    total_spent = customer.total_points_spent + spent
    tier = tiers.resolve_tier(tiers.points_for_basis(total_earned, balance))

    fields = {
        "points_balance": balance,
        "total_points_earned": total_earned,
        "total_points_spent": total_spent,
    }
    tier_id = tier.pk if tier else customer.tier_id
    if tier_id != customer.tier_id:
        fields["tier_id"] = tier_id
        logger.info(
            "Tier change for %s: %s -> %s",
            customer.code,
            customer.tier_id,
            tier_id,
        )

    if not _write_balance(customer, fields):
        raise StaleWrite(customer.code)

    return PointsTransaction.objects.create(
        customer=customer,
        kind=kind,
        points_earned=earned,
        points_spent=spent,
        balance_after=balance,
        reference_type=reference_type,
        reference=reference,
        description=description,
        created_by=created_by,
    )


def _lock_customer(customer_code: str) -> Customer:
    """
    Get active customer with row-level lock for mutation.

    MUST be called inside transaction.atomic().
    """
    try:
        return Customer.objects.select_for_update().get(
            code=customer_code,
            is_active=True,
        )
    except Customer.DoesNotExist:
        raise CustomerNotFound(customer_code=customer_code)


def _write_balance(customer: Customer, fields: dict) -> bool:
    """Version-guarded UPDATE. False when another writer got there first."""
    updated = Customer.objects.filter(
        pk=customer.pk,
        version=customer.version,
    ).update(
        version=F("version") + 1,
        updated_at=timezone.now(),
        **fields,
    )
    return updated == 1


# ======================================================================
# Reads
# ======================================================================


def history(customer_code: str, limit: int | None = None) -> list[PointsTransaction]:
    """Transaction history for a customer (most recent first)."""
    if limit is None:
        limit = rewardman_settings.HISTORY_LIMIT
    return list(
        PointsTransaction.objects.filter(
            customer__code=customer_code,
            customer__is_active=True,
        )[:limit]
    )


def balance(customer_code: str, limit: int | None = None) -> BalanceSummary:
    """
    Current balance, lifetime totals, tier and recent history.

    Raises:
        CustomerNotFound: If customer is missing or inactive
    """
    try:
        customer = Customer.objects.select_related("tier").get(
            code=customer_code,
            is_active=True,
        )
    except Customer.DoesNotExist:
        raise CustomerNotFound(customer_code=customer_code)

    tier = customer.tier
    return BalanceSummary(
        customer_code=customer.code,
        points_balance=customer.points_balance,
        total_points_earned=customer.total_points_earned,
        total_points_spent=customer.total_points_spent,
        tier_name=tier.name if tier else None,
        tier_level=tier.tier_level if tier else None,
        discount_percentage=str(tier.discount_percentage) if tier else None,
        referral_code=customer.referral_code,
        recent_transactions=history(customer_code, limit=limit),
    )


def audit(customer_code: str | None = None) -> list[LedgerDiscrepancy]:
    """
    Compare cached customer totals with sums over the transaction log.

    Read-only; returns one LedgerDiscrepancy per customer that disagrees.
    """
    qs = Customer.objects.annotate(
        logged_earned=Coalesce(Sum("point_transactions__points_earned"), 0),
        logged_spent=Coalesce(Sum("point_transactions__points_spent"), 0),
    )
    if customer_code:
        qs = qs.filter(code=customer_code)

    discrepancies = []
    for customer in qs.order_by("code"):
        if (
            customer.total_points_earned != customer.logged_earned
            or customer.total_points_spent != customer.logged_spent
            or customer.points_balance != customer.logged_earned - customer.logged_spent
        ):
            discrepancies.append(
                LedgerDiscrepancy(
                    customer_code=customer.code,
                    cached_balance=customer.points_balance,
                    cached_earned=customer.total_points_earned,
                    cached_spent=customer.total_points_spent,
                    logged_earned=customer.logged_earned,
                    logged_spent=customer.logged_spent,
                )
            )
    return discrepancies
