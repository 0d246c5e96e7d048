"""Referral state machine.

    pending --(first order | operator confirmation)--> completed
    completed --(disburse: credit both sides)--> rewarded

Transitions are conditional UPDATEs on the expected status, so a
transition can only apply once. Disbursement records the ledger row paid
to each side on the referral; a retry skips sides already paid and an
already rewarded referral is a no-op.
"""

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.exceptions import (
    AlreadyReferred,
    InvalidTransition,
    ReferralNotFound,
)
from rewardman.gates import Gates
from rewardman.models import Customer, ReferenceType, Referral, ReferralStatus
from rewardman.services import customer as customer_service
from rewardman.services import ledger
from rewardman.signals import referral_rewarded
from rewardman.utils import normalize_referral_code, run_atomic

logger = logging.getLogger(__name__)


# ======================================================================
# Creation
# ======================================================================


def create_referral(referred_code: str, referral_code: str) -> Referral:
    """
    Register a signup made with someone's referral code.

    Idempotent for the same (referrer, referred) pair.

    Args:
        referred_code: Code of the customer who signed up
        referral_code: Referral code they entered

    Returns:
        Pending Referral (created or existing)

    Raises:
        CustomerNotFound: If the referred customer does not exist
        SelfReferral: If the code belongs to the referred customer
        InvalidCode: If the code matches no active customer
        AlreadyReferred: If the customer was referred by someone else
    """
    code = normalize_referral_code(referral_code)
    referred = customer_service.require(referred_code)
    referrer = customer_service.get_by_referral_code(code)

    Gates.referral_eligibility(referrer, referred, referral_code)

    existing = _existing_for(referred, referrer)
    if existing:
        return existing

    try:
        with transaction.atomic():
            referral = Referral.objects.create(
                referrer=referrer,
                referrer_code=code,
                referred=referred,
                referrer_points=rewardman_settings.REFERRER_POINTS,
                referred_points=rewardman_settings.REFERRED_POINTS,
            )
    except IntegrityError:
        existing = _existing_for(referred, referrer)
        if existing:
            return existing
        raise

    logger.info("Referral %s created: %s -> %s", referral.pk, referrer.code, referred.code)
    return referral


def _existing_for(referred: Customer, referrer: Customer) -> Referral | None:
    existing = Referral.objects.filter(referred=referred).first()
    if existing is None:
        return None
    if existing.referrer_id != referrer.pk:
        raise AlreadyReferred(
            customer_code=referred.code,
            referrer_code=existing.referrer_code,
        )
    return existing


# ======================================================================
# Transitions
# ======================================================================


def complete_on_first_order(customer_code: str) -> Referral | None:
    """
    pending -> completed for the customer's referral, triggered by their
    first completed order. Does not disburse.

    Returns:
        The completed Referral, or None if the customer has no pending referral
    """
    referral = Referral.objects.filter(
        referred__code=customer_code,
        status=ReferralStatus.PENDING,
    ).first()
    if referral is None:
        return None

    if _transition(referral.pk, ReferralStatus.PENDING, first_order_completed=True):
        logger.info("Referral %s completed by first order of %s", referral.pk, customer_code)
    referral.refresh_from_db()
    return referral


def on_first_order(customer_code: str) -> Referral | None:
    """Complete and disburse the customer's pending referral, if any."""
    referral = complete_on_first_order(customer_code)
    if referral is None:
        return None
    return disburse(referral.pk)


def mark_completed(referral_id: int) -> Referral:
    """
    Operator override: confirm a referral without an order event.

    A pending referral moves to completed (manually_confirmed=True); a
    completed one is simply re-disbursed. Either way disbursement follows.

    Raises:
        ReferralNotFound: If referral does not exist
        InvalidTransition: If already rewarded, or nobody signed up yet
    """
    referral = get_referral(referral_id)

    if referral.status == ReferralStatus.REWARDED:
        raise InvalidTransition(
            referral_id=referral.pk,
            status=referral.status,
            target=ReferralStatus.COMPLETED,
        )

    if referral.status == ReferralStatus.PENDING:
        if referral.referred_id is None:
            raise InvalidTransition(
                message="Referral has no referred customer yet",
                referral_id=referral.pk,
            )
        if _transition(referral.pk, ReferralStatus.PENDING, manually_confirmed=True):
            logger.info("Referral %s manually confirmed", referral.pk)

    return disburse(referral.pk)


def _transition(referral_id: int, expected: str, **fields) -> bool:
    """Move expected -> completed. False if the referral was no longer ``expected``."""
    updated = Referral.objects.filter(pk=referral_id, status=expected).update(
        status=ReferralStatus.COMPLETED,
        completed_at=timezone.now(),
        **fields,
    )
    return updated == 1


def disburse(referral_id: int) -> Referral:
    """
    completed -> rewarded: credit referrer and referred as one atomic unit.

    Sides already paid are skipped; a rewarded referral is returned as is.
    On any failure the referral stays completed and can be retried.

    Raises:
        ReferralNotFound: If referral does not exist
        InvalidTransition: If referral is still pending
        CustomerNotFound: If either customer is no longer active
        Conflict: If contention persists after retries
    """

    def attempt() -> tuple[Referral, bool]:
        referral = _lock_referral(referral_id)

        if referral.status == ReferralStatus.REWARDED:
            return referral, False
        if referral.status != ReferralStatus.COMPLETED:
            raise InvalidTransition(
                referral_id=referral.pk,
                status=referral.status,
                target=ReferralStatus.REWARDED,
            )

        referred_code = referral.referred.code if referral.referred_id else ""
        reference = f"referral:{referral.pk}"

        if not referral.referrer_paid and referral.referrer_points:
            referral.referrer_transaction = ledger.record_earn(
                referral.referrer.code,
                referral.referrer_points,
                reference_type=ReferenceType.REFERRAL,
                description=f"Referral bonus: {referred_code} joined",
                reference=reference,
            )

        if not referral.referred_paid and referral.referred_points and referral.referred_id:
            referral.referred_transaction = ledger.record_earn(
                referred_code,
                referral.referred_points,
                reference_type=ReferenceType.REFERRAL,
                description=f"Welcome bonus: referred by {referral.referrer_code}",
                reference=reference,
            )

        referral.status = ReferralStatus.REWARDED
        referral.rewarded_at = timezone.now()
        referral.save(
            update_fields=[
                "referrer_transaction",
                "referred_transaction",
                "status",
                "rewarded_at",
            ]
        )
        return referral, True

    referral, rewarded_now = run_atomic(attempt, label="referrals.disburse")
    if rewarded_now:
        logger.info(
            "Referral %s rewarded: +%d to %s, +%d to referred",
            referral.pk,
            referral.referrer_points,
            referral.referrer.code,
            referral.referred_points,
        )
        transaction.on_commit(lambda: referral_rewarded.send(sender=Referral, referral=referral))
    return referral


def _lock_referral(referral_id: int) -> Referral:
    """Get referral with row-level lock. MUST be called inside transaction.atomic()."""
    try:
        return (
            Referral.objects.select_for_update(of=("self",))
            .select_related("referrer", "referred")
            .get(pk=referral_id)
        )
    except Referral.DoesNotExist:
        raise ReferralNotFound(referral_id=referral_id)


# ======================================================================
# Reads
# ======================================================================


def get_referral(referral_id: int) -> Referral:
    try:
        return Referral.objects.select_related("referrer", "referred").get(pk=referral_id)
    except Referral.DoesNotExist:
        raise ReferralNotFound(referral_id=referral_id)


def list_referrals(status: str | None = None, limit: int | None = None) -> list[Referral]:
    """Referrals, most recent first."""
    qs = Referral.objects.select_related("referrer", "referred")
    if status:
        qs = qs.filter(status=status)
    if limit:
        qs = qs[:limit]
    return list(qs)
