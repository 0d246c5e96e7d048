"""OrderCompleted handling: accrual, first-order detection and referral trigger."""

import logging
from dataclasses import dataclass

from django.utils.module_loading import import_string

from rewardman.conf import rewardman_settings
from rewardman.exceptions import DuplicateEvent, RewardmanError
from rewardman.gates import Gates
from rewardman.models import PointsTransaction, ProcessedEvent, ReferenceType, Referral
from rewardman.protocols.accrual import AccrualPolicy
from rewardman.protocols.events import OrderCompleted
from rewardman.services import customer as customer_service
from rewardman.services import ledger, referrals
from rewardman.utils import run_atomic

logger = logging.getLogger(__name__)

ORDER_PROVIDER = "order"


@dataclass(frozen=True)
class OrderAccrual:
    """Outcome of processing one OrderCompleted event."""

    order_id: str
    customer_code: str
    points: int = 0
    transaction: PointsTransaction | None = None
    first_order: bool = False
    referral: Referral | None = None
    duplicate: bool = False
    disbursement_error: RewardmanError | None = None


def get_accrual_policy() -> AccrualPolicy:
    """Instantiate the configured ACCRUAL_BACKEND."""
    backend_class = import_string(rewardman_settings.ACCRUAL_BACKEND)
    return backend_class()


def handle_order_completed(
    event: OrderCompleted,
    policy: AccrualPolicy | None = None,
) -> OrderAccrual:
    """
    Award points for a completed order and advance the customer's referral.

    The dedup record, the points credit and the referral completion commit
    together: a redelivered event is a no-op, a failed one leaves no trace
    and can be redelivered. Referral disbursement runs afterwards; its
    failure is logged and returned in ``disbursement_error`` while the
    referral stays completed for a later retry.

    Raises:
        CustomerNotFound: If the customer is missing or inactive
        Conflict: If contention persists after retries
    """
    policy = policy or get_accrual_policy()

    def attempt() -> tuple[PointsTransaction | None, int, bool, Referral | None]:
        cust = customer_service.require(event.customer_code)
        # Order events may have been pruned; order credits never are.
        first_order = not (
            ProcessedEvent.objects.filter(provider=ORDER_PROVIDER, subject=cust.code).exists()
            or PointsTransaction.objects.filter(
                customer=cust,
                reference_type=ReferenceType.ORDER,
            ).exists()
        )

        Gates.replay_protection(event.dedup_key, provider=ORDER_PROVIDER, subject=cust.code)

        points = policy.points_for(cust.code, event.paid_amount)
        tx = None
        if points > 0:
            tx = ledger.record_earn(
                cust.code,
                points,
                reference_type=ReferenceType.ORDER,
                description=f"Order {event.order_id}",
                reference=event.dedup_key,
            )

        referral = referrals.complete_on_first_order(cust.code) if first_order else None
        return tx, points, first_order, referral

    try:
        tx, points, first_order, referral = run_atomic(attempt, label="orders.completed")
    except DuplicateEvent:
        logger.info("Order %s already processed, skipping", event.order_id)
        return OrderAccrual(
            order_id=event.order_id,
            customer_code=event.customer_code,
            duplicate=True,
        )

    logger.info(
        "Order %s: %d pts to %s%s",
        event.order_id,
        points,
        event.customer_code,
        " (first order)" if first_order else "",
    )

    disbursement_error = None
    if referral is not None:
        try:
            referral = referrals.disburse(referral.pk)
        except RewardmanError as exc:
            logger.warning(
                "Referral %s disbursement failed after order %s: %s",
                referral.pk,
                event.order_id,
                exc,
            )
            disbursement_error = exc

    return OrderAccrual(
        order_id=event.order_id,
        customer_code=event.customer_code,
        points=points,
        transaction=tx,
        first_order=first_order,
        referral=referral,
        disbursement_error=disbursement_error,
    )
