"""Customer service - loyalty provisioning and lookups.

The customer directory owns identity; this module creates the loyalty
projection (zeroed totals, entry tier, referral code) and reacts to the
directory's CustomerCreated event.
"""

import logging

from django.db import transaction

from rewardman.exceptions import CustomerNotFound
from rewardman.models import Customer, Referral
from rewardman.protocols.events import CustomerCreated
from rewardman.utils import normalize_referral_code

logger = logging.getLogger(__name__)


def get(code: str) -> Customer | None:
    """Get active customer by unique code."""
    try:
        return Customer.objects.select_related("tier").get(code=code, is_active=True)
    except Customer.DoesNotExist:
        return None


def require(code: str) -> Customer:
    """Get active customer or raise CustomerNotFound."""
    cust = get(code)
    if cust is None:
        raise CustomerNotFound(customer_code=code)
    return cust


def get_by_referral_code(referral_code: str) -> Customer | None:
    """Get active customer owning a referral code (case-insensitive)."""
    code = normalize_referral_code(referral_code)
    if not code:
        return None
    try:
        return Customer.objects.get(referral_code=code, is_active=True)
    except Customer.DoesNotExist:
        return None


def create(
    code: str,
    name: str,
    email: str = "",
    referred_by_code: str | None = None,
    **kwargs,
) -> Customer:
    """
    Create a customer with initialized loyalty fields.

    When ``referred_by_code`` is given the pending referral is created in
    the same atomic unit: an invalid or self-owned code aborts the signup.

    Raises:
        InvalidCode: If referred_by_code matches no active customer
    """
    from rewardman.services import referrals

    with transaction.atomic():
        cust = Customer.objects.create(code=code, name=name, email=email, **kwargs)
        if referred_by_code:
            referrals.create_referral(cust.code, referred_by_code)

    logger.info("Customer %s enrolled (referral code %s)", cust.code, cust.referral_code)
    return cust


def handle_customer_created(event: CustomerCreated) -> Referral | None:
    """
    React to the directory's CustomerCreated event.

    Returns:
        The pending Referral when the event carries a referral code

    Raises:
        CustomerNotFound: If the customer is not known locally
        InvalidCode / SelfReferral: If the code is not acceptable
    """
    from rewardman.services import referrals

    require(event.customer_code)
    if not event.referred_by_code:
        return None
    return referrals.create_referral(event.customer_code, event.referred_by_code)


UPDATABLE_FIELDS = {
    "name",
    "email",
    "is_active",
    "metadata",
}


def update(code: str, **fields) -> Customer | None:
    """
    Update directory-owned fields (only whitelisted fields are accepted).

    Loyalty fields and referral_code are never updated here; the ledger
    owns the former and the latter is immutable.
    """
    cust = get(code)
    if not cust:
        return None

    changed = []
    for key, value in fields.items():
        if key not in UPDATABLE_FIELDS:
            continue
        setattr(cust, key, value)
        changed.append(key)

    if changed:
        cust.save(update_fields=[*changed, "updated_at"])
    return cust
