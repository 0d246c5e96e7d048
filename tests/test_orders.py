"""Tests for OrderCompleted handling and accrual policies."""

from decimal import Decimal

import pytest

from rewardman.adapters.flat_rate import FlatRateAccrual
from rewardman.exceptions import CustomerNotFound
from rewardman.models import (
    Customer,
    PointsTransaction,
    ProcessedEvent,
    ReferenceType,
    ReferralStatus,
)
from rewardman.protocols import AccrualPolicy, OrderCompleted
from rewardman.services import customer as customer_service
from rewardman.services import orders


pytestmark = pytest.mark.django_db


class FixedPoints:
    """Policy stub awarding a fixed number of points."""

    def __init__(self, points):
        self.points = points

    def points_for(self, customer_code, paid_amount):
        return self.points


@pytest.fixture
def referred_pair(customer):
    """A (referrer) and B (signed up with A's code)."""
    b = customer_service.create("CUST-B", "Beatriz", referred_by_code=customer.referral_code)
    return customer, b


class TestFlatRateAccrual:
    """Tests for the default accrual policy."""

    def test_floor(self):
        policy = FlatRateAccrual(rate="0.1")
        assert policy.points_for("C", Decimal("1000")) == 100
        assert policy.points_for("C", Decimal("19.99")) == 1
        assert policy.points_for("C", Decimal("9.99")) == 0

    def test_non_positive(self):
        assert FlatRateAccrual(rate="0.1").points_for("C", Decimal("-50")) == 0
        assert FlatRateAccrual(rate="0").points_for("C", Decimal("50")) == 0

    def test_rate_from_settings(self, settings):
        settings.REWARDMAN = {"ACCRUAL_RATE": "2"}
        assert FlatRateAccrual().points_for("C", Decimal("10.50")) == 21

    def test_satisfies_protocol(self):
        assert isinstance(FlatRateAccrual(), AccrualPolicy)

    def test_backend_from_settings(self, settings):
        settings.REWARDMAN = {"ACCRUAL_BACKEND": "rewardman.adapters.flat_rate.FlatRateAccrual"}
        assert isinstance(orders.get_accrual_policy(), FlatRateAccrual)


class TestOrderCompleted:
    """End-to-end order processing."""

    def test_referral_end_to_end(self, referred_pair):
        """A refers B; B's first order of 1000 at 0.1 pt/unit: B 100 + 100, A +200."""
        a, b = referred_pair

        result = orders.handle_order_completed(
            OrderCompleted(customer_code=b.code, paid_amount=Decimal("1000"), order_id="ORD-1")
        )

        a.refresh_from_db()
        b.refresh_from_db()
        assert result.points == 100
        assert result.first_order
        assert result.referral.status == ReferralStatus.REWARDED
        assert result.disbursement_error is None
        assert b.points_balance == 200
        assert a.points_balance == 200
        assert a.total_points_earned == 200

        order_tx = result.transaction
        assert order_tx.reference_type == ReferenceType.ORDER
        assert order_tx.reference == "order:ORD-1"
        assert order_tx.description == "Order ORD-1"

    def test_duplicate_delivery_awards_once(self, referred_pair):
        a, b = referred_pair
        event = OrderCompleted(b.code, Decimal("1000"), "ORD-1")

        orders.handle_order_completed(event)
        again = orders.handle_order_completed(event)

        a.refresh_from_db()
        b.refresh_from_db()
        assert again.duplicate
        assert again.points == 0
        assert b.points_balance == 200
        assert a.points_balance == 200
        assert PointsTransaction.objects.filter(reference="order:ORD-1").count() == 1

    def test_second_order_is_not_first(self, referred_pair):
        a, b = referred_pair
        orders.handle_order_completed(OrderCompleted(b.code, Decimal("1000"), "ORD-1"))

        second = orders.handle_order_completed(OrderCompleted(b.code, Decimal("500"), "ORD-2"))

        a.refresh_from_db()
        b.refresh_from_db()
        assert not second.first_order
        assert second.referral is None
        assert b.points_balance == 250
        assert a.points_balance == 200

    def test_first_order_detected_after_event_cleanup(self, customer):
        orders.handle_order_completed(OrderCompleted(customer.code, Decimal("100"), "ORD-1"))
        ProcessedEvent.objects.all().delete()

        result = orders.handle_order_completed(OrderCompleted(customer.code, Decimal("100"), "ORD-2"))

        assert not result.first_order

    def test_zero_point_order_still_completes_referral(self, referred_pair):
        a, b = referred_pair

        result = orders.handle_order_completed(OrderCompleted(b.code, Decimal("5"), "ORD-1"))

        a.refresh_from_db()
        b.refresh_from_db()
        assert result.points == 0
        assert result.transaction is None
        assert result.referral.status == ReferralStatus.REWARDED
        assert b.points_balance == 100
        assert a.points_balance == 200
        assert ProcessedEvent.objects.filter(nonce="order:ORD-1", subject=b.code).exists()

    def test_no_referral(self, customer):
        result = orders.handle_order_completed(OrderCompleted(customer.code, Decimal("250"), "ORD-9"))

        customer.refresh_from_db()
        assert result.first_order
        assert result.referral is None
        assert customer.points_balance == 25

    def test_unknown_customer_leaves_no_trace(self, db, tiers):
        event = OrderCompleted("LATE", Decimal("100"), "ORD-1")

        with pytest.raises(CustomerNotFound):
            orders.handle_order_completed(event)
        assert not ProcessedEvent.objects.exists()

        Customer.objects.create(code="LATE", name="Late Signup")
        result = orders.handle_order_completed(event)
        assert not result.duplicate
        assert result.points == 10

    def test_custom_policy(self, customer):
        result = orders.handle_order_completed(
            OrderCompleted(customer.code, Decimal("1"), "ORD-1"),
            policy=FixedPoints(42),
        )
        customer.refresh_from_db()
        assert result.points == 42
        assert customer.points_balance == 42

    def test_disbursement_failure_reported(self, referred_pair):
        """Order points stick; the referral waits as completed."""
        a, b = referred_pair
        Customer.objects.filter(pk=a.pk).update(is_active=False)

        result = orders.handle_order_completed(OrderCompleted(b.code, Decimal("1000"), "ORD-1"))

        b.refresh_from_db()
        assert isinstance(result.disbursement_error, CustomerNotFound)
        assert result.referral.status == ReferralStatus.COMPLETED
        assert b.points_balance == 100
        assert ProcessedEvent.objects.filter(nonce="order:ORD-1").exists()
