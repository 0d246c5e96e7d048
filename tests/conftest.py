"""Pytest fixtures for Rewardman tests."""

from decimal import Decimal

import pytest

from rewardman.models import Customer, LoyaltyReward, ReferenceType
from rewardman.services import ledger
from rewardman.services.tiers import seed_default_tiers


@pytest.fixture
def tiers(db):
    """Default tier table: Bronze 0, Silver 1000, Gold 5000, Platinum 20000, Diamond 50000."""
    return seed_default_tiers()


@pytest.fixture
def customer(db, tiers):
    """Create a test customer."""
    return Customer.objects.create(
        code="CUST-001",
        name="Ana Souza",
        email="ana@example.com",
    )


@pytest.fixture
def customer_b(db, tiers):
    """Create a second test customer."""
    return Customer.objects.create(
        code="CUST-002",
        name="Bruno Lima",
        email="bruno@example.com",
    )


@pytest.fixture
def give_points():
    """Credit points through the ledger and return the refreshed customer."""

    def _give(cust, amount):
        ledger.record_earn(cust.code, amount, ReferenceType.MANUAL, "Opening balance")
        cust.refresh_from_db()
        return cust

    return _give


@pytest.fixture
def funded_customer(customer, give_points):
    """Customer with 300 points (Bronze)."""
    return give_points(customer, 300)


@pytest.fixture
def reward(db):
    """Unlimited 100-point discount reward."""
    return LoyaltyReward.objects.create(
        name="10% off next order",
        points_required=100,
        reward_value=Decimal("10.00"),
    )


@pytest.fixture
def limited_reward(db):
    """Product reward with a single unit in stock."""
    return LoyaltyReward.objects.create(
        name="Branded mug",
        reward_type="product",
        points_required=100,
        reward_value=Decimal("25.00"),
        stock_quantity=1,
    )
