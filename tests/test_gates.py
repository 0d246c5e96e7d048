"""
Rewardman gates tests.

Tests for:
- Gates G1-G8 (pass and fail scenarios)
- check_* boolean variants
- Error payloads (code, message, data)
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from rewardman.exceptions import (
    DuplicateEvent,
    InsufficientBalance,
    InvalidAmount,
    InvalidCode,
    MissingReason,
    OutOfStock,
    RewardExpired,
    RewardInactive,
    RewardmanError,
    SelfReferral,
    TierTooLow,
)
from rewardman.gates import Gates
from rewardman.models import Customer, LoyaltyReward


def _reward(**kwargs):
    defaults = {
        "pk": 7,
        "name": "Test reward",
        "points_required": 100,
        "reward_value": Decimal("5"),
        "min_tier_required": 1,
        "is_active": True,
        "valid_from": timezone.now() - timedelta(days=1),
    }
    defaults.update(kwargs)
    return LoyaltyReward(**defaults)


# ═══════════════════════════════════════════════════════════════════
# G1: PositiveAmount
# ═══════════════════════════════════════════════════════════════════


class TestG1PositiveAmount:
    """G1: Point amounts must be positive integers."""

    def test_positive_passes(self):
        result = Gates.positive_amount(1)
        assert result.passed
        assert result.gate_name == "G1_PositiveAmount"

    @pytest.mark.parametrize("amount", [0, -1, 2.5, None, True, "5"])
    def test_invalid_raises(self, amount):
        with pytest.raises(InvalidAmount):
            Gates.positive_amount(amount)

    def test_context_in_error(self):
        with pytest.raises(InvalidAmount) as exc:
            Gates.positive_amount(-3, customer_code="C1")
        assert exc.value.as_dict() == {
            "code": "INVALID_AMOUNT",
            "message": "Points amount must be positive",
            "data": {"requested": -3, "customer_code": "C1"},
        }

    def test_check_variant(self):
        assert Gates.check_positive_amount(10)
        assert not Gates.check_positive_amount(0)


# ═══════════════════════════════════════════════════════════════════
# G2: ReasonPresent
# ═══════════════════════════════════════════════════════════════════


class TestG2ReasonPresent:
    """G2: Manual adjustments must say why."""

    def test_reason_passes(self):
        assert Gates.reason_present("Goodwill").passed

    @pytest.mark.parametrize("reason", ["", "  ", None])
    def test_blank_raises(self, reason):
        with pytest.raises(MissingReason):
            Gates.reason_present(reason)

    def test_check_variant(self):
        assert Gates.check_reason_present("ok")
        assert not Gates.check_reason_present("")


# ═══════════════════════════════════════════════════════════════════
# G3: RewardAvailability
# ═══════════════════════════════════════════════════════════════════


class TestG3RewardAvailability:
    """G3: Reward active and inside its validity window."""

    def test_active_in_window_passes(self):
        assert Gates.reward_availability(_reward()).passed

    def test_inactive_raises(self):
        with pytest.raises(RewardInactive) as exc:
            Gates.reward_availability(_reward(is_active=False))
        assert exc.value.data == {"reward_id": 7}

    def test_expired_raises(self):
        reward = _reward(valid_until=timezone.now() - timedelta(hours=1))
        with pytest.raises(RewardExpired):
            Gates.reward_availability(reward)

    def test_future_raises(self):
        with pytest.raises(RewardExpired):
            Gates.reward_availability(_reward(valid_from=timezone.now() + timedelta(hours=1)))

    def test_explicit_moment(self):
        reward = _reward(valid_until=timezone.now() - timedelta(hours=1))
        assert Gates.check_reward_availability(reward, at=timezone.now() - timedelta(hours=2))
        assert not Gates.check_reward_availability(reward)


# ═══════════════════════════════════════════════════════════════════
# G4: TierEligibility
# ═══════════════════════════════════════════════════════════════════


class TestG4TierEligibility:
    """G4: Customer tier level >= reward minimum."""

    def test_equal_level_passes(self):
        assert Gates.tier_eligibility(3, _reward(min_tier_required=3)).passed

    def test_lower_level_raises(self):
        with pytest.raises(TierTooLow) as exc:
            Gates.tier_eligibility(2, _reward(min_tier_required=3), customer_code="C1")
        assert exc.value.data["required_level"] == 3
        assert exc.value.data["customer_code"] == "C1"

    def test_check_variant(self):
        assert not Gates.check_tier_eligibility(0, _reward())


# ═══════════════════════════════════════════════════════════════════
# G5: StockAvailability
# ═══════════════════════════════════════════════════════════════════


class TestG5StockAvailability:
    """G5: Finite stock must be > 0."""

    def test_unlimited_passes(self):
        assert Gates.stock_availability(_reward(stock_quantity=None)).passed

    def test_last_unit_passes(self):
        assert Gates.check_stock_availability(_reward(stock_quantity=1))

    def test_empty_raises(self):
        with pytest.raises(OutOfStock):
            Gates.stock_availability(_reward(stock_quantity=0))


# ═══════════════════════════════════════════════════════════════════
# G6: SufficientBalance
# ═══════════════════════════════════════════════════════════════════


class TestG6SufficientBalance:
    """G6: Balance covers the requested points."""

    def test_exact_balance_passes(self):
        cust = Customer(code="C1", points_balance=100)
        assert Gates.sufficient_balance(cust, 100).passed

    def test_short_raises(self):
        cust = Customer(code="C1", points_balance=99)
        with pytest.raises(InsufficientBalance) as exc:
            Gates.sufficient_balance(cust, 100)
        assert exc.value.code == "INSUFFICIENT_BALANCE"
        assert exc.value.data == {"customer_code": "C1", "available": 99, "requested": 100}

    def test_check_variant(self):
        assert not Gates.check_sufficient_balance(Customer(code="C1"), 1)


# ═══════════════════════════════════════════════════════════════════
# G7: ReferralEligibility
# ═══════════════════════════════════════════════════════════════════


class TestG7ReferralEligibility:
    """G7: Code resolves to another active customer."""

    def test_other_customer_passes(self):
        a = Customer(pk=1, code="A")
        b = Customer(pk=2, code="B")
        assert Gates.referral_eligibility(a, b, "CODEA").passed

    def test_self_raises(self):
        a = Customer(pk=1, code="A")
        with pytest.raises(SelfReferral):
            Gates.referral_eligibility(a, a, "CODEA")

    def test_unknown_raises(self):
        with pytest.raises(InvalidCode):
            Gates.referral_eligibility(None, Customer(pk=2, code="B"), "NOPE")

    def test_inactive_raises(self):
        a = Customer(pk=1, code="A", is_active=False)
        assert not Gates.check_referral_eligibility(a, Customer(pk=2, code="B"), "CODEA")


# ═══════════════════════════════════════════════════════════════════
# G8: ReplayProtection
# ═══════════════════════════════════════════════════════════════════


class TestG8ReplayProtection:
    """G8: Event cannot be processed twice."""

    def test_first_event_passes(self, db):
        result = Gates.replay_protection("order:001")
        assert result.passed

    def test_replay_raises(self, db):
        Gates.replay_protection("order:002", subject="CUST-1")

        with pytest.raises(DuplicateEvent):
            Gates.replay_protection("order:002", subject="CUST-1")

    def test_empty_nonce_raises(self, db):
        with pytest.raises(RewardmanError, match="Nonce is required"):
            Gates.replay_protection("")

    def test_is_replay_check(self, db):
        """is_replay checks without recording."""
        assert not Gates.is_replay("order:003")
        Gates.replay_protection("order:003")
        assert Gates.is_replay("order:003")


class TestRewardmanError:
    """Structured error payloads."""

    def test_default_message(self):
        err = RewardmanError("CONFLICT", operation="x")
        assert err.message == "Concurrent update conflict, retries exhausted"
        assert str(err) == "[CONFLICT] Concurrent update conflict, retries exhausted"

    def test_unknown_code_uses_code(self):
        assert RewardmanError("SOMETHING").message == "SOMETHING"

    def test_subclass_code(self):
        err = OutOfStock(reward_id=1)
        assert err.code == "OUT_OF_STOCK"
        assert isinstance(err, RewardmanError)
