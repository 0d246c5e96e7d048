"""Tests for the referral state machine."""

import pytest

from rewardman.exceptions import (
    AlreadyReferred,
    CustomerNotFound,
    InvalidCode,
    InvalidTransition,
    ReferralNotFound,
    SelfReferral,
)
from rewardman.models import (
    Customer,
    PointsTransaction,
    ReferenceType,
    Referral,
    ReferralStatus,
)
from rewardman.protocols.events import CustomerCreated
from rewardman.services import customer as customer_service
from rewardman.services import referrals
from rewardman.signals import points_posted, referral_rewarded


pytestmark = pytest.mark.django_db


@pytest.fixture
def referral(customer, customer_b):
    """CUST-001 referred CUST-002."""
    return referrals.create_referral(customer_b.code, customer.referral_code)


@pytest.fixture
def completed_referral(referral):
    return referrals.complete_on_first_order(referral.referred.code)


class TestCreateReferral:
    """Tests for referral creation."""

    def test_create(self, referral, customer, customer_b):
        assert referral.status == ReferralStatus.PENDING
        assert referral.referrer == customer
        assert referral.referred == customer_b
        assert referral.referrer_code == customer.referral_code
        assert referral.referrer_points == 200
        assert referral.referred_points == 100

    def test_amounts_from_settings(self, customer, customer_b, settings):
        settings.REWARDMAN = {"REFERRER_POINTS": 500, "REFERRED_POINTS": 50}
        referral = referrals.create_referral(customer_b.code, customer.referral_code)
        assert referral.referrer_points == 500
        assert referral.referred_points == 50

    def test_code_is_case_insensitive(self, customer, customer_b):
        referral = referrals.create_referral(customer_b.code, f"  {customer.referral_code.lower()} ")
        assert referral.referrer == customer

    def test_self_referral(self, customer):
        with pytest.raises(SelfReferral):
            referrals.create_referral(customer.code, customer.referral_code)
        assert not Referral.objects.exists()

    def test_invalid_code(self, customer_b):
        with pytest.raises(InvalidCode):
            referrals.create_referral(customer_b.code, "NOSUCHCODE")

    def test_empty_code(self, customer_b):
        with pytest.raises(InvalidCode):
            referrals.create_referral(customer_b.code, "")

    def test_inactive_referrer(self, customer, customer_b):
        customer.is_active = False
        customer.save()
        with pytest.raises(InvalidCode):
            referrals.create_referral(customer_b.code, customer.referral_code)

    def test_lookup_by_referral_code(self, customer):
        assert customer_service.get_by_referral_code(customer.referral_code.lower()) == customer
        assert customer_service.get_by_referral_code("") is None

        Customer.objects.filter(pk=customer.pk).update(is_active=False)
        assert customer_service.get_by_referral_code(customer.referral_code) is None

    def test_unknown_referred(self, customer):
        with pytest.raises(CustomerNotFound):
            referrals.create_referral("NOPE", customer.referral_code)

    def test_idempotent_for_same_pair(self, referral, customer, customer_b):
        again = referrals.create_referral(customer_b.code, customer.referral_code)
        assert again.pk == referral.pk
        assert Referral.objects.count() == 1

    def test_already_referred_by_someone_else(self, referral, customer_b, tiers):
        other = Customer.objects.create(code="CUST-003", name="Carla")
        with pytest.raises(AlreadyReferred):
            referrals.create_referral(customer_b.code, other.referral_code)


class TestSignup:
    """Referral creation through customer provisioning."""

    def test_create_customer_with_code(self, customer):
        cust = customer_service.create("NEW-1", "Novo", referred_by_code=customer.referral_code)

        referral = Referral.objects.get(referred=cust)
        assert referral.referrer == customer
        assert cust.tier.name == "Bronze"

    def test_invalid_code_aborts_signup(self, customer):
        with pytest.raises(InvalidCode):
            customer_service.create("NEW-2", "Novo", referred_by_code="WRONG")
        assert not Customer.objects.filter(code="NEW-2").exists()

    def test_customer_created_event(self, customer, customer_b):
        referral = customer_service.handle_customer_created(
            CustomerCreated(customer_code=customer_b.code, referred_by_code=customer.referral_code)
        )
        assert referral.status == ReferralStatus.PENDING

    def test_customer_created_without_code(self, customer):
        assert customer_service.handle_customer_created(CustomerCreated(customer.code)) is None


class TestTransitions:
    """pending -> completed -> rewarded."""

    def test_complete_on_first_order(self, completed_referral):
        assert completed_referral.status == ReferralStatus.COMPLETED
        assert completed_referral.first_order_completed
        assert not completed_referral.manually_confirmed
        assert completed_referral.completed_at is not None
        assert completed_referral.rewarded_at is None

    def test_complete_without_referral(self, customer):
        assert referrals.complete_on_first_order(customer.code) is None

    def test_disburse_pending_rejected(self, referral):
        with pytest.raises(InvalidTransition):
            referrals.disburse(referral.pk)

    def test_disburse(self, completed_referral, customer, customer_b):
        referral = referrals.disburse(completed_referral.pk)

        customer.refresh_from_db()
        customer_b.refresh_from_db()
        assert referral.status == ReferralStatus.REWARDED
        assert referral.rewarded_at is not None
        assert customer.points_balance == 200
        assert customer_b.points_balance == 100
        assert referral.referrer_transaction.reference == f"referral:{referral.pk}"
        assert referral.referred_transaction.reference_type == ReferenceType.REFERRAL

    def test_disburse_twice_credits_once(self, completed_referral, customer, customer_b):
        referrals.disburse(completed_referral.pk)
        referrals.disburse(completed_referral.pk)

        customer.refresh_from_db()
        customer_b.refresh_from_db()
        assert customer.points_balance == 200
        assert customer_b.points_balance == 100
        assert PointsTransaction.objects.filter(reference_type=ReferenceType.REFERRAL).count() == 2

    def test_disburse_skips_paid_side(self, completed_referral, customer, customer_b):
        """A side recorded as paid is not credited again on retry."""
        from rewardman.services import ledger

        tx = ledger.record_earn(
            customer.code,
            200,
            ReferenceType.REFERRAL,
            "Referral bonus",
            reference=f"referral:{completed_referral.pk}",
        )
        Referral.objects.filter(pk=completed_referral.pk).update(referrer_transaction=tx)

        referral = referrals.disburse(completed_referral.pk)

        customer.refresh_from_db()
        customer_b.refresh_from_db()
        assert referral.referrer_transaction == tx
        assert customer.points_balance == 200
        assert customer_b.points_balance == 100

    def test_failed_disbursement_stays_completed(self, completed_referral, customer, customer_b):
        """Nothing is credited when one side cannot be paid."""
        Customer.objects.filter(pk=customer_b.pk).update(is_active=False)

        with pytest.raises(CustomerNotFound):
            referrals.disburse(completed_referral.pk)

        completed_referral.refresh_from_db()
        customer.refresh_from_db()
        assert completed_referral.status == ReferralStatus.COMPLETED
        assert not completed_referral.referrer_paid
        assert customer.points_balance == 0

        Customer.objects.filter(pk=customer_b.pk).update(is_active=True)
        assert referrals.disburse(completed_referral.pk).status == ReferralStatus.REWARDED

    def test_on_first_order(self, referral, customer):
        rewarded = referrals.on_first_order(referral.referred.code)
        customer.refresh_from_db()
        assert rewarded.status == ReferralStatus.REWARDED
        assert customer.points_balance == 200

    def test_sends_referral_rewarded(self, completed_referral, django_capture_on_commit_callbacks):
        received = []

        def handler(sender, referral, **kwargs):
            received.append(referral.pk)

        referral_rewarded.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                referrals.disburse(completed_referral.pk)
                referrals.disburse(completed_referral.pk)
        finally:
            referral_rewarded.disconnect(handler)

        assert received == [completed_referral.pk]

    def test_failed_disbursement_sends_nothing(
        self, completed_referral, customer_b, django_capture_on_commit_callbacks
    ):
        """The referrer credit rolls back with the failed referred credit; no signal escapes."""
        Customer.objects.filter(pk=customer_b.pk).update(is_active=False)
        posted = []

        def handler(sender, transaction, **kwargs):
            posted.append(transaction.pk)

        points_posted.connect(handler)
        try:
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                with pytest.raises(CustomerNotFound):
                    referrals.disburse(completed_referral.pk)
        finally:
            points_posted.disconnect(handler)

        assert callbacks == []
        assert posted == []
        assert not PointsTransaction.objects.filter(reference_type=ReferenceType.REFERRAL).exists()


class TestManualOverride:
    """Operator confirmation without an order event."""

    def test_mark_pending_completed(self, referral, customer, customer_b):
        result = referrals.mark_completed(referral.pk)

        customer.refresh_from_db()
        assert result.status == ReferralStatus.REWARDED
        assert result.manually_confirmed
        assert not result.first_order_completed
        assert result.completed_at is not None
        assert customer.points_balance == 200

    def test_mark_completed_referral_disburses(self, completed_referral):
        result = referrals.mark_completed(completed_referral.pk)
        assert result.status == ReferralStatus.REWARDED
        assert not result.manually_confirmed

    def test_mark_rewarded_rejected(self, referral):
        referrals.mark_completed(referral.pk)
        with pytest.raises(InvalidTransition):
            referrals.mark_completed(referral.pk)

    def test_mark_missing(self, db):
        with pytest.raises(ReferralNotFound):
            referrals.mark_completed(404)


class TestReads:
    """Tests for referral listing."""

    def test_list_referrals(self, referral, customer, tiers):
        other = Customer.objects.create(code="CUST-003", name="Carla")
        second = referrals.create_referral(other.code, customer.referral_code)
        referrals.mark_completed(second.pk)

        assert {r.pk for r in referrals.list_referrals()} == {referral.pk, second.pk}
        assert referrals.list_referrals(status=ReferralStatus.PENDING) == [referral]
        assert len(referrals.list_referrals(limit=1)) == 1

    def test_get_referral_missing(self, db):
        with pytest.raises(ReferralNotFound):
            referrals.get_referral(1)
