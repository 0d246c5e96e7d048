"""
Rewardman Gates - Validation rules.

G1: PositiveAmount - Point amounts must be > 0
G2: ReasonPresent - Manual adjustments need a reason
G3: RewardAvailability - Reward active and inside its validity window
G4: TierEligibility - Customer tier level >= reward's minimum tier
G5: StockAvailability - Finite stock must be > 0
G6: SufficientBalance - Balance covers the requested points
G7: ReferralEligibility - Code resolves to another active customer
G8: ReplayProtection - Event cannot be processed twice (persistent via DB)

Each gate raises the matching typed RewardmanError; check_* variants
return a bool instead.
"""

from dataclasses import dataclass
from datetime import datetime

from django.db import IntegrityError, transaction
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


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


def _passes(gate, *args, **kwargs) -> bool:
    try:
        gate(*args, **kwargs)
        return True
    except RewardmanError:
        return False


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Rewardman validation gates."""

    # =========================================================================
    # G1: Positive Amount
    # =========================================================================

    @classmethod
    def positive_amount(cls, amount, **context) -> GateResult:
        """
        G1: Point amounts must be positive integers.

        Raises:
            InvalidAmount: If amount is not an int > 0
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(requested=amount, **context)
        return GateResult(True, "G1_PositiveAmount")

    @classmethod
    def check_positive_amount(cls, amount) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.positive_amount, amount)

    # =========================================================================
    # G2: Reason Present
    # =========================================================================

    @classmethod
    def reason_present(cls, reason: str | None, **context) -> GateResult:
        """
        G2: Manual adjustments must say why.

        Raises:
            MissingReason: If reason is empty or blank
        """
        if not reason or not reason.strip():
            raise MissingReason(**context)
        return GateResult(True, "G2_ReasonPresent")

    @classmethod
    def check_reason_present(cls, reason: str | None) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.reason_present, reason)

    # =========================================================================
    # G3: Reward Availability
    # =========================================================================

    @classmethod
    def reward_availability(cls, reward, at: datetime | None = None) -> GateResult:
        """
        G3: Reward must be active and inside its validity window.

        Raises:
            RewardInactive: If reward.is_active is False
            RewardExpired: If ``at`` (default now) is outside the window
        """
        if not reward.is_active:
            raise RewardInactive(reward_id=reward.pk)

        at = at or timezone.now()
        if not reward.is_valid_at(at):
            raise RewardExpired(
                reward_id=reward.pk,
                valid_from=reward.valid_from.isoformat() if reward.valid_from else None,
                valid_until=reward.valid_until.isoformat() if reward.valid_until else None,
            )
        return GateResult(True, "G3_RewardAvailability")

    @classmethod
    def check_reward_availability(cls, reward, at: datetime | None = None) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.reward_availability, reward, at)

    # =========================================================================
    # G4: Tier Eligibility
    # =========================================================================

    @classmethod
    def tier_eligibility(cls, customer_level: int, reward, **context) -> GateResult:
        """
        G4: Customer tier level must reach the reward's minimum tier.

        Raises:
            TierTooLow: If customer_level < reward.min_tier_required
        """
        if customer_level < reward.min_tier_required:
            raise TierTooLow(
                reward_id=reward.pk,
                customer_level=customer_level,
                required_level=reward.min_tier_required,
                **context,
            )
        return GateResult(True, "G4_TierEligibility")

    @classmethod
    def check_tier_eligibility(cls, customer_level: int, reward) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.tier_eligibility, customer_level, reward)

    # =========================================================================
    # G5: Stock Availability
    # =========================================================================

    @classmethod
    def stock_availability(cls, reward) -> GateResult:
        """
        G5: Finite stock must have at least one unit.

        Raises:
            OutOfStock: If stock_quantity is set and <= 0
        """
        if not reward.in_stock:
            raise OutOfStock(reward_id=reward.pk, stock_quantity=reward.stock_quantity)
        return GateResult(True, "G5_StockAvailability")

    @classmethod
    def check_stock_availability(cls, reward) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.stock_availability, reward)

    # =========================================================================
    # G6: Sufficient Balance
    # =========================================================================

    @classmethod
    def sufficient_balance(cls, customer, amount: int, **context) -> GateResult:
        """
        G6: Customer balance must cover ``amount``.

        Raises:
            InsufficientBalance: If amount > customer.points_balance
        """
        if amount > customer.points_balance:
            raise InsufficientBalance(
                customer_code=customer.code,
                available=customer.points_balance,
                requested=amount,
                **context,
            )
        return GateResult(True, "G6_SufficientBalance")

    @classmethod
    def check_sufficient_balance(cls, customer, amount: int) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.sufficient_balance, customer, amount)

    # =========================================================================
    # G7: Referral Eligibility
    # =========================================================================

    @classmethod
    def referral_eligibility(cls, referrer, referred, code: str) -> GateResult:
        """
        G7: Referral code must resolve to another active customer.

        Args:
            referrer: Customer owning the code (None if unresolved)
            referred: Customer signing up with the code
            code: The code as entered

        Raises:
            SelfReferral: If the code belongs to the referred customer
            InvalidCode: If the code matches no active customer
        """
        if referrer is not None and referrer.pk == referred.pk:
            raise SelfReferral(customer_code=referred.code, code=code)
        if referrer is None or not referrer.is_active:
            raise InvalidCode(code=code, customer_code=referred.code)
        return GateResult(True, "G7_ReferralEligibility")

    @classmethod
    def check_referral_eligibility(cls, referrer, referred, code: str) -> bool:
        """Check without raising (returns bool)."""
        return _passes(cls.referral_eligibility, referrer, referred, code)

    # =========================================================================
    # G8: Replay Protection (persistent via DB)
    # =========================================================================

    @classmethod
    def replay_protection(
        cls,
        nonce: str,
        provider: str = "order",
        subject: str = "",
    ) -> GateResult:
        """
        G8: Event cannot be processed twice (persistent via DB).

        Records the nonce; the unique constraint rejects a second delivery,
        also from another process. When called inside a larger atomic unit
        the record is rolled back with it, so a failed processing can be
        redelivered.

        Raises:
            DuplicateEvent: If the nonce was already recorded
        """
        from rewardman.models import ProcessedEvent

        if not nonce:
            raise RewardmanError("INVALID_EVENT", message="Nonce is required.")

        try:
            with transaction.atomic():
                ProcessedEvent.objects.create(
                    nonce=nonce,
                    provider=provider,
                    subject=subject,
                )
        except IntegrityError:
            if ProcessedEvent.objects.filter(nonce=nonce).exists():
                raise DuplicateEvent(nonce=nonce, provider=provider)
            raise

        return GateResult(True, "G8_ReplayProtection")

    @classmethod
    def is_replay(cls, nonce: str) -> bool:
        """Check if nonce was already processed (doesn't record)."""
        from rewardman.models import ProcessedEvent

        return ProcessedEvent.objects.filter(nonce=nonce).exists()
