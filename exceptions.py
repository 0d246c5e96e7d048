"""Rewardman exceptions."""


class RewardmanError(Exception):
    """
    Structured exception for loyalty operations.

    Every failure carries a machine-readable ``code``, a human message and
    a ``data`` dict with context (customer code, amounts, reward id).
    Subclasses pin the code so callers can catch by type or by code.

    Usage:
        try:
            ledger.record_spend("CUST-001", 500, ReferenceType.MANUAL, "Gift")
        except InsufficientBalance as e:
            show(e.data["available"])
        except RewardmanError as e:
            if e.code == "CONFLICT":
                retry_later()
    """

    code = "REWARDMAN_ERROR"

    _default_messages = {
        "REWARDMAN_ERROR": "Loyalty operation failed",
        "INVALID_AMOUNT": "Points amount must be positive",
        "INSUFFICIENT_BALANCE": "Insufficient points balance",
        "MISSING_REASON": "A reason is required for manual adjustments",
        "REWARD_NOT_FOUND": "Reward not found",
        "REWARD_INACTIVE": "Reward is not active",
        "REWARD_EXPIRED": "Reward is outside its validity window",
        "TIER_TOO_LOW": "Customer tier is too low for this reward",
        "OUT_OF_STOCK": "Reward is out of stock",
        "SELF_REFERRAL": "Customers cannot refer themselves",
        "INVALID_CODE": "Referral code does not match an active customer",
        "CONFLICT": "Concurrent update conflict, retries exhausted",
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "REFERRAL_NOT_FOUND": "Referral not found",
        "INVALID_TRANSITION": "Referral status transition not allowed",
        "ALREADY_REFERRED": "Customer was already referred by someone else",
        "DUPLICATE_EVENT": "Event already processed",
        "INVALID_EVENT": "Malformed event",
        "INVALID_REWARD": "Invalid reward definition",
        "INVALID_TIER_TABLE": "Tier thresholds must grow with tier level",
        "LEDGER_IMMUTABLE": "Ledger transactions cannot be changed or removed",
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        if code is not None:
            self.code = code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(f"[{self.code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class InvalidAmount(RewardmanError):
    code = "INVALID_AMOUNT"


class InsufficientBalance(RewardmanError):
    code = "INSUFFICIENT_BALANCE"


class MissingReason(RewardmanError):
    code = "MISSING_REASON"


class RewardNotFound(RewardmanError):
    code = "REWARD_NOT_FOUND"


class RewardInactive(RewardmanError):
    code = "REWARD_INACTIVE"


class RewardExpired(RewardmanError):
    code = "REWARD_EXPIRED"


class TierTooLow(RewardmanError):
    code = "TIER_TOO_LOW"


class OutOfStock(RewardmanError):
    code = "OUT_OF_STOCK"


class SelfReferral(RewardmanError):
    code = "SELF_REFERRAL"


class InvalidCode(RewardmanError):
    code = "INVALID_CODE"


class Conflict(RewardmanError):
    code = "CONFLICT"


class CustomerNotFound(RewardmanError):
    code = "CUSTOMER_NOT_FOUND"


class ReferralNotFound(RewardmanError):
    code = "REFERRAL_NOT_FOUND"


class InvalidTransition(RewardmanError):
    code = "INVALID_TRANSITION"


class AlreadyReferred(RewardmanError):
    code = "ALREADY_REFERRED"


class DuplicateEvent(RewardmanError):
    code = "DUPLICATE_EVENT"


class InvalidReward(RewardmanError):
    code = "INVALID_REWARD"


class InvalidTierTable(RewardmanError):
    code = "INVALID_TIER_TABLE"


class LedgerImmutable(RewardmanError):
    code = "LEDGER_IMMUTABLE"
