"""Rewardman models."""

from rewardman.models.tier import LoyaltyTier
from rewardman.models.customer import Customer
from rewardman.models.transaction import (
    PointsTransaction,
    TransactionKind,
    ReferenceType,
)
from rewardman.models.reward import LoyaltyReward, RewardType
from rewardman.models.referral import Referral, ReferralStatus
from rewardman.models.processed_event import ProcessedEvent

__all__ = [
    "LoyaltyTier",
    "Customer",
    # Ledger
    "PointsTransaction",
    "TransactionKind",
    "ReferenceType",
    # Catalog
    "LoyaltyReward",
    "RewardType",
    # Referral program
    "Referral",
    "ReferralStatus",
    # Inbound event dedup
    "ProcessedEvent",
]
