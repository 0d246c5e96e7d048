"""Rewardman services.

- customer: loyalty provisioning, CustomerCreated handling, lookups
- ledger: the only writer of points (earn, spend, adjust, expire)
- tiers: tier table and pure tier resolution
- rewards: catalog CRUD and redemption
- referrals: referral state machine and disbursement
- orders: OrderCompleted handling
- analytics: read-only program aggregates
"""

from rewardman.services import customer
from rewardman.services import tiers
from rewardman.services import ledger
from rewardman.services import rewards
from rewardman.services import referrals
from rewardman.services import orders
from rewardman.services import analytics

__all__ = [
    "customer",
    "tiers",
    "ledger",
    "rewards",
    "referrals",
    "orders",
    "analytics",
]
