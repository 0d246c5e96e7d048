"""
Rewardman configuration.

Usage in settings.py:
    REWARDMAN = {
        "ACCRUAL_RATE": "0.1",        # 1 point per 10 currency units
        "REFERRER_POINTS": 200,
        "REFERRED_POINTS": 100,
        "TIER_QUALIFYING_POINTS": "lifetime",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class RewardmanSettings:
    """Rewardman configuration settings."""

    # Accrual policy (dotted path to an AccrualPolicy implementation)
    ACCRUAL_BACKEND: str = "rewardman.adapters.flat_rate.FlatRateAccrual"

    # Points per currency unit used by FlatRateAccrual
    ACCRUAL_RATE: str = "0.1"

    # "lifetime" (total_points_earned) or "balance" (points_balance)
    TIER_QUALIFYING_POINTS: str = "lifetime"

    # Referral program amounts
    REFERRER_POINTS: int = 200
    REFERRED_POINTS: int = 100
    REFERRAL_CODE_LENGTH: int = 8

    # Bounded retry on storage contention before raising Conflict
    CONFLICT_MAX_RETRIES: int = 3

    # Tier level counted as "top tier" in program analytics
    TOP_TIER_LEVEL: int = 4

    # ProcessedEvent cleanup
    EVENT_CLEANUP_DAYS: int = 90

    # Default size of recent transaction history
    HISTORY_LIMIT: int = 10


def get_rewardman_settings() -> RewardmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "REWARDMAN", {})
    return RewardmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_rewardman_settings(), name)


rewardman_settings = _LazySettings()
