"""Rewardman protocols."""

from rewardman.protocols.accrual import AccrualPolicy
from rewardman.protocols.events import CustomerCreated, OrderCompleted

__all__ = [
    # Accrual plug-in
    "AccrualPolicy",
    # Inbound events
    "OrderCompleted",
    "CustomerCreated",
]
