"""
Rewardman signals: public event API.

Signals are sent once the surrounding transaction commits.

Emitted signals:
- points_posted: A ledger transaction was written (sender=PointsTransaction)
- reward_redeemed: A reward was exchanged for points (sender=LoyaltyReward)
- referral_rewarded: Both sides of a referral were credited (sender=Referral)
"""

from django.dispatch import Signal

points_posted = Signal()  # sender=PointsTransaction, transaction=PointsTransaction
reward_redeemed = Signal()  # sender=LoyaltyReward, redemption=Redemption
referral_rewarded = Signal()  # sender=Referral, referral=Referral
