"""Accrual policy implementations. Selected with REWARDMAN["ACCRUAL_BACKEND"]."""
