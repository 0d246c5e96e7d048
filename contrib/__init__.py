"""Optional add-ons for rewardman. Each sub-package is a separate Django app."""
