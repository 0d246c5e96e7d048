from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class RewardmanAdminUnfoldConfig(AppConfig):
    name = "rewardman.contrib.admin_unfold"
    label = "rewardman_admin_unfold"
    verbose_name = _("Admin (Unfold)")
