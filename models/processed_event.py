"""
ProcessedEvent model for inbound event deduplication.

Stores the dedup key of every inbound event (e.g. "order:1234") so that a
redelivered OrderCompleted never awards points twice, also across processes.
"""

from datetime import timedelta

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class ProcessedEvent(models.Model):
    """
    Tracks processed inbound events.

    subject holds the customer code the event was about; the first order
    of a customer is detected by the absence of earlier order events.
    """

    nonce = models.CharField(verbose_name=_("nonce"), max_length=255, unique=True, db_index=True)
    provider = models.CharField(verbose_name=_("provider"), max_length=50, db_index=True)
    subject = models.CharField(verbose_name=_("subject"), max_length=100, blank=True, db_index=True)
    processed_at = models.DateTimeField(verbose_name=_("processed at"), auto_now_add=True)

    class Meta:
        db_table = "rewardman_processed_event"
        verbose_name = _("processed event")
        verbose_name_plural = _("processed events")
        indexes = [
            models.Index(fields=["provider", "processed_at"], name="rewardman_pe_provider_at_idx"),
            models.Index(fields=["provider", "subject"], name="rewardman_pe_provider_subj_idx"),
        ]

    def __str__(self):
        return f"{self.provider}:{self.nonce[:20]}"

    @classmethod
    def cleanup_old_events(cls, days: int | None = None):
        """Remove events older than N days."""
        if days is None:
            from rewardman.conf import rewardman_settings
            days = rewardman_settings.EVENT_CLEANUP_DAYS
        cutoff = timezone.now() - timedelta(days=days)
        return cls.objects.filter(processed_at__lt=cutoff).delete()
