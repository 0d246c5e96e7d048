"""Shared helpers: referral code generation and retrying atomic units."""

import logging
import secrets

from django.db import OperationalError, transaction

from rewardman.exceptions import Conflict

logger = logging.getLogger(__name__)

# No 0/O or 1/I/L, codes are read aloud and typed by hand
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


class StaleWrite(Exception):
    """A version-guarded UPDATE matched no row: another writer got there first."""


def generate_referral_code(length: int | None = None) -> str:
    """Random referral code (uppercase, unambiguous characters)."""
    if length is None:
        from rewardman.conf import rewardman_settings

        length = rewardman_settings.REFERRAL_CODE_LENGTH
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def normalize_referral_code(code: str | None) -> str:
    return (code or "").strip().upper()


def run_atomic(fn, *, label: str, max_retries: int | None = None):
    """
    Run ``fn()`` as one atomic unit, retrying on contention.

    Each attempt runs inside its own ``transaction.atomic()`` block (a
    savepoint when nested), so a failed attempt leaves no partial writes.
    ``StaleWrite`` and ``OperationalError`` (lock timeouts, deadlocks,
    serialization failures) are retried; business errors propagate at once.

    Raises:
        Conflict: If every attempt lost to contention
    """
    if max_retries is None:
        from rewardman.conf import rewardman_settings

        max_retries = rewardman_settings.CONFLICT_MAX_RETRIES

    attempts = max(1, max_retries)
    last_error = None
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                return fn()
        except (StaleWrite, OperationalError) as exc:
            last_error = exc
            logger.warning(
                "%s: contention on attempt %d/%d (%s)",
                label,
                attempt,
                attempts,
                exc.__class__.__name__,
            )

    raise Conflict(operation=label, attempts=attempts) from last_error
