"""
Per-subject notification cooldowns.

Each subject key (``"{user_id}:{notification_type}"``) has its own throttle
row, so unrelated subjects never contend. The check-and-set in can_notify is a
conditional UPDATE, or an INSERT guarded by the unique key, so two callers for
the same key cannot both be allowed inside one window.
"""

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.constants import DEFAULT_NOTIFICATION_WINDOW_HOURS
from .models import NotificationThrottle

logger = logging.getLogger(__name__)


class NotificationRateLimiter:

    def __init__(self, subject_key, clock=None):
        self.key = subject_key
        self.clock = clock or timezone.now

    def can_notify(self, window_hours=DEFAULT_NOTIFICATION_WINDOW_HOURS):
        """
        Return True and record now as the last send time if the window has
        elapsed (or nothing was ever sent); otherwise return False and leave
        the stored time untouched.
        """
        now = self.clock()
        cutoff = now - timedelta(hours=window_hours)

        updated = NotificationThrottle.objects.filter(
            key=self.key, last_sent_at__lte=cutoff
        ).update(last_sent_at=now)
        if updated:
            return True

        try:
            with transaction.atomic():
                NotificationThrottle.objects.create(key=self.key, last_sent_at=now)
        except IntegrityError:
            logger.debug(f"Notification for {self.key} suppressed by rate limit")
            return False
        return True

    def reset(self):
        NotificationThrottle.objects.filter(key=self.key).delete()

    def time_until_allowed(self, window_hours=DEFAULT_NOTIFICATION_WINDOW_HOURS):
        """Time left before can_notify would allow a send. Read-only."""
        last_sent = NotificationThrottle.objects.filter(key=self.key).values_list(
            'last_sent_at', flat=True
        ).first()
        if last_sent is None:
            return timedelta(0)
        remaining = timedelta(hours=window_hours) - (self.clock() - last_sent)
        return max(remaining, timedelta(0))


def limiter_for(user_id, notification_type, clock=None):
    return NotificationRateLimiter(f"{user_id}:{notification_type}", clock=clock)
