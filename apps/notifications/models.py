from django.db import models
from django.conf import settings
from django.utils import timezone
from core.constants import NOTIFICATION_CHANNEL_CHOICES, NOTIFICATION_STATUS_CHOICES


class NotificationLog(models.Model):
    """Track notifications sent to users."""
    recipient = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    notification_type = models.CharField(max_length=50, blank=True, default='')
    subject = models.CharField(max_length=200)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    channel = models.CharField(max_length=10, choices=NOTIFICATION_CHANNEL_CHOICES)
    status = models.CharField(max_length=10, choices=NOTIFICATION_STATUS_CHOICES, default='pending')
    error_message = models.TextField(blank=True, null=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Notification to {self.recipient.username} - {self.status}"

    def mark_as_sent(self):
        self.status = 'sent'
        self.sent_at = timezone.now()
        self.save(update_fields=['status', 'sent_at'])

    def mark_as_failed(self, error_message):
        self.status = 'failed'
        self.error_message = error_message
        self.save(update_fields=['status', 'error_message'])


class NotificationThrottle(models.Model):
    """Last time a notification went out for one subject key (``user_id:type``)."""
    key = models.CharField(max_length=150, unique=True)
    last_sent_at = models.DateTimeField()

    def __str__(self):
        return f"{self.key} @ {self.last_sent_at}"
