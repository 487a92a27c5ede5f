from django.contrib import admin
from .models import NotificationLog, NotificationThrottle

@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'notification_type', 'subject', 'channel', 'status', 'sent_at', 'created_at')
    list_filter = ('channel', 'status', 'notification_type')
    search_fields = ('recipient__username', 'subject')

@admin.register(NotificationThrottle)
class NotificationThrottleAdmin(admin.ModelAdmin):
    list_display = ('key', 'last_sent_at')
    search_fields = ('key',)
