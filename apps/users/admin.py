from django.contrib import admin
from .models import User, Homeowner, Worker, ParentConsent

@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'phone_number', 'user_type', 'is_homeowner', 'is_worker', 'is_superuser')
    list_filter = ('user_type', 'is_superuser')
    search_fields = ('username', 'email', 'phone_number')

@admin.register(Homeowner)
class HomeownerAdmin(admin.ModelAdmin):
    list_display = ('user', 'property_type', 'jobs_posted_count', 'jobs_completed_count', 'avg_rating')
    search_fields = ('user__username', 'user__email')

@admin.register(Worker)
class WorkerAdmin(admin.ModelAdmin):
    list_display = ('user', 'age', 'verified', 'available_now', 'completed_jobs_count', 'total_earnings', 'future_fund_balance', 'avg_rating')
    list_filter = ('verified', 'available_now')
    search_fields = ('user__username', 'user__email')

@admin.register(ParentConsent)
class ParentConsentAdmin(admin.ModelAdmin):
    list_display = ('worker', 'parent_email', 'consent_given', 'consent_given_at', 'expires_at')
    list_filter = ('consent_given',)
    search_fields = ('worker__username', 'parent_email')
    readonly_fields = ('consent_token', 'ip_address', 'created_at')
