from django.contrib import admin
from .models import Job, JobStateTransition, Rating

class JobStateTransitionInline(admin.TabularInline):
    model = JobStateTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'actor', 'created_at')

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = ('id', 'service_type', 'address', 'homeowner', 'worker', 'status', 'price_offered', 'payment_method', 'payment_status', 'created_at')
    list_filter = ('status', 'service_type', 'payment_method', 'payment_status')
    search_fields = ('address', 'homeowner__username', 'worker__username')
    inlines = [JobStateTransitionInline]

@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ('job', 'rater', 'rated', 'rater_type', 'rating', 'is_public', 'created_at')
    list_filter = ('rater_type', 'rating', 'is_public')
    search_fields = ('rater__username', 'rated__username')
