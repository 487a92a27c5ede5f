from django.contrib import admin
from .models import Earning, SavingsGoal

@admin.register(Earning)
class EarningAdmin(admin.ModelAdmin):
    list_display = ('job', 'user', 'gross_amount', 'platform_fee', 'future_fund_contribution', 'net_amount', 'payment_method', 'status', 'created_at')
    list_filter = ('status', 'payment_method')
    search_fields = ('user__username', 'transfer_reference')
    readonly_fields = ('gross_amount', 'platform_fee', 'future_fund_contribution', 'net_amount')

@admin.register(SavingsGoal)
class SavingsGoalAdmin(admin.ModelAdmin):
    list_display = ('user', 'name', 'target_amount', 'current_amount', 'achieved', 'priority')
    list_filter = ('achieved',)
    search_fields = ('user__username', 'name')
