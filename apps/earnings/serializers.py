from rest_framework import serializers
from .models import Earning, SavingsGoal


class EarningSerializer(serializers.ModelSerializer):
    job_service_type = serializers.ReadOnlyField(source='job.service_type')
    job_address = serializers.ReadOnlyField(source='job.address')

    class Meta:
        model = Earning
        fields = [
            'id', 'job', 'job_service_type', 'job_address', 'gross_amount', 'platform_fee',
            'future_fund_contribution', 'net_amount', 'payment_method', 'status', 'created_at'
        ]
        read_only_fields = fields


class EarningsSummarySerializer(serializers.Serializer):
    total_earned = serializers.DecimalField(max_digits=12, decimal_places=2)
    this_month = serializers.DecimalField(max_digits=12, decimal_places=2)
    this_week = serializers.DecimalField(max_digits=12, decimal_places=2)
    jobs_completed = serializers.IntegerField()
    average_per_job = serializers.DecimalField(max_digits=12, decimal_places=2)
    future_fund_balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    future_fund_projected = serializers.DecimalField(max_digits=14, decimal_places=2)


class SeriesQuerySerializer(serializers.Serializer):
    periods = serializers.IntegerField(required=False, min_value=1, max_value=52, default=12)


class GrowthQuerySerializer(serializers.Serializer):
    principal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    years = serializers.IntegerField(required=False, min_value=1, max_value=50, default=10)
    rate = serializers.FloatField(required=False, min_value=0, max_value=0.5, default=0.07)


class SavingsGoalSerializer(serializers.ModelSerializer):
    progress = serializers.SerializerMethodField()

    class Meta:
        model = SavingsGoal
        fields = [
            'id', 'name', 'description', 'target_amount', 'current_amount', 'target_date',
            'priority', 'achieved', 'achieved_at', 'progress', 'created_at'
        ]
        read_only_fields = ['current_amount', 'achieved', 'achieved_at', 'created_at']

    def get_progress(self, obj):
        if not obj.target_amount:
            return 0.0
        return round(float(obj.current_amount / obj.target_amount) * 100, 1)


class GoalDepositSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
