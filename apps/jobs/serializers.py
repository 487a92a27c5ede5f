from rest_framework import serializers
from .models import Job, JobStateTransition, JobStatus
from core.constants import SERVICE_TYPE_CHOICES, PAYMENT_METHOD_CHOICES


class JobSerializer(serializers.ModelSerializer):
    homeowner = serializers.ReadOnlyField(source='homeowner.username')
    worker = serializers.ReadOnlyField(source='worker.username', default=None)
    payout_amount = serializers.DecimalField(max_digits=8, decimal_places=2, read_only=True)
    distance_miles = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id', 'homeowner', 'worker', 'status', 'service_type', 'address', 'city', 'zip',
            'lat', 'lng', 'description', 'special_instructions', 'estimated_duration_minutes',
            'scheduled_for', 'is_asap', 'price_offered', 'price_accepted', 'price_final',
            'payout_amount', 'payment_method', 'payment_status', 'before_photo_url',
            'after_photo_url', 'worker_notes', 'claimed_at', 'confirmed_at', 'started_at',
            'completed_at', 'reviewed_at', 'cancelled_at', 'cancellation_reason',
            'distance_miles', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_distance_miles(self, obj):
        distance = getattr(obj, 'distance_miles', None)
        if distance is None or distance == float('inf'):
            return None
        return round(distance, 2)


class JobCreateSerializer(serializers.Serializer):
    service_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES)
    address = serializers.CharField(max_length=255)
    price_offered = serializers.DecimalField(max_digits=8, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, default='cash')
    city = serializers.CharField(max_length=100, required=False, allow_null=True)
    zip = serializers.CharField(max_length=10, required=False, allow_null=True)
    lat = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    special_instructions = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    estimated_duration_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    scheduled_for = serializers.DateTimeField(required=False, allow_null=True)
    is_asap = serializers.BooleanField(required=False, default=False)


class JobConfirmSerializer(serializers.Serializer):
    price_accepted = serializers.DecimalField(max_digits=8, decimal_places=2, required=False, allow_null=True)


class JobStartSerializer(serializers.Serializer):
    before_photo_url = serializers.URLField(max_length=500, required=False, allow_null=True)


class JobCompleteSerializer(serializers.Serializer):
    after_photo_url = serializers.URLField(max_length=500, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class JobCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AvailableJobsQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False, min_value=0.1, max_value=100)
    service_type = serializers.ChoiceField(choices=SERVICE_TYPE_CHOICES, required=False)
    min_price = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    max_price = serializers.DecimalField(max_digits=8, decimal_places=2, required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


class MyJobsQuerySerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['homeowner', 'worker'], required=False)
    status = serializers.MultipleChoiceField(choices=JobStatus.choices, required=False)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


class JobStateTransitionSerializer(serializers.ModelSerializer):
    actor = serializers.ReadOnlyField(source='actor.username', default=None)

    class Meta:
        model = JobStateTransition
        fields = ['from_status', 'to_status', 'actor', 'created_at']
