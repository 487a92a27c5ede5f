from rest_framework import serializers
from .models import Rating

RATING_FIELD_KWARGS = {'min_value': 1, 'max_value': 5, 'required': False, 'allow_null': True}


class RatingSubmitSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review_text = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    rated_id = serializers.IntegerField(required=False)
    rater_type = serializers.ChoiceField(choices=['homeowner', 'worker'], required=False)
    # From the homeowner about the worker
    quality_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    punctuality_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    communication_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    would_hire_again = serializers.BooleanField(required=False, allow_null=True)
    # From the worker about the homeowner
    payment_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    accuracy_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    treatment_rating = serializers.IntegerField(**RATING_FIELD_KWARGS)
    would_work_again = serializers.BooleanField(required=False, allow_null=True)
    is_public = serializers.BooleanField(required=False, default=True)


class RatingSerializer(serializers.ModelSerializer):
    rater = serializers.ReadOnlyField(source='rater.username')
    rated = serializers.ReadOnlyField(source='rated.username')

    class Meta:
        model = Rating
        fields = [
            'id', 'job', 'rater', 'rated', 'rater_type', 'rating', 'review_text',
            'quality_rating', 'punctuality_rating', 'communication_rating', 'would_hire_again',
            'payment_rating', 'accuracy_rating', 'treatment_rating', 'would_work_again',
            'is_public', 'created_at'
        ]
