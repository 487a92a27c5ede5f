from rest_framework import serializers
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from django.db.models import Q

from apps.jobs.models import Rating
from .models import Homeowner, ParentConsent, Worker
from .services import ConsentService

import logging

User = get_user_model()
logger = logging.getLogger(__name__)


class UserSerializer(serializers.ModelSerializer):
    role = serializers.CharField(source='user_type', read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'username', 'first_name', 'last_name', 'role', 'email', 'phone_number',
            'address', 'city', 'zip', 'lat', 'lng'
        ]
        read_only_fields = ['id', 'username', 'role']


class PublicUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'first_name', 'last_name']


class SignupSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(max_length=128, write_only=True, min_length=8)
    confirm_password = serializers.CharField(max_length=128, write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=['homeowner', 'worker', 'parent'])
    first_name = serializers.CharField(max_length=30, min_length=2)
    last_name = serializers.CharField(max_length=150, min_length=2)
    email = serializers.EmailField(required=False, allow_null=True)
    phone_number = serializers.CharField(max_length=15, required=False, allow_null=True)
    age = serializers.IntegerField(required=False, min_value=13, max_value=19)
    parent_email = serializers.EmailField(required=False, allow_null=True)
    parent_name = serializers.CharField(max_length=150, required=False, allow_null=True)

    def validate(self, data):
        if data['password'] != data['confirm_password']:
            raise serializers.ValidationError({"confirm_password": "Passwords do not match."})
        validate_password(data['password'])
        if User.objects.filter(username__iexact=data['username']).exists():
            raise serializers.ValidationError({"username": "Username already in use."})
        if not data.get('email') and not data.get('phone_number'):
            raise serializers.ValidationError("Provide an email address or a phone number.")
        if data.get('email') and User.objects.filter(email__iexact=data['email']).exists():
            raise serializers.ValidationError({"email": "Email already in use."})
        phone = data.get('phone_number')
        if phone:
            if not phone.startswith('+') or not phone[1:].isdigit():
                raise serializers.ValidationError({"phone_number": "Invalid phone number format."})
            if User.objects.filter(phone_number=phone).exists():
                raise serializers.ValidationError({"phone_number": "Phone number already in use."})
        if data['role'] == 'worker' and not data.get('age'):
            raise serializers.ValidationError({"age": "Workers must provide their age."})
        return data

    @transaction.atomic
    def save(self):
        data = self.validated_data
        # Built by hand: create_user would turn a missing email into '' and trip the unique index.
        user = User(
            username=data['username'],
            first_name=data['first_name'],
            last_name=data['last_name'],
            email=data.get('email') or None,
            phone_number=data.get('phone_number') or None,
            user_type=data['role'],
        )
        user.set_password(data['password'])
        user.save()
        if data['role'] == 'worker':
            Worker.objects.create(user=user, age=data['age'])
            if data.get('parent_email'):
                ConsentService.request_consent(user.id, data['parent_email'], data.get('parent_name'))
        elif data['role'] == 'homeowner':
            Homeowner.objects.create(user=user)
        logger.info(f"User {user.id} signed up as {data['role']}")
        return user


class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(max_length=255)
    password = serializers.CharField(max_length=128, write_only=True)

    def validate(self, data):
        identifier = data['identifier'].strip()
        user = User.objects.filter(
            Q(username__iexact=identifier) | Q(email__iexact=identifier) | Q(phone_number=identifier)
        ).first()
        if user is None:
            raise serializers.ValidationError("Invalid credentials.")
        user = authenticate(username=user.username, password=data['password'])
        if user is None:
            raise serializers.ValidationError("Invalid credentials.")
        data['user'] = user
        return data

    def save(self):
        return self.validated_data['user']


class HomeownerProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = Homeowner
        fields = [
            'id', 'user', 'property_type', 'driveway_size', 'special_instructions',
            'jobs_posted_count', 'jobs_completed_count', 'avg_rating', 'total_ratings'
        ]
        read_only_fields = ['jobs_posted_count', 'jobs_completed_count', 'avg_rating', 'total_ratings']


class WorkerProfileSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = Worker
        fields = [
            'id', 'user', 'age', 'bio', 'travel_radius_miles', 'available_now', 'verified',
            'total_earnings', 'future_fund_balance', 'completed_jobs_count',
            'avg_rating', 'total_ratings'
        ]
        read_only_fields = [
            'age', 'available_now', 'verified', 'total_earnings', 'future_fund_balance',
            'completed_jobs_count', 'avg_rating', 'total_ratings'
        ]


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = PublicUserSerializer(source='rater', read_only=True)
    review = serializers.CharField(source='review_text', read_only=True)

    class Meta:
        model = Rating
        fields = ['id', 'job', 'rating', 'review', 'rater_type', 'reviewer', 'created_at']


class ConsentRequestSerializer(serializers.Serializer):
    parent_email = serializers.EmailField()
    parent_name = serializers.CharField(max_length=150, required=False, allow_null=True)


class ConsentGrantSerializer(serializers.Serializer):
    agreed = serializers.BooleanField(default=False)


class ConsentRevokeSerializer(serializers.Serializer):
    worker_id = serializers.IntegerField(min_value=1)


class ConsentReviewSerializer(serializers.ModelSerializer):
    """What a parent sees before granting consent."""
    worker = PublicUserSerializer(read_only=True)
    status = serializers.SerializerMethodField()

    class Meta:
        model = ParentConsent
        fields = ['worker', 'parent_name', 'parent_email', 'status', 'created_at', 'expires_at']

    def get_status(self, obj):
        return 'already_approved' if obj.consent_given else 'pending'


class AvailabilitySerializer(serializers.Serializer):
    available = serializers.BooleanField()


class AvailableWorkersQuerySerializer(serializers.Serializer):
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False, min_value=0.1, max_value=100)
    min_rating = serializers.FloatField(required=False, min_value=0, max_value=5)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=50)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


class AvailableWorkerSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='user.id', read_only=True)
    first_name = serializers.CharField(source='user.first_name', read_only=True)
    last_name = serializers.CharField(source='user.last_name', read_only=True)
    completed_jobs = serializers.IntegerField(source='completed_jobs_count', read_only=True)
    distance_miles = serializers.SerializerMethodField()

    class Meta:
        model = Worker
        fields = [
            'id', 'first_name', 'last_name', 'bio', 'travel_radius_miles',
            'avg_rating', 'total_ratings', 'completed_jobs', 'distance_miles'
        ]

    def get_distance_miles(self, obj):
        distance = getattr(obj, 'distance_miles', None)
        return None if distance is None else round(distance, 2)
