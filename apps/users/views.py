from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from rest_framework.authtoken.models import Token
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.contrib.auth import get_user_model
from .serializers import (
    SignupSerializer, LoginSerializer, UserSerializer, HomeownerProfileSerializer,
    WorkerProfileSerializer, ReviewSerializer,
    ConsentRequestSerializer, ConsentGrantSerializer, ConsentRevokeSerializer, ConsentReviewSerializer,
    AvailabilitySerializer, AvailableWorkersQuerySerializer, AvailableWorkerSerializer
)
from .services import ConsentService, WorkerService
from core.constants import DEFAULT_WORKER_SEARCH_RADIUS_MILES
from core.utils import IsHomeowner, IsParent, IsWorker, rejection_response
from apps.jobs.models import Rating
import logging

User = get_user_model()
logger = logging.getLogger(__name__)

UNAUTHORIZED = openapi.Response(
    description='Unauthorized',
    schema=openapi.Schema(type=openapi.TYPE_OBJECT, properties={'detail': openapi.Schema(type=openapi.TYPE_STRING)})
)
FORBIDDEN = openapi.Response(
    description='Forbidden',
    schema=openapi.Schema(type=openapi.TYPE_OBJECT, properties={'detail': openapi.Schema(type=openapi.TYPE_STRING)})
)
TOKEN_RESPONSE = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'token': openapi.Schema(type=openapi.TYPE_STRING),
        'user': openapi.Schema(type=openapi.TYPE_OBJECT),
    }
)


class AuthSignupView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        request_body=SignupSerializer,
        responses={
            201: openapi.Response(description='Account created', schema=TOKEN_RESPONSE),
            400: 'Bad Request'
        }
    )
    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, created = Token.objects.get_or_create(user=user)
            return Response({
                "token": token.key,
                "user": UserSerializer(user).data
            }, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class AuthLoginView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        request_body=LoginSerializer,
        responses={
            200: openapi.Response(description='Login successful', schema=TOKEN_RESPONSE),
            400: openapi.Response(
                description='Bad Request',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'non_field_errors': openapi.Schema(
                            type=openapi.TYPE_ARRAY,
                            items=openapi.Schema(type=openapi.TYPE_STRING)
                        )
                    }
                )
            )
        }
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            token, created = Token.objects.get_or_create(user=user)
            return Response({
                "token": token.key,
                "user": UserSerializer(user).data
            }, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class LogoutView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(responses={200: 'Logged out', 401: UNAUTHORIZED})
    def post(self, request):
        Token.objects.filter(user=request.user).delete()
        return Response({"message": "Logged out."}, status=status.HTTP_200_OK)


class UserProfileView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(responses={200: UserSerializer, 401: UNAUTHORIZED})
    def get(self, request):
        serializer = UserSerializer(request.user)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(request_body=UserSerializer, responses={200: UserSerializer, 400: 'Bad Request', 401: UNAUTHORIZED})
    def put(self, request):
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class UserProfileHomeownerView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsHomeowner]

    @swagger_auto_schema(responses={200: HomeownerProfileSerializer, 401: UNAUTHORIZED, 403: FORBIDDEN})
    def get(self, request):
        serializer = HomeownerProfileSerializer(request.user.homeowner)
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        request_body=HomeownerProfileSerializer,
        responses={200: HomeownerProfileSerializer, 400: 'Bad Request', 401: UNAUTHORIZED, 403: FORBIDDEN}
    )
    def put(self, request):
        serializer = HomeownerProfileSerializer(request.user.homeowner, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


class UserProfileWorkerView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsWorker]

    @swagger_auto_schema(responses={200: WorkerProfileSerializer, 401: UNAUTHORIZED, 403: FORBIDDEN})
    def get(self, request):
        serializer = WorkerProfileSerializer(request.user.worker, context={'request': request})
        return Response(serializer.data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        request_body=WorkerProfileSerializer,
        responses={200: WorkerProfileSerializer, 400: 'Bad Request', 401: UNAUTHORIZED, 403: FORBIDDEN}
    )
    def put(self, request):
        serializer = WorkerProfileSerializer(
            instance=request.user.worker,
            data=request.data,
            context={'request': request},
            partial=True
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_200_OK)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _target_user(request, user_id):
    """The user named in the URL, or the caller when no id is given."""
    if user_id is None:
        return request.user
    return User.objects.filter(id=user_id).first()


RATING_STATS_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'average_rating': openapi.Schema(type=openapi.TYPE_NUMBER),
        'total_ratings': openapi.Schema(type=openapi.TYPE_INTEGER),
        'rating_breakdown': openapi.Schema(
            type=openapi.TYPE_OBJECT,
            description='Percentage of ratings per star value',
            properties={f'{n}_star': openapi.Schema(type=openapi.TYPE_NUMBER) for n in range(5, 0, -1)}
        ),
        'rating_distribution': openapi.Schema(
            type=openapi.TYPE_OBJECT,
            description='Count of ratings per star value',
        ),
    }
)


class UserRatingStatsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Rating statistics for a worker or homeowner, built from every rating they received.",
        responses={200: openapi.Response('Rating statistics', RATING_STATS_SCHEMA), 401: UNAUTHORIZED, 404: 'Not Found'}
    )
    def get(self, request, user_id=None):
        user = _target_user(request, user_id)
        if user is None:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(user.get_rating_stats(), status=status.HTTP_200_OK)


class UserReviewsView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    recent_only = False

    @swagger_auto_schema(
        operation_description="Get public reviews addressed to a user.",
        responses={200: ReviewSerializer(many=True), 401: UNAUTHORIZED, 404: 'Not Found'}
    )
    def get(self, request, user_id=None):
        user = _target_user(request, user_id)
        if user is None:
            return Response({"error": "User not found"}, status=status.HTTP_404_NOT_FOUND)

        reviews = Rating.objects.filter(rated=user, is_public=True).select_related('rater')
        if self.recent_only:
            reviews = reviews[:5]
        serializer = ReviewSerializer(reviews, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


class RecentReviewsView(UserReviewsView):
    recent_only = True


CONSENT_STATUS_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'status': openapi.Schema(type=openapi.TYPE_STRING, enum=['not_requested', 'pending', 'approved', 'expired']),
        'parent_email': openapi.Schema(type=openapi.TYPE_STRING),
    }
)


def _client_ip(request):
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


class ConsentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Where the worker's parent consent request stands.",
        responses={200: openapi.Response('Consent status', CONSENT_STATUS_SCHEMA), 401: UNAUTHORIZED, 403: FORBIDDEN}
    )
    def get(self, request):
        return Response(ConsentService.consent_status(request.user.id), status=status.HTTP_200_OK)


class ConsentRequestView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Email a parent a link to approve this worker.",
        request_body=ConsentRequestSerializer,
        responses={201: 'Consent request sent', 400: 'Bad Request', 401: UNAUTHORIZED, 403: FORBIDDEN}
    )
    def post(self, request):
        serializer = ConsentRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = ConsentService.request_consent(
            request.user.id, serializer.validated_data['parent_email'], serializer.validated_data.get('parent_name')
        )
        if not result:
            return rejection_response(result)
        return Response({"message": result.message}, status=status.HTTP_201_CREATED)


class ConsentVerifyView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        operation_description="Public: the request a parent is about to approve.",
        responses={200: ConsentReviewSerializer, 400: 'Expired', 404: 'Invalid token'}
    )
    def get(self, request, token):
        result = ConsentService.get_request(token)
        if not result:
            return rejection_response(result)
        return Response(ConsentReviewSerializer(result.data).data, status=status.HTTP_200_OK)


class ConsentGrantView(APIView):
    permission_classes = []

    @swagger_auto_schema(
        operation_description="Parent grants consent. A logged-in parent account is linked to the worker.",
        request_body=ConsentGrantSerializer,
        responses={200: 'Consent granted', 400: 'Not agreed, expired or already granted', 404: 'Invalid token'}
    )
    def post(self, request, token):
        serializer = ConsentGrantSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        parent = request.user if request.user.is_authenticated else None
        result = ConsentService.grant_consent(
            token, serializer.validated_data['agreed'], parent=parent, ip_address=_client_ip(request)
        )
        if not result:
            return rejection_response(result)
        return Response({"message": result.message}, status=status.HTTP_200_OK)


class ConsentRevokeView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsParent]

    @swagger_auto_schema(
        request_body=ConsentRevokeSerializer,
        responses={200: 'Consent revoked', 401: UNAUTHORIZED, 403: FORBIDDEN, 404: 'No consent record found'}
    )
    def post(self, request):
        serializer = ConsentRevokeSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = ConsentService.revoke_consent(request.user.id, serializer.validated_data['worker_id'])
        if not result:
            return rejection_response(result)
        return Response({"message": result.message}, status=status.HTTP_200_OK)


class WorkerAvailabilityView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Go online or offline. Going online needs parent consent.",
        request_body=AvailabilitySerializer,
        responses={200: 'Availability updated', 400: 'Bad Request', 401: UNAUTHORIZED, 403: FORBIDDEN}
    )
    def post(self, request):
        serializer = AvailabilitySerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = WorkerService.set_availability(request.user.id, serializer.validated_data['available'])
        if not result:
            return rejection_response(result)
        return Response(result.data, status=status.HTTP_200_OK)


class AvailableWorkerListView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Verified workers available now, nearest first when a location is known.",
        query_serializer=AvailableWorkersQuerySerializer,
        responses={200: AvailableWorkerSerializer(many=True), 401: UNAUTHORIZED}
    )
    def get(self, request):
        query = AvailableWorkersQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = query.validated_data

        workers = WorkerService.available_workers(
            lat=params.get('lat', request.user.lat),
            lng=params.get('lng', request.user.lng),
            radius_miles=params.get('radius', DEFAULT_WORKER_SEARCH_RADIUS_MILES),
            min_rating=params.get('min_rating'),
            limit=params['limit'], offset=params['offset'],
        )
        return Response(AvailableWorkerSerializer(workers, many=True).data)
