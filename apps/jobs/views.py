from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from .models import Job, Rating
from .serializers import (
    JobSerializer, JobCreateSerializer, JobConfirmSerializer, JobStartSerializer,
    JobCompleteSerializer, JobCancelSerializer, AvailableJobsQuerySerializer,
    MyJobsQuerySerializer, JobStateTransitionSerializer
)
from .rating_serializers import RatingSubmitSerializer, RatingSerializer
from .services import JobService, NewJob
from .settlement import RatingSubmission, submit_rating
from core.constants import DEFAULT_SEARCH_RADIUS_MILES
from core.utils import IsHomeowner, IsWorker, rejection_response
import logging

logger = logging.getLogger(__name__)

ERROR_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'error': openapi.Schema(type=openapi.TYPE_STRING),
        'code': openapi.Schema(type=openapi.TYPE_STRING),
    }
)
TRANSITION_RESPONSES = {
    200: JobSerializer,
    400: openapi.Response(description='Invalid state or input', schema=ERROR_SCHEMA),
    403: openapi.Response(description='Not a party to this job', schema=ERROR_SCHEMA),
    404: openapi.Response(description='Job not found', schema=ERROR_SCHEMA),
}


def _job_response(result, success_status=status.HTTP_200_OK):
    if not result:
        return rejection_response(result)
    return Response(
        {'message': result.message, 'job': JobSerializer(result.data).data},
        status=success_status
    )


class JobCreateView(APIView):
    permission_classes = [IsAuthenticated, IsHomeowner]

    @swagger_auto_schema(
        operation_description="Post a new snow removal job.",
        request_body=JobCreateSerializer,
        responses={201: JobSerializer, 400: openapi.Response(description='Bad Request', schema=ERROR_SCHEMA)}
    )
    def post(self, request):
        serializer = JobCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = JobService.create_job(request.user.id, NewJob(**serializer.validated_data))
        return _job_response(result, success_status=status.HTTP_201_CREATED)


class JobDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: JobSerializer, 404: 'Not Found'})
    def get(self, request, pk):
        job = JobService.get_job(pk)
        if job is None:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(JobSerializer(job).data)


class AvailableJobListView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Posted jobs open to claims, nearest first when a location is given.",
        query_serializer=AvailableJobsQuerySerializer,
        responses={200: JobSerializer(many=True)}
    )
    def get(self, request):
        query = AvailableJobsQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = query.validated_data

        lat = params.get('lat', request.user.lat)
        lng = params.get('lng', request.user.lng)
        radius = params.get('radius')
        if radius is None:
            radius = request.user.worker.travel_radius_miles or DEFAULT_SEARCH_RADIUS_MILES

        jobs = JobService.available_jobs(
            lat=lat, lng=lng, radius_miles=radius,
            service_type=params.get('service_type'),
            min_price=params.get('min_price'), max_price=params.get('max_price'),
            limit=params['limit'], offset=params['offset'],
        )
        return Response(JobSerializer(jobs, many=True).data)


class MyJobListView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Jobs the user posted (homeowner) or claimed (worker), with per-status counts.",
        query_serializer=MyJobsQuerySerializer,
        responses={200: openapi.Response(
            description='Jobs and counts',
            schema=openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'jobs': openapi.Schema(type=openapi.TYPE_ARRAY, items=openapi.Schema(type=openapi.TYPE_OBJECT)),
                    'counts': openapi.Schema(type=openapi.TYPE_OBJECT),
                }
            )
        )}
    )
    def get(self, request):
        query = MyJobsQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = query.validated_data
        role = params.get('role') or ('worker' if request.user.is_worker else 'homeowner')

        jobs = JobService.jobs_for_user(
            request.user.id, role, statuses=list(params.get('status') or []),
            limit=params['limit'], offset=params['offset'],
        )
        return Response({
            'jobs': JobSerializer(jobs, many=True).data,
            'counts': JobService.count_by_status(request.user.id, role),
        })


class JobClaimView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Claim a posted job. Only one worker can win a claim.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={
            200: JobSerializer,
            404: openapi.Response(description='Job not found', schema=ERROR_SCHEMA),
            409: openapi.Response(description='Job no longer available', schema=ERROR_SCHEMA),
        }
    )
    def post(self, request, pk):
        return _job_response(JobService.claim_job(pk, request.user.id))


class JobConfirmView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(request_body=JobConfirmSerializer, responses=TRANSITION_RESPONSES)
    def post(self, request, pk):
        serializer = JobConfirmSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = JobService.confirm_job(pk, request.user.id, serializer.validated_data.get('price_accepted'))
        return _job_response(result)


class JobStartView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=JobStartSerializer, responses=TRANSITION_RESPONSES)
    def post(self, request, pk):
        serializer = JobStartSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = JobService.start_job(pk, request.user.id, serializer.validated_data.get('before_photo_url'))
        return _job_response(result)


class JobCompleteView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=JobCompleteSerializer, responses=TRANSITION_RESPONSES)
    def post(self, request, pk):
        serializer = JobCompleteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = JobService.complete_job(
            pk, request.user.id,
            after_photo_url=serializer.validated_data.get('after_photo_url'),
            notes=serializer.validated_data.get('notes'),
        )
        return _job_response(result)


class JobCancelView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(request_body=JobCancelSerializer, responses=TRANSITION_RESPONSES)
    def post(self, request, pk):
        serializer = JobCancelSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = JobService.cancel_job(pk, request.user.id, serializer.validated_data.get('reason'))
        return _job_response(result)


class JobHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: JobStateTransitionSerializer(many=True), 403: 'Forbidden', 404: 'Not Found'})
    def get(self, request, pk):
        job = JobService.get_job(pk)
        if job is None:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        if not job.is_party(request.user.id):
            return Response({"error": "You are not part of this job"}, status=status.HTTP_403_FORBIDDEN)
        transitions = job.transitions.select_related('actor')
        return Response(JobStateTransitionSerializer(transitions, many=True).data)


class JobRatingView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Rate the other party on a completed job. "
                              "The job settles once both parties have rated.",
        request_body=RatingSubmitSerializer,
        responses={
            201: openapi.Response(
                description='Rating recorded',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                        'rating': openapi.Schema(type=openapi.TYPE_OBJECT),
                        'settled': openapi.Schema(type=openapi.TYPE_BOOLEAN),
                    }
                )
            ),
            400: openapi.Response(description='Invalid rating or job state', schema=ERROR_SCHEMA),
            403: openapi.Response(description='Not a party to this job', schema=ERROR_SCHEMA),
            404: openapi.Response(description='Job not found', schema=ERROR_SCHEMA),
        }
    )
    def post(self, request, pk):
        serializer = RatingSubmitSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        rated_id = data.pop('rated_id', None)
        rater_type = data.pop('rater_type', None)

        result = submit_rating(pk, request.user.id, RatingSubmission(**data), rated_id=rated_id, rater_type=rater_type)
        if not result:
            return rejection_response(result)
        return Response({
            'message': result.message,
            'rating': RatingSerializer(result.data['rating']).data,
            'settled': result.data['settled'],
        }, status=status.HTTP_201_CREATED)

    @swagger_auto_schema(
        operation_description="Ratings submitted for a job, visible to its parties.",
        responses={200: RatingSerializer(many=True), 403: 'Forbidden', 404: 'Not Found'}
    )
    def get(self, request, pk):
        job = Job.objects.filter(pk=pk).first()
        if job is None:
            return Response({"error": "Job not found"}, status=status.HTTP_404_NOT_FOUND)
        if not job.is_party(request.user.id):
            return Response({"error": "You are not part of this job"}, status=status.HTTP_403_FORBIDDEN)
        ratings = Rating.objects.filter(job=job).select_related('rater', 'rated')
        return Response(RatingSerializer(ratings, many=True).data)


class JobHasRatedView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: openapi.Response(
        description='Whether the user has rated this job',
        schema=openapi.Schema(type=openapi.TYPE_OBJECT, properties={'has_rated': openapi.Schema(type=openapi.TYPE_BOOLEAN)})
    )})
    def get(self, request, pk):
        has_rated = Rating.objects.filter(job_id=pk, rater=request.user).exists()
        return Response({'has_rated': has_rated})
