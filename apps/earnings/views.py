from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from . import goals, ledger, payments
from .fees import project_growth, to_money
from .gateway import verify_webhook_signature
from .serializers import (
    EarningSerializer, EarningsSummarySerializer, SeriesQuerySerializer, GrowthQuerySerializer,
    SavingsGoalSerializer, GoalDepositSerializer
)
from core.utils import IsHomeowner, IsWorker, rejection_response
import json
import logging

logger = logging.getLogger(__name__)

def _series_schema(period_key):
    return openapi.Schema(
        type=openapi.TYPE_ARRAY,
        items=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            properties={
                period_key: openapi.Schema(type=openapi.TYPE_STRING),
                'amount': openapi.Schema(type=openapi.TYPE_STRING),
            }
        )
    )


class EarningsSummaryView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        operation_description="Totals of completed earnings and the projected Future Fund value.",
        responses={200: EarningsSummarySerializer}
    )
    def get(self, request):
        summary = ledger.summarize(request.user.id)
        return Response(EarningsSummarySerializer(summary).data)


class EarningListView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('offset', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
        ],
        responses={200: EarningSerializer(many=True)}
    )
    def get(self, request):
        try:
            limit = min(int(request.query_params.get('limit', 50)), 100)
            offset = max(int(request.query_params.get('offset', 0)), 0)
        except ValueError:
            return Response({"error": "limit and offset must be integers"}, status=status.HTTP_400_BAD_REQUEST)
        earnings = ledger.list_for_worker(request.user.id, limit=limit, offset=offset)
        return Response(EarningSerializer(earnings, many=True).data)


class WeeklyEarningsView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(query_serializer=SeriesQuerySerializer, responses={200: openapi.Response('Weekly totals', _series_schema('week_start'))})
    def get(self, request):
        query = SeriesQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(ledger.weekly_series(request.user.id, weeks=query.validated_data['periods']))


class MonthlyEarningsView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(query_serializer=SeriesQuerySerializer, responses={200: openapi.Response('Monthly totals', _series_schema('month'))})
    def get(self, request):
        query = SeriesQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(ledger.monthly_series(request.user.id, months=query.validated_data['periods']))


class GrowthCalculatorView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Compound growth of a Future Fund balance.",
        query_serializer=GrowthQuerySerializer,
        responses={200: openapi.Response(
            description='Projection',
            schema=openapi.Schema(
                type=openapi.TYPE_OBJECT,
                properties={
                    'principal': openapi.Schema(type=openapi.TYPE_STRING),
                    'years': openapi.Schema(type=openapi.TYPE_INTEGER),
                    'rate': openapi.Schema(type=openapi.TYPE_NUMBER),
                    'projected_value': openapi.Schema(type=openapi.TYPE_STRING),
                    'growth': openapi.Schema(type=openapi.TYPE_STRING),
                }
            )
        )}
    )
    def get(self, request):
        query = GrowthQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)
        params = query.validated_data
        projected = to_money(project_growth(params['principal'], params['years'], params['rate']))
        return Response({
            'principal': str(params['principal']),
            'years': params['years'],
            'rate': params['rate'],
            'projected_value': str(projected),
            'growth': str(projected - params['principal']),
        })


class SavingsGoalListView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(responses={200: SavingsGoalSerializer(many=True)})
    def get(self, request):
        return Response({
            'goals': SavingsGoalSerializer(goals.goals_for(request.user.id), many=True).data,
            'progress': goals.goal_progress(request.user.id),
        })

    @swagger_auto_schema(request_body=SavingsGoalSerializer, responses={201: SavingsGoalSerializer, 400: 'Bad Request'})
    def post(self, request):
        serializer = SavingsGoalSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        result = goals.create_goal(
            request.user.id, data['name'], data['target_amount'],
            description=data.get('description'), target_date=data.get('target_date'),
            priority=data.get('priority', 0),
        )
        if not result:
            return rejection_response(result)
        return Response(SavingsGoalSerializer(result.data).data, status=status.HTTP_201_CREATED)


class SavingsGoalDetailView(APIView):
    permission_classes = [IsAuthenticated, IsWorker]

    @swagger_auto_schema(request_body=GoalDepositSerializer, responses={200: SavingsGoalSerializer, 400: 'Bad Request', 404: 'Not Found'})
    def post(self, request, pk):
        serializer = GoalDepositSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        result = goals.add_to_goal(pk, request.user.id, serializer.validated_data['amount'])
        if not result:
            return rejection_response(result)
        return Response(SavingsGoalSerializer(result.data).data)

    @swagger_auto_schema(responses={204: 'Deleted', 404: 'Not Found'})
    def delete(self, request, pk):
        result = goals.delete_goal(pk, request.user.id)
        if not result:
            return rejection_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JobPaymentView(APIView):
    permission_classes = [IsAuthenticated, IsHomeowner]

    @swagger_auto_schema(
        operation_description="Charge the homeowner's card for a confirmed job.",
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT, properties={}),
        responses={
            202: openapi.Response(
                description='Payment processing',
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={
                        'message': openapi.Schema(type=openapi.TYPE_STRING),
                        'payment_reference': openapi.Schema(type=openapi.TYPE_STRING),
                    }
                )
            ),
            400: 'Bad Request',
            403: 'Forbidden',
            404: 'Not Found',
            503: 'Payment gateway unavailable'
        }
    )
    def post(self, request, pk):
        result = payments.start_card_payment(pk, request.user.id)
        if not result:
            return rejection_response(result)
        return Response(
            {'message': result.message, 'payment_reference': result.data['payment_reference']},
            status=status.HTTP_202_ACCEPTED
        )


@method_decorator(csrf_exempt, name='dispatch')
class PaymentWebhookView(APIView):
    authentication_classes = []
    permission_classes = []

    @swagger_auto_schema(auto_schema=None)
    def post(self, request):
        payload = request.body
        if not verify_webhook_signature(payload, request.headers.get('Stripe-Signature')):
            logger.error('Invalid webhook signature')
            return Response({'error': 'Invalid webhook signature'}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            event = json.loads(payload)
        except ValueError:
            return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Received gateway event {event.get('type')} ({event.get('id')})")
        payments.handle_event(event)
        return Response({'received': True}, status=status.HTTP_200_OK)
