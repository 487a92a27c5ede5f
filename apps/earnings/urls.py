from django.urls import path
from .views import (
    EarningsSummaryView, EarningListView, WeeklyEarningsView, MonthlyEarningsView,
    GrowthCalculatorView, SavingsGoalListView, SavingsGoalDetailView, JobPaymentView,
    PaymentWebhookView
)

urlpatterns = [
    path('earnings/', EarningListView.as_view(), name='earning_list'),
    path('earnings/summary/', EarningsSummaryView.as_view(), name='earnings_summary'),
    path('earnings/weekly/', WeeklyEarningsView.as_view(), name='earnings_weekly'),
    path('earnings/monthly/', MonthlyEarningsView.as_view(), name='earnings_monthly'),
    path('earnings/growth-calculator/', GrowthCalculatorView.as_view(), name='growth_calculator'),
    path('earnings/goals/', SavingsGoalListView.as_view(), name='savings_goals'),
    path('earnings/goals/<int:pk>/', SavingsGoalDetailView.as_view(), name='savings_goal_detail'),
    path('jobs/<int:pk>/pay/', JobPaymentView.as_view(), name='job_pay'),
    path('payments/webhook/', PaymentWebhookView.as_view(), name='payment_webhook'),
]
